"""Shared fixtures for sleepviz tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import pytest

HEADER = [
    "Person ID", "Gender", "Age", "Occupation", "Sleep Duration", "Quality of Sleep",
    "Physical Activity Level", "Stress Level", "BMI Category", "Blood Pressure",
    "Heart Rate", "Daily Steps", "Sleep Disorder",
]

# Eight respondents in the layout of Sleep_health_and_lifestyle_dataset.csv.
SAMPLE_ROWS = [
    (1, "Male", 27, "Software Engineer", 6.1, 6, 42, 6, "Overweight", "126/83", 77, 4200, "None"),
    (2, "Male", 28, "Doctor", 6.2, 6, 60, 8, "Normal", "125/80", 75, 10000, "None"),
    (3, "Male", 28, "Doctor", 6.2, 6, 60, 8, "Normal", "125/80", 75, 10000, "None"),
    (4, "Male", 28, "Sales Representative", 5.9, 4, 30, 8, "Obese", "140/90", 85, 3000, "Sleep Apnea"),
    (5, "Female", 29, "Teacher", 6.3, 6, 40, 7, "Obese", "140/90", 82, 3500, "Insomnia"),
    (6, "Female", 45, "Nurse", 7.8, 8, 75, 4, "Normal", "118/76", 68, 7000, "None"),
    (7, "Female", 52, "Engineer", 8.4, 9, 30, 3, "Normal", "115/75", 65, 5000, "None"),
    (8, "Male", 35, "Doctor", 7.7, 7, 90, 5, "Normal Weight", "130/85", 70, 8000, "Insomnia"),
]


def pytest_configure() -> None:
    # Ensure sleepviz is importable when running tests from repo root without installing.
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def sample_df() -> pd.DataFrame:
    return pd.DataFrame(SAMPLE_ROWS, columns=HEADER)


@pytest.fixture
def sample_records() -> list[dict]:
    return [dict(zip(HEADER, row)) for row in SAMPLE_ROWS]


@pytest.fixture
def sample_csv(tmp_path: Path) -> Path:
    """The sample rows written as a CSV file."""
    lines = [",".join(HEADER)]
    for row in SAMPLE_ROWS:
        lines.append(",".join(str(v) for v in row))
    path = tmp_path / "sleep.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def six_records() -> list[dict]:
    """Sleep Duration [6,7,8,6,7,8] with Quality of Sleep [5,6,7,5,6,7]."""
    durations = [6, 7, 8, 6, 7, 8]
    qualities = [5, 6, 7, 5, 6, 7]
    return [
        {"Sleep Duration": d, "Quality of Sleep": q, "Gender": "Male" if i % 2 else "Female"}
        for i, (d, q) in enumerate(zip(durations, qualities))
    ]
