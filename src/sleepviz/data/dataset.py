"""Dataset loading for the sleep health dashboard.

This module provides load_dataset() and the SleepDataset class, which wrap the
survey CSV in a pandas DataFrame and hand records to the aggregation engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from sleepviz.algorithms.derived import (
    AGE,
    BLOOD_PRESSURE,
    BMI_CATEGORY,
    DAILY_STEPS,
    GENDER,
    HEART_RATE,
    OCCUPATION,
    PHYSICAL_ACTIVITY,
    QUALITY_OF_SLEEP,
    SLEEP_DISORDER,
    SLEEP_DURATION,
    STRESS_LEVEL,
)
from sleepviz.utils.logging import get_logger

logger = get_logger(__name__)

PERSON_ID = "Person ID"

# Columns coerced to numbers on load (unparsable text becomes NaN).
NUMERIC_COLUMNS = [
    PERSON_ID,
    AGE,
    SLEEP_DURATION,
    QUALITY_OF_SLEEP,
    PHYSICAL_ACTIVITY,
    STRESS_LEVEL,
    HEART_RATE,
    DAILY_STEPS,
]

# Columns left as strings.
CATEGORICAL_COLUMNS = [
    GENDER,
    OCCUPATION,
    BMI_CATEGORY,
    BLOOD_PRESSURE,
    SLEEP_DISORDER,
]

# Fields offered in the correlation matrix by default.
CORRELATION_FIELDS = [
    SLEEP_DURATION,
    QUALITY_OF_SLEEP,
    PHYSICAL_ACTIVITY,
    STRESS_LEVEL,
    HEART_RATE,
    DAILY_STEPS,
]

_NUMERIC_KINDS = {"i", "u", "f"}  # int, unsigned, float (pandas dtype.kind)


class SleepDataset:
    """Survey records held as a DataFrame.

    The DataFrame is never modified after construction; filter() returns a
    new SleepDataset.

    Attributes:
        df: The source DataFrame.
        source: Where the data came from (file path or None).
    """

    def __init__(
        self,
        df: pd.DataFrame,
        *,
        required_columns: Optional[list[str]] = None,
        source: Optional[str] = None,
    ) -> None:
        """Initialize SleepDataset.

        Args:
            df: DataFrame of survey rows.
            required_columns: Columns that must be present. Defaults to none.
            source: Optional description of the data origin, for logging.

        Raises:
            ValueError: If any required column is missing.
        """
        missing = [c for c in (required_columns or []) if c not in df.columns]
        if missing:
            raise ValueError(f"dataset is missing required columns {missing!r}")
        self.df = df
        self.source = source

    def __len__(self) -> int:
        return len(self.df)

    def records(self) -> list[dict[str, Any]]:
        """Rows as dicts; NaN cells become None so the engine treats them as missing."""
        df = self.df.astype(object).where(self.df.notna(), None)
        return df.to_dict(orient="records")

    def column(self, field: str) -> list[Any]:
        """Values of one column in row order.

        Raises:
            ValueError: If field is not a column.
        """
        if field not in self.df.columns:
            raise ValueError(f"Unknown field {field!r}")
        return self.df[field].tolist()

    def numeric_fields(self) -> list[str]:
        """Column names with a numeric dtype."""
        return [str(c) for c in self.df.columns if getattr(self.df[c].dtype, "kind", None) in _NUMERIC_KINDS]

    def categorical_fields(self) -> list[str]:
        """Column names with object, category or bool dtype."""
        out = []
        for c in self.df.columns:
            s = self.df[c]
            if getattr(s.dtype, "kind", None) in {"O", "b"} or str(s.dtype) == "category":
                out.append(str(c))
        return out

    def unique_values(self, field: str) -> list[Any]:
        """Distinct non-missing values of a column in first-appearance order."""
        if field not in self.df.columns:
            raise ValueError(f"Unknown field {field!r}")
        return list(pd.unique(self.df[field].dropna()))

    def filter(self, field: str, value: Any) -> "SleepDataset":
        """Rows where field equals value (compared as strings so UI selections match numbers)."""
        if field not in self.df.columns:
            raise ValueError(f"Unknown field {field!r}")
        df_f = self.df[self.df[field].astype(str) == str(value)]
        return SleepDataset(df_f.reset_index(drop=True), source=self.source)

    def filter_range(self, field: str, lower: float, upper: float, *, inclusive_upper: bool = False) -> "SleepDataset":
        """Rows where lower <= field < upper (or <= upper when inclusive_upper)."""
        if field not in self.df.columns:
            raise ValueError(f"Unknown field {field!r}")
        s = pd.to_numeric(self.df[field], errors="coerce")
        mask = (s >= lower) & ((s <= upper) if inclusive_upper else (s < upper))
        return SleepDataset(self.df[mask].reset_index(drop=True), source=self.source)


def coerce_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of df with known numeric columns coerced and categoricals stripped."""
    df = df.copy()
    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    for col in CATEGORICAL_COLUMNS:
        if col in df.columns:
            df[col] = df[col].where(df[col].isna(), df[col].astype(str).str.strip())
    return df


def load_dataset(
    path: Union[str, Path],
    *,
    required_columns: Optional[list[str]] = None,
) -> SleepDataset:
    """Load the survey CSV.

    Args:
        path: CSV file path.
        required_columns: Columns that must be present after loading.

    Returns:
        SleepDataset with numeric columns coerced.

    Raises:
        FileNotFoundError: If path does not exist.
        ValueError: If a required column is missing.
    """
    path = Path(path)
    # Keep "None" (no sleep disorder) as a real category rather than NaN.
    df = pd.read_csv(path, keep_default_na=False, na_values=[""])
    df = coerce_columns(df)
    n_bad = {c: int(df[c].isna().sum()) for c in NUMERIC_COLUMNS if c in df.columns and df[c].isna().any()}
    if n_bad:
        logger.warning(f"Non-numeric values coerced to NaN in {path.name}: {n_bad}")
    dataset = SleepDataset(df, required_columns=required_columns, source=str(path))
    logger.info(
        f"Loaded {len(df)} rows from {path}: numeric={dataset.numeric_fields()}, "
        f"categorical={dataset.categorical_fields()}"
    )
    return dataset
