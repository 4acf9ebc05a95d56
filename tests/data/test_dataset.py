"""Tests for SleepDataset and load_dataset."""

from __future__ import annotations

import logging
import math

import pandas as pd
import pytest

from sleepviz.data.dataset import (
    CORRELATION_FIELDS,
    SleepDataset,
    coerce_columns,
    load_dataset,
)


def test_load_dataset_keeps_none_disorder(sample_csv):
    ds = load_dataset(sample_csv)
    assert len(ds) == 8
    assert ds.source == str(sample_csv)
    assert ds.unique_values("Sleep Disorder") == ["None", "Sleep Apnea", "Insomnia"]


def test_load_dataset_numeric_columns(sample_csv):
    ds = load_dataset(sample_csv)
    numeric = ds.numeric_fields()
    for f in CORRELATION_FIELDS:
        assert f in numeric
    assert "Age" in numeric
    assert "Gender" not in numeric
    assert "Blood Pressure" in ds.categorical_fields()


def test_load_dataset_required_columns(sample_csv):
    with pytest.raises(ValueError):
        load_dataset(sample_csv, required_columns=["Sleep Duration", "Bedtime"])


def test_load_dataset_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path / "nope.csv")


def test_load_dataset_coerces_bad_numbers(tmp_path, caplog):
    path = tmp_path / "bad.csv"
    path.write_text(
        "Person ID,Sleep Duration,Quality of Sleep\n"
        "1,6.5,7\n"
        "2,n/a,8\n"
        "3,,6\n",
        encoding="utf-8",
    )
    caplog.set_level(logging.WARNING, logger="sleepviz")
    ds = load_dataset(path)
    assert math.isnan(ds.df["Sleep Duration"][1])
    assert math.isnan(ds.df["Sleep Duration"][2])
    assert "coerced to NaN" in caplog.text


def test_records_turn_nan_into_none():
    df = pd.DataFrame({"Sleep Duration": [6.5, float("nan")], "Gender": ["Male", None]})
    records = SleepDataset(df).records()
    assert records[0] == {"Sleep Duration": 6.5, "Gender": "Male"}
    assert records[1]["Sleep Duration"] is None
    assert records[1]["Gender"] is None


def test_column_and_unknown_field(sample_df):
    ds = SleepDataset(sample_df)
    assert ds.column("Age")[:3] == [27, 28, 28]
    with pytest.raises(ValueError):
        ds.column("Bedtime")


def test_required_columns_on_construction(sample_df):
    with pytest.raises(ValueError, match="Bedtime"):
        SleepDataset(sample_df, required_columns=["Bedtime"])


def test_filter_compares_as_strings(sample_df):
    ds = SleepDataset(sample_df)
    doctors = ds.filter("Occupation", "Doctor")
    assert len(doctors) == 3
    assert list(doctors.df.index) == [0, 1, 2]
    assert len(ds.filter("Age", "28")) == 3
    assert len(ds) == 8


def test_filter_range(sample_df):
    ds = SleepDataset(sample_df)
    assert len(ds.filter_range("Sleep Duration", 6.0, 6.3)) == 3
    assert len(ds.filter_range("Sleep Duration", 6.0, 6.3, inclusive_upper=True)) == 4
    with pytest.raises(ValueError):
        ds.filter_range("Bedtime", 0, 1)


def test_coerce_columns_strips_categoricals():
    df = pd.DataFrame({"Gender": [" Male ", "Female"], "Age": ["27", "x"]})
    out = coerce_columns(df)
    assert out["Gender"].tolist() == ["Male", "Female"]
    assert out["Age"][0] == 27
    assert math.isnan(out["Age"][1])
    # input untouched
    assert df["Gender"][0] == " Male "


def test_unique_values_unknown_field(sample_df):
    with pytest.raises(ValueError):
        SleepDataset(sample_df).unique_values("Bedtime")


def test_load_dataset_logs_field_kinds(sample_csv, caplog):
    caplog.set_level(logging.INFO, logger="sleepviz")
    load_dataset(sample_csv)
    assert "Loaded 8 rows" in caplog.text
    assert "categorical=" in caplog.text
