"""Tests for the Plotly figure builders.

Builders return fig.to_dict(); numeric arrays may come back as plotly binary
(bdata/dtype) blocks, so they are decoded before comparison.
"""

from __future__ import annotations

import base64
from typing import Any

import numpy as np
import pytest

from sleepviz.algorithms.aggregation import (
    RegressionResult,
    bin_counts,
    equal_width_bins,
    group_summaries,
    linear_regression,
)
from sleepviz.algorithms.derived import binned_heatmap, rounded_crosstab
from sleepviz.figures import charts
from sleepviz.figures.theme import ThemeMode, get_theme_colors, resolve_theme


def _decode_plotly_array(obj: Any) -> np.ndarray:
    """Decode plotly binary serialization (dtype + bdata) if present."""
    if isinstance(obj, dict) and "bdata" in obj and "dtype" in obj:
        b = base64.b64decode(obj["bdata"])
        dtype = np.dtype(obj["dtype"])
        arr = np.frombuffer(b, dtype=dtype).copy()
        if "shape" in obj:
            shape = obj["shape"]
            if isinstance(shape, str):
                shape = [int(s) for s in shape.split(",")]
            arr = arr.reshape(shape)
        return arr
    if isinstance(obj, list) and obj and isinstance(obj[0], dict):
        return np.asarray([_decode_plotly_array(o) for o in obj])
    return np.asarray(obj)


# --- theme ---


@pytest.mark.parametrize("theme, expected", [
    (None, ThemeMode.LIGHT),
    ("dark", ThemeMode.DARK),
    ("plotly_dark", ThemeMode.DARK),
    ("DARK", ThemeMode.DARK),
    ("sepia", ThemeMode.LIGHT),
    (ThemeMode.DARK, ThemeMode.DARK),
])
def test_resolve_theme(theme, expected):
    assert resolve_theme(theme) is expected


def test_dark_theme_colors_applied():
    fig = charts.histogram_figure([], theme="dark")
    bg, fg = get_theme_colors(ThemeMode.DARK)
    assert fig["layout"]["paper_bgcolor"] == bg
    assert fig["layout"]["font"]["color"] == fg


# --- correlation matrix ---


def test_correlation_heatmap_figure():
    fig = charts.correlation_heatmap_figure(["A", "B"], [[1.0, 0.5], [0.5, 1.0]])
    assert isinstance(fig, dict)
    (trace,) = fig["data"]
    assert trace["type"] == "heatmap"
    assert trace["zmin"] == -1 and trace["zmax"] == 1
    assert list(trace["x"]) == ["A", "B"]
    z = _decode_plotly_array(trace["z"])
    assert z.shape == (2, 2)
    assert z[0][1] == pytest.approx(0.5)
    assert trace["customdata"][0][1] == "Moderate positive correlation"
    assert fig["layout"]["yaxis"]["autorange"] == "reversed"


def test_correlation_heatmap_empty():
    fig = charts.correlation_heatmap_figure([], [])
    assert fig["data"] == [] or len(fig["data"]) == 0
    assert "layout" in fig


# --- scatter ---


def test_scatter_regression_figure_drops_missing_pairs():
    xs = [1, 2, None, 4]
    ys = [2, 4, 6, 8]
    fig = charts.scatter_regression_figure(
        xs, ys, linear_regression(xs, ys),
        x_label="Sleep Duration", y_label="Quality of Sleep",
        point_labels=["a", "b", "c", "d"],
    )
    points, line = fig["data"]
    assert points["mode"] == "markers"
    assert _decode_plotly_array(points["x"]).tolist() == [1.0, 2.0, 4.0]
    assert list(points["text"]) == ["a", "b", "d"]
    assert line["mode"] == "lines"
    assert _decode_plotly_array(line["x"]).tolist() == [1.0, 4.0]
    assert _decode_plotly_array(line["y"]).tolist() == pytest.approx([2.0, 8.0])
    assert line["line"]["dash"] == "dash"
    assert fig["layout"]["xaxis"]["title"]["text"] == "Sleep Duration"


def test_scatter_without_regression():
    fig = charts.scatter_regression_figure([1, 2], [3, 4], None)
    assert len(fig["data"]) == 1
    assert fig["layout"]["showlegend"] is False


def test_scatter_empty_input():
    fig = charts.scatter_regression_figure([], [], RegressionResult(0.0, 0.0, 0.0))
    assert len(fig["data"]) == 0


# --- histogram ---


def test_histogram_figure():
    values = [4, 5, 6, 7, 8, 9, 10]
    counts = bin_counts(values, equal_width_bins(values, 4))
    fig = charts.histogram_figure(counts, x_label="Sleep Duration")
    (trace,) = fig["data"]
    assert trace["type"] == "bar"
    assert _decode_plotly_array(trace["x"]).tolist() == [0, 1, 2, 3]
    assert list(fig["layout"]["xaxis"]["ticktext"]) == ["4.0-5.5", "5.5-7.0", "7.0-8.5", "8.5-10.0"]
    assert _decode_plotly_array(trace["y"]).tolist() == [2, 1, 2, 2]
    customdata = _decode_plotly_array(trace["customdata"])
    assert customdata[0].tolist() == [4.0, 5.5, 0]
    assert customdata[-1].tolist() == [8.5, 10.0, 1]


def test_histogram_repeated_labels_keep_separate_bars():
    counts = bin_counts([7, 7, 7], equal_width_bins([7, 7, 7], 3))
    fig = charts.histogram_figure(counts)
    (trace,) = fig["data"]
    assert len(set(fig["layout"]["xaxis"]["ticktext"])) == 1
    assert _decode_plotly_array(trace["x"]).tolist() == [0, 1, 2]
    assert _decode_plotly_array(trace["y"]).tolist() == [3, 0, 0]


# --- group summaries and bars ---


def test_group_box_figure(six_records):
    summaries = group_summaries(six_records, "Gender", "Quality of Sleep")
    fig = charts.group_box_figure(summaries, x_label="Gender", y_label="Quality of Sleep")
    (trace,) = fig["data"]
    assert trace["type"] == "box"
    assert list(trace["x"]) == ["Female", "Male"]
    assert _decode_plotly_array(trace["median"]).tolist() == pytest.approx([6.0, 6.0])
    assert _decode_plotly_array(trace["lowerfence"]).tolist() == pytest.approx([5.0, 5.0])
    assert _decode_plotly_array(trace["upperfence"]).tolist() == pytest.approx([7.0, 7.0])


def test_grouped_bar_figure_stacked():
    fig = charts.grouped_bar_figure(
        ["Normal", "Obese"],
        {"Fair": [0.0, 50.0], "Good": [50.0, 50.0]},
        barmode="stack",
    )
    assert [t["name"] for t in fig["data"]] == ["Fair", "Good"]
    assert fig["layout"]["barmode"] == "stack"
    assert _decode_plotly_array(fig["data"][0]["y"]).tolist() == [0.0, 50.0]


def test_grouped_bar_figure_empty_series():
    fig = charts.grouped_bar_figure([], {})
    assert len(fig["data"]) == 0


# --- heatmaps over bins ---


def test_binned_heatmap_figure(six_records):
    cells = binned_heatmap(six_records, "Sleep Duration", "Quality of Sleep", num_bins=2)
    fig = charts.binned_heatmap_figure(cells, x_label="Sleep Duration", y_label="Quality of Sleep")
    (trace,) = fig["data"]
    assert list(fig["layout"]["xaxis"]["ticktext"]) == ["6.0-7.0", "7.0-8.0"]
    assert list(fig["layout"]["yaxis"]["ticktext"]) == ["5.0-6.0", "6.0-7.0"]
    z = _decode_plotly_array(trace["z"])
    assert z.tolist() == [[2, 0], [0, 4]]
    # customdata: [correlation, x_lower, x_upper, x_closed, y_lower, y_upper, y_closed]
    customdata = _decode_plotly_array(trace["customdata"])
    assert customdata[1][1][0] == pytest.approx(1.0)
    assert customdata[0][0][1:].tolist() == [6.0, 7.0, 0, 5.0, 6.0, 0]
    assert customdata[1][1][1:].tolist() == [7.0, 8.0, 1, 6.0, 7.0, 1]


def test_binned_heatmap_figure_constant_field_keeps_counts():
    records = [{"x": 7, "y": q} for q in range(4, 10)]
    cells = binned_heatmap(records, "x", "y", 6)
    fig = charts.binned_heatmap_figure(cells)
    (trace,) = fig["data"]
    z = _decode_plotly_array(trace["z"])
    assert z.shape == (6, 6)
    assert int(z.sum()) == sum(c.count for c in cells) == 6
    # every record lands in the first (collapsed) x bin
    assert z[:, 0].tolist() == [1, 1, 1, 1, 1, 1]


def test_crosstab_heatmap_figure(sample_records):
    fig = charts.crosstab_heatmap_figure(rounded_crosstab(sample_records))
    (trace,) = fig["data"]
    assert list(trace["x"]) == [str(v) for v in range(4, 11)]
    z = _decode_plotly_array(trace["z"])
    assert z.shape == (7, 7)
    assert int(z.sum()) == 8
    # row = quality 6, column = duration 6
    assert z[2][2] == 4
