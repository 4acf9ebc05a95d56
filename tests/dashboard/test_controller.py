"""Smoke and drill-down tests for DashboardController.

Every chart type must build a figure dict without errors; clicks on bins,
groups and cells must select the records behind them.
"""

import pytest

from sleepviz.dashboard.chart_state import ChartState, ChartType
from sleepviz.dashboard.controller import DashboardController, DrillDown
from sleepviz.data.dataset import SleepDataset


@pytest.fixture
def controller(sample_df):
    return DashboardController(SleepDataset(sample_df))


def _click(x=None, y=None, **extra):
    point = {"x": x, "y": y}
    point.update(extra)
    return {"points": [point]}


# ----------------------------
# Figures
# ----------------------------


@pytest.mark.parametrize("chart_type", list(ChartType))
def test_make_figure_all_chart_types(controller, chart_type):
    fig = controller.make_figure(ChartState(chart_type=chart_type))
    assert isinstance(fig, dict)
    assert "data" in fig and "layout" in fig
    assert len(fig["data"]) >= 1


def test_make_figure_uses_controller_state(controller):
    controller.state = ChartState(chart_type=ChartType.HISTOGRAM, num_bins=3)
    fig = controller.make_figure()
    assert list(fig["layout"]["xaxis"]["ticktext"]) == ["5.0-6.3", "6.3-7.7", "7.7-9.0"]


def test_correlation_matrix_skips_unknown_fields(controller):
    state = ChartState(correlation_fields=["Sleep Duration", "Bedtime", "Stress Level"])
    fig = controller.make_figure(state)
    assert list(fig["data"][0]["x"]) == ["Sleep Duration", "Stress Level"]


def test_scatter_hover_labels(controller):
    fig = controller.make_figure(ChartState(chart_type=ChartType.SCATTER))
    assert list(fig["data"][0]["text"])[0] == "Software Engineer (Age: 27)"


def test_bmi_profile_series(controller):
    fig = controller.make_figure(ChartState(chart_type=ChartType.BMI_PROFILE))
    assert len(fig["data"]) == 4
    assert list(fig["data"][0]["x"]) == ["Overweight", "Normal", "Obese", "Normal Weight"]
    assert fig["layout"]["barmode"] == "stack"


def test_occupational_risk_order(controller):
    fig = controller.make_figure(ChartState(chart_type=ChartType.OCCUPATIONAL_RISK))
    assert list(fig["data"][0]["x"])[:3] == ["Sales Representative", "Teacher", "Doctor"]
    title = fig["layout"]["title"]["text"]
    assert "Overall risk: 37.5%" in title
    assert "high risk jobs: 2" in title
    assert "highest risk: Sales Representative" in title


def test_empty_dataset_still_builds(sample_df):
    ctl = DashboardController(SleepDataset(sample_df.iloc[0:0]))
    for chart_type in ChartType:
        assert isinstance(ctl.make_figure(ChartState(chart_type=chart_type)), dict)


def test_update_dataset(controller, sample_df):
    controller.update_dataset(SleepDataset(sample_df.head(2)))
    assert len(controller.records) == 2


# ----------------------------
# Drill-down
# ----------------------------


def test_drill_down_without_points(controller):
    assert controller.drill_down({"points": []}) is None
    assert controller.drill_down(None) is None


def test_correlation_cell_opens_scatter(controller):
    drill = controller.drill_down(_click("Sleep Duration", "Stress Level"))
    assert isinstance(drill, DrillDown)
    assert len(drill.records) == 8
    assert drill.next_state is not None
    assert drill.next_state.chart_type == ChartType.SCATTER
    assert (drill.next_state.xcol, drill.next_state.ycol) == ("Sleep Duration", "Stress Level")


def _bar_click(controller, state, index):
    """Click payload for bar `index` of the figure built for state."""
    trace = controller.make_figure(state)["data"][0]
    return {"points": [{"x": index, "customdata": list(trace["customdata"][index])}]}


def test_histogram_bin_drill_down(controller):
    state = ChartState(chart_type=ChartType.HISTOGRAM, num_bins=3)
    drill = controller.drill_down(_bar_click(controller, state, 0), state)
    assert len(drill.records) == 5
    assert drill.summary.count == 5
    assert drill.summary.mean == pytest.approx(5.6)
    assert drill.next_state is None


def test_histogram_last_bin_includes_maximum(controller):
    state = ChartState(chart_type=ChartType.HISTOGRAM, num_bins=3)
    drill = controller.drill_down(_bar_click(controller, state, 2), state)
    assert len(drill.records) == 3
    assert max(r["Sleep Duration"] for r in drill.records) == 8.4


def test_histogram_collapsed_bins_drill_down(sample_df):
    df = sample_df.assign(**{"Stress Level": 5})
    ctl = DashboardController(SleepDataset(df))
    state = ChartState(chart_type=ChartType.HISTOGRAM, xcol="Stress Level", num_bins=4)
    drill = ctl.drill_down(_bar_click(ctl, state, 0), state)
    assert len(drill.records) == 8


def test_histogram_click_without_bounds(controller):
    state = ChartState(chart_type=ChartType.HISTOGRAM, num_bins=3)
    assert controller.drill_down(_click(0, 5), state) is None


def test_demographic_group_drill_down(controller):
    state = ChartState(chart_type=ChartType.DEMOGRAPHICS, grouping="age")
    drill = controller.drill_down(_click("20-29", 6), state)
    assert len(drill.records) == 5
    assert all(r["Age"] < 30 for r in drill.records)


def test_gender_group_drill_down(controller):
    state = ChartState(chart_type=ChartType.DEMOGRAPHICS, grouping="gender")
    drill = controller.drill_down(_click("Female", 8), state)
    assert len(drill.records) == 3
    assert {r["Gender"] for r in drill.records} == {"Female"}


def test_occupation_drill_down(controller):
    state = ChartState(chart_type=ChartType.OCCUPATIONAL_RISK)
    drill = controller.drill_down(_click("Doctor", 33.3), state)
    assert len(drill.records) == 3
    assert controller.drill_down(_click("Pilot", 0), state) is None


def test_bmi_drill_down_by_quality_bin(controller):
    state = ChartState(chart_type=ChartType.BMI_PROFILE)
    drill = controller.drill_down(_click("Normal", 50.0, curveNumber=2), state)
    assert len(drill.records) == 2
    assert "Good (6-8)" in drill.description

    drill = controller.drill_down(_click("Normal", 50.0), state)
    assert len(drill.records) == 4

    # quality 9 sits in the closed last bin
    drill = controller.drill_down(_click("Normal", 50.0, curveNumber=3), state)
    assert [r["Quality of Sleep"] for r in drill.records] == [8, 9]


def test_binned_heatmap_cell_drill_down(controller):
    state = ChartState(chart_type=ChartType.BINNED_HEATMAP, num_bins=2)
    trace = controller.make_figure(state)["data"][0]
    customdata = trace["customdata"][0][0]
    drill = controller.drill_down({"points": [{"x": 0, "y": 0, "customdata": list(customdata)}]}, state)
    assert len(drill.records) == 5
    assert drill.records[0]["Person ID"] == 1


def test_binned_heatmap_click_without_bounds(controller):
    state = ChartState(chart_type=ChartType.BINNED_HEATMAP, num_bins=2)
    assert controller.drill_down(_click(0, 0), state) is None


def test_no_drill_down_for_scatter(controller):
    state = ChartState(chart_type=ChartType.SCATTER)
    assert controller.drill_down(_click(6.1, 6), state) is None
