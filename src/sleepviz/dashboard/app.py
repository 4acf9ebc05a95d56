"""NiceGUI dashboard for the sleep health dataset.

Chart selection, field / grouping selectors and a single ui.plotly element.
Clicking a bin, group or correlation cell shows a drill-down summary; a
correlation cell also switches to the scatter of that pair.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from nicegui import ui
from nicegui.events import GenericEventArguments

from sleepviz.algorithms.derived import DEMOGRAPHIC_GROUPINGS
from sleepviz.config import DashboardConfig
from sleepviz.dashboard.chart_state import ChartState, ChartType
from sleepviz.dashboard.controller import DashboardController, DrillDown
from sleepviz.data.dataset import load_dataset
from sleepviz.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

CHART_LABELS = {
    ChartType.CORRELATION_MATRIX: "Correlation matrix",
    ChartType.SCATTER: "Scatter + regression",
    ChartType.HISTOGRAM: "Histogram",
    ChartType.BINNED_HEATMAP: "Binned heatmap",
    ChartType.DURATION_QUALITY_HEATMAP: "Duration vs quality",
    ChartType.DEMOGRAPHICS: "Sleep quality by demographic",
    ChartType.BMI_PROFILE: "BMI sleep profile",
    ChartType.BLOOD_PRESSURE: "Blood pressure by sleep duration",
    ChartType.OCCUPATIONAL_RISK: "Occupational risk",
    ChartType.DISORDER_PROFILES: "Sleep disorder profiles",
}


def format_drill_down(drill: DrillDown, value_field: str) -> str:
    """One-line text for the drill-down label."""
    s = drill.summary
    if s is None or s.count == 0:
        return f"{drill.description}: {len(drill.records)} records"
    return (
        f"{drill.description}: {len(drill.records)} records, {value_field} "
        f"mean={s.mean:.2f} median={s.median:.2f} IQR=[{s.q1:.2f}, {s.q3:.2f}] "
        f"range=[{s.min:.2f}, {s.max:.2f}]"
    )


class DashboardApp:
    """NiceGUI front end over a DashboardController."""

    def __init__(self, controller: DashboardController) -> None:
        self.controller = controller
        self._plot: Optional[ui.plotly] = None
        self._drill_label: Optional[ui.label] = None
        self._type_select: Optional[ui.select] = None
        self._x_select: Optional[ui.select] = None
        self._y_select: Optional[ui.select] = None
        self._grouping_select: Optional[ui.select] = None
        self._bins_input: Optional[ui.number] = None

    def build(self) -> None:
        state = self.controller.state
        numeric = self.controller.dataset.numeric_fields()
        with ui.row().classes("w-full h-full no-wrap gap-4 p-4"):
            with ui.column().classes("w-72 gap-2"):
                self._type_select = ui.select(
                    options={t.value: label for t, label in CHART_LABELS.items()},
                    value=state.chart_type.value,
                    label="Chart",
                    on_change=self._on_any_change,
                ).classes("w-full")
                self._x_select = ui.select(
                    options=numeric, value=state.xcol, label="X / binned field",
                    on_change=self._on_any_change,
                ).classes("w-full")
                self._y_select = ui.select(
                    options=numeric, value=state.ycol, label="Y / summarized field",
                    on_change=self._on_any_change,
                ).classes("w-full")
                self._grouping_select = ui.select(
                    options=list(DEMOGRAPHIC_GROUPINGS), value=state.grouping, label="Group by",
                    on_change=self._on_any_change,
                ).classes("w-full")
                self._bins_input = ui.number(
                    label="Bins", value=state.num_bins, min=1, max=50, step=1,
                    on_change=self._on_any_change,
                ).classes("w-full")
            with ui.column().classes("flex-1 h-full min-h-0"):
                self._plot = ui.plotly(self.controller.make_figure()).classes("w-full h-[600px]")
                self._plot.on("plotly_click", self._on_plotly_click)
                self._drill_label = ui.label("Click a bar, box or cell to drill down").classes(
                    "text-sm text-gray-600"
                )

    def _widgets_to_state(self) -> ChartState:
        state = self.controller.state
        bins = self._bins_input.value if self._bins_input else state.num_bins
        return ChartState(
            chart_type=ChartType(self._type_select.value) if self._type_select else state.chart_type,
            xcol=self._x_select.value if self._x_select else state.xcol,
            ycol=self._y_select.value if self._y_select else state.ycol,
            grouping=self._grouping_select.value if self._grouping_select else state.grouping,
            num_bins=max(1, int(bins or 1)),
            correlation_fields=list(state.correlation_fields),
            theme=state.theme,
        )

    def _state_to_widgets(self, state: ChartState) -> None:
        if self._type_select:
            self._type_select.value = state.chart_type.value
        if self._x_select:
            self._x_select.value = state.xcol
        if self._y_select:
            self._y_select.value = state.ycol

    def _on_any_change(self, _e=None) -> None:
        self.controller.state = self._widgets_to_state()
        self._replot()

    def _replot(self) -> None:
        if self._plot is None:
            return
        self._plot.update_figure(self.controller.make_figure())

    def _on_plotly_click(self, e: GenericEventArguments) -> None:
        drill = self.controller.drill_down(e.args)
        if drill is None:
            return
        if self._drill_label:
            self._drill_label.text = format_drill_down(drill, self.controller.state.ycol)
        if drill.next_state is not None:
            self.controller.state = drill.next_state
            # widget on_change handlers re-read the state; replot once afterwards
            self._state_to_widgets(drill.next_state)
            self._replot()


def main(config_path: Optional[Path] = None) -> None:
    """Load config and data, then run the dashboard."""
    configure_logging()
    config = DashboardConfig.load(config_path=config_path)
    data_path = config.resolve_data_path()
    dataset = load_dataset(data_path)

    state = ChartState(
        num_bins=config.data.num_bins,
        grouping=config.data.default_grouping,
        correlation_fields=list(config.data.correlation_fields),
        theme=config.data.theme,
    )
    controller = DashboardController(dataset, state)

    ui.page_title("Sleep Health Dashboard")
    DashboardApp(controller).build()
    ui.run(reload=False, dark=config.data.theme == "dark")


if __name__ in {"__main__", "__mp_main__"}:
    main()
