"""Figure dispatch and click drill-down for the sleep dashboard.

DashboardController is UI-free: it turns a ChartState into a Plotly figure
dict and a Plotly click payload into a DrillDown. The NiceGUI layer in
sleepviz.dashboard.app only forwards events to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sleepviz.algorithms.aggregation import (
    GroupSummary,
    Record,
    bin_counts,
    correlation_matrix,
    equal_width_bins,
    fixed_edge_bins,
    group_summaries,
    linear_regression,
    summarize,
    to_number,
)
from sleepviz.algorithms.derived import (
    AGE,
    OCCUPATION,
    PROFILE_FIELDS,
    QUALITY_OF_SLEEP,
    SLEEP_DURATION,
    SLEEP_QUALITY_EDGES,
    SLEEP_QUALITY_LABELS,
    BMI_CATEGORY,
    DEMOGRAPHIC_FIELDS,
    binned_heatmap,
    blood_pressure_by_duration,
    category_distribution,
    disorder_profiles,
    group_key_for,
    occupational_risk,
    overall_risk,
    rounded_crosstab,
)
from sleepviz.dashboard.chart_state import ChartState, ChartType
from sleepviz.data.dataset import SleepDataset
from sleepviz.figures import charts
from sleepviz.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DrillDown:
    """Result of clicking a chart element.

    Attributes:
        description: Human-readable description of what was clicked.
        records: Records behind the clicked element.
        summary: Summary of the state's ycol over those records.
        next_state: Chart to switch to, if the click navigates (e.g. a
            correlation cell opens the scatter of that pair).
    """
    description: str
    records: list[Record]
    summary: Optional[GroupSummary] = None
    next_state: Optional[ChartState] = None


class DashboardController:
    """Builds figures and drill-downs from one dataset.

    Attributes:
        dataset: The loaded SleepDataset.
        state: The chart currently displayed.
    """

    def __init__(self, dataset: SleepDataset, state: Optional[ChartState] = None) -> None:
        self.dataset = dataset
        self.state = state if state is not None else ChartState()
        self._records: list[Record] = dataset.records()

    @property
    def records(self) -> list[Record]:
        return self._records

    def update_dataset(self, dataset: SleepDataset) -> None:
        """Replace the dataset wholesale."""
        self.dataset = dataset
        self._records = dataset.records()
        logger.info(f"Dataset replaced: {len(self._records)} records")

    # ----------------------------
    # Figures
    # ----------------------------

    def make_figure(self, state: Optional[ChartState] = None) -> dict:
        """Plotly figure dict for state (defaults to self.state)."""
        state = state or self.state
        logger.info(
            f"make_figure: chart_type={state.chart_type.value}, records={len(self._records)}, "
            f"xcol={state.xcol}, ycol={state.ycol}, grouping={state.grouping}"
        )
        records = self._records
        theme = state.theme

        if state.chart_type == ChartType.CORRELATION_MATRIX:
            fields = [f for f in state.correlation_fields if f in self.dataset.df.columns]
            matrix = correlation_matrix(records, fields)
            return charts.correlation_heatmap_figure(fields, matrix, theme=theme)

        if state.chart_type == ChartType.SCATTER:
            xs = [r.get(state.xcol) for r in records]
            ys = [r.get(state.ycol) for r in records]
            labels = [f"{r.get(OCCUPATION)} (Age: {r.get(AGE)})" for r in records]
            return charts.scatter_regression_figure(
                xs, ys, linear_regression(xs, ys),
                x_label=state.xcol, y_label=state.ycol, point_labels=labels, theme=theme,
            )

        if state.chart_type == ChartType.HISTOGRAM:
            values = self.dataset.column(state.xcol)
            counts = bin_counts(values, equal_width_bins(values, state.num_bins))
            return charts.histogram_figure(counts, x_label=state.xcol, theme=theme)

        if state.chart_type == ChartType.BINNED_HEATMAP:
            cells = binned_heatmap(records, state.xcol, state.ycol, state.num_bins)
            return charts.binned_heatmap_figure(cells, x_label=state.xcol, y_label=state.ycol, theme=theme)

        if state.chart_type == ChartType.DURATION_QUALITY_HEATMAP:
            crosstab = rounded_crosstab(records, SLEEP_DURATION, QUALITY_OF_SLEEP)
            return charts.crosstab_heatmap_figure(
                crosstab, x_label=SLEEP_DURATION, y_label=QUALITY_OF_SLEEP, theme=theme,
            )

        if state.chart_type == ChartType.DEMOGRAPHICS:
            summaries = group_summaries(records, group_key_for(state.grouping), state.ycol)
            return charts.group_box_figure(
                summaries, x_label=state.grouping.title(), y_label=state.ycol, theme=theme,
            )

        if state.chart_type == ChartType.BMI_PROFILE:
            shares = category_distribution(records, BMI_CATEGORY, QUALITY_OF_SLEEP)
            categories = list(dict.fromkeys(s.category for s in shares))
            series = {
                label: [s.percentage for s in shares if s.bin.label == label]
                for label in SLEEP_QUALITY_LABELS
            }
            return charts.grouped_bar_figure(
                categories, series, x_label=BMI_CATEGORY,
                y_label="Percentage of population", barmode="stack", theme=theme,
            )

        if state.chart_type == ChartType.BLOOD_PRESSURE:
            groups = blood_pressure_by_duration(records)
            durations = list(dict.fromkeys(g.duration_bin.label for g in groups))
            series: dict[str, list[float]] = {}
            for g in groups:
                series.setdefault(g.category, []).append(g.mean_systolic)
            return charts.grouped_bar_figure(
                durations, series, x_label=SLEEP_DURATION,
                y_label="Average systolic blood pressure", theme=theme,
            )

        if state.chart_type == ChartType.OCCUPATIONAL_RISK:
            risks = occupational_risk(records)
            summary = overall_risk(risks)
            title = (
                f"Overall risk: {summary.overall_risk_percentage:.1f}%, "
                f"high risk jobs: {summary.high_risk_count}, "
                f"highest risk: {summary.highest_risk_occupation or '-'}"
            )
            return charts.grouped_bar_figure(
                [r.occupation for r in risks],
                {"Sleep disorder risk (%)": [r.risk_percentage for r in risks]},
                x_label=OCCUPATION, y_label="Risk (%)", title=title, theme=theme,
            )

        if state.chart_type == ChartType.DISORDER_PROFILES:
            profiles = disorder_profiles(records)
            series = {f: [p.means[f] for p in profiles] for f in PROFILE_FIELDS}
            return charts.grouped_bar_figure(
                [p.disorder for p in profiles], series,
                x_label="Sleep Disorder", y_label="Mean", theme=theme,
            )

        raise ValueError(f"Unsupported chart type {state.chart_type!r}")

    # ----------------------------
    # Drill-down
    # ----------------------------

    def drill_down(self, click_args: Optional[dict[str, Any]], state: Optional[ChartState] = None) -> Optional[DrillDown]:
        """Map a plotly_click payload ({'points': [...]}) to the records behind it.

        Bins are resolved from the point's customdata bounds and categories
        from its x value, both through SleepDataset filters. Returns None (and
        logs a warning) when the payload has no usable point or the chart type
        has no drill-down.
        """
        state = state or self.state
        points = (click_args or {}).get("points") or []
        if not points:
            logger.warning("Plotly click event received but no points found")
            return None
        p0: dict[str, Any] = points[0]
        x = p0.get("x")
        y = p0.get("y")
        custom = p0.get("customdata")

        if state.chart_type == ChartType.CORRELATION_MATRIX:
            if x is None or y is None:
                return None
            next_state = ChartState(
                chart_type=ChartType.SCATTER,
                xcol=str(x),
                ycol=str(y),
                grouping=state.grouping,
                num_bins=state.num_bins,
                correlation_fields=list(state.correlation_fields),
                theme=state.theme,
            )
            return self._drill(f"{x} vs {y}", self._records, state, next_state=next_state)

        if state.chart_type == ChartType.HISTOGRAM:
            bounds = _bounds(custom, 0)
            if bounds is None:
                logger.warning(f"Could not extract bin bounds from plotly click: custom={custom}")
                return None
            subset = self._filter_bin(self.dataset, state.xcol, bounds)
            return self._drill(f"{state.xcol} in {_interval(bounds)}", subset.records(), state)

        if state.chart_type == ChartType.DEMOGRAPHICS:
            key_fn = group_key_for(state.grouping)
            field = DEMOGRAPHIC_FIELDS.get(state.grouping)
            if field is None:
                # age buckets are derived, not a column
                records = [r for r in self._records if key_fn(r) is not None and str(key_fn(r)) == str(x)]
                return self._drill(f"{state.grouping} = {x}", records, state)
            subset = self._filter_category(field, x)
            if subset is None:
                return None
            return self._drill(f"{state.grouping} = {x}", subset.records(), state)

        if state.chart_type == ChartType.OCCUPATIONAL_RISK:
            subset = self._filter_category(OCCUPATION, x)
            if subset is None:
                return None
            return self._drill(f"{OCCUPATION} = {x}", subset.records(), state)

        if state.chart_type == ChartType.BMI_PROFILE:
            subset = self._filter_category(BMI_CATEGORY, x)
            if subset is None:
                return None
            bins = fixed_edge_bins(SLEEP_QUALITY_EDGES, SLEEP_QUALITY_LABELS)
            curve = p0.get("curveNumber")
            if isinstance(curve, int) and 0 <= curve < len(bins):
                b = bins[curve]
                subset = self._filter_bin(subset, QUALITY_OF_SLEEP, (b.lower, b.upper, b.closed))
                return self._drill(f"{BMI_CATEGORY} = {x}, {b.label}", subset.records(), state)
            return self._drill(f"{BMI_CATEGORY} = {x}", subset.records(), state)

        if state.chart_type == ChartType.BINNED_HEATMAP:
            x_bounds = _bounds(custom, 1)
            y_bounds = _bounds(custom, 4)
            if x_bounds is None or y_bounds is None:
                logger.warning(f"Could not extract cell bounds from plotly click: custom={custom}")
                return None
            subset = self._filter_bin(self.dataset, state.xcol, x_bounds)
            subset = self._filter_bin(subset, state.ycol, y_bounds)
            description = f"{state.xcol} in {_interval(x_bounds)}, {state.ycol} in {_interval(y_bounds)}"
            return self._drill(description, subset.records(), state)

        logger.info(f"No drill-down for chart type {state.chart_type.value}")
        return None

    def _filter_category(self, field: str, value: Any) -> Optional[SleepDataset]:
        known = {str(v) for v in self.dataset.unique_values(field)}
        if str(value) not in known:
            logger.warning(f"Clicked {field} {value!r} not found in dataset")
            return None
        return self.dataset.filter(field, value)

    @staticmethod
    def _filter_bin(dataset: SleepDataset, field: str, bounds: tuple[float, float, bool]) -> SleepDataset:
        lower, upper, closed = bounds
        return dataset.filter_range(field, lower, upper, inclusive_upper=closed)

    def _drill(
        self,
        description: str,
        subset: list[Record],
        state: ChartState,
        *,
        next_state: Optional[ChartState] = None,
    ) -> DrillDown:
        summary = summarize(description, [r.get(state.ycol) for r in subset])
        logger.info(f"Drill-down: {description} -> {len(subset)} records")
        return DrillDown(description=description, records=subset, summary=summary, next_state=next_state)


def _bounds(custom: Any, start: int) -> Optional[tuple[float, float, bool]]:
    """(lower, upper, closed) from customdata[start:start + 3], or None."""
    if not isinstance(custom, (list, tuple)) or len(custom) < start + 3:
        return None
    lower = to_number(custom[start])
    upper = to_number(custom[start + 1])
    if lower is None or upper is None:
        return None
    return lower, upper, bool(custom[start + 2])


def _interval(bounds: tuple[float, float, bool]) -> str:
    lower, upper, closed = bounds
    return f"[{lower:g}, {upper:g}{']' if closed else ')'}"
