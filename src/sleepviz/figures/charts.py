"""Plotly figure builders for the sleep dashboard.

Every builder takes engine output (see sleepviz.algorithms) and returns a
Plotly figure dict (never go.Figure) for ui.plotly / update_figure. Empty
input yields an empty but valid figure.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import plotly.graph_objects as go

from sleepviz.algorithms.aggregation import (
    BinCount,
    GroupSummary,
    RegressionResult,
    describe_correlation,
    paired_values,
    to_number,
)
from sleepviz.algorithms.derived import HeatmapCell
from sleepviz.figures.theme import (
    ThemeMode,
    get_grid_color,
    get_theme_colors,
    get_theme_template,
    resolve_theme,
)

ThemeArg = Optional[Union[str, ThemeMode]]

REGRESSION_LINE_COLOR = "#e74c3c"


def _layout(fig: go.Figure, theme: ThemeArg, **layout: Any) -> dict:
    """Apply theme colors plus layout overrides and return the figure dict."""
    theme_mode = resolve_theme(theme)
    bg_color, fg_color = get_theme_colors(theme_mode)
    grid_color = get_grid_color(theme_mode)
    xaxis = dict(color=fg_color, gridcolor=grid_color)
    xaxis.update(layout.pop("xaxis", {}))
    yaxis = dict(color=fg_color, gridcolor=grid_color)
    yaxis.update(layout.pop("yaxis", {}))
    fig.update_layout(
        template=get_theme_template(theme_mode),
        paper_bgcolor=bg_color,
        plot_bgcolor=bg_color,
        font=dict(color=fg_color),
        xaxis=xaxis,
        yaxis=yaxis,
        margin=dict(l=60, r=20, t=40, b=60),
    )
    fig.update_layout(**layout)
    return fig.to_dict()


# -----------------------------------------------------------------------------
# Correlation matrix
# -----------------------------------------------------------------------------


def correlation_heatmap_figure(
    fields: Sequence[str],
    matrix: Sequence[Sequence[float]],
    *,
    theme: ThemeArg = None,
) -> dict:
    """Heatmap of a correlation matrix on a fixed [-1, 1] red-blue scale.

    Hover shows both field names, r to 3 decimals and its strength description.
    """
    fig = go.Figure()
    if fields:
        z = [list(row) for row in matrix]
        text = [[f"{r:.2f}" for r in row] for row in z]
        customdata = [[describe_correlation(r) for r in row] for row in z]
        fig.add_trace(go.Heatmap(
            z=z,
            x=list(fields),
            y=list(fields),
            zmin=-1,
            zmax=1,
            colorscale="RdBu",
            text=text,
            texttemplate="%{text}",
            customdata=customdata,
            hovertemplate="<b>%{x}</b><br>vs %{y}<br>Correlation: %{z:.3f}<br>%{customdata}<extra></extra>",
        ))
    return _layout(fig, theme, title="Correlation matrix", yaxis=dict(autorange="reversed"))


# -----------------------------------------------------------------------------
# Scatter with regression line
# -----------------------------------------------------------------------------


def scatter_regression_figure(
    xs: Sequence[Any],
    ys: Sequence[Any],
    regression: Optional[RegressionResult],
    *,
    x_label: str = "x",
    y_label: str = "y",
    point_labels: Optional[Sequence[str]] = None,
    theme: ThemeArg = None,
) -> dict:
    """Scatter of complete (x, y) pairs plus the fitted line over the x range.

    point_labels, when given, must align with xs/ys and is shown on hover;
    pairs with a missing value are dropped together with their label.
    """
    fig = go.Figure()
    if point_labels is not None:
        keep = [i for i in range(min(len(xs), len(ys)))
                if to_number(xs[i]) is not None and to_number(ys[i]) is not None]
        labels = [str(point_labels[i]) for i in keep]
    else:
        labels = None
    x, y = paired_values(xs, ys)

    if x.size:
        fig.add_trace(go.Scatter(
            x=x.tolist(),
            y=y.tolist(),
            mode="markers",
            name="data",
            text=labels,
            marker=dict(size=7, opacity=0.7),
            hovertemplate=(
                f"{x_label}: %{{x}}<br>{y_label}: %{{y}}"
                + ("<br>%{text}" if labels is not None else "")
                + "<extra></extra>"
            ),
        ))
        if regression is not None:
            x0, x1 = float(x.min()), float(x.max())
            fig.add_trace(go.Scatter(
                x=[x0, x1],
                y=[regression.predict(x0), regression.predict(x1)],
                mode="lines",
                name=f"fit (R² = {regression.r2:.3f})",
                line=dict(color=REGRESSION_LINE_COLOR, width=2, dash="dash"),
                hoverinfo="skip",
            ))

    return _layout(
        fig,
        theme,
        xaxis=dict(title=x_label),
        yaxis=dict(title=y_label),
        showlegend=regression is not None and bool(x.size),
    )


# -----------------------------------------------------------------------------
# Histogram from bin counts
# -----------------------------------------------------------------------------


def histogram_figure(
    counts: Sequence[BinCount],
    *,
    x_label: str = "value",
    theme: ThemeArg = None,
) -> dict:
    """Bar per bin, placed by bin position so repeated labels stay separate.

    customdata is [lower, upper, closed] per bar for click drill-down.
    """
    fig = go.Figure()
    positions = list(range(len(counts)))
    labels = [c.bin.label for c in counts]
    if counts:
        _, fg_color = get_theme_colors(resolve_theme(theme))
        fig.add_trace(go.Bar(
            x=positions,
            y=[c.count for c in counts],
            customdata=[[c.bin.lower, c.bin.upper, int(c.bin.closed)] for c in counts],
            hovertext=labels,
            marker_color=fg_color,
            opacity=0.7,
            hovertemplate="%{hovertext}<br>Count: %{y}<extra></extra>",
        ))
    return _layout(
        fig,
        theme,
        xaxis=dict(title=x_label, tickmode="array", tickvals=positions, ticktext=labels),
        yaxis=dict(title="Count"),
        bargap=0.05,
        showlegend=False,
    )


# -----------------------------------------------------------------------------
# Group summaries
# -----------------------------------------------------------------------------


def group_box_figure(
    summaries: Sequence[GroupSummary],
    *,
    x_label: str = "group",
    y_label: str = "value",
    theme: ThemeArg = None,
) -> dict:
    """Box per group from precomputed quartiles (whiskers at min / max)."""
    fig = go.Figure()
    if summaries:
        fig.add_trace(go.Box(
            x=[str(s.group_key) for s in summaries],
            q1=[s.q1 for s in summaries],
            median=[s.median for s in summaries],
            q3=[s.q3 for s in summaries],
            lowerfence=[s.min for s in summaries],
            upperfence=[s.max for s in summaries],
            mean=[s.mean for s in summaries],
            customdata=[[s.count] for s in summaries],
            name=y_label,
            boxpoints=False,
        ))
    return _layout(
        fig,
        theme,
        xaxis=dict(title=x_label, type="category"),
        yaxis=dict(title=y_label),
        showlegend=False,
    )


def grouped_bar_figure(
    x_labels: Sequence[str],
    series: dict[str, Sequence[float]],
    *,
    x_label: str = "",
    y_label: str = "",
    barmode: str = "group",
    title: Optional[str] = None,
    theme: ThemeArg = None,
) -> dict:
    """One bar trace per series over shared x labels.

    barmode is "group" or "stack" (stacked percentage bars). title, when
    given, is shown above the plot.
    """
    fig = go.Figure()
    for name, values in series.items():
        fig.add_trace(go.Bar(
            x=list(x_labels),
            y=list(values),
            name=str(name),
            hovertemplate=f"{name}<br>%{{x}}: %{{y:.1f}}<extra></extra>",
        ))
    return _layout(
        fig,
        theme,
        barmode=barmode,
        title=title,
        xaxis=dict(title=x_label, type="category"),
        yaxis=dict(title=y_label),
    )


# -----------------------------------------------------------------------------
# Heatmaps over bins
# -----------------------------------------------------------------------------


def binned_heatmap_figure(
    cells: Sequence[HeatmapCell],
    *,
    x_label: str = "x",
    y_label: str = "y",
    theme: ThemeArg = None,
) -> dict:
    """Count heatmap over (x-bin, y-bin) cells placed by bin index.

    Axes are bin positions with the bin labels as tick text; customdata per
    cell is [correlation, x_lower, x_upper, x_closed, y_lower, y_upper,
    y_closed] for hover and click drill-down.
    """
    fig = go.Figure()
    if cells:
        nx = max(c.x_index for c in cells) + 1
        ny = max(c.y_index for c in cells) + 1
        x_ticks = [""] * nx
        y_ticks = [""] * ny
        z = [[0] * nx for _ in range(ny)]
        customdata: list[list[list[float]]] = [[[0.0] * 7 for _ in range(nx)] for _ in range(ny)]
        text = [[""] * nx for _ in range(ny)]
        for c in cells:
            i, j = c.y_index, c.x_index
            x_ticks[j] = c.x_bin.label
            y_ticks[i] = c.y_bin.label
            z[i][j] = c.count
            customdata[i][j] = [
                c.correlation,
                c.x_bin.lower, c.x_bin.upper, int(c.x_bin.closed),
                c.y_bin.lower, c.y_bin.upper, int(c.y_bin.closed),
            ]
            text[i][j] = f"{x_label}: {c.x_bin.label}<br>{y_label}: {c.y_bin.label}"
        fig.add_trace(go.Heatmap(
            z=z,
            x=list(range(nx)),
            y=list(range(ny)),
            customdata=customdata,
            text=text,
            colorscale="Blues",
            hovertemplate="%{text}<br>Count: %{z}<br>Correlation: %{customdata[0]:.2f}<extra></extra>",
        ))
        return _layout(
            fig,
            theme,
            xaxis=dict(title=x_label, tickmode="array", tickvals=list(range(nx)), ticktext=x_ticks),
            yaxis=dict(title=y_label, tickmode="array", tickvals=list(range(ny)), ticktext=y_ticks),
        )
    return _layout(fig, theme, xaxis=dict(title=x_label), yaxis=dict(title=y_label))


def crosstab_heatmap_figure(
    crosstab: Sequence[tuple[int, int, int]],
    *,
    x_label: str = "x",
    y_label: str = "y",
    theme: ThemeArg = None,
) -> dict:
    """Count heatmap from rounded_crosstab() output."""
    fig = go.Figure()
    if crosstab:
        xs = sorted({x for x, _, _ in crosstab})
        ys = sorted({y for _, y, _ in crosstab})
        z = [[0] * len(xs) for _ in ys]
        for x, y, count in crosstab:
            z[ys.index(y)][xs.index(x)] = count
        fig.add_trace(go.Heatmap(
            z=z,
            x=[str(x) for x in xs],
            y=[str(y) for y in ys],
            colorscale="Viridis",
            hovertemplate=f"{x_label}: %{{x}}<br>{y_label}: %{{y}}<br>Count: %{{z}}<extra></extra>",
        ))
    return _layout(fig, theme, xaxis=dict(title=x_label), yaxis=dict(title=y_label))
