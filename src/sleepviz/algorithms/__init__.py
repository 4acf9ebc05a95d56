"""Statistics used by every sleepviz chart.

aggregation: the shared engine (correlation, regression, binning, group summaries).
derived: per-chart data built on the engine (heatmaps, distributions, risk tables).
"""

from sleepviz.algorithms.aggregation import (
    CONSTANT_Y_R2_FALLBACK,
    ZERO_VARIANCE_FALLBACK,
    Bin,
    BinCount,
    CorrelationCell,
    GroupSummary,
    RegressionResult,
    assign_to_bin,
    bin_counts,
    correlation_matrix,
    correlation_pairs,
    describe_correlation,
    equal_width_bins,
    fixed_edge_bins,
    group_summaries,
    linear_regression,
    pearson_correlation,
    quantile,
)

__all__ = [
    "CONSTANT_Y_R2_FALLBACK",
    "ZERO_VARIANCE_FALLBACK",
    "Bin",
    "BinCount",
    "CorrelationCell",
    "GroupSummary",
    "RegressionResult",
    "assign_to_bin",
    "bin_counts",
    "correlation_matrix",
    "correlation_pairs",
    "describe_correlation",
    "equal_width_bins",
    "fixed_edge_bins",
    "group_summaries",
    "linear_regression",
    "pearson_correlation",
    "quantile",
]
