"""
Aggregation engine: the pure numpy reference for every chart.

All charts consume the same statistics: pairwise Pearson correlation, simple
linear regression, equal-width / fixed-edge binning, and per-group summaries.
This module is the single implementation of those transforms.

Conventions (documented):
  1. Missing values: None, NaN, +/-inf and non-numeric strings are missing.
     Numeric strings ("7.5") are accepted, matching CSV coercion.
  2. Pairing: two sequences are paired by index up to the shorter length;
     only pairs where BOTH values are present are used.
  3. Degenerate input never raises. Fewer than 2 samples or zero variance
     resolve to ZERO_VARIANCE_FALLBACK. A constant dependent variable gives
     r2 = CONSTANT_Y_R2_FALLBACK. Callers that need to tell "no correlation"
     from "undefined" must check the sample count themselves.
  4. Binning: every bin is half-open [lower, upper) except the final bin,
     whose upper bound is inclusive so the maximum value is never dropped.
  5. Quantiles: linear interpolation between bracketing order statistics
     (R type 7, numpy method="linear").
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import numpy as np

from sleepviz.utils.logging import get_logger

logger = get_logger(__name__)

Record = Mapping[str, Any]
FieldSpec = Union[str, Callable[[Record], Any]]

# Returned for correlation / regression coefficients when they are undefined
# (fewer than 2 samples, or zero spread in a variable).
ZERO_VARIANCE_FALLBACK: float = 0.0

# r2 when the dependent variable is constant (total sum of squares is 0).
CONSTANT_Y_R2_FALLBACK: float = 0.0


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Bin:
    """Numeric interval [lower, upper) with a display label.

    closed is True when upper itself belongs to the bin: the last bin of a
    binning, and every bin of a collapsed (zero-width) binning.
    """
    lower: float
    upper: float
    label: str
    closed: bool = False

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def midpoint(self) -> float:
        return (self.lower + self.upper) / 2


@dataclass(frozen=True)
class BinCount:
    bin: Bin
    count: int


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least squares fit y = slope * x + intercept."""
    slope: float
    intercept: float
    r2: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class GroupSummary:
    """Per-group aggregate of one numeric field."""
    group_key: Union[str, float]
    count: int
    mean: float
    median: float
    q1: float
    q3: float
    min: float
    max: float


@dataclass(frozen=True)
class CorrelationCell:
    """One (field_x, field_y) entry of a correlation matrix."""
    field_x: str
    field_y: str
    r: float


# -----------------------------------------------------------------------------
# Value coercion
# -----------------------------------------------------------------------------


def to_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None when it is missing.

    Booleans are not treated as numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return f


def numeric_values(values: Sequence[Any]) -> np.ndarray:
    """Drop missing values and return the rest as a float array."""
    out = [v for v in (to_number(x) for x in values) if v is not None]
    return np.asarray(out, dtype=float)


def paired_values(xs: Sequence[Any], ys: Sequence[Any]) -> tuple[np.ndarray, np.ndarray]:
    """Pair xs and ys by index, keeping only pairs where both are present."""
    n = min(len(xs), len(ys))
    px: list[float] = []
    py: list[float] = []
    for i in range(n):
        x = to_number(xs[i])
        y = to_number(ys[i])
        if x is None or y is None:
            continue
        px.append(x)
        py.append(y)
    return np.asarray(px, dtype=float), np.asarray(py, dtype=float)


def field_accessor(spec: FieldSpec) -> Callable[[Record], Any]:
    """Turn a field name or a callable into a record accessor."""
    if callable(spec):
        return spec
    return lambda record: record.get(spec)


def _is_constant(a: np.ndarray) -> bool:
    return a.size == 0 or bool(np.all(a == a[0]))


# -----------------------------------------------------------------------------
# Correlation
# -----------------------------------------------------------------------------


def pearson_correlation(xs: Sequence[Any], ys: Sequence[Any]) -> float:
    """
    Pearson product-moment correlation of two paired sequences.

    r = sum(dx*dy) / sqrt(sum(dx^2) * sum(dy^2)), dx = x - mean(x).

    Returns ZERO_VARIANCE_FALLBACK when fewer than 2 complete pairs remain or
    either variable has no spread. The result is symmetric in its arguments
    and clipped to [-1, 1].
    """
    x, y = paired_values(xs, ys)
    if len(x) < 2:
        logger.debug(f"pearson_correlation: {len(x)} complete pairs, using fallback")
        return ZERO_VARIANCE_FALLBACK
    if _is_constant(x) or _is_constant(y):
        logger.debug("pearson_correlation: zero variance, using fallback")
        return ZERO_VARIANCE_FALLBACK

    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float(np.sum(dx * dx))
    syy = float(np.sum(dy * dy))
    # sqrt of the product (not product of sqrts) keeps corr(X, X) exactly 1.
    denom = math.sqrt(sxx * syy)
    if denom == 0:
        return ZERO_VARIANCE_FALLBACK
    r = float(np.sum(dx * dy)) / denom
    return float(min(1.0, max(-1.0, r)))


def describe_correlation(r: float) -> str:
    """Hover text for a correlation value, e.g. 'Moderate negative correlation'."""
    strength = abs(r)
    if strength > 0.7:
        description = "Strong"
    elif strength > 0.4:
        description = "Moderate"
    elif strength > 0.2:
        description = "Weak"
    else:
        description = "Very weak"
    direction = "positive" if r > 0 else "negative"
    return f"{description} {direction} correlation"


def correlation_matrix(dataset: Sequence[Record], fields: Sequence[str]) -> list[list[float]]:
    """
    n x n Pearson correlation matrix for the given numeric fields.

    Each entry uses the records where both fields are present (pairwise
    complete). The diagonal is 1.0, or 0.0 for a field with zero variance.
    The lower triangle mirrors the upper so matrix[i][j] == matrix[j][i].
    """
    columns = {f: [record.get(f) for record in dataset] for f in fields}
    n = len(fields)
    matrix = [[ZERO_VARIANCE_FALLBACK] * n for _ in range(n)]
    for i in range(n):
        for j in range(i, n):
            r = pearson_correlation(columns[fields[i]], columns[fields[j]])
            matrix[i][j] = r
            matrix[j][i] = r
    return matrix


def correlation_pairs(dataset: Sequence[Record], fields: Sequence[str]) -> list[CorrelationCell]:
    """Long-format correlation matrix, row-major over fields."""
    matrix = correlation_matrix(dataset, fields)
    return [
        CorrelationCell(field_x=fx, field_y=fy, r=matrix[i][j])
        for i, fx in enumerate(fields)
        for j, fy in enumerate(fields)
    ]


# -----------------------------------------------------------------------------
# Regression
# -----------------------------------------------------------------------------


def linear_regression(xs: Sequence[Any], ys: Sequence[Any]) -> RegressionResult:
    """
    Closed-form ordinary least squares fit of ys on xs.

    slope = (n*Sxy - Sx*Sy) / (n*Sxx - Sx^2), intercept = (Sy - slope*Sx) / n,
    r2 = 1 - SS_res / SS_tot.

    Fallbacks:
      - fewer than 2 complete pairs -> (0, 0, 0)
      - all x identical -> slope = ZERO_VARIANCE_FALLBACK (intercept is then mean(y))
      - all y identical -> r2 = CONSTANT_Y_R2_FALLBACK
    """
    x, y = paired_values(xs, ys)
    n = len(x)
    if n < 2:
        return RegressionResult(slope=0.0, intercept=0.0, r2=0.0)

    sum_x = float(np.sum(x))
    sum_y = float(np.sum(y))
    sum_xy = float(np.sum(x * y))
    sum_xx = float(np.sum(x * x))

    denom = n * sum_xx - sum_x * sum_x
    if _is_constant(x) or denom == 0:
        slope = ZERO_VARIANCE_FALLBACK
    else:
        slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n

    if _is_constant(y):
        r2 = CONSTANT_Y_R2_FALLBACK
    else:
        ss_tot = float(np.sum((y - y.mean()) ** 2))
        ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
        r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else CONSTANT_Y_R2_FALLBACK

    return RegressionResult(slope=float(slope), intercept=float(intercept), r2=float(r2))


# -----------------------------------------------------------------------------
# Binning
# -----------------------------------------------------------------------------


def equal_width_bins(values: Sequence[Any], num_bins: int) -> list[Bin]:
    """
    Partition [floor(min), ceil(max)] into num_bins equal-width bins.

    Labels are "{lower:.1f}-{upper:.1f}". Missing values are ignored. With no
    values, or when floor(min) == ceil(max), all bins collapse to zero width
    at that point (0 for empty input) and share one label.

    Raises:
        ValueError: If num_bins < 1.
    """
    if int(num_bins) < 1:
        raise ValueError(f"num_bins must be >= 1, got {num_bins!r}")
    num_bins = int(num_bins)

    vals = numeric_values(values)
    if vals.size == 0:
        lo = hi = 0.0
    else:
        lo = float(math.floor(vals.min()))
        hi = float(math.ceil(vals.max()))
    width = (hi - lo) / num_bins

    bins = []
    for i in range(num_bins):
        lower = lo + i * width
        upper = hi if i == num_bins - 1 else lo + (i + 1) * width
        closed = i == num_bins - 1 or width == 0
        bins.append(Bin(lower=lower, upper=upper, label=f"{lower:.1f}-{upper:.1f}", closed=closed))
    return bins


def fixed_edge_bins(edges: Sequence[float], labels: Optional[Sequence[str]] = None) -> list[Bin]:
    """
    Bins from explicit, strictly increasing edges.

    Example: edges [0, 5, 6, 7, 8, 9, 12] with labels
    ['<5h', '5-6h', '6-7h', '7-8h', '8-9h', '9h+'].

    Raises:
        ValueError: If there are fewer than 2 edges, edges do not increase,
            or len(labels) != len(edges) - 1.
    """
    edges = [float(e) for e in edges]
    if len(edges) < 2:
        raise ValueError("fixed_edge_bins needs at least 2 edges")
    if any(b <= a for a, b in zip(edges, edges[1:])):
        raise ValueError(f"bin edges must be strictly increasing: {edges}")
    if labels is not None and len(labels) != len(edges) - 1:
        raise ValueError(f"expected {len(edges) - 1} labels, got {len(labels)}")

    bins = []
    for i, (lower, upper) in enumerate(zip(edges, edges[1:])):
        label = labels[i] if labels is not None else f"{lower:.1f}-{upper:.1f}"
        bins.append(Bin(lower=lower, upper=upper, label=str(label), closed=i == len(edges) - 2))
    return bins


def assign_to_bin(value: Any, bins: Sequence[Bin]) -> int:
    """
    Index of the bin containing value, or -1.

    Bins are [lower, upper) except the last, which includes its upper bound.
    Returns -1 for a missing value, empty bins, or a value outside
    [bins[0].lower, bins[-1].upper]. When all bins have collapsed to zero
    width, a value at that point goes to bin 0.
    """
    v = to_number(value)
    if v is None or not bins:
        return -1
    first = bins[0].lower
    last = bins[-1].upper
    if v < first or v > last:
        return -1
    if first == last:
        return 0

    lowers = [b.lower for b in bins]
    idx = min(bisect_right(lowers, v) - 1, len(bins) - 1)
    if idx < len(bins) - 1 and v >= bins[idx].upper:
        # gap between non-contiguous bins
        return -1
    return idx


def bin_counts(values: Sequence[Any], bins: Sequence[Bin]) -> list[BinCount]:
    """Count values per bin; missing and out-of-range values are dropped."""
    counts = [0] * len(bins)
    dropped = 0
    for value in values:
        idx = assign_to_bin(value, bins)
        if idx < 0:
            dropped += 1
            continue
        counts[idx] += 1
    if dropped:
        logger.debug(f"bin_counts: dropped {dropped} missing or out-of-range values")
    return [BinCount(bin=b, count=c) for b, c in zip(bins, counts)]


# -----------------------------------------------------------------------------
# Group summaries
# -----------------------------------------------------------------------------


def quantile(values: Sequence[Any], q: float) -> float:
    """
    R type 7 quantile of the non-missing values (0.0 for no values).

    Raises:
        ValueError: If q is outside [0, 1].
    """
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"q must be in [0, 1], got {q!r}")
    vals = numeric_values(values)
    if vals.size == 0:
        return 0.0
    return float(np.quantile(vals, q, method="linear"))


def mean_or_default(values: Sequence[Any], default: float = 0.0) -> float:
    """Mean of the non-missing values, or default when there are none."""
    vals = numeric_values(values)
    if vals.size == 0:
        return default
    return float(vals.mean())


def summarize(group_key: Union[str, float], values: Sequence[Any]) -> GroupSummary:
    """GroupSummary for one group's values (missing values ignored)."""
    vals = numeric_values(values)
    if vals.size == 0:
        return GroupSummary(group_key=group_key, count=0, mean=0.0, median=0.0,
                            q1=0.0, q3=0.0, min=0.0, max=0.0)
    q1, median, q3 = np.quantile(vals, [0.25, 0.5, 0.75], method="linear")
    return GroupSummary(
        group_key=group_key,
        count=int(vals.size),
        mean=float(vals.mean()),
        median=float(median),
        q1=float(q1),
        q3=float(q3),
        min=float(vals.min()),
        max=float(vals.max()),
    )


def group_summaries(
    dataset: Sequence[Record],
    group_key: FieldSpec,
    value_field: FieldSpec,
) -> list[GroupSummary]:
    """
    Partition records by group_key and summarize value_field per group.

    group_key and value_field are field names or callables on a record.
    Records with a missing value (or a None group key) belong to no group.
    Groups appear in order of first appearance in the dataset.
    """
    get_key = field_accessor(group_key)
    get_value = field_accessor(value_field)

    groups: dict[Any, list[float]] = {}
    for record in dataset:
        value = to_number(get_value(record))
        if value is None:
            continue
        key = get_key(record)
        if key is None:
            continue
        groups.setdefault(key, []).append(value)

    return [summarize(key, vals) for key, vals in groups.items()]
