"""
Derived fields and per-chart data, built on the aggregation engine.

Each function here reproduces the data step of one dashboard chart using
only the engine and plain Python; no Plotly, no NiceGUI. The steps are:

  1. Derive a field (blood pressure category, age group) where needed.
  2. Bin or group records with the engine.
  3. Aggregate per bin / group into small frozen dataclasses that the
     figure builders consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from sleepviz.algorithms.aggregation import (
    Bin,
    FieldSpec,
    Record,
    assign_to_bin,
    equal_width_bins,
    field_accessor,
    fixed_edge_bins,
    mean_or_default,
    paired_values,
    pearson_correlation,
    to_number,
)

# Column names in the Sleep Health and Lifestyle dataset.
SLEEP_DURATION = "Sleep Duration"
QUALITY_OF_SLEEP = "Quality of Sleep"
PHYSICAL_ACTIVITY = "Physical Activity Level"
STRESS_LEVEL = "Stress Level"
HEART_RATE = "Heart Rate"
DAILY_STEPS = "Daily Steps"
AGE = "Age"
GENDER = "Gender"
OCCUPATION = "Occupation"
BMI_CATEGORY = "BMI Category"
BLOOD_PRESSURE = "Blood Pressure"
SLEEP_DISORDER = "Sleep Disorder"

NO_DISORDER = "None"

BP_CATEGORIES = ["Normal", "Elevated", "High"]

SLEEP_DURATION_EDGES = [0, 5, 6, 7, 8, 9, 12]
SLEEP_DURATION_LABELS = ["<5h", "5-6h", "6-7h", "7-8h", "8-9h", "9h+"]

SLEEP_QUALITY_EDGES = [0, 4, 6, 8, 10]
SLEEP_QUALITY_LABELS = ["Poor (0-4)", "Fair (4-6)", "Good (6-8)", "Excellent (8-10)"]

DEMOGRAPHIC_GROUPINGS = ("age", "gender", "occupation")

# Groupings that are plain columns; "age" is bucketed by age_group().
DEMOGRAPHIC_FIELDS = {"gender": GENDER, "occupation": OCCUPATION}


# -----------------------------------------------------------------------------
# Derived fields
# -----------------------------------------------------------------------------


def parse_blood_pressure(text: Any) -> Optional[tuple[int, int]]:
    """Parse '126/83' into (systolic, diastolic); None when unparsable."""
    if not isinstance(text, str):
        return None
    parts = text.strip().split("/")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def blood_pressure_category(systolic: float, diastolic: float) -> str:
    """High (>=140/90), Elevated (>=130/80), else Normal."""
    if systolic >= 140 or diastolic >= 90:
        return "High"
    if systolic >= 130 or diastolic >= 80:
        return "Elevated"
    return "Normal"


def age_group(age: Any) -> Optional[str]:
    """Age bucket label used by the demographics chart; None if age is missing."""
    a = to_number(age)
    if a is None:
        return None
    if a < 30:
        return "20-29"
    if a < 40:
        return "30-39"
    if a < 50:
        return "40-49"
    return "50+"


def group_key_for(grouping: str) -> Callable[[Record], Any]:
    """Key function for a demographic grouping: 'age', 'gender' or 'occupation'.

    Raises:
        ValueError: If grouping is not one of DEMOGRAPHIC_GROUPINGS.
    """
    if grouping == "age":
        return lambda r: age_group(r.get(AGE))
    if grouping in DEMOGRAPHIC_FIELDS:
        column = DEMOGRAPHIC_FIELDS[grouping]
        return lambda r: r.get(column)
    raise ValueError(f"Unknown grouping {grouping!r}, expected one of {DEMOGRAPHIC_GROUPINGS}")


# -----------------------------------------------------------------------------
# Binned 2D heatmap (numeric field vs numeric field)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class HeatmapCell:
    """One (x-bin, y-bin) cell; x_index / y_index are the bin positions."""
    x_index: int
    y_index: int
    x_bin: Bin
    y_bin: Bin
    count: int
    x_mean: float
    y_mean: float
    correlation: float


def binned_heatmap(
    dataset: Sequence[Record],
    field_x: str,
    field_y: str,
    num_bins: int = 6,
) -> list[HeatmapCell]:
    """
    Equal-width bins on both fields; one cell per (x-bin, y-bin).

    Only records where both fields are present are used. Each cell holds the
    count, the mean of each field (bin midpoints for an empty cell) and the
    within-cell correlation. Cells are ordered x-bin major.
    """
    xs, ys = paired_values([r.get(field_x) for r in dataset], [r.get(field_y) for r in dataset])
    x_bins = equal_width_bins(xs, num_bins)
    y_bins = equal_width_bins(ys, num_bins)

    members: dict[tuple[int, int], list[tuple[float, float]]] = {}
    for x, y in zip(xs, ys):
        key = (assign_to_bin(x, x_bins), assign_to_bin(y, y_bins))
        members.setdefault(key, []).append((float(x), float(y)))

    cells = []
    for i, xb in enumerate(x_bins):
        for j, yb in enumerate(y_bins):
            points = members.get((i, j), [])
            if not points:
                cells.append(HeatmapCell(i, j, xb, yb, 0, xb.midpoint, yb.midpoint, 0.0))
                continue
            px = [p[0] for p in points]
            py = [p[1] for p in points]
            cells.append(HeatmapCell(
                x_index=i,
                y_index=j,
                x_bin=xb,
                y_bin=yb,
                count=len(points),
                x_mean=mean_or_default(px),
                y_mean=mean_or_default(py),
                correlation=pearson_correlation(px, py),
            ))
    return cells


# -----------------------------------------------------------------------------
# Rounded cross-tab (sleep duration vs quality)
# -----------------------------------------------------------------------------


def rounded_crosstab(
    dataset: Sequence[Record],
    field_x: str = SLEEP_DURATION,
    field_y: str = QUALITY_OF_SLEEP,
    x_range: tuple[int, int] = (4, 10),
    y_range: tuple[int, int] = (4, 10),
) -> list[tuple[int, int, int]]:
    """
    Count records by (round(x), round(y)) over inclusive integer ranges.

    Returns (x, y, count) for every pair in the ranges, zero counts included.
    Rounding is half away from zero (7.5 -> 8), like the chart labels expect.
    """
    counts: dict[tuple[int, int], int] = {}
    for record in dataset:
        x = to_number(record.get(field_x))
        y = to_number(record.get(field_y))
        if x is None or y is None:
            continue
        key = (_round_half_up(x), _round_half_up(y))
        counts[key] = counts.get(key, 0) + 1

    return [
        (x, y, counts.get((x, y), 0))
        for x in range(x_range[0], x_range[1] + 1)
        for y in range(y_range[0], y_range[1] + 1)
    ]


def _round_half_up(v: float) -> int:
    return int(v + 0.5) if v >= 0 else -int(-v + 0.5)


# -----------------------------------------------------------------------------
# Category distribution (stacked percentage bars)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryBinShare:
    category: str
    bin: Bin
    count: int
    percentage: float


def category_distribution(
    dataset: Sequence[Record],
    category_field: FieldSpec = BMI_CATEGORY,
    value_field: FieldSpec = QUALITY_OF_SLEEP,
    bins: Optional[Sequence[Bin]] = None,
) -> list[CategoryBinShare]:
    """
    Share of each category's records falling in each value bin.

    Percentages are of the category's total record count (records whose
    value is missing or out of range still count toward the total, so a
    category's shares may sum to less than 100). Categories appear in order
    of first appearance.
    """
    if bins is None:
        bins = fixed_edge_bins(SLEEP_QUALITY_EDGES, SLEEP_QUALITY_LABELS)
    get_cat = field_accessor(category_field)
    get_val = field_accessor(value_field)

    totals: dict[Any, int] = {}
    per_bin: dict[Any, list[int]] = {}
    for record in dataset:
        cat = get_cat(record)
        if cat is None:
            continue
        totals[cat] = totals.get(cat, 0) + 1
        counts = per_bin.setdefault(cat, [0] * len(bins))
        idx = assign_to_bin(get_val(record), bins)
        if idx >= 0:
            counts[idx] += 1

    out = []
    for cat, total in totals.items():
        for b, count in zip(bins, per_bin[cat]):
            pct = (count / total) * 100 if total > 0 else 0.0
            out.append(CategoryBinShare(category=str(cat), bin=b, count=count, percentage=pct))
    return out


# -----------------------------------------------------------------------------
# Blood pressure by sleep duration
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class BloodPressureGroup:
    duration_bin: Bin
    category: str
    count: int
    mean_systolic: float
    mean_diastolic: float


def blood_pressure_by_duration(
    dataset: Sequence[Record],
    bins: Optional[Sequence[Bin]] = None,
) -> list[BloodPressureGroup]:
    """
    Mean systolic / diastolic pressure per (sleep-duration bin, BP category).

    Records with unparsable blood pressure or missing duration are dropped.
    Every (bin, category) pair is returned; empty pairs have zero means.
    """
    if bins is None:
        bins = fixed_edge_bins(SLEEP_DURATION_EDGES, SLEEP_DURATION_LABELS)

    members: dict[tuple[int, str], list[tuple[int, int]]] = {}
    for record in dataset:
        bp = parse_blood_pressure(record.get(BLOOD_PRESSURE))
        if bp is None:
            continue
        idx = assign_to_bin(record.get(SLEEP_DURATION), bins)
        if idx < 0:
            continue
        category = blood_pressure_category(*bp)
        members.setdefault((idx, category), []).append(bp)

    out = []
    for i, b in enumerate(bins):
        for category in BP_CATEGORIES:
            readings = members.get((i, category), [])
            out.append(BloodPressureGroup(
                duration_bin=b,
                category=category,
                count=len(readings),
                mean_systolic=mean_or_default([s for s, _ in readings]),
                mean_diastolic=mean_or_default([d for _, d in readings]),
            ))
    return out


# -----------------------------------------------------------------------------
# Occupational risk
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class OccupationRisk:
    occupation: str
    total_count: int
    disorder_count: int
    risk_percentage: float
    risk_level: str
    mean_sleep_quality: float
    mean_sleep_duration: float
    mean_stress_level: float
    mean_physical_activity: float
    common_disorders: list[tuple[str, int]] = field(default_factory=list)


def risk_level(risk_percentage: float) -> str:
    """High above 50 %, Medium above 25 %, else Low."""
    if risk_percentage > 50:
        return "High"
    if risk_percentage > 25:
        return "Medium"
    return "Low"


def occupational_risk(dataset: Sequence[Record]) -> list[OccupationRisk]:
    """
    Sleep-disorder prevalence per occupation, highest risk first.

    A record has a disorder when its Sleep Disorder field is not "None".
    Ties in risk keep first-appearance order.
    """
    by_occupation: dict[str, list[Record]] = {}
    for record in dataset:
        occ = record.get(OCCUPATION)
        if occ is None:
            continue
        by_occupation.setdefault(str(occ), []).append(record)

    out = []
    for occ, rows in by_occupation.items():
        disordered = [r for r in rows if _has_disorder(r)]
        disorder_counts: dict[str, int] = {}
        for r in disordered:
            d = str(r.get(SLEEP_DISORDER))
            disorder_counts[d] = disorder_counts.get(d, 0) + 1
        pct = (len(disordered) / len(rows)) * 100
        out.append(OccupationRisk(
            occupation=occ,
            total_count=len(rows),
            disorder_count=len(disordered),
            risk_percentage=pct,
            risk_level=risk_level(pct),
            mean_sleep_quality=mean_or_default([r.get(QUALITY_OF_SLEEP) for r in rows]),
            mean_sleep_duration=mean_or_default([r.get(SLEEP_DURATION) for r in rows]),
            mean_stress_level=mean_or_default([r.get(STRESS_LEVEL) for r in rows]),
            mean_physical_activity=mean_or_default([r.get(PHYSICAL_ACTIVITY) for r in rows]),
            common_disorders=sorted(disorder_counts.items(), key=lambda kv: -kv[1]),
        ))
    return sorted(out, key=lambda o: -o.risk_percentage)


@dataclass(frozen=True)
class RiskSummary:
    overall_risk_percentage: float
    high_risk_count: int
    highest_risk_occupation: Optional[str]


def overall_risk(risks: Sequence[OccupationRisk]) -> RiskSummary:
    """
    Summary over occupational_risk() output.

    The overall percentage pools every occupation (total disorders over total
    records). Empty input gives 0 and None.
    """
    total = sum(r.total_count for r in risks)
    disordered = sum(r.disorder_count for r in risks)
    return RiskSummary(
        overall_risk_percentage=(disordered / total) * 100 if total > 0 else 0.0,
        high_risk_count=sum(1 for r in risks if r.risk_level == "High"),
        highest_risk_occupation=risks[0].occupation if risks else None,
    )


def _has_disorder(record: Record) -> bool:
    value = record.get(SLEEP_DISORDER)
    return value is not None and str(value) != NO_DISORDER


# -----------------------------------------------------------------------------
# Disorder profiles
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class DisorderProfile:
    disorder: str
    count: int
    means: dict[str, float]
    gender_counts: dict[str, int]
    bmi_counts: dict[str, int]


PROFILE_FIELDS = [AGE, QUALITY_OF_SLEEP, SLEEP_DURATION, HEART_RATE, STRESS_LEVEL, DAILY_STEPS]


def disorder_profiles(dataset: Sequence[Record]) -> list[DisorderProfile]:
    """Per sleep disorder (including "None"): count, field means, gender and BMI counts."""
    by_disorder: dict[str, list[Record]] = {}
    for record in dataset:
        d = record.get(SLEEP_DISORDER)
        if d is None:
            continue
        by_disorder.setdefault(str(d), []).append(record)

    out = []
    for disorder, rows in by_disorder.items():
        out.append(DisorderProfile(
            disorder=disorder,
            count=len(rows),
            means={f: mean_or_default([r.get(f) for r in rows]) for f in PROFILE_FIELDS},
            gender_counts=_value_counts(rows, GENDER),
            bmi_counts=_value_counts(rows, BMI_CATEGORY),
        ))
    return out


def _value_counts(rows: Sequence[Record], field_name: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for r in rows:
        v = r.get(field_name)
        if v is None:
            continue
        counts[str(v)] = counts.get(str(v), 0) + 1
    return counts
