"""Chart state for the sleep dashboard.

This module defines the ChartType enum and ChartState dataclass that describe
which chart is shown and with which fields / grouping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sleepviz.algorithms.derived import QUALITY_OF_SLEEP, SLEEP_DURATION
from sleepviz.data.dataset import CORRELATION_FIELDS


class ChartType(Enum):
    """Enumeration of available charts."""
    CORRELATION_MATRIX = "correlation_matrix"
    SCATTER = "scatter"
    HISTOGRAM = "histogram"
    BINNED_HEATMAP = "binned_heatmap"
    DURATION_QUALITY_HEATMAP = "duration_quality_heatmap"
    DEMOGRAPHICS = "demographics"
    BMI_PROFILE = "bmi_profile"
    BLOOD_PRESSURE = "blood_pressure"
    OCCUPATIONAL_RISK = "occupational_risk"
    DISORDER_PROFILES = "disorder_profiles"


@dataclass
class ChartState:
    """Configuration of the chart currently displayed.

    xcol is the binned field for histograms and the x axis for scatter and
    binned heatmaps; ycol is the summarized / y-axis field.
    """
    chart_type: ChartType = ChartType.CORRELATION_MATRIX
    xcol: str = SLEEP_DURATION
    ycol: str = QUALITY_OF_SLEEP
    grouping: str = "age"              # demographics: age | gender | occupation
    num_bins: int = 6                  # histogram and binned heatmap
    correlation_fields: list[str] = field(default_factory=lambda: list(CORRELATION_FIELDS))
    theme: str = "light"

    def to_dict(self) -> dict[str, Any]:
        """Serialize ChartState to a JSON-friendly dict."""
        return {
            "chart_type": self.chart_type.value,
            "xcol": self.xcol,
            "ycol": self.ycol,
            "grouping": self.grouping,
            "num_bins": self.num_bins,
            "correlation_fields": list(self.correlation_fields),
            "theme": self.theme,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChartState":
        """Deserialize ChartState; missing keys take their defaults.

        Raises:
            ValueError: If chart_type is not a known ChartType value.
        """
        defaults = cls()
        chart_type = ChartType(data.get("chart_type", defaults.chart_type.value))
        fields = data.get("correlation_fields")
        if not isinstance(fields, list):
            fields = defaults.correlation_fields
        return cls(
            chart_type=chart_type,
            xcol=str(data.get("xcol", defaults.xcol)),
            ycol=str(data.get("ycol", defaults.ycol)),
            grouping=str(data.get("grouping", defaults.grouping)),
            num_bins=int(data.get("num_bins", defaults.num_bins)),
            correlation_fields=[str(f) for f in fields],
            theme=str(data.get("theme", defaults.theme)),
        )
