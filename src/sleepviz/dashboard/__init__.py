"""Dashboard state, figure dispatch and the NiceGUI front end."""

from sleepviz.dashboard.chart_state import ChartState, ChartType
from sleepviz.dashboard.controller import DashboardController, DrillDown

__all__ = [
    "ChartState",
    "ChartType",
    "DashboardController",
    "DrillDown",
]
