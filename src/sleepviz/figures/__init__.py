"""Plotly figure builders (figure dicts) for the sleep dashboard."""

from sleepviz.figures.theme import ThemeMode

__all__ = [
    "ThemeMode",
]
