"""
sleepviz: statistics and interactive charts for the Sleep Health and Lifestyle survey.

This package provides:
- An aggregation engine (correlation, regression, binning, group summaries)
- Per-chart derived data (heatmaps, distributions, occupational risk)
- Plotly figure builders and a NiceGUI dashboard
- Logging utilities for library and application use

For logging configuration in standalone scripts:
    ```python
    from sleepviz.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```
"""

import logging

from sleepviz.utils.logging import configure_logging, get_logger

# NullHandler so logs don't reach the root logger until an app configures logging.
_logger = logging.getLogger("sleepviz")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
