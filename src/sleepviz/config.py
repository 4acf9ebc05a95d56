"""
Dashboard config for sleepviz (platformdirs + JSON).

Config items (schema v1):
- data_path: CSV file to load
- correlation_fields: fields shown in the correlation matrix
- num_bins: equal-width bin count for histograms and heatmaps
- theme: "light" or "dark"
- default_grouping: "age", "gender" or "occupation"

Behavior:
- If config file missing or unreadable -> defaults are used
- If schema_version mismatches -> defaults are used
- Unknown keys in loaded JSON are ignored with warnings
- The dashboard never writes this file
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

from sleepviz.algorithms.derived import DEMOGRAPHIC_GROUPINGS
from sleepviz.data.dataset import CORRELATION_FIELDS
from sleepviz.utils.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION: int = 1

DEFAULT_NUM_BINS: int = 6
DEFAULT_DATA_PATH = "data/Sleep_health_and_lifestyle_dataset.csv"


@dataclass
class DashboardConfigData:
    """JSON-friendly config payload."""
    schema_version: int = SCHEMA_VERSION
    data_path: str = DEFAULT_DATA_PATH
    correlation_fields: list[str] = field(default_factory=lambda: list(CORRELATION_FIELDS))
    num_bins: int = DEFAULT_NUM_BINS
    theme: str = "light"
    default_grouping: str = "age"

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "data_path": self.data_path,
            "correlation_fields": list(self.correlation_fields),
            "num_bins": self.num_bins,
            "theme": self.theme,
            "default_grouping": self.default_grouping,
        }

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "DashboardConfigData":
        """
        Tolerant loader:
        - ignores unknown keys
        - falls back to the default for any missing or invalid value
        """
        defaults = cls()
        try:
            schema_version = int(d.get("schema_version", -1))
        except (TypeError, ValueError):
            schema_version = -1

        data_path = str(d.get("data_path", defaults.data_path))

        correlation_fields = defaults.correlation_fields
        raw_fields = d.get("correlation_fields")
        if raw_fields is not None:
            if isinstance(raw_fields, list) and all(isinstance(f, str) for f in raw_fields):
                correlation_fields = list(raw_fields)
            else:
                logger.warning("correlation_fields is not a list of strings, using defaults")

        num_bins = defaults.num_bins
        if "num_bins" in d:
            try:
                num_bins = int(d["num_bins"])
            except (TypeError, ValueError):
                logger.warning(f"num_bins {d['num_bins']!r} is not an integer, using {num_bins}")
            if num_bins < 1:
                logger.warning(f"num_bins must be >= 1, got {num_bins}, using {DEFAULT_NUM_BINS}")
                num_bins = DEFAULT_NUM_BINS

        theme = str(d.get("theme", defaults.theme)).lower()
        if theme not in ("light", "dark"):
            logger.warning(f"Unknown theme {theme!r}, using 'light'")
            theme = "light"

        default_grouping = str(d.get("default_grouping", defaults.default_grouping))
        if default_grouping not in DEMOGRAPHIC_GROUPINGS:
            logger.warning(f"Unknown default_grouping {default_grouping!r}, using 'age'")
            default_grouping = "age"

        known_keys = {"schema_version", "data_path", "correlation_fields", "num_bins", "theme", "default_grouping"}
        for key in d.keys():
            if key not in known_keys:
                logger.warning(f"Unknown key '{key}' in dashboard config, ignoring")

        return cls(
            schema_version=schema_version,
            data_path=data_path,
            correlation_fields=correlation_fields,
            num_bins=num_bins,
            theme=theme,
            default_grouping=default_grouping,
        )


class DashboardConfig:
    """Read-only access to DashboardConfigData on disk."""

    def __init__(self, *, path: Optional[Path], data: Optional[DashboardConfigData] = None):
        self.path = path
        self.data = data if data is not None else DashboardConfigData()

    @staticmethod
    def default_config_path(
        app_name: str = "sleepviz",
        filename: str = "dashboard_config.json",
        app_author: str | None = None,
    ) -> Path:
        """
        OS-appropriate per-user config path (not created).

        macOS:   ~/Library/Application Support/sleepviz/dashboard_config.json
        Linux:   ~/.config/sleepviz/dashboard_config.json
        Windows: %APPDATA%\\sleepviz\\dashboard_config.json
        """
        return Path(user_config_dir(app_name, app_author)) / filename

    @classmethod
    def load(
        cls,
        *,
        config_path: Optional[Path] = None,
        app_name: str = "sleepviz",
        filename: str = "dashboard_config.json",
        schema_version: int = SCHEMA_VERSION,
    ) -> "DashboardConfig":
        """
        Load config from disk.

        If the file doesn't exist, is unreadable, is not a JSON object, or has a
        different schema_version -> defaults.
        """
        path = config_path or cls.default_config_path(app_name=app_name, filename=filename)
        default_data = DashboardConfigData(schema_version=schema_version)

        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"Dashboard config file not found at {path}, using defaults")
            return cls(path=path, data=default_data)
        except OSError as e:
            logger.warning(f"Error reading dashboard config from {path}: {e}, using defaults")
            return cls(path=path, data=default_data)

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Dashboard config file at {path} is not valid JSON: {e}, using defaults")
            return cls(path=path, data=default_data)

        if not isinstance(parsed, dict):
            logger.warning(f"Dashboard config file at {path} does not contain a dict, using defaults")
            return cls(path=path, data=default_data)

        loaded = DashboardConfigData.from_json_dict(parsed)
        if int(loaded.schema_version) != int(schema_version):
            logger.warning(
                f"Dashboard config schema version mismatch: loaded={loaded.schema_version}, "
                f"expected={schema_version}, using defaults"
            )
            return cls(path=path, data=default_data)

        logger.info(f"Loaded dashboard config from {path}")
        return cls(path=path, data=loaded)

    def resolve_data_path(self) -> Path:
        """data_path as a Path; relative paths resolve against the config file's directory."""
        p = Path(self.data.data_path).expanduser()
        if p.is_absolute() or self.path is None:
            return p
        return self.path.parent / p
