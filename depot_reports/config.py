# File: config.py
"""Configuration and input-file loading for depot-reports.

The config file is optional YAML:

    generated_by: "Depot Ops"
    top_n: 10
    lookups:
      clients: {1: "Acme"}
      couriers: {C1: "Alice"}
      delivery_units: {DU9: "North"}
      sorters: {S1: "Sam"}
      sub_depots: {3: "East"}

Event files are a YAML or JSON list of scan events (JSON is valid YAML).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import voluptuous as vol
import yaml

from . import const

if TYPE_CHECKING:
    from .type_defs import ReportConfig, ScanEventData


class ConfigError(Exception):
    """Raised when a config or event file cannot be read or is invalid.

    Attributes:
        path: The offending file, if any
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize ConfigError.

        Args:
            message: What went wrong
            path: File being loaded
        """
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


_LOOKUP_TABLE = vol.Schema({vol.Any(str, int): vol.Coerce(str)})

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_GENERATED_BY, default=const.DEFAULT_GENERATED_BY
        ): vol.All(str, vol.Strip, vol.Length(min=1)),
        vol.Optional(const.CONF_TOP_N, default=const.DEFAULT_TOP_N): vol.All(
            int, vol.Range(min=0)
        ),
        vol.Optional(const.CONF_LOOKUPS, default=dict): vol.Schema(
            {vol.Optional(table): vol.Any(None, _LOOKUP_TABLE) for table in const.LOOKUP_TABLES}
        ),
    }
)


def default_config() -> ReportConfig:
    """Return a fully-defaulted configuration."""
    return load_config(None)


def load_config(path: Path | str | None) -> ReportConfig:
    """Load and validate the YAML config file.

    Args:
        path: Config file, or None for defaults only.

    Returns:
        ReportConfig with every key present; lookup tables default to {}.

    Raises:
        ConfigError: Unreadable file, invalid YAML, or schema violation.
    """
    raw: Any = {}
    if path is not None:
        raw = _read_yaml(path)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("config must be a mapping", path)

    try:
        validated = CONFIG_SCHEMA(raw)
    except vol.Invalid as err:
        raise ConfigError(f"invalid config: {err}", path) from err

    lookups = validated[const.CONF_LOOKUPS]
    config: ReportConfig = {
        "generated_by": validated[const.CONF_GENERATED_BY],
        "top_n": validated[const.CONF_TOP_N],
        "lookups": {table: dict(lookups.get(table) or {}) for table in const.LOOKUP_TABLES},
    }
    const.LOGGER.debug("Loaded config from %s: %s", path or "defaults", config)
    return config


def load_events(path: Path | str) -> list[ScanEventData]:
    """Load a scan-event list from a YAML or JSON file.

    Non-mapping entries are skipped with a warning rather than failing the
    whole file.

    Raises:
        ConfigError: Unreadable file, invalid YAML/JSON, or not a list.
    """
    raw = _read_yaml(path)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("event file must contain a list of events", path)

    events: list[ScanEventData] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            const.LOGGER.warning("Skipping event #%s in %s: not a mapping", index, path)
            continue
        events.append(item)
    return events


def _read_yaml(path: Path | str) -> Any:
    """Read and parse a YAML file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigError(f"cannot read file: {err.strerror or err}", path) from err

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as err:
        const.LOGGER.error("YAML parsing failed for %s: %s", path, err)
        raise ConfigError(f"YAML parsing failed: {err}", path) from err
