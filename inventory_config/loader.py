"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``inventory_config.schema``.  Sheet entries override the default export
layout per record kind: a YAML file only needs to name what differs.

Invariants enforced
-------------------
* Unknown keys and out-of-range values raise ``ConfigError``; nothing is
  silently ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  configuration for run identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid structure or values  -> ``ConfigError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from inventory_config.schema import (
    DEFAULT_SHEETS,
    RECORD_KINDS,
    EngineSettings,
    IngestionConfig,
    OutgoingOrder,
    SheetMapping,
    SourceFormat,
    ValuationConfig,
)
from inventory_kernel.exceptions import ConfigError
from inventory_kernel.logging_config import get_logger

logger = get_logger("config.loader")

_ENGINE_KEYS = frozenset(f.name for f in dataclasses.fields(EngineSettings))
_SHEET_KEYS = frozenset({"sheet", "columns", "header_row", "skip_rows", "required"})
_TOP_LEVEL_KEYS = frozenset({"engine", "ingestion"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top-level YAML document must be a mapping")
    return data


def _reject_unknown(section: str, data: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(section, f"unknown keys {unknown}")


def _as_enum(enum_cls: type[Enum], key: str, value: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(key, f"{value!r} is not one of: {allowed}") from None


def _as_int(key: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(key, f"expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(key, f"must be >= {minimum}, got {value}")
    return value


def _as_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(key, f"expected true/false, got {value!r}")
    return value


def parse_engine_settings(data: Mapping[str, Any] | None) -> EngineSettings:
    """Parse the ``engine`` section."""
    if not data:
        return EngineSettings()
    _reject_unknown("engine", data, _ENGINE_KEYS)

    defaults = EngineSettings()
    return EngineSettings(
        purchase_match_window_days=_as_int(
            "engine.purchase_match_window_days",
            data.get("purchase_match_window_days", defaults.purchase_match_window_days),
        ),
        outgoing_order=_as_enum(
            OutgoingOrder,
            "engine.outgoing_order",
            data.get("outgoing_order", defaults.outgoing_order.value),
        ),
        flag_inconsistent_dates=_as_bool(
            "engine.flag_inconsistent_dates",
            data.get("flag_inconsistent_dates", defaults.flag_inconsistent_dates),
        ),
    )


def parse_sheet_mapping(kind: str, data: Mapping[str, Any] | None) -> SheetMapping:
    """Parse one ``ingestion.sheets.<kind>`` entry over its default layout."""
    if kind not in DEFAULT_SHEETS:
        raise ConfigError(
            f"ingestion.sheets.{kind}",
            f"unknown record kind (expected one of {', '.join(RECORD_KINDS)})",
        )
    base = DEFAULT_SHEETS[kind]
    if not data:
        return base
    section = f"ingestion.sheets.{kind}"
    _reject_unknown(section, data, _SHEET_KEYS)

    columns = dict(base.columns)
    overrides = data.get("columns") or {}
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"{section}.columns", "expected a mapping of field -> header")
    unknown_fields = sorted(set(overrides) - set(base.columns))
    if unknown_fields:
        raise ConfigError(f"{section}.columns", f"unknown record fields {unknown_fields}")
    columns.update({k: str(v) for k, v in overrides.items()})

    return SheetMapping(
        kind=kind,
        sheet=str(data.get("sheet", base.sheet)),
        columns=MappingProxyType(columns),
        header_row=_as_int(f"{section}.header_row", data.get("header_row", base.header_row)),
        skip_rows=_as_int(f"{section}.skip_rows", data.get("skip_rows", base.skip_rows)),
        required=_as_bool(f"{section}.required", data.get("required", base.required)),
    )


def parse_ingestion_config(data: Mapping[str, Any] | None) -> IngestionConfig:
    """Parse the ``ingestion`` section; kinds not listed keep their defaults."""
    data = data or {}
    _reject_unknown("ingestion", data, frozenset({"format", "sheets"}))

    sheets_data = data.get("sheets") or {}
    if not isinstance(sheets_data, Mapping):
        raise ConfigError("ingestion.sheets", "expected a mapping keyed by record kind")
    for kind in sheets_data:
        if kind not in DEFAULT_SHEETS:
            raise ConfigError(
                f"ingestion.sheets.{kind}",
                f"unknown record kind (expected one of {', '.join(RECORD_KINDS)})",
            )

    sheets = {kind: parse_sheet_mapping(kind, sheets_data.get(kind)) for kind in RECORD_KINDS}
    return IngestionConfig(
        source_format=_as_enum(SourceFormat, "ingestion.format", data.get("format", "xlsx")),
        sheets=MappingProxyType(sheets),
    )


def parse_config(data: Mapping[str, Any]) -> ValuationConfig:
    _reject_unknown("<root>", data, _TOP_LEVEL_KEYS)
    return ValuationConfig(
        engine=parse_engine_settings(data.get("engine")),
        ingestion=parse_ingestion_config(data.get("ingestion")),
    )


def default_config() -> ValuationConfig:
    """Built-in configuration: default engine policy and export layout."""
    return parse_config({})


def load_config(path: Path) -> ValuationConfig:
    """Load and validate a configuration file."""
    config = parse_config(load_yaml_file(path))
    logger.info("config_loaded", extra={
        "path": str(path),
        "checksum": compute_checksum(config),
        "outgoing_order": config.engine.outgoing_order.value,
        "source_format": config.ingestion.source_format.value,
    })
    return config


def _to_plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    return value


def compute_checksum(config: ValuationConfig) -> str:
    """
    SHA-256 of the canonical JSON form of ``config``.

    Postconditions:
        Identical configurations always produce identical checksums.
    """
    canonical = json.dumps(_to_plain(config), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
