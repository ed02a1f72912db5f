"""
inventory_config -- configuration for a valuation run.

Responsibility:
    Load the YAML file that sets engine policy (purchase match window,
    outgoing ordering, date checks) and the workbook column mapping, and
    expose it as frozen dataclasses.  Callers that have no file use
    ``default_config()``.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` from reading the file.
    - ``ConfigError`` for unknown keys or invalid values.
"""

from inventory_config.loader import (
    compute_checksum,
    default_config,
    load_config,
    parse_config,
    parse_engine_settings,
    parse_ingestion_config,
    parse_sheet_mapping,
)
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

__all__ = [
    "compute_checksum",
    "default_config",
    "load_config",
    "parse_config",
    "parse_engine_settings",
    "parse_ingestion_config",
    "parse_sheet_mapping",
    "DEFAULT_SHEETS",
    "RECORD_KINDS",
    "EngineSettings",
    "IngestionConfig",
    "OutgoingOrder",
    "SheetMapping",
    "SourceFormat",
    "ValuationConfig",
]
