"""Mapping engine: raw source rows -> typed inventory records."""

from inventory_ingestion.mapping.engine import (
    RECORD_FIELDS,
    CoercionResult,
    FieldSpec,
    FieldType,
    MappingOutcome,
    RowError,
    coerce_value,
    map_rows,
)

__all__ = [
    "RECORD_FIELDS",
    "CoercionResult",
    "FieldSpec",
    "FieldType",
    "MappingOutcome",
    "RowError",
    "coerce_value",
    "map_rows",
]
