"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing one valuation run: engine policy knobs and
the column mapping used to read a workbook export.  Instances are built by
``inventory_config.loader`` from YAML or by ``default_config()``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class OutgoingOrder(str, Enum):
    """How shrinkage and sales are sequenced against the lots."""

    TWO_PASS = "two_pass"  # All shrinkage first, then sales in input order
    CHRONOLOGICAL = "chronological"  # One date-sorted queue of outgoing events


class SourceFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"  # Directory holding one <sheet>.csv per record kind


RECORD_KINDS: tuple[str, ...] = (
    "products",
    "purchases",
    "receptions",
    "sales",
    "shrinkage",
)


@dataclass(frozen=True)
class EngineSettings:
    """Policy knobs for the FIFO engine."""

    purchase_match_window_days: int = 7
    outgoing_order: OutgoingOrder = OutgoingOrder.TWO_PASS
    flag_inconsistent_dates: bool = False


@dataclass(frozen=True)
class SheetMapping:
    """Where one record kind lives in the source and how its columns are named."""

    kind: str
    sheet: str
    columns: Mapping[str, str]  # record field -> source column header
    header_row: int = 0  # 0-based, counted after skip_rows
    skip_rows: int = 0
    required: bool = True


@dataclass(frozen=True)
class IngestionConfig:
    source_format: SourceFormat = SourceFormat.XLSX
    sheets: Mapping[str, SheetMapping] = field(default_factory=dict)


@dataclass(frozen=True)
class ValuationConfig:
    """Complete configuration for one valuation run."""

    engine: EngineSettings = field(default_factory=EngineSettings)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)


# Default layout of the workbook export (sheet and header names as exported).
DEFAULT_SHEETS: Mapping[str, SheetMapping] = MappingProxyType({
    "products": SheetMapping(
        kind="products",
        sheet="Productos",
        columns=MappingProxyType({
            "code": "Codigo",
            "product_class": "Clase",
            "name": "Producto",
            "description": "Descripcion",
            "unit_of_measure": "UM",
            "box_factor": "Caja",
            "pallet_factor": "Pallet",
            "unit_cost": "Costo",
            "list_price": "Precio",
        }),
    ),
    "purchases": SheetMapping(
        kind="purchases",
        sheet="Compras",
        columns=MappingProxyType({
            "number": "No",
            "purchase_date": "Fecha",
            "supplier": "Proveedor",
            "product_code": "Codigo",
            "product_name": "Producto",
            "description": "Descripcion",
            "unit_price": "Precio",
            "currency": "Moneda",
            "quantity": "Cantidad",
            "packaging": "Empaque",
            "total_amount": "Importe",
            "exchange_rate": "Tasa",
            "units": "Unidades",
        }),
    ),
    "receptions": SheetMapping(
        kind="receptions",
        sheet="Recepciones",
        columns=MappingProxyType({
            "number": "No",
            "reception_date": "Fecha",
            "supplier": "Proveedor",
            "product_code": "Codigo",
            "product_name": "Producto",
            "description": "Descripcion",
            "quantity": "Cantidad",
            "packaging": "Empaque",
            "units": "Unidades",
            "unit_cost": "Costo",
        }),
    ),
    "sales": SheetMapping(
        kind="sales",
        sheet="Ventas",
        columns=MappingProxyType({
            "sale_id": "Factura",
            "sale_date": "Fecha",
            "product_code": "Codigo",
            "product_name": "Producto",
            "description": "Descripcion",
            "quantity": "Cantidad",
            "unit_of_measure": "UM",
            "unit_price": "Precio",
            "total_units": "Unidades",
        }),
    ),
    "shrinkage": SheetMapping(
        kind="shrinkage",
        sheet="Mermas",
        columns=MappingProxyType({
            "shrinkage_date": "Fecha",
            "entity": "Entidad",
            "product_code": "Codigo",
            "product_name": "Producto",
            "description": "Descripcion",
            "quantity": "Cantidad",
            "unit_of_measure": "UM",
        }),
        required=False,
    ),
})
