"""
Mapping engine: pure transformation from raw source rows to typed records.

Each record kind has a fixed field schema (``RECORD_FIELDS``).  A sheet
mapping names the source column for each field; ``map_rows`` looks the
columns up (case- and whitespace-insensitive), coerces every cell to its
field type and builds the frozen record.  Rows that cannot be built are
dropped and reported as ``RowError`` values.  ZERO I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable

from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


class FieldType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing a raw cell to a target type."""

    success: bool
    value: Any = None
    error: str | None = None


@dataclass(frozen=True)
class RowError:
    """A source row that was filtered out, with where and why."""

    sheet: str
    row: int  # 1-based row number in the source
    column: str
    message: str
    raw_value: Any = None


@dataclass(frozen=True)
class FieldSpec:
    name: str
    field_type: FieldType
    required: bool = False


@dataclass(frozen=True)
class MappingOutcome:
    """Records built from one sheet plus the rows that were rejected."""

    records: tuple[Any, ...] = ()
    errors: tuple[RowError, ...] = ()
    skipped: int = 0  # Rows dropped on purpose, not errors (e.g. zero shrinkage)


# -----------------------------------------------------------------------------
# Coercion (pure)
# -----------------------------------------------------------------------------

_EXCEL_EPOCH = date(1899, 12, 30)
_MAX_EXCEL_SERIAL = 2958465  # 9999-12-31

_SHORT_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})\s+([A-Za-z]{3}),?\s+(\d{4})$")
_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_NUMERIC = re.compile(r"^\d+(\.\d+)?$")
_NUMBER_NOISE = re.compile(r"[$€,\s]")
_ACCOUNTING_NEGATIVE = re.compile(r"^\((.*)\)$")  # "(40)" means -40

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    "ene": 1, "abr": 4, "ago": 8, "dic": 12,
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    s = _NUMBER_NOISE.sub("", str(value))
    negate = False
    match = _ACCOUNTING_NEGATIVE.match(s)
    if match:
        s, negate = match.group(1), True
        if s.startswith(("-", "+")):
            return None
    if s in ("", "-"):
        return None
    try:
        result = Decimal(s)
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return -result if negate else result


def _from_excel_serial(serial: Decimal) -> date | None:
    if not 1 <= serial <= _MAX_EXCEL_SERIAL:
        return None
    return _EXCEL_EPOCH + timedelta(days=int(serial))


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_date_string(s: str) -> date | None:
    m = _SHORT_US_DATE.match(s)
    if m:
        month, day, year = m.groups()
        return _safe_date(2000 + int(year), int(month), int(day))

    m = _DAY_MONTH_YEAR.match(s)
    if m:
        day, month_name, year = m.groups()
        month = _MONTHS.get(month_name.lower())
        if month is None:
            return None
        return _safe_date(int(year), month, int(day))

    m = _ISO_PREFIX.match(s)
    if m:
        year, month, day = m.groups()
        return _safe_date(int(year), int(month), int(day))

    if _NUMERIC.match(s):
        return _from_excel_serial(Decimal(s))

    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def coerce_value(value: Any, field_type: FieldType) -> CoercionResult:
    """
    Coerce a raw cell to the target type. Pure function.

    Blank cells coerce successfully to ``None``; the caller decides whether
    the field is required.  Numbers tolerate currency symbols, thousands
    separators, spaces and accounting parentheses (the sign is not kept).
    Dates accept date/datetime cells, Excel serial numbers, ISO strings
    (time part ignored), ``M/D/YY``, ``D Mon, YYYY`` (English or Spanish
    month abbreviations) and a few slash-separated layouts.
    """
    if _is_blank(value):
        return CoercionResult(success=True, value=None)

    if field_type == FieldType.STRING:
        return CoercionResult(success=True, value=str(value).strip())

    if field_type == FieldType.DECIMAL:
        d = _to_decimal(value)
        if d is None:
            return CoercionResult(success=False, error=f"Cannot coerce to decimal: {value!r}")
        return CoercionResult(success=True, value=d)

    if field_type == FieldType.INTEGER:
        d = _to_decimal(value)
        if d is None or d != d.to_integral_value():
            return CoercionResult(success=False, error=f"Cannot coerce to integer: {value!r}")
        return CoercionResult(success=True, value=int(d))

    if field_type == FieldType.DATE:
        if isinstance(value, datetime):
            return CoercionResult(success=True, value=value.date())
        if isinstance(value, date):
            return CoercionResult(success=True, value=value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            parsed = _from_excel_serial(Decimal(str(value)))
        else:
            parsed = _parse_date_string(str(value).strip())
        if parsed is None:
            return CoercionResult(success=False, error=f"Cannot parse date: {value!r}")
        return CoercionResult(success=True, value=parsed)

    return CoercionResult(success=False, error=f"Unsupported field_type: {field_type}")


# -----------------------------------------------------------------------------
# Record schemas
# -----------------------------------------------------------------------------

S, I, D, T = FieldType.STRING, FieldType.INTEGER, FieldType.DECIMAL, FieldType.DATE

RECORD_FIELDS: Mapping[str, tuple[FieldSpec, ...]] = {
    "products": (
        FieldSpec("code", I, required=True),
        FieldSpec("product_class", S),
        FieldSpec("name", S),
        FieldSpec("description", S),
        FieldSpec("unit_of_measure", S),
        FieldSpec("box_factor", D),
        FieldSpec("pallet_factor", D),
        FieldSpec("unit_cost", D),
        FieldSpec("list_price", D),
    ),
    "purchases": (
        FieldSpec("number", I, required=True),
        FieldSpec("purchase_date", T, required=True),
        FieldSpec("supplier", S),
        FieldSpec("product_code", I, required=True),
        FieldSpec("product_name", S),
        FieldSpec("description", S),
        FieldSpec("unit_price", D),
        FieldSpec("currency", S),
        FieldSpec("quantity", D),
        FieldSpec("packaging", S),
        FieldSpec("total_amount", D, required=True),
        FieldSpec("exchange_rate", D),
        FieldSpec("units", D),
    ),
    "receptions": (
        FieldSpec("number", I, required=True),
        FieldSpec("reception_date", T, required=True),
        FieldSpec("supplier", S),
        FieldSpec("product_code", I, required=True),
        FieldSpec("product_name", S),
        FieldSpec("description", S),
        FieldSpec("quantity", D),
        FieldSpec("packaging", S),
        FieldSpec("units", D),
        FieldSpec("unit_cost", D),
    ),
    "sales": (
        FieldSpec("sale_id", S),
        FieldSpec("sale_date", T),
        FieldSpec("product_code", I, required=True),
        FieldSpec("product_name", S),
        FieldSpec("description", S),
        FieldSpec("quantity", D, required=True),
        FieldSpec("unit_of_measure", S),
        FieldSpec("unit_price", D),
        FieldSpec("total_units", D),
    ),
    "shrinkage": (
        FieldSpec("shrinkage_date", T, required=True),
        FieldSpec("entity", S),
        FieldSpec("product_code", I, required=True),
        FieldSpec("product_name", S),
        FieldSpec("description", S),
        FieldSpec("quantity", D, required=True),
        FieldSpec("unit_of_measure", S),
    ),
}

del S, I, D, T


class _Skip(Exception):
    """Raised by a builder for rows that are dropped without an error."""


class _Reject(Exception):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


_ZERO = Decimal("0")


def _units_or_quantity(v: dict[str, Any]) -> Decimal:
    # A missing or zero units column falls back to the packaged quantity
    return v.get("units") or v.get("quantity") or _ZERO


def _build_product(v: dict[str, Any], row: int) -> Product:
    name = v.get("name") or ""
    description = v.get("description") or ""
    if not name and not description:
        raise _Reject("name", "product has neither name nor description")
    return Product(
        code=v["code"],
        name=name or description,
        description=description or name,
        product_class=v.get("product_class"),
        unit_of_measure=v.get("unit_of_measure") or "u",
        box_factor=v.get("box_factor"),
        pallet_factor=v.get("pallet_factor"),
        unit_cost=v.get("unit_cost"),
        list_price=v.get("list_price"),
    )


def _build_purchase(v: dict[str, Any], row: int) -> Purchase:
    return Purchase(
        number=v["number"],
        purchase_date=v["purchase_date"],
        supplier=v.get("supplier") or "",
        product_code=v["product_code"],
        total_amount=v["total_amount"],
        units=_units_or_quantity(v),
        product_name=v.get("product_name") or "",
        description=v.get("description") or "",
        unit_price=v.get("unit_price") or _ZERO,
        currency=v.get("currency") or "",
        quantity=v.get("quantity") or _ZERO,
        packaging=v.get("packaging") or "",
        exchange_rate=v.get("exchange_rate"),
    )


def _build_reception(v: dict[str, Any], row: int) -> Reception:
    units = _units_or_quantity(v)
    if units == _ZERO:
        raise _Reject("units", "reception has neither units nor quantity")
    return Reception(
        number=v["number"],
        reception_date=v["reception_date"],
        supplier=v.get("supplier") or None,
        product_code=v["product_code"],
        units=units,
        product_name=v.get("product_name") or "",
        description=v.get("description") or "",
        quantity=v.get("quantity") or _ZERO,
        packaging=v.get("packaging") or "",
        unit_cost=v.get("unit_cost"),
    )


def _build_sale_item(v: dict[str, Any], row: int) -> SaleItem:
    sale_id = v.get("sale_id") or f"ROW{row}"
    return SaleItem(
        id=f"{sale_id}-{row}",
        sale_id=sale_id,
        product_code=v["product_code"],
        quantity=v["quantity"],
        total_units=v.get("total_units") or _ZERO,
        unit_price=v.get("unit_price"),
        product_name=v.get("product_name") or "",
        description=v.get("description") or "",
        unit_of_measure=v.get("unit_of_measure") or "u",
        sale_date=v.get("sale_date"),
    )


def _build_shrinkage(v: dict[str, Any], row: int) -> Shrinkage:
    quantity = abs(v["quantity"])
    if quantity == _ZERO:
        raise _Skip()
    return Shrinkage(
        id=str(row),
        shrinkage_date=v["shrinkage_date"],
        product_code=v["product_code"],
        quantity=quantity,
        entity=v.get("entity") or "",
        product_name=v.get("product_name") or "",
        description=v.get("description") or "",
        unit_of_measure=v.get("unit_of_measure") or "u",
    )


_BUILDERS: Mapping[str, Callable[[dict[str, Any], int], Any]] = {
    "products": _build_product,
    "purchases": _build_purchase,
    "receptions": _build_reception,
    "sales": _build_sale_item,
    "shrinkage": _build_shrinkage,
}


# -----------------------------------------------------------------------------
# Apply mapping (pure)
# -----------------------------------------------------------------------------


def _norm_header(header: str) -> str:
    return re.sub(r"\s+", " ", str(header)).strip().lower()


def map_rows(
    kind: str,
    rows: Iterable[tuple[int, Mapping[str, Any]]],
    columns: Mapping[str, str],
    sheet: str,
) -> MappingOutcome:
    """
    Build typed records of ``kind`` from ``(row_number, row_dict)`` pairs.

    ``columns`` maps record field -> source header.  Fields without a
    configured column are treated as blank.  If a required field's column
    is absent from the source header, a single error is reported and no
    records are built.
    """
    if kind not in RECORD_FIELDS:
        raise ValueError(f"unknown record kind: {kind!r}")
    specs = RECORD_FIELDS[kind]
    build = _BUILDERS[kind]

    records: list[Any] = []
    errors: list[RowError] = []
    skipped = 0
    header_index: dict[str, str] | None = None

    for row_number, raw in rows:
        if header_index is None:
            header_index = {_norm_header(k): k for k in raw}
            missing = [
                columns.get(spec.name, spec.name)
                for spec in specs
                if spec.required
                and (spec.name not in columns
                     or _norm_header(columns[spec.name]) not in header_index)
            ]
            if missing:
                return MappingOutcome(errors=tuple(
                    RowError(sheet, row_number, header, "required column not found")
                    for header in missing
                ))

        values: dict[str, Any] = {}
        row_errors: list[RowError] = []
        for spec in specs:
            header = columns.get(spec.name)
            key = header_index.get(_norm_header(header)) if header else None
            raw_value = raw.get(key) if key is not None else None
            result = coerce_value(raw_value, spec.field_type)
            if not result.success:
                row_errors.append(RowError(sheet, row_number, header or spec.name,
                                           result.error or "invalid value", raw_value))
            elif result.value is None and spec.required:
                row_errors.append(RowError(sheet, row_number, header or spec.name,
                                           "missing required value", raw_value))
            else:
                values[spec.name] = result.value

        if row_errors:
            errors.extend(row_errors)
            continue

        try:
            records.append(build(values, row_number))
        except _Skip:
            skipped += 1
        except _Reject as exc:
            header = columns.get(exc.field, exc.field)
            errors.append(RowError(sheet, row_number, header, exc.message,
                                   values.get(exc.field)))

    return MappingOutcome(records=tuple(records), errors=tuple(errors), skipped=skipped)
