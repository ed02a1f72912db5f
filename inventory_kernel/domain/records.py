"""
inventory_kernel.domain.records -- Normalized input records.

Responsibility:
    Frozen dataclasses for the typed rows the FIFO engine consumes: the
    product catalog, purchases, receptions (stock in), sale line items and
    shrinkage (stock out).  Ingestion produces these; the engine reads them
    and returns decorated copies of the outgoing records.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - All quantities and amounts are ``Decimal``.
    - Records are immutable; FIFO results are attached with
      ``dataclasses.replace`` and never by mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Product:
    """Catalog entry. Only used as a cost fallback and for warning labels."""

    code: int
    name: str
    description: str = ""
    product_class: str | None = None
    unit_of_measure: str = "u"
    box_factor: Decimal | None = None
    pallet_factor: Decimal | None = None
    unit_cost: Decimal | None = None
    list_price: Decimal | None = None

    @property
    def label(self) -> str:
        return self.description or self.name or f"Product {self.code}"


@dataclass(frozen=True, slots=True)
class Purchase:
    """Procurement record, used to resolve the unit cost of a reception."""

    number: int
    purchase_date: date
    supplier: str
    product_code: int
    total_amount: Decimal
    units: Decimal
    product_name: str = ""
    description: str = ""
    unit_price: Decimal = Decimal("0")
    currency: str = ""
    quantity: Decimal = Decimal("0")
    packaging: str = ""
    exchange_rate: Decimal | None = None


@dataclass(frozen=True, slots=True)
class Reception:
    """Physical stock-in event. ``units`` is the quantity in base units."""

    number: int
    reception_date: date
    supplier: str | None
    product_code: int
    units: Decimal
    product_name: str = ""
    description: str = ""
    quantity: Decimal = Decimal("0")
    packaging: str = ""
    purchase_number: int | None = None
    unit_cost: Decimal | None = None

    @property
    def reference(self) -> str:
        return f"RECEPTION-{self.number}"


@dataclass(frozen=True, slots=True)
class SaleItem:
    """
    Sale line item.

    ``quantity`` is the raw line quantity (may be negative on return lines);
    ``total_units`` is the quantity expressed in base units when the export
    carries it.  ``fifo_cost`` and ``gross_margin`` are filled by the engine.
    """

    id: str
    sale_id: str
    product_code: int
    quantity: Decimal
    total_units: Decimal = Decimal("0")
    unit_price: Decimal | None = None
    product_name: str = ""
    description: str = ""
    unit_of_measure: str = "u"
    sale_date: date | None = None
    fifo_cost: Decimal | None = None
    gross_margin: Decimal | None = None

    @property
    def reference(self) -> str:
        return f"SALE-{self.id}"


@dataclass(frozen=True, slots=True)
class Shrinkage:
    """Inventory loss (damage, theft, spoilage). ``quantity`` is positive."""

    id: str
    shrinkage_date: date
    product_code: int
    quantity: Decimal
    entity: str = ""
    product_name: str = ""
    description: str = ""
    unit_of_measure: str = "u"
    fifo_cost: Decimal | None = None

    @property
    def reference(self) -> str:
        return f"SHRINKAGE-{self.id}"
