"""
inventory_engines.valuation.cost_lot -- FIFO value objects.

Responsibility:
    Immutable value objects for the FIFO audit trail: lot snapshots,
    consumption records and data-quality warnings, plus the enums that
    classify them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The mutable lot state lives in ``inventory_engines.valuation.ledger``;
    everything here is a frozen snapshot safe to hand to callers.

Invariants enforced:
    - Lot snapshots satisfy ``0 <= available <= initial``.
    - A consumption record with ``lot_id is None`` is a virtual negative
      consumption (demand that exceeded available stock); its ``lot_ref``
      is the ``VIRTUAL_NEGATIVE_LOT`` sentinel.

Audit relevance:
    Each lot's ``origin_ref`` traces back to the reception that created it
    and each consumption's ``outgoing_ref`` to the sale or shrinkage line
    that drew from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

VIRTUAL_NEGATIVE_LOT = "VIRTUAL_NEGATIVE"


class OutgoingKind(str, Enum):
    """What drew stock out of a lot."""

    SALE = "SALE"
    SHRINKAGE = "SHRINKAGE"
    ADJUSTMENT = "ADJUSTMENT"


class WarningKind(str, Enum):
    """Data-quality signals recorded by the engine."""

    NEGATIVE_STOCK = "NEGATIVE_STOCK"  # Outgoing event exceeded available lots
    NO_COST = "NO_COST"  # Reception with no derivable unit cost
    INCONSISTENT_DATE = "INCONSISTENT_DATE"  # Outgoing event predates the lot it drew from


@dataclass(frozen=True, slots=True)
class Lot:
    """Snapshot of a cost lot at the time it was read from the ledger."""

    lot_id: UUID
    product_code: int
    entry_date: date
    initial_quantity: Decimal
    available_quantity: Decimal
    unit_cost: Decimal
    origin_ref: str  # "RECEPTION-<n>"
    supplier: str | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.available_quantity <= self.initial_quantity):
            raise ValueError(
                f"Lot {self.lot_id} available {self.available_quantity} "
                f"outside [0, {self.initial_quantity}]"
            )

    @property
    def consumed_quantity(self) -> Decimal:
        return self.initial_quantity - self.available_quantity

    @property
    def available_value(self) -> Decimal:
        return self.available_quantity * self.unit_cost

    @property
    def is_depleted(self) -> bool:
        return self.available_quantity <= 0


@dataclass(frozen=True, slots=True)
class ConsumptionRecord:
    """One draw of an outgoing event against one lot (or the virtual source)."""

    consumption_id: UUID
    lot_id: UUID | None
    product_code: int
    outgoing_date: date | None
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    kind: OutgoingKind
    outgoing_ref: str

    @property
    def is_virtual(self) -> bool:
        """True for the synthetic record covering a stock shortfall."""
        return self.lot_id is None

    @property
    def lot_ref(self) -> str:
        if self.lot_id is None:
            return VIRTUAL_NEGATIVE_LOT
        return str(self.lot_id)


@dataclass(frozen=True, slots=True)
class FIFOWarning:
    """Non-fatal data-quality signal."""

    kind: WarningKind
    product_code: int
    product_label: str
    message: str
    event_date: date | None
    reference: str


@dataclass(frozen=True, slots=True)
class LotDraw:
    """Quantity taken from one lot by a single depletion pass."""

    lot: Lot  # Snapshot after the draw
    quantity: Decimal

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.lot.unit_cost
