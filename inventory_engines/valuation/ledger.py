"""
inventory_engines.valuation.ledger -- Per-product FIFO lot ledger.

Responsibility:
    Own the mutable inventory state: for each product code, the cost lots
    created from receptions, in arrival order.  Expose them in FIFO
    consumption order and deplete them on request.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The FIFO engine in
    ``inventory_services`` is the only writer.

Invariants enforced:
    - ``0 <= available <= initial`` for every lot at all times; ``available``
      only ever decreases.
    - FIFO order is entry date ascending; equal dates keep arrival order
      (stable sort), so results do not depend on how callers ordered
      receptions that share a date.
    - Lots are never removed.  Depleted lots stay for audit and are skipped
      by later draws.
    - Mutable entries never leave this module: reads return frozen ``Lot``
      snapshots.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid5

from inventory_engines.valuation.cost_lot import Lot, LotDraw
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.valuation.ledger")

# Lot ids are derived from origin and arrival sequence so reruns are reproducible.
_LOT_NAMESPACE = UUID("6f1c2a8e-3b47-5d90-a1e2-4c7b9d0f8e31")

_ZERO = Decimal("0")


@dataclass
class _LotEntry:
    """Internal mutable lot entry (not exposed externally)."""

    lot_id: UUID
    product_code: int
    entry_date: date
    initial_quantity: Decimal
    available_quantity: Decimal
    unit_cost: Decimal
    origin_ref: str
    supplier: str | None

    def snapshot(self) -> Lot:
        return Lot(
            lot_id=self.lot_id,
            product_code=self.product_code,
            entry_date=self.entry_date,
            initial_quantity=self.initial_quantity,
            available_quantity=self.available_quantity,
            unit_cost=self.unit_cost,
            origin_ref=self.origin_ref,
            supplier=self.supplier,
        )


class LotLedger:
    """
    Cost lots grouped by product code.

    Contract:
        ``add_lot`` appends; ``draw`` depletes in FIFO order and returns what
        it took; every other method is a read that returns snapshots or
        totals computed from current state.
    Non-goals:
        - Does not resolve costs or emit warnings; the engine does that.
        - Does not support LIFO or specific identification.
    """

    def __init__(self) -> None:
        self._lots: dict[int, list[_LotEntry]] = {}
        self._sequence = 0

    # =========================================================================
    # Writes
    # =========================================================================

    def add_lot(
        self,
        product_code: int,
        entry_date: date,
        quantity: Decimal,
        unit_cost: Decimal,
        origin_ref: str,
        supplier: str | None = None,
    ) -> Lot:
        """
        Append a new lot with ``available == initial == quantity``.

        ``unit_cost`` is taken as resolved; a negative cost (credit notes,
        returns priced below zero) is kept on the lot.
        """
        if quantity <= 0:
            raise ValueError(f"Lot quantity must be positive, got {quantity}")

        self._sequence += 1
        entry = _LotEntry(
            lot_id=uuid5(_LOT_NAMESPACE, f"{origin_ref}:{product_code}:{self._sequence}"),
            product_code=product_code,
            entry_date=entry_date,
            initial_quantity=quantity,
            available_quantity=quantity,
            unit_cost=unit_cost,
            origin_ref=origin_ref,
            supplier=supplier,
        )
        self._lots.setdefault(product_code, []).append(entry)

        logger.debug("ledger_lot_added", extra={
            "lot_id": str(entry.lot_id),
            "product_code": product_code,
            "entry_date": entry_date.isoformat(),
            "quantity": str(quantity),
            "unit_cost": str(unit_cost),
            "origin_ref": origin_ref,
        })
        return entry.snapshot()

    def draw(self, product_code: int, quantity: Decimal) -> tuple[list[LotDraw], Decimal]:
        """
        Deplete lots of ``product_code`` oldest first.

        Preconditions:
            quantity >= 0.

        Postconditions:
            Returns the draws (one per lot actually touched, never a zero
            quantity draw) and the unmet remainder.  The sum of draw
            quantities plus the remainder equals ``quantity``.
        """
        remaining = quantity
        draws: list[LotDraw] = []

        for entry in self._fifo_entries(product_code):
            if remaining <= 0:
                break
            if entry.available_quantity <= 0:
                continue

            taken = min(entry.available_quantity, remaining)
            entry.available_quantity -= taken
            remaining -= taken
            draws.append(LotDraw(lot=entry.snapshot(), quantity=taken))

        return draws, remaining

    # =========================================================================
    # Reads
    # =========================================================================

    def lots(self, product_code: int) -> tuple[Lot, ...]:
        """Snapshots of a product's lots in FIFO order."""
        return tuple(entry.snapshot() for entry in self._fifo_entries(product_code))

    def all_lots(self) -> tuple[Lot, ...]:
        """Snapshots of every lot, grouped by product in first-seen order."""
        return tuple(
            entry.snapshot()
            for code in self._lots
            for entry in self._fifo_entries(code)
        )

    def product_codes(self) -> tuple[int, ...]:
        return tuple(self._lots)

    def has_lots(self, product_code: int) -> bool:
        return bool(self._lots.get(product_code))

    def lot_count(self) -> int:
        return sum(len(entries) for entries in self._lots.values())

    def mean_unit_cost(self, product_code: int) -> Decimal:
        """Arithmetic mean of unit costs over ALL lots of the product (0 if none)."""
        entries = self._lots.get(product_code, [])
        if not entries:
            return _ZERO
        return sum((e.unit_cost for e in entries), _ZERO) / len(entries)

    def available_quantity(self, product_code: int) -> Decimal:
        return sum(
            (e.available_quantity for e in self._available_entries(product_code)),
            _ZERO,
        )

    def available_value(self, product_code: int) -> Decimal:
        return sum(
            (e.available_quantity * e.unit_cost for e in self._available_entries(product_code)),
            _ZERO,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _fifo_entries(self, product_code: int) -> list[_LotEntry]:
        # sorted() is stable: equal entry dates keep arrival order
        return sorted(self._lots.get(product_code, []), key=lambda e: e.entry_date)

    def _available_entries(self, product_code: int) -> Iterator[_LotEntry]:
        return (e for e in self._lots.get(product_code, []) if e.available_quantity > 0)
