"""
inventory_engines.valuation.cost_resolution -- Unit cost for a reception.

Responsibility:
    Decide the unit cost of the lot a reception creates, using a strict
    fallback chain:

        1. unit cost on the reception itself (an explicit 0 counts);
        2. a purchase of the same product dated within the match window
           (inclusive) of the reception, with a positive unit count:
           ``total_amount / units``;
        3. the catalog default cost of the product, when set and non-zero;
        4. nothing -- the caller records a NO_COST warning and uses 0.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Deterministic purchase choice when several match: smallest absolute
      day distance, then earliest purchase date, then lowest purchase
      number.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from inventory_kernel.domain.records import Product, Purchase, Reception

DEFAULT_MATCH_WINDOW_DAYS = 7


class CostSource(str, Enum):
    """Which step of the fallback chain produced the cost."""

    RECEPTION = "reception"
    PURCHASE = "purchase"
    PRODUCT_DEFAULT = "product_default"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class CostResolution:
    """Outcome of resolving a reception's unit cost."""

    unit_cost: Decimal | None
    source: CostSource
    purchase_number: int | None = None

    @property
    def resolved(self) -> bool:
        return self.unit_cost is not None


class PurchaseCostIndex:
    """Purchases grouped by product code for date-window matching."""

    def __init__(self, purchases: Iterable[Purchase]):
        self._by_product: dict[int, list[Purchase]] = {}
        for purchase in purchases:
            self._by_product.setdefault(purchase.product_code, []).append(purchase)

    def __len__(self) -> int:
        return sum(len(p) for p in self._by_product.values())

    def match(
        self,
        reception: Reception,
        window_days: int = DEFAULT_MATCH_WINDOW_DAYS,
    ) -> Purchase | None:
        """Best purchase for the reception's product within ``window_days``."""
        candidates = [
            p
            for p in self._by_product.get(reception.product_code, ())
            if p.units > 0
            and abs((reception.reception_date - p.purchase_date).days) <= window_days
        ]
        if not candidates:
            return None
        return min(
            candidates,
            key=lambda p: (
                abs((reception.reception_date - p.purchase_date).days),
                p.purchase_date,
                p.number,
            ),
        )


def resolve_unit_cost(
    reception: Reception,
    purchases: PurchaseCostIndex,
    products: Mapping[int, Product],
    window_days: int = DEFAULT_MATCH_WINDOW_DAYS,
) -> CostResolution:
    """Apply the fallback chain to one reception."""
    if reception.unit_cost is not None:
        return CostResolution(reception.unit_cost, CostSource.RECEPTION)

    purchase = purchases.match(reception, window_days)
    if purchase is not None:
        return CostResolution(
            purchase.total_amount / purchase.units,
            CostSource.PURCHASE,
            purchase_number=purchase.number,
        )

    product = products.get(reception.product_code)
    # A zero catalog cost means "not maintained", not "free"
    if product is not None and product.unit_cost:
        return CostResolution(product.unit_cost, CostSource.PRODUCT_DEFAULT)

    return CostResolution(None, CostSource.NONE)
