"""
Valuation - Pure FIFO lot objects, the lot ledger and cost resolution.

The stateful FIFOEngine that drives these lives in
inventory_services.fifo_service.
"""

from inventory_engines.valuation.cost_lot import (
    VIRTUAL_NEGATIVE_LOT,
    ConsumptionRecord,
    FIFOWarning,
    Lot,
    LotDraw,
    OutgoingKind,
    WarningKind,
)
from inventory_engines.valuation.cost_resolution import (
    DEFAULT_MATCH_WINDOW_DAYS,
    CostResolution,
    CostSource,
    PurchaseCostIndex,
    resolve_unit_cost,
)
from inventory_engines.valuation.ledger import LotLedger

__all__ = [
    "VIRTUAL_NEGATIVE_LOT",
    "ConsumptionRecord",
    "FIFOWarning",
    "Lot",
    "LotDraw",
    "OutgoingKind",
    "WarningKind",
    "DEFAULT_MATCH_WINDOW_DAYS",
    "CostResolution",
    "CostSource",
    "PurchaseCostIndex",
    "resolve_unit_cost",
    "LotLedger",
]
