"""
inventory_services.pipeline -- One-call FIFO valuation of a dataset.

Builds a FIFOEngine, ingests receptions, consumes outgoing events under the
configured ordering policy and collects the results the reporting layer
needs.  The caller supplies already-normalized records.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from inventory_config.schema import EngineSettings
from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_services.fifo_service import FIFOEngine, FIFOState, InventoryValuation

logger = get_logger("services.pipeline")


@dataclass(frozen=True)
class FIFORunResult:
    """Everything a valuation run produces."""

    processed_items: tuple[SaleItem, ...]
    processed_shrinkage: tuple[Shrinkage, ...]
    state: FIFOState
    inventory: InventoryValuation
    cogs: Decimal
    shrinkage_cost: Decimal
    engine: FIFOEngine  # Kept for explain() drill-downs

    @property
    def inventory_value(self) -> Decimal:
        return self.inventory.total


def run_fifo_valuation(
    products: Sequence[Product],
    purchases: Sequence[Purchase],
    receptions: Sequence[Reception],
    sale_items: Sequence[SaleItem],
    shrinkage: Sequence[Shrinkage],
    settings: EngineSettings | None = None,
    run_id: str | None = None,
) -> FIFORunResult:
    """Value one dataset end to end."""
    run_id = run_id or str(uuid4())
    with LogContext.bind(run_id=run_id):
        start = time.monotonic()
        logger.info("fifo_run_started", extra={
            "products": len(products),
            "purchases": len(purchases),
            "receptions": len(receptions),
            "sale_items": len(sale_items),
            "shrinkage_records": len(shrinkage),
        })

        engine = FIFOEngine(products, purchases, settings)
        engine.ingest_receptions(receptions)
        processed_shrinkage, processed_items = engine.consume_outgoing(shrinkage, sale_items)

        result = FIFORunResult(
            processed_items=tuple(processed_items),
            processed_shrinkage=tuple(processed_shrinkage),
            state=engine.get_state(),
            inventory=engine.get_inventory_value(),
            cogs=engine.get_cogs(),
            shrinkage_cost=engine.get_shrinkage_cost(),
            engine=engine,
        )

        logger.info("fifo_run_completed", extra={
            "lots": len(result.state.lots),
            "consumptions": len(result.state.consumptions),
            "warnings": len(result.state.warnings),
            "inventory_value": str(result.inventory_value),
            "cogs": str(result.cogs),
            "shrinkage_cost": str(result.shrinkage_cost),
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
        })
        return result
