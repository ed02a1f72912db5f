"""
inventory_services -- Stateful FIFO valuation over the pure engines.

Architecture position:
    Services sit above inventory_engines and inventory_kernel.  They do not
    read files; inventory_ingestion produces the records they consume.
"""

from inventory_services.fifo_service import (
    DepletionResult,
    EnginePhase,
    FIFOEngine,
    FIFOState,
    InventoryValuation,
    ProductExplanation,
    ProductValuation,
)
from inventory_services.pipeline import FIFORunResult, run_fifo_valuation

__all__ = [
    "DepletionResult",
    "EnginePhase",
    "FIFOEngine",
    "FIFOState",
    "InventoryValuation",
    "ProductExplanation",
    "ProductValuation",
    "FIFORunResult",
    "run_fifo_valuation",
]
