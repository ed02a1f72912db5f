"""
Module: inventory_engines
Responsibility:
    Pure calculation layer for FIFO inventory valuation.  Holds the lot
    ledger, the value objects of the audit trail and the reception cost
    fallback chain.

Architecture position:
    Engines -- zero I/O.  May import inventory_kernel only.
    MUST NOT import inventory_services or inventory_ingestion.

Invariants enforced:
    - Purity: engines never call ``date.today()``; dates come from records.
    - Decimal-only arithmetic for quantities and costs.
    - Determinism: identical inputs always produce identical outputs,
      lot ids included.

Usage:
    from inventory_engines.valuation import LotLedger, PurchaseCostIndex
"""
