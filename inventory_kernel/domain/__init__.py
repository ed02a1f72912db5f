"""Pure domain records for the inventory kernel."""

from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)

__all__ = [
    "Product",
    "Purchase",
    "Reception",
    "SaleItem",
    "Shrinkage",
]
