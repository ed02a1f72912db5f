"""
Inventory Kernel

Shared foundation for FIFO inventory valuation:
- Normalized, immutable input records
- Typed exceptions with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
