"""
Typed exception hierarchy for the inventory valuation kernel.

Data-quality problems found while valuing inventory (missing cost,
insufficient stock) are NOT exceptions: the FIFO engine records them as
warnings and continues with a documented fallback value.  The classes
below cover the remaining failure categories: misuse of the engine
lifecycle, invalid configuration, and unreadable or structurally broken
source files.

Every class carries a ``code`` class attribute (machine-readable) and stores
its context as attributes so it survives logging and serialization.

    InventoryKernelError (base)
    |
    +-- EnginePhaseError
    |
    +-- ConfigError
    |
    +-- IngestionError
        +-- SheetNotFoundError
        +-- UnsupportedSourceError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Engine          | ENGINE_PHASE_VIOLATION      | Receptions ingested after consumption
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_INVALID              | Unknown option or out-of-range value
----------------|-----------------------------|-----------------------------------------
Ingestion       | INGESTION_ERROR             | Source file unreadable
                | SHEET_NOT_FOUND             | Required sheet/file missing
                | UNSUPPORTED_SOURCE          | Unknown source format
"""


class InventoryKernelError(Exception):
    """Base exception for all inventory kernel errors."""

    code: str = "INVENTORY_KERNEL_ERROR"


class EnginePhaseError(InventoryKernelError):
    """An engine operation was called in the wrong lifecycle phase."""

    code: str = "ENGINE_PHASE_VIOLATION"

    def __init__(self, operation: str, phase: str):
        self.operation = operation
        self.phase = phase
        super().__init__(
            f"Operation {operation!r} is not allowed in engine phase {phase!r}"
        )


class ConfigError(InventoryKernelError):
    """Configuration value is missing or invalid."""

    code: str = "CONFIG_INVALID"

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Invalid configuration {key!r}: {message}")


class IngestionError(InventoryKernelError):
    """Source data could not be read."""

    code: str = "INGESTION_ERROR"

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class SheetNotFoundError(IngestionError):
    """A required sheet (or per-sheet CSV file) is missing from the source."""

    code: str = "SHEET_NOT_FOUND"

    def __init__(self, source: str, sheet: str, available: tuple[str, ...] = ()):
        self.sheet = sheet
        self.available = available
        super().__init__(
            source,
            f"required sheet {sheet!r} not found (available: {', '.join(available) or 'none'})",
        )


class UnsupportedSourceError(IngestionError):
    """Source format is not one of the supported adapters."""

    code: str = "UNSUPPORTED_SOURCE"

    def __init__(self, source: str, source_format: str):
        self.source_format = source_format
        super().__init__(source, f"unsupported source format {source_format!r}")
