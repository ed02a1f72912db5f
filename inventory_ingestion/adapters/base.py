"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read_numbered() yields (row_number, dict) per non-empty
    source row, with the 1-based row number as seen in the source, for
    error reporting.
    SourceAdapter.probe() returns a quick snapshot: row count, columns, sample rows.

Architecture: inventory_ingestion/adapters. File I/O only, no engine imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading tabular source files into record dicts."""

    def read_numbered(
        self, source_path: Path, options: dict[str, Any]
    ) -> Iterator[tuple[int, dict[str, Any]]]:
        """Yield (source row number, record dict) pairs."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        """Quick probe: row count, columns, sample rows."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing a source (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]  # First 5 rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None
