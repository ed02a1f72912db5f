"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding, quoting, skip_rows.
Handles BOM via utf-8-sig when encoding is utf-8. Streams rows and skips
rows whose cells are all blank.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from inventory_ingestion.adapters.base import SourceProbe


_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _clean(row: dict[str | None, Any]) -> dict[str, Any]:
    # DictReader puts overflow cells under a None key
    return {
        str(k).strip(): (v.strip() if isinstance(v, str) else v)
        for k, v in row.items()
        if k is not None
    }


class CsvSourceAdapter:
    """Read CSV files as one dict per row. Streams; does not load entire file."""

    def read_numbered(
        self, source_path: Path, options: dict[str, Any]
    ) -> Iterator[tuple[int, dict[str, Any]]]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))
        quoting = _get_quoting(options)

        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter, quoting=quoting)
            for raw in reader:
                row = _clean(raw)
                if not any(v not in ("", None) for v in row.values()):
                    continue
                # reader.line_num counts physical lines read after skip_rows
                yield skip_rows + reader.line_num, row

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))
        quoting = _get_quoting(options)
        sample_size = 5

        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter, quoting=quoting)
            columns_tuple = tuple(c.strip() for c in (reader.fieldnames or ()))
            sample: list[dict[str, Any]] = []
            count = 0
            for raw in reader:
                count += 1
                if len(sample) < sample_size:
                    sample.append(_clean(raw))

        return SourceProbe(
            row_count=count,
            columns=columns_tuple,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
