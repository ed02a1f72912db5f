"""
XLSX source adapter for inventory workbooks (products, purchases, receptions,
sales and shrinkage sheets in one file).

Supports:
  - sheet by index (0-based) or name; names match case-insensitively
  - explicit header row (0-based, after skip_rows)
  - skip_rows before header
  - normalizes cell values (strip strings, integral floats -> int,
    blank -> empty string); dates and datetimes are passed through untouched
"""

from __future__ import annotations

import re
import zipfile
from pathlib import Path
from typing import Any, Iterator

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from inventory_ingestion.adapters.base import SourceProbe
from inventory_kernel.exceptions import IngestionError, SheetNotFoundError


def _normalize_header_cell(value: Any) -> str:
    """Normalize a cell value for header key use."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(row: Any, col_idx: int) -> Any:
    """Get cell value from openpyxl row (0-based column index)."""
    try:
        cell = row[col_idx]
    except IndexError:
        return ""
    if cell is None:
        return ""
    v = cell.value
    if v is None:
        return ""
    if isinstance(v, bool):
        return v
    if isinstance(v, float):
        if v == int(v):
            return int(v)
        return v
    if isinstance(v, str):
        return v.strip()
    return v


def _column_count(row: Any) -> int:
    """Index one past the last non-empty header cell."""
    n = 0
    for c in range(len(row)):
        if _cell_value(row, c) != "":
            n = c + 1
    return max(n, 1)


def _headers(header_row: Any, ncols: int) -> list[str]:
    headers: list[str] = []
    for c in range(ncols):
        key = _normalize_header_cell(_cell_value(header_row, c)) or f"Column_{c + 1}"
        # Dedupe duplicate headers
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


def open_workbook(source_path: Path) -> Any:
    """Open a workbook read-only with cached formula values."""
    try:
        return openpyxl.load_workbook(source_path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise IngestionError(str(source_path), f"cannot open workbook: {exc}") from exc


def find_sheet_name(names: list[str], wanted: str) -> str | None:
    """Return the workbook's spelling of ``wanted``, matched case-insensitively."""
    target = wanted.strip().lower()
    for name in names:
        if name.strip().lower() == target:
            return name
    return None


class XlsxSourceAdapter:
    """
    Read .xlsx files as one dict per row, keyed by the header row.

    source_options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
      skip_rows: number of rows to skip at top of sheet before the header. Default: 0.
      header_row: 0-based row index (within the sheet after skip_rows) to use
        as header. Default: 0.
    """

    def sheet_names(self, source_path: Path) -> list[str]:
        wb = open_workbook(source_path)
        try:
            return list(wb.sheetnames)
        finally:
            wb.close()

    def read_numbered(
        self, source_path: Path, options: dict[str, Any]
    ) -> Iterator[tuple[int, dict[str, Any]]]:
        wb = open_workbook(source_path)
        try:
            sheet = self._get_sheet(wb, options, source_path)
            skip_rows = int(options.get("skip_rows", 0))
            hi = int(options.get("header_row", 0))

            rows = list(sheet.iter_rows(min_row=1 + skip_rows))
            if len(rows) <= hi:
                return

            ncols = _column_count(rows[hi])
            headers = _headers(rows[hi], ncols)

            for offset, row in enumerate(rows[hi + 1 :], start=hi + 2):
                vals = [_cell_value(row, c) for c in range(ncols)]
                if not any(v != "" for v in vals):
                    continue
                yield skip_rows + offset, dict(zip(headers, vals))
        finally:
            wb.close()

    def _get_sheet(self, wb: Any, options: dict[str, Any], source_path: Path) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            try:
                return wb.worksheets[sheet_ref]
            except IndexError:
                raise SheetNotFoundError(
                    str(source_path), str(sheet_ref), tuple(wb.sheetnames),
                ) from None
        name = find_sheet_name(list(wb.sheetnames), str(sheet_ref))
        if name is None:
            raise SheetNotFoundError(str(source_path), str(sheet_ref), tuple(wb.sheetnames))
        return wb[name]

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        wb = open_workbook(source_path)
        try:
            sheet = self._get_sheet(wb, options, source_path)
            skip_rows = int(options.get("skip_rows", 0))
            hi = int(options.get("header_row", 0))

            rows = list(sheet.iter_rows(min_row=1 + skip_rows, max_row=500))
            if len(rows) <= hi:
                return SourceProbe(row_count=0, columns=(), sample_rows=())

            ncols = _column_count(rows[hi])
            headers = _headers(rows[hi], ncols)
            sample = []
            for row in rows[hi + 1 : hi + 6]:
                vals = [_cell_value(row, c) for c in range(ncols)]
                if not any(v != "" for v in vals):
                    continue
                sample.append(dict(zip(headers, vals)))
            return SourceProbe(
                row_count=len(rows) - hi - 1,
                columns=tuple(headers),
                sample_rows=tuple(sample),
            )
        finally:
            wb.close()
