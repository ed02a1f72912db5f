"""
Dataset loader: source file -> typed records for one valuation run.

Orchestrates the source adapters and the mapping engine under an
``IngestionConfig``.  XLSX sources are one workbook holding a sheet per
record kind; CSV sources are a directory holding one ``<sheet>.csv`` file
per record kind.  ``probe_dataset`` previews the same sheets without mapping.

Failure modes:
    - Unknown source format -> UnsupportedSourceError.
    - Unreadable file or directory -> IngestionError.
    - Required sheet absent -> SheetNotFoundError.  Optional sheets that are
      absent load as empty.
    - Bad rows are never raised: they are filtered and returned in
      ``Dataset.errors``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from inventory_config.schema import IngestionConfig, SheetMapping, SourceFormat
from inventory_ingestion.adapters.base import SourceAdapter, SourceProbe
from inventory_ingestion.adapters.csv_adapter import CsvSourceAdapter
from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter, find_sheet_name
from inventory_ingestion.mapping.engine import MappingOutcome, RowError, map_rows
from inventory_kernel.domain.records import (
    Product,
    Purchase,
    Reception,
    SaleItem,
    Shrinkage,
)
from inventory_kernel.exceptions import (
    IngestionError,
    SheetNotFoundError,
    UnsupportedSourceError,
)
from inventory_kernel.logging_config import LogContext, get_logger

logger = get_logger("ingestion.dataset_loader")


@dataclass(frozen=True)
class Dataset:
    """Typed records from one source, plus the rows that were filtered out."""

    products: tuple[Product, ...] = ()
    purchases: tuple[Purchase, ...] = ()
    receptions: tuple[Reception, ...] = ()
    sale_items: tuple[SaleItem, ...] = ()
    shrinkage: tuple[Shrinkage, ...] = ()
    errors: tuple[RowError, ...] = ()
    sheets: tuple[str, ...] = ()  # Sheet names found in the source


@dataclass(frozen=True)
class _SheetSource:
    """Where one record kind was found and how its adapter should read it."""

    kind: str
    mapping: SheetMapping
    sheet: str  # Actual name in the source
    file: Path
    adapter: SourceAdapter
    options: dict[str, Any]


def _sheet_options(mapping: SheetMapping, sheet_name: str) -> dict[str, Any]:
    return {
        "sheet": sheet_name,
        "header_row": mapping.header_row,
        "skip_rows": mapping.skip_rows,
    }


def _csv_files(directory: Path) -> dict[str, Path]:
    return {p.stem: p for p in sorted(directory.glob("*.csv")) if p.is_file()}


def _locate_sheets(
    source: Path,
    config: IngestionConfig,
    *,
    strict: bool = True,
) -> tuple[list[str], list[_SheetSource]]:
    """
    Resolve every configured record kind to a sheet of ``source``.

    With ``strict`` a missing required sheet raises SheetNotFoundError;
    otherwise missing sheets are only logged and left out.
    """
    adapter: SourceAdapter
    if config.source_format == SourceFormat.XLSX:
        adapter = XlsxSourceAdapter()
        names = adapter.sheet_names(source)
        files = dict.fromkeys(names, source)
    elif config.source_format == SourceFormat.CSV:
        if not source.is_dir():
            raise IngestionError(str(source), "CSV source must be a directory of <sheet>.csv files")
        adapter = CsvSourceAdapter()
        files = _csv_files(source)
        names = list(files)
    else:
        raise UnsupportedSourceError(str(source), str(config.source_format))

    located: list[_SheetSource] = []
    for kind, mapping in config.sheets.items():
        actual = find_sheet_name(names, mapping.sheet)
        if actual is None:
            if strict and mapping.required:
                raise SheetNotFoundError(str(source), mapping.sheet, tuple(names))
            logger.info("sheet_missing", extra={
                "kind": kind,
                "sheet": mapping.sheet,
                "required": mapping.required,
            })
            continue
        if config.source_format == SourceFormat.XLSX:
            options = _sheet_options(mapping, actual)
        else:
            options = {"skip_rows": mapping.skip_rows + mapping.header_row}
        located.append(_SheetSource(kind, mapping, actual, files[actual], adapter, options))
    return names, located


def _map_sheet(located: _SheetSource) -> MappingOutcome:
    try:
        rows = list(located.adapter.read_numbered(located.file, located.options))
    except (OSError, UnicodeDecodeError) as exc:
        raise IngestionError(str(located.file), f"cannot read sheet {located.sheet!r}: {exc}") from exc
    return map_rows(located.kind, rows, located.mapping.columns, located.sheet)


def _existing(path: str | Path) -> Path:
    source = Path(path)
    if not source.exists():
        raise IngestionError(str(source), "source does not exist")
    return source


def probe_dataset(path: str | Path, config: IngestionConfig) -> dict[str, SourceProbe]:
    """
    Preview each configured sheet found in ``path``: row count, columns and
    sample rows, keyed by record kind.  Sheets that are absent are left out
    instead of raising, so a layout can be checked before a full load.
    """
    source = _existing(path)
    with LogContext.bind(source_file=str(source)):
        _, located = _locate_sheets(source, config, strict=False)
        probes = {s.kind: s.adapter.probe(s.file, s.options) for s in located}
        logger.info("dataset_probed", extra={"sheets": sorted(probes)})
        return probes


def load_dataset(path: str | Path, config: IngestionConfig) -> Dataset:
    """
    Read every configured sheet of ``path`` into typed records.

    Sheets not listed in ``config.sheets`` are ignored.
    """
    source = _existing(path)

    with LogContext.bind(source_file=str(source)):
        start = time.monotonic()
        names, located = _locate_sheets(source, config)
        outcomes = {s.kind: _map_sheet(s) for s in located}

        errors: list[RowError] = []
        for kind, outcome in outcomes.items():
            errors.extend(outcome.errors)
            logger.info("sheet_mapped", extra={
                "kind": kind,
                "records": len(outcome.records),
                "errors": len(outcome.errors),
                "skipped": outcome.skipped,
            })

        def records(kind: str) -> tuple[Any, ...]:
            outcome = outcomes.get(kind)
            return outcome.records if outcome is not None else ()

        dataset = Dataset(
            products=records("products"),
            purchases=records("purchases"),
            receptions=records("receptions"),
            sale_items=records("sales"),
            shrinkage=records("shrinkage"),
            errors=tuple(errors),
            sheets=tuple(names),
        )

        if errors:
            logger.warning("dataset_row_errors", extra={"error_count": len(errors)})
        logger.info("dataset_loaded", extra={
            "products": len(dataset.products),
            "purchases": len(dataset.purchases),
            "receptions": len(dataset.receptions),
            "sale_items": len(dataset.sale_items),
            "shrinkage_records": len(dataset.shrinkage),
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
        })
        return dataset
