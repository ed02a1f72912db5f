"""Source adapters: read tabular files into row dicts."""

from inventory_ingestion.adapters.base import SourceAdapter, SourceProbe
from inventory_ingestion.adapters.csv_adapter import CsvSourceAdapter
from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "CsvSourceAdapter",
    "SourceAdapter",
    "SourceProbe",
    "XlsxSourceAdapter",
]
