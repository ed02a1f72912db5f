"""
inventory_ingestion -- Read inventory workbooks into typed records.

Architecture position:
    Ingestion sits beside inventory_services.  It imports the kernel records
    and the config schema; nothing in the kernel, engines or services imports
    ingestion.
"""

from inventory_ingestion.mapping.engine import RowError, map_rows
from inventory_ingestion.services.dataset_loader import Dataset, load_dataset, probe_dataset

__all__ = ["Dataset", "RowError", "load_dataset", "map_rows", "probe_dataset"]
