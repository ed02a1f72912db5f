"""Ingestion services: load a whole source into a Dataset, or preview it."""

from inventory_ingestion.services.dataset_loader import Dataset, load_dataset, probe_dataset

__all__ = ["Dataset", "load_dataset", "probe_dataset"]
