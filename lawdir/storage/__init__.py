"""
Avvo Lawyers Scraper - Run Storage

Append-only dataset sink, key-value store for the diagnostic snapshot and
run statistics, and the CSV/JSON exporter.
"""

from .dataset import Dataset
from .export import DatasetExporter
from .key_value import KeyValueStore

__all__ = ['Dataset', 'DatasetExporter', 'KeyValueStore']
