"""
Export Pipeline - CSV/JSON Output of the Run Dataset

Turns the append-only JSONL dataset into files people open directly:
- flat CSV (list fields joined with "; ")
- pretty-printed JSON array
"""

import csv
import json
from datetime import datetime as dt
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..logging_config import get_logger


log = get_logger(__name__)

CSV_FIELDS = [
    "name", "rating", "reviewCount", "practiceAreas", "location", "phone",
    "email", "website", "yearsLicensed", "barAdmissions", "languages",
    "profileUrl", "bio", "education", "awards", "scrapedAt",
]
LIST_SEPARATOR = "; "


def flatten_for_csv(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten one dataset item into CSV cell values."""
    row: Dict[str, Any] = {}
    for key in CSV_FIELDS:
        value = item.get(key)
        if value is None:
            row[key] = ""
        elif isinstance(value, list):
            row[key] = LIST_SEPARATOR.join(str(v) for v in value)
        else:
            row[key] = value
    return row


class DatasetExporter:
    """
    Exports dataset items to CSV/JSON formats.
    """

    def __init__(self, output_dir: Union[str, Path] = "output"):
        """
        Initialize Dataset Exporter.

        Args:
            output_dir: Directory for output files (created if doesn't exist)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _filename(self, filename: Optional[str], ext: str) -> Path:
        if filename is None:
            timestamp = dt.now().strftime("%Y%m%d_%H%M%S")
            filename = f"lawyers_{timestamp}.{ext}"
        return self.output_dir / filename

    def to_csv(self, items: List[Dict[str, Any]], filename: Optional[str] = None) -> Path:
        """
        Export items to CSV with one row per lawyer.

        Args:
            items: Dataset items (camelCase dicts)
            filename: Output filename (auto-generated if None)

        Returns:
            Path to created CSV file
        """
        if not items:
            raise ValueError("No lawyers to export")

        csv_path = self._filename(filename, "csv")
        with open(csv_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for item in items:
                writer.writerow(flatten_for_csv(item))

        log.info(f"CSV exported: {csv_path} ({len(items)} lawyers)")
        return csv_path

    def to_json(self, items: List[Dict[str, Any]], filename: Optional[str] = None, pretty: bool = True) -> Path:
        """
        Export items to a JSON array.

        Args:
            items: Dataset items (camelCase dicts)
            filename: Output filename (auto-generated if None)
            pretty: Pretty-print JSON with indentation

        Returns:
            Path to created JSON file
        """
        if not items:
            raise ValueError("No lawyers to export")

        json_path = self._filename(filename, "json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False, indent=2 if pretty else None)

        log.info(f"JSON exported: {json_path} ({len(items)} lawyers)")
        return json_path
