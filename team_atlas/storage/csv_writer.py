"""
CSV Writer for country datasets.

One row per team, with daily partitioning per country and append support.
"""

import csv
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import CacheConfig
from ..normalizer.schemas import CountryDataset

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "id", "name", "short_name", "city", "country", "founded", "stadium", "capacity",
    "latitude", "longitude", "league", "website", "colors", "achievements", "sources",
    "confidence", "last_updated", "is_fallback",
]


class CSVWriter:
    """
    CSV writer with per-country daily partitioning.

    File Structure:
        {export_dir}/{country_code}/YYYYMMDD.csv

    Features:
        - Header written once per new file
        - Append mode for repeated exports
        - Multi-valued fields joined with '|'

    Example:
        >>> writer = CSVWriter()
        >>> writer.write(dataset)
        18
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize CSV writer.

        Args:
            base_dir: Base directory for exports (defaults to CacheConfig.EXPORT_DIR)
        """
        self.base_dir = Path(base_dir) if base_dir is not None else CacheConfig.EXPORT_DIR

    def write(self, dataset: CountryDataset) -> int:
        """
        Append every team of a dataset.

        Returns:
            int: Number of rows written (0 on failure)
        """
        file_path = self.get_file_path(dataset)
        try:
            file_exists = file_path.exists()
            file_path.parent.mkdir(parents=True, exist_ok=True)

            with open(file_path, mode="a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
                if not file_exists:
                    writer.writeheader()
                rows = dataset.to_csv_rows()
                writer.writerows(rows)
            return len(rows)

        except OSError as e:
            logger.error(f"Error writing CSV for {dataset.country_code}: {e}")
            return 0

    def write_batch(self, datasets: list[CountryDataset]) -> int:
        """
        Append several datasets.

        Returns:
            int: Total number of team rows written
        """
        return sum(self.write(dataset) for dataset in datasets)

    def get_file_path(self, dataset: CountryDataset) -> Path:
        """Path format: {base_dir}/{country_code}/YYYYMMDD.csv"""
        date_str = dataset.last_updated.strftime("%Y%m%d")
        return self.base_dir / dataset.country_code / f"{date_str}.csv"

    def dumps(self, datasets: list[CountryDataset]) -> str:
        """All teams of all datasets as one CSV document."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
        writer.writeheader()
        for dataset in datasets:
            writer.writerows(dataset.to_csv_rows())
        return buffer.getvalue()

    def read_today(self, country_code: str) -> list[dict]:
        """
        Rows exported today (UTC) for one country.

        Returns:
            list[dict]: Team rows as strings, empty if the file doesn't exist
        """
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_path = self.base_dir / country_code.upper() / f"{today}.csv"
        if not file_path.exists():
            return []

        with open(file_path, mode="r", encoding="utf-8", newline="") as f:
            return list(csv.DictReader(f))

    def get_exported_countries(self) -> list[str]:
        """Country codes that have at least one export directory."""
        if not self.base_dir.exists():
            return []
        return sorted(d.name for d in self.base_dir.iterdir() if d.is_dir())

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"CSVWriter(base_dir={self.base_dir})"
