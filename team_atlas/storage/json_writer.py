"""
JSON Lines Writer for country datasets.

Provides JSONL-based export with daily partitioning using orjson for fast
serialization, plus a single-document export of several datasets.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import orjson

from ..config import CacheConfig
from ..normalizer.schemas import CountryDataset

logger = logging.getLogger(__name__)


class JSONWriter:
    """
    JSON Lines writer with per-country daily partitioning.

    File Structure:
        {export_dir}/{country_code}/YYYYMMDD.jsonl

    Example:
        >>> writer = JSONWriter()
        >>> writer.write(dataset)
        True
        >>> writer.write_batch([dataset_ar, dataset_br])
        2
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize JSON Lines writer.

        Args:
            base_dir: Base directory for exports (defaults to CacheConfig.EXPORT_DIR)
        """
        self.base_dir = Path(base_dir) if base_dir is not None else CacheConfig.EXPORT_DIR

    def write(self, dataset: CountryDataset) -> bool:
        """
        Append one dataset as a JSON line.

        Returns:
            bool: True if write was successful, False otherwise
        """
        return self.write_batch([dataset]) == 1

    def write_batch(self, datasets: list[CountryDataset]) -> int:
        """
        Append several datasets, grouped by target file.

        Returns:
            int: Number of datasets successfully written
        """
        if not datasets:
            return 0

        by_file: dict[Path, list[CountryDataset]] = {}
        for dataset in datasets:
            by_file.setdefault(self.get_file_path(dataset), []).append(dataset)

        written_count = 0
        for file_path, file_datasets in by_file.items():
            try:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(file_path, mode="ab") as f:
                    for dataset in file_datasets:
                        f.write(orjson.dumps(dataset.to_dict(), option=orjson.OPT_APPEND_NEWLINE))
                        written_count += 1
            except OSError as e:
                logger.error(f"Error writing batch to {file_path}: {e}")
                continue

        return written_count

    def get_file_path(self, dataset: CountryDataset) -> Path:
        """
        Path format: {base_dir}/{country_code}/YYYYMMDD.jsonl

        Example:
            >>> writer.get_file_path(dataset)
            PosixPath('data/exports/AR/20260107.jsonl')
        """
        date_str = dataset.last_updated.strftime("%Y%m%d")
        return self.base_dir / dataset.country_code / f"{date_str}.jsonl"

    def dumps(self, datasets: list[CountryDataset], metadata: Optional[dict[str, Any]] = None) -> str:
        """Single indented JSON document holding every dataset plus export metadata."""
        document = {
            "metadata": {
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "total_countries": len(datasets),
                "total_teams": sum(dataset.team_count for dataset in datasets),
                "format": "json",
                **(metadata or {}),
            },
            "countries": {dataset.country_code: dataset.to_dict() for dataset in datasets},
        }
        return orjson.dumps(document, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS).decode("utf-8")

    def read_file(self, file_path: Path) -> list[CountryDataset]:
        """
        Read a JSONL export back into datasets.

        Returns:
            list[CountryDataset]: Datasets in file order, empty if the file doesn't exist
        """
        if not file_path.exists():
            return []

        datasets = []
        with open(file_path, mode="rb") as f:
            for line in f:
                if line.strip():
                    datasets.append(CountryDataset.from_dict(orjson.loads(line)))
        return datasets

    def read_today(self, country_code: str) -> list[CountryDataset]:
        """Datasets exported today (UTC) for one country."""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        return self.read_file(self.base_dir / country_code.upper() / f"{today}.jsonl")

    def __repr__(self) -> str:
        return f"JSONWriter(base_dir={self.base_dir})"
