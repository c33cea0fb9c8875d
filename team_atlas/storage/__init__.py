"""
Storage Module

Dataset export for Team Atlas.

Components:
    - CSVWriter: CSV export, one row per team, partitioned by country and day
    - JSONWriter: JSON Lines export with fast serialization
"""

from .csv_writer import CSVWriter
from .json_writer import JSONWriter

__all__ = [
    "CSVWriter",
    "JSONWriter",
]
