"""
Normalizer Module

Canonical team schemas, standardization and cross-source record fusion.

Components:
    - RawRecord: Source-specific record before standardization
    - TeamRecord: Canonical team record
    - CountryDataset: All teams of one country
    - TeamTransformer: Standardization, merge keys and fusion
    - DataSource: Data provider enum
    - PriorityTier: Country tier enum
"""

from .schemas import (
    Coordinates,
    CountryDataset,
    DataSource,
    PriorityTier,
    RawRecord,
    Stadium,
    TeamRecord,
)
from .transformer import TeamTransformer

__all__ = [
    "RawRecord",
    "TeamRecord",
    "CountryDataset",
    "Coordinates",
    "Stadium",
    "TeamTransformer",
    "DataSource",
    "PriorityTier",
]
