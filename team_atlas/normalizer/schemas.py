"""
Data schemas for canonical team data.

Pydantic models providing type safety, validation, and serialization
for team records gathered from multiple football data sources.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

DEFAULT_COLORS = ["#4CAF50", "#FFFFFF"]

PLACEHOLDER_CITIES = {"capital city", "major city"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_placeholder_name(name: Optional[str]) -> bool:
    """True for empty names and sentinel names such as 'Unknown FC' or 'Brazil National FC'."""
    if not name or not name.strip():
        return True
    lowered = name.strip().lower()
    return "unknown" in lowered or "national fc" in lowered


def is_placeholder_city(city: Optional[str]) -> bool:
    """True for empty cities and sentinel cities such as 'Capital City'."""
    if not city or not city.strip():
        return True
    lowered = city.strip().lower()
    return "unknown" in lowered or lowered in PLACEHOLDER_CITIES


class DataSource(str, Enum):
    """Team data providers."""

    WIKIDATA = "wikidata"
    OPENFOOTBALL = "openfootball"
    THESPORTSDB = "thesportsdb"
    FALLBACK = "fallback"


class PriorityTier(int, Enum):
    """Country data-availability tier (1 = best covered, refreshed most often)."""

    TIER_1 = 1
    TIER_2 = 2
    TIER_3 = 3


class RawRecord(BaseModel):
    """
    Source-specific team data before standardization.

    Values are kept as the adapter received them; founded year and capacity
    may still be strings and coordinates may use any supported representation.
    """

    model_config = {"frozen": True}

    name: str = Field("", description="Team name as published by the source")
    city: str = Field("", description="Home city")
    country: str = Field(..., description="ISO 3166-1 alpha-2 country code")
    short_name: Optional[str] = Field(None, description="Abbreviation, if the source has one")
    founded: Optional[Any] = Field(None, description="Founding year (raw)")
    website: Optional[str] = Field(None, description="Official website (raw)")
    league: Optional[str] = Field(None, description="League name")
    stadium_name: Optional[str] = Field(None, description="Home stadium name")
    stadium_capacity: Optional[Any] = Field(None, description="Stadium capacity (raw)")
    stadium_coordinates: Optional[Any] = Field(
        None, description="Coordinates as {x, y}, {latitude, longitude}, 'Point(lon lat)' or (lat, lon)"
    )
    colors: list[str] = Field(default_factory=list, description="Club colours")
    achievements: list[str] = Field(default_factory=list, description="Honours")
    source: DataSource = Field(..., description="Adapter that produced the record")
    external_id: Optional[str] = Field(None, description="Identifier inside the source")
    confidence: float = Field(0.5, description="Completeness-based confidence", ge=0, le=1)


class Coordinates(BaseModel):
    """Geographic position plus equirectangular map percentages."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    x: float = Field(..., description="Map x position in percent", ge=0, le=100)
    y: float = Field(..., description="Map y position in percent", ge=0, le=100)


class Stadium(BaseModel):
    """Home venue."""

    name: str = Field(..., description="Stadium name")
    capacity: int = Field(0, description="Seating capacity, 0 when unknown", ge=0)
    coordinates: Optional[Coordinates] = None


class TeamRecord(BaseModel):
    """
    Canonical team record.

    A record whose name or city is a placeholder is only valid when it is
    explicitly flagged with ``is_fallback``.
    """

    id: str = Field(..., description="Deterministic id '<country>-<slug>'")
    name: str = Field(..., description="Team name")
    short_name: str = Field(..., description="Abbreviation (2-4 characters)")
    city: str = Field(..., description="Home city")
    country: str = Field(..., description="ISO 3166-1 alpha-2 country code")
    founded: Optional[int] = Field(None, description="Founding year")
    stadium: Optional[Stadium] = Field(None, description="Home venue")
    league: Optional[str] = Field(None, description="League name")
    website: Optional[str] = Field(None, description="Official website")
    colors: list[str] = Field(default_factory=lambda: list(DEFAULT_COLORS), description="Primary and secondary colour")
    achievements: list[str] = Field(default_factory=list, description="Honours")
    sources: list[DataSource] = Field(default_factory=list, description="Contributing sources")
    confidence: float = Field(..., description="Reliability score", ge=0, le=1)
    last_updated: datetime = Field(default_factory=_utcnow, description="Standardization time (UTC)")
    is_fallback: bool = Field(False, description="Synthetic record emitted when no source had data")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "ar-river-plate",
                "name": "River Plate",
                "short_name": "RP",
                "city": "Buenos Aires",
                "country": "AR",
                "founded": 1901,
                "stadium": {"name": "Estadio Monumental", "capacity": 84567},
                "league": "Liga Profesional",
                "colors": ["#FFFFFF", "#FF0000"],
                "sources": ["thesportsdb", "wikidata"],
                "confidence": 0.9,
            }
        }
    }

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        """Ensure country code is uppercase and non-empty."""
        if not v or not v.strip():
            raise ValueError("Country code cannot be empty")
        return v.strip().upper()

    @field_validator("colors")
    @classmethod
    def validate_colors(cls, v: list[str]) -> list[str]:
        """Exactly two hex colours."""
        if len(v) != 2:
            raise ValueError("Exactly two colours are required")
        for color in v:
            if not HEX_COLOR_PATTERN.match(color):
                raise ValueError(f"Invalid hex colour: {color}")
        return [color.upper() for color in v]

    @model_validator(mode="after")
    def reject_placeholders(self) -> "TeamRecord":
        """Placeholder names and cities are reserved for fallback records."""
        if self.is_fallback:
            return self
        if is_placeholder_name(self.name):
            raise ValueError(f"Placeholder team name: {self.name!r}")
        if is_placeholder_city(self.city):
            raise ValueError(f"Placeholder city: {self.city!r}")
        return self

    def to_csv_row(self) -> dict[str, Any]:
        """
        Convert to flat dictionary for CSV export.

        Returns:
            dict: Flattened data suitable for CSV writing
        """
        coordinates = self.stadium.coordinates if self.stadium else None
        return {
            "id": self.id,
            "name": self.name,
            "short_name": self.short_name,
            "city": self.city,
            "country": self.country,
            "founded": self.founded,
            "stadium": self.stadium.name if self.stadium else None,
            "capacity": self.stadium.capacity if self.stadium else None,
            "latitude": coordinates.latitude if coordinates else None,
            "longitude": coordinates.longitude if coordinates else None,
            "league": self.league,
            "website": self.website,
            "colors": "|".join(self.colors),
            "achievements": "|".join(self.achievements),
            "sources": "|".join(source.value for source in self.sources),
            "confidence": round(self.confidence, 3),
            "last_updated": self.last_updated.isoformat(),
            "is_fallback": self.is_fallback,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeamRecord":
        """Create a validated instance from a dictionary."""
        return cls(**data)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"TeamRecord(id={self.id!r}, confidence={self.confidence:.2f}, "
            f"sources={[s.value for s in self.sources]}, is_fallback={self.is_fallback})"
        )


class CountryDataset(BaseModel):
    """All teams known for one country, as produced by one refresh cycle."""

    country_code: str = Field(..., description="ISO 3166-1 alpha-2 country code")
    name: str = Field(..., description="Country display name")
    teams: list[TeamRecord] = Field(default_factory=list, description="Teams, confidence-descending")
    data_sources: list[DataSource] = Field(default_factory=list, description="Sources that contributed")
    priority_tier: PriorityTier = Field(PriorityTier.TIER_3, description="Data-availability tier")
    last_updated: datetime = Field(default_factory=_utcnow, description="Refresh time (UTC)")
    is_fallback: bool = Field(False, description="True when the only team is a synthetic fallback")

    @property
    def team_count(self) -> int:
        """Number of teams in the dataset."""
        return len(self.teams)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary (cache and export payload)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CountryDataset":
        """Create a validated instance from a dictionary."""
        return cls(**data)

    def to_csv_rows(self) -> list[dict[str, Any]]:
        """One flat row per team."""
        return [team.to_csv_row() for team in self.teams]
