"""
Data transformation module for standardizing and fusing team records.

Transforms RawRecords from Wikidata, OpenFootball and TheSportsDB into
canonical TeamRecords, then merges records that describe the same
real-world team using their confidence scores.
"""

import hashlib
import logging
import re
import unicodedata
from datetime import datetime
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from .schemas import (
    DEFAULT_COLORS,
    Coordinates,
    DataSource,
    RawRecord,
    Stadium,
    TeamRecord,
    is_placeholder_city,
    is_placeholder_name,
)

logger = logging.getLogger(__name__)


class TeamTransformer:
    """
    Standardize and fuse team records from multiple football data sources.

    All methods are pure functions of their inputs.
    """

    # Tokens ignored when two names are compared
    MERGE_STOP_TOKENS = re.compile(
        r"\b(fc|cf|club|football|futbol|united|city|athletic|sports|sc|ac|real)\b"
    )

    # Tokens ignored when building abbreviations
    SHORT_NAME_STOP_TOKENS = re.compile(
        r"\b(FC|CF|Club|Football|Futbol|United|City|Town|Athletic|Sports|SC|AC|Real|de|del|la|los|das)\b",
        re.IGNORECASE,
    )

    # Kept uppercase when a single-case name is title-cased
    CLUB_ACRONYMS = {"FC", "CF", "SC", "AC", "AFC", "CD", "FK", "SK", "SV", "BK", "IF", "AS", "US", "CA"}

    POINT_PATTERN = re.compile(
        r"Point\(\s*(-?\d+(?:\.\d+)?)\s+(-?\d+(?:\.\d+)?)\s*\)", re.IGNORECASE
    )

    HEX_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")

    MIN_YEAR = 1800
    MAX_CAPACITY = 200_000
    MAX_TEAMS = 30
    SOURCE_BONUS = 0.1

    @staticmethod
    def standardize(raw: RawRecord) -> Optional[TeamRecord]:
        """
        Convert a raw record to the canonical schema.

        Args:
            raw: Record as produced by a source adapter

        Returns:
            Optional[TeamRecord]: Standardized record, or None when the record
            has no usable name or city (missing or placeholder values)
        """
        if is_placeholder_name(raw.name) or is_placeholder_city(raw.city):
            logger.debug(f"Rejected placeholder record from {raw.source.value}: {raw.name!r} / {raw.city!r}")
            return None

        name = TeamTransformer.standardize_name(raw.name)
        city = TeamTransformer.standardize_city(raw.city)

        stadium = None
        if raw.stadium_name and raw.stadium_name.strip():
            stadium = Stadium(
                name=" ".join(raw.stadium_name.split()),
                capacity=TeamTransformer.standardize_capacity(raw.stadium_capacity),
                coordinates=TeamTransformer.standardize_coordinates(raw.stadium_coordinates),
            )

        try:
            return TeamRecord(
                id=TeamTransformer.generate_id(name, raw.country),
                name=name,
                short_name=(raw.short_name or "").strip().upper() or TeamTransformer.generate_short_name(name),
                city=city,
                country=raw.country,
                founded=TeamTransformer.standardize_year(raw.founded),
                stadium=stadium,
                league=raw.league.strip() if raw.league and raw.league.strip() else None,
                website=TeamTransformer.standardize_url(raw.website),
                colors=TeamTransformer.standardize_colors(raw.colors),
                achievements=list(dict.fromkeys(a.strip() for a in raw.achievements if a and a.strip())),
                sources=[raw.source],
                confidence=raw.confidence,
            )
        except ValidationError as e:
            logger.debug(f"Rejected invalid record {raw.name!r} from {raw.source.value}: {e}")
            return None

    @staticmethod
    def merge_key(team: TeamRecord) -> str:
        """
        Key under which records of the same real-world team collide.

        Example:
            'River Plate FC' in 'Springfield' -> 'riverplate_springfield'
        """
        clean_name = TeamTransformer.MERGE_STOP_TOKENS.sub("", team.name.lower())
        clean_name = re.sub(r"[^a-z0-9]", "", TeamTransformer._ascii(clean_name))
        clean_city = re.sub(r"[^a-z0-9]", "", TeamTransformer._ascii(team.city.lower()))
        return f"{clean_name}_{clean_city}"

    @staticmethod
    def fuse(teams: list[TeamRecord]) -> TeamRecord:
        """
        Merge records that share a merge key into one record.

        The highest-confidence record is the primary; lower-confidence records
        only fill fields the primary leaves empty.

        Raises:
            ValueError: If ``teams`` is empty
        """
        if not teams:
            raise ValueError("Cannot fuse an empty group")

        # sorted() is stable, so ties keep input order
        ranked = sorted(teams, key=lambda t: t.confidence, reverse=True)
        primary = ranked[0]

        founded = primary.founded
        website = primary.website
        league = primary.league
        stadium = primary.stadium

        for team in ranked[1:]:
            if founded is None and team.founded is not None:
                founded = team.founded
            if website is None and team.website:
                website = team.website
            if league is None and team.league:
                league = team.league

            if team.stadium is None:
                continue
            if stadium is None:
                stadium = team.stadium
                continue
            updates: dict[str, Any] = {}
            if not stadium.capacity and team.stadium.capacity:
                updates["capacity"] = team.stadium.capacity
            if stadium.coordinates is None and team.stadium.coordinates is not None:
                updates["coordinates"] = team.stadium.coordinates
            if updates:
                stadium = stadium.model_copy(update=updates)

        achievements = list(dict.fromkeys(a for team in teams for a in team.achievements))
        sources = list(dict.fromkeys(s for team in teams for s in team.sources))

        confidence = max(team.confidence for team in teams)
        if len(sources) > 1:
            confidence = round(min(1.0, confidence + TeamTransformer.SOURCE_BONUS), 4)

        return primary.model_copy(update={
            "founded": founded,
            "website": website,
            "league": league,
            "stadium": stadium,
            "achievements": achievements,
            "sources": sources,
            "confidence": confidence,
        })

    @staticmethod
    def merge_team_sources(
        records: Iterable[RawRecord],
        country_code: str = "",
        max_teams: int = MAX_TEAMS,
    ) -> list[TeamRecord]:
        """
        Standardize, group and fuse raw records from any number of sources.

        Args:
            records: Raw records, in source priority order
            country_code: Country being merged (logging only)
            max_teams: Cap on the number of returned teams

        Returns:
            list[TeamRecord]: Fused teams sorted by confidence, highest first
        """
        groups: dict[str, list[TeamRecord]] = {}
        received = 0
        for raw in records:
            received += 1
            team = TeamTransformer.standardize(raw)
            if team is None:
                continue
            groups.setdefault(TeamTransformer.merge_key(team), []).append(team)

        fused = [TeamTransformer.fuse(group) for group in groups.values()]
        fused.sort(key=lambda t: t.confidence, reverse=True)

        logger.info(
            f"Merged {received} raw records into {min(len(fused), max_teams)} teams for {country_code or '?'}",
            extra={"country_code": country_code, "raw_count": received, "team_count": len(fused)},
        )
        return fused[:max_teams]

    @staticmethod
    def create_fallback_team(
        country_code: str,
        display_name: str,
        confidence: float = 0.3,
    ) -> TeamRecord:
        """Synthetic, explicitly flagged team for countries no source covers."""
        code = country_code.upper()
        return TeamRecord(
            id=f"{code.lower()}-fallback",
            name=f"{display_name} National FC",
            short_name=code[:3],
            city="Capital City",
            country=code,
            league=f"{display_name} League",
            colors=list(DEFAULT_COLORS),
            sources=[DataSource.FALLBACK],
            confidence=confidence,
            is_fallback=True,
        )

    # ========== Field normalization ==========

    @staticmethod
    def standardize_name(name: str) -> str:
        """Collapse whitespace; title-case names written in a single case."""
        name = " ".join(name.split())
        if name.isupper() or name.islower():
            words = []
            for word in name.split(" "):
                if word.upper() in TeamTransformer.CLUB_ACRONYMS:
                    words.append(word.upper())
                else:
                    words.append(word[:1].upper() + word[1:].lower())
            name = " ".join(words)
        return name

    @staticmethod
    def standardize_city(city: str) -> str:
        """Collapse whitespace and capitalize every word."""
        city = " ".join(city.split())
        return re.sub(r"[^\s-]+", lambda m: m.group()[:1].upper() + m.group()[1:].lower(), city)

    @staticmethod
    def generate_short_name(full_name: str) -> str:
        """
        Abbreviation from the significant words of a name.

        Examples:
            'Arsenal FC' -> 'ARS', 'Boca Juniors' -> 'BJU', 'Club Atletico Tigre Rojo' -> 'ATR'
        """
        stripped = TeamTransformer.SHORT_NAME_STOP_TOKENS.sub("", full_name)
        words = [w for w in stripped.split() if len(w) > 1]

        if not words:
            return full_name.replace(" ", "")[:3].upper()
        if len(words) == 1:
            return words[0][:3].upper()
        if len(words) == 2:
            return (words[0][0] + words[1][:2]).upper()
        return "".join(w[0] for w in words[:3]).upper()

    @staticmethod
    def generate_id(name: str, country: str) -> str:
        """Deterministic '<country>-<slug>' identifier."""
        slug = re.sub(r"[^a-z0-9]+", "-", TeamTransformer._ascii(name.lower())).strip("-")
        if not slug:
            slug = hashlib.sha1(name.encode("utf-8")).hexdigest()[:10]
        return f"{country.strip().lower()}-{slug}"

    @staticmethod
    def standardize_year(value: Any) -> Optional[int]:
        """Founding year within [1800, current year], else None."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            year = int(value)
        else:
            match = re.match(r"\s*(\d{4})", str(value))
            if not match:
                return None
            year = int(match.group(1))
        if year < TeamTransformer.MIN_YEAR or year > datetime.now().year:
            return None
        return year

    @staticmethod
    def standardize_capacity(value: Any) -> int:
        """Capacity inside (0, 200000), else 0."""
        if value is None or isinstance(value, bool):
            return 0
        if isinstance(value, (int, float)):
            capacity = int(value)
        else:
            digits = re.sub(r"[,\s.]", "", str(value))
            if not digits.isdigit():
                return 0
            capacity = int(digits)
        return capacity if 0 < capacity < TeamTransformer.MAX_CAPACITY else 0

    @staticmethod
    def standardize_coordinates(value: Any) -> Optional[Coordinates]:
        """
        Convert any supported coordinate representation.

        Accepts a Coordinates instance, an ``{x, y}`` dict of map percentages,
        a ``{latitude, longitude}`` (or ``{lat, lon}``) dict, a WKT
        ``'Point(lon lat)'`` string or a ``(lat, lon)`` pair.
        """
        if value is None:
            return None
        if isinstance(value, Coordinates):
            return value

        latitude = longitude = None
        if isinstance(value, dict):
            if value.get("x") is not None and value.get("y") is not None:
                try:
                    return Coordinates(
                        x=TeamTransformer._clamp(float(value["x"])),
                        y=TeamTransformer._clamp(float(value["y"])),
                        latitude=value.get("latitude"),
                        longitude=value.get("longitude"),
                    )
                except (TypeError, ValueError):
                    return None
            latitude = value.get("latitude", value.get("lat"))
            longitude = value.get("longitude", value.get("lon"))
        elif isinstance(value, str):
            match = TeamTransformer.POINT_PATTERN.search(value)
            if match:
                longitude, latitude = match.group(1), match.group(2)
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            latitude, longitude = value

        try:
            latitude = float(latitude)
            longitude = float(longitude)
        except (TypeError, ValueError):
            return None
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            return None

        return Coordinates(
            latitude=latitude,
            longitude=longitude,
            x=TeamTransformer.longitude_to_x(longitude),
            y=TeamTransformer.latitude_to_y(latitude),
        )

    @staticmethod
    def longitude_to_x(longitude: float) -> float:
        """Equirectangular map x position in percent."""
        return TeamTransformer._clamp((longitude + 180) / 360 * 100)

    @staticmethod
    def latitude_to_y(latitude: float) -> float:
        """Equirectangular map y position in percent."""
        return TeamTransformer._clamp((90 - latitude) / 180 * 100)

    @staticmethod
    def standardize_url(url: Optional[str]) -> Optional[str]:
        """Prefix a scheme when missing; None unless the result has a host."""
        if not url or not url.strip():
            return None
        url = url.strip()
        if not re.match(r"^https?://", url, re.IGNORECASE):
            url = f"https://{url}"
        try:
            parsed = urlparse(url)
        except ValueError:
            return None
        if not parsed.netloc or "." not in parsed.netloc or " " in parsed.netloc:
            return None
        return url

    @staticmethod
    def standardize_colors(colors: Optional[list[str]]) -> list[str]:
        """Up to two '#RRGGBB' colours, padded with white; green/white by default."""
        valid = []
        for color in colors or []:
            if not isinstance(color, str):
                continue
            match = TeamTransformer.HEX_PATTERN.match(color.strip())
            if match:
                valid.append(f"#{match.group(1).upper()}")
            if len(valid) == 2:
                break

        if not valid:
            return list(DEFAULT_COLORS)
        if len(valid) == 1:
            valid.append("#FFFFFF")
        return valid

    @staticmethod
    def _clamp(value: float) -> float:
        return max(0.0, min(100.0, value))

    @staticmethod
    def _ascii(text: str) -> str:
        return unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
