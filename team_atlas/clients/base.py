"""
Source adapter contract and shared helpers.
"""

from typing import Any, Protocol, runtime_checkable

from ..normalizer.schemas import DataSource, RawRecord


@runtime_checkable
class SourceAdapter(Protocol):
    """Capability shared by all team data sources.

    ``fetch_country_teams`` never raises: transport, status, parse and
    schema failures are logged and yield an empty list.
    """

    source: DataSource

    async def fetch_country_teams(self, country_key: str) -> list[RawRecord]:
        ...

    async def health_check(self) -> dict[str, Any]:
        ...

    async def close(self) -> None:
        ...

    def get_statistics(self) -> dict[str, Any]:
        ...


BASE_CONFIDENCE = 0.5


def completeness_confidence(populated: int, total: int, base: float = BASE_CONFIDENCE) -> float:
    """
    Confidence from optional-field completeness.

    Monotonic in ``populated`` and bounded to ``[base, 1.0]``.

    Example:
        >>> completeness_confidence(3, 6)
        0.75
    """
    if total <= 0:
        return base
    ratio = max(0, min(populated, total)) / total
    return round(base + (1.0 - base) * ratio, 3)


def present(value: Any) -> bool:
    """True for values a source actually populated ('null', '' and '0' count as missing)."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in ("", "null", "none", "0")
    if isinstance(value, (int, float)):
        return value > 0
    return bool(value)
