"""
Source Adapters Module

Rate-limited adapters that fetch raw team records for a country.

Components:
    - SourceAdapter: Adapter protocol
    - WikidataClient: Wikidata SPARQL (knowledge graph) adapter
    - OpenFootballClient: openfootball JSON files (static files) adapter
    - TheSportsDBClient: TheSportsDB v1 API (REST catalog) adapter
    - SourceHTTPClient / SourceClientConfig: Shared JSON transport
    - RateLimiter: Minimum-interval request gate
"""

from .base import SourceAdapter, completeness_confidence
from .http import ServerError, SourceClientConfig, SourceHTTPClient
from .openfootball import OpenFootballClient
from .rate_limiter import RateLimiter
from .thesportsdb import TheSportsDBClient
from .wikidata import WikidataClient

__all__ = [
    "SourceAdapter",
    "completeness_confidence",
    "SourceClientConfig",
    "SourceHTTPClient",
    "ServerError",
    "RateLimiter",
    "WikidataClient",
    "OpenFootballClient",
    "TheSportsDBClient",
]
