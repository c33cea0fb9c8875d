"""
Team Atlas - Main Package

Multi-source football team reference data for ~200 countries, fused into
one canonical record per team.

Modules:
    clients: Source adapters (Wikidata, OpenFootball, TheSportsDB)
    normalizer: Canonical schemas, standardization and record fusion
    orchestrator: Two-tier cache, country orchestration and refresh scheduling
    storage: Dataset export (JSON Lines / CSV)
    utils: Shared utilities (logging, exceptions)
"""

__version__ = "0.1.0"
__author__ = "Team Atlas Data Team"

__all__ = [
    "__version__",
    "__author__",
]
