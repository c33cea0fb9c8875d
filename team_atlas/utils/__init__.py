"""
Utils Module

Shared utilities, helpers, and common functionality.

Components:
    - logger: Logging with daily file prefixes and colorized output
    - exceptions: Custom exception classes
"""

from team_atlas.utils.logger import (
    LoggerConfig,
    get_logger,
    get_scheduler_logger,
    setup_logger,
)

__all__ = [
    # Logger utilities
    "LoggerConfig",
    "setup_logger",
    "get_logger",
    "get_scheduler_logger",
]
