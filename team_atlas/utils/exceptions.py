"""
Custom exception classes for Team Atlas.

Provides a hierarchy of exceptions for the failure modes of source
adapters, the cache, record normalization and the refresh scheduler.
"""

from typing import Any, Optional


class TeamAtlasError(Exception):
    """Base exception for all Team Atlas errors.

    All custom exceptions inherit from this class, allowing
    catch-all error handling when needed.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class CacheError(TeamAtlasError):
    """Raised when cache operations fail.

    Covers failures in reading from, writing to, or invalidating cache.

    Attributes:
        operation: The cache operation that failed (read/write/delete/clear)
        cache_key: The key involved in the failed operation
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        cache_key: Optional[str] = None,
        **kwargs
    ):
        details = {
            "operation": operation,
            "cache_key": cache_key,
            **kwargs
        }
        details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message, details)
        self.operation = operation
        self.cache_key = cache_key


class CacheQuotaError(CacheError):
    """Raised when a durable cache write would exceed the byte quota.

    Attributes:
        used_bytes: Bytes currently held by the durable tier
        quota_bytes: Configured durable tier quota
    """

    def __init__(
        self,
        message: str = "Durable cache quota exceeded",
        used_bytes: Optional[int] = None,
        quota_bytes: Optional[int] = None,
        **kwargs
    ):
        super().__init__(
            message,
            operation=kwargs.pop("operation", "write"),
            used_bytes=used_bytes,
            quota_bytes=quota_bytes,
            **kwargs
        )
        self.used_bytes = used_bytes
        self.quota_bytes = quota_bytes


class ParsingError(TeamAtlasError):
    """Raised when a source response cannot be parsed.

    Attributes:
        source: Data source that failed to parse
        parser: Parser type used (json/sparql)
        raw_data: Raw data snippet (optional, for debugging)
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        parser: Optional[str] = None,
        raw_data: Optional[str] = None,
        **kwargs
    ):
        details = {
            "source": source,
            "parser": parser,
            **kwargs
        }
        if raw_data:
            # Truncate raw data for readability
            details["raw_data_preview"] = raw_data[:200] + "..." if len(raw_data) > 200 else raw_data

        details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message, details)
        self.source = source
        self.parser = parser
        self.raw_data = raw_data


class APIError(TeamAtlasError):
    """Raised when calls to an external source fail.

    Covers HTTP errors, network failures, and invalid responses.

    Attributes:
        endpoint: API endpoint that failed
        status_code: HTTP status code (if applicable)
        response_body: Response content (if available)
        request_params: Request parameters used
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_params: Optional[dict[str, Any]] = None,
        **kwargs
    ):
        details = {
            "endpoint": endpoint,
            "status_code": status_code,
            "request_params": request_params,
            **kwargs
        }
        if response_body:
            # Truncate response body for readability
            details["response_preview"] = response_body[:200] + "..." if len(response_body) > 200 else response_body

        details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code
        self.response_body = response_body
        self.request_params = request_params


class RateLimitError(APIError):
    """Raised when a source answers with HTTP 429.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs
    ):
        if retry_after is not None:
            kwargs["retry_after"] = retry_after
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class UpdateError(TeamAtlasError):
    """Raised when a scheduled country refresh fails.

    Attributes:
        country_code: Country whose refresh failed
        retry_count: Failures recorded for the country so far
    """

    def __init__(
        self,
        message: str,
        country_code: Optional[str] = None,
        retry_count: Optional[int] = None,
        **kwargs
    ):
        details = {
            "country_code": country_code,
            "retry_count": retry_count,
            **kwargs
        }
        details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message, details)
        self.country_code = country_code
        self.retry_count = retry_count
