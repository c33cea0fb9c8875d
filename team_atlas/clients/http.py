"""
Shared asynchronous JSON transport for source adapters.

Wraps an aiohttp session with per-instance rate limiting, HTTP status
mapping and exponential backoff. Adapters compose one instance each.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
import orjson

from ..config import SourceConfig
from ..utils.exceptions import APIError, ParsingError, RateLimitError
from .rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


@dataclass
class SourceClientConfig:
    """Configuration for one source adapter's HTTP transport.

    Attributes:
        base_url: Endpoint or base URL of the source
        min_interval: Minimum seconds between two requests
        timeout: Request timeout in seconds
        max_retries: Maximum attempts for retryable failures (429/5xx)
        base_delay: Initial retry delay in seconds
        user_agent: User-Agent header sent with every request
    """

    base_url: str
    min_interval: float = 1.0
    timeout: int = 30
    max_retries: int = 3
    base_delay: float = 1.0
    user_agent: str = SourceConfig.USER_AGENT

    @classmethod
    def wikidata(cls) -> "SourceClientConfig":
        """Wikidata SPARQL endpoint settings from environment."""
        return cls(
            base_url=SourceConfig.WIKIDATA_ENDPOINT,
            min_interval=SourceConfig.WIKIDATA_MIN_INTERVAL,
            timeout=SourceConfig.REQUEST_TIMEOUT,
        )

    @classmethod
    def openfootball(cls) -> "SourceClientConfig":
        """OpenFootball static file settings from environment."""
        return cls(
            base_url=SourceConfig.OPENFOOTBALL_BASE_URL,
            min_interval=SourceConfig.OPENFOOTBALL_MIN_INTERVAL,
            timeout=SourceConfig.REQUEST_TIMEOUT,
        )

    @classmethod
    def thesportsdb(cls) -> "SourceClientConfig":
        """TheSportsDB REST settings from environment."""
        return cls(
            base_url=f"{SourceConfig.THESPORTSDB_BASE_URL.rstrip('/')}/{SourceConfig.THESPORTSDB_API_KEY}",
            min_interval=SourceConfig.THESPORTSDB_MIN_INTERVAL,
            timeout=SourceConfig.REQUEST_TIMEOUT,
        )


class ServerError(APIError):
    """Raised when a source returns a 5xx error."""
    pass


class SourceHTTPClient:
    """Rate-limited JSON-over-HTTP client with retry logic.

    Features:
    - Async HTTP with aiohttp, one session per instance
    - Minimum-interval rate limiting on every attempt
    - Exponential backoff retry on 429 and 5xx
    - orjson response decoding

    Example:
        ```python
        async with SourceHTTPClient("thesportsdb", SourceClientConfig.thesportsdb()) as http:
            data = await http.get_json(f"{http.config.base_url}/search_all_teams.php", {"l": "La Liga"})
        ```
    """

    def __init__(
        self,
        name: str,
        config: SourceClientConfig,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Args:
            name: Source name used in logs and statistics
            config: Transport configuration
            rate_limiter: Limiter to use (defaults to one built from config)
        """
        self.name = name
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(config.min_interval)
        self._session: Optional[aiohttp.ClientSession] = None
        self._stats = {
            "requests_made": 0,
            "retries": 0,
            "errors": 0,
        }

    async def __aenter__(self) -> "SourceHTTPClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session is initialized."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self.config.user_agent},
            )
            logger.debug(f"Created new aiohttp session for {self.name}")

    async def close(self) -> None:
        """Close aiohttp session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug(f"Closed aiohttp session for {self.name}")

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        data: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make one rate-limited HTTP request and decode the JSON body.

        Raises:
            RateLimitError: Rate limit exceeded (429)
            ServerError: Server error (5xx)
            APIError: Other HTTP or transport errors
            ParsingError: Body is not valid JSON
        """
        await self._ensure_session()
        await self.rate_limiter.wait()
        self._stats["requests_made"] += 1

        logger.debug(
            f"{method} {url}",
            extra={"source": self.name, "params": params},
        )

        try:
            async with self._session.request(
                method, url, params=params, data=data, headers=headers
            ) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        "Rate limit exceeded",
                        endpoint=url,
                        status_code=response.status,
                        retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        response_body=await response.text(),
                        request_params=params,
                    )

                if response.status >= 500:
                    raise ServerError(
                        f"Server error: {response.status}",
                        endpoint=url,
                        status_code=response.status,
                        response_body=await response.text(),
                        request_params=params,
                    )

                if response.status != 200:
                    raise APIError(
                        f"Request failed: {response.status}",
                        endpoint=url,
                        status_code=response.status,
                        response_body=await response.text(),
                        request_params=params,
                    )

                body = await response.read()

        except aiohttp.ClientError as e:
            raise APIError(
                f"HTTP client error: {str(e)}",
                endpoint=url,
                request_params=params,
            ) from e
        except asyncio.TimeoutError as e:
            raise APIError(
                f"Request timed out after {self.config.timeout}s",
                endpoint=url,
                request_params=params,
            ) from e

        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise ParsingError(
                f"Invalid JSON from {self.name}",
                source=self.name,
                parser="json",
                raw_data=body.decode("utf-8", errors="replace"),
            ) from e

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> Any:
        """Request with exponential backoff on 429 and 5xx.

        Other errors are raised immediately.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.config.max_retries):
            try:
                return await self._make_request(method, url, **kwargs)

            except (RateLimitError, ServerError) as e:
                last_exception = e
                self._stats["retries"] += 1

                if isinstance(e, RateLimitError) and e.retry_after:
                    self.rate_limiter.backoff(e.retry_after)

                if attempt < self.config.max_retries - 1:
                    delay = self.config.base_delay * (2 ** attempt)
                    total_delay = delay + random.uniform(0, delay * 0.1)
                    logger.warning(
                        f"Retrying {self.name} request in {total_delay:.2f}s",
                        extra={
                            "attempt": attempt + 1,
                            "max_retries": self.config.max_retries,
                            "error": str(e),
                            "url": url,
                        },
                    )
                    await asyncio.sleep(total_delay)

            except Exception:
                self._stats["errors"] += 1
                raise

        self._stats["errors"] += 1
        if last_exception:
            raise last_exception

        raise APIError(
            "Request failed after retries",
            endpoint=url,
            request_params=kwargs.get("params"),
        )

    async def get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """GET ``url`` and return decoded JSON."""
        return await self._request_with_retry("GET", url, params=params, headers=headers)

    async def post_json(
        self,
        url: str,
        data: str,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """POST a raw body to ``url`` and return decoded JSON."""
        return await self._request_with_retry("POST", url, data=data, headers=headers)

    def get_statistics(self) -> dict[str, Any]:
        return {
            **self._stats,
            "rate_limiter": self.rate_limiter.get_statistics(),
        }
