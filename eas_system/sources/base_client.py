"""Shared async HTTP plumbing for authoritative data sources.

Every source client owns (or is handed) one httpx.AsyncClient and fetches
through :meth:`BaseSourceClient._request`, which retries transport
errors and 5xx responses with exponential backoff. Anything else
(4xx, undecodable payloads) propagates to the validator, which turns it
into a zero-confidence vote.
"""

from typing import Any, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

DEFAULT_USER_AGENT = "eas_system/0.1.0 (disaster validation)"


class SourceError(RuntimeError):
    """A source answered, but not with anything usable."""


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class BaseSourceClient:
    """
    Base class for one authoritative source.

    Clients are async context managers; outside a context the HTTP
    client is created lazily and must be released with close().

    Attributes:
        name: Source name recorded on every vote it produces
        base_url: Root URL of the source API
        timeout: Per-request timeout in seconds
        max_attempts: Attempts per request including the first
    """

    name: str = "source"
    base_url: str = ""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Initialize source client.

        Args:
            base_url: Override the source's default root URL
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request including the first
            http_client: Shared client to use instead of creating one
            transport: Custom transport for the owned client (tests)
            user_agent: User-Agent header for the owned client
        """
        if base_url:
            self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self._client = http_client
        self._owns_client = http_client is None
        self._transport = transport
        self._user_agent = user_agent
        self.logger = logger.bind(component=f"sources.{self.name}")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_connections=20),
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """
        GET with retry on transient failures.

        Uses exponential backoff between attempts (1s, 2s, 4s ... capped at 8s).

        Raises:
            httpx.HTTPError: If all attempts fail or the status is 4xx
        """
        client = await self._get_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
        return response

    async def _get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        response = await self._request(url, params=params, headers=headers)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise SourceError(f"{self.name} returned invalid JSON: {e}") from e
