"""Common request path for flight data providers.

Every provider owns its own ResponseCache and RateLimiter. A request is
served from the cache when possible; otherwise it must be admitted by the
rate limiter before any network traffic, and the upstream call is bounded
by a hard timeout. Providers never retry: failures surface as typed
ProviderError subclasses for the orchestrator to handle.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from farecore.errors import (
    AuthenticationError,
    ProviderTimeoutError,
    RateLimitExceeded,
    UpstreamError,
)
from farecore.schemas.flight import Airport, Flight
from farecore.schemas.search import FlightSearchParams
from farecore.services.rate_limiter import RateLimiter
from farecore.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

USER_AGENT = "farecore/0.1"


class BaseFlightProvider(ABC):
    name: str = "provider"

    def __init__(
        self,
        base_url: str,
        cache: ResponseCache,
        rate_limiter: RateLimiter,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    @classmethod
    @abstractmethod
    def from_settings(cls, settings, **kwargs) -> "BaseFlightProvider":
        """Build the provider with its own cache and rate limiter."""

    @property
    def is_configured(self) -> bool:
        """Whether credentials are present; checked before spending quota."""
        return True

    @abstractmethod
    async def ensure_access_token(self) -> str:
        """Return a usable credential, refreshing it if needed."""

    @abstractmethod
    def auth_headers(self, token: str) -> dict[str, str]:
        ...

    @abstractmethod
    async def search_flights(self, params: FlightSearchParams) -> list[Flight]:
        ...

    async def get_airports(self, query: str) -> list[Airport]:
        return []

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> Any:
        """Cache -> rate limit -> auth -> network, storing successes."""
        key = ResponseCache.make_key(method, f"{self.base_url}{path}", params or json_body)
        cached, found = self.cache.get(key)
        if found:
            logger.debug(f"{self.name} cache hit for {method} {path}")
            return cached

        if not self.is_configured:
            raise AuthenticationError(f"{self.name} credentials not configured", self.name)

        if not self.rate_limiter.try_acquire():
            logger.warning(f"{self.name} local rate limit reached, request not sent")
            raise RateLimitExceeded("Rate limit exceeded. Please try again later.", self.name)

        token = await self.ensure_access_token()
        client = await self._get_client()

        try:
            resp = await asyncio.wait_for(
                client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    headers=self.auth_headers(token),
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeoutError(
                f"Request timed out after {self.timeout:g}s", self.name
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Request failed: {e}", self.name) from e

        if not resp.is_success:
            logger.error(f"{self.name} {method} {path} returned HTTP {resp.status_code}")
            raise UpstreamError(
                f"HTTP {resp.status_code}: {resp.reason_phrase}",
                self.name,
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("Upstream returned invalid JSON", self.name) from e

        self.cache.set(key, data)
        return data

    def _normalize_all(self, offers: list, normalize_one, *args) -> list[Flight]:
        """Normalize offers one by one, skipping malformed records."""
        flights = []
        for offer in offers:
            try:
                flight = normalize_one(offer, *args)
            except (KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"{self.name} skipped malformed offer: {e!r}")
                continue
            if flight is not None:
                flights.append(flight)
        return flights

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.base_url}>"
