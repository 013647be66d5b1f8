"""Redis-backed best-effort store for normalized flights and user profiles.

Every operation degrades quietly: an unreachable or unresponsive Redis
means a cache miss or a missing profile, never a failed or stalled search.
Each command is bounded by ``timeout`` seconds, and after a failed connect
the store stays offline for ``reconnect_interval`` seconds before trying
again.
"""

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from farecore.schemas.flight import Flight
from farecore.schemas.search import FlightSearchParams

logger = logging.getLogger(__name__)

TTL_FLIGHTS = 15 * 60  # 15 minutes
REDIS_TIMEOUT = 2.0
RECONNECT_INTERVAL = 30.0


class FlightStore:
    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        flights_ttl: int = TTL_FLIGHTS,
        timeout: float = REDIS_TIMEOUT,
        reconnect_interval: float = RECONNECT_INTERVAL,
        client: Any | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.redis_url = redis_url
        self.flights_ttl = flights_ttl
        self.timeout = timeout
        self.reconnect_interval = reconnect_interval
        self._client = client
        self._clock = clock
        self._offline_until = 0.0

    async def _connection(self):
        if self._client is not None:
            return self._client
        if self._clock() < self._offline_until:
            return None

        client = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=self.timeout,
            socket_timeout=self.timeout,
        )
        try:
            await asyncio.wait_for(client.ping(), timeout=self.timeout)
        except Exception as e:
            self._offline_until = self._clock() + self.reconnect_interval
            logger.warning(
                f"Redis at {self.redis_url} unavailable ({e!r}), "
                f"flight store offline for {self.reconnect_interval:g}s"
            )
            await self._discard(client)
            return None
        self._client = client
        return client

    async def _discard(self, client):
        try:
            await asyncio.wait_for(client.aclose(), timeout=self.timeout)
        except Exception as e:
            logger.debug(f"Ignoring error while closing Redis client: {e!r}")

    async def _run(self, op: str, key: str, command: Callable[[Any], Awaitable], default):
        """Run one command against Redis; any failure or timeout yields ``default``."""
        conn = await self._connection()
        if conn is None:
            return default
        try:
            return await asyncio.wait_for(command(conn), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Flight store {op} timed out after {self.timeout:g}s for {key}")
        except Exception as e:
            logger.debug(f"Flight store {op} failed for {key}: {e!r}")
        return default

    async def get(self, key: str) -> Any | None:
        raw = await self._run("read", key, lambda r: r.get(key), None)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding non-JSON value stored under {key}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        payload = json.dumps(value, default=str)

        async def write(r):
            await r.set(key, payload, ex=ttl)
            return True

        return await self._run("write", key, write, False)

    async def delete(self, key: str) -> bool:
        async def remove(r):
            await r.delete(key)
            return True

        return await self._run("delete", key, remove, False)

    @staticmethod
    def flights_key(params: FlightSearchParams) -> str:
        ret = params.return_date.isoformat() if params.return_date else "oneway"
        pax = f"{params.adults}-{params.children}-{params.infants}"
        return (
            f"flights:{params.origin}:{params.destination}:"
            f"{params.departure_date.isoformat()}:{ret}:{params.cabin_class}:{pax}:{params.currency}"
        )

    @staticmethod
    def profile_key(user_id: str) -> str:
        return f"profile:{user_id}"

    async def get_flights(self, params: FlightSearchParams) -> list[Flight] | None:
        data = await self.get(self.flights_key(params))
        if data is None:
            return None
        try:
            return [Flight.model_validate(f) for f in data]
        except ValueError as e:
            logger.warning(f"Discarding unreadable stored flights: {e}")
            return None

    async def save_flights(self, params: FlightSearchParams, flights: list[Flight]) -> bool:
        payload = [f.model_dump(mode="json") for f in flights]
        return await self.set(self.flights_key(params), payload, self.flights_ttl)

    async def get_user_profile(self, user_id: str) -> dict | None:
        return await self.get(self.profile_key(user_id))

    async def upsert_user_profile(self, user_id: str, data: dict) -> dict:
        """Create or update a profile; nested preferences are merged."""
        existing = await self.get_user_profile(user_id) or {"id": user_id, "preferences": {}}
        merged = {**existing, **data, "id": user_id}
        if isinstance(existing.get("preferences"), dict) and isinstance(data.get("preferences"), dict):
            merged["preferences"] = {**existing["preferences"], **data["preferences"]}
        await self.set(self.profile_key(user_id), merged)
        return merged

    async def delete_user_profile(self, user_id: str) -> bool:
        return await self.delete(self.profile_key(user_id))

    async def close(self):
        client, self._client = self._client, None
        if client is not None:
            await self._discard(client)
