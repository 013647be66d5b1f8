"""Flight data service: provider fallback, enrichment and ranking."""

import logging
import time
from dataclasses import dataclass, field

from farecore.config import Settings
from farecore.data.airports import FALLBACK_AIRPORTS
from farecore.errors import AggregateProviderFailure, EmptyResultError, ProviderError
from farecore.schemas.flight import Airport, Flight
from farecore.schemas.search import FlightSearchParams
from farecore.services.flight_store import FlightStore
from farecore.services.providers import build_providers
from farecore.services.providers.base import BaseFlightProvider

logger = logging.getLogger(__name__)

LOW_CARBON_PER_PASSENGER_KG = 200


@dataclass
class SearchResult:
    flights: list[Flight]
    provider: str
    errors: list[ProviderError] = field(default_factory=list)
    search_time_ms: int = 0


def sustainability_badges(flight: Flight) -> list[str]:
    badges = []
    if flight.carbon_footprint.per_passenger < LOW_CARBON_PER_PASSENGER_KG:
        badges.append("low_carbon")
    if flight.stops == 0:
        badges.append("direct")
    if flight.sustainability_badge:
        badges.append("eco_certified")
    return badges


def recommendation(flight: Flight) -> str:
    if flight.sustainability_badge == "eco_champion":
        return "Highly recommended for eco-conscious travelers"
    if flight.stops == 0:
        return "Direct flight - saves time and reduces emissions"
    return "Good value flight option"


def enrich_flights(flights: list[Flight]) -> list[Flight]:
    """Attach badges and a recommendation, cheapest first. Pure."""
    enriched = [
        f.model_copy(update={
            "sustainability_badges": sustainability_badges(f),
            "recommendation": recommendation(f),
        })
        for f in flights
    ]
    enriched.sort(key=lambda f: (f.price.total, f.total_duration))
    return enriched


class FlightDataService:
    """Tries providers in priority order and returns the first non-empty answer."""

    def __init__(
        self,
        providers: list[BaseFlightProvider],
        store: FlightStore | None = None,
    ):
        self.providers = list(providers)
        self.store = store

    @classmethod
    def from_settings(cls, settings: Settings, store: FlightStore | None = None) -> "FlightDataService":
        return cls(build_providers(settings), store=store)

    async def search(self, params: FlightSearchParams) -> SearchResult:
        start_time = time.monotonic()
        errors: list[ProviderError] = []
        route = f"{params.origin}->{params.destination} on {params.departure_date.isoformat()}"

        for provider in self.providers:
            try:
                logger.info(f"Searching flights with {provider.name} for {route}")
                flights = await provider.search_flights(params)
            except ProviderError as e:
                logger.warning(f"Provider {provider.name} failed for {route}: {e}")
                errors.append(e)
                continue
            except Exception as e:
                logger.error(f"Provider {provider.name} crashed for {route}: {e}", exc_info=True)
                errors.append(ProviderError(f"Unexpected error: {e}", provider.name))
                continue

            if not flights:
                logger.info(f"Provider {provider.name} returned no flights for {route}")
                errors.append(EmptyResultError("No flights returned", provider.name))
                continue

            enriched = enrich_flights(flights)
            await self._persist(params, enriched)
            return SearchResult(
                flights=enriched,
                provider=provider.name,
                errors=errors,
                search_time_ms=int((time.monotonic() - start_time) * 1000),
            )

        failure = AggregateProviderFailure(errors)
        logger.error(f"{failure} ({route})")
        raise failure

    async def search_flights(self, params: FlightSearchParams) -> list[Flight]:
        result = await self.search(params)
        return result.flights

    async def cached_flights(self, params: FlightSearchParams) -> list[Flight] | None:
        """Previously stored results for the same search, if any."""
        if self.store is None:
            return None
        return await self.store.get_flights(params)

    async def get_airports(self, query: str) -> list[Airport]:
        for provider in self.providers:
            try:
                airports = await provider.get_airports(query)
            except ProviderError as e:
                logger.warning(f"Airport search via {provider.name} failed: {e}")
                continue
            if airports:
                return airports
        return self._fallback_airports(query)

    @staticmethod
    def _fallback_airports(query: str) -> list[Airport]:
        q = query.lower()
        return [
            Airport(**a)
            for a in FALLBACK_AIRPORTS
            if q in a["code"].lower() or q in a["name"].lower() or q in a["city"].lower()
        ]

    async def _persist(self, params: FlightSearchParams, flights: list[Flight]):
        if self.store is None:
            return
        if not await self.store.save_flights(params, flights):
            logger.debug("Flight store unavailable, results not persisted")

    async def close(self):
        for provider in self.providers:
            await provider.close()
