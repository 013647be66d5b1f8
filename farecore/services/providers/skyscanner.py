"""Skyscanner live prices provider (secondary source)."""

import logging
from datetime import date, datetime

import httpx

from farecore.config import Settings
from farecore.data.airlines import aircraft_name, airline_name
from farecore.errors import AuthenticationError
from farecore.schemas.flight import (
    Aircraft,
    Airline,
    Baggage,
    Flight,
    FlightEndpoint,
    FlightSegment,
    Price,
)
from farecore.schemas.search import FlightSearchParams
from farecore.services import flight_metrics
from farecore.services.providers.base import BaseFlightProvider
from farecore.services.rate_limiter import RateLimiter
from farecore.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

SEARCH_PATH = "/v3/flights/live/search/create"

CABIN_MAP = {
    "economy": "CABIN_CLASS_ECONOMY",
    "premium_economy": "CABIN_CLASS_PREMIUM_ECONOMY",
    "business": "CABIN_CLASS_BUSINESS",
    "first": "CABIN_CLASS_FIRST",
}

PRICE_UNIT_DIVISOR = {
    "PRICE_UNIT_WHOLE": 1,
    "PRICE_UNIT_CENTI": 100,
    "PRICE_UNIT_MILLI": 1000,
    "PRICE_UNIT_MICRO": 1_000_000,
}

INFANT_AGE = 1
CHILD_AGE = 8


def _to_date(d: date) -> dict:
    return {"year": d.year, "month": d.month, "day": d.day}


def _to_datetime(parts: dict) -> datetime:
    return datetime(
        parts["year"], parts["month"], parts["day"],
        parts.get("hour", 0), parts.get("minute", 0), parts.get("second", 0),
    )


class SkyscannerProvider(BaseFlightProvider):
    name = "skyscanner"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        cache: ResponseCache,
        rate_limiter: RateLimiter,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(base_url, cache, rate_limiter, timeout=timeout, client=client)
        self._api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SkyscannerProvider":
        return cls(
            api_key=settings.skyscanner_api_key,
            base_url=settings.skyscanner_base_url,
            cache=ResponseCache(settings.cache_ttl_seconds, settings.cache_max_size),
            rate_limiter=RateLimiter(settings.rate_limit_rpm, settings.rate_limit_rph),
            timeout=settings.api_timeout_seconds,
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def ensure_access_token(self) -> str:
        # Skyscanner uses a static partner key, there is no exchange step
        if not self.is_configured:
            raise AuthenticationError("Skyscanner API key not configured", self.name)
        return self._api_key

    def auth_headers(self, token: str) -> dict[str, str]:
        return {"x-api-key": token}

    @staticmethod
    def build_query(params: FlightSearchParams) -> dict:
        legs = [{
            "originPlaceId": {"iata": params.origin},
            "destinationPlaceId": {"iata": params.destination},
            "date": _to_date(params.departure_date),
        }]
        if params.return_date:
            legs.append({
                "originPlaceId": {"iata": params.destination},
                "destinationPlaceId": {"iata": params.origin},
                "date": _to_date(params.return_date),
            })
        return {
            "query": {
                "market": "US",
                "locale": "en-US",
                "currency": params.currency,
                "queryLegs": legs,
                "cabinClass": CABIN_MAP.get(params.cabin_class, "CABIN_CLASS_ECONOMY"),
                "adults": params.adults,
                "childrenAges": [CHILD_AGE] * params.children + [INFANT_AGE] * params.infants,
            }
        }

    async def search_flights(self, params: FlightSearchParams) -> list[Flight]:
        data = await self._request("POST", SEARCH_PATH, json_body=self.build_query(params))
        results = (data.get("content") or {}).get("results") or {}
        itineraries = list((results.get("itineraries") or {}).items())
        flights = self._normalize_all(itineraries, self._parse_itinerary, params, results)
        flights.sort(key=lambda f: f.price.total)
        return flights[: params.max_results]

    def _parse_itinerary(
        self,
        item: tuple[str, dict],
        params: FlightSearchParams,
        results: dict,
    ) -> Flight | None:
        itinerary_id, itinerary = item
        options = itinerary.get("pricingOptions") or []
        if not options:
            return None
        price_info = options[0]["price"]
        divisor = PRICE_UNIT_DIVISOR.get(price_info.get("unit", "PRICE_UNIT_MILLI"), 1000)
        total = round(float(price_info["amount"]) / divisor, 2)
        if params.max_price and total > params.max_price:
            return None

        # Only the outbound leg is normalized into segments
        leg = results["legs"][itinerary["legIds"][0]]
        places = results.get("places", {})
        carriers = results.get("carriers", {})

        segments = []
        for seg_id in leg["segmentIds"]:
            seg = results["segments"][seg_id]
            carrier = carriers.get(seg.get("marketingCarrierId"), {})
            code = carrier.get("iata") or carrier.get("displayCode") or ""
            names = {code: carrier["name"]} if carrier.get("name") else None
            segments.append(FlightSegment(
                id=seg_id,
                airline=Airline(code=code, name=airline_name(code, names)),
                flight_number=f"{code}{seg.get('marketingFlightNumber', '')}",
                departure=FlightEndpoint(
                    airport=self._iata(places, seg["originPlaceId"]),
                    time=_to_datetime(seg["departureDateTime"]),
                ),
                arrival=FlightEndpoint(
                    airport=self._iata(places, seg["destinationPlaceId"]),
                    time=_to_datetime(seg["arrivalDateTime"]),
                ),
                duration=int(seg.get("durationInMinutes", 0)),
                # Live prices carry no equipment data
                aircraft=Aircraft(code="Unknown", name=aircraft_name(None)),
                cabin_class=params.cabin_class,
            ))

        if not segments:
            return None

        return Flight(
            id=itinerary_id,
            provider=self.name,
            segments=segments,
            total_duration=int(leg.get("durationInMinutes") or sum(s.duration for s in segments)),
            total_distance=flight_metrics.total_distance_km(segments),
            price=Price(
                base=total,
                taxes=0.0,
                fees=0.0,
                total=total,
                currency=params.currency,
                trend_prediction=flight_metrics.fare_outlook(params.departure_date, date.today()),
            ),
            carbon_footprint=flight_metrics.carbon_footprint(segments, params.passengers),
            baggage=Baggage(checked_included=0 if params.cabin_class == "economy" else 1),
            booking_confidence=flight_metrics.booking_confidence(None),
            delay_prediction=flight_metrics.delay_prediction(segments),
            sustainability_badge=flight_metrics.sustainability_badge(segments),
        )

    @staticmethod
    def _iata(places: dict, place_id: str) -> str:
        place = places.get(place_id, {})
        return place.get("iata") or place_id
