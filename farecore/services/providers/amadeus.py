"""Amadeus Self-Service provider: OAuth2 client credentials + flight offers."""

import asyncio
import logging
import re
import time
from datetime import date, datetime
from typing import Any, Callable

import httpx

from farecore.config import Settings
from farecore.data.airlines import aircraft_name, airline_name
from farecore.errors import AuthenticationError, ProviderTimeoutError
from farecore.schemas.flight import (
    Aircraft,
    Airline,
    Airport,
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

TOKEN_PATH = "/v1/security/oauth2/token"
OFFERS_PATH = "/v2/shopping/flight-offers"
LOCATIONS_PATH = "/v1/reference-data/locations"

# Our cabin codes -> Amadeus travelClass
TRAVEL_CLASS = {
    "economy": "ECONOMY",
    "premium_economy": "PREMIUM_ECONOMY",
    "business": "BUSINESS",
    "first": "FIRST",
}
CABIN_MAP = {v: k for k, v in TRAVEL_CLASS.items()}

ADDITIONAL_BAG_FEES = {"extra_bag": 50.0, "overweight": 100.0}

_DURATION_RE = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?$")


def parse_duration(duration_str: str | None) -> int:
    """Parse ISO 8601 duration (PT2H30M, P1DT2H) to minutes."""
    if not duration_str:
        return 0
    match = _DURATION_RE.match(duration_str)
    if not match:
        return 0
    days, hours, minutes = (int(g or 0) for g in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


class AmadeusProvider(BaseFlightProvider):
    """Primary provider backed by the Amadeus Self-Service API."""

    name = "amadeus"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str,
        cache: ResponseCache,
        rate_limiter: RateLimiter,
        timeout: float = 30.0,
        token_refresh_margin: float = 60,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(base_url, cache, rate_limiter, timeout=timeout, client=client)
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_refresh_margin = token_refresh_margin
        self._clock = clock
        self._token: str | None = None
        self._token_expires: float = 0.0
        self._token_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "AmadeusProvider":
        return cls(
            client_id=settings.amadeus_client_id,
            client_secret=settings.amadeus_client_secret,
            base_url=settings.amadeus_base_url,
            cache=ResponseCache(settings.cache_ttl_seconds, settings.cache_max_size),
            rate_limiter=RateLimiter(settings.rate_limit_rpm, settings.rate_limit_rph),
            timeout=settings.api_timeout_seconds,
            token_refresh_margin=settings.token_refresh_margin_seconds,
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def _token_valid(self) -> bool:
        return bool(self._token) and self._clock() < self._token_expires - self._token_refresh_margin

    async def ensure_access_token(self) -> str:
        """Get or refresh the OAuth2 bearer token."""
        if self._token_valid():
            return self._token

        async with self._token_lock:
            if self._token_valid():
                return self._token

            if not self.is_configured:
                raise AuthenticationError("Amadeus API credentials not configured", self.name)

            client = await self._get_client()
            try:
                resp = await asyncio.wait_for(
                    client.post(
                        TOKEN_PATH,
                        data={
                            "grant_type": "client_credentials",
                            "client_id": self._client_id,
                            "client_secret": self._client_secret,
                        },
                        headers={"Content-Type": "application/x-www-form-urlencoded"},
                    ),
                    timeout=self.timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                raise ProviderTimeoutError("Authentication request timed out", self.name) from e
            except httpx.RequestError as e:
                raise AuthenticationError(f"Authentication request failed: {e}", self.name) from e

            if not resp.is_success:
                raise AuthenticationError(
                    f"Authentication failed: HTTP {resp.status_code}", self.name
                )

            try:
                data = resp.json()
            except ValueError as e:
                raise AuthenticationError(
                    "Authentication endpoint returned invalid JSON", self.name
                ) from e
            token = data.get("access_token") if isinstance(data, dict) else None
            if not token:
                raise AuthenticationError("No access token received from authentication", self.name)

            self._token = token
            self._token_expires = self._clock() + float(data.get("expires_in", 1799))
            logger.info("Amadeus token refreshed")
            return self._token

    def auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def build_search_params(params: FlightSearchParams) -> dict:
        query = {
            "originLocationCode": params.origin,
            "destinationLocationCode": params.destination,
            "departureDate": params.departure_date.isoformat(),
            "adults": params.adults,
            "travelClass": TRAVEL_CLASS.get(params.cabin_class, "ECONOMY"),
            "currencyCode": params.currency,
            "max": params.max_results,
        }
        if params.return_date:
            query["returnDate"] = params.return_date.isoformat()
        if params.children:
            query["children"] = params.children
        if params.infants:
            query["infants"] = params.infants
        if params.max_price:
            query["maxPrice"] = int(params.max_price)
        return query

    async def search_flights(self, params: FlightSearchParams) -> list[Flight]:
        """Search for flight offers and normalize them."""
        data = await self._request("GET", OFFERS_PATH, params=self.build_search_params(params))
        dictionaries = data.get("dictionaries", {}) if isinstance(data, dict) else {}
        offers = data.get("data", []) if isinstance(data, dict) else []
        return self._normalize_all(offers, self._parse_offer, params, dictionaries)

    async def get_airports(self, query: str) -> list[Airport]:
        data = await self._request(
            "GET",
            LOCATIONS_PATH,
            params={"subType": "AIRPORT", "keyword": query, "page[limit]": 10},
        )
        airports = []
        for loc in data.get("data", []):
            if not loc.get("iataCode"):
                continue
            address = loc.get("address", {})
            airports.append(Airport(
                code=loc["iataCode"],
                name=loc.get("name", loc["iataCode"]),
                city=address.get("cityName", ""),
                country=address.get("countryName", ""),
                timezone=loc.get("timeZoneOffset", ""),
            ))
        return airports

    def _parse_offer(
        self,
        offer: dict,
        params: FlightSearchParams,
        dictionaries: dict[str, Any],
    ) -> Flight | None:
        """Parse an Amadeus offer into a Flight."""
        itineraries = offer.get("itineraries", [])
        if not itineraries or not itineraries[0].get("segments"):
            return None
        itin = itineraries[0]

        carriers = dictionaries.get("carriers", {})
        aircraft_names = dictionaries.get("aircraft", {})

        # Fare details are per segment for the first traveler
        fare_details = {}
        traveler_pricings = offer.get("travelerPricings", [])
        if traveler_pricings:
            for fd in traveler_pricings[0].get("fareDetailsBySegment", []):
                fare_details[fd.get("segmentId")] = fd

        segments = []
        for seg in itin["segments"]:
            fd = fare_details.get(seg.get("id"), {})
            carrier = seg["carrierCode"]
            aircraft_code = seg.get("aircraft", {}).get("code")
            segments.append(FlightSegment(
                id=str(seg.get("id", len(segments) + 1)),
                airline=Airline(code=carrier, name=airline_name(carrier, carriers)),
                flight_number=f"{carrier}{seg['number']}",
                departure=FlightEndpoint(
                    airport=seg["departure"]["iataCode"],
                    time=datetime.fromisoformat(seg["departure"]["at"]),
                    terminal=seg["departure"].get("terminal"),
                ),
                arrival=FlightEndpoint(
                    airport=seg["arrival"]["iataCode"],
                    time=datetime.fromisoformat(seg["arrival"]["at"]),
                    terminal=seg["arrival"].get("terminal"),
                ),
                duration=parse_duration(seg.get("duration")),
                aircraft=Aircraft(
                    code=aircraft_code or "Unknown",
                    name=aircraft_name(aircraft_code, aircraft_names),
                ),
                cabin_class=CABIN_MAP.get(fd.get("cabin", ""), params.cabin_class),
                amenities=[
                    a["description"].lower()
                    for a in fd.get("amenities", [])
                    if a.get("description") and not a.get("isChargeable", False)
                ],
            ))

        price_data = offer["price"]
        total = float(price_data["total"])
        base = float(price_data.get("base", total))
        fees = sum(float(f.get("amount", 0)) for f in price_data.get("fees", []))
        taxes = round(max(total - base - fees, 0.0), 2)

        first_fd = fare_details.get(segments[0].id, {})
        checked = first_fd.get("includedCheckedBags", {}).get("quantity")
        if checked is None:
            checked = 0 if segments[0].cabin_class == "economy" else 1

        total_duration = parse_duration(itin.get("duration")) or sum(s.duration for s in segments)

        return Flight(
            id=str(offer["id"]),
            provider=self.name,
            segments=segments,
            total_duration=total_duration,
            total_distance=flight_metrics.total_distance_km(segments),
            price=Price(
                base=base,
                taxes=taxes,
                fees=round(fees, 2),
                total=total,
                currency=price_data.get("currency", params.currency),
                trend_prediction=flight_metrics.fare_outlook(params.departure_date, date.today()),
            ),
            carbon_footprint=flight_metrics.carbon_footprint(segments, params.passengers),
            baggage=Baggage(
                carry_on_included=True,
                checked_included=checked,
                additional_fees=dict(ADDITIONAL_BAG_FEES),
            ),
            booking_confidence=flight_metrics.booking_confidence(offer.get("numberOfBookableSeats")),
            delay_prediction=flight_metrics.delay_prediction(segments),
            sustainability_badge=flight_metrics.sustainability_badge(segments),
        )
