"""Deterministic derived fields shared by all provider normalizers.

Distance, carbon footprint, fare outlook, booking confidence and delay
risk are computed from the itinerary alone so that the same offer always
normalizes to the same Flight regardless of which provider returned it.
"""

import math
from datetime import date

from farecore.data.airlines import ECO_CERTIFIED_CARRIERS
from farecore.data.airports import AIRPORT_COORDINATES
from farecore.schemas.flight import (
    CarbonFootprint,
    DelayPrediction,
    FlightSegment,
    PricePrediction,
)

EARTH_RADIUS_KM = 6371.0
CRUISE_KM_PER_MINUTE = 800 / 60  # fallback when coordinates are unknown

CO2_KG_PER_PAX_KM = 0.09
OFFSET_COST_PER_KG = 0.02

# Seat footprint relative to economy
CABIN_EMISSION_FACTOR = {
    "economy": 1.0,
    "premium_economy": 1.6,
    "business": 2.9,
    "first": 4.0,
}

# Days-to-departure fare outlook: (min_days, max_days): (trend, confidence)
DTD_OUTLOOK = {
    (0, 7): ("rising", 0.85),
    (8, 14): ("rising", 0.7),
    (15, 42): ("stable", 0.65),
    (43, 90): ("stable", 0.55),
    (91, 365): ("falling", 0.5),
}


def great_circle_km(origin: str, destination: str) -> float | None:
    a = AIRPORT_COORDINATES.get(origin)
    b = AIRPORT_COORDINATES.get(destination)
    if a is None or b is None:
        return None
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def segment_distance_km(segment: FlightSegment) -> float:
    distance = great_circle_km(segment.departure.airport, segment.arrival.airport)
    if distance is None:
        distance = segment.duration * CRUISE_KM_PER_MINUTE
    return distance


def total_distance_km(segments: list[FlightSegment]) -> int:
    return round(sum(segment_distance_km(s) for s in segments))


def carbon_footprint(segments: list[FlightSegment], passengers: int = 1) -> CarbonFootprint:
    per_passenger = 0.0
    for s in segments:
        factor = CABIN_EMISSION_FACTOR.get(s.cabin_class, 1.0)
        per_passenger += segment_distance_km(s) * CO2_KG_PER_PAX_KM * factor

    # Reference: the same trip flown direct in economy
    direct = great_circle_km(segments[0].departure.airport, segments[-1].arrival.airport)
    if direct is None:
        direct = sum(segment_distance_km(s) for s in segments)
    reference = direct * CO2_KG_PER_PAX_KM
    comparison = (per_passenger - reference) / reference if reference else 0.0

    total = per_passenger * max(passengers, 1)
    return CarbonFootprint(
        total_kg=round(total, 1),
        per_passenger=round(per_passenger, 1),
        offset_cost=round(total * OFFSET_COST_PER_KG, 2),
        comparison_to_average=round(comparison, 3),
    )


def fare_outlook(departure_date: date, today: date | None = None) -> PricePrediction:
    """Heuristic fare direction from the booking window."""
    today = today or date.today()
    days = (departure_date - today).days
    if days < 0:
        return PricePrediction(trend="stable", confidence=0.5)
    for (lo, hi), (trend, confidence) in DTD_OUTLOOK.items():
        if lo <= days <= hi:
            return PricePrediction(trend=trend, confidence=confidence)
    return PricePrediction(trend="stable", confidence=0.5)


def booking_confidence(seats_remaining: int | None) -> float:
    if seats_remaining is None:
        return 0.75
    return round(min(0.99, 0.5 + seats_remaining * 0.05), 2)


def delay_prediction(segments: list[FlightSegment]) -> DelayPrediction:
    probability = 0.12
    factors = []

    connections = len(segments) - 1
    if connections:
        probability += 0.06 * connections
        factors.append("connection")
        for inbound, outbound in zip(segments, segments[1:]):
            layover = (outbound.departure.time - inbound.arrival.time).total_seconds() / 60
            if layover < 60:
                probability += 0.08
                factors.append("short_connection")
                break

    if 16 <= segments[0].departure.time.hour <= 20:
        probability += 0.05
        factors.append("peak_departure")

    probability = min(probability, 0.9)
    return DelayPrediction(
        probability=round(probability, 2),
        expected_delay_minutes=round(probability * 60),
        factors=factors,
    )


def sustainability_badge(segments: list[FlightSegment]) -> str | None:
    if segments and segments[0].airline.code in ECO_CERTIFIED_CARRIERS:
        return "eco_champion"
    return None
