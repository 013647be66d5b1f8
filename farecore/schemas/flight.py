from datetime import datetime

from pydantic import BaseModel, Field

FROZEN = {"frozen": True}


class Airline(BaseModel):
    code: str
    name: str

    model_config = FROZEN


class Aircraft(BaseModel):
    code: str
    name: str

    model_config = FROZEN


class FlightEndpoint(BaseModel):
    airport: str
    time: datetime
    terminal: str | None = None

    model_config = FROZEN


class FlightSegment(BaseModel):
    id: str
    airline: Airline
    flight_number: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: int  # minutes
    aircraft: Aircraft
    cabin_class: str
    amenities: list[str] = Field(default_factory=list)

    model_config = FROZEN


class PricePrediction(BaseModel):
    trend: str  # rising | falling | stable
    confidence: float

    model_config = FROZEN


class Price(BaseModel):
    base: float
    taxes: float
    fees: float
    total: float
    currency: str
    trend_prediction: PricePrediction

    model_config = FROZEN


class CarbonFootprint(BaseModel):
    total_kg: float
    per_passenger: float
    offset_cost: float
    comparison_to_average: float

    model_config = FROZEN


class Baggage(BaseModel):
    carry_on_included: bool = True
    checked_included: int = 0
    additional_fees: dict[str, float] = Field(default_factory=dict)

    model_config = FROZEN


class DelayPrediction(BaseModel):
    probability: float
    expected_delay_minutes: int
    factors: list[str] = Field(default_factory=list)

    model_config = FROZEN


class Flight(BaseModel):
    id: str
    provider: str
    segments: list[FlightSegment]
    total_duration: int  # minutes
    total_distance: int  # km
    price: Price
    carbon_footprint: CarbonFootprint
    baggage: Baggage
    booking_confidence: float
    delay_prediction: DelayPrediction
    sustainability_badge: str | None = None

    # Filled in by enrichment
    sustainability_badges: list[str] = Field(default_factory=list)
    recommendation: str | None = None

    model_config = FROZEN

    @property
    def stops(self) -> int:
        return len(self.segments) - 1


class Airport(BaseModel):
    code: str
    name: str
    city: str = ""
    country: str = ""
    timezone: str = ""

    model_config = FROZEN
