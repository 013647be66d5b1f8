from datetime import date, datetime

from pydantic import BaseModel

from farecore.schemas.search import FlightSearchParams


class PassengerCounts(BaseModel):
    adults: int
    children: int = 0
    infants: int = 0


class SearchCriteria(BaseModel):
    origin: str
    destination: str
    departure_date: date
    return_date: date | None = None
    passengers: PassengerCounts
    cabin_class: list[str]
    sustainability_priority: str = "moderate"

    @classmethod
    def from_params(cls, params: FlightSearchParams) -> "SearchCriteria":
        return cls(
            origin=params.origin,
            destination=params.destination,
            departure_date=params.departure_date,
            return_date=params.return_date,
            passengers=PassengerCounts(
                adults=params.adults,
                children=params.children,
                infants=params.infants,
            ),
            cabin_class=[params.cabin_class],
        )


class PriceAlert(BaseModel):
    id: str
    user_id: str
    criteria: SearchCriteria
    target_price: float
    current_price: float
    price_change: float
    alert_type: str
    created_at: datetime
    expires_at: datetime

    model_config = {"frozen": True}


class PriceTrend(BaseModel):
    trend: str = "stable"  # rising | falling | stable
    change_percentage: float = 0.0
    prediction: str = "monitor"  # buy_now | wait | monitor
