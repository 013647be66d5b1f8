from datetime import date

from pydantic import BaseModel, Field, field_validator

CABIN_CLASSES = ("economy", "premium_economy", "business", "first")


class FlightSearchParams(BaseModel):
    origin: str = Field(min_length=3, max_length=3)
    destination: str = Field(min_length=3, max_length=3)
    departure_date: date
    return_date: date | None = None
    adults: int = Field(default=1, ge=1, le=9)
    children: int = Field(default=0, ge=0, le=9)
    infants: int = Field(default=0, ge=0, le=9)
    cabin_class: str = "economy"
    max_price: float | None = Field(default=None, gt=0)
    currency: str = "USD"
    max_results: int = Field(default=50, ge=1, le=250)

    model_config = {"frozen": True}

    @field_validator("origin", "destination", "currency")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("cabin_class")
    @classmethod
    def _cabin(cls, v: str) -> str:
        cabin = v.strip().lower().replace("-", "_")
        if cabin not in CABIN_CLASSES:
            raise ValueError(f"unsupported cabin class: {v}")
        return cabin

    @property
    def passengers(self) -> int:
        """Seat-occupying passengers (infants travel on laps)."""
        return self.adults + self.children
