from farecore.schemas.flight import (
    Aircraft,
    Airline,
    Airport,
    Baggage,
    CarbonFootprint,
    DelayPrediction,
    Flight,
    FlightEndpoint,
    FlightSegment,
    Price,
    PricePrediction,
)
from farecore.schemas.monitoring import PassengerCounts, PriceAlert, PriceTrend, SearchCriteria
from farecore.schemas.search import CABIN_CLASSES, FlightSearchParams
