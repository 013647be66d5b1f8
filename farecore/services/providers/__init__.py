from farecore.config import Settings
from farecore.services.providers.amadeus import AmadeusProvider
from farecore.services.providers.base import BaseFlightProvider
from farecore.services.providers.skyscanner import SkyscannerProvider

# Priority order: first entry is tried first
PROVIDER_CLASSES: list[type[BaseFlightProvider]] = [AmadeusProvider, SkyscannerProvider]


def build_providers(settings: Settings) -> list[BaseFlightProvider]:
    """Instantiate every provider, in priority order, from settings."""
    return [cls.from_settings(settings) for cls in PROVIDER_CLASSES]
