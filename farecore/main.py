import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from farecore.config import Settings, get_settings
from farecore.services.flight_data_service import FlightDataService
from farecore.services.flight_store import FlightStore
from farecore.services.price_monitor import PriceMonitor

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def configure_logging(log_dir: Path | None = None) -> None:
    """Console + rotating file logging, level from LOG_LEVEL."""
    log_dir = log_dir or Path(os.environ.get("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(),
            RotatingFileHandler(
                log_dir / "farecore.log",
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                encoding="utf-8",
            ),
        ],
        force=True,
    )

    # Quiet noisy libraries
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


@dataclass
class Services:
    settings: Settings
    store: FlightStore | None
    flight_data: FlightDataService
    monitor: PriceMonitor


def create_services(settings: Settings | None = None) -> Services:
    settings = settings or get_settings()
    store = None
    if settings.flight_store_enabled:
        store = FlightStore(
            settings.redis_url,
            flights_ttl=settings.flight_store_ttl_seconds,
            timeout=settings.redis_timeout_seconds,
            reconnect_interval=settings.redis_reconnect_interval_seconds,
        )
    flight_data = FlightDataService.from_settings(settings, store=store)
    monitor = PriceMonitor.from_settings(settings, flight_data)
    return Services(settings=settings, store=store, flight_data=flight_data, monitor=monitor)


@asynccontextmanager
async def lifespan(settings: Settings | None = None):
    services = create_services(settings)
    logger.info(
        f"Flight data service ready with providers: "
        f"{', '.join(p.name for p in services.flight_data.providers)}"
    )
    try:
        yield services
    finally:
        await services.monitor.shutdown()
        logger.info("Price monitor stopped")
        await services.flight_data.close()
        if services.store:
            await services.store.close()
