"""Price monitor: scheduled per-route price polling with alerting.

Each monitored (route, date, cabin) owns one session and one APScheduler
interval job whose id is the monitor id. Jobs run with ``max_instances=1``
so ticks of the same session never overlap. Stopping a session removes the
job before returning; a tick that is already running finishes but may not
touch a session that is no longer registered.
"""

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from farecore.config import Settings
from farecore.errors import AggregateProviderFailure, NoDataAvailable
from farecore.schemas.monitoring import PriceAlert, PriceTrend, SearchCriteria
from farecore.schemas.search import FlightSearchParams
from farecore.services.flight_data_service import FlightDataService

logger = logging.getLogger(__name__)

CHECK_INTERVAL_MINUTES = 30
HISTORY_SIZE = 48  # ~24h of 30 minute samples
TREND_WINDOW = 5
ALERT_TTL_DAYS = 7

AlertCallback = Callable[[PriceAlert], None]


@dataclass(frozen=True)
class AlertThresholds:
    drop: float = 50.0
    rise: float = 100.0


def monitor_id_for(params: FlightSearchParams) -> str:
    return f"{params.origin}_{params.destination}_{params.departure_date.isoformat()}_{params.cabin_class}"


def classify_alert(
    current: float,
    previous: float,
    target_price: float,
    thresholds: AlertThresholds = AlertThresholds(),
) -> str | None:
    """Return the alert type for a price observation, or None."""
    change = current - previous
    target_reached = current <= target_price
    significant_drop = change < 0 and abs(change) > thresholds.drop
    significant_rise = change > 0 and abs(change) > thresholds.rise

    if not (target_reached or significant_drop or significant_rise):
        return None
    if target_reached:
        return "threshold"
    return "drop" if change < 0 else "trend_change"


def analyze_trend(history: Sequence[float], window: int = TREND_WINDOW) -> PriceTrend:
    if len(history) < 2:
        return PriceTrend()

    recent = list(history)[-window:]
    oldest, newest = recent[0], recent[-1]
    if oldest == 0:
        return PriceTrend()

    change_percentage = (newest - oldest) / oldest * 100

    trend = "stable"
    if change_percentage > 5:
        trend = "rising"
    elif change_percentage < -5:
        trend = "falling"

    prediction = "monitor"
    if trend == "rising" and change_percentage > 10:
        prediction = "buy_now"
    elif trend == "falling":
        prediction = "wait"

    return PriceTrend(
        trend=trend,
        change_percentage=round(change_percentage, 2),
        prediction=prediction,
    )


@dataclass
class MonitorSession:
    monitor_id: str
    search_params: FlightSearchParams
    target_price: float
    user_id: str
    history: deque
    on_alert: AlertCallback | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    job: Job | None = None


class PriceMonitor:
    """Owns every monitoring session and its scheduled job."""

    def __init__(
        self,
        flight_data: FlightDataService,
        scheduler: AsyncIOScheduler | None = None,
        check_interval_minutes: float = CHECK_INTERVAL_MINUTES,
        history_size: int = HISTORY_SIZE,
        thresholds: AlertThresholds | None = None,
        alert_ttl_days: int = ALERT_TTL_DAYS,
    ):
        self.flight_data = flight_data
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.check_interval_minutes = check_interval_minutes
        self.history_size = history_size
        self.thresholds = thresholds or AlertThresholds()
        self.alert_ttl = timedelta(days=alert_ttl_days)
        self._sessions: dict[str, MonitorSession] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, flight_data: FlightDataService) -> "PriceMonitor":
        return cls(
            flight_data,
            check_interval_minutes=settings.price_monitor_interval_minutes,
            history_size=settings.price_history_size,
            thresholds=AlertThresholds(
                drop=settings.alert_drop_threshold,
                rise=settings.alert_rise_threshold,
            ),
            alert_ttl_days=settings.alert_ttl_days,
        )

    async def start_monitoring(
        self,
        search_params: FlightSearchParams,
        target_price: float,
        user_id: str,
        on_alert: AlertCallback | None = None,
    ) -> str:
        """Start (or restart) monitoring a route; returns its monitor id."""
        monitor_id = monitor_id_for(search_params)

        # Replace, never duplicate
        self.stop_monitoring(monitor_id)

        session = MonitorSession(
            monitor_id=monitor_id,
            search_params=search_params,
            target_price=target_price,
            user_id=user_id,
            history=deque(maxlen=self.history_size),
            on_alert=on_alert,
        )
        with self._lock:
            self._sessions[monitor_id] = session

        logger.info(
            f"Starting price monitoring for {search_params.origin} -> {search_params.destination} "
            f"({monitor_id}), target ${target_price:.2f}"
        )

        # Initial price check
        await self.check_price_changes(monitor_id)

        if not self.scheduler.running:
            self.scheduler.start()

        with self._lock:
            if self._sessions.get(monitor_id) is session:
                session.job = self.scheduler.add_job(
                    self.check_price_changes,
                    IntervalTrigger(minutes=self.check_interval_minutes),
                    args=[monitor_id],
                    id=monitor_id,
                    name=f"price_monitor:{monitor_id}",
                    replace_existing=True,
                    max_instances=1,
                    coalesce=True,
                )
            else:
                logger.info(f"Monitoring for {monitor_id} stopped during initial check")

        return monitor_id

    def stop_monitoring(self, monitor_id: str) -> bool:
        """Cancel the job and drop the session. Unknown ids are a no-op."""
        with self._lock:
            session = self._sessions.pop(monitor_id, None)
            if session is None:
                return False
            if session.job is not None:
                try:
                    self.scheduler.remove_job(monitor_id)
                except JobLookupError:
                    pass
                session.job = None
            session.history.clear()

        logger.info(f"Stopped price monitoring for {monitor_id}")
        return True

    async def get_current_price(self, search_params: FlightSearchParams) -> float | None:
        """Lowest total price across current results, or None."""
        try:
            flights = await self.flight_data.search_flights(search_params)
        except AggregateProviderFailure as e:
            logger.warning(f"Error getting current price: {e}")
            return None
        if not flights:
            return None
        return min(f.price.total for f in flights)

    def get_price_trend(self, monitor_id: str) -> PriceTrend:
        with self._lock:
            session = self._sessions.get(monitor_id)
            history = list(session.history) if session else []
        return analyze_trend(history)

    def get_price_history(self, monitor_id: str) -> list[float]:
        with self._lock:
            session = self._sessions.get(monitor_id)
            return list(session.history) if session else []

    def list_active(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    async def check_price_changes(self, monitor_id: str) -> PriceAlert | None:
        """Run one tick. Failures end the tick, never the session."""
        with self._lock:
            session = self._sessions.get(monitor_id)
        if session is None:
            return None

        try:
            return await self._check(session)
        except NoDataAvailable:
            logger.warning(f"No price data available for {monitor_id}")
        except Exception as e:
            logger.error(f"Price monitoring error for {monitor_id}: {e}", exc_info=True)
        return None

    async def _check(self, session: MonitorSession) -> PriceAlert | None:
        current = await self.get_current_price(session.search_params)
        if current is None:
            raise NoDataAvailable(session.monitor_id)

        with self._lock:
            if self._sessions.get(session.monitor_id) is not session:
                logger.debug(f"Discarding price for stopped monitor {session.monitor_id}")
                return None
            session.history.append(current)
            previous = session.history[-2] if len(session.history) > 1 else current

        price_change = current - previous
        logger.info(
            f"Price check for {session.monitor_id}: ${current:.2f} (change: {price_change:+.2f})"
        )

        alert_type = classify_alert(current, previous, session.target_price, self.thresholds)
        if alert_type is None:
            return None

        alert = self._build_alert(session, current, price_change, alert_type)
        logger.info(f"Price alert ({alert_type}) for {session.monitor_id}, user {session.user_id}")
        if session.on_alert is not None:
            session.on_alert(alert)
        return alert

    def _build_alert(
        self,
        session: MonitorSession,
        current: float,
        price_change: float,
        alert_type: str,
    ) -> PriceAlert:
        now = datetime.now(timezone.utc)
        return PriceAlert(
            id=f"alert_{uuid.uuid4().hex}",
            user_id=session.user_id,
            criteria=SearchCriteria.from_params(session.search_params),
            target_price=session.target_price,
            current_price=current,
            price_change=round(price_change, 2),
            alert_type=alert_type,
            created_at=now,
            expires_at=now + self.alert_ttl,
        )

    async def shutdown(self):
        for monitor_id in self.list_active():
            self.stop_monitoring(monitor_id)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
