import asyncio
import unittest
from datetime import date, datetime, timedelta, timezone

from factories import make_flight

from farecore.errors import AggregateProviderFailure, EmptyResultError
from farecore.schemas.search import FlightSearchParams
from farecore.services.price_monitor import (
    AlertThresholds,
    PriceMonitor,
    analyze_trend,
    classify_alert,
    monitor_id_for,
)

PARAMS = FlightSearchParams(origin="JFK", destination="LAX", departure_date=date(2030, 6, 1))


class FakeFlightData:
    """Serves a settable lowest price; None means every provider failed."""

    def __init__(self, price=500.0):
        self.price = price
        self.calls = 0
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()

    async def search_flights(self, params):
        self.calls += 1
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.price is None:
            raise AggregateProviderFailure([EmptyResultError("No flights returned", "fake")])
        return [make_flight(self.price + 75, "f2"), make_flight(self.price, "f1")]


class TestClassifyAlert(unittest.TestCase):
    def test_target_reached(self):
        self.assertEqual(classify_alert(299, 299, 300), "threshold")
        self.assertEqual(classify_alert(300, 300, 300), "threshold")
        self.assertIsNone(classify_alert(301, 301, 300))

    def test_target_wins_over_drop(self):
        self.assertEqual(classify_alert(250, 400, 300), "threshold")

    def test_significant_drop(self):
        self.assertEqual(classify_alert(440, 500, 100), "drop")
        self.assertIsNone(classify_alert(480, 500, 100))
        self.assertIsNone(classify_alert(450, 500, 100))

    def test_significant_rise(self):
        self.assertEqual(classify_alert(620, 500, 100), "trend_change")
        self.assertIsNone(classify_alert(600, 500, 100))

    def test_custom_thresholds(self):
        thresholds = AlertThresholds(drop=10, rise=10)
        self.assertEqual(classify_alert(485, 500, 100, thresholds), "drop")
        self.assertEqual(classify_alert(515, 500, 100, thresholds), "trend_change")


class TestAnalyzeTrend(unittest.TestCase):
    def test_rising_fast_means_buy_now(self):
        trend = analyze_trend([100, 105, 110, 115])
        self.assertEqual(trend.trend, "rising")
        self.assertEqual(trend.change_percentage, 15.0)
        self.assertEqual(trend.prediction, "buy_now")

    def test_rising_slowly_means_monitor(self):
        trend = analyze_trend([100, 108])
        self.assertEqual(trend.trend, "rising")
        self.assertEqual(trend.prediction, "monitor")

    def test_falling_means_wait(self):
        trend = analyze_trend([200, 180])
        self.assertEqual(trend.trend, "falling")
        self.assertEqual(trend.change_percentage, -10.0)
        self.assertEqual(trend.prediction, "wait")

    def test_too_little_history(self):
        for history in ([], [100]):
            trend = analyze_trend(history)
            self.assertEqual((trend.trend, trend.change_percentage, trend.prediction), ("stable", 0.0, "monitor"))

    def test_only_recent_window_counts(self):
        # Last five samples: 500 -> 210
        trend = analyze_trend([100, 500, 200, 200, 200, 210])
        self.assertEqual(trend.trend, "falling")
        self.assertEqual(trend.change_percentage, -58.0)

    def test_rounded_to_two_decimals(self):
        self.assertEqual(analyze_trend([300, 301]).change_percentage, 0.33)


class TestPriceMonitor(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.flight_data = FakeFlightData()
        self.alerts = []
        self.monitor = PriceMonitor(self.flight_data, check_interval_minutes=60, history_size=3)

    async def asyncTearDown(self):
        await self.monitor.shutdown()

    async def _start(self, target_price=100.0):
        return await self.monitor.start_monitoring(PARAMS, target_price, "user-1", on_alert=self.alerts.append)

    async def _wait_until(self, predicate, timeout=2.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                self.fail("condition not reached in time")
            await asyncio.sleep(0.01)

    def _fire_now(self, monitor_id):
        self.monitor.scheduler.get_job(monitor_id).modify(next_run_time=datetime.now(timezone.utc))

    async def test_start_checks_immediately_and_schedules_job(self):
        monitor_id = await self._start()

        self.assertEqual(monitor_id, "JFK_LAX_2030-06-01_economy")
        self.assertEqual(monitor_id, monitor_id_for(PARAMS))
        self.assertEqual(self.flight_data.calls, 1)
        self.assertEqual(self.monitor.get_price_history(monitor_id), [500.0])
        self.assertEqual([job.id for job in self.monitor.scheduler.get_jobs()], [monitor_id])

    async def test_restart_replaces_session(self):
        first = await self._start()
        second = await self._start(target_price=200.0)

        self.assertEqual(first, second)
        self.assertEqual(self.monitor.list_active(), [first])
        self.assertEqual(len(self.monitor.scheduler.get_jobs()), 1)
        # History starts over with the new session
        self.assertEqual(self.monitor.get_price_history(first), [500.0])

    async def test_threshold_alert_on_initial_check(self):
        self.flight_data.price = 350.0
        await self._start(target_price=400.0)

        self.assertEqual(len(self.alerts), 1)
        alert = self.alerts[0]
        self.assertEqual(alert.alert_type, "threshold")
        self.assertEqual(alert.current_price, 350.0)
        self.assertEqual(alert.price_change, 0.0)
        self.assertEqual(alert.user_id, "user-1")
        self.assertEqual(alert.criteria.cabin_class, ["economy"])
        self.assertTrue(alert.id.startswith("alert_"))
        self.assertEqual(alert.expires_at - alert.created_at, timedelta(days=7))

    async def test_drop_alert_on_tick(self):
        monitor_id = await self._start()
        self.assertEqual(self.alerts, [])

        self.flight_data.price = 440.0
        alert = await self.monitor.check_price_changes(monitor_id)

        self.assertEqual(alert.alert_type, "drop")
        self.assertEqual(alert.price_change, -60.0)
        self.assertEqual(self.alerts, [alert])

    async def test_small_change_does_not_alert(self):
        monitor_id = await self._start()
        self.flight_data.price = 480.0
        self.assertIsNone(await self.monitor.check_price_changes(monitor_id))
        self.assertEqual(self.monitor.get_price_history(monitor_id), [500.0, 480.0])

    async def test_no_data_tick_keeps_session(self):
        monitor_id = await self._start()
        self.flight_data.price = None

        self.assertIsNone(await self.monitor.check_price_changes(monitor_id))
        self.assertEqual(self.monitor.get_price_history(monitor_id), [500.0])
        self.assertEqual(self.monitor.list_active(), [monitor_id])

    async def test_history_is_bounded(self):
        monitor_id = await self._start()
        for price in (510.0, 520.0, 530.0):
            self.flight_data.price = price
            await self.monitor.check_price_changes(monitor_id)
        self.assertEqual(self.monitor.get_price_history(monitor_id), [510.0, 520.0, 530.0])

    async def test_trend_for_session(self):
        monitor_id = await self._start()
        self.flight_data.price = 560.0
        await self.monitor.check_price_changes(monitor_id)

        trend = self.monitor.get_price_trend(monitor_id)
        self.assertEqual(trend.trend, "rising")
        self.assertEqual(trend.prediction, "buy_now")

    async def test_stop_cancels_job_and_later_ticks(self):
        monitor_id = await self._start()

        self.assertTrue(self.monitor.stop_monitoring(monitor_id))
        self.assertEqual(self.monitor.list_active(), [])
        self.assertEqual(self.monitor.scheduler.get_jobs(), [])

        calls = self.flight_data.calls
        self.assertIsNone(await self.monitor.check_price_changes(monitor_id))
        self.assertEqual(self.flight_data.calls, calls)

        trend = self.monitor.get_price_trend(monitor_id)
        self.assertEqual((trend.trend, trend.change_percentage, trend.prediction), ("stable", 0.0, "monitor"))
        self.assertEqual(self.monitor.get_price_history(monitor_id), [])

    async def test_scheduled_job_runs_price_check(self):
        monitor_id = await self._start()
        self.flight_data.price = 440.0

        self._fire_now(monitor_id)
        await self._wait_until(lambda: len(self.alerts) == 1)

        self.assertEqual(self.alerts[0].alert_type, "drop")
        self.assertEqual(self.monitor.get_price_history(monitor_id), [500.0, 440.0])

    async def test_ticks_of_one_session_never_overlap(self):
        monitor_id = await self._start()
        self.flight_data.gate = asyncio.Event()
        self.flight_data.entered.clear()

        self._fire_now(monitor_id)
        await asyncio.wait_for(self.flight_data.entered.wait(), 2)
        calls = self.flight_data.calls

        # Due again while the first tick is still waiting on prices
        self._fire_now(monitor_id)
        await asyncio.sleep(0.2)
        self.assertEqual(self.flight_data.calls, calls)

        self.flight_data.gate.set()
        await self._wait_until(lambda: len(self.monitor.get_price_history(monitor_id)) == 2)
        self.assertEqual(self.flight_data.calls, calls)

    async def test_stop_unknown_id(self):
        self.assertFalse(self.monitor.stop_monitoring("NOPE_NOPE_2030-01-01_economy"))

    async def test_in_flight_tick_after_stop_is_discarded(self):
        monitor_id = await self._start()
        session = self.monitor._sessions[monitor_id]

        self.flight_data.gate = asyncio.Event()
        self.flight_data.entered.clear()
        self.flight_data.price = 50.0
        tick = asyncio.create_task(self.monitor.check_price_changes(monitor_id))
        await self.flight_data.entered.wait()

        self.monitor.stop_monitoring(monitor_id)
        self.flight_data.gate.set()

        self.assertIsNone(await tick)
        self.assertEqual(list(session.history), [])
        self.assertEqual(self.alerts, [])

    async def test_callback_failure_does_not_escape(self):
        def explode(alert):
            raise RuntimeError("listener broke")

        self.flight_data.price = 90.0
        monitor_id = await self.monitor.start_monitoring(PARAMS, 100.0, "user-1", on_alert=explode)

        self.assertEqual(self.monitor.list_active(), [monitor_id])
        self.assertIsNone(await self.monitor.check_price_changes(monitor_id))

    async def test_current_price_is_lowest_total(self):
        self.assertEqual(await self.monitor.get_current_price(PARAMS), 500.0)
        self.flight_data.price = None
        self.assertIsNone(await self.monitor.get_current_price(PARAMS))


if __name__ == "__main__":
    unittest.main()
