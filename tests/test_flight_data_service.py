import asyncio
import unittest
from datetime import date

from factories import SilentServer, make_flight

from farecore.errors import (
    AggregateProviderFailure,
    AuthenticationError,
    EmptyResultError,
    ProviderTimeoutError,
    UpstreamError,
)
from farecore.schemas.search import FlightSearchParams
from farecore.services.flight_data_service import FlightDataService, enrich_flights
from farecore.services.flight_store import FlightStore


class FakeProvider:
    def __init__(self, name, flights=None, error=None, airports=None):
        self.name = name
        self.flights = flights or []
        self.error = error
        self.airports = airports or []
        self.calls = 0
        self.closed = False

    async def search_flights(self, params):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.flights)

    async def get_airports(self, query):
        if self.error is not None:
            raise self.error
        return self.airports

    async def close(self):
        self.closed = True


class FakeAsyncRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)

    async def aclose(self):
        pass


PARAMS = FlightSearchParams(origin="JFK", destination="LAX", departure_date=date(2030, 6, 1))


class TestFlightDataService(unittest.IsolatedAsyncioTestCase):
    async def test_falls_back_to_secondary(self):
        primary = FakeProvider("primary", error=UpstreamError("HTTP 503: Service Unavailable", "primary", 503))
        secondary = FakeProvider("secondary", flights=[make_flight(320, "a"), make_flight(280, "b")])
        service = FlightDataService([primary, secondary])

        result = await service.search(PARAMS)

        self.assertEqual(len(result.flights), 2)
        self.assertEqual(result.provider, "secondary")
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].provider, "primary")

    async def test_primary_success_skips_secondary(self):
        primary = FakeProvider("primary", flights=[make_flight(300)])
        secondary = FakeProvider("secondary", flights=[make_flight(200)])
        service = FlightDataService([primary, secondary])

        flights = await service.search_flights(PARAMS)

        self.assertEqual(len(flights), 1)
        self.assertEqual(secondary.calls, 0)

    async def test_empty_result_counts_as_failure(self):
        primary = FakeProvider("primary", flights=[])
        secondary = FakeProvider("secondary", flights=[make_flight(200)])
        result = await FlightDataService([primary, secondary]).search(PARAMS)

        self.assertEqual(result.provider, "secondary")
        self.assertIsInstance(result.errors[0], EmptyResultError)

    async def test_all_providers_fail(self):
        primary = FakeProvider("primary", error=ProviderTimeoutError("Request timed out after 30s", "primary"))
        secondary = FakeProvider("secondary", error=AuthenticationError("Skyscanner API key not configured", "secondary"))
        service = FlightDataService([primary, secondary])

        with self.assertRaises(AggregateProviderFailure) as ctx:
            await service.search_flights(PARAMS)

        failure = ctx.exception
        self.assertEqual(len(failure.errors), 2)
        self.assertIn("Request timed out after 30s", str(failure))
        self.assertIn("Skyscanner API key not configured", str(failure))
        self.assertTrue(failure.degraded)
        self.assertFalse(failure.misconfigured)
        payload = failure.to_dict()
        self.assertEqual([c["kind"] for c in payload["causes"]], ["timeout", "authentication"])

    async def test_misconfigured_when_every_cause_is_auth(self):
        service = FlightDataService([
            FakeProvider("primary", error=AuthenticationError("no credentials", "primary")),
            FakeProvider("secondary", error=AuthenticationError("no key", "secondary")),
        ])
        with self.assertRaises(AggregateProviderFailure) as ctx:
            await service.search(PARAMS)
        self.assertTrue(ctx.exception.misconfigured)
        self.assertFalse(ctx.exception.degraded)

    async def test_unexpected_exception_does_not_escape(self):
        primary = FakeProvider("primary", error=RuntimeError("boom"))
        secondary = FakeProvider("secondary", flights=[make_flight(200)])
        result = await FlightDataService([primary, secondary]).search(PARAMS)
        self.assertEqual(result.provider, "secondary")
        self.assertIn("boom", str(result.errors[0]))

    async def test_results_are_persisted_and_readable(self):
        store = FlightStore(client=FakeAsyncRedis())
        service = FlightDataService([FakeProvider("primary", flights=[make_flight(250, "x")])], store=store)

        await service.search(PARAMS)
        cached = await service.cached_flights(PARAMS)

        self.assertEqual([f.id for f in cached], ["x"])
        self.assertIn("direct", cached[0].sustainability_badges)

    async def test_store_failure_does_not_fail_search(self):
        class BrokenRedis(FakeAsyncRedis):
            async def set(self, key, value, ex=None):
                raise ConnectionError("redis down")

        store = FlightStore(client=BrokenRedis())
        service = FlightDataService([FakeProvider("primary", flights=[make_flight(250)])], store=store)
        flights = await service.search_flights(PARAMS)
        self.assertEqual(len(flights), 1)

    async def test_unresponsive_store_does_not_stall_search(self):
        async with SilentServer() as server:
            store = FlightStore(server.url, timeout=0.2)
            service = FlightDataService([FakeProvider("primary", flights=[make_flight(250)])], store=store)
            flights = await asyncio.wait_for(service.search_flights(PARAMS), 5)
            await store.close()
        self.assertEqual(len(flights), 1)

    async def test_airports_fall_back_to_static_list(self):
        service = FlightDataService([FakeProvider("primary", error=UpstreamError("HTTP 500", "primary"))])
        airports = await service.get_airports("paris")
        self.assertEqual([a.code for a in airports], ["CDG"])

    async def test_close_closes_providers(self):
        providers = [FakeProvider("a"), FakeProvider("b")]
        await FlightDataService(providers).close()
        self.assertTrue(all(p.closed for p in providers))


class TestEnrichment(unittest.TestCase):
    def test_badges_and_ranking(self):
        flights = [
            make_flight(500, "eco", carrier="KL", badge="eco_champion", per_passenger=120),
            make_flight(300, "connecting", stops=1, per_passenger=450),
        ]
        enriched = enrich_flights(flights)

        self.assertEqual([f.id for f in enriched], ["connecting", "eco"])
        connecting, eco = enriched
        self.assertEqual((connecting.stops, eco.stops), (1, 0))
        self.assertEqual(connecting.sustainability_badges, [])
        self.assertEqual(connecting.recommendation, "Good value flight option")
        self.assertEqual(eco.sustainability_badges, ["low_carbon", "direct", "eco_certified"])
        self.assertEqual(eco.recommendation, "Highly recommended for eco-conscious travelers")

    def test_enrichment_does_not_mutate_input(self):
        original = make_flight(200)
        enrich_flights([original])
        self.assertEqual(original.sustainability_badges, [])
        self.assertIsNone(original.recommendation)


if __name__ == "__main__":
    unittest.main()
