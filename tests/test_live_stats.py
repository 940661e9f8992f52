"""Tests for live stat ingestion and the refresh guard."""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import httpx
from main import (
    build_live_points, fetch_live_gw, refresh_live_data,
    LiveDataCache, LiveStatLine, EXTENDED_STAT_FIELDS,
)


def _json_client(payload, status_code=200):
    def handler(request):
        return httpx.Response(status_code, json=payload)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestBuildLivePoints:
    def test_basic_fields(self, make_live_element):
        payload = {"elements": [make_live_element(5, total_points=8, bonus=2, minutes=90, goals_scored=1)]}
        live = build_live_points(payload)
        assert live[5].points == 8
        assert live[5].bonus == 2
        assert live[5].minutes == 90
        # Extended counters are not ingested by default
        assert live[5].goals_scored is None
        assert live[5].to_dict() == {"points": 8, "bonus": 2, "minutes": 90}

    def test_extended_stats(self, make_live_element):
        payload = {"elements": [make_live_element(5, total_points=8, goals_scored=1, saves="3", tackles=None)]}
        line = build_live_points(payload, include_extended_stats=True)[5]
        assert line.goals_scored == 1
        assert line.saves == 3
        assert line.tackles == 0
        assert line.defensive_contribution == 0
        for name in EXTENDED_STAT_FIELDS:
            assert getattr(line, name) is not None

    def test_non_numeric_coerced_to_zero(self):
        payload = {"elements": [{"id": 7, "stats": {"total_points": "abc", "bonus": None, "minutes": "45"}}]}
        line = build_live_points(payload)[7]
        assert line == LiveStatLine(points=0, bonus=0, minutes=45)

    def test_missing_stats_block(self):
        assert build_live_points({"elements": [{"id": 3}]})[3] == LiveStatLine()

    def test_malformed_payloads(self):
        assert build_live_points(None) == {}
        assert build_live_points([]) == {}
        assert build_live_points({"elements": "nope"}) == {}
        assert build_live_points({"elements": [None, "x", {"stats": {}}]}) == {}


class TestFetchLiveGw:
    def test_success(self, make_live_element):
        payload = {"elements": [make_live_element(5, total_points=6, minutes=75)]}
        live_cache = LiveDataCache()

        async def run():
            async with _json_client(payload) as client:
                return await fetch_live_gw(12, live_cache, client=client)

        assert asyncio.run(run()) == payload
        assert live_cache.get_live_line(5).points == 6
        assert live_cache.live_gameweek == 12

    def test_failure_returns_none_and_clears(self):
        live_cache = LiveDataCache()
        live_cache.live_points = {5: LiveStatLine(points=10)}

        async def run():
            async with _json_client({}, status_code=500) as client:
                return await fetch_live_gw(12, live_cache, client=client)

        assert asyncio.run(run()) is None
        assert live_cache.live_points == {}

    def test_invalid_json_returns_none(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>not json</html>")

        live_cache = LiveDataCache()

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await fetch_live_gw(12, live_cache, client=client)

        assert asyncio.run(run()) is None
        assert live_cache.live_points == {}


class TestRefreshLiveData:
    def test_refreshes_both_caches(self, make_fixture, make_live_element):
        fixtures = [make_fixture(started=True, bps_h=[(5, 30)], bps_a=[(9, 10)])]
        live = {"elements": [make_live_element(5, total_points=6, minutes=60)]}

        def handler(request):
            if request.url.path.endswith("/fixtures/"):
                return httpx.Response(200, json=fixtures)
            return httpx.Response(200, json=live)

        live_cache = LiveDataCache()

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await refresh_live_data(3, live_cache, client=client)

        result = asyncio.run(run())
        assert result["fixtures"] == 1
        assert result["live_ok"] is True
        assert live_cache.get_projected_bonus(5, 3) == 3
        assert live_cache.get_live_line(5).minutes == 60

    def test_overlapping_refreshes_are_serialised(self, make_fixture):
        """Second refresh only starts once the first has finished."""
        events = []

        async def handler(request):
            events.append(("start", request.url.path))
            await asyncio.sleep(0)
            events.append(("end", request.url.path))
            if request.url.path.endswith("/fixtures/"):
                return httpx.Response(200, json=[make_fixture()])
            return httpx.Response(200, json={"elements": []})

        live_cache = LiveDataCache()

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                await asyncio.gather(
                    refresh_live_data(1, live_cache, client=client),
                    refresh_live_data(1, live_cache, client=client),
                )

        asyncio.run(run())
        assert len(events) == 8
        # Each request starts and ends before the next one begins
        for i in range(0, 8, 2):
            assert events[i][0] == "start"
            assert events[i + 1][0] == "end"
            assert events[i][1] == events[i + 1][1]
