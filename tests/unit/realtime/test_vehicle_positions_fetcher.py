"""Unit tests for the live vehicle positions fetcher."""

import asyncio
import logging

import httpx
import pytest

from src.gtfs_bc.lookup.gtfs_lookup_store import GTFSLookupStore, LookupSnapshot
from src.gtfs_bc.realtime.domain.entities import VehiclePositionEntity
from src.gtfs_bc.realtime.domain.exceptions import LiveFeedError
from src.gtfs_bc.realtime.infrastructure.services.gtfs_rt_fetcher import (
    VehiclePositionsFetcher,
    summarize_vehicle_ids,
)
from src.gtfs_bc.realtime.infrastructure.services.vehicle_identity_resolver import VehicleIdentityResolver
from src.gtfs_bc.route.domain.entities.route import RouteRecord
from tests.gtfs_fixtures import build_feed, mock_transport

FEED_URL = "https://example.test/gtfs-rt/VehiclePositions.pb"


def _resolver() -> VehicleIdentityResolver:
    route = RouteRecord(route_id="R44", line_number="44", long_name="Sandviken - Gävle", color="546712")
    store = GTFSLookupStore()
    store.publish(LookupSnapshot(route_map={"R44": "44"}, route_info_map={"R44": route}))
    return VehicleIdentityResolver(store)


def _fetcher(handler, calls=None, api_key="live-key") -> VehiclePositionsFetcher:
    return VehiclePositionsFetcher(
        resolver=_resolver(),
        url=FEED_URL,
        api_key=api_key,
        transport=mock_transport(handler, calls),
    )


class TestFetchVehicles:
    """Tests for VehiclePositionsFetcher.fetch_vehicles()."""

    def test_vehicles_are_resolved(self):
        feed = build_feed([
            {"id": "V1", "route_id": "R44", "trip_id": "T1"},
            {"id": "9031021000557753"},
        ])
        calls = []
        vehicles = asyncio.run(_fetcher(lambda r: httpx.Response(200, content=feed), calls).fetch_vehicles())

        assert len(vehicles) == 2
        first = vehicles[0]
        assert first["id"] == "V1"
        assert first["busNumber"] == "44"
        assert first["busNumberSource"] == "dataset-route"
        assert first["routeColor"] == "#546712"
        assert first["routeTextColor"] == "#FFFFFF"
        assert first["routeLongName"] == "Sandviken - Gävle"
        assert first["routeId"] == "R44"
        assert first["trip"] == {"tripId": "T1", "routeId": "R44", "blockId": None}
        assert first["position"]["latitude"] == pytest.approx(60.6749, abs=1e-4)

        second = vehicles[1]
        assert second["busNumber"] == "55"
        assert second["busNumberSource"] == "direct-override"
        assert second["routeColor"] == "#1c65b0"
        assert second["routeTextColor"] == "#FFFFFF"
        assert second["routeLongName"] is None

        assert calls[0].url.params["key"] == "live-key"
        assert "gzip" in calls[0].headers["Accept-Encoding"]

    def test_stats_count_guessed_lines(self, caplog):
        feed = build_feed([
            {"id": "V1", "route_id": "R44"},
            {"id": "9031021000444499"},
            {"id": "no-digits"},
        ])
        caplog.set_level(logging.INFO)

        asyncio.run(_fetcher(lambda r: httpx.Response(200, content=feed)).fetch_vehicles())

        assert "Fetched 3 vehicles: 2 with line number (1 guessed), 1 unknown" in caplog.text

    def test_entities_without_position_or_vehicle_are_skipped(self):
        feed = build_feed([{"id": "V1"}, {"id": "V2", "position": False}], alerts=2)
        vehicles = asyncio.run(_fetcher(lambda r: httpx.Response(200, content=feed)).fetch_vehicles())

        assert [v["id"] for v in vehicles] == ["V1"]

    def test_http_error_status(self):
        fetcher = _fetcher(lambda r: httpx.Response(500))

        with pytest.raises(LiveFeedError) as exc_info:
            asyncio.run(fetcher.fetch_vehicles())
        assert exc_info.value.status_code == 500

    def test_empty_body(self):
        fetcher = _fetcher(lambda r: httpx.Response(200, content=b""))

        with pytest.raises(LiveFeedError, match="empty"):
            asyncio.run(fetcher.fetch_vehicles())

    def test_undecodable_body(self):
        fetcher = _fetcher(lambda r: httpx.Response(200, content=b"not a protobuf"))

        with pytest.raises(LiveFeedError):
            asyncio.run(fetcher.fetch_vehicles())

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LiveFeedError):
            asyncio.run(_fetcher(handler).fetch_vehicles())

    def test_missing_api_key(self):
        calls = []
        fetcher = _fetcher(lambda r: httpx.Response(200), calls, api_key="")

        with pytest.raises(LiveFeedError):
            asyncio.run(fetcher.fetch_vehicles())
        assert calls == []


class TestSummarizeVehicleIds:
    """Tests for the vehicle id diagnostics summary."""

    def test_groups_by_length_and_segment(self):
        vehicles = [
            VehiclePositionEntity("9031021000444499", route_id="R44"),
            VehiclePositionEntity("9031021000444400", route_id="R45"),
            VehiclePositionEntity("9031021000444411", route_id="R44"),
            VehiclePositionEntity("9031021000444422"),
            VehiclePositionEntity("9031020055000001", route_id="R55"),
            VehiclePositionEntity("SHORT"),
            VehiclePositionEntity(""),
        ]

        summary = summarize_vehicle_ids(vehicles)

        assert summary["lengths"][16]["count"] == 5
        assert len(summary["lengths"][16]["examples"]) == 3
        assert summary["lengths"][5] == {"count": 1, "examples": ["SHORT"]}
        assert summary["company_segments"]["1000"]["route_ids"] == ["R44", "R45"]
        assert len(summary["company_segments"]["1000"]["examples"]) == 3
        assert summary["company_segments"]["0055"]["route_ids"] == ["R55"]
