"""Tests for the FDSN earthquake catalog clients.

Uses httpx.MockTransport so no network is touched.
"""

from datetime import datetime, timezone

import httpx
import pytest

from eas_system.data_management.schemas import GeoPoint
from eas_system.sources import EMSCClient, SourceError, USGSClient

SF = GeoPoint(lat=37.7749, lng=-122.4194)
START = datetime(2026, 10, 18, 12, 5, tzinfo=timezone.utc)
END = datetime(2026, 10, 18, 16, 5, tzinfo=timezone.utc)

USGS_PAYLOAD = {
    "type": "FeatureCollection",
    "features": [
        {
            "properties": {
                "mag": 7.2,
                "place": "10 km N of San Francisco, CA",
                "time": 1792332300000,
                "tsunami": 1,
            },
            "geometry": {"coordinates": [-122.4194, 37.8649, 8.5]},
        },
        {
            # no magnitude: skipped
            "properties": {"mag": None, "place": "somewhere"},
            "geometry": {"coordinates": [-122.0, 37.0, 5.0]},
        },
    ],
}


def _client(cls, handler, **kwargs):
    return cls(transport=httpx.MockTransport(handler), max_attempts=1, **kwargs)


class TestUSGSClient:
    """USGS FDSN GeoJSON query."""

    @pytest.mark.asyncio
    async def test_query_params_and_parsing(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(200, json=USGS_PAYLOAD)

        async with _client(USGSClient, handler) as client:
            readings = await client.query_events(START, END, SF, radius_km=500, min_magnitude=4.0)

        assert seen["format"] == "geojson"
        assert seen["starttime"] == "2026-10-18T12:05:00"
        assert seen["endtime"] == "2026-10-18T16:05:00"
        assert seen["maxradiuskm"] == "500"
        assert seen["minmagnitude"] == "4.0"

        assert len(readings) == 1
        reading = readings[0]
        assert reading.source == "USGS"
        assert reading.magnitude == 7.2
        assert reading.location == GeoPoint(lat=37.8649, lng=-122.4194)
        assert reading.depth == 8.5
        assert reading.place == "10 km N of San Francisco, CA"
        assert reading.tsunami is True
        assert reading.time is not None and reading.time.tzinfo is not None

    @pytest.mark.asyncio
    async def test_empty_response(self) -> None:
        async with _client(USGSClient, lambda request: httpx.Response(204)) as client:
            assert await client.query_events(START, END, SF) == []

    @pytest.mark.asyncio
    async def test_http_error_propagates(self) -> None:
        async with _client(USGSClient, lambda request: httpx.Response(503)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.query_events(START, END, SF)

    @pytest.mark.asyncio
    async def test_invalid_json_raises_source_error(self) -> None:
        handler = lambda request: httpx.Response(200, content=b"<html>maintenance</html>")
        async with _client(USGSClient, handler) as client:
            with pytest.raises(SourceError):
                await client.query_events(START, END, SF)

    @pytest.mark.asyncio
    async def test_non_object_payload_raises(self) -> None:
        async with _client(USGSClient, lambda request: httpx.Response(200, json=[1, 2])) as client:
            with pytest.raises(SourceError):
                await client.query_events(START, END, SF)


class TestEMSCClient:
    """EMSC expresses the radius in degrees."""

    @pytest.mark.asyncio
    async def test_radius_in_degrees(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(
                200,
                json={
                    "features": [
                        {
                            "properties": {
                                "mag": 4.8,
                                "flynn_region": "NORTHERN CALIFORNIA",
                                "time": "2026-10-18T14:01:12.3Z",
                            },
                            "geometry": {"coordinates": [-122.3, 37.9, -10.0]},
                        }
                    ]
                },
            )

        async with _client(EMSCClient, handler) as client:
            readings = await client.query_events(START, END, SF, radius_km=500)

        assert float(seen["maxradius"]) == pytest.approx(500 / 111.2, abs=0.001)
        assert seen["lat"] == "37.7749"
        assert seen["lon"] == "-122.4194"
        assert readings[0].place == "NORTHERN CALIFORNIA"
        assert readings[0].depth == 10.0
        assert readings[0].time == datetime(2026, 10, 18, 14, 1, 12, 300000, tzinfo=timezone.utc)


class TestFDSNBase:
    def test_catalog_must_define_query_params(self) -> None:
        from eas_system.sources.seismic import FDSNEventClient

        with pytest.raises(TypeError):
            FDSNEventClient()
