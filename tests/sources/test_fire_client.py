"""Tests for the NASA FIRMS active-fire feed client."""

import httpx
import pytest

from eas_system.sources import FIRMSClient

MODIS_CSV = """latitude,longitude,brightness,scan,track,acq_date,acq_time,satellite,confidence,version
34.2439,-117.0089,330.1,1.0,1.0,2026-10-18,0912,T,86,6.1NRT
34.2511,-117.0132,318.4,1.0,1.0,2026-10-18,0912,T,n,6.1NRT
bad,-117.0,300.0,1.0,1.0,2026-10-18,0912,T,50,6.1NRT
-12.5,130.8,305.0,1.0,1.0,2026-10-18,0430,A,42,6.1NRT
"""


class TestParseCsv:
    """Column mapping and row filtering."""

    def test_parses_numeric_rows(self) -> None:
        detections = FIRMSClient.parse_csv(MODIS_CSV)

        assert len(detections) == 2
        assert detections[0].latitude == pytest.approx(34.2439)
        assert detections[0].longitude == pytest.approx(-117.0089)
        assert detections[0].confidence == 86
        assert detections[0].acquired_at == "2026-10-18"
        assert detections[1].confidence == 42

    def test_empty_feed(self) -> None:
        assert FIRMSClient.parse_csv("") == []

    def test_columns_found_by_header_name(self) -> None:
        text = "confidence,latitude,longitude\n77,10.0,20.0\n"
        (detection,) = FIRMSClient.parse_csv(text)
        assert (detection.latitude, detection.longitude, detection.confidence) == (10.0, 20.0, 77.0)
        assert detection.acquired_at is None

    def test_short_rows_skipped(self) -> None:
        assert FIRMSClient.parse_csv("latitude,longitude,confidence\n1.0,2.0\n") == []


class TestDetections:
    """Feed download."""

    @pytest.mark.asyncio
    async def test_fetches_feed(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=MODIS_CSV))
        async with FIRMSClient(transport=transport, max_attempts=1) as client:
            detections = await client.detections()
        assert len(detections) == 2

    @pytest.mark.asyncio
    async def test_custom_feed_url(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, text="latitude,longitude,confidence\n")

        url = "https://firms.example.org/feed.csv"
        async with FIRMSClient(base_url=url, transport=httpx.MockTransport(handler), max_attempts=1) as client:
            assert await client.detections() == []
        assert seen["url"] == url
