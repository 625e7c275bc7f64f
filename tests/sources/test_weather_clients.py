"""Tests for NWS and OpenWeather clients."""

import httpx
import pytest

from eas_system.data_management.schemas import GeoPoint
from eas_system.sources import NWSClient, OpenWeatherClient, SourceError

HOUSTON = GeoPoint(lat=29.76043, lng=-95.36980)


def _client(cls, handler, **kwargs):
    return cls(transport=httpx.MockTransport(handler), max_attempts=1, **kwargs)


# ── NWS ───────────────────────────────────────────────────────────────────


class TestNWSAlerts:
    """Active alerts for a point."""

    @pytest.mark.asyncio
    async def test_parses_alert_features(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["point"] = request.url.params["point"]
            return httpx.Response(
                200,
                json={
                    "features": [
                        {
                            "properties": {
                                "event": "Flash Flood Warning",
                                "severity": "Severe",
                                "areaDesc": "Harris, TX",
                                "sent": "2026-10-18T13:40:00-05:00",
                                "headline": "Flash Flood Warning issued for Harris County",
                            }
                        },
                        {"properties": {"severity": "Minor"}},
                    ]
                },
            )

        async with _client(NWSClient, handler) as client:
            alerts = await client.active_alerts(HOUSTON)

        assert seen["path"] == "/alerts/active"
        assert seen["point"] == "29.7604,-95.3698"
        assert len(alerts) == 1
        assert alerts[0].alert_type == "Flash Flood Warning"
        assert alerts[0].severity == "Severe"
        assert alerts[0].area == "Harris, TX"
        assert alerts[0].source == "NOAA/NWS"

    @pytest.mark.asyncio
    async def test_out_of_coverage_raises(self) -> None:
        async with _client(NWSClient, lambda request: httpx.Response(404)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.active_alerts(GeoPoint(lat=48.85, lng=2.35))


class TestNWSForecast:
    """Severe forecast periods via the points endpoint."""

    @pytest.mark.asyncio
    async def test_filters_severe_periods(self) -> None:
        forecast_url = "https://api.weather.gov/gridpoints/HGX/65,97/forecast"

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/points/"):
                return httpx.Response(200, json={"properties": {"forecast": forecast_url}})
            return httpx.Response(
                200,
                json={
                    "properties": {
                        "periods": [
                            {"name": "Today", "detailedForecast": "Sunny, high near 80."},
                            {"name": "Tonight", "detailedForecast": "Severe thunderstorms possible."},
                            {"name": "Sunday", "detailedForecast": "Wind Advisory in effect."},
                        ]
                    }
                },
            )

        async with _client(NWSClient, handler) as client:
            periods = await client.severe_forecast_periods(HOUSTON)

        assert [p["name"] for p in periods] == ["Tonight", "Sunday"]

    @pytest.mark.asyncio
    async def test_no_forecast_url(self) -> None:
        handler = lambda request: httpx.Response(200, json={"properties": {}})
        async with _client(NWSClient, handler) as client:
            assert await client.severe_forecast_periods(HOUSTON) == []


# ── OpenWeather ───────────────────────────────────────────────────────────


class TestOpenWeather:
    """Current conditions."""

    @pytest.mark.asyncio
    async def test_parses_conditions(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(
                200,
                json={
                    "main": {"temp": 24.5, "humidity": 91, "pressure": 1004},
                    "wind": {"speed": 12.3, "deg": 140},
                    "rain": {"1h": 18.2},
                    "visibility": 4000,
                    "weather": [{"main": "Rain", "description": "heavy intensity rain"}],
                },
            )

        async with _client(OpenWeatherClient, handler, api_key="test-key") as client:
            reading = await client.current_conditions(HOUSTON)

        assert seen["appid"] == "test-key"
        assert seen["units"] == "metric"
        assert reading.condition == "Rain"
        assert reading.precipitation == 18.2
        assert reading.wind_speed == 12.3
        assert reading.humidity == 91
        assert reading.visibility == 4000

    @pytest.mark.asyncio
    async def test_snow_counts_as_precipitation(self) -> None:
        handler = lambda request: httpx.Response(
            200,
            json={"main": {"temp": -4}, "snow": {"1h": 3.5}, "weather": [{"main": "Snow"}]},
        )
        async with _client(OpenWeatherClient, handler, api_key="k") as client:
            reading = await client.current_conditions(HOUSTON)
        assert reading.precipitation == 3.5

    @pytest.mark.asyncio
    async def test_missing_key_raises(self) -> None:
        client = OpenWeatherClient(api_key=None)
        assert client.configured is False
        with pytest.raises(SourceError):
            await client.current_conditions(HOUSTON)

    @pytest.mark.asyncio
    async def test_missing_main_raises(self) -> None:
        handler = lambda request: httpx.Response(200, json={"cod": 401, "message": "Invalid API key"})
        async with _client(OpenWeatherClient, handler, api_key="k") as client:
            with pytest.raises(SourceError):
                await client.current_conditions(HOUSTON)
