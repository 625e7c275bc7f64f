"""Weather sources: NWS alerts and forecasts, OpenWeather current conditions."""

from typing import Any, Optional

from eas_system.data_management.schemas import (
    GeoPoint,
    MeteorologicalReading,
    OfficialAlert,
)
from eas_system.sources.base_client import BaseSourceClient, SourceError
from eas_system.utils.geo import parse_float

SEVERE_FORECAST_TERMS = ("severe", "warning", "advisory")


class NWSClient(BaseSourceClient):
    """
    US National Weather Service API (api.weather.gov).

    Requires no key but does require a descriptive User-Agent. Points
    outside NWS coverage answer 404, which the validator records as a
    failed source.
    """

    name = "NOAA/NWS"
    base_url = "https://api.weather.gov"

    async def active_alerts(self, point: GeoPoint) -> list[OfficialAlert]:
        """Alerts currently in effect for a point."""
        payload = await self._get_json(
            f"{self.base_url}/alerts/active",
            params={"point": f"{point.lat:.4f},{point.lng:.4f}"},
            headers={"Accept": "application/geo+json"},
        )
        if not isinstance(payload, dict):
            raise SourceError("NWS alerts payload is not an object")

        alerts = []
        for feature in payload.get("features") or []:
            properties = feature.get("properties") or {}
            event = properties.get("event")
            if not event:
                continue
            alerts.append(
                OfficialAlert(
                    source=self.name,
                    alert_type=str(event),
                    severity=str(properties.get("severity") or ""),
                    area=str(properties.get("areaDesc") or ""),
                    issued_at=properties.get("sent"),
                    message=str(properties.get("headline") or ""),
                )
            )
        self.logger.debug(f"NWS returned {len(alerts)} active alerts")
        return alerts

    async def severe_forecast_periods(self, point: GeoPoint) -> list[dict[str, Any]]:
        """Forecast periods whose text mentions severe weather, warnings or advisories."""
        meta = await self._get_json(
            f"{self.base_url}/points/{point.lat:.4f},{point.lng:.4f}",
            headers={"Accept": "application/geo+json"},
        )
        forecast_url = ((meta or {}).get("properties") or {}).get("forecast")
        if not forecast_url:
            return []

        forecast = await self._get_json(forecast_url, headers={"Accept": "application/geo+json"})
        periods = ((forecast or {}).get("properties") or {}).get("periods") or []
        return [
            period
            for period in periods
            if any(
                term in str(period.get("detailedForecast") or "").lower()
                for term in SEVERE_FORECAST_TERMS
            )
        ]


class OpenWeatherClient(BaseSourceClient):
    """OpenWeatherMap current weather (metric units). Needs an API key."""

    name = "OpenWeather"
    base_url = "https://api.openweathermap.org/data/2.5"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def current_conditions(self, point: GeoPoint) -> MeteorologicalReading:
        """
        Current conditions at a point.

        Raises:
            SourceError: No API key, or the payload lacks a "main" block
        """
        if not self.api_key:
            raise SourceError("OpenWeather API key not configured")

        data = await self._get_json(
            f"{self.base_url}/weather",
            params={
                "lat": point.lat,
                "lon": point.lng,
                "appid": self.api_key,
                "units": "metric",
            },
        )
        main = (data or {}).get("main") if isinstance(data, dict) else None
        if not main:
            raise SourceError("OpenWeather payload missing 'main'")

        wind = data.get("wind") or {}
        rain = (data.get("rain") or {}).get("1h")
        snow = (data.get("snow") or {}).get("1h")
        weather = (data.get("weather") or [{}])[0] or {}

        return MeteorologicalReading(
            source=self.name,
            location=point,
            temperature=parse_float(main.get("temp")) or 0.0,
            humidity=parse_float(main.get("humidity")) or 0.0,
            pressure=parse_float(main.get("pressure")) or 0.0,
            wind_speed=parse_float(wind.get("speed")) or 0.0,
            wind_direction=parse_float(wind.get("deg")) or 0.0,
            precipitation=parse_float(rain) or parse_float(snow) or 0.0,
            visibility=parse_float(data.get("visibility")) or 10000.0,
            condition=str(weather.get("main") or ""),
            description=str(weather.get("description") or ""),
        )
