"""FDSN earthquake catalog clients (USGS primary, EMSC regional)."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from eas_system.data_management.schemas import GeoPoint, SeismicReading
from eas_system.sources.base_client import BaseSourceClient, SourceError
from eas_system.utils.geo import parse_float

KM_PER_DEGREE = 111.2


def _parse_time(value: Any) -> Optional[datetime]:
    """FDSN feeds send either epoch milliseconds or ISO-8601 strings."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_time(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S")


class FDSNEventClient(BaseSourceClient, ABC):
    """
    Query an FDSN event web service returning GeoJSON features.

    Subclasses only decide how the search radius is expressed and which
    properties hold the place name.
    """

    place_property = "place"

    @abstractmethod
    def _query_params(
        self,
        start: datetime,
        end: datetime,
        center: GeoPoint,
        radius_km: float,
        min_magnitude: float,
    ) -> dict[str, Any]:
        """Service-specific query string for a time window around a point."""

    async def query_events(
        self,
        start: datetime,
        end: datetime,
        center: GeoPoint,
        radius_km: float = 500.0,
        min_magnitude: float = 4.0,
    ) -> list[SeismicReading]:
        """
        Earthquakes inside the time window and radius.

        Args:
            start: Window start
            end: Window end
            center: Search center
            radius_km: Search radius in km
            min_magnitude: Smallest magnitude to return

        Returns:
            One SeismicReading per catalogued event

        Raises:
            httpx.HTTPError: Transport or status failure
            SourceError: Payload is not a GeoJSON feature collection
        """
        params = self._query_params(start, end, center, radius_km, min_magnitude)
        payload = await self._get_json(self.base_url, params=params)
        if not isinstance(payload, dict):
            raise SourceError(f"{self.name} returned an unexpected payload")

        readings = []
        for feature in payload.get("features") or []:
            reading = self._parse_feature(feature)
            if reading is not None:
                readings.append(reading)

        self.logger.debug(
            f"{self.name} returned {len(readings)} events",
            radius_km=radius_km,
            min_magnitude=min_magnitude,
        )
        return readings

    def _parse_feature(self, feature: dict[str, Any]) -> Optional[SeismicReading]:
        properties = feature.get("properties") or {}
        coordinates = (feature.get("geometry") or {}).get("coordinates") or []

        magnitude = parse_float(properties.get("mag"))
        lng = parse_float(coordinates[0]) if len(coordinates) > 0 else parse_float(properties.get("lon"))
        lat = parse_float(coordinates[1]) if len(coordinates) > 1 else parse_float(properties.get("lat"))
        if magnitude is None or lat is None or lng is None:
            self.logger.debug(f"Skipping malformed {self.name} feature")
            return None

        depth = parse_float(coordinates[2]) if len(coordinates) > 2 else parse_float(properties.get("depth"))
        return SeismicReading(
            source=self.name,
            magnitude=magnitude,
            depth=abs(depth or 0.0),
            location=GeoPoint(lat=lat, lng=lng),
            place=str(properties.get(self.place_property) or ""),
            time=_parse_time(properties.get("time")),
            tsunami=bool(properties.get("tsunami") == 1),
        )


class USGSClient(FDSNEventClient):
    """USGS earthquake catalog (radius expressed in km)."""

    name = "USGS"
    base_url = "https://earthquake.usgs.gov/fdsnws/event/1/query"

    def _query_params(self, start, end, center, radius_km, min_magnitude):
        return {
            "format": "geojson",
            "starttime": _format_time(start),
            "endtime": _format_time(end),
            "latitude": center.lat,
            "longitude": center.lng,
            "maxradiuskm": radius_km,
            "minmagnitude": min_magnitude,
        }


class EMSCClient(FDSNEventClient):
    """EMSC seismic portal (standard FDSN radius in degrees)."""

    name = "EMSC"
    base_url = "https://www.seismicportal.eu/fdsnws/event/1/query"
    place_property = "flynn_region"

    def _query_params(self, start, end, center, radius_km, min_magnitude):
        return {
            "format": "json",
            "start": _format_time(start),
            "end": _format_time(end),
            "lat": center.lat,
            "lon": center.lng,
            "maxradius": round(radius_km / KM_PER_DEGREE, 3),
            "minmag": min_magnitude,
            "orderby": "time",
            "limit": 100,
        }
