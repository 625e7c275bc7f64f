"""Free-text location -> coordinate lookup."""

from collections import OrderedDict
from typing import Optional

import httpx

from eas_system.data_management.schemas import GeoPoint
from eas_system.sources.base_client import BaseSourceClient, SourceError
from eas_system.utils.geo import parse_float, validate_coordinates

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


class GeocodingClient(BaseSourceClient):
    """
    Google Geocoding when a key is configured, OpenStreetMap Nominatim otherwise.

    A Google miss (ZERO_RESULTS, quota, transport error) falls through
    to Nominatim. Lookups never raise: "not found" is a data-quality
    outcome, reported as None. Successful lookups are cached per
    normalized query, least recently used first out once cache_size
    entries are held.
    """

    name = "Geocoding"

    def __init__(self, google_api_key: Optional[str] = None, cache_size: int = 512, **kwargs):
        kwargs.setdefault("timeout", 5.0)
        super().__init__(**kwargs)
        self.google_api_key = google_api_key
        self.cache_size = cache_size
        self._cache: OrderedDict[str, GeoPoint] = OrderedDict()

    async def geocode(self, location: Optional[str]) -> Optional[GeoPoint]:
        """
        Resolve a location string.

        Args:
            location: Free-text place name

        Returns:
            GeoPoint, or None when the place cannot be found
        """
        query = (location or "").strip()
        if not query:
            return None

        key = query.lower()
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        point = None
        if self.google_api_key:
            point = await self._lookup(self._google, query)
        if point is None:
            point = await self._lookup(self._nominatim, query)

        if point is None:
            self.logger.info("Location not found", location=query)
            return None

        self._cache[key] = point
        if len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return point

    async def _lookup(self, provider, query: str) -> Optional[GeoPoint]:
        try:
            return await provider(query)
        except (httpx.HTTPError, SourceError, KeyError, IndexError, TypeError, AttributeError) as e:
            self.logger.warning(
                f"Geocoding provider {provider.__name__.lstrip('_')} failed",
                location=query,
                error=str(e),
            )
            return None

    async def _google(self, query: str) -> Optional[GeoPoint]:
        data = await self._get_json(
            GOOGLE_GEOCODE_URL,
            params={"address": query, "key": self.google_api_key},
        )
        if data.get("status") != "OK" or not data.get("results"):
            return None
        location = data["results"][0]["geometry"]["location"]
        return self._point(location.get("lat"), location.get("lng"))

    async def _nominatim(self, query: str) -> Optional[GeoPoint]:
        data = await self._get_json(
            NOMINATIM_SEARCH_URL,
            params={"q": query, "format": "json", "limit": 1},
        )
        if not isinstance(data, list) or not data:
            return None
        return self._point(data[0].get("lat"), data[0].get("lon"))

    @staticmethod
    def _point(lat_value: object, lng_value: object) -> Optional[GeoPoint]:
        lat = parse_float(lat_value)
        lng = parse_float(lng_value)
        if lat is None or lng is None or not validate_coordinates(lat, lng):
            return None
        return GeoPoint(lat=lat, lng=lng)
