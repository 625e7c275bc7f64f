"""Clients for the authoritative sources consulted during validation.

Clients:
- USGSClient / EMSCClient: FDSN earthquake catalogs
- NWSClient: US official weather alerts and forecasts
- OpenWeatherClient: current conditions (API key required)
- FIRMSClient: satellite active-fire detections
- GeocodingClient: free-text location lookup
"""

from eas_system.sources.base_client import BaseSourceClient, SourceError
from eas_system.sources.fire import FIRMSClient
from eas_system.sources.geocoding import GeocodingClient
from eas_system.sources.seismic import EMSCClient, FDSNEventClient, USGSClient
from eas_system.sources.weather import NWSClient, OpenWeatherClient

__all__ = [
    "BaseSourceClient",
    "SourceError",
    "FDSNEventClient",
    "USGSClient",
    "EMSCClient",
    "NWSClient",
    "OpenWeatherClient",
    "FIRMSClient",
    "GeocodingClient",
]
