"""Per-disaster-type validation strategies.

A strategy turns (disaster type, geocoded point, event time) into a list
of independent SourceQuery objects. The validation agent runs them
concurrently; each query yields SourceFindings (votes plus raw readings).
Which strategy applies is a constant table lookup (STRATEGIES), never a
chain of type checks.

Vote scoring is kept in small pure functions so it can be exercised
without any network:

- seismic: confidence 90, minus (d - 100) / 10 beyond 100 km, minus
  (5.0 - m) * 10 below magnitude 5.0, floored at 0; confirmed iff
  m >= 4.0 and d <= 500 km
- official alerts: 95 when the event name is in the type's alert-name
  table, otherwise 20
- current conditions: 80 when the type's heuristic holds, otherwise 30
- severe forecast periods: confirmed at 85
- fire detections: within 50 km and detection confidence > 30,
  confirmed at min(confidence, 90)
- types without an integration: one provisional vote at 50
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from eas_system.config.disaster_profiles import ALERT_NAMES_BY_TYPE
from eas_system.config.settings import settings
from eas_system.data_management.schemas import (
    DisasterType,
    FireDetection,
    GeoPoint,
    MeteorologicalReading,
    OfficialAlert,
    SeismicReading,
    SourceFindings,
    ValidationSource,
)
from eas_system.sources import (
    EMSCClient,
    FIRMSClient,
    NWSClient,
    OpenWeatherClient,
    USGSClient,
)
from eas_system.sources.seismic import FDSNEventClient
from eas_system.utils.geo import haversine_km

# Seismic catalog query
SEISMIC_WINDOW = timedelta(hours=2)
SEISMIC_RADIUS_KM = 500.0
SEISMIC_MIN_MAGNITUDE = 4.0

# Seismic vote scoring
SEISMIC_BASE_CONFIDENCE = 90.0
SEISMIC_DISTANCE_FREE_KM = 100.0
SEISMIC_DISTANCE_PENALTY_DIVISOR = 10.0
SEISMIC_STRONG_MAGNITUDE = 5.0
SEISMIC_MAGNITUDE_PENALTY = 10.0

# Official alerts, conditions and forecasts
ALERT_MATCH_CONFIDENCE = 95.0
ALERT_MISMATCH_CONFIDENCE = 20.0
CONDITIONS_SEVERE_CONFIDENCE = 80.0
CONDITIONS_CALM_CONFIDENCE = 30.0
FORECAST_CONFIDENCE = 85.0
FORECAST_SOURCE = "Weather.gov"

# Fire detections
FIRE_RADIUS_KM = 50.0
FIRE_MIN_DETECTION_CONFIDENCE = 30.0
FIRE_MAX_VOTE_CONFIDENCE = 90.0

PROVISIONAL_CONFIDENCE = 50.0


@dataclass
class ValidationContext:
    """Everything a strategy needs to plan its source queries."""

    disaster_type: DisasterType
    point: GeoPoint
    event_time: datetime


@dataclass
class SourceQuery:
    """One independent source call, run lazily by the validation agent."""

    source: str
    run: Callable[[], Awaitable[SourceFindings]]


@dataclass
class SourceClients:
    """
    The source clients available to strategies.

    A client left as None (or an OpenWeather client without a key) is
    skipped by every strategy that would use it.
    """

    usgs: Optional[USGSClient] = None
    emsc: Optional[EMSCClient] = None
    nws: Optional[NWSClient] = None
    openweather: Optional[OpenWeatherClient] = None
    firms: Optional[FIRMSClient] = None
    extra_seismic: list[FDSNEventClient] = field(default_factory=list)

    @classmethod
    def from_settings(cls, timeout: Optional[float] = None) -> "SourceClients":
        """Default public endpoints, keyed from settings."""
        timeout = timeout or settings.source_timeout_seconds
        return cls(
            usgs=USGSClient(timeout=timeout),
            emsc=EMSCClient(timeout=timeout),
            nws=NWSClient(timeout=timeout, user_agent=settings.nominatim_user_agent),
            openweather=OpenWeatherClient(api_key=settings.openweather_api_key, timeout=timeout),
            firms=FIRMSClient(base_url=settings.firms_feed_url, timeout=timeout),
        )

    def seismic_catalogs(self) -> list[FDSNEventClient]:
        return [c for c in (self.usgs, self.emsc, *self.extra_seismic) if c is not None]

    async def close(self) -> None:
        for client in (*self.seismic_catalogs(), self.nws, self.openweather, self.firms):
            if client is not None:
                await client.close()


# ── Vote scoring ──────────────────────────────────────────────────────


def score_seismic_reading(reading: SeismicReading, point: GeoPoint) -> ValidationSource:
    """Vote for one catalogued earthquake relative to the claimed location."""
    distance = haversine_km(point.lat, point.lng, reading.location.lat, reading.location.lng)

    confidence = SEISMIC_BASE_CONFIDENCE
    if distance > SEISMIC_DISTANCE_FREE_KM:
        confidence -= (distance - SEISMIC_DISTANCE_FREE_KM) / SEISMIC_DISTANCE_PENALTY_DIVISOR
    if reading.magnitude < SEISMIC_STRONG_MAGNITUDE:
        confidence -= (SEISMIC_STRONG_MAGNITUDE - reading.magnitude) * SEISMIC_MAGNITUDE_PENALTY

    return ValidationSource(
        source=reading.source,
        confirmed=reading.magnitude >= SEISMIC_MIN_MAGNITUDE and distance <= SEISMIC_RADIUS_KM,
        confidence=max(confidence, 0.0),
        data={
            "magnitude": reading.magnitude,
            "distance_km": round(distance, 1),
            "place": reading.place,
            "depth_km": reading.depth,
            "tsunami": reading.tsunami,
        },
    )


def seismic_findings(source: str, readings: list[SeismicReading], point: GeoPoint) -> SourceFindings:
    return SourceFindings(
        source=source,
        votes=[score_seismic_reading(reading, point) for reading in readings],
        seismic_data=list(readings),
    )


def alert_matches(alert_type: str, disaster_type: DisasterType) -> bool:
    names = ALERT_NAMES_BY_TYPE.get(disaster_type.value, frozenset())
    return any(name in alert_type for name in names)


def alert_findings(alerts: list[OfficialAlert], disaster_type: DisasterType) -> SourceFindings:
    votes = []
    for alert in alerts:
        matched = alert_matches(alert.alert_type, disaster_type)
        votes.append(
            ValidationSource(
                source=alert.source,
                confirmed=matched,
                confidence=ALERT_MATCH_CONFIDENCE if matched else ALERT_MISMATCH_CONFIDENCE,
                data=alert.model_dump(mode="json"),
            )
        )
    return SourceFindings(source="NOAA/NWS", votes=votes, official_alerts=list(alerts))


def conditions_indicate(disaster_type: DisasterType, reading: MeteorologicalReading) -> bool:
    """Whether current conditions are consistent with the claimed disaster."""
    condition = reading.condition.lower()
    description = reading.description.lower()

    if disaster_type in (DisasterType.STORM, DisasterType.TORNADO):
        return "thunderstorm" in condition or reading.wind_speed > 15 or "severe" in description
    if disaster_type == DisasterType.HURRICANE:
        return reading.wind_speed > 33 or "hurricane" in condition
    if disaster_type == DisasterType.FLOOD:
        return "rain" in condition and reading.precipitation > 10
    if disaster_type == DisasterType.WILDFIRE:
        return reading.temperature > 25 and reading.humidity < 40
    if disaster_type == DisasterType.BLIZZARD:
        return "snow" in condition and reading.wind_speed > 15
    return False


def conditions_findings(reading: MeteorologicalReading, disaster_type: DisasterType) -> SourceFindings:
    severe = conditions_indicate(disaster_type, reading)
    vote = ValidationSource(
        source=reading.source,
        confirmed=severe,
        confidence=CONDITIONS_SEVERE_CONFIDENCE if severe else CONDITIONS_CALM_CONFIDENCE,
        data=reading.model_dump(mode="json"),
    )
    return SourceFindings(source=reading.source, votes=[vote], meteorological_data=[reading])


def forecast_findings(periods: list[dict[str, Any]]) -> SourceFindings:
    votes = [
        ValidationSource(
            source=FORECAST_SOURCE,
            confirmed=True,
            confidence=FORECAST_CONFIDENCE,
            data={
                "name": period.get("name"),
                "start_time": period.get("startTime"),
                "detailed_forecast": period.get("detailedForecast"),
            },
        )
        for period in periods
    ]
    return SourceFindings(source=FORECAST_SOURCE, votes=votes)


def fire_findings(source: str, detections: list[FireDetection], point: GeoPoint) -> SourceFindings:
    votes = []
    for detection in detections:
        if detection.confidence <= FIRE_MIN_DETECTION_CONFIDENCE:
            continue
        distance = haversine_km(point.lat, point.lng, detection.latitude, detection.longitude)
        if distance > FIRE_RADIUS_KM:
            continue
        votes.append(
            ValidationSource(
                source=source,
                confirmed=True,
                confidence=min(detection.confidence, FIRE_MAX_VOTE_CONFIDENCE),
                data={
                    "lat": detection.latitude,
                    "lng": detection.longitude,
                    "distance_km": round(distance, 1),
                    "confidence": detection.confidence,
                    "acquired_at": detection.acquired_at,
                },
            )
        )
    return SourceFindings(source=source, votes=votes)


def provisional_findings(disaster_type: DisasterType) -> SourceFindings:
    """Placeholder vote for types with no integrated source yet."""
    source = f"provisional-{disaster_type.value}"
    return SourceFindings(
        source=source,
        votes=[
            ValidationSource(
                source=source,
                confirmed=True,
                confidence=PROVISIONAL_CONFIDENCE,
                data={"type": "placeholder"},
            )
        ],
    )


# ── Strategies ────────────────────────────────────────────────────────


def _seismic_query(client: FDSNEventClient, ctx: ValidationContext) -> SourceQuery:
    async def run() -> SourceFindings:
        readings = await client.query_events(
            start=ctx.event_time - SEISMIC_WINDOW,
            end=ctx.event_time + SEISMIC_WINDOW,
            center=ctx.point,
            radius_km=SEISMIC_RADIUS_KM,
            min_magnitude=SEISMIC_MIN_MAGNITUDE,
        )
        return seismic_findings(client.name, readings, ctx.point)

    return SourceQuery(source=client.name, run=run)


def _conditions_query(client: OpenWeatherClient, ctx: ValidationContext) -> SourceQuery:
    async def run() -> SourceFindings:
        reading = await client.current_conditions(ctx.point)
        return conditions_findings(reading, ctx.disaster_type)

    return SourceQuery(source=client.name, run=run)


def earthquake_strategy(ctx: ValidationContext, clients: SourceClients) -> list[SourceQuery]:
    return [_seismic_query(client, ctx) for client in clients.seismic_catalogs()]


def weather_strategy(ctx: ValidationContext, clients: SourceClients) -> list[SourceQuery]:
    queries = []
    nws = clients.nws
    if nws is not None:
        async def run_alerts() -> SourceFindings:
            alerts = await nws.active_alerts(ctx.point)
            return alert_findings(alerts, ctx.disaster_type)

        async def run_forecast() -> SourceFindings:
            periods = await nws.severe_forecast_periods(ctx.point)
            return forecast_findings(periods)

        queries.append(SourceQuery(source=nws.name, run=run_alerts))
        queries.append(SourceQuery(source=FORECAST_SOURCE, run=run_forecast))

    if clients.openweather is not None and clients.openweather.configured:
        queries.append(_conditions_query(clients.openweather, ctx))
    return queries


def wildfire_strategy(ctx: ValidationContext, clients: SourceClients) -> list[SourceQuery]:
    queries = []
    firms = clients.firms
    if firms is not None:
        async def run_fires() -> SourceFindings:
            detections = await firms.detections()
            return fire_findings(firms.name, detections, ctx.point)

        queries.append(SourceQuery(source=firms.name, run=run_fires))

    if clients.openweather is not None and clients.openweather.configured:
        queries.append(_conditions_query(clients.openweather, ctx))
    return queries


def provisional_strategy(ctx: ValidationContext, clients: SourceClients) -> list[SourceQuery]:
    async def run() -> SourceFindings:
        return provisional_findings(ctx.disaster_type)

    return [SourceQuery(source=f"provisional-{ctx.disaster_type.value}", run=run)]


def no_strategy(ctx: ValidationContext, clients: SourceClients) -> list[SourceQuery]:
    return []


Strategy = Callable[[ValidationContext, SourceClients], list[SourceQuery]]

STRATEGIES: dict[DisasterType, Strategy] = {
    DisasterType.EARTHQUAKE: earthquake_strategy,
    DisasterType.FLOOD: weather_strategy,
    DisasterType.HURRICANE: weather_strategy,
    DisasterType.TORNADO: weather_strategy,
    DisasterType.STORM: weather_strategy,
    DisasterType.BLIZZARD: weather_strategy,
    DisasterType.WILDFIRE: wildfire_strategy,
    DisasterType.TSUNAMI: provisional_strategy,
    DisasterType.VOLCANO: provisional_strategy,
    DisasterType.LANDSLIDE: provisional_strategy,
    DisasterType.DROUGHT: provisional_strategy,
    DisasterType.OTHER: provisional_strategy,
    DisasterType.NONE: no_strategy,
}


def select_strategy(disaster_type: DisasterType) -> Strategy:
    return STRATEGIES.get(disaster_type, provisional_strategy)
