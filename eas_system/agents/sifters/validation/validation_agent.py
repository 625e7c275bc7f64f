"""Multi-source validation of a classified disaster.

Cross-checks a classification against independent authoritative sources
and fuses their votes into one decision.

Validation flow per event:
1. Geocode the free-text location (GeocodingClient)
2. Pick the strategy for the disaster type (strategies.STRATEGIES)
3. Run every source query concurrently, each under its own timeout
4. Merge findings; a failed source contributes a zero-confidence vote
5. Fuse votes into confidence, severity and confirmation (ConfidenceFusionEngine)

An unresolvable location is a data-quality outcome, not an error: the
result comes back unconfirmed at confidence 0 without any source call.
A geocoder that outlives the per-source timeout counts as unresolvable.

Usage:
    from eas_system.agents.sifters.validation import ValidationAgent

    async with ValidationAgent() as agent:
        result = await agent.validate("earthquake", "San Francisco", event_time)
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Union

from eas_system.agents.sifters.validation.confidence_fusion import ConfidenceFusionEngine
from eas_system.agents.sifters.validation.strategies import (
    SourceClients,
    SourceQuery,
    ValidationContext,
    select_strategy,
)
from eas_system.config.disaster_profiles import LOCATION_NOT_FOUND_RECOMMENDATION
from eas_system.config.settings import settings
from eas_system.data_management.schemas import (
    DisasterType,
    GeoPoint,
    SourceFindings,
    ValidationResult,
)
from eas_system.sources import GeocodingClient
from eas_system.utils.logging import get_structured_logger


class ValidationAgent:
    """Validates classified disasters against seismic, weather and fire sources.

    Source clients are created from settings on first use unless injected.
    Each source query carries its own timeout; a timeout, HTTP failure or
    parse failure in one query never aborts the others.
    """

    def __init__(
        self,
        geocoder: Optional[GeocodingClient] = None,
        clients: Optional[SourceClients] = None,
        fusion: Optional[ConfidenceFusionEngine] = None,
        source_timeout: Optional[float] = None,
    ) -> None:
        """Initialize ValidationAgent.

        Args:
            geocoder: Location resolver (Google when keyed, else Nominatim).
            clients: Source clients used by the strategies.
            fusion: Vote fusion engine.
            source_timeout: Per-query budget in seconds
                            (defaults to settings.source_timeout_seconds).
        """
        self._geocoder = geocoder
        self._clients = clients
        self.fusion = fusion or ConfidenceFusionEngine()
        self.source_timeout = source_timeout or settings.source_timeout_seconds
        self.validated_count = 0
        self.source_failures = 0
        self._logger = get_structured_logger("ValidationAgent")

    @property
    def geocoder(self) -> GeocodingClient:
        if self._geocoder is None:
            self._geocoder = GeocodingClient(
                google_api_key=settings.google_maps_api_key,
                user_agent=settings.nominatim_user_agent,
            )
        return self._geocoder

    @property
    def clients(self) -> SourceClients:
        if self._clients is None:
            self._clients = SourceClients.from_settings(timeout=self.source_timeout)
        return self._clients

    async def validate(
        self,
        disaster_type: Union[DisasterType, str],
        location: Optional[str],
        event_time: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate one claimed disaster.

        Args:
            disaster_type: Claimed type (enum or its string value).
            location: Free-text location from the classification.
            event_time: When the event reportedly happened (defaults to now).

        Returns:
            Fused ValidationResult. Never raises for source failures.
        """
        if not isinstance(disaster_type, DisasterType):
            disaster_type = DisasterType.parse(disaster_type)
        event_time = event_time or datetime.now(timezone.utc)
        if event_time.tzinfo is None:
            event_time = event_time.replace(tzinfo=timezone.utc)

        result = ValidationResult(disaster_type=disaster_type.value, location=location)

        point = await self._resolve_location(location)
        if point is None:
            self._logger.info(
                "location_not_found",
                disaster_type=disaster_type.value,
                location=location,
            )
            result.recommendations = [LOCATION_NOT_FOUND_RECOMMENDATION]
            self.validated_count += 1
            return result

        result.coordinates = point
        result.location_resolved = True

        ctx = ValidationContext(disaster_type=disaster_type, point=point, event_time=event_time)
        queries = select_strategy(disaster_type)(ctx, self.clients)

        self._logger.info(
            "validation_started",
            disaster_type=disaster_type.value,
            location=location,
            lat=point.lat,
            lng=point.lng,
            sources=[query.source for query in queries],
        )

        findings = await asyncio.gather(*[self._run_query(query) for query in queries])
        for item in findings:
            result.merge(item)

        self.fusion.fuse(result)
        self.validated_count += 1

        self._logger.info(
            "validation_complete",
            disaster_type=disaster_type.value,
            confidence=result.confidence,
            disaster_confirmed=result.disaster_confirmed,
            severity=result.severity.value,
        )
        return result

    async def _resolve_location(self, location: Optional[str]) -> Optional[GeoPoint]:
        """Geocode under the per-source budget; running out of time counts as not found."""
        try:
            return await asyncio.wait_for(self.geocoder.geocode(location), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            self._logger.warning("geocode_timed_out", location=location, timeout=self.source_timeout)
            return None

    async def _run_query(self, query: SourceQuery) -> SourceFindings:
        """Run one source query; any failure becomes a zero-confidence vote."""
        try:
            return await asyncio.wait_for(query.run(), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {self.source_timeout}s"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        self.source_failures += 1
        self._logger.warning("source_failed", source=query.source, error=error)
        return SourceFindings.failed(query.source, error)

    def get_stats(self) -> dict:
        return {
            "validated_count": self.validated_count,
            "source_failures": self.source_failures,
        }

    async def close(self) -> None:
        if self._geocoder is not None:
            await self._geocoder.close()
        if self._clients is not None:
            await self._clients.close()

    async def __aenter__(self) -> "ValidationAgent":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
