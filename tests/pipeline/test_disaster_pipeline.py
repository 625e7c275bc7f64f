"""Tests for DisasterPipeline lifecycle coordination.

Tests cover:
- Non-disasters and below-gate events stay "classified"
- Confirmed events end "alerted" with a stored Alert
- Rejected events stay "validated" with lowered confidence
- Transition guards
- Task failure isolation and duplicate ingestion
- End to end with the real classifier fallback and validation agent
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from eas_system.agents.sifters.disaster_classifier import DisasterClassifier
from eas_system.agents.sifters.validation import SourceClients, ValidationAgent
from eas_system.data_management.event_store import EventStore
from eas_system.data_management.schemas import (
    AffectedArea,
    ClassificationResult,
    DisasterEvent,
    DisasterType,
    EventState,
    GeoPoint,
    RawPost,
    SeismicReading,
    Severity,
    ValidationResult,
    ValidationSource,
)
from eas_system.errors import InvalidTransitionError
from eas_system.pipeline import DisasterPipeline

SF = GeoPoint(lat=37.7749, lng=-122.4194)


def _post(post_id: str = "t3_quake", title: str = "7.2 magnitude earthquake near San Francisco") -> RawPost:
    return RawPost(
        post_id=post_id,
        title=title,
        body="buildings shaking downtown",
        created_at=datetime(2026, 10, 18, 14, 5, tzinfo=timezone.utc),
    )


def _classification(confidence: int = 88, is_disaster: bool = True) -> ClassificationResult:
    return ClassificationResult(
        is_disaster=is_disaster,
        disaster_type=DisasterType.EARTHQUAKE if is_disaster else DisasterType.NONE,
        severity=Severity.HIGH,
        confidence=confidence,
        location="San Francisco",
    )


def _validation(confirmed: bool, confidence: float, severity: Severity = Severity.CRITICAL) -> ValidationResult:
    return ValidationResult(
        disaster_type="earthquake",
        location="San Francisco",
        coordinates=SF,
        location_resolved=True,
        validation_sources=[ValidationSource(source="USGS", confirmed=confirmed, confidence=confidence)],
        confidence=confidence,
        severity=severity,
        disaster_confirmed=confirmed,
        affected_area=AffectedArea(center=SF, radius_km=144) if confirmed else None,
    )


def _mock_classifier(result: ClassificationResult) -> MagicMock:
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value=result)
    return classifier


def _mock_validator(result: ValidationResult) -> MagicMock:
    validator = MagicMock()
    validator.validate = AsyncMock(return_value=result)
    validator.close = AsyncMock()
    return validator


def _pipeline(classifier, validator, **kwargs) -> DisasterPipeline:
    return DisasterPipeline(store=EventStore(), classifier=classifier, validator=validator, **kwargs)


# ── Classification stage ──────────────────────────────────────────────────


class TestClassifiedTerminal:
    """Events that never reach validation."""

    @pytest.mark.asyncio
    async def test_no_keyword_post(self) -> None:
        llm = MagicMock()
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(DisasterClassifier(llm_client=llm), validator)

        event = await pipeline.process_post(
            RawPost(post_id="t3_bread", title="Lovely afternoon baking bread with friends")
        )

        assert event.state == EventState.CLASSIFIED
        assert event.classification.is_disaster is False
        assert event.classified_at is not None
        llm.generate_content.assert_not_called()
        validator.validate.assert_not_called()

    @pytest.mark.asyncio
    async def test_gate_is_exclusive(self) -> None:
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(_mock_classifier(_classification(confidence=70)), validator)

        event = await pipeline.process_post(_post())

        assert event.state == EventState.CLASSIFIED
        assert event.confidence == 70
        validator.validate.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_disaster_not_validated(self) -> None:
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(_mock_classifier(_classification(95, is_disaster=False)), validator)

        event = await pipeline.process_post(_post())

        assert event.state == EventState.CLASSIFIED
        validator.validate.assert_not_called()


# ── Validation stage ──────────────────────────────────────────────────────


class TestValidation:
    """Confirmed and rejected outcomes."""

    @pytest.mark.asyncio
    async def test_confirmed_event_alerted(self) -> None:
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(_mock_classifier(_classification(88)), validator)

        event = await pipeline.process_post(_post())

        assert event.state == EventState.ALERTED
        assert event.confidence == 90
        assert event.severity == Severity.CRITICAL
        assert event.coordinates == SF
        assert event.validated_at is not None
        assert event.alerted_at is not None

        alert = await pipeline.store.get_alert(event.alert_id)
        assert alert.event_id == "t3_quake"
        assert alert.validation_sources == ["USGS"]
        assert alert.priority.value == "immediate"

        args = validator.validate.call_args.args
        assert args[0] == DisasterType.EARTHQUAKE
        assert args[1] == "San Francisco"
        assert args[2] == _post().created_at

    @pytest.mark.asyncio
    async def test_confirmation_never_lowers_confidence(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification(92)), _mock_validator(_validation(True, 75)))
        event = await pipeline.process_post(_post())
        assert event.confidence == 92

    @pytest.mark.asyncio
    async def test_rejected_event_lowered(self) -> None:
        pipeline = _pipeline(
            _mock_classifier(_classification(85)),
            _mock_validator(_validation(False, 40, Severity.LOW)),
        )

        event = await pipeline.process_post(_post())

        assert event.state == EventState.VALIDATED
        assert event.confidence == 40
        assert event.alert_id is None
        assert await pipeline.store.list_alerts() == []

    @pytest.mark.asyncio
    async def test_confirmed_below_alert_threshold(self) -> None:
        pipeline = _pipeline(
            _mock_classifier(_classification(80)),
            _mock_validator(_validation(True, 82, Severity.MEDIUM)),
            alert_threshold=95,
        )

        event = await pipeline.process_post(_post())

        assert event.state == EventState.VALIDATED
        assert event.confidence == 82

    @pytest.mark.asyncio
    async def test_alert_gate_reads_fused_confidence(self) -> None:
        pipeline = _pipeline(
            _mock_classifier(_classification(92)),
            _mock_validator(_validation(True, 75)),
            alert_threshold=80,
        )

        event = await pipeline.process_post(_post())

        assert event.state == EventState.VALIDATED
        assert event.confidence == 92
        assert await pipeline.store.list_alerts() == []

    @pytest.mark.asyncio
    async def test_alert_records_fused_confidence(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification(92)), _mock_validator(_validation(True, 75)))

        event = await pipeline.process_post(_post())

        assert event.state == EventState.ALERTED
        alert = await pipeline.store.get_alert(event.alert_id)
        assert alert.confidence == 75

    @pytest.mark.parametrize(
        "prior,confirmed,fused,expected",
        [
            (80, True, 90, 90),
            (95, True, 75, 95),
            (85, False, 40, 40),
            (30, False, 60, 30),
        ],
    )
    def test_resolve_confidence(self, prior: float, confirmed: bool, fused: float, expected: float) -> None:
        validation = ValidationResult(disaster_confirmed=confirmed, confidence=fused)
        assert DisasterPipeline.resolve_confidence(prior, validation) == expected


# ── Guards ────────────────────────────────────────────────────────────────


class TestTransitions:
    """Lifecycle guards."""

    @pytest.mark.asyncio
    async def test_validate_before_classify_rejected(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification()), _mock_validator(_validation(True, 90)))
        await pipeline.ingest(_post())

        with pytest.raises(InvalidTransitionError):
            await pipeline.handle_validate("t3_quake")

    @pytest.mark.asyncio
    async def test_classify_twice_rejected(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification(50)), _mock_validator(_validation(True, 90)))
        await pipeline.ingest(_post())
        await pipeline.handle_classify("t3_quake")

        with pytest.raises(InvalidTransitionError) as exc_info:
            await pipeline.handle_classify("t3_quake")
        assert exc_info.value.current == "classified"
        assert exc_info.value.target == "classified"

    @pytest.mark.asyncio
    async def test_alerted_is_terminal(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification()), _mock_validator(_validation(True, 90)))
        event = await pipeline.process_post(_post())
        assert event.state == EventState.ALERTED

        with pytest.raises(InvalidTransitionError):
            await pipeline.handle_validate("t3_quake")


# ── Queue behaviour ───────────────────────────────────────────────────────


class TestQueue:
    """Batch draining, isolation and duplicates."""

    @pytest.mark.asyncio
    async def test_failed_task_does_not_block_others(self) -> None:
        good = _classification(50)

        async def classify(post, signal=None):
            if post.post_id == "t3_bad":
                raise RuntimeError("classifier exploded")
            return good

        classifier = MagicMock()
        classifier.classify = AsyncMock(side_effect=classify)
        pipeline = _pipeline(classifier, _mock_validator(_validation(True, 90)))

        await pipeline.ingest(_post("t3_bad"))
        await pipeline.ingest(_post("t3_good"))
        stats = await pipeline.drain()

        assert stats == {"completed": 1, "failed": 1}
        assert (await pipeline.store.get_event("t3_good")).state == EventState.CLASSIFIED
        assert (await pipeline.store.get_event("t3_bad")).state == EventState.INGESTED
        assert pipeline.queue.get_statistics()["failed_tasks"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_ingest_is_noop(self) -> None:
        pipeline = _pipeline(_mock_classifier(_classification(50)), _mock_validator(_validation(True, 90)))

        first = await pipeline.ingest(_post())
        second = await pipeline.ingest(_post())

        assert first.event_id == second.event_id
        assert len(pipeline.queue) == 1

    @pytest.mark.asyncio
    async def test_many_posts_drain_in_batches(self) -> None:
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(_mock_classifier(_classification(88)), validator, concurrency=2)

        for i in range(5):
            await pipeline.ingest(_post(f"t3_{i}"))
        stats = await pipeline.drain()

        # 5 classify + 5 validate
        assert stats == {"completed": 10, "failed": 0}
        assert len(await pipeline.store.list_events(state=EventState.ALERTED)) == 5
        assert validator.validate.await_count == 5

    @pytest.mark.asyncio
    async def test_drain_purges_expired_records(self) -> None:
        store = EventStore(event_ttl=timedelta(hours=1))
        pipeline = DisasterPipeline(
            store=store,
            classifier=_mock_classifier(_classification(50)),
            validator=_mock_validator(_validation(True, 90)),
        )
        stale = datetime.now(timezone.utc) - timedelta(hours=2)
        await store.save_event(DisasterEvent(event_id="t3_old", post=_post("t3_old")), now=stale)

        await pipeline.drain()

        assert await store.purge_expired() == 0
        assert (await store.get_stats())["total_events"] == 0

    @pytest.mark.asyncio
    async def test_close_releases_validator(self) -> None:
        validator = _mock_validator(_validation(True, 90))
        pipeline = _pipeline(_mock_classifier(_classification()), validator)
        await pipeline.close()
        validator.close.assert_awaited_once()


# ── End to end ────────────────────────────────────────────────────────────


class TestEndToEnd:
    """Real classifier (keyword fallback) and validation agent, mocked sources."""

    @pytest.mark.asyncio
    async def test_san_francisco_earthquake(self) -> None:
        llm = MagicMock()
        llm.generate_content = MagicMock(side_effect=ConnectionError("model offline"))

        geocoder = MagicMock()
        geocoder.geocode = AsyncMock(return_value=SF)
        usgs = MagicMock()
        usgs.name = "USGS"
        usgs.query_events = AsyncMock(
            return_value=[
                SeismicReading(
                    source="USGS",
                    magnitude=7.2,
                    depth=8.0,
                    location=GeoPoint(lat=SF.lat + 0.09, lng=SF.lng),
                )
            ]
        )

        pipeline = _pipeline(
            DisasterClassifier(llm_client=llm),
            ValidationAgent(geocoder=geocoder, clients=SourceClients(usgs=usgs)),
        )

        event = await pipeline.process_post(_post())

        assert event.classification.used_fallback is True
        assert event.classification.disaster_type == DisasterType.EARTHQUAKE
        assert event.state == EventState.ALERTED
        assert event.severity == Severity.CRITICAL
        assert event.validation.disaster_confirmed is True
        geocoder.geocode.assert_awaited_once_with("San Francisco")

        alerts = await pipeline.store.list_alerts()
        assert len(alerts) == 1
        assert alerts[0].affected_area.radius_km == pytest.approx(144.0)
