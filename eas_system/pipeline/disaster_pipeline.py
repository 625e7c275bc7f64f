"""Post -> classification -> validation -> alert lifecycle.

Work is dispatched through an explicit TaskQueue rather than storage
change notifications:

- ingest(post) stores an "ingested" event and enqueues a classify task
- a classify task attaches the classification and moves the event to
  "classified"; a disaster above the classification gate enqueues a
  validate task, anything else stays "classified" for good
- a validate task attaches the fused ValidationResult, resolves the
  event's confidence/severity once, moves it to "validated", and raises
  an Alert (state "alerted") when the validation is confirmed and its
  fused confidence exceeds the alert threshold

Each task runs under bound structlog context (event_id, task_kind,
correlation_id). A failing task is logged and marked failed; it never
blocks other posts.

Usage:
    from eas_system.pipeline import DisasterPipeline

    pipeline = DisasterPipeline()
    event = await pipeline.process_post(post)

    # Or batch mode:
    for post in posts:
        await pipeline.ingest(post)
    stats = await pipeline.drain()
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from eas_system.agents.sifters.disaster_classifier import DisasterClassifier
from eas_system.agents.sifters.keyword_prefilter import KeywordPreFilter
from eas_system.agents.sifters.validation import ValidationAgent
from eas_system.config.settings import settings
from eas_system.data_management.event_store import EventStore
from eas_system.data_management.schemas import (
    Alert,
    DisasterEvent,
    EventState,
    RawPost,
    ValidationResult,
)
from eas_system.errors import InvalidTransitionError
from eas_system.orchestration.task_queue import Task, TaskQueue
from eas_system.utils.logging import (
    bind_task_context,
    clear_task_context,
    get_structured_logger,
)


class DisasterPipeline:
    """Coordinates the event lifecycle across pre-filter, classifier and validator.

    Collaborators are lazy-initialized from settings when not injected,
    so tests can swap any of them for mocks.
    """

    def __init__(
        self,
        store: Optional[EventStore] = None,
        queue: Optional[TaskQueue] = None,
        prefilter: Optional[KeywordPreFilter] = None,
        classifier: Optional[DisasterClassifier] = None,
        validator: Optional[ValidationAgent] = None,
        classification_gate: Optional[float] = None,
        alert_threshold: Optional[float] = None,
        concurrency: Optional[int] = None,
    ) -> None:
        """Initialize DisasterPipeline.

        Args:
            store: Event store. Memory-only (or settings.event_store_path) if None.
            queue: Task queue. Fresh queue if None.
            prefilter: Keyword pre-filter shared with the classifier.
            classifier: Disaster classifier. Lazy-initialized if None.
            validator: Validation agent. Lazy-initialized if None.
            classification_gate: Classifier confidence that must be exceeded
                                 to validate (settings.classification_gate).
            alert_threshold: Fused validation confidence that must be exceeded
                             to alert (settings.alert_threshold).
            concurrency: Tasks run concurrently per batch
                         (settings.pipeline_concurrency).
        """
        self.store = store or EventStore(persistence_path=settings.event_store_path)
        self.queue = queue or TaskQueue()
        self.prefilter = prefilter or KeywordPreFilter()
        self._classifier = classifier
        self._validator = validator
        self.classification_gate = (
            settings.classification_gate if classification_gate is None else classification_gate
        )
        self.alert_threshold = (
            settings.alert_threshold if alert_threshold is None else alert_threshold
        )
        self.concurrency = concurrency or settings.pipeline_concurrency
        self._logger = get_structured_logger("DisasterPipeline")

    def _get_classifier(self) -> DisasterClassifier:
        if self._classifier is None:
            self._classifier = DisasterClassifier(prefilter=self.prefilter)
        return self._classifier

    def _get_validator(self) -> ValidationAgent:
        if self._validator is None:
            self._validator = ValidationAgent()
        return self._validator

    # ── Entry points ──────────────────────────────────────────────────

    async def ingest(self, post: RawPost) -> DisasterEvent:
        """Store a new post as an "ingested" event and enqueue classification.

        Re-ingesting a post whose event is still live is a no-op.
        """
        existing = await self.store.find_event(post.post_id)
        if existing is not None:
            self._logger.info(
                "duplicate_post",
                event_id=existing.event_id,
                state=existing.state.value,
            )
            return existing

        event = DisasterEvent(event_id=post.post_id, post=post)
        await self.store.save_event(event)
        self.queue.add_task("classify", event.event_id, metadata={"platform": post.platform})
        self._logger.info("post_ingested", event_id=event.event_id)
        return event

    async def process_post(self, post: RawPost) -> DisasterEvent:
        """Ingest one post and drain the queue until its lifecycle settles."""
        event = await self.ingest(post)
        await self.drain()
        return await self.store.get_event(event.event_id)

    async def drain(self) -> dict[str, Any]:
        """Run queued tasks in bounded concurrent batches until none are pending.

        Expired store records are purged before the first batch.

        Returns:
            Counts of completed and failed tasks.
        """
        await self.store.purge_expired()
        semaphore = asyncio.Semaphore(self.concurrency)
        stats = {"completed": 0, "failed": 0}

        async def run_with_semaphore(task: Task) -> bool:
            async with semaphore:
                return await self.run_task(task)

        while True:
            batch: list[Task] = []
            while len(batch) < self.concurrency:
                task = self.queue.get_next_task()
                if task is None:
                    break
                batch.append(task)
            if not batch:
                break

            outcomes = await asyncio.gather(*[run_with_semaphore(task) for task in batch])
            for succeeded in outcomes:
                stats["completed" if succeeded else "failed"] += 1

        self._logger.info("queue_drained", **stats)
        return stats

    async def run_task(self, task: Task) -> bool:
        """Run one task; failures are logged and recorded, never raised."""
        bind_task_context(task.event_id, task.kind)
        self.queue.update_task_status(task.id, "in_progress")
        try:
            if task.kind == "classify":
                await self.handle_classify(task.event_id)
            else:
                await self.handle_validate(task.event_id)
        except Exception as e:
            self.queue.update_task_status(task.id, "failed", error=str(e))
            self._logger.error(
                "task_failed",
                task_id=task.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        else:
            self.queue.update_task_status(task.id, "completed")
            return True
        finally:
            clear_task_context()

    # ── Stage handlers ────────────────────────────────────────────────

    async def handle_classify(self, event_id: str) -> DisasterEvent:
        """ingested -> classified, enqueueing validation when warranted."""
        event = await self.store.get_event(event_id)
        self._check_transition(event, EventState.CLASSIFIED)

        signal = self.prefilter.analyze_post(event.post)
        classification = await self._get_classifier().classify(event.post, signal)

        event = await self.store.update_event(
            event_id,
            classification=classification,
            state=EventState.CLASSIFIED,
            confidence=float(classification.confidence),
            severity=classification.severity,
            classified_at=datetime.now(timezone.utc),
        )

        should_validate = (
            classification.is_disaster
            and classification.confidence > self.classification_gate
        )
        self._logger.info(
            "event_classified",
            event_id=event_id,
            is_disaster=classification.is_disaster,
            disaster_type=classification.disaster_type.value,
            confidence=classification.confidence,
            used_fallback=classification.used_fallback,
            validate=should_validate,
        )

        if should_validate:
            self.queue.add_task(
                "validate",
                event_id,
                metadata={"confidence": classification.confidence},
            )
        return event

    async def handle_validate(self, event_id: str) -> DisasterEvent:
        """classified -> validated, then -> alerted when confirmed above threshold."""
        event = await self.store.get_event(event_id)
        self._check_transition(event, EventState.VALIDATED)
        if event.classification is None:
            raise InvalidTransitionError(
                event_id, event.state.value, EventState.VALIDATED.value, "no classification"
            )

        validation = await self._get_validator().validate(
            event.disaster_type,
            event.classification.location,
            event.post.created_at,
        )

        confidence = self.resolve_confidence(event.confidence, validation)
        coordinates = (
            validation.affected_area.center if validation.affected_area else validation.coordinates
        )
        event = await self.store.update_event(
            event_id,
            validation=validation,
            state=EventState.VALIDATED,
            confidence=confidence,
            severity=validation.severity,
            coordinates=coordinates,
            validated_at=validation.validated_at,
        )

        self._logger.info(
            "event_validated",
            event_id=event_id,
            disaster_confirmed=validation.disaster_confirmed,
            confidence=confidence,
            severity=validation.severity.value,
        )

        if validation.disaster_confirmed and validation.confidence > self.alert_threshold:
            event = await self._raise_alert(event)
        return event

    async def _raise_alert(self, event: DisasterEvent) -> DisasterEvent:
        self._check_transition(event, EventState.ALERTED)
        alert = Alert.from_event(event)
        await self.store.save_alert(alert)
        event = await self.store.update_event(
            event.event_id,
            state=EventState.ALERTED,
            alert_id=alert.alert_id,
            alerted_at=alert.created_at,
        )
        self._logger.info(
            "event_alerted",
            event_id=event.event_id,
            alert_id=alert.alert_id,
            priority=alert.priority.value,
            severity=alert.severity.value,
        )
        return event

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def resolve_confidence(prior: float, validation: ValidationResult) -> float:
        """Single authoritative confidence for the event.

        Confirmation can only raise the classifier's confidence and
        rejection can only lower it, within the configured floor/ceiling.
        """
        if validation.disaster_confirmed:
            resolved = min(max(prior, validation.confidence), settings.confidence_ceiling)
        else:
            resolved = max(min(prior, validation.confidence), settings.confidence_floor)
        return max(0.0, min(100.0, resolved))

    @staticmethod
    def _check_transition(event: DisasterEvent, target: EventState) -> None:
        if not event.can_transition(target):
            raise InvalidTransitionError(event.event_id, event.state.value, target.value)

    async def get_stats(self) -> dict[str, Any]:
        return {
            "store": await self.store.get_stats(),
            "queue": self.queue.get_statistics(),
        }

    async def close(self) -> None:
        if self._validator is not None:
            await self._validator.close()
