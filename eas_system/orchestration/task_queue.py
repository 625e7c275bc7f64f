"""Task queue dispatching classify and validate work per event."""

import heapq
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Literal, Dict, List, Any
from loguru import logger

TaskKind = Literal["classify", "validate"]
TaskStatus = Literal["pending", "assigned", "in_progress", "completed", "failed"]

# Validation is closer to an alert than classification, so every pending
# validate task drains before any classify task whatever its score.
STAGE_RANKS: Dict[str, int] = {
    "classify": 0,
    "validate": 1,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Task:
    """
    One unit of pipeline work for a single event.

    Fields:
        id: Unique task identifier
        kind: Pipeline stage to run ("classify" or "validate")
        event_id: Event the stage runs for
        priority: Priority score 0.0-1.0 within the task's stage
        created_at: Timestamp when task was created
        status: Task execution status
        metadata: Additional task metadata (confidence, urgency, etc.)
        retry_count: Number of times task has failed
        error: Last failure message, if any
    """

    id: str
    kind: TaskKind
    event_id: str
    priority: float  # 0.0-1.0
    created_at: datetime = field(default_factory=_utcnow)
    status: TaskStatus = "pending"
    metadata: Dict[str, Any] = field(default_factory=dict)
    retry_count: int = 0
    error: Optional[str] = None

    def __lt__(self, other: "Task") -> bool:
        """
        Compare tasks for priority queue ordering.

        Later stages come first, then higher priority, then older tasks.
        """
        if self.kind != other.kind:
            return STAGE_RANKS[self.kind] > STAGE_RANKS[other.kind]
        if self.priority != other.priority:
            # Higher priority comes first (negate for max-heap behavior)
            return self.priority > other.priority
        return self.created_at < other.created_at


class TaskQueue:
    """
    Priority-based queue of pipeline tasks.

    Replaces change-stream triggers: ingesting a post enqueues a classify
    task, and a classification worth validating enqueues a validate task.

    Ordering: stage first (validate before classify), then priority.

    Priority Scoring Components:
    - Confidence (0.6 weight): stronger signals first
    - Retry penalty (0.4 weight): Decreases priority for repeated failures

    Completed and failed tasks are dropped from the queue once their
    outcome is counted, so memory tracks the live backlog only.
    """

    def __init__(self):
        """Initialize the task queue."""
        self._heap: List[Task] = []
        self._tasks: Dict[str, Task] = {}  # live tasks only, task_id -> Task
        self._added: Dict[str, int] = {kind: 0 for kind in STAGE_RANKS}
        self._finished: Dict[str, int] = {"completed": 0, "failed": 0}
        self.logger = logger.bind(component="TaskQueue")

        self.logger.debug("TaskQueue initialized")

    def add_task(
        self,
        kind: TaskKind,
        event_id: str,
        priority: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None,
        task_id: Optional[str] = None
    ) -> str:
        """
        Add a task to the queue with auto-calculated priority.

        Args:
            kind: Pipeline stage to run
            event_id: Event the stage runs for
            priority: Manual priority override (0.0-1.0), auto-calculated if None
            metadata: Additional task information for priority scoring
            task_id: Optional task ID (generated if not provided)

        Returns:
            Task ID
        """
        if kind not in STAGE_RANKS:
            raise ValueError(f"Unknown task kind: {kind}")

        if not task_id:
            task_id = f"TASK-{uuid.uuid4().hex[:8].upper()}"

        # Calculate priority if not provided
        if priority is None:
            priority = self._calculate_priority(metadata or {})
        else:
            # Clamp manual priority to valid range
            priority = max(0.0, min(1.0, priority))

        task = Task(
            id=task_id,
            kind=kind,
            event_id=event_id,
            priority=priority,
            metadata=metadata or {},
            status="pending"
        )

        # Add to heap and lookup dict
        heapq.heappush(self._heap, task)
        self._tasks[task_id] = task
        self._added[kind] += 1

        self.logger.info(
            "Task added",
            task_id=task_id,
            kind=kind,
            event_id=event_id,
            priority=f"{priority:.3f}",
        )

        return task_id

    def _calculate_priority(self, metadata: Dict[str, Any]) -> float:
        """
        Calculate task priority using heuristic scoring.

        Args:
            metadata: Task metadata with optional confidence (0-100) and retry_count

        Returns:
            Priority score 0.0-1.0
        """
        try:
            confidence_score = float(metadata.get("confidence", 50.0)) / 100.0
        except (TypeError, ValueError):
            confidence_score = 0.5
        confidence_score = max(0.0, min(1.0, confidence_score))

        retry_count = metadata.get("retry_count", 0)
        retry_penalty = max(0.0, 1.0 - (retry_count * 0.2))  # -20% per retry

        priority = confidence_score * 0.6 + retry_penalty * 0.4

        return max(0.0, min(1.0, priority))

    def get_next_task(self, kind: Optional[TaskKind] = None) -> Optional[Task]:
        """
        Get the highest priority pending task.

        Args:
            kind: Only return tasks of this stage if given

        Returns:
            Task object if available, None if queue is empty
        """
        skipped: List[Task] = []
        selected: Optional[Task] = None
        while self._heap:
            task = heapq.heappop(self._heap)

            # Check if task still valid (not removed externally)
            if task.id not in self._tasks:
                continue

            # Check if task still pending
            if task.status != "pending":
                continue

            if kind and task.kind != kind:
                skipped.append(task)
                continue

            selected = task
            break

        for task in skipped:
            heapq.heappush(self._heap, task)

        if selected is not None:
            selected.status = "assigned"
            self.logger.debug("Task retrieved", task_id=selected.id, kind=selected.kind)
        return selected

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        error: Optional[str] = None
    ) -> bool:
        """
        Update task status. A completed or failed task is counted and
        removed from the queue.

        Args:
            task_id: Task identifier
            status: New status
            error: Failure message when status is "failed"

        Returns:
            True if updated, False if task not found
        """
        if task_id not in self._tasks:
            self.logger.warning("Task not found for status update", task_id=task_id)
            return False

        task = self._tasks[task_id]
        old_status = task.status
        task.status = status

        if status == "failed":
            task.retry_count += 1
            task.error = error
            self.logger.warning("Task failed", task_id=task_id, event_id=task.event_id, error=error)

        self.logger.debug(
            "Task status updated",
            task_id=task_id,
            old_status=old_status,
            new_status=status,
        )

        if status in self._finished:
            self._finished[status] += 1
            del self._tasks[task_id]

        return True

    def get_pending_tasks(self, limit: Optional[int] = None) -> List[Task]:
        """
        Get all pending tasks sorted by priority.

        Args:
            limit: Optional maximum number of tasks to return

        Returns:
            List of pending tasks, highest priority first
        """
        pending = sorted(
            task for task in self._tasks.values()
            if task.status == "pending"
        )

        if limit:
            pending = pending[:limit]

        return pending

    def get_task(self, task_id: str) -> Optional[Task]:
        """
        Get a specific task by ID.

        Args:
            task_id: Task identifier

        Returns:
            Task if found, None otherwise
        """
        return self._tasks.get(task_id)

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get queue statistics.

        Returns:
            Dictionary with queue metrics
        """
        status_counts: Dict[str, int] = {}
        for task in self._tasks.values():
            status_counts[task.status] = status_counts.get(task.status, 0) + 1

        return {
            "total_tasks": sum(self._added.values()),
            "live_tasks": len(self._tasks),
            "pending_tasks": status_counts.get("pending", 0),
            "assigned_tasks": status_counts.get("assigned", 0),
            "in_progress_tasks": status_counts.get("in_progress", 0),
            "completed_tasks": self._finished["completed"],
            "failed_tasks": self._finished["failed"],
            "classify_tasks": self._added["classify"],
            "validate_tasks": self._added["validate"],
        }

    def has_pending(self) -> bool:
        return any(task.status == "pending" for task in self._tasks.values())

    def clear(self):
        """Clear all tasks from the queue."""
        self._heap.clear()
        self._tasks.clear()
        self.logger.info("Task queue cleared")

    def __len__(self) -> int:
        """Return the number of live (unfinished) tasks."""
        return len(self._tasks)
