"""Notification collaborator.

The engine emits one WorkflowEvent per committed state change.  Delivery
(in-app inbox, socket push, e-mail) belongs to another system; the
QueueNotifier only hands the event to the task queue so a slow or failing
delivery channel can never hold the attempt lock or fail a submission.
"""

from __future__ import annotations

import logging
from typing import Protocol

from assessflow.core.metrics import NOTIFICATIONS_EMITTED
from assessflow.models.event import WorkflowEvent
from assessflow.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

NOTIFICATIONS_QUEUE = "notifications"


class Notifier(Protocol):
    async def emit(self, event: WorkflowEvent) -> None: ...


class QueueNotifier:
    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def emit(self, event: WorkflowEvent) -> None:
        task = await self._queue.enqueue(NOTIFICATIONS_QUEUE, event.to_dict())
        NOTIFICATIONS_EMITTED.labels(type=event.type).inc()
        logger.debug(
            "Queued %s for user=%s task=%s", event.type, event.target_user_id, task.id
        )


class RecordingNotifier:
    """Keeps events in memory; used by engine tests."""

    def __init__(self) -> None:
        self.events: list[WorkflowEvent] = []

    async def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)
        NOTIFICATIONS_EMITTED.labels(type=event.type).inc()

    def of_type(self, event_type: str) -> list[WorkflowEvent]:
        return [e for e in self.events if e.type == event_type]
