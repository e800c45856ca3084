"""Notification worker process.

RUN:  python -m assessflow.worker

The API process enqueues one WorkflowEvent per committed state change on
the ``notifications`` queue.  This process drains it and hands each event
to the delivery collaborator (in-app inbox, socket push, e-mail).  Delivery
itself lives elsewhere; here it is a structured log line per recipient.

A handler failure is logged and the loop moves on to the next task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from assessflow.core.config import SETTINGS
from assessflow.core.logging import setup_logging
from assessflow.services.notifier import NOTIFICATIONS_QUEUE
from assessflow.services.task_queue import TaskQueue, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("assessflow.worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


_SUBJECTS = {
    "attempt_submitted": "Your quiz was submitted",
    "attempt_graded": "Your quiz was graded",
    "submission_created": "New assignment submission",
    "submission_viewed": "Your submission was viewed",
    "submission_approved": "Your submission was approved",
    "submission_disapproved": "Your submission needs changes",
    "submission_graded": "Your submission was graded",
    "submission_deleted": "Your submission was removed",
}


@register_handler(NOTIFICATIONS_QUEUE)
async def handle_notification(payload: dict) -> None:
    event_type = payload["type"]
    subject = _SUBJECTS.get(event_type)
    if subject is None:
        raise ValueError(f"unknown event type: {event_type}")
    data = payload.get("payload", {})
    logger.info(
        "Deliver to user=%s: %s",
        payload["target_user_id"],
        subject,
        extra={
            "attempt_id": data.get("attempt_id"),
            "submission_id": data.get("submission_id"),
        },
    )


async def process_one(queue: TaskQueue, queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle a single task.  Returns False when the queue was empty."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.debug("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        handled = False
        for queue_name in queues:
            handled = await process_one(task_queue, queue_name) or handled
        if not handled:
            # In-memory queues return immediately; don't spin.
            await asyncio.sleep(0.5)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
