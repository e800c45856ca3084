from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

EventType = Literal[
    "attempt_submitted",
    "attempt_graded",
    "submission_created",
    "submission_viewed",
    "submission_approved",
    "submission_disapproved",
    "submission_graded",
    "submission_deleted",
]


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    """Outbound state-change notification for the delivery collaborator."""

    type: EventType
    target_user_id: str
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "target_user_id": self.target_user_id,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload,
        }
