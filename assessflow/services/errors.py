from __future__ import annotations

from assessflow.models.outcome import Outcome


class WorkflowError(Exception):
    pass


class NotFoundError(WorkflowError):
    """Unknown attempt, submission, or definition id."""

    def __init__(self, kind: str, entity_id: object) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class PreconditionError(WorkflowError):
    """Caller input rejected before any state changed."""

    outcome: Outcome = "invalid_transition"


class FeedbackRequiredError(PreconditionError):
    outcome: Outcome = "feedback_required"


class GradeOutOfRangeError(PreconditionError):
    outcome: Outcome = "grade_out_of_range"


class InvalidTransitionError(PreconditionError):
    outcome: Outcome = "invalid_transition"
