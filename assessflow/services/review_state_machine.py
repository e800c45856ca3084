"""Instructor review transitions for assignment submissions.

    pending ──view──> viewed
    pending|viewed ──approve──> approved      (approve again: feedback refresh)
    pending|viewed ──disapprove──> disapproved (disapprove again: feedback refresh)

approved and disapproved do not cross over, and nothing returns to
pending.  Grading is orthogonal: it is allowed in any review status and
never moves review_status.

Each function is pure: it returns the new Submission and the event to
emit (None for a noop) or raises a PreconditionError with nothing
changed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from assessflow.models.event import EventType
from assessflow.models.submission import Submission
from assessflow.services.errors import (
    FeedbackRequiredError,
    GradeOutOfRangeError,
    InvalidTransitionError,
)

Transition = tuple[Submission, EventType | None]


def mark_viewed(sub: Submission, actor_id: str, now: datetime) -> Transition:
    if sub.review_status != "pending":
        # Already looked at (or decided); viewing again changes nothing.
        return sub, None
    return (
        replace(sub, review_status="viewed", reviewed_at=now, reviewed_by=actor_id),
        "submission_viewed",
    )


def approve(
    sub: Submission, actor_id: str, now: datetime, feedback: str | None = None
) -> Transition:
    if sub.review_status == "disapproved":
        raise InvalidTransitionError("submission was already disapproved")
    if sub.review_status == "approved" and feedback is None:
        return sub, None
    return (
        replace(
            sub,
            review_status="approved",
            feedback=feedback if feedback is not None else sub.feedback,
            reviewed_at=now,
            reviewed_by=actor_id,
        ),
        "submission_approved",
    )


def disapprove(
    sub: Submission, actor_id: str, now: datetime, feedback: str | None
) -> Transition:
    if not feedback or not feedback.strip():
        raise FeedbackRequiredError("feedback is required to disapprove a submission")
    if sub.review_status == "approved":
        raise InvalidTransitionError("submission was already approved")
    return (
        replace(
            sub,
            review_status="disapproved",
            feedback=feedback,
            reviewed_at=now,
            reviewed_by=actor_id,
        ),
        "submission_disapproved",
    )


def grade(
    sub: Submission,
    actor_id: str,
    now: datetime,
    value: float,
    total_points: int,
    feedback: str | None = None,
) -> Transition:
    """Set or overwrite the grade; the latest call wins."""
    if not 0 <= value <= total_points:
        raise GradeOutOfRangeError(f"grade must be between 0 and {total_points}")
    return (
        replace(
            sub,
            grade=value,
            feedback=feedback if feedback is not None else sub.feedback,
            graded_at=now,
            graded_by=actor_id,
            grade_revision=sub.grade_revision + 1,
        ),
        "submission_graded",
    )
