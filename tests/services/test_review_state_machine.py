from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from assessflow.models.submission import Submission
from assessflow.services import review_state_machine as rsm
from assessflow.services.errors import (
    FeedbackRequiredError,
    GradeOutOfRangeError,
    InvalidTransitionError,
)

NOW = datetime(2025, 1, 5, 12, 0, tzinfo=UTC)


def _submission(**overrides) -> Submission:
    sub = Submission.new(
        assignment_id=uuid4(),
        submitter_id="learner-1",
        submitted_at=NOW - timedelta(hours=1),
        due_date=NOW + timedelta(days=1),
        text="my essay",
    )
    return replace(sub, **overrides)


# ---- mark_viewed ----


def test_mark_viewed_moves_pending_to_viewed() -> None:
    updated, event = rsm.mark_viewed(_submission(), "instructor-1", NOW)
    assert updated.review_status == "viewed"
    assert updated.reviewed_by == "instructor-1"
    assert updated.reviewed_at == NOW
    assert event == "submission_viewed"


@pytest.mark.parametrize("status", ["viewed", "approved", "disapproved"])
def test_mark_viewed_is_noop_past_pending(status: str) -> None:
    sub = _submission(review_status=status)
    updated, event = rsm.mark_viewed(sub, "instructor-1", NOW)
    assert updated is sub
    assert event is None


# ---- approve ----


@pytest.mark.parametrize("status", ["pending", "viewed"])
def test_approve_from_open_states(status: str) -> None:
    updated, event = rsm.approve(_submission(review_status=status), "i", NOW, "Nice")
    assert updated.review_status == "approved"
    assert updated.feedback == "Nice"
    assert event == "submission_approved"


def test_reapprove_overwrites_feedback() -> None:
    sub = _submission(review_status="approved", feedback="first", reviewed_by="a")
    updated, event = rsm.approve(sub, "b", NOW, "second")
    assert updated.review_status == "approved"
    assert updated.feedback == "second"
    assert updated.reviewed_by == "b"
    assert updated.reviewed_at == NOW
    assert event == "submission_approved"


def test_reapprove_without_feedback_is_noop() -> None:
    sub = _submission(review_status="approved", feedback="first")
    updated, event = rsm.approve(sub, "i", NOW)
    assert updated is sub
    assert event is None


def test_approve_after_disapprove_is_rejected() -> None:
    with pytest.raises(InvalidTransitionError):
        rsm.approve(_submission(review_status="disapproved"), "i", NOW)


def test_approve_without_feedback_keeps_existing() -> None:
    updated, _ = rsm.approve(_submission(feedback="earlier"), "i", NOW)
    assert updated.feedback == "earlier"


# ---- disapprove ----


@pytest.mark.parametrize("feedback", [None, "", "   \n"])
def test_disapprove_requires_feedback(feedback: str | None) -> None:
    with pytest.raises(FeedbackRequiredError):
        rsm.disapprove(_submission(), "i", NOW, feedback)


def test_disapprove_records_feedback() -> None:
    updated, event = rsm.disapprove(_submission(), "i", NOW, "Missing tests")
    assert updated.review_status == "disapproved"
    assert updated.feedback == "Missing tests"
    assert event == "submission_disapproved"


def test_disapprove_again_refreshes_feedback() -> None:
    sub = _submission(review_status="disapproved", feedback="v1")
    updated, event = rsm.disapprove(sub, "i", NOW, "v2")
    assert updated.feedback == "v2"
    assert event == "submission_disapproved"


def test_disapprove_after_approve_is_rejected() -> None:
    with pytest.raises(InvalidTransitionError):
        rsm.disapprove(_submission(review_status="approved"), "i", NOW, "changed my mind")


# ---- grade ----


@pytest.mark.parametrize("value", [0, 50.5, 100])
def test_grade_accepts_inclusive_bounds(value: float) -> None:
    updated, event = rsm.grade(_submission(), "i", NOW, value, 100)
    assert updated.grade == value
    assert updated.grade_revision == 1
    assert event == "submission_graded"


@pytest.mark.parametrize("value", [-0.01, 100.01])
def test_grade_rejects_out_of_range(value: float) -> None:
    with pytest.raises(GradeOutOfRangeError):
        rsm.grade(_submission(), "i", NOW, value, 100)


@pytest.mark.parametrize("status", ["pending", "viewed", "approved", "disapproved"])
def test_grade_never_moves_review_status(status: str) -> None:
    updated, _ = rsm.grade(_submission(review_status=status), "i", NOW, 70, 100)
    assert updated.review_status == status


def test_regrade_overwrites_and_bumps_revision() -> None:
    first, _ = rsm.grade(_submission(), "i", NOW, 60, 100, "ok")
    second, _ = rsm.grade(first, "j", NOW + timedelta(minutes=5), 85, 100)
    assert second.grade == 85
    assert second.graded_by == "j"
    assert second.grade_revision == 2
    assert second.feedback == "ok"
