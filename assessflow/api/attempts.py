"""Quiz attempt endpoints.

    POST /v1/assessments/{id}/attempts        start (learner)
    GET  /v1/assessments/{id}/eligibility     attempts left (learner)
    GET  /v1/assessments/{id}/statistics      class statistics (instructor)
    GET  /v1/attempts/{id}                    read (owner or instructor)
    PUT  /v1/attempts/{id}/answers/{index}    autosave one answer (owner)
    POST /v1/attempts/{id}/submit             manual submit (owner)
    GET  /v1/attempts/{id}/time-remaining     countdown (owner or instructor)
    POST /v1/attempts/{id}/grades             manual grading (instructor)

Submit always answers 200 once the attempt is closed, whether this request
closed it or the countdown got there first; ``outcome`` tells which.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from assessflow.api.dependencies import (
    ensure_owner,
    ensure_owner_or_reviewer,
    raise_for_outcome,
    require_reviewer,
    require_user,
)
from assessflow.models.attempt import Attempt
from assessflow.models.outcome import WorkflowResult
from assessflow.models.principal import Principal
from assessflow.services.workflow_coordinator import coordinator

router = APIRouter(prefix="/v1", tags=["attempts"])


class AnswerIn(BaseModel):
    answer: str


class SubmitIn(BaseModel):
    answers: dict[int, str] | None = None


class GradesIn(BaseModel):
    scores: dict[int, float]


class QuestionResultOut(BaseModel):
    question_index: int
    kind: str
    answer: str | None
    points_awarded: float
    max_points: int
    is_correct: bool | None
    needs_manual_grading: bool


class AttemptOut(BaseModel):
    id: UUID
    assessment_id: UUID
    submitter_id: str
    attempt_no: int
    status: str
    started_at: datetime
    time_limit_seconds: int | None
    answers: dict[int, str]
    submitted_at: datetime | None
    finalize_reason: str | None
    late: bool
    score: float
    total_points: int
    percentage: int
    passed: bool
    time_spent_seconds: int
    question_results: list[QuestionResultOut]
    outcome: str | None = None


class TimeRemainingOut(BaseModel):
    attempt_id: UUID
    seconds_remaining: float | None


class EligibilityOut(BaseModel):
    assessment_id: UUID
    attempts_used: int
    attempts_remaining: int
    can_attempt: bool


class StatisticsOut(BaseModel):
    assessment_id: UUID
    total_attempts: int
    submitted_attempts: int
    average_percentage: int
    highest_percentage: int
    lowest_percentage: int
    pass_rate: int
    average_time_spent_seconds: int


def _attempt_out(attempt: Attempt, outcome: str | None = None) -> AttemptOut:
    return AttemptOut(
        id=attempt.id,
        assessment_id=attempt.assessment_id,
        submitter_id=attempt.submitter_id,
        attempt_no=attempt.attempt_no,
        status=attempt.status,
        started_at=attempt.started_at,
        time_limit_seconds=attempt.time_limit_seconds,
        answers=attempt.answers,
        submitted_at=attempt.submitted_at,
        finalize_reason=attempt.finalize_reason,
        late=attempt.late,
        score=attempt.score,
        total_points=attempt.total_points,
        percentage=attempt.percentage,
        passed=attempt.passed,
        time_spent_seconds=attempt.time_spent_seconds,
        question_results=[
            QuestionResultOut(
                question_index=r.question_index,
                kind=r.kind,
                answer=r.answer,
                points_awarded=r.points_awarded,
                max_points=r.max_points,
                is_correct=r.is_correct,
                needs_manual_grading=r.needs_manual_grading,
            )
            for r in attempt.question_results
        ],
        outcome=outcome,
    )


def _result_out(result: WorkflowResult[Attempt]) -> AttemptOut:
    return _attempt_out(raise_for_outcome(result), result.outcome)


# ---------------------------------------------------------------------------
# Assessment-scoped
# ---------------------------------------------------------------------------


@router.post(
    "/assessments/{assessment_id}/attempts",
    response_model=AttemptOut,
    status_code=status.HTTP_201_CREATED,
)
async def start_attempt(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    result = await coordinator.start_attempt(assessment_id, principal.user_id)
    return _result_out(result)


@router.get("/assessments/{assessment_id}/eligibility", response_model=EligibilityOut)
async def get_eligibility(
    assessment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> EligibilityOut:
    e = await coordinator.attempt_eligibility(assessment_id, principal.user_id)
    return EligibilityOut(
        assessment_id=e.assessment_id,
        attempts_used=e.attempts_used,
        attempts_remaining=e.attempts_remaining,
        can_attempt=e.can_attempt,
    )


@router.get("/assessments/{assessment_id}/statistics", response_model=StatisticsOut)
async def get_statistics(
    assessment_id: UUID,
    _principal: Annotated[Principal, Depends(require_reviewer)],
) -> StatisticsOut:
    s = await coordinator.assessment_statistics(assessment_id)
    return StatisticsOut(
        assessment_id=s.assessment_id,
        total_attempts=s.total_attempts,
        submitted_attempts=s.submitted_attempts,
        average_percentage=s.average_percentage,
        highest_percentage=s.highest_percentage,
        lowest_percentage=s.lowest_percentage,
        pass_rate=s.pass_rate,
        average_time_spent_seconds=s.average_time_spent_seconds,
    )


# ---------------------------------------------------------------------------
# Attempt-scoped
# ---------------------------------------------------------------------------


@router.get("/attempts/{attempt_id}", response_model=AttemptOut)
async def get_attempt(
    attempt_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    attempt = await coordinator.get_attempt(attempt_id)
    ensure_owner_or_reviewer(principal, attempt.submitter_id)
    return _attempt_out(attempt)


@router.put("/attempts/{attempt_id}/answers/{question_index}", response_model=AttemptOut)
async def record_answer(
    attempt_id: UUID,
    question_index: int,
    body: AnswerIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    attempt = await coordinator.get_attempt(attempt_id)
    ensure_owner(principal, attempt.submitter_id)
    result = await coordinator.record_answer(attempt_id, question_index, body.answer)
    return _result_out(result)


@router.post("/attempts/{attempt_id}/submit", response_model=AttemptOut)
async def submit_attempt(
    attempt_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    body: SubmitIn | None = None,
) -> AttemptOut:
    attempt = await coordinator.get_attempt(attempt_id)
    ensure_owner(principal, attempt.submitter_id)
    answers = body.answers if body is not None else None
    result = await coordinator.submit_attempt(attempt_id, answers)
    return _result_out(result)


@router.get("/attempts/{attempt_id}/time-remaining", response_model=TimeRemainingOut)
async def get_time_remaining(
    attempt_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> TimeRemainingOut:
    attempt = await coordinator.get_attempt(attempt_id)
    ensure_owner_or_reviewer(principal, attempt.submitter_id)
    remaining = await coordinator.get_time_remaining(attempt_id)
    return TimeRemainingOut(attempt_id=attempt_id, seconds_remaining=remaining)


@router.post("/attempts/{attempt_id}/grades", response_model=AttemptOut)
async def grade_attempt(
    attempt_id: UUID,
    body: GradesIn,
    principal: Annotated[Principal, Depends(require_reviewer)],
) -> AttemptOut:
    result = await coordinator.grade_attempt(attempt_id, body.scores, principal.user_id)
    return _result_out(result)
