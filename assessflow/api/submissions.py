"""Assignment submission and review endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from assessflow.api.dependencies import (
    ensure_owner_or_reviewer,
    raise_for_outcome,
    require_reviewer,
    require_user,
)
from assessflow.models.outcome import WorkflowResult
from assessflow.models.principal import Principal
from assessflow.models.submission import Submission
from assessflow.services.workflow_coordinator import coordinator

router = APIRouter(prefix="/v1", tags=["submissions"])


class SubmissionIn(BaseModel):
    text: str = ""
    file_refs: list[str] = Field(default_factory=list)
    url: str | None = None


class FeedbackIn(BaseModel):
    feedback: str | None = None


class GradeIn(BaseModel):
    grade: float
    feedback: str | None = None


class SubmissionOut(BaseModel):
    id: UUID
    assignment_id: UUID
    submitter_id: str
    submitted_at: datetime
    text: str
    file_refs: list[str]
    url: str | None
    late: bool
    review_status: str
    grade: float | None
    feedback: str
    reviewed_at: datetime | None
    graded_at: datetime | None
    grade_revision: int
    deleted: bool
    outcome: str | None = None


def _submission_out(sub: Submission, outcome: str | None = None) -> SubmissionOut:
    return SubmissionOut(
        id=sub.id,
        assignment_id=sub.assignment_id,
        submitter_id=sub.submitter_id,
        submitted_at=sub.submitted_at,
        text=sub.text,
        file_refs=list(sub.file_refs),
        url=sub.url,
        late=sub.late,
        review_status=sub.review_status,
        grade=sub.grade,
        feedback=sub.feedback,
        reviewed_at=sub.reviewed_at,
        graded_at=sub.graded_at,
        grade_revision=sub.grade_revision,
        deleted=sub.is_deleted,
        outcome=outcome,
    )


def _result_out(result: WorkflowResult[Submission]) -> SubmissionOut:
    return _submission_out(raise_for_outcome(result), result.outcome)


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_submission(
    assignment_id: UUID,
    body: SubmissionIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> SubmissionOut:
    result = await coordinator.create_submission(
        assignment_id,
        principal.user_id,
        text=body.text,
        file_refs=tuple(body.file_refs),
        url=body.url,
    )
    return _result_out(result)


@router.get(
    "/assignments/{assignment_id}/submissions",
    response_model=list[SubmissionOut],
)
async def list_submissions(
    assignment_id: UUID,
    _principal: Annotated[Principal, Depends(require_reviewer)],
) -> list[SubmissionOut]:
    return [_submission_out(s) for s in await coordinator.list_submissions(assignment_id)]


@router.get("/submissions/{submission_id}", response_model=SubmissionOut)
async def get_submission(
    submission_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> SubmissionOut:
    sub = await coordinator.get_submission(submission_id)
    ensure_owner_or_reviewer(principal, sub.submitter_id)
    return _submission_out(sub)


# ---------------------------------------------------------------------------
# Review (instructor)
# ---------------------------------------------------------------------------


@router.post("/submissions/{submission_id}/view", response_model=SubmissionOut)
async def mark_viewed(
    submission_id: UUID,
    principal: Annotated[Principal, Depends(require_reviewer)],
) -> SubmissionOut:
    return _result_out(await coordinator.mark_viewed(submission_id, principal.user_id))


@router.post("/submissions/{submission_id}/approve", response_model=SubmissionOut)
async def approve(
    submission_id: UUID,
    principal: Annotated[Principal, Depends(require_reviewer)],
    body: FeedbackIn | None = None,
) -> SubmissionOut:
    feedback = body.feedback if body is not None else None
    result = await coordinator.approve_submission(
        submission_id, principal.user_id, feedback
    )
    return _result_out(result)


@router.post("/submissions/{submission_id}/disapprove", response_model=SubmissionOut)
async def disapprove(
    submission_id: UUID,
    body: FeedbackIn,
    principal: Annotated[Principal, Depends(require_reviewer)],
) -> SubmissionOut:
    result = await coordinator.disapprove_submission(
        submission_id, principal.user_id, body.feedback
    )
    return _result_out(result)


@router.post("/submissions/{submission_id}/grade", response_model=SubmissionOut)
async def grade(
    submission_id: UUID,
    body: GradeIn,
    principal: Annotated[Principal, Depends(require_reviewer)],
) -> SubmissionOut:
    result = await coordinator.grade_submission(
        submission_id, principal.user_id, body.grade, body.feedback
    )
    return _result_out(result)


@router.delete("/submissions/{submission_id}", response_model=SubmissionOut)
async def delete_submission(
    submission_id: UUID,
    principal: Annotated[Principal, Depends(require_reviewer)],
) -> SubmissionOut:
    result = await coordinator.delete_submission(submission_id, principal.user_id)
    return _result_out(result)
