from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

ReviewStatus = Literal["pending", "viewed", "approved", "disapproved"]
ReviewActionType = Literal["mark-viewed", "approve", "disapprove", "grade"]


@dataclass(frozen=True, slots=True)
class Submission:
    """One assignment deliverable.

    review_status and grade move independently: an instructor may grade
    without approving, or approve without grading.
    """

    id: UUID
    assignment_id: UUID
    submitter_id: str
    submitted_at: datetime
    text: str = ""
    file_refs: tuple[str, ...] = ()
    url: str | None = None
    late: bool = False
    review_status: ReviewStatus = "pending"
    grade: float | None = None
    feedback: str = ""
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    graded_at: datetime | None = None
    graded_by: str | None = None
    grade_revision: int = 0
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def has_content(self) -> bool:
        return bool(self.text.strip() or self.file_refs or (self.url or "").strip())

    @staticmethod
    def new(
        *,
        assignment_id: UUID,
        submitter_id: str,
        submitted_at: datetime,
        due_date: datetime,
        text: str = "",
        file_refs: tuple[str, ...] = (),
        url: str | None = None,
    ) -> Submission:
        return Submission(
            id=uuid4(),
            assignment_id=assignment_id,
            submitter_id=submitter_id,
            submitted_at=submitted_at,
            text=text,
            file_refs=file_refs,
            url=url,
            late=submitted_at > due_date,
        )


@dataclass(frozen=True, slots=True)
class ReviewAction:
    """Ephemeral instructor command; never persisted on its own."""

    actor_id: str
    submission_id: UUID
    action: ReviewActionType
    feedback: str | None = None
    grade: float | None = None
