"""PostgreSQL implementation of SubmissionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from assessflow.db.tables import SubmissionRow
from assessflow.models.submission import Submission


class PgSubmissionRepo:
    """Satisfies the SubmissionRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, submission_id: UUID) -> Submission | None:
        async with self._session_factory() as session:
            row = await session.get(SubmissionRow, submission_id)
            if row is None:
                return None
            return _row_to_submission(row)

    async def save(self, submission: Submission) -> None:
        async with self._session_factory() as session:
            await session.merge(_submission_to_row(submission))
            await session.commit()

    async def get_active(
        self, assignment_id: UUID, submitter_id: str
    ) -> Submission | None:
        stmt = (
            select(SubmissionRow)
            .where(
                SubmissionRow.assignment_id == assignment_id,
                SubmissionRow.submitter_id == submitter_id,
                SubmissionRow.deleted_at.is_(None),
            )
            .order_by(SubmissionRow.submitted_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None
            return _row_to_submission(row)

    async def list_by_assignment(self, assignment_id: UUID) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(
                SubmissionRow.assignment_id == assignment_id,
                SubmissionRow.deleted_at.is_(None),
            )
            .order_by(SubmissionRow.submitted_at)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_submission(r) for r in rows]


def _submission_to_row(s: Submission) -> SubmissionRow:
    return SubmissionRow(
        id=s.id,
        assignment_id=s.assignment_id,
        submitter_id=s.submitter_id,
        submitted_at=s.submitted_at,
        text=s.text,
        file_refs=list(s.file_refs),
        url=s.url,
        late=s.late,
        review_status=s.review_status,
        grade=s.grade,
        feedback=s.feedback,
        reviewed_at=s.reviewed_at,
        reviewed_by=s.reviewed_by,
        graded_at=s.graded_at,
        graded_by=s.graded_by,
        grade_revision=s.grade_revision,
        deleted_at=s.deleted_at,
    )


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        assignment_id=row.assignment_id,
        submitter_id=row.submitter_id,
        submitted_at=row.submitted_at,
        text=row.text or "",
        file_refs=tuple(row.file_refs) if row.file_refs else (),
        url=row.url,
        late=row.late,
        review_status=row.review_status,  # type: ignore[arg-type]
        grade=row.grade,
        feedback=row.feedback or "",
        reviewed_at=row.reviewed_at,
        reviewed_by=row.reviewed_by,
        graded_at=row.graded_at,
        graded_by=row.graded_by,
        grade_revision=row.grade_revision,
        deleted_at=row.deleted_at,
    )
