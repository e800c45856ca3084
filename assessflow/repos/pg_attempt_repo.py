"""PostgreSQL implementation of AttemptRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from assessflow.db.tables import AttemptRow
from assessflow.models.attempt import Attempt, QuestionResult


class PgAttemptRepo:
    """Satisfies the AttemptRepo Protocol using PostgreSQL via SQLAlchemy.

    Takes the session factory rather than a session: the countdown timer
    finalizes attempts from a background task with no request scope.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, attempt_id: UUID) -> Attempt | None:
        async with self._session_factory() as session:
            row = await session.get(AttemptRow, attempt_id)
            if row is None:
                return None
            return _row_to_attempt(row)

    async def save(self, attempt: Attempt) -> None:
        async with self._session_factory() as session:
            await session.merge(_attempt_to_row(attempt))
            await session.commit()

    async def list_by_assessment(self, assessment_id: UUID) -> list[Attempt]:
        stmt = (
            select(AttemptRow)
            .where(AttemptRow.assessment_id == assessment_id)
            .order_by(AttemptRow.started_at)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_attempt(r) for r in rows]

    async def count_for(self, assessment_id: UUID, submitter_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(AttemptRow)
            .where(
                AttemptRow.assessment_id == assessment_id,
                AttemptRow.submitter_id == submitter_id,
            )
        )
        async with self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def list_in_progress(self) -> list[Attempt]:
        stmt = select(AttemptRow).where(AttemptRow.status == "in_progress")
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_attempt(r) for r in rows]


def _attempt_to_row(attempt: Attempt) -> AttemptRow:
    return AttemptRow(
        id=attempt.id,
        assessment_id=attempt.assessment_id,
        submitter_id=attempt.submitter_id,
        attempt_no=attempt.attempt_no,
        status=attempt.status,
        started_at=attempt.started_at,
        time_limit_seconds=attempt.time_limit_seconds,
        total_points=attempt.total_points,
        answers={str(k): v for k, v in attempt.answers.items()},
        submitted_at=attempt.submitted_at,
        finalize_reason=attempt.finalize_reason,
        late=attempt.late,
        score=attempt.score,
        percentage=attempt.percentage,
        passed=attempt.passed,
        question_results=[
            {
                "question_index": r.question_index,
                "kind": r.kind,
                "answer": r.answer,
                "points_awarded": r.points_awarded,
                "max_points": r.max_points,
                "is_correct": r.is_correct,
                "needs_manual_grading": r.needs_manual_grading,
            }
            for r in attempt.question_results
        ],
        time_spent_seconds=attempt.time_spent_seconds,
        graded_at=attempt.graded_at,
        graded_by=attempt.graded_by,
    )


def _row_to_attempt(row: AttemptRow) -> Attempt:
    return Attempt(
        id=row.id,
        assessment_id=row.assessment_id,
        submitter_id=row.submitter_id,
        started_at=row.started_at,
        total_points=row.total_points,
        time_limit_seconds=row.time_limit_seconds,
        attempt_no=row.attempt_no,
        status=row.status,  # type: ignore[arg-type]
        answers={int(k): v for k, v in (row.answers or {}).items()},
        submitted_at=row.submitted_at,
        finalize_reason=row.finalize_reason,  # type: ignore[arg-type]
        late=row.late,
        score=row.score,
        percentage=row.percentage,
        passed=row.passed,
        question_results=tuple(QuestionResult(**r) for r in row.question_results or []),
        time_spent_seconds=row.time_spent_seconds,
        graded_at=row.graded_at,
        graded_by=row.graded_by,
    )
