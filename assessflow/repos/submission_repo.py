from __future__ import annotations

from typing import Protocol
from uuid import UUID

from assessflow.models.submission import Submission


class SubmissionRepo(Protocol):
    async def get(self, submission_id: UUID) -> Submission | None: ...
    async def save(self, submission: Submission) -> None: ...
    async def get_active(
        self, assignment_id: UUID, submitter_id: str
    ) -> Submission | None: ...
    async def list_by_assignment(self, assignment_id: UUID) -> list[Submission]: ...


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Submission] = {}

    async def get(self, submission_id: UUID) -> Submission | None:
        return self._by_id.get(submission_id)

    async def save(self, submission: Submission) -> None:
        self._by_id[submission.id] = submission

    async def get_active(
        self, assignment_id: UUID, submitter_id: str
    ) -> Submission | None:
        """Latest non-deleted submission for the pair, if any."""
        candidates = [
            s
            for s in self._by_id.values()
            if s.assignment_id == assignment_id
            and s.submitter_id == submitter_id
            and not s.is_deleted
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.submitted_at)

    async def list_by_assignment(self, assignment_id: UUID) -> list[Submission]:
        return sorted(
            (
                s
                for s in self._by_id.values()
                if s.assignment_id == assignment_id and not s.is_deleted
            ),
            key=lambda s: s.submitted_at,
        )
