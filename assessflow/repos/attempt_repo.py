from __future__ import annotations

from typing import Protocol
from uuid import UUID

from assessflow.models.attempt import Attempt


class AttemptRepo(Protocol):
    async def get(self, attempt_id: UUID) -> Attempt | None: ...
    async def save(self, attempt: Attempt) -> None: ...
    async def list_by_assessment(self, assessment_id: UUID) -> list[Attempt]: ...
    async def count_for(self, assessment_id: UUID, submitter_id: str) -> int: ...
    async def list_in_progress(self) -> list[Attempt]: ...


class InMemoryAttemptRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Attempt] = {}

    async def get(self, attempt_id: UUID) -> Attempt | None:
        return self._by_id.get(attempt_id)

    async def save(self, attempt: Attempt) -> None:
        # Upsert; the engine only ever writes whole records.
        self._by_id[attempt.id] = attempt

    async def list_by_assessment(self, assessment_id: UUID) -> list[Attempt]:
        return sorted(
            (a for a in self._by_id.values() if a.assessment_id == assessment_id),
            key=lambda a: a.started_at,
        )

    async def count_for(self, assessment_id: UUID, submitter_id: str) -> int:
        return sum(
            1
            for a in self._by_id.values()
            if a.assessment_id == assessment_id and a.submitter_id == submitter_id
        )

    async def list_in_progress(self) -> list[Attempt]:
        return [a for a in self._by_id.values() if a.is_in_progress]
