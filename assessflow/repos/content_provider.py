"""Content provider collaborator.

Course authoring lives in another service; the workflow engine only reads
definitions from it.  The in-memory provider stands in for that service in
dev and tests, and counts attempts from the attempt store it shares with
the engine so the attempts-allowed check sees every started attempt.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from assessflow.models.assessment import (
    AssessmentDefinition,
    AssignmentDefinition,
    EssayQuestion,
    MultipleChoiceQuestion,
    TrueFalseQuestion,
)
from assessflow.repos.attempt_repo import AttemptRepo

logger = logging.getLogger(__name__)

SAMPLE_QUIZ_ID = UUID("00000000-0000-0000-0000-0000000000a1")
SAMPLE_ASSIGNMENT_ID = UUID("00000000-0000-0000-0000-0000000000b1")


class ContentProvider(Protocol):
    async def get_assessment_definition(
        self, assessment_id: UUID
    ) -> AssessmentDefinition | None: ...
    async def get_attempt_count(self, assessment_id: UUID, submitter_id: str) -> int: ...
    async def get_assignment_definition(
        self, assignment_id: UUID
    ) -> AssignmentDefinition | None: ...


class InMemoryContentProvider:
    def __init__(self, attempts: AttemptRepo) -> None:
        self._attempts = attempts
        self._assessments: dict[UUID, AssessmentDefinition] = {}
        self._assignments: dict[UUID, AssignmentDefinition] = {}

    def add_assessment(self, definition: AssessmentDefinition) -> None:
        self._assessments[definition.id] = definition

    def add_assignment(self, definition: AssignmentDefinition) -> None:
        self._assignments[definition.id] = definition

    def clear(self) -> None:
        self._assessments.clear()
        self._assignments.clear()

    async def get_assessment_definition(
        self, assessment_id: UUID
    ) -> AssessmentDefinition | None:
        return self._assessments.get(assessment_id)

    async def get_attempt_count(self, assessment_id: UUID, submitter_id: str) -> int:
        return await self._attempts.count_for(assessment_id, submitter_id)

    async def get_assignment_definition(
        self, assignment_id: UUID
    ) -> AssignmentDefinition | None:
        return self._assignments.get(assignment_id)


def seed_sample_content(provider: InMemoryContentProvider) -> None:
    """Seed one timed quiz and one assignment for local development."""
    now = datetime.now(UTC)
    provider.add_assessment(
        AssessmentDefinition(
            id=SAMPLE_QUIZ_ID,
            title="Python basics check",
            questions=(
                MultipleChoiceQuestion(
                    index=0,
                    points=10,
                    prompt="Which keyword defines a function?",
                    options=("func", "def", "fn", "lambda"),
                    correct_answer="def",
                ),
                TrueFalseQuestion(
                    index=1,
                    points=10,
                    prompt="Tuples are mutable.",
                    correct_answer="false",
                ),
                EssayQuestion(
                    index=2,
                    points=20,
                    prompt="Explain the difference between a list and a generator.",
                ),
            ),
            available_from=now - timedelta(days=1),
            available_until=now + timedelta(days=30),
            time_limit_seconds=15 * 60,
            attempts_allowed=2,
            passing_score=60,
            instructor_id="instructor-1",
        )
    )
    provider.add_assignment(
        AssignmentDefinition(
            id=SAMPLE_ASSIGNMENT_ID,
            title="Build a CLI todo app",
            due_date=now + timedelta(days=7),
            total_points=100,
            instructor_id="instructor-1",
        )
    )
    logger.info("Seeded sample quiz=%s assignment=%s", SAMPLE_QUIZ_ID, SAMPLE_ASSIGNMENT_ID)
