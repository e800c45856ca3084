from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from assessflow.main import app
from assessflow.models.assessment import (
    AssessmentDefinition,
    AssignmentDefinition,
    EssayQuestion,
    MultipleChoiceQuestion,
    TrueFalseQuestion,
)
from assessflow.services import token_service
from assessflow.services.cache import cache_service
from assessflow.services.task_queue import task_queue
from assessflow.services.workflow_coordinator import (
    attempt_repo,
    content_provider,
    coordinator,
    scheduler,
    submission_repo,
)

# Ensure repo root is on sys.path so `import assessflow` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_workflow_state() -> None:
    """Clear attempts, submissions, and definitions between tests."""
    if hasattr(attempt_repo, "_by_id"):
        attempt_repo._by_id.clear()  # type: ignore[union-attr]
    if hasattr(submission_repo, "_by_id"):
        submission_repo._by_id.clear()  # type: ignore[union-attr]
    content_provider.clear()
    coordinator.controller._timers.clear()
    scheduler._timers.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "learner-1",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (learner)."""
    return mint_token()


@pytest.fixture
def instructor_token() -> str:
    return mint_token(username="instructor-1", roles=["instructor"])


# ---------------------------------------------------------------------------
# Content helpers
# ---------------------------------------------------------------------------


def make_quiz(
    *,
    time_limit_seconds: int | None = None,
    attempts_allowed: int = 1,
    passing_score: int = 60,
    available_from: datetime | None = None,
    available_until: datetime | None = None,
    instructor_id: str | None = "instructor-1",
) -> AssessmentDefinition:
    """Three questions, 30 points: MC (10), TF (10), essay (10)."""
    now = datetime.now(UTC)
    return AssessmentDefinition(
        id=uuid4(),
        title="Unit 3 quiz",
        questions=(
            MultipleChoiceQuestion(
                index=0,
                points=10,
                prompt="2 + 2?",
                options=("3", "4", "5"),
                correct_answer="4",
            ),
            TrueFalseQuestion(
                index=1, points=10, prompt="Python is compiled.", correct_answer="false"
            ),
            EssayQuestion(index=2, points=10, prompt="Describe a closure."),
        ),
        available_from=available_from or now - timedelta(days=1),
        available_until=available_until or now + timedelta(days=1),
        time_limit_seconds=time_limit_seconds,
        attempts_allowed=attempts_allowed,
        passing_score=passing_score,
        instructor_id=instructor_id,
    )


def make_assignment(
    *,
    due_date: datetime | None = None,
    total_points: int = 100,
    allow_resubmission: bool = False,
    instructor_id: str | None = "instructor-1",
) -> AssignmentDefinition:
    return AssignmentDefinition(
        id=uuid4(),
        title="Essay on recursion",
        due_date=due_date or datetime.now(UTC) + timedelta(days=7),
        total_points=total_points,
        allow_resubmission=allow_resubmission,
        instructor_id=instructor_id,
    )


@pytest.fixture
def quiz() -> AssessmentDefinition:
    definition = make_quiz()
    content_provider.add_assessment(definition)
    return definition


@pytest.fixture
def assignment() -> AssignmentDefinition:
    definition = make_assignment()
    content_provider.add_assignment(definition)
    return definition
