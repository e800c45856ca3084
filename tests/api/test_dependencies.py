from __future__ import annotations

import pytest
from fastapi import HTTPException

from assessflow.api.dependencies import raise_for_outcome
from assessflow.models.outcome import WorkflowResult


def test_informational_outcome_returns_entity() -> None:
    entity = object()
    assert raise_for_outcome(WorkflowResult("noop", entity)) is entity


def test_informational_outcome_without_entity_is_500() -> None:
    with pytest.raises(HTTPException) as exc_info:
        raise_for_outcome(WorkflowResult("committed"))
    assert exc_info.value.status_code == 500


@pytest.mark.parametrize(
    ("outcome", "status_code"),
    [
        ("not_available", 403),
        ("attempts_exhausted", 409),
        ("invalid_transition", 409),
        ("feedback_required", 422),
        ("submission_empty", 422),
    ],
)
def test_rejected_outcome_maps_to_status(outcome: str, status_code: int) -> None:
    with pytest.raises(HTTPException) as exc_info:
        raise_for_outcome(WorkflowResult(outcome, detail="nope"))
    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == {"outcome": outcome, "message": "nope"}
