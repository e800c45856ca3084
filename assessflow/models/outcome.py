"""Result objects returned by every exposed workflow operation.

Expected business conditions never raise; they come back as an outcome
code next to whatever entity state is committed.  Only an unknown id
raises (NotFoundError), because that is a contract violation, not a race.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

Outcome = Literal[
    "committed",
    "already_finalized",
    "noop",
    "stale",
    "not_available",
    "attempts_exhausted",
    "feedback_required",
    "grade_out_of_range",
    "already_submitted",
    "submission_empty",
    "invalid_question",
    "invalid_transition",
]

# Outcomes where the caller's request was accepted or harmlessly absorbed.
INFORMATIONAL: frozenset[str] = frozenset(
    {"committed", "already_finalized", "noop", "stale"}
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class WorkflowResult(Generic[T]):
    outcome: Outcome
    entity: T | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in INFORMATIONAL

    @property
    def committed(self) -> bool:
        return self.outcome == "committed"
