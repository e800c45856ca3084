"""Single entry point for quiz attempts and assignment submissions.

Callers (the HTTP layer, the worker, tests) never touch the controller,
the state machine, or the repositories directly.  Every operation returns
a WorkflowResult; only an unknown id raises (NotFoundError).

Submission writes are serialized twice over:
  - per (assignment, submitter) for creation, so a double-click cannot
    produce two submissions
  - per submission id for review actions, so two instructors acting at
    once apply in lock order and each sees the other's committed state
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from assessflow.core.config import SETTINGS
from assessflow.core.metrics import REVIEW_ACTIONS, SUBMISSIONS_CREATED
from assessflow.db.engine import async_session_factory
from assessflow.models.assessment import AssignmentDefinition
from assessflow.models.attempt import AssessmentStatistics, Attempt, Eligibility
from assessflow.models.event import EventType, WorkflowEvent
from assessflow.models.outcome import WorkflowResult
from assessflow.models.submission import ReviewActionType, Submission
from assessflow.repos.attempt_repo import AttemptRepo, InMemoryAttemptRepo
from assessflow.repos.content_provider import (
    ContentProvider,
    InMemoryContentProvider,
    seed_sample_content,
)
from assessflow.repos.pg_attempt_repo import PgAttemptRepo
from assessflow.repos.pg_submission_repo import PgSubmissionRepo
from assessflow.repos.submission_repo import InMemorySubmissionRepo, SubmissionRepo
from assessflow.services import review_state_machine
from assessflow.services.attempt_controller import AttemptController
from assessflow.services.cache import CacheService, cache_service
from assessflow.services.clock import Clock, SystemClock
from assessflow.services.errors import NotFoundError, PreconditionError
from assessflow.services.notifier import Notifier, QueueNotifier
from assessflow.services.review_state_machine import Transition
from assessflow.services.scheduler import AsyncioScheduler, Scheduler
from assessflow.services.task_queue import task_queue
from assessflow.services.terminal_slot import TerminalSlots

logger = logging.getLogger(__name__)


def _never_terminal(_: Submission) -> bool:
    return False


class WorkflowCoordinator:
    def __init__(
        self,
        *,
        content: ContentProvider,
        attempts: AttemptRepo,
        submissions: SubmissionRepo,
        notifier: Notifier,
        scheduler: Scheduler,
        clock: Clock,
        cache: CacheService,
        stats_ttl: int = 60,
    ) -> None:
        self._content = content
        self._submissions = submissions
        self._notifier = notifier
        self._clock = clock
        self.controller = AttemptController(
            content=content,
            attempts=attempts,
            notifier=notifier,
            scheduler=scheduler,
            clock=clock,
            cache=cache,
            stats_ttl=stats_ttl,
        )
        self._create_slots: TerminalSlots[Submission] = TerminalSlots(_never_terminal)
        self._review_slots: TerminalSlots[Submission] = TerminalSlots(_never_terminal)

    # ------------------------------------------------------------------
    # Quiz attempts
    # ------------------------------------------------------------------

    async def start_attempt(
        self, assessment_id: UUID, submitter_id: str
    ) -> WorkflowResult[Attempt]:
        return await self.controller.start(assessment_id, submitter_id)

    async def record_answer(
        self, attempt_id: UUID, question_index: int, text: str
    ) -> WorkflowResult[Attempt]:
        return await self.controller.record_answer(attempt_id, question_index, text)

    async def submit_attempt(
        self, attempt_id: UUID, answers: Mapping[int, str] | None = None
    ) -> WorkflowResult[Attempt]:
        return await self.controller.finalize(attempt_id, "manual", answers)

    async def get_time_remaining(self, attempt_id: UUID) -> float | None:
        return await self.controller.time_remaining(attempt_id)

    async def get_attempt(self, attempt_id: UUID) -> Attempt:
        return await self.controller.get(attempt_id)

    async def grade_attempt(
        self, attempt_id: UUID, scores: Mapping[int, float], grader_id: str
    ) -> WorkflowResult[Attempt]:
        return await self.controller.grade(attempt_id, scores, grader_id)

    async def assessment_statistics(self, assessment_id: UUID) -> AssessmentStatistics:
        return await self.controller.statistics(assessment_id)

    async def attempt_eligibility(
        self, assessment_id: UUID, submitter_id: str
    ) -> Eligibility:
        return await self.controller.eligibility(assessment_id, submitter_id)

    async def resume_timers(self) -> int:
        return await self.controller.resume_timers()

    # ------------------------------------------------------------------
    # Assignment submissions
    # ------------------------------------------------------------------

    async def _assignment(self, assignment_id: UUID) -> AssignmentDefinition:
        definition = await self._content.get_assignment_definition(assignment_id)
        if definition is None:
            raise NotFoundError("assignment", assignment_id)
        return definition

    async def get_submission(self, submission_id: UUID) -> Submission:
        submission = await self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError("submission", submission_id)
        return submission

    async def list_submissions(self, assignment_id: UUID) -> list[Submission]:
        await self._assignment(assignment_id)
        return await self._submissions.list_by_assignment(assignment_id)

    async def create_submission(
        self,
        assignment_id: UUID,
        submitter_id: str,
        *,
        text: str = "",
        file_refs: tuple[str, ...] = (),
        url: str | None = None,
    ) -> WorkflowResult[Submission]:
        definition = await self._assignment(assignment_id)

        async with self._create_slots.acquire((assignment_id, submitter_id)) as slot:
            async with slot.guard():
                now = self._clock.now()
                candidate = Submission.new(
                    assignment_id=assignment_id,
                    submitter_id=submitter_id,
                    submitted_at=now,
                    due_date=definition.due_date,
                    text=text,
                    file_refs=tuple(file_refs),
                    url=url,
                )
                if not candidate.has_content:
                    return WorkflowResult(
                        "submission_empty",
                        detail="Provide text, a file, or a URL",
                    )

                existing = await self._submissions.get_active(assignment_id, submitter_id)
                if existing is not None:
                    replaced = await self._replace_if_allowed(
                        definition, existing, candidate, now
                    )
                    if not replaced:
                        logger.warning(
                            "Duplicate submission rejected: user=%s assignment=%s existing=%s",
                            submitter_id,
                            assignment_id,
                            existing.id,
                        )
                        return WorkflowResult(
                            "already_submitted",
                            existing,
                            "You have already submitted this assignment",
                        )
                else:
                    await self._submissions.save(candidate)

        SUBMISSIONS_CREATED.labels(late=str(candidate.late).lower()).inc()
        logger.info(
            "Submission %s created by user=%s for assignment=%s (late=%s)",
            candidate.id,
            submitter_id,
            assignment_id,
            candidate.late,
            extra={"submission_id": str(candidate.id)},
        )
        if definition.instructor_id:
            await self._emit(
                "submission_created", definition.instructor_id, candidate, now
            )
        return WorkflowResult("committed", candidate)

    async def _replace_if_allowed(
        self,
        definition: AssignmentDefinition,
        existing: Submission,
        candidate: Submission,
        now: datetime,
    ) -> bool:
        """Tombstone ``existing`` and save ``candidate`` when policy allows.

        Takes the existing submission's review lock so an approve or grade
        landing at the same moment is either seen here or sees the
        tombstone.
        """
        if not definition.allow_resubmission or now > definition.due_date:
            return False
        async with self._review_slots.acquire(existing.id) as slot, slot.guard():
            current = await self.get_submission(existing.id)
            if (
                current.is_deleted
                or current.review_status != "pending"
                or current.grade is not None
            ):
                return False
            await self._submissions.save(replace(current, deleted_at=now))
            await self._submissions.save(candidate)
        logger.info(
            "Submission %s replaced by %s",
            existing.id,
            candidate.id,
            extra={"submission_id": str(candidate.id)},
        )
        return True

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def mark_viewed(
        self, submission_id: UUID, actor_id: str
    ) -> WorkflowResult[Submission]:
        return await self._review(
            submission_id,
            "mark-viewed",
            lambda sub, now: review_state_machine.mark_viewed(sub, actor_id, now),
        )

    async def approve_submission(
        self, submission_id: UUID, actor_id: str, feedback: str | None = None
    ) -> WorkflowResult[Submission]:
        return await self._review(
            submission_id,
            "approve",
            lambda sub, now: review_state_machine.approve(sub, actor_id, now, feedback),
        )

    async def disapprove_submission(
        self, submission_id: UUID, actor_id: str, feedback: str | None
    ) -> WorkflowResult[Submission]:
        return await self._review(
            submission_id,
            "disapprove",
            lambda sub, now: review_state_machine.disapprove(sub, actor_id, now, feedback),
        )

    async def grade_submission(
        self,
        submission_id: UUID,
        actor_id: str,
        grade: float,
        feedback: str | None = None,
    ) -> WorkflowResult[Submission]:
        submission = await self.get_submission(submission_id)
        definition = await self._assignment(submission.assignment_id)
        return await self._review(
            submission_id,
            "grade",
            lambda sub, now: review_state_machine.grade(
                sub, actor_id, now, grade, definition.total_points, feedback
            ),
        )

    async def _review(
        self,
        submission_id: UUID,
        action: ReviewActionType,
        apply: Callable[[Submission, datetime], Transition],
    ) -> WorkflowResult[Submission]:
        async with self._review_slots.acquire(submission_id) as slot, slot.guard():
            submission = await self.get_submission(submission_id)
            if submission.is_deleted:
                REVIEW_ACTIONS.labels(action=action, outcome="stale").inc()
                return WorkflowResult("stale", submission, "Submission was deleted")

            now = self._clock.now()
            try:
                updated, event_type = apply(submission, now)
            except PreconditionError as exc:
                REVIEW_ACTIONS.labels(action=action, outcome=exc.outcome).inc()
                logger.warning(
                    "%s rejected on submission %s: %s",
                    action,
                    submission_id,
                    exc,
                    extra={"submission_id": str(submission_id)},
                )
                return WorkflowResult(exc.outcome, submission, str(exc))

            if event_type is None:
                REVIEW_ACTIONS.labels(action=action, outcome="noop").inc()
                return WorkflowResult("noop", submission)

            await self._submissions.save(updated)

        REVIEW_ACTIONS.labels(action=action, outcome="committed").inc()
        logger.info(
            "%s on submission %s: status=%s grade=%s",
            action,
            submission_id,
            updated.review_status,
            updated.grade,
            extra={"submission_id": str(submission_id)},
        )
        await self._emit(event_type, updated.submitter_id, updated, now)
        return WorkflowResult("committed", updated)

    async def delete_submission(
        self, submission_id: UUID, actor_id: str
    ) -> WorkflowResult[Submission]:
        """Tombstone a submission so the learner may submit again."""
        async with self._review_slots.acquire(submission_id) as slot, slot.guard():
            submission = await self.get_submission(submission_id)
            if submission.is_deleted:
                return WorkflowResult("noop", submission)
            now = self._clock.now()
            deleted = replace(submission, deleted_at=now)
            await self._submissions.save(deleted)

        logger.info(
            "Submission %s deleted by %s",
            submission_id,
            actor_id,
            extra={"submission_id": str(submission_id)},
        )
        await self._emit("submission_deleted", deleted.submitter_id, deleted, now)
        return WorkflowResult("committed", deleted)

    async def _emit(
        self,
        event_type: EventType,
        target_user_id: str,
        submission: Submission,
        now: datetime,
    ) -> None:
        await self._notifier.emit(
            WorkflowEvent(
                type=event_type,
                target_user_id=target_user_id,
                occurred_at=now,
                payload={
                    "submission_id": str(submission.id),
                    "assignment_id": str(submission.assignment_id),
                    "submitter_id": submission.submitter_id,
                    "review_status": submission.review_status,
                    "grade": submission.grade,
                    "feedback": submission.feedback,
                    "late": submission.late,
                },
            )
        )


# ---------------------------------------------------------------------------
# Module-level wiring
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    attempt_repo: AttemptRepo = PgAttemptRepo(async_session_factory)
    submission_repo: SubmissionRepo = PgSubmissionRepo(async_session_factory)
else:
    attempt_repo = InMemoryAttemptRepo()
    submission_repo = InMemorySubmissionRepo()

content_provider = InMemoryContentProvider(attempt_repo)
if SETTINGS.is_dev:
    seed_sample_content(content_provider)

scheduler = AsyncioScheduler()

coordinator = WorkflowCoordinator(
    content=content_provider,
    attempts=attempt_repo,
    submissions=submission_repo,
    notifier=QueueNotifier(task_queue),
    scheduler=scheduler,
    clock=SystemClock(),
    cache=cache_service,
    stats_ttl=SETTINGS.stats_cache_ttl,
)
