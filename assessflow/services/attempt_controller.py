"""Life cycle of a single quiz attempt: start, answer, finalize, grade.

Two actors drive an attempt to its terminal state: the learner (manual
submit) and the countdown timer (timeout).  Both call ``finalize``, which
commits through the attempt's TerminalSlot, so exactly one of them wins
and the other gets the winner's record back as ``already_finalized``.

Answer autosaves go through the same slot's guard.  Without it an
autosave that read the attempt before a finalize and wrote it after
would resurrect an in-progress record on top of the submitted one.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, replace
from uuid import UUID

from assessflow.core.metrics import (
    ATTEMPT_TIMERS_ACTIVE,
    ATTEMPTS_FINALIZED,
    ATTEMPTS_STARTED,
    FINALIZE_RACE_LOSSES,
)
from assessflow.models.assessment import AssessmentDefinition
from assessflow.models.attempt import (
    AssessmentStatistics,
    Attempt,
    Eligibility,
    FinalizeReason,
)
from assessflow.models.event import WorkflowEvent
from assessflow.models.outcome import WorkflowResult
from assessflow.repos.attempt_repo import AttemptRepo
from assessflow.repos.content_provider import ContentProvider
from assessflow.services.cache import CacheService
from assessflow.services.clock import Clock
from assessflow.services.errors import NotFoundError, PreconditionError
from assessflow.services.grading import (
    apply_manual_scores,
    grade_answers,
    round_half_up,
    summarize,
)
from assessflow.services.notifier import Notifier
from assessflow.services.scheduler import Scheduler, TimerHandle
from assessflow.services.terminal_slot import TerminalSlots

logger = logging.getLogger(__name__)


def _stats_key(assessment_id: UUID) -> str:
    return f"stats:{assessment_id}"


class AttemptController:
    def __init__(
        self,
        *,
        content: ContentProvider,
        attempts: AttemptRepo,
        notifier: Notifier,
        scheduler: Scheduler,
        clock: Clock,
        cache: CacheService,
        stats_ttl: int = 60,
    ) -> None:
        self._content = content
        self._attempts = attempts
        self._notifier = notifier
        self._scheduler = scheduler
        self._clock = clock
        self._cache = cache
        self._stats_ttl = stats_ttl
        self._slots: TerminalSlots[Attempt] = TerminalSlots(lambda a: a.is_terminal)
        # Serializes start() per (assessment, submitter) so two tabs cannot
        # both pass the attempts-allowed check.
        self._start_slots: TerminalSlots[Attempt] = TerminalSlots(lambda a: False)
        self._timers: dict[UUID, TimerHandle] = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get(self, attempt_id: UUID) -> Attempt:
        attempt = await self._attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError("attempt", attempt_id)
        return attempt

    async def _definition(self, assessment_id: UUID) -> AssessmentDefinition:
        definition = await self._content.get_assessment_definition(assessment_id)
        if definition is None:
            raise NotFoundError("assessment", assessment_id)
        return definition

    def has_timer(self, attempt_id: UUID) -> bool:
        return attempt_id in self._timers

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------

    async def start(self, assessment_id: UUID, submitter_id: str) -> WorkflowResult[Attempt]:
        definition = await self._definition(assessment_id)

        async with self._start_slots.acquire((assessment_id, submitter_id)) as slot:
            async with slot.guard():
                now = self._clock.now()
                if not definition.is_available(now):
                    logger.warning(
                        "Start rejected: assessment=%s not available at %s",
                        assessment_id,
                        now.isoformat(),
                    )
                    return WorkflowResult(
                        "not_available",
                        detail="This assessment is not available at this time",
                    )

                used = await self._content.get_attempt_count(assessment_id, submitter_id)
                if used >= definition.attempts_allowed:
                    logger.warning(
                        "Start rejected: user=%s used %d/%d attempts on assessment=%s",
                        submitter_id,
                        used,
                        definition.attempts_allowed,
                        assessment_id,
                    )
                    return WorkflowResult(
                        "attempts_exhausted",
                        detail="You have used all your attempts for this assessment",
                    )

                attempt = Attempt.new(
                    assessment_id=assessment_id,
                    submitter_id=submitter_id,
                    started_at=now,
                    total_points=definition.total_points,
                    time_limit_seconds=definition.time_limit_seconds,
                    attempt_no=used + 1,
                )
                await self._attempts.save(attempt)

        ATTEMPTS_STARTED.inc()
        if definition.time_limit_seconds is not None:
            self._arm_timer(attempt.id, definition.time_limit_seconds)
        logger.info(
            "Attempt %s started by user=%s (no. %d, limit=%s)",
            attempt.id,
            submitter_id,
            attempt.attempt_no,
            definition.time_limit_seconds,
            extra={"attempt_id": str(attempt.id)},
        )
        return WorkflowResult("committed", attempt)

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def _arm_timer(self, attempt_id: UUID, delay_seconds: float) -> None:
        async def _on_timeout() -> None:
            if self._timers.pop(attempt_id, None) is not None:
                ATTEMPT_TIMERS_ACTIVE.dec()
            logger.info(
                "Countdown expired for attempt %s",
                attempt_id,
                extra={"attempt_id": str(attempt_id)},
            )
            await self.finalize(attempt_id, "timeout")

        self._timers[attempt_id] = self._scheduler.schedule_once(
            delay_seconds, _on_timeout
        )
        ATTEMPT_TIMERS_ACTIVE.inc()

    def _disarm_timer(self, attempt_id: UUID) -> None:
        handle = self._timers.pop(attempt_id, None)
        if handle is None:
            return
        self._scheduler.cancel(handle)
        ATTEMPT_TIMERS_ACTIVE.dec()

    async def resume_timers(self) -> int:
        """Re-arm countdowns for in-progress attempts after a restart.

        Attempts whose deadline passed while the process was down are
        finalized by timeout right away.  Returns the number re-armed.
        """
        armed = 0
        for attempt in await self._attempts.list_in_progress():
            if attempt.time_limit_seconds is None or attempt.id in self._timers:
                continue
            remaining = self._remaining(attempt)
            if remaining is not None and remaining <= 0:
                await self.finalize(attempt.id, "timeout")
                continue
            self._arm_timer(attempt.id, remaining or 0)
            armed += 1
        if armed:
            logger.info("Re-armed %d attempt countdown(s)", armed)
        return armed

    def _remaining(self, attempt: Attempt) -> float | None:
        if attempt.time_limit_seconds is None:
            return None
        elapsed = (self._clock.now() - attempt.started_at).total_seconds()
        return max(0.0, attempt.time_limit_seconds - elapsed)

    async def time_remaining(self, attempt_id: UUID) -> float | None:
        """Seconds left on the countdown; None for untimed attempts."""
        return self._remaining(await self.get(attempt_id))

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def record_answer(
        self, attempt_id: UUID, question_index: int, text: str
    ) -> WorkflowResult[Attempt]:
        async with self._slots.acquire(attempt_id) as slot, slot.guard():
            attempt = await self.get(attempt_id)
            if attempt.is_terminal:
                logger.info(
                    "Late answer for question %d ignored; attempt %s is %s",
                    question_index,
                    attempt_id,
                    attempt.status,
                    extra={"attempt_id": str(attempt_id)},
                )
                return WorkflowResult("stale", attempt, "Attempt already submitted")

            if self._remaining(attempt) == 0:
                # The timer owns finalization; it may simply not have run yet.
                return WorkflowResult("stale", attempt, "Time limit reached")

            definition = await self._definition(attempt.assessment_id)
            if definition.question(question_index) is None:
                return WorkflowResult(
                    "invalid_question",
                    attempt,
                    f"Question {question_index} does not exist",
                )

            updated = replace(attempt, answers={**attempt.answers, question_index: text})
            await self._attempts.save(updated)
            return WorkflowResult("committed", updated)

    # ------------------------------------------------------------------
    # finalize
    # ------------------------------------------------------------------

    async def finalize(
        self,
        attempt_id: UUID,
        reason: FinalizeReason,
        answers: Mapping[int, str] | None = None,
    ) -> WorkflowResult[Attempt]:
        """Close the attempt; the first caller wins, later callers observe it.

        ``answers`` (manual submit only) are merged over the autosaved
        buffer when this call wins before the deadline.  Never fails for a
        known attempt id.
        """
        attempt = await self.get(attempt_id)
        definition = await self._definition(attempt.assessment_id)

        async def _write(current: Attempt) -> Attempt:
            return await self._commit_finalize(current, definition, reason, answers)

        async with self._slots.acquire(attempt_id) as slot:
            commit = await slot.commit(lambda: self.get(attempt_id), _write)

        if not commit.won:
            FINALIZE_RACE_LOSSES.inc()
            logger.info(
                "finalize(%s) on attempt %s resolved to existing %s result (%s)",
                reason,
                attempt_id,
                commit.value.status,
                commit.value.finalize_reason,
                extra={"attempt_id": str(attempt_id)},
            )
            return WorkflowResult("already_finalized", commit.value)

        finalized = commit.value
        self._disarm_timer(attempt_id)
        ATTEMPTS_FINALIZED.labels(reason=reason).inc()
        await self._invalidate_stats(finalized.assessment_id)
        await self._notifier.emit(
            WorkflowEvent(
                type="attempt_submitted",
                target_user_id=finalized.submitter_id,
                occurred_at=finalized.submitted_at or self._clock.now(),
                payload={
                    "attempt_id": str(finalized.id),
                    "assessment_id": str(finalized.assessment_id),
                    "title": definition.title,
                    "finalize_reason": finalized.finalize_reason,
                    "score": finalized.score,
                    "percentage": finalized.percentage,
                    "passed": finalized.passed,
                    "late": finalized.late,
                },
            )
        )
        return WorkflowResult("committed", finalized)

    async def _commit_finalize(
        self,
        current: Attempt,
        definition: AssessmentDefinition,
        reason: FinalizeReason,
        answers: Mapping[int, str] | None,
    ) -> Attempt:
        now = self._clock.now()
        late = reason == "manual" and self._remaining(current) == 0

        merged = dict(current.answers)
        if answers and not late:
            for index, text in answers.items():
                if definition.question(index) is None:
                    logger.warning(
                        "Dropping answer for unknown question %d on attempt %s",
                        index,
                        current.id,
                    )
                    continue
                merged[index] = text

        results = grade_answers(definition, merged)
        score, percentage, passed = summarize(
            results, current.total_points, definition.passing_score
        )
        elapsed = round_half_up((now - current.started_at).total_seconds())
        if current.time_limit_seconds is not None:
            elapsed = min(elapsed, current.time_limit_seconds)

        finalized = replace(
            current,
            status="submitted",
            answers=merged,
            submitted_at=now,
            finalize_reason=reason,
            late=late,
            score=score,
            percentage=percentage,
            passed=passed,
            question_results=results,
            time_spent_seconds=elapsed,
        )
        await self._attempts.save(finalized)
        logger.info(
            "Attempt %s submitted (%s): score=%s/%d percentage=%d passed=%s",
            current.id,
            reason,
            score,
            current.total_points,
            percentage,
            passed,
            extra={"attempt_id": str(current.id)},
        )
        return finalized

    # ------------------------------------------------------------------
    # Manual grading hook
    # ------------------------------------------------------------------

    async def grade(
        self, attempt_id: UUID, scores: Mapping[int, float], grader_id: str
    ) -> WorkflowResult[Attempt]:
        """Apply human scores to short-answer/essay questions.

        The attempt becomes ``graded`` once no question awaits grading.
        """
        async with self._slots.acquire(attempt_id) as slot, slot.guard():
            attempt = await self.get(attempt_id)
            if attempt.is_in_progress:
                return WorkflowResult("stale", attempt, "Attempt not submitted yet")
            definition = await self._definition(attempt.assessment_id)

            try:
                results = apply_manual_scores(attempt.question_results, scores)
            except PreconditionError as exc:
                logger.warning("Grade rejected for attempt %s: %s", attempt_id, exc)
                return WorkflowResult(exc.outcome, attempt, str(exc))

            score, percentage, passed = summarize(
                results, attempt.total_points, definition.passing_score
            )
            fully_graded = not any(r.needs_manual_grading for r in results)
            now = self._clock.now()
            updated = replace(
                attempt,
                question_results=results,
                score=score,
                percentage=percentage,
                passed=passed,
                status="graded" if fully_graded else attempt.status,
                graded_at=now if fully_graded else attempt.graded_at,
                graded_by=grader_id if fully_graded else attempt.graded_by,
            )
            await self._attempts.save(updated)

        await self._invalidate_stats(updated.assessment_id)
        if fully_graded:
            logger.info(
                "Attempt %s graded by %s: percentage=%d",
                attempt_id,
                grader_id,
                percentage,
                extra={"attempt_id": str(attempt_id)},
            )
            await self._notifier.emit(
                WorkflowEvent(
                    type="attempt_graded",
                    target_user_id=updated.submitter_id,
                    occurred_at=now,
                    payload={
                        "attempt_id": str(updated.id),
                        "assessment_id": str(updated.assessment_id),
                        "score": updated.score,
                        "percentage": updated.percentage,
                        "passed": updated.passed,
                    },
                )
            )
        return WorkflowResult("committed", updated)

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    async def eligibility(self, assessment_id: UUID, submitter_id: str) -> Eligibility:
        definition = await self._definition(assessment_id)
        used = await self._content.get_attempt_count(assessment_id, submitter_id)
        remaining = max(0, definition.attempts_allowed - used)
        return Eligibility(
            assessment_id=assessment_id,
            attempts_used=used,
            attempts_remaining=remaining,
            can_attempt=remaining > 0 and definition.is_available(self._clock.now()),
        )

    async def statistics(self, assessment_id: UUID) -> AssessmentStatistics:
        await self._definition(assessment_id)

        cached = await self._cache.get(_stats_key(assessment_id))
        if cached is not None:
            data = json.loads(cached)
            data["assessment_id"] = UUID(data["assessment_id"])
            return AssessmentStatistics(**data)

        attempts = await self._attempts.list_by_assessment(assessment_id)
        done = [a for a in attempts if a.is_terminal]
        if done:
            percentages = [a.percentage for a in done]
            stats = AssessmentStatistics(
                assessment_id=assessment_id,
                total_attempts=len(attempts),
                submitted_attempts=len(done),
                average_percentage=round_half_up(sum(percentages) / len(done)),
                highest_percentage=max(percentages),
                lowest_percentage=min(percentages),
                pass_rate=round_half_up(
                    sum(1 for a in done if a.passed) / len(done) * 100
                ),
                average_time_spent_seconds=round_half_up(
                    sum(a.time_spent_seconds for a in done) / len(done)
                ),
            )
        else:
            stats = AssessmentStatistics(
                assessment_id=assessment_id, total_attempts=len(attempts)
            )

        await self._cache.set(
            _stats_key(assessment_id),
            json.dumps(asdict(stats), default=str),
            self._stats_ttl,
        )
        return stats

    async def _invalidate_stats(self, assessment_id: UUID) -> None:
        await self._cache.delete(_stats_key(assessment_id))
