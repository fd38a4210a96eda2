"""In-progress exam attempts.

Each (user, exam) pair has at most one active attempt with its own
countdown. Attempts live in memory only: leaving an exam discards it and
there is no resume after a restart.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from elp.db.models import utcnow
from elp.exams.countdown import ExamCountdown

logger = logging.getLogger(__name__)


@dataclass
class ExamAttempt:
    user_id: int
    exam_id: int
    time_limit_seconds: int
    countdown: ExamCountdown | None = None
    answers: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=utcnow)
    auto_submitted: bool = False

    @property
    def remaining_seconds(self) -> int:
        return self.countdown.remaining if self.countdown else 0

    @property
    def time_taken(self) -> int:
        """Seconds used: time limit minus what is left on the clock."""
        return self.time_limit_seconds - self.remaining_seconds

    def snapshot(self) -> ExamAttempt:
        """Copy of the attempt with the answers frozen at this instant."""
        return ExamAttempt(
            user_id=self.user_id,
            exam_id=self.exam_id,
            time_limit_seconds=self.time_limit_seconds,
            countdown=self.countdown,
            answers=dict(self.answers),
            started_at=self.started_at,
            auto_submitted=self.auto_submitted,
        )


SubmitHandler = Callable[[ExamAttempt], Awaitable[Any]]


class ExamSessionManager:
    """Tracks active exam attempts and auto-submits them when time runs out."""

    def __init__(self, submit_handler: SubmitHandler, tick_interval: float = 1.0) -> None:
        self._submit_handler = submit_handler
        self.tick_interval = tick_interval
        self._attempts: dict[tuple[int, int], ExamAttempt] = {}
        # Timed-out attempts whose auto-submit is still running.
        self._submitting: set[ExamCountdown] = set()

    @property
    def active_count(self) -> int:
        return len(self._attempts)

    def get(self, user_id: int, exam_id: int) -> ExamAttempt | None:
        return self._attempts.get((user_id, exam_id))

    def start(self, user_id: int, exam_id: int, time_limit_minutes: int) -> ExamAttempt:
        """Start an attempt. An existing attempt for the same exam is discarded."""
        key = (user_id, exam_id)
        previous = self._attempts.pop(key, None)
        if previous is not None and previous.countdown is not None:
            previous.countdown.cancel()
            logger.info("Restarted exam %d for user %d; previous attempt discarded", exam_id, user_id)

        attempt = ExamAttempt(user_id=user_id, exam_id=exam_id, time_limit_seconds=time_limit_minutes * 60)

        async def _expire() -> None:
            await self._expire(key, attempt)

        attempt.countdown = ExamCountdown(attempt.time_limit_seconds, _expire, self.tick_interval)
        self._attempts[key] = attempt
        attempt.countdown.start()
        return attempt

    def record_answer(self, user_id: int, exam_id: int, question_id: int | str, answer: Any) -> ExamAttempt:
        attempt = self._attempts.get((user_id, exam_id))
        if attempt is None:
            raise KeyError((user_id, exam_id))
        attempt.answers[str(question_id)] = answer
        return attempt

    def finish(self, user_id: int, exam_id: int) -> ExamAttempt | None:
        """Stop the clock for a manual submission and hand back the attempt."""
        attempt = self._attempts.pop((user_id, exam_id), None)
        if attempt is None:
            return None
        if attempt.countdown is not None:
            attempt.countdown.cancel()
        return attempt.snapshot()

    def abandon(self, user_id: int, exam_id: int) -> bool:
        """Discard an attempt without submitting (navigated away)."""
        attempt = self._attempts.pop((user_id, exam_id), None)
        if attempt is None:
            return False
        if attempt.countdown is not None:
            attempt.countdown.cancel()
        return True

    async def _expire(self, key: tuple[int, int], attempt: ExamAttempt) -> None:
        # A manual submit or restart may have already replaced this attempt.
        if self._attempts.get(key) is not attempt:
            return
        del self._attempts[key]
        final = attempt.snapshot()
        final.auto_submitted = True
        logger.info("Exam %d timed out for user %d; auto-submitting %d answers", key[1], key[0], len(final.answers))
        countdown = attempt.countdown
        if countdown is not None:
            self._submitting.add(countdown)
        try:
            await self._submit_handler(final)
        finally:
            if countdown is not None:
                self._submitting.discard(countdown)

    async def shutdown(self) -> None:
        """Cancel every active countdown and wait for in-flight auto-submits.

        Called on application teardown, before the database is closed.
        """
        attempts = list(self._attempts.values())
        self._attempts.clear()
        for attempt in attempts:
            if attempt.countdown is not None:
                attempt.countdown.cancel()
        for attempt in attempts:
            if attempt.countdown is not None:
                await attempt.countdown.wait()
        if attempts:
            logger.info("Cancelled %d active exam attempts", len(attempts))

        submitting = list(self._submitting)
        if submitting:
            logger.info("Waiting for %d exam auto-submits to finish", len(submitting))
            for countdown in submitting:
                await countdown.wait()
