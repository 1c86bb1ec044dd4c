"""Countdown driver for the three timing policies."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from livequiz.models import TimingPolicy
from livequiz.utils.helpers import format_clock

logger = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRING = "expiring"
    COMPLETED_UNIT = "completed_unit"
    COMPLETED_QUIZ = "completed_quiz"
    CANCELLED = "cancelled"


def resolve_unit_budget(quiz, question) -> int | None:
    """
    Seconds allotted to one question, or None when unlimited.
    Under specific_question the question's own time_limit wins over the
    quiz default; under total no question has a budget of its own.
    """
    policy = TimingPolicy.parse(quiz.policy)
    if policy is TimingPolicy.TOTAL:
        return None
    budget = quiz.time_per_question
    if policy is TimingPolicy.SPECIFIC_QUESTION and question is not None and question.time_limit:
        budget = question.time_limit
    return budget if budget and budget > 0 else None


def resolve_quiz_budget(quiz) -> int | None:
    if TimingPolicy.parse(quiz.policy) is not TimingPolicy.TOTAL:
        return None
    return quiz.time_total if quiz.time_total and quiz.time_total > 0 else None


def warning_threshold(budget: int) -> int:
    return min(10, budget // 3)


def danger_threshold(budget: int) -> int:
    return min(5, budget // 5)


class Countdown:
    """Remaining time is always budget minus whole seconds since the anchor."""

    __slots__ = ("budget", "anchor")

    def __init__(self, budget: int, anchor: float) -> None:
        self.budget = budget
        self.anchor = anchor

    def elapsed(self, now: float) -> int:
        return max(0, int(now - self.anchor))

    def remaining(self, now: float) -> int:
        return max(0, self.budget - self.elapsed(now))


class TimerEngine:
    """
    One countdown per timing unit and exactly one expiry action per unit.

    Under per_question and specific_question the unit is a question and
    on_unit_expired(budget) fires at zero. Under total the unit is the whole
    quiz and on_quiz_expired() fires at zero. A None or zero budget means
    unlimited: the engine stays idle and never fires.
    """

    def __init__(
        self,
        policy: TimingPolicy,
        on_unit_expired: Callable[[int], None],
        on_quiz_expired: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._on_unit_expired = on_unit_expired
        self._on_quiz_expired = on_quiz_expired

        self._unit: Countdown | None = None
        self._unit_anchor: float = clock()
        self._unit_expired = False
        self._suppressed = False

        self._quiz: Countdown | None = None
        self._quiz_expired = False
        self._stopped = False

        self.state = TimerState.IDLE

    # --- arming ---

    def start_quiz(self, budget: int | None, elapsed: int = 0) -> None:
        """
        Arm the quiz-wide countdown; only meaningful under the total policy.
        elapsed is time already spent before this engine existed (a reload).
        """
        if self.policy is not TimingPolicy.TOTAL or not budget or budget <= 0:
            self._quiz = None
            return
        self._quiz = Countdown(budget, self._clock() - elapsed)
        self._quiz_expired = False
        self.state = TimerState.RUNNING

    def start_unit(self, budget: int | None, elapsed: int = 0) -> None:
        """Re-arm for a new question from that question's own budget."""
        self._unit_anchor = self._clock() - elapsed
        self._unit_expired = False
        self._suppressed = False
        if self.policy is TimingPolicy.TOTAL:
            return
        if not budget or budget <= 0:
            self._unit = None
            self.state = TimerState.IDLE
            return
        self._unit = Countdown(budget, self._unit_anchor)
        self.state = TimerState.RUNNING

    def suppress(self) -> None:
        """Cancel the pending unit expiry; called synchronously on submission."""
        self._suppressed = True
        if self._unit is not None and not self._unit_expired:
            self.state = TimerState.CANCELLED

    def stop(self) -> None:
        self._stopped = True
        self._unit = None
        self._quiz = None
        self.state = TimerState.CANCELLED

    # --- queries ---

    @property
    def suppressed(self) -> bool:
        return self._suppressed

    @property
    def budget(self) -> int | None:
        countdown = self._quiz if self.policy is TimingPolicy.TOTAL else self._unit
        return countdown.budget if countdown else None

    def remaining(self) -> int | None:
        """Seconds left on the active countdown, None when unlimited."""
        countdown = self._quiz if self.policy is TimingPolicy.TOTAL else self._unit
        if countdown is None:
            return None
        return countdown.remaining(self._clock())

    def unit_elapsed(self) -> int:
        return max(0, int(self._clock() - self._unit_anchor))

    def display(self) -> str | None:
        remaining = self.remaining()
        return format_clock(remaining) if remaining is not None else None

    def level(self) -> str:
        remaining, budget = self.remaining(), self.budget
        if remaining is None or not budget:
            return "normal"
        if remaining <= danger_threshold(budget):
            return "danger"
        if remaining <= warning_threshold(budget):
            return "warning"
        return "normal"

    # --- driving ---

    def tick(self) -> None:
        """Recompute remaining time and fire at most one expiry per unit."""
        if self._stopped:
            return
        now = self._clock()

        if self._quiz is not None and not self._quiz_expired:
            if self._quiz.remaining(now) == 0:
                self._quiz_expired = True
                self.state = TimerState.EXPIRING
                logger.debug("Quiz budget of %ss exhausted", self._quiz.budget)
                self._on_quiz_expired()
                self.state = TimerState.COMPLETED_QUIZ
                return

        if self._unit is None or self._unit_expired:
            return
        if self._unit.remaining(now) > 0:
            return
        self._unit_expired = True
        if self._suppressed:
            return
        self.state = TimerState.EXPIRING
        self._on_unit_expired(self._unit.budget)
        if self.state is TimerState.EXPIRING:
            self.state = TimerState.COMPLETED_UNIT
