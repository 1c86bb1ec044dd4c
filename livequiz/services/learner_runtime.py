"""Per-learner composition of timer, submission pipeline and anti-cheat monitor."""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Any, Callable

from livequiz import constants
from livequiz.errors import (
    InvalidSelectionError,
    LiveQuizError,
    NotFoundError,
    PersistenceError,
    SessionNotFoundError,
)
from livequiz.services.anti_cheat import DEFAULT_DETECTORS, AntiCheatMonitor, CheatType, Detector
from livequiz.services.persistence import PersistenceService
from livequiz.services.snapshots import QuestionSnapshot, QuizSnapshot
from livequiz.services.submission import AnswerSubmissionPipeline, SubmissionResult
from livequiz.services.timeline import ScheduledCall, Timeline
from livequiz.services.timer_engine import TimerEngine, resolve_quiz_budget, resolve_unit_budget
from livequiz.utils.helpers import now_utc, seconds_between

logger = logging.getLogger(__name__)


class LearnerRuntime:
    """
    Drives one participant through a quiz on a single-threaded timeline.

    Nothing here runs on its own: callers feed tick() once per second and
    forward submissions and integrity signals. The unit flags
    (answer_submitted, advance_pending) are set synchronously before any
    persistence call so a submission and an expiry can never both score.
    """

    def __init__(
        self,
        participant_id: int,
        *,
        repository=PersistenceService,
        pipeline: AnswerSubmissionPipeline | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = now_utc,
        timeline: Timeline | None = None,
        rng: random.Random | None = None,
        detectors: tuple[Detector, ...] = DEFAULT_DETECTORS,
        advance_delay: float = constants.ADVANCE_DELAY_SECONDS,
        show_answers_delay: float = constants.SHOW_ANSWERS_DELAY_SECONDS,
        cheat_advance_delay: float = constants.CHEAT_ADVANCE_DELAY_SECONDS,
        session_poll_seconds: float = constants.SESSION_POLL_SECONDS,
    ) -> None:
        self.participant_id = participant_id
        self._repo = repository
        self._pipeline = pipeline or AnswerSubmissionPipeline(repository, clock=wall_clock)
        self._clock = clock
        self._wall_clock = wall_clock
        self.timeline = timeline or Timeline(clock)
        # Seeded per participant so a reload reproduces the same shuffled order
        self._rng = rng or random.Random(participant_id)
        self._detectors = detectors
        self._advance_delay = advance_delay
        self._show_answers_delay = show_answers_delay
        self._cheat_advance_delay = cheat_advance_delay
        self._session_poll_seconds = session_poll_seconds

        self.quiz: QuizSnapshot | None = None
        self.questions: list[QuestionSnapshot] = []
        self.session_id: int | None = None
        self.session_code: str | None = None
        self.name: str | None = None
        self.index = 0
        self.score = 0

        self.answer_submitted = False
        self.advance_pending = False
        self.completed = False
        self.last_result: SubmissionResult | None = None
        self.error: str | None = None

        self.engine: TimerEngine | None = None
        self.monitor: AntiCheatMonitor | None = None
        self._advance_call: ScheduledCall | None = None
        self._next_poll = 0.0

    # --- lifecycle ---

    def load(self) -> "LearnerRuntime":
        """Fetch participant, session, quiz and questions, then arm the first unit."""
        try:
            participant = self._repo.get_participant(self.participant_id)
            live_session = self._repo.get_session(participant.session_id)
            quiz = self._repo.get_quiz(live_session.quiz_id)
            questions = self._repo.get_questions_with_options(quiz.id)
        except LiveQuizError as exc:
            self.error = str(exc)
            logger.error("Could not load runtime for participant %s: %s", self.participant_id, exc)
            raise

        self.quiz = QuizSnapshot.from_model(quiz)
        self.questions = [QuestionSnapshot.from_model(q) for q in questions]
        if self.quiz.shuffle_questions:
            self._rng.shuffle(self.questions)

        self.session_id = live_session.id
        self.session_code = live_session.code
        self.name = participant.name
        self.score = participant.score or 0
        self.index = min(participant.current_question or 0, len(self.questions))

        self.engine = TimerEngine(
            self.quiz.policy,
            on_unit_expired=self._on_unit_expired,
            on_quiz_expired=self._on_quiz_expired,
            clock=self._clock,
        )
        self.monitor = AntiCheatMonitor(
            self.participant_id,
            enabled=self.quiz.anti_cheat,
            is_completed=lambda: self.completed,
            is_answered=lambda: self.answer_submitted,
            on_detected=self._on_cheat_detected,
            detectors=self._detectors,
            repository=self._repo,
        )
        self._next_poll = self._clock() + self._session_poll_seconds

        if participant.completed_at is not None:
            self.completed = True
            self.engine.stop()
            return self
        if not live_session.is_active or self.index >= len(self.questions):
            self._complete(connected=False if not live_session.is_active else None)
            return self

        # Countdowns are anchored to stored timestamps, not to this process
        started_at = participant.started_at
        question_started_at = participant.question_started_at or started_at
        if started_at is None:
            started_at = question_started_at = self._wall_clock()
            self._store(started_at=started_at, question_started_at=question_started_at)

        self.engine.start_quiz(resolve_quiz_budget(self.quiz), elapsed=self._seconds_since(started_at))
        self._arm_current(elapsed=self._seconds_since(question_started_at))
        self._resume_answered()
        return self

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> QuestionSnapshot | None:
        if self.completed or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    def _arm_current(self, elapsed: int = 0) -> None:
        self.answer_submitted = False
        self.advance_pending = False
        self.last_result = None
        self.engine.start_unit(resolve_unit_budget(self.quiz, self.current_question), elapsed=elapsed)

    def _resume_answered(self) -> None:
        """A reload can land on a question that was answered but not yet left."""
        question = self.current_question
        if question is None:
            return
        try:
            existing = self._repo.get_answer(self.participant_id, question.id)
        except PersistenceError:
            logger.error("Could not check answer state for participant %s", self.participant_id)
            return
        if existing is not None:
            self.answer_submitted = True
            self.engine.suppress()
            self.request_advance(None)

    def _seconds_since(self, stamp) -> int:
        return seconds_between(stamp, self._wall_clock())

    def _store(self, **values) -> None:
        try:
            self._repo.update_participant(self.participant_id, **values)
        except PersistenceError:
            logger.error("Could not store progress for participant %s", self.participant_id)

    # --- learner actions ---

    def submit(self, selected_option_id: int | None) -> SubmissionResult | None:
        """
        Manual submission for the current question.
        Returns None when the submission was ignored (already answered,
        advancing, or completed).
        """
        question = self.current_question
        if question is None or self.answer_submitted or self.advance_pending:
            return None
        if selected_option_id is None:
            raise InvalidSelectionError("A selection is required")
        if not question.has_option(selected_option_id):
            raise InvalidSelectionError(
                f"Option {selected_option_id} does not belong to question {question.id}"
            )

        self.answer_submitted = True
        self.engine.suppress()

        allocated = resolve_unit_budget(self.quiz, question)
        result = self._pipeline.submit(
            self.participant_id,
            question,
            selected_option_id,
            allocated=allocated,
            remaining=self.engine.remaining() if allocated else None,
            elapsed=self.engine.unit_elapsed(),
            question_index=self.index,
            total_questions=self.total_questions,
        )
        self._record(result)
        self.request_advance(self._show_answers_delay if self.quiz.show_answers else None)
        return result

    def observe(self, signal: str, payload: dict[str, Any] | None = None) -> CheatType | None:
        if self.monitor is None or self.completed:
            return None
        try:
            return self.monitor.observe(signal, payload)
        except NotFoundError:
            logger.info("Participant %s no longer exists; completing", self.participant_id)
            self._complete(connected=False)
            return None

    def tick(self) -> None:
        """One timeline turn: due callbacks, then the countdown, then the liveness poll."""
        if self.completed or self.engine is None:
            return
        self.timeline.run_due()
        if self.completed:
            return
        self.engine.tick()
        if self.completed:
            return
        if self._clock() >= self._next_poll:
            self._next_poll = self._clock() + self._session_poll_seconds
            self.poll_session()

    def poll_session(self) -> None:
        """Complete locally when the session has ended or vanished."""
        try:
            live_session = self._repo.get_session(self.session_id)
        except SessionNotFoundError:
            live_session = None
        except PersistenceError:
            logger.error("Session poll failed for participant %s", self.participant_id)
            return

        if live_session is None or not live_session.is_active:
            logger.info("Session %s no longer active; completing participant %s",
                        self.session_id, self.participant_id)
            self._complete(connected=False)
            return

        try:
            self._repo.update_participant(self.participant_id, last_seen_at=now_utc())
        except PersistenceError:
            logger.error("Heartbeat failed for participant %s", self.participant_id)

    # --- timer and monitor callbacks ---

    def _on_unit_expired(self, budget: int) -> None:
        if self.completed or self.answer_submitted or self.advance_pending:
            return
        question = self.current_question
        if question is None:
            return
        self.answer_submitted = True
        result = self._pipeline.submit(
            self.participant_id,
            question,
            None,
            allocated=budget,
            remaining=0,
            elapsed=budget,
            question_index=self.index,
            total_questions=self.total_questions,
        )
        self._record(result)
        delay = self._show_answers_delay if self.quiz.show_answers else self._advance_delay
        self.request_advance(delay)

    def _on_quiz_expired(self) -> None:
        logger.info("Quiz time over for participant %s", self.participant_id)
        self._complete()

    def _on_cheat_detected(self, cheat_type: CheatType) -> None:
        self.engine.suppress()
        self.request_advance(self._cheat_advance_delay)

    # --- progression ---

    def request_advance(self, delay: float | None) -> bool:
        """
        Move to the next question once per unit.
        None advances synchronously; a number schedules it on the timeline.
        """
        if self.completed or self.advance_pending:
            return False
        self.advance_pending = True
        if delay is None:
            self._advance()
        else:
            self._advance_call = self.timeline.call_later(delay, self._advance)
        return True

    def _advance(self) -> None:
        self._advance_call = None
        if self.completed:
            return
        self.index += 1
        self._store(
            current_question=self.index,
            question_started_at=self._wall_clock(),
            last_seen_at=now_utc(),
        )

        if self.index >= self.total_questions:
            self._complete()
            return
        self._arm_current()

    def _complete(self, connected: bool | None = None) -> None:
        if self.completed:
            return
        self.completed = True
        self.advance_pending = False
        if self.engine is not None:
            self.engine.stop()
        self.timeline.clear()
        try:
            self._repo.mark_completed(self.participant_id, connected=connected)
        except PersistenceError:
            logger.error("Could not mark participant %s completed", self.participant_id)

    def _record(self, result: SubmissionResult) -> None:
        self.last_result = result
        self.score += result.score_awarded

    # --- presentation ---

    def view(self) -> dict[str, Any]:
        question = self.current_question
        payload: dict[str, Any] = {
            "participant_id": self.participant_id,
            "name": self.name,
            "session_code": self.session_code,
            "quiz_title": self.quiz.title if self.quiz else None,
            "question_index": self.index,
            "total_questions": self.total_questions,
            "score": self.score,
            "completed": self.completed,
            "answer_submitted": self.answer_submitted,
            "error": self.error,
            "question": None,
            "remaining": None,
            "timer_level": "normal",
        }
        if question is not None:
            payload["question"] = {
                "id": question.id,
                "text": question.text,
                "options": [{"id": o.id, "text": o.text} for o in question.options],
            }
            payload["remaining"] = self.engine.display()
            payload["timer_level"] = self.engine.level()
        if self.last_result is not None:
            payload["selected_option_id"] = self.last_result.selected_option_id
            if self.quiz.show_answers:
                payload["correct_option_id"] = self.last_result.correct_option_id
                payload["is_correct"] = self.last_result.is_correct
        return payload
