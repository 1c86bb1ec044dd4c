"""Answer submission: validation, scoring, persistence and progression."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from livequiz.errors import InvalidSelectionError, PersistenceError
from livequiz.services.persistence import PersistenceService
from livequiz.services.scoring_service import ScoringService
from livequiz.utils.helpers import now_utc

logger = logging.getLogger(__name__)


def compute_time_spent(allocated: int | None, remaining: int | None, elapsed: int) -> int:
    """Seconds used on a question; elapsed time stands in when unlimited."""
    if allocated and remaining is not None:
        return max(0, allocated - remaining)
    return max(0, int(elapsed))


@dataclass(slots=True)
class SubmissionResult:
    question_id: int
    selected_option_id: int | None
    is_correct: bool
    time_spent: int
    correct_option_id: int | None
    created: bool
    completed: bool = False
    score_awarded: int = 0


class AnswerSubmissionPipeline:
    """
    At most one scored answer per question per participant.

    Writes are best effort: failures are logged and the learner keeps going.
    Only an option foreign to the question is an error for the caller.
    """

    def __init__(self, repository=PersistenceService, scoring=ScoringService, clock=now_utc) -> None:
        self._repo = repository
        self._scoring = scoring
        self._clock = clock

    def submit(
        self,
        participant_id: int,
        question,
        selected_option_id: int | None,
        *,
        allocated: int | None,
        remaining: int | None,
        elapsed: int,
        question_index: int,
        total_questions: int,
    ) -> SubmissionResult:
        if selected_option_id is not None and not question.has_option(selected_option_id):
            raise InvalidSelectionError(
                f"Option {selected_option_id} does not belong to question {question.id}"
            )

        correct_option_id = question.correct_option_id()
        existing = self._safe("get_answer", self._repo.get_answer, participant_id, question.id)
        if existing is not None:
            logger.info(
                "Participant %s already answered question %s; submission ignored",
                participant_id, question.id,
            )
            return SubmissionResult(
                question_id=question.id,
                selected_option_id=existing.selected_option_id,
                is_correct=bool(existing.is_correct),
                time_spent=existing.time_spent,
                correct_option_id=correct_option_id,
                created=False,
            )

        is_correct = selected_option_id is not None and selected_option_id == correct_option_id
        time_spent = compute_time_spent(allocated, remaining, elapsed)

        created = False
        stored = self._safe(
            "create_answer", self._repo.create_answer,
            participant_id, question.id, selected_option_id, is_correct, time_spent,
        )
        if stored is not None:
            answer, created = stored
            if not created:
                return SubmissionResult(
                    question_id=question.id,
                    selected_option_id=answer.selected_option_id if answer else None,
                    is_correct=bool(answer.is_correct) if answer else False,
                    time_spent=answer.time_spent if answer else time_spent,
                    correct_option_id=correct_option_id,
                    created=False,
                )

        # Only a stored answer may count towards the stored score
        score_awarded = 0
        increment = self._scoring.score_increment(is_correct) if created else 0
        if increment:
            try:
                self._repo.increment_score(participant_id, increment)
                score_awarded = increment
            except PersistenceError:
                logger.error("Answer pipeline step increment_score failed; continuing")

        self._safe(
            "update_participant", self._repo.update_participant, participant_id,
            current_question=question_index + 1, question_started_at=self._clock(),
            last_seen_at=now_utc(),
        )

        completed = question_index + 1 >= total_questions
        if completed:
            self._safe("mark_completed", self._repo.mark_completed, participant_id)

        return SubmissionResult(
            question_id=question.id,
            selected_option_id=selected_option_id,
            is_correct=is_correct,
            time_spent=time_spent,
            correct_option_id=correct_option_id,
            created=created,
            completed=completed,
            score_awarded=score_awarded,
        )

    @staticmethod
    def _safe(label, operation, *args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except PersistenceError:
            logger.error("Answer pipeline step %s failed; continuing", label)
            return None
