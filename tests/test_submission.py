"""
Tests for the Answer Submission Pipeline
"""
import pytest

from livequiz.errors import InvalidSelectionError, PersistenceError
from livequiz.models import Answer
from livequiz.services.persistence import PersistenceService
from livequiz.services.snapshots import QuestionSnapshot
from livequiz.services.submission import AnswerSubmissionPipeline, compute_time_spent


@pytest.fixture
def setup(make_quiz, make_session, make_participant):
    quiz = make_quiz(questions=2)
    live_session = make_session(quiz)
    participant = make_participant(live_session)
    questions = [QuestionSnapshot.from_model(q) for q in quiz.questions]
    return participant, questions


def submit(pipeline, participant, question, option_id, index=0, total=2, remaining=20):
    return pipeline.submit(
        participant.id, question, option_id,
        allocated=30, remaining=remaining, elapsed=0,
        question_index=index, total_questions=total,
    )


class TestSubmission:
    """Validation, correctness and progression"""

    def test_correct_answer_scores(self, setup):
        participant, questions = setup
        question = questions[0]

        result = submit(AnswerSubmissionPipeline(), participant, question, question.correct_option_id())

        assert result.created is True
        assert result.is_correct is True
        assert result.time_spent == 10
        participant = PersistenceService.get_participant(participant.id)
        assert participant.score == 1
        assert participant.current_question == 1
        assert participant.completed_at is None

    def test_wrong_answer_does_not_score(self, setup):
        participant, questions = setup
        question = questions[0]
        wrong = next(o.id for o in question.options if not o.is_correct)

        result = submit(AnswerSubmissionPipeline(), participant, question, wrong)

        assert result.is_correct is False
        assert PersistenceService.get_participant(participant.id).score == 0

    def test_foreign_option_is_rejected(self, setup):
        participant, questions = setup
        foreign = questions[1].options[0].id

        with pytest.raises(InvalidSelectionError):
            submit(AnswerSubmissionPipeline(), participant, questions[0], foreign)
        assert Answer.query.count() == 0

    def test_duplicate_short_circuits(self, setup):
        participant, questions = setup
        question = questions[0]
        pipeline = AnswerSubmissionPipeline()

        submit(pipeline, participant, question, question.correct_option_id())
        second = submit(pipeline, participant, question, question.correct_option_id())

        assert second.created is False
        assert Answer.query.filter_by(participant_id=participant.id).count() == 1
        assert PersistenceService.get_participant(participant.id).score == 1

    def test_last_question_completes(self, setup):
        participant, questions = setup

        result = submit(AnswerSubmissionPipeline(), participant, questions[1], None, index=1, remaining=0)

        assert result.completed is True
        assert result.selected_option_id is None
        assert result.time_spent == 30
        assert PersistenceService.get_participant(participant.id).completed_at is not None

    def test_write_failure_is_not_raised(self, setup, monkeypatch):
        participant, questions = setup
        question = questions[0]

        def broken(*args, **kwargs):
            raise PersistenceError('create_answer failed')

        monkeypatch.setattr(PersistenceService, 'create_answer', staticmethod(broken))
        result = submit(AnswerSubmissionPipeline(), participant, question, question.correct_option_id())

        assert result.is_correct is True
        assert result.created is False
        assert result.score_awarded == 0
        assert PersistenceService.get_participant(participant.id).score == 0

    def test_score_awarded_matches_stored_score(self, setup):
        participant, questions = setup
        question = questions[0]

        result = submit(AnswerSubmissionPipeline(), participant, question, question.correct_option_id())

        assert result.score_awarded == 1
        assert PersistenceService.get_participant(participant.id).score == 1


class TestTimeSpent:

    def test_allocated_minus_remaining(self):
        assert compute_time_spent(30, 12, 99) == 18

    def test_never_negative(self):
        assert compute_time_spent(10, 15, 0) == 0

    def test_unlimited_uses_elapsed(self):
        assert compute_time_spent(None, None, 42) == 42
