"""
Tests for the Results Service
"""
import pytest

from livequiz.services.persistence import PersistenceService
from livequiz.services.results_service import ResultsService
from tests.conftest import question_payload


@pytest.fixture
def weighted_quiz(make_quiz):
    return make_quiz(
        questions=[
            question_payload('Easy', points=1),
            question_payload('Medium', points=2),
            question_payload('Hard', points=3),
        ],
        passing_score=50,
    )


def answer(participant, question, correct):
    option = question.correct_option() if correct else question.options[-1]
    PersistenceService.create_answer(participant.id, question.id, option.id, correct, 8)


class TestBuildResults:
    """Per-participant rows across sessions"""

    def test_weighted_points_and_pass_flag(self, weighted_quiz, make_session, make_participant):
        easy, medium, hard = weighted_quiz.questions
        live_session = make_session(weighted_quiz)
        ada = make_participant(live_session, 'Ada')
        bo = make_participant(live_session, 'Bo')
        answer(ada, hard, True)
        answer(ada, easy, False)
        answer(bo, easy, True)

        rows = {r['name']: r for r in ResultsService.build_results(weighted_quiz.id)}

        assert rows['Ada']['earned_points'] == 3
        assert rows['Ada']['total_points'] == 6
        assert rows['Ada']['percentage'] == 50.0
        assert rows['Ada']['passed'] is True
        assert rows['Ada']['answered'] == 2
        assert rows['Ada']['correct'] == 1
        assert rows['Bo']['percentage'] == pytest.approx(16.7)
        assert rows['Bo']['passed'] is False

    def test_sort_highest(self, weighted_quiz, make_session, make_participant):
        easy, medium, hard = weighted_quiz.questions
        live_session = make_session(weighted_quiz)
        low = make_participant(live_session, 'Low')
        high = make_participant(live_session, 'High')
        answer(low, easy, True)
        answer(high, hard, True)

        names = [r['name'] for r in ResultsService.build_results(weighted_quiz.id, sort='highest')]
        assert names == ['High', 'Low']

    def test_sort_latest_puts_unfinished_last(self, weighted_quiz, make_session, make_participant):
        live_session = make_session(weighted_quiz)
        first = make_participant(live_session, 'First')
        second = make_participant(live_session, 'Second')
        make_participant(live_session, 'Pending')
        PersistenceService.mark_completed(first.id)
        PersistenceService.mark_completed(second.id)

        names = [r['name'] for r in ResultsService.build_results(weighted_quiz.id, sort='latest')]
        assert names[-1] == 'Pending'
        assert set(names[:2]) == {'First', 'Second'}

    def test_search_and_session_filter(self, weighted_quiz, make_session, make_participant):
        morning = make_session(weighted_quiz)
        afternoon = make_session(weighted_quiz)
        make_participant(morning, 'Ada Lovelace')
        make_participant(afternoon, 'Ada Byron')
        make_participant(afternoon, 'Grace')

        found = ResultsService.build_results(weighted_quiz.id, query='ada')
        assert {r['name'] for r in found} == {'Ada Lovelace', 'Ada Byron'}

        filtered = ResultsService.build_results(weighted_quiz.id, query='ADA', session_ids=[afternoon.id])
        assert [r['name'] for r in filtered] == ['Ada Byron']

        by_session = ResultsService.build_results(weighted_quiz.id, sort='session')
        assert [r['session_code'] for r in by_session][0] == morning.code

    def test_unknown_sort(self, weighted_quiz):
        with pytest.raises(ValueError):
            ResultsService.build_results(weighted_quiz.id, sort='alphabetical')


class TestSummary:

    def test_summary_and_breakdown(self, weighted_quiz, make_session, make_participant):
        easy = weighted_quiz.questions[0]
        live_session = make_session(weighted_quiz)
        ada = make_participant(live_session, 'Ada')
        answer(ada, easy, True)
        PersistenceService.increment_cheat_attempts(ada.id)

        rows = ResultsService.build_results(weighted_quiz.id)
        summary = ResultsService.summarize(rows)
        assert summary['participants'] == 1
        assert summary['flagged'] == 1

        breakdown = ResultsService.question_breakdown(weighted_quiz.id)
        assert [b['answered'] for b in breakdown] == [1, 0, 0]
        assert breakdown[0]['correct'] == 1

    def test_empty_summary(self):
        assert ResultsService.summarize([])['participants'] == 0
