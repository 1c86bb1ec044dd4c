"""
Tests for the Session Controller
"""
import random
from datetime import datetime, timedelta, timezone

from livequiz.constants import JOIN_CODE_ALPHABET
from livequiz.errors import PersistenceError
from livequiz.services.persistence import PersistenceService
from livequiz.services.session_controller import SessionController


class TestStart:
    """Opening sessions"""

    def test_new_session_gets_join_code(self, make_quiz):
        quiz = make_quiz(questions=3)
        controller = SessionController('proctor-1', rng=random.Random(3))

        state = controller.start(quiz)

        assert len(state.code) == 6
        assert set(state.code) <= set(JOIN_CODE_ALPHABET)
        assert state.index == 0
        assert state.is_active is True
        stored = PersistenceService.get_session(state.session_id)
        assert stored.code == state.code
        assert stored.current_question_index == 0

    def test_active_session_is_reused(self, make_quiz):
        quiz = make_quiz(questions=3)
        controller = SessionController('proctor-1')

        first = controller.start(quiz)
        second = controller.start(quiz)
        assert first.session_id == second.session_id

    def test_other_proctor_gets_own_session(self, make_quiz):
        quiz = make_quiz(questions=3)
        mine = SessionController('proctor-1').start(quiz)
        theirs = SessionController('proctor-2').start(quiz)
        assert mine.session_id != theirs.session_id


class TestAdvance:
    """Moving the current-question pointer"""

    def test_moves_within_bounds(self, make_quiz):
        quiz = make_quiz(questions=3)
        events = []
        controller = SessionController('proctor-1', on_event=lambda e, s: events.append(e))
        state = controller.start(quiz)

        controller.advance(state, 'next')
        controller.advance(state, 'next')
        assert state.index == 2
        assert PersistenceService.get_session(state.session_id).current_question_index == 2

        controller.advance(state, 'previous')
        assert state.index == 1
        assert events == ['question_changed'] * 3

    def test_previous_at_start_is_noop(self, make_quiz):
        quiz = make_quiz(questions=3)
        controller = SessionController('proctor-1')
        state = controller.start(quiz)

        controller.advance(state, -1)
        assert state.index == 0

    def test_forward_past_end_stops(self, make_quiz):
        quiz = make_quiz(questions=2)
        controller = SessionController('proctor-1')
        state = controller.start(quiz)

        controller.advance(state, 'next')
        controller.advance(state, 'next')

        assert state.is_active is False
        stored = PersistenceService.get_session(state.session_id)
        assert stored.is_active is False
        assert stored.ended_at is not None

    def test_write_failure_keeps_local_state(self, make_quiz, monkeypatch):
        quiz = make_quiz(questions=3)
        controller = SessionController('proctor-1')
        state = controller.start(quiz)

        def broken(*args, **kwargs):
            raise PersistenceError('update_session failed')

        monkeypatch.setattr(PersistenceService, 'update_session', staticmethod(broken))
        controller.advance(state, 'next')

        assert state.index == 1
        assert controller.last_error == 'update_session failed'


class TestStop:
    """Ending sessions"""

    def test_stop_completes_everyone(self, make_quiz, make_participant):
        quiz = make_quiz(questions=3)
        controller = SessionController('proctor-1')
        state = controller.start(quiz)
        live_session = PersistenceService.get_session(state.session_id)

        done = make_participant(live_session, 'Done')
        PersistenceService.mark_completed(done.id)
        finished_at = PersistenceService.get_participant(done.id).completed_at
        pending = [make_participant(live_session, name) for name in ('Bo', 'Cy')]

        controller.stop(state)

        for participant in pending:
            stored = PersistenceService.get_participant(participant.id)
            assert stored.completed_at is not None
            assert stored.connected is False
        assert PersistenceService.get_participant(done.id).completed_at == finished_at

    def test_stop_is_idempotent(self, make_quiz):
        quiz = make_quiz(questions=1)
        events = []
        controller = SessionController('proctor-1', on_event=lambda e, s: events.append(e))
        state = controller.start(quiz)

        controller.stop(state)
        controller.stop(state)
        assert events == ['session_stopped']

    def test_stopped_sessions_are_released(self, make_quiz):
        controller = SessionController('proctor-1')
        for _ in range(3):
            state = controller.start(make_quiz(questions=1))
            controller.stop(state)
        assert controller.sessions == {}

        # Looking at a stopped session again does not re-track it
        reattached = controller.attach(PersistenceService.get_session(state.session_id))
        assert reattached.is_active is False
        assert controller.sessions == {}
        assert controller.stop(reattached) is reattached


class TestElapsed:

    def test_formats_as_clock(self, make_quiz):
        start = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        quiz = make_quiz(questions=1)
        controller = SessionController('proctor-1', clock=lambda: start + timedelta(hours=1, minutes=2, seconds=3))
        state = controller.start(quiz)
        state.started_at = start

        assert controller.elapsed(state) == '01:02:03'
