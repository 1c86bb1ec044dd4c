"""
Session Controller
Starts, advances and stops live sessions on behalf of a proctor
"""
import logging
import random

from livequiz.errors import PersistenceError
from livequiz.services.persistence import PersistenceService
from livequiz.utils.helpers import (
    format_elapsed,
    generate_join_code,
    now_utc,
    seconds_between,
)
from livequiz.constants import JOIN_CODE_LENGTH

logger = logging.getLogger(__name__)

DIRECTIONS = {'next': 1, 'previous': -1, 1: 1, -1: -1}


class SessionState:
    """Controller-local view of a session; survives failed writes"""

    def __init__(self, session_id, quiz_id, code, total_questions, started_at,
                 index=0, is_active=True, ended_at=None):
        self.session_id = session_id
        self.quiz_id = quiz_id
        self.code = code
        self.total_questions = total_questions
        self.started_at = started_at
        self.index = index
        self.is_active = is_active
        self.ended_at = ended_at

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'quiz_id': self.quiz_id,
            'code': self.code,
            'current_question_index': self.index,
            'total_questions': self.total_questions,
            'is_active': self.is_active,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
        }


class SessionController:
    """
    Proctor-side lifecycle of live sessions.

    Persistence failures in advance/stop are logged and kept in last_error;
    the local state is not rolled back.
    """

    def __init__(self, proctor_id, repository=PersistenceService, clock=now_utc,
                 rng=random, code_length=JOIN_CODE_LENGTH, on_event=None):
        self.proctor_id = proctor_id
        self._repo = repository
        self._clock = clock
        self._rng = rng
        self._code_length = code_length
        self._on_event = on_event
        self.sessions = {}
        self.last_error = None

    def start(self, quiz):
        """Reuse the proctor's active session for this quiz, else open a new one"""
        active = self._repo.list_active_sessions(self.proctor_id, quiz_id=quiz.id)
        if active:
            live_session = active[0]
            logger.info('Reusing active session %s for quiz %s', live_session.code, quiz.id)
        else:
            code = generate_join_code(self._code_length, self._rng)
            live_session = self._repo.create_session(quiz.id, self.proctor_id, code)

        state = SessionState(
            session_id=live_session.id,
            quiz_id=quiz.id,
            code=live_session.code,
            total_questions=len(quiz.questions),
            started_at=live_session.started_at,
            index=live_session.current_question_index or 0,
            is_active=live_session.is_active,
        )
        self.sessions[state.session_id] = state
        return state

    def attach(self, live_session):
        """Track an existing session (e.g. after a server restart)"""
        state = self.sessions.get(live_session.id)
        if state is None:
            state = SessionState(
                session_id=live_session.id,
                quiz_id=live_session.quiz_id,
                code=live_session.code,
                total_questions=len(live_session.quiz.questions),
                started_at=live_session.started_at,
                index=live_session.current_question_index or 0,
                is_active=live_session.is_active,
                ended_at=live_session.ended_at,
            )
            if state.is_active:
                self.sessions[state.session_id] = state
        return state

    def advance(self, state, direction='next'):
        """
        Move the current-question pointer by one within bounds.
        A forward move past the last question stops the session.
        """
        step = DIRECTIONS.get(direction)
        if step is None:
            raise ValueError(f'Unknown direction: {direction!r}')
        if not state.is_active:
            return state

        target = state.index + step
        if target >= state.total_questions and step > 0:
            return self.stop(state)
        if target < 0 or target >= state.total_questions:
            return state

        state.index = target
        try:
            self._repo.update_session(state.session_id, current_question_index=target)
            self.last_error = None
        except PersistenceError as exc:
            self.last_error = str(exc)
            logger.error('Could not store question index for session %s', state.code)

        self._emit('question_changed', state)
        return state

    def stop(self, state):
        """
        End the session and complete every participant still in progress.
        A stopped session is no longer tracked; attach() rebuilds it if needed.
        """
        if not state.is_active and state.ended_at is not None:
            return state

        ended_at = self._clock()
        state.is_active = False
        state.ended_at = ended_at
        self.last_error = None

        try:
            self._repo.update_session(state.session_id, is_active=False, ended_at=ended_at)
        except PersistenceError as exc:
            self.last_error = str(exc)
            logger.error('Could not end session %s', state.code)

        try:
            participants = self._repo.list_participants(state.session_id)
        except PersistenceError as exc:
            self.last_error = str(exc)
            participants = []

        for participant in participants:
            if participant.completed_at is not None:
                continue
            try:
                self._repo.mark_completed(participant.id, connected=False, at=ended_at)
            except PersistenceError as exc:
                self.last_error = str(exc)
                logger.error('Could not complete participant %s', participant.id)

        logger.info('Session %s stopped', state.code)
        self._emit('session_stopped', state)
        self.sessions.pop(state.session_id, None)
        return state

    def elapsed_seconds(self, state):
        return seconds_between(state.started_at, state.ended_at or self._clock())

    def elapsed(self, state):
        """Session stopwatch, HH:MM:SS"""
        return format_elapsed(self.elapsed_seconds(state))

    def _emit(self, event, state):
        if self._on_event is not None:
            self._on_event(event, state)
