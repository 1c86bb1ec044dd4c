"""
Pytest Configuration for LiveQuiz Tests
"""
import random
from datetime import datetime, timedelta, timezone

import pytest

from livequiz import create_app
from livequiz.extensions import db
from livequiz.services.learner_runtime import LearnerRuntime
from livequiz.services.persistence import PersistenceService


WALL_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the tests move by hand, with a matching wall clock"""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def wall(self):
        return WALL_EPOCH + timedelta(seconds=self.now)

    def advance(self, seconds=1):
        self.now += seconds


def question_payload(text, correct=0, options=3, points=1, time_limit=None):
    return {
        'text': text,
        'points': points,
        'time_limit': time_limit,
        'options': [
            {'text': f'{text} option {i}', 'is_correct': i == correct}
            for i in range(options)
        ],
    }


@pytest.fixture(scope='function')
def app():
    """Create application for testing (fresh in-memory database per test)"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def proctor_client(client):
    """Test client signed in as proctor-1"""
    response = client.post('/auth/session', json={'proctor_id': 'proctor-1'})
    assert response.status_code == 201
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_quiz(app):
    def _make(questions=3, proctor_id='proctor-1', title='General knowledge', **settings):
        if isinstance(questions, int):
            questions = [question_payload(f'Q{i + 1}') for i in range(questions)]
        return PersistenceService.create_quiz(proctor_id, title, questions=questions, **settings)
    return _make


@pytest.fixture
def make_session(app):
    counter = {'n': 0}

    def _make(quiz, proctor_id='proctor-1', code=None):
        counter['n'] += 1
        code = code or f'TST{counter["n"]:03d}'
        return PersistenceService.create_session(quiz.id, proctor_id, code)
    return _make


@pytest.fixture
def make_participant(app):
    def _make(live_session, name='Ada'):
        return PersistenceService.create_participant(live_session.id, name)
    return _make


@pytest.fixture
def make_runtime(app, clock):
    def _make(participant, **kwargs):
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('wall_clock', clock.wall)
        kwargs.setdefault('rng', random.Random(7))
        return LearnerRuntime(participant.id, **kwargs).load()
    return _make


def run_ticks(runtime, clock, count):
    """Advance the fake clock one second per tick"""
    for _ in range(count):
        clock.advance(1)
        runtime.tick()
