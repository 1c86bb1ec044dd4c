"""
Tests for the Timer Engine and Timeline
"""
from types import SimpleNamespace

from livequiz.models import TimingPolicy
from livequiz.services.timeline import Timeline
from livequiz.services.timer_engine import (
    TimerEngine,
    TimerState,
    danger_threshold,
    resolve_quiz_budget,
    resolve_unit_budget,
    warning_threshold,
)
from tests.conftest import FakeClock


def make_engine(policy=TimingPolicy.PER_QUESTION):
    clock = FakeClock()
    fired = {'unit': [], 'quiz': 0}

    def on_unit(budget):
        fired['unit'].append(budget)

    def on_quiz():
        fired['quiz'] += 1

    engine = TimerEngine(policy, on_unit_expired=on_unit, on_quiz_expired=on_quiz, clock=clock)
    return engine, clock, fired


def tick(engine, clock, seconds):
    for _ in range(seconds):
        clock.advance(1)
        engine.tick()


class TestCountdown:
    """Per-question countdown"""

    def test_fires_once_at_zero(self):
        engine, clock, fired = make_engine()
        engine.start_unit(30)

        tick(engine, clock, 29)
        assert fired['unit'] == []
        assert engine.remaining() == 1

        tick(engine, clock, 1)
        assert fired['unit'] == [30]
        assert engine.state is TimerState.COMPLETED_UNIT

        tick(engine, clock, 10)
        assert fired['unit'] == [30]

    def test_remaining_is_recomputed_from_anchor(self):
        engine, clock, _ = make_engine()
        engine.start_unit(30)

        # A stalled loop does not stretch the budget
        clock.advance(12.6)
        engine.tick()
        assert engine.remaining() == 18
        assert engine.display() == '0:18'

    def test_unlimited_budget_stays_idle(self):
        engine, clock, fired = make_engine()
        engine.start_unit(0)

        tick(engine, clock, 500)
        assert engine.state is TimerState.IDLE
        assert engine.remaining() is None
        assert fired['unit'] == []

    def test_suppressed_expiry_does_nothing(self):
        engine, clock, fired = make_engine()
        engine.start_unit(5)
        engine.suppress()

        tick(engine, clock, 10)
        assert fired['unit'] == []
        assert engine.state is TimerState.CANCELLED

    def test_rearm_uses_new_budget(self):
        engine, clock, fired = make_engine(TimingPolicy.SPECIFIC_QUESTION)
        engine.start_unit(3)
        tick(engine, clock, 3)
        engine.start_unit(8)

        assert engine.remaining() == 8
        tick(engine, clock, 8)
        assert fired['unit'] == [3, 8]


class TestTotalPolicy:
    """Quiz-wide countdown"""

    def test_quiz_expiry_fires_once(self):
        engine, clock, fired = make_engine(TimingPolicy.TOTAL)
        engine.start_quiz(120)
        engine.start_unit(30)  # ignored under total

        tick(engine, clock, 119)
        assert fired['quiz'] == 0
        tick(engine, clock, 5)
        assert fired['quiz'] == 1
        assert fired['unit'] == []
        assert engine.state is TimerState.COMPLETED_QUIZ

    def test_switching_questions_keeps_quiz_clock(self):
        engine, clock, _ = make_engine(TimingPolicy.TOTAL)
        engine.start_quiz(60)
        tick(engine, clock, 20)
        engine.start_unit(None)

        assert engine.remaining() == 40
        assert engine.unit_elapsed() == 0

    def test_rearm_with_time_already_spent(self):
        engine, clock, fired = make_engine(TimingPolicy.TOTAL)
        engine.start_quiz(60, elapsed=55)
        engine.start_unit(None, elapsed=7)

        assert engine.remaining() == 5
        assert engine.unit_elapsed() == 7
        tick(engine, clock, 5)
        assert fired['quiz'] == 1


class TestBudgets:
    """Budget resolution and display thresholds"""

    def test_resolve_unit_budget(self):
        question = SimpleNamespace(time_limit=12)
        per_question = SimpleNamespace(policy='per_question', time_per_question=30, time_total=None)
        specific = SimpleNamespace(policy='specific_question', time_per_question=30, time_total=None)
        total = SimpleNamespace(policy='total', time_per_question=30, time_total=300)

        assert resolve_unit_budget(per_question, question) == 30
        assert resolve_unit_budget(specific, question) == 12
        assert resolve_unit_budget(specific, SimpleNamespace(time_limit=None)) == 30
        assert resolve_unit_budget(total, question) is None
        assert resolve_quiz_budget(total) == 300
        assert resolve_quiz_budget(per_question) is None

    def test_zero_budget_is_unlimited(self):
        quiz = SimpleNamespace(policy='per_question', time_per_question=0, time_total=None)
        assert resolve_unit_budget(quiz, None) is None

    def test_thresholds(self):
        assert warning_threshold(30) == 10
        assert danger_threshold(30) == 5
        assert warning_threshold(9) == 3
        assert danger_threshold(9) == 1

    def test_level(self):
        engine, clock, _ = make_engine()
        engine.start_unit(30)
        assert engine.level() == 'normal'
        tick(engine, clock, 21)
        assert engine.level() == 'warning'
        tick(engine, clock, 5)
        assert engine.level() == 'danger'


class TestTimeline:
    """Cooperative event timeline"""

    def test_runs_due_callbacks_in_order(self):
        clock = FakeClock()
        timeline = Timeline(clock)
        calls = []
        timeline.call_later(2, lambda: calls.append('b'))
        timeline.call_later(1, lambda: calls.append('a'))

        assert timeline.run_due() == 0
        clock.advance(2)
        assert timeline.run_due() == 2
        assert calls == ['a', 'b']

    def test_cancelled_call_never_runs(self):
        clock = FakeClock()
        timeline = Timeline(clock)
        calls = []
        handle = timeline.call_later(0, lambda: calls.append('x'))
        handle.cancel()

        assert timeline.pending() == 0
        timeline.run_due()
        assert calls == []
