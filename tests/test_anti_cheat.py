"""
Tests for the Anti-Cheat Monitor
"""
import pytest

from livequiz.services.anti_cheat import ALL_DETECTORS, AntiCheatMonitor, CheatType
from livequiz.services.persistence import PersistenceService


@pytest.fixture
def participant(make_quiz, make_session, make_participant):
    quiz = make_quiz(questions=2, anti_cheat=True)
    return make_participant(make_session(quiz))


def build_monitor(participant, **overrides):
    detected = []
    options = dict(
        enabled=True,
        is_completed=lambda: False,
        is_answered=lambda: False,
        on_detected=detected.append,
    )
    options.update(overrides)
    return AntiCheatMonitor(participant.id, **options), detected


class TestDetectors:
    """Raw signal mapping"""

    @pytest.mark.parametrize('signal,payload,expected', [
        ('visibilitychange', {'state': 'hidden'}, CheatType.TAB_SWITCH),
        ('copy', {}, CheatType.COPY),
        ('paste', {}, CheatType.PASTE),
        ('contextmenu', {}, CheatType.RIGHT_CLICK),
    ])
    def test_signal_maps_to_type(self, participant, signal, payload, expected):
        monitor, detected = build_monitor(participant)
        assert monitor.observe(signal, payload) is expected
        assert detected == [expected]

    def test_visible_again_is_not_a_switch(self, participant):
        monitor, detected = build_monitor(participant)
        assert monitor.observe('visibilitychange', {'state': 'visible'}) is None
        assert detected == []

    def test_fullscreen_detector_is_opt_in(self, participant):
        monitor, _ = build_monitor(participant)
        assert monitor.observe('fullscreenchange', {'fullscreen': False}) is None

        monitor, detected = build_monitor(participant, detectors=ALL_DETECTORS)
        assert monitor.observe('fullscreenchange', {'fullscreen': False}) is CheatType.EXIT_FULLSCREEN
        assert monitor.observe('fullscreenchange', {'fullscreen': True}) is None


class TestDispatch:
    """Guards and side effects"""

    def test_detection_records_and_counts(self, participant):
        monitor, _ = build_monitor(participant)
        monitor.observe('copy')
        monitor.observe('paste')

        events = PersistenceService.list_cheat_events(participant.id)
        assert [e.type for e in events] == ['copy', 'paste']
        assert PersistenceService.get_participant(participant.id).cheat_attempts == 2

    @pytest.mark.parametrize('guard', ['enabled', 'is_completed', 'is_answered'])
    def test_guards_block_everything(self, participant, guard):
        overrides = {
            'enabled': {'enabled': False},
            'is_completed': {'is_completed': lambda: True},
            'is_answered': {'is_answered': lambda: True},
        }[guard]
        monitor, detected = build_monitor(participant, **overrides)

        assert monitor.observe('contextmenu') is None
        assert detected == []
        assert PersistenceService.list_cheat_events(participant.id) == []

    def test_event_after_completion_is_rejected(self, participant):
        PersistenceService.mark_completed(participant.id)
        # Local state has not caught up yet; the store still refuses
        monitor, detected = build_monitor(participant)

        assert monitor.observe('copy') is None
        assert detected == []
        assert PersistenceService.list_cheat_events(participant.id) == []
        assert PersistenceService.get_participant(participant.id).cheat_attempts == 0
