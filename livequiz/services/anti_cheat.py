"""Integrity detectors feeding a single guarded dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from livequiz.errors import PersistenceError
from livequiz.services.persistence import PersistenceService

logger = logging.getLogger(__name__)


class CheatType(str, Enum):
    TAB_SWITCH = "tab_switch"
    COPY = "copy"
    PASTE = "paste"
    RIGHT_CLICK = "right_click"
    EXIT_FULLSCREEN = "exit_fullscreen"


@dataclass(frozen=True, slots=True)
class Detector:
    """Maps one raw client signal to a cheat type."""

    signal: str
    cheat_type: CheatType
    details: str
    predicate: Callable[[dict], bool] = lambda payload: True

    def matches(self, signal: str, payload: dict) -> bool:
        return signal == self.signal and self.predicate(payload)


TAB_SWITCH_DETECTOR = Detector(
    "visibilitychange", CheatType.TAB_SWITCH,
    "Learner switched tab or minimised the window",
    lambda payload: payload.get("state") == "hidden",
)
COPY_DETECTOR = Detector("copy", CheatType.COPY, "Learner copied content")
PASTE_DETECTOR = Detector("paste", CheatType.PASTE, "Learner pasted content")
RIGHT_CLICK_DETECTOR = Detector("contextmenu", CheatType.RIGHT_CLICK, "Learner opened the context menu")
FULLSCREEN_DETECTOR = Detector(
    "fullscreenchange", CheatType.EXIT_FULLSCREEN,
    "Learner left fullscreen mode",
    lambda payload: payload.get("fullscreen") is False,
)

DEFAULT_DETECTORS: tuple[Detector, ...] = (
    TAB_SWITCH_DETECTOR,
    COPY_DETECTOR,
    PASTE_DETECTOR,
    RIGHT_CLICK_DETECTOR,
)
ALL_DETECTORS: tuple[Detector, ...] = DEFAULT_DETECTORS + (FULLSCREEN_DETECTOR,)


class AntiCheatMonitor:
    """
    Turns raw client signals into cheat events for one participant.

    Guards are applied once, in dispatch(): monitoring disabled, participant
    already completed, or an answer already submitted for the current
    question. A detection records a CheatEvent, bumps the participant's
    counter and calls on_detected so the runtime can request an advance.
    """

    def __init__(
        self,
        participant_id: int,
        *,
        enabled: bool,
        is_completed: Callable[[], bool],
        is_answered: Callable[[], bool],
        on_detected: Callable[[CheatType], None],
        detectors: tuple[Detector, ...] = DEFAULT_DETECTORS,
        repository=PersistenceService,
    ) -> None:
        self.participant_id = participant_id
        self.enabled = enabled
        self.detectors = detectors
        self._is_completed = is_completed
        self._is_answered = is_answered
        self._on_detected = on_detected
        self._repo = repository
        self.detections = 0

    def observe(self, signal: str, payload: dict[str, Any] | None = None) -> CheatType | None:
        """Feed a raw signal; returns the cheat type when one was dispatched."""
        payload = payload or {}
        for detector in self.detectors:
            if detector.matches(signal, payload):
                return self.dispatch(detector.cheat_type, detector.details)
        return None

    def dispatch(self, cheat_type: CheatType, details: str | None = None) -> CheatType | None:
        if not self.enabled or self._is_completed() or self._is_answered():
            return None

        try:
            event = self._repo.record_cheat_event(self.participant_id, cheat_type, details)
        except PersistenceError:
            logger.error(
                "Could not record %s for participant %s; advancing anyway",
                cheat_type.value, self.participant_id,
            )
        else:
            if event is None:
                # Participant completed server-side; nothing else happens.
                return None
            try:
                self._repo.increment_cheat_attempts(self.participant_id)
            except PersistenceError:
                logger.error("Could not increment cheat counter for participant %s", self.participant_id)

        self.detections += 1
        logger.info("Detected %s for participant %s", cheat_type.value, self.participant_id)
        self._on_detected(cheat_type)
        return cheat_type
