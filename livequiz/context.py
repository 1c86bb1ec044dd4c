"""Lifecycle-scoped holder for learner runtimes, proctor watchers and controllers."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any

from flask import current_app

from livequiz.services.anti_cheat import ALL_DETECTORS, DEFAULT_DETECTORS
from livequiz.services.learner_runtime import LearnerRuntime
from livequiz.services.progress_aggregator import ProgressAggregator
from livequiz.services.session_controller import SessionController

logger = logging.getLogger(__name__)


class LiveContext:
    """
    Created once per application in create_app and stored under
    app.extensions["livequiz"]. Every mutation goes through one lock since
    Socket.IO handlers and the background loop touch the same maps.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        self._lock = Lock()
        self._config = config
        self._runtimes: dict[str, LearnerRuntime] = {}
        self._watchers: dict[str, ProgressAggregator] = {}
        self._controllers: dict[str, SessionController] = {}
        self.loop_started = False
        self.on_session_event = None

    # --- learner runtimes ---

    def open_runtime(self, sid: str, participant_id: int) -> LearnerRuntime:
        """Load a runtime for the participant and bind it to the socket id."""
        detectors = ALL_DETECTORS if self._config.get("FULLSCREEN_DETECTION") else DEFAULT_DETECTORS
        runtime = LearnerRuntime(
            participant_id,
            detectors=detectors,
            advance_delay=self._config.get("ADVANCE_DELAY_SECONDS", 1),
            show_answers_delay=self._config.get("SHOW_ANSWERS_DELAY_SECONDS", 2),
            session_poll_seconds=self._config.get("SESSION_POLL_SECONDS", 10),
        )
        with self._lock:
            runtime.load()
            # A reconnect replaces whatever runtime the old socket still holds
            for stale in [s for s, r in self._runtimes.items() if r.participant_id == participant_id]:
                del self._runtimes[stale]
            self._runtimes[sid] = runtime
        logger.info("Runtime opened for participant %s on %s", participant_id, sid)
        return runtime

    def runtime_for(self, sid: str) -> LearnerRuntime | None:
        with self._lock:
            return self._runtimes.get(sid)

    def with_runtime(self, sid: str, action):
        """Run action(runtime) under the lock; None when no runtime is bound."""
        with self._lock:
            runtime = self._runtimes.get(sid)
            if runtime is None:
                return None
            return action(runtime)

    def close_runtime(self, sid: str) -> None:
        with self._lock:
            runtime = self._runtimes.pop(sid, None)
        if runtime is not None:
            runtime.timeline.clear()

    def tick_runtimes(self) -> list[tuple[str, dict]]:
        """Tick every runtime once; returns (sid, view) pairs to push."""
        views = []
        with self._lock:
            for sid, runtime in list(self._runtimes.items()):
                was_completed = runtime.completed
                runtime.tick()
                views.append((sid, runtime.view()))
                if was_completed:
                    self._runtimes.pop(sid, None)
        return views

    def session_stopped(self, session_id: int) -> list[tuple[str, dict]]:
        """Push the stop to bound runtimes without waiting for their poll."""
        views = []
        with self._lock:
            for sid, runtime in self._runtimes.items():
                if runtime.session_id == session_id and not runtime.completed:
                    runtime.poll_session()
                    views.append((sid, runtime.view()))
        return views

    # --- proctor side ---

    def controller_for(self, proctor_id: str) -> SessionController:
        with self._lock:
            controller = self._controllers.get(proctor_id)
            if controller is None:
                controller = SessionController(
                    proctor_id,
                    code_length=self._config.get("JOIN_CODE_LENGTH", 6),
                    on_event=self._relay_session_event,
                )
                self._controllers[proctor_id] = controller
            return controller

    def _relay_session_event(self, event, state) -> None:
        if self.on_session_event is not None:
            self.on_session_event(event, state)

    def watch(self, sid: str, session_id: int, total_questions: int) -> ProgressAggregator:
        aggregator = ProgressAggregator.from_config(session_id, total_questions, self._config)
        with self._lock:
            self._watchers[sid] = aggregator
        return aggregator

    def unwatch(self, sid: str) -> None:
        with self._lock:
            self._watchers.pop(sid, None)

    def refresh_watchers(self, now=None) -> list[tuple[str, ProgressAggregator]]:
        """Refresh the watchers whose poll interval has elapsed."""
        refreshed = []
        with self._lock:
            for sid, aggregator in list(self._watchers.items()):
                if aggregator.poll_due(now):
                    aggregator.refresh(now)
                    refreshed.append((sid, aggregator))
        return refreshed

    # --- invalidation ---

    def disconnect(self, sid: str) -> None:
        """Socket went away: drop whatever it held."""
        self.close_runtime(sid)
        self.unwatch(sid)

    def invalidate_proctor(self, proctor_id: str) -> None:
        """Sign-out: forget the proctor's controller."""
        with self._lock:
            self._controllers.pop(proctor_id, None)
        logger.info("Live context cleared for proctor %s", proctor_id)

    def clear(self) -> None:
        with self._lock:
            for runtime in self._runtimes.values():
                runtime.timeline.clear()
            self._runtimes.clear()
            self._watchers.clear()
            self._controllers.clear()

    @property
    def runtime_count(self) -> int:
        with self._lock:
            return len(self._runtimes)


def get_live_context(app=None) -> LiveContext:
    return (app or current_app).extensions["livequiz"]
