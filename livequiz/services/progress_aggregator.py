"""
Progress / Integrity Aggregator
Derives per-participant progress, connectivity and anomaly flags
"""
import logging
from dataclasses import dataclass, asdict

from livequiz import constants
from livequiz.errors import PersistenceError
from livequiz.services.persistence import PersistenceService
from livequiz.utils.helpers import as_utc, format_elapsed, now_utc, seconds_between

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ParticipantProgress:
    participant_id: int
    name: str
    score: int
    answered: int
    cheat_attempts: int
    completion_pct: int
    connected: bool
    completed: bool
    anomaly: bool
    mean_time_spent: float | None
    elapsed_seconds: int
    elapsed: str

    def to_dict(self):
        return asdict(self)


def completion_percentage(answered, cheat_attempts, total_questions, completed):
    if completed:
        return 100
    if not total_questions:
        return 0
    return min(100, round(100 * (answered + cheat_attempts) / total_questions))


def is_anomalous(cheat_attempts, mean_time_spent, band=constants.ANSWER_TIME_BAND):
    if cheat_attempts > 0:
        return True
    if mean_time_spent is None:
        return False
    low, high = band
    return mean_time_spent < low or mean_time_spent > high


class ProgressAggregator:
    """
    Polls the store for one session and derives monitor rows.

    The only writes are self-healing: the stored connected flag is
    corrected, and a participant with an answer for every question is
    marked completed.
    """

    def __init__(self, session_id, total_questions, repository=PersistenceService,
                 poll_interval=constants.MONITOR_POLL_SECONDS,
                 connected_window=constants.CONNECTED_WINDOW_SECONDS,
                 band=constants.ANSWER_TIME_BAND):
        self.session_id = session_id
        self.total_questions = total_questions
        self._repo = repository
        self.poll_interval = poll_interval
        self.connected_window = connected_window
        self.band = band
        self._high_water = {}
        self._last_refresh = None
        self.rows = []

    @classmethod
    def from_config(cls, session_id, total_questions, config):
        return cls(
            session_id,
            total_questions,
            poll_interval=config.get('MONITOR_POLL_SECONDS', constants.MONITOR_POLL_SECONDS),
            connected_window=config.get('CONNECTED_WINDOW_SECONDS', constants.CONNECTED_WINDOW_SECONDS),
            band=tuple(config.get('ANSWER_TIME_BAND', constants.ANSWER_TIME_BAND)),
        )

    def poll_due(self, now=None):
        now = now or now_utc()
        return self._last_refresh is None or seconds_between(self._last_refresh, now) >= self.poll_interval

    def refresh(self, now=None):
        """Rebuild every row; returns the list of ParticipantProgress"""
        now = now or now_utc()
        self._last_refresh = now
        try:
            participants = self._repo.list_participants(self.session_id)
        except PersistenceError:
            logger.error('Monitor refresh failed for session %s; keeping last rows', self.session_id)
            return self.rows

        rows = []
        for participant in participants:
            try:
                rows.append(self._build_row(participant, now))
            except PersistenceError:
                logger.error('Monitor row failed for participant %s', participant.id)
        self.rows = rows
        return rows

    def _build_row(self, participant, now):
        answers = self._repo.list_answers(participant.id)
        answered = len(answers)
        completed = participant.completed_at is not None

        if not completed and self.total_questions and answered >= self.total_questions:
            self._repo.mark_completed(participant.id)
            completed = True

        last_activity = max(
            [as_utc(t) for t in (participant.joined_at, participant.last_seen_at) if t is not None]
            + [as_utc(a.created_at) for a in answers if a.created_at is not None],
            default=None,
        )
        connected = (
            not completed
            and last_activity is not None
            and seconds_between(last_activity, now) <= self.connected_window
        )
        if bool(participant.connected) != connected:
            self._repo.update_participant(participant.id, connected=connected)

        cheat_attempts = participant.cheat_attempts or 0
        pct = completion_percentage(answered, cheat_attempts, self.total_questions, completed)
        pct = max(pct, self._high_water.get(participant.id, 0))
        self._high_water[participant.id] = pct

        mean_time = None
        if answers:
            mean_time = sum(a.time_spent or 0 for a in answers) / answered

        end = participant.completed_at if completed and participant.completed_at else now
        elapsed_seconds = seconds_between(participant.joined_at, end)

        return ParticipantProgress(
            participant_id=participant.id,
            name=participant.name,
            score=participant.score or 0,
            answered=answered,
            cheat_attempts=cheat_attempts,
            completion_pct=pct,
            connected=connected,
            completed=completed,
            anomaly=is_anomalous(cheat_attempts, mean_time, self.band),
            mean_time_spent=round(mean_time, 1) if mean_time is not None else None,
            elapsed_seconds=elapsed_seconds,
            elapsed=format_elapsed(elapsed_seconds),
        )

    def summary(self):
        rows = self.rows
        return {
            'session_id': self.session_id,
            'participants': len(rows),
            'connected': sum(1 for r in rows if r.connected),
            'completed': sum(1 for r in rows if r.completed),
            'flagged': sum(1 for r in rows if r.anomaly),
        }
