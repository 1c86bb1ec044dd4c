"""
Services Package
"""
from livequiz.services.persistence import PersistenceService
from livequiz.services.scoring_service import ScoringService
from livequiz.services.results_service import ResultsService
from livequiz.services.timeline import Timeline
from livequiz.services.timer_engine import TimerEngine, TimerState
from livequiz.services.submission import AnswerSubmissionPipeline
from livequiz.services.anti_cheat import AntiCheatMonitor, CheatType
from livequiz.services.learner_runtime import LearnerRuntime
from livequiz.services.session_controller import SessionController
from livequiz.services.progress_aggregator import ProgressAggregator

__all__ = [
    'PersistenceService', 'ScoringService', 'ResultsService', 'Timeline',
    'TimerEngine', 'TimerState', 'AnswerSubmissionPipeline', 'AntiCheatMonitor',
    'CheatType', 'LearnerRuntime', 'SessionController', 'ProgressAggregator'
]
