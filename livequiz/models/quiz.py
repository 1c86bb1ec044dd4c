"""
Quiz Model
Quiz settings, including the timing policy that drives the learner timer
"""
from enum import Enum

from livequiz.extensions import db
from livequiz.constants import DEFAULT_PASSING_SCORE, DEFAULT_TIME_PER_QUESTION
from livequiz.utils.helpers import now_utc


class TimingPolicy(str, Enum):
    """How time budgets are applied to a quiz"""
    PER_QUESTION = 'per_question'
    TOTAL = 'total'
    SPECIFIC_QUESTION = 'specific_question'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.PER_QUESTION


class Quiz(db.Model):
    """Quiz model"""
    __tablename__ = 'quiz'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    proctor_id = db.Column(db.String(64), nullable=False, index=True)

    # Timing
    timing_policy = db.Column(db.String(32), nullable=False, default=TimingPolicy.PER_QUESTION.value)
    time_per_question = db.Column(db.Integer, default=DEFAULT_TIME_PER_QUESTION)  # seconds, 0 = unlimited
    time_total = db.Column(db.Integer, nullable=True)  # seconds, NULL = unlimited

    # Behaviour
    shuffle_questions = db.Column(db.Boolean, nullable=False, default=False)
    show_answers = db.Column(db.Boolean, nullable=False, default=False)
    anti_cheat = db.Column(db.Boolean, nullable=False, default=False)
    passing_score = db.Column(db.Integer, nullable=False, default=DEFAULT_PASSING_SCORE)  # percent

    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)
    updated_at = db.Column(db.DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    # Relationships
    questions = db.relationship(
        'Question', backref='quiz', lazy=True,
        order_by='Question.order_index', cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Quiz {self.title}>'

    @property
    def policy(self):
        return TimingPolicy.parse(self.timing_policy)

    def total_points(self):
        return sum(q.points or 1 for q in self.questions)
