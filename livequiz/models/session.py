"""
Session Model
A live run of a quiz, joined through a short human-typed code
"""
from livequiz.extensions import db
from livequiz.utils.helpers import now_utc


class LiveSession(db.Model):
    """Live session model"""
    __tablename__ = 'live_session'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    proctor_id = db.Column(db.String(64), nullable=False, index=True)
    code = db.Column(db.String(12), unique=True, nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    current_question_index = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), default=now_utc)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    quiz = db.relationship('Quiz', lazy=True)
    participants = db.relationship(
        'Participant', backref='session', lazy=True,
        order_by='Participant.joined_at'
    )

    def __repr__(self):
        return f'<LiveSession {self.code} active={self.is_active}>'
