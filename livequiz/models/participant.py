"""
Participant and CheatEvent Models
"""
from livequiz.extensions import db
from livequiz.utils.helpers import now_utc


class Participant(db.Model):
    """A learner taking part in one session"""
    __tablename__ = 'participant'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('live_session.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    cheat_attempts = db.Column(db.Integer, nullable=False, default=0)
    current_question = db.Column(db.Integer, nullable=False, default=0)
    connected = db.Column(db.Boolean, nullable=False, default=True)
    joined_at = db.Column(db.DateTime(timezone=True), default=now_utc)
    last_seen_at = db.Column(db.DateTime(timezone=True), default=now_utc)
    # Timing anchors; a reconnecting learner resumes its countdowns from these
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    question_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    answers = db.relationship('Answer', backref='participant', lazy=True)
    cheat_events = db.relationship('CheatEvent', backref='participant', lazy=True)

    def __repr__(self):
        return f'<Participant {self.name} in S{self.session_id}>'


class CheatEvent(db.Model):
    """Integrity event raised by the anti-cheat monitor"""
    __tablename__ = 'cheat_event'

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)
    details = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    def __repr__(self):
        return f'<CheatEvent {self.type} by P{self.participant_id}>'
