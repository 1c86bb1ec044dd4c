"""
Answer Model
Stores the single scored answer per participant and question
"""
from livequiz.extensions import db
from livequiz.utils.helpers import now_utc


class Answer(db.Model):
    """Answer model; a NULL selected option means "no answer" """
    __tablename__ = 'answer'

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    selected_option_id = db.Column(db.Integer, db.ForeignKey('option.id'), nullable=True)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    time_spent = db.Column(db.Integer, nullable=False, default=0)  # seconds
    created_at = db.Column(db.DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        db.UniqueConstraint(
            'participant_id', 'question_id',
            name='unique_answer_per_question'
        ),
    )

    def __repr__(self):
        return f'<Answer Q{self.question_id} by P{self.participant_id}>'
