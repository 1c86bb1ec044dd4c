"""
Question and Option Models
Multiple-choice questions with exactly one correct option
"""
from livequiz.extensions import db


class Question(db.Model):
    """Question model"""
    __tablename__ = 'question'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.Text, nullable=False)

    # Scoring
    points = db.Column(db.Integer, default=1)
    time_limit = db.Column(db.Integer, nullable=True)  # seconds, only for specific_question

    options = db.relationship(
        'Option', backref='question', lazy=True,
        order_by='Option.order_index', cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Question {self.id}: {self.text[:50]}>'

    def correct_option(self):
        return next((o for o in self.options if o.is_correct), None)


class Option(db.Model):
    """Answer option for a question"""
    __tablename__ = 'option'

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    text = db.Column(db.String(500), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f'<Option {self.id} of Q{self.question_id}>'
