"""
Models Package
Exports all database models
"""
from livequiz.models.quiz import Quiz, TimingPolicy
from livequiz.models.question import Question, Option
from livequiz.models.session import LiveSession
from livequiz.models.participant import Participant, CheatEvent
from livequiz.models.answer import Answer

__all__ = [
    'Quiz', 'TimingPolicy', 'Question', 'Option', 'LiveSession',
    'Participant', 'CheatEvent', 'Answer'
]
