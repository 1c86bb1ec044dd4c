"""
Persistence Service
CRUD over quizzes, sessions, participants, answers and cheat events
"""
import logging
from functools import wraps

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from livequiz.errors import (
    PersistenceError,
    QuizNotFoundError,
    SessionNotFoundError,
    ParticipantNotFoundError,
)
from livequiz.extensions import db
from livequiz.models import (
    Quiz, Question, Option, LiveSession, Participant, Answer, CheatEvent
)
from livequiz.utils.helpers import now_utc

logger = logging.getLogger(__name__)

QUIZ_FIELDS = (
    'title', 'description', 'timing_policy', 'time_per_question', 'time_total',
    'shuffle_questions', 'show_answers', 'anti_cheat', 'passing_score',
)
SESSION_FIELDS = ('is_active', 'current_question_index', 'ended_at')
PARTICIPANT_FIELDS = (
    'name', 'score', 'current_question', 'connected', 'last_seen_at',
    'started_at', 'question_started_at',
)


def _write(operation):
    """Commit on success; roll back, log and raise PersistenceError on failure"""
    @wraps(operation)
    def wrapper(*args, **kwargs):
        try:
            result = operation(*args, **kwargs)
            db.session.commit()
            return result
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error('%s failed: %s', operation.__name__, exc)
            raise PersistenceError(f'{operation.__name__} failed') from exc
    return wrapper


def _read(operation):
    @wraps(operation)
    def wrapper(*args, **kwargs):
        try:
            return operation(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error('%s failed: %s', operation.__name__, exc)
            raise PersistenceError(f'{operation.__name__} failed') from exc
    return wrapper


def _apply(instance, fields, values):
    for field in fields:
        if field in values:
            setattr(instance, field, values[field])


def _build_questions(quiz, questions):
    quiz.questions.clear()
    for q_index, item in enumerate(questions or []):
        question = Question(
            order_index=q_index,
            text=item['text'],
            points=item.get('points') or 1,
            time_limit=item.get('time_limit'),
        )
        for o_index, opt in enumerate(item.get('options', [])):
            question.options.append(Option(
                text=opt['text'],
                is_correct=bool(opt.get('is_correct')),
                order_index=o_index,
            ))
        quiz.questions.append(question)


class PersistenceService:
    """Database collaborator shared by every component"""

    # ================= QUIZ =================

    @staticmethod
    @_write
    def create_quiz(proctor_id, title, questions=None, **settings):
        """
        Create a quiz with its questions.

        questions: list of {"text", "points", "time_limit",
                            "options": [{"text", "is_correct"}]}
        """
        quiz = Quiz(proctor_id=proctor_id, title=title)
        _apply(quiz, QUIZ_FIELDS, settings)
        _build_questions(quiz, questions)
        db.session.add(quiz)
        db.session.flush()
        logger.info('Quiz %s created by %s', quiz.id, proctor_id)
        return quiz

    @staticmethod
    @_read
    def get_quiz(quiz_id):
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        return quiz

    @staticmethod
    @_write
    def update_quiz(quiz_id, questions=None, **settings):
        """Update quiz settings; a questions list replaces the existing ones"""
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        _apply(quiz, QUIZ_FIELDS, settings)
        if questions is not None:
            _build_questions(quiz, questions)
        return quiz

    @staticmethod
    @_read
    def get_questions_with_options(quiz_id):
        return Question.query.filter_by(quiz_id=quiz_id)\
            .order_by(Question.order_index).all()

    # ================= SESSION =================

    @staticmethod
    @_write
    def create_session(quiz_id, proctor_id, code):
        live_session = LiveSession(
            quiz_id=quiz_id,
            proctor_id=proctor_id,
            code=code,
            is_active=True,
            current_question_index=0,
            started_at=now_utc(),
        )
        db.session.add(live_session)
        db.session.flush()
        logger.info('Session %s (%s) started for quiz %s', live_session.id, code, quiz_id)
        return live_session

    @staticmethod
    @_read
    def get_session(session_id):
        live_session = db.session.get(LiveSession, session_id)
        if live_session is None:
            raise SessionNotFoundError(session_id)
        return live_session

    @staticmethod
    @_write
    def update_session(session_id, **values):
        live_session = db.session.get(LiveSession, session_id)
        if live_session is None:
            raise SessionNotFoundError(session_id)
        _apply(live_session, SESSION_FIELDS, values)
        return live_session

    @staticmethod
    @_read
    def get_session_by_code(code):
        if not code:
            return None
        return LiveSession.query.filter_by(code=code.strip().upper()).order_by(LiveSession.id.desc()).first()

    @staticmethod
    @_read
    def list_active_sessions(proctor_id, quiz_id=None):
        query = LiveSession.query.filter_by(proctor_id=proctor_id, is_active=True)
        if quiz_id is not None:
            query = query.filter_by(quiz_id=quiz_id)
        return query.order_by(LiveSession.started_at.desc()).all()

    @staticmethod
    @_read
    def list_sessions_for_quiz(quiz_id):
        return LiveSession.query.filter_by(quiz_id=quiz_id)\
            .order_by(LiveSession.started_at).all()

    # ================= PARTICIPANT =================

    @staticmethod
    @_write
    def create_participant(session_id, name):
        stamp = now_utc()
        participant = Participant(
            session_id=session_id,
            name=name,
            joined_at=stamp,
            last_seen_at=stamp,
        )
        db.session.add(participant)
        db.session.flush()
        return participant

    @staticmethod
    @_read
    def get_participant(participant_id):
        participant = db.session.get(Participant, participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        return participant

    @staticmethod
    @_write
    def update_participant(participant_id, **values):
        participant = db.session.get(Participant, participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        _apply(participant, PARTICIPANT_FIELDS, values)
        return participant

    @staticmethod
    @_write
    def mark_completed(participant_id, connected=None, at=None):
        """
        Set completed_at exactly once.
        Returns True when this call performed the transition.
        """
        values = {'completed_at': at or now_utc()}
        if connected is not None:
            values['connected'] = connected
        result = db.session.execute(
            update(Participant)
            .where(Participant.id == participant_id, Participant.completed_at.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        done = result.rowcount == 1
        if done:
            logger.info('Participant %s completed', participant_id)
        elif connected is not None:
            db.session.execute(
                update(Participant)
                .where(Participant.id == participant_id)
                .values(connected=connected)
                .execution_options(synchronize_session=False)
            )
        db.session.expire_all()
        return done

    @staticmethod
    @_write
    def increment_cheat_attempts(participant_id):
        db.session.execute(
            update(Participant)
            .where(Participant.id == participant_id)
            .values(cheat_attempts=Participant.cheat_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        db.session.expire_all()

    @staticmethod
    @_write
    def increment_score(participant_id, amount=1):
        db.session.execute(
            update(Participant)
            .where(Participant.id == participant_id)
            .values(score=Participant.score + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.expire_all()

    @staticmethod
    @_read
    def list_participants(session_id):
        return Participant.query.filter_by(session_id=session_id)\
            .order_by(Participant.joined_at, Participant.id).all()

    # ================= ANSWER =================

    @staticmethod
    def create_answer(participant_id, question_id, selected_option_id, is_correct, time_spent):
        """
        Insert the answer for (participant, question).
        Returns (answer, created); a duplicate insert yields the existing row.
        """
        answer = Answer(
            participant_id=participant_id,
            question_id=question_id,
            selected_option_id=selected_option_id,
            is_correct=is_correct,
            time_spent=time_spent,
            created_at=now_utc(),
        )
        try:
            db.session.add(answer)
            db.session.commit()
            return answer, True
        except IntegrityError:
            db.session.rollback()
            logger.info('Duplicate answer for participant %s question %s ignored',
                        participant_id, question_id)
            return PersistenceService.get_answer(participant_id, question_id), False
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error('create_answer failed: %s', exc)
            raise PersistenceError('create_answer failed') from exc

    @staticmethod
    @_read
    def get_answer(participant_id, question_id):
        return Answer.query.filter_by(
            participant_id=participant_id,
            question_id=question_id
        ).first()

    @staticmethod
    @_read
    def list_answers(participant_id):
        return Answer.query.filter_by(participant_id=participant_id)\
            .order_by(Answer.created_at, Answer.id).all()

    # ================= CHEAT EVENTS =================

    @staticmethod
    @_write
    def record_cheat_event(participant_id, cheat_type, details=None):
        """Returns None when the participant has already completed"""
        participant = db.session.get(Participant, participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        if participant.completed_at is not None:
            logger.info('Cheat event for completed participant %s rejected', participant_id)
            return None
        event = CheatEvent(
            participant_id=participant_id,
            type=getattr(cheat_type, 'value', cheat_type),
            details=details,
            created_at=now_utc(),
        )
        db.session.add(event)
        return event

    @staticmethod
    @_read
    def list_cheat_events(participant_id):
        return CheatEvent.query.filter_by(participant_id=participant_id)\
            .order_by(CheatEvent.created_at, CheatEvent.id).all()
