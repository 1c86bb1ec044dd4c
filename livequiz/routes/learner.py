"""
Learner Routes
Joining a session by code and polling its status
"""
from flask import Blueprint, jsonify, request, session

from livequiz.errors import PayloadError, SessionNotFoundError
from livequiz.services.persistence import PersistenceService

learner_bp = Blueprint('learner', __name__)


@learner_bp.route('/join', methods=['POST'])
def join_session():
    """Join an active session - no sign-in required"""
    data = request.get_json(silent=True) or {}
    code = (data.get('code') or '').strip().upper()
    name = (data.get('name') or '').strip()
    if not code:
        raise PayloadError('code is required')
    if not name:
        raise PayloadError('name is required')

    live_session = PersistenceService.get_session_by_code(code)
    if live_session is None or not live_session.is_active:
        raise SessionNotFoundError(code)

    participant = PersistenceService.create_participant(live_session.id, name)
    session['participant_id'] = participant.id

    return jsonify({
        'participant_id': participant.id,
        'session_id': live_session.id,
        'code': live_session.code,
        'quiz_title': live_session.quiz.title,
        'total_questions': len(live_session.quiz.questions),
    }), 201


@learner_bp.route('/sessions/<code>/status')
def session_status(code):
    """Liveness poll target for learners"""
    live_session = PersistenceService.get_session_by_code(code)
    if live_session is None:
        raise SessionNotFoundError(code.upper())

    return jsonify({
        'code': live_session.code,
        'is_active': live_session.is_active,
        'current_question_index': live_session.current_question_index,
        'total_questions': len(live_session.quiz.questions),
    })
