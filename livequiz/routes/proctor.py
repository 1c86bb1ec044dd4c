"""
Proctor Routes
Quiz editing, session control, live monitor and results
"""
from flask import Blueprint, current_app, jsonify, request

from livequiz.context import get_live_context
from livequiz.errors import PayloadError, QuizNotFoundError, SessionNotFoundError
from livequiz.routes.quiz_data_utils import (
    parse_quiz_payload,
    quiz_to_dict,
    result_row_to_dict,
)
from livequiz.services.persistence import PersistenceService
from livequiz.services.progress_aggregator import ProgressAggregator
from livequiz.services.results_service import SORT_KEYS, ResultsService
from livequiz.utils.helpers import get_current_proctor, require_proctor

proctor_bp = Blueprint('proctor', __name__)


def _owned_quiz(quiz_id):
    quiz = PersistenceService.get_quiz(quiz_id)
    if quiz.proctor_id != get_current_proctor():
        raise QuizNotFoundError(quiz_id)
    return quiz


def _owned_session(session_id):
    live_session = PersistenceService.get_session(session_id)
    if live_session.proctor_id != get_current_proctor():
        raise SessionNotFoundError(session_id)
    return live_session


def _session_payload(controller, state):
    payload = state.to_dict()
    payload['elapsed'] = controller.elapsed(state)
    payload['last_error'] = controller.last_error
    return payload


# ================= QUIZZES =================

@proctor_bp.route('/quizzes', methods=['POST'])
@require_proctor
def create_quiz():
    values = parse_quiz_payload(request.get_json(silent=True))
    quiz = PersistenceService.create_quiz(get_current_proctor(), **values)
    return jsonify(quiz_to_dict(quiz)), 201


@proctor_bp.route('/quizzes/<int:quiz_id>', methods=['GET'])
@require_proctor
def get_quiz(quiz_id):
    return jsonify(quiz_to_dict(_owned_quiz(quiz_id)))


@proctor_bp.route('/quizzes/<int:quiz_id>', methods=['PATCH'])
@require_proctor
def update_quiz(quiz_id):
    _owned_quiz(quiz_id)
    values = parse_quiz_payload(request.get_json(silent=True), partial=True)
    quiz = PersistenceService.update_quiz(quiz_id, **values)
    return jsonify(quiz_to_dict(quiz))


@proctor_bp.route('/quizzes/<int:quiz_id>/results', methods=['GET'])
@require_proctor
def quiz_results(quiz_id):
    """
    Results across all sessions of a quiz

    Query params:
        sort: highest | latest | session
        q: name search
        session: comma separated session ids
    """
    _owned_quiz(quiz_id)
    sort = request.args.get('sort', 'highest')
    if sort not in SORT_KEYS:
        raise PayloadError(f'Unknown sort: {sort}')

    session_ids = None
    raw_sessions = request.args.get('session')
    if raw_sessions:
        try:
            session_ids = [int(s) for s in raw_sessions.split(',') if s.strip()]
        except ValueError:
            raise PayloadError('session must be a list of ids') from None

    rows = ResultsService.build_results(
        quiz_id, sort=sort, query=request.args.get('q'), session_ids=session_ids
    )
    return jsonify({
        'quiz_id': quiz_id,
        'summary': ResultsService.summarize(rows),
        'questions': ResultsService.question_breakdown(quiz_id),
        'results': [result_row_to_dict(r) for r in rows],
    })


# ================= SESSIONS =================

@proctor_bp.route('/quizzes/<int:quiz_id>/sessions', methods=['POST'])
@require_proctor
def start_session(quiz_id):
    quiz = _owned_quiz(quiz_id)
    if not quiz.questions:
        raise PayloadError('Quiz has no questions')
    controller = get_live_context().controller_for(get_current_proctor())
    state = controller.start(quiz)
    return jsonify(_session_payload(controller, state)), 201


@proctor_bp.route('/sessions/<int:session_id>/advance', methods=['POST'])
@require_proctor
def advance_session(session_id):
    live_session = _owned_session(session_id)
    data = request.get_json(silent=True) or {}
    direction = data.get('direction', 'next')
    if direction not in ('next', 'previous'):
        raise PayloadError('direction must be next or previous')

    controller = get_live_context().controller_for(get_current_proctor())
    state = controller.advance(controller.attach(live_session), direction)
    return jsonify(_session_payload(controller, state))


@proctor_bp.route('/sessions/<int:session_id>/stop', methods=['POST'])
@require_proctor
def stop_session(session_id):
    live_session = _owned_session(session_id)
    controller = get_live_context().controller_for(get_current_proctor())
    state = controller.stop(controller.attach(live_session))
    return jsonify(_session_payload(controller, state))


@proctor_bp.route('/sessions/<int:session_id>/monitor', methods=['GET'])
@require_proctor
def monitor_session(session_id):
    """One-shot monitor snapshot; sockets push the same rows on an interval"""
    live_session = _owned_session(session_id)
    aggregator = ProgressAggregator.from_config(
        session_id, len(live_session.quiz.questions), current_app.config
    )
    rows = aggregator.refresh()
    controller = get_live_context().controller_for(get_current_proctor())
    state = controller.attach(live_session)
    return jsonify({
        'session': _session_payload(controller, state),
        'summary': aggregator.summary(),
        'participants': [r.to_dict() for r in rows],
    })
