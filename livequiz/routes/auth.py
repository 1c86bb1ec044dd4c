"""
Authentication Routes
Sign-in stand-in for proctors; identity lives in the signed session cookie
"""
from flask import Blueprint, jsonify, request, session

from livequiz.context import get_live_context
from livequiz.errors import PayloadError

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/session', methods=['POST'])
def sign_in():
    """Store the proctor id in the session"""
    data = request.get_json(silent=True) or {}
    proctor_id = str(data.get('proctor_id') or '').strip()
    if not proctor_id:
        raise PayloadError('proctor_id is required')

    session.clear()
    session['proctor_id'] = proctor_id
    return jsonify({'proctor_id': proctor_id}), 201


@auth_bp.route('/session', methods=['DELETE'])
def sign_out():
    """Clear the session and the proctor's live state"""
    proctor_id = session.pop('proctor_id', None)
    session.clear()
    if proctor_id:
        get_live_context().invalidate_proctor(proctor_id)
    return jsonify({'signed_out': bool(proctor_id)})
