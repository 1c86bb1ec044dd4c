"""
Routes Package
Exports all route blueprints and the JSON error handlers
"""
import logging

from flask import jsonify

from livequiz.errors import (
    InvalidSelectionError,
    NotFoundError,
    PayloadError,
    PersistenceError,
)
from livequiz.routes.auth import auth_bp
from livequiz.routes.proctor import proctor_bp
from livequiz.routes.learner import learner_bp

logger = logging.getLogger(__name__)

__all__ = ['auth_bp', 'proctor_bp', 'learner_bp', 'register_error_handlers']


def register_error_handlers(app):
    """Map service errors onto JSON responses"""

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return jsonify({'error': str(error)}), 404

    @app.errorhandler(InvalidSelectionError)
    @app.errorhandler(PayloadError)
    def handle_bad_request(error):
        return jsonify({'error': str(error)}), 400

    @app.errorhandler(PersistenceError)
    def handle_persistence(error):
        logger.error('Request failed on the database: %s', error)
        return jsonify({
            'error': 'The change could not be saved. Please retry.',
            'retry': True
        }), 503
