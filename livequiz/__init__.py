"""
Application Factory
Creates and configures the Flask application
"""
from flask import Flask

from livequiz.config import config, get_config
from livequiz.context import LiveContext
from livequiz.extensions import db, socketio
from livequiz.utils.logging_config import configure_logging


def create_app(config_name=None):
    """
    Application factory pattern
    Creates and configures Flask app
    """
    app = Flask(__name__)

    # Load configuration
    if config_name:
        app.config.from_object(config[config_name])
    else:
        app.config.from_object(get_config())

    logger = configure_logging(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'],
        async_mode=app.config['SOCKETIO_ASYNC_MODE']
    )

    # Live state lives for as long as the app does
    live_context = LiveContext(app.config)
    app.extensions['livequiz'] = live_context

    # Register blueprints
    from livequiz.routes import auth_bp, proctor_bp, learner_bp, register_error_handlers

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(proctor_bp, url_prefix='/proctor')
    app.register_blueprint(learner_bp, url_prefix='/learner')
    register_error_handlers(app)

    # Register Socket.IO events
    from livequiz.sockets import register_socket_events, relay_session_event
    with app.app_context():
        register_socket_events()
    live_context.on_session_event = relay_session_event

    # Create database tables
    with app.app_context():
        db.create_all()
        logger.info('Database tables created/verified')

    return app
