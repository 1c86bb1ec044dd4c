"""
Socket.IO Event Handlers
Learner attempts, integrity signals and proctor monitor pushes
"""
import logging
from threading import Lock

from flask import current_app, request, session
from flask_socketio import emit, join_room, leave_room

from livequiz.context import get_live_context
from livequiz.errors import InvalidSelectionError, LiveQuizError, NotFoundError
from livequiz.extensions import socketio
from livequiz.services.persistence import PersistenceService

logger = logging.getLogger(__name__)

_loop_lock = Lock()


def session_room(session_id):
    return f'session_{session_id}'


def monitor_payload(aggregator):
    return {
        'session_id': aggregator.session_id,
        'summary': aggregator.summary(),
        'participants': [row.to_dict() for row in aggregator.rows],
    }


def relay_session_event(event, state):
    """Controller events fan out to learners and monitors of the session"""
    payload = state.to_dict()
    socketio.emit(event, payload, room=session_room(state.session_id))
    if event == 'session_stopped':
        for sid, view in get_live_context().session_stopped(state.session_id):
            socketio.emit('quiz_state', view, room=sid)


def live_loop(app):
    """Tick learner runtimes every second and refresh monitors when due"""
    context = get_live_context(app)
    interval = app.config.get('TICK_SECONDS', 1)
    logger.info('Live loop started (tick %ss)', interval)
    while True:
        with app.app_context():
            try:
                for sid, view in context.tick_runtimes():
                    socketio.emit('quiz_state', view, room=sid)
                for sid, aggregator in context.refresh_watchers():
                    socketio.emit('monitor_update', monitor_payload(aggregator), room=sid)
            except LiveQuizError:
                logger.exception('Live loop iteration failed')
        socketio.sleep(interval)


def start_live_loop(app):
    context = get_live_context(app)
    if not app.config.get('START_BACKGROUND_LOOPS', True):
        return False
    with _loop_lock:
        if context.loop_started:
            return False
        context.loop_started = True
    socketio.start_background_task(live_loop, app)
    return True


def register_socket_events():
    """Register all Socket.IO event handlers"""

    @socketio.on('connect')
    def handle_connect(auth=None):
        start_live_loop(current_app._get_current_object())

    # ================= LEARNER =================

    @socketio.on('start_attempt')
    def start_attempt(data=None):
        """Bind a learner runtime to this socket"""
        data = data or {}
        participant_id = data.get('participant_id') or session.get('participant_id')
        if not participant_id:
            emit('quiz_error', {'error': 'Join a session first'})
            return

        context = get_live_context()
        try:
            runtime = context.open_runtime(request.sid, int(participant_id))
        except NotFoundError as exc:
            emit('quiz_error', {'error': str(exc)})
            return

        join_room(session_room(runtime.session_id))
        emit('quiz_state', runtime.view())

    @socketio.on('submit_answer')
    def submit_answer(data=None):
        data = data or {}
        option_id = data.get('option_id')

        def submit(runtime):
            runtime.submit(option_id)
            return runtime.view()

        try:
            if option_id is not None:
                try:
                    option_id = int(option_id)
                except (TypeError, ValueError):
                    raise InvalidSelectionError(f'Invalid option: {option_id!r}') from None
            view = get_live_context().with_runtime(request.sid, submit)
        except InvalidSelectionError as exc:
            emit('quiz_error', {'error': str(exc)})
            return

        if view is None:
            emit('quiz_error', {'error': 'No attempt in progress'})
            return
        emit('quiz_state', view)

    @socketio.on('integrity_signal')
    def integrity_signal(data=None):
        """Raw browser signal: visibilitychange, copy, paste, contextmenu, fullscreenchange"""
        data = dict(data or {})
        signal = data.pop('signal', None)
        if not signal:
            return

        def observe(runtime):
            detected = runtime.observe(signal, data)
            return detected, runtime.view()

        outcome = get_live_context().with_runtime(request.sid, observe)
        if outcome is None:
            return
        detected, view = outcome
        if detected is not None:
            emit('quiz_state', view)

    # ================= PROCTOR =================

    @socketio.on('watch_session')
    def watch_session(data=None):
        proctor_id = session.get('proctor_id')
        session_id = (data or {}).get('session_id')
        if not proctor_id or session_id is None:
            emit('quiz_error', {'error': 'Proctor sign-in required'})
            return

        try:
            live_session = PersistenceService.get_session(int(session_id))
        except NotFoundError as exc:
            emit('quiz_error', {'error': str(exc)})
            return
        if live_session.proctor_id != proctor_id:
            emit('quiz_error', {'error': f'Session {session_id} not found'})
            return

        context = get_live_context()
        aggregator = context.watch(request.sid, live_session.id, len(live_session.quiz.questions))
        aggregator.refresh()
        join_room(session_room(live_session.id))
        emit('monitor_update', monitor_payload(aggregator))

    @socketio.on('unwatch_session')
    def unwatch_session(data=None):
        session_id = (data or {}).get('session_id')
        get_live_context().unwatch(request.sid)
        if session_id is not None:
            leave_room(session_room(session_id))

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        get_live_context().disconnect(request.sid)
