"""
Sockets Package
"""
from livequiz.sockets.quiz_events import (
    register_socket_events,
    relay_session_event,
    start_live_loop,
)

__all__ = ['register_socket_events', 'relay_session_event', 'start_live_loop']
