from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from typing import Dict, Optional

from snakemania.services.snake.session import create_session, end_session, get_session, normalize_client_id, GameSession

# Socket id -> session id of the game that socket is playing
_sid_to_session: Dict[str, str] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _current_session() -> Optional[GameSession]:
    session = get_session(_sid_to_session.get(_get_sid()))
    if not session:
        emit('error', {'message': 'No game in progress; emit start_game first'})
    return session


def _payload(data) -> Optional[dict]:
    """Event data as a dict; None (after emitting an error) when it is not one."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        emit('error', {'message': 'Event data must be an object'})
        return None
    return data


def _teardown(sid: str) -> None:
    session_id = _sid_to_session.pop(sid, None)
    if session_id:
        end_session(session_id)


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Navigating away ends the game and stops its timer
    _teardown(_get_sid())


def handle_start_game(data=None):
    data = _payload(data)
    if data is None:
        return
    try:
        client_id = normalize_client_id(data.get('client_id'))
    except ValueError as exc:
        emit('error', {'message': str(exc)})
        return
    sid = _get_sid()
    _teardown(sid)
    session = create_session(current_app._get_current_object(), client_id=client_id)
    _sid_to_session[sid] = session.session_id
    join_room(session.room)
    emit('state', session.to_dict())


def handle_key(data=None):
    data = _payload(data)
    session = _current_session() if data is not None else None
    if not session:
        return
    session.handle_key(data.get('key'))


def handle_direction(data=None):
    data = _payload(data)
    session = _current_session() if data is not None else None
    if not session:
        return
    session.set_direction(data.get('direction'))


def handle_restart(data=None):
    session = _current_session()
    if not session:
        return
    session.restart()


def handle_leave_game(data=None):
    sid = _get_sid()
    session = get_session(_sid_to_session.get(sid))
    if session:
        leave_room(session.room)
    _teardown(sid)
    emit('left', {'session_id': session.session_id if session else None})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from snakemania import socketio

    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'start_game': handle_start_game,
        'key': handle_key,
        'direction': handle_direction,
        'restart': handle_restart,
        'leave_game': handle_leave_game,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
