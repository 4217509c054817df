from flask import current_app, request
from flask_socketio import emit

from idiom_bluff import socketio


def _coordinator():
    return current_app.extensions['coordinator']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    _coordinator().handle(_get_sid(), 'disconnect')


def handle_create_room(data=None):
    _coordinator().handle(_get_sid(), 'createRoom', data)


def handle_join_room(data=None):
    _coordinator().handle(_get_sid(), 'joinRoom', data)


def handle_start_game(data=None):
    _coordinator().handle(_get_sid(), 'startGame', data)


def handle_submit_answer(data=None):
    _coordinator().handle(_get_sid(), 'submitAnswer', data)


def handle_submit_vote(data=None):
    _coordinator().handle(_get_sid(), 'submitVote', data)


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createRoom', handle_create_room, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('startGame', handle_start_game, namespace=namespace)
    socketio.on_event('submitAnswer', handle_submit_answer, namespace=namespace)
    socketio.on_event('submitVote', handle_submit_vote, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
