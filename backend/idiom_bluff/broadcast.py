"""Outbound messages and the channel that delivers them.

Game logic never emits directly: it returns ``Outbound`` values and the
coordinator hands them to a ``BroadcastChannel``.
"""
from dataclasses import dataclass, field
from typing import Any, List, NamedTuple, Optional, Tuple


class Outbound(NamedTuple):
    event: str
    payload: Any
    room: Optional[str] = None
    to: Optional[str] = None


def to_room(room_code: str, event: str, payload: Any) -> Outbound:
    return Outbound(event, payload, room=room_code)


def to_connection(conn_id: str, event: str, payload: Any) -> Outbound:
    return Outbound(event, payload, to=conn_id)


@dataclass
class Outcome:
    """What a state machine step wants done once it returns.

    ``timer`` is ``(TimerKey, delay)`` for the phase just entered;
    ``phase_changed`` tells the coordinator to drop the previous timer.
    """
    messages: List[Outbound] = field(default_factory=list)
    timer: Optional[Tuple[Any, float]] = None
    phase_changed: bool = False

    def extend(self, other: 'Outcome') -> 'Outcome':
        self.messages.extend(other.messages)
        if other.timer is not None:
            self.timer = other.timer
        self.phase_changed = self.phase_changed or other.phase_changed
        return self


class BroadcastChannel:
    def join_group(self, conn_id: str, room_code: str) -> None:
        raise NotImplementedError

    def send_to_group(self, room_code: str, event: str, payload: Any) -> None:
        raise NotImplementedError

    def send_to_connection(self, conn_id: str, event: str, payload: Any) -> None:
        raise NotImplementedError

    def deliver(self, message: Outbound) -> None:
        if message.to is not None:
            self.send_to_connection(message.to, message.event, message.payload)
        else:
            self.send_to_group(message.room, message.event, message.payload)


class SocketIOChannel(BroadcastChannel):
    """Flask-SocketIO rooms keyed by room code; connections keyed by sid."""

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def join_group(self, conn_id, room_code):
        # server.enter_room works outside a request context (timer threads)
        self.socketio.server.enter_room(conn_id, room_code, namespace=self.namespace)

    def send_to_group(self, room_code, event, payload):
        self.socketio.emit(event, payload, to=room_code, namespace=self.namespace)

    def send_to_connection(self, conn_id, event, payload):
        self.socketio.emit(event, payload, to=conn_id, namespace=self.namespace)
