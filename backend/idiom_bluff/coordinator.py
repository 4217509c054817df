"""Event entry point: maps inbound socket events onto the registry and the
round state machine, then delivers whatever they asked to broadcast.

Every event that touches a room runs under that room's lock, message delivery
and timer bookkeeping included, so one room's broadcasts go out in the order
its events arrived while other rooms proceed independently.
"""
import logging
from typing import Any, Optional

from idiom_bluff.broadcast import BroadcastChannel, Outbound, Outcome, to_connection, to_room
from idiom_bluff.errors import GameError, RoomNotFound
from idiom_bluff.models import RoomMode
from idiom_bluff.registry import RoomRegistry
from idiom_bluff.services.games.rounds import RoundStateMachine
from idiom_bluff.services.games.scheduler import StageScheduler, TimerKey


def _field(payload: Any, key: str):
    return payload.get(key) if isinstance(payload, dict) else None


class SessionCoordinator:

    def __init__(self, registry: RoomRegistry, machine: RoundStateMachine,
                 scheduler: StageScheduler, channel: BroadcastChannel,
                 logger: Optional[logging.Logger] = None):
        self.registry = registry
        self.machine = machine
        self.scheduler = scheduler
        self.channel = channel
        self.logger = logger or logging.getLogger(__name__)
        self._handlers = {
            'createRoom': self.create_room,
            'joinRoom': self.join_room,
            'startGame': self.start_game,
            'submitAnswer': self.submit_answer,
            'submitVote': self.submit_vote,
            'disconnect': self.disconnect,
        }

    def handle(self, conn_id: str, event: str, payload: Any = None) -> list[Outbound]:
        handler = self._handlers.get(event)
        if handler is None:
            self.logger.warning(f"[unknown-event] {event} from {conn_id}")
            return []
        return handler(conn_id, payload)

    # ---- inbound events ----
    def create_room(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        if isinstance(payload, dict):
            host_name = payload.get('hostName')
            requested = payload.get('mode')
        else:
            host_name, requested = payload, None
        if requested in (RoomMode.PLAYER_HOSTED.value, RoomMode.SPECTATOR_HOSTED.value):
            mode = RoomMode(requested)
        else:
            # The TV screen creates its room without a name
            has_name = isinstance(host_name, str) and host_name.strip()
            mode = RoomMode.PLAYER_HOSTED if has_name else RoomMode.SPECTATOR_HOSTED

        try:
            room = self.registry.create_room(conn_id, mode, host_name)
        except GameError as exc:
            return self._reject(conn_id, exc)

        with room.lock:
            self.channel.join_group(conn_id, room.code)
            return self._deliver(room, Outcome([to_connection(conn_id, 'roomCreated', {
                'roomCode': room.code,
                'mode': room.mode.value,
                'players': room.roster(),
            })]))

    def join_room(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        try:
            room = self.registry.resolve(_field(payload, 'roomCode'))
            with room.lock:
                self.registry.add_player(room, conn_id, _field(payload, 'playerName'))
                self.channel.join_group(conn_id, room.code)
                return self._deliver(room, Outcome([to_room(room.code, 'playerJoined', room.roster())]))
        except GameError as exc:
            return self._reject(conn_id, exc)

    def start_game(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        code = payload if isinstance(payload, str) else _field(payload, 'roomCode')
        try:
            room = self.registry.resolve(code)
        except GameError as exc:
            return self._reject(conn_id, exc)
        with room.lock:
            if room.closed:
                return self._reject(conn_id, RoomNotFound(room.code))
            return self._deliver(room, self.machine.start_game(room, conn_id))

    def submit_answer(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        room = self.registry.get(_field(payload, 'roomCode'))
        if room is None:
            self.logger.debug(f"[ignored] answer from {conn_id} for unknown room")
            return []
        with room.lock:
            if room.closed:
                return []
            return self._deliver(room, self.machine.submit_answer(room, conn_id, _field(payload, 'answer')))

    def submit_vote(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        room = self.registry.get(_field(payload, 'roomCode'))
        if room is None:
            self.logger.debug(f"[ignored] vote from {conn_id} for unknown room")
            return []
        with room.lock:
            if room.closed:
                return []
            return self._deliver(room, self.machine.submit_vote(room, conn_id, _field(payload, 'votedForId')))

    def disconnect(self, conn_id: str, payload: Any = None) -> list[Outbound]:
        room = self.registry.room_for_connection(conn_id)
        if room is None:
            return []
        with room.lock:
            departure = self.registry.remove_connection(conn_id)
            if departure is None:
                return []
            if departure.room_deleted:
                self.scheduler.cancel(room.code)
                return []
            outcome = Outcome([to_room(room.code, 'playerLeft', room.roster())])
            if departure.player is not None:
                outcome.extend(self.machine.on_player_removed(room, conn_id))
            return self._deliver(room, outcome)

    # ---- timers ----
    def handle_timer(self, key: TimerKey) -> list[Outbound]:
        room = self.registry.get(key.room_code)
        if room is None:
            self.logger.info(f"[timer-abort] room={key.room_code} no longer exists")
            return []
        with room.lock:
            if room.closed:
                return []
            return self._deliver(room, self.machine.on_timeout(room, key))

    # ---- delivery ----
    def _deliver(self, room, outcome: Outcome) -> list[Outbound]:
        for message in outcome.messages:
            self.channel.deliver(message)
        if outcome.phase_changed:
            self.scheduler.cancel(room.code)
        if outcome.timer is not None:
            key, delay = outcome.timer
            self.scheduler.schedule(key, delay, self.handle_timer)
        return outcome.messages

    def _reject(self, conn_id: str, exc: GameError) -> list[Outbound]:
        self.logger.info(f"[rejected] {conn_id}: {exc}")
        message = to_connection(conn_id, 'error', {'message': str(exc)})
        self.channel.deliver(message)
        return [message]
