"""Live rooms by code, and which room each connection sits in."""
import logging
import secrets
import threading
from collections import namedtuple
from typing import Callable, Optional

from idiom_bluff.deck import IdiomDeck, default_deck
from idiom_bluff.errors import CodeCollision, JoinRejected, RoomNotFound
from idiom_bluff.models import Player, Room, RoomMode, RoundPhase

ROOM_CODE_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
ROOM_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 12

Departure = namedtuple('Departure', ['room', 'player', 'was_host', 'room_deleted'])


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    cleaned = ''.join(ch for ch in value if ch.isalnum())
    return cleaned.upper() or None


class RoomRegistry:
    """Owns every live Room.

    The registry lock only guards the two maps and is never held while a
    room lock is being acquired; callers take ``room.lock`` first.
    """

    def __init__(self, code_generator: Callable[[], str] = generate_room_code,
                 deck: IdiomDeck = default_deck, rounds_per_game: int = 0,
                 max_players: int = 12, max_name_length: int = 24,
                 logger: Optional[logging.Logger] = None):
        self.rooms: dict[str, Room] = {}
        self._connections: dict[str, str] = {}
        self._lock = threading.Lock()
        self._new_code = code_generator
        self.deck = deck
        self.rounds_per_game = rounds_per_game
        self.max_players = max_players
        self.max_name_length = max_name_length
        self.logger = logger or logging.getLogger(__name__)

    # ---- lookup ----
    def get(self, code) -> Optional[Room]:
        code = normalize_room_code(code)
        return self.rooms.get(code) if code else None

    def resolve(self, code) -> Room:
        room = self.get(code)
        if room is None or room.closed:
            raise RoomNotFound(code)
        return room

    def room_for_connection(self, conn_id: str) -> Optional[Room]:
        code = self._connections.get(conn_id)
        return self.rooms.get(code) if code else None

    # ---- lifecycle ----
    def create_room(self, conn_id: str, mode: RoomMode, host_name: Optional[str] = None) -> Room:
        if conn_id in self._connections:
            raise JoinRejected('You are already in a room')
        if mode == RoomMode.PLAYER_HOSTED:
            host_name = self._clean_name(host_name)

        for _ in range(MAX_CODE_ATTEMPTS):
            # Generated outside the lock; only the insert is exclusive
            code = normalize_room_code(self._new_code())
            room = Room(code, mode, self.deck.deal(self.rounds_per_game), host_id=conn_id)
            if mode == RoomMode.PLAYER_HOSTED:
                room.add_player(Player(conn_id, host_name))
            else:
                room.spectator_id = conn_id
            with self._lock:
                if conn_id in self._connections:
                    raise JoinRejected('You are already in a room')
                if code in self.rooms:
                    collided = True
                else:
                    collided = False
                    self.rooms[code] = room
                    self._connections[conn_id] = code
            if collided:
                self.logger.warning(f"[room-collision] code={code} regenerating")
                continue
            self.logger.info(f"[room-create] room={code} mode={mode.value} host={conn_id}")
            return room
        raise CodeCollision('Unable to create a room right now. Please try again.')

    def add_player(self, room: Room, conn_id: str, name) -> Player:
        """Seat a new player. Caller holds ``room.lock``."""
        if room.closed:
            raise RoomNotFound(room.code)
        if room.state != RoundPhase.WAITING:
            raise JoinRejected('Room not found or game in progress')
        # Bind first so a racing disconnect finds this room and waits on its lock
        with self._lock:
            if conn_id in self._connections:
                raise JoinRejected('You are already in a room')
            self._connections[conn_id] = room.code
        try:
            name = self._clean_name(name)
            if any(p.name.lower() == name.lower() for p in room.players):
                raise JoinRejected('Name already taken')
            if len(room.players) >= self.max_players:
                raise JoinRejected('Room is full')
            player = room.add_player(Player(conn_id, name))
        except Exception:
            with self._lock:
                if self._connections.get(conn_id) == room.code:
                    del self._connections[conn_id]
            raise
        self.logger.info(f"[room-join] room={room.code} player={conn_id} name={name}")
        return player

    def remove_connection(self, conn_id: str) -> Optional[Departure]:
        """Take a connection out of its room, once.

        Promotes the next player in join order when the host leaves and
        drops the room when nobody is left. Returns None for connections
        that are not seated or were already removed.
        """
        with self._lock:
            code = self._connections.pop(conn_id, None)
        if code is None:
            return None
        room = self.rooms.get(code)
        if room is None:
            return None

        with room.lock:
            player = room.remove_player(conn_id)
            if room.spectator_id == conn_id:
                room.spectator_id = None
            was_host = room.host_id == conn_id
            if was_host:
                room.host_id = room.players[0].id if room.players else room.spectator_id
                if room.host_id:
                    self.logger.info(f"[host-change] room={code} {conn_id} -> {room.host_id}")

            deleted = room.is_empty()
            if deleted:
                room.closed = True
                with self._lock:
                    if self.rooms.get(code) is room:
                        del self.rooms[code]
                self.logger.info(f"[room-delete] room={code} empty")
        return Departure(room, player, was_host, deleted)

    def stats(self) -> dict:
        rooms = list(self.rooms.values())
        return {
            'total_rooms': len(rooms),
            'active_rooms': sum(1 for r in rooms if r.state not in (RoundPhase.WAITING, RoundPhase.GAME_OVER)),
            'total_players': sum(len(r.players) for r in rooms),
        }

    def _clean_name(self, name) -> str:
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            raise JoinRejected('Player name is required')
        if len(name) > self.max_name_length:
            raise JoinRejected(f'Player name must be at most {self.max_name_length} characters')
        return name
