import threading
import time
from enum import Enum
from typing import Optional


class RoomMode(str, Enum):
    PLAYER_HOSTED = 'player'
    SPECTATOR_HOSTED = 'spectator'

    def __str__(self):
        return self.value


class RoundPhase(str, Enum):
    WAITING = 'waiting'
    SUBMITTING = 'submitting'
    VOTING = 'voting'
    RESULTS = 'results'
    GAME_OVER = 'gameOver'

    def __str__(self):
        return self.value


class Player:
    """A seated participant. ``id`` is the connection id it joined with.

    Departed players are removed from the room rather than flagged, so every
    roster entry reports ``connected: True``; only the detached object handed
    back in a ``Departure`` carries ``False``. The display name goes out under
    the ``name`` key, the field clients already read.
    """

    def __init__(self, player_id: str, name: str):
        self.id: str = player_id
        self.name: str = name
        self.score: int = 0
        self.connected: bool = True

    def to_dict(self, host_id: Optional[str] = None) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'is_host': self.id == host_id,
            'connected': self.connected,
        }

    def __repr__(self) -> str:
        return f"Player(id={self.id}, name={self.name}, score={self.score})"


class Room:
    """One isolated game session.

    All mutation happens while holding ``lock``; the registry marks a room
    ``closed`` once it has been dropped so that events queued on the lock can
    tell it is gone.
    """

    def __init__(self, code: str, mode: RoomMode, deck, host_id: Optional[str] = None):
        from idiom_bluff.services.games.collection import SubmissionCollector, VoteTally

        self.code: str = code
        self.mode: RoomMode = mode
        self.host_id: Optional[str] = host_id
        self.spectator_id: Optional[str] = None
        self.players: list[Player] = []
        self.state: RoundPhase = RoundPhase.WAITING
        self.round_index: int = 0
        self.deck: tuple = tuple(deck)
        self.submissions = SubmissionCollector()
        self.votes = VoteTally()
        self.round_deadline: Optional[float] = None
        self.round_history: list[dict] = []
        self.created_at: float = time.time()
        self.closed: bool = False
        self.lock = threading.RLock()

    # ---- membership ----
    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def add_player(self, player: Player) -> Player:
        if self.has_player(player.id):
            raise ValueError(f"Player {player.id} already in room {self.code}")
        self.players.append(player)
        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        player = self.get_player(player_id)
        if player is None:
            return None
        self.players.remove(player)
        player.connected = False
        return player

    def is_empty(self) -> bool:
        """True once neither a player nor the spectator screen is left."""
        return not self.players and self.spectator_id is None

    # ---- round content ----
    @property
    def total_rounds(self) -> int:
        return len(self.deck)

    @property
    def current_idiom(self) -> Optional[str]:
        if 0 <= self.round_index < len(self.deck):
            return self.deck[self.round_index]
        return None

    # ---- payloads ----
    def roster(self) -> list[dict]:
        return [p.to_dict(self.host_id) for p in self.players]

    def scoreboard(self) -> list[dict]:
        # sorted() is stable, so ties keep join order
        return sorted(self.roster(), key=lambda p: p['score'], reverse=True)

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'mode': self.mode.value,
            'state': self.state.value,
            'host_id': self.host_id,
            'players': self.roster(),
            'round_index': self.round_index,
            'total_rounds': self.total_rounds,
            'current_idiom': self.current_idiom if self.state != RoundPhase.WAITING else None,
            'round_deadline': self.round_deadline,
            'submission_count': len(self.submissions),
            'vote_count': len(self.votes),
            'round_history': list(self.round_history),
        }

    def __repr__(self) -> str:
        return f"Room(code={self.code}, state={self.state.value}, players={len(self.players)})"
