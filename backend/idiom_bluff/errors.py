"""Errors surfaced to the requesting connection.

Round-level rejections (wrong phase, duplicate submission or vote) are not
exceptions; the collectors report them as ``(False, reason)`` and nothing is
sent back to the client.
"""


class GameError(Exception):
    """Base class; ``str(exc)`` is the human-readable reason sent to clients."""


class RoomNotFound(GameError):
    def __init__(self, code=None):
        super().__init__('Room not found')
        self.code = code


class JoinRejected(GameError):
    pass


class CodeCollision(GameError):
    pass
