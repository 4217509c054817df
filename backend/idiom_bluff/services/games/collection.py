"""Per-round accumulators for answers and votes.

Both collectors answer ``record(...)`` with ``(accepted, reason)``. A rejected
entry never replaces an accepted one: the first submission or vote of a round
wins.
"""
from typing import Optional, Tuple

from idiom_bluff.models import RoundPhase

NOT_SUBMITTING = 'Not accepting answers right now'
NOT_VOTING = 'Not accepting votes right now'
NOT_A_PLAYER = 'Not a player in this room'
EMPTY_ANSWER = 'Answer cannot be empty'
ALREADY_SUBMITTED = 'Already submitted this round'
ALREADY_VOTED = 'Already voted this round'
SELF_VOTE = 'Cannot vote for your own answer'
UNKNOWN_TARGET = 'That player has no answer this round'

Result = Tuple[bool, Optional[str]]


class SubmissionCollector:
    def __init__(self):
        self.entries: dict[str, str] = {}

    def __len__(self):
        return len(self.entries)

    def __contains__(self, player_id):
        return player_id in self.entries

    def reset(self) -> None:
        self.entries.clear()

    def record(self, room, player_id: str, text) -> Result:
        if room.state != RoundPhase.SUBMITTING:
            return False, NOT_SUBMITTING
        if not room.has_player(player_id):
            return False, NOT_A_PLAYER
        if player_id in self.entries:
            return False, ALREADY_SUBMITTED
        text = text.strip() if isinstance(text, str) else ''
        if not text:
            return False, EMPTY_ANSWER
        self.entries[player_id] = text
        return True, None

    def withdraw(self, player_id: str) -> None:
        self.entries.pop(player_id, None)

    def is_complete(self, room) -> bool:
        """Every seated player has answered. The spectator is never seated."""
        return bool(room.players) and all(p.id in self.entries for p in room.players)


class VoteTally:
    def __init__(self):
        self.entries: dict[str, str] = {}

    def __len__(self):
        return len(self.entries)

    def __contains__(self, voter_id):
        return voter_id in self.entries

    def reset(self) -> None:
        self.entries.clear()

    def record(self, room, voter_id: str, target_id) -> Result:
        if room.state != RoundPhase.VOTING:
            return False, NOT_VOTING
        if not room.has_player(voter_id):
            return False, NOT_A_PLAYER
        if voter_id in self.entries:
            return False, ALREADY_VOTED
        if target_id == voter_id:
            return False, SELF_VOTE
        if target_id not in room.submissions or not room.has_player(target_id):
            return False, UNKNOWN_TARGET
        self.entries[voter_id] = target_id
        return True, None

    def withdraw(self, player_id: str) -> list[str]:
        """Drop the player's own vote and every vote naming them.

        Returns the voters whose vote was released; they may vote again.
        """
        self.entries.pop(player_id, None)
        released = [voter for voter, target in self.entries.items() if target == player_id]
        for voter in released:
            del self.entries[voter]
        return released

    def eligible_voters(self, room) -> list[str]:
        """Players who have at least one answer by somebody else to pick."""
        authors = set(room.submissions.entries)
        return [p.id for p in room.players if authors - {p.id}]

    def is_complete(self, room) -> bool:
        return all(voter in self.entries for voter in self.eligible_voters(room))
