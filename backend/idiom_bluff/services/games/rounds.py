"""Round flow: waiting -> submitting -> voting -> results -> submitting | gameOver.

Every method expects the caller to hold ``room.lock`` and returns an
``Outcome``; nothing here talks to the network or starts a timer itself.
"""
import logging
import random
import time
from typing import Optional

from idiom_bluff.broadcast import Outcome, to_connection, to_room
from idiom_bluff.models import RoundPhase
from .scheduler import TimerKey
from .scoring import CORRECT_ANSWER_POINTS, DECEPTION_POINTS, apply_round_scores


class RoundStateMachine:

    def __init__(self, settings=None, clock=time.time, rng: Optional[random.Random] = None,
                 logger: Optional[logging.Logger] = None):
        # Anything with .get(): a Flask config or a plain dict
        self.settings = settings if settings is not None else {}
        self.clock = clock
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)

    def duration(self, phase: RoundPhase) -> int:
        if phase == RoundPhase.SUBMITTING:
            return int(self.settings.get('SUBMIT_DURATION_SEC', 60))
        if phase == RoundPhase.VOTING:
            return int(self.settings.get('VOTE_DURATION_SEC', 30))
        if phase == RoundPhase.RESULTS:
            return int(self.settings.get('RESULTS_DURATION_SEC', 5))
        raise ValueError(f"Phase {phase} has no timer")

    # ---- inbound actions ----
    def start_game(self, room, sender_id: str) -> Outcome:
        if room.state != RoundPhase.WAITING:
            self.logger.debug(f"[ignored] room={room.code} start from {sender_id} in {room.state.value}")
            return Outcome()
        if sender_id != room.host_id:
            return Outcome([to_connection(sender_id, 'error', {'message': 'Only the host can start the game'})])
        min_players = int(self.settings.get('MIN_PLAYERS', 3))
        if len(room.players) < min_players:
            return Outcome([to_connection(sender_id, 'error', {
                'message': f'At least {min_players} players are required to start'})])

        room.round_index = 0
        outcome = self._enter_submitting(room)
        outcome.messages.append(to_room(room.code, 'gameStarted', self._round_payload(room)))
        return outcome

    def submit_answer(self, room, player_id: str, text) -> Outcome:
        accepted, reason = room.submissions.record(room, player_id, text)
        if not accepted:
            self.logger.debug(f"[ignored] room={room.code} answer from {player_id}: {reason}")
            return Outcome()
        if room.submissions.is_complete(room):
            return self._enter_voting(room)
        return Outcome()

    def submit_vote(self, room, voter_id: str, target_id) -> Outcome:
        accepted, reason = room.votes.record(room, voter_id, target_id)
        if not accepted:
            self.logger.debug(f"[ignored] room={room.code} vote from {voter_id}: {reason}")
            return Outcome()
        if room.votes.is_complete(room):
            return self._finish_round(room)
        return Outcome()

    def on_timeout(self, room, key: TimerKey) -> Outcome:
        if room.state != key.phase or room.round_index != key.round_index:
            self.logger.info(
                f"[timer-abort] room={room.code} expected={key.phase}/{key.round_index} "
                f"actual={room.state.value}/{room.round_index}"
            )
            return Outcome()
        if room.state == RoundPhase.SUBMITTING:
            return self._enter_voting(room)
        if room.state == RoundPhase.VOTING:
            return self._finish_round(room)
        if room.state == RoundPhase.RESULTS:
            return self._advance(room)
        return Outcome()

    def on_player_removed(self, room, player_id: str) -> Outcome:
        """Withdraw a departed player's round entries and re-check completion."""
        room.submissions.withdraw(player_id)
        released = room.votes.withdraw(player_id)
        if released:
            self.logger.info(f"[votes-released] room={room.code} voters={released}")
        if room.state == RoundPhase.SUBMITTING and room.submissions.is_complete(room):
            return self._enter_voting(room)
        if room.state == RoundPhase.VOTING and room.votes.is_complete(room):
            return self._finish_round(room)
        return Outcome()

    # ---- transitions ----
    def _arm(self, room, phase: RoundPhase) -> Outcome:
        prev = room.state
        room.state = phase
        delay = self.duration(phase)
        room.round_deadline = self.clock() + delay
        self.logger.info(f"[phase] room={room.code} {prev.value} -> {phase.value} round={room.round_index}")
        return Outcome(timer=(TimerKey(room.code, room.round_index, phase), delay), phase_changed=True)

    def _enter_submitting(self, room) -> Outcome:
        room.submissions.reset()
        room.votes.reset()
        return self._arm(room, RoundPhase.SUBMITTING)

    def _enter_voting(self, room) -> Outcome:
        room.votes.reset()
        outcome = self._arm(room, RoundPhase.VOTING)
        answers = [{'playerId': pid, 'answer': text} for pid, text in room.submissions.entries.items()]
        # Submission order would give away who answered first
        self.rng.shuffle(answers)
        outcome.messages.append(to_room(room.code, 'startVoting', {
            'answers': answers,
            'roundIndex': room.round_index,
            'deadline': room.round_deadline,
        }))
        if room.votes.is_complete(room):
            # Nobody has anything to vote for
            outcome.extend(self._finish_round(room))
        return outcome

    def _finish_round(self, room) -> Outcome:
        correct_text = room.current_idiom
        results = []
        for pid, text in room.submissions.entries.items():
            player = room.get_player(pid)
            results.append({
                'playerId': pid,
                'name': player.name if player else None,
                'answer': text,
                'correct': text == (correct_text or '').strip(),
                'votedBy': [voter for voter, target in room.votes.entries.items() if target == pid],
            })

        deltas = apply_round_scores(
            room,
            correct_points=int(self.settings.get('CORRECT_ANSWER_POINTS', CORRECT_ANSWER_POINTS)),
            deception_points=int(self.settings.get('DECEPTION_POINTS', DECEPTION_POINTS)),
        )
        self.logger.info(f"[score] room={room.code} round={room.round_index} deltas={deltas}")

        room.submissions.reset()
        room.votes.reset()
        room.round_index += 1
        outcome = self._arm(room, RoundPhase.RESULTS)
        outcome.messages.append(to_room(room.code, 'roundEnd', {
            'scores': room.scoreboard(),
            'deltas': deltas,
            'correctAnswer': correct_text,
            'results': results,
            'nextRound': room.current_idiom,
            'roundIndex': room.round_index,
            'deadline': room.round_deadline,
        }))
        return outcome

    def _advance(self, room) -> Outcome:
        if room.round_index < room.total_rounds:
            outcome = self._enter_submitting(room)
            outcome.messages.append(to_room(room.code, 'roundStarted', self._round_payload(room)))
            return outcome

        self.logger.info(f"[phase] room={room.code} {room.state.value} -> {RoundPhase.GAME_OVER.value}")
        room.state = RoundPhase.GAME_OVER
        room.round_deadline = None
        return Outcome([to_room(room.code, 'gameOver', {'scores': room.scoreboard()})], phase_changed=True)

    def _round_payload(self, room) -> dict:
        return {
            'currentIdiom': room.current_idiom,
            'players': room.roster(),
            'roundIndex': room.round_index,
            'totalRounds': room.total_rounds,
            'deadline': room.round_deadline,
        }
