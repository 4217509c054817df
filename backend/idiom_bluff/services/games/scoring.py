from typing import Iterable, Mapping

CORRECT_ANSWER_POINTS = 1000
DECEPTION_POINTS = 500


def score_round(
    players: Iterable,
    submissions: Mapping[str, str],
    votes: Mapping[str, str],
    correct_text: str,
    correct_points: int = CORRECT_ANSWER_POINTS,
    deception_points: int = DECEPTION_POINTS,
) -> dict[str, int]:
    """Compute the score delta of every player for one finished round.

    +correct_points for an answer matching the idiom exactly (trimmed,
    case-sensitive); +deception_points to the author of a wrong answer for
    every vote another player cast for it. Players without an answer get 0.
    Nothing is mutated; applying the deltas is up to the caller.
    """
    correct = (correct_text or '').strip()
    deltas: dict[str, int] = {}
    for player in players:
        answer = submissions.get(player.id)
        if answer is None:
            deltas[player.id] = 0
            continue
        if answer.strip() == correct:
            deltas[player.id] = correct_points
            continue
        fooled = sum(1 for voter, target in votes.items() if target == player.id and voter != player.id)
        deltas[player.id] = fooled * deception_points
    return deltas


def apply_round_scores(room, correct_points: int = CORRECT_ANSWER_POINTS,
                       deception_points: int = DECEPTION_POINTS) -> dict[str, int]:
    """Score the room's current round, add the deltas and record a summary."""
    correct_text = room.current_idiom
    submissions = dict(room.submissions.entries)
    votes = dict(room.votes.entries)
    deltas = score_round(room.players, submissions, votes, correct_text,
                         correct_points=correct_points, deception_points=deception_points)
    for player in room.players:
        player.score += deltas.get(player.id, 0)
    room.round_history.append({
        'round': room.round_index,
        'idiom': correct_text,
        'submissions': [{'player_id': pid, 'answer': text} for pid, text in submissions.items()],
        'votes': [{'voter_id': voter, 'voted_for_id': target} for voter, target in votes.items()],
        'deltas': deltas,
    })
    return deltas
