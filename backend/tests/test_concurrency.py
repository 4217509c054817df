import threading

from idiom_bluff.models import RoundPhase
from idiom_bluff.services.games.scheduler import TimerKey

SIX = ('Alice', 'Bob', 'Cara', 'Dan', 'Eve', 'Finn')


def _interleave_with_name_check(monkeypatch, registry, action):
    """Run ``action`` on a second thread while the next join validates its name."""
    original = registry._clean_name
    started = []

    def clean_name(name):
        if not started:
            worker = threading.Thread(target=action)
            started.append(worker)
            worker.start()
            # long enough for the other thread to reach the room lock
            worker.join(timeout=0.2)
        return original(name)

    monkeypatch.setattr(registry, '_clean_name', clean_name)
    return started


def _finish(workers):
    for worker in workers:
        worker.join(timeout=5)
        assert not worker.is_alive()


def _all_at_once(calls):
    barrier = threading.Barrier(len(calls))

    def run(call):
        barrier.wait()
        call()

    workers = [threading.Thread(target=run, args=(call,)) for call in calls]
    for worker in workers:
        worker.start()
    _finish(workers)


def _seated_in(registry, conn_id):
    return sorted(code for code, room in registry.rooms.items() if room.has_player(conn_id))


def test_disconnect_during_join_removes_the_player(monkeypatch, make_room, coordinator, channel):
    code = make_room()
    registry = coordinator.registry
    workers = _interleave_with_name_check(
        monkeypatch, registry, lambda: coordinator.handle('sid-Dan', 'disconnect'))

    coordinator.handle('sid-Dan', 'joinRoom', {'roomCode': code, 'playerName': 'Dan'})
    _finish(workers)

    room = registry.get(code)
    assert [p.id for p in room.players] == ['sid-Alice', 'sid-Bob', 'sid-Cara']
    assert registry.room_for_connection('sid-Dan') is None
    # joined, then left, in that order
    assert [p['name'] for p in channel.last('playerJoined', code)] == ['Alice', 'Bob', 'Cara', 'Dan']
    assert [p['name'] for p in channel.last('playerLeft', code)] == ['Alice', 'Bob', 'Cara']


def test_disconnect_during_rejected_join_is_a_no_op(monkeypatch, make_room, coordinator, channel):
    code = make_room()
    registry = coordinator.registry
    workers = _interleave_with_name_check(
        monkeypatch, registry, lambda: coordinator.handle('sid-Dan', 'disconnect'))

    coordinator.handle('sid-Dan', 'joinRoom', {'roomCode': code, 'playerName': 'alice'})
    _finish(workers)

    assert channel.last('error', 'sid-Dan') == {'message': 'Name already taken'}
    assert registry.room_for_connection('sid-Dan') is None
    assert channel.events('playerLeft', code) == []


def test_one_connection_cannot_join_two_rooms_at_once(monkeypatch, make_room, coordinator, channel):
    first = make_room()
    second = make_room(names=('Xena', 'Yuri', 'Zoe'))
    registry = coordinator.registry
    workers = _interleave_with_name_check(
        monkeypatch, registry,
        lambda: coordinator.handle('sid-Dan', 'joinRoom', {'roomCode': second, 'playerName': 'Dan'}))

    coordinator.handle('sid-Dan', 'joinRoom', {'roomCode': first, 'playerName': 'Dan'})
    _finish(workers)

    assert _seated_in(registry, 'sid-Dan') == [first]
    assert channel.last('error', 'sid-Dan') == {'message': 'You are already in a room'}

    coordinator.handle('sid-Dan', 'disconnect')
    assert _seated_in(registry, 'sid-Dan') == []


def test_concurrent_submissions_open_voting_once(make_room, coordinator, channel):
    code = make_room(names=SIX, start=True)
    _all_at_once([
        (lambda name=name: coordinator.handle(
            f'sid-{name}', 'submitAnswer', {'roomCode': code, 'answer': f'{name} guesses'}))
        for name in SIX
    ])

    voting = channel.events('startVoting', code)
    assert len(voting) == 1
    assert len(voting[0]['answers']) == len(SIX)
    assert coordinator.scheduler.pending(code) == TimerKey(code, 0, RoundPhase.VOTING)


def test_concurrent_repeats_keep_the_first_answer(make_room, coordinator, channel):
    code = make_room(start=True)
    _all_at_once([
        (lambda n=n: coordinator.handle('sid-Alice', 'submitAnswer', {'roomCode': code, 'answer': f'take {n}'}))
        for n in range(5)
    ])
    room = coordinator.registry.get(code)
    assert len(room.submissions) == 1
    assert room.state == RoundPhase.SUBMITTING


def test_concurrent_votes_end_the_round_once(make_room, coordinator, channel):
    code = make_room(start=True)
    for name, text in {'Alice': 'Break a leg', 'Bob': 'Use your legs', 'Cara': 'Jump high'}.items():
        coordinator.handle(f'sid-{name}', 'submitAnswer', {'roomCode': code, 'answer': text})

    votes = {'Alice': 'Bob', 'Bob': 'Cara', 'Cara': 'Bob'}
    _all_at_once([
        (lambda voter=voter, target=target: coordinator.handle(
            f'sid-{voter}', 'submitVote', {'roomCode': code, 'votedForId': f'sid-{target}'}))
        for voter, target in votes.items()
    ])

    ends = channel.events('roundEnd', code)
    assert len(ends) == 1
    assert ends[0]['deltas'] == {'sid-Alice': 1000, 'sid-Bob': 1000, 'sid-Cara': 500}
    assert coordinator.registry.get(code).round_index == 1
