import os
import random
import sys
import pytest

# Ensure the backend root (containing the `idiom_bluff` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from idiom_bluff import create_app, socketio
from idiom_bluff.broadcast import BroadcastChannel
from idiom_bluff.coordinator import SessionCoordinator
from idiom_bluff.deck import IdiomDeck
from idiom_bluff.registry import RoomRegistry
from idiom_bluff.services.games.rounds import RoundStateMachine
from idiom_bluff.services.games.scheduler import StageScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    SUBMIT_DURATION_SEC = 60
    VOTE_DURATION_SEC = 30
    RESULTS_DURATION_SEC = 5
    MIN_PLAYERS = 3
    MAX_PLAYERS = 12
    MAX_NAME_LENGTH = 24
    ROOM_CODE_LENGTH = 6
    ROUNDS_PER_GAME = 0
    CORRECT_ANSWER_POINTS = 1000
    DECEPTION_POINTS = 500
    TIMER_HEARTBEAT_SEC = 0


class RecordingChannel(BroadcastChannel):
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []
        self.groups = {}

    def join_group(self, conn_id, room_code):
        self.groups.setdefault(room_code, set()).add(conn_id)

    def send_to_group(self, room_code, event, payload):
        self.sent.append((room_code, event, payload))

    def send_to_connection(self, conn_id, event, payload):
        self.sent.append((conn_id, event, payload))

    def events(self, name, target=None):
        return [p for t, e, p in self.sent if e == name and (target is None or t == target)]

    def last(self, name, target=None):
        found = self.events(name, target)
        assert found, f'no {name!r} message was sent'
        return found[-1]


class TaskRecorder:
    """Stands in for socketio.start_background_task; workers run on demand."""

    def __init__(self):
        self.tasks = []

    def __call__(self, fn, *args):
        self.tasks.append((fn, args))

    def run_all(self):
        # Workers started while these run are kept for the next call
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)
        return len(tasks)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


@pytest.fixture()
def settings():
    return {
        'MIN_PLAYERS': 3,
        'SUBMIT_DURATION_SEC': 60,
        'VOTE_DURATION_SEC': 30,
        'RESULTS_DURATION_SEC': 5,
    }


@pytest.fixture()
def deck():
    return IdiomDeck(["Break a leg", "Piece of cake"])


@pytest.fixture()
def machine(settings):
    return RoundStateMachine(settings=settings, clock=lambda: 1000.0, rng=random.Random(7))


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def tasks():
    return TaskRecorder()


@pytest.fixture()
def coordinator(deck, machine, channel, tasks):
    registry = RoomRegistry(deck=deck)
    scheduler = StageScheduler(start_task=tasks, sleep=lambda seconds: None)
    return SessionCoordinator(registry, machine, scheduler, channel)


@pytest.fixture()
def make_room(coordinator, channel):
    """Create a player-hosted room; connection ids are 'sid-<name>'."""
    def _make(names=('Alice', 'Bob', 'Cara'), start=False):
        host = names[0]
        coordinator.handle(f'sid-{host}', 'createRoom', host)
        code = channel.last('roomCreated', f'sid-{host}')['roomCode']
        for name in names[1:]:
            coordinator.handle(f'sid-{name}', 'joinRoom', {'roomCode': code, 'playerName': name})
        if start:
            coordinator.handle(f'sid-{host}', 'startGame', code)
        return code
    return _make
