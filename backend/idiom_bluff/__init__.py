from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from idiom_bluff.main import main
    flask_app.register_blueprint(main)

    from idiom_bluff.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    flask_app.extensions['coordinator'] = build_coordinator(flask_app)

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from idiom_bluff.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('show-deck')
    def show_deck_command():
        """Prints the idiom deck a new room plays through."""
        from idiom_bluff.deck import default_deck
        rounds = default_deck.deal(flask_app.config.get('ROUNDS_PER_GAME', 0))
        for number, idiom in enumerate(rounds, start=1):
            click.echo(f'{number:>2}. {idiom}')

    flask_app.cli.add_command(show_deck_command)

    return flask_app


def build_coordinator(flask_app):
    """Wire registry, round state machine, timers and the socket channel."""
    from idiom_bluff.broadcast import SocketIOChannel
    from idiom_bluff.coordinator import SessionCoordinator
    from idiom_bluff.registry import RoomRegistry, generate_room_code
    from idiom_bluff.services.games.rounds import RoundStateMachine
    from idiom_bluff.services.games.scheduler import StageScheduler

    cfg = flask_app.config
    logger = flask_app.logger
    code_length = int(cfg.get('ROOM_CODE_LENGTH', 6))

    registry = RoomRegistry(
        code_generator=lambda: generate_room_code(code_length),
        rounds_per_game=int(cfg.get('ROUNDS_PER_GAME', 0)),
        max_players=int(cfg.get('MAX_PLAYERS', 12)),
        max_name_length=int(cfg.get('MAX_NAME_LENGTH', 24)),
        logger=logger,
    )
    # Timers are not started in tests unless explicitly enabled
    scheduler = StageScheduler(
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
        logger=logger,
        enabled=not cfg.get('TESTING') or bool(cfg.get('ENABLE_SCHEDULER_IN_TESTS')),
        heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
    )
    machine = RoundStateMachine(settings=cfg, logger=logger)
    return SessionCoordinator(registry, machine, scheduler, SocketIOChannel(socketio), logger=logger)
