import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Browser origins allowed to open a socket (comma separated)
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',') if o.strip()]
    # Phase timers (seconds)
    SUBMIT_DURATION_SEC = int(os.environ.get('SUBMIT_DURATION_SEC', '60'))
    VOTE_DURATION_SEC = int(os.environ.get('VOTE_DURATION_SEC', '30'))
    RESULTS_DURATION_SEC = int(os.environ.get('RESULTS_DURATION_SEC', '5'))
    # Room limits
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '3'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '12'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # 0 plays through the whole deck
    ROUNDS_PER_GAME = int(os.environ.get('ROUNDS_PER_GAME', '0'))
    # Scoring
    CORRECT_ANSWER_POINTS = int(os.environ.get('CORRECT_ANSWER_POINTS', '1000'))
    DECEPTION_POINTS = int(os.environ.get('DECEPTION_POINTS', '500'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
