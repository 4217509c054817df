from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['coordinator'].registry


@rooms.route('/stats', methods=['GET'])
def get_stats():
    return jsonify(_registry().stats())


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    """Read-only snapshot for observers and late joiners.

    Answers of the round in progress are never included, only counts.
    """
    room = _registry().get(room_code)
    if room is None or room.closed:
        return jsonify({'error': 'Room not found'}), 404

    # Include phase durations so clients can show countdowns
    cfg = current_app.config
    durations = {
        'submitting': int(cfg.get('SUBMIT_DURATION_SEC', 60)),
        'voting': int(cfg.get('VOTE_DURATION_SEC', 30)),
        'results': int(cfg.get('RESULTS_DURATION_SEC', 5)),
    }
    with room.lock:
        payload = room.to_dict()
    payload['durations'] = durations
    return jsonify(payload)
