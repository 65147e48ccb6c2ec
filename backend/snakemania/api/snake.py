from flask import Blueprint, jsonify, request, current_app
from snakemania.services.snake.engine import Direction, key_to_direction
from snakemania.services.snake.session import create_session, end_session, get_session, normalize_client_id
from snakemania.services.snake.store import ScoreStore


snake = Blueprint('snake', __name__)


def _session_or_404(session_id):
    session = get_session(session_id)
    if not session:
        return None, (jsonify({'error': 'Session not found'}), 404)
    return session, None


def _json_object():
    """Request body as a dict; an absent body counts as empty, anything else is None."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _bad_body():
    return jsonify({'error': 'Request body must be a JSON object'}), 400


@snake.route('/sessions', methods=['POST'])
def create_game_session():
    data = _json_object()
    if data is None:
        return _bad_body()
    try:
        client_id = normalize_client_id(data.get('client_id'))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    # No socket disconnect will end this one, so let it expire when idle
    session = create_session(current_app._get_current_object(), client_id=client_id, expires=True)
    return jsonify(session.to_dict()), 201


@snake.route('/sessions/<string:session_id>', methods=['GET'])
def get_game_state(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    return jsonify(session.to_dict())


@snake.route('/sessions/<string:session_id>/direction', methods=['POST'])
def change_direction(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    data = _json_object()
    if data is None:
        return _bad_body()
    # Accept either a direction name or a browser key value
    if 'key' in data:
        direction = key_to_direction(data.get('key'))
        if direction is None:
            # Unrecognized keys are ignored, same as the keyboard listener
            payload = session.to_dict()
            payload['accepted'] = False
            return jsonify(payload)
    else:
        direction = Direction.parse(data.get('direction'))
        if direction is None:
            return jsonify({'error': 'direction must be one of UP, DOWN, LEFT, RIGHT'}), 400
    accepted = session.set_direction(direction)
    payload = session.to_dict()
    payload['accepted'] = accepted
    return jsonify(payload)


@snake.route('/sessions/<string:session_id>/step', methods=['POST'])
def step_game(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    result = session.tick()
    payload = session.to_dict()
    payload['events'] = list(result.events)
    return jsonify(payload)


@snake.route('/sessions/<string:session_id>/restart', methods=['POST'])
def restart_game(session_id):
    session, error = _session_or_404(session_id)
    if error:
        return error
    session.restart()
    return jsonify(session.to_dict())


@snake.route('/sessions/<string:session_id>', methods=['DELETE'])
def delete_game_session(session_id):
    if not end_session(session_id):
        return jsonify({'error': 'Session not found'}), 404
    return jsonify({'ok': True})


@snake.route('/scores/<string:client_id>', methods=['GET'])
def get_high_score(client_id):
    return jsonify({'client_id': client_id, 'high_score': ScoreStore(client_id).get()})
