from flask import Blueprint, Response, current_app, jsonify, request

from voxelrooms import events
from voxelrooms.errors import ActionError
from voxelrooms.services.mutations import parse_action
from voxelrooms.services.sessions import StreamSession

rooms = Blueprint('rooms', __name__)

STREAM_HEADERS = {
    'Cache-Control': 'no-cache, no-transform',
    'Connection': 'keep-alive',
    # Stop reverse proxies from buffering the stream
    'X-Accel-Buffering': 'no',
}


@rooms.route('/<string:room_id>', methods=['GET'])
def subscribe(room_id):
    """Open the event stream for a room: an init snapshot, then live events."""
    cfg = current_app.config
    name = (request.args.get('name') or '').strip() or None
    session = StreamSession(
        current_app.extensions['room_store'],
        current_app.extensions['subscriptions'],
        room_id,
        name=name,
        queue_size=int(cfg.get('STREAM_QUEUE_SIZE', 256)),
        retry_ms=int(cfg.get('STREAM_RETRY_MS', 3000)),
    ).open()

    keepalive = float(cfg.get('STREAM_KEEPALIVE_SEC', 15)) or None
    response = Response(
        session.frames(keepalive=keepalive),
        mimetype='text/event-stream',
        headers=STREAM_HEADERS,
    )
    # Runs even if the client goes away before the first frame is pulled
    response.call_on_close(session.close)
    return response


@rooms.route('/<string:room_id>', methods=['POST'])
def submit(room_id):
    data = request.get_json(silent=True)
    try:
        action = parse_action(data)
    except ActionError as exc:
        current_app.logger.info(f"[submit-reject] room={room_id} status={exc.status_code} reason={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    current_app.logger.info(f"[submit] room={room_id} action={action.kind} sender={action.sender or 'unknown'}")
    try:
        current_app.extensions['mutations'].submit(room_id, action)
    except ActionError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception(f"[submit-error] room={room_id} action={action.kind}")
        return jsonify({'error': 'Internal server error'}), 500
    return jsonify({'success': True})


@rooms.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    with current_app.extensions['room_store'].locked(room_id) as room:
        payload = events.init_event(room)
        payload['subscriberCount'] = len(room.subscribers)
    return jsonify(payload)
