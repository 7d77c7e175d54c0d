"""
Broadcast Routes Blueprint
Start/stop/pause/resume commands and the per-TV broadcast record listing
"""
from flask import Blueprint, request, jsonify, current_app

from routes.errors import handle_error, json_body

broadcast_bp = Blueprint('broadcast', __name__)


def _as_list(value):
    """Accept a single id where a list is expected"""
    if value is None:
        return None
    return value if isinstance(value, list) else [value]


@broadcast_bp.route('/broadcast', methods=['POST'])
def start_broadcast():
    """
    Start broadcasting content on TVs (cross product)

    Request JSON:
    {
        "contentId": ["3", "4"],
        "tvIds": ["1"]
    }

    Response JSON:
    {
        "broadcasts": [...],
        "message": "Broadcasting started successfully"
    }
    """
    try:
        data = json_body(request)
        content_ids = _as_list(data.get('contentId'))
        tv_ids = _as_list(data.get('tvIds'))
        if not content_ids or not tv_ids:
            return jsonify({
                'message': 'Invalid input',
                'errors': [{'path': ['contentId' if not content_ids else 'tvIds'],
                            'message': 'A non-empty list is required'}]
            }), 400

        records = current_app.broadcasts.start_many(tv_ids, content_ids)  # type: ignore
        return jsonify({
            'broadcasts': [record.to_dict() for record in records],
            'message': 'Broadcasting started successfully'
        }), 200
    except Exception as e:
        return handle_error(e, 'starting broadcast')


@broadcast_bp.route('/broadcast/stop', methods=['POST'])
def stop_broadcast():
    """Stop specific broadcast records"""
    try:
        broadcast_ids = _as_list(json_body(request).get('broadcastIds'))
        if broadcast_ids is None:
            return jsonify({
                'message': 'Invalid input',
                'errors': [{'path': ['broadcastIds'], 'message': 'A list of broadcast ids is required'}]
            }), 400

        records = current_app.broadcasts.stop_records(broadcast_ids)  # type: ignore
        return jsonify({
            'broadcasts': [record.to_dict() for record in records],
            'message': 'Broadcasting stopped successfully'
        }), 200
    except Exception as e:
        return handle_error(e, 'stopping broadcast')


def _tv_command(command, message):
    try:
        tv_id = json_body(request).get('tvId')
        if tv_id is None:
            return jsonify({
                'message': 'Invalid input',
                'errors': [{'path': ['tvId'], 'message': 'tvId is required'}]
            }), 400

        records = command(tv_id)
        return jsonify({
            'broadcasts': [record.to_dict() for record in records],
            'message': message
        }), 200
    except Exception as e:
        return handle_error(e, message.lower())


@broadcast_bp.route('/broadcast/stop-by-tv', methods=['POST'])
def stop_by_tv():
    """Stop everything on one TV (no-op when nothing is playing)"""
    return _tv_command(current_app.broadcasts.stop, 'Broadcasting stopped successfully')  # type: ignore


@broadcast_bp.route('/broadcast/pause-by-tv', methods=['POST'])
def pause_by_tv():
    return _tv_command(current_app.broadcasts.pause_by_device, 'Broadcasting paused successfully')  # type: ignore


@broadcast_bp.route('/broadcast/resume-by-tv', methods=['POST'])
def resume_by_tv():
    return _tv_command(current_app.broadcasts.resume_by_device, 'Broadcasting resumed successfully')  # type: ignore


@broadcast_bp.route('/broadcast/push', methods=['POST'])
def push_to_tv():
    """
    Push an ad-hoc 'broadcast' message to one TV's topic

    Request JSON:
    {
        "tvId": "1",
        "payload": {"reason": "refresh"}
    }
    """
    try:
        data = json_body(request)
        tv = current_app.registry.get_tv(data.get('tvId'))  # type: ignore
        payload = data.get('payload') if isinstance(data.get('payload'), dict) else {}
        delivered = current_app.event_bus.send_direct(tv.topic, payload)  # type: ignore
        return jsonify({'delivered': delivered, 'message': 'Message pushed'}), 200
    except Exception as e:
        return handle_error(e, 'pushing message')


@broadcast_bp.route('/broadcasts/<tv_id>', methods=['GET'])
def list_broadcasts(tv_id):
    """All broadcast records for a TV, oldest first"""
    try:
        records = current_app.registry.broadcasts_for_tv(tv_id)  # type: ignore
        return jsonify([record.to_dict() for record in records]), 200
    except Exception as e:
        return handle_error(e, f'listing broadcasts for TV {tv_id}')
