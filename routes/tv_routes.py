"""
TV Routes Blueprint
TV listing and CRUD; status changes are delegated to the broadcast manager
"""
from flask import Blueprint, request, jsonify, current_app

from routes.errors import handle_error, json_body

tv_bp = Blueprint('tvs', __name__)


@tv_bp.route('/tvs', methods=['GET'])
def list_tvs():
    """
    List TVs, optionally filtered

    Query params:
        search: case-insensitive match on name, description or MAC address
        status: offline | online | broadcasting | maintenance
        mac: exact MAC address (used by displays to find their own record)
    """
    try:
        tvs = current_app.registry.list_tvs(  # type: ignore
            search=request.args.get('search'),
            status=request.args.get('status'),
            mac=request.args.get('mac')
        )
        return jsonify([tv.to_dict() for tv in tvs]), 200
    except Exception as e:
        return handle_error(e, 'listing TVs')


@tv_bp.route('/tvs/<tv_id>', methods=['GET'])
def get_tv(tv_id):
    try:
        tv = current_app.registry.get_tv(tv_id)  # type: ignore
        return jsonify(tv.to_dict()), 200
    except Exception as e:
        return handle_error(e, f'fetching TV {tv_id}')


@tv_bp.route('/tvs', methods=['POST'])
def create_tv():
    """
    Register a TV

    Request JSON:
    {
        "name": "Lobby TV",
        "macAddress": "D4-93-90-39-28-EE",
        "description": "Ground floor",
        "createdById": "1"
    }
    """
    try:
        tv = current_app.change_publisher.create_tv(json_body(request))  # type: ignore
        return jsonify(tv.to_dict()), 201
    except Exception as e:
        return handle_error(e, 'creating TV')


@tv_bp.route('/tvs/<tv_id>', methods=['PUT'])
def update_tv(tv_id):
    """Update a TV; a "status" field is applied as a manual status transition"""
    try:
        data = json_body(request)
        status = data.pop('status', None)
        # Nothing is written unless the whole body is valid
        current_app.registry.check_tv_update(tv_id, data)  # type: ignore
        if status is not None:
            current_app.broadcasts.set_status(tv_id, status)  # type: ignore
        tv = current_app.change_publisher.update_tv(tv_id, data)  # type: ignore
        return jsonify(tv.to_dict()), 200
    except Exception as e:
        return handle_error(e, f'updating TV {tv_id}')


@tv_bp.route('/tvs/<tv_id>', methods=['DELETE'])
def delete_tv(tv_id):
    try:
        current_app.change_publisher.delete_tv(tv_id)  # type: ignore
        return jsonify({'message': 'TV deleted successfully'}), 200
    except Exception as e:
        return handle_error(e, f'deleting TV {tv_id}')
