"""
Content Routes Blueprint
Content listing and CRUD; every write goes through the change publisher
"""
from flask import Blueprint, request, jsonify, current_app

from routes.errors import handle_error, json_body

content_bp = Blueprint('content', __name__)


@content_bp.route('/content', methods=['GET'])
def list_content():
    """
    List content, optionally filtered

    Query params:
        search: case-insensitive match on title or description
        status: draft | active | scheduled | archived
    """
    try:
        items = current_app.registry.list_content(  # type: ignore
            search=request.args.get('search'),
            status=request.args.get('status')
        )
        return jsonify([item.to_dict() for item in items]), 200
    except Exception as e:
        return handle_error(e, 'listing content')


@content_bp.route('/content/<content_id>', methods=['GET'])
def get_content(content_id):
    """Single content item (used by displays to resolve broadcast records)"""
    try:
        content = current_app.registry.get_content(content_id)  # type: ignore
        return jsonify(content.to_dict()), 200
    except Exception as e:
        return handle_error(e, f'fetching content {content_id}')


@content_bp.route('/content', methods=['POST'])
def create_content():
    """
    Create content

    Request JSON:
    {
        "title": "Spring promo",
        "videoUrl": "/uploads/promo.mp4",
        "duration": 20,
        "status": "active",
        "selectedTvs": ["1", "2"],
        "createdById": "1"
    }
    """
    try:
        content = current_app.change_publisher.create_content(json_body(request))  # type: ignore
        return jsonify(content.to_dict()), 201
    except Exception as e:
        return handle_error(e, 'creating content')


@content_bp.route('/content/<content_id>', methods=['PUT'])
def update_content(content_id):
    try:
        content = current_app.change_publisher.update_content(content_id, json_body(request))  # type: ignore
        return jsonify(content.to_dict()), 200
    except Exception as e:
        return handle_error(e, f'updating content {content_id}')


@content_bp.route('/content/<content_id>', methods=['DELETE'])
def delete_content(content_id):
    try:
        current_app.change_publisher.delete_content(content_id)  # type: ignore
        return jsonify({'message': 'Content deleted successfully'}), 200
    except Exception as e:
        return handle_error(e, f'deleting content {content_id}')
