"""
API error translation shared by the REST blueprints
"""
from flask import current_app, jsonify

from models import db
from utils.broadcast_manager import BroadcastValidationError, InvalidTransition, TVNotFound
from utils.registry import NotFound, ValidationError


def handle_error(error, action='processing request'):
    """Turn an exception raised by the core into a JSON response"""
    db.session.rollback()

    if isinstance(error, ValidationError):
        return jsonify({'message': error.message, 'errors': error.errors}), 400
    if isinstance(error, BroadcastValidationError):
        return jsonify({'message': 'Invalid input', 'errors': [{'path': [], 'message': str(error)}]}), 400
    if isinstance(error, (NotFound, TVNotFound)):
        return jsonify({'message': str(error)}), 404
    if isinstance(error, InvalidTransition):
        return jsonify({'message': str(error)}), 409

    current_app.logger.error(f'Error {action}: {error}')
    return jsonify({'message': 'Internal server error'}), 500


def json_body(request):
    """Request JSON as a dict (empty dict when absent or not an object)"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
