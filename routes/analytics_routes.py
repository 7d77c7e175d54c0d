"""
Analytics Routes Blueprint
Dashboard statistics, recent activity feed and daily broadcasting counters
"""
from flask import Blueprint, request, jsonify, current_app

from routes.errors import handle_error

analytics_bp = Blueprint('analytics', __name__)


@analytics_bp.route('/stats', methods=['GET'])
def stats():
    try:
        return jsonify(current_app.registry.stats()), 200  # type: ignore
    except Exception as e:
        return handle_error(e, 'computing stats')


@analytics_bp.route('/activity', methods=['GET'])
def recent_activity():
    """Latest activity entries (newest first) within ?timeRange= (default 7d)"""
    try:
        activities = current_app.activity_log.recent(request.args.get('timeRange'))  # type: ignore
        return jsonify([activity.to_dict() for activity in activities]), 200
    except Exception as e:
        return handle_error(e, 'fetching activity')


@analytics_bp.route('/analytics/broadcasting-activity', methods=['GET'])
def broadcasting_activity():
    """Per-day broadcast/content/error counters within ?timeRange= (24h, 7d, 30d, 90d, 365d)"""
    try:
        return jsonify(current_app.activity_log.daily_counts(request.args.get('timeRange'))), 200  # type: ignore
    except Exception as e:
        return handle_error(e, 'fetching broadcasting activity')
