"""
Activity Log
Append-only activity feed and daily broadcasting counters, mirrored to the
real-time channel for live dashboards
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

from models import db, Activity, ActivityType, BroadcastingActivity
from utils.events import ActivityLogged

logger = logging.getLogger(__name__)

# Look-back windows accepted by the analytics endpoints
TIME_RANGES = {
    '24h': 1,
    '7d': 7,
    '30d': 30,
    '90d': 90,
    '365d': 365
}
DEFAULT_TIME_RANGE = '7d'
RECENT_ACTIVITY_LIMIT = 10


def range_start(time_range: Optional[str]) -> datetime:
    """Start of the look-back window for a time range string (unknown -> 7 days)"""
    days = TIME_RANGES.get(time_range or DEFAULT_TIME_RANGE, TIME_RANGES[DEFAULT_TIME_RANGE])
    return datetime.utcnow() - timedelta(days=days)


class ActivityLog:
    """Records activity events and publishes them on the event bus"""

    def __init__(self, bus=None):
        self.bus = bus

    def record(self, message: str, activity_type: ActivityType = ActivityType.INFO) -> Activity:
        """
        Append an activity entry and push it to dashboards

        The feed is observational only; a failure to publish is logged by
        the bus and never affects the caller.
        """
        activity = Activity(type=activity_type, message=message)
        db.session.add(activity)
        db.session.commit()

        logger.info(f'Activity ({activity_type.value}): {message}')

        if self.bus is not None:
            self.bus.publish_global(ActivityLogged(activities=(activity.to_dict(),)))

        return activity

    def success(self, message):
        return self.record(message, ActivityType.SUCCESS)

    def info(self, message):
        return self.record(message, ActivityType.INFO)

    def warning(self, message):
        return self.record(message, ActivityType.WARNING)

    def error(self, message):
        return self.record(message, ActivityType.ERROR)

    @staticmethod
    def recent(time_range: Optional[str] = None, limit: int = RECENT_ACTIVITY_LIMIT) -> List[Activity]:
        """Most recent activity entries inside the window, newest first"""
        return Activity.query.filter(
            Activity.created_at >= range_start(time_range)
        ).order_by(Activity.created_at.desc(), Activity.id.desc()).limit(limit).all()

    # ------------------------------------------------------------------
    # Daily broadcasting counters
    # ------------------------------------------------------------------

    @staticmethod
    def count(broadcasts: int = 0, content: int = 0, errors: int = 0, day: Optional[str] = None):
        """Increment today's (or the given day's) counters"""
        day = day or datetime.utcnow().strftime('%Y-%m-%d')
        try:
            row = BroadcastingActivity.query.filter_by(date=day).first()
            if row is None:
                row = BroadcastingActivity(date=day, broadcasts=0, content=0, errors=0)
                db.session.add(row)
            row.broadcasts += broadcasts
            row.content += content
            row.errors += errors
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Failed to update broadcasting activity for {day}: {e}')

    @staticmethod
    def daily_counts(time_range: Optional[str] = None) -> List[Dict]:
        """Counter rows inside the window, oldest first"""
        start_day = range_start(time_range).strftime('%Y-%m-%d')
        rows = BroadcastingActivity.query.filter(
            BroadcastingActivity.date >= start_day
        ).order_by(BroadcastingActivity.date).all()
        return [row.to_dict() for row in rows]
