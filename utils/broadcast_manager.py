"""
Broadcast Session Manager
Owns Broadcast records and TV status transitions: start, stop, pause, resume
and target-list synchronisation
"""
from datetime import datetime
from typing import Iterable, List
import logging

from models import db, TV, Content, Broadcast, ActivityType, BroadcastStatus, TVStatus
from utils.events import BroadcastStateChanged
from utils.registry import Registry, ValidationError, parse_id, parse_ids

logger = logging.getLogger(__name__)

# Manual status changes (heartbeats, operator edits) must follow this table.
# Broadcast commands set their target status directly.
ALLOWED_TRANSITIONS = {
    TVStatus.OFFLINE: {TVStatus.ONLINE},
    TVStatus.ONLINE: {TVStatus.BROADCASTING, TVStatus.OFFLINE},
    TVStatus.BROADCASTING: {TVStatus.MAINTENANCE, TVStatus.ONLINE},
    TVStatus.MAINTENANCE: {TVStatus.ONLINE, TVStatus.OFFLINE},
}


class BroadcastError(Exception):
    """Base error for broadcast commands"""
    pass


class BroadcastValidationError(BroadcastError):
    """Caller error: malformed or empty command"""
    pass


class TVNotFound(BroadcastError):
    pass


class InvalidTransition(BroadcastError):
    pass


def _describe(error):
    """Flatten a registry ValidationError into one message"""
    return '; '.join(detail['message'] for detail in error.errors) or error.message


class BroadcastSessionManager:
    """
    Applies broadcast commands per TV

    Writes are committed one record at a time with no surrounding
    transaction: a failure part-way through leaves the earlier records in
    place and re-raises, and the caller must re-query before retrying.
    """

    def __init__(self, bus=None, activity=None, registry=None, auto_broadcast=True):
        self.bus = bus
        self.activity = activity
        self.registry = registry or Registry()
        self.auto_broadcast = auto_broadcast

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tv(self, tv_id) -> TV:
        tv = self.registry.find_tv(tv_id)
        if tv is None:
            raise TVNotFound(f'TV not found: {tv_id}')
        return tv

    @staticmethod
    def _records(tv, *statuses) -> List[Broadcast]:
        return Broadcast.query.filter(
            Broadcast.tv_id == tv.id,
            Broadcast.status.in_(statuses)
        ).order_by(Broadcast.id).all()

    def _commit(self):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            if self.activity is not None:
                self.activity.count(errors=1)
            raise

    def _notify(self, tv, action, records, message=None):
        event = BroadcastStateChanged(
            tv_id=str(tv.id),
            action=action,
            broadcast_ids=tuple(str(r.id) for r in records),
            tv_status=tv.status.value
        )
        if self.bus is not None:
            self.bus.publish(tv.topic, event)
            self.bus.publish_global(event)
        if message and self.activity is not None:
            activity_type = ActivityType.SUCCESS if action == 'started' else ActivityType.INFO
            self.activity.record(message, activity_type)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, tv_id, content_ids: Iterable) -> List[Broadcast]:
        """
        Create one active record per content id (in input order) and set the
        TV to broadcasting

        Raises:
            BroadcastValidationError: empty or malformed content id list
            TVNotFound: unknown TV
        """
        content_ids = list(content_ids) if content_ids is not None else []
        if not content_ids:
            raise BroadcastValidationError('At least one content id is required')
        try:
            content_ids = [parse_id(cid, 'contentId') for cid in content_ids]
        except ValidationError as e:
            raise BroadcastValidationError(_describe(e))

        tv = self._tv(tv_id)
        missing = [cid for cid in content_ids if db.session.get(Content, cid) is None]
        if missing:
            raise BroadcastValidationError(f'Unknown content id(s): {", ".join(map(str, missing))}')

        records = []
        for content_id in content_ids:
            record = Broadcast(content_id=content_id, tv_id=tv.id, status=BroadcastStatus.ACTIVE)
            db.session.add(record)
            self._commit()
            records.append(record)

        tv.status = TVStatus.BROADCASTING
        self._commit()

        if self.activity is not None:
            self.activity.count(broadcasts=len(records))
        logger.info(f'Started {len(records)} broadcast(s) on TV {tv.name}')
        self._notify(tv, 'started', records, f'{tv.name} started broadcasting')
        return records

    def start_many(self, tv_ids, content_ids) -> List[Broadcast]:
        """Cross product of TVs and content, TV by TV"""
        try:
            tv_ids = parse_ids(tv_ids, 'tvIds')
            content_ids = parse_ids(content_ids, 'contentId')
        except ValidationError as e:
            raise BroadcastValidationError(_describe(e))
        if not tv_ids:
            raise BroadcastValidationError('At least one TV id is required')
        if not content_ids:
            raise BroadcastValidationError('At least one content id is required')

        # Fail fast on unknown TVs before writing anything
        for tv_id in tv_ids:
            self._tv(tv_id)

        records = []
        for tv_id in tv_ids:
            records.extend(self.start(tv_id, content_ids))
        return records

    def stop(self, tv_id) -> List[Broadcast]:
        """
        Stop every non-stopped record of a TV

        Does not change the TV status. Stopping a TV with nothing playing
        returns an empty list.
        """
        tv = self._tv(tv_id)
        records = self._records(tv, BroadcastStatus.ACTIVE, BroadcastStatus.PAUSED)
        if not records:
            logger.debug(f'Stop on TV {tv.name}: nothing to stop')
            return []

        self._mark_stopped(records)
        logger.info(f'Stopped {len(records)} broadcast(s) on TV {tv.name}')
        self._notify(tv, 'stopped', records, f'{tv.name} stopped broadcasting')
        return records

    def stop_records(self, broadcast_ids) -> List[Broadcast]:
        """Stop specific records by id; unknown or already stopped ids are skipped"""
        try:
            broadcast_ids = parse_ids(broadcast_ids, 'broadcastIds')
        except ValidationError as e:
            raise BroadcastValidationError(_describe(e))

        records = []
        for broadcast_id in broadcast_ids:
            record = db.session.get(Broadcast, broadcast_id)
            if record is None:
                logger.warning(f'Stop requested for unknown broadcast {broadcast_id}')
                continue
            if record.is_stopped:
                continue
            records.append(record)

        self._mark_stopped(records)

        by_tv = {}
        for record in records:
            by_tv.setdefault(record.tv_id, []).append(record)
        for tv_id, tv_records in by_tv.items():
            tv = db.session.get(TV, tv_id)
            if tv is not None:
                self._notify(tv, 'stopped', tv_records, f'{tv.name} stopped broadcasting')
        return records

    def _mark_stopped(self, records):
        for record in records:
            record.status = BroadcastStatus.STOPPED
            record.stopped_at = datetime.utcnow()
            self._commit()

    def pause_by_device(self, tv_id) -> List[Broadcast]:
        """Pause every active record of a TV and put it in maintenance"""
        tv = self._tv(tv_id)
        records = self._records(tv, BroadcastStatus.ACTIVE)
        for record in records:
            record.status = BroadcastStatus.PAUSED
            self._commit()

        tv.status = TVStatus.MAINTENANCE
        self._commit()

        logger.info(f'Paused {len(records)} broadcast(s) on TV {tv.name}')
        self._notify(tv, 'paused', records, f'{tv.name} paused for maintenance')
        return records

    def resume_by_device(self, tv_id) -> List[Broadcast]:
        """Resume paused records; the TV goes back to broadcasting only if any resumed"""
        tv = self._tv(tv_id)
        records = self._records(tv, BroadcastStatus.PAUSED)
        for record in records:
            record.status = BroadcastStatus.ACTIVE
            self._commit()

        if records:
            tv.status = TVStatus.BROADCASTING
            self._commit()

        logger.info(f'Resumed {len(records)} broadcast(s) on TV {tv.name}')
        self._notify(tv, 'resumed', records, f'{tv.name} resumed broadcasting' if records else None)
        return records

    def set_status(self, tv_id, status) -> TV:
        """
        Manual status change (heartbeat or operator edit)

        Raises:
            InvalidTransition: when the change is not in ALLOWED_TRANSITIONS
        """
        tv = self._tv(tv_id)
        if not isinstance(status, TVStatus):
            try:
                status = TVStatus(str(status).lower())
            except ValueError:
                raise BroadcastValidationError(f'Unknown TV status: {status}')

        if status == tv.status:
            return tv
        if status not in ALLOWED_TRANSITIONS[tv.status]:
            raise InvalidTransition(f'Cannot change TV status from {tv.status.value} to {status.value}')

        previous = tv.status
        tv.status = status
        self._commit()

        logger.info(f'TV {tv.name} status: {previous.value} -> {status.value}')
        self._notify(tv, 'status', [], f'{tv.name} is now {status.value}')
        return tv

    # ------------------------------------------------------------------
    # Target-list synchronisation
    # ------------------------------------------------------------------

    def sync_targets(self, content, previous_targets=()) -> List[Broadcast]:
        """
        Follow a content item's target list after a create or update

        Newly targeted TVs start broadcasting the content unless a live
        record for the pair exists; TVs dropped from the list stop it.
        Returns the records that were started.
        """
        if not self.auto_broadcast:
            return []

        previous = {int(tv_id) for tv_id in previous_targets or ()}
        current = content.target_ids
        started = []

        for tv_id in current:
            live = Broadcast.query.filter(
                Broadcast.tv_id == tv_id,
                Broadcast.content_id == content.id,
                Broadcast.status != BroadcastStatus.STOPPED
            ).first()
            if live is None:
                started.extend(self.start(tv_id, [content.id]))

        for tv_id in previous - set(current):
            tv = db.session.get(TV, tv_id)
            if tv is None:
                continue
            records = Broadcast.query.filter(
                Broadcast.tv_id == tv_id,
                Broadcast.content_id == content.id,
                Broadcast.status != BroadcastStatus.STOPPED
            ).all()
            if records:
                self._mark_stopped(records)
                self._notify(tv, 'stopped', records, f'{tv.name} stopped broadcasting')

        return started
