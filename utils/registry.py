"""
Identity Registry
Persistence of TVs and Content records: lookups, filtered listings, validated
writes and delete cascades
"""
import logging
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from models import db, User, TV, Content, Broadcast, BroadcastStatus, ContentStatus, TVStatus

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base error for registry operations"""
    pass


class ValidationError(RegistryError):
    """Malformed or conflicting input"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFound(RegistryError):
    """Referenced record does not exist"""
    pass


# ============================================================================
# INPUT HELPERS
# ============================================================================

def parse_id(value, field='id'):
    """Coerce an id given as int or numeric string"""
    if isinstance(value, bool):
        raise ValidationError('Invalid input', [{'path': [field], 'message': 'Expected an id'}])
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError('Invalid input', [{'path': [field], 'message': f'Invalid id: {value!r}'}])


def parse_ids(values, field):
    """Coerce a list of ids, preserving order"""
    if not isinstance(values, list):
        raise ValidationError('Invalid input', [{'path': [field], 'message': 'Expected a list of ids'}])
    return [parse_id(value, field) for value in values]


def parse_enum(enum_cls, value, field):
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationError('Invalid input', [{'path': [field], 'message': f'Must be one of: {allowed}'}])


def _lookup_id(value):
    """Path ids that are not numeric simply do not exist"""
    try:
        return parse_id(value)
    except ValidationError:
        return None


def _optional_text(data, key):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError('Invalid input', [{'path': [key], 'message': 'Expected a string'}])
    return value.strip() or None


def _required_text(data, key):
    value = _optional_text(data, key)
    if not value:
        raise ValidationError('Invalid input', [{'path': [key], 'message': f'{key} is required'}])
    return value


def _duration(value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError('Invalid input', [{'path': ['duration'], 'message': 'Duration must be a positive integer'}])
    return value


class Registry:
    """Reads and writes TV and Content records"""

    # ------------------------------------------------------------------
    # Users (owner references only)
    # ------------------------------------------------------------------

    @staticmethod
    def _owner(data):
        if data.get('createdById') is None:
            raise ValidationError('Invalid input', [{'path': ['createdById'], 'message': 'Creator ID is required'}])
        user_id = parse_id(data.get('createdById'), 'createdById')
        if db.session.get(User, user_id) is None:
            raise ValidationError('Invalid input', [{'path': ['createdById'], 'message': 'Unknown creator'}])
        return user_id

    # ------------------------------------------------------------------
    # TVs
    # ------------------------------------------------------------------

    @staticmethod
    def find_tv(tv_id) -> Optional[TV]:
        tv_id = _lookup_id(tv_id)
        return db.session.get(TV, tv_id) if tv_id is not None else None

    def get_tv(self, tv_id) -> TV:
        tv = self.find_tv(tv_id)
        if tv is None:
            raise NotFound('TV not found')
        return tv

    @staticmethod
    def tv_by_mac(mac_address) -> Optional[TV]:
        return TV.query.filter_by(mac_address=mac_address).first()

    @staticmethod
    def list_tvs(search=None, status=None, mac=None) -> List[TV]:
        query = TV.query
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(
                TV.name.ilike(pattern),
                TV.description.ilike(pattern),
                TV.mac_address.ilike(pattern)
            ))
        if status:
            query = query.filter_by(status=parse_enum(TVStatus, status, 'status'))
        if mac:
            query = query.filter_by(mac_address=mac)
        return query.order_by(TV.id).all()

    def _check_tv_unique(self, name=None, mac_address=None, exclude_id=None):
        errors = []
        if name:
            existing = TV.query.filter_by(name=name).first()
            if existing and existing.id != exclude_id:
                errors.append({'path': ['name'], 'message': 'A TV with this name already exists'})
        if mac_address == current_app.config['GLOBAL_TOPIC']:
            # The MAC address doubles as the display's topic
            errors.append({'path': ['macAddress'], 'message': 'This MAC address is reserved'})
        elif mac_address:
            existing = self.tv_by_mac(mac_address)
            if existing and existing.id != exclude_id:
                errors.append({'path': ['macAddress'], 'message': 'A TV with this MAC address already exists'})
        if errors:
            raise ValidationError('Invalid input', errors)

    def create_tv(self, data: Dict[str, Any]) -> TV:
        if not isinstance(data, dict):
            raise ValidationError('No data provided')

        name = _required_text(data, 'name')
        mac_address = _required_text(data, 'macAddress')
        created_by_id = self._owner(data)
        self._check_tv_unique(name, mac_address)

        tv = TV(
            name=name,
            description=_optional_text(data, 'description'),
            mac_address=mac_address,
            created_by_id=created_by_id
        )
        db.session.add(tv)
        self._commit()

        logger.info(f'TV created: {tv.name} ({tv.mac_address})')
        return tv

    def check_tv_update(self, tv_id, data: Dict[str, Any]):
        """
        Validate an update without writing anything

        Returns:
            (tv, name, mac_address) with name/mac None when not being changed
        """
        tv = self.get_tv(tv_id)
        if not isinstance(data, dict):
            raise ValidationError('No data provided')

        name = _optional_text(data, 'name') if 'name' in data else None
        mac_address = _optional_text(data, 'macAddress') if 'macAddress' in data else None
        if 'description' in data:
            _optional_text(data, 'description')
        self._check_tv_unique(name, mac_address, exclude_id=tv.id)
        return tv, name, mac_address

    def update_tv(self, tv_id, data: Dict[str, Any]) -> TV:
        """Update descriptive fields; status belongs to the broadcast manager"""
        tv, name, mac_address = self.check_tv_update(tv_id, data)

        if name:
            tv.name = name
        if mac_address:
            tv.mac_address = mac_address
        if 'description' in data:
            tv.description = _optional_text(data, 'description')
        self._commit()

        logger.info(f'TV updated: {tv.name}')
        return tv

    def delete_tv(self, tv_id) -> Dict[str, Any]:
        """
        Delete a TV without leaving dangling assignments

        Removes the TV from every content target list and drops its
        broadcast records. Returns a snapshot of the deleted TV.
        """
        tv = self.get_tv(tv_id)
        snapshot = tv.to_dict()

        for content in Content.query.all():
            if content.targets(tv.id):
                content.selected_tvs = [t for t in content.target_ids if t != tv.id]
        Broadcast.query.filter_by(tv_id=tv.id).delete()
        db.session.delete(tv)
        self._commit()

        logger.info(f'TV deleted: {snapshot["name"]} ({snapshot["macAddress"]})')
        return snapshot

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @staticmethod
    def find_content(content_id) -> Optional[Content]:
        content_id = _lookup_id(content_id)
        return db.session.get(Content, content_id) if content_id is not None else None

    def get_content(self, content_id) -> Content:
        content = self.find_content(content_id)
        if content is None:
            raise NotFound('Content not found')
        return content

    @staticmethod
    def list_content(search=None, status=None) -> List[Content]:
        query = Content.query
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Content.title.ilike(pattern), Content.description.ilike(pattern)))
        if status:
            query = query.filter_by(status=parse_enum(ContentStatus, status, 'status'))
        return query.order_by(Content.id).all()

    @staticmethod
    def content_targeting(tv_id) -> List[Content]:
        """All content whose target list includes a TV"""
        return [content for content in Content.query.order_by(Content.id).all() if content.targets(tv_id)]

    def _targets(self, data):
        tv_ids = parse_ids(data.get('selectedTvs'), 'selectedTvs')
        unknown = [tv_id for tv_id in tv_ids if db.session.get(TV, tv_id) is None]
        if unknown:
            raise ValidationError('Invalid input', [
                {'path': ['selectedTvs'], 'message': f'Unknown TV id(s): {", ".join(map(str, unknown))}'}
            ])
        # Keep first occurrence only
        return list(dict.fromkeys(tv_ids))

    def create_content(self, data: Dict[str, Any]) -> Content:
        if not isinstance(data, dict):
            raise ValidationError('No data provided')

        content = Content(
            title=_required_text(data, 'title'),
            description=_optional_text(data, 'description'),
            image_url=_optional_text(data, 'imageUrl'),
            video_url=_optional_text(data, 'videoUrl'),
            doc_url=_optional_text(data, 'docUrl'),
            status=parse_enum(ContentStatus, data['status'], 'status') if data.get('status') else ContentStatus.DRAFT,
            duration=_duration(data['duration']) if data.get('duration') is not None
            else current_app.config['DEFAULT_CONTENT_DURATION'],
            selected_tvs=self._targets(data) if data.get('selectedTvs') is not None else [],
            created_by_id=self._owner(data)
        )
        db.session.add(content)
        self._commit()

        logger.info(f'Content created: {content.title} (targets: {content.target_ids})')
        return content

    def update_content(self, content_id, data: Dict[str, Any]) -> Content:
        content = self.get_content(content_id)
        if not isinstance(data, dict):
            raise ValidationError('No data provided')

        if 'title' in data:
            content.title = _required_text(data, 'title')
        for key, attr in (('description', 'description'), ('imageUrl', 'image_url'),
                          ('videoUrl', 'video_url'), ('docUrl', 'doc_url')):
            if key in data:
                setattr(content, attr, _optional_text(data, key))
        if data.get('status'):
            content.status = parse_enum(ContentStatus, data['status'], 'status')
        if 'duration' in data:
            content.duration = _duration(data['duration'])
        if 'selectedTvs' in data:
            content.selected_tvs = self._targets(data)
        self._commit()

        logger.info(f'Content updated: {content.title} (targets: {content.target_ids})')
        return content

    def delete_content(self, content_id) -> Dict[str, Any]:
        """Delete a content item and its broadcast records; returns a snapshot"""
        content = self.get_content(content_id)
        snapshot = content.to_dict()

        Broadcast.query.filter_by(content_id=content.id).delete()
        db.session.delete(content)
        self._commit()

        logger.info(f'Content deleted: {snapshot["title"]}')
        return snapshot

    # ------------------------------------------------------------------
    # Broadcast records (read side)
    # ------------------------------------------------------------------

    def broadcasts_for_tv(self, tv_id) -> List[Broadcast]:
        tv = self.get_tv(tv_id)
        return Broadcast.query.filter_by(tv_id=tv.id).order_by(Broadcast.id).all()

    @staticmethod
    def stats() -> Dict[str, int]:
        return {
            'totalTvs': TV.query.count(),
            'activeContent': Content.query.filter_by(status=ContentStatus.ACTIVE).count(),
            'broadcasting': Broadcast.query.filter_by(status=BroadcastStatus.ACTIVE).count(),
            'users': User.query.count()
        }

    @staticmethod
    def _commit():
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ValidationError('Invalid input', [{'path': [], 'message': str(e.orig)}])
