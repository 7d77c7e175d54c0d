"""
Real-time Event Kinds
Closed set of messages carried over the real-time channel, with wire encoding
and validation at the channel boundary
"""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple


ACTIVITY_TYPES = ('success', 'info', 'warning', 'error')
BROADCAST_ACTIONS = ('started', 'stopped', 'paused', 'resumed', 'status')


class EventValidationError(ValueError):
    """Raised when a message does not match any known event kind"""
    pass


def _require_dict(data, what):
    if not isinstance(data, dict):
        raise EventValidationError(f'{what} must be an object, got {type(data).__name__}')
    return data


def _require_id(data, key, what):
    value = data.get(key)
    if value is None or str(value) == '':
        raise EventValidationError(f'{what} is missing "{key}"')
    return str(value)


# ============================================================================
# STRUCTURAL CHANGE EVENTS
# ============================================================================

@dataclass(frozen=True)
class ChangeEvent:
    """{entity, op, payload} emitted after a successful registry write"""
    payload: Dict[str, Any]

    entity: ClassVar[str] = ''
    op: ClassVar[str] = ''
    required: ClassVar[Tuple[str, ...]] = ('id',)

    @property
    def name(self):
        return f'{self.entity}:{self.op}'

    @property
    def entity_id(self):
        return str(self.payload['id'])

    def to_wire(self):
        return {'entity': self.entity, 'op': self.op, 'payload': dict(self.payload)}

    @classmethod
    def from_wire(cls, data):
        data = _require_dict(data, cls.__name__)
        if data.get('entity') != cls.entity or data.get('op') != cls.op:
            raise EventValidationError(
                f'{cls.__name__} expects {cls.entity}/{cls.op}, got {data.get("entity")}/{data.get("op")}'
            )
        payload = _require_dict(data.get('payload'), f'{cls.__name__} payload')
        for key in cls.required:
            _require_id(payload, key, f'{cls.__name__} payload')
        cls.check_payload(payload)
        return cls(payload=dict(payload))

    @classmethod
    def check_payload(cls, payload):
        pass


class _ContentChange(ChangeEvent):
    entity = 'content'

    @classmethod
    def check_payload(cls, payload):
        targets = payload.get('selectedTvs', [])
        if not isinstance(targets, list):
            raise EventValidationError(f'{cls.__name__} selectedTvs must be a list')

    @property
    def target_ids(self):
        return [str(tv_id) for tv_id in self.payload.get('selectedTvs') or []]

    def targets(self, tv_id):
        return str(tv_id) in self.target_ids


@dataclass(frozen=True)
class ContentCreated(_ContentChange):
    op = 'created'


@dataclass(frozen=True)
class ContentUpdated(_ContentChange):
    op = 'updated'


@dataclass(frozen=True)
class ContentDeleted(_ContentChange):
    op = 'deleted'


@dataclass(frozen=True)
class TVCreated(ChangeEvent):
    entity = 'tv'
    op = 'created'


@dataclass(frozen=True)
class TVUpdated(ChangeEvent):
    entity = 'tv'
    op = 'updated'


@dataclass(frozen=True)
class TVDeleted(ChangeEvent):
    entity = 'tv'
    op = 'deleted'
    required = ('id', 'macAddress')


CHANGE_EVENTS = {
    (cls.entity, cls.op): cls
    for cls in (ContentCreated, ContentUpdated, ContentDeleted, TVCreated, TVUpdated, TVDeleted)
}


def make_change_event(entity, op, payload):
    """Build the typed change event for an (entity, op) pair"""
    try:
        event_cls = CHANGE_EVENTS[(entity, op)]
    except KeyError:
        raise EventValidationError(f'Unknown change event {entity}/{op}')
    return event_cls.from_wire({'entity': entity, 'op': op, 'payload': payload})


# ============================================================================
# OBSERVATIONAL AND BROADCAST EVENTS
# ============================================================================

@dataclass(frozen=True)
class ActivityLogged:
    """One or more activity feed entries"""
    activities: Tuple[Dict[str, Any], ...]

    name: ClassVar[str] = 'activity'

    def to_wire(self):
        return {'activities': [dict(a) for a in self.activities]}

    @classmethod
    def from_wire(cls, data):
        data = _require_dict(data, cls.__name__)
        activities = data.get('activities')
        if not isinstance(activities, list) or not activities:
            raise EventValidationError('ActivityLogged needs a non-empty "activities" list')
        for activity in activities:
            _require_dict(activity, 'activity entry')
            if activity.get('type') not in ACTIVITY_TYPES:
                raise EventValidationError(f'Unknown activity type: {activity.get("type")}')
            if not isinstance(activity.get('message'), str):
                raise EventValidationError('Activity entry needs a "message" string')
        return cls(activities=tuple(dict(a) for a in activities))


@dataclass(frozen=True)
class BroadcastStateChanged:
    """Broadcast records or status of one TV changed"""
    tv_id: str
    action: str
    broadcast_ids: Tuple[str, ...] = ()
    tv_status: Optional[str] = None

    name: ClassVar[str] = 'broadcast:changed'

    def to_wire(self):
        return {
            'tvId': self.tv_id,
            'action': self.action,
            'broadcastIds': list(self.broadcast_ids),
            'tvStatus': self.tv_status
        }

    @classmethod
    def from_wire(cls, data):
        data = _require_dict(data, cls.__name__)
        tv_id = _require_id(data, 'tvId', cls.__name__)
        action = data.get('action')
        if action not in BROADCAST_ACTIONS:
            raise EventValidationError(f'Unknown broadcast action: {action}')
        broadcast_ids = data.get('broadcastIds') or []
        if not isinstance(broadcast_ids, list):
            raise EventValidationError('broadcastIds must be a list')
        return cls(
            tv_id=tv_id,
            action=action,
            broadcast_ids=tuple(str(b) for b in broadcast_ids),
            tv_status=data.get('tvStatus')
        )


@dataclass(frozen=True)
class DirectBroadcast:
    """Ad-hoc message pushed to a single TV topic"""
    payload: Dict[str, Any] = field(default_factory=dict)

    name: ClassVar[str] = 'broadcast'

    def to_wire(self):
        return dict(self.payload)

    @classmethod
    def from_wire(cls, data):
        return cls(payload=dict(_require_dict(data, cls.__name__)))


EVENT_NAMES: List[str] = [f'{entity}:{op}' for entity, op in CHANGE_EVENTS] + [
    ActivityLogged.name,
    BroadcastStateChanged.name,
    DirectBroadcast.name,
]


def parse_event(name, data):
    """
    Validate an incoming message and return its typed event

    Args:
        name: Socket event name (e.g. 'content:created')
        data: Decoded JSON payload

    Raises:
        EventValidationError: if the name is unknown or the payload malformed
    """
    if name == ActivityLogged.name:
        return ActivityLogged.from_wire(data)
    if name == BroadcastStateChanged.name:
        return BroadcastStateChanged.from_wire(data)
    if name == DirectBroadcast.name:
        return DirectBroadcast.from_wire(data)

    entity, _, op = (name or '').partition(':')
    event_cls = CHANGE_EVENTS.get((entity, op))
    if event_cls is None:
        raise EventValidationError(f'Unknown event: {name}')
    return event_cls.from_wire(data)
