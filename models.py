"""
CastBoard Database Models
SQLAlchemy ORM models for TVs, Content, Broadcasts and the activity log
"""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
import enum

db = SQLAlchemy()


class TVStatus(enum.Enum):
    """TV lifecycle status (written only by the broadcast session manager)"""
    OFFLINE = 'offline'
    ONLINE = 'online'
    BROADCASTING = 'broadcasting'
    MAINTENANCE = 'maintenance'


class ContentStatus(enum.Enum):
    DRAFT = 'draft'
    ACTIVE = 'active'
    SCHEDULED = 'scheduled'
    ARCHIVED = 'archived'


class BroadcastStatus(enum.Enum):
    ACTIVE = 'active'
    PAUSED = 'paused'
    STOPPED = 'stopped'


class ActivityType(enum.Enum):
    SUCCESS = 'success'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    """Owner of TVs and content (accounts are managed elsewhere)"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def __repr__(self):
        return f'<User {self.email}>'


class TV(db.Model):
    """Networked display device"""
    __tablename__ = 'tvs'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    mac_address = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.Enum(TVStatus), default=TVStatus.OFFLINE, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    # Relationships
    creator = db.relationship('User', backref=db.backref('tvs', lazy='dynamic'))
    broadcasts = db.relationship('Broadcast', backref='tv', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def topic(self):
        """Real-time topic this TV's display subscribes to"""
        return self.mac_address

    def to_dict(self):
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'macAddress': self.mac_address,
            'status': self.status.value,
            'createdAt': _iso(self.created_at),
            'createdById': str(self.created_by_id),
            'createdBy': self.creator.full_name if self.creator else 'Unknown'
        }

    def __repr__(self):
        return f'<TV {self.name} ({self.mac_address})>'


class Content(db.Model):
    """Media record with a target TV list and a playback duration"""
    __tablename__ = 'content'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    video_url = db.Column(db.String(512), nullable=True)
    doc_url = db.Column(db.String(512), nullable=True)
    status = db.Column(db.Enum(ContentStatus), default=ContentStatus.DRAFT, nullable=False)
    duration = db.Column(db.Integer, default=15, nullable=False)  # Seconds
    selected_tvs = db.Column(db.JSON, default=list, nullable=False)  # List of TV ids
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    # Relationships
    creator = db.relationship('User', backref=db.backref('content', lazy='dynamic'))
    broadcasts = db.relationship('Broadcast', backref='content', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def target_ids(self):
        """Target list as a list of ints"""
        return [int(tv_id) for tv_id in (self.selected_tvs or [])]

    def targets(self, tv_id):
        return int(tv_id) in self.target_ids

    def to_dict(self):
        return {
            'id': str(self.id),
            'title': self.title,
            'description': self.description,
            'imageUrl': self.image_url,
            'videoUrl': self.video_url,
            'docUrl': self.doc_url,
            'status': self.status.value,
            'duration': self.duration,
            'selectedTvs': [str(tv_id) for tv_id in self.target_ids],
            'createdAt': _iso(self.created_at),
            'createdById': str(self.created_by_id),
            'createdBy': self.creator.full_name if self.creator else 'Unknown'
        }

    def __repr__(self):
        return f'<Content {self.title}>'


class Broadcast(db.Model):
    """Authoritative "this content is queued on this TV" record"""
    __tablename__ = 'broadcasts'

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey('content.id', ondelete='CASCADE'), nullable=False, index=True)
    tv_id = db.Column(db.Integer, db.ForeignKey('tvs.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.Enum(BroadcastStatus), default=BroadcastStatus.ACTIVE, nullable=False)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    stopped_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_stopped(self):
        return self.status == BroadcastStatus.STOPPED

    def to_dict(self):
        return {
            'id': str(self.id),
            'contentId': str(self.content_id),
            'tvId': str(self.tv_id),
            'status': self.status.value,
            'startedAt': _iso(self.started_at),
            'stoppedAt': _iso(self.stopped_at)
        }

    def __repr__(self):
        return f'<Broadcast Content:{self.content_id} TV:{self.tv_id} {self.status.value}>'


class Activity(db.Model):
    """Append-only activity feed entry"""
    __tablename__ = 'activities'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.Enum(ActivityType), default=ActivityType.INFO, nullable=False)
    message = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': str(self.id),
            'type': self.type.value,
            'message': self.message,
            'createdAt': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<Activity {self.type.value}: {self.message}>'


class BroadcastingActivity(db.Model):
    """Per-day counters for the broadcasting activity chart"""
    __tablename__ = 'broadcasting_activity'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), unique=True, nullable=False, index=True)  # YYYY-MM-DD
    broadcasts = db.Column(db.Integer, default=0, nullable=False)
    content = db.Column(db.Integer, default=0, nullable=False)
    errors = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': str(self.id),
            'date': self.date,
            'broadcasts': self.broadcasts,
            'content': self.content,
            'errors': self.errors,
            'createdAt': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<BroadcastingActivity {self.date}>'
