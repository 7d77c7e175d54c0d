"""
Shared fixtures: a fresh application and in-memory database per test, REST
and real-time test clients, and fakes for the display client
"""
import pytest

from app import create_app, socketio
from display_client.api import APIError
from models import db, User

NAMESPACE = '/signage'
SERVER_URL = 'http://castboard.test'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner(app):
    user = User(email='owner@castboard.test', first_name='Test', last_name='Owner')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_tv(client, owner):
    """POST a TV and return its JSON"""
    def _make(name='Lobby TV', mac='tv-1', **extra):
        response = client.post('/api/tvs', json={
            'name': name,
            'macAddress': mac,
            'createdById': str(owner.id),
            **extra
        })
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def make_content(client, owner):
    """POST a content item and return its JSON"""
    def _make(title='Spring promo', **extra):
        body = {'title': title, 'status': 'active', 'createdById': str(owner.id)}
        body.update(extra)
        response = client.post('/api/content', json=body)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make


@pytest.fixture
def connect(app):
    """Open real-time test clients; every client is disconnected afterwards"""
    clients = []

    def _connect(**auth):
        sio_client = socketio.test_client(app, namespace=NAMESPACE, auth=auth or None)
        clients.append(sio_client)
        return sio_client

    yield _connect

    for sio_client in clients:
        if sio_client.is_connected(NAMESPACE):
            sio_client.disconnect(namespace=NAMESPACE)


def event_names(sio_client):
    return [packet['name'] for packet in sio_client.get_received(NAMESPACE)]


# ============================================================================
# DISPLAY CLIENT FAKES
# ============================================================================

class FakeTimer:
    """Records scheduled work instead of running it"""

    def __init__(self):
        self.pending = None  # (seconds, callback)
        self.scheduled = []
        self.jobs = {}

    def schedule_advance(self, seconds, callback):
        self.pending = (seconds, callback)
        self.scheduled.append(seconds)

    def cancel_advance(self):
        self.pending = None

    def has_pending_advance(self):
        return self.pending is not None

    def every(self, seconds, callback, job_id):
        self.jobs[job_id] = (seconds, callback)

    def cancel(self, job_id):
        self.jobs.pop(job_id, None)

    def fire(self):
        """Run the pending advance as if its time had come"""
        assert self.pending is not None, 'no advance pending'
        _, callback = self.pending
        self.pending = None
        callback()


class FakeAPI:
    """In-memory stand-in for CastboardAPI"""

    def __init__(self):
        self.records = []
        self.content = {}
        self.fail_broadcasts = False
        self.broadcast_calls = 0
        self.on_get_broadcasts = None

    def add(self, content_id, status='active', **content):
        content_id = str(content_id)
        self.records.append({'id': str(len(self.records) + 1), 'contentId': content_id, 'status': status})
        content.setdefault('title', f'Item {content_id}')
        self.content.setdefault(content_id, dict(content, id=content_id))

    def get_broadcasts(self, tv_id):
        self.broadcast_calls += 1
        if self.fail_broadcasts:
            raise APIError('server unavailable', 503)
        records = [dict(r) for r in self.records]
        if self.on_get_broadcasts:
            self.on_get_broadcasts()
        return records

    def get_content(self, content_id):
        if str(content_id) not in self.content:
            raise APIError('Content not found', 404)
        return dict(self.content[str(content_id)])


class FlaskSession:
    """requests.Session look-alike that sends CastboardAPI calls to the Flask test client"""

    class Response:
        def __init__(self, response):
            self.status_code = response.status_code
            self._data = response.get_json()

        def json(self):
            return self._data

    def __init__(self, client):
        self.client = client

    def get(self, url, params=None, timeout=None):
        return self.Response(self.client.get(url[len(SERVER_URL):], query_string=params))


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def fake_api():
    return FakeAPI()


@pytest.fixture
def rendered():
    """Renderer that remembers everything it was asked to show"""
    class Renderer(list):
        def __call__(self, item):
            self.append(item)

        def __bool__(self):
            # A renderer is always present, even before it has recorded anything
            return True
    return Renderer()


@pytest.fixture
def flask_session(client):
    return FlaskSession(client)
