"""
Topic Registry
Tracks which connected session belongs to which real-time topic
"""
import threading


class TopicRegistry:
    """
    Topic -> subscriber map for one server instance

    Mutated only on connect/disconnect and read on publish. A single lock
    makes each connect/disconnect atomic relative to a publish snapshot.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._topics = {}    # topic -> set of sids
        self._sessions = {}  # sid -> {'identity': str, 'kind': str, 'topics': set}

    def add(self, sid, identity, kind, topics):
        """Register a session under one or more topics"""
        with self._lock:
            session = self._sessions.setdefault(sid, {'identity': identity, 'kind': kind, 'topics': set()})
            for topic in topics:
                self._topics.setdefault(topic, set()).add(sid)
                session['topics'].add(topic)

    def remove(self, sid):
        """Drop a session from every topic; returns its record or None"""
        with self._lock:
            session = self._sessions.pop(sid, None)
            if session is None:
                return None
            for topic in session['topics']:
                members = self._topics.get(topic)
                if members is None:
                    continue
                members.discard(sid)
                if not members:
                    del self._topics[topic]
            return session

    def drop_topic(self, topic):
        """Forget a topic entirely; returns the sids that were subscribed"""
        with self._lock:
            sids = self._topics.pop(topic, set())
            for sid in sids:
                session = self._sessions.get(sid)
                if session:
                    session['topics'].discard(topic)
            return set(sids)

    def subscribers(self, topic):
        with self._lock:
            return set(self._topics.get(topic, ()))

    def topics_for(self, sid):
        with self._lock:
            session = self._sessions.get(sid)
            return set(session['topics']) if session else set()

    def session(self, sid):
        with self._lock:
            session = self._sessions.get(sid)
            return dict(session, topics=set(session['topics'])) if session else None

    def is_connected(self, identity):
        """True if any live session presented this identity"""
        with self._lock:
            return any(s['identity'] == identity for s in self._sessions.values())

    def __len__(self):
        with self._lock:
            return len(self._sessions)
