"""
Event Bus
Best-effort publish/subscribe between the server and connected dashboards and
displays, layered on Flask-SocketIO rooms
"""
import logging
from flask_socketio import join_room

from utils.events import DirectBroadcast
from utils.topic_registry import TopicRegistry

logger = logging.getLogger(__name__)

DISPLAY = 'display'
DASHBOARD = 'dashboard'


class AdmissionError(Exception):
    """Raised when a connecting client presents no usable identifier"""
    pass


class EventBus:
    """
    Fire-and-forget delivery to the subscribers of a topic

    Delivery is at-most-once with no persistence: a client that is not
    connected when an event is published never sees it.
    """

    def __init__(self, socketio, namespace, global_topic, registry=None):
        self.socketio = socketio
        self.namespace = namespace
        self.global_topic = global_topic
        self.registry = registry if registry is not None else TopicRegistry()

    # ------------------------------------------------------------------
    # Connection admission
    # ------------------------------------------------------------------

    def identify(self, auth):
        """
        Work out who a connecting client is from its handshake auth

        Returns:
            (kind, identity) tuple

        Raises:
            AdmissionError: if no identifier was presented, or the identifier
                            is the global topic's name
        """
        auth = auth if isinstance(auth, dict) else {}
        mac = str(auth.get('macAddress') or '').strip()
        if mac:
            kind, identity = DISPLAY, mac
        else:
            kind, identity = DASHBOARD, str(auth.get('clientId') or '').strip()
            if not identity:
                raise AdmissionError('Connection requires a macAddress or clientId')

        if identity == self.global_topic:
            raise AdmissionError(f'Identifier {identity!r} is reserved')
        return kind, identity

    def admit(self, sid, auth):
        """
        Admit a session and subscribe it to its topics

        Displays join their own device topic and the global topic; dashboards
        join the global topic only.
        """
        kind, identity = self.identify(auth)
        topics = [identity, self.global_topic] if kind == DISPLAY else [self.global_topic]

        for topic in topics:
            join_room(topic, sid=sid, namespace=self.namespace)
        self.registry.add(sid, identity, kind, topics)

        logger.info(f'{kind.title()} connected: {identity} (SID: {sid}, topics: {topics})')
        return kind, identity, topics

    def release(self, sid):
        """Forget a disconnected session"""
        session = self.registry.remove(sid)
        if session:
            logger.info(f'{session["kind"].title()} disconnected: {session["identity"]} (SID: {sid})')
        return session

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, topic, event):
        """
        Deliver an event to every session currently subscribed to a topic

        Returns:
            Number of sessions addressed (0 when nobody is listening)
        """
        subscribers = self.registry.subscribers(topic)
        if not subscribers:
            logger.debug(f'No subscribers for {event.name} on topic {topic}')
            return 0

        try:
            self.socketio.emit(event.name, event.to_wire(), room=topic, namespace=self.namespace)
        except Exception as e:
            logger.error(f'Failed to publish {event.name} to {topic}: {e}')
            return 0

        logger.debug(f'Published {event.name} to {topic} ({len(subscribers)} subscriber(s))')
        return len(subscribers)

    def publish_global(self, event):
        return self.publish(self.global_topic, event)

    def send_direct(self, topic, payload):
        """Push an ad-hoc 'broadcast' message to a single device topic"""
        return self.publish(topic, DirectBroadcast(payload=dict(payload or {})))

    def close_topic(self, topic):
        """Drop every subscription to a topic (e.g. the TV was deleted)"""
        sids = self.registry.drop_topic(topic)
        if not sids:
            return 0
        try:
            self.socketio.close_room(topic, namespace=self.namespace)
        except Exception as e:
            logger.error(f'Failed to close topic {topic}: {e}')
        logger.info(f'Closed topic {topic} ({len(sids)} subscriber(s))')
        return len(sids)
