"""
Real-time channel (display side)
python-socketio client that identifies the TV by MAC address and hands
validated events to the player
"""
from typing import Callable, Optional
import logging
import time

import socketio

from utils.events import EVENT_NAMES, EventValidationError, parse_event

logger = logging.getLogger(__name__)

# Reconnection policy: up to 10 attempts, 1 s initial delay capped at 5 s
RECONNECTION_ATTEMPTS = 10
RECONNECTION_DELAY = 1
RECONNECTION_DELAY_MAX = 5
CONNECT_TIMEOUT = 10
# After this long without a connection the client's own reconnection has given up
RECONNECT_GIVE_UP = RECONNECTION_ATTEMPTS * (RECONNECTION_DELAY_MAX + CONNECT_TIMEOUT)


class DisplayChannel:
    """
    Subscription of one display to its own topic and the global topic

    Missed events are never replayed, so every (re)connect calls on_connect
    and the caller is expected to refresh its full state there.
    """

    def __init__(self, server_url, mac_address, namespace,
                 on_event: Callable, on_connect: Optional[Callable] = None,
                 on_identified: Optional[Callable] = None, client=None):
        self.server_url = server_url
        self.mac_address = mac_address
        self.namespace = namespace
        self.on_event = on_event
        self.on_connect = on_connect
        self.on_identified = on_identified
        self.ever_connected = False
        self.disconnected_at = None

        self.sio = client or socketio.Client(
            reconnection=True,
            reconnection_attempts=RECONNECTION_ATTEMPTS,
            reconnection_delay=RECONNECTION_DELAY,
            reconnection_delay_max=RECONNECTION_DELAY_MAX,
            logger=False
        )
        self.sio.on('connect', self._connected, namespace=namespace)
        self.sio.on('disconnect', self._disconnected, namespace=namespace)
        self.sio.on('connection_response', self._connection_response, namespace=namespace)
        for name in EVENT_NAMES:
            self.sio.on(name, self._handler(name), namespace=namespace)

    @property
    def connected(self):
        return self.sio.connected

    def needs_connect(self, now):
        """True when a fresh connect() is due instead of waiting on automatic reconnection"""
        if self.sio.connected:
            return False
        if not self.ever_connected or self.disconnected_at is None:
            return True
        return now - self.disconnected_at >= RECONNECT_GIVE_UP

    def connect(self):
        """Open the channel (raises socketio.exceptions.ConnectionError on failure)"""
        logger.info(f'Connecting to {self.server_url}{self.namespace} as {self.mac_address}')
        self.sio.connect(
            self.server_url,
            namespaces=[self.namespace],
            auth={'macAddress': self.mac_address},
            wait_timeout=CONNECT_TIMEOUT
        )

    def disconnect(self):
        if self.sio.connected:
            self.sio.disconnect()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _connected(self):
        logger.info('Real-time channel connected')
        self.ever_connected = True
        self.disconnected_at = None
        if self.on_connect:
            self.on_connect()

    def _disconnected(self, reason=None):
        self.disconnected_at = time.time()
        logger.warning(f'Real-time channel disconnected ({reason or "unknown reason"})')

    def _connection_response(self, data):
        tv_id = data.get('tvId') if isinstance(data, dict) else None
        logger.info(f'Server acknowledged connection (TV id: {tv_id})')
        if tv_id and self.on_identified:
            self.on_identified(str(tv_id))

    def _handler(self, name):
        def handle(data=None):
            self.dispatch(name, data)
        return handle

    def dispatch(self, name, data):
        """Validate an incoming message and pass the typed event on"""
        try:
            event = parse_event(name, data)
        except EventValidationError as e:
            logger.warning(f'Dropping malformed {name} message: {e}')
            return
        self.on_event(event)
