"""
WebSocket Event Handlers
Connection admission and topic membership for dashboards and displays
"""
from datetime import datetime
from flask import current_app, request
from flask_socketio import emit, ConnectionRefusedError
from utils.event_bus import AdmissionError, DISPLAY
import logging

logger = logging.getLogger(__name__)


def handle_connect(auth=None):
    """
    Admit a client

    Displays authenticate with {"macAddress": ...} and are subscribed to
    their own topic plus the global one; dashboards send {"clientId": ...}.
    Anonymous connections are refused.
    """
    bus = current_app.event_bus  # type: ignore
    try:
        kind, identity, topics = bus.admit(request.sid, auth)  # type: ignore
    except AdmissionError as e:
        logger.warning(f'Refused connection {request.sid}: {e}')  # type: ignore
        raise ConnectionRefusedError(str(e))

    response = {
        'status': 'connected',
        'message': 'Connected to real-time server',
        'client_id': request.sid,  # type: ignore
        'topics': topics
    }

    if kind == DISPLAY:
        tv = current_app.registry.tv_by_mac(identity)  # type: ignore
        response['tvId'] = str(tv.id) if tv else None
        if tv is None:
            logger.info(f'Display {identity} is connected but not registered as a TV')

    emit('connection_response', response)


def handle_disconnect(reason=None):
    """Handle client disconnection"""
    current_app.event_bus.release(request.sid)  # type: ignore


def handle_ping():
    """Respond to ping (keep-alive)"""
    emit('pong', {'timestamp': datetime.utcnow().isoformat()})


def register_handlers(socketio, namespace):
    """Bind the handlers to the server created by the latest init_app"""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
