#!/usr/bin/env python3
"""
CastBoard Display Player
Connects a TV to the CastBoard server, keeps its playlist reconciled and
cycles through it
"""

import os
import sys
import json
import time
import uuid
import logging

from socketio.exceptions import ConnectionError as ChannelConnectionError

from display_client.api import APIError, CastboardAPI
from display_client.channel import DisplayChannel
from display_client.playlist import DEFAULT_DURATION, MediaKind
from display_client.reconciler import REFRESH_INTERVAL, PlaylistReconciler
from display_client.timer import PlaybackTimer
from utils.events import TVCreated, TVUpdated

# Configuration - Auto-detect installation directory
INSTALL_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_FILE = os.getenv('CASTBOARD_DISPLAY_CONFIG', os.path.join(INSTALL_DIR, 'config.json'))
LOG_FILE = os.getenv('CASTBOARD_DISPLAY_LOG', os.path.join(INSTALL_DIR, 'logs', 'player.log'))
RETRY_DELAY = 10  # seconds between connection attempts
LOOP_INTERVAL = 5  # seconds

logger = logging.getLogger(__name__)


def setup_logging(log_file=LOG_FILE):
    """Log to a file next to the player and to stdout"""
    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


def get_mac_address(interface='eth0'):
    """MAC address of the network interface (falls back to the host node id)"""
    try:
        with open(f'/sys/class/net/{interface}/address', 'r') as f:
            mac = f.read().strip()
            if mac:
                return mac.upper()
    except OSError:
        pass
    node = uuid.getnode()
    return ':'.join(f'{(node >> shift) & 0xff:02X}' for shift in range(40, -1, -8))


def load_config(config_file=CONFIG_FILE):
    """Load configuration from JSON file, creating a default one if missing"""
    try:
        with open(config_file, 'r') as f:
            config = json.load(f)
        logger.info('Configuration loaded successfully')
        return config
    except FileNotFoundError:
        logger.error(f'Config file not found: {config_file}')
        logger.info('Creating default config file...')

        default_config = {
            'server_url': 'http://127.0.0.1:5000',
            'mac_address': get_mac_address(),
            'tv_id': None,
            'namespace': '/signage',
            'refresh_interval': REFRESH_INTERVAL,
            'default_duration': DEFAULT_DURATION
        }
        save_config(default_config, config_file)
        return default_config
    except json.JSONDecodeError as e:
        logger.error(f'Invalid JSON in config file: {e}')
        sys.exit(1)


def save_config(config, config_file=CONFIG_FILE):
    """Save configuration to JSON file"""
    try:
        with open(config_file, 'w') as f:
            json.dump(config, f, indent=2)
        logger.info('Configuration saved')
    except OSError as e:
        logger.error(f'Failed to save config: {e}')


class LogRenderer:
    """Renders playlist changes to the log (stand-in for a real screen)"""

    def __call__(self, item):
        if item is None:
            logger.info('Display: no content assigned')
        elif item.media.kind is MediaKind.NONE:
            logger.info(f'Display: "{item.title}" (no media) for {item.duration}s')
        else:
            logger.info(f'Display: {item.media.kind.value} "{item.title}" {item.media.url} for {item.duration}s')


class DisplayPlayer:
    """Wires the REST client, real-time channel, timers and reconciler together"""

    def __init__(self, config_file=CONFIG_FILE, renderer=None):
        self.config_file = config_file
        self.config = load_config(config_file)

        self.server_url = self.config.get('server_url')
        self.mac_address = self.config.get('mac_address') or get_mac_address()
        self.running = False

        self.api = CastboardAPI(self.server_url)
        self.timer = PlaybackTimer()
        self.reconciler = PlaylistReconciler(
            self.config.get('tv_id'),
            self.api,
            self.timer,
            renderer=renderer or LogRenderer(),
            default_duration=self.config.get('default_duration', DEFAULT_DURATION),
            refresh_interval=self.config.get('refresh_interval', REFRESH_INTERVAL)
        )
        self.channel = DisplayChannel(
            self.server_url,
            self.mac_address,
            self.config.get('namespace', '/signage'),
            on_event=self.handle_event,
            on_connect=self.reconciler.refresh,
            on_identified=self.identified
        )

        logger.info('CastBoard Player initialized')
        logger.info(f'Server: {self.server_url}')
        logger.info(f'MAC address: {self.mac_address}')

    def resolve_tv_id(self):
        """Look up this display's TV record when no id is configured"""
        if self.reconciler.tv_id:
            return self.reconciler.tv_id
        try:
            tv = self.api.find_tv(self.mac_address)
        except APIError as e:
            logger.warning(f'Could not look up TV for {self.mac_address}: {e}')
            return None
        if tv is None:
            logger.warning(f'No TV registered for {self.mac_address}; waiting for registration')
            return None
        self.identified(tv['id'])
        return tv['id']

    def identified(self, tv_id):
        """Adopt the TV id reported by the server"""
        tv_id = str(tv_id)
        if tv_id == self.reconciler.tv_id:
            return
        logger.info(f'Display is TV {tv_id}')
        self.reconciler.tv_id = tv_id
        self.config['tv_id'] = tv_id
        save_config(self.config, self.config_file)
        self.reconciler.refresh()

    def handle_event(self, event):
        if isinstance(event, (TVCreated, TVUpdated)) and event.payload.get('macAddress') == self.mac_address:
            self.identified(event.entity_id)
            return

        self.reconciler.handle_event(event)
        if self.reconciler.stopped:
            logger.info('TV was removed from the server, shutting down')
            self.config['tv_id'] = None
            save_config(self.config, self.config_file)
            self.running = False
            self.channel.disconnect()

    def connect(self):
        try:
            self.channel.connect()
            return True
        except ChannelConnectionError as e:
            logger.error(f'Connection error: {e}')
            return False

    def run(self):
        """Main player loop"""
        logger.info('Starting CastBoard Player...')
        self.running = True
        self.timer.start()
        self.resolve_tv_id()
        self.reconciler.start()

        last_attempt = 0
        while self.running:
            try:
                current_time = time.time()
                if self.channel.needs_connect(current_time) and current_time - last_attempt >= RETRY_DELAY:
                    last_attempt = current_time
                    self.connect()
                time.sleep(LOOP_INTERVAL)
            except KeyboardInterrupt:
                logger.info('Received shutdown signal')
                break

        # Cleanup
        self.reconciler.stop()
        self.channel.disconnect()
        self.timer.shutdown()
        logger.info('CastBoard Player stopped')


def main():
    """Main entry point"""
    setup_logging()
    player = DisplayPlayer()
    player.run()


if __name__ == '__main__':
    main()
