"""
Display Playlist Reconciler
Derives the TV's playlist from server state and drives timed advancement
through it
"""
from typing import Callable, List, Optional
import logging
import threading

from display_client.api import APIError
from display_client.playlist import DEFAULT_DURATION, PlaylistItem, build_playlist
from utils.events import (
    BroadcastStateChanged, ContentCreated, ContentDeleted, ContentUpdated, DirectBroadcast, TVDeleted
)

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 30  # seconds
REFRESH_JOB = 'refresh'


class PlaylistReconciler:
    """
    Local playlist for one TV

    Every trigger (connect, periodic timer, real-time event) runs the same
    full refresh. Refreshes may overlap: each one takes a sequence number
    and a result older than the last applied one is dropped.
    """

    def __init__(self, tv_id, api, timer, renderer: Optional[Callable] = None,
                 default_duration=DEFAULT_DURATION, refresh_interval=REFRESH_INTERVAL):
        self.tv_id = str(tv_id) if tv_id is not None else None
        self.api = api
        self.timer = timer
        self.renderer = renderer or (lambda item: None)
        self.default_duration = default_duration
        self.refresh_interval = refresh_interval

        self._lock = threading.RLock()
        self._issued = 0
        self._applied = 0
        self.playlist: List[PlaylistItem] = []
        self.index = 0
        self.stopped = False

    @property
    def current(self) -> Optional[PlaylistItem]:
        with self._lock:
            return self.playlist[self.index] if self.playlist else None

    def content_ids(self):
        with self._lock:
            return [item.content_id for item in self.playlist]

    def start(self):
        """Schedule the periodic refresh and load the playlist now"""
        self.timer.every(self.refresh_interval, self.refresh, REFRESH_JOB)
        self.refresh()

    def stop(self):
        """Cancel all timers; the reconciler ignores every later trigger"""
        with self._lock:
            if self.stopped:
                return
            self.stopped = True
            self.playlist = []
            self.index = 0
        self.timer.cancel_advance()
        self.timer.cancel(REFRESH_JOB)
        self.renderer(None)
        logger.info(f'Reconciler for TV {self.tv_id} stopped')

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self):
        """
        Rebuild the playlist from the TV's broadcast records

        Returns:
            True if this refresh's result was applied
        """
        with self._lock:
            if self.stopped:
                return False
            self._issued += 1
            sequence = self._issued
            tv_id = self.tv_id

        if tv_id is None:
            items = []
        else:
            try:
                records = self.api.get_broadcasts(tv_id)
            except APIError as e:
                # Keep playing what we have; the next trigger tries again
                logger.warning(f'Refresh {sequence} for TV {tv_id} failed: {e}')
                return False
            items = build_playlist(records, self.api.get_content, self.default_duration)

        return self._apply(sequence, items)

    def _apply(self, sequence, items):
        with self._lock:
            if self.stopped:
                return False
            if sequence <= self._applied:
                logger.debug(f'Discarding stale refresh {sequence} (applied {self._applied})')
                return False
            first = self._applied == 0
            self._applied = sequence

            if items == self.playlist and not first:
                if self.playlist and not self.timer.has_pending_advance():
                    logger.warning(f'TV {self.tv_id}: advance timer was lost, re-arming')
                    self.timer.schedule_advance(self.current.duration, self.advance)
                return True

            previous = self.current
            self.playlist = list(items)

            if not self.playlist:
                self.index = 0
                self.timer.cancel_advance()
                logger.info(f'TV {self.tv_id}: no content assigned')
                self.renderer(None)
                return True

            position = None
            if previous is not None:
                position = next(
                    (i for i, item in enumerate(self.playlist) if item.content_id == previous.content_id), None
                )

            logger.info(f'TV {self.tv_id}: playlist has {len(self.playlist)} item(s)')
            if position is None:
                self.index = 0
                self._play_current()
            else:
                self.index = position
                # Same item still on screen; restart it only if it changed
                if self.playlist[position] != previous:
                    self._play_current()
            return True

    # ------------------------------------------------------------------
    # Advancement
    # ------------------------------------------------------------------

    def advance(self):
        """Move to the next item, wrapping around at the end"""
        with self._lock:
            if self.stopped or not self.playlist:
                return
            self.index = (self.index + 1) % len(self.playlist)
            self._play_current()

    def _play_current(self):
        item = self.playlist[self.index]
        self.renderer(item)
        self.timer.schedule_advance(item.duration, self.advance)

    # ------------------------------------------------------------------
    # Real-time events
    # ------------------------------------------------------------------

    def concerns(self, event):
        """True if an event may change this TV's playlist"""
        if isinstance(event, (ContentCreated, ContentUpdated)):
            return event.targets(self.tv_id) or event.entity_id in self.content_ids()
        if isinstance(event, ContentDeleted):
            return True
        if isinstance(event, BroadcastStateChanged):
            return event.tv_id == self.tv_id
        return isinstance(event, DirectBroadcast)

    def handle_event(self, event):
        if isinstance(event, TVDeleted):
            if event.entity_id == self.tv_id:
                logger.info(f'TV {self.tv_id} was deleted')
                self.stop()
            return
        if self.concerns(event):
            logger.debug(f'{event.name} triggers refresh for TV {self.tv_id}')
            self.refresh()
