"""
Playback timers backed by an APScheduler background scheduler
"""
from datetime import datetime, timedelta
import logging

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class PlaybackTimer:
    """
    One replaceable "advance" job plus named interval jobs

    Scheduling a new advance replaces the pending one, so at most one
    advance is ever pending.
    """

    ADVANCE_JOB = 'advance'

    def __init__(self, scheduler=None):
        self.scheduler = scheduler or BackgroundScheduler()

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info('Playback timer started')

    def schedule_advance(self, seconds, callback):
        self.scheduler.add_job(
            func=callback,
            trigger='date',
            run_date=datetime.now() + timedelta(seconds=seconds),
            id=self.ADVANCE_JOB,
            name='Advance playlist',
            replace_existing=True,
            # Run late advances instead of dropping them
            misfire_grace_time=None,
            coalesce=True
        )

    def has_pending_advance(self):
        return self.scheduler.get_job(self.ADVANCE_JOB) is not None

    def cancel_advance(self):
        self.cancel(self.ADVANCE_JOB)

    def every(self, seconds, callback, job_id):
        self.scheduler.add_job(
            func=callback,
            trigger='interval',
            seconds=seconds,
            id=job_id,
            replace_existing=True
        )

    def cancel(self, job_id):
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info('Playback timer shut down')
