"""
Tests for the display playlist reconciler
"""
import pytest

from display_client.reconciler import REFRESH_JOB, PlaylistReconciler
from utils.events import (
    BroadcastStateChanged, ContentCreated, ContentDeleted, ContentUpdated, DirectBroadcast, TVDeleted
)


@pytest.fixture
def reconciler(fake_api, timer, rendered):
    return PlaylistReconciler('1', fake_api, timer, renderer=rendered)


def titles(reconciler):
    return [item.title for item in reconciler.playlist]


def test_start_schedules_periodic_refresh(reconciler, timer, fake_api):
    fake_api.add(1, duration=5)

    reconciler.start()

    seconds, callback = timer.jobs[REFRESH_JOB]
    assert seconds == 30
    assert callback == reconciler.refresh
    assert len(reconciler.playlist) == 1


def test_playlist_is_deduplicated(reconciler, fake_api):
    for content_id in (2, 1, 2, 3, 1):
        fake_api.add(content_id)

    reconciler.refresh()

    assert reconciler.content_ids() == ['2', '1', '3']


@pytest.mark.parametrize('length', [1, 2, 3, 5])
def test_full_cycle_returns_to_start(reconciler, fake_api, timer, length):
    for content_id in range(1, length + 1):
        fake_api.add(content_id, duration=content_id)
    reconciler.refresh()
    assert reconciler.index == 0

    for _ in range(length):
        timer.fire()

    assert reconciler.index == 0
    assert timer.pending is not None


def test_advance_timer_follows_item_durations(reconciler, fake_api, timer, rendered):
    fake_api.add(1, duration=5)
    fake_api.add(2, duration=0)
    fake_api.add(3, duration=12)

    reconciler.refresh()
    timer.fire()
    timer.fire()
    timer.fire()

    assert timer.scheduled == [5, 15, 12, 5]
    assert [item.content_id for item in rendered] == ['1', '2', '3', '1']


def test_empty_playlist_does_not_advance(reconciler, timer, rendered):
    assert reconciler.refresh()

    reconciler.advance()

    assert reconciler.playlist == []
    assert timer.pending is None
    assert timer.scheduled == []
    assert reconciler.current is None
    assert rendered == [None]


def test_recovers_once_content_is_assigned(reconciler, fake_api, timer, rendered):
    reconciler.refresh()
    assert timer.pending is None

    fake_api.add(7, title='promo-A', duration=5)
    reconciler.refresh()

    assert titles(reconciler) == ['promo-A']
    assert timer.pending[0] == 5
    assert rendered[-1].title == 'promo-A'


def test_becoming_empty_cancels_the_timer(reconciler, fake_api, timer, rendered):
    fake_api.add(1)
    reconciler.refresh()
    assert timer.pending is not None

    fake_api.records = []
    reconciler.refresh()

    assert timer.pending is None
    assert rendered[-1] is None


def test_item_without_media_keeps_its_slot(reconciler, fake_api):
    fake_api.add(1, videoUrl='/a.mp4')
    fake_api.add(2)

    reconciler.refresh()

    assert [item.media.is_placeholder for item in reconciler.playlist] == [False, True]


def test_unresolvable_item_is_skipped(reconciler, fake_api):
    fake_api.add(1)
    fake_api.add(2)
    del fake_api.content['1']

    assert reconciler.refresh()
    assert reconciler.content_ids() == ['2']


def test_failed_listing_keeps_current_playlist(reconciler, fake_api, timer):
    fake_api.add(1)
    reconciler.refresh()

    fake_api.fail_broadcasts = True

    assert not reconciler.refresh()
    assert reconciler.content_ids() == ['1']
    assert timer.pending is not None


def test_unchanged_refresh_leaves_timer_alone(reconciler, fake_api, timer):
    fake_api.add(1, duration=40)
    fake_api.add(2)
    reconciler.refresh()

    reconciler.refresh()
    reconciler.refresh()

    assert timer.scheduled == [40]


def test_current_item_survives_reordering(reconciler, fake_api, timer):
    fake_api.add(1)
    fake_api.add(2)
    reconciler.refresh()
    timer.fire()
    assert reconciler.current.content_id == '2'

    fake_api.records.insert(0, {'id': '9', 'contentId': '3', 'status': 'active'})
    fake_api.content['3'] = {'id': '3', 'title': 'Item 3'}
    reconciler.refresh()

    assert reconciler.content_ids() == ['3', '1', '2']
    assert reconciler.current.content_id == '2'


def test_stale_refresh_result_is_discarded(reconciler, fake_api):
    """A refresh finishing after a newer one must not overwrite it"""
    fake_api.add(1, title='old')

    def newer_refresh_overtakes():
        fake_api.on_get_broadcasts = None
        fake_api.records = [{'id': '2', 'contentId': '2', 'status': 'active'}]
        fake_api.content['2'] = {'id': '2', 'title': 'new'}
        assert reconciler.refresh()

    fake_api.on_get_broadcasts = newer_refresh_overtakes

    assert not reconciler.refresh()
    assert titles(reconciler) == ['new']


def test_stop_cancels_timers_and_ignores_triggers(reconciler, fake_api, timer, rendered):
    fake_api.add(1)
    reconciler.start()

    reconciler.stop()
    calls = fake_api.broadcast_calls

    assert timer.pending is None
    assert REFRESH_JOB not in timer.jobs
    assert not reconciler.refresh()
    reconciler.advance()
    assert fake_api.broadcast_calls == calls
    assert rendered[-1] is None


def test_no_tv_id_means_empty_playlist(fake_api, timer, rendered):
    fake_api.add(1)
    reconciler = PlaylistReconciler(None, fake_api, timer, renderer=rendered)

    reconciler.refresh()

    assert reconciler.playlist == []
    assert fake_api.broadcast_calls == 0


# ============================================================================
# Event triggers
# ============================================================================

@pytest.mark.parametrize('event,triggers', [
    (ContentCreated(payload={'id': '5', 'selectedTvs': ['1']}), True),
    (ContentCreated(payload={'id': '5', 'selectedTvs': ['2']}), False),
    (ContentUpdated(payload={'id': '5', 'selectedTvs': ['1', '2']}), True),
    (ContentUpdated(payload={'id': '5', 'selectedTvs': []}), False),
    (ContentDeleted(payload={'id': '5', 'selectedTvs': []}), True),
    (BroadcastStateChanged(tv_id='1', action='started'), True),
    (BroadcastStateChanged(tv_id='2', action='started'), False),
    (DirectBroadcast(payload={}), True),
])
def test_events_trigger_refresh(reconciler, fake_api, event, triggers):
    reconciler.handle_event(event)

    assert fake_api.broadcast_calls == (1 if triggers else 0)


def test_update_of_playing_content_triggers_refresh(reconciler, fake_api):
    fake_api.add(5)
    reconciler.refresh()

    reconciler.handle_event(ContentUpdated(payload={'id': '5', 'selectedTvs': []}))

    assert fake_api.broadcast_calls == 2


def test_own_tv_deleted_stops_reconciler(reconciler, timer, fake_api):
    fake_api.add(1)
    reconciler.start()

    reconciler.handle_event(TVDeleted(payload={'id': '2', 'macAddress': 'tv-2'}))
    assert not reconciler.stopped

    reconciler.handle_event(TVDeleted(payload={'id': '1', 'macAddress': 'tv-1'}))
    assert reconciler.stopped
    assert timer.pending is None


def test_unchanged_refresh_rearms_a_lost_advance(reconciler, fake_api, timer, rendered):
    fake_api.add(1, duration=5)
    fake_api.add(2, duration=7)
    reconciler.refresh()
    timer.fire()
    timer.cancel_advance()

    reconciler.refresh()

    assert timer.pending == (7, reconciler.advance)
    assert reconciler.current.content_id == '2'
    assert [item.content_id for item in rendered] == ['1', '2']
