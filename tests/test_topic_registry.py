"""
Tests for the topic -> subscriber registry
"""
import threading

from utils.topic_registry import TopicRegistry


def test_add_and_remove_session():
    registry = TopicRegistry()
    registry.add('sid-a', 'tv-1', 'display', ['tv-1', 'global'])
    registry.add('sid-b', 'dash', 'dashboard', ['global'])

    assert registry.subscribers('tv-1') == {'sid-a'}
    assert registry.subscribers('global') == {'sid-a', 'sid-b'}
    assert registry.is_connected('tv-1')
    assert len(registry) == 2

    session = registry.remove('sid-a')

    assert session['identity'] == 'tv-1'
    assert registry.subscribers('tv-1') == set()
    assert registry.subscribers('global') == {'sid-b'}
    assert not registry.is_connected('tv-1')


def test_remove_unknown_session_is_harmless():
    registry = TopicRegistry()

    assert registry.remove('nope') is None
    assert len(registry) == 0


def test_drop_topic_keeps_other_subscriptions():
    registry = TopicRegistry()
    registry.add('sid-a', 'tv-1', 'display', ['tv-1', 'global'])

    assert registry.drop_topic('tv-1') == {'sid-a'}
    assert registry.subscribers('tv-1') == set()
    assert registry.topics_for('sid-a') == {'global'}


def test_returned_sets_are_snapshots():
    registry = TopicRegistry()
    registry.add('sid-a', 'tv-1', 'display', ['tv-1'])

    snapshot = registry.subscribers('tv-1')
    registry.remove('sid-a')

    assert snapshot == {'sid-a'}


def test_concurrent_connects_and_disconnects():
    registry = TopicRegistry()

    def churn(n):
        for i in range(200):
            sid = f'{n}-{i}'
            registry.add(sid, sid, 'display', [sid, 'global'])
            registry.subscribers('global')
            registry.remove(sid)

    threads = [threading.Thread(target=churn, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(registry) == 0
    assert registry.subscribers('global') == set()
