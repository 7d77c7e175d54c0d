"""
Tests for the real-time event kinds and their boundary validation
"""
import pytest

from utils.events import (
    ActivityLogged, BroadcastStateChanged, ContentCreated, ContentDeleted, DirectBroadcast,
    EVENT_NAMES, EventValidationError, TVDeleted, make_change_event, parse_event
)


def test_change_event_wire_format():
    event = make_change_event('content', 'created', {'id': '3', 'title': 'Promo', 'selectedTvs': ['1']})

    assert isinstance(event, ContentCreated)
    assert event.name == 'content:created'
    assert event.to_wire() == {
        'entity': 'content',
        'op': 'created',
        'payload': {'id': '3', 'title': 'Promo', 'selectedTvs': ['1']}
    }


def test_parse_event_returns_typed_event():
    event = parse_event('content:deleted', {'entity': 'content', 'op': 'deleted', 'payload': {'id': 7}})

    assert isinstance(event, ContentDeleted)
    assert event.entity_id == '7'


def test_content_event_target_membership():
    event = ContentCreated(payload={'id': '1', 'selectedTvs': ['2', 5]})

    assert event.targets('2')
    assert event.targets(5)
    assert not event.targets('3')


def test_tv_deleted_requires_mac_address():
    with pytest.raises(EventValidationError):
        parse_event('tv:deleted', {'entity': 'tv', 'op': 'deleted', 'payload': {'id': '1'}})

    event = parse_event('tv:deleted', {'entity': 'tv', 'op': 'deleted', 'payload': {'id': '1', 'macAddress': 'tv-1'}})
    assert isinstance(event, TVDeleted)


@pytest.mark.parametrize('name,data', [
    ('content:exploded', {'entity': 'content', 'op': 'exploded', 'payload': {'id': '1'}}),
    ('content:created', {'entity': 'tv', 'op': 'created', 'payload': {'id': '1'}}),
    ('content:created', {'entity': 'content', 'op': 'created', 'payload': {}}),
    ('content:updated', {'entity': 'content', 'op': 'updated', 'payload': {'id': '1', 'selectedTvs': 'tv-1'}}),
    ('content:created', 'not an object'),
    ('activity', {'activities': []}),
    ('activity', {'activities': [{'type': 'fatal', 'message': 'x'}]}),
    ('broadcast:changed', {'tvId': '1', 'action': 'exploded'}),
    ('broadcast:changed', {'action': 'started'}),
    ('broadcast', ['not', 'an', 'object']),
    (None, {}),
])
def test_malformed_messages_are_rejected(name, data):
    with pytest.raises(EventValidationError):
        parse_event(name, data)


def test_activity_event():
    event = parse_event('activity', {'activities': [{'type': 'success', 'message': 'Content created successfully'}]})

    assert isinstance(event, ActivityLogged)
    assert event.activities[0]['message'] == 'Content created successfully'


def test_broadcast_state_changed_wire_format():
    event = BroadcastStateChanged(tv_id='1', action='paused', broadcast_ids=('4', '5'), tv_status='maintenance')

    assert parse_event(event.name, event.to_wire()) == event


def test_direct_broadcast_payload_is_passed_through():
    event = parse_event('broadcast', {'reason': 'refresh'})

    assert event == DirectBroadcast(payload={'reason': 'refresh'})


def test_event_names_cover_every_kind():
    assert set(EVENT_NAMES) == {
        'content:created', 'content:updated', 'content:deleted',
        'tv:created', 'tv:updated', 'tv:deleted',
        'activity', 'broadcast:changed', 'broadcast'
    }
