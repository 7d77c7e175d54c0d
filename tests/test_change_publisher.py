"""
Tests for change events and activity mirroring around registry writes
"""
from conftest import NAMESPACE
from models import db, Activity, Broadcast, BroadcastStatus, Content


def _packets(sio_client, name):
    return [p['args'][0] for p in sio_client.get_received(NAMESPACE) if p['name'] == name]


def test_create_content_publishes_event_and_activity(connect, make_content):
    dashboard = connect(clientId='dash-1')
    dashboard.get_received(NAMESPACE)

    content = make_content(title='Promo A', duration=5)

    received = dashboard.get_received(NAMESPACE)
    names = [p['name'] for p in received]
    assert 'content:created' in names
    created = next(p['args'][0] for p in received if p['name'] == 'content:created')
    assert created['entity'] == 'content'
    assert created['op'] == 'created'
    assert created['payload']['id'] == content['id']
    assert created['payload']['title'] == 'Promo A'

    activity = next(p['args'][0] for p in received if p['name'] == 'activity')
    assert activity['activities'][0]['message'] == 'Content created successfully'
    assert activity['activities'][0]['type'] == 'success'


def test_failed_write_publishes_nothing(client, owner, connect):
    dashboard = connect(clientId='dash-1')
    dashboard.get_received(NAMESPACE)

    response = client.post('/api/content', json={'createdById': str(owner.id)})

    assert response.status_code == 400
    assert dashboard.get_received(NAMESPACE) == []
    assert Activity.query.count() == 0


def test_update_and_delete_events(client, connect, make_content):
    content = make_content()
    dashboard = connect(clientId='dash-1')
    dashboard.get_received(NAMESPACE)

    client.put(f'/api/content/{content["id"]}', json={'title': 'Renamed'})
    client.delete(f'/api/content/{content["id"]}')

    names = [p['name'] for p in dashboard.get_received(NAMESPACE) if p['name'] != 'activity']
    assert names == ['content:updated', 'content:deleted']
    messages = [a.message for a in Activity.query.order_by(Activity.id).all()]
    assert messages[-2:] == ['Content updated successfully', 'Content deleted successfully']


def test_assigning_a_tv_starts_broadcasting(app, make_tv, make_content):
    tv = make_tv(mac='tv-1')

    content = make_content(selectedTvs=[tv['id']])

    records = Broadcast.query.filter_by(tv_id=int(tv['id'])).all()
    assert [str(r.content_id) for r in records] == [content['id']]
    assert records[0].status == BroadcastStatus.ACTIVE


def test_reassigning_keeps_one_live_record(client, make_tv, make_content):
    tv = make_tv(mac='tv-1')
    content = make_content(selectedTvs=[tv['id']])

    client.put(f'/api/content/{content["id"]}', json={'selectedTvs': [tv['id']], 'duration': 30})

    assert Broadcast.query.filter_by(tv_id=int(tv['id'])).count() == 1


def test_unassigning_a_tv_stops_its_records(client, make_tv, make_content):
    tv_1 = make_tv(name='One', mac='tv-1')
    tv_2 = make_tv(name='Two', mac='tv-2')
    content = make_content(selectedTvs=[tv_1['id'], tv_2['id']])

    client.put(f'/api/content/{content["id"]}', json={'selectedTvs': [tv_2['id']]})

    assert Broadcast.query.filter_by(tv_id=int(tv_1['id'])).one().status == BroadcastStatus.STOPPED
    assert Broadcast.query.filter_by(tv_id=int(tv_2['id'])).one().status == BroadcastStatus.ACTIVE


def test_deleting_a_tv_cleans_up(app, client, connect, make_tv, make_content):
    tv = make_tv(mac='tv-1')
    content = make_content(selectedTvs=[tv['id']])
    display = connect(macAddress='tv-1')
    display.get_received(NAMESPACE)

    response = client.delete(f'/api/tvs/{tv["id"]}')

    assert response.status_code == 200
    deleted = _packets(display, 'tv:deleted')
    assert deleted[0]['payload']['macAddress'] == 'tv-1'
    assert app.event_bus.registry.subscribers('tv-1') == set()
    assert db.session.get(Content, int(content["id"])).selected_tvs == []
    assert Broadcast.query.count() == 0


def test_deleting_a_tv_announces_changed_target_lists(client, connect, make_tv, make_content):
    lobby = make_tv(name='Lobby TV', mac='tv-1')
    canteen = make_tv(name='Canteen TV', mac='tv-2')
    shared = make_content(title='Shared', selectedTvs=[lobby['id'], canteen['id']])
    make_content(title='Canteen only', selectedTvs=[canteen['id']])
    dashboard = connect(clientId='dash-1')
    dashboard.get_received(NAMESPACE)

    client.delete(f'/api/tvs/{lobby["id"]}')

    updated = _packets(dashboard, 'content:updated')
    assert [event['payload']['id'] for event in updated] == [shared['id']]
    assert updated[0]['payload']['selectedTvs'] == [canteen['id']]
