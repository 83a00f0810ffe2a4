from auction import db
from auction.models import AuctionState


def _create(client, **body):
    res = client.post('/api/auctions/create', json=body)
    assert res.status_code == 201
    return res.get_json()['room_id']


def test_index_and_health(client):
    assert client.get('/').status_code == 200
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json()['database'] == 'ok'


def test_create_auction(client, lots):
    res = client.post('/api/auctions/create', json={'time_remaining': 45})
    assert res.status_code == 201
    data = res.get_json()
    assert data['total_players'] == len(lots)

    state = client.get(f"/api/auctions/{data['room_id']}/state").get_json()
    assert state['time_remaining'] == 45
    assert state['is_active'] is False
    assert state['queue_valid'] is True
    assert state['sync']['drift_tolerance_sec'] == 2


def test_create_without_lots_is_unavailable(client):
    res = client.post('/api/auctions/create')
    assert res.status_code == 503
    assert 'error' in res.get_json()


def test_unknown_room_is_404(client):
    assert client.get('/api/auctions/nope/state').status_code == 404
    assert client.get('/api/auctions/nope/queue').status_code == 404
    assert client.post('/api/auctions/nope/queue/repair').status_code == 500
    assert client.post('/api/auctions/nope/timer', json={'action': 'pause'}).status_code == 404


def test_corrupt_queue_is_repaired_transparently(client, lots):
    room_id = _create(client)
    row = AuctionState.query.filter_by(room_id=room_id).first()
    row.player_queue = '{"broken": '
    db.session.commit()

    assert client.get(f'/api/auctions/{room_id}/state').get_json()['queue_valid'] is False
    res = client.get(f'/api/auctions/{room_id}/queue')
    assert res.status_code == 200
    data = res.get_json()
    assert data['total_players'] == len(lots)
    assert client.get(f'/api/auctions/{room_id}/state').get_json()['queue_valid'] is True


def test_explicit_repair(client, lots):
    room_id = _create(client)
    res = client.post(f'/api/auctions/{room_id}/queue/repair')
    assert res.status_code == 200
    assert sorted(l['id'] for l in res.get_json()['player_queue']) == sorted(l['id'] for l in lots)


def test_timer_controls(client, lots):
    room_id = _create(client)
    url = f'/api/auctions/{room_id}/timer'

    started = client.post(url, json={'action': 'start', 'duration': 20}).get_json()
    assert started['time_remaining'] == 20
    assert started['is_active'] is True
    assert started['is_paused'] is False

    assert client.post(url, json={'action': 'pause'}).get_json()['is_paused'] is True
    assert client.post(url, json={'action': 'resume'}).get_json()['is_paused'] is False

    extended = client.post(url, json={'action': 'add_time', 'seconds': 10}).get_json()
    assert extended['time_remaining'] == 30

    stopped = client.post(url, json={'action': 'stop'}).get_json()
    assert stopped['is_active'] is False

    assert client.post(url, json={'action': 'rewind'}).status_code == 400


def test_add_time_never_leaves_less_than_the_extension(client, lots):
    room_id = _create(client, time_remaining=0)
    extended = client.post(f'/api/auctions/{room_id}/timer', json={'action': 'add_time', 'seconds': 10}).get_json()
    assert extended['time_remaining'] == 10
    assert extended['is_active'] is True


def test_join_and_list_participants(client, lots):
    room_id = _create(client)
    res = client.post(f'/api/auctions/{room_id}/join', json={'user_id': 'u1', 'user_name': 'Alice', 'team_id': 'CSK'})
    assert res.status_code == 201
    assert client.post(f'/api/auctions/{room_id}/join', json={'user_id': 'u2'}).status_code == 400

    participants = client.get(f'/api/auctions/{room_id}/participants').get_json()
    assert [p['user_name'] for p in participants] == ['Alice']
    assert client.get('/api/auctions/nope/participants').status_code == 404


def test_pricing(client):
    data = client.get('/api/auctions/pricing/25000000').get_json()
    assert data['formatted'] == '₹2.5Cr'
    assert data['increment'] == 10000000
