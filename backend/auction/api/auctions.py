from flask import Blueprint, jsonify, request, current_app
from auction.errors import DataUnavailable, NotFound, RepairFailed, WriteError
from auction.services.lot_queue import ensure_valid_queue, load_shuffled_lots, repair_queue, validate_queue
from auction.services.pricing import bid_increment, format_amount
from auction.store import get_store


auctions = Blueprint('auctions', __name__)

TIMER_ACTIONS = ('start', 'pause', 'resume', 'stop', 'add_time')


def _store():
    return get_store(current_app._get_current_object())


def _int(value, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


@auctions.errorhandler(NotFound)
def _not_found(exc):
    return jsonify({'error': str(exc)}), 404


@auctions.errorhandler(DataUnavailable)
def _data_unavailable(exc):
    current_app.logger.error(f"[data-unavailable] {exc}")
    return jsonify({'error': str(exc)}), 503


@auctions.errorhandler(RepairFailed)
@auctions.errorhandler(WriteError)
def _write_failed(exc):
    return jsonify({'error': str(exc)}), 500


@auctions.route('/create', methods=['POST'])
def create_auction():
    data = request.get_json(silent=True) or {}
    duration = _int(data.get('time_remaining'), int(current_app.config.get('DEFAULT_TIMER_SEC', 30)))
    store = _store()
    lots = load_shuffled_lots(store)
    room = store.init_room(time_remaining=max(0, duration), lots=lots)
    return jsonify({
        'message': 'New auction created!',
        'room_id': room['room_id'],
        'total_players': room['total_players'],
    }), 201


@auctions.route('/<string:room_id>/state', methods=['GET'])
def get_auction_state(room_id):
    payload = _store().read_room(room_id)
    payload['queue_valid'] = validate_queue(payload.get('player_queue'))
    cfg = current_app.config
    payload['sync'] = {
        'tick_sec': float(cfg.get('TIMER_TICK_SEC', 1)),
        'sync_interval_sec': float(cfg.get('TIMER_SYNC_INTERVAL_SEC', 10)),
        'drift_tolerance_sec': int(cfg.get('TIMER_DRIFT_TOLERANCE_SEC', 2)),
    }
    return jsonify(payload)


@auctions.route('/<string:room_id>/queue', methods=['GET'])
def get_queue(room_id):
    # An invalid queue is replaced transparently; only a failed repair surfaces
    lots = ensure_valid_queue(_store(), room_id)
    return jsonify({'room_id': room_id, 'player_queue': lots, 'total_players': len(lots)})


@auctions.route('/<string:room_id>/queue/repair', methods=['POST'])
def repair_room_queue(room_id):
    lots = repair_queue(_store(), room_id)
    return jsonify({'room_id': room_id, 'player_queue': lots, 'total_players': len(lots)})


@auctions.route('/<string:room_id>/timer', methods=['POST'])
def control_timer(room_id):
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    if action not in TIMER_ACTIONS:
        return jsonify({'error': f"action must be one of {', '.join(TIMER_ACTIONS)}"}), 400

    store = _store()
    state = store.read_timer_state(room_id)
    if action == 'start':
        duration = _int(data.get('duration'), int(current_app.config.get('DEFAULT_TIMER_SEC', 30)))
        fields = {'time_remaining': max(0, duration), 'is_active': True, 'is_paused': False}
    elif action == 'pause':
        fields = {'is_paused': True}
    elif action == 'resume':
        fields = {'is_paused': False}
    elif action == 'stop':
        fields = {'is_active': False, 'is_paused': False}
    else:
        # A bid extends the clock, never to less than the extension itself
        seconds = max(0, _int(data.get('seconds'), 10))
        fields = {'time_remaining': max(seconds, state.time_remaining + seconds), 'is_active': True}

    payload = store.update_timer_state(room_id, **fields)
    current_app.logger.info(
        f"[timer-control] room={room_id} action={action} time_remaining={payload['time_remaining']} "
        f"active={payload['is_active']} paused={payload['is_paused']}"
    )
    return jsonify(payload)


@auctions.route('/<string:room_id>/participants', methods=['GET'])
def list_participants(room_id):
    store = _store()
    store.read_room(room_id)
    return jsonify(store.read_participants(room_id))


@auctions.route('/<string:room_id>/join', methods=['POST'])
def join_auction(room_id):
    data = request.get_json(silent=True) or {}
    user_id = data.get('user_id')
    user_name = data.get('user_name')
    if not all([user_id, user_name]):
        return jsonify({'error': 'user_id and user_name are required'}), 400

    participant = _store().add_participant(
        room_id,
        str(user_id),
        user_name,
        team_id=data.get('team_id'),
        is_auctioneer=bool(data.get('is_auctioneer')),
    )
    return jsonify(participant), 201


@auctions.route('/pricing/<int:amount>', methods=['GET'])
def pricing(amount):
    return jsonify({
        'amount': amount,
        'formatted': format_amount(amount),
        'increment': bid_increment(amount),
    })
