from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from auction import socketio
from auction.services.roster import RosterSync
from auction.services.timer import TimerSession
from auction.store import get_store
from typing import Dict, Any


# Per-socket viewer sessions: sid -> {'room_id', 'user_id', 'timer', 'roster'}
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room_name(room_id: str) -> str:
    return f"auction:{room_id}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    _end_viewer(_get_sid())


def handle_join_auction(data):
    room_id = (data or {}).get('room_id')
    user_id = (data or {}).get('user_id')
    if not room_id:
        emit('error', {'message': 'room_id is required'})
        return

    sid = _get_sid()
    namespace = request.namespace  # type: ignore
    # Re-joining replaces whatever this socket was watching before
    _end_viewer(sid)
    join_room(_room_name(room_id))

    app = current_app._get_current_object()

    def on_tick(seconds: int) -> None:
        socketio.emit('timer:tick', {'room_id': room_id, 'time_remaining': seconds}, to=sid, namespace=namespace)

    def on_timeout() -> None:
        socketio.emit('timer:timeout', {'room_id': room_id}, to=sid, namespace=namespace)

    def on_roster(participants) -> None:
        socketio.emit('roster:update', {'room_id': room_id, 'participants': participants}, to=sid, namespace=namespace)

    run_loops = not app.config.get('TESTING') or bool(app.config.get('ENABLE_TIMER_LOOPS_IN_TESTS'))
    timer = TimerSession.from_app(app, room_id, on_tick=on_tick, on_timeout=on_timeout).start(run_loops=run_loops)
    roster = RosterSync(get_store(app), room_id, str(user_id) if user_id is not None else None,
                        on_change=on_roster).start()
    _sid_to_ctx[sid] = {'room_id': room_id, 'user_id': user_id, 'timer': timer, 'roster': roster}

    app.logger.info(f"[viewer-join] room={room_id} sid={sid} phase={timer.phase}")
    emit('joined', {
        'room': _room_name(room_id),
        'time_remaining': timer.current_time_remaining(),
        'phase': timer.phase,
        'participant': roster.my_participant,
    })


def handle_leave_auction(data):
    room_id = (data or {}).get('room_id')
    if not room_id:
        emit('error', {'message': 'room_id is required'})
        return
    leave_room(_room_name(room_id))
    _end_viewer(_get_sid())
    emit('left', {'room': _room_name(room_id)})


def handle_force_sync(data=None):
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx:
        emit('error', {'message': 'join an auction first'})
        return
    timer = ctx['timer']
    corrected = timer.force_sync()
    emit('timer:synced', {
        'room_id': ctx['room_id'],
        'corrected': corrected,
        'time_remaining': timer.current_time_remaining(),
        'last_sync_at': timer.last_sync_at,
    })


def handle_ping(data):
    emit('pong', data or {})


def _end_viewer(sid: str) -> None:
    """Stop the socket's timer loops and subscriptions, if any."""
    ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return
    ctx['timer'].stop()
    ctx['roster'].stop()


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_auction', handle_join_auction, namespace=namespace)
        socketio.on_event('leave_auction', handle_leave_auction, namespace=namespace)
        socketio.on_event('force_sync', handle_force_sync, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
