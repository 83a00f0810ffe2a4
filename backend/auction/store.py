"""Shared State Store adapter.

The auction core only talks to persistent state through :class:`AuctionStore`.
Every call runs inside its own application context so it can be used from
request handlers and from Socket.IO background tasks alike. Successful writes
publish a change event to in-process subscribers and to the Socket.IO room of
the auction, mirroring a row-level change feed. Delivery is best-effort:
subscribers must tolerate dropped or duplicated events.
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from auction import db, socketio
from auction.errors import DataUnavailable, NotFound, WriteError
from auction.models import AuctionState, Lot, Participant, generate_room_id


log = logging.getLogger(__name__)

TIMER_FIELDS = ('time_remaining', 'is_active', 'is_paused')

Listener = Callable[[dict], None]


@dataclass
class TimerState:
    room_id: str
    time_remaining: int
    is_active: bool
    is_paused: bool

    @property
    def is_ticking(self) -> bool:
        return self.is_active and not self.is_paused and self.time_remaining > 0


class AuctionStore:
    def __init__(self, app):
        self.app = app
        self._lock = RLock()
        self._listeners: Dict[Tuple[str, str], List[Listener]] = {}

    # ---- transaction helpers ----

    @contextmanager
    def _transaction(self, action: str, room_id: str):
        with self.app.app_context():
            try:
                yield db.session
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                log.warning(f"[store-write-failed] action={action} room={room_id} error={exc}")
                raise WriteError(f"{action} failed for room {room_id}") from exc

    @contextmanager
    def _read(self, action: str):
        with self.app.app_context():
            try:
                yield db.session
            except SQLAlchemyError as exc:
                log.warning(f"[store-read-failed] action={action} error={exc}")
                raise DataUnavailable(f"{action} failed: store unreachable") from exc

    @staticmethod
    def _get_row(room_id: str) -> AuctionState:
        row = AuctionState.query.filter_by(room_id=room_id).first()
        if row is None:
            raise NotFound(f"room {room_id} has no state row")
        return row

    # ---- timer ----

    def read_timer_state(self, room_id: str) -> TimerState:
        with self._read('read_timer_state'):
            row = self._get_row(room_id)
            return TimerState(
                room_id=row.room_id,
                time_remaining=max(0, int(row.time_remaining or 0)),
                is_active=bool(row.is_active),
                is_paused=bool(row.is_paused),
            )

    def write_timer_value(self, room_id: str, value: int, origin: str = 'tick') -> None:
        """Partial update of ``time_remaining`` only."""
        with self._transaction('write_timer_value', room_id) as session:
            row = self._get_row(room_id)
            row.time_remaining = max(0, int(value))
            row.updated_at = time.time()
            session.add(row)
            payload = row.to_dict(include_queue=False)
        self._publish('auction_state', room_id, ['time_remaining'], origin, payload)

    def update_timer_state(self, room_id: str, origin: str = 'control', **fields) -> dict:
        """Apply an external control action (start, pause, resume, extend)."""
        unknown = set(fields) - set(TIMER_FIELDS)
        if unknown:
            raise ValueError(f"unsupported timer fields: {sorted(unknown)}")
        with self._transaction('update_timer_state', room_id) as session:
            row = self._get_row(room_id)
            if 'time_remaining' in fields:
                row.time_remaining = max(0, int(fields['time_remaining']))
            if 'is_active' in fields:
                row.is_active = bool(fields['is_active'])
            if 'is_paused' in fields:
                row.is_paused = bool(fields['is_paused'])
            row.updated_at = time.time()
            session.add(row)
            payload = row.to_dict(include_queue=False)
        self._publish('auction_state', room_id, list(fields), origin, payload)
        return payload

    # ---- rooms and queues ----

    def init_room(self, room_id: Optional[str] = None, time_remaining: int = 0, lots: Optional[list] = None) -> dict:
        room_id = room_id or generate_room_id()
        lots = list(lots or [])
        with self._transaction('init_room', room_id) as session:
            row = AuctionState(
                room_id=room_id,
                time_remaining=max(0, int(time_remaining)),
                is_active=False,
                is_paused=False,
                player_queue=json.dumps(lots),
                total_players=len(lots),
                current_lot_index=0,
                updated_at=time.time(),
            )
            session.add(row)
            payload = row.to_dict()
        log.info(f"[room-init] room={room_id} lots={len(lots)} time_remaining={payload['time_remaining']}")
        return payload

    def read_room(self, room_id: str) -> dict:
        with self._read('read_room'):
            return self._get_row(room_id).to_dict()

    def read_queue(self, room_id: str):
        """Stored queue value, or None when absent or undecodable."""
        with self._read('read_queue'):
            return self._get_row(room_id).queue

    def write_queue(self, room_id: str, lots: list, count: int, timestamp: float, origin: str = 'queue') -> None:
        """Replace the room's queue wholesale, in one transaction."""
        with self._transaction('write_queue', room_id) as session:
            row = self._get_row(room_id)
            row.player_queue = json.dumps(list(lots))
            row.total_players = int(count)
            row.current_lot_index = 0
            row.updated_at = float(timestamp)
            session.add(row)
            payload = row.to_dict(include_queue=False)
        self._publish(
            'auction_state', room_id,
            ['player_queue', 'total_players', 'current_lot_index', 'updated_at'],
            origin, payload,
        )

    def read_master_lots(self) -> List[dict]:
        with self._read('read_master_lots'):
            return [lot.to_dict() for lot in Lot.query.order_by(Lot.id).all()]

    # ---- roster ----

    def read_participants(self, room_id: str) -> List[dict]:
        with self._read('read_participants'):
            rows = (
                Participant.query.filter_by(room_id=room_id)
                .order_by(Participant.joined_at, Participant.id)
                .all()
            )
            return [p.to_dict() for p in rows]

    def add_participant(self, room_id: str, user_id: str, user_name: str, team_id: Optional[str] = None,
                        is_auctioneer: bool = False) -> dict:
        with self._transaction('add_participant', room_id) as session:
            self._get_row(room_id)
            participant = Participant.query.filter_by(room_id=room_id, user_id=user_id).first()
            if participant is None:
                participant = Participant(room_id=room_id, user_id=user_id, joined_at=time.time())
            participant.user_name = user_name
            participant.team_id = team_id
            participant.is_auctioneer = bool(is_auctioneer)
            session.add(participant)
            session.flush()
            payload = participant.to_dict()
        self._publish('participant', room_id, ['user_name', 'team_id', 'is_auctioneer'], 'join', payload)
        return payload

    # ---- change notifications ----

    def subscribe(self, table: str, room_id: str, callback: Listener) -> Callable[[], None]:
        """Register ``callback`` for changes to ``table`` rows of ``room_id``.

        Returns an idempotent unsubscribe function.
        """
        key = (table, room_id)
        with self._lock:
            self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if callback in listeners:
                    listeners.remove(callback)
                if not listeners:
                    self._listeners.pop(key, None)

        return unsubscribe

    def listener_count(self, table: str, room_id: str) -> int:
        with self._lock:
            return len(self._listeners.get((table, room_id), []))

    def _publish(self, table: str, room_id: str, fields: list, origin: str, row: dict) -> None:
        event = {'table': table, 'room_id': room_id, 'fields': list(fields), 'origin': origin, 'row': row}
        with self._lock:
            listeners = list(self._listeners.get((table, room_id), []))
        for callback in listeners:
            try:
                callback(event)
            except Exception:
                log.exception(f"[notify-failed] table={table} room={room_id} origin={origin}")
        try:
            socketio.emit(f'{table}:change', event, to=f"auction:{room_id}", namespace='/ws')
        except Exception as exc:
            log.warning(f"[emit-failed] table={table} room={room_id} error={exc}")


def get_store(app) -> AuctionStore:
    """Return the store bound to ``app``, creating it on first use."""
    store = app.extensions.get('auction_store')
    if store is None:
        store = AuctionStore(app)
        app.extensions['auction_store'] = store
    return store
