"""Per-viewer countdown kept in step with the shared auction_state row.

Each viewer runs its own :class:`TimerSession`. The session owns the local
countdown once running and treats the store as a slow checkpoint:

- tick (every ``tick_interval``): decrement, notify ``on_tick``, and write the
  value back only on multiples of ``persist_every`` plus the final zero;
- reconcile (every ``sync_interval``): read the row and overwrite the local
  value when it has drifted more than ``drift_tolerance`` seconds;
- external control changes (start, pause, resume, extend) arriving through the
  store's change feed override the local value immediately.

Phases: idle -> running <-> paused, running -> expired, any -> idle when the
room is deactivated. Entering expired fires ``on_timeout`` once.
"""

import logging
import time
from threading import RLock
from typing import Callable, Optional

from auction import socketio
from auction.errors import AuctionError, NotFound
from auction.store import get_store


log = logging.getLogger(__name__)

IDLE = 'idle'
RUNNING = 'running'
PAUSED = 'paused'
EXPIRED = 'expired'


class TimerSession:
    def __init__(
        self,
        store,
        room_id: str,
        on_tick: Optional[Callable[[int], None]] = None,
        on_timeout: Optional[Callable[[], None]] = None,
        *,
        tick_interval: float = 1.0,
        sync_interval: float = 10.0,
        drift_tolerance: int = 2,
        persist_every: int = 5,
        spawn: Optional[Callable] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.room_id = room_id
        self.on_tick = on_tick
        self.on_timeout = on_timeout
        self.tick_interval = tick_interval
        self.sync_interval = sync_interval
        self.drift_tolerance = drift_tolerance
        self.persist_every = persist_every
        self._spawn = spawn or socketio.start_background_task
        self._sleep = sleep or socketio.sleep
        self._clock = clock

        self._lock = RLock()
        self._time_remaining = 0
        self._is_active = False
        self._is_paused = False
        self.phase = IDLE
        self.last_sync_at: Optional[float] = None

        # Bumped by stop(); checkpoint writes from an older generation are dropped
        self._generation = 0
        # Bumped whenever the tick and sync loops must wind down
        self._run_token = 0
        # Bumped on every external input; a sync whose read overlapped one is discarded
        self._override_seq = 0
        self._loops_enabled = False
        self._closed = False
        self._unsubscribe = None

    @classmethod
    def from_app(cls, app, room_id: str, on_tick=None, on_timeout=None, **kwargs) -> 'TimerSession':
        cfg = app.config
        kwargs.setdefault('tick_interval', float(cfg.get('TIMER_TICK_SEC', 1)))
        kwargs.setdefault('sync_interval', float(cfg.get('TIMER_SYNC_INTERVAL_SEC', 10)))
        kwargs.setdefault('drift_tolerance', int(cfg.get('TIMER_DRIFT_TOLERANCE_SEC', 2)))
        kwargs.setdefault('persist_every', int(cfg.get('TIMER_PERSIST_EVERY_SEC', 5)))
        if kwargs['persist_every'] < 1:
            raise ValueError(f"TIMER_PERSIST_EVERY_SEC must be at least 1, got {kwargs['persist_every']}")
        return cls(get_store(app), room_id, on_tick, on_timeout, **kwargs)

    # ---- lifecycle ----

    def start(self, run_loops: bool = True) -> 'TimerSession':
        """Subscribe to room changes and load the current row once."""
        with self._lock:
            self._closed = False
            self._loops_enabled = run_loops
        self._unsubscribe = self.store.subscribe('auction_state', self.room_id, self._on_change)
        try:
            state = self.store.read_timer_state(self.room_id)
        except NotFound:
            log.info(f"[timer-uninitialized] room={self.room_id}")
            return self
        except AuctionError as exc:
            log.warning(f"[timer-load-failed] room={self.room_id} error={exc}")
            return self
        self.apply_state(state.time_remaining, state.is_active, state.is_paused)
        with self._lock:
            self.last_sync_at = self._clock()
        return self

    def stop(self) -> None:
        """Cancel loops and the subscription. In-flight writes are not awaited."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._run_token += 1
            self.phase = IDLE
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe:
            unsubscribe()
        log.info(f"[timer-stop] room={self.room_id}")

    # ---- observers ----

    def current_time_remaining(self) -> int:
        with self._lock:
            return self._time_remaining

    def is_running(self) -> bool:
        with self._lock:
            return self.phase == RUNNING and not self._closed

    # ---- external input ----

    def apply_state(self, time_remaining: Optional[int] = None, is_active: Optional[bool] = None,
                    is_paused: Optional[bool] = None) -> None:
        with self._lock:
            if self._closed:
                return
            self._override_seq += 1
            if is_active is not None:
                self._is_active = bool(is_active)
            if is_paused is not None:
                self._is_paused = bool(is_paused)
            if time_remaining is not None:
                self._override(time_remaining)
            self._update_phase()

    def set_target_time(self, seconds: int) -> None:
        """Externally supplied target time; wins over any in-flight tick or sync."""
        self.apply_state(time_remaining=seconds)

    def _override(self, seconds: int) -> None:
        seconds = max(0, int(seconds))
        if seconds == self._time_remaining:
            return
        log.info(f"[timer-override] room={self.room_id} local={self._time_remaining} target={seconds}")
        self._time_remaining = seconds
        self._notify_tick(seconds)

    def _on_change(self, event: dict) -> None:
        fields = set(event.get('fields') or ())
        row = event.get('row') or {}
        changes = {}
        if 'is_active' in fields:
            changes['is_active'] = row.get('is_active')
        if 'is_paused' in fields:
            changes['is_paused'] = row.get('is_paused')
        # Checkpoints written by ticking viewers are left to drift correction
        if event.get('origin') == 'control' and 'time_remaining' in fields:
            changes['time_remaining'] = row.get('time_remaining')
        if changes:
            self.apply_state(**changes)

    # ---- state machine ----

    def _update_phase(self) -> None:
        previous = self.phase
        if not self._is_active:
            phase = IDLE
        elif self._time_remaining > 0:
            phase = PAUSED if self._is_paused else RUNNING
        elif previous in (RUNNING, EXPIRED):
            phase = EXPIRED
        else:
            phase = IDLE
        if phase == previous:
            return
        self.phase = phase
        log.info(f"[timer-phase] room={self.room_id} {previous} -> {phase} remaining={self._time_remaining}")
        if phase == RUNNING:
            self._start_loops()
        elif previous == RUNNING:
            self._run_token += 1
        if phase == EXPIRED:
            self._notify_timeout()

    def _start_loops(self) -> None:
        self._run_token += 1
        if not self._loops_enabled or self._closed:
            return
        token = self._run_token
        self._spawn(self._tick_loop, token)
        self._spawn(self._sync_loop, token)

    def _tick_loop(self, token: int) -> None:
        while True:
            self._sleep(self.tick_interval)
            if token != self._run_token:
                return
            self.tick()

    def _sync_loop(self, token: int) -> None:
        while True:
            self._sleep(self.sync_interval)
            if token != self._run_token:
                return
            self.reconcile()

    # ---- tick ----

    def should_persist(self, value: int) -> bool:
        return value == 0 or (value > 0 and value % self.persist_every == 0)

    def tick(self) -> int:
        """Advance the local countdown by one second while running."""
        with self._lock:
            if self.phase != RUNNING or self._closed:
                return self._time_remaining
            value = max(0, self._time_remaining - 1)
            self._time_remaining = value
            self._notify_tick(value)
            if self.should_persist(value):
                self._persist(value)
            if value == 0:
                self._update_phase()
            return value

    def _persist(self, value: int) -> None:
        try:
            self._spawn(self._write_checkpoint, value, self._generation)
        except Exception:
            log.exception(f"[timer-write-spawn-failed] room={self.room_id} value={value}")

    def _write_checkpoint(self, value: int, generation: int) -> None:
        if generation != self._generation:
            log.debug(f"[timer-write-dropped] room={self.room_id} value={value} stale session")
            return
        try:
            self.store.write_timer_value(self.room_id, value)
        except AuctionError as exc:
            log.warning(f"[timer-write-failed] room={self.room_id} value={value} error={exc}")

    # ---- reconciliation ----

    def reconcile(self) -> bool:
        """Periodic drift check; only acts while running."""
        if not self.is_running():
            return False
        return self._sync('periodic')

    def force_sync(self) -> bool:
        """Drift check right now, bypassing the period. True if corrected."""
        if self._closed:
            return False
        return self._sync('manual')

    def _sync(self, reason: str) -> bool:
        with self._lock:
            seq = self._override_seq
        try:
            state = self.store.read_timer_state(self.room_id)
        except NotFound:
            log.info(f"[timer-sync-skip] room={self.room_id} reason={reason} no state row")
            return False
        except AuctionError as exc:
            log.warning(f"[timer-sync-failed] room={self.room_id} reason={reason} error={exc}")
            return False
        with self._lock:
            if self._closed:
                return False
            if seq != self._override_seq:
                # The row was read before an external update landed
                log.info(f"[timer-sync-skip] room={self.room_id} reason={reason} superseded by external update")
                return False
            # Flags are adopted too, in case a start/stop/pause notification was dropped
            self._is_active = state.is_active
            self._is_paused = state.is_paused
            local = self._time_remaining
            corrected = abs(state.time_remaining - local) > self.drift_tolerance
            if corrected:
                log.info(f"[timer-sync] room={self.room_id} reason={reason} db={state.time_remaining} local={local}")
                self._time_remaining = state.time_remaining
                self._notify_tick(state.time_remaining)
            self._update_phase()
            self.last_sync_at = self._clock()
            return corrected

    # ---- notifications ----

    def _notify_tick(self, value: int) -> None:
        if not self.on_tick:
            return
        try:
            self.on_tick(value)
        except Exception:
            log.exception(f"[timer-observer-failed] room={self.room_id} event=tick")

    def _notify_timeout(self) -> None:
        log.info(f"[timer-timeout] room={self.room_id}")
        if not self.on_timeout:
            return
        try:
            self.on_timeout()
        except Exception:
            log.exception(f"[timer-observer-failed] room={self.room_id} event=timeout")
