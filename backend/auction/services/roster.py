import logging
from threading import RLock
from typing import Callable, List, Optional

from auction.errors import AuctionError


log = logging.getLogger(__name__)


class RosterSync:
    """Read view of a room's participants.

    Loads the roster once on start, then reloads it in full on every change
    notification for the room. Rosters are small (one entry per team), so no
    incremental patching is attempted.
    """

    def __init__(self, store, room_id: str, user_id: Optional[str] = None,
                 on_change: Optional[Callable[[List[dict]], None]] = None):
        self.store = store
        self.room_id = room_id
        self.user_id = user_id
        self.on_change = on_change
        self.participants: List[dict] = []
        self._lock = RLock()
        self._unsubscribe = None
        self._stopped = False

    @property
    def my_participant(self) -> Optional[dict]:
        if self.user_id is None:
            return None
        with self._lock:
            return next((p for p in self.participants if p.get('user_id') == self.user_id), None)

    def start(self) -> 'RosterSync':
        self._stopped = False
        self.reload()
        self._unsubscribe = self.store.subscribe('participant', self.room_id, self._on_event)
        return self

    def stop(self) -> None:
        self._stopped = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe:
            unsubscribe()

    def reload(self) -> List[dict]:
        try:
            participants = self.store.read_participants(self.room_id)
        except AuctionError as exc:
            # Keep the last good view; the next notification retries
            log.warning(f"[roster-load-failed] room={self.room_id} error={exc}")
            return self.participants
        with self._lock:
            self.participants = participants
        if self.on_change:
            try:
                self.on_change(participants)
            except Exception:
                log.exception(f"[roster-observer-failed] room={self.room_id}")
        return participants

    def _on_event(self, event: dict) -> None:
        # A delivery already in flight when stop() ran
        if self._stopped:
            return
        self.reload()
