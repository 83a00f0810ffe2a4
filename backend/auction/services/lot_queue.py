"""Lot queue integrity, shuffling and repair."""

import logging
import random
import time
from collections.abc import Mapping, Sequence
from typing import List, Optional

from auction.errors import DataUnavailable, NotFound, RepairFailed, ValidationFailure, WriteError


log = logging.getLogger(__name__)

REQUIRED_LOT_FIELDS = ('id', 'name', 'base_price')
# Queues written by other clients may carry camelCase keys
_FIELD_ALIASES = {'base_price': ('base_price', 'basePrice')}


def _has_field(lot: Mapping, field: str) -> bool:
    return any(lot.get(key) is not None for key in _FIELD_ALIASES.get(field, (field,)))


def check_queue(candidate) -> None:
    """Raise ValidationFailure describing the first integrity problem found."""
    if candidate is None:
        raise ValidationFailure('queue is absent')
    if isinstance(candidate, (str, bytes)) or not isinstance(candidate, Sequence):
        raise ValidationFailure(f'queue is not a sequence: {type(candidate).__name__}')
    if len(candidate) == 0:
        raise ValidationFailure('queue is empty')
    for index, lot in enumerate(candidate):
        if lot is None:
            raise ValidationFailure(f'lot at index {index} is absent')
        if not isinstance(lot, Mapping):
            raise ValidationFailure(f'lot at index {index} is not a record')
        for field in REQUIRED_LOT_FIELDS:
            if not _has_field(lot, field):
                raise ValidationFailure(f'lot at index {index} missing required field: {field}')


def validate_queue(candidate) -> bool:
    try:
        check_queue(candidate)
    except ValidationFailure as exc:
        log.warning(f"[queue-invalid] {exc}")
        return False
    return True


def shuffle_lots(lots: Sequence, rng: Optional[random.Random] = None) -> list:
    """Return a uniformly random permutation of ``lots`` (Fisher-Yates).

    The input is left untouched.
    """
    rng = rng or random
    shuffled = list(lots)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def load_shuffled_lots(store, rng: Optional[random.Random] = None) -> List[dict]:
    """Fetch the master lot list and return it in random order. Does not persist."""
    lots = store.read_master_lots()
    if not lots:
        raise DataUnavailable('no lots available for auction')
    shuffled = shuffle_lots(lots, rng)
    log.info(f"[queue-shuffle] lots={len(shuffled)}")
    return shuffled


def repair_queue(store, room_id: str, rng: Optional[random.Random] = None) -> List[dict]:
    """Replace the room's queue with a fresh shuffle of the master list.

    The previous queue is discarded in full. Raises RepairFailed when no
    fresh queue can be produced or written.
    """
    log.info(f"[queue-repair] room={room_id}")
    try:
        lots = load_shuffled_lots(store, rng)
        store.write_queue(room_id, lots, len(lots), time.time(), origin='repair')
    except (DataUnavailable, WriteError, NotFound) as exc:
        log.error(f"[queue-repair-failed] room={room_id} error={exc}")
        raise RepairFailed(f"could not repair queue for room {room_id}: {exc}") from exc
    log.info(f"[queue-repaired] room={room_id} lots={len(lots)}")
    return lots


def ensure_valid_queue(store, room_id: str, rng: Optional[random.Random] = None) -> List[dict]:
    """Return the room's queue, repairing it first if it fails the integrity check."""
    queue = store.read_queue(room_id)
    if validate_queue(queue):
        return queue
    return repair_queue(store, room_id, rng)
