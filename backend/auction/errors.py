"""Failure taxonomy shared by the store adapter and the auction services."""


class AuctionError(Exception):
    """Base class for auction core failures."""


class DataUnavailable(AuctionError):
    """Master lot list is empty or the store could not be reached."""


class WriteError(AuctionError):
    """A store write did not succeed."""


class NotFound(AuctionError):
    """Room has no state row yet."""


class ValidationFailure(AuctionError):
    """A lot queue failed the integrity check."""


class RepairFailed(AuctionError):
    """Queue repair could not produce and persist a fresh queue."""
