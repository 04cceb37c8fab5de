from __future__ import annotations


class WatchtrackError(RuntimeError):
    pass


class MalformedPersistedData(WatchtrackError, ValueError):
    """Stored progress could not be decoded; treated as "no saved progress"."""


class PersistenceWriteFailure(WatchtrackError):
    """The key-value store rejected a write or delete."""
