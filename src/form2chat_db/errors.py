"""Errors raised by the persistence layer."""


class StoreIOError(Exception):
    """The session store failed to read or write.

    Wraps the underlying database error; the engine never retries.
    """
