"""Persistence layer exceptions.

Everything raised by the persistence package derives from PersistenceError,
so callers that only care about "the database failed" can catch one type.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """The engine could not be created, reached, or was never initialised."""

    pass


class RecordNotFoundError(PersistenceError):
    """A row the caller required does not exist.

    Optional lookups (``get``) return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """A constraint was violated, e.g. a delivery row for an unknown event."""

    pass
