"""Persistence layer for the notification tables.

Public API:
    - init_database(database_url) / close_database() / get_engine()
    - get_session(): context manager that commits or rolls back
    - EventRepository, DeliveryRepository, PreferenceRepository,
      ProfileRepository, FollowRepository
    - PersistenceError and its subclasses

Example usage:
    >>> from qalam.persistence import init_database, get_session, EventRepository
    >>> init_database("sqlite:///./data/qalam_notifications.db")
    >>> with get_session() as session:
    ...     batch = EventRepository(session).fetch_pending_batch()
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    DEFAULT_BATCH_SIZE,
    DeliveryRepository,
    EventRepository,
    FollowRepository,
    PreferenceRepository,
    ProfileRepository,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "DEFAULT_BATCH_SIZE",
    "EventRepository",
    "DeliveryRepository",
    "PreferenceRepository",
    "ProfileRepository",
    "FollowRepository",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
