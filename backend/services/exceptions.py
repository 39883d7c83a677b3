"""Persistence and run-control exceptions raised by the sync services."""

import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# SQLite:     "UNIQUE constraint failed: products.slug"
# PostgreSQL: 'duplicate key value violates unique constraint "uq_products_slug"'
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w.]+(?:, [\w.]+)*)")
_POSTGRES_UNIQUE_RE = re.compile(r'unique constraint "(\w+)"')


class PersistenceError(Exception):
    """A storage failure while reconciling a record."""

    pass


class PersistenceConflict(PersistenceError):
    """A natural-key / unique-constraint violation.

    ``target`` names the violated column(s) or constraint when the driver
    message identifies it, e.g. ``"products.slug"`` or ``"uq_products_slug"``.
    """

    def __init__(self, message: str, target: str | None = None):
        self.target = target
        super().__init__(message)

    @property
    def is_slug_conflict(self) -> bool:
        return self.target is not None and "slug" in self.target


class SyncAlreadyRunningError(Exception):
    """A sync was requested while another run holds the sync lock."""

    pass


class SyncCancelledError(Exception):
    """The run was cancelled before all items were processed."""

    pass


def translate_db_error(exc: SQLAlchemyError) -> PersistenceError:
    """Map a SQLAlchemy error to the persistence error hierarchy."""
    message = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, IntegrityError):
        match = _SQLITE_UNIQUE_RE.search(message) or _POSTGRES_UNIQUE_RE.search(message)
        if match or "unique" in message.lower() or "duplicate" in message.lower():
            return PersistenceConflict(message, target=match.group(1) if match else None)
    return PersistenceError(message)
