"""
BaseRepository -- abstract base for the SQL repositories.

Responsibility:
    Common constructor and session-handling contract.  Repositories
    receive a SQLAlchemy ``Session`` and use ``session.flush()``, never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries: repositories flush within the caller's
    transaction and never commit or roll back.  The caller (usually
    ``session_scope()``) owns commit/rollback.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseRepository(ABC):
    """Holds the caller's session."""

    def __init__(self, session: Session):
        self.session = session
