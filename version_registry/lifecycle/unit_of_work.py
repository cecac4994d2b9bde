"""
Explicit unit of work.

A lifecycle operation is a function of one ``Session``. ``UnitOfWork.run``
gives it a fresh session, commits if the function returns and rolls back if
it raises, so every write the operation made is kept or none is.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import structlog
from sqlalchemy.orm import Session, sessionmaker

from ..db.base import get_session_local

logger = structlog.get_logger()

T = TypeVar("T")


class UnitOfWork:
    """Runs store operations atomically against one session."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> Callable[[], Session]:
        if self._session_factory is None:
            self._session_factory = get_session_local()
        return self._session_factory

    def run(self, work: Callable[[Session], T]) -> T:
        """Execute ``work`` in a transaction and return its result.

        Any exception raised by ``work`` or by the commit rolls the
        transaction back and is re-raised unchanged.
        """
        session = self.session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            logger.debug("Unit of work rolled back")
            raise
        finally:
            session.close()


def make_unit_of_work(bind) -> UnitOfWork:
    """Build a UnitOfWork over an engine or connection."""
    return UnitOfWork(sessionmaker(autocommit=False, autoflush=False, bind=bind))
