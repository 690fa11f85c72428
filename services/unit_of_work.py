"""
Unit of Work - transactional boundary for multi-statement position changes.

Usage:
    with unit_of_work() as session:
        session.execute(...)

The outermost block commits on success. Any exception rolls back every
statement issued inside the block; nested blocks join the outer one.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import db
from services.errors import InvariantViolation, StoreFailure

logger = logging.getLogger(__name__)

_DEPTH_KEY = "unit_of_work_depth"


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return "unique" in message or "duplicate key" in message


def _translate(exc: SQLAlchemyError) -> Exception:
    if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
        logger.error(f"[UOW] Position uniqueness violated, transaction rolled back: {exc.orig}")
        return InvariantViolation(f"Duplicate position detected: {exc.orig}")
    logger.error(f"[UOW] Store failure, transaction rolled back: {exc}")
    return StoreFailure(f"Store operation failed: {exc.__class__.__name__}")


def _rollback(session: Session) -> None:
    try:
        session.rollback()
    except SQLAlchemyError as e:
        logger.error(f"[UOW] Rollback failed: {e}", exc_info=True)


@contextmanager
def unit_of_work(session: Optional[Session] = None) -> Iterator[Session]:
    """
    Run the enclosed block as one transaction.

    Args:
        session: Session to use; defaults to the Flask-SQLAlchemy scoped session

    Raises:
        InvariantViolation: a unique constraint on position fired
        StoreFailure: any other store error, including commit failures
    """
    session = session if session is not None else db.session()
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        if depth:
            yield session
            return

        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            _rollback(session)
            raise _translate(e) from e
        except BaseException:
            # Interrupted or failed caller code: nothing may persist.
            _rollback(session)
            raise
    finally:
        session.info[_DEPTH_KEY] = depth
