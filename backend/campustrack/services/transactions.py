from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campustrack.core.exceptions import AppError, ConflictError, OperationFailedError

logger = logging.getLogger(__name__)


def _is_conflict(exc: IntegrityError, markers: tuple[str, ...]) -> bool:
    if not markers:
        return True
    text = str(exc.orig)
    return any(marker in text for marker in markers)


@contextmanager
def transaction(
    db: Session,
    *,
    failure_message: str,
    failure_code: str,
    conflict_message: str | None = None,
    conflict_markers: tuple[str, ...] = (),
) -> Iterator[Session]:
    """Run a block of writes as one unit and commit it.

    Any failure rolls the whole block back. Domain errors are re-raised as they
    are; storage errors are logged and replaced by ``OperationFailedError`` so the
    caller never sees a raw driver message. When ``conflict_message`` is given an
    ``IntegrityError`` is reported as a ``CONFLICT`` instead. ``conflict_markers``
    narrows that to violations whose driver message names one of the markers
    (a constraint name, or the columns SQLite reports in its place).
    """
    try:
        yield db
        db.commit()
    except AppError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if conflict_message is not None and _is_conflict(exc, conflict_markers):
            logger.warning("Integrity conflict: %s", exc.orig)
            raise ConflictError(conflict_message) from exc
        logger.exception(failure_message)
        raise OperationFailedError(failure_message, failure_code) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(failure_message)
        raise OperationFailedError(failure_message, failure_code) from exc
