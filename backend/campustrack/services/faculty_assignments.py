"""Maintenance of the faculty/subject authorization index.

A ``FacultySubject`` row exists exactly when at least one timetable entry
references the same (faculty, subject) pair. The index is only ever touched
from inside a timetable write, so the grant or release happens in the same
transaction as the edit that caused it.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campustrack.models.profiles import FacultySubject
from campustrack.models.timetable import TimetableEntry

logger = logging.getLogger(__name__)


def is_assigned(db: Session, *, faculty_id: str, subject_id: str) -> bool:
    row = db.execute(
        select(FacultySubject.id).where(
            FacultySubject.faculty_id == faculty_id,
            FacultySubject.subject_id == subject_id,
        )
    ).first()
    return row is not None


def grant(db: Session, *, faculty_id: str, subject_id: str) -> FacultySubject:
    existing = db.execute(
        select(FacultySubject)
        .where(
            FacultySubject.faculty_id == faculty_id,
            FacultySubject.subject_id == subject_id,
        )
        .with_for_update()
    ).scalar_one_or_none()
    if existing is not None:
        return existing
    record = FacultySubject(faculty_id=faculty_id, subject_id=subject_id)
    db.add(record)
    db.flush()
    logger.debug("Granted subject %s to faculty %s", subject_id, faculty_id)
    return record


def count_references(db: Session, *, faculty_id: str, subject_id: str) -> int:
    return db.execute(
        select(func.count(TimetableEntry.id)).where(
            TimetableEntry.faculty_id == faculty_id,
            TimetableEntry.subject_id == subject_id,
        )
    ).scalar_one()


def release_if_unreferenced(db: Session, *, faculty_id: str, subject_id: str) -> bool:
    """Drop the grant when no timetable entry still uses the pair.

    The grant row is locked before counting, so a concurrent ``grant`` for the
    same pair either commits its entry before the count sees it or waits until
    this release is done. Pending timetable changes are flushed first so the
    count sees the state the surrounding transaction is about to commit.
    """
    db.flush()
    record = db.execute(
        select(FacultySubject)
        .where(
            FacultySubject.faculty_id == faculty_id,
            FacultySubject.subject_id == subject_id,
        )
        .with_for_update()
    ).scalar_one_or_none()
    if record is None:
        return False
    if count_references(db, faculty_id=faculty_id, subject_id=subject_id) > 0:
        return False
    db.delete(record)
    db.flush()
    logger.debug("Released subject %s from faculty %s", subject_id, faculty_id)
    return True
