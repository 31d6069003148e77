"""Persistent display colours for subjects in timetable grids.

Colours are cosmetic: a subject keeps the palette slot it was given the first
time it appeared on any grid, and a registry failure only costs the colour,
never the grid read.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campustrack.models.academic import SubjectColorMap

logger = logging.getLogger(__name__)

SUBJECT_COLORS: tuple[str, ...] = (
    "blue",
    "purple",
    "green",
    "yellow",
    "pink",
    "cyan",
    "orange",
    "red",
    "indigo",
    "teal",
    "lime",
    "amber",
    "emerald",
    "violet",
    "fuchsia",
    "rose",
    "sky",
    "slate",
    "zinc",
    "stone",
)
DEFAULT_SUBJECT_COLOR = "gray"


def color_for_index(color_index: int) -> str:
    return SUBJECT_COLORS[color_index % len(SUBJECT_COLORS)]


def get_bulk_subject_colors(db: Session, subject_ids: list[str]) -> dict[str, str]:
    requested = list(dict.fromkeys(subject_ids))
    if not requested:
        return {}

    colors: dict[str, str] = {}
    try:
        mappings = db.execute(select(SubjectColorMap).where(SubjectColorMap.subject_id.in_(requested))).scalars()
        for mapping in mappings:
            colors[mapping.subject_id] = color_for_index(mapping.color_index)

        missing = [subject_id for subject_id in requested if subject_id not in colors]
        if missing:
            highest = db.execute(select(func.max(SubjectColorMap.color_index))).scalar_one()
            next_index = 0 if highest is None else highest + 1
            assigned: dict[str, str] = {}
            for subject_id in missing:
                db.add(SubjectColorMap(subject_id=subject_id, color_index=next_index))
                assigned[subject_id] = color_for_index(next_index)
                next_index += 1
            db.commit()
            colors.update(assigned)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Subject colour registry unavailable; using fallback colour", exc_info=True)
        return {subject_id: colors.get(subject_id, DEFAULT_SUBJECT_COLOR) for subject_id in requested}
    return colors
