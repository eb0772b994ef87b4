"""Overlap detection between a candidate shift and a user's other shifts"""
from collections import defaultdict
from datetime import date, time
from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.shift_tool.models.shift import Shift
from src.shift_tool.schemas.shift_import import NormalizedShiftRow


OVERLAP_REASON = "Overlaps with an existing shift"
BATCH_OVERLAP_REASON = "Overlaps with another shift earlier in this import"

Interval = Tuple[str, str]


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap on canonical HH:MM strings; touching ends do not overlap."""
    return a_start < b_end and a_end > b_start


def find_shifts_for_user_on_date(db: Session, user_id: int, shift_date: date) -> List[Shift]:
    stmt = select(Shift).where(
        Shift.user_id == user_id,
        Shift.date == shift_date
    ).order_by(Shift.start_time)
    return list(db.execute(stmt).scalars().all())


def find_overlap(db: Session, candidate: NormalizedShiftRow, user_id: int) -> bool:
    stmt = select(Shift.id).where(
        Shift.user_id == user_id,
        Shift.date == date.fromisoformat(candidate.date),
        Shift.start_time < time.fromisoformat(candidate.end_time),
        Shift.end_time > time.fromisoformat(candidate.start_time)
    ).limit(1)
    return db.execute(stmt).first() is not None


class PendingSlots:
    """Slots claimed by accepted rows of a batch that has not been written."""

    def __init__(self) -> None:
        self._slots: Dict[Tuple[int, str], List[Interval]] = defaultdict(list)

    def overlaps(self, candidate: NormalizedShiftRow, user_id: int) -> bool:
        return any(
            intervals_overlap(start, end, candidate.start_time, candidate.end_time)
            for start, end in self._slots[(user_id, candidate.date)]
        )

    def claim(self, candidate: NormalizedShiftRow, user_id: int) -> None:
        self._slots[(user_id, candidate.date)].append((candidate.start_time, candidate.end_time))
