# schoolhub/services/attendance_stats.py - Counting and rate helpers shared by marking and reports
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from schoolhub.models.attendance import AttendanceStatus


@dataclass
class StatusCounts:
    present: int = 0
    absent: int = 0
    late: int = 0
    half_day: int = 0

    def add(self, status) -> None:
        status = AttendanceStatus(status)
        if status is AttendanceStatus.PRESENT:
            self.present += 1
        elif status is AttendanceStatus.ABSENT:
            self.absent += 1
        elif status is AttendanceStatus.LATE:
            self.late += 1
        else:
            self.half_day += 1

    @property
    def marked(self) -> int:
        return self.present + self.absent + self.late + self.half_day

    @property
    def attended(self) -> int:
        return self.present + self.late + self.half_day

    @property
    def rate(self) -> float:
        return attendance_rate(self.present, self.absent, self.late, self.half_day)

    def as_dict(self) -> dict:
        return asdict(self)


def count_statuses(statuses: Iterable[Optional[str]]) -> StatusCounts:
    """Count statuses, skipping unmarked (None) entries"""
    counts = StatusCounts()
    for status in statuses:
        if status is not None:
            counts.add(status)
    return counts


def attendance_rate(present: int, absent: int, late: int, half_day: int) -> float:
    """
    Percentage of marked sessions attended.

    Late counts as attended, a half day counts as half. Returns 0.0 when
    nothing has been marked.
    """
    marked = present + absent + late + half_day
    if marked == 0:
        return 0.0
    return round((present + late + 0.5 * half_day) / marked * 100, 2)


def format_mark_message(counts: StatusCounts) -> str:
    return (
        f"Attendance marked: {counts.present} present, {counts.absent} absent, "
        f"{counts.late} late, {counts.half_day} half-day"
    )
