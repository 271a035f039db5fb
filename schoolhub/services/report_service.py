# schoolhub/services/report_service.py - Student attendance reports
import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
import uuid

from sqlalchemy.orm import Session

from schoolhub.core.config import settings as app_settings
from schoolhub.core.errors import FutureDate, StudentNotFound, SectionNotFound, ValidationError
from schoolhub.models.attendance import AttendanceStatus, StudentAttendance
from schoolhub.repositories.academic import AcademicRepository
from schoolhub.repositories.attendance import AttendanceRepository
from schoolhub.services.attendance_stats import count_statuses, attendance_rate
from schoolhub.services.attendance_service import summary_dict

logger = logging.getLogger(__name__)

TREND_DELTA = 5.0
DEFAULT_RANGE_DAYS = 30


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def month_bounds(year: int, month: int):
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 2000 <= year <= 2100:
        raise ValidationError("Year must be between 2000 and 2100")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def working_days(start: date, end: date) -> List[date]:
    """Weekdays between start and end inclusive"""
    days = []
    current = start
    while current <= end:
        if not is_weekend(current):
            days.append(current)
        current += timedelta(days=1)
    return days


def trend_between(current: float, previous: Optional[float]) -> str:
    if previous is None:
        return "stable"
    if current - previous >= TREND_DELTA:
        return "improving"
    if previous - current >= TREND_DELTA:
        return "declining"
    return "stable"


def _rate_of(records: Sequence[StudentAttendance]) -> float:
    return count_statuses(r.status for r in records).rate


class AttendanceReportService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.repo = AttendanceRepository(db)
        self.academic = AcademicRepository(db)

    def _today(self) -> date:
        return self.clock().date()

    def _get_section(self, tenant_id: uuid.UUID, section_id: uuid.UUID):
        section = self.academic.get_section(tenant_id, section_id)
        if not section:
            raise SectionNotFound()
        return section

    def class_report(self, tenant_id: uuid.UUID, section_id: uuid.UUID, report_date: date) -> Dict[str, Any]:
        """Daily report for one section"""
        if report_date > self._today():
            raise FutureDate("Cannot report attendance for a future date")
        section = self._get_section(tenant_id, section_id)
        students = self.academic.get_students_in_section(tenant_id, section_id)
        records = {r.student_id: r for r in self.repo.get_section_records(tenant_id, section_id, report_date)}

        rows = []
        for student in students:
            record = records.get(student.id)
            status = AttendanceStatus(record.status) if record else None
            rows.append({
                "student_id": student.id,
                "admission_number": student.admission_number,
                "full_name": student.full_name,
                "roll_number": student.roll_number,
                "status": status.value if status else None,
                "status_label": status.label if status else "Not Marked",
                "remarks": record.remarks if record else None,
            })

        counts = count_statuses(r.status for r in records.values())
        return {
            "section_id": section.id,
            "section_name": section.name,
            "class_name": section.class_name,
            "date": report_date,
            "students": rows,
            "summary": summary_dict(counts, len(students)),
            "attendance_rate": counts.rate,
        }

    def monthly_class_report(self, tenant_id: uuid.UUID, section_id: uuid.UUID, year: int, month: int) -> Dict[str, Any]:
        section = self._get_section(tenant_id, section_id)
        start, end = month_bounds(year, month)
        end = min(end, self._today())
        dates = working_days(start, end) if start <= end else []

        by_student: Dict[uuid.UUID, Dict[str, str]] = defaultdict(dict)
        if dates:
            for record in self.repo.get_daily_records_in_range(tenant_id, start, end, section_id=section_id):
                by_student[record.student_id][record.attendance_date.isoformat()] = record.status

        rows = []
        for student in self.academic.get_students_in_section(tenant_id, section_id):
            daily = by_student.get(student.id, {})
            counts = count_statuses(daily.values())
            rows.append({
                "student_id": student.id,
                "admission_number": student.admission_number,
                "full_name": student.full_name,
                "roll_number": student.roll_number,
                "daily_status": daily,
                **counts.as_dict(),
                "percentage": counts.rate,
            })

        rated = [row["percentage"] for row in rows if row["daily_status"]]
        return {
            "section_id": section.id,
            "section_name": section.name,
            "class_name": section.class_name,
            "year": year,
            "month": month,
            "month_name": calendar.month_name[month],
            "working_days": len(dates),
            "dates": dates,
            "students": rows,
            "summary": {
                "total_students": len(rows),
                "average_attendance": round(sum(rated) / len(rated), 2) if rated else 0.0,
            },
        }

    def student_calendar(self, tenant_id: uuid.UUID, student_id: uuid.UUID, year: int, month: int) -> Dict[str, Any]:
        """Month view of one student's daily attendance with class average and trend"""
        student = self.academic.get_student(tenant_id, student_id)
        if not student:
            raise StudentNotFound()

        start, end = month_bounds(year, month)
        records = {
            r.attendance_date: r
            for r in self.repo.get_daily_records_in_range(tenant_id, start, end, student_id=student_id)
        }

        today = self._today()
        days = []
        for offset in range((end - start).days + 1):
            day = start + timedelta(days=offset)
            record = records.get(day)
            days.append({
                "date": day,
                "day_of_week": day.isoweekday() % 7,
                "status": record.status if record else None,
                "is_weekend": is_weekend(day),
                "is_holiday": False,
                "remarks": record.remarks if record else None,
            })

        counts = count_statuses(r.status for r in records.values())
        summary = {
            "working_days": len(working_days(start, min(end, today))) if start <= today else 0,
            **counts.as_dict(),
            "holidays": 0,
            "percentage": counts.rate,
        }

        class_average = 0.0
        if student.section_id:
            class_records = self.repo.get_daily_records_in_range(
                tenant_id, start, end, section_id=student.section_id
            )
            class_average = _rate_of(class_records)

        prev_end = start - timedelta(days=1)
        prev_records = self.repo.get_daily_records_in_range(
            tenant_id, prev_end.replace(day=1), prev_end, student_id=student_id
        )
        previous_rate = _rate_of(prev_records) if prev_records else None

        return {
            "student_id": student.id,
            "student_name": student.full_name,
            "year": year,
            "month": month,
            "month_name": calendar.month_name[month],
            "days": days,
            "summary": summary,
            "class_average": class_average,
            "trend": trend_between(counts.rate, previous_rate) if records else "stable",
        }

    def low_attendance(
        self,
        tenant_id: uuid.UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        threshold: Optional[float] = None,
        section_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """Students whose attendance rate over the range is below the threshold"""
        date_to = date_to or self._today()
        date_from = date_from or date_to - timedelta(days=DEFAULT_RANGE_DAYS)
        if date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        threshold = app_settings.ATTENDANCE_LOW_THRESHOLD if threshold is None else threshold
        if not 0 <= threshold <= 100:
            raise ValidationError("Threshold must be between 0 and 100")
        critical = min(app_settings.ATTENDANCE_CRITICAL_THRESHOLD, threshold)

        records_by_student: Dict[uuid.UUID, List[StudentAttendance]] = defaultdict(list)
        for record in self.repo.get_daily_records_in_range(tenant_id, date_from, date_to, section_id=section_id):
            records_by_student[record.student_id].append(record)

        students = {
            s.id: s for s in self.academic.list_students(tenant_id, section_id=section_id, status="ACTIVE")
        }

        flagged = []
        section_stats: Dict[uuid.UUID, Dict[str, Any]] = {}
        overall = count_statuses([])
        for student_id, records in records_by_student.items():
            student = students.get(student_id)
            if student is None:
                continue
            counts = count_statuses(r.status for r in records)
            overall.present += counts.present
            overall.absent += counts.absent
            overall.late += counts.late
            overall.half_day += counts.half_day

            section = student.section
            if section is not None:
                stats = section_stats.setdefault(section.id, {
                    "section_id": section.id,
                    "section_name": section.name,
                    "class_name": section.class_name,
                    "counts": count_statuses([]),
                    "total_students": 0,
                    "below_threshold": 0,
                })
                stats["total_students"] += 1
                for r in records:
                    stats["counts"].add(r.status)

            rate = counts.rate
            if rate >= threshold:
                continue
            if section is not None:
                section_stats[section.id]["below_threshold"] += 1

            ordered = sorted(records, key=lambda r: r.attendance_date)
            attended_dates = [r.attendance_date for r in ordered if r.status_enum.is_attended]
            consecutive = 0
            for r in reversed(ordered):
                if r.status != AttendanceStatus.ABSENT.value:
                    break
                consecutive += 1

            flagged.append({
                "student_id": student.id,
                "admission_number": student.admission_number,
                "full_name": student.full_name,
                "class_name": section.class_name if section else "",
                "section_name": section.name if section else "",
                "attendance_rate": rate,
                "days_absent": counts.absent,
                "last_present": attended_dates[-1] if attended_dates else None,
                "consecutive_absent": consecutive,
                "is_critical": rate < critical,
            })

        flagged.sort(key=lambda row: (row["attendance_rate"], row["full_name"]))
        breakdown = []
        for stats in sorted(section_stats.values(), key=lambda s: (s["class_name"], s["section_name"])):
            counts = stats.pop("counts")
            stats["attendance_rate"] = counts.rate
            breakdown.append(stats)

        return {
            "date_from": date_from,
            "date_to": date_to,
            "threshold": threshold,
            "critical_threshold": critical,
            "total_students": sum(1 for sid in records_by_student if sid in students),
            "below_threshold": len(flagged),
            "chronic_absentees": sum(1 for row in flagged if row["is_critical"]),
            "overall_attendance_rate": attendance_rate(overall.present, overall.absent, overall.late, overall.half_day),
            "students": flagged,
            "class_breakdown": breakdown,
        }

    def unmarked(self, tenant_id: uuid.UUID, report_date: date) -> Dict[str, Any]:
        """Active sections with students that have no daily attendance for the date"""
        student_counts = self.academic.count_students_by_section(tenant_id)
        marked = self.repo.marked_section_ids(tenant_id, report_date)

        unmarked_classes = []
        total = 0
        for section in self.academic.list_sections(tenant_id):
            student_count = student_counts.get(section.id, 0)
            if student_count == 0:
                continue
            total += 1
            if section.id in marked:
                continue
            teacher = section.class_teacher
            unmarked_classes.append({
                "section_id": section.id,
                "section_name": section.name,
                "class_name": section.class_name,
                "teacher_id": teacher.id if teacher else None,
                "teacher_name": teacher.full_name if teacher else None,
                "student_count": student_count,
            })

        if unmarked_classes:
            logger.info(f"{len(unmarked_classes)} of {total} sections unmarked for {report_date}")

        return {
            "date": report_date,
            "unmarked_classes": unmarked_classes,
            "total_classes": total,
            "marked_classes": total - len(unmarked_classes),
        }
