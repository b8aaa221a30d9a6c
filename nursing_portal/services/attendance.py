"""Daily attendance reconciliation: live records vs. finalized snapshots.

A date has two possible sources of truth. Before it is finalized, each
student's state lives in an individual AttendanceRecord keyed by
"{student_id}_{date}". Finalizing writes one AttendanceList snapshot
covering the whole roster (students without a record default to absent);
from then on the snapshot is authoritative and the date is locked.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from pymongo.errors import DuplicateKeyError

from nursing_portal.errors import AttendanceLockedError, NotFoundError, ValidationFailed
from nursing_portal.models.attendance import (
    AttendanceList,
    AttendanceMark,
    AttendanceRecord,
    AttendanceView,
    DailyAttendance,
)
from nursing_portal.models.student import Student, StudentSummary
from nursing_portal.services.store import decoded

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 30


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationFailed("Invalid date format (YYYY-MM-DD)")


def format_date_for_id(day: date) -> str:
    return day.strftime("%d-%m-%Y")


def snapshot_key(day: date) -> str:
    return f"attendance_{format_date_for_id(day)}"


def record_key(student_id: str, day: date) -> str:
    return f"{student_id}_{day.isoformat()}"


def attendance_map(marks: Iterable[AttendanceMark]) -> dict[str, bool]:
    """student_id -> present. Later marks for the same student win."""
    return {m.student_id: m.present for m in marks}


def enrolled_on(roster: Iterable[StudentSummary], day: date) -> list[StudentSummary]:
    """Students whose enrollment date is on or before `day`."""
    return [s for s in roster if s.created_at.date() <= day]


def snapshot_marks(
    roster: Iterable[StudentSummary],
    attendance: dict[str, bool],
    day: date,
    marked_by: str,
    marked_at: Optional[datetime] = None,
) -> list[AttendanceMark]:
    """One mark per roster student; no explicit entry means absent."""
    marked_at = marked_at or datetime.utcnow()
    return [
        AttendanceMark(
            student_id=s.student_id,
            date=day.isoformat(),
            present=attendance.get(s.student_id, False),
            marked_at=marked_at,
            marked_by=marked_by,
        )
        for s in roster
    ]


def _by_name(students: list[StudentSummary]) -> list[StudentSummary]:
    return sorted(students, key=lambda s: s.name.casefold())


def build_attendance_view(
    day: date,
    roster: Iterable[StudentSummary],
    records: Iterable[AttendanceMark],
    snapshot_records: Optional[Iterable[AttendanceMark]] = None,
    taken_by: Optional[str] = None,
    submitted_at: Optional[datetime] = None,
) -> AttendanceView:
    """Partition the students enrolled on `day` into present/absent/unmarked.

    With a finalized snapshot every enrolled student is present or absent.
    Without one only students holding a live record are classified; the
    rest are reported as unmarked and count toward neither total.
    """
    enrolled = enrolled_on(roster, day)
    finalized = snapshot_records is not None
    source = attendance_map(snapshot_records if finalized else records)

    present: list[StudentSummary] = []
    absent: list[StudentSummary] = []
    unmarked: list[StudentSummary] = []
    for student in enrolled:
        state = source.get(student.student_id)
        if state is True:
            present.append(student)
        elif state is False or finalized:
            absent.append(student)
        else:
            unmarked.append(student)

    if not finalized and not taken_by:
        taken_by = next((m.marked_by for m in records if m.marked_by), None)

    return AttendanceView(
        date=format_date_for_id(day),
        present_students=_by_name(present),
        absent_students=_by_name(absent),
        unmarked_students=_by_name(unmarked),
        total_enrolled=len(enrolled),
        present_count=len(present),
        absent_count=len(absent),
        is_finalized=finalized,
        taken_by=taken_by,
        submitted_at=submitted_at,
    )


def attendance_rate(marks: Iterable[AttendanceMark]) -> float:
    """Percentage of present marks, two decimals; 0 when there are none."""
    total = 0
    present = 0
    for m in marks:
        total += 1
        if m.present:
            present += 1
    if total == 0:
        return 0.0
    return round(present / total * 100, 2)


async def find_snapshot(day: date) -> Optional[AttendanceList]:
    snapshot = await decoded(
        AttendanceList.find_one(AttendanceList.key == snapshot_key(day)),
        AttendanceList.Settings.name,
    )
    if snapshot and snapshot.is_finalized:
        return snapshot
    return None


async def load_records_for_day(day: date) -> list[AttendanceMark]:
    records = await decoded(
        AttendanceRecord.find(AttendanceRecord.date == day.isoformat()).to_list(),
        AttendanceRecord.Settings.name,
    )
    return [r.to_mark() for r in records]


async def get_daily_attendance(day: date) -> DailyAttendance:
    """Attendance map for a date; a finalized snapshot wins over live records."""
    snapshot = await find_snapshot(day)
    if snapshot:
        marks = list(snapshot.attendance_records)
    else:
        marks = await load_records_for_day(day)
    return DailyAttendance(
        date=day.isoformat(),
        is_finalized=snapshot is not None,
        attendance=attendance_map(marks),
        records=marks,
    )


async def set_attendance(student_id: str, day: date, present: bool, marked_by: str) -> AttendanceMark:
    """Upsert the (student, date) record. Finalized dates are locked."""
    if await find_snapshot(day):
        raise AttendanceLockedError()

    student = await decoded(Student.find_one(Student.student_id == student_id), Student.Settings.name)
    if not student:
        raise NotFoundError("Student not found")

    key = record_key(student_id, day)
    marked_at = datetime.utcnow()
    changes = {"present": present, "marked_by": marked_by, "marked_at": marked_at}
    collection = AttendanceRecord.get_motor_collection()
    try:
        await collection.update_one(
            {"key": key},
            {"$set": changes, "$setOnInsert": {"student_id": student_id, "date": day.isoformat()}},
            upsert=True,
        )
    except DuplicateKeyError:
        # A concurrent first mark inserted the record between match and insert.
        await collection.update_one({"key": key}, {"$set": changes})
    return AttendanceMark(
        student_id=student_id,
        date=day.isoformat(),
        present=present,
        marked_at=marked_at,
        marked_by=marked_by,
    )


async def finalize_day(
    roster: list[StudentSummary],
    attendance: dict[str, bool],
    day: date,
    taken_by: str,
) -> AttendanceList:
    """Freeze the day's roll call into a single snapshot document."""
    key = snapshot_key(day)
    if await find_snapshot(day):
        raise AttendanceLockedError()

    submitted_at = datetime.utcnow()
    marks = snapshot_marks(roster, attendance, day, taken_by, submitted_at)
    present_count = sum(1 for m in marks if m.present)
    snapshot = AttendanceList(
        key=key,
        date=format_date_for_id(day),
        day=day.isoformat(),
        taken_by=taken_by,
        submitted_at=submitted_at,
        total_students=len(marks),
        present_count=present_count,
        absent_count=len(marks) - present_count,
        attendance_records=marks,
        is_finalized=True,
    )
    try:
        await snapshot.insert()
    except DuplicateKeyError:
        # Another finalize for the same date landed first.
        raise AttendanceLockedError()
    logger.info(f"Finalized attendance {key}: {present_count}/{len(marks)} present")
    return snapshot


async def load_attendance_view(day: date, roster: list[StudentSummary]) -> AttendanceView:
    snapshot = await find_snapshot(day)
    if snapshot:
        return build_attendance_view(
            day,
            roster,
            [],
            snapshot_records=snapshot.attendance_records,
            taken_by=snapshot.taken_by,
            submitted_at=snapshot.submitted_at,
        )
    records = await load_records_for_day(day)
    return build_attendance_view(day, roster, records)


async def load_student_history(student_id: str, limit: int = HISTORY_LIMIT) -> list[AttendanceMark]:
    records = await decoded(
        AttendanceRecord.find(AttendanceRecord.student_id == student_id)
        .sort("-date")
        .limit(limit)
        .to_list(),
        AttendanceRecord.Settings.name,
    )
    return [r.to_mark() for r in records]


async def load_student_marks(student_ids: list[str] | None = None) -> list[AttendanceMark]:
    """All live records, optionally restricted to some students."""
    query = AttendanceRecord.find_all() if student_ids is None else AttendanceRecord.find(
        {"student_id": {"$in": student_ids}}
    )
    records = await decoded(query.to_list(), AttendanceRecord.Settings.name)
    return [r.to_mark() for r in records]


async def load_range(from_day: date, to_day: date) -> list[AttendanceMark]:
    """Effective marks per date in the range; finalized dates use their snapshot."""
    records = await decoded(
        AttendanceRecord.find(
            {"date": {"$gte": from_day.isoformat(), "$lte": to_day.isoformat()}}
        ).to_list(),
        AttendanceRecord.Settings.name,
    )
    by_date: dict[str, list[AttendanceMark]] = {}
    for r in records:
        by_date.setdefault(r.date, []).append(r.to_mark())

    snapshots = await decoded(
        AttendanceList.find(
            {"day": {"$gte": from_day.isoformat(), "$lte": to_day.isoformat()}, "is_finalized": True}
        ).to_list(),
        AttendanceList.Settings.name,
    )
    for snap in snapshots:
        by_date[snap.day] = list(snap.attendance_records)

    marks: list[AttendanceMark] = []
    for d in sorted(by_date):
        marks.extend(by_date[d])
    return marks
