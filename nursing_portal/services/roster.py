"""Roster store: student records and their denormalized summary stats.

`document_count`, `overall_grade`, `completed_assignments`,
`total_assignments` and `attendance_rate` on Student are caches. They are
computed by `recompute_stats` from the documents and attendance records and
written back separately by `persist_stats`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from pymongo.errors import DuplicateKeyError

from nursing_portal.errors import NotFoundError, ValidationFailed
from nursing_portal.models.attendance import AttendanceMark
from nursing_portal.models.document import DocumentOut
from nursing_portal.models.message import StudentMessage, StudentMessageCreate
from nursing_portal.models.student import (
    Student,
    StudentCreate,
    StudentPerformance,
    StudentSummary,
    StudentUpdate,
)
from nursing_portal.services.attendance import attendance_rate, load_student_marks
from nursing_portal.services.documents import load_documents
from nursing_portal.services.store import decoded

logger = logging.getLogger(__name__)

STAT_FIELDS = (
    "document_count",
    "overall_grade",
    "completed_assignments",
    "total_assignments",
    "attendance_rate",
)


def grade_summary(documents: Iterable[DocumentOut]) -> tuple[float, int, int]:
    """(average grade %, graded count, total count) over a student's documents."""
    documents = list(documents)
    graded = [d for d in documents if d.is_graded and d.grade is not None and d.max_grade is not None]
    max_points = sum(d.max_grade for d in graded)
    points = sum(d.grade for d in graded)
    average = round(points / max_points * 100, 2) if max_points > 0 else 0.0
    return average, len(graded), len(documents)


def recompute_stats(
    roster: list[StudentSummary],
    documents: Iterable[DocumentOut],
    records: Iterable[AttendanceMark],
) -> list[StudentSummary]:
    """Return copies of `roster` with every cached stat regenerated."""
    docs_by_student: dict[str, list[DocumentOut]] = {}
    for d in documents:
        docs_by_student.setdefault(d.student_id, []).append(d)
    marks_by_student: dict[str, list[AttendanceMark]] = {}
    for m in records:
        marks_by_student.setdefault(m.student_id, []).append(m)

    updated = []
    for student in roster:
        own_docs = docs_by_student.get(student.student_id, [])
        average, completed, total = grade_summary(own_docs)
        updated.append(
            student.model_copy(
                update={
                    "document_count": len(own_docs),
                    "overall_grade": average,
                    "completed_assignments": completed,
                    "total_assignments": total,
                    "attendance_rate": attendance_rate(marks_by_student.get(student.student_id, [])),
                }
            )
        )
    return updated


def changed_stats(before: StudentSummary, after: StudentSummary) -> dict:
    return {
        field: getattr(after, field)
        for field in STAT_FIELDS
        if getattr(before, field) != getattr(after, field)
    }


async def load_roster() -> list[StudentSummary]:
    students = await decoded(Student.find_all().sort("name").to_list(), Student.Settings.name)
    return [StudentSummary.from_document(s) for s in students]


async def get_student(student_id: str) -> StudentSummary:
    student = await decoded(Student.find_one(Student.student_id == student_id), Student.Settings.name)
    if not student:
        raise NotFoundError("Student not found")
    return StudentSummary.from_document(student)


async def add_student(data: StudentCreate) -> StudentSummary:
    existing = await decoded(Student.find_one(Student.student_id == data.student_id), Student.Settings.name)
    if existing:
        raise ValidationFailed(f"Student ID {data.student_id} already exists")
    student = Student(
        student_id=data.student_id,
        name=data.name,
        email=str(data.email),
        academic_year=data.academic_year,
        nursing_level=data.nursing_level,
        clinical_rotation=data.clinical_rotation,
        telegram_id=(data.telegram_id or "").strip() or None,
        phone_number=(data.phone_number or "").strip() or None,
        overall_grade=0,
        completed_assignments=0,
        total_assignments=0,
        attendance_rate=100,
    )
    try:
        await student.insert()
    except DuplicateKeyError:
        raise ValidationFailed(f"Student ID {data.student_id} already exists")
    logger.info(f"Added student {student.student_id}")
    return StudentSummary.from_document(student)


async def update_student(student_id: str, data: StudentUpdate) -> StudentSummary:
    student = await decoded(Student.find_one(Student.student_id == student_id), Student.Settings.name)
    if not student:
        raise NotFoundError("Student not found")
    update_data = data.model_dump(exclude_unset=True)
    if "email" in update_data and update_data["email"] is not None:
        update_data["email"] = str(update_data["email"])
    for key, value in update_data.items():
        setattr(student, key, value)
    await student.save()
    return StudentSummary.from_document(student)


async def persist_stats(before: list[StudentSummary], after: list[StudentSummary]) -> int:
    """Write back only the stats that changed; returns the number of students written."""
    written = 0
    for old, new in zip(before, after):
        changes = changed_stats(old, new)
        if not changes:
            continue
        await Student.find(Student.student_id == new.student_id).update({"$set": changes})
        written += 1
    return written


async def refresh_stats(student_ids: Optional[list[str]] = None) -> list[StudentSummary]:
    """Recompute and persist cached stats for some or all students."""
    roster = await load_roster()
    if student_ids is not None:
        wanted = set(student_ids)
        roster = [s for s in roster if s.student_id in wanted]
    if not roster:
        return []
    ids = [s.student_id for s in roster]
    id_set = set(ids)
    documents = [d for d in await load_documents() if d.student_id in id_set]
    records = await load_student_marks(ids)
    updated = recompute_stats(roster, documents, records)
    written = await persist_stats(roster, updated)
    if written:
        logger.info(f"Refreshed stats for {written} student(s)")
    return updated


async def student_performance(student_id: str) -> StudentPerformance:
    student = await get_student(student_id)
    documents = await load_documents(student_id)
    records = await load_student_marks([student_id])
    average, completed, total = grade_summary(documents)
    return StudentPerformance(
        student_id=student.student_id,
        overall_grade=average,
        completed_assignments=completed,
        total_assignments=total,
        attendance_rate=attendance_rate(records),
    )


async def load_messages(student_id: str) -> list[StudentMessage]:
    return await decoded(
        StudentMessage.find(StudentMessage.student_id == student_id).sort("-created_at").to_list(),
        StudentMessage.Settings.name,
    )


async def send_message(student_id: str, data: StudentMessageCreate) -> StudentMessage:
    text = (data.message or "").strip()
    if not text:
        raise ValidationFailed("Message is required")
    await get_student(student_id)
    message = StudentMessage(
        student_id=student_id,
        from_instructor=True,
        message=text,
        urgent=data.urgent,
        created_at=datetime.utcnow(),
    )
    await message.insert()
    return message
