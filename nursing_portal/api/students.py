"""Student roster: enrollment, profile updates, performance and messages."""
from fastapi import APIRouter, Query

from nursing_portal.api.deps import InstructorOnly
from nursing_portal.models.message import StudentMessageCreate
from nursing_portal.models.student import StudentCreate, StudentSummary, StudentUpdate
from nursing_portal.services import attendance, documents, roster

router = APIRouter()


def _matches(student: StudentSummary, q: str | None, level: str | None) -> bool:
    if level and level != "all" and student.nursing_level != level:
        return False
    term = (q or "").strip().lower()
    if not term:
        return True
    return (
        term in student.name.lower()
        or term in student.student_id.lower()
        or term in student.email.lower()
    )


@router.get("/")
async def list_students(
    user: InstructorOnly,
    q: str | None = Query(None, description="Search by name, student id or email"),
    level: str | None = None,
):
    students = await roster.load_roster()
    return [s for s in students if _matches(s, q, level)]


@router.post("/", status_code=201)
async def add_student(data: StudentCreate, user: InstructorOnly):
    return await roster.add_student(data)


@router.post("/stats/refresh")
async def refresh_stats(user: InstructorOnly):
    """Recompute document counts, grades and attendance rates for the whole roster."""
    updated = await roster.refresh_stats()
    return {"status": "success", "students": len(updated)}


@router.get("/{student_id}")
async def get_student(student_id: str, user: InstructorOnly):
    return await roster.get_student(student_id)


@router.patch("/{student_id}")
async def update_student(student_id: str, data: StudentUpdate, user: InstructorOnly):
    return await roster.update_student(student_id, data)


@router.get("/{student_id}/performance")
async def get_performance(student_id: str, user: InstructorOnly):
    return await roster.student_performance(student_id)


@router.get("/{student_id}/documents")
async def get_student_documents(student_id: str, user: InstructorOnly):
    await roster.get_student(student_id)
    return await documents.load_documents(student_id)


@router.get("/{student_id}/attendance")
async def get_attendance_history(student_id: str, user: InstructorOnly):
    """Most recent attendance records, newest first."""
    await roster.get_student(student_id)
    return await attendance.load_student_history(student_id)


@router.get("/{student_id}/messages")
async def list_messages(student_id: str, user: InstructorOnly):
    return await roster.load_messages(student_id)


@router.post("/{student_id}/messages", status_code=201)
async def send_message(student_id: str, data: StudentMessageCreate, user: InstructorOnly):
    return await roster.send_message(student_id, data)
