"""Announcements and direct messages, with optional Telegram relay."""
from fastapi import APIRouter

from nursing_portal.api.deps import CurrentUser, InstructorOnly, caller_id
from nursing_portal.models.announcement import AnnouncementCreate
from nursing_portal.services import announcements, roster

router = APIRouter()


@router.get("/")
async def list_announcements(
    user: InstructorOnly,
    search: str | None = None,
    message_type: str = "all",
    status: str = "all",
    urgency: str = "all",
    sort_by: str = "date",
):
    items = await announcements.load_announcements()
    students = await roster.load_roster()
    for a in items:
        a.read_percentage = announcements.read_percentage(a, students)
    shown = [a for a in items if announcements.matches(a, search, message_type, status, urgency)]
    return {
        "announcements": announcements.sort_announcements(shown, sort_by),
        "showing": len(shown),
        "stats": announcements.announcement_stats(items),
    }


@router.post("/", status_code=201)
async def send_announcement(data: AnnouncementCreate, user: InstructorOnly):
    students = await roster.load_roster()
    created, summary = await announcements.send_announcement(data, students, caller_id(user))
    created.read_percentage = announcements.read_percentage(created, students)
    return {"announcement": created, "relay": summary}


@router.post("/{announcement_id}/resend")
async def resend_announcement(announcement_id: str, user: InstructorOnly):
    summary = await announcements.resend_announcement(announcement_id, await roster.load_roster())
    return {"success": summary.success, "relay": summary}


@router.post("/{announcement_id}/read")
async def mark_read(announcement_id: str, student_id: str, user: CurrentUser):
    return await announcements.mark_read(announcement_id, student_id, await roster.load_roster())


@router.delete("/{announcement_id}")
async def delete_announcement(announcement_id: str, user: InstructorOnly):
    await announcements.delete_announcement(announcement_id)
    return {"status": "deleted"}
