from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter

from nursing_portal.api.deps import InstructorOnly
from nursing_portal.models.announcement import AnnouncementOut
from nursing_portal.models.attendance import AttendanceView
from nursing_portal.models.document import DocumentOut
from nursing_portal.models.student import StudentSummary
from nursing_portal.services import announcements, attendance, documents, resources, roster

router = APIRouter()


def summarize(
    students: list[StudentSummary],
    docs: list[DocumentOut],
    resource_items: list[dict],
    announcement_items: list[AnnouncementOut],
    today: AttendanceView,
) -> Dict[str, Any]:
    stats = documents.document_stats(docs)
    return {
        "counts": {
            "students": len(students),
            "documents": stats.total,
            "ungraded_documents": stats.ungraded,
            "resources": len(resource_items),
            "announcements": len(announcement_items),
            "urgent_announcements": sum(1 for a in announcement_items if a.urgent),
        },
        "attendance": {
            "date": today.date,
            "is_finalized": today.is_finalized,
            "present": today.present_count,
            "absent": today.absent_count,
            "unmarked": len(today.unmarked_students),
            "total_enrolled": today.total_enrolled,
        },
    }


@router.get("/stats")
async def get_dashboard_stats(user: InstructorOnly) -> Dict[str, Any]:
    """Overview statistics for the instructor dashboard."""
    students = await roster.load_roster()
    today = await attendance.load_attendance_view(datetime.utcnow().date(), students)
    return summarize(
        students,
        await documents.load_documents(),
        await resources.load_resources(),
        await announcements.load_announcements(),
        today,
    )
