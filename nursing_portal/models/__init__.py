"""Beanie document models and Pydantic schemas."""
from nursing_portal.models.user import User, UserRole, UserCreate, UserProfileUpdate
from nursing_portal.models.student import (
    Student,
    StudentCreate,
    StudentUpdate,
    StudentSummary,
    StudentPerformance,
)
from nursing_portal.models.attendance import (
    AttendanceMark,
    AttendanceRecord,
    AttendanceList,
    AttendanceView,
    DailyAttendance,
)
from nursing_portal.models.document import StudentDocument, GradeUpdate, DocumentFilters
from nursing_portal.models.resource import StudyResource, StudyResourceCreate
from nursing_portal.models.announcement import Announcement, AnnouncementCreate
from nursing_portal.models.message import StudentMessage, StudentMessageCreate

__all__ = [
    "User",
    "UserRole",
    "UserCreate",
    "UserProfileUpdate",
    "Student",
    "StudentCreate",
    "StudentUpdate",
    "StudentSummary",
    "StudentPerformance",
    "AttendanceMark",
    "AttendanceRecord",
    "AttendanceList",
    "AttendanceView",
    "DailyAttendance",
    "StudentDocument",
    "GradeUpdate",
    "DocumentFilters",
    "StudyResource",
    "StudyResourceCreate",
    "Announcement",
    "AnnouncementCreate",
    "StudentMessage",
    "StudentMessageCreate",
]
