from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field

from nursing_portal.models.student import StudentSummary


class AttendanceMark(BaseModel):
    """One (student, date) present/absent fact."""
    student_id: str
    date: str  # YYYY-MM-DD
    present: bool
    marked_at: datetime = Field(default_factory=datetime.utcnow)
    marked_by: str  # user_id


class AttendanceRecord(Document):
    """Live per-student attendance entry, upserted on `key` = "{student_id}_{date}"."""
    key: Indexed(str, unique=True)
    student_id: Indexed(str)
    date: Indexed(str)  # YYYY-MM-DD
    present: bool
    marked_at: datetime = Field(default_factory=datetime.utcnow)
    marked_by: str

    class Settings:
        name = "attendance"
        use_state_management = True

    def to_mark(self) -> AttendanceMark:
        return AttendanceMark(
            student_id=self.student_id,
            date=self.date,
            present=self.present,
            marked_at=self.marked_at,
            marked_by=self.marked_by,
        )


class AttendanceList(Document):
    """Finalized roll call for one calendar date.

    Once written the snapshot is the only source consulted for its date;
    individual AttendanceRecord entries for that date are ignored.
    """
    key: Indexed(str, unique=True)  # attendance_DD-MM-YYYY
    date: str  # DD-MM-YYYY
    day: Indexed(str)  # YYYY-MM-DD, for range queries
    taken_by: str
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    total_students: int
    present_count: int
    absent_count: int
    attendance_records: list[AttendanceMark] = Field(default_factory=list)
    is_finalized: bool = True

    class Settings:
        name = "attendance_lists"
        use_state_management = True


class AttendanceToggleRequest(BaseModel):
    student_id: str
    date: str
    present: bool


class AttendanceFinalizeRequest(BaseModel):
    date: str
    # When omitted, the live records for the date are used.
    attendance: Optional[dict[str, bool]] = None


class DailyAttendance(BaseModel):
    date: str
    is_finalized: bool
    attendance: dict[str, bool]
    records: list[AttendanceMark]


class AttendanceView(BaseModel):
    date: str  # DD-MM-YYYY
    present_students: list[StudentSummary]
    absent_students: list[StudentSummary]
    unmarked_students: list[StudentSummary] = Field(default_factory=list)
    total_enrolled: int
    present_count: int
    absent_count: int
    is_finalized: bool = False
    taken_by: Optional[str] = None
    submitted_at: Optional[datetime] = None
