import io
from typing import Iterable

import pandas as pd
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from nursing_portal.api.deps import InstructorOnly, caller_id
from nursing_portal.models.attendance import (
    AttendanceFinalizeRequest,
    AttendanceMark,
    AttendanceToggleRequest,
)
from nursing_portal.models.student import StudentSummary
from nursing_portal.services import attendance, roster

router = APIRouter()


def report_rows(marks: Iterable[AttendanceMark], students: Iterable[StudentSummary]) -> list[dict]:
    names = {s.student_id: s.name for s in students}
    levels = {s.student_id: s.nursing_level for s in students}
    return [
        {
            "Date": m.date,
            "Student ID": m.student_id,
            "Student Name": names.get(m.student_id, "Unknown"),
            "Nursing Level": levels.get(m.student_id, ""),
            "Status": "present" if m.present else "absent",
            "Marked By": m.marked_by,
        }
        for m in marks
    ]


@router.get("/daily/{date_str}")
async def get_daily_attendance(date_str: str, user: InstructorOnly):
    """student_id -> present for a date; the finalized snapshot wins when present."""
    day = attendance.parse_day(date_str)
    return await attendance.get_daily_attendance(day)


@router.post("/toggle")
async def set_attendance(data: AttendanceToggleRequest, user: InstructorOnly):
    """Mark one student present or absent. Finalized dates are locked."""
    day = attendance.parse_day(data.date)
    mark = await attendance.set_attendance(data.student_id, day, data.present, caller_id(user))
    await roster.refresh_stats([data.student_id])
    return mark


@router.post("/finalize")
async def finalize_attendance(data: AttendanceFinalizeRequest, user: InstructorOnly):
    """Freeze the day's roll call. Students with no entry are recorded absent."""
    day = attendance.parse_day(data.date)
    students = attendance.enrolled_on(await roster.load_roster(), day)
    marks = data.attendance
    if marks is None:
        marks = (await attendance.get_daily_attendance(day)).attendance
    snapshot = await attendance.finalize_day(students, marks, day, caller_id(user))
    return {
        "status": "success",
        "message": "Attendance finalized and locked",
        "date": snapshot.date,
        "total_students": snapshot.total_students,
        "present_count": snapshot.present_count,
        "absent_count": snapshot.absent_count,
    }


@router.get("/view/{date_str}")
async def get_attendance_view(date_str: str, user: InstructorOnly):
    day = attendance.parse_day(date_str)
    return await attendance.load_attendance_view(day, await roster.load_roster())


@router.get("/report")
async def download_attendance_report(
    from_date: str,
    to_date: str,
    user: InstructorOnly,
    format: str = Query("csv", enum=["csv", "excel"]),
):
    """Download attendance for a date range."""
    d_from = attendance.parse_day(from_date)
    d_to = attendance.parse_day(to_date)
    if d_from > d_to:
        raise HTTPException(status_code=400, detail="from_date must not be after to_date")

    marks = await attendance.load_range(d_from, d_to)
    data = report_rows(marks, await roster.load_roster())
    if not data:
        raise HTTPException(
            status_code=404, detail="No records found for the given criteria"
        )

    df = pd.DataFrame(data)

    if format == "csv":
        stream = io.StringIO()
        df.to_csv(stream, index=False)
        return StreamingResponse(
            iter([stream.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename=attendance_{from_date}_{to_date}.csv"
            },
        )
    else:
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Attendance")
        output.seek(0)
        return StreamingResponse(
            output,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={
                "Content-Disposition": f"attachment; filename=attendance_{from_date}_{to_date}.xlsx"
            },
        )
