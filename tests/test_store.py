"""Persistence paths run against an in-memory MongoDB through Beanie."""
import asyncio
from datetime import date, datetime

import pytest
from pymongo.errors import DuplicateKeyError

from nursing_portal.errors import AttendanceLockedError, NotFoundError, ValidationFailed
from nursing_portal.models.announcement import Announcement
from nursing_portal.models.attendance import AttendanceList, AttendanceRecord
from nursing_portal.models.resource import StudyResource
from nursing_portal.models.student import Student, StudentSummary
from nursing_portal.services import announcements, attendance, resources, roster

DAY = date(2024, 7, 1)
NEXT_DAY = date(2024, 7, 2)


async def enroll(student_id: str, name: str, enrolled: str = '2024-01-01', **extra) -> StudentSummary:
    student = Student(
        student_id=student_id,
        name=name,
        email=f'{student_id.lower()}@example.com',
        academic_year='2024',
        nursing_level=extra.pop('nursing_level', 'first-year'),
        created_at=datetime.fromisoformat(enrolled),
        **extra,
    )
    await student.insert()
    return StudentSummary.from_document(student)


class RacingCollection:
    """Lets a competing first mark land between the upsert's match and its insert."""

    def __init__(self, inner, competing_update):
        self.inner = inner
        self.competing_update = competing_update
        self.raced = False

    async def update_one(self, query, update, upsert=False, **kwargs):
        if upsert and not self.raced:
            self.raced = True
            await self.inner.update_one(query, self.competing_update, upsert=True)
            raise DuplicateKeyError('E11000 duplicate key error collection: attendance index: key_1')
        return await self.inner.update_one(query, update, upsert=upsert, **kwargs)

    def __getattr__(self, name):
        return getattr(self.inner, name)


async def test_set_then_get_reflects_mark(mongo):
    await enroll('A', 'Alice')

    mark = await attendance.set_attendance('A', DAY, True, 'instructor-1')
    daily = await attendance.get_daily_attendance(DAY)

    assert mark.present is True
    assert daily.attendance == {'A': True}
    assert daily.is_finalized is False


async def test_second_toggle_overwrites_single_record(mongo):
    await enroll('A', 'Alice')

    await attendance.set_attendance('A', DAY, True, 'instructor-1')
    await attendance.set_attendance('A', DAY, False, 'instructor-2')

    records = await AttendanceRecord.find(AttendanceRecord.student_id == 'A').to_list()
    assert len(records) == 1
    assert records[0].key == 'A_2024-07-01'
    assert records[0].present is False
    assert records[0].marked_by == 'instructor-2'
    assert (await attendance.get_daily_attendance(DAY)).attendance == {'A': False}


async def test_concurrent_first_marks_both_succeed(mongo):
    await enroll('A', 'Alice')

    results = await asyncio.gather(
        attendance.set_attendance('A', DAY, True, 'instructor-1'),
        attendance.set_attendance('A', DAY, False, 'instructor-2'),
    )

    assert [r.present for r in results] == [True, False]
    assert await AttendanceRecord.find(AttendanceRecord.student_id == 'A').count() == 1
    assert (await attendance.get_daily_attendance(DAY)).attendance == {'A': False}


async def test_upsert_losing_insert_race_still_writes(mongo, monkeypatch):
    await enroll('A', 'Alice')
    competing = {
        '$set': {'present': True, 'marked_by': 'instructor-1', 'marked_at': datetime.utcnow()},
        '$setOnInsert': {'student_id': 'A', 'date': DAY.isoformat()},
    }
    racing = RacingCollection(AttendanceRecord.get_motor_collection(), competing)
    monkeypatch.setattr(AttendanceRecord, 'get_motor_collection', lambda: racing)

    mark = await attendance.set_attendance('A', DAY, False, 'instructor-2')
    monkeypatch.undo()

    assert racing.raced is True
    assert mark.present is False
    records = await AttendanceRecord.find(AttendanceRecord.student_id == 'A').to_list()
    assert len(records) == 1
    assert records[0].present is False
    assert records[0].marked_by == 'instructor-2'


async def test_set_attendance_unknown_student(mongo):
    with pytest.raises(NotFoundError):
        await attendance.set_attendance('ghost', DAY, True, 'instructor-1')


async def test_finalize_writes_snapshot_and_locks_date(mongo):
    students = [await enroll('A', 'Alice'), await enroll('B', 'Bob')]

    await attendance.finalize_day(students, {'A': True}, DAY, 'instructor-1')

    stored = await AttendanceList.find_one(AttendanceList.key == 'attendance_01-07-2024')
    assert stored.date == '01-07-2024'
    assert stored.day == '2024-07-01'
    assert stored.is_finalized is True
    assert stored.total_students == 2
    assert stored.present_count == 1
    assert stored.absent_count == 1
    assert stored.taken_by == 'instructor-1'

    # a record written behind the lock is ignored
    await AttendanceRecord(
        key='B_2024-07-01', student_id='B', date='2024-07-01', present=True, marked_by='instructor-2'
    ).insert()
    assert (await attendance.get_daily_attendance(DAY)).attendance == {'A': True, 'B': False}

    with pytest.raises(AttendanceLockedError):
        await attendance.set_attendance('B', DAY, True, 'instructor-2')
    with pytest.raises(AttendanceLockedError):
        await attendance.finalize_day(students, {'A': True, 'B': True}, DAY, 'instructor-2')
    assert await AttendanceList.count() == 1


async def test_finalize_duplicate_key_maps_to_locked(mongo):
    students = [await enroll('A', 'Alice')]
    await AttendanceList(
        key='attendance_01-07-2024',
        date='01-07-2024',
        day='2024-07-01',
        taken_by='instructor-1',
        total_students=0,
        present_count=0,
        absent_count=0,
        is_finalized=False,
    ).insert()

    with pytest.raises(AttendanceLockedError):
        await attendance.finalize_day(students, {'A': True}, DAY, 'instructor-2')


async def test_load_range_prefers_snapshots(mongo):
    students = [await enroll('A', 'Alice'), await enroll('B', 'Bob')]
    await attendance.set_attendance('A', DAY, True, 'instructor-1')
    await attendance.set_attendance('B', NEXT_DAY, True, 'instructor-1')
    await attendance.finalize_day(students, {'A': False}, DAY, 'instructor-1')

    marks = await attendance.load_range(DAY, NEXT_DAY)

    assert [(m.date, m.student_id, m.present) for m in marks] == [
        ('2024-07-01', 'A', False),
        ('2024-07-01', 'B', False),
        ('2024-07-02', 'B', True),
    ]


async def test_refresh_stats_persists_attendance_rate(mongo):
    await enroll('A', 'Alice')
    await attendance.set_attendance('A', DAY, True, 'instructor-1')
    await attendance.set_attendance('A', NEXT_DAY, False, 'instructor-1')

    await roster.refresh_stats(['A'])

    stored = await Student.find_one(Student.student_id == 'A')
    assert stored.attendance_rate == 50.0


async def test_mark_read_is_idempotent_and_audience_bound(mongo):
    students = [await enroll('A', 'Alice'), await enroll('B', 'Bob')]
    notice = Announcement(
        title='Skills lab',
        message='Bring your kit',
        message_type='individual',
        target_audience='individual',
        target_students=['A'],
        created_by='instructor-1',
    )
    await notice.insert()

    await announcements.mark_read(str(notice.id), 'A', students)
    out = await announcements.mark_read(str(notice.id), 'A', students)

    assert out.read_by == ['A']
    assert announcements.read_percentage(out, students) == 100
    with pytest.raises(ValidationFailed):
        await announcements.mark_read(str(notice.id), 'B', students)
    with pytest.raises(ValidationFailed):
        await announcements.mark_read(str(notice.id), 'nobody', students)


async def test_concurrent_marks_read_keep_every_reader(mongo):
    students = [await enroll('A', 'Alice'), await enroll('B', 'Bob')]
    notice = Announcement(title='Exam', message='Friday', created_by='instructor-1')
    await notice.insert()

    await asyncio.gather(
        announcements.mark_read(str(notice.id), 'A', students),
        announcements.mark_read(str(notice.id), 'B', students),
    )

    stored = await Announcement.get(notice.id)
    assert sorted(stored.read_by) == ['A', 'B']


async def test_concurrent_downloads_are_all_counted(mongo):
    item = StudyResource(
        title='Wound care',
        description='Dressing changes',
        file_name='wound.pdf',
        url='https://bucket.test/wound.pdf',
        size=2048,
        category='procedures',
        uploaded_by='instructor-1',
        storage_path='study-resources/1-wound.pdf',
    )
    await item.insert()

    await asyncio.gather(*(resources.record_download(str(item.id)) for _ in range(5)))

    stored = await StudyResource.get(item.id)
    assert stored.download_count == 5
