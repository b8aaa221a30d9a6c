from datetime import date, datetime
from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from factories import make_announcement, make_document, make_mark, make_student
from nursing_portal.models.attendance import DailyAttendance
from nursing_portal.models.user import UserRole
from nursing_portal.services import announcements, attendance, documents, relay, resources, roster


@pytest.fixture
def students():
    return [
        make_student('A', 'Alice', enrolled='2024-01-01', telegram_id='tg-a'),
        make_student('B', 'Bob', enrolled='2024-06-01'),
    ]


@pytest.fixture
def patched_roster(monkeypatch, students):
    async def fake_load_roster():
        return students

    monkeypatch.setattr(roster, 'load_roster', fake_load_roster)
    return students


@pytest.mark.asyncio
async def test_health(anonymous_client: AsyncClient):
    response = await anonymous_client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


@pytest.mark.asyncio
async def test_requires_authentication(anonymous_client: AsyncClient):
    response = await anonymous_client.get('/api/students/')
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_students_cannot_use_instructor_routes(client: AsyncClient, instructor, patched_roster):
    instructor.role = UserRole.STUDENT
    response = await client.get('/api/students/')
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_students_search(client: AsyncClient, patched_roster):
    response = await client.get('/api/students/', params={'q': 'bo'})
    assert response.status_code == 200
    assert [s['student_id'] for s in response.json()] == ['B']


@pytest.mark.asyncio
async def test_attendance_view_applies_enrollment_cutoff(client: AsyncClient, monkeypatch, patched_roster):
    async def no_snapshot(day):
        return None

    async def records(day):
        return [make_mark('A', day.isoformat(), True)]

    monkeypatch.setattr(attendance, 'find_snapshot', no_snapshot)
    monkeypatch.setattr(attendance, 'load_records_for_day', records)

    response = await client.get('/api/attendance/view/2024-03-01')

    assert response.status_code == 200
    data = response.json()
    assert data['date'] == '01-03-2024'
    assert [s['student_id'] for s in data['present_students']] == ['A']
    assert data['absent_students'] == []
    assert data['total_enrolled'] == 1


@pytest.mark.asyncio
async def test_invalid_date_is_rejected(client: AsyncClient):
    response = await client.get('/api/attendance/daily/2024-13-40')
    assert response.status_code == 400
    assert 'YYYY-MM-DD' in response.json()['detail']


@pytest.mark.asyncio
async def test_toggle_records_caller_and_refreshes_stats(client: AsyncClient, monkeypatch):
    refreshed = []

    async def fake_set(student_id, day, present, marked_by):
        return make_mark(student_id, day.isoformat(), present, marked_by=marked_by)

    async def fake_refresh(student_ids=None):
        refreshed.append(student_ids)
        return []

    monkeypatch.setattr(attendance, 'set_attendance', fake_set)
    monkeypatch.setattr(roster, 'refresh_stats', fake_refresh)

    response = await client.post(
        '/api/attendance/toggle', json={'student_id': 'A', 'date': '2024-03-01', 'present': True}
    )

    assert response.status_code == 200
    assert response.json()['marked_by'] == 'instructor-1'
    assert refreshed == [['A']]


@pytest.mark.asyncio
async def test_toggle_on_finalized_date_conflicts(client: AsyncClient, monkeypatch):
    async def locked(day):
        return SimpleNamespace(is_finalized=True)

    monkeypatch.setattr(attendance, 'find_snapshot', locked)

    response = await client.post(
        '/api/attendance/toggle', json={'student_id': 'A', 'date': '2024-03-01', 'present': False}
    )

    assert response.status_code == 409
    assert 'finalized' in response.json()['detail']


@pytest.mark.asyncio
async def test_finalize_uses_live_records_and_enrolled_students(client: AsyncClient, monkeypatch, patched_roster):
    captured = {}

    async def fake_daily(day):
        return DailyAttendance(date=day.isoformat(), is_finalized=False, attendance={'A': True}, records=[])

    async def fake_finalize(students, marks, day, taken_by):
        captured.update(students=[s.student_id for s in students], marks=marks, day=day, taken_by=taken_by)
        return SimpleNamespace(date='01-03-2024', total_students=1, present_count=1, absent_count=0)

    monkeypatch.setattr(attendance, 'get_daily_attendance', fake_daily)
    monkeypatch.setattr(attendance, 'finalize_day', fake_finalize)

    response = await client.post('/api/attendance/finalize', json={'date': '2024-03-01'})

    assert response.status_code == 200
    assert response.json()['present_count'] == 1
    assert captured == {
        'students': ['A'],
        'marks': {'A': True},
        'day': date(2024, 3, 1),
        'taken_by': 'instructor-1',
    }


@pytest.mark.asyncio
async def test_attendance_report_csv(client: AsyncClient, monkeypatch, patched_roster):
    async def fake_range(from_day, to_day):
        return [make_mark('A', '2024-07-01', True), make_mark('B', '2024-07-01', False)]

    monkeypatch.setattr(attendance, 'load_range', fake_range)

    response = await client.get(
        '/api/attendance/report', params={'from_date': '2024-07-01', 'to_date': '2024-07-31'}
    )

    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/csv')
    lines = response.text.strip().splitlines()
    assert lines[0].startswith('Date,Student ID,Student Name')
    assert '2024-07-01,B,Bob,first-year,absent' in lines[2]


@pytest.mark.asyncio
async def test_documents_listing(client: AsyncClient, monkeypatch):
    async def fake_load(student_id=None):
        return [
            make_document('d1', is_graded=True, grade=45, max_grade=50),
            make_document('d2'),
        ]

    monkeypatch.setattr(documents, 'load_documents', fake_load)

    response = await client.get('/api/documents/', params={'sort_by': 'grade', 'graded': 'graded'})

    assert response.status_code == 200
    data = response.json()
    assert data['showing'] == 1
    assert data['stats']['total'] == 2
    assert data['groups'][0]['documents'][0]['grade_percentage'] == 90.0


@pytest.mark.asyncio
async def test_documents_listing_rejects_unknown_category(client: AsyncClient, monkeypatch):
    async def fake_load(student_id=None):
        return []

    monkeypatch.setattr(documents, 'load_documents', fake_load)

    response = await client.get('/api/documents/', params={'category': 'memes'})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_grade_out_of_range(client: AsyncClient):
    response = await client.patch('/api/documents/abc/grade', json={'grade': 60, 'max_grade': 50})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_announcements_listing_read_percentage(client: AsyncClient, monkeypatch, patched_roster):
    async def fake_load():
        return [make_announcement('a1', read_by=['A'], urgent=True), make_announcement('a2')]

    monkeypatch.setattr(announcements, 'load_announcements', fake_load)

    response = await client.get('/api/announcements/', params={'urgency': 'urgent'})

    assert response.status_code == 200
    data = response.json()
    assert [a['id'] for a in data['announcements']] == ['a1']
    assert data['announcements'][0]['read_percentage'] == 50
    assert data['stats']['total'] == 2


@pytest.mark.asyncio
async def test_send_announcement(client: AsyncClient, monkeypatch, patched_roster):
    captured = {}

    async def fake_send(data, students, created_by):
        captured['created_by'] = created_by
        created = make_announcement('a9', title=data.title, created_by=created_by, sent_to_telegram=True)
        return created, relay.RelaySummary(attempted=1, delivered=1, failed=0)

    monkeypatch.setattr(announcements, 'send_announcement', fake_send)

    response = await client.post('/api/announcements/', json={'title': 'Exam', 'message': 'Friday 9am'})

    assert response.status_code == 201
    assert response.json()['announcement']['title'] == 'Exam'
    assert response.json()['relay']['delivered'] == 1
    assert captured['created_by'] == 'instructor-1'


@pytest.mark.asyncio
async def test_send_announcement_requires_levels(client: AsyncClient, patched_roster):
    response = await client.post(
        '/api/announcements/', json={'title': 'Exam', 'message': 'x', 'target_audience': 'level'}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_resources_listing(client: AsyncClient, monkeypatch):
    async def fake_load():
        return [
            {'title': 'Wound care', 'description': '', 'category': 'procedures',
             'target_levels': [], 'target_rotations': []},
            {'title': 'Sepsis', 'description': '', 'category': 'case-studies',
             'target_levels': [], 'target_rotations': []},
        ]

    monkeypatch.setattr(resources, 'load_resources', fake_load)

    response = await client.get('/api/resources/', params={'search': 'wound'})

    assert response.status_code == 200
    data = response.json()
    assert data['showing'] == 1
    assert data['total'] == 2
    counts = {c['category']: c['count'] for c in data['categories']}
    assert counts['procedures'] == 1


@pytest.mark.asyncio
async def test_dashboard_stats(client: AsyncClient, monkeypatch, patched_roster):
    async def fake_docs(student_id=None):
        return [make_document('d1'), make_document('d2', is_graded=True, grade=5, max_grade=10)]

    async def fake_resources():
        return []

    async def fake_announcements():
        return [make_announcement('a1', urgent=True)]

    async def no_snapshot(day):
        return None

    async def no_records(day):
        return []

    monkeypatch.setattr(documents, 'load_documents', fake_docs)
    monkeypatch.setattr(resources, 'load_resources', fake_resources)
    monkeypatch.setattr(announcements, 'load_announcements', fake_announcements)
    monkeypatch.setattr(attendance, 'find_snapshot', no_snapshot)
    monkeypatch.setattr(attendance, 'load_records_for_day', no_records)

    response = await client.get('/api/dashboard/stats')

    assert response.status_code == 200
    data = response.json()
    assert data['counts']['students'] == 2
    assert data['counts']['ungraded_documents'] == 1
    assert data['counts']['urgent_announcements'] == 1
    assert data['attendance']['unmarked'] == 2
    assert data['attendance']['is_finalized'] is False


@pytest.mark.asyncio
async def test_dashboard_uses_utc_date(client: AsyncClient, monkeypatch, patched_roster):
    seen = {}

    async def fake_view(day, students):
        seen['day'] = day
        return attendance.build_attendance_view(day, students, [])

    async def empty(*args, **kwargs):
        return []

    monkeypatch.setattr(attendance, 'load_attendance_view', fake_view)
    monkeypatch.setattr(documents, 'load_documents', empty)
    monkeypatch.setattr(resources, 'load_resources', empty)
    monkeypatch.setattr(announcements, 'load_announcements', empty)

    before = datetime.utcnow().date()
    response = await client.get('/api/dashboard/stats')
    after = datetime.utcnow().date()

    assert response.status_code == 200
    assert seen['day'] in (before, after)


@pytest.mark.asyncio
async def test_register_instructor(anonymous_client: AsyncClient, mongo):
    response = await anonymous_client.post('/api/auth/register', json={
        'email': 'Nurse.Educator@example.com',
        'password': 'wardround1',
        'confirm_password': 'wardround1',
        'full_name': 'Nurse Educator',
    })

    assert response.status_code == 200
    assert 'access_token' in response.json()

    duplicate = await anonymous_client.post('/api/auth/register', json={
        'email': 'nurse.educator@example.com',
        'password': 'wardround1',
        'confirm_password': 'wardround1',
        'full_name': 'Nurse Educator',
    })
    assert duplicate.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize('role', ['admin', 'coordinator', 'student'])
async def test_register_rejects_elevated_roles(anonymous_client: AsyncClient, role):
    response = await anonymous_client.post('/api/auth/register', json={
        'email': 'someone@example.com',
        'password': 'wardround1',
        'confirm_password': 'wardround1',
        'full_name': 'Someone',
        'role': role,
    })

    assert response.status_code == 403

