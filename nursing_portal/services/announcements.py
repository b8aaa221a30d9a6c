"""Announcement targeting, read tracking, listing and relay helpers."""
from __future__ import annotations

import logging
from typing import Iterable

from beanie.operators import AddToSet

from nursing_portal.errors import NotFoundError, ValidationFailed
from nursing_portal.models.announcement import (
    Announcement,
    AnnouncementCreate,
    AnnouncementOut,
    AnnouncementStats,
)
from nursing_portal.models.student import StudentSummary
from nursing_portal.services import relay
from nursing_portal.services.store import decoded, safe_object_id

logger = logging.getLogger(__name__)


def resolve_target_students(
    target_audience: str,
    target_levels: list[str],
    selected: list[str],
    roster: Iterable[StudentSummary],
) -> list[str]:
    """student_id values an announcement is addressed to."""
    if target_audience == "all":
        return [s.student_id for s in roster]
    if target_audience == "level":
        levels = set(target_levels)
        return [s.student_id for s in roster if s.nursing_level in levels]
    return list(dict.fromkeys(selected))


def audience_size(announcement: AnnouncementOut, roster: list[StudentSummary]) -> int:
    if announcement.target_audience == "all":
        return len(roster)
    if announcement.target_audience == "level":
        levels = set(announcement.target_levels)
        return sum(1 for s in roster if s.nursing_level in levels)
    if announcement.target_audience == "individual":
        return len(announcement.target_students)
    return 0


def read_percentage(announcement: AnnouncementOut, roster: list[StudentSummary]) -> int:
    total = audience_size(announcement, roster)
    if total <= 0:
        return 0
    return round(len(announcement.read_by) / total * 100)


def serialize_announcement(a: Announcement) -> AnnouncementOut:
    return AnnouncementOut(
        id=str(a.id),
        title=a.title,
        message=a.message,
        message_type=a.message_type,
        target_audience=a.target_audience,
        target_levels=a.target_levels,
        target_students=a.target_students,
        created_at=a.created_at,
        urgent=a.urgent,
        sent_to_telegram=a.sent_to_telegram,
        read_by=a.read_by,
        created_by=a.created_by,
        resource_id=a.resource_id,
    )


def matches(a: AnnouncementOut, search: str, type_filter: str, status: str, urgency: str) -> bool:
    term = (search or "").strip().lower()
    if term and term not in a.title.lower() and term not in a.message.lower():
        return False
    if type_filter != "all" and a.message_type != type_filter:
        return False
    if status == "read" and not a.read_by:
        return False
    if status == "unread" and a.read_by:
        return False
    if urgency == "urgent" and not a.urgent:
        return False
    if urgency == "normal" and a.urgent:
        return False
    return True


def sort_announcements(items: list[AnnouncementOut], sort_by: str) -> list[AnnouncementOut]:
    if sort_by == "title":
        return sorted(items, key=lambda a: a.title.casefold())
    if sort_by == "type":
        return sorted(items, key=lambda a: a.message_type)
    if sort_by == "urgent":
        return sorted(items, key=lambda a: a.urgent, reverse=True)
    if sort_by == "readCount":
        return sorted(items, key=lambda a: len(a.read_by), reverse=True)
    return sorted(items, key=lambda a: a.created_at, reverse=True)


def announcement_stats(items: list[AnnouncementOut]) -> AnnouncementStats:
    return AnnouncementStats(
        total=len(items),
        urgent=sum(1 for a in items if a.urgent),
        sent=sum(1 for a in items if a.sent_to_telegram),
        unread=sum(1 for a in items if not a.read_by),
    )


async def load_announcements() -> list[AnnouncementOut]:
    items = await decoded(
        Announcement.find_all().sort("-created_at").to_list(), Announcement.Settings.name
    )
    return [serialize_announcement(a) for a in items]


async def _get(announcement_id: str) -> Announcement:
    oid = safe_object_id(announcement_id)
    if not oid:
        raise ValidationFailed("Invalid announcement_id")
    announcement = await decoded(Announcement.get(oid), Announcement.Settings.name)
    if not announcement:
        raise NotFoundError("Announcement not found")
    return announcement


async def relay_announcement(announcement: Announcement, roster: list[StudentSummary]) -> relay.RelaySummary:
    """Individual messages go to each student's chat; everything else to the group."""
    announcement_id = str(announcement.id)
    if announcement.message_type == "individual":
        telegram_ids = {s.student_id: s.telegram_id for s in roster}
        recipients = {student_id: telegram_ids.get(student_id) for student_id in announcement.target_students}
        return await relay.send_to_recipients(
            recipients,
            announcement.title,
            announcement.message,
            announcement_id,
            announcement.urgent,
        )
    result = await relay.send_bulk(
        announcement.title,
        announcement.message,
        announcement_id,
        announcement.target_audience,
        announcement.target_levels,
        announcement.target_students,
        announcement.urgent,
    )
    delivered = 1 if result.success else 0
    return relay.RelaySummary(attempted=1, delivered=delivered, failed=1 - delivered)


async def send_announcement(
    data: AnnouncementCreate,
    roster: list[StudentSummary],
    created_by: str,
) -> tuple[AnnouncementOut, relay.RelaySummary | None]:
    targets = resolve_target_students(data.target_audience, data.target_levels, data.target_students, roster)
    if data.target_audience == "individual":
        known = {s.student_id for s in roster}
        unknown = [t for t in targets if t not in known]
        if unknown:
            raise ValidationFailed(f"Unknown student_id(s): {', '.join(unknown)}")

    announcement = Announcement(
        title=data.title,
        message=data.message,
        message_type=data.message_type,
        target_audience=data.target_audience,
        target_levels=data.target_levels,
        target_students=targets,
        urgent=data.urgent,
        sent_to_telegram=data.send_to_telegram,
        created_by=created_by,
        resource_id=data.resource_id,
    )
    await announcement.insert()

    summary = None
    if data.send_to_telegram:
        summary = await relay_announcement(announcement, roster)
    return serialize_announcement(announcement), summary


async def resend_announcement(announcement_id: str, roster: list[StudentSummary]) -> relay.RelaySummary:
    announcement = await _get(announcement_id)
    summary = await relay_announcement(announcement, roster)
    if not summary.success:
        logger.error(f"Resend of announcement {announcement_id} had {summary.failed} failure(s)")
    return summary


async def delete_announcement(announcement_id: str) -> None:
    announcement = await _get(announcement_id)
    await announcement.delete()


async def mark_read(announcement_id: str, student_id: str, roster: list[StudentSummary]) -> AnnouncementOut:
    """Record that a student in the audience has read the announcement; repeats are no-ops."""
    announcement = await _get(announcement_id)
    audience = resolve_target_students(
        announcement.target_audience,
        announcement.target_levels,
        announcement.target_students,
        roster,
    )
    if student_id not in audience:
        raise ValidationFailed(f"Student {student_id} is not in this announcement's audience")
    await Announcement.find_one(Announcement.id == announcement.id).update(
        AddToSet({Announcement.read_by: student_id})
    )
    return serialize_announcement(await _get(announcement_id))
