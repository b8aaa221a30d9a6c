"""Outbound relay to the n8n Telegram workflow.

Delivery is fire-and-forget from the caller's point of view: failures are
logged and returned as unsuccessful results, never raised.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import BaseModel

from nursing_portal.config import settings

logger = logging.getLogger(__name__)


class RelayResult(BaseModel):
    success: bool
    message: str = ""
    recipient: Optional[str] = None
    error: Optional[str] = None


class RelaySummary(BaseModel):
    attempted: int
    delivered: int
    failed: int
    skipped: list[str] = []

    @property
    def success(self) -> bool:
        return self.attempted > 0 and self.failed == 0


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _as_dict(body) -> dict:
    return body if isinstance(body, dict) else {}


async def _post(url: str, payload: dict, client: Optional[httpx.AsyncClient] = None) -> dict:
    if client is not None:
        response = await client.post(url, json=payload)
        response.raise_for_status()
        return _as_dict(response.json())
    async with httpx.AsyncClient(timeout=settings.relay_timeout_seconds) as own_client:
        response = await own_client.post(url, json=payload)
        response.raise_for_status()
        return _as_dict(response.json())


async def send_individual(
    telegram_id: str,
    title: str,
    message: str,
    announcement_id: str,
    urgent: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> RelayResult:
    payload = {
        "studentTelegramId": telegram_id,
        "title": title,
        "message": message,
        "announcementId": announcement_id,
        "urgent": urgent,
        "timestamp": _timestamp(),
    }
    try:
        body = await _post(settings.relay_individual_webhook, payload, client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Relay to {telegram_id} failed for announcement {announcement_id}: {e}")
        return RelayResult(success=False, message="Failed to send individual message", recipient=telegram_id, error=str(e))
    return RelayResult(
        success=bool(body.get("success", True)),
        message=str(body.get("message", "")),
        recipient=telegram_id,
        error=body.get("error"),
    )


async def send_bulk(
    title: str,
    message: str,
    announcement_id: str,
    target_audience: str,
    target_levels: list[str],
    target_students: list[str],
    urgent: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> RelayResult:
    payload = {
        "groupChatId": settings.relay_group_chat_id,
        "title": title,
        "message": message,
        "announcementId": announcement_id,
        "targetAudience": target_audience,
        "targetLevels": target_levels or [],
        "targetStudents": target_students or [],
        "urgent": urgent,
        "timestamp": _timestamp(),
    }
    try:
        body = await _post(settings.relay_bulk_webhook, payload, client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Bulk relay failed for announcement {announcement_id}: {e}")
        return RelayResult(success=False, message="Failed to send bulk announcement", error=str(e))
    logger.info(f"Bulk relay for announcement {announcement_id}: {body.get('message', 'ok')}")
    return RelayResult(success=bool(body.get("success", True)), message=str(body.get("message", "")), error=body.get("error"))


async def send_to_recipients(
    recipients: dict[str, Optional[str]],
    title: str,
    message: str,
    announcement_id: str,
    urgent: bool = False,
) -> RelaySummary:
    """Relay to each student concurrently. `recipients` maps student_id -> telegram id.

    Students without a telegram id are skipped; one failed delivery does not
    affect the others.
    """
    skipped = [student_id for student_id, telegram_id in recipients.items() if not telegram_id]
    for student_id in skipped:
        logger.warning(f"No telegram id for student {student_id}; skipping relay of {announcement_id}")
    targets = [telegram_id for telegram_id in recipients.values() if telegram_id]
    if not targets:
        return RelaySummary(attempted=0, delivered=0, failed=0, skipped=skipped)

    async with httpx.AsyncClient(timeout=settings.relay_timeout_seconds) as client:
        results = await asyncio.gather(
            *(send_individual(t, title, message, announcement_id, urgent, client=client) for t in targets)
        )
    delivered = sum(1 for r in results if r.success)
    logger.info(f"Relayed announcement {announcement_id} to {delivered}/{len(results)} recipients")
    return RelaySummary(attempted=len(results), delivered=delivered, failed=len(results) - delivered, skipped=skipped)
