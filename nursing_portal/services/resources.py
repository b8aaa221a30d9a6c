"""Study resources: search, category breakdown, upload and download tracking."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from beanie.operators import Inc

from nursing_portal.catalog import RESOURCE_CATEGORIES, level_label, resource_category_label
from nursing_portal.config import settings
from nursing_portal.errors import NotFoundError, ValidationFailed
from nursing_portal.models.resource import CategoryCount, StudyResource, StudyResourceCreate
from nursing_portal.services import s3
from nursing_portal.services.store import decoded, safe_object_id

logger = logging.getLogger(__name__)


def serialize_resource(r: StudyResource) -> dict:
    return {
        "id": str(r.id),
        "title": r.title,
        "description": r.description,
        "file_name": r.file_name,
        "url": r.url,
        "size": r.size,
        "type": r.type,
        "category": r.category,
        "category_label": resource_category_label(r.category),
        "target_levels": r.target_levels,
        "target_rotations": r.target_rotations,
        "uploaded_at": r.uploaded_at.isoformat() if r.uploaded_at else None,
        "uploaded_by": r.uploaded_by,
        "storage_path": r.storage_path,
        "download_count": r.download_count,
    }


def matches_search(resource: dict, search: str) -> bool:
    term = (search or "").strip().lower()
    if not term:
        return True
    if term in resource["title"].lower():
        return True
    if term in resource["description"].lower():
        return True
    if term in resource["category"].lower():
        return True
    if any(term in level_label(level).lower() for level in resource["target_levels"]):
        return True
    return any(term in rotation.lower() for rotation in resource["target_rotations"])


def category_counts(resources: list[dict]) -> list[CategoryCount]:
    total = len(resources)
    counts = []
    for item in RESOURCE_CATEGORIES:
        count = sum(1 for r in resources if r["category"] == item["value"])
        counts.append(
            CategoryCount(
                category=item["value"],
                label=item["label"],
                count=count,
                percentage=round(count / total * 100) if total else 0,
            )
        )
    return counts


def storage_path_for(filename: str, now: Optional[datetime] = None) -> str:
    millis = int((now or datetime.utcnow()).timestamp() * 1000)
    return f"study-resources/{millis}-{filename}"


async def load_resources() -> list[dict]:
    resources = await decoded(
        StudyResource.find_all().sort("-uploaded_at").to_list(), StudyResource.Settings.name
    )
    return [serialize_resource(r) for r in resources]


async def _get(resource_id: str) -> StudyResource:
    oid = safe_object_id(resource_id)
    if not oid:
        raise ValidationFailed("Invalid resource_id")
    resource = await decoded(StudyResource.get(oid), StudyResource.Settings.name)
    if not resource:
        raise NotFoundError("Resource not found")
    return resource


async def upload_resource(data: StudyResourceCreate, file, uploaded_by: str) -> dict:
    body = await file.read()
    if not body:
        raise ValidationFailed("Please select a file")
    if len(body) > settings.max_resource_size:
        limit_mb = settings.max_resource_size // (1024 * 1024)
        raise ValidationFailed(f"File size must be less than {limit_mb}MB")

    filename = file.filename or "resource"
    key = storage_path_for(filename)
    url = await s3.upload_bytes(key, body, file.content_type or "application/octet-stream")
    resource = StudyResource(
        title=data.title,
        description=data.description,
        file_name=filename,
        url=url,
        size=len(body),
        type=file.content_type or "",
        category=data.category,
        target_levels=data.target_levels,
        target_rotations=data.target_rotations,
        uploaded_by=uploaded_by,
        storage_path=key,
    )
    await resource.insert()
    logger.info(f"Uploaded study resource {resource.id} ({filename})")
    return serialize_resource(resource)


async def delete_resource(resource_id: str) -> None:
    resource = await _get(resource_id)
    await s3.delete_from_s3(resource.storage_path)
    await resource.delete()


async def record_download(resource_id: str) -> dict:
    resource = await _get(resource_id)
    await StudyResource.find_one(StudyResource.id == resource.id).update(
        Inc({StudyResource.download_count: 1})
    )
    resource = await _get(resource_id)
    return {"id": str(resource.id), "url": resource.url, "download_count": resource.download_count}
