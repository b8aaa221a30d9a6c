"""Study resources shared with students."""
from fastapi import APIRouter, File, Form, UploadFile
from pydantic import ValidationError

from nursing_portal.api.deps import InstructorOnly, caller_id
from nursing_portal.errors import ValidationFailed
from nursing_portal.models.resource import StudyResourceCreate
from nursing_portal.services import resources

router = APIRouter()


@router.get("/")
async def list_resources(user: InstructorOnly, search: str | None = None, category: str = "all"):
    items = await resources.load_resources()
    shown = [
        r for r in items
        if resources.matches_search(r, search) and (category == "all" or r["category"] == category)
    ]
    return {
        "resources": shown,
        "showing": len(shown),
        "total": len(items),
        "categories": resources.category_counts(items),
    }


@router.post("/", status_code=201)
async def upload_resource(
    user: InstructorOnly,
    title: str = Form(...),
    description: str = Form(...),
    category: str = Form(...),
    target_levels: list[str] = Form([]),
    target_rotations: list[str] = Form([]),
    file: UploadFile = File(...),
):
    try:
        data = StudyResourceCreate(
            title=title,
            description=description,
            category=category,
            target_levels=target_levels,
            target_rotations=target_rotations,
        )
    except ValidationError as e:
        raise ValidationFailed("; ".join(err["msg"] for err in e.errors()))
    return await resources.upload_resource(data, file, caller_id(user))


@router.post("/{resource_id}/download")
async def download_resource(resource_id: str, user: InstructorOnly):
    """Count a download and hand back the file URL."""
    return await resources.record_download(resource_id)


@router.delete("/{resource_id}")
async def delete_resource(resource_id: str, user: InstructorOnly):
    await resources.delete_resource(resource_id)
    return {"status": "deleted"}
