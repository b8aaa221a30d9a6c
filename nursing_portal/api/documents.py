"""Student document submissions: listing, upload, grading and starring."""
from fastapi import APIRouter, File, Form, UploadFile
from pydantic import ValidationError

from nursing_portal.api.deps import InstructorOnly
from nursing_portal.catalog import DOCUMENT_CATEGORY_VALUES
from nursing_portal.errors import ValidationFailed
from nursing_portal.models.document import DocumentFilters, GradeUpdate
from nursing_portal.services import documents, roster

router = APIRouter()


@router.get("/")
async def list_documents(
    user: InstructorOnly,
    search: str = "",
    category: str = "all",
    level: str = "all",
    graded: str = "all",
    starred: str = "all",
    sort_by: str = "date",
    group_by: str = "none",
):
    """Filtered, sorted and grouped listing; stats cover the unfiltered set."""
    try:
        filters = DocumentFilters(
            search=search,
            category=category,
            level=level,
            graded=graded,
            starred=starred,
            sort_by=sort_by,
            group_by=group_by,
        )
    except ValidationError as e:
        raise ValidationFailed("; ".join(err["msg"] for err in e.errors()))
    return documents.build_listing(await documents.load_documents(), filters)


@router.post("/upload", status_code=201)
async def upload_documents(
    user: InstructorOnly,
    student_id: str = Form(...),
    category: str = Form(...),
    files: list[UploadFile] = File(...),
):
    if category not in DOCUMENT_CATEGORY_VALUES:
        raise ValidationFailed(f"Unknown category: {category}")
    student = await roster.get_student(student_id)
    created = await documents.upload_documents(files, student, category)
    await roster.refresh_stats([student_id])
    return created


@router.patch("/{document_id}/grade")
async def grade_document(document_id: str, data: GradeUpdate, user: InstructorOnly):
    doc = await documents.update_grade(document_id, data)
    await roster.refresh_stats([doc.student_id])
    return doc


@router.post("/{document_id}/star")
async def toggle_star(document_id: str, user: InstructorOnly):
    return await documents.toggle_star(document_id)


@router.delete("/{document_id}")
async def delete_document(document_id: str, user: InstructorOnly):
    student_id = await documents.delete_document(document_id)
    await roster.refresh_stats([student_id])
    return {"status": "deleted"}
