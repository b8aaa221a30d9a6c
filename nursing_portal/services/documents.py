"""Student document listing: filters, sorting, grouping, grading and uploads."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable, Optional

from nursing_portal.catalog import document_category_label, level_label
from nursing_portal.config import settings
from nursing_portal.errors import NotFoundError, ValidationFailed
from nursing_portal.models.document import (
    DocumentFilters,
    DocumentGroup,
    DocumentListing,
    DocumentOut,
    DocumentStats,
    GradeUpdate,
    StudentDocument,
)
from nursing_portal.models.student import StudentSummary
from nursing_portal.services import s3
from nursing_portal.services.store import decoded, safe_object_id

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.\-_]")


def sanitize(value: str) -> str:
    return _UNSAFE_CHARS_RE.sub("_", value or "")


def grade_percentage(doc: DocumentOut) -> Optional[float]:
    if not doc.is_graded or doc.grade is None or not doc.max_grade:
        return None
    return doc.grade * 100 / doc.max_grade


def serialize_document(d: StudentDocument) -> DocumentOut:
    out = DocumentOut(
        id=str(d.id),
        name=d.name,
        url=d.url,
        size=d.size,
        type=d.type,
        category=d.category,
        uploaded_at=d.uploaded_at,
        storage_path=d.storage_path,
        student_id=d.student_id,
        student_name=d.student_name,
        academic_year=d.academic_year,
        nursing_level=d.nursing_level,
        grade=d.grade,
        max_grade=d.max_grade,
        feedback=d.feedback,
        date_graded=d.date_graded,
        is_graded=d.is_graded,
        is_starred=d.is_starred,
    )
    out.grade_percentage = grade_percentage(out)
    return out


def matches(doc: DocumentOut, filters: DocumentFilters) -> bool:
    term = filters.search.strip().lower()
    if term and not (
        term in doc.name.lower()
        or term in doc.student_name.lower()
        or term in doc.student_id.lower()
    ):
        return False
    if filters.category != "all" and doc.category != filters.category:
        return False
    if filters.level != "all" and doc.nursing_level != filters.level:
        return False
    if filters.graded == "graded" and not doc.is_graded:
        return False
    if filters.graded == "ungraded" and doc.is_graded:
        return False
    if filters.starred == "starred" and not doc.is_starred:
        return False
    if filters.starred == "unstarred" and doc.is_starred:
        return False
    return True


def sort_documents(docs: list[DocumentOut], sort_by: str) -> list[DocumentOut]:
    if sort_by == "name":
        return sorted(docs, key=lambda d: d.name.casefold())
    if sort_by == "student":
        return sorted(docs, key=lambda d: d.student_name.casefold())
    if sort_by == "date":
        return sorted(docs, key=lambda d: d.uploaded_at, reverse=True)
    if sort_by == "grade":
        # Ungraded documents rank as -1 and fall after every graded one.
        def _grade(d: DocumentOut) -> float:
            pct = grade_percentage(d)
            return -1 if pct is None else pct

        return sorted(docs, key=_grade, reverse=True)
    return list(docs)


def group_key(doc: DocumentOut, group_by: str) -> str:
    if group_by == "year":
        return doc.academic_year
    if group_by == "letter":
        return doc.student_name[:1].upper()
    if group_by == "student":
        return doc.student_name
    if group_by == "level":
        return level_label(doc.nursing_level)
    if group_by == "category":
        return document_category_label(doc.category)
    if group_by == "status":
        return "Graded" if doc.is_graded else "Ungraded"
    return "All Documents"


def group_documents(docs: list[DocumentOut], group_by: str) -> list[DocumentGroup]:
    """Buckets in first-seen order; every document lands in exactly one."""
    if group_by == "none":
        return [DocumentGroup(name="All Documents", documents=list(docs))]
    buckets: dict[str, list[DocumentOut]] = {}
    for doc in docs:
        buckets.setdefault(group_key(doc, group_by), []).append(doc)
    return [DocumentGroup(name=name, documents=items) for name, items in buckets.items()]


def document_stats(docs: list[DocumentOut]) -> DocumentStats:
    graded = sum(1 for d in docs if d.is_graded)
    return DocumentStats(
        total=len(docs),
        graded=graded,
        ungraded=len(docs) - graded,
        starred=sum(1 for d in docs if d.is_starred),
    )


def build_listing(docs: list[DocumentOut], filters: DocumentFilters) -> DocumentListing:
    filtered = [d for d in docs if matches(d, filters)]
    ordered = sort_documents(filtered, filters.sort_by)
    return DocumentListing(
        groups=group_documents(ordered, filters.group_by),
        showing=len(ordered),
        total=len(docs),
        stats=document_stats(docs),
    )


def storage_path_for(student: StudentSummary, category: str, filename: str, now: Optional[datetime] = None) -> str:
    millis = int((now or datetime.utcnow()).timestamp() * 1000)
    return (
        f"student-documents/{student.academic_year}/"
        f"{sanitize(student.name)}_{student.student_id}/{category}/"
        f"{millis}_{sanitize(filename)}"
    )


def validate_upload(files: Iterable[tuple[str, int]], max_size: int) -> None:
    """`files` are (filename, size) pairs; raises before anything is uploaded."""
    files = list(files)
    if not files:
        raise ValidationFailed("Please select at least one file")
    oversized = [name for name, size in files if size > max_size]
    if oversized:
        limit_mb = max_size // (1024 * 1024)
        raise ValidationFailed(f"File(s) too large: {', '.join(oversized)}. Max size: {limit_mb}MB per file")


async def load_documents(student_id: Optional[str] = None) -> list[DocumentOut]:
    query = StudentDocument.find_all() if student_id is None else StudentDocument.find(
        StudentDocument.student_id == student_id
    )
    docs = await decoded(query.sort("-uploaded_at").to_list(), StudentDocument.Settings.name)
    return [serialize_document(d) for d in docs]


async def _get(document_id: str) -> StudentDocument:
    oid = safe_object_id(document_id)
    if not oid:
        raise ValidationFailed("Invalid document_id")
    doc = await decoded(StudentDocument.get(oid), StudentDocument.Settings.name)
    if not doc:
        raise NotFoundError("Document not found")
    return doc


async def upload_documents(files: list, student: StudentSummary, category: str) -> list[DocumentOut]:
    """Store each UploadFile in S3 and record it against the student."""
    contents = [(f, await f.read()) for f in files]
    validate_upload(((f.filename or "file", len(body)) for f, body in contents), settings.max_document_size)

    created: list[DocumentOut] = []
    for f, body in contents:
        filename = f.filename or "file"
        key = storage_path_for(student, category, filename)
        url = await s3.upload_bytes(key, body, f.content_type or "application/octet-stream")
        doc = StudentDocument(
            name=filename,
            url=url,
            size=len(body),
            type=f.content_type or "",
            category=category,
            storage_path=key,
            student_id=student.student_id,
            student_name=student.name,
            academic_year=student.academic_year,
            nursing_level=student.nursing_level,
        )
        await doc.insert()
        created.append(serialize_document(doc))
    logger.info(f"Uploaded {len(created)} document(s) for student {student.student_id}")
    return created


async def delete_document(document_id: str) -> str:
    """Remove the stored file and the record; returns the owning student_id."""
    doc = await _get(document_id)
    await s3.delete_from_s3(doc.storage_path)
    await doc.delete()
    return doc.student_id


async def update_grade(document_id: str, data: GradeUpdate) -> DocumentOut:
    doc = await _get(document_id)
    doc.grade = data.grade
    doc.max_grade = data.max_grade
    doc.feedback = data.feedback
    doc.date_graded = datetime.utcnow()
    doc.is_graded = True
    await doc.save()
    return serialize_document(doc)


async def toggle_star(document_id: str) -> DocumentOut:
    doc = await _get(document_id)
    doc.is_starred = not doc.is_starred
    await doc.save()
    return serialize_document(doc)
