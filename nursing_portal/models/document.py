"""Student document submissions with grading."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator, model_validator

from nursing_portal.catalog import DOCUMENT_CATEGORY_VALUES


class StudentDocument(Document):
    name: str
    url: str
    size: int
    type: str = ""
    category: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    storage_path: str  # S3 key
    student_id: Indexed(str)
    student_name: str
    academic_year: str
    nursing_level: str
    grade: Optional[float] = None
    max_grade: Optional[float] = None
    feedback: Optional[str] = None
    date_graded: Optional[datetime] = None
    is_graded: bool = False
    is_starred: bool = False

    class Settings:
        name = "student_documents"
        use_state_management = True


class GradeUpdate(BaseModel):
    grade: float
    max_grade: float = 100
    feedback: str = ""

    @model_validator(mode="after")
    def validate_range(self):
        if self.grade < 0 or self.max_grade <= 0 or self.grade > self.max_grade:
            raise ValueError("grade must be between 0 and max_grade, and max_grade must be positive")
        self.feedback = (self.feedback or "").strip()
        return self


class DocumentFilters(BaseModel):
    search: str = ""
    category: str = "all"
    level: str = "all"
    graded: str = "all"  # all, graded, ungraded
    starred: str = "all"  # all, starred, unstarred
    sort_by: str = "date"  # name, student, date, grade
    group_by: str = "none"  # none, year, letter, student, level, category, status

    @field_validator("category")
    @classmethod
    def _category(cls, value: str) -> str:
        if value != "all" and value not in DOCUMENT_CATEGORY_VALUES:
            raise ValueError(f"Unknown category: {value}")
        return value


class DocumentOut(BaseModel):
    id: str
    name: str
    url: str
    size: int
    type: str
    category: str
    uploaded_at: datetime
    storage_path: str
    student_id: str
    student_name: str
    academic_year: str
    nursing_level: str
    grade: Optional[float] = None
    max_grade: Optional[float] = None
    grade_percentage: Optional[float] = None
    feedback: Optional[str] = None
    date_graded: Optional[datetime] = None
    is_graded: bool
    is_starred: bool


class DocumentGroup(BaseModel):
    name: str
    documents: list[DocumentOut]


class DocumentStats(BaseModel):
    total: int
    graded: int
    ungraded: int
    starred: int


class DocumentListing(BaseModel):
    groups: list[DocumentGroup]
    showing: int
    total: int
    stats: DocumentStats
