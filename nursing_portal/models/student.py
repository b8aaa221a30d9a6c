"""Nursing student roster entries with denormalized summary stats."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field, field_validator

from nursing_portal.catalog import CLINICAL_ROTATIONS, LEVEL_VALUES


def _check_level(value: str) -> str:
    if value not in LEVEL_VALUES:
        raise ValueError(f"Unknown nursing level: {value}")
    return value


def _check_rotation(value: Optional[str]) -> Optional[str]:
    if value and value not in CLINICAL_ROTATIONS:
        raise ValueError(f"Unknown clinical rotation: {value}")
    return value or None


class Student(Document):
    """Student document. `student_id` is the institution's identifier, not the record id."""

    student_id: Indexed(str, unique=True)
    name: str
    email: str
    academic_year: str
    nursing_level: str
    clinical_rotation: Optional[str] = None
    telegram_id: Optional[str] = None
    phone_number: Optional[str] = None
    profile_image: Optional[str] = None

    # Enrollment timestamp; attendance views exclude students enrolled after the viewed date.
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_active: Optional[datetime] = None

    # Denormalized caches, regenerated by the roster service.
    document_count: int = 0
    overall_grade: float = 0
    completed_assignments: int = 0
    total_assignments: int = 0
    attendance_rate: float = 100

    class Settings:
        name = "students"
        use_state_management = True


class StudentCreate(BaseModel):
    student_id: str
    name: str
    email: EmailStr
    academic_year: str = Field(default_factory=lambda: str(datetime.utcnow().year))
    nursing_level: str = "first-year"
    clinical_rotation: Optional[str] = None
    telegram_id: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("student_id", "name")
    @classmethod
    def _required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("nursing_level")
    @classmethod
    def _level(cls, value: str) -> str:
        return _check_level(value)

    @field_validator("clinical_rotation")
    @classmethod
    def _rotation(cls, value: Optional[str]) -> Optional[str]:
        return _check_rotation(value)


class StudentUpdate(BaseModel):
    """All fields optional for PATCH; student_id is not updatable."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    academic_year: Optional[str] = None
    nursing_level: Optional[str] = None
    clinical_rotation: Optional[str] = None
    telegram_id: Optional[str] = None
    phone_number: Optional[str] = None
    profile_image: Optional[str] = None

    @field_validator("nursing_level")
    @classmethod
    def _level(cls, value: Optional[str]) -> Optional[str]:
        return _check_level(value) if value is not None else None

    @field_validator("clinical_rotation")
    @classmethod
    def _rotation(cls, value: Optional[str]) -> Optional[str]:
        return _check_rotation(value)


class StudentSummary(BaseModel):
    """Roster row as used by the reconciler, aggregators and API responses."""
    id: str
    student_id: str
    name: str
    email: str
    academic_year: str
    nursing_level: str
    clinical_rotation: Optional[str] = None
    telegram_id: Optional[str] = None
    phone_number: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: datetime
    last_active: Optional[datetime] = None
    document_count: int = 0
    overall_grade: float = 0
    completed_assignments: int = 0
    total_assignments: int = 0
    attendance_rate: float = 0

    @classmethod
    def from_document(cls, s: Student) -> "StudentSummary":
        return cls(
            id=str(s.id),
            student_id=s.student_id,
            name=s.name,
            email=s.email,
            academic_year=s.academic_year,
            nursing_level=s.nursing_level,
            clinical_rotation=s.clinical_rotation,
            telegram_id=s.telegram_id,
            phone_number=s.phone_number,
            profile_image=s.profile_image,
            created_at=s.created_at,
            last_active=s.last_active,
            document_count=s.document_count,
            overall_grade=s.overall_grade,
            completed_assignments=s.completed_assignments,
            total_assignments=s.total_assignments,
            attendance_rate=s.attendance_rate,
        )


class StudentPerformance(BaseModel):
    student_id: str
    overall_grade: float
    completed_assignments: int
    total_assignments: int
    attendance_rate: float
