"""Instructor-provided study resources targeted at levels and rotations."""
from datetime import datetime

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from nursing_portal.catalog import CLINICAL_ROTATIONS, LEVEL_VALUES, RESOURCE_CATEGORY_VALUES


class StudyResource(Document):
    title: str
    description: str
    file_name: str
    url: str
    size: int
    type: str = ""
    category: Indexed(str)
    target_levels: list[str] = Field(default_factory=list)
    target_rotations: list[str] = Field(default_factory=list)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    uploaded_by: str
    storage_path: str
    download_count: int = 0

    class Settings:
        name = "study_resources"
        use_state_management = True


class StudyResourceCreate(BaseModel):
    title: str
    description: str
    category: str
    target_levels: list[str] = Field(default_factory=list)
    target_rotations: list[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def _required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("category")
    @classmethod
    def _category(cls, value: str) -> str:
        if value not in RESOURCE_CATEGORY_VALUES:
            raise ValueError(f"Unknown category: {value}")
        return value

    @field_validator("target_levels")
    @classmethod
    def _levels(cls, values: list[str]) -> list[str]:
        unknown = [v for v in values if v not in LEVEL_VALUES]
        if unknown:
            raise ValueError(f"Unknown nursing level(s): {', '.join(unknown)}")
        return values

    @field_validator("target_rotations")
    @classmethod
    def _rotations(cls, values: list[str]) -> list[str]:
        unknown = [v for v in values if v not in CLINICAL_ROTATIONS]
        if unknown:
            raise ValueError(f"Unknown clinical rotation(s): {', '.join(unknown)}")
        return values


class CategoryCount(BaseModel):
    category: str
    label: str
    count: int
    percentage: int
