from datetime import datetime

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class StudentMessage(Document):
    """Direct message thread entry between an instructor and a student."""
    student_id: Indexed(str)
    from_instructor: bool = True
    message: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    read: bool = False
    urgent: bool = False

    class Settings:
        name = "student_messages"
        use_state_management = True


class StudentMessageCreate(BaseModel):
    message: str
    urgent: bool = False
