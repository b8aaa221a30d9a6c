"""Announcements and direct messages, optionally relayed to Telegram."""
from datetime import datetime
from typing import Literal, Optional

from beanie import Document
from pydantic import BaseModel, Field, model_validator

MessageType = Literal["announcement", "individual", "resource"]
TargetAudience = Literal["all", "level", "individual"]


class Announcement(Document):
    title: str
    message: str
    message_type: MessageType = "announcement"
    target_audience: TargetAudience = "all"
    target_levels: list[str] = Field(default_factory=list)
    target_students: list[str] = Field(default_factory=list)  # student_id values
    created_at: datetime = Field(default_factory=datetime.utcnow)
    urgent: bool = False
    sent_to_telegram: bool = False
    read_by: list[str] = Field(default_factory=list)
    created_by: str
    resource_id: Optional[str] = None

    class Settings:
        name = "announcements"
        use_state_management = True


class AnnouncementCreate(BaseModel):
    title: str
    message: str
    message_type: MessageType = "announcement"
    target_audience: TargetAudience = "all"
    target_levels: list[str] = Field(default_factory=list)
    target_students: list[str] = Field(default_factory=list)
    urgent: bool = False
    send_to_telegram: bool = True
    resource_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_payload(self):
        self.title = (self.title or "").strip()
        self.message = (self.message or "").strip()
        if not self.title:
            raise ValueError("Title is required")
        if not self.message:
            raise ValueError("Message is required")
        if self.message_type == "individual":
            self.target_audience = "individual"
        if self.target_audience == "level" and not self.target_levels:
            raise ValueError("Please select at least one nursing level")
        if self.target_audience == "individual" and not self.target_students:
            raise ValueError("Please select at least one student")
        return self


class AnnouncementOut(BaseModel):
    id: str
    title: str
    message: str
    message_type: str
    target_audience: str
    target_levels: list[str]
    target_students: list[str]
    created_at: datetime
    urgent: bool
    sent_to_telegram: bool
    read_by: list[str]
    created_by: str
    resource_id: Optional[str] = None
    read_percentage: int = 0


class AnnouncementStats(BaseModel):
    total: int
    urgent: int
    sent: int
    unread: int
