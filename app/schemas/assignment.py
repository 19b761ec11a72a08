from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import Optional, List
from datetime import datetime

from app.core.config import settings
from app.schemas.policy import AttemptPolicy


class ParticipantField(BaseModel):
    key: str = Field(..., min_length=1, max_length=64)
    label: str
    required: bool = False


class AssignmentCreate(BaseModel):
    exam_id: int
    title: Optional[str] = None
    fields: List[ParticipantField] = []
    # Overrides the exam's policy for this assignment only
    policy: Optional[AttemptPolicy] = None


class Assignment(BaseModel):
    id: str
    exam_id: int
    owner_id: int
    title: str
    allow_guests: bool
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    policy: AttemptPolicy
    fields: List[ParticipantField] = []
    question_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def share_url(self) -> str:
        return f"{settings.PUBLIC_BASE_URL}/take-test?assignment={self.id}"

    @computed_field
    @property
    def manage_url(self) -> str:
        return f"{settings.PUBLIC_BASE_URL}/dashboard/assignments/{self.id}"
