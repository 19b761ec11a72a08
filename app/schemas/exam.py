from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.schemas.policy import AttemptPolicy
from app.schemas.question import QuestionCreate, QuestionSnapshot


class ExamBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    allow_guests: bool = True
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    policy: AttemptPolicy = Field(default_factory=AttemptPolicy)


class ExamCreate(ExamBase):
    questions: List[QuestionCreate] = []


class Exam(ExamBase):
    id: int
    owner_id: int
    questions: List[QuestionSnapshot] = []
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)
