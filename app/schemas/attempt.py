from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Dict, List, Literal, Optional, Union
from datetime import datetime

from app.schemas.policy import AttemptPolicy
from app.schemas.question import QuestionView
from app.schemas.answer import AnswerRecord


class StartAttemptRequest(BaseModel):
    assignment_id: str
    guest_name: Optional[str] = Field(None, min_length=1, max_length=64)
    fingerprint: Optional[str] = Field(None, min_length=6, max_length=128)
    fields: Dict[str, str] = {}


class VersionRequest(BaseModel):
    version: int = Field(..., ge=0)


class UserParticipant(BaseModel):
    kind: Literal["user"] = "user"
    user_id: int


class GuestParticipant(BaseModel):
    kind: Literal["guest"] = "guest"
    name: str
    extra_fields: Dict[str, str] = {}


Participant = Annotated[Union[UserParticipant, GuestParticipant], Field(discriminator="kind")]


class AttemptView(BaseModel):
    """The participant-facing mirror of an attempt.

    ``time_left_sec`` is computed by the server on every read and is ``None``
    when the policy has no whole-attempt limit. Score fields are filled
    according to ``policy.reveal_score_mode``.
    """
    attempt_id: str
    assignment_id: str
    test_id: int
    status: str
    version: int
    cursor: int
    total: int
    time_left_sec: Optional[int] = None
    question_time_left_sec: Optional[int] = None
    started_at: datetime
    participant: Participant
    policy: AttemptPolicy
    score: Optional[float] = None
    max_score: Optional[float] = None
    pending_score: Optional[int] = None


class NextQuestionResponse(BaseModel):
    attempt: AttemptView
    question: Optional[QuestionView] = None


class AnswerResponse(BaseModel):
    attempt: AttemptView
    answer: AnswerRecord


class AttemptSummary(BaseModel):
    attempt_id: str
    assignment_id: str
    test_id: int
    status: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    duration_sec: int = 0
    cursor: int
    total: int
    score: Optional[float] = None
    max_score: Optional[float] = None
    pending_score: int = 0
    participant: Participant
    fields: Dict[str, str] = {}


class AnsweredOption(BaseModel):
    id: str
    text: str
    image_url: Optional[str] = None
    selected: bool = False
    correct: Optional[bool] = None


class AnsweredQuestion(BaseModel):
    question_id: str
    position: int
    text: str
    image_url: Optional[str] = None
    type: str
    weight: float
    options: List[AnsweredOption] = []
    text_answer: Optional[str] = None
    code_answer: Optional[Dict[str, str]] = None
    is_correct: Optional[bool] = None
    score: Optional[float] = None
    is_pending: bool = False


class AttemptDetails(BaseModel):
    attempt: AttemptSummary
    answers: List[AnsweredQuestion] = []

    model_config = ConfigDict(from_attributes=True)


class GradeAnswerResponse(BaseModel):
    attempt: AttemptSummary
    answer: AnswerRecord
