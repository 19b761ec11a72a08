from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime


class SingleAnswer(BaseModel):
    kind: Literal["single"] = "single"
    selected: int


class MultiAnswer(BaseModel):
    kind: Literal["multi"] = "multi"
    selected_options: List[int] = Field(default_factory=list)


class TextAnswer(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class CodeBody(BaseModel):
    lang: str
    body: str


class CodeAnswer(BaseModel):
    kind: Literal["code"] = "code"
    code: CodeBody


AnswerPayload = Annotated[
    Union[SingleAnswer, MultiAnswer, TextAnswer, CodeAnswer],
    Field(discriminator="kind"),
]


class AnswerRequest(BaseModel):
    version: int = Field(..., ge=0)
    # Parsed by the scorer so shape errors surface as invalid_payload, not 422
    payload: dict


class GradeAnswerRequest(BaseModel):
    question_id: str
    score: float = Field(..., ge=0)
    is_correct: Optional[bool] = None


class AnswerRecord(BaseModel):
    attempt_id: str
    question_id: str
    position: int
    kind: str
    payload: dict
    is_correct: Optional[bool] = None
    score: Optional[float] = None
    is_pending: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
