from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List

from app.core.constants import QuestionTypeEnum, DEFAULT_QUESTION_WEIGHT


class OptionBase(BaseModel):
    text: str
    image_url: Optional[str] = None


class OptionCreate(OptionBase):
    pass


class Option(OptionBase):
    id: str


class QuestionBase(BaseModel):
    type: QuestionTypeEnum = QuestionTypeEnum.SINGLE
    text: str
    image_url: Optional[str] = None
    weight: float = Field(default=DEFAULT_QUESTION_WEIGHT, gt=0)

    model_config = ConfigDict(use_enum_values=True)


class QuestionCreate(QuestionBase):
    options: List[OptionCreate] = []
    correct_option: Optional[int] = None
    correct_options: List[int] = []

    @model_validator(mode="after")
    def check_answer_key(self):
        count = len(self.options)
        if self.type == QuestionTypeEnum.SINGLE:
            if count < 2:
                raise ValueError("Single-choice questions need at least two options.")
            if self.correct_option is None or not 0 <= self.correct_option < count:
                raise ValueError("correct_option must index one of the options.")
        elif self.type == QuestionTypeEnum.MULTI:
            if count < 2:
                raise ValueError("Multiple-choice questions need at least two options.")
            if any(not 0 <= i < count for i in self.correct_options):
                raise ValueError("correct_options must index the options.")
            if len(set(self.correct_options)) != len(self.correct_options):
                raise ValueError("correct_options must not repeat.")
        elif self.options:
            raise ValueError("Text and code questions take no options.")
        return self


class QuestionSnapshot(QuestionBase):
    """Question content frozen into an assignment, answer key included."""
    id: str
    options: List[Option] = []
    correct_option: Optional[int] = None
    correct_options: List[int] = []

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class QuestionView(QuestionBase):
    """What a participant is served: never carries correctness data."""
    id: str
    options: List[Option] = []
