from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import QuestionTypeEnum, DEFAULT_QUESTION_WEIGHT
from app.models.types import JSONType

class Question(Base):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    type = Column(Enum(QuestionTypeEnum, values_callable=lambda e: [m.value for m in e]), nullable=False)
    text = Column(String, nullable=False)
    image_url = Column(String(255), nullable=True)
    options = Column(JSONType, nullable=False, default=list) # [{id, text, image_url}]
    correct_option = Column(Integer, nullable=True) # Index into options for single choice
    correct_options = Column(JSONType, nullable=False, default=list) # Indices for multi choice
    weight = Column(Float, nullable=False, default=DEFAULT_QUESTION_WEIGHT)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="questions")
