from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.types import JSONType

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    allow_guests = Column(Boolean, nullable=False, default=True)
    available_from = Column(DateTime(timezone=True), nullable=True)
    available_until = Column(DateTime(timezone=True), nullable=True)
    policy = Column(JSONType, nullable=False, default=dict) # Frozen AttemptPolicy
    questions = Column(JSONType, nullable=False, default=list) # Frozen QuestionSnapshot list
    fields = Column(JSONType, nullable=False, default=list) # [{key, label, required}]
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="assignments")
    attempts = relationship("Attempt", back_populates="assignment")

    @property
    def question_count(self) -> int:
        return len(self.questions or [])
