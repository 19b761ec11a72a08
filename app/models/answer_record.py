from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Float, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.types import JSONType

class AnswerRecord(Base):
    __tablename__ = "answer_records"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_records_attempt_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(String(36), ForeignKey("attempts.id"), nullable=False, index=True)
    question_id = Column(String(36), nullable=False)
    position = Column(Integer, nullable=False) # Cursor value the answer was given at
    kind = Column(String(16), nullable=False)
    payload = Column(JSONType, nullable=False) # Option indices are stored in authored order
    is_correct = Column(Boolean, nullable=True)
    score = Column(Float, nullable=True)
    is_pending = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    attempt = relationship("Attempt", back_populates="answer_records")
