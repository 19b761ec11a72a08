from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import AttemptStatusEnum
from app.models.types import JSONType

class Attempt(Base):
    __tablename__ = "attempts"

    id = Column(String(36), primary_key=True, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False)

    user_id = Column(Integer, nullable=True, index=True)
    guest_name = Column(String(64), nullable=True)
    field_values = Column(JSONType, nullable=False, default=dict)
    fingerprint = Column(String(128), nullable=True, index=True)
    client_ip = Column(String(64), nullable=True)

    status = Column(
        Enum(AttemptStatusEnum, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AttemptStatusEnum.ACTIVE,
        index=True,
    )
    version = Column(Integer, nullable=False, default=1)
    policy = Column(JSONType, nullable=False, default=dict) # Copied from the assignment at start
    question_order = Column(JSONType, nullable=False, default=list)
    cursor = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)

    start_time = Column(DateTime(timezone=True), nullable=False)
    question_opened_at = Column(DateTime(timezone=True), nullable=True) # Anchor of the per-question deadline
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=False, default=0.0)
    pending_score = Column(Integer, nullable=False, default=0) # Answers awaiting manual grading

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    assignment = relationship("Assignment", back_populates="attempts")
    answer_records = relationship(
        "AnswerRecord",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AnswerRecord.position",
    )
