from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.models.answer_record import AnswerRecord


class CRUDAnswerRecord(CRUDBase[AnswerRecord, BaseModel, BaseModel]):

    def get_by_attempt_and_question(self, db: Session, attempt_id: str,
                                    question_id: str) -> Optional[AnswerRecord]:
        return (
            db.query(AnswerRecord)
            .filter(AnswerRecord.attempt_id == attempt_id)
            .filter(AnswerRecord.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, attempt_id: str) -> List[AnswerRecord]:
        return (
            db.query(AnswerRecord)
            .filter(AnswerRecord.attempt_id == attempt_id)
            .order_by(AnswerRecord.position)
            .all()
        )

    def upsert(self, db: Session, *, attempt_id: str, question_id: str, values: dict) -> AnswerRecord:
        """One record per (attempt, question): a resubmission overwrites in place."""
        existing = self.get_by_attempt_and_question(db, attempt_id=attempt_id, question_id=question_id)
        if existing:
            return self.update(db, db_obj=existing, obj_in=values, commit=False)
        return self.create(
            db,
            obj_in={"attempt_id": attempt_id, "question_id": question_id, **values},
            commit=False,
        )


answer_record = CRUDAnswerRecord(AnswerRecord)
