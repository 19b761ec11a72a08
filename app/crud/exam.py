from sqlalchemy.orm import Session, selectinload
from typing import List

from app.crud.base import CRUDBase
from app.models.exam import Exam
from app.schemas.exam import ExamCreate


class CRUDExam(CRUDBase[Exam, ExamCreate, ExamCreate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Exam).options(selectinload(Exam.questions))

    def get(self, db: Session, id: int):
        return self._query_with_relationships(db).filter(Exam.id == id).first()

    def get_by_owner(self, db: Session, owner_id: int, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            self._query_with_relationships(db)
            .filter(Exam.owner_id == owner_id)
            .order_by(Exam.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


exam = CRUDExam(Exam)
