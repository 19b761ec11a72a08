from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, and_
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from app.core.constants import AttemptStatusEnum
from app.crud.base import CRUDBase
from app.models.attempt import Attempt


class CRUDAttempt(CRUDBase[Attempt, BaseModel, BaseModel]):

    def _query_with_relationships(self, db: Session):
        return db.query(Attempt).options(
            selectinload(Attempt.assignment),
            selectinload(Attempt.answer_records)
        )

    def get(self, db: Session, id: str):
        return self._query_with_relationships(db).filter(Attempt.id == id).first()

    def _identity_filter(self, user_id: Optional[int], guest_name: Optional[str], fingerprint: Optional[str]):
        clauses = []
        if user_id is not None:
            clauses.append(Attempt.user_id == user_id)
        elif guest_name:
            clauses.append(and_(Attempt.user_id.is_(None), Attempt.guest_name == guest_name))
        if fingerprint:
            clauses.append(Attempt.fingerprint == fingerprint)
        return or_(*clauses) if clauses else None

    def count_for_identity(self, db: Session, *, assignment_id: str, user_id: Optional[int] = None,
                           guest_name: Optional[str] = None, fingerprint: Optional[str] = None) -> int:
        identity = self._identity_filter(user_id, guest_name, fingerprint)
        if identity is None:
            return 0
        return (
            db.query(Attempt)
            .filter(Attempt.assignment_id == assignment_id)
            .filter(identity)
            .count()
        )

    def get_active_for_identity(self, db: Session, *, assignment_id: str, user_id: Optional[int] = None,
                                fingerprint: Optional[str] = None) -> Optional[Attempt]:
        if user_id is not None:
            identity = Attempt.user_id == user_id
        elif fingerprint:
            identity = and_(Attempt.user_id.is_(None), Attempt.fingerprint == fingerprint)
        else:
            return None
        return (
            self._query_with_relationships(db)
            .filter(Attempt.assignment_id == assignment_id)
            .filter(Attempt.status == AttemptStatusEnum.ACTIVE)
            .filter(identity)
            .order_by(Attempt.start_time.desc())
            .first()
        )

    def get_all_by_assignment(self, db: Session, assignment_id: str, skip: int = 0, limit: int = 1000) -> List[Attempt]:
        return (
            self._query_with_relationships(db)
            .filter(Attempt.assignment_id == assignment_id)
            .order_by(Attempt.start_time.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_active(self, db: Session, skip: int = 0, limit: int = 500) -> List[Attempt]:
        return (
            db.query(Attempt)
            .filter(Attempt.status == AttemptStatusEnum.ACTIVE)
            .order_by(Attempt.start_time)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def compare_and_update(self, db: Session, *, db_obj: Attempt, expected_version: int,
                           values: Dict[str, Any], commit: bool = False) -> Optional[Attempt]:
        """Apply ``values`` and bump the version only if the row still holds ``expected_version``.

        Returns ``None`` when another writer got there first; nothing is changed in that case.
        """
        rows = (
            db.query(Attempt)
            .filter(Attempt.id == db_obj.id, Attempt.version == expected_version)
            .update({**values, "version": Attempt.version + 1}, synchronize_session=False)
        )
        if rows == 0:
            return None
        db.flush()
        if commit:
            db.commit()
        db.refresh(db_obj)
        return db_obj

    def stamp_question_anchor(self, db: Session, *, db_obj: Attempt, opened_at) -> Attempt:
        """Open the per-question deadline for the current cursor unless one is already running.

        Deliberately leaves ``version`` alone.
        """
        (
            db.query(Attempt)
            .filter(
                Attempt.id == db_obj.id,
                Attempt.cursor == db_obj.cursor,
                Attempt.question_opened_at.is_(None),
            )
            .update({"question_opened_at": opened_at}, synchronize_session=False)
        )
        db.flush()
        db.refresh(db_obj)
        return db_obj

    def update_scores(self, db: Session, *, db_obj: Attempt, score: Optional[float], pending_score: int,
                      commit: bool = False) -> Attempt:
        """Grading path: touches score fields only, never version, cursor or status."""
        return self.update(db, db_obj=db_obj, obj_in={"score": score, "pending_score": pending_score}, commit=commit)


attempt = CRUDAttempt(Attempt)
