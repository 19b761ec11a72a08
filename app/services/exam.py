import logging
import uuid
from typing import List

from sqlalchemy.orm import Session

from app.core.constants import QuestionTypeEnum
from app.core.exceptions import NotFound
from app.crud.exam import exam as crud_exam
from app.models.exam import Exam
from app.models.question import Question
from app.schemas.exam import ExamCreate
from app.schemas.question import QuestionCreate
from app.schemas.user import UserContext
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class ExamService:

    def _build_question(self, position: int, question_in: QuestionCreate) -> Question:
        return Question(
            id=str(uuid.uuid4()),
            position=position,
            type=QuestionTypeEnum(question_in.type),
            text=question_in.text,
            image_url=question_in.image_url,
            options=[
                {"id": str(uuid.uuid4()), "text": o.text, "image_url": o.image_url}
                for o in question_in.options
            ],
            correct_option=question_in.correct_option,
            correct_options=sorted(question_in.correct_options),
            weight=question_in.weight,
        )

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext) -> Exam:
        permission_helper.require_authenticated(current_user_context)

        exam = crud_exam.create(db, obj_in={
            "owner_id": current_user_context.user_id,
            "title": exam_in.title,
            "description": exam_in.description,
            "allow_guests": exam_in.allow_guests,
            "available_from": exam_in.available_from,
            "available_until": exam_in.available_until,
            "policy": exam_in.policy.model_dump(mode="json"),
        }, commit=False)
        exam.questions = [self._build_question(i, q) for i, q in enumerate(exam_in.questions)]
        db.flush()
        logger.info(f"Exam {exam.id} created by user {exam.owner_id} with {len(exam.questions)} questions")
        return crud_exam.get(db, id=exam.id)

    def get_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFound("Exam not found.")
        permission_helper.require_owner(current_user_context, exam.owner_id, "You can only view your own exams.")
        return exam

    def get_my_exams(self, db: Session, current_user_context: UserContext, skip: int = 0, limit: int = 100) -> List[Exam]:
        permission_helper.require_authenticated(current_user_context)
        return crud_exam.get_by_owner(db, owner_id=current_user_context.user_id, skip=skip, limit=limit)


exam_service = ExamService()
