import logging
import uuid

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationFailed
from app.crud.assignment import assignment as crud_assignment
from app.models.assignment import Assignment
from app.schemas.assignment import AssignmentCreate
from app.schemas.policy import AttemptPolicy
from app.schemas.question import QuestionSnapshot
from app.schemas.user import UserContext
from app.services.exam import exam_service
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class AssignmentService:

    def create_assignment(self, db: Session, assignment_in: AssignmentCreate,
                          current_user_context: UserContext) -> Assignment:
        """Publish an exam as a sharable assignment.

        Questions, answer keys and policy are copied now; later edits to the
        exam never reach this assignment or its attempts.
        """
        exam = exam_service.get_exam(db, assignment_in.exam_id, current_user_context)
        if not exam.questions:
            raise ValidationFailed("An exam needs at least one question before it can be assigned.")

        keys = [f.key for f in assignment_in.fields]
        if len(set(keys)) != len(keys):
            raise ValidationFailed("Participant field keys must be unique.")

        policy = assignment_in.policy or AttemptPolicy.model_validate(exam.policy or {})
        snapshot = [QuestionSnapshot.model_validate(q).model_dump(mode="json") for q in exam.questions]

        assignment = crud_assignment.create(db, obj_in={
            "id": str(uuid.uuid4()),
            "exam_id": exam.id,
            "owner_id": exam.owner_id,
            "title": assignment_in.title or exam.title,
            "allow_guests": exam.allow_guests,
            "available_from": exam.available_from,
            "available_until": exam.available_until,
            "policy": policy.model_dump(mode="json"),
            "questions": snapshot,
            "fields": [f.model_dump() for f in assignment_in.fields],
        }, commit=False)
        logger.info(f"Assignment {assignment.id} created from exam {exam.id} with {len(snapshot)} questions")
        return assignment

    def get_assignment(self, db: Session, assignment_id: str, current_user_context: UserContext) -> Assignment:
        assignment = crud_assignment.get(db, id=assignment_id)
        if not assignment:
            raise NotFound("Assignment not found.")
        permission_helper.require_owner(
            current_user_context, assignment.owner_id, "You can only view your own assignments."
        )
        return assignment


assignment_service = AssignmentService()
