from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.assignment import Assignment, AssignmentCreate
from app.services.assignment import assignment_service
from app.schemas.user import UserContext

router = APIRouter()

@router.post("/", response_model=APIResponse[Assignment], status_code=status.HTTP_201_CREATED)
async def create_assignment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    assignment_in: AssignmentCreate,
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    assignment = assignment_service.create_assignment(db, assignment_in=assignment_in, current_user_context=context)
    return APIResponse(message="Assignment created successfully", data=Assignment.model_validate(assignment))


@router.get("/{assignment_id}", response_model=APIResponse[Assignment])
async def get_assignment(
    assignment_id: str,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    assignment = assignment_service.get_assignment(db, assignment_id=assignment_id, current_user_context=context)
    return APIResponse(message="Assignment retrieved successfully", data=Assignment.model_validate(assignment))
