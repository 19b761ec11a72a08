from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.exam import Exam, ExamCreate
from app.services.exam import exam_service
from app.schemas.user import UserContext

router = APIRouter()

@router.post("/", response_model=APIResponse[Exam], status_code=status.HTTP_201_CREATED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    new_exam = exam_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam created successfully", data=Exam.model_validate(new_exam))


@router.get("/", response_model=APIResponse[List[Exam]])
async def get_my_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_authenticated_user_context),
    skip: int = 0,
    limit: int = 100,
):
    exams = exam_service.get_my_exams(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    exam_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    exam = exam_service.get_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))
