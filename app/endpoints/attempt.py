from typing import List
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.constants import ExportFormatEnum
from app.schemas.answer import AnswerRequest, GradeAnswerRequest
from app.schemas.attempt import (
    AnswerResponse, AttemptDetails, AttemptSummary, AttemptView, GradeAnswerResponse,
    NextQuestionResponse, StartAttemptRequest, VersionRequest,
)
from app.schemas.response import APIResponse
from app.schemas.user import UserContext
from app.services.attempt import attempt_service
from app.services.report import report_service
from app.utils import deps

router = APIRouter()


@router.post("/start", response_model=APIResponse[AttemptView], status_code=status.HTTP_201_CREATED)
async def start_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_in: StartAttemptRequest,
    context: UserContext = Depends(deps.get_current_user_with_context),
    clock: Clock = Depends(deps.get_clock)
):
    attempt = attempt_service.start_attempt(
        db, attempt_in=attempt_in, current_user_context=context, now=clock.now()
    )
    return APIResponse(message="Attempt started successfully", data=attempt)


@router.get("/", response_model=APIResponse[List[AttemptSummary]])
async def list_attempt_summaries(
    assignment_id: str = Query(...),
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    summaries = attempt_service.list_attempt_summaries(
        db, assignment_id=assignment_id, current_user_context=context
    )
    return APIResponse(message="Attempts retrieved successfully", data=summaries)


@router.get("/export")
async def export_attempt_summaries(
    assignment_id: str = Query(...),
    format: ExportFormatEnum = Query(ExportFormatEnum.CSV),
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    content, media_type, filename = report_service.export_attempt_summaries(
        db, assignment_id=assignment_id, export_format=format, current_user_context=context
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{attempt_id}/question", response_model=APIResponse[NextQuestionResponse])
async def get_next_question(
    attempt_id: str,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    clock: Clock = Depends(deps.get_clock)
):
    result = attempt_service.get_next_question(
        db, attempt_id=attempt_id, current_user_context=context, now=clock.now()
    )
    message = "Question retrieved successfully" if result.question else "No question to serve"
    return APIResponse(message=message, data=result)


@router.post("/{attempt_id}/answer", response_model=APIResponse[AnswerResponse])
async def submit_answer(
    attempt_id: str,
    answer_in: AnswerRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    clock: Clock = Depends(deps.get_clock)
):
    result = attempt_service.submit_answer(
        db, attempt_id=attempt_id, answer_in=answer_in, current_user_context=context, now=clock.now()
    )
    return APIResponse(message="Answer submitted successfully", data=result)


@router.post("/{attempt_id}/submit", response_model=APIResponse[AttemptView])
async def finish_attempt(
    attempt_id: str,
    version_in: VersionRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    clock: Clock = Depends(deps.get_clock)
):
    attempt = attempt_service.finish(
        db, attempt_id=attempt_id, version_in=version_in, current_user_context=context, now=clock.now()
    )
    return APIResponse(message="Attempt submitted successfully", data=attempt)


@router.post("/{attempt_id}/cancel", response_model=APIResponse[AttemptView])
async def cancel_attempt(
    attempt_id: str,
    version_in: VersionRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    clock: Clock = Depends(deps.get_clock)
):
    attempt = attempt_service.cancel(
        db, attempt_id=attempt_id, version_in=version_in, current_user_context=context, now=clock.now()
    )
    return APIResponse(message="Attempt cancelled successfully", data=attempt)


@router.post("/{attempt_id}/grade", response_model=APIResponse[GradeAnswerResponse])
async def grade_answer(
    attempt_id: str,
    grade_in: GradeAnswerRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_authenticated_user_context)
):
    result = attempt_service.grade_answer(
        db, attempt_id=attempt_id, grade_in=grade_in, current_user_context=context
    )
    return APIResponse(message="Answer graded successfully", data=result)


@router.get("/{attempt_id}/details", response_model=APIResponse[AttemptDetails])
async def get_attempt_details(
    attempt_id: str,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    details = attempt_service.get_attempt_details(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Attempt details retrieved successfully", data=details)
