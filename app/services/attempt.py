import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.clock import ensure_utc
from app.core.constants import AttemptStatusEnum, MANUALLY_GRADED_TYPES, RevealScoreModeEnum
from app.core.exceptions import (
    AttemptLimitExceeded, Expired, Forbidden, IncompleteAttempt, InvalidPayload, InvalidState,
    NotFound, QuestionExpired, ValidationFailed, VersionConflict,
)
from app.crud.answer_record import answer_record as crud_answer_record
from app.crud.assignment import assignment as crud_assignment
from app.crud.attempt import attempt as crud_attempt
from app.models.assignment import Assignment
from app.models.attempt import Attempt
from app.schemas.answer import AnswerRecord, AnswerRequest, GradeAnswerRequest
from app.schemas.assignment import ParticipantField
from app.schemas.attempt import (
    AnswerResponse, AnsweredOption, AnsweredQuestion, AttemptDetails, AttemptSummary, AttemptView,
    GradeAnswerResponse, GuestParticipant, NextQuestionResponse, StartAttemptRequest, UserParticipant,
    VersionRequest,
)
from app.schemas.policy import AttemptPolicy
from app.schemas.user import UserContext
from app.services import attempt_state as state
from app.services.question_bank import QuestionBank, build_question_order, option_permutation
from app.services.scoring import answer_scorer, parse_payload
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class AttemptService:

    # Loading and access

    def _get_attempt(self, db: Session, attempt_id: str) -> Attempt:
        attempt = crud_attempt.get(db, id=attempt_id)
        if not attempt:
            raise NotFound("Attempt not found.")
        return attempt

    def _get_assignment(self, db: Session, assignment_id: str) -> Assignment:
        assignment = crud_assignment.get(db, id=assignment_id)
        if not assignment:
            raise NotFound("Assignment not found.")
        return assignment

    def _bank(self, attempt: Attempt) -> QuestionBank:
        return QuestionBank(attempt.assignment.questions)

    def _require_open(self, assignment: Assignment, now: datetime):
        opens = ensure_utc(assignment.available_from)
        closes = ensure_utc(assignment.available_until)
        if opens and now < opens:
            raise Forbidden("This assignment is not open yet.")
        if closes and now > closes:
            raise Forbidden("This assignment is closed.")

    def _collect_fields(self, assignment: Assignment, submitted: Dict[str, str]) -> Dict[str, str]:
        values = {}
        missing = []
        for raw in assignment.fields or []:
            field = ParticipantField.model_validate(raw)
            value = (submitted.get(field.key) or "").strip()
            if value:
                values[field.key] = value
            elif field.required:
                missing.append(field.key)
        if missing:
            raise ValidationFailed(
                "Required participant fields are missing.",
                details={"missing_fields": missing},
            )
        return values

    # Transitions

    def _write(self, db: Session, attempt: Attempt, values: dict, *, commit: bool = False) -> Attempt:
        updated = crud_attempt.compare_and_update(
            db, db_obj=attempt, expected_version=attempt.version, values=values, commit=commit
        )
        if updated is None:
            logger.warning(f"Version conflict writing attempt {attempt.id} at version {attempt.version}")
            raise VersionConflict()
        return updated

    def _expire(self, db: Session, attempt: Attempt, now: datetime) -> Attempt:
        # Committed on its own so the transition survives the 410 that follows
        while True:
            try:
                attempt = self._write(db, attempt, state.expire_changes(attempt, now), commit=True)
                break
            except VersionConflict:
                # Lost the row to another writer; expire again unless it already ended the attempt
                db.refresh(attempt)
                if state.is_terminal(attempt):
                    return attempt
        logger.info(f"Attempt {attempt.id} expired at cursor {attempt.cursor}/{attempt.total}")
        return attempt

    def _expire_if_overdue(self, db: Session, attempt: Attempt, now: datetime) -> bool:
        if not state.is_terminal(attempt) and state.is_attempt_overdue(attempt, now):
            self._expire(db, attempt, now)
            return True
        return False

    def _skip(self, db: Session, attempt: Attempt) -> Attempt:
        position = attempt.cursor
        attempt = self._write(db, attempt, state.advance_changes(attempt))
        logger.info(f"Attempt {attempt.id} skipped question at position {position} on timeout")
        return attempt

    def _recompute_scores(self, db: Session, attempt: Attempt) -> Tuple[Optional[float], int]:
        records = crud_answer_record.get_all_by_attempt(db, attempt_id=attempt.id)
        graded = [r for r in records if not r.is_pending and r.score is not None]
        pending = sum(1 for r in records if r.is_pending)
        score = sum(r.score for r in graded) if graded else None
        return score, pending

    # Views

    def _participant(self, attempt: Attempt):
        if attempt.user_id is not None:
            return UserParticipant(user_id=attempt.user_id)
        return GuestParticipant(name=attempt.guest_name or "", extra_fields=attempt.field_values or {})

    def _scores_visible(self, attempt: Attempt, policy: AttemptPolicy, as_owner: bool) -> bool:
        if as_owner:
            return True
        if policy.reveal_score_mode == RevealScoreModeEnum.ALWAYS:
            return True
        if policy.reveal_score_mode == RevealScoreModeEnum.AFTER_SUBMIT:
            return attempt.status in (AttemptStatusEnum.SUBMITTED, AttemptStatusEnum.EXPIRED)
        return False

    def _view(self, attempt: Attempt, now: datetime, as_owner: bool = False) -> AttemptView:
        policy = state.policy_of(attempt)
        show = self._scores_visible(attempt, policy, as_owner)
        return AttemptView(
            attempt_id=attempt.id,
            assignment_id=attempt.assignment_id,
            test_id=attempt.exam_id,
            status=AttemptStatusEnum(attempt.status).value,
            version=attempt.version,
            cursor=attempt.cursor,
            total=attempt.total,
            time_left_sec=state.time_left_sec(attempt, now),
            question_time_left_sec=state.question_time_left_sec(attempt, now),
            started_at=ensure_utc(attempt.start_time),
            participant=self._participant(attempt),
            policy=policy,
            score=attempt.score if show else None,
            max_score=attempt.max_score if show else None,
            pending_score=attempt.pending_score if show else None,
        )

    def _summary(self, attempt: Attempt) -> AttemptSummary:
        return AttemptSummary(
            attempt_id=attempt.id,
            assignment_id=attempt.assignment_id,
            test_id=attempt.exam_id,
            status=AttemptStatusEnum(attempt.status).value,
            started_at=ensure_utc(attempt.start_time),
            submitted_at=ensure_utc(attempt.submitted_at),
            expired_at=ensure_utc(attempt.expired_at),
            cancelled_at=ensure_utc(attempt.cancelled_at),
            duration_sec=state.duration_sec(attempt),
            cursor=attempt.cursor,
            total=attempt.total,
            score=attempt.score,
            max_score=attempt.max_score,
            pending_score=attempt.pending_score,
            participant=self._participant(attempt),
            fields=attempt.field_values or {},
        )

    # Operations

    def start_attempt(self, db: Session, *, attempt_in: StartAttemptRequest, current_user_context: UserContext,
                      now: datetime) -> AttemptView:
        assignment = self._get_assignment(db, attempt_in.assignment_id)
        user_id = current_user_context.user_id
        fingerprint = attempt_in.fingerprint or current_user_context.fingerprint
        guest_name = None

        if user_id is None:
            if not assignment.allow_guests:
                raise Forbidden("This assignment requires signing in.")
            guest_name = (attempt_in.guest_name or "").strip()
            if not guest_name:
                raise ValidationFailed("guest_name is required to start as a guest.")
        self._require_open(assignment, now)
        field_values = self._collect_fields(assignment, attempt_in.fields)

        existing = crud_attempt.get_active_for_identity(
            db, assignment_id=assignment.id, user_id=user_id, fingerprint=fingerprint
        )
        if existing and not self._expire_if_overdue(db, existing, now):
            logger.info(f"Resuming attempt {existing.id} on assignment {assignment.id}")
            return self._view(existing, now)

        policy = AttemptPolicy.model_validate(assignment.policy or {})
        if policy.max_attempts > 0:
            used = crud_attempt.count_for_identity(
                db, assignment_id=assignment.id, user_id=user_id, guest_name=guest_name, fingerprint=fingerprint
            )
            if used >= policy.max_attempts:
                raise AttemptLimitExceeded(details={"max_attempts": policy.max_attempts, "used": used})

        attempt_id = str(uuid.uuid4())
        bank = QuestionBank(assignment.questions)
        order = build_question_order(attempt_id, bank.all(), policy)

        attempt = crud_attempt.create(db, obj_in={
            "id": attempt_id,
            "assignment_id": assignment.id,
            "exam_id": assignment.exam_id,
            "user_id": user_id,
            "guest_name": guest_name,
            "field_values": field_values,
            "fingerprint": fingerprint,
            "client_ip": current_user_context.client_ip,
            "status": AttemptStatusEnum.ACTIVE,
            "version": 1,
            "policy": policy.model_dump(mode="json"),
            "question_order": order,
            "cursor": 0,
            "total": len(order),
            "start_time": now,
            "max_score": bank.max_score(order),
            "pending_score": 0,
        }, commit=False)
        logger.info(f"Started attempt {attempt.id} on assignment {assignment.id} with {attempt.total} questions")
        return self._view(crud_attempt.get(db, id=attempt.id), now)

    def get_next_question(self, db: Session, *, attempt_id: str, current_user_context: UserContext,
                          now: datetime) -> NextQuestionResponse:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_participant(current_user_context, attempt)

        if state.is_terminal(attempt):
            return NextQuestionResponse(attempt=self._view(attempt, now))
        if self._expire_if_overdue(db, attempt, now):
            return NextQuestionResponse(attempt=self._view(attempt, now))

        while attempt.cursor < attempt.total and state.is_question_overdue(attempt, now):
            try:
                attempt = self._skip(db, attempt)
            except VersionConflict:
                # Another request moved the attempt on; re-read and re-check
                db.refresh(attempt)
                if state.is_terminal(attempt):
                    return NextQuestionResponse(attempt=self._view(attempt, now))

        if attempt.cursor >= attempt.total:
            return NextQuestionResponse(attempt=self._view(attempt, now))

        policy = state.policy_of(attempt)
        bank = self._bank(attempt)
        question = bank.question_at(attempt.question_order, attempt.cursor)
        if policy.has_question_deadline and attempt.question_opened_at is None:
            attempt = crud_attempt.stamp_question_anchor(db, db_obj=attempt, opened_at=now)

        return NextQuestionResponse(
            attempt=self._view(attempt, now),
            question=bank.served_view(attempt.id, question, policy),
        )

    def submit_answer(self, db: Session, *, attempt_id: str, answer_in: AnswerRequest,
                      current_user_context: UserContext, now: datetime) -> AnswerResponse:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_participant(current_user_context, attempt)

        state.require_active(attempt)
        if self._expire_if_overdue(db, attempt, now):
            raise Expired()
        state.require_version(attempt, answer_in.version)
        if attempt.cursor >= attempt.total:
            raise InvalidState("Every question has already been answered or skipped.")
        if state.is_question_overdue(attempt, now):
            self._expire(db, attempt, now)
            raise QuestionExpired()

        policy = state.policy_of(attempt)
        question = self._bank(attempt).question_at(attempt.question_order, attempt.cursor)
        scored = answer_scorer.score(attempt.id, question, policy, parse_payload(answer_in.payload))

        position = attempt.cursor
        attempt = self._write(db, attempt, state.advance_changes(attempt))
        record = crud_answer_record.upsert(db, attempt_id=attempt.id, question_id=question.id, values={
            "position": position,
            "kind": scored.kind,
            "payload": scored.payload,
            "is_correct": scored.is_correct,
            "score": scored.score,
            "is_pending": scored.is_pending,
        })
        score, pending = self._recompute_scores(db, attempt)
        attempt = crud_attempt.update_scores(db, db_obj=attempt, score=score, pending_score=pending)

        view = self._view(attempt, now)
        if not self._scores_visible(attempt, policy, as_owner=False):
            record_out = AnswerRecord.model_validate(record).model_copy(update={"is_correct": None, "score": None})
        else:
            record_out = AnswerRecord.model_validate(record)
        return AnswerResponse(attempt=view, answer=record_out)

    def finish(self, db: Session, *, attempt_id: str, version_in: VersionRequest,
               current_user_context: UserContext, now: datetime) -> AttemptView:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_participant(current_user_context, attempt)

        if self._expire_if_overdue(db, attempt, now):
            raise Expired()
        state.require_version(attempt, version_in.version)
        state.require_active(attempt)

        policy = state.policy_of(attempt)
        if policy.require_all_answered and attempt.cursor < attempt.total:
            raise IncompleteAttempt(details={"cursor": attempt.cursor, "total": attempt.total})

        score, pending = self._recompute_scores(db, attempt)
        attempt = self._write(db, attempt, state.finish_changes(attempt, now, score, pending))
        logger.info(
            f"Attempt {attempt.id} submitted with score {attempt.score}/{attempt.max_score}, {pending} pending"
        )
        return self._view(attempt, now)

    def cancel(self, db: Session, *, attempt_id: str, version_in: VersionRequest,
               current_user_context: UserContext, now: datetime) -> AttemptView:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_participant(current_user_context, attempt)

        if self._expire_if_overdue(db, attempt, now):
            raise Expired()
        state.require_version(attempt, version_in.version)
        state.require_active(attempt)

        attempt = self._write(db, attempt, state.cancel_changes(attempt, now))
        logger.info(f"Attempt {attempt.id} cancelled at cursor {attempt.cursor}/{attempt.total}")
        return self._view(attempt, now)

    def grade_answer(self, db: Session, *, attempt_id: str, grade_in: GradeAnswerRequest,
                     current_user_context: UserContext) -> GradeAnswerResponse:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_owner(
            current_user_context, attempt.assignment.owner_id, "Only the assignment owner can grade answers."
        )

        record = crud_answer_record.get_by_attempt_and_question(
            db, attempt_id=attempt.id, question_id=grade_in.question_id
        )
        if not record:
            raise NotFound("No answer recorded for this question.")
        if record.kind not in {t.value for t in MANUALLY_GRADED_TYPES}:
            raise InvalidPayload("Only text and code answers are graded manually.")

        question = self._bank(attempt).get(grade_in.question_id)
        if grade_in.score > question.weight:
            raise InvalidPayload(f"Score must be between 0 and {question.weight}.")

        record = crud_answer_record.update(db, db_obj=record, obj_in={
            "score": grade_in.score,
            "is_correct": grade_in.is_correct,
            "is_pending": False,
        }, commit=False)
        score, pending = self._recompute_scores(db, attempt)
        attempt = crud_attempt.update_scores(db, db_obj=attempt, score=score, pending_score=pending)
        logger.info(f"Graded question {record.question_id} on attempt {attempt.id}: {grade_in.score}, {pending} pending")
        return GradeAnswerResponse(attempt=self._summary(attempt), answer=AnswerRecord.model_validate(record))

    def list_attempt_summaries(self, db: Session, *, assignment_id: str,
                               current_user_context: UserContext) -> List[AttemptSummary]:
        assignment = self._get_assignment(db, assignment_id)
        permission_helper.require_owner(
            current_user_context, assignment.owner_id, "Only the assignment owner can list attempts."
        )
        attempts = crud_attempt.get_all_by_assignment(db, assignment_id=assignment.id)
        return [self._summary(a) for a in attempts]

    def get_attempt_details(self, db: Session, *, attempt_id: str,
                            current_user_context: UserContext) -> AttemptDetails:
        attempt = self._get_attempt(db, attempt_id)
        permission_helper.require_attempt_view_permission(current_user_context, attempt)

        as_owner = permission_helper.is_attempt_owner(current_user_context, attempt)
        policy = state.policy_of(attempt)
        show_scores = self._scores_visible(attempt, policy, as_owner)
        show_keys = as_owner or (policy.reveal_solutions and state.is_terminal(attempt))

        bank = self._bank(attempt)
        records = {r.question_id: r for r in crud_answer_record.get_all_by_attempt(db, attempt_id=attempt.id)}
        answers = []
        for position, question_id in enumerate(attempt.question_order):
            question = bank.get(question_id)
            record = records.get(question_id)
            payload = record.payload if record else {}

            selected = set(payload.get("selected_options") or [])
            if payload.get("selected") is not None:
                selected.add(payload["selected"])
            correct = set(question.correct_options or [])
            if question.correct_option is not None:
                correct.add(question.correct_option)

            # Participants see options as they were served
            order = option_permutation(attempt.id, question, policy.shuffle_answers) if not as_owner \
                else list(range(len(question.options)))
            options = [
                AnsweredOption(
                    id=question.options[i].id,
                    text=question.options[i].text,
                    image_url=question.options[i].image_url,
                    selected=i in selected,
                    correct=(i in correct) if show_keys else None,
                )
                for i in order
            ]
            answers.append(AnsweredQuestion(
                question_id=question.id,
                position=position,
                text=question.text,
                image_url=question.image_url,
                type=question.type,
                weight=question.weight,
                options=options,
                text_answer=payload.get("text"),
                code_answer=payload.get("code"),
                is_correct=record.is_correct if record and show_scores else None,
                score=record.score if record and show_scores else None,
                is_pending=bool(record and record.is_pending),
            ))

        summary = self._summary(attempt)
        if not show_scores:
            summary = summary.model_copy(update={"score": None, "max_score": None, "pending_score": 0})
        return AttemptDetails(attempt=summary, answers=answers)

    def expire_overdue_attempts(self, db: Session, *, now: datetime) -> int:
        """Materialise expiry for active attempts whose whole-attempt deadline has passed."""
        expired = 0
        for attempt in crud_attempt.get_active(db):
            if state.is_attempt_overdue(attempt, now):
                attempt = self._expire(db, attempt, now)
                if attempt.status == AttemptStatusEnum.EXPIRED:
                    expired += 1
        if expired:
            logger.info(f"Expiry sweep closed {expired} overdue attempts")
        return expired


attempt_service = AttemptService()
