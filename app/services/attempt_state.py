import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.core.clock import ensure_utc
from app.core.constants import AttemptStatusEnum, TERMINAL_STATUSES
from app.core.exceptions import InvalidState, VersionConflict
from app.models.attempt import Attempt
from app.schemas.policy import AttemptPolicy

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    AttemptStatusEnum.ACTIVE: frozenset({
        AttemptStatusEnum.SUBMITTED,
        AttemptStatusEnum.EXPIRED,
        AttemptStatusEnum.CANCELLED,
    }),
    AttemptStatusEnum.SUBMITTED: frozenset(),
    AttemptStatusEnum.EXPIRED: frozenset(),
    AttemptStatusEnum.CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return AttemptStatusEnum(target) in _TRANSITIONS[AttemptStatusEnum(current)]


def is_terminal(attempt: Attempt) -> bool:
    return AttemptStatusEnum(attempt.status) in TERMINAL_STATUSES


def policy_of(attempt: Attempt) -> AttemptPolicy:
    return AttemptPolicy.model_validate(attempt.policy or {})


# Deadlines

def attempt_deadline(attempt: Attempt) -> Optional[datetime]:
    policy = policy_of(attempt)
    if not policy.has_attempt_deadline:
        return None
    return ensure_utc(attempt.start_time) + timedelta(seconds=policy.max_attempt_time_sec)


def is_attempt_overdue(attempt: Attempt, now: datetime) -> bool:
    deadline = attempt_deadline(attempt)
    return deadline is not None and deadline <= now


def question_deadline(attempt: Attempt) -> Optional[datetime]:
    policy = policy_of(attempt)
    if not policy.has_question_deadline or attempt.question_opened_at is None:
        return None
    return ensure_utc(attempt.question_opened_at) + timedelta(seconds=policy.question_time_limit_sec)


def is_question_overdue(attempt: Attempt, now: datetime) -> bool:
    deadline = question_deadline(attempt)
    return deadline is not None and now > deadline


def _seconds_until(deadline: datetime, now: datetime) -> int:
    return max(0, math.floor((deadline - now).total_seconds()))


def time_left_sec(attempt: Attempt, now: datetime) -> Optional[int]:
    """Whole-attempt seconds remaining; ``None`` when the policy sets no limit."""
    deadline = attempt_deadline(attempt)
    if deadline is None:
        return None
    if is_terminal(attempt):
        return 0
    return _seconds_until(deadline, now)


def question_time_left_sec(attempt: Attempt, now: datetime) -> Optional[int]:
    policy = policy_of(attempt)
    if not policy.has_question_deadline:
        return None
    if is_terminal(attempt) or attempt.cursor >= attempt.total:
        return 0
    deadline = question_deadline(attempt)
    if deadline is None:
        # Not served yet: the full limit applies once it is
        return policy.question_time_limit_sec
    return _seconds_until(deadline, now)


# Guards

def require_active(attempt: Attempt) -> None:
    if is_terminal(attempt):
        raise InvalidState(f"Attempt is already {AttemptStatusEnum(attempt.status).value}.")


def require_version(attempt: Attempt, version: int) -> None:
    if attempt.version != version:
        logger.warning(f"Stale version {version} for attempt {attempt.id}, current is {attempt.version}")
        raise VersionConflict(
            details={"current_version": attempt.version, "supplied_version": version}
        )


def require_transition(attempt: Attempt, target: AttemptStatusEnum) -> None:
    if not can_transition(attempt.status, target):
        raise InvalidState(
            f"Cannot move an attempt from {AttemptStatusEnum(attempt.status).value} to {target.value}."
        )


# Changes applied through a version-checked write

def expire_changes(attempt: Attempt, now: datetime) -> Dict[str, Any]:
    require_transition(attempt, AttemptStatusEnum.EXPIRED)
    passed = [d for d in (attempt_deadline(attempt), question_deadline(attempt)) if d is not None and d <= now]
    return {
        "status": AttemptStatusEnum.EXPIRED,
        "expired_at": min(passed) if passed else now,
        "question_opened_at": None,
    }


def advance_changes(attempt: Attempt) -> Dict[str, Any]:
    return {"cursor": attempt.cursor + 1, "question_opened_at": None}


def finish_changes(attempt: Attempt, now: datetime, score: Optional[float], pending_score: int) -> Dict[str, Any]:
    require_transition(attempt, AttemptStatusEnum.SUBMITTED)
    return {
        "status": AttemptStatusEnum.SUBMITTED,
        "submitted_at": now,
        "question_opened_at": None,
        "score": score if score is not None else 0.0,
        "pending_score": pending_score,
    }


def cancel_changes(attempt: Attempt, now: datetime) -> Dict[str, Any]:
    require_transition(attempt, AttemptStatusEnum.CANCELLED)
    return {
        "status": AttemptStatusEnum.CANCELLED,
        "cancelled_at": now,
        "question_opened_at": None,
    }


def duration_sec(attempt: Attempt) -> int:
    end = attempt.submitted_at or attempt.expired_at or attempt.cancelled_at
    if end is None:
        return 0
    return max(0, int((ensure_utc(end) - ensure_utc(attempt.start_time)).total_seconds()))
