"""Session state mirror.

``SessionState`` is an immutable value; every function here returns a new one
from the current state plus a server response or a clock tick.
"""
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from app.core.constants import AttemptStatusEnum
from app.schemas.attempt import AnswerResponse, AttemptView, NextQuestionResponse
from app.schemas.question import QuestionView


class TimerEvent(str, Enum):
    ATTEMPT_TIMEOUT = "attempt_timeout"
    QUESTION_TIMEOUT = "question_timeout"


class SessionState(BaseModel):
    attempt: Optional[AttemptView] = None
    question: Optional[QuestionView] = None
    attempt_remaining: Optional[int] = None
    question_remaining: Optional[int] = None
    # Set when a timeout call is in flight; cleared by the next server response
    finishing: bool = False
    advancing: bool = False
    last_error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_active(self) -> bool:
        return self.attempt is not None and self.attempt.status == AttemptStatusEnum.ACTIVE.value

    @property
    def is_finished(self) -> bool:
        return self.attempt is not None and not self.is_active

    @property
    def has_running_timer(self) -> bool:
        return self.is_active and (self.attempt_remaining is not None or self.question_remaining is not None)


def initial_state() -> SessionState:
    return SessionState()


def _question_limit(view: AttemptView) -> Optional[int]:
    limit = view.policy.question_time_limit_sec
    return limit if limit > 0 else None


def apply_attempt(state: SessionState, view: AttemptView) -> SessionState:
    """Fold in an attempt view from any server response."""
    if view.status != AttemptStatusEnum.ACTIVE.value:
        return state.model_copy(update={
            "attempt": view,
            "question": None,
            "attempt_remaining": None,
            "question_remaining": None,
            "finishing": False,
            "advancing": False,
        })

    previous = state.attempt
    if previous is None or previous.attempt_id != view.attempt_id:
        question_remaining = view.question_time_left_sec
    elif previous.cursor != view.cursor:
        question_remaining = _question_limit(view)
    else:
        question_remaining = state.question_remaining
    if view.cursor >= view.total:
        question_remaining = None

    return state.model_copy(update={
        "attempt": view,
        "attempt_remaining": view.time_left_sec,
        "question_remaining": question_remaining,
        "finishing": False,
        "advancing": False,
    })


def apply_next_question(state: SessionState, response: NextQuestionResponse, *,
                        keep_error: bool = False) -> SessionState:
    state = apply_attempt(state, response.attempt)
    update = {"question": response.question}
    if not keep_error:
        update["last_error"] = None
    if response.question is not None and state.attempt.question_time_left_sec is not None \
            and state.question_remaining is None:
        update["question_remaining"] = state.attempt.question_time_left_sec
    return state.model_copy(update=update)


def apply_answer(state: SessionState, response: AnswerResponse) -> SessionState:
    state = apply_attempt(state, response.attempt)
    return state.model_copy(update={"question": None, "last_error": None})


def apply_error(state: SessionState, message: str) -> SessionState:
    return state.model_copy(update={"last_error": message})


def release_timeouts(state: SessionState, message: str) -> SessionState:
    """Record a failed timeout call and re-arm both timeouts so a later tick can fire again."""
    return state.model_copy(update={"last_error": message, "finishing": False, "advancing": False})


def tick(state: SessionState) -> Tuple[SessionState, Tuple[TimerEvent, ...]]:
    """Advance both countdowns by one second and report timeouts that should fire."""
    if not state.is_active:
        return state, ()

    events = []
    update = {}

    if state.attempt_remaining is not None:
        remaining = max(0, state.attempt_remaining - 1)
        update["attempt_remaining"] = remaining
        if remaining == 0 and not state.finishing:
            update["finishing"] = True
            events.append(TimerEvent.ATTEMPT_TIMEOUT)

    if state.question_remaining is not None and TimerEvent.ATTEMPT_TIMEOUT not in events:
        remaining = max(0, state.question_remaining - 1)
        update["question_remaining"] = remaining
        if remaining == 0 and not state.advancing:
            update["advancing"] = True
            events.append(TimerEvent.QUESTION_TIMEOUT)

    return state.model_copy(update=update), tuple(events)
