from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import RevealScoreModeEnum


class AttemptPolicy(BaseModel):
    """Frozen configuration governing timing, ordering and reveal behaviour.

    Attached to an exam, snapshotted onto every assignment and copied onto each
    attempt when it starts. Later edits never reach a running attempt.
    """

    shuffle_questions: bool = False
    shuffle_answers: bool = False
    max_questions: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=0, ge=0)
    question_time_limit_sec: int = Field(default=0, ge=0)
    max_attempt_time_sec: int = Field(default=0, ge=0)
    require_all_answered: bool = False
    allow_blank_answers: bool = False

    # Advisory client hooks, passed through untouched
    lock_answer_on_confirm: bool = False
    disable_copy: bool = False
    disable_browser_back: bool = False
    show_elapsed_time: bool = False
    allow_navigation: bool = False

    reveal_score_mode: RevealScoreModeEnum = RevealScoreModeEnum.AFTER_SUBMIT
    reveal_solutions: bool = False

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    @property
    def has_attempt_deadline(self) -> bool:
        return self.max_attempt_time_sec > 0

    @property
    def has_question_deadline(self) -> bool:
        return self.question_time_limit_sec > 0
