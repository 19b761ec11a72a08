from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from app.core.constants import QuestionTypeEnum
from app.core.exceptions import InvalidPayload
from app.schemas.answer import AnswerPayload, SingleAnswer, MultiAnswer, TextAnswer, CodeAnswer
from app.schemas.policy import AttemptPolicy
from app.schemas.question import QuestionSnapshot
from app.services.question_bank import option_permutation

_payload_adapter = TypeAdapter(AnswerPayload)


@dataclass(frozen=True)
class ScoredAnswer:
    kind: str
    payload: Dict[str, Any]
    is_correct: Optional[bool]
    score: float
    is_pending: bool


def parse_payload(raw: Any) -> AnswerPayload:
    """Turn a client JSON object into a tagged answer variant, dispatching on ``kind``."""
    if not isinstance(raw, dict):
        raise InvalidPayload("Answer payload must be an object.")
    if "kind" not in raw:
        raise InvalidPayload("Answer payload needs a kind: single, multi, text or code.")
    try:
        return _payload_adapter.validate_python(raw)
    except ValidationError as exc:
        raise InvalidPayload(
            "Answer payload does not match any answer kind.",
            details={"validation_errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        )


class AnswerScorer:
    """Validates a payload against its question and scores it.

    Option indices in payloads refer to the order the participant was served;
    they are mapped back to authored indices before scoring and storage.
    """

    def score(self, attempt_id: str, question: QuestionSnapshot, policy: AttemptPolicy,
              payload: AnswerPayload) -> ScoredAnswer:
        if payload.kind != question.type:
            raise InvalidPayload(f"Question expects a '{question.type}' answer, got '{payload.kind}'.")

        if isinstance(payload, SingleAnswer):
            return self._score_single(attempt_id, question, policy, payload)
        if isinstance(payload, MultiAnswer):
            return self._score_multi(attempt_id, question, policy, payload)
        if isinstance(payload, TextAnswer):
            return self._pending_text(policy, payload)
        if isinstance(payload, CodeAnswer):
            return self._pending_code(policy, payload)
        raise InvalidPayload("Unknown answer kind.")

    def _score_single(self, attempt_id, question, policy, payload: SingleAnswer) -> ScoredAnswer:
        count = len(question.options)
        if not 0 <= payload.selected < count:
            raise InvalidPayload(f"selected must be between 0 and {count - 1}.")
        perm = option_permutation(attempt_id, question, policy.shuffle_answers)
        authored = perm[payload.selected]
        is_correct = authored == question.correct_option
        return ScoredAnswer(
            kind=QuestionTypeEnum.SINGLE.value,
            payload={"selected": authored},
            is_correct=is_correct,
            score=question.weight if is_correct else 0.0,
            is_pending=False,
        )

    def _score_multi(self, attempt_id, question, policy, payload: MultiAnswer) -> ScoredAnswer:
        count = len(question.options)
        selected = payload.selected_options
        if any(not 0 <= i < count for i in selected):
            raise InvalidPayload(f"selected_options must be between 0 and {count - 1}.")
        if len(set(selected)) != len(selected):
            raise InvalidPayload("selected_options must not repeat.")
        if not selected and not policy.allow_blank_answers:
            raise InvalidPayload("Select at least one option.")
        perm = option_permutation(attempt_id, question, policy.shuffle_answers)
        authored = sorted(perm[i] for i in selected)
        is_correct = set(authored) == set(question.correct_options)
        return ScoredAnswer(
            kind=QuestionTypeEnum.MULTI.value,
            payload={"selected_options": authored},
            is_correct=is_correct,
            score=question.weight if is_correct else 0.0,
            is_pending=False,
        )

    def _pending_text(self, policy, payload: TextAnswer) -> ScoredAnswer:
        if not payload.text.strip() and not policy.allow_blank_answers:
            raise InvalidPayload("Answer text must not be empty.")
        return ScoredAnswer(
            kind=QuestionTypeEnum.TEXT.value,
            payload={"text": payload.text},
            is_correct=None,
            score=0.0,
            is_pending=True,
        )

    def _pending_code(self, policy, payload: CodeAnswer) -> ScoredAnswer:
        if not payload.code.lang.strip():
            raise InvalidPayload("Code answers need a language.")
        if not payload.code.body.strip() and not policy.allow_blank_answers:
            raise InvalidPayload("Code body must not be empty.")
        return ScoredAnswer(
            kind=QuestionTypeEnum.CODE.value,
            payload={"code": {"lang": payload.code.lang, "body": payload.code.body}},
            is_correct=None,
            score=0.0,
            is_pending=True,
        )


answer_scorer = AnswerScorer()
