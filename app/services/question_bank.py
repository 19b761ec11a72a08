import random
from typing import Dict, List, Optional, Sequence

from app.core.exceptions import NotFound
from app.schemas.policy import AttemptPolicy
from app.schemas.question import QuestionSnapshot, QuestionView


def _rng(*parts: str) -> random.Random:
    # String seeds hash through sha512, so the order survives restarts and PYTHONHASHSEED
    return random.Random(":".join(parts))


def build_question_order(attempt_id: str, questions: Sequence[QuestionSnapshot],
                         policy: AttemptPolicy) -> List[str]:
    """Fix an attempt's question order once, at creation.

    With ``shuffle_questions`` the bank is shuffled and then the first
    ``max_questions`` are taken. Without it a seeded sample is drawn and kept
    in authored order. Both are a pure function of the attempt id.
    """
    ids = [q.id for q in questions]
    limit = policy.max_questions if 0 < policy.max_questions < len(ids) else len(ids)
    rng = _rng("order", attempt_id)

    if policy.shuffle_questions:
        rng.shuffle(ids)
        return ids[:limit]

    if limit == len(ids):
        return ids
    picked = set(rng.sample(range(len(ids)), limit))
    return [qid for i, qid in enumerate(ids) if i in picked]


def option_permutation(attempt_id: str, question: QuestionSnapshot, shuffle: bool) -> List[int]:
    """Authored option indices in served order: ``served[i] == authored[perm[i]]``."""
    perm = list(range(len(question.options)))
    if shuffle and len(perm) > 1:
        _rng("options", attempt_id, question.id).shuffle(perm)
    return perm


class QuestionBank:
    """Read-only accessor over an assignment's frozen question snapshot."""

    def __init__(self, questions: Sequence[dict]):
        self._questions: Dict[str, QuestionSnapshot] = {}
        for raw in questions:
            question = QuestionSnapshot.model_validate(raw)
            self._questions[question.id] = question

    def __len__(self) -> int:
        return len(self._questions)

    def all(self) -> List[QuestionSnapshot]:
        return list(self._questions.values())

    def get(self, question_id: str) -> QuestionSnapshot:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFound(f"Question {question_id} is not part of this assignment.")
        return question

    def question_at(self, order: Sequence[str], cursor: int) -> Optional[QuestionSnapshot]:
        if cursor < 0 or cursor >= len(order):
            return None
        return self.get(order[cursor])

    def max_score(self, order: Sequence[str]) -> float:
        return sum(self.get(qid).weight for qid in order)

    def served_view(self, attempt_id: str, question: QuestionSnapshot, policy: AttemptPolicy) -> QuestionView:
        perm = option_permutation(attempt_id, question, policy.shuffle_answers)
        return QuestionView(
            id=question.id,
            type=question.type,
            text=question.text,
            image_url=question.image_url,
            weight=question.weight,
            options=[question.options[i] for i in perm],
        )
