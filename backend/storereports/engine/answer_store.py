from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Optional


class AnswerStore:
    """
    Current value per question id for one editing session.

    Accepts any value for any id; whether a value satisfies its question is the
    validator's call, not the store's.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})
        self.dirty = False

    @classmethod
    def from_answers(cls, answers: Iterable[Any]) -> "AnswerStore":
        """Pre-populate from persisted answers (objects or dicts with question_id/value)."""
        values: Dict[str, Any] = {}
        for a in answers:
            if isinstance(a, dict):
                qid, value = a["question_id"], a.get("value")
            else:
                qid, value = a.question_id, a.value
            values[str(qid)] = copy.deepcopy(value)
        return cls(values)

    def get(self, question_id: str) -> Any:
        return self._values.get(question_id)

    def set(self, question_id: str, value: Any) -> None:
        self._values[question_id] = value
        self.dirty = True

    def clear(self, question_id: str) -> None:
        if question_id in self._values:
            del self._values[question_id]
            self.dirty = True

    def to_answer_list(self) -> List[Dict[str, Any]]:
        return [
            {"question_id": qid, "value": copy.deepcopy(value)}
            for qid, value in self._values.items()
            if value is not None and value != ""
        ]

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._values)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._values

    def __len__(self) -> int:
        return len(self._values)
