"""
Per-question presence rules and the submit gate.

"Present" depends on the question type:
  text    non-blank string
  number  finite numeric value (numeric strings are parsed)
  date    ISO calendar date YYYY-MM-DD
  choice  exactly one of the question's options
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import math
import re
from typing import Any, List, Optional

from storereports.engine.answer_store import AnswerStore
from storereports.engine.questions import QuestionSnapshot, TemplateSnapshot, sorted_questions

ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True)
class SubmitCheck:
    ok: bool
    missing_question_ids: List[str] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return not self.ok


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):  # bool is an int subclass; never a numeric answer
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str) and value.strip():
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):  # ints beyond float range included
        return None
    return number if math.isfinite(number) else None


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not ISO_DATE.fullmatch(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:  # 2025-02-30 and friends
        return None


def is_present(question: QuestionSnapshot, value: Any) -> bool:
    if value is None:
        return False
    if question.type == "number":
        return _parse_number(value) is not None
    if question.type == "date":
        return _parse_date(value) is not None
    if question.type == "choice":
        return isinstance(value, str) and value in question.options
    return isinstance(value, str) and bool(value.strip())


def can_advance(question: QuestionSnapshot, answers: AnswerStore) -> bool:
    if not question.required:
        return True
    return is_present(question, answers.get(question.id))


def can_submit(template: TemplateSnapshot, answers: AnswerStore) -> SubmitCheck:
    missing = [
        q.id
        for q in sorted_questions(template)
        if q.required and not is_present(q, answers.get(q.id))
    ]
    return SubmitCheck(ok=not missing, missing_question_ids=missing)


def coerce_answer(question: QuestionSnapshot, raw: Any) -> Any:
    """
    Turn a raw client value into what the answer store holds.

    Returns None when the input amounts to "no answer": blank strings, numbers
    that do not parse to a finite value (never NaN), and anything else that
    does not fit the question type (an unknown option, a malformed date, a
    non-string text answer).
    """
    if raw is None:
        return None
    if question.type == "number":
        number = _parse_number(raw)
        if number is None:
            return None
        if isinstance(raw, int):
            return raw
        return int(number) if number.is_integer() and not isinstance(raw, float) else number
    if isinstance(raw, str):
        raw = raw.strip()
    elif question.type == "date" and isinstance(raw, date):
        raw = raw.isoformat()
    return raw if is_present(question, raw) else None
