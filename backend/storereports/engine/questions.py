"""
Read-only template snapshots handed to a report session.

A session reads its template once at start; the snapshot is immutable so a
later admin edit of the stored template cannot leak into a running session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

QUESTION_TYPES = ("text", "number", "choice", "date")


@dataclass(frozen=True)
class QuestionSnapshot:
    id: str
    text: str
    type: str = "text"
    required: bool = True
    options: Tuple[str, ...] = ()
    order_index: int = 0

    @classmethod
    def from_row(cls, row) -> "QuestionSnapshot":
        qtype = row.type.value if hasattr(row.type, "value") else str(row.type)
        return cls(
            id=str(row.id),
            text=row.text,
            type=qtype,
            required=bool(row.required),
            options=tuple(row.options or ()) if qtype == "choice" else (),
            order_index=row.order_index or 0,
        )


@dataclass(frozen=True)
class TemplateSnapshot:
    id: str
    title: str
    description: str = ""
    questions: Tuple[QuestionSnapshot, ...] = field(default_factory=tuple)

    @classmethod
    def from_row(cls, row) -> "TemplateSnapshot":
        return cls(
            id=str(row.id),
            title=row.title,
            description=row.description or "",
            questions=tuple(QuestionSnapshot.from_row(q) for q in row.questions),
        )

    def question(self, question_id: str) -> Optional[QuestionSnapshot]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    @property
    def question_ids(self) -> set:
        return {q.id for q in self.questions}


def sorted_questions(template: TemplateSnapshot) -> List[QuestionSnapshot]:
    # sorted() is stable, so equal order_index values keep their load order
    return sorted(template.questions, key=lambda q: q.order_index)


def required_questions(template: TemplateSnapshot) -> List[QuestionSnapshot]:
    return [q for q in sorted_questions(template) if q.required]
