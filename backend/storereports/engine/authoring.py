"""
In-memory template editing prior to save.

Draft list position is authoritative: `to_rows()` assigns order_index from the
final position, whatever order_index the questions were loaded with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from storereports.core.errors import AuthoringError
from storereports.engine.questions import QUESTION_TYPES, TemplateSnapshot, sorted_questions

DEFAULT_OPTION = "Option 1"


@dataclass
class QuestionDraft:
    text: str = ""
    type: str = "text"
    required: bool = True
    options: List[str] = field(default_factory=list)
    id: Optional[str] = None  # set when the draft was loaded from a stored question


@dataclass
class TemplateDraft:
    title: str = ""
    description: str = ""
    questions: List[QuestionDraft] = field(default_factory=lambda: [QuestionDraft()])

    @classmethod
    def from_template(cls, template: TemplateSnapshot) -> "TemplateDraft":
        return cls(
            title=template.title,
            description=template.description,
            questions=[
                QuestionDraft(text=q.text, type=q.type, required=q.required, options=list(q.options), id=q.id)
                for q in sorted_questions(template)
            ],
        )

    def _question(self, index: int) -> QuestionDraft:
        if not 0 <= index < len(self.questions):
            raise AuthoringError(f"There is no question {index + 1}.", code="UNKNOWN_QUESTION")
        return self.questions[index]

    def add_question(self) -> QuestionDraft:
        draft = QuestionDraft()
        self.questions.append(draft)
        return draft

    def remove_question(self, index: int) -> None:
        self._question(index)
        if len(self.questions) == 1:
            raise AuthoringError("You need at least one question", code="LAST_QUESTION")
        del self.questions[index]

    def move_question(self, source: int, target: int) -> None:
        draft = self._question(source)
        self._question(target)
        del self.questions[source]
        self.questions.insert(target, draft)

    def update_question(self, index: int, text: Optional[str] = None, required: Optional[bool] = None) -> None:
        draft = self._question(index)
        if text is not None:
            draft.text = text
        if required is not None:
            draft.required = required

    def change_type(self, index: int, new_type: str) -> None:
        if new_type not in QUESTION_TYPES:
            raise AuthoringError(f"Unknown question type '{new_type}'.", code="UNKNOWN_TYPE")
        draft = self._question(index)
        draft.type = new_type
        if new_type != "choice":
            draft.options = []
        elif not draft.options:
            draft.options = [DEFAULT_OPTION]  # immediately valid

    def add_option(self, index: int) -> str:
        draft = self._question(index)
        if draft.type != "choice":
            raise AuthoringError(f"Question {index + 1} is not a choice question.", code="NOT_CHOICE")
        option = f"Option {len(draft.options) + 1}"
        draft.options.append(option)
        return option

    def set_option(self, index: int, option_index: int, value: str) -> None:
        draft = self._question(index)
        if not 0 <= option_index < len(draft.options):
            raise AuthoringError(f"Question {index + 1} has no option {option_index + 1}.", code="UNKNOWN_OPTION")
        draft.options[option_index] = value

    def remove_option(self, index: int, option_index: int) -> None:
        draft = self._question(index)
        if not 0 <= option_index < len(draft.options):
            raise AuthoringError(f"Question {index + 1} has no option {option_index + 1}.", code="UNKNOWN_OPTION")
        if draft.type == "choice" and len(draft.options) == 1:
            raise AuthoringError("You need at least one option for choice questions", code="LAST_OPTION")
        del draft.options[option_index]

    def first_violation(self) -> Optional[AuthoringError]:
        if not self.title.strip():
            return AuthoringError("Please enter a template title", code="MISSING_TITLE")
        if not self.description.strip():
            return AuthoringError("Please enter a template description", code="MISSING_DESCRIPTION")
        if not self.questions:
            return AuthoringError("You need at least one question", code="NO_QUESTIONS")
        for i, q in enumerate(self.questions):
            if not q.text.strip():
                return AuthoringError(f"Question {i + 1} cannot be empty", code="EMPTY_QUESTION", details={"index": i})
            if q.type not in QUESTION_TYPES:
                return AuthoringError(f"Question {i + 1} has unknown type '{q.type}'", code="UNKNOWN_TYPE", details={"index": i})
            if q.type == "choice" and not any(o.strip() for o in q.options):
                return AuthoringError(f"Question {i + 1} needs at least one option", code="MISSING_OPTIONS", details={"index": i})
        return None

    def validate_for_save(self) -> None:
        """Raise the first structural defect found, if any."""
        violation = self.first_violation()
        if violation is not None:
            raise violation

    def to_rows(self) -> List[Dict[str, Any]]:
        rows = []
        for position, q in enumerate(self.questions):
            rows.append(
                {
                    "id": q.id,
                    "text": q.text.strip(),
                    "type": q.type,
                    "required": q.required,
                    # blank options are dropped; non-choice questions carry none
                    "options": [o.strip() for o in q.options if o.strip()] if q.type == "choice" else None,
                    "order_index": position,
                }
            )
        return rows
