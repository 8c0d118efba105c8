"""
A report editing session: one template snapshot, one answer store, one
navigator. Created for a new report or for editing an existing one.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from storereports.core.errors import NavigationError, ValidationFailed
from storereports.engine.answer_store import AnswerStore
from storereports.engine.navigation import Guided, Navigator, Review, Submitting
from storereports.engine.questions import TemplateSnapshot, sorted_questions
from storereports.engine.validator import SubmitCheck, can_submit, coerce_answer

logger = logging.getLogger(__name__)


class ReportSession:
    def __init__(
        self,
        template: TemplateSnapshot,
        store_id: str,
        answers: AnswerStore,
        report_id: Optional[str] = None,
    ) -> None:
        self.template = template
        self.store_id = store_id
        self.report_id = report_id
        self.answers = answers
        self.questions = sorted_questions(template)
        self.navigator = Navigator(self.questions, answers)
        self.completed = False

    # -- constructors ----------------------------------------------------

    @classmethod
    def for_new_report(cls, template: TemplateSnapshot, store_id: str) -> "ReportSession":
        return cls(template, store_id, AnswerStore())

    @classmethod
    def for_existing_report(
        cls,
        template: TemplateSnapshot,
        store_id: str,
        report_id: str,
        answers: Iterable[Any],
    ) -> "ReportSession":
        return cls(template, store_id, AnswerStore.from_answers(answers), report_id=report_id)

    @property
    def mode(self) -> str:
        return "edit" if self.report_id else "create"

    @property
    def state(self):
        return self.navigator.state

    # -- answers ---------------------------------------------------------

    def _require_editable(self) -> None:
        if self.completed:
            raise NavigationError("This session has already been submitted.", code="SESSION_COMPLETED")
        if self.navigator.is_submitting:
            raise NavigationError("A submission is in progress for this session.", code="SESSION_SUBMITTING")

    def set_answer(self, question_id: str, raw: Any) -> Any:
        """Store (or clear, for blank input) the answer to one question."""
        self._require_editable()
        question = self.template.question(question_id)
        if question is None:
            raise ValidationFailed(f"Question '{question_id}' is not part of this template.", code="UNKNOWN_QUESTION")

        current = self.navigator.current_question()
        # guided mode edits the question on screen only
        if current is not None and current.id != question_id:
            raise NavigationError(
                f"Expected to answer '{current.id}', got '{question_id}'.",
                code="FLOW_DIVERGENCE",
            )

        value = coerce_answer(question, raw)
        if value is None:
            self.answers.clear(question_id)
        else:
            self.answers.set(question_id, value)
        return value

    def set_answers(self, values: Dict[str, Any]) -> None:
        """Bulk edit, review mode only."""
        self._require_editable()
        if not isinstance(self.navigator.state, Review):
            raise NavigationError("Bulk answer edits are only available in review mode.", code="NOT_IN_REVIEW")
        unknown = [qid for qid in values if self.template.question(qid) is None]
        if unknown:
            raise ValidationFailed(
                "Some answers reference questions outside this template.",
                code="UNKNOWN_QUESTION",
                details={"question_ids": unknown},
            )
        for qid, raw in values.items():
            self.set_answer(qid, raw)

    # -- navigation ------------------------------------------------------

    def next(self):
        self._require_editable()
        return self.navigator.next()

    def previous(self):
        self._require_editable()
        return self.navigator.previous()

    def back_to_guided(self):
        self._require_editable()
        return self.navigator.back_to_guided()

    def jump_to(self, index: int):
        self._require_editable()
        return self.navigator.jump_to(index)

    def return_to_review(self):
        self._require_editable()
        return self.navigator.return_to_review()

    # -- submission ------------------------------------------------------

    def check(self) -> SubmitCheck:
        return can_submit(self.template, self.answers)

    def missing_questions(self, check: Optional[SubmitCheck] = None) -> List[Dict[str, str]]:
        check = check or self.check()
        return [
            {"question_id": q.id, "text": q.text}
            for q in self.questions
            if q.id in check.missing_question_ids
        ]

    def begin_submit(self) -> List[Dict[str, Any]]:
        """Gate on the validator, enter Submitting, return the answers to persist."""
        self._require_editable()
        check = self.check()
        if check.blocked:
            missing = self.missing_questions(check)
            names = ", ".join(m["text"] for m in missing)
            raise ValidationFailed(
                f"Please answer all required questions before submitting: {names}",
                code="MISSING_REQUIRED_ANSWERS",
                details={"missing": missing, "missing_question_ids": check.missing_question_ids},
            )
        self.navigator.begin_submit()
        return self.answers.to_answer_list()

    def finish_submit(self, report_id: str) -> None:
        self.navigator.finish_submit()
        self.report_id = report_id
        self.completed = True
        self.answers.dirty = False

    def abort_submit(self) -> None:
        """Persistence failed: back to where the submit started, answers untouched."""
        self.navigator.finish_submit()
        logger.warning("submission aborted for store %s; %d answers kept for retry", self.store_id, len(self.answers))

    def submit(self, persist: Callable[["ReportSession", List[Dict[str, Any]]], Any]) -> Any:
        answers = self.begin_submit()
        try:
            report = persist(self, answers)
        except Exception:
            self.abort_submit()
            raise
        self.finish_submit(str(report.id))
        return report

    # -- presentation ----------------------------------------------------

    def describe(self) -> Dict[str, Any]:
        state = self.navigator.state
        payload: Dict[str, Any] = {
            "mode": self.mode,
            "state": state.name,
            "completed": self.completed,
            "template_id": self.template.id,
            "store_id": self.store_id,
            "report_id": self.report_id,
            "question_count": self.navigator.question_count,
            "current_index": self.navigator.current_index,
            "reviewed": self.navigator.reviewed,
            "answers": self.answers.snapshot(),
            "dirty": self.answers.dirty,
        }
        if isinstance(state, Guided):
            q = self.questions[state.index]
            payload["question"] = _question_payload(q, self.answers.get(q.id))
        elif isinstance(state, (Review, Submitting)):
            payload["questions"] = [_question_payload(q, self.answers.get(q.id)) for q in self.questions]
            check = self.check()
            payload["can_submit"] = check.ok
            payload["missing_question_ids"] = check.missing_question_ids
        return payload


def _question_payload(question, value) -> Dict[str, Any]:
    payload = {
        "id": question.id,
        "text": question.text,
        "type": question.type,
        "required": question.required,
        "value": value,
    }
    # only include options for choice questions
    if question.type == "choice":
        payload["options"] = list(question.options)
    return payload
