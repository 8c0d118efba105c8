"""
Navigation state machine for a report session.

    Guided(i) --next--> Guided(i+1) ... Guided(last) --next--> Review
    Guided(i) --previous--> Guided(i-1)
    Review --back_to_guided--> Guided(last)
    Guided/Review --jump_to(j), j < current--> Guided(j)
    Guided --return_to_review--> Review      (only once Review was reached)
    Review --begin_submit--> Submitting --finish_submit--> Review

The final `next` always lands in Review; submission is a separate, explicit
step from Review. A jump back keeps forward progress: return_to_review skips
the questions in between, gated on every required answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from storereports.core.errors import NavigationError, ValidationFailed
from storereports.engine.answer_store import AnswerStore
from storereports.engine.questions import QuestionSnapshot
from storereports.engine.validator import can_advance


@dataclass(frozen=True)
class Guided:
    index: int
    name = "guided"


@dataclass(frozen=True)
class Review:
    name = "review"


@dataclass(frozen=True)
class Submitting:
    resume: Union[Guided, Review]
    name = "submitting"


NavState = Union[Guided, Review, Submitting]


class Navigator:
    def __init__(self, questions: Sequence[QuestionSnapshot], answers: AnswerStore) -> None:
        self.questions = list(questions)  # already sorted by order_index
        self.answers = answers
        # an empty template has nothing to guide through
        self.state: NavState = Guided(0) if self.questions else Review()
        self.reviewed = not self.questions  # Review reached at least once

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def is_submitting(self) -> bool:
        return isinstance(self.state, Submitting)

    @property
    def current_index(self) -> int:
        state = self.state.resume if isinstance(self.state, Submitting) else self.state
        if isinstance(state, Guided):
            return state.index
        return self.question_count

    def current_question(self):
        if isinstance(self.state, Guided):
            return self.questions[self.state.index]
        return None

    def _require_idle(self) -> None:
        if self.is_submitting:
            raise NavigationError("A submission is in progress for this session.", code="SESSION_SUBMITTING")

    def next(self) -> NavState:
        self._require_idle()
        if not isinstance(self.state, Guided):
            raise NavigationError("'next' is only available in guided mode.")

        question = self.questions[self.state.index]
        if not can_advance(question, self.answers):
            raise ValidationFailed(
                f"Question {self.state.index + 1} is required: {question.text}",
                code="MISSING_ANSWER",
                details={"missing_question_ids": [question.id]},
            )

        if self.state.index == self.question_count - 1:
            self.state = Review()
            self.reviewed = True
        else:
            self.state = Guided(self.state.index + 1)
        return self.state

    def previous(self) -> NavState:
        self._require_idle()
        if not isinstance(self.state, Guided):
            raise NavigationError("'previous' is only available in guided mode; use back_to_guided from review.")
        if self.state.index > 0:
            self.state = Guided(self.state.index - 1)
        return self.state  # no-op on the first question

    def back_to_guided(self) -> NavState:
        self._require_idle()
        if not isinstance(self.state, Review):
            raise NavigationError("'back_to_guided' is only available in review mode.")
        if not self.questions:
            raise NavigationError("This template has no questions to step through.", code="NO_QUESTIONS")
        self.state = Guided(self.question_count - 1)
        return self.state

    def jump_to(self, index: int) -> NavState:
        self._require_idle()
        if not 0 <= index < self.current_index:
            raise NavigationError(
                f"Can only jump back to an earlier question (0 <= index < {self.current_index}), got {index}.",
                code="ILLEGAL_JUMP",
            )
        self.state = Guided(index)
        return self.state

    def return_to_review(self) -> NavState:
        """
        Go back to Review after a jump or back_to_guided, once Review was reached.

        Every required question still has to be answered; the first one that is
        not keeps the session where it is.
        """
        self._require_idle()
        if not isinstance(self.state, Guided):
            raise NavigationError("'return_to_review' is only available in guided mode.")
        if not self.reviewed:
            raise NavigationError("Review has not been reached yet; use next.", code="NOT_REVIEWED")
        missing = [q.id for q in self.questions if not can_advance(q, self.answers)]
        if missing:
            raise ValidationFailed(
                "Please answer all required questions before returning to review.",
                code="MISSING_ANSWER",
                details={"missing_question_ids": missing},
            )
        self.state = Review()
        return self.state

    def begin_submit(self) -> NavState:
        self._require_idle()
        if not isinstance(self.state, Review):
            raise NavigationError("Submit is only available from review mode.", code="NOT_IN_REVIEW")
        self.state = Submitting(resume=self.state)
        return self.state

    def finish_submit(self) -> NavState:
        if not isinstance(self.state, Submitting):
            raise NavigationError("No submission in progress.")
        self.state = self.state.resume
        return self.state
