"""
Report engine: template snapshots, answer collection, navigation, validation
and template authoring. Pure Python, no storage or HTTP imports.
"""

from storereports.engine.questions import (
    QuestionSnapshot,
    TemplateSnapshot,
    required_questions,
    sorted_questions,
)
from storereports.engine.answer_store import AnswerStore
from storereports.engine.navigation import Guided, Navigator, Review, Submitting
from storereports.engine.validator import SubmitCheck, can_advance, can_submit, is_present
from storereports.engine.authoring import QuestionDraft, TemplateDraft
from storereports.engine.session import ReportSession

__all__ = [
    "QuestionSnapshot",
    "TemplateSnapshot",
    "required_questions",
    "sorted_questions",
    "AnswerStore",
    "Guided",
    "Review",
    "Submitting",
    "Navigator",
    "SubmitCheck",
    "can_advance",
    "can_submit",
    "is_present",
    "QuestionDraft",
    "TemplateDraft",
    "ReportSession",
]
