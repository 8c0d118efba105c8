"""
The submission transaction: persist one report and replace its full answer set.

Both paths run in a single database transaction on the caller's Session, so
a failure after the report row was written (create) or after the old answers
were deleted (update) rolls everything back instead of leaving a report with
a partial answer set.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storereports.core.errors import AuthorizationError, NotFound, StorageError
from storereports.db.models import Report, ReportAnswer, to_uuid
from storereports.engine.questions import TemplateSnapshot
from storereports.engine.validator import is_present

logger = logging.getLogger(__name__)


def utc_now():
    return datetime.now(timezone.utc)


def _answers_for_template(template: TemplateSnapshot, answers: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    kept = []
    for a in answers:
        question = template.question(a["question_id"])
        if question is None:
            logger.warning(
                "dropping answer for question %s: not part of template %s", a["question_id"], template.id
            )
            continue
        # e.g. a preloaded answer that no longer fits an edited question
        if not is_present(question, a["value"]):
            logger.warning("dropping answer for question %s: value does not fit type %s", question.id, question.type)
            continue
        kept.append(a)
    return kept


def persist_report(
    db: Session,
    template: TemplateSnapshot,
    store_id: str,
    user_id: Optional[str],
    answers: Iterable[Dict[str, Any]],
    report_id: Optional[str] = None,
) -> Report:
    """
    Create (report_id None) or update a report with exactly `answers`.

    Raises AuthorizationError without an acting user, NotFound when the report
    to update is gone, StorageError when the database rejects the write.
    """
    if not user_id:
        raise AuthorizationError("An acting user is required to submit a report.")

    rows = _answers_for_template(template, answers)
    submitted_at = utc_now()

    existing: Optional[Report] = None
    if report_id is not None:
        existing = db.get(Report, to_uuid(report_id, "report"))
        if existing is None:
            raise NotFound(f"Report '{report_id}' not found.", code="UNKNOWN_REPORT")

    try:
        if existing is None:
            report = Report(
                template_id=to_uuid(template.id, "template"),
                store_id=to_uuid(store_id, "store"),
                user_id=user_id,
                completed=True,
                submitted_at=submitted_at,
            )
            db.add(report)
            db.flush()  # assigns report.id without committing
        else:
            report = existing
            report.template_id = to_uuid(template.id, "template")
            report.user_id = user_id
            report.completed = True
            report.submitted_at = submitted_at
            # full replacement: answers cleared in the session must not survive
            db.execute(delete(ReportAnswer).where(ReportAnswer.report_id == report.id))

        db.add_all(
            ReportAnswer(report_id=report.id, question_id=to_uuid(a["question_id"], "question"), value=a["value"])
            for a in rows
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("report submission failed for store %s", store_id)
        raise StorageError("Could not save the report. Your answers are kept; please retry.") from e

    db.refresh(report)
    logger.info(
        "report %s %s with %d answers", report.id, "updated" if existing is not None else "created", len(rows)
    )
    return report
