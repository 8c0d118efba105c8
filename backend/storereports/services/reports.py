"""Report store reads; writes go through services.submission."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from storereports.core.errors import NotFound, StorageError
from storereports.db.models import Report, ReportAnswer, to_uuid

logger = logging.getLogger(__name__)


def get_report(db: Session, report_id) -> Report:
    report = db.execute(
        select(Report)
        .options(
            selectinload(Report.answers).selectinload(ReportAnswer.question),
            selectinload(Report.store),
            selectinload(Report.template),
        )
        .where(Report.id == to_uuid(report_id, "report"))
    ).scalar_one_or_none()
    if report is None:
        raise NotFound(f"Report '{report_id}' not found.", code="UNKNOWN_REPORT")
    return report


def list_reports(
    db: Session,
    store_id: Optional[str] = None,
    template_id: Optional[str] = None,
    completed: Optional[bool] = None,
    with_answers: bool = False,
) -> List[Report]:
    stmt = select(Report).options(selectinload(Report.store), selectinload(Report.template))
    if with_answers:
        stmt = stmt.options(selectinload(Report.answers).selectinload(ReportAnswer.question))
    if store_id is not None:
        stmt = stmt.where(Report.store_id == to_uuid(store_id, "store"))
    if template_id is not None:
        stmt = stmt.where(Report.template_id == to_uuid(template_id, "template"))
    if completed is not None:
        stmt = stmt.where(Report.completed == completed)
    return list(db.execute(stmt.order_by(Report.created_at.desc())).scalars())


def delete_report(db: Session, report_id) -> None:
    report = get_report(db, report_id)
    try:
        db.delete(report)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Could not delete the report.") from e
    logger.info("report %s deleted", report_id)


def answer_to_dict(a: ReportAnswer) -> Dict[str, Any]:
    payload = {"question_id": str(a.question_id), "value": a.value}
    if a.question is not None:
        payload["question_text"] = a.question.text
        payload["question_type"] = a.question.type.value
    return payload


def report_to_dict(report: Report, include_answers: bool = True) -> Dict[str, Any]:
    payload = {
        "id": str(report.id),
        "template_id": str(report.template_id),
        "template_title": report.template.title if report.template else None,
        "store_id": str(report.store_id),
        "store_name": report.store.name if report.store else None,
        "user_id": report.user_id,
        "completed": report.completed,
        "submitted_at": report.submitted_at,
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }
    if include_answers:
        payload["answers"] = [answer_to_dict(a) for a in report.answers]
    return payload
