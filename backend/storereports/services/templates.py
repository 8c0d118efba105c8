"""Template directory over SQLAlchemy."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from storereports.core.errors import AuthorizationError, InUseError, NotFound, StorageError
from storereports.db.models import Question, QuestionType, Report, ReportAnswer, Template, to_uuid
from storereports.engine.authoring import QuestionDraft, TemplateDraft
from storereports.engine.questions import QuestionSnapshot, TemplateSnapshot
from storereports.engine.validator import is_present

logger = logging.getLogger(__name__)


def get_template(db: Session, template_id) -> Template:
    template = db.execute(
        select(Template)
        .options(selectinload(Template.questions))
        .where(Template.id == to_uuid(template_id, "template"))
    ).scalar_one_or_none()
    if template is None:
        raise NotFound(f"Template '{template_id}' not found.", code="UNKNOWN_TEMPLATE")
    return template


def load_snapshot(db: Session, template_id) -> TemplateSnapshot:
    return TemplateSnapshot.from_row(get_template(db, template_id))


def list_templates(db: Session) -> List[Dict[str, Any]]:
    counts = (
        select(Question.template_id, func.count(Question.id).label("n"))
        .group_by(Question.template_id)
        .subquery()
    )
    rows = db.execute(
        select(Template, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.template_id == Template.id)
        .order_by(Template.created_at.desc())
    ).all()
    return [template_summary(t, n) for t, n in rows]


def _question_rows(template: Template, draft: TemplateDraft) -> Tuple[List, List[Question]]:
    """
    Sync template.questions with the draft, keeping ids of surviving questions.

    Returns the ids of removed questions and the surviving questions whose
    type or options changed.
    """
    by_id = {str(q.id): q for q in template.questions}
    keep = []
    reshaped = []
    for row in draft.to_rows():
        question = by_id.pop(row["id"], None) if row["id"] else None
        if question is None:
            question = Question()
        elif question.type.value != row["type"] or (question.options or None) != row["options"]:
            reshaped.append(question)
        question.text = row["text"]
        question.type = QuestionType(row["type"])
        question.required = row["required"]
        question.options = row["options"]
        question.order_index = row["order_index"]
        keep.append(question)

    removed = [q.id for q in by_id.values()]
    template.questions = keep
    return removed, reshaped


def _drop_unfit_answers(db: Session, questions: List[Question]) -> int:
    """Delete stored answers that no longer fit their (edited) question."""
    snapshots = {q.id: QuestionSnapshot.from_row(q) for q in questions}
    stale = db.execute(select(ReportAnswer).where(ReportAnswer.question_id.in_(list(snapshots)))).scalars().all()
    dropped = 0
    for answer in stale:
        if not is_present(snapshots[answer.question_id], answer.value):
            db.delete(answer)
            dropped += 1
    return dropped


def create_template(db: Session, draft: TemplateDraft, user_id: Optional[str]) -> Template:
    if not user_id:
        raise AuthorizationError("You must be logged in to create a template")
    draft.validate_for_save()

    template = Template(title=draft.title.strip(), description=draft.description.strip(), user_id=user_id)
    # new templates never reuse ids from the client
    for q in draft.questions:
        q.id = None
    _question_rows(template, draft)
    try:
        db.add(template)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("creating template %r failed", draft.title)
        raise StorageError("Could not save the template.") from e
    logger.info("template %s created with %d questions", template.id, len(draft.questions))
    return get_template(db, template.id)


def update_template(db: Session, template_id, draft: TemplateDraft, user_id: Optional[str]) -> Template:
    if not user_id:
        raise AuthorizationError("You must be logged in to edit a template")
    draft.validate_for_save()
    template = get_template(db, template_id)

    try:
        template.title = draft.title.strip()
        template.description = draft.description.strip()
        removed, reshaped = _question_rows(template, draft)
        if removed:
            # answers to a deleted question have nothing left to reference
            db.execute(delete(ReportAnswer).where(ReportAnswer.question_id.in_(removed)))
        if reshaped:
            dropped = _drop_unfit_answers(db, reshaped)
            if dropped:
                logger.info("template %s: %d answers no longer fit their edited question", template.id, dropped)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("updating template %s failed", template_id)
        raise StorageError("Could not save the template.") from e
    logger.info("template %s updated", template.id)
    db.expire_all()
    return get_template(db, template.id)


def delete_template(db: Session, template_id) -> None:
    template = get_template(db, template_id)
    in_use = db.execute(select(func.count(Report.id)).where(Report.template_id == template.id)).scalar_one()
    if in_use:
        raise InUseError(
            f"Template '{template.title}' is used by {in_use} report(s) and cannot be deleted.",
            details={"report_count": in_use},
        )
    try:
        db.delete(template)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Could not delete the template.") from e
    logger.info("template %s deleted", template_id)


def draft_from_payload(payload: Dict[str, Any]) -> TemplateDraft:
    return TemplateDraft(
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        questions=[
            QuestionDraft(
                text=q.get("text") or "",
                type=q.get("type") or "text",
                required=bool(q.get("required", True)),
                options=list(q.get("options") or []),
                id=q.get("id"),
            )
            for q in payload.get("questions") or []
        ],
    )


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "id": str(q.id),
        "text": q.text,
        "type": q.type.value if hasattr(q.type, "value") else str(q.type),
        "required": q.required,
        "options": q.options,
        "order_index": q.order_index,
    }


def template_summary(t: Template, question_count: int) -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "title": t.title,
        "description": t.description,
        "user_id": t.user_id,
        "question_count": question_count,
        "created_at": t.created_at,
        "updated_at": t.updated_at,
    }


def template_to_dict(t: Template) -> Dict[str, Any]:
    payload = template_summary(t, len(t.questions))
    # stable sort: equal order_index values keep load order
    payload["questions"] = [question_to_dict(q) for q in sorted(t.questions, key=lambda q: q.order_index)]
    return payload
