"""Store directory over SQLAlchemy, including template assignment."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storereports.core.errors import AuthorizationError, NotFound, StorageError
from storereports.db.models import Question, Report, ReportAnswer, Store, to_uuid
from storereports.services.templates import get_template

logger = logging.getLogger(__name__)

STORE_FIELDS = ("name", "location", "manager")


def get_store(db: Session, store_id) -> Store:
    store = db.get(Store, to_uuid(store_id, "store"))
    if store is None:
        raise NotFound(f"Store '{store_id}' not found.", code="UNKNOWN_STORE")
    return store


def list_stores(db: Session) -> List[Store]:
    return list(db.execute(select(Store).order_by(Store.created_at.desc())).scalars())


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s failed", what)
        raise StorageError(f"Could not save: {what}.") from e


def create_store(db: Session, data: Dict[str, Any], user_id: Optional[str]) -> Store:
    if not user_id:
        raise AuthorizationError("You must be logged in to create a store")
    store = Store(user_id=user_id, **{k: (data.get(k) or "").strip() for k in STORE_FIELDS})
    db.add(store)
    _commit(db, "create store")
    logger.info("store %s created", store.id)
    return store


def update_store(db: Session, store_id, data: Dict[str, Any], user_id: Optional[str]) -> Store:
    if not user_id:
        raise AuthorizationError("You must be logged in to edit a store")
    store = get_store(db, store_id)
    for key in STORE_FIELDS:
        if data.get(key) is not None:
            setattr(store, key, data[key].strip())
    _commit(db, "update store")
    return store


def delete_store(db: Session, store_id) -> None:
    store = get_store(db, store_id)
    db.delete(store)
    _commit(db, "delete store")
    logger.info("store %s deleted", store_id)


def latest_report(db: Session, store_id) -> Optional[Report]:
    return db.execute(
        select(Report)
        .where(Report.store_id == to_uuid(store_id, "store"))
        .order_by(Report.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()


def assign_template(db: Session, store_id, template_id, user_id: Optional[str]) -> Report:
    """
    Point a store at a template.

    Creates a pending (incomplete) report when the store has none; otherwise
    repoints its latest report. When the template actually changes, answers to
    questions outside the new template are removed and the report goes back to
    pending.
    """
    if not user_id:
        raise AuthorizationError("You must be logged in to assign a template")
    store = get_store(db, store_id)
    template = get_template(db, template_id)

    report = latest_report(db, store.id)
    if report is None:
        report = Report(template_id=template.id, store_id=store.id, user_id=user_id, completed=False)
        db.add(report)
        logger.info("store %s assigned template %s (pending report)", store.id, template.id)
    elif report.template_id != template.id:
        report.template_id = template.id
        report.completed = False
        keep = select(Question.id).where(Question.template_id == template.id)
        db.execute(
            delete(ReportAnswer)
            .where(ReportAnswer.report_id == report.id)
            .where(ReportAnswer.question_id.not_in(keep))
        )
        logger.info("store %s repointed report %s to template %s", store.id, report.id, template.id)
    _commit(db, "assign template")
    db.refresh(report)
    return report


def store_to_dict(store: Store) -> Dict[str, Any]:
    return {
        "id": str(store.id),
        "name": store.name,
        "location": store.location,
        "manager": store.manager,
        "user_id": store.user_id,
        "created_at": store.created_at,
        "updated_at": store.updated_at,
    }
