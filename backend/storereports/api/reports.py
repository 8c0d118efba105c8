from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storereports.api.dependencies import get_db
from storereports.core.errors import build_meta
from storereports.services import reports as report_store

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("")
def list_reports(
    store_id: Optional[str] = None,
    template_id: Optional[str] = None,
    completed: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    reports = report_store.list_reports(db, store_id=store_id, template_id=template_id, completed=completed)
    return {"reports": [report_store.report_to_dict(r, include_answers=False) for r in reports], "meta": build_meta()}


@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db)):
    return {"report": report_store.report_to_dict(report_store.get_report(db, report_id)), "meta": build_meta()}


@router.delete("/{report_id}", status_code=204)
def delete_report(report_id: str, db: Session = Depends(get_db)):
    report_store.delete_report(db, report_id)
