from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storereports.api.dependencies import current_user_id, get_db
from storereports.api.schemas import AssignRequest, StoreIn, StoreUpdate
from storereports.core.errors import build_meta
from storereports.services import stores as directory
from storereports.services.reports import report_to_dict

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("")
def list_stores(db: Session = Depends(get_db)):
    return {"stores": [directory.store_to_dict(s) for s in directory.list_stores(db)], "meta": build_meta()}


@router.post("", status_code=201)
def create_store(body: StoreIn, db: Session = Depends(get_db), user_id: Optional[str] = Depends(current_user_id)):
    store = directory.create_store(db, body.model_dump(), user_id)
    return {"store": directory.store_to_dict(store), "meta": build_meta()}


@router.get("/{store_id}")
def get_store(store_id: str, db: Session = Depends(get_db)):
    return {"store": directory.store_to_dict(directory.get_store(db, store_id)), "meta": build_meta()}


@router.put("/{store_id}")
def update_store(
    store_id: str,
    body: StoreUpdate,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(current_user_id),
):
    store = directory.update_store(db, store_id, body.model_dump(), user_id)
    return {"store": directory.store_to_dict(store), "meta": build_meta()}


@router.delete("/{store_id}", status_code=204)
def delete_store(store_id: str, db: Session = Depends(get_db)):
    directory.delete_store(db, store_id)


@router.post("/{store_id}/assign")
def assign_template(
    store_id: str,
    body: AssignRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(current_user_id),
):
    report = directory.assign_template(db, store_id, body.template_id, user_id)
    return {"report": report_to_dict(report), "meta": build_meta()}
