from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storereports.api.dependencies import current_user_id, get_db
from storereports.api.schemas import TemplateIn
from storereports.core.errors import build_meta
from storereports.services import templates as directory

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("")
def list_templates(db: Session = Depends(get_db)):
    return {"templates": directory.list_templates(db), "meta": build_meta()}


@router.post("", status_code=201)
def create_template(body: TemplateIn, db: Session = Depends(get_db), user_id: Optional[str] = Depends(current_user_id)):
    draft = directory.draft_from_payload(body.model_dump())
    template = directory.create_template(db, draft, user_id)
    return {"template": directory.template_to_dict(template), "meta": build_meta()}


@router.post("/drafts/validate")
def validate_draft(body: TemplateIn):
    """Pre-save check: reports the first structural defect, if any."""
    draft = directory.draft_from_payload(body.model_dump())
    violation = draft.first_violation()
    if violation is None:
        return {"ok": True, "error": None, "meta": build_meta()}
    return {"ok": False, **violation.to_payload()}


@router.get("/{template_id}")
def get_template(template_id: str, db: Session = Depends(get_db)):
    return {"template": directory.template_to_dict(directory.get_template(db, template_id)), "meta": build_meta()}


@router.put("/{template_id}")
def update_template(
    template_id: str,
    body: TemplateIn,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(current_user_id),
):
    draft = directory.draft_from_payload(body.model_dump())
    template = directory.update_template(db, template_id, draft, user_id)
    return {"template": directory.template_to_dict(template), "meta": build_meta()}


@router.delete("/{template_id}", status_code=204)
def delete_template(template_id: str, db: Session = Depends(get_db)):
    directory.delete_template(db, template_id)
