from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storereports.api.dependencies import get_db
from storereports.api.schemas import SummaryRequest
from storereports.core.errors import build_meta
from storereports.services import reports as report_store
from storereports.services import stores as store_directory
from storereports.services.summary import SummaryClient, build_context

router = APIRouter(tags=["summary"])


def get_summary_client() -> SummaryClient:
    return SummaryClient()


@router.post("/summary")
def generate_summary(
    body: SummaryRequest,
    db: Session = Depends(get_db),
    client: SummaryClient = Depends(get_summary_client),
):
    stores = store_directory.list_stores(db)
    reports = report_store.list_reports(db, with_answers=True)
    if body.store_ids is not None:
        wanted = set(body.store_ids)
        stores = [s for s in stores if str(s.id) in wanted]
        reports = [r for r in reports if str(r.store_id) in wanted]

    context = build_context(stores, reports)
    message = client.generate(context, [m.model_dump() for m in body.messages], mode=body.mode)
    return {"message": message, "analytics": context["analytics"], "meta": build_meta()}
