# Stateful report sessions: engine (storereports.engine) + registry (services.storage)
# + submission transaction (services.submission)

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storereports.api.dependencies import SESSIONS, current_user_id, get_db, require_user
from storereports.api.schemas import AnswerRequest, BeginRequest, BulkAnswersRequest, JumpRequest
from storereports.core.errors import NavigationError, NotFound, ValidationFailed, build_meta
from storereports.engine.session import ReportSession
from storereports.services import reports as report_store
from storereports.services import stores as store_directory
from storereports.services.submission import persist_report
from storereports.services.templates import load_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ---------- helpers ----------

def _session_payload(session_id: str, session: ReportSession) -> dict:
    return {
        "session_id": session_id,
        "done": session.completed,
        **session.describe(),
        "meta": build_meta(),
    }


def _open_session(db: Session, req: BeginRequest) -> ReportSession:
    """
    Pick the create or edit variant.

    - report_id given: edit that report.
    - otherwise the template is the requested one, or the one assigned to the
      store; a pending report for that store/template is completed in place.
    """
    store = store_directory.get_store(db, req.store_id)

    if req.report_id:
        report = report_store.get_report(db, req.report_id)
        if report.store_id != store.id:
            raise ValidationFailed(
                f"Report '{req.report_id}' does not belong to store '{req.store_id}'.",
                code="STORE_MISMATCH",
            )
        template = load_snapshot(db, report.template_id)
        return ReportSession.for_existing_report(template, str(store.id), str(report.id), report.answers)

    latest = store_directory.latest_report(db, store.id)
    template_id = req.template_id or (str(latest.template_id) if latest else None)
    if template_id is None:
        raise ValidationFailed(
            f"Store '{store.name}' has no assigned template; pass template_id or assign one first.",
            code="NO_TEMPLATE",
        )
    template = load_snapshot(db, template_id)

    if latest is not None and not latest.completed and str(latest.template_id) == template.id:
        return ReportSession.for_existing_report(template, str(store.id), str(latest.id), latest.answers)
    return ReportSession.for_new_report(template, str(store.id))


# ---------- endpoints ----------

@router.post("/begin", status_code=201)
def begin_session(req: BeginRequest, db: Session = Depends(get_db), user_id: Optional[str] = Depends(current_user_id)):
    """
    Load the template (and report, when editing) once, open a session and
    return the first step.
    """
    session = _open_session(db, req)
    record = SESSIONS.create(session, user_id=user_id)
    logger.info("session %s opened (%s) for store %s", record.session_id, session.mode, session.store_id)
    return _session_payload(record.session_id, session)


@router.get("/{session_id}")
def resume_session(session_id: str):
    record = SESSIONS.require(session_id)
    return _session_payload(session_id, record.session)


@router.put("/{session_id}/answers/{question_id}")
def answer_question(session_id: str, question_id: str, req: AnswerRequest):
    with SESSIONS.edit(session_id) as record:
        record.session.set_answer(question_id, req.value)
        return _session_payload(session_id, record.session)


@router.put("/{session_id}/answers")
def answer_in_bulk(session_id: str, req: BulkAnswersRequest):
    with SESSIONS.edit(session_id) as record:
        record.session.set_answers(req.answers)
        return _session_payload(session_id, record.session)


@router.post("/{session_id}/next")
def next_question(session_id: str):
    with SESSIONS.edit(session_id) as record:
        record.session.next()
        return _session_payload(session_id, record.session)


@router.post("/{session_id}/previous")
def previous_question(session_id: str):
    with SESSIONS.edit(session_id) as record:
        record.session.previous()
        return _session_payload(session_id, record.session)


@router.post("/{session_id}/review/back")
def back_to_guided(session_id: str):
    with SESSIONS.edit(session_id) as record:
        record.session.back_to_guided()
        return _session_payload(session_id, record.session)


@router.post("/{session_id}/review/return")
def return_to_review(session_id: str):
    with SESSIONS.edit(session_id) as record:
        record.session.return_to_review()
        return _session_payload(session_id, record.session)


@router.post("/{session_id}/jump")
def jump_to(session_id: str, req: JumpRequest):
    with SESSIONS.edit(session_id) as record:
        record.session.jump_to(req.index)
        return _session_payload(session_id, record.session)


@router.get("/{session_id}/check")
def check_submission(session_id: str):
    session = SESSIONS.require(session_id).session
    check = session.check()
    return {
        "session_id": session_id,
        "ok": check.ok,
        "missing_question_ids": check.missing_question_ids,
        "missing": session.missing_questions(check),
        "meta": build_meta(),
    }


@router.post("/{session_id}/submit")
def submit_session(session_id: str, db: Session = Depends(get_db), user_id: str = Depends(require_user)):
    # entering Submitting under the registry lock makes a concurrent second submit fail fast
    with SESSIONS.edit(session_id) as record:
        session = record.session
        answers = session.begin_submit()

    try:
        report = persist_report(db, session.template, session.store_id, user_id, answers, session.report_id)
    except NotFound:
        # the report being edited was deleted; retrying cannot succeed
        SESSIONS.discard(session_id)
        logger.warning("session %s discarded: submission target no longer exists", session_id)
        raise
    except Exception:
        with SESSIONS.edit(session_id):
            session.abort_submit()
        raise

    with SESSIONS.edit(session_id):
        session.finish_submit(str(report.id))
    SESSIONS.discard(session_id)  # answer store is done once persisted

    return {
        "session_id": session_id,
        "done": True,
        "report": report_store.report_to_dict(report_store.get_report(db, report.id)),
        "meta": build_meta(),
    }


@router.delete("/{session_id}", status_code=204)
def abandon_session(session_id: str):
    with SESSIONS.edit(session_id) as record:
        if record.session.navigator.is_submitting:
            raise NavigationError("A submission is in progress for this session.", code="SESSION_SUBMITTING")
        SESSIONS.discard(session_id)
        logger.info("session %s abandoned", session_id)
