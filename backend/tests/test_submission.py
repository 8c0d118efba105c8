import uuid

import pytest
from sqlalchemy.exc import OperationalError

from storereports.core.errors import AuthorizationError, NavigationError, StorageError, ValidationFailed
from storereports.engine.authoring import QuestionDraft, TemplateDraft
from storereports.engine.navigation import Review
from storereports.engine.questions import TemplateSnapshot
from storereports.engine.session import ReportSession
from storereports.services import reports as report_store
from storereports.services import templates as template_directory
from storereports.services.submission import persist_report

USER = "user-1"


def _persist(db, user_id=USER):
    def persist(session, answers):
        return persist_report(db, session.template, session.store_id, user_id, answers, session.report_id)

    return persist


def _walk_to_review(session):
    while not isinstance(session.state, Review):
        session.next()


def _stored_answers(db, report_id):
    db.expire_all()
    report = report_store.get_report(db, report_id)
    return {str(a.question_id): a.value for a in report.answers}


def test_create_path_persists_only_present_answers(db, daily_sales, store):
    template = TemplateSnapshot.from_row(daily_sales)
    sales, comments = template.questions
    session = ReportSession.for_new_report(template, str(store.id))

    session.set_answer(sales.id, 8750)
    _walk_to_review(session)
    assert session.check().ok

    report = session.submit(_persist(db))

    assert report.completed
    assert report.submitted_at is not None
    assert report.user_id == USER
    assert _stored_answers(db, report.id) == {sales.id: 8750}
    assert session.completed


def test_blocked_submit_names_missing_questions(db, daily_sales, store):
    template = TemplateSnapshot.from_row(daily_sales)
    session = ReportSession.for_new_report(template, str(store.id))
    session.navigator.state = Review()

    with pytest.raises(ValidationFailed) as exc:
        session.submit(_persist(db))

    assert exc.value.details["missing_question_ids"] == [template.questions[0].id]
    assert "Total sales?" in exc.value.message
    assert session.state == Review()
    assert report_store.list_reports(db) == []


def test_update_path_replaces_whole_answer_set(db, service_template, store):
    template = TemplateSnapshot.from_row(service_template)
    q1, q2 = template.questions

    first = ReportSession.for_new_report(template, str(store.id))
    first.set_answer(q1.id, "Good")
    first.next()
    first.set_answer(q2.id, "Excellent")
    first.next()
    report = first.submit(_persist(db))
    assert _stored_answers(db, report.id) == {q1.id: "Good", q2.id: "Excellent"}

    loaded = report_store.get_report(db, report.id)
    edit = ReportSession.for_existing_report(template, str(store.id), str(report.id), loaded.answers)
    assert edit.mode == "edit"
    _walk_to_review(edit)
    edit.set_answer(q2.id, "")  # user clears q2
    edit.submit(_persist(db))

    assert _stored_answers(db, report.id) == {q1.id: "Good"}
    assert len(report_store.list_reports(db)) == 1


def test_round_trip_without_edits_keeps_answers(db, service_template, store):
    template = TemplateSnapshot.from_row(service_template)
    q1, q2 = template.questions
    session = ReportSession.for_new_report(template, str(store.id))
    session.set_answer(q1.id, "Poor")
    session.next()
    session.set_answer(q2.id, "Good")
    session.next()
    report = session.submit(_persist(db))
    before = _stored_answers(db, report.id)

    loaded = report_store.get_report(db, report.id)
    again = ReportSession.for_existing_report(template, str(store.id), str(report.id), loaded.answers)
    _walk_to_review(again)
    again.submit(_persist(db))

    assert _stored_answers(db, report.id) == before
    assert len(report_store.get_report(db, report.id).answers) == 2


def test_answers_outside_template_are_dropped(db, daily_sales, service_template, store):
    template = TemplateSnapshot.from_row(daily_sales)
    foreign = TemplateSnapshot.from_row(service_template).questions[0]
    sales = template.questions[0]

    report = persist_report(
        db,
        template,
        str(store.id),
        USER,
        [{"question_id": sales.id, "value": 10}, {"question_id": foreign.id, "value": "Good"}],
    )
    assert _stored_answers(db, report.id) == {sales.id: 10}


def test_missing_user_is_an_authorization_error(db, daily_sales, store):
    template = TemplateSnapshot.from_row(daily_sales)
    with pytest.raises(AuthorizationError):
        persist_report(db, template, str(store.id), None, [])
    assert report_store.list_reports(db) == []


def test_storage_failure_rolls_back_and_keeps_session_answers(db, service_template, store, monkeypatch):
    template = TemplateSnapshot.from_row(service_template)
    q1, q2 = template.questions
    first = ReportSession.for_new_report(template, str(store.id))
    first.set_answer(q1.id, "Good")
    first.next()
    first.set_answer(q2.id, "Excellent")
    first.next()
    report = first.submit(_persist(db))
    report_id = str(report.id)

    edit = ReportSession.for_existing_report(
        template, str(store.id), report_id, report_store.get_report(db, report_id).answers
    )
    _walk_to_review(edit)
    edit.set_answer(q1.id, "Poor")

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(StorageError):
        edit.submit(_persist(db))
    monkeypatch.undo()

    # nothing half-written: the old answers are still there
    assert _stored_answers(db, report_id) == {q1.id: "Good", q2.id: "Excellent"}
    # and the session can retry with its answers intact
    assert edit.state == Review()
    assert not edit.completed
    assert edit.answers.get(q1.id) == "Poor"

    edit.submit(_persist(db))
    assert _stored_answers(db, report_id) == {q1.id: "Poor", q2.id: "Excellent"}


def test_guided_mode_only_edits_current_question(db, daily_sales, store):
    template = TemplateSnapshot.from_row(daily_sales)
    session = ReportSession.for_new_report(template, str(store.id))
    with pytest.raises(NavigationError) as exc:
        session.set_answer(template.questions[1].id, "later")
    assert exc.value.code == "FLOW_DIVERGENCE"


def test_session_on_empty_template_starts_in_review(store):
    template = TemplateSnapshot(id=str(uuid.uuid4()), title="Empty")
    session = ReportSession.for_new_report(template, str(store.id))
    assert session.state == Review()
    assert session.check().ok


def test_answers_that_do_not_fit_their_type_are_not_persisted(db, store):
    draft = TemplateDraft(
        title="Opening Checks",
        description="Morning routine",
        questions=[
            QuestionDraft(text="Till float ok?", type="choice", required=False, options=["A"]),
            QuestionDraft(text="Last delivery", type="date", required=False),
            QuestionDraft(text="Notes", type="text", required=False),
        ],
    )
    template = TemplateSnapshot.from_row(template_directory.create_template(db, draft, USER))
    choice, delivered, notes = template.questions

    report = persist_report(
        db,
        template,
        str(store.id),
        USER,
        [
            {"question_id": choice.id, "value": "Bogus"},
            {"question_id": delivered.id, "value": "not-a-date"},
            {"question_id": notes.id, "value": 42},
        ],
    )

    assert _stored_answers(db, report.id) == {}


def test_changing_a_question_type_drops_answers_that_no_longer_fit(db, daily_sales, store):
    template = TemplateSnapshot.from_row(daily_sales)
    sales, comments = template.questions
    report = persist_report(
        db,
        template,
        str(store.id),
        USER,
        [{"question_id": sales.id, "value": 8750}, {"question_id": comments.id, "value": "all good"}],
    )

    draft = TemplateDraft.from_template(template)
    draft.change_type(0, "text")  # 8750 is not a text answer
    draft.change_type(1, "choice")
    draft.set_option(1, 0, "all good")  # still one of the options
    template_directory.update_template(db, daily_sales.id, draft, USER)

    assert _stored_answers(db, report.id) == {comments.id: "all good"}

    draft.set_option(1, 0, "fine")
    template_directory.update_template(db, daily_sales.id, draft, USER)

    assert _stored_answers(db, report.id) == {}
