import pytest

from storereports.core.errors import NavigationError, ValidationFailed
from storereports.engine.answer_store import AnswerStore
from storereports.engine.navigation import Guided, Navigator, Review, Submitting
from storereports.engine.questions import QuestionSnapshot


def _questions(n, required=False):
    return [QuestionSnapshot(id=f"q{i}", text=f"Q{i}", required=required, order_index=i) for i in range(n)]


def test_starts_guided_at_zero():
    nav = Navigator(_questions(3), AnswerStore())
    assert nav.state == Guided(0)


def test_zero_questions_go_straight_to_review():
    nav = Navigator([], AnswerStore())
    assert nav.state == Review()
    with pytest.raises(NavigationError):
        nav.back_to_guided()
    nav.begin_submit()
    assert isinstance(nav.state, Submitting)


def test_next_walks_every_index_once_then_reviews():
    nav = Navigator(_questions(4), AnswerStore())
    visited = [nav.state.index]
    while isinstance(nav.state, Guided):
        nav.next()
        if isinstance(nav.state, Guided):
            visited.append(nav.state.index)
    assert visited == [0, 1, 2, 3]
    assert nav.state == Review()


def test_required_question_blocks_next_until_answered():
    questions = _questions(2, required=True)
    answers = AnswerStore()
    nav = Navigator(questions, answers)

    with pytest.raises(ValidationFailed) as exc:
        nav.next()
    assert exc.value.details == {"missing_question_ids": ["q0"]}
    assert nav.state == Guided(0)

    answers.set("q0", "done")
    nav.next()
    assert nav.state == Guided(1)


def test_previous_is_a_no_op_on_first_question():
    nav = Navigator(_questions(2), AnswerStore())
    assert nav.previous() == Guided(0)
    nav.next()
    assert nav.previous() == Guided(0)


def test_back_to_guided_returns_to_last_question():
    nav = Navigator(_questions(3), AnswerStore())
    for _ in range(3):
        nav.next()
    assert nav.state == Review()
    assert nav.back_to_guided() == Guided(2)


def test_previous_not_allowed_from_review():
    nav = Navigator(_questions(1), AnswerStore())
    nav.next()
    with pytest.raises(NavigationError):
        nav.previous()


def test_jump_only_backwards():
    nav = Navigator(_questions(4), AnswerStore())
    nav.next()
    nav.next()
    with pytest.raises(NavigationError):
        nav.jump_to(2)
    with pytest.raises(NavigationError):
        nav.jump_to(3)
    assert nav.jump_to(0) == Guided(0)


def test_jump_from_review_can_reach_any_question():
    nav = Navigator(_questions(3), AnswerStore())
    for _ in range(3):
        nav.next()
    assert nav.jump_to(2) == Guided(2)


def test_submit_only_from_review():
    nav = Navigator(_questions(2), AnswerStore())
    with pytest.raises(NavigationError) as exc:
        nav.begin_submit()
    assert exc.value.code == "NOT_IN_REVIEW"


def test_submitting_disables_everything_until_finished():
    nav = Navigator(_questions(1), AnswerStore())
    nav.next()
    nav.begin_submit()

    for action in (nav.next, nav.previous, nav.back_to_guided, nav.begin_submit, lambda: nav.jump_to(0)):
        with pytest.raises(NavigationError) as exc:
            action()
        assert exc.value.code == "SESSION_SUBMITTING"

    assert nav.finish_submit() == Review()
    assert nav.back_to_guided() == Guided(0)


def test_jump_back_keeps_forward_progress():
    questions = _questions(4, required=True)
    answers = AnswerStore({q.id: "done" for q in questions})
    nav = Navigator(questions, answers)
    for _ in range(4):
        nav.next()
    assert nav.reviewed

    nav.jump_to(0)
    assert nav.return_to_review() == Review()


def test_return_to_review_needs_review_reached_first():
    nav = Navigator(_questions(3), AnswerStore())
    nav.next()
    nav.jump_to(0)
    with pytest.raises(NavigationError) as exc:
        nav.return_to_review()
    assert exc.value.code == "NOT_REVIEWED"
    assert nav.state == Guided(0)


def test_return_to_review_still_checks_required_answers():
    questions = _questions(3, required=True)
    answers = AnswerStore({q.id: "done" for q in questions})
    nav = Navigator(questions, answers)
    for _ in range(3):
        nav.next()

    nav.jump_to(1)
    answers.clear("q1")
    with pytest.raises(ValidationFailed) as exc:
        nav.return_to_review()
    assert exc.value.details == {"missing_question_ids": ["q1"]}
    assert nav.state == Guided(1)


def test_return_to_review_only_from_guided():
    nav = Navigator(_questions(1), AnswerStore())
    nav.next()
    with pytest.raises(NavigationError):
        nav.return_to_review()
