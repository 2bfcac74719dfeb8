import logging

import pytest

from kiosk.errors import PageOutOfRange
from kiosk.logging import SessionIdFilter, clear_session_id
from kiosk.services import renderers
from kiosk.services.questions import DEFAULT_QUESTIONS, build_survey
from kiosk.services.session import AdvanceOutcome, NavigationController, SessionState


@pytest.fixture
def controller(scheduler, survey, queue):
    ctl = NavigationController(SessionState(scheduler=scheduler), survey, queue)
    ctl.render_page(0)
    return ctl


def test_complete_survey_queues_exactly_one_complete_record(controller, queue, answer_all):
    assert answer_all(controller) == AdvanceOutcome.SUBMITTED

    items = queue.list()
    assert len(items) == 1
    rec = items[0]
    assert rec["is_incomplete"] is False
    assert rec["data"] == {
        "comments": "Loved the gardens",
        "satisfaction": "Happy",
        "location": "Canada",
        "age": "18-40",
        "contact": {"name": "Ada"},
    }


def test_submit_shows_completion_then_resets(controller, scheduler, answer_all):
    answer_all(controller)
    view = controller.view()
    assert view.completed and view.progress == 1.0
    assert "Thank You!" in view.html
    assert controller.state.form_data == {}
    assert controller.advance() == AdvanceOutcome.IGNORED
    assert controller.retreat() is False

    scheduler.advance(5)
    view = controller.view()
    assert not view.completed
    assert view.page == 0 and view.progress == 0


def test_submit_fires_sync_trigger(scheduler, survey, queue, answer_all):
    fired = []
    ctl = NavigationController(SessionState(scheduler=scheduler), survey, queue,
                               sync_trigger=lambda: fired.append(len(queue.list())))
    ctl.render_page(0)
    answer_all(ctl)
    assert fired == [1]


def test_sync_trigger_failure_does_not_lose_the_record(scheduler, survey, queue, answer_all):
    def boom():
        raise RuntimeError("no loop")

    ctl = NavigationController(SessionState(scheduler=scheduler), survey, queue, sync_trigger=boom)
    ctl.render_page(0)
    assert answer_all(ctl) == AdvanceOutcome.SUBMITTED
    assert len(queue.list()) == 1


def test_required_field_gate(controller, queue):
    assert controller.advance() == AdvanceOutcome.INVALID
    assert controller.state.current_page == 0
    assert queue.list() == []
    assert controller.view().errors == {"comments": "This field is required."}
    assert controller.state.status.kind == "error"

    controller.dispatch("input", {"value": "   "})
    assert controller.advance() == AdvanceOutcome.INVALID
    assert controller.state.current_page == 0


def test_status_message_is_transient(controller, scheduler):
    controller.advance()
    assert controller.state.status is not None
    scheduler.advance(5)
    assert controller.state.status is None


def test_advance_moves_exactly_one_page(controller):
    controller.dispatch("input", {"value": "ok"})
    assert controller.advance() == AdvanceOutcome.ADVANCED
    assert controller.state.current_page == 1
    assert controller.state.form_data == {"comments": "ok"}


def test_retreat_never_goes_below_zero(controller):
    assert controller.retreat() is False
    assert controller.state.current_page == 0

    controller.dispatch("input", {"value": "ok"})
    controller.advance()
    assert controller.retreat() is True
    assert controller.state.current_page == 0
    assert controller.retreat() is False


def test_back_navigation_repopulates_previous_answer(controller):
    controller.dispatch("input", {"value": "first pass"})
    controller.advance()
    controller.dispatch("change", {"value": "Sad"})
    controller.retreat()
    view = controller.view()
    assert view.page == 1
    assert 'value="Sad" class="visually-hidden" checked' in view.html
    controller.retreat()
    assert "first pass" in controller.view().html


def test_render_page_sets_progress_and_affordances(controller, survey):
    view = controller.render_page(0)
    assert view.progress == 0 and not view.show_back and view.next_label == "Next"

    view = controller.render_page(len(survey) - 1)
    assert view.progress == pytest.approx((len(survey) - 1) / len(survey))
    assert view.show_back and view.next_label == "Submit Survey"


def test_render_page_does_not_touch_form_data(controller):
    controller.state.form_data = {"comments": "kept"}
    controller.render_page(3)
    controller.render_page(0)
    assert controller.state.form_data == {"comments": "kept"}


def test_render_page_out_of_range(controller, survey):
    with pytest.raises(PageOutOfRange):
        controller.render_page(len(survey))
    with pytest.raises(PageOutOfRange):
        controller.render_page(-1)


def test_rotation_runs_on_first_page_only(controller, scheduler):
    assert controller.rotation.running
    scheduler.advance(0.05)
    assert controller.view().prompt == "1"

    controller.dispatch("input", {"value": "ok"})
    controller.advance()
    assert not controller.rotation.running
    assert controller.view().prompt is None


def test_unknown_event_is_ignored(controller):
    assert controller.dispatch("consent", {"value": True}) is False
    assert controller.state.captured == {}


def test_missing_renderer_degrades_without_crashing(controller, monkeypatch):
    monkeypatch.delitem(renderers.RENDERERS, "radio")
    view = controller.render_page(3)
    assert 'Question type "radio" not found' in view.html
    assert controller.advance() == AdvanceOutcome.INVALID
    assert controller.retreat() is True


def test_reset_clears_everything(controller, scheduler):
    controller.dispatch("input", {"value": "ok"})
    controller.advance()
    controller.dispatch("change", {"value": "Happy"})
    controller.reset()
    assert controller.state.current_page == 0
    assert controller.state.form_data == {}
    assert controller.state.captured == {}


def test_typed_contact_on_first_page_counts_as_progress(scheduler, queue):
    survey = build_survey([DEFAULT_QUESTIONS[4], DEFAULT_QUESTIONS[0]])
    ctl = NavigationController(SessionState(scheduler=scheduler), survey, queue)
    ctl.render_page(0)
    assert ctl.has_progress() is False

    ctl.dispatch("input", {"field": "name", "value": "Ada"})
    assert ctl.has_progress() is True


def test_reset_starts_a_new_session_id(controller):
    first = controller.state.session_id
    try:
        controller.reset()
        second = controller.state.session_id
        record = logging.LogRecord("kiosk.test", logging.INFO, __file__, 1, "x", (), None)
        SessionIdFilter().filter(record)
    finally:
        clear_session_id()
    assert second != first
    assert record.session_id == second
