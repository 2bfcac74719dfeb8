# kiosk/services/session.py
"""
Kiosk session state and the navigation controller that drives it.

Navigation is strictly linear: next, back, submit on the last page. The
controller owns page rendering, input capture, validation and submission;
the inactivity monitor and admin panel operate on the same SessionState.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from kiosk.config import KioskTimings
from kiosk.errors import PageOutOfRange
from kiosk.logging import get_logger, set_session_id
from kiosk.services.queue_store import LocalQueueStore, SubmissionRecord
from kiosk.services.questions import Question, Survey
from kiosk.services.renderers import (
    COMPLETION_HTML,
    Handler,
    PageCallbacks,
    get_renderer,
    is_empty,
    missing_renderer_html,
)
from kiosk.services.rotation import RotatingPrompt
from kiosk.services.scheduler import Scheduler, TimerSlot

log = get_logger(__name__)


class MonitorState(str, Enum):
    ACTIVE = "active"
    COUNTDOWN = "countdown"
    IDLE_RESET = "idle-reset"


class AdvanceOutcome(str, Enum):
    ADVANCED = "advanced"
    SUBMITTED = "submitted"
    INVALID = "invalid"
    IGNORED = "ignored"


@dataclass
class StatusMessage:
    text: str
    kind: str = "info"  # info | success | error


@dataclass
class SessionState:
    scheduler: Scheduler
    session_id: str = field(default_factory=lambda: str(uuid4()))
    current_page: int = 0
    form_data: Dict[str, Any] = field(default_factory=dict)
    captured: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    completed: bool = False
    monitor_state: MonitorState = MonitorState.ACTIVE
    countdown_remaining: Optional[int] = None
    admin_click_count: int = 0
    admin_visible: bool = False
    status: Optional[StatusMessage] = None

    def __post_init__(self) -> None:
        s = self.scheduler
        self.idle_timer = TimerSlot(s, "idle")
        self.countdown_timer = TimerSlot(s, "countdown")
        self.typing_timer = TimerSlot(s, "typing")
        self.display_timer = TimerSlot(s, "display")
        self.admin_click_timer = TimerSlot(s, "admin-click")
        self.reset_timer = TimerSlot(s, "reset")
        self.sync_timer = TimerSlot(s, "periodic-sync")
        self.status_timer = TimerSlot(s, "status")

    def timer_slots(self):
        return [self.idle_timer, self.countdown_timer, self.typing_timer, self.display_timer,
                self.admin_click_timer, self.reset_timer, self.sync_timer, self.status_timer]


@dataclass
class PageView:
    html: str
    page: int
    total: int
    progress: float
    show_back: bool
    next_label: str
    completed: bool
    overlay: Optional[int]
    prompt: Optional[str]
    status: Optional[StatusMessage]
    errors: Dict[str, str]
    admin_visible: bool


class NavigationController:
    def __init__(self,
                 state: SessionState,
                 survey: Survey,
                 queue: LocalQueueStore,
                 timings: KioskTimings = KioskTimings(),
                 sync_trigger: Optional[Callable[[], Any]] = None):
        self.state = state
        self.survey = survey
        self.queue = queue
        self.timings = timings
        self.sync_trigger = sync_trigger
        self.rotation = RotatingPrompt(
            state.typing_timer,
            state.display_timer,
            speed=timings.rotation_speed,
            display_time=timings.rotation_display_time,
        )
        self._html = ""
        self._handlers: Dict[str, Handler] = {}

    # ---------- Rendering ----------

    @property
    def question(self) -> Question:
        return self.survey[self.state.current_page]

    @property
    def is_last_page(self) -> bool:
        return self.state.current_page == len(self.survey) - 1

    def render_page(self, index: int) -> PageView:
        if not 0 <= index < len(self.survey):
            raise PageOutOfRange(f"page {index} outside 0..{len(self.survey) - 1}")

        # Leaving a page always kills its animation.
        self.rotation.stop()
        st = self.state
        st.current_page = index
        st.completed = False
        st.errors = {}

        q = self.survey[index]
        renderer = get_renderer(q.type)
        if renderer is None:
            log.error("No renderer for question type %r (question %s)", q.type, q.name)
            st.captured = {}
            self._html = missing_renderer_html(q.type)
            self._handlers = {}
            return self.view()

        st.captured = renderer.load(q, st.form_data)
        self._html = renderer.render(q, st.captured)
        self._handlers = renderer.bind_events(q, PageCallbacks(
            capture=self.capture,
            discard=self.discard,
            advance=self.advance,
            start_rotation=self.rotation.start,
        ))
        return self.view()

    def view(self) -> PageView:
        st = self.state
        total = len(self.survey)
        return PageView(
            html=self._html,
            page=st.current_page,
            total=total,
            progress=1.0 if st.completed else st.current_page / total,
            show_back=not st.completed and st.current_page > 0,
            next_label="Submit Survey" if self.is_last_page else "Next",
            completed=st.completed,
            overlay=st.countdown_remaining,
            prompt=self.rotation.text if self.rotation.running else None,
            status=st.status,
            errors=dict(st.errors),
            admin_visible=st.admin_visible,
        )

    # ---------- Input capture ----------

    def capture(self, field_name: str, value: Any) -> None:
        self.state.captured[field_name] = value

    def discard(self, field_name: str) -> None:
        self.state.captured.pop(field_name, None)

    def dispatch(self, event: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        if self.state.completed:
            return False
        handler = self._handlers.get(event)
        if handler is None:
            log.warning("Event %r has no handler on page %d", event, self.state.current_page)
            return False
        handler(payload or {})
        return True

    # ---------- Navigation ----------

    def advance(self) -> AdvanceOutcome:
        st = self.state
        if st.completed:
            return AdvanceOutcome.IGNORED

        q = self.question
        renderer = get_renderer(q.type)
        if renderer is None:
            log.error("Cannot validate page %d: no renderer for %r", st.current_page, q.type)
            return AdvanceOutcome.INVALID

        errors = renderer.validate(q, st.captured)
        if errors:
            st.errors = errors
            self.show_message(next(iter(errors.values())), "error")
            log.debug("Validation failed on page %d: %s", st.current_page, errors)
            return AdvanceOutcome.INVALID

        self._apply(renderer.commit(q, st.captured))
        st.errors = {}

        if self.is_last_page:
            self.submit()
            return AdvanceOutcome.SUBMITTED

        self.render_page(st.current_page + 1)
        return AdvanceOutcome.ADVANCED

    def retreat(self) -> bool:
        st = self.state
        if st.completed or st.current_page == 0:
            return False
        self.render_page(st.current_page - 1)
        return True

    def _apply(self, updates: Dict[str, Any]) -> None:
        for key, value in updates.items():
            if value is None:
                self.state.form_data.pop(key, None)
            else:
                self.state.form_data[key] = value

    # ---------- Progress / snapshots ----------

    def has_progress(self) -> bool:
        st = self.state
        if st.completed:
            return False
        if st.current_page > 0:
            return True
        first = self.survey.first
        if not is_empty(st.form_data.get(first.name)):
            return True
        renderer = get_renderer(first.type)
        if renderer is None:
            return False
        return any(not is_empty(v) for v in renderer.commit(first, st.captured).values())

    def snapshot(self) -> Dict[str, Any]:
        """Committed answers plus whatever non-empty input the current page holds."""
        data = copy.deepcopy(self.state.form_data)
        renderer = get_renderer(self.question.type)
        if renderer is not None and not self.state.completed:
            for key, value in renderer.commit(self.question, self.state.captured).items():
                if not is_empty(value):
                    data[key] = copy.deepcopy(value)
        return data

    # ---------- Submission / reset ----------

    def submit(self, incomplete: bool = False) -> SubmissionRecord:
        st = self.state
        record = SubmissionRecord(data=self.snapshot(), is_incomplete=incomplete)
        try:
            self.queue.append(record)
        except Exception:
            log.exception("Could not queue submission %s", record.id)
            self.show_message("Error saving feedback.", "error")
            raise

        log.info("Submission %s stored (incomplete=%s, answers=%d)",
                 record.id, incomplete, len(record.data))

        if incomplete:
            self._fire_sync()
            self.reset()
            return record

        self.rotation.stop()
        st.countdown_timer.cancel()
        st.countdown_remaining = None
        st.form_data = {}
        st.captured = {}
        st.completed = True
        self._html = COMPLETION_HTML
        self._handlers = {}
        self._fire_sync()
        st.reset_timer.arm(self.timings.reset_time, self.reset)
        return record

    def reset(self) -> PageView:
        st = self.state
        st.countdown_timer.cancel()
        st.reset_timer.cancel()
        st.countdown_remaining = None
        st.form_data = {}
        st.captured = {}
        st.session_id = str(uuid4())
        set_session_id(st.session_id)
        log.debug("Session reset")
        return self.render_page(0)

    def _fire_sync(self) -> None:
        if self.sync_trigger is None:
            return
        try:
            self.sync_trigger()
        except Exception:
            # Sync is best effort here; the record is already queued.
            log.exception("Could not start background sync")

    # ---------- Status messages ----------

    def show_message(self, text: str, kind: str = "info") -> None:
        self.state.status = StatusMessage(text=text, kind=kind)
        self.state.status_timer.arm(self.timings.status_message_time, self.clear_message)

    def clear_message(self) -> None:
        self.state.status = None
        self.state.status_timer.cancel()
