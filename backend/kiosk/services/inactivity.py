# kiosk/services/inactivity.py
"""
Idle watchdog for the kiosk.

    ACTIVE --idle timeout, progress made--> COUNTDOWN --reaches 0--> auto-submit, IDLE_RESET
    ACTIVE --idle timeout, no progress----> IDLE_RESET (clear + page 0)
    COUNTDOWN --activity / cancel---------> ACTIVE
    IDLE_RESET --activity-----------------> ACTIVE

At most one idle timer and one countdown interval exist; both live in
TimerSlots on the shared SessionState.
"""
from __future__ import annotations

from kiosk.errors import AppError
from kiosk.logging import get_logger
from kiosk.services.session import MonitorState, NavigationController

log = get_logger(__name__)


class InactivityMonitor:
    def __init__(self,
                 controller: NavigationController,
                 idle_seconds: float = 30.0,
                 countdown_start: int = 5,
                 tick_seconds: float = 1.0):
        self.controller = controller
        self.state = controller.state
        self.idle_seconds = idle_seconds
        self.countdown_start = countdown_start
        self.tick_seconds = tick_seconds

    @property
    def mode(self) -> MonitorState:
        return self.state.monitor_state

    def start(self) -> None:
        self.state.monitor_state = MonitorState.ACTIVE
        self._arm_idle()

    def stop(self) -> None:
        self.state.idle_timer.cancel()
        self._stop_countdown()

    def record_activity(self) -> None:
        """Any pointer, key or touch event."""
        if self.state.monitor_state == MonitorState.COUNTDOWN:
            log.info("Activity during countdown; auto-submit cancelled")
        self._stop_countdown()
        self.state.monitor_state = MonitorState.ACTIVE
        self._arm_idle()

    def cancel(self) -> bool:
        """The overlay's cancel button. Returns True if a countdown was cancelled."""
        if self.state.monitor_state != MonitorState.COUNTDOWN:
            return False
        self._stop_countdown()
        self.state.monitor_state = MonitorState.ACTIVE
        self._arm_idle()
        log.info("Auto-submit countdown cancelled by user")
        return True

    # ---------- internals ----------

    def _arm_idle(self) -> None:
        self.state.idle_timer.arm(self.idle_seconds, self._on_idle)

    def _stop_countdown(self) -> None:
        self.state.countdown_timer.cancel()
        self.state.countdown_remaining = None

    def _on_idle(self) -> None:
        log.debug("Inactivity timer expired")
        if self.controller.has_progress():
            self._begin_countdown()
        else:
            log.info("Idle with no progress; returning kiosk to first page")
            self.state.monitor_state = MonitorState.IDLE_RESET
            self.controller.reset()

    def _begin_countdown(self) -> None:
        log.info("Idle with partial answers; auto-submit in %ds", self.countdown_start)
        self.state.monitor_state = MonitorState.COUNTDOWN
        self.state.countdown_remaining = self.countdown_start
        self.state.countdown_timer.arm_interval(self.tick_seconds, self._tick)

    def _tick(self) -> None:
        remaining = (self.state.countdown_remaining or 0) - 1
        self.state.countdown_remaining = remaining
        if remaining > 0:
            return
        self._stop_countdown()
        self.state.monitor_state = MonitorState.IDLE_RESET
        log.info("Countdown finished; auto-submitting incomplete survey")
        try:
            self.controller.submit(incomplete=True)
        except (AppError, OSError):
            # Answers stay on the session; the next idle timeout tries again.
            log.exception("Auto-submit failed; keeping answers for retry")
            self.state.monitor_state = MonitorState.ACTIVE
            self._arm_idle()
