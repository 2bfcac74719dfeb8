# kiosk/services/runtime.py
"""Wires one kiosk together: state, controller, monitor, admin panel and sync."""
from __future__ import annotations

from typing import Optional

from kiosk.config import Settings, get_settings
from kiosk.logging import get_logger, set_session_id
from kiosk.services.admin import AdminPanel
from kiosk.services.inactivity import InactivityMonitor
from kiosk.services.queue_store import LocalQueueStore
from kiosk.services.questions import Survey, load_survey
from kiosk.services.scheduler import Scheduler
from kiosk.services.session import NavigationController, SessionState
from kiosk.services.storage import StorageBackend, get_storage
from kiosk.services.sync import RelayClient, SyncAgent, SyncResult

log = get_logger(__name__)


class KioskRuntime:
    def __init__(self,
                 settings: Settings,
                 scheduler: Scheduler,
                 survey: Survey,
                 storage: StorageBackend,
                 client: Optional[RelayClient] = None):
        self.settings = settings
        self.scheduler = scheduler
        self.survey = survey
        t = settings.timings

        self.queue = LocalQueueStore(storage, key=settings.queue_key)
        self.state = SessionState(scheduler=scheduler)
        self.agent = SyncAgent(
            self.queue,
            client or RelayClient(settings.relay_url, timeout=settings.relay_timeout_seconds),
            on_result=self._on_sync_result,
        )
        self.controller = NavigationController(
            self.state, survey, self.queue, timings=t,
            sync_trigger=self.trigger_sync,
        )
        self.monitor = InactivityMonitor(
            self.controller,
            idle_seconds=t.inactivity_time,
            countdown_start=t.auto_submit_countdown,
        )
        self.admin = AdminPanel(
            self.controller, self.queue, self.agent,
            clicks_required=t.admin_clicks_required,
            click_timeout=t.admin_click_timeout,
        )

    def start(self) -> None:
        set_session_id(self.state.session_id)
        self.controller.render_page(0)
        self.monitor.start()
        self.agent.start_periodic(self.state.sync_timer, self.scheduler, self.settings.timings.sync_interval)
        log.info("Kiosk session %s started with %d questions", self.state.session_id, len(self.survey))

    def stop(self) -> None:
        self.agent.stop_periodic()
        self.monitor.stop()
        self.controller.rotation.stop()
        for slot in self.state.timer_slots():
            slot.cancel()
        log.info("Kiosk session %s stopped", self.state.session_id)

    def trigger_sync(self):
        """Fire-and-forget sync; never blocks page progression."""
        return self.scheduler.spawn(self.agent.sync())

    def _on_sync_result(self, result: SyncResult) -> None:
        kind = "success" if result.ok else "error"
        self.controller.show_message(result.message, kind)


_runtime: Optional[KioskRuntime] = None


def create_runtime(scheduler: Scheduler,
                   settings: Optional[Settings] = None,
                   storage: Optional[StorageBackend] = None) -> KioskRuntime:
    global _runtime
    settings = settings or get_settings()
    _runtime = KioskRuntime(
        settings,
        scheduler,
        load_survey(settings.questions_path),
        storage or get_storage(),
    )
    return _runtime


def get_runtime() -> KioskRuntime:
    """Get the running kiosk; raises if the app has not started one."""
    if _runtime is None:
        raise RuntimeError("Kiosk runtime not started")
    return _runtime


def clear_runtime() -> None:
    global _runtime
    _runtime = None
