# kiosk/services/admin.py
from __future__ import annotations

from kiosk.errors import AdminLocked, ConfirmationRequired
from kiosk.logging import get_logger
from kiosk.services.queue_store import LocalQueueStore
from kiosk.services.session import NavigationController
from kiosk.services.sync import SyncAgent, SyncResult

log = get_logger(__name__)


class AdminPanel:
    """Hidden panel unlocked by clicking the title N times within a quiet window."""

    def __init__(self,
                 controller: NavigationController,
                 queue: LocalQueueStore,
                 agent: SyncAgent,
                 clicks_required: int = 5,
                 click_timeout: float = 3.0):
        self.controller = controller
        self.state = controller.state
        self.queue = queue
        self.agent = agent
        self.clicks_required = clicks_required
        self.click_timeout = click_timeout

    @property
    def visible(self) -> bool:
        return self.state.admin_visible

    def click_title(self) -> bool:
        """Count one click; returns True when this click unlocked the panel."""
        st = self.state
        st.admin_click_count += 1
        st.admin_click_timer.arm(self.click_timeout, self._reset_clicks)
        if st.admin_click_count < self.clicks_required:
            return False

        st.admin_click_count = 0
        st.admin_click_timer.cancel()
        st.admin_visible = True
        log.info("Admin mode activated")
        self.controller.show_message("Admin mode activated.")
        return True

    def _reset_clicks(self) -> None:
        self.state.admin_click_count = 0

    def _require_visible(self) -> None:
        if not self.state.admin_visible:
            raise AdminLocked("admin panel is hidden")

    async def sync_now(self) -> SyncResult:
        self._require_visible()
        log.info("Manual sync requested from admin panel")
        return await self.agent.sync()

    def clear(self, confirm: bool = False) -> int:
        self._require_visible()
        if not confirm:
            raise ConfirmationRequired("Clearing local submissions needs explicit confirmation")
        dropped = self.queue.clear()
        self.controller.show_message("All local submissions cleared.", "success")
        return dropped

    def hide(self) -> None:
        self.state.admin_visible = False
        self.controller.show_message("Admin controls hidden.")
