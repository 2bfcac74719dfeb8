# kiosk/services/sync.py
"""
Background delivery of queued submissions to the relay endpoint.

sync() is safe to run concurrently with itself: it sends a snapshot of the
queue and removes only the ids the relay confirmed, so a second call that
finds those records already gone simply does nothing with them.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from kiosk.errors import RelayTransportError
from kiosk.logging import get_logger
from kiosk.services.queue_store import LocalQueueStore
from kiosk.services.scheduler import Scheduler, TimerSlot

log = get_logger(__name__)


@dataclass
class SyncResult:
    ok: bool
    sent: int = 0
    synced: int = 0
    remaining: int = 0
    message: str = ""


class RelayClient:
    """Blocking HTTP client for the relay; run it off the event loop."""

    def __init__(self, url: str, timeout: float = 15.0):
        self.url = url
        self.timeout = timeout

    def send(self, records: List[Dict[str, Any]]) -> List[str]:
        """POST a batch and return the ids the relay accepted."""
        try:
            resp = requests.post(
                self.url,
                json={"submissions": records},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RelayTransportError(f"relay unreachable: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise RelayTransportError(f"relay returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise RelayTransportError("relay response is not JSON") from e

        if not isinstance(body, dict) or body.get("success") is not True:
            raise RelayTransportError(f"relay reported failure: {body!r:.200}")

        ids = body.get("successfulIds")
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise RelayTransportError("relay response has no successfulIds list")
        return ids


class SyncAgent:
    def __init__(self,
                 queue: LocalQueueStore,
                 client: RelayClient,
                 on_result: Optional[Callable[[SyncResult], None]] = None):
        self.queue = queue
        self.client = client
        self.on_result = on_result
        self._periodic: Optional[TimerSlot] = None

    async def sync(self) -> SyncResult:
        records = self.queue.list()
        if not records:
            log.debug("No pending data to sync")
            return self._report(SyncResult(ok=True, message="Data is already synchronized."))

        log.info("Attempting to sync %d submissions", len(records))
        try:
            accepted = await asyncio.to_thread(self.client.send, records)
        except RelayTransportError as e:
            log.warning("Sync failed, keeping %d submissions queued: %s", len(records), e)
            return self._report(SyncResult(
                ok=False,
                sent=len(records),
                remaining=len(self.queue.list()),
                message="Failed to synchronize data. Will retry later.",
            ))

        # Only ids we actually sent count; anything else is ignored.
        sent_ids = {r.get("id") for r in records}
        confirmed = [i for i in accepted if i in sent_ids]
        removed = self.queue.remove_by_ids(confirmed)
        remaining = len(self.queue.list())
        log.info("Relay accepted %d/%d submissions (%d removed, %d still queued)",
                 len(confirmed), len(records), removed, remaining)
        return self._report(SyncResult(
            ok=True,
            sent=len(records),
            synced=len(confirmed),
            remaining=remaining,
            message=f"Successfully synchronized {len(confirmed)} submissions.",
        ))

    def _report(self, result: SyncResult) -> SyncResult:
        if self.on_result is not None:
            self.on_result(result)
        return result

    # ---------- Periodic schedule ----------

    def start_periodic(self, slot: TimerSlot, scheduler: Scheduler, interval: float) -> None:
        self._periodic = slot
        slot.arm_interval(interval, lambda: scheduler.spawn(self.sync()))
        log.info("Periodic sync every %.0fs", interval)

    def stop_periodic(self) -> None:
        if self._periodic is not None:
            self._periodic.cancel()
            self._periodic = None
