# kiosk/services/queue_store.py
"""
Write-ahead queue of submission records waiting to reach the relay.

The whole queue lives under one storage key as a JSON array. Records are
write-once and remove-once: nothing is edited in place, and a record only
leaves the queue through an explicit id-confirmed removal (or the admin clear).
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from kiosk.errors import QueueCorrupted
from kiosk.logging import get_logger
from kiosk.services.storage import StorageBackend

log = get_logger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SubmissionRecord(BaseModel):
    """One completed or timeout-forced answer set."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: str = Field(default_factory=utc_now_iso)
    data: Dict[str, Any] = Field(default_factory=dict)
    is_incomplete: bool = False


class LocalQueueStore:
    def __init__(self, storage: StorageBackend, key: str = "surveySubmissions.json"):
        self.storage = storage
        self.key = key

    def _read(self) -> List[Dict[str, Any]]:
        if not self.storage.exists(self.key):
            return []
        try:
            items = self.storage.read_json(self.key)
        except json.JSONDecodeError as e:
            raise QueueCorrupted(f"Queue at {self.key!r} is not valid JSON: {e}") from e
        if not isinstance(items, list):
            raise QueueCorrupted(f"Queue at {self.key!r} is not a JSON array")
        return items

    def _write(self, items: List[Dict[str, Any]]) -> None:
        self.storage.write_json(self.key, items)

    def append(self, record: SubmissionRecord | Dict[str, Any]) -> None:
        item = record.model_dump() if isinstance(record, SubmissionRecord) else dict(record)
        items = self._read()
        items.append(item)
        self._write(items)
        log.info("Submission %s queued locally (total=%d)", item.get("id"), len(items))

    def list(self) -> List[Dict[str, Any]]:
        return self._read()

    def remove_by_ids(self, ids: Iterable[str]) -> int:
        """Drop records whose id is in `ids`. Unknown ids are ignored. Returns count removed."""
        wanted = set(ids)
        if not wanted:
            return 0
        items = self._read()
        kept = [it for it in items if it.get("id") not in wanted]
        removed = len(items) - len(kept)
        if removed:
            self._write(kept)
        return removed

    def clear(self) -> int:
        items = self._read()
        self.storage.delete(self.key)
        log.warning("Local queue cleared (%d records dropped)", len(items))
        return len(items)

    def __len__(self) -> int:
        return len(self._read())
