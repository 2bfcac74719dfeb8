# kiosk/services/sheet_writer.py
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from kiosk.logging import get_logger
from kiosk.services.questions import OTHER_VALUE, Survey
from kiosk.services.renderers import ContactRenderer
from kiosk.services.storage import StorageBackend, get_storage

log = get_logger(__name__)


# ---------- Column layout ----------

def column_order(survey: Survey) -> List[str]:
    """timestamp, id, one column per surveyed attribute, then the incomplete flag."""
    cols = ["timestamp", "id"]
    for q in survey.questions:
        if q.type == "custom-contact":
            cols.extend(ContactRenderer.CONTACT_FIELDS)
        else:
            cols.append(q.name)
    cols.append("is_incomplete")
    return cols


def sheet_path(sheet_name: str) -> str:
    """Return storage path for a sheet"""
    return f"sheets/{sheet_name}.jsonl"


# ---------- Row building ----------

def flatten_submission(survey: Survey, submission: Dict[str, Any]) -> Dict[str, Any]:
    data = submission.get("data") or {}
    flat: Dict[str, Any] = {
        "id": submission.get("id", "N/A"),
        "timestamp": submission.get("timestamp", ""),
        "is_incomplete": "TRUE" if submission.get("is_incomplete") else "",
    }
    for q in survey.questions:
        value = data.get(q.name)
        if q.type == "custom-contact":
            contact = value if isinstance(value, dict) else {}
            for f in ContactRenderer.CONTACT_FIELDS:
                flat[f] = str(contact.get(f, "")).strip()
        elif q.type == "radio-with-other" and value == OTHER_VALUE and data.get(q.other_field):
            flat[q.name] = str(data[q.other_field]).strip()
        elif isinstance(value, str):
            flat[q.name] = value.strip()
        else:
            flat[q.name] = "" if value is None else value
    return flat


def to_row(survey: Survey, submission: Dict[str, Any]) -> List[Any]:
    flat = flatten_submission(survey, submission)
    return [flat.get(col, "") for col in column_order(survey)]


# ---------- Sheet store ----------

class SheetWriter:
    """Append-only spreadsheet stand-in: one JSON array per line, header first."""

    def __init__(self, survey: Survey, sheet_name: str = "Sheet1",
                 storage: Optional[StorageBackend] = None):
        self.survey = survey
        self.path = sheet_path(sheet_name)
        self.storage = storage or get_storage()
        # Relay requests run on the threadpool; appends are read-modify-write on S3.
        self._lock = threading.Lock()

    def ensure_header(self) -> None:
        with self._lock:
            if not self.storage.exists(self.path):
                self.storage.append_jsonl(self.path, column_order(self.survey))

    def append(self, submission: Dict[str, Any]) -> None:
        row = to_row(self.survey, submission)
        with self._lock:
            self.storage.append_jsonl(self.path, row)
