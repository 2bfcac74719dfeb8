# kiosk/routers/relay.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kiosk.config import get_settings
from kiosk.logging import get_logger
from kiosk.services.questions import load_survey
from kiosk.services.sheet_writer import SheetWriter

log = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])


# ---------- Models ----------

class SubmitBatchIn(BaseModel):
    # Records stay loose dicts so one bad record cannot reject the whole batch.
    submissions: List[Dict[str, Any]] = Field(default_factory=list)


class SubmitBatchOut(BaseModel):
    success: bool
    message: str
    successfulIds: List[str]


# ---------- Dependencies ----------

_writer: Optional[SheetWriter] = None


def get_sheet_writer() -> SheetWriter:
    global _writer
    if _writer is None:
        settings = get_settings()
        _writer = SheetWriter(load_survey(settings.questions_path), sheet_name=settings.sheet_name)
    return _writer


# ---------- Routes ----------

@router.post("/submit-survey", response_model=SubmitBatchOut)
def submit_survey(payload: SubmitBatchIn, writer: SheetWriter = Depends(get_sheet_writer)):
    """
    Append a batch of queued kiosk submissions to the sheet.
    Returns the ids that landed; the kiosk keeps everything else queued.
    """
    if not payload.submissions:
        return {"success": True, "message": "No submissions received.", "successfulIds": []}

    log.info("Processing %d submissions", len(payload.submissions))

    try:
        writer.ensure_header()
    except Exception as e:
        log.error("Sheet unavailable: %s", e)
        return JSONResponse(status_code=500, content={
            "success": False,
            "message": "Internal Server Error during sheet append. Data retained locally.",
            "successfulIds": [],
        })

    accepted: List[str] = []
    for sub in payload.submissions:
        sub_id = sub.get("id")
        if not isinstance(sub_id, str) or not sub_id:
            log.warning("Skipping submission without id")
            continue
        try:
            writer.append(sub)
        except Exception as e:
            log.error("Failed to append submission %s: %s", sub_id, e)
            continue
        accepted.append(sub_id)

    log.info("%d/%d submissions appended to sheet", len(accepted), len(payload.submissions))
    return {
        "success": True,
        "message": f"{len(accepted)} submissions processed.",
        "successfulIds": accepted,
    }
