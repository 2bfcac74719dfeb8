# kiosk/routers/kiosk.py
# Handlers are all `async def` so session mutation stays on the event loop thread.
from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from kiosk.errors import AdminLocked, ConfirmationRequired
from kiosk.services.runtime import KioskRuntime, get_runtime

router = APIRouter(prefix="/api/kiosk", tags=["kiosk"])


# ---------- Models ----------

class InputIn(BaseModel):
    event: str              # "input" | "change" | "consent"
    field: Optional[str] = None
    value: Any = None


class ClearIn(BaseModel):
    confirm: bool = False


# ---------- Helpers ----------

def _page(rt: KioskRuntime) -> dict:
    view = asdict(rt.controller.view())
    view["monitor_state"] = rt.state.monitor_state.value
    return view


# ---------- Page & navigation ----------

@router.get("/page")
async def get_page(rt: KioskRuntime = Depends(get_runtime)):
    return _page(rt)


@router.post("/activity")
async def activity(rt: KioskRuntime = Depends(get_runtime)):
    """Pointer move, key press or touch on the kiosk."""
    rt.monitor.record_activity()
    return {"status": "ok", "monitor_state": rt.state.monitor_state.value}


@router.post("/input")
async def page_input(body: InputIn, rt: KioskRuntime = Depends(get_runtime)):
    rt.monitor.record_activity()
    handled = rt.controller.dispatch(body.event, {"field": body.field, "value": body.value})
    return {"handled": handled, "page": _page(rt)}


@router.post("/next")
async def next_page(rt: KioskRuntime = Depends(get_runtime)):
    rt.monitor.record_activity()
    outcome = rt.controller.advance()
    return {"outcome": outcome.value, "page": _page(rt)}


@router.post("/back")
async def prev_page(rt: KioskRuntime = Depends(get_runtime)):
    rt.monitor.record_activity()
    moved = rt.controller.retreat()
    return {"moved": moved, "page": _page(rt)}


@router.post("/cancel")
async def cancel_countdown(rt: KioskRuntime = Depends(get_runtime)):
    cancelled = rt.monitor.cancel()
    return {"cancelled": cancelled, "page": _page(rt)}


# ---------- Admin ----------

@router.post("/title-click")
async def title_click(rt: KioskRuntime = Depends(get_runtime)):
    unlocked = rt.admin.click_title()
    return {"unlocked": unlocked, "admin_visible": rt.admin.visible}


@router.post("/admin/sync")
async def admin_sync(rt: KioskRuntime = Depends(get_runtime)):
    try:
        result = await rt.admin.sync_now()
    except AdminLocked as e:
        raise HTTPException(status_code=403, detail=str(e))
    return asdict(result)


@router.post("/admin/clear")
async def admin_clear(body: ClearIn, rt: KioskRuntime = Depends(get_runtime)):
    try:
        dropped = rt.admin.clear(confirm=body.confirm)
    except AdminLocked as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ConfirmationRequired as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "ok", "cleared": dropped}


@router.post("/admin/hide")
async def admin_hide(rt: KioskRuntime = Depends(get_runtime)):
    rt.admin.hide()
    return {"status": "ok", "admin_visible": rt.admin.visible}


@router.get("/queue")
async def queue_status(rt: KioskRuntime = Depends(get_runtime)):
    items = rt.queue.list()
    return {"count": len(items), "ids": [it.get("id") for it in items]}
