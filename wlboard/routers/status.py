# wlboard/routers/status.py
import time

from fastapi import APIRouter, Request

from wlboard.core.timeutils import utc_now_iso

router = APIRouter(tags=["Status"])


@router.get("/status")
def server_status(request: Request):
    """Liveness + counters. No auth required."""
    state = request.app.state
    body = {
        "success": True,
        "server": state.settings.PROJECT_NAME,
        "version": state.settings.VERSION,
        "uptime": round(time.monotonic() - state.started_at, 3),
        "partnerships": len(state.partnerships.store),
        "connectedUsers": len(state.presence),
        "timestamp": utc_now_iso(),
    }
    if state.auth is not None:
        body["users"] = len(state.auth.users)
        body["allowedEmails"] = len(state.auth.allowed)
    return body
