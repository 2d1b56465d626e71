# avtools/routers/leads.py
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from avtools.config import Settings, get_settings
from avtools.directory import create_lead
from avtools.errors import StoreRequestFailed
from avtools.logging_utils import log_kv, setup_logger
from avtools.models import LeadIn
from avtools.store import RecordStoreClient, get_store

router = APIRouter(prefix="/api/leads", tags=["leads"])
log = setup_logger("api")


@router.post("")
def submit_lead(
    payload: LeadIn,
    store: RecordStoreClient = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Record a "request info" lead. Store errors are logged, not echoed.
    """
    try:
        lead_id = create_lead(store, settings, payload)
    except (StoreRequestFailed, httpx.HTTPError) as e:
        log.error("lead create failed error=%s", e)
        return JSONResponse(status_code=502, content={"ok": False, "error": "Failed to create lead"})
    log_kv(log, event="lead_created", id=lead_id, product=payload.product_id)
    return {"ok": True, "id": lead_id}
