"""Vapi server-message webhook.

Thin HTTP layer; reconciliation logic lives in tpv_api.services.reconciliation.
Once the body parses, Vapi always gets a 200 so it never retries; only a
missing Twilio configuration is reported as a 500.
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tpv_api.core.agents import AgentRegistry, get_agent_registry
from tpv_api.core.config import settings
from tpv_api.core.database import get_db, get_session_factory
from tpv_api.core.errors import ConfigurationError
from tpv_api.services.reconciliation import reconcile_end_of_call
from tpv_api.services.vapi_events import decode_vapi_event

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/vapi")
async def vapi_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    registry: AgentRegistry = Depends(get_agent_registry),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Receive Vapi events; only end-of-call-report is acted upon."""
    if not settings.twilio_configured():
        raise ConfigurationError("Twilio credentials not configured")

    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})

    event = decode_vapi_event(payload)
    if event is None:
        logger.info("Vapi webhook with unrecognized envelope, acknowledged")
        return {"success": True, "message": "Webhook received"}

    logger.info("Vapi event: %s | call_id=%s | envelope=%s", event.type, event.call_id, event.envelope)
    result = await reconcile_end_of_call(
        db,
        event,
        registry,
        background_tasks=background_tasks,
        session_factory=session_factory,
    )
    response = {"success": True, "message": result.message}
    if result.notified:
        response["message"] = "Notification sent to agent"
    return response
