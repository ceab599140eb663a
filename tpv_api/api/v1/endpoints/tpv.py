"""TPV request submission and lookup endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tpv_api.core.agents import AgentRegistry, get_agent_registry
from tpv_api.core.database import get_db, get_session_factory
from tpv_api.models.tpv_request import TPVRequest
from tpv_api.schemas.tpv_request import TPVRequestIn, TPVRequestOut
from tpv_api.services.calls import initiate_tpv_call
from tpv_api.services.vapi import VapiClient, get_vapi_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/calls")
async def create_tpv_call(
    form: TPVRequestIn,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    registry: AgentRegistry = Depends(get_agent_registry),
    vapi: VapiClient = Depends(get_vapi_client),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Validate the form, place the verification call and record it."""
    result = await initiate_tpv_call(
        db,
        form,
        registry,
        vapi,
        background_tasks=background_tasks,
        session_factory=session_factory,
    )
    return {
        "success": True,
        "callId": result.call_id,
        "message": "TPV verification call initiated successfully",
        "callData": result.call_data,
    }


@router.get("/requests", response_model=list[TPVRequestOut])
async def list_tpv_requests(
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
):
    """List recorded TPV requests, newest first."""
    result = await db.execute(
        select(TPVRequest)
        .order_by(TPVRequest.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return result.scalars().all()


@router.get("/requests/{vapi_call_id}", response_model=TPVRequestOut)
async def get_tpv_request(vapi_call_id: str, db: AsyncSession = Depends(get_db)):
    """Get a single TPV request by its Vapi call id."""
    result = await db.execute(select(TPVRequest).where(TPVRequest.vapi_call_id == vapi_call_id))
    request = result.scalar_one_or_none()
    if not request:
        raise HTTPException(status_code=404, detail="TPV request not found")
    return request
