"""End-of-call reconciliation.

Applies a Vapi end-of-call report to the matching tpv_requests row, then
refreshes the sheet mirror and texts the agent. The update is conditional on
the row still being ``initiated``, so redelivered reports leave the row
untouched and do not notify twice.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import BackgroundTasks
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tpv_api.core.agents import AgentRegistry
from tpv_api.core.errors import PersistenceError
from tpv_api.models.tpv_request import TPVRequest
from tpv_api.services.sheets import run_mirror_sync
from tpv_api.services.sms import compose_agent_summary, send_agent_notification
from tpv_api.services.vapi_events import VapiEvent

logger = logging.getLogger(__name__)

# Ended reasons that count as a clean, completed verification call
CLEAN_ENDED_REASONS = frozenset({
    "assistant-ended-call",
    "completed",
    "customer-ended-call",
    "assistant-said-end-call-phrase",
})

IGNORED = "ignored"
UPDATED = "updated"
DUPLICATE = "duplicate"
NOT_FOUND = "not_found"
FAILED = "error"


@dataclass
class ReconcileResult:
    outcome: str
    call_id: str | None = None
    status: str | None = None
    notified: bool = False

    @property
    def message(self) -> str:
        return {
            IGNORED: "Webhook received",
            UPDATED: "Call status updated",
            DUPLICATE: "Call already reconciled",
            NOT_FOUND: "No matching TPV request",
            FAILED: "Webhook received; status update failed",
        }[self.outcome]


def classify_outcome(ended_reason: str | None) -> str:
    if isinstance(ended_reason, str) and ended_reason in CLEAN_ENDED_REASONS:
        return "completed"
    return "failed"


async def _apply_terminal_status(db: AsyncSession, event: VapiEvent, status: str, ended_reason: str) -> int:
    stmt = (
        update(TPVRequest)
        .where(TPVRequest.vapi_call_id == event.call_id, TPVRequest.status == "initiated")
        .values(
            status=status,
            ended_reason=ended_reason,
            call_duration_seconds=event.duration_seconds,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount


async def _find_request(db: AsyncSession, call_id: str) -> TPVRequest | None:
    result = await db.execute(select(TPVRequest).where(TPVRequest.vapi_call_id == call_id))
    return result.scalar_one_or_none()


async def _notify_agent(event: VapiEvent, row: TPVRequest, status: str, ended_reason: str, registry: AgentRegistry) -> bool:
    agent_id = event.agent_id or row.agent_id
    agent_phone = registry.resolve(agent_id)
    if not agent_phone:
        logger.warning("No phone registered for agent %s, skipping SMS", agent_id)
        return False

    body = compose_agent_summary(
        successful=status == "completed",
        customer_name=event.customer_name or row.customer_name,
        address=event.address or row.customer_address,
        agent_id=agent_id,
        ended_reason=ended_reason,
        call_id=event.call_id,
    )
    try:
        await send_agent_notification(agent_phone, body)
    except Exception as e:
        logger.error("SMS to agent %s failed: %s", agent_id, e)
        return False
    return True


async def reconcile_end_of_call(
    db: AsyncSession,
    event: VapiEvent,
    registry: AgentRegistry,
    background_tasks: BackgroundTasks | None = None,
    session_factory: async_sessionmaker | None = None,
) -> ReconcileResult:
    """Apply a terminal Vapi event. Never raises for per-event problems."""
    if not event.is_end_of_call:
        logger.debug("Ignoring Vapi %s event (%s envelope)", event.type, event.envelope)
        return ReconcileResult(IGNORED, call_id=event.call_id)

    if not event.call_id:
        logger.warning("end-of-call-report without call id, nothing to reconcile")
        return ReconcileResult(NOT_FOUND)

    ended_reason = event.ended_reason or "unknown"
    status = classify_outcome(event.ended_reason)
    logger.info(
        "Call ended: call_id=%s agent=%s reason=%s → %s (%ss)",
        event.call_id, event.agent_id, ended_reason, status, event.duration_seconds,
    )

    try:
        applied = await _apply_terminal_status(db, event, status, ended_reason)
        row = await _find_request(db, event.call_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("%s", PersistenceError(f"Failed to update TPV request {event.call_id}: {e}"))
        return ReconcileResult(FAILED, call_id=event.call_id, status=status)

    if row is None:
        logger.warning("end-of-call-report for unknown call_id: %s", event.call_id)
        return ReconcileResult(NOT_FOUND, call_id=event.call_id)

    if not applied:
        logger.info("Call %s already %s, ignoring redelivery", event.call_id, row.status)
        return ReconcileResult(DUPLICATE, call_id=event.call_id, status=row.status)

    if background_tasks is not None and session_factory is not None:
        background_tasks.add_task(run_mirror_sync, session_factory)

    notified = await _notify_agent(event, row, status, ended_reason, registry)
    return ReconcileResult(UPDATED, call_id=event.call_id, status=status, notified=notified)
