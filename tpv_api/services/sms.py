"""Twilio SMS notifications to sales agents.

When a TPV call ends, the agent who submitted the request gets a short text
with the outcome so they can follow up with the customer.
"""

import asyncio
import logging

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from tpv_api.core.config import settings
from tpv_api.core.errors import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)


def _get_twilio_client() -> Client:
    return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)


def compose_agent_summary(
    successful: bool,
    customer_name: str | None,
    address: str | None,
    agent_id: str | None,
    ended_reason: str | None,
    call_id: str | None,
) -> str:
    """Build the SMS body sent to the agent after a TPV call."""
    status_text = "✅ SUCCESSFUL" if successful else "❌ FAILED"
    parts = [
        f"TPV Call {status_text}",
        "",
        f"Customer: {customer_name or 'Unknown'}",
    ]
    if address:
        parts.append(f"Address: {address}")
    parts.append(f"Agent ID: {agent_id or 'N/A'}")
    parts.append(f"Status: {ended_reason or 'unknown'}")
    parts.append("")
    parts.append(f"Call ID: {call_id or 'N/A'}")
    return "\n".join(parts)


async def send_agent_notification(agent_phone: str, body: str) -> str:
    """Send an SMS via Twilio. Returns the message SID.

    Raises NotificationError when Twilio rejects the message.
    """
    if not settings.twilio_configured():
        raise ConfigurationError("Twilio credentials not configured")

    client = _get_twilio_client()
    try:
        message = await asyncio.to_thread(
            client.messages.create,
            body=body,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=agent_phone,
        )
    except TwilioRestException as e:
        logger.error("Twilio error sending SMS to %s: %s", agent_phone, e)
        raise NotificationError(f"Failed to send SMS: {e.status} - {e.msg}") from e

    logger.info("SMS sent to %s, SID: %s", agent_phone, message.sid)
    return message.sid
