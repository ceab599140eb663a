"""Google Sheets mirror of the tpv_requests table.

The sheet is a disposable, read-only view for non-technical staff: every sync
clears the range and rewrites the full table, newest first. The database is
the only source of truth.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from urllib.parse import quote

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tpv_api.core.config import settings
from tpv_api.core.errors import ConfigurationError, ProviderError, SyncError, TPVError
from tpv_api.models.tpv_request import TPVRequest
from tpv_api.services.google_auth import ServiceAccountTokenProvider

logger = logging.getLogger(__name__)

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

SHEET_HEADERS = [
    "Date",
    "Agent ID",
    "Customer Name",
    "Customer Phone",
    "Address",
    "City",
    "Province",
    "Postal Code",
    "Email",
    "Products",
    "Sales Price",
    "Interest Rate",
    "Promotional Term",
    "Amortization",
    "Monthly Payment",
    "Status",
    "Call Duration (seconds)",
    "Ended Reason",
    "VAPI Call ID",
]

# Clear-then-write must not interleave between overlapping syncs. One lock per
# event loop; an asyncio.Lock is bound to the loop it first waits on.
_sync_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def _sync_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _sync_locks.get(loop)
    if lock is None:
        lock = _sync_locks[loop] = asyncio.Lock()
    return lock


def _format_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def project_row(request: TPVRequest) -> list[str]:
    """Map a stored request onto the SHEET_HEADERS column order."""
    return [
        _format_date(request.created_at),
        request.agent_id or "",
        request.customer_name or "",
        request.customer_phone or "",
        request.customer_address or "",
        request.city or "",
        request.province or "",
        request.postal_code or "",
        request.email or "",
        request.products or "",
        request.sales_price or "",
        request.interest_rate or "",
        request.promotional_term or "",
        request.amortization or "",
        request.monthly_payment or "",
        request.status or "",
        "" if request.call_duration_seconds is None else str(request.call_duration_seconds),
        request.ended_reason or "",
        request.vapi_call_id or "",
    ]


class SheetsClient:
    """Minimal Google Sheets v4 values client."""

    def __init__(
        self,
        spreadsheet_id: str | None = None,
        token_provider: ServiceAccountTokenProvider | None = None,
        base_url: str = SHEETS_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.spreadsheet_id = spreadsheet_id if spreadsheet_id is not None else settings.GOOGLE_SHEETS_SPREADSHEET_ID
        self.token_provider = token_provider or ServiceAccountTokenProvider()
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    def _values_url(self, sheet_range: str) -> str:
        return f"{self.base_url}/{self.spreadsheet_id}/values/{quote(sheet_range, safe='!:')}"

    async def replace_values(self, sheet_range: str, values: list[list[str]]) -> dict:
        """Clear ``sheet_range`` then write ``values`` starting at its top-left cell."""
        if not self.spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEETS_SPREADSHEET_ID is not configured")

        token = await self.token_provider.fetch_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        url = self._values_url(sheet_range)

        async with httpx.AsyncClient(transport=self.transport) as client:
            cleared = await client.post(f"{url}:clear", headers=headers)
            if not cleared.is_success:
                logger.error("Google Sheets clear failed: %s %s", cleared.status_code, cleared.text)
                raise ProviderError("Google Sheets", cleared.status_code, cleared.text)

            written = await client.put(
                url,
                params={"valueInputOption": "RAW"},
                headers=headers,
                json={"values": values},
            )
            if not written.is_success:
                logger.error("Google Sheets write failed: %s %s", written.status_code, written.text)
                raise ProviderError("Google Sheets", written.status_code, written.text)

        return written.json()


async def load_all_requests(db: AsyncSession) -> list[TPVRequest]:
    try:
        result = await db.execute(select(TPVRequest).order_by(TPVRequest.created_at.desc()))
    except SQLAlchemyError as e:
        raise SyncError(f"Failed to fetch TPV requests: {e}") from e
    return list(result.scalars().all())


async def sync_requests_to_sheet(
    db: AsyncSession,
    sheets: SheetsClient | None = None,
    sheet_range: str | None = None,
) -> int:
    """Overwrite the sheet with the whole table. Returns rows written (header included)."""
    sheets = sheets or SheetsClient()
    sheet_range = sheet_range or settings.GOOGLE_SHEETS_RANGE

    # Snapshot and write under one lock
    async with _sync_lock():
        requests = await load_all_requests(db)
        logger.info("Fetched %d TPV requests from database", len(requests))
        values = [SHEET_HEADERS] + [project_row(r) for r in requests]
        await sheets.replace_values(sheet_range, values)

    logger.info("Synced %d rows to Google Sheets range %s", len(values), sheet_range)
    return len(values)


async def run_mirror_sync(session_factory: async_sessionmaker) -> None:
    """Fire-and-forget wrapper: failures are logged, never raised."""
    try:
        async with session_factory() as db:
            await sync_requests_to_sheet(db)
    except (TPVError, httpx.HTTPError) as e:
        logger.error("Google Sheets sync failed: %s", e)
