"""Manual trigger for the Google Sheets mirror."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tpv_api.core.config import settings
from tpv_api.core.database import get_db
from tpv_api.core.errors import ConfigurationError
from tpv_api.services.sheets import SheetsClient, sync_requests_to_sheet

router = APIRouter()
logger = logging.getLogger(__name__)


def get_sheets_client() -> SheetsClient:
    return SheetsClient()


@router.post("/google-sheets")
async def sync_google_sheets(
    db: AsyncSession = Depends(get_db),
    sheets: SheetsClient = Depends(get_sheets_client),
):
    """Overwrite the mirror sheet with every TPV request."""
    if not settings.sheets_configured():
        raise ConfigurationError("Google Sheets credentials not configured")

    rows_written = await sync_requests_to_sheet(db, sheets)
    return {
        "success": True,
        "message": "TPV requests synced to Google Sheets",
        "rowsWritten": rows_written,
    }
