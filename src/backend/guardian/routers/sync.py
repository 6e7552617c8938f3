"""
Email sync router for scanning the mailbox for subscription emails.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional

from guardian.config import settings
from guardian.models.subscription import EmailScanSummary
from guardian.services.ingestion import IngestionService
from guardian.utils.errors import UpstreamUnavailable

router = APIRouter(prefix="/sync", tags=["sync"])


class SyncRequest(BaseModel):
    """Request model for sync endpoint."""
    query: Optional[str] = None
    max_results: Optional[int] = None


@router.post("", response_model=EmailScanSummary)
async def sync_emails(request: SyncRequest):
    """
    Scan Gmail for subscription emails.

    Messages that fail individually are skipped and counted; only a failed
    search or an unreachable mailbox fails the request.
    """
    try:
        ingestion = IngestionService()
        return ingestion.scan_emails(
            query=request.query,
            max_results=request.max_results
        )

    except UpstreamUnavailable as e:
        raise HTTPException(
            status_code=502,
            detail=f"Email scan failed: {str(e)}"
        )


@router.get("/status")
async def sync_status():
    """
    Check if email sync service is configured and ready.
    """
    config_status = {
        "gmail_configured": bool(settings.GMAIL_CLIENT_ID and
                                settings.GMAIL_CLIENT_SECRET and
                                settings.GMAIL_REFRESH_TOKEN),
        "supabase_connected": bool(settings.SUPABASE_URL and
                                   settings.SUPABASE_SERVICE_KEY)
    }

    return {
        "ready": all(config_status.values()),
        "config": config_status
    }
