"""
Upload API router: recognize a receipt or invoice and pre-fill a subscription.
"""

from fastapi import APIRouter, HTTPException, UploadFile, File
from pydantic import BaseModel
from typing import List, Optional
import logging

from guardian.config import settings
from guardian.models.subscription import EmailSubscription
from guardian.services.ocr import OCRService
from guardian.services.parser import SubscriptionParser
from guardian.utils.errors import MalformedInput, UpstreamUnavailable

router = APIRouter(prefix="/upload", tags=["upload"])
logger = logging.getLogger(__name__)

ALLOWED_TYPES = ["application/pdf", "image/jpeg", "image/jpg", "image/png"]


class UploadResponse(BaseModel):
    filename: Optional[str] = None
    subscription: Optional[EmailSubscription] = None
    progress: List[str] = []


@router.post("", response_model=UploadResponse)
async def upload_document(file: UploadFile = File(...)):
    """
    Extract a subscription from an uploaded document (PDF, JPG, PNG).

    A document with no recognizable subscription returns `subscription: null`
    so the client can fall back to manual entry.
    """
    if file.content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type: {file.content_type}. Allowed: PDF, JPG, PNG"
        )

    file_data = await file.read()
    file_size_mb = len(file_data) / (1024 * 1024)
    if file_size_mb > settings.MAX_UPLOAD_MB:
        raise HTTPException(
            status_code=400,
            detail=f"File too large: {file_size_mb:.2f}MB. Maximum: {settings.MAX_UPLOAD_MB}MB"
        )

    statuses: List[str] = []

    def track(status: str, fraction: float) -> None:
        if not statuses or statuses[-1] != status:
            statuses.append(status)

    try:
        text = OCRService().extract_text(
            file_data=file_data,
            mime_type=file.content_type,
            filename=file.filename or "",
            progress=track
        )
    except UpstreamUnavailable as e:
        logger.error("Text recognition unavailable", extra={"filename": file.filename})
        raise HTTPException(
            status_code=503,
            detail=f"{str(e)}. Please enter the details manually."
        )
    except MalformedInput as e:
        raise HTTPException(status_code=422, detail=str(e))

    subscription = SubscriptionParser().parse_document(text, filename=file.filename)
    logger.info("Processed uploaded document", extra={
        "filename": file.filename,
        "found": subscription is not None
    })

    return UploadResponse(
        filename=file.filename,
        subscription=subscription,
        progress=statuses
    )
