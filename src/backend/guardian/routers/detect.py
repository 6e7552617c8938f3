"""
Page detection router: run the subscription detector over a page snapshot.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from guardian.models.subscription import DetectedSubscription, DetectionResult
from guardian.services.page_detector import PageDetector, PageSnapshot
from guardian.utils.errors import MalformedInput

router = APIRouter(prefix="/detect", tags=["detect"])
logger = logging.getLogger(__name__)


class DetectRequest(BaseModel):
    """Page location and its serialized DOM."""
    url: str
    html: str
    full: bool = False


class DetectResponse(BaseModel):
    detected: bool
    result: Optional[DetectionResult] = None
    subscription: Optional[DetectedSubscription] = None


@router.post("", response_model=DetectResponse)
async def detect_page(request: DetectRequest):
    """
    Detect subscription evidence on a page.

    With `full` set, a complete subscription record is built (requires a
    price); otherwise the first keyword/price hit is returned.
    Unreadable markup is reported as "not detected".
    """
    try:
        detector = PageDetector(PageSnapshot.from_html(request.html, request.url))
        if request.full:
            subscription = detector.detect_subscription()
            return DetectResponse(detected=subscription is not None, subscription=subscription)

        result = detector.detect()
        return DetectResponse(detected=result is not None, result=result)

    except MalformedInput as e:
        logger.warning("Malformed page snapshot", extra={
            "url": request.url,
            "error": str(e)
        })
        return DetectResponse(detected=False)
