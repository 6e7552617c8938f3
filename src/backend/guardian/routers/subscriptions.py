"""
Subscriptions router: persist a reviewed subscription for a user.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Dict, Optional, Union

from guardian.models.subscription import DetectedSubscription, EmailSubscription
from guardian.services.storage import SubscriptionStore
from guardian.utils.errors import UpstreamUnavailable

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class SaveSubscriptionRequest(BaseModel):
    user_id: str
    subscription: Union[DetectedSubscription, EmailSubscription]


class SaveSubscriptionResponse(BaseModel):
    success: bool
    row: Optional[Dict] = None


@router.post("", response_model=SaveSubscriptionResponse)
async def save_subscription(request: SaveSubscriptionRequest):
    """Store a subscription the user confirmed."""
    try:
        row = SubscriptionStore().save(request.user_id, request.subscription)
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))

    return SaveSubscriptionResponse(success=True, row=row)
