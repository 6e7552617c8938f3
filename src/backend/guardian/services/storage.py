"""
Persistence for finished subscription records in the Supabase subscriptions table.
"""

import logging
from typing import Dict, Optional, Union

from guardian.config import settings
from guardian.models.subscription import DetectedSubscription, EmailSubscription
from guardian.utils.errors import UpstreamUnavailable
from guardian.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)

SubscriptionRecord = Union[DetectedSubscription, EmailSubscription]


class SubscriptionStore:
    """Stores detected subscriptions for a user."""

    def __init__(self, client=None):
        """Initialize store."""
        self.supabase = client or get_supabase_client()
        self.table_name = settings.SUBSCRIPTIONS_TABLE

    def to_row(self, user_id: str, record: SubscriptionRecord) -> Dict:
        """
        Map a record onto a subscriptions row.

        Fields the table does not hold (platform, provenance) are dropped.
        """
        row = record.model_dump(mode='json', exclude_none=True)
        row.pop('platform', None)
        row.pop('source_message_id', None)
        row['user_id'] = user_id
        row['status'] = 'active'
        return row

    def save(self, user_id: str, record: SubscriptionRecord) -> Optional[Dict]:
        """
        Insert one subscription row.

        Returns:
            The stored row as returned by Supabase

        Raises:
            UpstreamUnavailable: If the insert fails; nothing is stored
        """
        row = self.to_row(user_id, record)
        try:
            response = self.supabase.table(self.table_name).insert(row).execute()
        except Exception as e:
            logger.error("Error saving subscription", extra={
                "user_id": user_id,
                "service_name": row.get('service_name')
            }, exc_info=True)
            raise UpstreamUnavailable("Failed to save subscription") from e

        logger.info("Saved subscription", extra={
            "user_id": user_id,
            "service_name": row.get('service_name')
        })
        return response.data[0] if response.data else None
