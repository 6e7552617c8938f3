"""
Email ingestion worker that combines the Gmail transport and the subscription parser.
Messages are processed one at a time; a failure on one message never aborts the batch.
"""

import logging
from typing import Optional

from guardian.config import settings
from guardian.models.subscription import EmailScanSummary
from guardian.services.email import EmailService
from guardian.services.parser import SubscriptionParser

logger = logging.getLogger(__name__)


class IngestionService:
    """Service for scanning a mailbox for subscription emails."""

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        parser: Optional[SubscriptionParser] = None
    ):
        """Initialize ingestion service."""
        self.email_service = email_service or EmailService()
        self.parser = parser or SubscriptionParser()

    def scan_emails(
        self,
        query: Optional[str] = None,
        max_results: Optional[int] = None
    ) -> EmailScanSummary:
        """
        Search for candidate messages and extract a subscription from each.

        Args:
            query: Gmail search query (defaults to EMAIL_SCAN_QUERY)
            max_results: Maximum messages to inspect (defaults to EMAIL_SCAN_MAX_RESULTS)

        Returns:
            EmailScanSummary with the subscriptions found

        Raises:
            UpstreamUnavailable: If the search itself fails
        """
        query = query or settings.EMAIL_SCAN_QUERY
        max_results = max_results or settings.EMAIL_SCAN_MAX_RESULTS

        message_ids = self.email_service.search_messages(query, max_results=max_results)
        summary = EmailScanSummary()

        for message_id in message_ids:
            summary.messages_checked += 1
            try:
                subscription = self.process_message(message_id)
            except Exception as e:
                summary.messages_skipped += 1
                summary.errors.append(f"{message_id}: {e}")
                logger.warning("Skipping message that failed to process", extra={
                    "message_id": message_id,
                    "error": str(e)
                }, exc_info=True)
                continue

            if subscription is not None:
                summary.subscriptions.append(subscription)

        logger.info("Email scan complete", extra={
            "messages_checked": summary.messages_checked,
            "messages_skipped": summary.messages_skipped,
            "subscriptions_found": len(summary.subscriptions)
        })
        return summary

    def process_message(self, message_id: str):
        """
        Fetch, decode and parse one message.

        Returns:
            EmailSubscription or None when the message carries no subscription
        """
        message = self.email_service.get_message(message_id)
        metadata = self.email_service.extract_email_metadata(message)
        body = self.email_service.extract_email_body(message)

        return self.parser.parse_email(
            subject=metadata.get('subject', ''),
            body=body,
            sender=metadata.get('from'),
            message_id=message_id
        )
