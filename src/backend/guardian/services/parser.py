"""
Subscription parser for email messages and OCR'd documents.

Applies the same field extractors as the page detector to a subject line and
a flattened text body, producing one EmailSubscription per relevant message.
"""

import re
import logging
from pathlib import PurePath
from typing import Optional

from guardian.models.subscription import EmailSubscription, Platform
from guardian.services.extractors import (
    categorize_subscription,
    extract_price,
    find_billing_cycle,
    first_term_in,
    parse_calendar_date,
    platform_for_domain,
)
from guardian.utils.patterns import (
    DOCUMENT_NAME_PATTERN,
    NEXT_BILLING_PATTERNS,
    SENDER_SUBDOMAINS,
    SUBJECT_NAME_PATTERNS,
    SUBSCRIPTION_TERMS,
)

logger = logging.getLogger(__name__)

_SENDER_DOMAIN_RE = re.compile(r'@([A-Za-z0-9.-]+)')


def clean_service_name(name: str) -> str:
    """
    Normalize a raw service name.

    Drops anything other than word characters, spaces and hyphens, splits on
    whitespace/hyphens, title-cases each token and joins with single spaces.

    Examples:
        >>> clean_service_name("  adobe-creative   CLOUD!! ")
        'Adobe Creative Cloud'
    """
    stripped = re.sub(r'[^\w\s-]', '', name or '')
    tokens = [t for t in re.split(r'[\s-]+', stripped) if t]
    return ' '.join(t[:1].upper() + t[1:].lower() for t in tokens)


def sender_domain(sender: Optional[str]) -> Optional[str]:
    """Extract the domain from a From header ("Netflix <info@mailer.netflix.com>")."""
    if not sender:
        return None
    match = _SENDER_DOMAIN_RE.search(sender)
    if not match:
        return None
    return match.group(1).strip('.').lower() or None


def sender_label(sender: Optional[str]) -> Optional[str]:
    """
    Service label from a sender address: the first domain label that is not a
    generic mail subdomain ("billing@mail.netflix.com" → "netflix").
    """
    domain = sender_domain(sender)
    if not domain:
        return None

    labels = domain.split('.')
    while len(labels) > 2 and labels[0] in SENDER_SUBDOMAINS:
        labels = labels[1:]
    return labels[0] or None


class SubscriptionParser:
    """Service for turning message or document text into subscription records."""

    def is_subscription_related(self, subject: str, body: str) -> bool:
        """Coarse relevance filter: any subscription term in subject or body."""
        return (
            first_term_in(subject or '', SUBSCRIPTION_TERMS) is not None
            or first_term_in(body or '', SUBSCRIPTION_TERMS) is not None
        )

    def extract_service_name(self, subject: str, sender: Optional[str] = None) -> Optional[str]:
        """
        Resolve a service name from the subject line, falling back to the sender.

        Args:
            subject: Email subject
            sender: Raw From header

        Returns:
            Cleaned service name or None
        """
        for spec in SUBJECT_NAME_PATTERNS:
            match = spec.compiled.search(subject or '')
            if match and match.group(1).strip():
                name = clean_service_name(match.group(1))
                if name:
                    return name

        label = sender_label(sender)
        if label:
            return clean_service_name(label) or None
        return None

    def extract_next_billing_date(self, text: str) -> Optional[str]:
        """
        Find the next billing date announced in the text.

        Returns:
            Date in YYYY-MM-DD format or None
        """
        for spec in NEXT_BILLING_PATTERNS:
            for match in spec.compiled.finditer(text or ''):
                parsed = parse_calendar_date(match.group(1))
                if parsed is not None:
                    return parsed.isoformat()
        return None

    def parse_email(
        self,
        subject: str,
        body: str,
        sender: Optional[str] = None,
        message_id: Optional[str] = None
    ) -> Optional[EmailSubscription]:
        """
        Build a subscription record from one decoded email.

        Args:
            subject: Subject header
            body: Plain-text body (already flattened from MIME parts)
            sender: From header, used for the name fallback and platform lookup
            message_id: Provider message id kept as provenance

        Returns:
            EmailSubscription, or None when the message is unrelated or has
            no resolvable service name
        """
        if not self.is_subscription_related(subject, body):
            return None

        service_name = self.extract_service_name(subject, sender)
        if not service_name:
            logger.debug("Dropping message without service name", extra={
                "message_id": message_id,
                "subject": subject
            })
            return None

        platform = platform_for_domain(sender_domain(sender) or '') or Platform.OTHER
        return self._build(service_name, body or '', platform, message_id)

    def parse_document(self, text: str, filename: Optional[str] = None) -> Optional[EmailSubscription]:
        """
        Build a subscription record from OCR or PDF text.

        The first non-empty line stands in for a subject line; the name comes
        from subject patterns, then "subscription/plan/membership to X", then
        the file name without its extension.
        """
        text = text or ''
        subject = next((line.strip() for line in text.splitlines() if line.strip()), '')

        if not self.is_subscription_related(subject, text):
            return None

        service_name = self.extract_service_name(subject)
        if not service_name:
            match = DOCUMENT_NAME_PATTERN.compiled.search(text)
            if match:
                service_name = clean_service_name(match.group(1)) or None

        if not service_name and filename:
            service_name = clean_service_name(re.sub(r'[^A-Za-z0-9]+', ' ', PurePath(filename).stem)) or None

        if not service_name:
            logger.info("No service name found in document", extra={"filename": filename})
            return None

        return self._build(service_name, text, Platform.OTHER, None)

    def _build(
        self,
        service_name: str,
        body: str,
        platform: Platform,
        message_id: Optional[str]
    ) -> EmailSubscription:
        return EmailSubscription(
            service_name=service_name,
            price=extract_price(body),
            billing_cycle=find_billing_cycle(body),
            next_billing_date=self.extract_next_billing_date(body),
            category=categorize_subscription(platform, f"{service_name} {body}"),
            source_message_id=message_id,
        )
