"""
Tests for batch email scanning and Gmail message decoding.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import base64
from unittest.mock import Mock

import pytest
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from guardian.services.email import EmailService
from guardian.services.ingestion import IngestionService
from guardian.utils.errors import MalformedInput, UpstreamUnavailable


def encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')


class FakeEmailService:
    """In-memory mailbox; bodies listed as None fail to decode."""

    def __init__(self, messages):
        self.messages = messages

    def search_messages(self, query, max_results=50):
        return list(self.messages)[:max_results]

    def get_message(self, message_id):
        return {'id': message_id}

    def extract_email_metadata(self, message):
        subject, _ = self.messages[message['id']]
        return {'subject': subject, 'from': '', 'date': ''}

    def extract_email_body(self, message):
        _, body = self.messages[message['id']]
        if body is None:
            raise MalformedInput("Undecodable text/plain part")
        return body


class TestScanEmails:

    def test_failed_message_is_skipped(self):
        mailbox = FakeEmailService({
            'm1': ("Your Netflix subscription", "$15.49/month, renews on March 5, 2025"),
            'm2': ("Your Hulu subscription", None),
            'm3': ("Spotify receipt", "Premium plan $10.99/month"),
        })

        summary = IngestionService(email_service=mailbox).scan_emails(query="subject:subscription")

        assert [s.source_message_id for s in summary.subscriptions] == ['m1', 'm3']
        assert [s.service_name for s in summary.subscriptions] == ['Netflix', 'Spotify']
        assert summary.messages_checked == 3
        assert summary.messages_skipped == 1
        assert len(summary.errors) == 1
        assert summary.errors[0].startswith('m2')

    def test_irrelevant_messages_are_not_errors(self):
        mailbox = FakeEmailService({'m1': ("Team lunch", "Pizza at noon")})
        summary = IngestionService(email_service=mailbox).scan_emails()

        assert summary.subscriptions == []
        assert summary.messages_checked == 1
        assert summary.messages_skipped == 0

    def test_search_failure_propagates(self):
        mailbox = Mock()
        mailbox.search_messages.side_effect = UpstreamUnavailable("Failed to search emails")

        with pytest.raises(UpstreamUnavailable):
            IngestionService(email_service=mailbox).scan_emails()


@pytest.fixture
def email_service():
    service = EmailService.__new__(EmailService)
    service.creds = None
    service.service = Mock()
    return service


class TestEmailService:

    def test_prefers_plain_text(self, email_service):
        message = {'payload': {'mimeType': 'multipart/alternative', 'parts': [
            {'mimeType': 'text/plain', 'body': {'data': encode(b'Plain body')}},
            {'mimeType': 'text/html', 'body': {'data': encode(b'<p>Html body</p>')}},
        ]}}
        assert email_service.extract_email_body(message) == 'Plain body'

    def test_html_only_is_converted(self, email_service):
        message = {'payload': {'mimeType': 'text/html',
                               'body': {'data': encode(b'<p>Your <b>plan</b> renews</p>')}}}
        assert 'Your plan renews' in email_service.extract_email_body(message)

    def test_attachments_are_ignored(self, email_service):
        message = {'payload': {'mimeType': 'multipart/mixed', 'parts': [
            {'mimeType': 'application/pdf', 'filename': 'invoice.pdf',
             'body': {'data': encode(b'%PDF')}},
        ]}}
        assert email_service.extract_email_body(message) == ''

    def test_undecodable_part(self, email_service):
        message = {'payload': {'mimeType': 'text/plain',
                               'body': {'data': encode(b'\xff\xfe\xfa')}}}
        with pytest.raises(MalformedInput):
            email_service.extract_email_body(message)

    def test_metadata(self, email_service):
        message = {'payload': {'headers': [
            {'name': 'Subject', 'value': 'Your Netflix subscription'},
            {'name': 'From', 'value': 'Netflix <info@mailer.netflix.com>'},
            {'name': 'X-Other', 'value': 'ignored'},
        ]}}
        metadata = email_service.extract_email_metadata(message)
        assert metadata['subject'] == 'Your Netflix subscription'
        assert metadata['from'] == 'Netflix <info@mailer.netflix.com>'
        assert metadata['date'] == ''

    def test_search_returns_ids(self, email_service):
        messages = email_service.service.users.return_value.messages.return_value
        messages.list.return_value.execute.return_value = {'messages': [{'id': 'a'}, {'id': 'b'}]}

        assert email_service.search_messages("subject:invoice", max_results=5) == ['a', 'b']

    def test_search_http_error(self, email_service):
        messages = email_service.service.users.return_value.messages.return_value
        messages.list.return_value.execute.side_effect = HttpError(
            Mock(status=500, reason='Server Error'), b'error'
        )

        with pytest.raises(UpstreamUnavailable):
            email_service.search_messages("subject:invoice")

    def test_search_revoked_refresh_token(self, email_service):
        messages = email_service.service.users.return_value.messages.return_value
        messages.list.return_value.execute.side_effect = RefreshError("invalid_grant")

        with pytest.raises(UpstreamUnavailable):
            email_service.search_messages("subject:invoice")

    def test_get_message_network_failure(self, email_service):
        messages = email_service.service.users.return_value.messages.return_value
        messages.get.return_value.execute.side_effect = TransportError("connection reset")

        with pytest.raises(UpstreamUnavailable):
            email_service.get_message("m1")
