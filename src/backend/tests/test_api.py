"""
Tests for the HTTP API routers.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import io
from unittest.mock import patch

from fastapi.testclient import TestClient
from google.auth.exceptions import RefreshError
from PIL import Image

from guardian.main import app
from guardian.models.subscription import EmailScanSummary, EmailSubscription
from guardian.utils.errors import MalformedInput, UpstreamUnavailable

client = TestClient(app)


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', (10, 10), 'white').save(buffer, format='PNG')
    return buffer.getvalue()


class TestHealth:

    def test_root_and_health(self):
        assert client.get("/").json()["status"] == "running"
        assert client.get("/health").json() == {"status": "healthy"}


class TestDetectEndpoint:

    def test_keyword_hit(self):
        response = client.post("/detect", json={
            "url": "https://example.com/",
            "html": "<html><body><p>Subscribe now for premium access</p></body></html>"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["detected"] is True
        assert data["result"]["kind"] == "keyword"
        assert data["result"]["keyword"] == "subscribe"

    def test_full_record(self):
        response = client.post("/detect", json={
            "url": "https://example.com/",
            "html": "<html><body><p>Pro plan $12.00/month</p></body></html>",
            "full": True
        })

        data = response.json()
        assert data["detected"] is True
        assert data["subscription"]["price"] == 12.0

    def test_nothing_found(self):
        response = client.post("/detect", json={
            "url": "https://example.com/",
            "html": "<html><body><p>Hello</p></body></html>"
        })
        assert response.json() == {"detected": False, "result": None, "subscription": None}

    @patch('guardian.routers.detect.PageSnapshot.from_html', side_effect=MalformedInput("broken"))
    def test_malformed_page(self, mock_from_html):
        response = client.post("/detect", json={"url": "https://example.com/", "html": "<"})

        assert response.status_code == 200
        assert response.json()["detected"] is False


class TestSyncEndpoint:

    @patch('guardian.routers.sync.IngestionService')
    def test_sync(self, mock_ingestion):
        mock_ingestion.return_value.scan_emails.return_value = EmailScanSummary(
            subscriptions=[EmailSubscription(service_name="Netflix", price=15.49)],
            messages_checked=3,
            messages_skipped=1,
            errors=["m2: Undecodable text/plain part"]
        )

        response = client.post("/sync", json={"max_results": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["messages_checked"] == 3
        assert data["subscriptions"][0]["service_name"] == "Netflix"
        mock_ingestion.return_value.scan_emails.assert_called_once_with(query=None, max_results=3)

    @patch('guardian.routers.sync.IngestionService')
    def test_sync_upstream_failure(self, mock_ingestion):
        mock_ingestion.return_value.scan_emails.side_effect = UpstreamUnavailable("Failed to search emails")

        response = client.post("/sync", json={})
        assert response.status_code == 502

    @patch('guardian.services.email.build')
    def test_sync_expired_credentials(self, mock_build):
        gmail = mock_build.return_value
        gmail.users.return_value.messages.return_value.list.return_value.execute.side_effect = \
            RefreshError("invalid_grant")

        response = client.post("/sync", json={})

        assert response.status_code == 502
        assert "Failed to search emails" in response.json()["detail"]

    def test_status(self):
        data = client.get("/sync/status").json()
        assert set(data["config"]) == {"gmail_configured", "supabase_connected"}
        assert isinstance(data["ready"], bool)


class TestUploadEndpoint:

    def test_rejects_file_type(self):
        response = client.post("/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    @patch('guardian.routers.upload.OCRService')
    def test_document_parsed(self, mock_ocr):
        mock_ocr.return_value.extract_text.return_value = "Your Spotify subscription\n$9.99/month"

        response = client.post("/upload", files={"file": ("receipt.png", png_bytes(), "image/png")})

        assert response.status_code == 200
        data = response.json()
        assert data["subscription"]["service_name"] == "Spotify"
        assert data["subscription"]["price"] == 9.99

    @patch('guardian.routers.upload.OCRService')
    def test_ocr_unavailable(self, mock_ocr):
        mock_ocr.return_value.extract_text.side_effect = UpstreamUnavailable("Document processing is unavailable")

        response = client.post("/upload", files={"file": ("receipt.png", png_bytes(), "image/png")})

        assert response.status_code == 503
        assert "manually" in response.json()["detail"]

    @patch('guardian.routers.upload.OCRService')
    def test_no_text(self, mock_ocr):
        mock_ocr.return_value.extract_text.side_effect = MalformedInput("No text could be extracted")

        response = client.post("/upload", files={"file": ("receipt.png", png_bytes(), "image/png")})
        assert response.status_code == 422


class TestSubscriptionsEndpoint:

    @patch('guardian.routers.subscriptions.SubscriptionStore')
    def test_save(self, mock_store):
        mock_store.return_value.save.return_value = {"id": "sub-1"}

        response = client.post("/subscriptions", json={
            "user_id": "user-1",
            "subscription": {"service_name": "Netflix", "price": 15.49, "url": "https://netflix.com"}
        })

        assert response.status_code == 200
        assert response.json() == {"success": True, "row": {"id": "sub-1"}}

    @patch('guardian.routers.subscriptions.SubscriptionStore')
    def test_save_failure(self, mock_store):
        mock_store.return_value.save.side_effect = UpstreamUnavailable("Failed to save subscription")

        response = client.post("/subscriptions", json={
            "user_id": "user-1",
            "subscription": {"service_name": "Adobe"}
        })
        assert response.status_code == 500
