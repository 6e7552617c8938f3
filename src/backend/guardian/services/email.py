"""
Email transport service for the Gmail API.
Read-only access: search for candidate messages, fetch them, flatten bodies to text.
"""

import base64
import binascii
import logging
from typing import Dict, List, Optional, Tuple
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
import html2text

from guardian.config import settings
from guardian.utils.errors import MalformedInput, UpstreamUnavailable

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ['https://www.googleapis.com/auth/gmail.readonly']


class EmailService:
    """Service for interacting with Gmail API."""

    def __init__(self, credentials: Optional[Credentials] = None):
        """
        Initialize Gmail service.

        Args:
            credentials: OAuth credentials; built from settings when omitted
        """
        self.creds = credentials
        self.service = None
        self._initialize_service()

    def _initialize_service(self):
        """Set up Gmail API service with credentials."""
        try:
            if self.creds is None:
                self.creds = Credentials(
                    token=None,
                    refresh_token=settings.GMAIL_REFRESH_TOKEN,
                    token_uri="https://oauth2.googleapis.com/token",
                    client_id=settings.GMAIL_CLIENT_ID,
                    client_secret=settings.GMAIL_CLIENT_SECRET,
                    scopes=GMAIL_SCOPES
                )

            self.service = build('gmail', 'v1', credentials=self.creds, cache_discovery=False)
            logger.debug("Gmail service initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize Gmail service", exc_info=True)
            raise UpstreamUnavailable("Gmail is not reachable") from e

    def search_messages(self, query: str, max_results: int = 50) -> List[str]:
        """
        Search the mailbox and return matching message ids.

        Args:
            query: Gmail search query (e.g., "subject:(subscription OR invoice)")
            max_results: Upper bound on returned ids

        Returns:
            List of message ids, newest first

        Raises:
            UpstreamUnavailable: If the search call fails
        """
        try:
            results = self.service.users().messages().list(
                userId='me',
                q=query,
                maxResults=max_results
            ).execute()
        # Credentials are refreshed lazily, so auth and transport errors surface here
        except (HttpError, GoogleAuthError) as error:
            logger.error("Gmail API error searching messages", extra={
                "query": query,
                "error": str(error)
            }, exc_info=True)
            raise UpstreamUnavailable("Failed to search emails") from error

        message_ids = [m['id'] for m in results.get('messages', [])][:max_results]
        logger.debug("Searched Gmail messages", extra={
            "count": len(message_ids),
            "query": query
        })
        return message_ids

    def get_message(self, message_id: str) -> Dict:
        """
        Get full message details by ID.

        Raises:
            UpstreamUnavailable: If the message cannot be fetched
        """
        try:
            return self.service.users().messages().get(
                userId='me',
                id=message_id,
                format='full'
            ).execute()
        except (HttpError, GoogleAuthError) as error:
            logger.warning("Error fetching message", extra={
                "message_id": message_id,
                "error": str(error)
            })
            raise UpstreamUnavailable(f"Failed to get email {message_id}") from error

    def extract_email_metadata(self, message: Dict) -> Dict:
        """
        Extract useful metadata from message headers.

        Returns:
            Dictionary with subject, from, date
        """
        metadata = {'subject': '', 'from': '', 'date': ''}

        for header in message.get('payload', {}).get('headers', []):
            name = header.get('name', '').lower()
            if name in metadata:
                metadata[name] = header.get('value', '')

        return metadata

    def extract_email_body(self, message: Dict) -> str:
        """
        Flatten a message body to plain text.

        Prefers text/plain parts; falls back to HTML converted with html2text.

        Raises:
            MalformedInput: If a body part cannot be decoded
        """
        html_body, text_body = self._collect_bodies(message.get('payload', {}))

        if text_body:
            return text_body
        if html_body:
            return self.convert_html_to_text(html_body)
        return ''

    def _collect_bodies(self, payload: Dict) -> Tuple[Optional[str], Optional[str]]:
        html_parts: List[str] = []
        text_parts: List[str] = []

        def walk(part: Dict):
            """Recursively walk the MIME tree collecting body parts."""
            mime_type = part.get('mimeType', '')
            data = part.get('body', {}).get('data')

            if data and not part.get('filename'):
                decoded = self._decode_part(data, mime_type)
                if mime_type == 'text/html':
                    html_parts.append(decoded)
                else:
                    text_parts.append(decoded)

            for subpart in part.get('parts', []):
                walk(subpart)

        walk(payload)
        return ('\n'.join(html_parts) or None, '\n'.join(text_parts) or None)

    def _decode_part(self, data: str, mime_type: str) -> str:
        try:
            return base64.urlsafe_b64decode(data + '=' * (-len(data) % 4)).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise MalformedInput(f"Undecodable {mime_type or 'body'} part") from e

    def convert_html_to_text(self, html_content: str) -> str:
        """Convert HTML email to clean text."""
        h = html2text.HTML2Text()
        h.ignore_links = True
        h.ignore_images = True
        h.ignore_emphasis = True
        h.body_width = 0  # Don't wrap lines
        return h.handle(html_content)
