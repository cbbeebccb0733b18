# services/mail.py
# ============================================================================
# STRIPE PAYMENT FAILURE MONITOR - MAIL TRANSPORT
# ============================================================================
# Gmail API transport (users.messages.send with a base64url raw message)
# plus an in-memory transport for dry runs and tests.
# ============================================================================

import asyncio
import base64
import email
import threading
from email import policy
from abc import ABC, abstractmethod
from email.message import Message
from typing import Any, Dict, List, Optional

import structlog

from payment_monitor.config import Settings
from payment_monitor.exceptions import MailTransportNotConfigured

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"


def encode_raw_message(message: Message) -> str:
    """base64url-encode a whole MIME message, without padding."""
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


def decode_raw_message(raw: str) -> Message:
    padded = raw + "=" * (-len(raw) % 4)
    return email.message_from_bytes(base64.urlsafe_b64decode(padded), policy=policy.default)


class IMailTransport(ABC):
    """Outbound mail interface"""

    @abstractmethod
    async def send(self, message: Message) -> Dict[str, Any]:
        """Send a MIME message; returns the provider response."""
        pass


class GmailTransport(IMailTransport):
    """
    Sends through the Gmail API as the mailbox owning the refresh token.

    The API client is built on first send so the service can start without
    Google credentials.
    """

    def __init__(
        self,
        refresh_token: str,
        client_id: str = "",
        client_secret: str = "",
        token_uri: str = "https://oauth2.googleapis.com/token",
        user_id: str = "me",
    ):
        self.refresh_token = refresh_token
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri
        self.user_id = user_id
        self._service = None
        # httplib2 under googleapiclient is not thread-safe
        self._lock = threading.Lock()
        self._logger = structlog.get_logger().bind(component="gmail_transport")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GmailTransport":
        return cls(
            refresh_token=settings.GMAIL_REFRESH_TOKEN,
            client_id=settings.GMAIL_CLIENT_ID,
            client_secret=settings.GMAIL_CLIENT_SECRET,
            token_uri=settings.GMAIL_TOKEN_URI,
        )

    def _build_service(self):
        if not self.refresh_token:
            raise MailTransportNotConfigured("GMAIL_REFRESH_TOKEN not set")

        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        credentials = Credentials(
            token=None,
            refresh_token=self.refresh_token,
            client_id=self.client_id or None,
            client_secret=self.client_secret or None,
            token_uri=self.token_uri,
            scopes=[GMAIL_SEND_SCOPE],
        )
        service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        self._logger.info("gmail_service_built")
        return service

    async def send(self, message: Message) -> Dict[str, Any]:
        raw = encode_raw_message(message)

        def deliver():
            with self._lock:
                if self._service is None:
                    self._service = self._build_service()
                return self._service.users().messages().send(
                    userId=self.user_id,
                    body={"raw": raw},
                ).execute()

        result = await asyncio.get_running_loop().run_in_executor(None, deliver)
        self._logger.info("gmail_message_sent", message_id=result.get("id"))
        return result


class InMemoryMailTransport(IMailTransport):
    """Records messages instead of sending them."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.sent: List[Message] = []
        self.fail_with = fail_with

    async def send(self, message: Message) -> Dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        # Round-trip through the wire encoding so tests see what Gmail would
        self.sent.append(decode_raw_message(encode_raw_message(message)))
        return {"id": f"mem-{len(self.sent)}", "labelIds": ["SENT"]}


def build_mail_transport(settings: Settings) -> IMailTransport:
    if settings.MAIL_BACKEND == "memory":
        return InMemoryMailTransport()
    return GmailTransport.from_settings(settings)
