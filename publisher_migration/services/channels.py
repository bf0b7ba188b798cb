"""Outbound delivery channels: SMTP email and chat webhooks."""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Dict, List, Optional

import requests

from .templates import NotificationMessage

logger = logging.getLogger(__name__)


class EmailChannel(ABC):
    """Something that can deliver a rendered message by email."""

    @abstractmethod
    def send(
        self,
        recipients: List[str],
        message: NotificationMessage,
        headers: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Send a message.

        Returns:
            Provider message ID
        """
        pass


class WebhookChannel(ABC):
    """Something that can post a short text message to a chat webhook."""

    @abstractmethod
    def post(self, text: str) -> None:
        pass


class SMTPEmailChannel(EmailChannel):
    """Sends multipart text/HTML email over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str = "Migration System <migrations@localhost>",
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30.0
    ):
        """
        Initialize the channel.

        Args:
            host: SMTP server host
            port: SMTP server port
            sender: From address
            username: Login user; no login when empty
            password: Login password
            use_tls: Upgrade the connection with STARTTLS
            timeout: Socket timeout in seconds
        """
        if username and not password:
            raise ValueError("SMTP password is required when a username is set")
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(
        self,
        recipients: List[str],
        message: NotificationMessage,
        headers: Optional[Dict[str, str]] = None
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Date"] = formatdate(localtime=False)
        domain = self.sender.rsplit("@", 1)[-1].strip("> ") if "@" in self.sender else None
        msg["Message-ID"] = make_msgid(domain=domain)
        msg["Subject"] = message.subject
        for name, value in (headers or {}).items():
            msg[name] = value

        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def send(
        self,
        recipients: List[str],
        message: NotificationMessage,
        headers: Optional[Dict[str, str]] = None
    ) -> str:
        if not recipients:
            raise ValueError("No email recipients configured")

        msg = self.build_message(recipients, message, headers)

        with smtplib.SMTP(host=self.host, port=self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            if self.use_tls:
                smtp.starttls()
                smtp.ehlo()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

        logger.debug(f"Sent email '{message.subject}' to {len(recipients)} recipients")
        return str(msg["Message-ID"] or "")


class SlackWebhookChannel(WebhookChannel):
    """Posts messages to a Slack-compatible incoming webhook."""

    def __init__(
        self,
        url: str,
        username: str = "Migration Bot",
        icon_emoji: str = ":robot_face:",
        channel: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.url = url
        self.username = username
        self.icon_emoji = icon_emoji
        self.channel = channel
        self.timeout = timeout
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session for webhook calls."""
        session = requests.Session()
        session.headers["Content-Type"] = "application/json"
        return session

    def build_payload(self, text: str) -> Dict[str, str]:
        payload = {
            "text": text,
            "username": self.username,
            "icon_emoji": self.icon_emoji,
        }
        if self.channel:
            payload["channel"] = self.channel
        return payload

    def post(self, text: str) -> None:
        response = self._session.post(self.url, json=self.build_payload(text), timeout=self.timeout)
        response.raise_for_status()
