"""Environment-driven settings for the CLI and API."""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .services.channels import SMTPEmailChannel, SlackWebhookChannel
from .services.notifier import (
    EmailNotificationSettings,
    NotificationConfig,
    NotificationFrequency,
    WebhookNotificationSettings,
)
from .stores.base import BaseStore
from .stores.memory import InMemoryStore
from .stores.sql import SQLStore

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime settings, normally read from the environment."""
    database_url: str = ""
    app_base_url: str = "http://localhost:8000"
    notify_emails: List[str] = field(default_factory=list)
    notify_frequency: NotificationFrequency = NotificationFrequency.REALTIME
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    email_from: str = "Migration System <migrations@localhost>"
    slack_webhook_url: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Load settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ValueError: If a numeric or enum value cannot be parsed
        """
        env = os.environ if environ is None else environ

        frequency = env.get("MIGRATION_NOTIFY_FREQUENCY", NotificationFrequency.REALTIME.value)
        try:
            notify_frequency = NotificationFrequency(frequency.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown MIGRATION_NOTIFY_FREQUENCY: {frequency}")

        return cls(
            database_url=env.get("DATABASE_URL", ""),
            app_base_url=env.get("APP_BASE_URL", "http://localhost:8000"),
            notify_emails=_split_list(env.get("MIGRATION_NOTIFY_EMAILS")),
            notify_frequency=notify_frequency,
            smtp_host=env.get("SMTP_HOST") or None,
            smtp_port=int(env.get("SMTP_PORT", "587")),
            smtp_username=env.get("SMTP_USERNAME") or None,
            smtp_password=env.get("SMTP_PASSWORD") or None,
            smtp_use_tls=env.get("SMTP_USE_TLS", "true").strip().lower() in _TRUE_VALUES,
            email_from=env.get("MIGRATION_EMAIL_FROM", "Migration System <migrations@localhost>"),
            slack_webhook_url=env.get("SLACK_WEBHOOK_URL") or None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def dashboard_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}/admin/publisher-migration"

    def create_store(self) -> BaseStore:
        """SQL store when DATABASE_URL is set, in-memory otherwise."""
        if self.database_url:
            store = SQLStore(self.database_url)
            store.create_all()
            return store
        logger.warning("DATABASE_URL is not set; using an in-memory store")
        return InMemoryStore()

    def create_email_channel(self) -> Optional[SMTPEmailChannel]:
        if not self.smtp_host:
            return None
        return SMTPEmailChannel(
            host=self.smtp_host,
            port=self.smtp_port,
            sender=self.email_from,
            username=self.smtp_username,
            password=self.smtp_password,
            use_tls=self.smtp_use_tls,
        )

    def create_webhook_channel(self) -> Optional[SlackWebhookChannel]:
        if not self.slack_webhook_url:
            return None
        return SlackWebhookChannel(self.slack_webhook_url)

    def notification_config(self) -> NotificationConfig:
        """Build the notifier configuration from these settings."""
        return NotificationConfig(
            email=EmailNotificationSettings(
                enabled=bool(self.notify_emails),
                recipients=list(self.notify_emails),
                frequency=self.notify_frequency,
            ),
            webhook=WebhookNotificationSettings(
                enabled=bool(self.slack_webhook_url),
                url=self.slack_webhook_url,
            ),
            dashboard_url=self.dashboard_url,
        )
