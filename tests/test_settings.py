"""Tests for environment-driven settings."""

import pytest

from publisher_migration.services.channels import SMTPEmailChannel, SlackWebhookChannel
from publisher_migration.services.notifier import NotificationFrequency
from publisher_migration.settings import Settings
from publisher_migration.stores.memory import InMemoryStore
from publisher_migration.stores.sql import SQLStore


class TestFromEnv:

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.database_url == ""
        assert settings.notify_emails == []
        assert settings.notify_frequency == NotificationFrequency.REALTIME
        assert settings.smtp_port == 587
        assert settings.smtp_use_tls is True
        assert settings.log_level == "INFO"

    def test_values(self):
        settings = Settings.from_env({
            "APP_BASE_URL": "https://app.example.com/",
            "MIGRATION_NOTIFY_EMAILS": "ops@example.com, ,cto@example.com",
            "MIGRATION_NOTIFY_FREQUENCY": "Daily",
            "SMTP_HOST": "smtp.example.com",
            "SMTP_PORT": "2525",
            "SMTP_USE_TLS": "no",
            "LOG_LEVEL": "debug",
        })

        assert settings.notify_emails == ["ops@example.com", "cto@example.com"]
        assert settings.notify_frequency == NotificationFrequency.DAILY
        assert settings.smtp_port == 2525
        assert settings.smtp_use_tls is False
        assert settings.log_level == "DEBUG"
        assert settings.dashboard_url == "https://app.example.com/admin/publisher-migration"

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            Settings.from_env({"MIGRATION_NOTIFY_FREQUENCY": "weekly"})


class TestFactories:

    def test_store_selection(self, tmp_path):
        assert isinstance(Settings().create_store(), InMemoryStore)

        store = Settings(database_url=f"sqlite:///{tmp_path}/s.db").create_store()

        assert isinstance(store, SQLStore)
        assert store.list_publishers() == []

    def test_channels_need_configuration(self):
        assert Settings().create_email_channel() is None
        assert Settings().create_webhook_channel() is None

        settings = Settings(smtp_host="smtp.example.com", slack_webhook_url="https://hooks.example.com/x")
        assert isinstance(settings.create_email_channel(), SMTPEmailChannel)
        assert isinstance(settings.create_webhook_channel(), SlackWebhookChannel)

    def test_notification_config(self):
        config = Settings(notify_emails=["ops@example.com"]).notification_config()

        assert config.email.enabled is True
        assert config.email.recipients == ["ops@example.com"]
        assert config.webhook.enabled is False
