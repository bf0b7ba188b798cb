"""Service wiring for the API."""

import logging
from dataclasses import dataclass
from functools import lru_cache

from ..orchestrator import PublisherMigrationService
from ..services.invitations import InvitationService
from ..services.notifier import MigrationNotifier
from ..services.rollback import MigrationRollbackService
from ..services.status_tracker import MigrationStatusTracker
from ..services.validator import PublisherMigrationValidator
from ..settings import Settings
from ..stores.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived services shared by every request."""
    settings: Settings
    store: BaseStore
    tracker: MigrationStatusTracker
    rollback: MigrationRollbackService
    migration: PublisherMigrationService
    validator: PublisherMigrationValidator


def build_container(settings: Settings) -> ServiceContainer:
    """Create the store and services described by the settings."""
    store = settings.create_store()
    tracker = MigrationStatusTracker()
    rollback = MigrationRollbackService(store, tracker)
    email_channel = settings.create_email_channel()

    notifier = MigrationNotifier(
        settings.notification_config(),
        email_channel=email_channel,
        webhook_channel=settings.create_webhook_channel(),
    )
    invitations = InvitationService(store, email_channel, settings.app_base_url)

    migration = PublisherMigrationService(
        store,
        tracker=tracker,
        rollback=rollback,
        invitations=invitations,
        notifier=notifier,
    )
    return ServiceContainer(
        settings=settings,
        store=store,
        tracker=tracker,
        rollback=rollback,
        migration=migration,
        validator=migration.validator,
    )


@lru_cache
def get_container() -> ServiceContainer:
    """Get the cached service container."""
    return build_container(Settings.from_env())
