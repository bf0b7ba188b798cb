"""Service layer for the publisher migration."""

from .validator import PublisherMigrationValidator, render_html_report
from .status_tracker import (
    EventKind,
    MigrationStatusTracker,
    SessionNotFoundError,
    SessionStateError,
    TrackerEvent,
)
from .rollback import (
    HighRiskRollbackError,
    MigrationRollbackService,
    RollbackError,
    SnapshotNotFoundError,
)
from .channels import EmailChannel, SMTPEmailChannel, SlackWebhookChannel, WebhookChannel
from .notifier import (
    EmailNotificationSettings,
    MigrationNotifier,
    MilestoneSettings,
    NotificationConfig,
    NotificationFrequency,
    WebhookNotificationSettings,
)
from .invitations import InvitationResults, InvitationService

__all__ = [
    "PublisherMigrationValidator",
    "render_html_report",
    "EventKind",
    "MigrationStatusTracker",
    "SessionNotFoundError",
    "SessionStateError",
    "TrackerEvent",
    "HighRiskRollbackError",
    "MigrationRollbackService",
    "RollbackError",
    "SnapshotNotFoundError",
    "EmailChannel",
    "SMTPEmailChannel",
    "SlackWebhookChannel",
    "WebhookChannel",
    "EmailNotificationSettings",
    "MigrationNotifier",
    "MilestoneSettings",
    "NotificationConfig",
    "NotificationFrequency",
    "WebhookNotificationSettings",
    "InvitationResults",
    "InvitationService",
]
