"""Best-effort notifications about migration progress."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..models.migration import MigrationSession, SessionType
from ..utils import utcnow
from . import templates
from .channels import EmailChannel, WebhookChannel
from .status_tracker import EventKind, TrackerEvent

logger = logging.getLogger(__name__)


class NotificationFrequency(str, Enum):
    """How often the same notification may be repeated."""
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"


MIN_INTERVALS = {
    NotificationFrequency.REALTIME: timedelta(minutes=5),
    NotificationFrequency.HOURLY: timedelta(hours=1),
    NotificationFrequency.DAILY: timedelta(hours=24),
}

MIGRATION_SESSION_TYPES = (SessionType.DRY_RUN, SessionType.LIVE)


@dataclass
class EmailNotificationSettings:
    enabled: bool = True
    recipients: List[str] = field(default_factory=list)
    frequency: NotificationFrequency = NotificationFrequency.REALTIME


@dataclass
class WebhookNotificationSettings:
    enabled: bool = False
    url: Optional[str] = None
    channels: List[str] = field(default_factory=lambda: ["#migrations"])
    username: str = "Migration Bot"


@dataclass
class MilestoneSettings:
    enabled: bool = True
    thresholds: List[int] = field(default_factory=lambda: [25, 50, 75, 100])


@dataclass
class NotificationConfig:
    """Static notification configuration."""
    email: EmailNotificationSettings = field(default_factory=EmailNotificationSettings)
    webhook: WebhookNotificationSettings = field(default_factory=WebhookNotificationSettings)
    milestones: MilestoneSettings = field(default_factory=MilestoneSettings)
    dashboard_url: str = "http://localhost:8000/admin/publisher-migration"


class MigrationNotifier:
    """
    Turns migration events into email and chat messages.

    Each channel is enabled independently. Repeats of the same
    notification for the same session are suppressed inside a window
    derived from the email frequency; error notifications always go out.
    Delivery failures are logged and never raised.
    """

    def __init__(
        self,
        config: NotificationConfig,
        email_channel: Optional[EmailChannel] = None,
        webhook_channel: Optional[WebhookChannel] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config
        self.email_channel = email_channel
        self.webhook_channel = webhook_channel
        self._clock = clock or utcnow
        self._last_sent: Dict[str, datetime] = {}

    # -- Notifications -----------------------------------------------------

    def notify_migration_started(
        self,
        session_id: str,
        migration_type: str,
        stats: Optional[Dict[str, Any]] = None
    ) -> bool:
        stats = stats or {}
        message = templates.migration_started(
            session_id, migration_type, stats, self.config.dashboard_url, self._clock()
        )
        mode = "(DRY RUN)" if migration_type == SessionType.DRY_RUN.value else "LIVE"
        chat = (
            f"Publisher migration {mode} started\n"
            f"Session: {session_id}\n"
            f"Publishers to migrate: {stats.get('total_websites') or 'TBD'}"
        )
        return self._dispatch(f"migration_started_{session_id}", message, chat)

    def notify_migration_completed(self, session_id: str, results: Optional[Dict[str, Any]]) -> bool:
        results = results or {}
        message = templates.migration_completed(session_id, results, self.config.dashboard_url)
        chat = (
            f"Publisher migration completed\n"
            f"Session: {session_id}\n"
            f"Publishers created: {results.get('shadow_publishers_created', 0)}\n"
            f"Offerings created: {results.get('offerings_created', 0)}\n"
            f"Success rate: {'100%' if not results.get('errors') else 'With errors'}"
        )
        return self._dispatch(f"migration_completed_{session_id}", message, chat)

    def notify_migration_milestone(
        self,
        session_id: str,
        milestone: int,
        progress: Dict[str, Any]
    ) -> bool:
        if not self.config.milestones.enabled:
            return False
        if milestone not in self.config.milestones.thresholds:
            return False

        message = templates.milestone(session_id, milestone, progress, self.config.dashboard_url)
        chat = (
            f"Migration milestone reached: {milestone}%\n"
            f"Session: {session_id}\n"
            f"Progress: {progress.get('completed_steps', 0)}/{progress.get('total_steps', 0)} phases complete"
        )
        return self._dispatch(f"milestone_{milestone}_{session_id}", message, chat)

    def notify_migration_error(
        self,
        session_id: str,
        error: str,
        phase: Optional[str] = None
    ) -> bool:
        message = templates.migration_error(
            session_id, error, phase, self.config.dashboard_url, self._clock()
        )
        chat = (
            f"Migration error occurred\n"
            f"Session: {session_id}\n"
            f"Phase: {phase or 'Unknown'}\n"
            f"Error: {error[:200]}"
        )
        return self._dispatch(f"migration_error_{session_id}", message, chat, urgent=True)

    def send_daily_summary(self, sessions: List[MigrationSession]) -> bool:
        """Email a digest of recent sessions when the frequency is daily."""
        if self.config.email.frequency != NotificationFrequency.DAILY:
            return False
        if not sessions:
            return False

        now = self._clock()
        message = templates.daily_summary(sessions, self.config.dashboard_url, now)
        return self._dispatch(f"daily_summary_{now.date().isoformat()}", message, chat_text=None)

    def notify_invitation_campaign(self, campaign_id: str, sent: int, failed: int) -> bool:
        message = templates.invitation_campaign(campaign_id, sent, failed, self.config.dashboard_url)
        chat = (
            f"Invitation campaign completed\n"
            f"Campaign: {campaign_id}\n"
            f"Sent: {sent}\n"
            f"Failed: {failed}\n"
            f"Success rate: {templates.campaign_success_rate(sent, failed):.1f}%"
        )
        return self._dispatch(f"invitation_campaign_{campaign_id}", message, chat)

    def notify_publisher_claim(
        self,
        publisher_name: str,
        company_name: str,
        website_count: int
    ) -> bool:
        message = templates.publisher_claim(publisher_name, company_name, website_count, self._clock())
        chat = (
            f"Publisher claimed account\n"
            f"Publisher: {publisher_name} ({company_name})\n"
            f"Websites: {website_count}"
        )
        return self._dispatch(f"publisher_claim_{company_name}", message, chat)

    # -- Tracker integration -----------------------------------------------

    def handle_event(self, event: TrackerEvent) -> None:
        """Tracker listener that maps session events to notifications."""
        session = event.session

        if event.kind == EventKind.SESSION_ERROR:
            phase = session.current_phase.value if session.current_phase else None
            self.try_notify(self.notify_migration_error, session.id, event.error or "Unknown error", phase)
            return

        if session.type not in MIGRATION_SESSION_TYPES:
            return

        if event.kind == EventKind.SESSION_STARTED:
            self.try_notify(self.notify_migration_started, session.id, session.type.value, {})
        elif event.kind == EventKind.SESSION_COMPLETED:
            self.try_notify(self.notify_migration_completed, session.id, session.results)
        elif event.kind == EventKind.MILESTONE and event.milestone is not None:
            progress = {
                "completed_steps": session.completed_steps,
                "total_steps": session.total_steps,
                "current_phase": session.current_phase.value if session.current_phase else None,
            }
            self.try_notify(self.notify_migration_milestone, session.id, event.milestone, progress)

    def try_notify(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Call a notification method, logging and swallowing any failure."""
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Notification {getattr(func, '__name__', func)} failed: {e}")
            return None

    # -- Delivery ----------------------------------------------------------

    def is_rate_limited(self, key: str) -> bool:
        last_sent = self._last_sent.get(key)
        if last_sent is None:
            return False
        interval = MIN_INTERVALS.get(self.config.email.frequency, MIN_INTERVALS[NotificationFrequency.REALTIME])
        return self._clock() - last_sent < interval

    def _dispatch(
        self,
        key: str,
        message: templates.NotificationMessage,
        chat_text: Optional[str],
        urgent: bool = False
    ) -> bool:
        """
        Send through every enabled channel.

        Returns:
            True if at least one channel delivered the message
        """
        if not urgent and self.is_rate_limited(key):
            logger.debug(f"Notification {key} suppressed by rate limit")
            return False

        delivered = False
        attempted = False

        email = self.config.email
        if email.enabled and email.recipients and self.email_channel is not None:
            attempted = True
            try:
                self.email_channel.send(
                    email.recipients,
                    message,
                    headers={"X-Migration-Notification": "urgent" if urgent else "normal"},
                )
                delivered = True
            except Exception as e:
                logger.error(f"Failed to send email notification for {key}: {e}")

        webhook = self.config.webhook
        if chat_text and webhook.enabled and webhook.url and self.webhook_channel is not None:
            attempted = True
            try:
                self.webhook_channel.post(chat_text)
                delivered = True
            except Exception as e:
                logger.error(f"Failed to send webhook notification for {key}: {e}")

        if attempted:
            self._last_sent[key] = self._clock()
        return delivered
