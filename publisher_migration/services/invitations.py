"""Claim invitations for shadow publishers created by the migration."""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.publisher import Publisher, PublisherWebsiteInfo
from ..stores.base import BaseStore
from ..utils import utcnow
from . import templates
from .channels import EmailChannel

logger = logging.getLogger(__name__)

POSTS_PER_WEBSITE_PER_MONTH = 3


@dataclass
class InvitationResults:
    """Outcome of one invitation campaign."""
    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "sent": self.sent,
            "failed": self.failed,
            "errors": self.errors,
            "skipped": self.skipped,
        }


def estimate_monthly_value(websites: List[PublisherWebsiteInfo]) -> Optional[int]:
    """
    Rough monthly revenue for a publisher.

    Assumes a few posts per website per month at the average known rate.

    Returns:
        Estimated value, or None when no website has a rate
    """
    rates = [w.current_rate for w in websites if w.current_rate]
    if not rates:
        return None
    average_rate = sum(rates) / len(rates)
    return round(average_rate * len(websites) * POSTS_PER_WEBSITE_PER_MONTH)


class InvitationService:
    """Sends claim emails to shadow publishers that have not been invited."""

    def __init__(
        self,
        store: BaseStore,
        email_channel: Optional[EmailChannel],
        base_url: str,
        batch_size: int = 10,
        batch_delay_seconds: float = 2.0
    ):
        """
        Initialize the service.

        Args:
            store: Publisher store
            email_channel: Delivery channel; may be None for dry runs
            base_url: Public application URL used to build claim links
            batch_size: Publishers processed between pauses
            batch_delay_seconds: Pause between batches
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.store = store
        self.email_channel = email_channel
        self.base_url = base_url.rstrip("/")
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds

    def claim_url(self, token: str) -> str:
        return f"{self.base_url}/publisher/claim/{token}"

    def send_migration_invitations(self, dry_run: bool = False) -> InvitationResults:
        """
        Invite every uninvited shadow publisher that has websites.

        A failure for one publisher is recorded and does not stop the
        campaign. In dry-run mode messages are rendered but neither sent
        nor marked as sent.
        """
        publishers = self.store.list_uninvited_shadow_publishers()
        logger.info(f"Found {len(publishers)} publishers to invite")

        if not dry_run and publishers and self.email_channel is None:
            raise ValueError("An email channel is required to send invitations")

        results = InvitationResults()
        total = len(publishers)

        for start in range(0, total, self.batch_size):
            for publisher in publishers[start:start + self.batch_size]:
                try:
                    if self._invite(publisher, dry_run):
                        results.sent += 1
                    else:
                        results.skipped += 1
                except Exception as e:
                    results.failed += 1
                    message = f"Failed to invite {publisher.company_name}: {e}"
                    results.errors.append(message)
                    logger.error(message)

            processed = min(start + self.batch_size, total)
            if self.batch_delay_seconds > 0 and processed < total:
                time.sleep(self.batch_delay_seconds)

        logger.info(
            f"Invitation campaign finished: {results.sent} sent, "
            f"{results.failed} failed, {results.skipped} skipped"
        )
        return results

    def _invite(self, publisher: Publisher, dry_run: bool) -> bool:
        """
        Render and send one invitation.

        Returns:
            False when the publisher was skipped for having no websites
        """
        websites = self.store.list_publisher_websites(publisher.id)
        if not websites:
            logger.warning(f"Skipping {publisher.company_name} - no websites found")
            return False

        token = publisher.invitation_token or str(uuid.uuid4())
        claim_url = self.claim_url(token)
        message = templates.publisher_invitation(
            publisher, websites, claim_url, estimate_monthly_value(websites)
        )

        if dry_run:
            logger.info(f"[DRY RUN] Would send invitation to {publisher.email}")
            logger.info(f"  Subject: {message.subject}")
            logger.info(f"  Websites: {len(websites)}")
            logger.info(f"  Claim URL: {claim_url}")
            return True

        self.email_channel.send(
            [publisher.email],
            message,
            headers={"X-Migration-Notification": "invitation"},
        )
        self.store.mark_invitation_sent(publisher.id, token, utcnow())
        logger.info(f"Invitation sent to {publisher.company_name} ({publisher.email})")
        return True
