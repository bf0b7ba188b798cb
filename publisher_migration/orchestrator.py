"""Migration orchestrator - coordinates the complete publisher migration workflow."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .migrator import WebsiteToPublisherMigrator
from .models.migration import (
    MigrationConfig,
    MigrationErrorType,
    MigrationStats,
    PhaseName,
    PhaseStatus,
    SessionType,
)
from .models.publisher import AccountStatus, RecordSource
from .models.rollback import SnapshotType
from .services.invitations import InvitationResults, InvitationService
from .services.notifier import MigrationNotifier
from .services.rollback import MigrationRollbackService
from .services.status_tracker import MigrationStatusTracker
from .services.validator import PublisherMigrationValidator, render_html_report
from .stores.base import BaseStore

logger = logging.getLogger(__name__)


class MigrationBlockedError(RuntimeError):
    """Raised when a live migration is refused because validation found errors."""


@dataclass
class MigrationOutcome:
    """Result of a full migration workflow."""
    success: bool
    session_id: str
    dry_run: bool
    stats: MigrationStats
    message: str
    snapshot_id: Optional[str] = None
    invitations: Optional[InvitationResults] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "success": self.success,
            "session_id": self.session_id,
            "dry_run": self.dry_run,
            "stats": self.stats.to_dict(),
            "message": self.message,
            "snapshot_id": self.snapshot_id,
            "invitations": self.invitations.to_dict() if self.invitations else None,
        }


class PublisherMigrationService:
    """
    Orchestrates the complete publisher migration.

    Handles:
    - Pre-flight validation of the legacy data
    - A rollback snapshot before live runs
    - The website-to-publisher migration itself
    - Claim invitations for new shadow publishers
    - Progress tracking and notifications
    """

    def __init__(
        self,
        store: BaseStore,
        tracker: Optional[MigrationStatusTracker] = None,
        rollback: Optional[MigrationRollbackService] = None,
        invitations: Optional[InvitationService] = None,
        notifier: Optional[MigrationNotifier] = None
    ):
        """
        Initialize the service.

        Args:
            store: Store holding legacy and publisher records
            tracker: Session tracker; a private one is created if omitted
            rollback: Rollback service used for pre-migration snapshots
            invitations: Invitation service; invitations are skipped without it
            notifier: Subscribed to tracker events when given
        """
        self.store = store
        self.tracker = tracker or MigrationStatusTracker()
        self.rollback = rollback or MigrationRollbackService(store, self.tracker)
        self.invitations = invitations
        self.notifier = notifier
        self.validator = PublisherMigrationValidator(store)

        if notifier is not None:
            self.tracker.subscribe(notifier.handle_event)

    def execute_full_migration(self, config: Optional[MigrationConfig] = None) -> MigrationOutcome:
        """
        Run validation, snapshot, migration, invitations and monitoring.

        Args:
            config: Workflow configuration; dry run by default

        Returns:
            MigrationOutcome describing the run

        Raises:
            MigrationBlockedError: If a live run fails validation
        """
        config = config or MigrationConfig()
        take_snapshot = not config.dry_run and config.create_snapshot

        total_steps = 2  # migration + monitoring
        if config.validate_first:
            total_steps += 1
        if take_snapshot:
            total_steps += 1
        if config.send_invitations:
            total_steps += 1

        session_type = SessionType.DRY_RUN if config.dry_run else SessionType.LIVE
        session_id = self.tracker.start_session(session_type, total_steps)
        logger.info(f"Starting full migration {session_id} (mode: {'DRY RUN' if config.dry_run else 'LIVE'})")

        phase = None
        snapshot_id = None
        invitation_results = None

        try:
            if config.validate_first:
                phase = PhaseName.VALIDATION
                logger.info("=== PHASE 1: VALIDATION ===")
                self._run_validation(session_id, config)

            if take_snapshot:
                phase = PhaseName.SNAPSHOT
                logger.info("=== PHASE 2: SNAPSHOT ===")
                self.tracker.update_phase(session_id, phase, PhaseStatus.RUNNING, "Creating rollback snapshot...")
                snapshot_id = self.rollback.create_snapshot(
                    session_id, SnapshotType.PRE_MIGRATION, "Before publisher migration"
                )
                self.tracker.update_phase(
                    session_id, phase, PhaseStatus.COMPLETED,
                    f"Snapshot {snapshot_id} created", progress=100,
                    data={"snapshot_id": snapshot_id},
                )

            phase = PhaseName.MIGRATION
            logger.info("=== PHASE 3: MIGRATION ===")
            stats = self._run_migration(session_id, config)

            fatal = stats.errors_of_type(MigrationErrorType.FATAL)
            if fatal:
                message = f"Migration failed: {fatal[0]['message']}"
                self.tracker.update_phase(session_id, phase, PhaseStatus.ERROR, message)
                self.tracker.complete_session(session_id, results=stats.to_dict(), error=message)
                return MigrationOutcome(
                    success=False,
                    session_id=session_id,
                    dry_run=config.dry_run,
                    stats=stats,
                    message=message,
                    snapshot_id=snapshot_id,
                )

            self.tracker.update_phase(
                session_id, phase, PhaseStatus.COMPLETED,
                f"Migrated {stats.shadow_publishers_created} publishers", progress=100,
                data={"errors": len(stats.errors), "skipped": len(stats.skipped)},
            )

            if config.send_invitations:
                phase = PhaseName.INVITATIONS
                logger.info("=== PHASE 4: INVITATIONS ===")
                invitation_results = self._run_invitations(session_id, config, stats)

            phase = PhaseName.MONITORING
            logger.info("=== PHASE 5: MONITORING ===")
            self.tracker.update_phase(session_id, phase, PhaseStatus.RUNNING, "Setting up monitoring...")
            self._setup_monitoring(session_id)
            self.tracker.update_phase(session_id, phase, PhaseStatus.COMPLETED, "Monitoring configured", progress=100)

            results = stats.to_dict()
            results.update({
                "mode": "dry_run" if config.dry_run else "live",
                "snapshot_id": snapshot_id,
                "invitations_sent": invitation_results.sent if invitation_results else 0,
            })
            self.tracker.complete_session(session_id, results=results)
            logger.info("=== MIGRATION COMPLETED ===")

        except Exception as e:
            logger.error(f"Full migration failed: {e}")
            if phase is not None:
                self.tracker.update_phase(session_id, phase, PhaseStatus.ERROR, str(e))
            self.tracker.complete_session(session_id, error=str(e) or type(e).__name__)
            raise

        return MigrationOutcome(
            success=True,
            session_id=session_id,
            dry_run=config.dry_run,
            stats=stats,
            message="Dry run completed successfully" if config.dry_run else "Migration completed successfully",
            snapshot_id=snapshot_id,
            invitations=invitation_results,
        )

    def _run_validation(self, session_id: str, config: MigrationConfig) -> None:
        """Run the validation phase; live runs stop on errors."""
        self.tracker.update_phase(session_id, PhaseName.VALIDATION, PhaseStatus.RUNNING, "Running data validation...")
        report = self.validator.validate_all()

        if report.errors > 0:
            if not config.dry_run:
                raise MigrationBlockedError(f"Migration blocked: {report.errors} critical errors found")
            logger.warning(f"Validation found {report.errors} errors; continuing because this is a dry run")

        self.tracker.update_phase(
            session_id, PhaseName.VALIDATION, PhaseStatus.COMPLETED,
            f"Validation complete: {report.total_issues} issues found", progress=100,
            data={"errors": report.errors, "warnings": report.warnings},
        )

    def _run_migration(self, session_id: str, config: MigrationConfig) -> MigrationStats:
        self.tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.RUNNING, "Migrating publisher data...")
        migrator = WebsiteToPublisherMigrator(
            self.store,
            dry_run=config.dry_run,
            batch_size=config.batch_size,
            batch_delay_seconds=config.batch_delay_seconds,
        )
        return migrator.migrate()

    def _run_invitations(
        self,
        session_id: str,
        config: MigrationConfig,
        stats: MigrationStats
    ) -> Optional[InvitationResults]:
        """Send claim invitations when publishers were created."""
        phase = PhaseName.INVITATIONS
        self.tracker.update_phase(session_id, phase, PhaseStatus.RUNNING, "Preparing publisher invitations...")

        if stats.shadow_publishers_created == 0:
            self.tracker.update_phase(session_id, phase, PhaseStatus.COMPLETED, "No new publishers to invite", progress=100)
            return None
        if self.invitations is None:
            logger.warning("Invitations requested but no invitation service is configured")
            self.tracker.update_phase(session_id, phase, PhaseStatus.COMPLETED, "Invitation service not configured", progress=100)
            return None

        results = self.invitations.send_migration_invitations(dry_run=config.dry_run)
        self.tracker.update_phase(
            session_id, phase, PhaseStatus.COMPLETED,
            f"Sent {results.sent} invitations", progress=100, data=results.to_dict(),
        )

        if self.notifier is not None and not config.dry_run:
            self.notifier.try_notify(
                self.notifier.notify_invitation_campaign, session_id, results.sent, results.failed
            )
        return results

    def _setup_monitoring(self, session_id: str) -> None:
        logger.info(f"Migration monitoring configured for session {session_id}")

    def get_migration_analytics(self) -> Dict[str, Any]:
        """
        Claim funnel for migrated publishers.

        Returns:
            Dictionary with shadow/active/invited/claimed counts, the
            average days from invitation to claim and the claim rate
        """
        publishers = self.store.list_publishers(source=RecordSource.LEGACY_MIGRATION)

        invited = [p for p in publishers if p.invitation_sent_at is not None]
        claimed = [p for p in publishers if p.claimed_at is not None]
        claim_days: List[float] = [
            (p.claimed_at - p.invitation_sent_at).total_seconds() / 86400
            for p in claimed if p.invitation_sent_at is not None
        ]

        return {
            "shadow_publishers": sum(1 for p in publishers if p.account_status == AccountStatus.SHADOW),
            "active_publishers": sum(1 for p in publishers if p.account_status == AccountStatus.ACTIVE),
            "invitations_sent": len(invited),
            "accounts_claimed": len(claimed),
            "avg_claim_days": round(sum(claim_days) / len(claim_days), 2) if claim_days else 0.0,
            "claim_rate_percentage": round(len(claimed) / len(invited) * 100, 2) if invited else 0.0,
        }

    def get_migration_status(self) -> Dict[str, Any]:
        """Analytics, recent sessions, validation readiness and overall tracker status."""
        report = self.validator.validate_all()
        return {
            "analytics": self.get_migration_analytics(),
            "recent_sessions": [s.to_dict() for s in self.tracker.get_recent_sessions()],
            "validation": {
                "ready": report.ready_for_migration,
                "errors": report.errors,
                "warnings": report.warnings,
                "issues": report.total_issues,
            },
            "overall": self.tracker.get_overall_status(),
        }

    def generate_migration_report(self) -> str:
        """Render the current validation report as HTML."""
        return render_html_report(self.validator.validate_all())
