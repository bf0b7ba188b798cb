"""Tests for the full migration workflow."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from conftest import add_site
from publisher_migration.models.migration import (
    MigrationConfig,
    PhaseName,
    PhaseStatus,
    SessionStatus,
    SessionType,
)
from publisher_migration.models.publisher import AccountStatus, Publisher, RecordSource
from publisher_migration.orchestrator import MigrationBlockedError, PublisherMigrationService
from publisher_migration.services.invitations import InvitationService


@pytest.fixture
def service(seeded_store, tracker):
    return PublisherMigrationService(seeded_store, tracker)


class TestDryRun:

    def test_dry_run_succeeds_without_writes(self, service, seeded_store, tracker):
        outcome = service.execute_full_migration(MigrationConfig(dry_run=True))

        assert outcome.success is True
        assert outcome.dry_run is True
        assert outcome.message == "Dry run completed successfully"
        assert outcome.snapshot_id is None
        assert outcome.stats.shadow_publishers_created == 2
        assert seeded_store.list_publishers() == []

        session = tracker.get_session(outcome.session_id)
        assert session.type == SessionType.DRY_RUN
        assert session.status == SessionStatus.COMPLETED
        assert session.total_steps == 3
        assert session.progress_percentage == 100
        assert session.results["mode"] == "dry_run"

    def test_dry_run_continues_past_validation_errors(self, store, tracker):
        add_site(store, "w1", "a.com", "a@a.com", cost=-5)

        outcome = PublisherMigrationService(store, tracker).execute_full_migration()

        assert outcome.success is True


class TestLiveRun:

    def test_live_run_creates_snapshot_first(self, service, seeded_store, tracker):
        outcome = service.execute_full_migration(MigrationConfig(dry_run=False))

        assert outcome.success is True
        assert outcome.message == "Migration completed successfully"
        assert outcome.snapshot_id is not None
        snapshot = service.rollback.get_snapshot(outcome.snapshot_id)
        assert snapshot.session_id == outcome.session_id
        assert snapshot.metadata["publisher_count"] == 0
        assert len(seeded_store.list_publishers()) == 2

        session = tracker.get_session(outcome.session_id)
        assert session.type == SessionType.LIVE
        assert session.total_steps == 4
        assert list(session.phases) == [
            PhaseName.VALIDATION, PhaseName.SNAPSHOT, PhaseName.MIGRATION, PhaseName.MONITORING,
        ]
        assert session.phases[PhaseName.SNAPSHOT].data == {"snapshot_id": outcome.snapshot_id}

    def test_validation_errors_block_live_run(self, store, tracker):
        add_site(store, "w1", "a.com", "a@a.com", cost=-5)
        service = PublisherMigrationService(store, tracker)

        with pytest.raises(MigrationBlockedError):
            service.execute_full_migration(MigrationConfig(dry_run=False))

        session = tracker.get_recent_sessions()[0]
        assert session.status == SessionStatus.ERROR
        assert session.phases[PhaseName.VALIDATION].status == PhaseStatus.ERROR
        assert store.list_publishers() == []
        assert service.rollback.get_rollback_history() == []

    def test_fatal_migration_error_returns_failure(self, service, seeded_store, tracker):
        with patch.object(seeded_store, "list_website_contacts", side_effect=RuntimeError("no connection")):
            outcome = service.execute_full_migration(MigrationConfig(dry_run=False, validate_first=False))

        assert outcome.success is False
        assert outcome.message == "Migration failed: no connection"
        session = tracker.get_session(outcome.session_id)
        assert session.status == SessionStatus.ERROR
        assert session.phases[PhaseName.MIGRATION].status == PhaseStatus.ERROR

    def test_unexpected_error_marks_session_and_reraises(self, service, tracker):
        with patch.object(service.rollback, "create_snapshot", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                service.execute_full_migration(MigrationConfig(dry_run=False))

        session = tracker.get_recent_sessions()[0]
        assert session.error == "disk full"
        assert session.phases[PhaseName.SNAPSHOT].status == PhaseStatus.ERROR


class TestInvitationsPhase:

    def test_invitations_sent_after_live_run(self, seeded_store, tracker):
        channel = MagicMock()
        invitations = InvitationService(seeded_store, channel, "https://app.example.com",
                                        batch_delay_seconds=0)
        notifier = MagicMock()
        service = PublisherMigrationService(seeded_store, tracker, invitations=invitations,
                                            notifier=notifier)

        outcome = service.execute_full_migration(MigrationConfig(dry_run=False, send_invitations=True))

        assert outcome.invitations.sent == 2
        assert channel.send.call_count == 2
        assert tracker.get_session(outcome.session_id).results["invitations_sent"] == 2
        notifier.try_notify.assert_called_once_with(
            notifier.notify_invitation_campaign, outcome.session_id, 2, 0
        )

    def test_missing_invitation_service_is_not_an_error(self, service, tracker):
        outcome = service.execute_full_migration(MigrationConfig(dry_run=False, send_invitations=True))

        assert outcome.success is True
        assert outcome.invitations is None
        phase = tracker.get_session(outcome.session_id).phases[PhaseName.INVITATIONS]
        assert phase.message == "Invitation service not configured"

    def test_nothing_to_invite(self, store, tracker):
        outcome = PublisherMigrationService(store, tracker).execute_full_migration(
            MigrationConfig(dry_run=False, send_invitations=True)
        )

        phase = tracker.get_session(outcome.session_id).phases[PhaseName.INVITATIONS]
        assert phase.message == "No new publishers to invite"


class TestNotifierSubscription:

    def test_notifier_receives_tracker_events(self, seeded_store, tracker):
        notifier = MagicMock()
        service = PublisherMigrationService(seeded_store, tracker, notifier=notifier)

        service.execute_full_migration()

        assert notifier.handle_event.call_count > 0


class TestAnalyticsAndStatus:

    def test_analytics_claim_funnel(self, store, clock):
        invited_at = clock.now
        store.insert_publisher(Publisher(company_name="Shadow", email="s@s.com"))
        store.insert_publisher(Publisher(
            company_name="Claimed", email="c@c.com", account_status=AccountStatus.ACTIVE,
            invitation_sent_at=invited_at, claimed_at=invited_at + timedelta(days=3),
        ))
        store.insert_publisher(Publisher(
            company_name="Pending", email="p@p.com", invitation_sent_at=invited_at,
        ))
        store.insert_publisher(Publisher(
            company_name="Direct", email="d@d.com", account_status=AccountStatus.ACTIVE,
            source=RecordSource.DIRECT,
        ))

        analytics = PublisherMigrationService(store).get_migration_analytics()

        assert analytics == {
            "shadow_publishers": 2,
            "active_publishers": 1,
            "invitations_sent": 2,
            "accounts_claimed": 1,
            "avg_claim_days": 3.0,
            "claim_rate_percentage": 50.0,
        }

    def test_analytics_with_nobody_invited(self, store):
        analytics = PublisherMigrationService(store).get_migration_analytics()

        assert analytics["claim_rate_percentage"] == 0.0
        assert analytics["avg_claim_days"] == 0.0

    def test_status_combines_sources(self, service):
        outcome = service.execute_full_migration()

        status = service.get_migration_status()

        assert status["validation"]["ready"] is True
        assert [s["id"] for s in status["recent_sessions"]] == [outcome.session_id]
        assert status["overall"]["status"] == "idle"
        assert status["analytics"]["shadow_publishers"] == 0

    def test_report_is_html(self, service):
        assert service.generate_migration_report().startswith("<!DOCTYPE html>")
