"""Tests for rollback snapshots, plans and execution."""

from unittest.mock import patch

import pytest

from conftest import add_site
from publisher_migration.migrator import WebsiteToPublisherMigrator
from publisher_migration.models.migration import SessionStatus, SessionType
from publisher_migration.models.publisher import (
    AccountStatus,
    Offering,
    OfferingStatus,
    OrderLineItem,
    Publisher,
    PublisherWebsiteRelationship,
    RecordSource,
)
from publisher_migration.models.rollback import ActionType, RiskLevel, SnapshotType
from publisher_migration.services.rollback import (
    HighRiskRollbackError,
    MigrationRollbackService,
    SnapshotNotFoundError,
)


@pytest.fixture
def service(store, tracker):
    return MigrationRollbackService(store, tracker)


def _snapshot(service) -> str:
    return service.create_snapshot("session_test", SnapshotType.PRE_MIGRATION, "before run")


def _mixed_graph(store):
    """Post-snapshot records: one claimed and one shadow publisher with offerings."""
    claimed = store.insert_publisher(Publisher(
        company_name="Claimed", email="c@c.com", account_status=AccountStatus.ACTIVE,
    ))
    shadow = store.insert_publisher(Publisher(company_name="Shadow", email="s@s.com"))
    active_offering = store.insert_offering(Offering(
        publisher_id=claimed.id, base_price=5000, status=OfferingStatus.ACTIVE,
    ))
    draft_offering = store.insert_offering(Offering(publisher_id=shadow.id, base_price=1000))
    relationship = store.insert_relationship(
        PublisherWebsiteRelationship(publisher_id=shadow.id, website_id="w1")
    )
    return claimed, shadow, active_offering, draft_offering, relationship


class TestSnapshots:

    def test_snapshot_records_migration_ids(self, store, service):
        add_site(store, "w1", "a.com", "a@a.com", cost=50)
        WebsiteToPublisherMigrator(store).migrate()
        store.insert_publisher(Publisher(company_name="Direct", email="d@d.com", source=RecordSource.DIRECT))

        snapshot = service.get_snapshot(_snapshot(service))

        assert snapshot.session_id == "session_test"
        assert snapshot.type == SnapshotType.PRE_MIGRATION
        assert snapshot.metadata == {
            "publisher_count": 1,
            "offering_count": 1,
            "relationship_count": 1,
            "website_count": 1,
        }
        assert snapshot.affected_website_ids == frozenset({"w1"})

    def test_snapshot_id_format(self, service):
        snapshot_id = _snapshot(service)
        assert snapshot_id.startswith("snapshot_")
        assert len(snapshot_id.split("_")) == 3

    def test_unknown_snapshot(self, service):
        with pytest.raises(SnapshotNotFoundError):
            service.get_snapshot("snapshot_missing")
        with pytest.raises(SnapshotNotFoundError):
            service.create_rollback_plan("snapshot_missing")

    def test_history_lists_all_snapshots(self, service):
        first = _snapshot(service)
        second = _snapshot(service)

        history = service.get_rollback_history()

        assert {s.id for s in history} == {first, second}
        assert history[0].timestamp >= history[1].timestamp


class TestRollbackPlan:

    def test_new_shadow_publisher_deleted_at_low_risk(self, store, service):
        """Empty snapshot followed by one shadow publisher plans exactly one delete."""
        snapshot_id = _snapshot(service)
        publisher = store.insert_publisher(Publisher(company_name="New", email="n@n.com"))

        plan = service.create_rollback_plan(snapshot_id)

        assert len(plan.actions) == 1
        action = plan.actions[0]
        assert action.type == ActionType.DELETE_PUBLISHERS
        assert action.risk == RiskLevel.LOW
        assert action.record_ids == [publisher.id]
        assert plan.warnings == []

    def test_active_publishers_never_hard_deleted(self, store, service):
        snapshot_id = _snapshot(service)
        claimed, shadow, *_ = _mixed_graph(store)

        plan = service.create_rollback_plan(snapshot_id)

        deleted = [
            rid for a in plan.actions if a.type == ActionType.DELETE_PUBLISHERS for rid in a.record_ids
        ]
        reviewed = [
            rid for a in plan.actions if a.type == ActionType.REVIEW_PUBLISHERS for rid in a.record_ids
        ]
        assert claimed.id not in deleted
        assert reviewed == [claimed.id]
        assert deleted == [shadow.id]
        assert plan.high_risk_actions[0].type == ActionType.REVIEW_PUBLISHERS

    def test_action_order_and_risk(self, store, service):
        snapshot_id = _snapshot(service)
        _mixed_graph(store)

        plan = service.create_rollback_plan(snapshot_id)

        assert [(a.type, a.risk) for a in plan.actions] == [
            (ActionType.DELETE_RELATIONSHIPS, RiskLevel.LOW),
            (ActionType.ARCHIVE_OFFERINGS, RiskLevel.MEDIUM),
            (ActionType.DELETE_OFFERINGS, RiskLevel.LOW),
            (ActionType.REVIEW_PUBLISHERS, RiskLevel.HIGH),
            (ActionType.DELETE_PUBLISHERS, RiskLevel.LOW),
        ]
        assert len(plan.warnings) == 2
        assert plan.total_records == 5

    def test_shadow_publisher_with_active_offering_kept_for_review(self, store, service):
        """Archiving would be undone if the owning publisher were deleted."""
        snapshot_id = _snapshot(service)
        shadow = store.insert_publisher(Publisher(company_name="Shadow", email="s@s.com"))
        offering = store.insert_offering(Offering(
            publisher_id=shadow.id, base_price=5000, status=OfferingStatus.ACTIVE,
        ))

        plan = service.create_rollback_plan(snapshot_id)

        assert [(a.type, a.record_ids) for a in plan.actions] == [
            (ActionType.ARCHIVE_OFFERINGS, [offering.id]),
            (ActionType.REVIEW_PUBLISHERS, [shadow.id]),
        ]
        assert any("own active offerings" in w for w in plan.warnings)

        service.execute_rollback(plan, force=True)

        archived = store.list_offerings()
        assert [o.status for o in archived] == [OfferingStatus.ARCHIVED]
        assert store.get_publisher(shadow.id).account_status == AccountStatus.REVIEW_REQUIRED

    def test_records_in_snapshot_are_kept(self, store, service):
        store.insert_publisher(Publisher(company_name="Old", email="o@o.com"))
        snapshot_id = _snapshot(service)

        plan = service.create_rollback_plan(snapshot_id)

        assert plan.actions == []
        assert plan.estimated_duration == 5


class TestExecuteRollback:

    def test_high_risk_refused_without_force(self, store, service, tracker):
        snapshot_id = _snapshot(service)
        claimed, shadow, *_ = _mixed_graph(store)
        plan = service.create_rollback_plan(snapshot_id)

        with pytest.raises(HighRiskRollbackError):
            service.execute_rollback(plan)

        assert tracker.get_recent_sessions() == []
        assert store.get_publisher(shadow.id) is not None
        assert store.get_publisher(claimed.id).account_status == AccountStatus.ACTIVE

    def test_forced_rollback_applies_every_action(self, store, service, tracker):
        snapshot_id = _snapshot(service)
        claimed, shadow, active_offering, draft_offering, relationship = _mixed_graph(store)
        plan = service.create_rollback_plan(snapshot_id)

        result = service.execute_rollback(plan, force=True)

        assert result.success is True
        assert result.actions_executed == 5
        assert result.records_affected == 5
        reviewed = store.get_publisher(claimed.id)
        assert reviewed.account_status == AccountStatus.REVIEW_REQUIRED
        assert reviewed.source == RecordSource.MANUAL_REVIEW
        assert store.get_publisher(shadow.id) is None
        archived = [o for o in store.list_offerings() if o.id == active_offering.id][0]
        assert archived.status == OfferingStatus.ARCHIVED
        assert archived.archived_at is not None
        assert all(o.id != draft_offering.id for o in store.list_offerings())
        assert store.list_relationships() == []

        session = tracker.get_recent_sessions()[0]
        assert session.type == SessionType.ROLLBACK
        assert session.status == SessionStatus.COMPLETED

    def test_failed_action_recorded_and_rest_continue(self, store, service):
        snapshot_id = _snapshot(service)
        _, shadow, *_ = _mixed_graph(store)
        plan = service.create_rollback_plan(snapshot_id)

        with patch.object(store, "archive_offerings", side_effect=RuntimeError("locked")):
            result = service.execute_rollback(plan, force=True)

        assert result.success is False
        assert result.actions_executed == 4
        assert len(result.errors) == 1
        assert "locked" in result.errors[0]
        assert store.get_publisher(shadow.id) is None


class TestRollbackSafety:

    def test_referenced_active_offering_is_unsafe(self, store, service):
        snapshot_id = _snapshot(service)
        _, _, active_offering, *_ = _mixed_graph(store)
        store.add_order_line_item(OrderLineItem(offering_id=active_offering.id))

        report = service.validate_rollback_safety(snapshot_id)

        assert report.safe is False
        assert any(i.type == "error" for i in report.issues)

    def test_unreferenced_offerings_are_safe(self, store, service):
        snapshot_id = _snapshot(service)
        _mixed_graph(store)

        report = service.validate_rollback_safety(snapshot_id)

        # The claimed publisher is only a warning
        assert report.safe is True
        assert [i.type for i in report.issues] == ["warning"]

    def test_unknown_snapshot_is_unsafe(self, service):
        report = service.validate_rollback_safety("snapshot_missing")

        assert report.safe is False
        assert report.issues[0].message == "Snapshot not found"


class TestEmergencyRollback:

    def test_removes_only_migration_data(self, store, service, tracker):
        add_site(store, "w1", "a.com", "a@a.com", cost=50, avg_response_time_hours=10)
        WebsiteToPublisherMigrator(store).migrate()
        direct = store.insert_publisher(Publisher(company_name="Direct", email="d@d.com",
                                                  source=RecordSource.DIRECT))

        counts = service.emergency_rollback()

        assert counts == {"performance": 1, "offerings": 1, "relationships": 1, "publishers": 1}
        assert [p.id for p in store.list_publishers()] == [direct.id]
        session = tracker.get_recent_sessions()[0]
        assert session.type == SessionType.EMERGENCY_ROLLBACK
        assert session.status == SessionStatus.COMPLETED

    def test_failure_marks_session_and_reraises(self, store, service, tracker):
        with patch.object(store, "delete_all_migration_data", side_effect=RuntimeError("db gone")):
            with pytest.raises(RuntimeError):
                service.emergency_rollback()

        session = tracker.get_recent_sessions()[0]
        assert session.status == SessionStatus.ERROR
        assert session.error == "db gone"
