"""Tests for the SQLAlchemy store against a SQLite database."""

from datetime import datetime, timezone

import pytest

from conftest import add_site
from publisher_migration.migrator import WebsiteToPublisherMigrator
from publisher_migration.models.legacy import LegacyContact
from publisher_migration.models.publisher import (
    AccountStatus,
    Offering,
    OfferingStatus,
    OrderLineItem,
    Publisher,
    PublisherWebsiteRelationship,
    RecordSource,
)
from publisher_migration.models.rollback import SnapshotType
from publisher_migration.services.rollback import MigrationRollbackService
from publisher_migration.services.status_tracker import MigrationStatusTracker
from publisher_migration.stores.sql import SQLStore


@pytest.fixture
def sql_store(tmp_path):
    store = SQLStore(f"sqlite:///{tmp_path}/migration.db")
    store.create_all()
    return store


@pytest.fixture
def migrated_sql_store(sql_store):
    add_site(sql_store, "w1", "a.com", "contact@a.com", cost=50)
    add_site(sql_store, "w2", "b.com", "Contact@A.com")
    add_site(sql_store, "w3", "c.com", "owner@c.com", cost=120, success_rate_percentage=90,
             avg_response_time_hours=30)
    WebsiteToPublisherMigrator(sql_store).migrate()
    return sql_store


class TestSQLStore:

    def test_connection(self, sql_store):
        assert sql_store.check_connection() is True

    def test_publisher_round_trip_keeps_aware_datetimes(self, sql_store):
        sent_at = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)
        publisher = sql_store.insert_publisher(Publisher(
            company_name="Acme", email="a@acme.com", invitation_sent_at=sent_at,
        ))

        loaded = sql_store.get_publisher(publisher.id)

        assert loaded.company_name == "Acme"
        assert loaded.account_status == AccountStatus.SHADOW
        assert loaded.invitation_sent_at == sent_at
        assert loaded.created_at.tzinfo is not None

    def test_find_by_company_name_is_normalized(self, sql_store):
        sql_store.insert_publisher(Publisher(company_name="Acme Media", email="a@acme.com"))

        assert sql_store.find_publisher_by_company_name("  ACME media ") is not None
        assert sql_store.find_publisher_by_company_name("Other") is None

    def test_dependents_require_known_publisher(self, sql_store):
        with pytest.raises(ValueError):
            sql_store.insert_offering(Offering(publisher_id="missing", base_price=100))
        with pytest.raises(ValueError):
            sql_store.insert_relationship(
                PublisherWebsiteRelationship(publisher_id="missing", website_id="w1")
            )

    def test_duplicate_relationship_rejected(self, sql_store):
        publisher = sql_store.insert_publisher(Publisher(company_name="Acme", email="a@acme.com"))
        sql_store.insert_relationship(PublisherWebsiteRelationship(publisher_id=publisher.id, website_id="w1"))

        with pytest.raises(ValueError):
            sql_store.insert_relationship(
                PublisherWebsiteRelationship(publisher_id=publisher.id, website_id="w1")
            )
        assert len(sql_store.list_relationships()) == 1

    def test_shared_website_migrates_once(self, sql_store):
        add_site(sql_store, "w1", "a.com", "x@a.com", cost=50)
        sql_store.add_contact(LegacyContact(id="contact-w1-upper", website_id="w1", email="X@a.com"))

        stats = WebsiteToPublisherMigrator(sql_store).migrate()

        assert stats.errors == []
        assert len(sql_store.list_offerings()) == stats.offerings_created == 1
        assert len(sql_store.list_relationships()) == stats.relationships_created == 1

    def test_migration_populates_tables(self, migrated_sql_store):
        assert len(migrated_sql_store.list_publishers()) == 2
        assert len(migrated_sql_store.list_offerings()) == 2
        assert len(migrated_sql_store.list_relationships()) == 3
        assert len(migrated_sql_store.list_performance()) == 1

    def test_publisher_websites(self, migrated_sql_store):
        publisher = migrated_sql_store.find_publisher_by_company_name("owner@c.com")

        websites = migrated_sql_store.list_publisher_websites(publisher.id)

        assert [(w.domain, w.current_rate, w.estimated_turnaround_days) for w in websites] == [
            ("c.com", 120, 2)
        ]

    def test_delete_publishers_removes_dependents(self, migrated_sql_store):
        publisher = migrated_sql_store.find_publisher_by_company_name("contact@a.com")

        assert migrated_sql_store.delete_publishers([publisher.id]) == 1

        assert all(o.publisher_id != publisher.id for o in migrated_sql_store.list_offerings())
        assert all(r.publisher_id != publisher.id for r in migrated_sql_store.list_relationships())

    def test_archive_and_review(self, migrated_sql_store):
        offering = migrated_sql_store.list_offerings()[0]
        publisher = migrated_sql_store.list_publishers()[0]

        assert migrated_sql_store.archive_offerings([offering.id]) == 1
        assert migrated_sql_store.mark_publishers_for_review([publisher.id]) == 1

        archived = [o for o in migrated_sql_store.list_offerings() if o.id == offering.id][0]
        assert archived.status == OfferingStatus.ARCHIVED
        reviewed = migrated_sql_store.get_publisher(publisher.id)
        assert reviewed.account_status == AccountStatus.REVIEW_REQUIRED
        assert reviewed.source == RecordSource.MANUAL_REVIEW

    def test_offerings_with_orders(self, migrated_sql_store):
        offering = migrated_sql_store.list_offerings()[0]
        migrated_sql_store.add_order_line_item(OrderLineItem(offering_id=offering.id))

        assert migrated_sql_store.offering_ids_with_orders([offering.id, "other"]) == {offering.id}
        assert migrated_sql_store.offering_ids_with_orders([]) == set()

    def test_delete_all_migration_data_keeps_direct_publishers(self, migrated_sql_store):
        direct = migrated_sql_store.insert_publisher(Publisher(
            company_name="Direct", email="d@d.com", source=RecordSource.DIRECT,
        ))

        counts = migrated_sql_store.delete_all_migration_data()

        assert counts == {"performance": 1, "offerings": 2, "relationships": 3, "publishers": 2}
        assert [p.id for p in migrated_sql_store.list_publishers()] == [direct.id]

    def test_mark_invitation_sent(self, migrated_sql_store):
        publisher = migrated_sql_store.list_publishers()[0]
        sent_at = datetime(2024, 6, 2, tzinfo=timezone.utc)

        migrated_sql_store.mark_invitation_sent(publisher.id, "token-1", sent_at)

        loaded = migrated_sql_store.get_publisher(publisher.id)
        assert loaded.invitation_token == "token-1"
        assert loaded.invitation_sent_at == sent_at
        assert len(migrated_sql_store.list_uninvited_shadow_publishers()) == 1

    def test_mark_invitation_sent_unknown_publisher(self, sql_store):
        with pytest.raises(KeyError):
            sql_store.mark_invitation_sent("missing", "token", datetime.now(timezone.utc))


class TestRollbackOnSQL:

    def test_forced_rollback_restores_snapshot(self, sql_store):
        tracker = MigrationStatusTracker()
        service = MigrationRollbackService(sql_store, tracker)
        snapshot_id = service.create_snapshot("session_sql", SnapshotType.PRE_MIGRATION, "empty")
        add_site(sql_store, "w1", "a.com", "a@a.com", cost=50)
        WebsiteToPublisherMigrator(sql_store).migrate()

        plan = service.create_rollback_plan(snapshot_id)
        result = service.execute_rollback(plan, force=True)

        assert result.success is True
        assert sql_store.list_publishers() == []
        assert sql_store.list_offerings() == []
        assert sql_store.list_relationships() == []
