"""Tests for record parsing helpers."""

from datetime import datetime, timezone

import pytest

from publisher_migration.models.legacy import LegacyContact, LegacyWebsite
from publisher_migration.models.migration import MigrationConfig
from publisher_migration.utils import parse_timestamp, to_float


class TestParsing:

    @pytest.mark.parametrize("value", [
        "2024-06-01T12:00:00Z",
        "2024-06-01 14:00:00+02:00",
        "2024-06-01 12:00:00",
        1717243200,
        datetime(2024, 6, 1, 12, 0),
    ])
    def test_timestamps_normalized_to_utc(self, value):
        assert parse_timestamp(value) == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_empty_timestamp(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_to_float(self):
        assert to_float("49.99") == 49.99
        assert to_float("n/a") is None
        assert to_float(None) is None


class TestLegacyRows:

    def test_website_from_dict(self):
        website = LegacyWebsite.from_dict({
            "id": 7,
            "domain": "a.com",
            "guest_post_cost": "150.00",
            "updated_at": "2024-05-01T00:00:00Z",
        })

        assert website.id == "7"
        assert website.guest_post_cost == 150.0
        assert website.success_rate_percentage is None
        assert website.updated_at.tzinfo is not None

    def test_contact_from_dict(self):
        contact = LegacyContact.from_dict({"id": "c1", "website_id": 7, "email": "a@a.com", "is_primary": 1})

        assert contact.website_id == "7"
        assert contact.is_primary is True


class TestMigrationConfig:

    def test_defaults_from_empty_dict(self):
        assert MigrationConfig.from_dict({}) == MigrationConfig()

    def test_round_trip(self):
        config = MigrationConfig(dry_run=False, batch_size=25, send_invitations=True)

        assert MigrationConfig.from_dict(config.to_dict()) == config

    def test_rejects_non_positive_batch(self):
        with pytest.raises(ValueError):
            MigrationConfig.from_dict({"batch_size": 0})
