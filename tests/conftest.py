"""Shared fixtures for publisher migration tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from publisher_migration.models.legacy import LegacyContact, LegacyWebsite
from publisher_migration.services.status_tracker import MigrationStatusTracker
from publisher_migration.stores.memory import InMemoryStore


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def add_site(
    store,
    website_id: str,
    domain: str,
    email: Optional[str],
    cost: Optional[float] = None,
    **website_fields
) -> LegacyWebsite:
    """Seed a legacy website together with one contact."""
    website = LegacyWebsite(id=website_id, domain=domain, guest_post_cost=cost, **website_fields)
    store.add_website(website)
    store.add_contact(LegacyContact(id=f"contact-{website_id}", website_id=website_id, email=email))
    return website


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def tracker(clock):
    """Status tracker driven by the fake clock."""
    return MigrationStatusTracker(clock=clock)


@pytest.fixture
def seeded_store(store):
    """Store with the two-row case-variant scenario plus a second publisher."""
    add_site(store, "w1", "a.com", "contact@a.com", cost=50)
    add_site(store, "w2", "b.com", "Contact@A.com")
    add_site(store, "w3", "c.com", "owner@c.com", cost=120, success_rate_percentage=90,
             avg_response_time_hours=30)
    return store
