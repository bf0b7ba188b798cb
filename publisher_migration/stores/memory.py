"""In-memory store used for previews, tests and unconfigured deployments."""

from dataclasses import replace
from typing import Dict, List, Optional
from datetime import datetime
import logging

from .base import BaseStore, normalize_company_name
from ..models.legacy import LegacyContact, LegacyWebsite
from ..models.publisher import (
    AccountStatus,
    Offering,
    OfferingStatus,
    OrderLineItem,
    PerformanceRecord,
    Publisher,
    PublisherWebsiteRelationship,
    RecordSource,
)
from ..utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class InMemoryStore(BaseStore):
    """
    Dict-backed store.

    Records are copied on the way in and out so callers never hold a
    reference into the store's own state.
    """

    def __init__(self):
        self._websites: Dict[str, LegacyWebsite] = {}
        self._contacts: Dict[str, LegacyContact] = {}
        self._publishers: Dict[str, Publisher] = {}
        self._offerings: Dict[str, Offering] = {}
        self._relationships: Dict[str, PublisherWebsiteRelationship] = {}
        self._performance: Dict[str, PerformanceRecord] = {}
        self._order_line_items: Dict[str, OrderLineItem] = {}

    # -- Seeding -----------------------------------------------------------

    def add_website(self, website: LegacyWebsite) -> LegacyWebsite:
        self._websites[website.id] = replace(website, updated_at=parse_timestamp(website.updated_at))
        return website

    def add_contact(self, contact: LegacyContact) -> LegacyContact:
        self._contacts[contact.id] = replace(contact)
        return contact

    def add_order_line_item(self, item: OrderLineItem) -> OrderLineItem:
        self._order_line_items[item.id] = replace(item)
        return item

    # -- Legacy data -------------------------------------------------------

    def list_legacy_websites(self) -> List[LegacyWebsite]:
        return [replace(w) for w in self._websites.values()]

    def list_legacy_contacts(self) -> List[LegacyContact]:
        return [replace(c) for c in self._contacts.values()]

    # -- Publisher graph ---------------------------------------------------

    def get_publisher(self, publisher_id: str) -> Optional[Publisher]:
        publisher = self._publishers.get(publisher_id)
        return replace(publisher) if publisher else None

    def find_publisher_by_company_name(self, company_name: str) -> Optional[Publisher]:
        wanted = normalize_company_name(company_name)
        for publisher in self._publishers.values():
            if normalize_company_name(publisher.company_name) == wanted:
                return replace(publisher)
        return None

    def insert_publisher(self, publisher: Publisher) -> Publisher:
        if publisher.id in self._publishers:
            raise ValueError(f"Publisher {publisher.id} already exists")
        self._publishers[publisher.id] = replace(publisher)
        return publisher

    def insert_offering(self, offering: Offering) -> Offering:
        if offering.publisher_id not in self._publishers:
            raise ValueError(f"Unknown publisher {offering.publisher_id}")
        if offering.id in self._offerings:
            raise ValueError(f"Offering {offering.id} already exists")
        self._offerings[offering.id] = replace(offering)
        return offering

    def insert_relationship(
        self,
        relationship: PublisherWebsiteRelationship
    ) -> PublisherWebsiteRelationship:
        if relationship.publisher_id not in self._publishers:
            raise ValueError(f"Unknown publisher {relationship.publisher_id}")
        for existing in self._relationships.values():
            if (existing.publisher_id == relationship.publisher_id
                    and existing.website_id == relationship.website_id):
                raise ValueError(
                    f"Relationship {relationship.publisher_id} -> {relationship.website_id} already exists"
                )
        self._relationships[relationship.id] = replace(relationship)
        return relationship

    def insert_performance(self, record: PerformanceRecord) -> PerformanceRecord:
        if record.publisher_id not in self._publishers:
            raise ValueError(f"Unknown publisher {record.publisher_id}")
        self._performance[record.id] = replace(record)
        return record

    def list_publishers(self, source: Optional[RecordSource] = None) -> List[Publisher]:
        return [replace(p) for p in self._publishers.values()
                if source is None or p.source == source]

    def list_offerings(self, source: Optional[RecordSource] = None) -> List[Offering]:
        return [replace(o) for o in self._offerings.values()
                if source is None or o.source == source]

    def list_relationships(
        self,
        source: Optional[RecordSource] = None
    ) -> List[PublisherWebsiteRelationship]:
        return [replace(r) for r in self._relationships.values()
                if source is None or r.source == source]

    def list_performance(self, publisher_id: Optional[str] = None) -> List[PerformanceRecord]:
        return [replace(r) for r in self._performance.values()
                if publisher_id is None or r.publisher_id == publisher_id]

    def list_order_line_items(self) -> List[OrderLineItem]:
        return [replace(i) for i in self._order_line_items.values()]

    # -- Rollback mutations ------------------------------------------------

    def mark_publishers_for_review(self, publisher_ids: List[str]) -> int:
        now = utcnow()
        count = 0
        for publisher_id in publisher_ids:
            publisher = self._publishers.get(publisher_id)
            if publisher is None:
                continue
            publisher.account_status = AccountStatus.REVIEW_REQUIRED
            publisher.source = RecordSource.MANUAL_REVIEW
            publisher.updated_at = now
            count += 1
        return count

    def delete_publishers(self, publisher_ids: List[str]) -> int:
        doomed = {pid for pid in publisher_ids if pid in self._publishers}
        if not doomed:
            return 0

        self._drop_where(self._performance, lambda r: r.publisher_id in doomed)
        self._drop_where(self._offerings, lambda o: o.publisher_id in doomed)
        self._drop_where(self._relationships, lambda r: r.publisher_id in doomed)
        for publisher_id in doomed:
            del self._publishers[publisher_id]

        logger.debug(f"Deleted {len(doomed)} publishers with dependent records")
        return len(doomed)

    def archive_offerings(self, offering_ids: List[str]) -> int:
        now = utcnow()
        count = 0
        for offering_id in offering_ids:
            offering = self._offerings.get(offering_id)
            if offering is None:
                continue
            offering.status = OfferingStatus.ARCHIVED
            offering.archived_at = now
            count += 1
        return count

    def delete_offerings(self, offering_ids: List[str]) -> int:
        wanted = set(offering_ids)
        return self._drop_where(self._offerings, lambda o: o.id in wanted)

    def delete_relationships(self, relationship_ids: List[str]) -> int:
        wanted = set(relationship_ids)
        return self._drop_where(self._relationships, lambda r: r.id in wanted)

    def delete_all_migration_data(self) -> Dict[str, int]:
        migrated = {
            p.id for p in self._publishers.values()
            if p.source == RecordSource.LEGACY_MIGRATION
        }
        legacy = RecordSource.LEGACY_MIGRATION

        counts = {
            "performance": self._drop_where(
                self._performance,
                lambda r: r.source == legacy or r.publisher_id in migrated,
            ),
            "offerings": self._drop_where(
                self._offerings,
                lambda o: o.source == legacy or o.publisher_id in migrated,
            ),
            "relationships": self._drop_where(
                self._relationships,
                lambda r: r.source == legacy or r.publisher_id in migrated,
            ),
            "publishers": self._drop_where(
                self._publishers,
                lambda p: p.id in migrated,
            ),
        }
        return counts

    # -- Invitations -------------------------------------------------------

    def mark_invitation_sent(
        self,
        publisher_id: str,
        invitation_token: str,
        sent_at: datetime
    ) -> None:
        publisher = self._publishers.get(publisher_id)
        if publisher is None:
            raise KeyError(publisher_id)
        publisher.invitation_token = invitation_token
        publisher.invitation_sent_at = sent_at
        publisher.updated_at = sent_at

    # -- Internal ----------------------------------------------------------

    @staticmethod
    def _drop_where(table: Dict[str, object], predicate) -> int:
        doomed = [key for key, value in table.items() if predicate(value)]
        for key in doomed:
            del table[key]
        return len(doomed)
