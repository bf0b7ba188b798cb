"""Base store interface for legacy and publisher records."""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set
from datetime import datetime
import logging

from ..models.legacy import (
    LegacyContact,
    LegacyWebsite,
    LegacyWebsiteContact,
    join_website_contacts,
)
from ..models.publisher import (
    AccountStatus,
    Offering,
    OrderLineItem,
    PerformanceRecord,
    Publisher,
    PublisherWebsiteInfo,
    PublisherWebsiteRelationship,
    RecordSource,
)

logger = logging.getLogger(__name__)


def normalize_company_name(name: str) -> str:
    """Normalization used for every publisher name comparison."""
    return name.strip().lower()


class BaseStore(ABC):
    """
    Base class for record stores.

    A store reads the legacy website/contact tables and reads and writes
    the publisher-side tables. Every method is its own unit of work;
    nothing spans a whole migration run.
    """

    # -- Legacy data -------------------------------------------------------

    @abstractmethod
    def list_legacy_websites(self) -> List[LegacyWebsite]:
        """Get every legacy website."""
        pass

    @abstractmethod
    def list_legacy_contacts(self) -> List[LegacyContact]:
        """Get every legacy website contact."""
        pass

    def list_website_contacts(self) -> List[LegacyWebsiteContact]:
        """
        Get websites joined with their contacts.

        Only contacts with an email are returned, ordered by email then
        domain.
        """
        return join_website_contacts(
            self.list_legacy_websites(),
            self.list_legacy_contacts(),
        )

    # -- Publisher graph ---------------------------------------------------

    @abstractmethod
    def get_publisher(self, publisher_id: str) -> Optional[Publisher]:
        pass

    @abstractmethod
    def find_publisher_by_company_name(self, company_name: str) -> Optional[Publisher]:
        """
        Find a publisher by company name.

        Names are compared after trimming and lower-casing, the same
        normalization the migrator uses to group contacts.
        """
        pass

    @abstractmethod
    def insert_publisher(self, publisher: Publisher) -> Publisher:
        pass

    @abstractmethod
    def insert_offering(self, offering: Offering) -> Offering:
        pass

    @abstractmethod
    def insert_relationship(
        self,
        relationship: PublisherWebsiteRelationship
    ) -> PublisherWebsiteRelationship:
        pass

    @abstractmethod
    def insert_performance(self, record: PerformanceRecord) -> PerformanceRecord:
        pass

    @abstractmethod
    def list_publishers(self, source: Optional[RecordSource] = None) -> List[Publisher]:
        pass

    @abstractmethod
    def list_offerings(self, source: Optional[RecordSource] = None) -> List[Offering]:
        pass

    @abstractmethod
    def list_relationships(
        self,
        source: Optional[RecordSource] = None
    ) -> List[PublisherWebsiteRelationship]:
        pass

    @abstractmethod
    def list_performance(self, publisher_id: Optional[str] = None) -> List[PerformanceRecord]:
        pass

    @abstractmethod
    def list_order_line_items(self) -> List[OrderLineItem]:
        pass

    def offering_ids_with_orders(self, offering_ids: Iterable[str]) -> Set[str]:
        """Get the subset of offering IDs referenced by an order line item."""
        wanted = set(offering_ids)
        return {item.offering_id for item in self.list_order_line_items()
                if item.offering_id in wanted}

    # -- Rollback mutations ------------------------------------------------

    @abstractmethod
    def mark_publishers_for_review(self, publisher_ids: List[str]) -> int:
        """Move publishers to manual review. Returns the number updated."""
        pass

    @abstractmethod
    def delete_publishers(self, publisher_ids: List[str]) -> int:
        """
        Delete publishers along with their offerings, relationships and
        performance records. Returns the number of publishers deleted.
        """
        pass

    @abstractmethod
    def archive_offerings(self, offering_ids: List[str]) -> int:
        pass

    @abstractmethod
    def delete_offerings(self, offering_ids: List[str]) -> int:
        pass

    @abstractmethod
    def delete_relationships(self, relationship_ids: List[str]) -> int:
        pass

    @abstractmethod
    def delete_all_migration_data(self) -> Dict[str, int]:
        """
        Remove every record created by the legacy migration.

        Deletes performance records, offerings, relationships and then
        publishers. Returns table name -> rows deleted.
        """
        pass

    # -- Invitations -------------------------------------------------------

    @abstractmethod
    def mark_invitation_sent(
        self,
        publisher_id: str,
        invitation_token: str,
        sent_at: datetime
    ) -> None:
        pass

    def list_uninvited_shadow_publishers(self) -> List[Publisher]:
        """Get shadow publishers that have not been sent an invitation."""
        return [
            p for p in self.list_publishers()
            if p.account_status == AccountStatus.SHADOW and p.invitation_sent_at is None
        ]

    def list_publisher_websites(self, publisher_id: str) -> List[PublisherWebsiteInfo]:
        """Get the legacy websites linked to a publisher."""
        website_ids = [
            r.website_id for r in self.list_relationships()
            if r.publisher_id == publisher_id
        ]
        websites = {w.id: w for w in self.list_legacy_websites()}

        result = []
        for website_id in website_ids:
            website = websites.get(website_id)
            if website is None:
                continue
            turnaround = None
            if website.avg_response_time_hours:
                turnaround = -(-int(website.avg_response_time_hours) // 24)
            result.append(PublisherWebsiteInfo(
                domain=website.domain,
                current_rate=website.guest_post_cost,
                estimated_turnaround_days=turnaround,
            ))
        return result

    def check_connection(self) -> bool:
        """Validate the connection to the backing database."""
        return True
