"""Publisher-side records created by the migration."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from datetime import date, datetime

from ..utils import new_id, utcnow


class AccountStatus(str, Enum):
    """Lifecycle of a publisher account."""
    SHADOW = "shadow"  # Created by migration, not yet claimed
    ACTIVE = "active"  # Claimed by the publisher
    REVIEW_REQUIRED = "review_required"  # Flagged by a rollback


class OfferingStatus(str, Enum):
    """Status of a publisher offering."""
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class RecordSource(str, Enum):
    """Where a publisher-side record came from."""
    LEGACY_MIGRATION = "legacy_migration"
    MANUAL_REVIEW = "manual_review"
    DIRECT = "direct"  # Signed up without migration


@dataclass
class Publisher:
    """A publisher account."""
    company_name: str
    email: str
    id: str = field(default_factory=new_id)
    contact_name: Optional[str] = None
    account_status: AccountStatus = AccountStatus.SHADOW
    source: RecordSource = RecordSource.LEGACY_MIGRATION
    email_verified: bool = False
    confidence_score: float = 0.0
    invitation_token: Optional[str] = None
    invitation_sent_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "company_name": self.company_name,
            "email": self.email,
            "contact_name": self.contact_name,
            "account_status": self.account_status.value,
            "source": self.source.value,
            "email_verified": self.email_verified,
            "confidence_score": self.confidence_score,
            "invitation_sent_at": self.invitation_sent_at.isoformat() if self.invitation_sent_at else None,
            "claimed_at": self.claimed_at.isoformat() if self.claimed_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Offering:
    """A priced offering owned by a publisher."""
    publisher_id: str
    base_price: int  # Minor currency units (cents)
    id: str = field(default_factory=new_id)
    offering_type: str = "guest_post"
    offering_name: str = ""
    currency: str = "USD"
    status: OfferingStatus = OfferingStatus.DRAFT
    source: RecordSource = RecordSource.LEGACY_MIGRATION
    archived_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "publisher_id": self.publisher_id,
            "offering_type": self.offering_type,
            "offering_name": self.offering_name,
            "base_price": self.base_price,
            "currency": self.currency,
            "status": self.status.value,
            "source": self.source.value,
            "archived_at": self.archived_at.isoformat() if self.archived_at else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PublisherWebsiteRelationship:
    """Edge between a publisher and a legacy website."""
    publisher_id: str
    website_id: str
    id: str = field(default_factory=new_id)
    confidence_score: float = 0.0
    source: RecordSource = RecordSource.LEGACY_MIGRATION
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "publisher_id": self.publisher_id,
            "website_id": self.website_id,
            "confidence_score": self.confidence_score,
            "source": self.source.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PerformanceRecord:
    """Aggregate performance metrics carried over from legacy data."""
    publisher_id: str
    website_id: str
    period_start: date
    period_end: date
    id: str = field(default_factory=new_id)
    metric_type: str = "aggregate"
    metric_name: str = "response_time_hours"
    metric_value: float = 0.0
    success_rate: float = 0.0
    source: RecordSource = RecordSource.LEGACY_MIGRATION
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "publisher_id": self.publisher_id,
            "website_id": self.website_id,
            "metric_type": self.metric_type,
            "metric_name": self.metric_name,
            "metric_value": self.metric_value,
            "success_rate": self.success_rate,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "source": self.source.value,
        }


@dataclass
class OrderLineItem:
    """An order line item, read only to check offering references."""
    offering_id: str
    id: str = field(default_factory=new_id)


@dataclass
class PublisherWebsiteInfo:
    """Website data shown in a publisher's invitation."""
    domain: str
    current_rate: Optional[float] = None
    estimated_turnaround_days: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "current_rate": self.current_rate,
            "estimated_turnaround_days": self.estimated_turnaround_days,
        }
