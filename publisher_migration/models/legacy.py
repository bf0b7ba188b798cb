"""Legacy website and contact records read by the migration."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..utils import parse_timestamp, to_float


@dataclass
class LegacyWebsite:
    """A row from the legacy websites table."""
    id: str
    domain: str
    publisher_company: Optional[str] = None
    guest_post_cost: Optional[float] = None
    avg_response_time_hours: Optional[float] = None
    success_rate_percentage: Optional[float] = None
    primary_contact_id: Optional[str] = None
    domain_rating: Optional[float] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "domain": self.domain,
            "publisher_company": self.publisher_company,
            "guest_post_cost": self.guest_post_cost,
            "avg_response_time_hours": self.avg_response_time_hours,
            "success_rate_percentage": self.success_rate_percentage,
            "primary_contact_id": self.primary_contact_id,
            "domain_rating": self.domain_rating,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LegacyWebsite":
        """Create from dictionary representation."""
        return cls(
            id=str(data["id"]),
            domain=data.get("domain", ""),
            publisher_company=data.get("publisher_company"),
            guest_post_cost=to_float(data.get("guest_post_cost")),
            avg_response_time_hours=to_float(data.get("avg_response_time_hours")),
            success_rate_percentage=to_float(data.get("success_rate_percentage")),
            primary_contact_id=data.get("primary_contact_id"),
            domain_rating=to_float(data.get("domain_rating")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


@dataclass
class LegacyContact:
    """A row from the legacy website_contacts table."""
    id: str
    website_id: str
    email: Optional[str]
    is_primary: bool = False
    guest_post_cost: Optional[float] = None
    link_insert_cost: Optional[float] = None
    requirement: Optional[str] = None
    status: Optional[str] = None
    response_rate: Optional[float] = None
    average_response_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "website_id": self.website_id,
            "email": self.email,
            "is_primary": self.is_primary,
            "guest_post_cost": self.guest_post_cost,
            "link_insert_cost": self.link_insert_cost,
            "requirement": self.requirement,
            "status": self.status,
            "response_rate": self.response_rate,
            "average_response_time": self.average_response_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LegacyContact":
        """Create from dictionary representation."""
        return cls(
            id=str(data["id"]),
            website_id=str(data["website_id"]),
            email=data.get("email"),
            is_primary=bool(data.get("is_primary", False)),
            guest_post_cost=to_float(data.get("guest_post_cost")),
            link_insert_cost=to_float(data.get("link_insert_cost")),
            requirement=data.get("requirement"),
            status=data.get("status"),
            response_rate=to_float(data.get("response_rate")),
            average_response_time=to_float(data.get("average_response_time")),
        )


def _first_present(*values: Optional[float]) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


@dataclass
class LegacyWebsiteContact:
    """
    A website joined with one of its contacts.

    Contact-level pricing and performance override the website's own
    values when both are present.
    """
    website_id: str
    domain: str
    contact_email: str
    guest_post_cost: Optional[float] = None
    avg_response_time_hours: Optional[float] = None
    success_rate_percentage: Optional[float] = None
    updated_at: Optional[datetime] = None
    contact_id: Optional[str] = None
    is_primary: bool = False
    link_insert_cost: Optional[float] = None
    requirement: Optional[str] = None
    contact_status: Optional[str] = None

    @classmethod
    def join(cls, website: LegacyWebsite, contact: LegacyContact) -> "LegacyWebsiteContact":
        """Build the joined row for a website/contact pair."""
        return cls(
            website_id=website.id,
            domain=website.domain,
            contact_email=contact.email or "",
            guest_post_cost=_first_present(contact.guest_post_cost, website.guest_post_cost),
            avg_response_time_hours=_first_present(
                contact.average_response_time, website.avg_response_time_hours
            ),
            success_rate_percentage=_first_present(
                contact.response_rate, website.success_rate_percentage
            ),
            updated_at=website.updated_at,
            contact_id=contact.id,
            is_primary=contact.is_primary,
            link_insert_cost=contact.link_insert_cost,
            requirement=contact.requirement,
            contact_status=contact.status,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "website_id": self.website_id,
            "domain": self.domain,
            "contact_email": self.contact_email,
            "guest_post_cost": self.guest_post_cost,
            "avg_response_time_hours": self.avg_response_time_hours,
            "success_rate_percentage": self.success_rate_percentage,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "contact_id": self.contact_id,
            "is_primary": self.is_primary,
        }


def join_website_contacts(
    websites: List[LegacyWebsite],
    contacts: List[LegacyContact]
) -> List[LegacyWebsiteContact]:
    """
    Inner-join websites with their contacts.

    Contacts without an email are dropped. Rows come back ordered by
    email, then domain.
    """
    by_id = {w.id: w for w in websites}
    rows = []

    for contact in contacts:
        if contact.email is None:
            continue
        website = by_id.get(contact.website_id)
        if website is None:
            continue
        rows.append(LegacyWebsiteContact.join(website, contact))

    rows.sort(key=lambda r: (r.contact_email, r.domain))
    return rows


@dataclass
class MappedWebsite:
    """A website attached to a publisher mapping."""
    id: str
    domain: str
    guest_post_cost: Optional[float] = None
    avg_response_time_hours: Optional[float] = None
    success_rate_percentage: Optional[float] = None
    contact_id: Optional[str] = None
    is_primary: bool = False
    link_insert_cost: Optional[float] = None
    requirement: Optional[str] = None
    contact_status: Optional[str] = None

    @classmethod
    def from_row(cls, row: LegacyWebsiteContact) -> "MappedWebsite":
        return cls(
            id=row.website_id,
            domain=row.domain,
            guest_post_cost=row.guest_post_cost,
            avg_response_time_hours=row.avg_response_time_hours,
            success_rate_percentage=row.success_rate_percentage,
            contact_id=row.contact_id,
            is_primary=row.is_primary,
            link_insert_cost=row.link_insert_cost,
            requirement=row.requirement,
            contact_status=row.contact_status,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain,
            "guest_post_cost": self.guest_post_cost,
            "avg_response_time_hours": self.avg_response_time_hours,
            "success_rate_percentage": self.success_rate_percentage,
        }


@dataclass
class PublisherMapping:
    """
    Legacy contacts grouped under one future publisher.

    Built fresh on every migration run and never persisted.
    """
    company_name: str
    contact_email: Optional[str] = None
    contact_name: Optional[str] = None
    websites: List[MappedWebsite] = field(default_factory=list)
    last_activity: Optional[datetime] = None
    confidence_score: Optional[float] = None
    publisher_id: Optional[str] = None
    skip_reason: Optional[str] = None

    @property
    def has_pricing(self) -> bool:
        return any(w.guest_post_cost is not None for w in self.websites)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "company_name": self.company_name,
            "contact_email": self.contact_email,
            "websites": [w.to_dict() for w in self.websites],
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "confidence_score": self.confidence_score,
            "publisher_id": self.publisher_id,
            "skip_reason": self.skip_reason,
        }
