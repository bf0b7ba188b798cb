"""SQLAlchemy-backed store for relational deployments."""

from typing import Dict, Iterable, List, Optional, Set, Union
from datetime import date, datetime, timezone
import logging

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

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
from ..utils import new_id, utcnow

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class WebsiteRow(Base):
    __tablename__ = "websites"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    publisher_company: Mapped[Optional[str]] = mapped_column(String(255))
    guest_post_cost: Mapped[Optional[float]] = mapped_column(Float)
    avg_response_time_hours: Mapped[Optional[float]] = mapped_column(Float)
    success_rate_percentage: Mapped[Optional[float]] = mapped_column(Float)
    primary_contact_id: Mapped[Optional[str]] = mapped_column(String(64))
    domain_rating: Mapped[Optional[float]] = mapped_column(Float)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class WebsiteContactRow(Base):
    __tablename__ = "website_contacts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    website_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("websites.id", ondelete="CASCADE"), index=True
    )
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    guest_post_cost: Mapped[Optional[float]] = mapped_column(Float)
    link_insert_cost: Mapped[Optional[float]] = mapped_column(Float)
    requirement: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[Optional[str]] = mapped_column(String(50))
    response_rate: Mapped[Optional[float]] = mapped_column(Float)
    average_response_time: Mapped[Optional[float]] = mapped_column(Float)


class PublisherRow(Base):
    __tablename__ = "publishers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[Optional[str]] = mapped_column(String(255))
    account_status: Mapped[str] = mapped_column(String(32), default=AccountStatus.SHADOW.value)
    source: Mapped[str] = mapped_column(String(32), default=RecordSource.LEGACY_MIGRATION.value)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0)
    invitation_token: Mapped[Optional[str]] = mapped_column(String(64))
    invitation_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class OfferingRow(Base):
    __tablename__ = "publisher_offerings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    publisher_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("publishers.id", ondelete="CASCADE"), index=True
    )
    offering_type: Mapped[str] = mapped_column(String(50), default="guest_post")
    offering_name: Mapped[str] = mapped_column(String(255), default="")
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    status: Mapped[str] = mapped_column(String(32), default=OfferingStatus.DRAFT.value)
    source: Mapped[str] = mapped_column(String(32), default=RecordSource.LEGACY_MIGRATION.value)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class RelationshipRow(Base):
    __tablename__ = "publisher_websites"
    __table_args__ = (UniqueConstraint("publisher_id", "website_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    publisher_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("publishers.id", ondelete="CASCADE"), index=True
    )
    website_id: Mapped[str] = mapped_column(String(64), index=True)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0)
    source: Mapped[str] = mapped_column(String(32), default=RecordSource.LEGACY_MIGRATION.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PerformanceRow(Base):
    __tablename__ = "publisher_performance"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    publisher_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("publishers.id", ondelete="CASCADE"), index=True
    )
    website_id: Mapped[str] = mapped_column(String(64))
    metric_type: Mapped[str] = mapped_column(String(50), default="aggregate")
    metric_name: Mapped[str] = mapped_column(String(100), default="response_time_hours")
    metric_value: Mapped[float] = mapped_column(Float, default=0.0)
    success_rate: Mapped[float] = mapped_column(Float, default=0.0)
    period_start: Mapped[date] = mapped_column(Date)
    period_end: Mapped[date] = mapped_column(Date)
    source: Mapped[str] = mapped_column(String(32), default=RecordSource.LEGACY_MIGRATION.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class OrderLineItemRow(Base):
    __tablename__ = "order_line_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    offering_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_publisher(row: PublisherRow) -> Publisher:
    return Publisher(
        id=row.id,
        company_name=row.company_name,
        email=row.email,
        contact_name=row.contact_name,
        account_status=AccountStatus(row.account_status),
        source=RecordSource(row.source),
        email_verified=row.email_verified,
        confidence_score=row.confidence_score,
        invitation_token=row.invitation_token,
        invitation_sent_at=_aware(row.invitation_sent_at),
        claimed_at=_aware(row.claimed_at),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_offering(row: OfferingRow) -> Offering:
    return Offering(
        id=row.id,
        publisher_id=row.publisher_id,
        offering_type=row.offering_type,
        offering_name=row.offering_name,
        base_price=row.base_price,
        currency=row.currency,
        status=OfferingStatus(row.status),
        source=RecordSource(row.source),
        archived_at=_aware(row.archived_at),
        created_at=_aware(row.created_at),
    )


def _to_relationship(row: RelationshipRow) -> PublisherWebsiteRelationship:
    return PublisherWebsiteRelationship(
        id=row.id,
        publisher_id=row.publisher_id,
        website_id=row.website_id,
        confidence_score=row.confidence_score,
        source=RecordSource(row.source),
        created_at=_aware(row.created_at),
    )


def _to_performance(row: PerformanceRow) -> PerformanceRecord:
    return PerformanceRecord(
        id=row.id,
        publisher_id=row.publisher_id,
        website_id=row.website_id,
        metric_type=row.metric_type,
        metric_name=row.metric_name,
        metric_value=row.metric_value,
        success_rate=row.success_rate,
        period_start=row.period_start,
        period_end=row.period_end,
        source=RecordSource(row.source),
        created_at=_aware(row.created_at),
    )


class SQLStore(BaseStore):
    """
    Store backed by a relational database through SQLAlchemy.

    Each public method opens its own session and commits before
    returning, so a failed insert never takes earlier work with it.
    """

    def __init__(self, url_or_engine: Union[str, Engine], echo: bool = False):
        """
        Initialize the store.

        Args:
            url_or_engine: Database URL or an existing Engine
            echo: Log emitted SQL (ignored when an Engine is passed)
        """
        if isinstance(url_or_engine, Engine):
            self.engine = url_or_engine
        else:
            self.engine = create_engine(url_or_engine, echo=echo, pool_pre_ping=True)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(self.engine)

    def check_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    # -- Seeding -----------------------------------------------------------

    def add_website(self, website: LegacyWebsite) -> LegacyWebsite:
        with self._session_factory.begin() as session:
            session.add(WebsiteRow(
                id=website.id,
                domain=website.domain,
                publisher_company=website.publisher_company,
                guest_post_cost=website.guest_post_cost,
                avg_response_time_hours=website.avg_response_time_hours,
                success_rate_percentage=website.success_rate_percentage,
                primary_contact_id=website.primary_contact_id,
                domain_rating=website.domain_rating,
                updated_at=website.updated_at,
            ))
        return website

    def add_contact(self, contact: LegacyContact) -> LegacyContact:
        with self._session_factory.begin() as session:
            session.add(WebsiteContactRow(
                id=contact.id,
                website_id=contact.website_id,
                email=contact.email,
                is_primary=contact.is_primary,
                guest_post_cost=contact.guest_post_cost,
                link_insert_cost=contact.link_insert_cost,
                requirement=contact.requirement,
                status=contact.status,
                response_rate=contact.response_rate,
                average_response_time=contact.average_response_time,
            ))
        return contact

    def add_order_line_item(self, item: OrderLineItem) -> OrderLineItem:
        with self._session_factory.begin() as session:
            session.add(OrderLineItemRow(id=item.id, offering_id=item.offering_id))
        return item

    # -- Legacy data -------------------------------------------------------

    def list_legacy_websites(self) -> List[LegacyWebsite]:
        with self._session_factory() as session:
            rows = session.scalars(select(WebsiteRow)).all()
            return [
                LegacyWebsite(
                    id=r.id,
                    domain=r.domain,
                    publisher_company=r.publisher_company,
                    guest_post_cost=r.guest_post_cost,
                    avg_response_time_hours=r.avg_response_time_hours,
                    success_rate_percentage=r.success_rate_percentage,
                    primary_contact_id=r.primary_contact_id,
                    domain_rating=r.domain_rating,
                    updated_at=_aware(r.updated_at),
                )
                for r in rows
            ]

    def list_legacy_contacts(self) -> List[LegacyContact]:
        with self._session_factory() as session:
            rows = session.scalars(select(WebsiteContactRow)).all()
            return [
                LegacyContact(
                    id=r.id,
                    website_id=r.website_id,
                    email=r.email,
                    is_primary=bool(r.is_primary),
                    guest_post_cost=r.guest_post_cost,
                    link_insert_cost=r.link_insert_cost,
                    requirement=r.requirement,
                    status=r.status,
                    response_rate=r.response_rate,
                    average_response_time=r.average_response_time,
                )
                for r in rows
            ]

    # -- Publisher graph ---------------------------------------------------

    def get_publisher(self, publisher_id: str) -> Optional[Publisher]:
        with self._session_factory() as session:
            row = session.get(PublisherRow, publisher_id)
            return _to_publisher(row) if row else None

    def find_publisher_by_company_name(self, company_name: str) -> Optional[Publisher]:
        wanted = normalize_company_name(company_name)
        stmt = (
            select(PublisherRow)
            .where(func.lower(func.trim(PublisherRow.company_name)) == wanted)
            .limit(1)
        )
        with self._session_factory() as session:
            row = session.scalars(stmt).first()
            return _to_publisher(row) if row else None

    def insert_publisher(self, publisher: Publisher) -> Publisher:
        with self._session_factory.begin() as session:
            session.add(PublisherRow(
                id=publisher.id,
                company_name=publisher.company_name,
                email=publisher.email,
                contact_name=publisher.contact_name,
                account_status=publisher.account_status.value,
                source=publisher.source.value,
                email_verified=publisher.email_verified,
                confidence_score=publisher.confidence_score,
                invitation_token=publisher.invitation_token,
                invitation_sent_at=publisher.invitation_sent_at,
                claimed_at=publisher.claimed_at,
                created_at=publisher.created_at,
                updated_at=publisher.updated_at,
            ))
        return publisher

    def insert_offering(self, offering: Offering) -> Offering:
        with self._session_factory.begin() as session:
            if session.get(PublisherRow, offering.publisher_id) is None:
                raise ValueError(f"Unknown publisher {offering.publisher_id}")
            session.add(OfferingRow(
                id=offering.id,
                publisher_id=offering.publisher_id,
                offering_type=offering.offering_type,
                offering_name=offering.offering_name,
                base_price=offering.base_price,
                currency=offering.currency,
                status=offering.status.value,
                source=offering.source.value,
                archived_at=offering.archived_at,
                created_at=offering.created_at,
            ))
        return offering

    def insert_relationship(
        self,
        relationship: PublisherWebsiteRelationship
    ) -> PublisherWebsiteRelationship:
        with self._session_factory.begin() as session:
            if session.get(PublisherRow, relationship.publisher_id) is None:
                raise ValueError(f"Unknown publisher {relationship.publisher_id}")
            duplicate = session.scalar(select(RelationshipRow.id).where(
                RelationshipRow.publisher_id == relationship.publisher_id,
                RelationshipRow.website_id == relationship.website_id,
            ))
            if duplicate is not None:
                raise ValueError(
                    f"Relationship {relationship.publisher_id} -> {relationship.website_id} already exists"
                )
            session.add(RelationshipRow(
                id=relationship.id,
                publisher_id=relationship.publisher_id,
                website_id=relationship.website_id,
                confidence_score=relationship.confidence_score,
                source=relationship.source.value,
                created_at=relationship.created_at,
            ))
        return relationship

    def insert_performance(self, record: PerformanceRecord) -> PerformanceRecord:
        with self._session_factory.begin() as session:
            if session.get(PublisherRow, record.publisher_id) is None:
                raise ValueError(f"Unknown publisher {record.publisher_id}")
            session.add(PerformanceRow(
                id=record.id,
                publisher_id=record.publisher_id,
                website_id=record.website_id,
                metric_type=record.metric_type,
                metric_name=record.metric_name,
                metric_value=record.metric_value,
                success_rate=record.success_rate,
                period_start=record.period_start,
                period_end=record.period_end,
                source=record.source.value,
                created_at=record.created_at,
            ))
        return record

    def list_publishers(self, source: Optional[RecordSource] = None) -> List[Publisher]:
        stmt = select(PublisherRow).order_by(PublisherRow.created_at)
        if source is not None:
            stmt = stmt.where(PublisherRow.source == source.value)
        with self._session_factory() as session:
            return [_to_publisher(r) for r in session.scalars(stmt).all()]

    def list_offerings(self, source: Optional[RecordSource] = None) -> List[Offering]:
        stmt = select(OfferingRow).order_by(OfferingRow.created_at)
        if source is not None:
            stmt = stmt.where(OfferingRow.source == source.value)
        with self._session_factory() as session:
            return [_to_offering(r) for r in session.scalars(stmt).all()]

    def list_relationships(
        self,
        source: Optional[RecordSource] = None
    ) -> List[PublisherWebsiteRelationship]:
        stmt = select(RelationshipRow).order_by(RelationshipRow.created_at)
        if source is not None:
            stmt = stmt.where(RelationshipRow.source == source.value)
        with self._session_factory() as session:
            return [_to_relationship(r) for r in session.scalars(stmt).all()]

    def list_performance(self, publisher_id: Optional[str] = None) -> List[PerformanceRecord]:
        stmt = select(PerformanceRow)
        if publisher_id is not None:
            stmt = stmt.where(PerformanceRow.publisher_id == publisher_id)
        with self._session_factory() as session:
            return [_to_performance(r) for r in session.scalars(stmt).all()]

    def list_order_line_items(self) -> List[OrderLineItem]:
        with self._session_factory() as session:
            rows = session.scalars(select(OrderLineItemRow)).all()
            return [OrderLineItem(id=r.id, offering_id=r.offering_id) for r in rows]

    def offering_ids_with_orders(self, offering_ids: Iterable[str]) -> Set[str]:
        ids = list(offering_ids)
        if not ids:
            return set()
        stmt = (
            select(OrderLineItemRow.offering_id)
            .where(OrderLineItemRow.offering_id.in_(ids))
            .distinct()
        )
        with self._session_factory() as session:
            return set(session.scalars(stmt).all())

    # -- Rollback mutations ------------------------------------------------

    def mark_publishers_for_review(self, publisher_ids: List[str]) -> int:
        if not publisher_ids:
            return 0
        stmt = (
            update(PublisherRow)
            .where(PublisherRow.id.in_(publisher_ids))
            .values(
                account_status=AccountStatus.REVIEW_REQUIRED.value,
                source=RecordSource.MANUAL_REVIEW.value,
                updated_at=utcnow(),
            )
        )
        with self._session_factory.begin() as session:
            return session.execute(stmt).rowcount

    def delete_publishers(self, publisher_ids: List[str]) -> int:
        if not publisher_ids:
            return 0
        with self._session_factory.begin() as session:
            # Dependents first; SQLite does not enforce ON DELETE CASCADE by default
            for model in (PerformanceRow, OfferingRow, RelationshipRow):
                session.execute(delete(model).where(model.publisher_id.in_(publisher_ids)))
            result = session.execute(
                delete(PublisherRow).where(PublisherRow.id.in_(publisher_ids))
            )
            logger.debug(f"Deleted {result.rowcount} publishers with dependent records")
            return result.rowcount

    def archive_offerings(self, offering_ids: List[str]) -> int:
        if not offering_ids:
            return 0
        stmt = (
            update(OfferingRow)
            .where(OfferingRow.id.in_(offering_ids))
            .values(status=OfferingStatus.ARCHIVED.value, archived_at=utcnow())
        )
        with self._session_factory.begin() as session:
            return session.execute(stmt).rowcount

    def delete_offerings(self, offering_ids: List[str]) -> int:
        if not offering_ids:
            return 0
        with self._session_factory.begin() as session:
            return session.execute(
                delete(OfferingRow).where(OfferingRow.id.in_(offering_ids))
            ).rowcount

    def delete_relationships(self, relationship_ids: List[str]) -> int:
        if not relationship_ids:
            return 0
        with self._session_factory.begin() as session:
            return session.execute(
                delete(RelationshipRow).where(RelationshipRow.id.in_(relationship_ids))
            ).rowcount

    def delete_all_migration_data(self) -> Dict[str, int]:
        legacy = RecordSource.LEGACY_MIGRATION.value
        migrated = select(PublisherRow.id).where(PublisherRow.source == legacy)

        with self._session_factory.begin() as session:
            counts = {}
            for key, model in (
                ("performance", PerformanceRow),
                ("offerings", OfferingRow),
                ("relationships", RelationshipRow),
            ):
                stmt = (
                    delete(model)
                    .where((model.source == legacy) | model.publisher_id.in_(migrated))
                    .execution_options(synchronize_session=False)
                )
                counts[key] = session.execute(stmt).rowcount
            counts["publishers"] = session.execute(
                delete(PublisherRow).where(PublisherRow.source == legacy)
            ).rowcount
        return counts

    # -- Invitations -------------------------------------------------------

    def mark_invitation_sent(
        self,
        publisher_id: str,
        invitation_token: str,
        sent_at: datetime
    ) -> None:
        stmt = (
            update(PublisherRow)
            .where(PublisherRow.id == publisher_id)
            .values(
                invitation_token=invitation_token,
                invitation_sent_at=sent_at,
                updated_at=sent_at,
            )
        )
        with self._session_factory.begin() as session:
            if session.execute(stmt).rowcount == 0:
                raise KeyError(publisher_id)
