"""Website-to-publisher migrator - converts legacy contacts into publisher records."""

import logging
import re
import time
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .models.legacy import MappedWebsite, PublisherMapping
from .models.migration import MigrationErrorType, MigrationStats
from .models.publisher import (
    AccountStatus,
    Offering,
    OfferingStatus,
    PerformanceRecord,
    Publisher,
    PublisherWebsiteRelationship,
    RecordSource,
)
from .stores.base import BaseStore
from .utils import utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PLAUSIBLE_PRICE = 10
MAX_PLAUSIBLE_PRICE = 10000
RECENT_ACTIVITY_WINDOW = timedelta(days=180)
PERFORMANCE_WINDOW = timedelta(days=30)

SKIP_MISSING_COMPANY = "Missing publisher company name"


def is_valid_email(email: str) -> bool:
    """Loose email syntax check used for legacy contact data."""
    return bool(EMAIL_PATTERN.match(email))


def calculate_confidence_score(
    mapping: PublisherMapping,
    now: Optional[datetime] = None
) -> float:
    """
    Score how much the legacy data for a mapping can be trusted.

    Base 0.5, +0.2 when any website has a price, +0.2 when any website
    has a success rate above 80%, +0.1 when the mapping was active in the
    last 180 days. Capped at 1.0.

    Args:
        mapping: Publisher mapping to score
        now: Reference time for the recency check

    Returns:
        Score between 0.0 and 1.0
    """
    now = now or utcnow()
    score = 0.5

    if mapping.has_pricing:
        score += 0.2

    if any(w.success_rate_percentage is not None and w.success_rate_percentage > 80
           for w in mapping.websites):
        score += 0.2

    if mapping.last_activity and mapping.last_activity > now - RECENT_ACTIVITY_WINDOW:
        score += 0.1

    return min(round(score, 2), 1.0)


def _average(values: List[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


class WebsiteToPublisherMigrator:
    """
    Migrates legacy website contacts into the publisher data model.

    Runs six phases: analyze, validate, shadow publishers, draft
    offerings, relationships and performance data. Per-record failures
    are recorded in the stats and never stop the run.

    In dry-run mode every phase makes the same decisions and updates the
    same counters as a live run; only the store writes are skipped.
    """

    def __init__(
        self,
        store: BaseStore,
        dry_run: bool = False,
        batch_size: int = 10,
        batch_delay_seconds: float = 0.0
    ):
        """
        Initialize the migrator.

        Args:
            store: Store holding legacy and publisher records
            dry_run: If True, simulate without writing
            batch_size: Mappings per publisher-creation batch
            batch_delay_seconds: Pause between publisher batches
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.store = store
        self.dry_run = dry_run
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.stats = MigrationStats(dry_run=dry_run)

    def migrate(self) -> MigrationStats:
        """
        Run the full migration.

        Returns:
            MigrationStats with counters, errors and skipped mappings
        """
        self.stats = MigrationStats(dry_run=self.dry_run)
        self.stats.started_at = utcnow()
        logger.info(f"Starting publisher migration (mode: {'DRY RUN' if self.dry_run else 'LIVE'})")

        try:
            logger.info("=== PHASE 1: ANALYZE ===")
            mappings = self.analyze_website_data()

            logger.info("=== PHASE 2: VALIDATE ===")
            eligible = self.validate_mappings(mappings)

            logger.info("=== PHASE 3: SHADOW PUBLISHERS ===")
            self.create_shadow_publishers(eligible)

            targets = [m for m in eligible if m.publisher_id]

            logger.info("=== PHASE 4: DRAFT OFFERINGS ===")
            self.create_draft_offerings(targets)

            logger.info("=== PHASE 5: RELATIONSHIPS ===")
            self.create_relationships(targets)

            logger.info("=== PHASE 6: PERFORMANCE DATA ===")
            self.migrate_performance_data(targets)

        except Exception as e:
            logger.error(f"Migration failed: {e}")
            self.stats.add_error(MigrationErrorType.FATAL, str(e))

        finally:
            self.stats.completed_at = utcnow()
            self._log_report()

        return self.stats

    def analyze_website_data(self) -> List[PublisherMapping]:
        """
        Group legacy website contacts by normalized email.

        The first row seen for an email seeds the mapping; later rows add
        their website and push last_activity forward. A website reached
        through several contacts of the same mapping is kept once, from
        the first row seen.
        """
        rows = self.store.list_website_contacts()
        self.stats.total_websites = len(rows)
        logger.info(f"Found {len(rows)} websites with contact information")

        mappings: Dict[str, PublisherMapping] = {}
        for row in rows:
            key = row.contact_email.strip().lower()
            mapping = mappings.get(key)
            if mapping is None:
                mapping = PublisherMapping(
                    company_name=row.contact_email,
                    contact_email=row.contact_email,
                    last_activity=row.updated_at,
                )
                mappings[key] = mapping

            if all(w.id != row.website_id for w in mapping.websites):
                mapping.websites.append(MappedWebsite.from_row(row))

            if row.updated_at and (mapping.last_activity is None or row.updated_at > mapping.last_activity):
                mapping.last_activity = row.updated_at

        self.stats.unique_publishers = len(mappings)
        logger.info(f"Identified {len(mappings)} unique publishers")
        return list(mappings.values())

    def validate_mappings(self, mappings: List[PublisherMapping]) -> List[PublisherMapping]:
        """
        Sanity-check each mapping.

        Mappings without a company name are skipped. Suspicious prices
        and malformed emails are recorded as errors but do not block
        creation.

        Returns:
            Mappings eligible for publisher creation
        """
        eligible = []
        for mapping in mappings:
            if not mapping.company_name or not mapping.company_name.strip():
                mapping.skip_reason = SKIP_MISSING_COMPANY
                self.stats.add_skipped(SKIP_MISSING_COMPANY, mapping.to_dict())
                continue

            suspicious = [
                w.to_dict() for w in mapping.websites
                if w.guest_post_cost is not None
                and not MIN_PLAUSIBLE_PRICE <= w.guest_post_cost <= MAX_PLAUSIBLE_PRICE
            ]
            if suspicious:
                self.stats.add_error(
                    MigrationErrorType.SUSPICIOUS_PRICING,
                    f"Publisher {mapping.company_name} has suspicious pricing",
                    suspicious,
                )

            if mapping.contact_email and not is_valid_email(mapping.contact_email):
                self.stats.add_error(
                    MigrationErrorType.INVALID_EMAIL,
                    f"Invalid email for {mapping.company_name}",
                    mapping.contact_email,
                )

            eligible.append(mapping)

        logger.info(f"Validation complete. {len(self.stats.errors)} issues found.")
        return eligible

    def create_shadow_publishers(self, mappings: List[PublisherMapping]) -> None:
        """Create one shadow publisher per mapping, in batches."""
        total = len(mappings)

        for start in range(0, total, self.batch_size):
            batch = mappings[start:start + self.batch_size]

            for mapping in batch:
                try:
                    self._create_shadow_publisher(mapping)
                except Exception as e:
                    logger.error(f"Failed to create publisher {mapping.company_name}: {e}")
                    self.stats.add_error(
                        MigrationErrorType.PUBLISHER_CREATION_ERROR,
                        f"Failed to create publisher: {mapping.company_name}",
                        str(e),
                    )

            processed = min(start + self.batch_size, total)
            logger.info(f"Progress: {processed}/{total} publishers processed")

            if self.batch_delay_seconds > 0 and processed < total:
                time.sleep(self.batch_delay_seconds)

    def _create_shadow_publisher(self, mapping: PublisherMapping) -> None:
        existing = self.store.find_publisher_by_company_name(mapping.company_name)
        if existing is not None:
            logger.info(f"Reusing existing publisher {existing.id} for {mapping.company_name}")
            mapping.publisher_id = existing.id
            return

        mapping.confidence_score = calculate_confidence_score(mapping)
        slug = re.sub(r"\s+", "_", mapping.company_name).lower()

        publisher = Publisher(
            company_name=mapping.company_name,
            email=mapping.contact_email or f"noreply+{slug}@shadow.invalid",
            contact_name=mapping.contact_name or mapping.company_name,
            account_status=AccountStatus.SHADOW,
            source=RecordSource.LEGACY_MIGRATION,
            confidence_score=mapping.confidence_score,
            invitation_token=str(uuid.uuid4()),
        )

        if self.dry_run:
            logger.info(f"[DRY RUN] Would create publisher: {publisher.company_name}")
        else:
            self.store.insert_publisher(publisher)

        self.stats.shadow_publishers_created += 1
        mapping.publisher_id = publisher.id

    def create_draft_offerings(self, mappings: List[PublisherMapping]) -> None:
        """Create a draft guest-post offering for every priced website."""
        for mapping in mappings:
            for website in mapping.websites:
                if website.guest_post_cost is None:
                    continue

                offering = Offering(
                    publisher_id=mapping.publisher_id,
                    base_price=int(round(website.guest_post_cost * 100)),
                    offering_type="guest_post",
                    offering_name=f"Guest Post - {website.domain}",
                    currency="USD",
                    status=OfferingStatus.DRAFT,
                    source=RecordSource.LEGACY_MIGRATION,
                )

                try:
                    if self.dry_run:
                        logger.info(f"[DRY RUN] Would create offering for: {website.domain}")
                    else:
                        self.store.insert_offering(offering)
                    self.stats.offerings_created += 1
                except Exception as e:
                    logger.error(f"Error creating offering for {website.domain}: {e}")
                    self.stats.add_error(
                        MigrationErrorType.OFFERING_CREATION_ERROR,
                        f"Failed to create offering for {website.domain}: {e}",
                        {"website_id": website.id, "publisher_id": mapping.publisher_id},
                    )

    def create_relationships(self, mappings: List[PublisherMapping]) -> None:
        """Link every website in a mapping to its publisher."""
        for mapping in mappings:
            score = mapping.confidence_score
            if score is None:
                score = calculate_confidence_score(mapping)

            for website in mapping.websites:
                relationship = PublisherWebsiteRelationship(
                    publisher_id=mapping.publisher_id,
                    website_id=website.id,
                    confidence_score=score,
                    source=RecordSource.LEGACY_MIGRATION,
                )

                try:
                    if self.dry_run:
                        logger.info(f"[DRY RUN] Would create relationship: {website.domain}")
                    else:
                        self.store.insert_relationship(relationship)
                    self.stats.relationships_created += 1
                except Exception as e:
                    logger.error(f"Error creating relationship for {website.domain}: {e}")
                    self.stats.add_error(
                        MigrationErrorType.RELATIONSHIP_CREATION_ERROR,
                        f"Failed to create relationship for {website.domain}",
                        {"website_id": website.id, "publisher_id": mapping.publisher_id},
                    )

    def migrate_performance_data(self, mappings: List[PublisherMapping]) -> None:
        """Write one aggregate performance record per mapping with metrics."""
        today = utcnow().date()

        for mapping in mappings:
            avg_response_time = _average([w.avg_response_time_hours for w in mapping.websites])
            avg_success_rate = _average([w.success_rate_percentage for w in mapping.websites])

            if avg_response_time is None and avg_success_rate is None:
                continue

            record = PerformanceRecord(
                publisher_id=mapping.publisher_id,
                website_id=mapping.websites[0].id,
                period_start=today - PERFORMANCE_WINDOW,
                period_end=today,
                metric_type="aggregate",
                metric_name="response_time_hours",
                metric_value=avg_response_time or 0.0,
                success_rate=avg_success_rate or 0.0,
                source=RecordSource.LEGACY_MIGRATION,
            )

            try:
                if self.dry_run:
                    logger.info(f"[DRY RUN] Would migrate performance for: {mapping.company_name}")
                else:
                    self.store.insert_performance(record)
                self.stats.performance_records_created += 1
            except Exception as e:
                logger.error(f"Error migrating performance for {mapping.company_name}: {e}")
                self.stats.add_error(
                    MigrationErrorType.PERFORMANCE_MIGRATION_ERROR,
                    f"Failed to migrate performance for {mapping.company_name}",
                    str(e),
                )

    def _log_report(self) -> None:
        """Log the end-of-run summary."""
        stats = self.stats
        logger.info("=" * 60)
        logger.info("MIGRATION REPORT")
        logger.info("=" * 60)
        logger.info(f"Mode: {'DRY RUN' if stats.dry_run else 'LIVE'}")
        logger.info(f"Total Websites: {stats.total_websites}")
        logger.info(f"Unique Publishers: {stats.unique_publishers}")
        logger.info(f"Shadow Publishers Created: {stats.shadow_publishers_created}")
        logger.info(f"Offerings Created: {stats.offerings_created}")
        logger.info(f"Relationships Created: {stats.relationships_created}")
        logger.info(f"Performance Records Created: {stats.performance_records_created}")
        logger.info(f"Errors: {len(stats.errors)}")
        logger.info(f"Skipped: {len(stats.skipped)}")

        for index, error in enumerate(stats.errors, 1):
            logger.warning(f"{index}. [{error['type']}] {error['message']}")

        logger.info("=" * 60)
