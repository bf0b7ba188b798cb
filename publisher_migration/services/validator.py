"""Pre-migration data-quality validation for legacy website records."""

import html
import logging
from collections import defaultdict
from typing import Dict, List

from ..models.legacy import LegacyContact, LegacyWebsite
from ..models.publisher import RecordSource
from ..models.validation import (
    IssueCategory,
    IssueType,
    ValidationIssue,
    ValidationReport,
    ValidationSummary,
)
from ..stores.base import BaseStore

logger = logging.getLogger(__name__)

MAX_REALISTIC_PRICE = 10000
MAX_RESPONSE_TIME_HOURS = 168  # One week


def _website_ref(website: LegacyWebsite, **extra) -> Dict:
    ref = {"id": website.id, "domain": website.domain}
    ref.update(extra)
    return ref


class PublisherMigrationValidator:
    """
    Read-only scan of legacy data before a migration.

    Every check runs independently and appends zero or more issues.
    Store failures are not caught: a report built on partial data would
    be misleading, so the caller gets the exception instead.
    """

    def __init__(self, store: BaseStore):
        self.store = store

    def validate_all(self) -> ValidationReport:
        """
        Run every check.

        Returns:
            ValidationReport; ready_for_migration is True when there are
            no error-level issues
        """
        logger.info("Starting comprehensive validation...")

        websites = self.store.list_legacy_websites()
        contacts = self.store.list_legacy_contacts()

        issues: List[ValidationIssue] = []
        issues.extend(self.check_duplicate_emails(contacts))
        issues.extend(self.check_orphan_websites(websites, contacts))
        issues.extend(self.check_invalid_pricing(websites))
        issues.extend(self.check_missing_contact_info(websites))
        issues.extend(self.check_duplicate_publisher_names(websites))
        issues.extend(self.check_existing_publishers())
        issues.extend(self.check_data_completeness(websites))
        issues.extend(self.check_performance_metrics(websites))

        websites_with_contacts = {c.website_id for c in contacts} & {w.id for w in websites}
        summary = ValidationSummary(
            total_websites=len(websites),
            websites_with_publisher=len(websites_with_contacts),
            websites_without_publisher=len(websites) - len(websites_with_contacts),
            unique_publishers=len({
                c.email.strip().lower() for c in contacts if c.email is not None
            }),
        )

        report = ValidationReport(issues=issues, summary=summary)
        summary.duplicate_emails = self._affected(report, IssueCategory.DUPLICATE_EMAILS)
        summary.invalid_pricing = self._affected(report, IssueCategory.INVALID_PRICING)
        summary.orphan_websites = self._affected(report, IssueCategory.ORPHAN_WEBSITES)

        logger.info(
            f"Validation finished: {report.errors} errors, {report.warnings} warnings, "
            f"{report.info} info"
        )
        return report

    @staticmethod
    def _affected(report: ValidationReport, category: IssueCategory) -> int:
        found = report.find(category)
        if not found:
            return 0
        return found[0].affected_count or 0

    def check_duplicate_emails(self, contacts: List[LegacyContact]) -> List[ValidationIssue]:
        """Contact emails that appear more than once after normalization."""
        counts: Dict[str, int] = defaultdict(int)
        for contact in contacts:
            if contact.email is not None:
                counts[contact.email.strip().lower()] += 1

        duplicates = [
            {"email": email, "count": count}
            for email, count in sorted(counts.items()) if count > 1
        ]
        if not duplicates:
            return []

        return [ValidationIssue(
            type=IssueType.WARNING,
            category=IssueCategory.DUPLICATE_EMAILS,
            message=f"Found {len(duplicates)} duplicate email addresses in contacts",
            affected_count=len(duplicates),
            data=duplicates,
            suggestion="Review and merge duplicate accounts before migration",
        )]

    def check_orphan_websites(
        self,
        websites: List[LegacyWebsite],
        contacts: List[LegacyContact]
    ) -> List[ValidationIssue]:
        """Websites with no contact rows at all."""
        with_contacts = {c.website_id for c in contacts}
        orphans = [w for w in websites if w.id not in with_contacts]
        if not orphans:
            return []

        return [ValidationIssue(
            type=IssueType.WARNING,
            category=IssueCategory.ORPHAN_WEBSITES,
            message=f"Found {len(orphans)} websites with no contacts",
            affected_count=len(orphans),
            data=[_website_ref(w) for w in orphans[:10]],
            suggestion="These websites have no contact data and cannot be migrated",
        )]

    def check_invalid_pricing(self, websites: List[LegacyWebsite]) -> List[ValidationIssue]:
        """Negative prices are errors; prices over the ceiling are warnings."""
        issues = []

        negative = [w for w in websites
                    if w.guest_post_cost is not None and w.guest_post_cost < 0]
        if negative:
            issues.append(ValidationIssue(
                type=IssueType.ERROR,
                category=IssueCategory.INVALID_PRICING,
                message=f"Found {len(negative)} websites with negative pricing",
                affected_count=len(negative),
                data=[_website_ref(w, guest_post_cost=w.guest_post_cost) for w in negative],
                suggestion="Fix negative prices before migration",
            ))

        unrealistic = [w for w in websites
                       if w.guest_post_cost is not None and w.guest_post_cost > MAX_REALISTIC_PRICE]
        if unrealistic:
            issues.append(ValidationIssue(
                type=IssueType.WARNING,
                category=IssueCategory.UNREALISTIC_PRICING,
                message=f"Found {len(unrealistic)} websites with prices over ${MAX_REALISTIC_PRICE:,}",
                affected_count=len(unrealistic),
                data=[_website_ref(w, guest_post_cost=w.guest_post_cost) for w in unrealistic],
                suggestion="Verify these high prices are correct",
            ))

        return issues

    def check_missing_contact_info(self, websites: List[LegacyWebsite]) -> List[ValidationIssue]:
        companies = {
            w.publisher_company for w in websites
            if w.publisher_company is not None and w.primary_contact_id is None
        }
        if not companies:
            return []

        return [ValidationIssue(
            type=IssueType.INFO,
            category=IssueCategory.MISSING_CONTACTS,
            message=f"{len(companies)} publishers have no contact information",
            affected_count=len(companies),
            suggestion="Shadow publishers will be created with placeholder emails",
        )]

    def check_duplicate_publisher_names(self, websites: List[LegacyWebsite]) -> List[ValidationIssue]:
        """Publisher company names differing only by case or surrounding spaces."""
        variants: Dict[str, set] = defaultdict(set)
        for website in websites:
            if website.publisher_company is not None:
                variants[website.publisher_company.strip().lower()].add(website.publisher_company)

        collisions = [
            {
                "normalized_name": name,
                "variations": len(raw),
                "names": ", ".join(sorted(raw)),
            }
            for name, raw in sorted(variants.items()) if len(raw) > 1
        ]
        if not collisions:
            return []

        return [ValidationIssue(
            type=IssueType.WARNING,
            category=IssueCategory.DUPLICATE_PUBLISHER_NAMES,
            message=f"Found {len(collisions)} publisher names with case/spacing variations",
            affected_count=len(collisions),
            data=collisions,
            suggestion="Names will be normalized during migration",
        )]

    def check_existing_publishers(self) -> List[ValidationIssue]:
        """Publishers that were not created by the legacy migration."""
        existing = [p for p in self.store.list_publishers()
                    if p.source != RecordSource.LEGACY_MIGRATION]
        if not existing:
            return []

        offering_counts: Dict[str, int] = defaultdict(int)
        for offering in self.store.list_offerings():
            offering_counts[offering.publisher_id] += 1

        return [ValidationIssue(
            type=IssueType.INFO,
            category=IssueCategory.EXISTING_PUBLISHERS,
            message=f"{len(existing)} publishers already exist in the new system",
            affected_count=len(existing),
            data=[
                {
                    "company_name": p.company_name,
                    "account_status": p.account_status.value,
                    "created_at": p.created_at.isoformat(),
                    "offering_count": offering_counts[p.id],
                }
                for p in existing
            ],
            suggestion="These will be skipped during migration",
        )]

    def check_data_completeness(self, websites: List[LegacyWebsite]) -> List[ValidationIssue]:
        """Always reports the share of websites with both a company and a price."""
        total = len(websites)
        ready = sum(1 for w in websites
                    if w.publisher_company is not None and w.guest_post_cost is not None)
        completeness = (ready / total * 100) if total else 0.0

        return [ValidationIssue(
            type=IssueType.INFO,
            category=IssueCategory.DATA_COMPLETENESS,
            message=f"{completeness:.1f}% of websites are migration-ready",
            data={
                "total": total,
                "has_publisher": sum(1 for w in websites if w.publisher_company is not None),
                "has_pricing": sum(1 for w in websites if w.guest_post_cost is not None),
                "has_contact": sum(1 for w in websites if w.primary_contact_id is not None),
                "has_metrics": sum(1 for w in websites if w.domain_rating is not None),
                "migration_ready": ready,
            },
            suggestion=(
                "Consider enriching data before migration"
                if completeness < 50 else "Data completeness is acceptable"
            ),
        )]

    def check_performance_metrics(self, websites: List[LegacyWebsite]) -> List[ValidationIssue]:
        """Response times outside 0-168h and success rates outside 0-100%."""
        issues = []

        bad_response = [
            w for w in websites
            if w.avg_response_time_hours is not None
            and not 0 <= w.avg_response_time_hours <= MAX_RESPONSE_TIME_HOURS
        ]
        if bad_response:
            issues.append(ValidationIssue(
                type=IssueType.WARNING,
                category=IssueCategory.INVALID_METRICS,
                message=f"{len(bad_response)} websites have invalid response times",
                affected_count=len(bad_response),
                data=[_website_ref(w, avg_response_time_hours=w.avg_response_time_hours)
                      for w in bad_response[:5]],
                suggestion="Response times should be between 0-168 hours (1 week)",
            ))

        bad_success = [
            w for w in websites
            if w.success_rate_percentage is not None
            and not 0 <= w.success_rate_percentage <= 100
        ]
        if bad_success:
            issues.append(ValidationIssue(
                type=IssueType.WARNING,
                category=IssueCategory.INVALID_METRICS,
                message=f"{len(bad_success)} websites have invalid success rates",
                affected_count=len(bad_success),
                data=[_website_ref(w, success_rate_percentage=w.success_rate_percentage)
                      for w in bad_success[:5]],
                suggestion="Success rates should be between 0-100%",
            ))

        return issues


_REPORT_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 2rem; background: #f9fafb; }
    .container { max-width: 1200px; margin: 0 auto; background: white; padding: 2rem; border-radius: 8px; }
    h1 { color: #111827; border-bottom: 2px solid #e5e7eb; padding-bottom: 1rem; }
    .status { padding: 1rem; border-radius: 6px; margin: 1rem 0; }
    .status.ready { background: #d1fae5; border: 1px solid #34d399; }
    .status.not-ready { background: #fee2e2; border: 1px solid #f87171; }
    .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 1rem; margin: 2rem 0; }
    .stat { padding: 1rem; background: #f3f4f6; border-radius: 6px; }
    .stat-label { font-size: 0.875rem; color: #6b7280; }
    .stat-value { font-size: 1.5rem; font-weight: bold; color: #111827; }
    .issue { padding: 1rem; margin: 0.5rem 0; border-left: 4px solid; border-radius: 4px; }
    .issue.error { border-color: #ef4444; background: #fef2f2; }
    .issue.warning { border-color: #f59e0b; background: #fffbeb; }
    .issue.info { border-color: #3b82f6; background: #eff6ff; }
    .suggestion { margin-top: 0.5rem; font-size: 0.875rem; color: #059669; }
"""


def render_html_report(report: ValidationReport) -> str:
    """
    Render a validation report as a standalone HTML page.

    Args:
        report: Report produced by validate_all()

    Returns:
        HTML document with every dynamic value escaped
    """
    esc = html.escape
    ready = report.ready_for_migration
    status_class = "ready" if ready else "not-ready"
    status_color = "#10b981" if ready else "#ef4444"
    status_text = "Ready for Migration" if ready else "Issues Need Resolution"

    stats = [
        ("Total Websites", report.summary.total_websites),
        ("Unique Publishers", report.summary.unique_publishers),
        ("Ready for Migration", report.summary.websites_with_publisher),
        ("Orphan Websites", report.summary.orphan_websites),
        ("Total Issues", report.total_issues),
        ("Errors", report.errors),
    ]
    stats_html = "\n".join(
        f'      <div class="stat"><div class="stat-label">{label}</div>'
        f'<div class="stat-value">{value}</div></div>'
        for label, value in stats
    )

    issue_blocks = []
    for issue in report.issues:
        affected = f"<span>Affected: {issue.affected_count}</span>" if issue.affected_count else ""
        suggestion = (
            f'<div class="suggestion">{esc(issue.suggestion)}</div>' if issue.suggestion else ""
        )
        issue_blocks.append(
            f'      <div class="issue {issue.type.value}">\n'
            f"        <strong>{issue.type.value.upper()}</strong> "
            f"<strong>{esc(issue.category.value)}</strong> {affected}\n"
            f"        <div>{esc(issue.message)}</div>\n"
            f"        {suggestion}\n"
            f"      </div>"
        )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Publisher Migration Validation Report</title>
  <style>{_REPORT_STYLE}</style>
</head>
<body>
  <div class="container">
    <h1>Publisher Migration Validation Report</h1>
    <div class="status {status_class}">
      <strong style="color: {status_color}">{status_text}</strong>
      <div>Generated: {esc(report.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z"))}</div>
    </div>
    <div class="stats">
{stats_html}
    </div>
    <div class="issues">
      <h2>Issues Found</h2>
{chr(10).join(issue_blocks)}
    </div>
  </div>
</body>
</html>
"""
