"""Email and chat message templates for migration notifications."""

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional

from ..models.migration import MigrationSession, SessionStatus
from ..models.publisher import Publisher, PublisherWebsiteInfo

_WRAPPER = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{body}</div>'
_PANEL = '<div style="background: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0;">{body}</div>'
_FOOTER = (
    '<hr style="margin: 24px 0; border: none; border-top: 1px solid #e5e7eb;">'
    '<p style="font-size: 12px; color: #6b7280;">'
    "This is an automated notification from the migration system.</p>"
)


@dataclass
class NotificationMessage:
    """A rendered message with HTML and plain-text bodies."""
    subject: str
    html: str
    text: str


def _items(pairs: List[tuple]) -> str:
    return "<ul>" + "".join(
        f"<li><strong>{escape(str(label))}:</strong> {escape(str(value))}</li>"
        for label, value in pairs
    ) + "</ul>"


def _text_items(pairs: List[tuple]) -> str:
    return "\n".join(f"- {label}: {value}" for label, value in pairs)


def _timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _dashboard_link(dashboard_url: str, lead: str) -> str:
    return f'<p>{lead} <a href="{escape(dashboard_url, quote=True)}">migration dashboard</a>.</p>'


def migration_started(
    session_id: str,
    migration_type: str,
    stats: Dict[str, Any],
    dashboard_url: str,
    now: datetime
) -> NotificationMessage:
    label = "Dry Run (Safe)" if migration_type == "dry_run" else "Live Migration"
    pairs = [
        ("Session ID", session_id),
        ("Type", label),
        ("Started", _timestamp(now)),
        ("Websites to process", stats.get("total_websites") or "TBD"),
    ]
    subject = f"Publisher Migration {migration_type.upper()} Started - {session_id}"

    html_body = (
        '<h2 style="color: #2563eb;">Publisher Migration Started</h2>'
        "<p>A new publisher migration session has been initiated.</p>"
        + _PANEL.format(body="<h3>Migration Details</h3>" + _items(pairs))
        + _dashboard_link(dashboard_url, "You can monitor progress in the")
        + _FOOTER
    )
    text = (
        f"{subject}\n\nA new publisher migration session has been initiated.\n\n"
        f"Migration Details:\n{_text_items(pairs)}\n\n"
        f"Monitor progress at: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def migration_completed(
    session_id: str,
    results: Dict[str, Any],
    dashboard_url: str
) -> NotificationMessage:
    errors = results.get("errors") or []
    skipped = results.get("skipped") or []
    success = len(errors) == 0
    outcome = "Completed Successfully" if success else "Completed with Issues"
    pairs = [
        ("Session ID", session_id),
        ("Shadow Publishers Created", results.get("shadow_publishers_created", 0)),
        ("Offerings Created", results.get("offerings_created", 0)),
        ("Relationships Created", results.get("relationships_created", 0)),
        ("Errors", len(errors)),
        ("Skipped", len(skipped)),
    ]
    subject = f"Publisher Migration {outcome} - {session_id}"

    issues_html = "" if success else (
        '<div style="background: #fef3cd; border: 1px solid #fbbf24; padding: 16px; border-radius: 8px;">'
        '<h4 style="color: #92400e; margin-top: 0;">Issues Encountered</h4>'
        "<p>The migration completed but encountered some issues. "
        "Please review the detailed report.</p></div>"
    )
    html_body = (
        f'<h2 style="color: {"#10b981" if success else "#f59e0b"};">Migration {outcome}</h2>'
        + _PANEL.format(body="<h3>Results Summary</h3>" + _items(pairs))
        + issues_html
        + _dashboard_link(dashboard_url, "View full details in the")
    )
    text = (
        f"{subject}\n\nResults Summary:\n{_text_items(pairs)}\n\n"
        f"View full details at: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def milestone(
    session_id: str,
    percent: int,
    progress: Dict[str, Any],
    dashboard_url: str
) -> NotificationMessage:
    pairs = [
        ("Completion", f"{percent}%"),
        ("Phases Complete", f"{progress.get('completed_steps', 0)}/{progress.get('total_steps', 0)}"),
        ("Current Phase", progress.get("current_phase") or "Unknown"),
    ]
    subject = f"Migration Milestone: {percent}% Complete - {session_id}"

    bar = (
        '<div style="background: #e5e7eb; height: 20px; border-radius: 10px; overflow: hidden;">'
        f'<div style="background: #7c3aed; height: 100%; width: {int(percent)}%;"></div></div>'
    )
    html_body = (
        '<h2 style="color: #7c3aed;">Migration Milestone Reached</h2>'
        f"<p>Your publisher migration has reached {int(percent)}% completion.</p>"
        + _PANEL.format(body="<h3>Progress Update</h3>" + bar + _items(pairs))
        + _dashboard_link(dashboard_url, "Continue monitoring in the")
    )
    text = (
        f"{subject}\n\nYour publisher migration has reached {percent}% completion.\n\n"
        f"Progress Update:\n{_text_items(pairs)}\n\n"
        f"Continue monitoring at: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def migration_error(
    session_id: str,
    error: str,
    phase: Optional[str],
    dashboard_url: str,
    now: datetime
) -> NotificationMessage:
    pairs = [
        ("Session ID", session_id),
        ("Phase", phase or "Unknown"),
        ("Time", _timestamp(now)),
    ]
    subject = f"Migration Error - {session_id}"

    html_body = (
        '<h2 style="color: #dc2626;">Migration Error</h2>'
        "<p>An error occurred during the publisher migration process.</p>"
        '<div style="background: #fef2f2; border: 1px solid #fca5a5; padding: 16px; border-radius: 8px;">'
        '<h3 style="color: #991b1b; margin-top: 0;">Error Details</h3>'
        + _items(pairs)
        + "<p><strong>Error Message:</strong></p>"
        f'<pre style="background: #fff; padding: 8px; border-radius: 4px;">{escape(error)}</pre></div>'
        + _dashboard_link(dashboard_url, "Please check the")
    )
    text = (
        f"{subject}\n\nAn error occurred during the publisher migration process.\n\n"
        f"Error Details:\n{_text_items(pairs)}\n\nError Message:\n{error}\n\n"
        f"Check the migration dashboard for more details: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def daily_summary(
    sessions: List[MigrationSession],
    dashboard_url: str,
    now: datetime
) -> NotificationMessage:
    completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
    failed = [s for s in sessions if s.status == SessionStatus.ERROR]
    pairs = [
        ("Total Sessions", len(sessions)),
        ("Completed", len(completed)),
        ("Errors", len(failed)),
    ]
    subject = f"Daily Migration Summary - {now.date().isoformat()}"

    rows = "".join(
        '<div style="border: 1px solid #e5e7eb; padding: 12px; border-radius: 6px; margin: 8px 0;">'
        f"<strong>{escape(s.id)}</strong> - {escape(s.type.value)} "
        f'<span style="color: {"#10b981" if s.status == SessionStatus.COMPLETED else "#ef4444"};">'
        f"({escape(s.status.value)})</span></div>"
        for s in sessions[:5]
    )
    html_body = (
        '<h2 style="color: #374151;">Daily Migration Summary</h2>'
        "<p>Here's your daily summary of publisher migration activity.</p>"
        + _PANEL.format(body="<h3>Today's Activity</h3>" + _items(pairs))
        + (f"<h3>Recent Sessions</h3>{rows}" if rows else "")
        + _dashboard_link(dashboard_url, "View all activity in the")
    )
    text = (
        f"{subject}\n\nToday's Activity:\n{_text_items(pairs)}\n\n"
        f"View all activity at: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def campaign_success_rate(sent: int, failed: int) -> float:
    attempted = sent + failed
    if attempted == 0:
        return 0.0
    return sent / attempted * 100


def invitation_campaign(
    campaign_id: str,
    sent: int,
    failed: int,
    dashboard_url: str
) -> NotificationMessage:
    pairs = [
        ("Campaign ID", campaign_id),
        ("Invitations Sent", sent),
        ("Failed", failed),
        ("Success Rate", f"{campaign_success_rate(sent, failed):.1f}%"),
    ]
    subject = f"Invitation Campaign Complete - {campaign_id}"

    html_body = (
        '<h2 style="color: #059669;">Invitation Campaign Complete</h2>'
        "<p>Your publisher invitation campaign has finished processing.</p>"
        + _PANEL.format(body="<h3>Campaign Results</h3>" + _items(pairs))
        + _dashboard_link(dashboard_url, "Monitor publisher responses in the")
    )
    text = (
        f"{subject}\n\nCampaign Results:\n{_text_items(pairs)}\n\n"
        f"Monitor responses at: {dashboard_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def publisher_claim(
    publisher_name: str,
    company_name: str,
    website_count: int,
    now: datetime
) -> NotificationMessage:
    pairs = [
        ("Name", publisher_name),
        ("Company", company_name),
        ("Websites", website_count),
        ("Claimed", _timestamp(now)),
    ]
    subject = f"New Publisher Claimed Account - {company_name}"

    html_body = (
        '<h2 style="color: #7c3aed;">Publisher Account Claimed</h2>'
        "<p>A publisher has claimed their account.</p>"
        '<div style="background: #f0fdf4; border: 1px solid #86efac; padding: 16px; border-radius: 8px;">'
        '<h3 style="color: #166534; margin-top: 0;">Publisher Details</h3>'
        + _items(pairs) + "</div>"
        "<p>The publisher can now start receiving orders through the marketplace.</p>"
    )
    text = (
        f"{subject}\n\nPublisher Details:\n{_text_items(pairs)}\n\n"
        "The publisher can now start receiving orders through the marketplace.\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)


def publisher_invitation(
    publisher: Publisher,
    websites: List[PublisherWebsiteInfo],
    claim_url: str,
    estimated_monthly_value: Optional[int] = None
) -> NotificationMessage:
    """Invitation sent to a shadow publisher asking them to claim their account."""
    name = publisher.contact_name or publisher.company_name
    value_html = ""
    value_text = ""
    if estimated_monthly_value is not None:
        value_html = f"<p>Estimated monthly value: <strong>${estimated_monthly_value:,}</strong></p>"
        value_text = f"Estimated monthly value: ${estimated_monthly_value:,}\n\n"
    subject = f"Claim your publisher account for {len(websites)} website(s)"

    site_rows = "".join(
        f"<li><strong>{escape(w.domain)}</strong>"
        + (f" - current rate ${w.current_rate:,.2f}" if w.current_rate is not None else "")
        + (f", ~{w.estimated_turnaround_days} day turnaround" if w.estimated_turnaround_days else "")
        + "</li>"
        for w in websites
    )
    html_body = (
        f"<h2>Hi {escape(name)},</h2>"
        "<p>We have set up a publisher account for the websites you already work with us on. "
        "Claim it to manage your offerings and receive orders directly.</p>"
        + _PANEL.format(body=f"<h3>Your websites</h3><ul>{site_rows}</ul>" + value_html)
        + f'<p><a href="{escape(claim_url, quote=True)}" '
        'style="background: #2563eb; color: #fff; padding: 12px 20px; border-radius: 6px; '
        'text-decoration: none;">Claim your account</a></p>'
        + _FOOTER
    )
    site_lines = "\n".join(f"- {w.domain}" for w in websites)
    text = (
        f"Hi {name},\n\n"
        "We have set up a publisher account for the websites you already work with us on.\n\n"
        f"Your websites:\n{site_lines}\n\n"
        f"{value_text}"
        f"Claim your account: {claim_url}\n"
    )
    return NotificationMessage(subject=subject, html=_WRAPPER.format(body=html_body), text=text)
