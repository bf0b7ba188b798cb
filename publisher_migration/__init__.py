"""
Publisher Migration

Migrates a legacy website/contact data set into the publisher data model:
shadow publishers, draft offerings, publisher-website relationships and
performance records.

Supports:
- Pre-flight validation with HTML reports
- Dry runs that make every decision without writing
- Snapshot-based rollback with risk classification
- Session tracking with milestone events
- Email and chat notifications
- Claim invitations for migrated publishers
"""

__version__ = "0.1.0"
