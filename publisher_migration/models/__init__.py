"""Data models for the publisher migration."""

from .legacy import (
    LegacyWebsite,
    LegacyContact,
    LegacyWebsiteContact,
    MappedWebsite,
    PublisherMapping,
)
from .publisher import (
    AccountStatus,
    OfferingStatus,
    RecordSource,
    Publisher,
    Offering,
    PublisherWebsiteRelationship,
    PerformanceRecord,
    OrderLineItem,
    PublisherWebsiteInfo,
)
from .migration import (
    MigrationConfig,
    MigrationSession,
    MigrationStats,
    MigrationErrorType,
    PhaseName,
    PhaseState,
    PhaseStatus,
    SessionStatus,
    SessionType,
)
from .validation import (
    IssueCategory,
    IssueType,
    ValidationIssue,
    ValidationReport,
    ValidationSummary,
)
from .rollback import (
    ActionType,
    RiskLevel,
    RollbackAction,
    RollbackPlan,
    RollbackResult,
    RollbackSnapshot,
    SafetyIssue,
    SafetyReport,
    SnapshotType,
)

__all__ = [
    "LegacyWebsite",
    "LegacyContact",
    "LegacyWebsiteContact",
    "MappedWebsite",
    "PublisherMapping",
    "AccountStatus",
    "OfferingStatus",
    "RecordSource",
    "Publisher",
    "Offering",
    "PublisherWebsiteRelationship",
    "PerformanceRecord",
    "OrderLineItem",
    "PublisherWebsiteInfo",
    "MigrationConfig",
    "MigrationSession",
    "MigrationStats",
    "MigrationErrorType",
    "PhaseName",
    "PhaseState",
    "PhaseStatus",
    "SessionStatus",
    "SessionType",
    "IssueCategory",
    "IssueType",
    "ValidationIssue",
    "ValidationReport",
    "ValidationSummary",
    "ActionType",
    "RiskLevel",
    "RollbackAction",
    "RollbackPlan",
    "RollbackResult",
    "RollbackSnapshot",
    "SafetyIssue",
    "SafetyReport",
    "SnapshotType",
]
