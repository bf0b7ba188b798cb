"""Validation report models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime

from ..utils import utcnow


class IssueType(str, Enum):
    """Severity of a validation issue."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    """Data-quality checks run before a migration."""
    DUPLICATE_EMAILS = "DUPLICATE_EMAILS"
    ORPHAN_WEBSITES = "ORPHAN_WEBSITES"
    INVALID_PRICING = "INVALID_PRICING"
    UNREALISTIC_PRICING = "UNREALISTIC_PRICING"
    MISSING_CONTACTS = "MISSING_CONTACTS"
    DUPLICATE_PUBLISHER_NAMES = "DUPLICATE_PUBLISHER_NAMES"
    EXISTING_PUBLISHERS = "EXISTING_PUBLISHERS"
    DATA_COMPLETENESS = "DATA_COMPLETENESS"
    INVALID_METRICS = "INVALID_METRICS"


@dataclass
class ValidationIssue:
    """A data-quality finding."""
    type: IssueType
    category: IssueCategory
    message: str
    affected_count: Optional[int] = None
    data: Optional[Any] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "category": self.category.value,
            "message": self.message,
            "affected_count": self.affected_count,
            "data": self.data,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationSummary:
    """Headline numbers for a validation run."""
    total_websites: int = 0
    websites_with_publisher: int = 0
    websites_without_publisher: int = 0
    unique_publishers: int = 0
    duplicate_emails: int = 0
    invalid_pricing: int = 0
    orphan_websites: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_websites": self.total_websites,
            "websites_with_publisher": self.websites_with_publisher,
            "websites_without_publisher": self.websites_without_publisher,
            "unique_publishers": self.unique_publishers,
            "duplicate_emails": self.duplicate_emails,
            "invalid_pricing": self.invalid_pricing,
            "orphan_websites": self.orphan_websites,
        }


@dataclass
class ValidationReport:
    """Aggregated result of all validation checks."""
    issues: List[ValidationIssue] = field(default_factory=list)
    summary: ValidationSummary = field(default_factory=ValidationSummary)
    timestamp: datetime = field(default_factory=utcnow)

    def _count(self, issue_type: IssueType) -> int:
        return sum(1 for i in self.issues if i.type == issue_type)

    @property
    def total_issues(self) -> int:
        return len(self.issues)

    @property
    def errors(self) -> int:
        return self._count(IssueType.ERROR)

    @property
    def warnings(self) -> int:
        return self._count(IssueType.WARNING)

    @property
    def info(self) -> int:
        return self._count(IssueType.INFO)

    @property
    def ready_for_migration(self) -> bool:
        return self.errors == 0

    def find(self, category: IssueCategory) -> List[ValidationIssue]:
        """Get all issues in a category."""
        return [i for i in self.issues if i.category == category]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_issues": self.total_issues,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary.to_dict(),
            "ready_for_migration": self.ready_for_migration,
        }
