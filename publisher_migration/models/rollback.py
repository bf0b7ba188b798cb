"""Rollback snapshot and plan models."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List
from enum import Enum
from datetime import datetime

from ..utils import utcnow


class SnapshotType(str, Enum):
    """When a snapshot was taken relative to a migration."""
    PRE_MIGRATION = "pre_migration"
    CHECKPOINT = "checkpoint"
    POST_MIGRATION = "post_migration"


class RiskLevel(str, Enum):
    """Risk classification of a rollback action."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActionType(str, Enum):
    """What a rollback action does to its records."""
    DELETE_RELATIONSHIPS = "delete_relationships"
    ARCHIVE_OFFERINGS = "archive_offerings"
    DELETE_OFFERINGS = "delete_offerings"
    REVIEW_PUBLISHERS = "review_publishers"
    DELETE_PUBLISHERS = "delete_publishers"


@dataclass(frozen=True)
class RollbackSnapshot:
    """Migration record IDs present at a point in time."""
    id: str
    session_id: str
    type: SnapshotType
    description: str
    publisher_ids: FrozenSet[str] = frozenset()
    offering_ids: FrozenSet[str] = frozenset()
    relationship_ids: FrozenSet[str] = frozenset()
    affected_website_ids: FrozenSet[str] = frozenset()
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def metadata(self) -> Dict[str, int]:
        return {
            "publisher_count": len(self.publisher_ids),
            "offering_count": len(self.offering_ids),
            "relationship_count": len(self.relationship_ids),
            "website_count": len(self.affected_website_ids),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "type": self.type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "publisher_ids": sorted(self.publisher_ids),
            "offering_ids": sorted(self.offering_ids),
            "relationship_ids": sorted(self.relationship_ids),
            "affected_website_ids": sorted(self.affected_website_ids),
            "metadata": self.metadata,
        }


@dataclass
class RollbackAction:
    """One step of a rollback plan."""
    type: ActionType
    description: str
    record_ids: List[str]
    risk: RiskLevel

    @property
    def record_count(self) -> int:
        return len(self.record_ids)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "description": self.description,
            "record_count": self.record_count,
            "record_ids": self.record_ids,
            "risk": self.risk.value,
        }


@dataclass
class RollbackPlan:
    """Actions needed to return to a snapshot."""
    snapshot_id: str
    actions: List[RollbackAction] = field(default_factory=list)
    estimated_duration: float = 0.0  # Seconds
    warnings: List[str] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return sum(a.record_count for a in self.actions)

    @property
    def high_risk_actions(self) -> List[RollbackAction]:
        return [a for a in self.actions if a.risk == RiskLevel.HIGH]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "snapshot_id": self.snapshot_id,
            "actions": [a.to_dict() for a in self.actions],
            "total_records": self.total_records,
            "estimated_duration": self.estimated_duration,
            "warnings": self.warnings,
        }


@dataclass
class RollbackResult:
    """Outcome of executing a rollback plan."""
    success: bool
    actions_executed: int
    records_affected: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "actions_executed": self.actions_executed,
            "records_affected": self.records_affected,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class SafetyIssue:
    """A finding from the pre-flight rollback check."""
    type: str  # "warning" or "error"
    message: str
    impact: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message, "impact": self.impact}


@dataclass
class SafetyReport:
    """Whether a rollback to a snapshot is safe to run."""
    issues: List[SafetyIssue] = field(default_factory=list)

    @property
    def safe(self) -> bool:
        return not any(i.type == "error" for i in self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safe": self.safe,
            "issues": [i.to_dict() for i in self.issues],
        }
