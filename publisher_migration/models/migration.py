"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid

from ..utils import utcnow


class SessionStatus(str, Enum):
    """Status of a tracked migration session."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)


class PhaseStatus(str, Enum):
    """Status of a single phase within a session."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class SessionType(str, Enum):
    """Kinds of work tracked by the status tracker."""
    DRY_RUN = "dry_run"
    LIVE = "live"
    VALIDATION = "validation"
    ROLLBACK = "rollback"
    EMERGENCY_ROLLBACK = "emergency_rollback"


class PhaseName(str, Enum):
    """Phases an orchestrator can report on."""
    VALIDATION = "validation"
    SNAPSHOT = "snapshot"
    MIGRATION = "migration"
    INVITATIONS = "invitations"
    MONITORING = "monitoring"
    ROLLBACK = "rollback"
    CLEANUP = "cleanup"


class MigrationErrorType(str, Enum):
    """Tags for errors recorded in migration stats."""
    FATAL = "FATAL"
    SUSPICIOUS_PRICING = "SUSPICIOUS_PRICING"
    INVALID_EMAIL = "INVALID_EMAIL"
    PUBLISHER_CREATION_ERROR = "PUBLISHER_CREATION_ERROR"
    OFFERING_CREATION_ERROR = "OFFERING_CREATION_ERROR"
    RELATIONSHIP_CREATION_ERROR = "RELATIONSHIP_CREATION_ERROR"
    PERFORMANCE_MIGRATION_ERROR = "PERFORMANCE_MIGRATION_ERROR"


@dataclass
class PhaseState:
    """Latest known state of one phase."""
    name: PhaseName
    status: PhaseStatus = PhaseStatus.PENDING
    message: str = ""
    progress: Optional[float] = None  # 0-100
    data: Optional[Dict[str, Any]] = None
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name.value,
            "status": self.status.value,
            "message": self.message,
            "progress": self.progress,
            "data": self.data,
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class MigrationSession:
    """A tracked migration, rollback or validation run."""
    id: str = field(default_factory=lambda: f"session_{uuid.uuid4().hex[:12]}")
    type: SessionType = SessionType.DRY_RUN
    status: SessionStatus = SessionStatus.PENDING

    # Progress
    total_steps: int = 0
    completed_steps: int = 0
    current_phase: Optional[PhaseName] = None
    phases: Dict[PhaseName, PhaseState] = field(default_factory=dict)
    milestones_reached: List[int] = field(default_factory=list)

    # Timing
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    # Outcome
    results: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "progress_percentage": self.progress_percentage,
            "current_phase": self.current_phase.value if self.current_phase else None,
            "phases": [p.to_dict() for p in self.phases.values()],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "results": self.results,
            "error": self.error,
        }

    @property
    def progress_percentage(self) -> float:
        """Share of steps completed, 0-100."""
        if self.total_steps <= 0:
            return 0.0
        return min(100.0, self.completed_steps / self.total_steps * 100)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationStats:
    """Counters and issues collected by one migration run."""
    dry_run: bool = False
    total_websites: int = 0
    unique_publishers: int = 0
    shadow_publishers_created: int = 0
    offerings_created: int = 0
    relationships_created: int = 0
    performance_records_created: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def add_error(
        self,
        error_type: MigrationErrorType,
        message: str,
        data: Any = None
    ) -> None:
        """Record a per-record or fatal error."""
        self.errors.append({
            "type": error_type.value,
            "message": message,
            "data": data,
        })

    def add_skipped(self, reason: str, data: Any = None) -> None:
        """Record a mapping that was deliberately not migrated."""
        self.skipped.append({"reason": reason, "data": data})

    def errors_of_type(self, error_type: MigrationErrorType) -> List[Dict[str, Any]]:
        return [e for e in self.errors if e["type"] == error_type.value]

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "dry_run": self.dry_run,
            "total_websites": self.total_websites,
            "unique_publishers": self.unique_publishers,
            "shadow_publishers_created": self.shadow_publishers_created,
            "offerings_created": self.offerings_created,
            "relationships_created": self.relationships_created,
            "performance_records_created": self.performance_records_created,
            "errors": self.errors,
            "skipped": self.skipped,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class MigrationConfig:
    """Configuration for a full migration workflow."""
    dry_run: bool = True
    batch_size: int = 10
    send_invitations: bool = False
    validate_first: bool = True
    create_snapshot: bool = True
    batch_delay_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "dry_run": self.dry_run,
            "batch_size": self.batch_size,
            "send_invitations": self.send_invitations,
            "validate_first": self.validate_first,
            "create_snapshot": self.create_snapshot,
            "batch_delay_seconds": self.batch_delay_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        batch_size = int(data.get("batch_size", 10))
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        return cls(
            dry_run=data.get("dry_run", True),
            batch_size=batch_size,
            send_invitations=data.get("send_invitations", False),
            validate_first=data.get("validate_first", True),
            create_snapshot=data.get("create_snapshot", True),
            batch_delay_seconds=float(data.get("batch_delay_seconds", 0.0)),
        )
