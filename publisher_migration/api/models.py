"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Accepts camelCase aliases as well as field names."""
    model_config = ConfigDict(populate_by_name=True)


# Request Models
class PublisherMigrationRequest(CamelModel):
    dry_run: bool = Field(default=True, alias="dryRun")
    batch_size: int = Field(default=10, ge=1, alias="batchSize")
    send_invitations: bool = Field(default=False, alias="sendInvitations")
    validate_first: bool = Field(default=True, alias="validateFirst")


class SnapshotCreate(CamelModel):
    session_id: str = Field(alias="sessionId")
    type: str = "pre_migration"
    description: str = ""


class RollbackExecuteRequest(BaseModel):
    force: bool = False


class EmergencyRollbackRequest(BaseModel):
    confirm: bool = False


# Response Models
class PublisherMigrationResponse(CamelModel):
    success: bool
    dry_run: bool = Field(alias="dryRun")
    stats: Dict[str, Any]
    message: str
    session_id: str = Field(alias="sessionId")
    snapshot_id: Optional[str] = Field(default=None, alias="snapshotId")


class SnapshotResponse(CamelModel):
    id: str
    session_id: str = Field(alias="sessionId")
    type: str
    description: str
    timestamp: str
    metadata: Dict[str, int]


class SnapshotListResponse(BaseModel):
    snapshots: List[SnapshotResponse]
    total: int


class RollbackActionResponse(CamelModel):
    type: str
    description: str
    record_count: int = Field(alias="recordCount")
    risk: str


class RollbackPlanResponse(CamelModel):
    snapshot_id: str = Field(alias="snapshotId")
    actions: List[RollbackActionResponse]
    estimated_duration: float = Field(alias="estimatedDuration")
    warnings: List[str]
    total_records: int = Field(alias="totalRecords")


class SafetyIssueResponse(BaseModel):
    type: str
    message: str
    impact: str


class SafetyReportResponse(BaseModel):
    safe: bool
    issues: List[SafetyIssueResponse]


class RollbackResultResponse(CamelModel):
    success: bool
    actions_executed: int = Field(alias="actionsExecuted")
    records_affected: int = Field(alias="recordsAffected")
    errors: List[str]
    duration_seconds: float = Field(alias="durationSeconds")


class EmergencyRollbackResponse(BaseModel):
    success: bool
    deleted: Dict[str, int]
