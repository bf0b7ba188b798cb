"""Rollback snapshot, planning and execution endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ...models.rollback import RollbackSnapshot, SnapshotType
from ...services.rollback import HighRiskRollbackError, SnapshotNotFoundError
from ..dependencies import ServiceContainer, get_container
from ..models import (
    EmergencyRollbackRequest,
    EmergencyRollbackResponse,
    RollbackActionResponse,
    RollbackExecuteRequest,
    RollbackPlanResponse,
    RollbackResultResponse,
    SafetyIssueResponse,
    SafetyReportResponse,
    SnapshotCreate,
    SnapshotListResponse,
    SnapshotResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _snapshot_response(snapshot: RollbackSnapshot) -> SnapshotResponse:
    return SnapshotResponse(
        id=snapshot.id,
        session_id=snapshot.session_id,
        type=snapshot.type.value,
        description=snapshot.description,
        timestamp=snapshot.timestamp.isoformat(),
        metadata=snapshot.metadata,
    )


@router.post("/snapshots", response_model=SnapshotResponse)
def create_snapshot(data: SnapshotCreate, container: ServiceContainer = Depends(get_container)):
    """Capture the current migration records."""
    try:
        snapshot_type = SnapshotType(data.type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown snapshot type: {data.type}")

    snapshot_id = container.rollback.create_snapshot(data.session_id, snapshot_type, data.description)
    return _snapshot_response(container.rollback.get_snapshot(snapshot_id))


@router.get("/snapshots", response_model=SnapshotListResponse)
def list_snapshots(container: ServiceContainer = Depends(get_container)):
    """List snapshots, newest first."""
    snapshots = [_snapshot_response(s) for s in container.rollback.get_rollback_history()]
    return SnapshotListResponse(snapshots=snapshots, total=len(snapshots))


@router.get("/snapshots/{snapshot_id}/plan", response_model=RollbackPlanResponse)
def get_rollback_plan(snapshot_id: str, container: ServiceContainer = Depends(get_container)):
    """Work out what a rollback to this snapshot would do."""
    try:
        plan = container.rollback.create_rollback_plan(snapshot_id)
    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail="Snapshot not found")

    return RollbackPlanResponse(
        snapshot_id=plan.snapshot_id,
        actions=[
            RollbackActionResponse(
                type=a.type.value,
                description=a.description,
                record_count=a.record_count,
                risk=a.risk.value,
            )
            for a in plan.actions
        ],
        estimated_duration=plan.estimated_duration,
        warnings=plan.warnings,
        total_records=plan.total_records,
    )


@router.get("/snapshots/{snapshot_id}/safety", response_model=SafetyReportResponse)
def get_rollback_safety(snapshot_id: str, container: ServiceContainer = Depends(get_container)):
    """Pre-flight safety check for a rollback."""
    report = container.rollback.validate_rollback_safety(snapshot_id)
    return SafetyReportResponse(
        safe=report.safe,
        issues=[SafetyIssueResponse(**i.to_dict()) for i in report.issues],
    )


@router.post("/snapshots/{snapshot_id}/execute", response_model=RollbackResultResponse)
def execute_rollback(
    snapshot_id: str,
    data: RollbackExecuteRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Roll the migration back to a snapshot."""
    try:
        plan = container.rollback.create_rollback_plan(snapshot_id)
        result = container.rollback.execute_rollback(plan, force=data.force)
    except SnapshotNotFoundError:
        raise HTTPException(status_code=404, detail="Snapshot not found")
    except HighRiskRollbackError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return RollbackResultResponse(
        success=result.success,
        actions_executed=result.actions_executed,
        records_affected=result.records_affected,
        errors=result.errors,
        duration_seconds=result.duration_seconds,
    )


@router.post("/emergency", response_model=EmergencyRollbackResponse)
def emergency_rollback(data: EmergencyRollbackRequest, container: ServiceContainer = Depends(get_container)):
    """Delete every migration record. Requires explicit confirmation."""
    if not data.confirm:
        raise HTTPException(status_code=400, detail="Emergency rollback requires confirm=true")

    try:
        deleted = container.rollback.emergency_rollback()
    except Exception as e:
        logger.exception("Emergency rollback failed")
        raise HTTPException(status_code=500, detail=str(e))

    return EmergencyRollbackResponse(success=True, deleted=deleted)
