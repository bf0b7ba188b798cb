"""Rollback snapshots, planning and execution for publisher migrations."""

import logging
import time
import uuid
from typing import Dict, List, Optional

from ..models.migration import PhaseName, PhaseStatus, SessionType
from ..models.publisher import AccountStatus, OfferingStatus, RecordSource
from ..models.rollback import (
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
from ..stores.base import BaseStore
from ..stores.registry import InMemoryRegistry, SnapshotRegistry
from .status_tracker import MigrationStatusTracker

logger = logging.getLogger(__name__)

SECONDS_PER_RECORD = 0.1
MIN_ESTIMATED_SECONDS = 5


class RollbackError(RuntimeError):
    """Base class for rollback failures."""


class SnapshotNotFoundError(RollbackError):
    """Raised when a snapshot ID is unknown."""


class HighRiskRollbackError(RollbackError):
    """Raised when a plan with high-risk actions is executed without force."""


def _new_snapshot_id() -> str:
    return f"snapshot_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class MigrationRollbackService:
    """
    Undo support for migrations.

    A snapshot records which migration-sourced records existed at a
    moment in time. A plan is the difference between the store now and
    a snapshot, classified by risk. Claimed (active) publishers are never
    hard-deleted; they are moved to manual review instead.
    """

    def __init__(
        self,
        store: BaseStore,
        tracker: MigrationStatusTracker,
        snapshots: Optional[SnapshotRegistry] = None
    ):
        self.store = store
        self.tracker = tracker
        self.snapshots = snapshots if snapshots is not None else InMemoryRegistry()

    def create_snapshot(
        self,
        session_id: str,
        snapshot_type: SnapshotType,
        description: str
    ) -> str:
        """
        Capture the current migration record IDs.

        Args:
            session_id: Session the snapshot belongs to
            snapshot_type: When the snapshot is taken relative to the run
            description: Free-text note for operators

        Returns:
            The snapshot ID
        """
        legacy = RecordSource.LEGACY_MIGRATION
        relationships = self.store.list_relationships(source=legacy)

        snapshot = RollbackSnapshot(
            id=_new_snapshot_id(),
            session_id=session_id,
            type=snapshot_type,
            description=description,
            publisher_ids=frozenset(p.id for p in self.store.list_publishers(source=legacy)),
            offering_ids=frozenset(o.id for o in self.store.list_offerings(source=legacy)),
            relationship_ids=frozenset(r.id for r in relationships),
            affected_website_ids=frozenset(r.website_id for r in relationships),
        )
        self.snapshots.save(snapshot.id, snapshot)

        logger.info(
            f"Snapshot {snapshot.id} created: {len(snapshot.publisher_ids)} publishers, "
            f"{len(snapshot.offering_ids)} offerings"
        )
        return snapshot.id

    def get_snapshot(self, snapshot_id: str) -> RollbackSnapshot:
        snapshot = self.snapshots.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Snapshot not found: {snapshot_id}")
        return snapshot

    def get_rollback_history(self) -> List[RollbackSnapshot]:
        """All snapshots, newest first."""
        return sorted(self.snapshots.values(), key=lambda s: s.timestamp, reverse=True)

    def create_rollback_plan(self, snapshot_id: str) -> RollbackPlan:
        """
        Work out what must change to return to a snapshot.

        Relationships come first, then offerings, then publishers, so no
        child record is left pointing at a deleted publisher.

        Raises:
            SnapshotNotFoundError: If the snapshot is unknown
        """
        snapshot = self.get_snapshot(snapshot_id)
        legacy = RecordSource.LEGACY_MIGRATION
        plan = RollbackPlan(snapshot_id=snapshot_id)

        relationships = [
            r for r in self.store.list_relationships(source=legacy)
            if r.id not in snapshot.relationship_ids
        ]
        if relationships:
            plan.actions.append(RollbackAction(
                type=ActionType.DELETE_RELATIONSHIPS,
                description=f"Delete {len(relationships)} publisher-website relationships",
                record_ids=[r.id for r in relationships],
                risk=RiskLevel.LOW,
            ))

        offerings = [
            o for o in self.store.list_offerings(source=legacy)
            if o.id not in snapshot.offering_ids
        ]
        active_offerings = [o for o in offerings if o.status == OfferingStatus.ACTIVE]
        draft_offerings = [o for o in offerings if o.status == OfferingStatus.DRAFT]

        if active_offerings:
            plan.warnings.append(
                f"{len(active_offerings)} offerings are active and may be referenced by orders"
            )
            plan.actions.append(RollbackAction(
                type=ActionType.ARCHIVE_OFFERINGS,
                description=f"Archive {len(active_offerings)} active offerings instead of deleting",
                record_ids=[o.id for o in active_offerings],
                risk=RiskLevel.MEDIUM,
            ))
        if draft_offerings:
            plan.actions.append(RollbackAction(
                type=ActionType.DELETE_OFFERINGS,
                description=f"Delete {len(draft_offerings)} draft offerings",
                record_ids=[o.id for o in draft_offerings],
                risk=RiskLevel.LOW,
            ))

        publishers = [
            p for p in self.store.list_publishers(source=legacy)
            if p.id not in snapshot.publisher_ids
        ]
        claimed = [p for p in publishers if p.account_status == AccountStatus.ACTIVE]
        unclaimed = [p for p in publishers if p.account_status == AccountStatus.SHADOW]

        # Deleting a publisher cascades to its offerings, which would undo the archive
        offering_owners = {o.publisher_id for o in active_offerings}
        held = [p for p in unclaimed if p.id in offering_owners]
        unclaimed = [p for p in unclaimed if p.id not in offering_owners]

        if claimed:
            plan.warnings.append(
                f"{len(claimed)} publishers have claimed accounts and cannot be safely deleted"
            )
        if held:
            plan.warnings.append(
                f"{len(held)} shadow publishers own active offerings and cannot be safely deleted"
            )
        review = claimed + held
        if review:
            plan.actions.append(RollbackAction(
                type=ActionType.REVIEW_PUBLISHERS,
                description=f"Convert {len(review)} publishers to manual review",
                record_ids=[p.id for p in review],
                risk=RiskLevel.HIGH,
            ))
        if unclaimed:
            plan.actions.append(RollbackAction(
                type=ActionType.DELETE_PUBLISHERS,
                description=f"Delete {len(unclaimed)} unclaimed shadow publishers",
                record_ids=[p.id for p in unclaimed],
                risk=RiskLevel.LOW,
            ))

        plan.estimated_duration = max(plan.total_records * SECONDS_PER_RECORD, MIN_ESTIMATED_SECONDS)
        return plan

    def execute_rollback(self, plan: RollbackPlan, force: bool = False) -> RollbackResult:
        """
        Run a rollback plan.

        Actions run in plan order. A failing action is recorded and the
        remaining actions still run.

        Args:
            plan: Plan from create_rollback_plan()
            force: Allow high-risk actions

        Raises:
            HighRiskRollbackError: If the plan has high-risk actions and
                force is False. Nothing has been changed when this is raised.
        """
        high_risk = plan.high_risk_actions
        if high_risk and not force:
            raise HighRiskRollbackError(
                f"Rollback contains {len(high_risk)} high-risk actions. Use force=True to proceed."
            )

        started = time.monotonic()
        total = len(plan.actions)
        session_id = self.tracker.start_session(SessionType.ROLLBACK, 1)
        result = RollbackResult(success=False, actions_executed=0)

        try:
            self.tracker.update_phase(
                session_id, PhaseName.ROLLBACK, PhaseStatus.RUNNING,
                f"Executing {total} rollback actions...",
            )

            for index, action in enumerate(plan.actions, 1):
                try:
                    logger.info(f"Executing: {action.description}")
                    affected = self._apply(action)
                    result.actions_executed += 1
                    result.records_affected += affected
                    logger.info(f"Completed: {action.description} ({affected} records)")
                except Exception as e:
                    message = f"Failed to execute {action.description}: {e}"
                    result.errors.append(message)
                    logger.error(message)

                self.tracker.update_phase(
                    session_id, PhaseName.ROLLBACK, PhaseStatus.RUNNING,
                    f"Executed {index}/{total} actions",
                    progress=index / total * 100,
                )

            result.success = not result.errors
            result.duration_seconds = time.monotonic() - started

            self.tracker.update_phase(
                session_id, PhaseName.ROLLBACK,
                PhaseStatus.COMPLETED if result.success else PhaseStatus.ERROR,
                f"Rollback completed: {result.actions_executed}/{total} actions executed",
                progress=100,
            )
            self.tracker.complete_session(session_id, results=result.to_dict())

        except Exception as e:
            self.tracker.complete_session(session_id, error=str(e) or "Rollback failed")
            raise

        return result

    def _apply(self, action: RollbackAction) -> int:
        handlers = {
            ActionType.DELETE_RELATIONSHIPS: self.store.delete_relationships,
            ActionType.ARCHIVE_OFFERINGS: self.store.archive_offerings,
            ActionType.DELETE_OFFERINGS: self.store.delete_offerings,
            ActionType.REVIEW_PUBLISHERS: self.store.mark_publishers_for_review,
            ActionType.DELETE_PUBLISHERS: self.store.delete_publishers,
        }
        return handlers[action.type](action.record_ids)

    def validate_rollback_safety(self, snapshot_id: str) -> SafetyReport:
        """
        Advisory pre-flight check for a rollback.

        Claimed publishers are a warning. Active offerings referenced by
        order line items are an error and make the rollback unsafe.
        """
        snapshot = self.snapshots.get(snapshot_id)
        if snapshot is None:
            return SafetyReport(issues=[SafetyIssue(
                type="error",
                message="Snapshot not found",
                impact="Cannot proceed with rollback",
            )])

        legacy = RecordSource.LEGACY_MIGRATION
        report = SafetyReport()

        claimed = [
            p for p in self.store.list_publishers(source=legacy)
            if p.account_status == AccountStatus.ACTIVE and p.id not in snapshot.publisher_ids
        ]
        if claimed:
            report.issues.append(SafetyIssue(
                type="warning",
                message=f"{len(claimed)} publishers have claimed accounts",
                impact="These accounts will be marked for manual review instead of deletion",
            ))

        active_offering_ids = [
            o.id for o in self.store.list_offerings(source=legacy)
            if o.status == OfferingStatus.ACTIVE and o.id not in snapshot.offering_ids
        ]
        with_orders = self.store.offering_ids_with_orders(active_offering_ids)
        if with_orders:
            report.issues.append(SafetyIssue(
                type="error",
                message=f"{len(with_orders)} active offerings are referenced by orders",
                impact="These offerings cannot be deleted and will cause rollback failure",
            ))

        return report

    def emergency_rollback(self) -> Dict[str, int]:
        """
        Remove every record created by the migration.

        Skips planning and safety partitioning entirely. Only for
        disaster recovery.

        Returns:
            Table name -> rows deleted
        """
        logger.warning("EMERGENCY ROLLBACK - Removing all migration data")
        session_id = self.tracker.start_session(SessionType.EMERGENCY_ROLLBACK, 1)

        try:
            self.tracker.update_phase(
                session_id, PhaseName.CLEANUP, PhaseStatus.RUNNING,
                "Emergency rollback in progress...",
            )
            counts = self.store.delete_all_migration_data()
            self.tracker.update_phase(
                session_id, PhaseName.CLEANUP, PhaseStatus.COMPLETED,
                "Emergency rollback completed", progress=100, data=counts,
            )
            self.tracker.complete_session(session_id, results={
                "type": SessionType.EMERGENCY_ROLLBACK.value,
                "deleted": counts,
            })
        except Exception as e:
            self.tracker.update_phase(
                session_id, PhaseName.CLEANUP, PhaseStatus.ERROR, str(e),
            )
            self.tracker.complete_session(session_id, error=str(e) or "Emergency rollback failed")
            raise

        logger.warning(f"Emergency rollback completed: {counts}")
        return counts
