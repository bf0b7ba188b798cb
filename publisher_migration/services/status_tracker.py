"""Session and phase progress tracking for migration runs."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..models.migration import (
    MigrationSession,
    PhaseName,
    PhaseState,
    PhaseStatus,
    SessionStatus,
    SessionType,
)
from ..stores.registry import InMemoryRegistry, SessionRegistry
from ..utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)
DEFAULT_MILESTONES = (25, 50, 75, 100)


class SessionNotFoundError(KeyError):
    """Raised when a session ID is not known to the tracker."""


class SessionStateError(RuntimeError):
    """Raised when a finished session is asked to change."""


class EventKind(str, Enum):
    """Things the tracker tells its listeners about."""
    SESSION_STARTED = "session_started"
    PHASE_UPDATED = "phase_updated"
    MILESTONE = "milestone"
    SESSION_COMPLETED = "session_completed"
    SESSION_ERROR = "session_error"


@dataclass
class TrackerEvent:
    """A change in a tracked session."""
    kind: EventKind
    session: MigrationSession
    phase: Optional[PhaseState] = None
    milestone: Optional[int] = None
    error: Optional[str] = None


Listener = Callable[[TrackerEvent], None]


class MigrationStatusTracker:
    """
    Advisory ledger of migration, rollback and validation sessions.

    Sessions move pending -> running -> completed|error and never go
    back. Only the latest state of each phase is kept. Nothing here is
    the source of truth for what was migrated; the default registry is
    process-local and forgets everything on restart.
    """

    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        retention: timedelta = DEFAULT_RETENTION,
        milestone_thresholds: Sequence[int] = DEFAULT_MILESTONES,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the tracker.

        Args:
            registry: Where sessions are kept; in-memory by default
            retention: How long sessions are kept after they start
            milestone_thresholds: Completion percentages that raise
                milestone events
            clock: Returns the current time; used by tests
        """
        self.registry = registry if registry is not None else InMemoryRegistry()
        self.retention = retention
        self.milestone_thresholds = sorted(milestone_thresholds)
        self._clock = clock or utcnow
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for tracker events.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start_session(self, session_type: SessionType, total_steps: int) -> str:
        """
        Start tracking a new session.

        Args:
            session_type: What kind of work the session covers
            total_steps: Number of phases expected to complete

        Returns:
            The new session ID
        """
        self.purge_expired()

        with self._lock:
            session = MigrationSession(
                type=session_type,
                total_steps=max(total_steps, 0),
                started_at=self._clock(),
            )
            session.status = SessionStatus.RUNNING
            self.registry.save(session.id, session)

        logger.info(f"Started {session_type.value} session {session.id} ({total_steps} steps)")
        self._publish(TrackerEvent(kind=EventKind.SESSION_STARTED, session=session))
        return session.id

    def update_phase(
        self,
        session_id: str,
        phase: PhaseName,
        status: PhaseStatus,
        message: str = "",
        progress: Optional[float] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> PhaseState:
        """
        Record the latest state of a phase.

        Any earlier entry for the same phase is replaced. The first time a
        phase reaches ``completed`` it counts towards the session's
        completed steps.
        """
        events = []

        with self._lock:
            session = self._require(session_id)
            if session.status.is_terminal:
                raise SessionStateError(
                    f"Session {session_id} is {session.status.value}; cannot update phase {phase.value}"
                )

            previous = session.phases.pop(phase, None)
            state = PhaseState(
                name=phase,
                status=status,
                message=message,
                progress=progress,
                data=data,
                updated_at=self._clock(),
            )
            session.phases[phase] = state
            session.current_phase = phase

            newly_completed = (
                status == PhaseStatus.COMPLETED
                and (previous is None or previous.status != PhaseStatus.COMPLETED)
            )
            if newly_completed:
                session.completed_steps += 1

            events.append(TrackerEvent(kind=EventKind.PHASE_UPDATED, session=session, phase=state))

            if newly_completed:
                for threshold in self._crossed_milestones(session):
                    session.milestones_reached.append(threshold)
                    events.append(TrackerEvent(
                        kind=EventKind.MILESTONE,
                        session=session,
                        phase=state,
                        milestone=threshold,
                    ))

            self.registry.save(session.id, session)

        logger.debug(f"Session {session_id} phase {phase.value} -> {status.value}: {message}")
        for event in events:
            self._publish(event)
        return state

    def complete_session(
        self,
        session_id: str,
        results: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None
    ) -> MigrationSession:
        """
        Finish a session.

        A session with an error ends in ``error``, otherwise in
        ``completed``. Finished sessions cannot be completed again.
        """
        with self._lock:
            session = self._require(session_id)
            if session.status.is_terminal:
                raise SessionStateError(f"Session {session_id} is already {session.status.value}")

            session.status = SessionStatus.ERROR if error else SessionStatus.COMPLETED
            session.completed_at = self._clock()
            session.results = results
            session.error = error
            self.registry.save(session.id, session)

        if error:
            logger.error(f"Session {session_id} failed: {error}")
            event = TrackerEvent(kind=EventKind.SESSION_ERROR, session=session, error=error)
        else:
            logger.info(f"Session {session_id} completed")
            event = TrackerEvent(kind=EventKind.SESSION_COMPLETED, session=session)

        self._publish(event)
        return session

    def get_session(self, session_id: str) -> Optional[MigrationSession]:
        return self.registry.get(session_id)

    def get_recent_sessions(self, hours: int = 24) -> List[MigrationSession]:
        """Sessions started within the last ``hours`` hours, newest first."""
        cutoff = self._clock() - timedelta(hours=hours)
        sessions = [s for s in self.registry.values() if s.started_at >= cutoff]
        return sorted(sessions, key=lambda s: s.started_at, reverse=True)

    def get_overall_status(self) -> Dict[str, Any]:
        """
        Summarize what is going on right now.

        Returns:
            Dictionary with the overall status (idle, running or error),
            running sessions with their phases, and errors from recent
            sessions
        """
        sessions = self.registry.values()
        running = [s for s in sessions if s.status == SessionStatus.RUNNING]
        recent = self.get_recent_sessions()

        recent_errors = []
        for session in recent:
            if session.status == SessionStatus.ERROR:
                recent_errors.append({
                    "session_id": session.id,
                    "type": session.type.value,
                    "error": session.error,
                    "completed_at": session.completed_at.isoformat() if session.completed_at else None,
                })
            for state in session.phases.values():
                if state.status == PhaseStatus.ERROR:
                    recent_errors.append({
                        "session_id": session.id,
                        "type": session.type.value,
                        "phase": state.name.value,
                        "error": state.message,
                        "completed_at": state.updated_at.isoformat(),
                    })

        if running:
            overall = "running"
        elif any(s.status == SessionStatus.ERROR for s in recent):
            overall = "error"
        else:
            overall = "idle"

        return {
            "status": overall,
            "active_sessions": [s.to_dict() for s in running],
            "phases": [
                dict(p.to_dict(), session_id=s.id)
                for s in running for p in s.phases.values()
            ],
            "recent_errors": recent_errors,
            "recent_session_count": len(recent),
        }

    def purge_expired(self) -> int:
        """Drop sessions that started before the retention window."""
        cutoff = self._clock() - self.retention
        removed = 0
        with self._lock:
            for session in self.registry.values():
                if session.started_at < cutoff:
                    self.registry.delete(session.id)
                    removed += 1

        if removed:
            logger.info(f"Purged {removed} expired sessions")
        return removed

    def _require(self, session_id: str) -> MigrationSession:
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _crossed_milestones(self, session: MigrationSession) -> List[int]:
        percentage = session.progress_percentage
        return [
            t for t in self.milestone_thresholds
            if t <= percentage and t not in session.milestones_reached
        ]

    def _publish(self, event: TrackerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Tracker listener failed on {event.kind.value}: {e}")
