"""Tests for migration session tracking."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from publisher_migration.models.migration import (
    PhaseName,
    PhaseStatus,
    SessionStatus,
    SessionType,
)
from publisher_migration.services.status_tracker import (
    EventKind,
    MigrationStatusTracker,
    SessionNotFoundError,
    SessionStateError,
)
from publisher_migration.stores.registry import InMemoryRegistry


class TestSessionLifecycle:

    def test_start_session(self, tracker, clock):
        session_id = tracker.start_session(SessionType.DRY_RUN, 4)

        session = tracker.get_session(session_id)
        assert session_id.startswith("session_")
        assert session.status == SessionStatus.RUNNING
        assert session.total_steps == 4
        assert session.started_at == clock.now

    def test_complete_session(self, tracker, clock):
        session_id = tracker.start_session(SessionType.LIVE, 1)
        clock.advance(seconds=30)

        session = tracker.complete_session(session_id, results={"shadow_publishers_created": 2})

        assert session.status == SessionStatus.COMPLETED
        assert session.results == {"shadow_publishers_created": 2}
        assert session.duration_seconds == 30

    def test_complete_with_error(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 1)

        session = tracker.complete_session(session_id, error="boom")

        assert session.status == SessionStatus.ERROR
        assert session.error == "boom"

    def test_terminal_sessions_cannot_change(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 1)
        tracker.complete_session(session_id)

        with pytest.raises(SessionStateError):
            tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.RUNNING)
        with pytest.raises(SessionStateError):
            tracker.complete_session(session_id)

    def test_unknown_session(self, tracker):
        with pytest.raises(SessionNotFoundError):
            tracker.update_phase("session_nope", PhaseName.MIGRATION, PhaseStatus.RUNNING)
        assert tracker.get_session("session_nope") is None


class TestPhases:

    def test_phase_entry_replaced(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 2)

        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.RUNNING, "Migrating...")
        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.COMPLETED, "Done", progress=100)

        session = tracker.get_session(session_id)
        assert list(session.phases) == [PhaseName.MIGRATION]
        assert session.phases[PhaseName.MIGRATION].status == PhaseStatus.COMPLETED
        assert session.current_phase == PhaseName.MIGRATION
        assert session.completed_steps == 1
        assert session.progress_percentage == 50

    def test_repeated_completion_counts_once(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 2)

        tracker.update_phase(session_id, PhaseName.VALIDATION, PhaseStatus.COMPLETED)
        tracker.update_phase(session_id, PhaseName.VALIDATION, PhaseStatus.COMPLETED)

        assert tracker.get_session(session_id).completed_steps == 1


class TestEvents:

    def test_milestones_emitted_once(self, tracker):
        listener = MagicMock()
        tracker.subscribe(listener)
        session_id = tracker.start_session(SessionType.DRY_RUN, 4)

        for phase in (PhaseName.VALIDATION, PhaseName.MIGRATION, PhaseName.INVITATIONS, PhaseName.MONITORING):
            tracker.update_phase(session_id, phase, PhaseStatus.COMPLETED)

        milestones = [
            call.args[0].milestone for call in listener.call_args_list
            if call.args[0].kind == EventKind.MILESTONE
        ]
        assert milestones == [25, 50, 75, 100]
        assert tracker.get_session(session_id).milestones_reached == [25, 50, 75, 100]

    def test_jumping_progress_emits_each_crossed_milestone(self, tracker):
        listener = MagicMock()
        tracker.subscribe(listener)
        session_id = tracker.start_session(SessionType.DRY_RUN, 2)

        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.COMPLETED)

        milestones = [
            call.args[0].milestone for call in listener.call_args_list
            if call.args[0].kind == EventKind.MILESTONE
        ]
        assert milestones == [25, 50]

    def test_event_kinds(self, tracker):
        listener = MagicMock()
        tracker.subscribe(listener)

        session_id = tracker.start_session(SessionType.LIVE, 1)
        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.RUNNING)
        tracker.complete_session(session_id, error="failed")

        kinds = [call.args[0].kind for call in listener.call_args_list]
        assert kinds == [EventKind.SESSION_STARTED, EventKind.PHASE_UPDATED, EventKind.SESSION_ERROR]
        assert listener.call_args_list[-1].args[0].error == "failed"

    def test_listener_failure_is_swallowed(self, tracker):
        tracker.subscribe(MagicMock(side_effect=RuntimeError("listener broke")))

        session_id = tracker.start_session(SessionType.LIVE, 1)

        assert tracker.get_session(session_id).status == SessionStatus.RUNNING

    def test_unsubscribe(self, tracker):
        listener = MagicMock()
        unsubscribe = tracker.subscribe(listener)
        unsubscribe()

        tracker.start_session(SessionType.LIVE, 1)

        listener.assert_not_called()


class TestQueries:

    def test_recent_sessions_newest_first(self, tracker, clock):
        old = tracker.start_session(SessionType.LIVE, 1)
        clock.advance(hours=30)
        first = tracker.start_session(SessionType.DRY_RUN, 1)
        clock.advance(minutes=5)
        second = tracker.start_session(SessionType.VALIDATION, 1)

        recent = [s.id for s in tracker.get_recent_sessions()]

        assert recent == [second, first]
        assert old not in recent

    def test_expired_sessions_purged(self, clock):
        registry = InMemoryRegistry()
        tracker = MigrationStatusTracker(registry=registry, retention=timedelta(days=7), clock=clock)
        old = tracker.start_session(SessionType.LIVE, 1)

        clock.advance(days=8)
        tracker.start_session(SessionType.LIVE, 1)

        assert old not in registry
        assert len(registry) == 1

    def test_overall_status_idle(self, tracker):
        assert tracker.get_overall_status()["status"] == "idle"

    def test_overall_status_running(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 2)
        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.RUNNING, "Working")

        status = tracker.get_overall_status()

        assert status["status"] == "running"
        assert [s["id"] for s in status["active_sessions"]] == [session_id]
        assert status["phases"][0]["session_id"] == session_id
        assert status["phases"][0]["name"] == "migration"

    def test_overall_status_error(self, tracker):
        session_id = tracker.start_session(SessionType.LIVE, 1)
        tracker.update_phase(session_id, PhaseName.MIGRATION, PhaseStatus.ERROR, "bad data")
        tracker.complete_session(session_id, error="bad data")

        status = tracker.get_overall_status()

        assert status["status"] == "error"
        assert len(status["recent_errors"]) == 2
        assert status["recent_session_count"] == 1
