"""Tests for the line item sync state machine."""

import pytest

from variantsync.domain.exceptions import InvalidStateTransitionError
from variantsync.domain.state_machines import (
    SyncStatus,
    settled_status,
    validate_sync_transition,
)


class TestSyncStatus:
    """Tests for SyncStatus transitions."""

    def test_pending_can_start_processing(self) -> None:
        """PENDING can transition to PROCESSING."""
        assert SyncStatus.PENDING.can_transition_to(SyncStatus.PROCESSING)

    def test_pending_can_succeed_by_later_matching(self) -> None:
        """PENDING can reach SUCCESS once a remote variant is matched."""
        assert SyncStatus.PENDING.can_transition_to(SyncStatus.SUCCESS)

    def test_processing_can_settle_in_any_outcome(self) -> None:
        """PROCESSING can settle as success, failure or pending."""
        for target in (
            SyncStatus.SUCCESS,
            SyncStatus.FAILED,
            SyncStatus.PENDING,
            SyncStatus.PENDING_NO_MATCH,
        ):
            assert SyncStatus.PROCESSING.can_transition_to(target)

    def test_failed_can_only_retry(self) -> None:
        """FAILED can only go back to PROCESSING."""
        assert SyncStatus.FAILED.allowed_transitions() == [SyncStatus.PROCESSING]

    def test_success_is_terminal(self) -> None:
        """SUCCESS is a terminal state."""
        assert SyncStatus.SUCCESS.is_terminal()
        assert SyncStatus.SUCCESS.allowed_transitions() == []

    def test_pending_no_match_cannot_become_pending(self) -> None:
        """PENDING_NO_MATCH cannot move to PENDING directly."""
        assert not SyncStatus.PENDING_NO_MATCH.can_transition_to(SyncStatus.PENDING)

    def test_only_processing_is_in_flight(self) -> None:
        """PROCESSING is the only in-flight state."""
        assert [s for s in SyncStatus if s.is_in_flight()] == [SyncStatus.PROCESSING]

    def test_submittable_states(self) -> None:
        """Pending and failed items can be picked up by a sync job."""
        assert SyncStatus.PENDING.is_submittable()
        assert SyncStatus.PENDING_NO_MATCH.is_submittable()
        assert SyncStatus.FAILED.is_submittable()
        assert not SyncStatus.PROCESSING.is_submittable()
        assert not SyncStatus.SUCCESS.is_submittable()


class TestValidateSyncTransition:
    """Tests for validate_sync_transition."""

    def test_valid_transition_passes(self) -> None:
        """Allowed transitions do not raise."""
        validate_sync_transition("item-1", SyncStatus.FAILED, SyncStatus.PROCESSING)

    def test_invalid_transition_raises_with_details(self) -> None:
        """Disallowed transitions raise with the allowed targets."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_sync_transition("item-1", SyncStatus.SUCCESS, SyncStatus.PROCESSING)

        error = exc_info.value
        assert error.error_code == "INVALID_STATE_TRANSITION"
        assert error.details["current_state"] == "success"
        assert error.details["target_state"] == "processing"
        assert error.details["allowed_transitions"] == []


class TestSettledStatus:
    """Tests for settled_status."""

    def test_remote_id_means_success(self) -> None:
        assert settled_status(42, "S, Black") is SyncStatus.SUCCESS

    def test_variant_without_remote_id_is_pending(self) -> None:
        assert settled_status(None, "S, Black") is SyncStatus.PENDING

    def test_simple_item_without_remote_id_is_pending_no_match(self) -> None:
        assert settled_status(None, "") is SyncStatus.PENDING_NO_MATCH
        assert settled_status(None, "   ") is SyncStatus.PENDING_NO_MATCH
        assert settled_status(None, None) is SyncStatus.PENDING_NO_MATCH
