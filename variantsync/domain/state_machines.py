"""State machine for line item synchronization.

Deterministic transitions between the sync states a purchase order line
item moves through while its product is created in the remote catalog.
"""

from enum import Enum

from variantsync.domain.exceptions import InvalidStateTransitionError


class SyncStatus(str, Enum):
    """Line item synchronization states.

    State diagram:
        PENDING ───────────┐          PENDING_NO_MATCH
          │  ▲             │            │  ▲
          │  │             │            │  │
          ▼  │ (no match)  │            ▼  │
        PROCESSING ◄───────┼──────────────┘
          │      │         │
          │      └─────────┼──────► FAILED ──► PROCESSING (retry)
          ▼                │
        SUCCESS ◄──────────┘ (later matching)
    """

    PENDING = "pending"
    PENDING_NO_MATCH = "pending_no_match"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    def can_transition_to(self, target: "SyncStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _SYNC_TRANSITIONS[self]

    def allowed_transitions(self) -> list["SyncStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_SYNC_TRANSITIONS[self], key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state."""
        return len(_SYNC_TRANSITIONS[self]) == 0

    def is_in_flight(self) -> bool:
        """Check if remote work is running for the item."""
        return self is SyncStatus.PROCESSING

    def is_submittable(self) -> bool:
        """Check if the item may be picked up by a sync job."""
        return self in {SyncStatus.PENDING, SyncStatus.PENDING_NO_MATCH, SyncStatus.FAILED}


_SYNC_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.PENDING: frozenset(
        {SyncStatus.PROCESSING, SyncStatus.SUCCESS, SyncStatus.FAILED}
    ),
    SyncStatus.PENDING_NO_MATCH: frozenset(
        {SyncStatus.PROCESSING, SyncStatus.SUCCESS, SyncStatus.FAILED}
    ),
    SyncStatus.PROCESSING: frozenset(
        {
            SyncStatus.SUCCESS,
            SyncStatus.FAILED,
            SyncStatus.PENDING,
            SyncStatus.PENDING_NO_MATCH,
        }
    ),
    SyncStatus.FAILED: frozenset({SyncStatus.PROCESSING}),
    SyncStatus.SUCCESS: frozenset(),  # Terminal state
}

# Every state must have an entry, including terminal ones.
_missing = set(SyncStatus) - set(_SYNC_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Sync transition table is missing states: {sorted(_missing)}")


def settled_status(remote_product_id: int | None, variant_text: str | None) -> SyncStatus:
    """Status a line item settles in once its group has been created remotely.

    Args:
        remote_product_id: Remote identifier assigned to the item, if matched.
        variant_text: The item's variant text.

    Returns:
        SUCCESS when the item has a remote id, PENDING when it still needs
        variant matching, PENDING_NO_MATCH for simple items.
    """
    if remote_product_id is not None:
        return SyncStatus.SUCCESS
    if variant_text and variant_text.strip():
        return SyncStatus.PENDING
    return SyncStatus.PENDING_NO_MATCH


def validate_sync_transition(
    entity_id: str,
    current: SyncStatus,
    target: SyncStatus,
) -> None:
    """Validate a sync status transition.

    Args:
        entity_id: ID of the line item.
        current: Current state.
        target: Target state.

    Raises:
        InvalidStateTransitionError: If transition is not allowed.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            entity_type="PurchaseOrderLineItem",
            entity_id=entity_id,
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
