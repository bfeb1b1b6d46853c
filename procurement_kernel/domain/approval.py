"""
Approval domain types (``procurement_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the Request -> Receive -> RRP approval chain: the
status lifecycle shared by all three entity kinds, and the rejection
cascade expressed as a plan of side-effect intents.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` defines the only valid status transitions.
  APPROVED and REJECTED are terminal for a given record; a rejected RRP
  number is superseded by a fresh record, never reopened.
* A rejection always carries its unlink and notify intents together.
  ``plan_*_rejection`` builds the full ``RejectionPlan`` up front so the
  service applies every intent inside one transaction or none of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class ApprovalStatus(str, Enum):
    """Lifecycle state of a request, receive or RRP line."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


def can_transition(current: ApprovalStatus | str, target: ApprovalStatus) -> bool:
    """True if ``target`` is reachable from ``current`` in one step."""
    return target in APPROVAL_TRANSITIONS[ApprovalStatus(current)]


class EntityKind(str, Enum):
    """Entity kinds participating in the approval chain.

    The value doubles as the notification ``reference_type``.
    """

    REQUEST = "request"
    RECEIVE = "receive"
    RRP = "rrp"


# =========================================================================
# Rejection side-effect intents
# =========================================================================


@dataclass(frozen=True)
class UnlinkRequest:
    """Clear ``is_received``/``receive_id`` on a request line."""

    request_id: UUID


@dataclass(frozen=True)
class UnlinkReceives:
    """Clear ``rrp_id`` on receive lines so they can be costed again."""

    receive_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class Notify:
    """Enqueue an inbox message for the actor whose work was rejected."""

    username: str
    reference_type: EntityKind
    reference_id: UUID
    message: str


SideEffect = UnlinkRequest | UnlinkReceives | Notify


@dataclass(frozen=True)
class RejectionPlan:
    """Everything a rejection must do besides flipping status."""

    entity_kind: EntityKind
    entity_ref: str
    reason: str
    effects: tuple[SideEffect, ...] = field(default_factory=tuple)

    @property
    def notifications(self) -> tuple[Notify, ...]:
        return tuple(e for e in self.effects if isinstance(e, Notify))


def plan_request_rejection(
    request_number: str,
    first_line_id: UUID,
    requested_by: str,
    reason: str,
) -> RejectionPlan:
    message = (
        f"Your request number {request_number} has been rejected "
        f"for the following reason: {reason}"
    )
    return RejectionPlan(
        entity_kind=EntityKind.REQUEST,
        entity_ref=request_number,
        reason=reason,
        effects=(
            Notify(requested_by, EntityKind.REQUEST, first_line_id, message),
        ),
    )


def plan_receive_rejection(
    receive_id: UUID,
    request_id: UUID,
    item_name: str,
    received_by: str,
    reason: str,
) -> RejectionPlan:
    message = (
        f"Your receive for {item_name} has been rejected "
        f"for the following reason: {reason}"
    )
    return RejectionPlan(
        entity_kind=EntityKind.RECEIVE,
        entity_ref=str(receive_id),
        reason=reason,
        effects=(
            UnlinkRequest(request_id),
            Notify(received_by, EntityKind.RECEIVE, receive_id, message),
        ),
    )


def plan_rrp_rejection(
    rrp_number: str,
    first_line_id: UUID,
    receive_ids: tuple[UUID, ...],
    created_by: str,
    reason: str,
) -> RejectionPlan:
    message = (
        f"Your RRP number {rrp_number} has been rejected "
        f"for the following reason: {reason}"
    )
    return RejectionPlan(
        entity_kind=EntityKind.RRP,
        entity_ref=rrp_number,
        reason=reason,
        effects=(
            UnlinkReceives(receive_ids),
            Notify(created_by, EntityKind.RRP, first_line_id, message),
        ),
    )
