"""Approval models: high-value sign-off and SLA override records."""

from pydantic import AwareDatetime, Field

from src.models.common import (
    ApprovalStatus,
    HandoffBase,
    UserRole,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


# ---------------------------------------------------------------------------
# Valid approval status transitions (state machine)
# ---------------------------------------------------------------------------

VALID_APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.DENIED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.DENIED: frozenset(),
}


class Approver(HandoffBase, frozen=True):
    """Someone allowed to sign off a high-value shipment."""

    approver_id: str = Field(..., min_length=1)
    name: str = ""
    role: str = ""


class HighValueApproval(HandoffBase, frozen=True):
    """Manual sign-off required above a declared-value threshold."""

    approval_id: UUIDv7 = Field(default_factory=new_uuid7)
    shipment_id: str = ""
    threshold: float = Field(..., ge=0)
    declared_value: float = Field(..., ge=0)
    approvers: tuple[Approver, ...] = ()
    status: ApprovalStatus = ApprovalStatus.PENDING
    requested_from: tuple[str, ...] = ()
    decided_by: str | None = None
    decided_at: AwareDatetime | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return not VALID_APPROVAL_TRANSITIONS[self.status]

    def approver_ids(self) -> set[str]:
        return {a.approver_id for a in self.approvers}


class SlaOverride(HandoffBase, frozen=True):
    """An ops admin's acknowledgement that a schedule may miss its SLA."""

    override_id: UUIDv7 = Field(default_factory=new_uuid7)
    shipment_id: str = ""
    actor_id: str = Field(..., min_length=1)
    role: UserRole
    reason: str
    breach_minutes: int = Field(default=0, ge=0)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
