"""Tests for the approval gate.

Covers: opening approvals (idempotent per shipment), requesting sign-off
through the notifier, terminal decisions, approver checks, and ops admin
SLA overrides.
"""

import pytest
from uuid_extensions import uuid7

from src.models.approval import Approver, HighValueApproval
from src.models.common import ApprovalStatus, UserRole
from src.scheduling.approval_gate import ApprovalError, ApprovalGate
from src.scheduling.config import SchedulingConfig

APPROVERS = (
    Approver(approver_id="ceo", name="Chief Executive", role="CEO"),
    Approver(approver_id="cfo", name="Chief Financial", role="CFO"),
)


class RecordingNotifier:
    """Notifier double that records every request."""

    def __init__(self) -> None:
        self.requests: list[tuple[HighValueApproval, str]] = []

    def request(self, approval: HighValueApproval, approver_id: str) -> None:
        self.requests.append((approval, approver_id))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gate(notifier: RecordingNotifier) -> ApprovalGate:
    return ApprovalGate(notifier=notifier)


def _open(gate: ApprovalGate, shipment_id: str = "SHP-1") -> HighValueApproval:
    return gate.open(shipment_id=shipment_id, declared_value=600_000, approvers=APPROVERS)


# ===================================================================
# Opening
# ===================================================================


class TestOpen:
    def test_opens_pending(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        assert approval.status == ApprovalStatus.PENDING
        assert approval.threshold == 500_000
        assert gate.get(approval.approval_id) == approval

    def test_reopen_returns_existing(self, gate: ApprovalGate) -> None:
        first = _open(gate)
        second = _open(gate)
        assert second.approval_id == first.approval_id

    def test_separate_shipments_get_separate_approvals(self, gate: ApprovalGate) -> None:
        assert _open(gate, "SHP-1").approval_id != _open(gate, "SHP-2").approval_id

    def test_requires_approval_strictly_above_threshold(self) -> None:
        gate = ApprovalGate(config=SchedulingConfig(high_value_threshold=1_000))
        assert gate.requires_approval(1_001)
        assert not gate.requires_approval(1_000)

    def test_get_unknown_raises_key_error(self, gate: ApprovalGate) -> None:
        with pytest.raises(KeyError, match="not found"):
            gate.get(uuid7())

    def test_find_unknown_returns_none(self, gate: ApprovalGate) -> None:
        assert gate.find(uuid7()) is None
        approval = _open(gate)
        assert gate.find(approval.approval_id) == approval

    def test_blank_shipment_id_rejected(self, gate: ApprovalGate) -> None:
        with pytest.raises(ApprovalError, match="shipment id"):
            _open(gate, "")
        with pytest.raises(ApprovalError):
            _open(gate, "")
        assert gate.for_shipment("") is None


# ===================================================================
# Requests
# ===================================================================


class TestRequest:
    def test_request_notifies_and_records(
        self, gate: ApprovalGate, notifier: RecordingNotifier,
    ) -> None:
        approval = _open(gate)
        updated = gate.request(approval.approval_id, "ceo")
        assert updated.requested_from == ("ceo",)
        assert [aid for _, aid in notifier.requests] == ["ceo"]
        assert updated.status == ApprovalStatus.PENDING

    def test_repeat_request_not_duplicated(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        gate.request(approval.approval_id, "ceo")
        updated = gate.request(approval.approval_id, "ceo")
        assert updated.requested_from == ("ceo",)

    def test_unlisted_approver_rejected(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        with pytest.raises(ApprovalError, match="not an approver"):
            gate.request(approval.approval_id, "intern")

    def test_without_notifier_rejected(self) -> None:
        gate = ApprovalGate()
        approval = _open(gate)
        with pytest.raises(ApprovalError, match="notification"):
            gate.request(approval.approval_id, "ceo")

    def test_request_after_decision_rejected(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        gate.record_decision(approval.approval_id, "ceo", approved=True)
        with pytest.raises(ApprovalError, match="approved"):
            gate.request(approval.approval_id, "cfo")


# ===================================================================
# Decisions
# ===================================================================


class TestDecision:
    def test_approve(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        updated = gate.record_decision(approval.approval_id, "cfo", approved=True)
        assert updated.status == ApprovalStatus.APPROVED
        assert updated.decided_by == "cfo"
        assert updated.decided_at is not None
        assert updated.is_terminal

    def test_deny(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        updated = gate.record_decision(approval.approval_id, "ceo", approved=False)
        assert updated.status == ApprovalStatus.DENIED

    def test_terminal_state_rejects_further_decisions(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        gate.record_decision(approval.approval_id, "ceo", approved=False)
        with pytest.raises(ValueError, match="already denied"):
            gate.record_decision(approval.approval_id, "cfo", approved=True)

    def test_unlisted_decider_rejected(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        with pytest.raises(ApprovalError):
            gate.record_decision(approval.approval_id, "intern", approved=True)
        assert gate.get(approval.approval_id).status == ApprovalStatus.PENDING

    def test_reopen_after_decision_keeps_decision(self, gate: ApprovalGate) -> None:
        approval = _open(gate)
        gate.record_decision(approval.approval_id, "ceo", approved=True)
        assert _open(gate).status == ApprovalStatus.APPROVED


# ===================================================================
# SLA overrides
# ===================================================================


class TestSlaOverride:
    def test_ops_admin_can_override(self, gate: ApprovalGate) -> None:
        override = gate.override_sla(
            shipment_id="SHP-1",
            actor_id="admin-1",
            role=UserRole.OPS_ADMIN,
            reason="Buyer agreed to a later handoff by phone",
            breach_minutes=25,
        )
        assert gate.sla_override_for("SHP-1") == override
        assert override.breach_minutes == 25

    def test_other_roles_rejected(self, gate: ApprovalGate) -> None:
        with pytest.raises(ApprovalError, match="ops admins"):
            gate.override_sla(
                shipment_id="SHP-1",
                actor_id="tech-1",
                role=UserRole.HUB_TECH,
                reason="Buyer agreed to a later handoff by phone",
            )
        assert gate.sla_override_for("SHP-1") is None

    def test_short_reason_rejected(self, gate: ApprovalGate) -> None:
        with pytest.raises(ApprovalError, match="at least 10"):
            gate.override_sla(
                shipment_id="SHP-1",
                actor_id="admin-1",
                role=UserRole.OPS_ADMIN,
                reason="   ok    ",
            )
