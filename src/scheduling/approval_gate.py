"""Approval gate: sign-off state for high-value shipments and SLA overrides.

States: pending -> approved | denied (both terminal). The gate only
records transitions it is explicitly told about. Asking an approver is
delegated to an injected notifier; the gate never polls or pushes
notifications itself.

In-memory register. Persistence belongs to the booking boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.models.approval import (
    VALID_APPROVAL_TRANSITIONS,
    Approver,
    HighValueApproval,
    SlaOverride,
)
from src.models.common import ApprovalStatus, UserRole, utc_now
from src.scheduling.config import SchedulingConfig

logger = logging.getLogger(__name__)


class ApprovalError(ValueError):
    """An approval action is not allowed in the current state."""


class ApprovalNotifier(Protocol):
    """Outbound notification/approval service."""

    def request(self, approval: HighValueApproval, approver_id: str) -> None: ...


class ApprovalGate:
    """Tracks high-value approvals and SLA overrides per shipment."""

    def __init__(
        self,
        notifier: ApprovalNotifier | None = None,
        config: SchedulingConfig | None = None,
    ) -> None:
        self._notifier = notifier
        self._config = config or SchedulingConfig()
        self._store: dict[UUID, HighValueApproval] = {}
        self._by_shipment: dict[str, UUID] = {}
        self._overrides: dict[str, SlaOverride] = {}

    # ----- Lookup -----

    def get(self, approval_id: UUID) -> HighValueApproval:
        """Get an approval by ID. Raises KeyError if not found."""
        try:
            return self._store[approval_id]
        except KeyError:
            msg = f"Approval {approval_id} not found."
            raise KeyError(msg) from None

    def find(self, approval_id: UUID) -> HighValueApproval | None:
        return self._store.get(approval_id)

    def for_shipment(self, shipment_id: str) -> HighValueApproval | None:
        approval_id = self._by_shipment.get(shipment_id)
        return self._store[approval_id] if approval_id is not None else None

    def requires_approval(self, declared_value: float) -> bool:
        return declared_value > self._config.high_value_threshold

    # ----- Workflow -----

    def open(
        self,
        *,
        shipment_id: str,
        declared_value: float,
        approvers: Iterable[Approver] = (),
    ) -> HighValueApproval:
        """Open a pending approval for a shipment.

        Re-opening a shipment that already has an approval returns the
        existing record unchanged, whatever its status.

        Raises:
            ApprovalError: If the shipment has no id to key the approval on.
        """
        if not shipment_id:
            msg = "A high-value approval needs a shipment id."
            raise ApprovalError(msg)
        existing = self.for_shipment(shipment_id)
        if existing is not None:
            return existing

        approval = HighValueApproval(
            shipment_id=shipment_id,
            threshold=self._config.high_value_threshold,
            declared_value=declared_value,
            approvers=tuple(approvers),
        )
        self._store[approval.approval_id] = approval
        self._by_shipment[shipment_id] = approval.approval_id
        logger.info(
            "Opened high-value approval %s for shipment %s (declared %.2f > %.2f)",
            approval.approval_id, shipment_id, declared_value, approval.threshold,
        )
        return approval

    def request(self, approval_id: UUID, approver_id: str) -> HighValueApproval:
        """Ask one approver to sign off, via the notification service.

        Raises:
            ApprovalError: If no notifier is configured, the approval is
                not pending, or the approver is not listed.
        """
        approval = self.get(approval_id)
        if self._notifier is None:
            msg = "No approval notification service configured."
            raise ApprovalError(msg)
        self._require_pending(approval, "request")
        self._require_listed(approval, approver_id)

        self._notifier.request(approval, approver_id)

        requested = approval.requested_from
        if approver_id not in requested:
            requested = (*requested, approver_id)
        updated = approval.model_copy(update={"requested_from": requested})
        self._store[approval_id] = updated
        return updated

    def record_decision(
        self,
        approval_id: UUID,
        approver_id: str,
        *,
        approved: bool,
        decided_at: datetime | None = None,
    ) -> HighValueApproval:
        """Record an approver's decision reported by the notification service.

        Raises:
            ApprovalError: If the approval is already decided or the
                approver is not listed.
        """
        approval = self.get(approval_id)
        target = ApprovalStatus.APPROVED if approved else ApprovalStatus.DENIED
        if target not in VALID_APPROVAL_TRANSITIONS[approval.status]:
            msg = (
                f"Cannot mark approval {approval_id} {target.value}: "
                f"already {approval.status.value}."
            )
            raise ApprovalError(msg)
        self._require_listed(approval, approver_id)

        updated = approval.model_copy(
            update={
                "status": target,
                "decided_by": approver_id,
                "decided_at": decided_at or utc_now(),
            }
        )
        self._store[approval_id] = updated
        logger.info(
            "Approval %s %s by %s", approval_id, target.value, approver_id,
        )
        return updated

    # ----- SLA overrides -----

    def override_sla(
        self,
        *,
        shipment_id: str,
        actor_id: str,
        role: UserRole,
        reason: str,
        breach_minutes: int = 0,
    ) -> SlaOverride:
        """Record an ops admin's acknowledgement of an SLA breach.

        Raises:
            ApprovalError: If the actor is not an ops admin or the reason
                is too short.
        """
        if role != UserRole.OPS_ADMIN:
            msg = "Only ops admins can override an SLA breach."
            raise ApprovalError(msg)
        min_chars = self._config.sla_override_min_reason_chars
        if len(reason.strip()) < min_chars:
            msg = f"Override reason must be at least {min_chars} characters."
            raise ApprovalError(msg)

        override = SlaOverride(
            shipment_id=shipment_id,
            actor_id=actor_id,
            role=role,
            reason=reason.strip(),
            breach_minutes=breach_minutes,
        )
        self._overrides[shipment_id] = override
        logger.warning(
            "SLA override on shipment %s by %s (%d min breach)",
            shipment_id, actor_id, breach_minutes,
        )
        return override

    def sla_override_for(self, shipment_id: str) -> SlaOverride | None:
        return self._overrides.get(shipment_id)

    # ----- Guards -----

    @staticmethod
    def _require_pending(approval: HighValueApproval, action: str) -> None:
        if approval.status != ApprovalStatus.PENDING:
            msg = (
                f"Cannot {action}: approval {approval.approval_id} is "
                f"{approval.status.value}."
            )
            raise ApprovalError(msg)

    @staticmethod
    def _require_listed(approval: HighValueApproval, approver_id: str) -> None:
        if approval.approvers and approver_id not in approval.approver_ids():
            msg = f"{approver_id} is not an approver for {approval.approval_id}."
            raise ApprovalError(msg)
