"""Schedule evaluation orchestrator.

One edit flows one way: cascade -> validate -> score + edge cases. The
result is a ``ScheduleEvaluation`` the persistence boundary can store as-is.

``check_readiness`` is the booking gate on top of an evaluation: it is the
only place an SLA override is consulted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from src.models.approval import Approver
from src.models.common import ApprovalStatus, MilestoneType, utc_now
from src.models.schedule import (
    AlternativeOperator,
    AlternativeSlot,
    HubCapacity,
    OperatorProfile,
    Schedule,
)
from src.scheduling.approval_gate import ApprovalGate
from src.scheduling.cascade import CascadeAdjuster
from src.scheduling.config import SchedulingConfig
from src.scheduling.countdown import minutes_remaining
from src.scheduling.edge_cases import EdgeCaseAnalyzer
from src.scheduling.models import (
    EdgeCaseContext,
    ScheduleConstraints,
    ScheduleEvaluation,
    ViolationKind,
    ViolationSeverity,
)
from src.scheduling.scorer import FeasibilityScorer
from src.scheduling.validator import ConstraintValidator

logger = logging.getLogger(__name__)


@dataclass
class BookingReadiness:
    """Result of the booking readiness check."""

    ready: bool
    blocking_reasons: list[str] = field(default_factory=list)


class ScheduleEvaluationService:
    """Runs the scheduling engine end to end for one schedule or edit."""

    def __init__(
        self,
        config: SchedulingConfig | None = None,
        approval_gate: ApprovalGate | None = None,
    ) -> None:
        self._config = config or SchedulingConfig()
        self._gate = approval_gate or ApprovalGate(config=self._config)
        self._validator = ConstraintValidator()
        self._cascade = CascadeAdjuster(config=self._config)
        self._scorer = FeasibilityScorer()
        self._analyzer = EdgeCaseAnalyzer(config=self._config, approval_gate=self._gate)

    @property
    def approval_gate(self) -> ApprovalGate:
        return self._gate

    def evaluate(
        self,
        schedule: Schedule,
        constraints: ScheduleConstraints,
        *,
        operator: OperatorProfile | None = None,
        alternative_operators: Sequence[AlternativeOperator] = (),
        hub: HubCapacity | None = None,
        declared_value: float = 0.0,
        approvers: Sequence[Approver] = (),
        now: datetime | None = None,
    ) -> ScheduleEvaluation:
        """Validate, score, and analyze a schedule as it stands."""
        now = now or utc_now()
        result = self._validator.validate(schedule, constraints)
        score = self._scorer.score(result.violations)
        sla_status = self._validator.sla_status(
            schedule, constraints.sla, self._config.sla_tight_minutes
        )
        report = self._analyzer.analyze(
            EdgeCaseContext(
                schedule=schedule,
                legs=constraints.legs,
                operator=operator,
                alternative_operators=tuple(alternative_operators),
                hub=hub,
                declared_value=declared_value,
                approvers=tuple(approvers),
                now=now,
            )
        )
        logger.info(
            "Evaluated schedule %s: %s, %d violation(s), tags=%s",
            schedule.shipment_id, score.value, len(result.violations),
            sorted(tag.value for tag in report.tags),
        )
        return ScheduleEvaluation(
            schedule=schedule,
            violations=result.violations,
            score=score,
            edge_cases=report,
            sla_status=sla_status,
            evaluated_at=now,
        )

    def apply_edit(
        self,
        schedule: Schedule,
        constraints: ScheduleConstraints,
        edited_type: MilestoneType,
        new_time: datetime,
        *,
        occurrence: int = 0,
        **context,
    ) -> ScheduleEvaluation:
        """Cascade an edited milestone time, then evaluate the new schedule.

        Raises:
            CascadeError: If the edit cannot produce a valid ordering.
        """
        updated = self._cascade.cascade(schedule, edited_type, new_time, occurrence)
        return self.evaluate(updated, constraints, **context)

    def apply_slot(
        self,
        schedule: Schedule,
        constraints: ScheduleConstraints,
        slot: AlternativeSlot,
        *,
        hub_index: int = 0,
        **context,
    ) -> ScheduleEvaluation:
        """Substitute an alternative hub slot, then evaluate the new schedule."""
        updated = self._cascade.substitute_hub_slot(schedule, slot, hub_index)
        return self.evaluate(updated, constraints, **context)

    # ----- Booking gate -----

    def check_readiness(
        self,
        evaluation: ScheduleEvaluation,
        *,
        operator: OperatorProfile | None,
        hub: HubCapacity | None = None,
        now: datetime | None = None,
    ) -> BookingReadiness:
        """Decide whether a schedule can be booked.

        Blocks when:
        - the schedule is structurally incomplete
        - any violation remains, except an SLA breach an ops admin overrode
        - no operator is assigned
        - a required high-value approval is not approved
        - the held hub slot has expired
        """
        now = now or utc_now()
        shipment_id = evaluation.schedule.shipment_id
        overridden = self._gate.sla_override_for(shipment_id) is not None
        blocking: list[str] = []

        for violation in evaluation.violations:
            if violation.severity == ViolationSeverity.FATAL:
                blocking.append("Schedule is incomplete.")
            elif violation.kind == ViolationKind.SLA_BREACH and overridden:
                continue
            else:
                blocking.append(violation.message)

        if operator is None:
            blocking.append("No operator assigned.")

        approval = evaluation.edge_cases.approval
        if approval is not None:
            # The gate holds the latest decision; the evaluation a snapshot.
            approval = self._gate.find(approval.approval_id) or approval
            if approval.status != ApprovalStatus.APPROVED:
                blocking.append(
                    f"High-value approval is {approval.status.value}."
                )

        if hub is not None and hub.hold_expires_at is not None:
            if minutes_remaining(hub.hold_expires_at, now) == 0:
                blocking.append("Hub capacity hold has expired.")

        if blocking:
            logger.info(
                "Schedule %s not ready to book: %s", shipment_id, "; ".join(blocking),
            )
        return BookingReadiness(ready=not blocking, blocking_reasons=blocking)
