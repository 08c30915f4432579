"""Constraint validator: ordered, non-short-circuiting schedule checks.

Checks run in a fixed order:

1. Completeness (fatal: stops all further checks)
2. Chronological order
3. Sender window contains pickup
4. Buyer window contains delivery
5. Hub capacity window contains hub arrival..departure
6. SLA deadline
7. Operator conflicts
8. Travel buffers per leg

Business-rule violations are returned as data. The validator holds no
state, so identical inputs always produce identical results.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from src.models.common import MilestoneType
from src.models.schedule import (
    SLA,
    HubCapacity,
    Milestone,
    OperatorConflict,
    Schedule,
    TravelLeg,
    Window,
    required_sequence,
)
from src.scheduling.models import (
    ScheduleConstraints,
    SlaStatus,
    SlaTarget,
    ValidationResult,
    Violation,
    ViolationKind,
    ViolationSeverity,
)
from src.scheduling.timeparse import TimeParseError, parse_instant, resolve_window

logger = logging.getLogger(__name__)


def _window_label(window: Window | str) -> str:
    if isinstance(window, str):
        return window.strip()
    tz = ZoneInfo(window.timezone)
    return f"{window.start.astimezone(tz):%H:%M}-{window.end.astimezone(tz):%H:%M}"


def _deadline(sla: SLA | str) -> datetime:
    return parse_instant(sla) if isinstance(sla, str) else sla.deadline


def _unparseable(milestone: MilestoneType, what: str, exc: TimeParseError) -> Violation:
    return Violation(
        kind=ViolationKind.UNPARSEABLE_TIME,
        severity=ViolationSeverity.WARNING,
        milestone=milestone,
        message=f"Cannot read {what}: {exc}",
    )


class ConstraintValidator:
    """Validates a schedule against counterparty, hub, operator and SLA constraints.

    Each ``check_*`` method covers one constraint and returns zero or more
    Violations. ``validate`` runs them in order and never short-circuits
    after completeness has passed.
    """

    # ---------------------------------------------------------------
    # Structural checks
    # ---------------------------------------------------------------

    def check_completeness(self, schedule: Schedule, hub_count: int = 1) -> list[Violation]:
        """Schedule must contain exactly the required milestone sequence."""
        expected = required_sequence(hub_count)
        if schedule.types == expected:
            return []

        missing = [t.value for t in dict.fromkeys(expected) if t not in schedule.types]
        detail = f"missing {', '.join(missing)}" if missing else (
            f"expected {len(expected)} milestones in route order, got {len(schedule.milestones)}"
        )
        return [
            Violation(
                kind=ViolationKind.INCOMPLETE_SCHEDULE,
                severity=ViolationSeverity.FATAL,
                message=f"Incomplete schedule: {detail}",
            )
        ]

    def check_order(self, schedule: Schedule) -> list[Violation]:
        """Each milestone must be strictly later than the one before it."""
        violations: list[Violation] = []
        for prev, nxt in zip(schedule.milestones, schedule.milestones[1:]):
            if nxt.time <= prev.time:
                violations.append(
                    Violation(
                        kind=ViolationKind.ORDER,
                        severity=ViolationSeverity.WARNING,
                        milestone=nxt.type,
                        message=f"{nxt.type.value} must be after {prev.type.value}",
                    )
                )
        return violations

    # ---------------------------------------------------------------
    # Counterparty windows
    # ---------------------------------------------------------------

    def _check_window(
        self,
        milestone: Milestone,
        window: Window | str | None,
        kind: ViolationKind,
        party: str,
    ) -> list[Violation]:
        if window is None:
            return []

        candidates: list[Window]
        if isinstance(window, str):
            # An overnight window that opened the evening before also counts.
            local_date = milestone.local_time.date()
            try:
                candidates = [
                    resolve_window(window, day, milestone.timezone)
                    for day in (local_date, local_date - timedelta(days=1))
                ]
            except TimeParseError as exc:
                return [_unparseable(milestone.type, f"{party} window", exc)]
        else:
            candidates = [window]

        if any(w.contains(milestone.time) for w in candidates):
            return []

        verb = "Pickup" if milestone.type == MilestoneType.PICKUP else "Delivery"
        return [
            Violation(
                kind=kind,
                severity=ViolationSeverity.WARNING,
                milestone=milestone.type,
                message=f"{verb} outside {party} window ({_window_label(window)})",
            )
        ]

    def check_sender_window(
        self, schedule: Schedule, window: Window | str | None
    ) -> list[Violation]:
        """Pickup must fall inside the sender's availability (inclusive)."""
        return self._check_window(
            schedule.milestones[0], window, ViolationKind.SENDER_WINDOW, "sender"
        )

    def check_buyer_window(
        self, schedule: Schedule, window: Window | str | None
    ) -> list[Violation]:
        """Delivery must fall inside the buyer's availability (inclusive)."""
        return self._check_window(
            schedule.milestones[-1], window, ViolationKind.BUYER_WINDOW, "buyer"
        )

    # ---------------------------------------------------------------
    # Hub capacity
    # ---------------------------------------------------------------

    def check_hub_capacity(
        self, schedule: Schedule, capacities: tuple[HubCapacity, ...] | list[HubCapacity]
    ) -> list[Violation]:
        """Arrival and departure at each hub must share one capacity window.

        Hubs without declared windows are not checked.
        """
        violations: list[Violation] = []
        hub_count = schedule.hub_count

        for hub_idx in range(hub_count):
            if hub_idx >= len(capacities) or not capacities[hub_idx].windows:
                continue
            capacity = capacities[hub_idx]
            arrival = schedule.milestones[2 * hub_idx + 1]
            departure = schedule.milestones[2 * hub_idx + 2]

            fits = any(
                arrival.time >= w.start and departure.time <= w.end
                for w in capacity.windows
            )
            if not fits:
                where = f" at hub {hub_idx + 1}" if hub_count > 1 else ""
                violations.append(
                    Violation(
                        kind=ViolationKind.HUB_CAPACITY,
                        severity=ViolationSeverity.WARNING,
                        milestone=MilestoneType.HUB_ARRIVAL,
                        message=(
                            f"Hub processing outside {capacity.capability.value} "
                            f"capacity window{where}"
                        ),
                    )
                )
        return violations

    # ---------------------------------------------------------------
    # SLA
    # ---------------------------------------------------------------

    def check_sla(self, schedule: Schedule, sla: SLA | str | None) -> list[Violation]:
        """Delivery must not be later than the SLA deadline.

        Breach minutes are whole minutes past the deadline, rounded down.
        """
        if sla is None:
            return []

        delivery = schedule.milestones[-1]
        try:
            deadline = _deadline(sla)
        except TimeParseError as exc:
            return [_unparseable(delivery.type, "SLA deadline", exc)]

        if delivery.time <= deadline:
            return []

        breach_minutes = math.floor((delivery.time - deadline).total_seconds() / 60)
        return [
            Violation(
                kind=ViolationKind.SLA_BREACH,
                severity=ViolationSeverity.CRITICAL,
                milestone=delivery.type,
                minutes=breach_minutes,
                message=f"SLA breach: {breach_minutes} minutes past deadline",
            )
        ]

    def sla_status(
        self, schedule: Schedule, sla: SLA | str | None, tight_minutes: int = 120
    ) -> SlaStatus | None:
        """Slack between delivery and the SLA deadline, labelled breach/tight/slack.

        None when there is no SLA, no delivery, or the deadline cannot be read.
        """
        if sla is None or not schedule.milestones:
            return None
        try:
            deadline = _deadline(sla)
        except TimeParseError:
            # Already reported by check_sla.
            return None

        delivery = schedule.milestones[-1]
        delta = math.floor((deadline - delivery.time).total_seconds() / 60)
        if delta < 0:
            target = SlaTarget.BREACH
        elif delta < tight_minutes:
            target = SlaTarget.TIGHT
        else:
            target = SlaTarget.SLACK
        return SlaStatus(deadline=deadline, delta_minutes=delta, target=target)

    # ---------------------------------------------------------------
    # Operator
    # ---------------------------------------------------------------

    def check_operator_conflicts(
        self,
        schedule: Schedule,
        conflicts: tuple[OperatorConflict, ...] | list[OperatorConflict],
    ) -> list[Violation]:
        """The courier's span [pickup, delivery end] must not overlap other jobs."""
        pickup = schedule.milestones[0]
        delivery = schedule.milestones[-1]
        span_start = pickup.time
        span_end = delivery.time + timedelta(minutes=delivery.dwell_minutes)

        violations: list[Violation] = []
        for conflict in conflicts:
            if span_start < conflict.end and span_end > conflict.start:
                violations.append(
                    Violation(
                        kind=ViolationKind.OPERATOR_CONFLICT,
                        severity=ViolationSeverity.CRITICAL,
                        message=f"Operator conflict: {conflict.description}",
                    )
                )
        return violations

    # ---------------------------------------------------------------
    # Travel buffers
    # ---------------------------------------------------------------

    def check_travel_buffers(
        self, schedule: Schedule, legs: tuple[TravelLeg, ...] | list[TravelLeg]
    ) -> list[Violation]:
        """Each leg's elapsed time must cover its minimum estimated duration."""
        violations: list[Violation] = []
        milestones = schedule.milestones

        for leg_idx, leg in enumerate(legs):
            to_idx = 2 * leg_idx + 1
            if to_idx >= len(milestones):
                break
            origin = milestones[to_idx - 1]
            destination = milestones[to_idx]
            actual = (destination.time - origin.time).total_seconds() / 60

            if actual < leg.estimated_minutes:
                target = "hub" if destination.type == MilestoneType.HUB_ARRIVAL else "buyer"
                violations.append(
                    Violation(
                        kind=ViolationKind.TRAVEL_BUFFER,
                        severity=ViolationSeverity.WARNING,
                        milestone=destination.type,
                        minutes=math.ceil(leg.estimated_minutes - actual),
                        message=(
                            f"Insufficient travel time to {target} "
                            f"(need {leg.estimated_minutes} min, have {math.floor(actual)} min)"
                        ),
                    )
                )
        return violations

    # ---------------------------------------------------------------
    # Aggregation
    # ---------------------------------------------------------------

    def validate(
        self, schedule: Schedule, constraints: ScheduleConstraints
    ) -> ValidationResult:
        """Run every check in order and collect all violations."""
        incomplete = self.check_completeness(schedule, constraints.hub_count)
        if incomplete:
            logger.info(
                "Schedule %s is structurally incomplete: %s",
                schedule.shipment_id, incomplete[0].message,
            )
            return ValidationResult(violations=tuple(incomplete))

        violations: list[Violation] = []
        violations.extend(self.check_order(schedule))
        violations.extend(self.check_sender_window(schedule, constraints.sender_window))
        violations.extend(self.check_buyer_window(schedule, constraints.buyer_window))
        violations.extend(self.check_hub_capacity(schedule, constraints.hub_capacities))
        violations.extend(self.check_sla(schedule, constraints.sla))
        violations.extend(
            self.check_operator_conflicts(schedule, constraints.operator_conflicts)
        )
        violations.extend(self.check_travel_buffers(schedule, constraints.legs))

        logger.debug(
            "Validated schedule %s: %d violation(s)",
            schedule.shipment_id, len(violations),
        )
        return ValidationResult(violations=tuple(violations))
