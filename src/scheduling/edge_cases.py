"""Edge-case analyzer: independent heuristics over a schedule and its route.

Each ``check_*`` method looks at one concern and returns zero or one
EdgeCaseIssue with a resolution the caller can act on. No check depends
on another's outcome. ``analyze`` runs them all.

Deterministic given ``EdgeCaseContext.now``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from src.models.approval import Approver, HighValueApproval
from src.models.common import TravelMode, utc_now
from src.models.schedule import (
    AlternativeOperator,
    HubCapacity,
    OperatorConflict,
    OperatorProfile,
    Schedule,
    TravelLeg,
    Window,
)
from src.scheduling.approval_gate import ApprovalGate
from src.scheduling.config import SchedulingConfig
from src.scheduling.countdown import minutes_remaining
from src.scheduling.display import dual_times
from src.scheduling.models import (
    EdgeCaseContext,
    EdgeCaseIssue,
    EdgeCaseReport,
    EdgeCaseTag,
)

logger = logging.getLogger(__name__)


def next_free_window(
    schedule: Schedule, conflicts: Sequence[OperatorConflict]
) -> Window | None:
    """First gap in the operator's calendar long enough for the whole route.

    Starts looking at the scheduled pickup. The returned window is the gap
    between two conflicts, or the route's own length after the last one.
    """
    if not schedule.milestones:
        return None
    pickup = schedule.milestones[0]
    delivery = schedule.milestones[-1]
    span = delivery.time + timedelta(minutes=delivery.dwell_minutes) - pickup.time

    candidate = pickup.time
    for conflict in sorted(conflicts, key=lambda c: c.start):
        if conflict.end <= candidate:
            continue
        if conflict.start >= candidate + span:
            return Window(start=candidate, end=conflict.start, timezone=pickup.timezone)
        candidate = max(candidate, conflict.end)
    return Window(start=candidate, end=candidate + span, timezone=pickup.timezone)


class EdgeCaseAnalyzer:
    """Runs the edge-case heuristics and opens high-value approvals."""

    def __init__(
        self,
        config: SchedulingConfig | None = None,
        approval_gate: ApprovalGate | None = None,
    ) -> None:
        self._config = config or SchedulingConfig()
        self._gate = approval_gate

    # ---------------------------------------------------------------
    # Schedule shape
    # ---------------------------------------------------------------

    def check_cross_timezone(self, schedule: Schedule) -> EdgeCaseIssue | None:
        """More than one timezone across milestones -> dual local/UTC display."""
        zones = schedule.timezones()
        if len(zones) <= 1:
            return None
        return EdgeCaseIssue(
            tag=EdgeCaseTag.CROSS_TIMEZONE,
            message=f"Handoffs span {len(zones)} timezones: {', '.join(sorted(zones))}",
            recommendation="Show times in local and UTC; toggle the primary display.",
            time_displays=dual_times(schedule),
        )

    # ---------------------------------------------------------------
    # Route legs
    # ---------------------------------------------------------------

    def check_long_intercity(self, legs: Iterable[TravelLeg]) -> EdgeCaseIssue | None:
        """Any intercity leg longer than the limit (default 3h)."""
        limit = self._config.long_intercity_leg_minutes
        long_legs = [leg for leg in legs if leg.is_intercity and leg.estimated_minutes > limit]
        if not long_legs:
            return None
        longest = max(long_legs, key=lambda leg: leg.estimated_minutes)
        return EdgeCaseIssue(
            tag=EdgeCaseTag.LONG_INTERCITY_TRAVEL,
            message=(
                f"{len(long_legs)} intercity leg(s) over {limit} min; longest "
                f"{longest.origin} -> {longest.destination} ({longest.estimated_minutes} min)"
            ),
            recommendation="Add rest and contingency buffers to intercity legs.",
        )

    def check_overnight_flight(self, legs: Iterable[TravelLeg]) -> EdgeCaseIssue | None:
        """Any flight leg that cannot be flown the same day."""
        flights = [
            leg for leg in legs
            if leg.mode == TravelMode.FLIGHT and not leg.is_same_day
        ]
        if not flights:
            return None
        return EdgeCaseIssue(
            tag=EdgeCaseTag.OVERNIGHT_FLIGHT_REQUIRED,
            message=(
                "Overnight flight required: "
                + ", ".join(f"{leg.origin} -> {leg.destination}" for leg in flights)
            ),
            recommendation="Book the courier's flight and overnight custody arrangements.",
        )

    def check_same_day(self, legs: Iterable[TravelLeg]) -> EdgeCaseIssue | None:
        """Total travel beyond the same-day limit (default 8h)."""
        total = sum(leg.estimated_minutes for leg in legs)
        limit = self._config.same_day_travel_limit_minutes
        if total <= limit:
            return None
        return EdgeCaseIssue(
            tag=EdgeCaseTag.SAME_DAY_INFEASIBLE,
            message=f"Total travel of {total} min exceeds the {limit} min same-day limit",
            recommendation="Split the route over multiple days.",
        )

    # ---------------------------------------------------------------
    # Hub hold
    # ---------------------------------------------------------------

    def check_hub_slot(
        self, hub: HubCapacity | None, now: datetime
    ) -> EdgeCaseIssue | None:
        """Held hub slot close to (or past) its expiry.

        * 0 < remaining <= threshold -> hub_slot_expiring, with SLA-compliant
          alternatives sorted by earliest start
        * remaining == 0             -> hub_slot_expired
        """
        if hub is None or hub.hold_expires_at is None:
            return None

        remaining = minutes_remaining(hub.hold_expires_at, now)
        alternatives = tuple(
            sorted(
                (slot for slot in hub.alternatives if slot.sla_compliant),
                key=lambda slot: slot.start,
            )
        )
        capability = hub.capability.value

        if remaining == 0:
            return EdgeCaseIssue(
                tag=EdgeCaseTag.HUB_SLOT_EXPIRED,
                message=f"Hub {capability} capacity hold has expired",
                recommendation="Substitute an alternative slot before proceeding.",
                minutes_remaining=0,
                alternative_slots=alternatives,
            )
        if remaining <= self._config.hub_slot_expiring_minutes:
            return EdgeCaseIssue(
                tag=EdgeCaseTag.HUB_SLOT_EXPIRING,
                message=f"Hub {capability} capacity hold expires in {remaining} minutes",
                recommendation=(
                    "Substitute the earliest SLA-compliant slot and re-validate."
                    if alternatives else "Proceed quickly or request a new hold."
                ),
                minutes_remaining=remaining,
                alternative_slots=alternatives,
            )
        return None

    # ---------------------------------------------------------------
    # Operator
    # ---------------------------------------------------------------

    def check_operator_conflict(
        self,
        schedule: Schedule,
        operator: OperatorProfile | None,
        alternatives: Sequence[AlternativeOperator] = (),
    ) -> EdgeCaseIssue | None:
        """A conflict interval contains any milestone time (inclusive)."""
        if operator is None or not operator.conflicts:
            return None

        clashing = tuple(
            conflict for conflict in operator.conflicts
            if any(conflict.start <= m.time <= conflict.end for m in schedule.milestones)
        )
        if not clashing:
            return None

        return EdgeCaseIssue(
            tag=EdgeCaseTag.OPERATOR_CONFLICT,
            message=(
                f"{operator.name} has {len(clashing)} conflicting commitment(s): "
                + "; ".join(c.description or "unnamed job" for c in clashing)
            ),
            recommendation="Move to the operator's next free window or reassign.",
            conflicts=clashing,
            next_free_window=next_free_window(schedule, operator.conflicts),
            alternative_operators=tuple(
                sorted(alternatives, key=lambda alt: alt.score, reverse=True)
            ),
        )

    # ---------------------------------------------------------------
    # Value
    # ---------------------------------------------------------------

    def check_high_value(
        self,
        shipment_id: str,
        declared_value: float,
        approvers: Sequence[Approver] = (),
    ) -> tuple[EdgeCaseIssue | None, HighValueApproval | None]:
        """Declared value above threshold -> approval gate entered as pending."""
        threshold = self._config.high_value_threshold
        if declared_value <= threshold:
            return None, None

        if self._gate is not None:
            approval = self._gate.open(
                shipment_id=shipment_id,
                declared_value=declared_value,
                approvers=approvers,
            )
        else:
            approval = HighValueApproval(
                shipment_id=shipment_id,
                threshold=threshold,
                declared_value=declared_value,
                approvers=tuple(approvers),
            )

        issue = EdgeCaseIssue(
            tag=EdgeCaseTag.HIGH_VALUE_APPROVAL,
            message=f"Declared value {declared_value:,.0f} exceeds {threshold:,.0f}",
            recommendation="Request sign-off from a listed approver.",
        )
        return issue, approval

    # ---------------------------------------------------------------
    # Aggregation
    # ---------------------------------------------------------------

    def analyze(self, context: EdgeCaseContext) -> EdgeCaseReport:
        """Run every heuristic and collect the issues found."""
        now = context.now or utc_now()
        schedule = context.schedule

        candidates = [
            self.check_cross_timezone(schedule),
            self.check_long_intercity(context.legs),
            self.check_overnight_flight(context.legs),
            self.check_same_day(context.legs),
            self.check_hub_slot(context.hub, now),
            self.check_operator_conflict(
                schedule, context.operator, context.alternative_operators
            ),
        ]
        high_value, approval = self.check_high_value(
            schedule.shipment_id, context.declared_value, context.approvers
        )
        candidates.append(high_value)

        issues = tuple(issue for issue in candidates if issue is not None)
        if issues:
            logger.info(
                "Edge cases on schedule %s: %s",
                schedule.shipment_id, ", ".join(i.tag.value for i in issues),
            )
        return EdgeCaseReport(issues=issues, approval=approval)
