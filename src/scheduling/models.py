"""Scheduling engine enums and result models.

Violations carry their kind and severity as explicit tags assigned when
the violation is created. Nothing downstream reads the rendered message
to decide how bad a violation is.

Violations have no generated identifiers, so validating the same inputs
twice yields equal lists.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import AwareDatetime, Field

from src.models.approval import Approver, HighValueApproval
from src.models.common import (
    FeasibilityScore,
    HandoffBase,
    MilestoneType,
    UTCTimestamp,
    utc_now,
)
from src.models.schedule import (
    SLA,
    AlternativeOperator,
    AlternativeSlot,
    HubCapacity,
    OperatorConflict,
    OperatorProfile,
    Schedule,
    TravelLeg,
    Window,
)


# ---------------------------------------------------------------------------
# Enums (all StrEnum)
# ---------------------------------------------------------------------------


class ViolationKind(StrEnum):
    """Which constraint a violation broke."""

    INCOMPLETE_SCHEDULE = "incomplete_schedule"
    ORDER = "order"
    SENDER_WINDOW = "sender_window"
    BUYER_WINDOW = "buyer_window"
    HUB_CAPACITY = "hub_capacity"
    SLA_BREACH = "sla_breach"
    OPERATOR_CONFLICT = "operator_conflict"
    TRAVEL_BUFFER = "travel_buffer"
    UNPARSEABLE_TIME = "unparseable_time"


class ViolationSeverity(StrEnum):
    """How a violation affects feasibility.

    CRITICAL marks the classes that cannot be fixed by re-picking a time
    on the same route (SLA breaches, operator conflicts).
    """

    WARNING = "warning"
    CRITICAL = "critical"
    FATAL = "fatal"


class EdgeCaseTag(StrEnum):
    """Edge-case flags surfaced alongside the verdict."""

    CROSS_TIMEZONE = "cross_timezone"
    LONG_INTERCITY_TRAVEL = "long_intercity_travel"
    OVERNIGHT_FLIGHT_REQUIRED = "overnight_flight_required"
    SAME_DAY_INFEASIBLE = "same_day_infeasible"
    HUB_SLOT_EXPIRING = "hub_slot_expiring"
    HUB_SLOT_EXPIRED = "hub_slot_expired"
    OPERATOR_CONFLICT = "operator_conflict"
    HIGH_VALUE_APPROVAL = "high_value_approval"


class SlaTarget(StrEnum):
    """Where the scheduled delivery sits against the SLA deadline."""

    BREACH = "breach"
    TIGHT = "tight"
    SLACK = "slack"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ScheduleConstraints(HandoffBase, frozen=True):
    """Everything a schedule is validated against.

    Counterparty windows may be given as ``Window`` records or as raw
    ``"HH:MM-HH:MM"`` strings, which are resolved on the local date of the
    milestone they constrain. The SLA may be an ``SLA`` record or a raw
    ISO-8601 instant. Raw values that fail to parse become violations.
    """

    sender_window: Window | str | None = None
    buyer_window: Window | str | None = None
    hub_capacities: tuple[HubCapacity, ...] = ()
    operator_conflicts: tuple[OperatorConflict, ...] = ()
    legs: tuple[TravelLeg, ...] = ()
    sla: SLA | str | None = None
    hub_count: int = Field(default=1, ge=1)


class Violation(HandoffBase, frozen=True):
    """A single broken constraint."""

    kind: ViolationKind
    severity: ViolationSeverity
    message: str
    milestone: MilestoneType | None = None
    minutes: int | None = None


class ValidationResult(HandoffBase, frozen=True):
    """Ordered violations for one schedule."""

    violations: tuple[Violation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def of_kind(self, kind: ViolationKind) -> list[Violation]:
        return [v for v in self.violations if v.kind == kind]


class SlaStatus(HandoffBase, frozen=True):
    """Delivery against the SLA deadline.

    ``delta_minutes`` is deadline minus delivery in whole minutes, rounded
    down: negative on a breach, zero when delivery lands on the deadline.
    """

    deadline: AwareDatetime
    delta_minutes: int
    target: SlaTarget

    @property
    def label(self) -> str:
        return f"{abs(self.delta_minutes)}m {self.target.value}"


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------


class DualTimeDisplay(HandoffBase, frozen=True):
    """One milestone rendered in its local timezone and in UTC."""

    milestone: MilestoneType
    timezone: str
    local: str
    utc: str
    utc_offset: str


class EdgeCaseContext(HandoffBase, frozen=True):
    """Inputs for edge-case analysis, one record per collaborator.

    ``now`` pins the wall-clock instant used for the hub hold countdown;
    when omitted the analyzer reads the current time.
    """

    schedule: Schedule
    legs: tuple[TravelLeg, ...] = ()
    operator: OperatorProfile | None = None
    alternative_operators: tuple[AlternativeOperator, ...] = ()
    hub: HubCapacity | None = None
    declared_value: float = Field(default=0.0, ge=0)
    approvers: tuple[Approver, ...] = ()
    now: AwareDatetime | None = None


class EdgeCaseIssue(HandoffBase, frozen=True):
    """A detected edge case and what the caller can do about it."""

    tag: EdgeCaseTag
    message: str
    recommendation: str | None = None
    time_displays: tuple[DualTimeDisplay, ...] = ()
    minutes_remaining: int | None = None
    alternative_slots: tuple[AlternativeSlot, ...] = ()
    conflicts: tuple[OperatorConflict, ...] = ()
    next_free_window: Window | None = None
    alternative_operators: tuple[AlternativeOperator, ...] = ()


class EdgeCaseReport(HandoffBase, frozen=True):
    """All edge cases found for a schedule."""

    issues: tuple[EdgeCaseIssue, ...] = ()
    approval: HighValueApproval | None = None

    @property
    def tags(self) -> set[EdgeCaseTag]:
        return {issue.tag for issue in self.issues}

    def has(self, tag: EdgeCaseTag) -> bool:
        return tag in self.tags

    def get(self, tag: EdgeCaseTag) -> EdgeCaseIssue | None:
        for issue in self.issues:
            if issue.tag == tag:
                return issue
        return None


# ---------------------------------------------------------------------------
# Evaluation bundle handed to the persistence boundary
# ---------------------------------------------------------------------------


class ScheduleEvaluation(HandoffBase, frozen=True):
    """Schedule, violations, verdict, SLA status, and edge cases for one edit."""

    schedule: Schedule
    violations: tuple[Violation, ...] = ()
    score: FeasibilityScore
    edge_cases: EdgeCaseReport = Field(default_factory=EdgeCaseReport)
    sla_status: SlaStatus | None = None
    evaluated_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def is_valid(self) -> bool:
        return not self.violations
