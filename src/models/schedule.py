"""Schedule models: milestones, windows, and per-collaborator input records.

Every record here is immutable. A Schedule is a value: operations that
change a time return a new Schedule instead of mutating the old one, so
what-if evaluations over the same route never interfere.
"""

from datetime import datetime
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AfterValidator, AwareDatetime, Field, model_validator

from src.models.common import (
    HandoffBase,
    HubCapability,
    MilestoneType,
    TravelMode,
)

# On-site handoff duration per milestone type when none is given.
DEFAULT_DWELL_MINUTES: dict[MilestoneType, int] = {
    MilestoneType.PICKUP: 15,
    MilestoneType.HUB_ARRIVAL: 10,
    MilestoneType.HUB_DEPARTURE: 10,
    MilestoneType.DELIVERY: 20,
}


def validate_timezone_name(value: str) -> str:
    """Reject timezone names that zoneinfo cannot resolve."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        msg = f"Unknown timezone '{value}'."
        raise ValueError(msg) from None
    return value


TimezoneName = Annotated[str, AfterValidator(validate_timezone_name)]


def required_sequence(hub_count: int = 1) -> tuple[MilestoneType, ...]:
    """Milestone types a complete route must contain, in order."""
    hubs = (MilestoneType.HUB_ARRIVAL, MilestoneType.HUB_DEPARTURE) * hub_count
    return (MilestoneType.PICKUP, *hubs, MilestoneType.DELIVERY)


# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------


class Window(HandoffBase, frozen=True):
    """A closed interval [start, end] with a display timezone."""

    start: AwareDatetime
    end: AwareDatetime
    timezone: TimezoneName = "UTC"

    @model_validator(mode="after")
    def _validate_bounds(self) -> "Window":
        if self.end < self.start:
            msg = f"Window end {self.end.isoformat()} is before start {self.start.isoformat()}."
            raise ValueError(msg)
        return self

    def contains(self, instant: datetime) -> bool:
        """Boundary-inclusive containment."""
        return self.start <= instant <= self.end

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class AlternativeSlot(Window, frozen=True):
    """A hub capacity window offered in place of the held slot."""

    sla_compliant: bool = False


# ---------------------------------------------------------------------------
# Milestones and schedule
# ---------------------------------------------------------------------------


class Milestone(HandoffBase, frozen=True):
    """A scheduled physical event.

    ``lead_minutes`` is the fixed duration separating this milestone from
    the previous one (leg travel time, or hub processing time). It is what
    a cascade uses to recompute downstream times. ``dwell_minutes`` is how
    long the handoff itself occupies the courier on site.
    """

    type: MilestoneType
    time: AwareDatetime
    timezone: TimezoneName = "UTC"
    location: str = ""
    address: str = ""
    lead_minutes: int = Field(default=0, ge=0)
    dwell_minutes: int = Field(default=0, ge=0)
    constraints: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _default_dwell(cls, data: object) -> object:
        if isinstance(data, dict) and data.get("dwell_minutes") is None and "type" in data:
            try:
                mtype = MilestoneType(data["type"])
            except ValueError:
                return data
            return {**data, "dwell_minutes": DEFAULT_DWELL_MINUTES[mtype]}
        return data

    @property
    def local_time(self) -> datetime:
        """The milestone instant in its own timezone."""
        return self.time.astimezone(ZoneInfo(self.timezone))


class Schedule(HandoffBase, frozen=True):
    """Strictly ordered milestones for one shipment route."""

    shipment_id: str = ""
    milestones: tuple[Milestone, ...] = ()

    @property
    def types(self) -> tuple[MilestoneType, ...]:
        return tuple(m.type for m in self.milestones)

    @property
    def hub_count(self) -> int:
        return sum(1 for m in self.milestones if m.type == MilestoneType.HUB_ARRIVAL)

    def index_of(self, milestone_type: MilestoneType, occurrence: int = 0) -> int:
        """Position of the n-th milestone of a type.

        Raises:
            KeyError: If the schedule has no such milestone.
        """
        seen = 0
        for idx, m in enumerate(self.milestones):
            if m.type == milestone_type:
                if seen == occurrence:
                    return idx
                seen += 1
        msg = f"Schedule has no {milestone_type.value} milestone #{occurrence}."
        raise KeyError(msg)

    def find(self, milestone_type: MilestoneType, occurrence: int = 0) -> Milestone | None:
        try:
            return self.milestones[self.index_of(milestone_type, occurrence)]
        except KeyError:
            return None

    def with_time(self, index: int, time: datetime) -> "Schedule":
        """Return a new schedule with one milestone moved to ``time``."""
        updated = list(self.milestones)
        updated[index] = updated[index].model_copy(update={"time": time})
        return self.model_copy(update={"milestones": tuple(updated)})

    def timezones(self) -> set[str]:
        return {m.timezone for m in self.milestones}


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------


class HubCapacity(HandoffBase, frozen=True):
    """Capacity offered by one hub for the shipment's tier and capability."""

    hub_id: str = ""
    tier: int = Field(default=1, ge=1)
    capability: HubCapability = HubCapability.AUTHENTICATOR
    windows: tuple[Window, ...] = ()
    hold_expires_at: AwareDatetime | None = None
    alternatives: tuple[AlternativeSlot, ...] = ()


class OperatorConflict(HandoffBase, frozen=True):
    """An existing commitment of the assigned courier."""

    start: AwareDatetime
    end: AwareDatetime
    description: str = ""
    job_id: str | None = None

    @model_validator(mode="after")
    def _validate_bounds(self) -> "OperatorConflict":
        if self.end < self.start:
            msg = "Conflict end is before its start."
            raise ValueError(msg)
        return self


class OperatorProfile(HandoffBase, frozen=True):
    """The courier assigned to a shipment, as supplied by the operator directory."""

    operator_id: str
    name: str
    phone: str | None = None
    conflicts: tuple[OperatorConflict, ...] = ()


class AlternativeOperator(HandoffBase, frozen=True):
    """A replacement courier ranked by an external matcher."""

    operator_id: str
    name: str = ""
    score: float
    next_available: AwareDatetime


class TravelLeg(HandoffBase, frozen=True):
    """One travel segment of the selected route."""

    origin: str
    destination: str
    distance_km: float = Field(default=0.0, ge=0.0)
    estimated_minutes: int = Field(gt=0)
    mode: TravelMode = TravelMode.DRIVE
    is_intercity: bool = False
    is_same_day: bool = True


class SLA(HandoffBase, frozen=True):
    """Contractually promised delivery deadline."""

    deadline: AwareDatetime
    timezone: TimezoneName = "UTC"
