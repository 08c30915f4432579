"""Schedule builder: default schedule for a selected route.

Pickup opens the route at the requested time (or the start of the sender
window). Every later milestone is placed ``lead_minutes`` after its
predecessor: leg travel time before a hub arrival or the delivery, hub
processing time before a hub departure. Those leads are what the cascade
adjuster reuses when a time is edited later.

The builder never validates; run ``ConstraintValidator`` on the result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from src.models.common import HandoffBase, MilestoneType
from src.models.schedule import (
    HubCapacity,
    Milestone,
    Schedule,
    TimezoneName,
    TravelLeg,
    Window,
)
from src.scheduling.config import SchedulingConfig

logger = logging.getLogger(__name__)


class RouteStop(HandoffBase, frozen=True):
    """Where a milestone happens."""

    location: str = ""
    address: str = ""
    timezone: TimezoneName = "UTC"


class ScheduleBuilder:
    """Lays out pickup, hub stops, and delivery along a route."""

    def __init__(self, config: SchedulingConfig | None = None) -> None:
        self._config = config or SchedulingConfig()

    def build(
        self,
        *,
        legs: Sequence[TravelLeg],
        hubs: Sequence[HubCapacity],
        origin: RouteStop,
        destination: RouteStop,
        hub_stops: Sequence[RouteStop] = (),
        pickup_time: datetime | None = None,
        sender_window: Window | None = None,
        shipment_id: str = "",
    ) -> Schedule:
        """Build the default schedule.

        ``legs`` runs origin -> hub 1 -> ... -> hub N -> destination, so it
        holds one more entry than ``hubs``. ``hub_stops`` defaults to one
        stop per hub named after the hub id, in the origin's timezone.

        Raises:
            ValueError: If legs and hubs do not line up, or there is no
                pickup time and no sender window to take it from.
        """
        if not hubs:
            msg = "A route needs at least one hub."
            raise ValueError(msg)
        if len(legs) != len(hubs) + 1:
            msg = f"Expected {len(hubs) + 1} legs for {len(hubs)} hub(s), got {len(legs)}."
            raise ValueError(msg)
        if hub_stops and len(hub_stops) != len(hubs):
            msg = f"Expected {len(hubs)} hub stops, got {len(hub_stops)}."
            raise ValueError(msg)

        start = pickup_time or (sender_window.start if sender_window else None)
        if start is None:
            msg = "Pickup time or sender window is required."
            raise ValueError(msg)
        if start.tzinfo is None:
            msg = "Pickup time must be timezone-aware."
            raise ValueError(msg)

        stops = tuple(hub_stops) or tuple(
            RouteStop(location=hub.hub_id, timezone=origin.timezone) for hub in hubs
        )

        pickup_notes = ("Verify item condition and seal at pickup",)
        if sender_window is not None:
            tz = ZoneInfo(sender_window.timezone)
            opens = sender_window.start.astimezone(tz)
            closes = sender_window.end.astimezone(tz)
            pickup_notes = (
                f"Sender available {opens:%H:%M}-{closes:%H:%M}",
                *pickup_notes,
            )

        milestones = [
            self._milestone(MilestoneType.PICKUP, start, origin, 0, pickup_notes),
        ]
        for hub, stop, leg in zip(hubs, stops, legs):
            processing = self._config.processing_minutes(hub.capability)
            arrival = milestones[-1].time + timedelta(minutes=leg.estimated_minutes)
            milestones.append(
                self._milestone(
                    MilestoneType.HUB_ARRIVAL, arrival, stop, leg.estimated_minutes,
                    (f"Tier {hub.tier} {hub.capability.value} intake",),
                )
            )
            milestones.append(
                self._milestone(
                    MilestoneType.HUB_DEPARTURE,
                    arrival + timedelta(minutes=processing),
                    stop,
                    processing,
                    (f"{hub.capability.value.capitalize()} processing ({processing} min)",),
                )
            )

        last_leg = legs[-1]
        milestones.append(
            self._milestone(
                MilestoneType.DELIVERY,
                milestones[-1].time + timedelta(minutes=last_leg.estimated_minutes),
                destination,
                last_leg.estimated_minutes,
                ("Verify OTP with buyer before handoff",),
            )
        )

        schedule = Schedule(shipment_id=shipment_id, milestones=tuple(milestones))
        logger.debug(
            "Built schedule %s with %d hub(s): pickup %s, delivery %s",
            shipment_id, len(hubs),
            milestones[0].time.isoformat(), milestones[-1].time.isoformat(),
        )
        return schedule

    @staticmethod
    def _milestone(
        mtype: MilestoneType,
        time: datetime,
        stop: RouteStop,
        lead: int,
        notes: tuple[str, ...],
    ) -> Milestone:
        return Milestone(
            type=mtype,
            time=time,
            timezone=stop.timezone,
            location=stop.location,
            address=stop.address,
            lead_minutes=lead,
            constraints=notes,
        )
