"""Cascade adjuster: forward propagation of a milestone time edit.

Editing a milestone moves it to the new time and recomputes every
milestone after it as ``previous.time + milestone.lead_minutes``.
Earlier milestones never move: they stand for physical events that are
already committed.

The adjuster never validates. Callers re-run ``ConstraintValidator`` on
every schedule it returns.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from src.models.common import MilestoneType
from src.models.schedule import AlternativeSlot, Schedule
from src.scheduling.config import SchedulingConfig

logger = logging.getLogger(__name__)


class CascadeError(ValueError):
    """The requested edit cannot produce a strictly increasing schedule."""


class CascadeAdjuster:
    """Recomputes downstream milestone times after an edit.

    Always returns a new Schedule; the input schedule is left untouched.
    """

    def __init__(self, config: SchedulingConfig | None = None) -> None:
        self._config = config or SchedulingConfig()

    def cascade(
        self,
        schedule: Schedule,
        edited_type: MilestoneType,
        new_time: datetime,
        occurrence: int = 0,
    ) -> Schedule:
        """Move one milestone and push every later milestone forward.

        Raises:
            CascadeError: If the milestone does not exist, ``new_time`` is
                naive or not after the preceding milestone, or a downstream
                milestone has no lead duration to cascade with.
        """
        try:
            index = schedule.index_of(edited_type, occurrence)
        except KeyError as exc:
            raise CascadeError(str(exc.args[0])) from None

        if new_time.tzinfo is None:
            msg = "Cascade requires a timezone-aware time."
            raise CascadeError(msg)

        milestones = list(schedule.milestones)
        if index > 0 and new_time <= milestones[index - 1].time:
            msg = (
                f"{edited_type.value} cannot be moved to or before "
                f"{milestones[index - 1].type.value}."
            )
            raise CascadeError(msg)

        milestones[index] = milestones[index].model_copy(update={"time": new_time})
        for i in range(index + 1, len(milestones)):
            lead = milestones[i].lead_minutes
            if lead <= 0:
                msg = f"{milestones[i].type.value} has no lead duration to cascade with."
                raise CascadeError(msg)
            milestones[i] = milestones[i].model_copy(
                update={"time": milestones[i - 1].time + timedelta(minutes=lead)}
            )

        logger.debug(
            "Cascaded %s edit on schedule %s across %d downstream milestone(s)",
            edited_type.value, schedule.shipment_id, len(milestones) - index - 1,
        )
        return schedule.model_copy(update={"milestones": tuple(milestones)})

    def substitute_hub_slot(
        self,
        schedule: Schedule,
        slot: AlternativeSlot,
        hub_index: int = 0,
    ) -> Schedule:
        """Swap an expiring hub hold for an SLA-compliant alternative slot.

        Hub arrival moves to the slot start, hub departure to a fixed hold
        length after it, and everything after the hub cascades from the new
        departure.

        Raises:
            CascadeError: If the slot is not SLA-compliant or the edit is
                not possible on this schedule.
        """
        if not slot.sla_compliant:
            msg = "Only SLA-compliant slots can be substituted."
            raise CascadeError(msg)

        hold = self._config.hub_slot_substitution_minutes
        moved = self.cascade(schedule, MilestoneType.HUB_ARRIVAL, slot.start, hub_index)

        departure_idx = moved.index_of(MilestoneType.HUB_DEPARTURE, hub_index)
        milestones = list(moved.milestones)
        milestones[departure_idx] = milestones[departure_idx].model_copy(
            update={"lead_minutes": hold}
        )
        moved = moved.model_copy(update={"milestones": tuple(milestones)})

        logger.info(
            "Substituted hub %d slot on schedule %s: arrival %s, hold %d min",
            hub_index, schedule.shipment_id, slot.start.isoformat(), hold,
        )
        return self.cascade(
            moved,
            MilestoneType.HUB_DEPARTURE,
            slot.start + timedelta(minutes=hold),
            hub_index,
        )
