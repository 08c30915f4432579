"""Display helpers: dual local/UTC times and the masked operator brief."""

from __future__ import annotations

import re
from datetime import timezone
from zoneinfo import ZoneInfo

from src.models.common import HandoffBase, MilestoneType
from src.models.schedule import Milestone, OperatorProfile, Schedule
from src.scheduling.models import DualTimeDisplay

OPERATOR_REQUIREMENTS: tuple[str, ...] = (
    "Valid ID and courier credentials",
    "Smartphone with the courier app installed",
    "Seal kit for Tier 2/3 items (if applicable)",
    "Camera for mandatory photos at each checkpoint",
)

OPERATOR_RESTRICTIONS: tuple[str, ...] = (
    "Never leave package unattended",
    "Verify OTP before any handoff",
    "Maintain chain of custody documentation",
)


def _format_offset(offset_text: str) -> str:
    # strftime gives "+0530"; render as "+05:30".
    if len(offset_text) == 5:
        return f"{offset_text[:3]}:{offset_text[3:]}"
    return offset_text


def dual_time(milestone: Milestone) -> DualTimeDisplay:
    """Render a milestone in its own timezone and in UTC."""
    local = milestone.time.astimezone(ZoneInfo(milestone.timezone))
    utc = milestone.time.astimezone(timezone.utc)
    abbr = local.tzname() or milestone.timezone
    return DualTimeDisplay(
        milestone=milestone.type,
        timezone=milestone.timezone,
        local=f"{local:%H:%M} {abbr}",
        utc=f"{utc:%H:%M} UTC",
        utc_offset=_format_offset(local.strftime("%z")),
    )


def dual_times(schedule: Schedule) -> tuple[DualTimeDisplay, ...]:
    return tuple(dual_time(m) for m in schedule.milestones)


# ---------------------------------------------------------------------------
# Operator brief
# ---------------------------------------------------------------------------


def mask_name(name: str) -> str:
    """``"Jane Doe"`` -> ``"Jane D."``; single names are left as-is."""
    parts = name.split()
    if len(parts) < 2:
        return name
    return f"{parts[0]} {parts[1][0]}."


def mask_phone(phone: str) -> str:
    """Keep the first three and last four digits, star the rest."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 7:
        return "*" * len(digits)
    return f"{digits[:3]}-{'*' * (len(digits) - 7)}-{digits[-4:]}"


class BriefStop(HandoffBase, frozen=True):
    type: MilestoneType
    local_time: str
    timezone: str
    location: str


class OperatorBrief(HandoffBase, frozen=True):
    """What the courier receives before the run."""

    operator_name: str
    contact: str | None
    timeline: tuple[BriefStop, ...]
    requirements: tuple[str, ...] = OPERATOR_REQUIREMENTS
    restrictions: tuple[str, ...] = OPERATOR_RESTRICTIONS


def operator_brief(
    schedule: Schedule, operator: OperatorProfile, *, mask_pii: bool = True
) -> OperatorBrief:
    """Build the courier brief, masking personal details by default."""
    contact = operator.phone
    if contact is not None and mask_pii:
        contact = mask_phone(contact)
    return OperatorBrief(
        operator_name=mask_name(operator.name) if mask_pii else operator.name,
        contact=contact,
        timeline=tuple(
            BriefStop(
                type=m.type,
                local_time=f"{m.local_time:%Y-%m-%d %H:%M}",
                timezone=m.timezone,
                location=m.location or m.address,
            )
            for m in schedule.milestones
        ),
    )
