"""Scheduling engine configuration.

Thresholds for the edge-case heuristics and the fixed durations used when
building and cascading a schedule. Defaults match the reference business
rules; deployments override them through ``Settings`` or per request.
"""

from __future__ import annotations

from pydantic import Field

from src.config.settings import Settings
from src.models.common import HandoffBase, HubCapability


class SchedulingConfig(HandoffBase, frozen=True):
    """Tunables for validation, cascading, and edge-case analysis."""

    hub_processing_minutes: dict[HubCapability, int] = Field(
        default_factory=lambda: {
            HubCapability.SEWING: 45,
            HubCapability.AUTHENTICATOR: 30,
        },
    )

    # Fixed hold length when swapping in an alternative hub slot.
    hub_slot_substitution_minutes: int = Field(default=90, gt=0)

    hub_slot_expiring_minutes: int = Field(default=30, ge=0)
    high_value_threshold: float = Field(default=500_000.0, ge=0)

    long_intercity_leg_minutes: int = Field(default=180, gt=0)
    same_day_travel_limit_minutes: int = Field(default=480, gt=0)

    # Less slack than this before the deadline reads as tight.
    sla_tight_minutes: int = Field(default=120, ge=0)

    sla_override_min_reason_chars: int = Field(default=10, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> SchedulingConfig:
        return cls(
            hub_slot_expiring_minutes=settings.HUB_SLOT_EXPIRING_MINUTES,
            high_value_threshold=settings.HIGH_VALUE_THRESHOLD,
            hub_slot_substitution_minutes=settings.HUB_SLOT_SUBSTITUTION_MINUTES,
        )

    def processing_minutes(self, capability: HubCapability) -> int:
        return self.hub_processing_minutes[capability]
