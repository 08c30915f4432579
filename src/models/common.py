"""Shared types, enums, and base models used across handoff domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]


# --- Shared enums ---


class MilestoneType(StrEnum):
    """Physical events on a white-glove route, in route order."""

    PICKUP = "pickup"
    HUB_ARRIVAL = "hub_arrival"
    HUB_DEPARTURE = "hub_departure"
    DELIVERY = "delivery"


class HubCapability(StrEnum):
    """What a hub can do to an item while it is held."""

    AUTHENTICATOR = "authenticator"
    SEWING = "sewing"


class TravelMode(StrEnum):
    """How the courier covers a leg."""

    DRIVE = "drive"
    FLIGHT = "flight"
    TRAIN = "train"
    WALK = "walk"


class FeasibilityScore(StrEnum):
    """Tri-state schedule health."""

    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class ApprovalStatus(StrEnum):
    """Lifecycle status for a high-value approval."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class UserRole(StrEnum):
    """Roles that act on a schedule."""

    OPS_ADMIN = "ops_admin"
    HUB_TECH = "hub_tech"
    WG_OPERATOR = "wg_operator"


# --- Base model ---


class HandoffBase(BaseModel):
    """Base model with common configuration for all handoff Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "ser_json_timedelta": "iso8601",
        "protected_namespaces": (),
    }
