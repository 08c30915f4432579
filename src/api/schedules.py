"""FastAPI schedule endpoints.

POST /v1/schedules/build    - default schedule for a selected route
POST /v1/schedules/validate - violations + feasibility score
POST /v1/schedules/cascade  - apply a milestone edit or hub slot substitution
POST /v1/schedules/evaluate - full evaluation + booking readiness

Stateless apart from the shared approval gate.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AwareDatetime, BaseModel, Field, model_validator

from src.api.dependencies import (
    get_cascade_adjuster,
    get_evaluation_service,
    get_schedule_builder,
)
from src.models.approval import Approver
from src.models.common import FeasibilityScore, MilestoneType
from src.models.schedule import (
    AlternativeOperator,
    AlternativeSlot,
    HubCapacity,
    OperatorProfile,
    Schedule,
    TravelLeg,
    Window,
)
from src.scheduling.approval_gate import ApprovalError
from src.scheduling.builder import RouteStop, ScheduleBuilder
from src.scheduling.cascade import CascadeAdjuster, CascadeError
from src.scheduling.models import ScheduleConstraints, ScheduleEvaluation, Violation
from src.scheduling.scorer import FeasibilityScorer
from src.scheduling.service import ScheduleEvaluationService
from src.scheduling.validator import ConstraintValidator

router = APIRouter(prefix="/v1/schedules", tags=["schedules"])

_validator = ConstraintValidator()
_scorer = FeasibilityScorer()


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class BuildScheduleRequest(BaseModel):
    shipment_id: str = ""
    legs: list[TravelLeg]
    hubs: list[HubCapacity]
    origin: RouteStop
    destination: RouteStop
    hub_stops: list[RouteStop] = Field(default_factory=list)
    pickup_time: AwareDatetime | None = None
    sender_window: Window | None = None


class ValidateRequest(BaseModel):
    schedule: Schedule
    constraints: ScheduleConstraints = Field(default_factory=ScheduleConstraints)


class ValidateResponse(BaseModel):
    violations: list[Violation]
    score: FeasibilityScore
    is_valid: bool


class MilestoneEdit(BaseModel):
    milestone: MilestoneType
    new_time: AwareDatetime
    occurrence: int = Field(default=0, ge=0)


class SlotSubstitution(BaseModel):
    slot: AlternativeSlot
    hub_index: int = Field(default=0, ge=0)


class CascadeRequest(BaseModel):
    schedule: Schedule
    edit: MilestoneEdit | None = None
    substitution: SlotSubstitution | None = None

    @model_validator(mode="after")
    def _one_change(self) -> "CascadeRequest":
        if (self.edit is None) == (self.substitution is None):
            msg = "Provide exactly one of 'edit' or 'substitution'."
            raise ValueError(msg)
        return self


class EvaluateRequest(BaseModel):
    schedule: Schedule
    constraints: ScheduleConstraints = Field(default_factory=ScheduleConstraints)
    edit: MilestoneEdit | None = None
    operator: OperatorProfile | None = None
    alternative_operators: list[AlternativeOperator] = Field(default_factory=list)
    hub: HubCapacity | None = None
    declared_value: float = Field(default=0.0, ge=0)
    approvers: list[Approver] = Field(default_factory=list)
    now: AwareDatetime | None = None


class ReadinessResponse(BaseModel):
    ready: bool
    blocking_reasons: list[str]


class EvaluateResponse(BaseModel):
    evaluation: ScheduleEvaluation
    readiness: ReadinessResponse


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/build", response_model=Schedule)
async def build_schedule(
    body: BuildScheduleRequest,
    builder: ScheduleBuilder = Depends(get_schedule_builder),
) -> Schedule:
    """Lay out a default schedule along the selected route."""
    try:
        return builder.build(
            legs=body.legs,
            hubs=body.hubs,
            origin=body.origin,
            destination=body.destination,
            hub_stops=body.hub_stops,
            pickup_time=body.pickup_time,
            sender_window=body.sender_window,
            shipment_id=body.shipment_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/validate", response_model=ValidateResponse)
async def validate_schedule(body: ValidateRequest) -> ValidateResponse:
    """Check a schedule against its constraints and score it."""
    result = _validator.validate(body.schedule, body.constraints)
    return ValidateResponse(
        violations=list(result.violations),
        score=_scorer.score(result.violations),
        is_valid=result.is_valid,
    )


@router.post("/cascade", response_model=Schedule)
async def cascade_schedule(
    body: CascadeRequest,
    adjuster: CascadeAdjuster = Depends(get_cascade_adjuster),
) -> Schedule:
    """Apply one edit and return the recomputed schedule (not validated)."""
    try:
        if body.edit is not None:
            return adjuster.cascade(
                body.schedule,
                body.edit.milestone,
                body.edit.new_time,
                body.edit.occurrence,
            )
        return adjuster.substitute_hub_slot(
            body.schedule, body.substitution.slot, body.substitution.hub_index,
        )
    except CascadeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_schedule(
    body: EvaluateRequest,
    service: ScheduleEvaluationService = Depends(get_evaluation_service),
) -> EvaluateResponse:
    """Cascade (optional), validate, score, analyze, and check readiness."""
    context = {
        "operator": body.operator,
        "alternative_operators": body.alternative_operators,
        "hub": body.hub,
        "declared_value": body.declared_value,
        "approvers": body.approvers,
        "now": body.now,
    }
    try:
        if body.edit is not None:
            evaluation = service.apply_edit(
                body.schedule,
                body.constraints,
                body.edit.milestone,
                body.edit.new_time,
                occurrence=body.edit.occurrence,
                **context,
            )
        else:
            evaluation = service.evaluate(body.schedule, body.constraints, **context)
    except (CascadeError, ApprovalError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    readiness = service.check_readiness(
        evaluation, operator=body.operator, hub=body.hub, now=body.now,
    )
    return EvaluateResponse(
        evaluation=evaluation,
        readiness=ReadinessResponse(
            ready=readiness.ready,
            blocking_reasons=readiness.blocking_reasons,
        ),
    )
