"""FastAPI approval endpoints.

GET  /v1/approvals/{id}          - current state of a high-value approval
POST /v1/approvals/{id}/request  - ask a listed approver to sign off
POST /v1/approvals/{id}/decision - record an approver's decision
POST /v1/approvals/sla-overrides - ops admin acknowledges an SLA breach

Approvals are opened by schedule evaluation, never directly.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.dependencies import get_approval_gate
from src.models.approval import HighValueApproval, SlaOverride
from src.models.common import UserRole
from src.scheduling.approval_gate import ApprovalError, ApprovalGate

router = APIRouter(prefix="/v1/approvals", tags=["approvals"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RequestApprovalRequest(BaseModel):
    approver_id: str = Field(..., min_length=1)


class DecisionRequest(BaseModel):
    approver_id: str = Field(..., min_length=1)
    approved: bool


class SlaOverrideRequest(BaseModel):
    shipment_id: str = Field(..., min_length=1)
    actor_id: str = Field(..., min_length=1)
    role: UserRole
    reason: str
    breach_minutes: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _get_or_404(gate: ApprovalGate, approval_id: UUID) -> HighValueApproval:
    try:
        return gate.get(approval_id)
    except KeyError:
        raise HTTPException(
            status_code=404, detail=f"Approval {approval_id} not found.",
        ) from None


@router.get("/{approval_id}", response_model=HighValueApproval)
async def get_approval(
    approval_id: UUID,
    gate: ApprovalGate = Depends(get_approval_gate),
) -> HighValueApproval:
    return _get_or_404(gate, approval_id)


@router.post("/{approval_id}/request", response_model=HighValueApproval)
async def request_approval(
    approval_id: UUID,
    body: RequestApprovalRequest,
    gate: ApprovalGate = Depends(get_approval_gate),
) -> HighValueApproval:
    """Send the approval to one approver through the notification service."""
    _get_or_404(gate, approval_id)
    try:
        return gate.request(approval_id, body.approver_id)
    except ApprovalError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/{approval_id}/decision", response_model=HighValueApproval)
async def record_decision(
    approval_id: UUID,
    body: DecisionRequest,
    gate: ApprovalGate = Depends(get_approval_gate),
) -> HighValueApproval:
    """Apply an approved/denied decision to a pending approval."""
    _get_or_404(gate, approval_id)
    try:
        return gate.record_decision(
            approval_id, body.approver_id, approved=body.approved,
        )
    except ApprovalError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/sla-overrides", status_code=201, response_model=SlaOverride)
async def override_sla(
    body: SlaOverrideRequest,
    gate: ApprovalGate = Depends(get_approval_gate),
) -> SlaOverride:
    """Record an ops admin override of an SLA breach."""
    try:
        return gate.override_sla(
            shipment_id=body.shipment_id,
            actor_id=body.actor_id,
            role=body.role,
            reason=body.reason,
            breach_minutes=body.breach_minutes,
        )
    except ApprovalError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
