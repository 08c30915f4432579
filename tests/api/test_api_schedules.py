"""Tests for the schedule and approval HTTP endpoints."""

import pytest
from httpx import AsyncClient

from src.scheduling.approval_gate import ApprovalGate

PICKUP = "2026-03-10T09:00:00+00:00"


def _schedule_body(shipment_id: str = "SHP-1") -> dict:
    return {
        "shipment_id": shipment_id,
        "milestones": [
            {"type": "pickup", "time": "2026-03-10T09:00:00+00:00"},
            {"type": "hub_arrival", "time": "2026-03-10T10:00:00+00:00", "lead_minutes": 60},
            {"type": "hub_departure", "time": "2026-03-10T10:30:00+00:00", "lead_minutes": 30},
            {"type": "delivery", "time": "2026-03-10T11:30:00+00:00", "lead_minutes": 60},
        ],
    }


def _legs() -> list[dict]:
    return [
        {"origin": "Paris", "destination": "Hub", "estimated_minutes": 60},
        {"origin": "Hub", "destination": "Lyon", "estimated_minutes": 60},
    ]


# ===================================================================
# Infrastructure
# ===================================================================


class TestInfrastructure:
    @pytest.mark.anyio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.anyio
    async def test_version(self, client: AsyncClient) -> None:
        response = await client.get("/api/version")
        data = response.json()
        assert data["name"] == "Handoff Scheduler"
        assert "version" in data


# ===================================================================
# Build
# ===================================================================


class TestBuildEndpoint:
    @pytest.mark.anyio
    async def test_build_default_schedule(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/build", json={
            "shipment_id": "SHP-1",
            "legs": _legs(),
            "hubs": [{"hub_id": "HUB-1", "capability": "sewing"}],
            "origin": {"location": "Sender", "timezone": "Europe/Paris"},
            "destination": {"location": "Buyer", "timezone": "Europe/Paris"},
            "pickup_time": PICKUP,
        })
        assert response.status_code == 200
        milestones = response.json()["milestones"]
        assert [m["type"] for m in milestones] == [
            "pickup", "hub_arrival", "hub_departure", "delivery",
        ]
        assert milestones[2]["lead_minutes"] == 45

    @pytest.mark.anyio
    async def test_build_mismatched_legs_422(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/build", json={
            "legs": _legs()[:1],
            "hubs": [{"hub_id": "HUB-1"}],
            "origin": {},
            "destination": {},
            "pickup_time": PICKUP,
        })
        assert response.status_code == 422


# ===================================================================
# Validate
# ===================================================================


class TestValidateEndpoint:
    @pytest.mark.anyio
    async def test_clean_schedule_green(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/validate", json={
            "schedule": _schedule_body(),
            "constraints": {"sender_window": "09:00-12:00", "legs": _legs()},
        })
        data = response.json()
        assert response.status_code == 200
        assert data["score"] == "green"
        assert data["is_valid"] is True

    @pytest.mark.anyio
    async def test_sla_breach_red(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/validate", json={
            "schedule": _schedule_body(),
            "constraints": {"sla": "2026-03-10T11:29:00+00:00"},
        })
        data = response.json()
        assert data["score"] == "red"
        assert data["violations"][0]["kind"] == "sla_breach"
        assert data["violations"][0]["minutes"] == 1

    @pytest.mark.anyio
    async def test_naive_milestone_time_rejected(self, client: AsyncClient) -> None:
        body = _schedule_body()
        body["milestones"][0]["time"] = "2026-03-10T09:00:00"
        response = await client.post("/v1/schedules/validate", json={"schedule": body})
        assert response.status_code == 422


# ===================================================================
# Cascade
# ===================================================================


class TestCascadeEndpoint:
    @pytest.mark.anyio
    async def test_edit_cascades(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/cascade", json={
            "schedule": _schedule_body(),
            "edit": {"milestone": "pickup", "new_time": "2026-03-10T09:30:00+00:00"},
        })
        assert response.status_code == 200
        delivery = response.json()["milestones"][-1]
        assert delivery["time"].startswith("2026-03-10T12:00:00")

    @pytest.mark.anyio
    async def test_backwards_edit_422(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/cascade", json={
            "schedule": _schedule_body(),
            "edit": {"milestone": "delivery", "new_time": PICKUP},
        })
        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_slot_substitution(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/cascade", json={
            "schedule": _schedule_body(),
            "substitution": {
                "slot": {
                    "start": "2026-03-10T13:00:00+00:00",
                    "end": "2026-03-10T15:00:00+00:00",
                    "sla_compliant": True,
                },
            },
        })
        milestones = response.json()["milestones"]
        assert milestones[2]["time"].startswith("2026-03-10T14:30:00")

    @pytest.mark.anyio
    async def test_requires_exactly_one_change(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/cascade", json={
            "schedule": _schedule_body(),
        })
        assert response.status_code == 422


# ===================================================================
# Evaluate + approvals
# ===================================================================


class TestEvaluateAndApprove:
    async def _evaluate_high_value(self, client: AsyncClient) -> dict:
        response = await client.post("/v1/schedules/evaluate", json={
            "schedule": _schedule_body(),
            "constraints": {"legs": _legs()},
            "operator": {"operator_id": "op-1", "name": "Jane Doe"},
            "declared_value": 600000,
            "approvers": [{"approver_id": "ceo", "name": "CEO"}],
            "now": PICKUP,
        })
        assert response.status_code == 200
        return response.json()

    @pytest.mark.anyio
    async def test_high_value_blocks_readiness(self, client: AsyncClient) -> None:
        data = await self._evaluate_high_value(client)
        issues = data["evaluation"]["edge_cases"]["issues"]
        assert [i["tag"] for i in issues] == ["high_value_approval"]
        assert data["evaluation"]["edge_cases"]["approval"]["status"] == "pending"
        assert data["readiness"]["ready"] is False

    @pytest.mark.anyio
    async def test_request_and_approve_flow(
        self, client: AsyncClient, gate: ApprovalGate, notifier,
    ) -> None:
        data = await self._evaluate_high_value(client)
        approval_id = data["evaluation"]["edge_cases"]["approval"]["approval_id"]

        response = await client.post(
            f"/v1/approvals/{approval_id}/request", json={"approver_id": "ceo"},
        )
        assert response.status_code == 200
        assert response.json()["requested_from"] == ["ceo"]
        assert notifier.requests == [(approval_id, "ceo")]

        response = await client.post(
            f"/v1/approvals/{approval_id}/decision",
            json={"approver_id": "ceo", "approved": True},
        )
        assert response.json()["status"] == "approved"

        data = await self._evaluate_high_value(client)
        assert data["readiness"]["ready"] is True

    @pytest.mark.anyio
    async def test_second_decision_conflict(self, client: AsyncClient) -> None:
        data = await self._evaluate_high_value(client)
        approval_id = data["evaluation"]["edge_cases"]["approval"]["approval_id"]
        await client.post(
            f"/v1/approvals/{approval_id}/decision",
            json={"approver_id": "ceo", "approved": False},
        )
        response = await client.post(
            f"/v1/approvals/{approval_id}/decision",
            json={"approver_id": "ceo", "approved": True},
        )
        assert response.status_code == 409

    @pytest.mark.anyio
    async def test_high_value_without_shipment_id_422(
        self, client: AsyncClient, gate: ApprovalGate,
    ) -> None:
        response = await client.post("/v1/schedules/evaluate", json={
            "schedule": _schedule_body(shipment_id=""),
            "operator": {"operator_id": "op-1", "name": "Jane Doe"},
            "declared_value": 600000,
            "now": PICKUP,
        })
        assert response.status_code == 422
        assert gate.for_shipment("") is None

    @pytest.mark.anyio
    async def test_sla_status_reported(self, client: AsyncClient) -> None:
        response = await client.post("/v1/schedules/evaluate", json={
            "schedule": _schedule_body(),
            "constraints": {"sla": "2026-03-10T13:29:00+00:00"},
            "operator": {"operator_id": "op-1", "name": "Jane Doe"},
            "now": PICKUP,
        })
        status = response.json()["evaluation"]["sla_status"]
        assert status["delta_minutes"] == 119
        assert status["target"] == "tight"

    @pytest.mark.anyio
    async def test_unknown_approval_404(self, client: AsyncClient) -> None:
        response = await client.get(
            "/v1/approvals/01890a5d-ac96-774b-bcce-b302099a8057",
        )
        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_sla_override_endpoint(
        self, client: AsyncClient, gate: ApprovalGate,
    ) -> None:
        response = await client.post("/v1/approvals/sla-overrides", json={
            "shipment_id": "SHP-1",
            "actor_id": "admin-1",
            "role": "ops_admin",
            "reason": "Buyer confirmed a later delivery",
            "breach_minutes": 15,
        })
        assert response.status_code == 201
        assert gate.sla_override_for("SHP-1") is not None

        response = await client.post("/v1/approvals/sla-overrides", json={
            "shipment_id": "SHP-2",
            "actor_id": "op-1",
            "role": "wg_operator",
            "reason": "Buyer confirmed a later delivery",
        })
        assert response.status_code == 409
