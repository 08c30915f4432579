"""Shared pytest fixtures for the handoff scheduler test suite.

Provides:
- anyio_backend: run async tests on asyncio
- gate: a fresh in-memory approval gate with a recording notifier
- client: AsyncClient against the app, wired to ``gate``
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_approval_gate
from src.scheduling.approval_gate import ApprovalGate


class RecordingNotifier:
    """Notifier double that keeps (approval_id, approver_id) pairs."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str]] = []

    def request(self, approval, approver_id: str) -> None:
        self.requests.append((str(approval.approval_id), approver_id))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gate(notifier: RecordingNotifier) -> ApprovalGate:
    return ApprovalGate(notifier=notifier)


@pytest.fixture
async def client(gate: ApprovalGate):
    """AsyncClient with the shared approval gate swapped for a fresh one."""
    from src.api.main import app

    app.dependency_overrides[get_approval_gate] = lambda: gate

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
