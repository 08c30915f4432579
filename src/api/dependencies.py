"""FastAPI dependency factories for the scheduling engine.

The approval gate is process-wide in-memory state shared by the schedule
and approval routers. Endpoints take it via Depends() so tests can swap
in a fresh gate with ``app.dependency_overrides``.
"""

import structlog
from fastapi import Depends

from src.config.settings import get_settings
from src.models.approval import HighValueApproval
from src.scheduling.approval_gate import ApprovalGate
from src.scheduling.builder import ScheduleBuilder
from src.scheduling.cascade import CascadeAdjuster
from src.scheduling.config import SchedulingConfig
from src.scheduling.service import ScheduleEvaluationService

logger: structlog.stdlib.BoundLogger = structlog.get_logger()


class LoggingApprovalNotifier:
    """Notification collaborator that records approval requests in the log.

    Stands in until an outbound notification service is wired up.
    """

    def request(self, approval: HighValueApproval, approver_id: str) -> None:
        logger.info(
            "approval_requested",
            approval_id=str(approval.approval_id),
            shipment_id=approval.shipment_id,
            approver_id=approver_id,
            declared_value=approval.declared_value,
        )


# ---------------------------------------------------------------------------
# In-memory state (replaced by a persistent register in production)
# ---------------------------------------------------------------------------

_config = SchedulingConfig.from_settings(get_settings())
_gate = ApprovalGate(notifier=LoggingApprovalNotifier(), config=_config)


def get_scheduling_config() -> SchedulingConfig:
    return _config


def get_approval_gate() -> ApprovalGate:
    return _gate


def get_schedule_builder(
    config: SchedulingConfig = Depends(get_scheduling_config),
) -> ScheduleBuilder:
    return ScheduleBuilder(config=config)


def get_cascade_adjuster(
    config: SchedulingConfig = Depends(get_scheduling_config),
) -> CascadeAdjuster:
    return CascadeAdjuster(config=config)


def get_evaluation_service(
    config: SchedulingConfig = Depends(get_scheduling_config),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> ScheduleEvaluationService:
    return ScheduleEvaluationService(config=config, approval_gate=gate)
