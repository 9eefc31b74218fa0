"""
Acknowledgement workflow used by technicians.

Only the acknowledgement row is written here. The alert moves to
ACKNOWLEDGED when the alert evaluator reconciles on its next tick.
"""

from uuid import UUID

import structlog
from sqlalchemy.orm import Session

from ciip_engine.core.exceptions import AcknowledgementError, AlertNotFoundError
from ciip_engine.models.alert import AlertAcknowledgement, AlertStatus
from ciip_engine.schemas.alert import AcknowledgementRequest, AlertSummary
from ciip_engine.stores.alert_store import AlertStore

logger = structlog.get_logger(__name__)


def acknowledge(session: Session, request: AcknowledgementRequest) -> AlertAcknowledgement:
    """Record a technician acknowledgement for an existing alert"""
    alerts = AlertStore(session)
    alert = alerts.get(request.alert_id)
    if alert is None:
        raise AlertNotFoundError(f"Alert {request.alert_id} not found")
    if alert.alert_status == AlertStatus.ACKNOWLEDGED.value:
        raise AcknowledgementError(f"Alert {request.alert_id} is already acknowledged")
    if alerts.has_acknowledgement(request.alert_id):
        raise AcknowledgementError(f"Alert {request.alert_id} already has an acknowledgement")

    ack = alerts.add_acknowledgement(
        alert_id=request.alert_id,
        technician_name=request.technician_name,
        reason=request.reason,
        action_taken=request.action_taken,
    )
    logger.info(
        "Alert acknowledged",
        alert_id=str(request.alert_id),
        technician=request.technician_name,
        status=alert.alert_status,
    )
    return ack


def alert_summary(session: Session, tenant_id: UUID) -> AlertSummary:
    return AlertStore(session).summary(tenant_id)
