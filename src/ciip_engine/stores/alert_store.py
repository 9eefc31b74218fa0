"""
Alert store: alert events, their lifecycle status and acknowledgements
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Set
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ciip_engine.core.timeutils import utcnow
from ciip_engine.models.alert import AlertAcknowledgement, AlertEvent, AlertSeverity, AlertStatus
from ciip_engine.models.machine import Machine
from ciip_engine.models.plant import Plant
from ciip_engine.schemas.alert import AlertSummary


class AlertStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, alert_id: UUID) -> Optional[AlertEvent]:
        return self.session.get(AlertEvent, alert_id)

    def find_active(self, machine_id: UUID, parameter: str) -> Optional[AlertEvent]:
        return self.session.scalars(
            select(AlertEvent)
            .where(
                AlertEvent.machine_id == machine_id,
                AlertEvent.parameter == parameter,
                AlertEvent.alert_status == AlertStatus.ACTIVE.value,
            )
            .limit(1)
        ).first()

    def create(self, alert: AlertEvent) -> AlertEvent:
        self.session.add(alert)
        # Flush so the open-alert unique index is checked inside the phase
        self.session.flush()
        return alert

    def set_status(self, alert_id: UUID, status: AlertStatus, expected: Iterable[AlertStatus]) -> bool:
        """Compare-and-set: only moves the alert if its current status is expected"""
        result = self.session.execute(
            update(AlertEvent)
            .where(
                AlertEvent.alert_id == alert_id,
                AlertEvent.alert_status.in_([s.value for s in expected]),
            )
            .values(alert_status=status.value)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)

    def update_severity(
        self,
        alert_id: UUID,
        severity: AlertSeverity,
        actual_value: Decimal,
        threshold_id: Optional[UUID],
    ) -> bool:
        result = self.session.execute(
            update(AlertEvent)
            .where(
                AlertEvent.alert_id == alert_id,
                AlertEvent.alert_status == AlertStatus.ACTIVE.value,
            )
            .values(severity=severity.value, actual_value=actual_value, threshold_id=threshold_id)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)

    def acknowledged_alert_ids(self, unreconciled_only: bool = True) -> Set[UUID]:
        """Alert ids with an acknowledgement, read fresh on every call"""
        stmt = select(AlertAcknowledgement.alert_id)
        if unreconciled_only:
            stmt = stmt.join(AlertEvent, AlertEvent.alert_id == AlertAcknowledgement.alert_id).where(
                AlertEvent.alert_status != AlertStatus.ACKNOWLEDGED.value
            )
        return set(self.session.scalars(stmt).all())

    def mark_acknowledged(self, alert_ids: Set[UUID]) -> int:
        if not alert_ids:
            return 0
        result = self.session.execute(
            update(AlertEvent)
            .where(
                AlertEvent.alert_id.in_(list(alert_ids)),
                AlertEvent.alert_status.in_([AlertStatus.ACTIVE.value, AlertStatus.PENDING.value]),
            )
            .values(alert_status=AlertStatus.ACKNOWLEDGED.value)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def has_acknowledgement(self, alert_id: UUID) -> bool:
        return self.session.scalar(
            select(AlertAcknowledgement.acknowledgement_id).where(AlertAcknowledgement.alert_id == alert_id)
        ) is not None

    def add_acknowledgement(
        self,
        alert_id: UUID,
        technician_name: str,
        reason: str,
        action_taken: Optional[str] = None,
        acknowledged_at: Optional[datetime] = None,
    ) -> AlertAcknowledgement:
        ack = AlertAcknowledgement(
            alert_id=alert_id,
            technician_name=technician_name,
            reason=reason,
            action_taken=action_taken,
            acknowledged_at=acknowledged_at or utcnow(),
        )
        self.session.add(ack)
        self.session.flush()
        return ack

    def summary(self, tenant_id: UUID) -> AlertSummary:
        """Critical, warning and acknowledged counts for a tenant"""
        tenant_alerts = (
            select(AlertEvent)
            .join(Machine, Machine.machine_id == AlertEvent.machine_id)
            .join(Plant, Plant.plant_id == Machine.plant_id)
            .where(Plant.tenant_id == tenant_id)
            .subquery()
        )
        by_severity = dict(
            self.session.execute(
                select(tenant_alerts.c.severity, func.count()).group_by(tenant_alerts.c.severity)
            ).all()
        )
        acknowledged = self.session.scalar(
            select(func.count())
            .select_from(AlertAcknowledgement)
            .join(tenant_alerts, tenant_alerts.c.alert_id == AlertAcknowledgement.alert_id)
        )
        return AlertSummary(
            critical=by_severity.get(AlertSeverity.CRITICAL.value, 0),
            warning=by_severity.get(AlertSeverity.WARNING.value, 0),
            acknowledged=acknowledged or 0,
        )
