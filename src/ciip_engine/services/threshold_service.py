"""
Threshold administration: rule versions and global defaults
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy.orm import Session

from ciip_engine.core.constants import GLOBAL_DEFAULT_THRESHOLDS, LOW_SIDE_PARAMETERS, THRESHOLD_PARAMETERS
from ciip_engine.core.exceptions import PipelineError
from ciip_engine.core.timeutils import utcnow
from ciip_engine.models.threshold import AlertThreshold
from ciip_engine.schemas.threshold import ThresholdInput
from ciip_engine.stores.threshold_store import ThresholdStore

logger = structlog.get_logger(__name__)


def _validate(parameter: str, warning_value: Decimal, critical_value: Decimal):
    if parameter not in THRESHOLD_PARAMETERS:
        raise PipelineError(f"Unknown threshold parameter: {parameter}")
    if parameter in LOW_SIDE_PARAMETERS:
        if critical_value > warning_value:
            raise PipelineError(f"{parameter}: critical limit must not be above the warning limit")
    elif critical_value < warning_value:
        raise PipelineError(f"{parameter}: critical limit must not be below the warning limit")


def add_threshold(session: Session, data: ThresholdInput, created_at: Optional[datetime] = None) -> AlertThreshold:
    """Insert a new rule version; it applies to samples from created_at on"""
    if data.machine_type is not None and data.tenant_id is None:
        raise PipelineError("A machine-type threshold needs a tenant")
    _validate(data.parameter, data.warning_value, data.critical_value)

    threshold = ThresholdStore(session).add(
        parameter=data.parameter,
        warning_value=data.warning_value,
        critical_value=data.critical_value,
        tenant_id=data.tenant_id,
        machine_type=data.machine_type,
        created_at=created_at,
    )
    logger.info(
        "Threshold added",
        threshold_id=str(threshold.threshold_id),
        parameter=data.parameter,
        tenant_id=str(data.tenant_id) if data.tenant_id else None,
        machine_type=data.machine_type,
    )
    return threshold


def update_threshold(
    session: Session,
    threshold_id: UUID,
    warning_value: Decimal,
    critical_value: Decimal,
    updated_at: Optional[datetime] = None,
) -> AlertThreshold:
    """Change limits in place; resolution uses the new values from updated_at on"""
    threshold = session.get(AlertThreshold, threshold_id)
    if threshold is None:
        raise PipelineError(f"Threshold {threshold_id} not found")
    _validate(threshold.parameter, warning_value, critical_value)

    threshold.warning_value = warning_value
    threshold.critical_value = critical_value
    threshold.updated_at = updated_at or utcnow()
    session.flush()
    logger.info("Threshold updated", threshold_id=str(threshold_id), parameter=threshold.parameter)
    return threshold


def seed_global_thresholds(session: Session, created_at: Optional[datetime] = None) -> List[AlertThreshold]:
    """Create the global default for every parameter that lacks one"""
    store = ThresholdStore(session)
    created = []
    for parameter, (warning_value, critical_value) in GLOBAL_DEFAULT_THRESHOLDS.items():
        if store.has_global(parameter):
            continue
        created.append(store.add(parameter, warning_value, critical_value, created_at=created_at))

    logger.info("Global thresholds seeded", created=len(created))
    return created
