"""
Threshold resolver with three-tier fallback.

For a tenant, machine type and parameter the effective rule is the newest
version (as of an optional effective time) found at the first matching level:

  1. tenant + machine type
  2. tenant-wide (machine_type is NULL)
  3. global default (tenant_id and machine_type are NULL), which must exist

Candidates are loaded once per tenant and filtered in memory, so a resolver
instance should live no longer than one pipeline tick.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

import structlog

from ciip_engine.core.constants import THRESHOLD_PARAMETERS
from ciip_engine.core.exceptions import ThresholdConfigurationError
from ciip_engine.core.timeutils import to_naive_utc
from ciip_engine.models.threshold import AlertThreshold
from ciip_engine.schemas.threshold import BindingLevel, ResolvedThreshold, ThresholdConfig
from ciip_engine.stores.threshold_store import ThresholdStore

logger = structlog.get_logger(__name__)


class ThresholdResolver:
    """Resolves effective warning/critical limits per parameter"""

    def __init__(self, store: ThresholdStore):
        self.store = store
        self._candidates: Dict[Optional[UUID], List[AlertThreshold]] = {}
        self._reported_missing = set()

    def _candidates_for(self, tenant_id: Optional[UUID]) -> List[AlertThreshold]:
        if tenant_id not in self._candidates:
            self._candidates[tenant_id] = self.store.fetch_candidates(tenant_id)
        return self._candidates[tenant_id]

    def _rows(self, tenant_id: Optional[UUID], effective_time: Optional[datetime]) -> List[AlertThreshold]:
        rows = self._candidates_for(tenant_id)
        if effective_time is None:
            return rows
        effective_time = to_naive_utc(effective_time)
        return [row for row in rows if row.effective_at <= effective_time]

    @staticmethod
    def _pick(rows: List[AlertThreshold], tenant_id, machine_type, parameter: str) -> ResolvedThreshold:
        levels = []
        if tenant_id is not None:
            if machine_type is not None:
                levels.append((BindingLevel.MACHINE_TYPE, tenant_id, machine_type))
            levels.append((BindingLevel.TENANT, tenant_id, None))
        levels.append((BindingLevel.GLOBAL, None, None))

        for level, level_tenant, level_type in levels:
            for row in rows:
                if row.parameter == parameter and row.tenant_id == level_tenant and row.machine_type == level_type:
                    return ResolvedThreshold(
                        parameter=parameter,
                        warning_value=row.warning_value,
                        critical_value=row.critical_value,
                        threshold_id=row.threshold_id,
                        binding_level=level,
                        effective_at=row.effective_at,
                    )

        raise ThresholdConfigurationError(parameter, tenant_id=tenant_id, machine_type=machine_type)

    def resolve(
        self,
        tenant_id: Optional[UUID],
        machine_type: Optional[str],
        parameter: str,
        effective_time: Optional[datetime] = None,
    ) -> ResolvedThreshold:
        """Resolve one parameter; raises ThresholdConfigurationError without a global rule"""
        return self._pick(self._rows(tenant_id, effective_time), tenant_id, machine_type, parameter)

    def resolve_all(
        self,
        tenant_id: Optional[UUID],
        machine_type: Optional[str],
        effective_time: Optional[datetime] = None,
        parameters: Optional[List[str]] = None,
    ) -> ThresholdConfig:
        """Batch-resolve every monitored parameter.

        Parameters without any applicable rule are logged and left out.
        """
        rows = self._rows(tenant_id, effective_time)
        config = ThresholdConfig(tenant_id=tenant_id, machine_type=machine_type, effective_time=effective_time)
        for parameter in parameters or THRESHOLD_PARAMETERS:
            try:
                config.thresholds[parameter] = self._pick(rows, tenant_id, machine_type, parameter)
            except ThresholdConfigurationError as e:
                key = (tenant_id, machine_type, parameter)
                if key in self._reported_missing:
                    continue
                self._reported_missing.add(key)
                logger.error(
                    "Threshold configuration missing",
                    parameter=parameter,
                    tenant_id=str(tenant_id) if tenant_id else None,
                    machine_type=machine_type,
                    effective_time=effective_time.isoformat() if effective_time else None,
                    error=str(e),
                )
        return config
