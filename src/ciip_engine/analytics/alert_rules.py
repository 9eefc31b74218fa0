"""
Alert condition rules.

High-side parameters alert when value >= warning (CRITICAL when >= critical).
Low-side parameters (RPM_LOW, LOAD_LOW) alert when value < warning
(CRITICAL when < critical). MachineStatus alerts whenever the machine is IDLE.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ciip_engine.core.constants import LOW_SIDE_PARAMETERS, RUNNING_RPM_THRESHOLD, Parameter
from ciip_engine.models.alert import AlertSeverity
from ciip_engine.models.machine import MachineStatus
from ciip_engine.schemas.threshold import ResolvedThreshold


@dataclass(frozen=True)
class Evaluation:
    """Result of checking one parameter value against its band."""
    parameter: str
    value: float
    severity: AlertSeverity | None
    threshold: ResolvedThreshold | None = None

    @property
    def triggered(self) -> bool:
        return self.severity is not None


def classify_status(rpm: float | None, running_threshold: float = RUNNING_RPM_THRESHOLD) -> MachineStatus:
    """RUNNING strictly above the threshold, IDLE otherwise (absent rpm is 0)."""
    return MachineStatus.RUNNING if (rpm or 0.0) > running_threshold else MachineStatus.IDLE


def evaluate_threshold(parameter: str, value: float, band: ResolvedThreshold) -> Evaluation:
    warning = Decimal(str(band.warning_value))
    critical = Decimal(str(band.critical_value))
    reading = Decimal(str(value))

    if parameter in LOW_SIDE_PARAMETERS:
        if reading < critical:
            severity = AlertSeverity.CRITICAL
        elif reading < warning:
            severity = AlertSeverity.WARNING
        else:
            severity = None
    else:
        if reading >= critical:
            severity = AlertSeverity.CRITICAL
        elif reading >= warning:
            severity = AlertSeverity.WARNING
        else:
            severity = None

    return Evaluation(parameter=parameter, value=value, severity=severity, threshold=band)


def evaluate_machine_status(rpm: float | None, running_threshold: float = RUNNING_RPM_THRESHOLD) -> Evaluation:
    status = classify_status(rpm, running_threshold)
    severity = AlertSeverity.WARNING if status == MachineStatus.IDLE else None
    return Evaluation(parameter=Parameter.MACHINE_STATUS.value, value=rpm or 0.0, severity=severity)
