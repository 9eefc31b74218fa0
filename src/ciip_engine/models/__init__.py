# Models package
from .plant import Plant
from .machine import Machine, MachineStatus
from .telemetry import (
    TelemetryIngestion,
    TelemetryMechanical,
    TelemetryElectrical,
    TelemetryEnvironmental,
    TelemetryEnergy,
)
from .health import MachineHealth
from .threshold import AlertThreshold
from .alert import AlertEvent, AlertAcknowledgement, AlertSeverity, AlertStatus
from .watermark import HealthWatermark, ProcessingWatermark

__all__ = [
    'Plant', 'Machine', 'MachineStatus',
    'TelemetryIngestion', 'TelemetryMechanical', 'TelemetryElectrical',
    'TelemetryEnvironmental', 'TelemetryEnergy',
    'MachineHealth', 'AlertThreshold',
    'AlertEvent', 'AlertAcknowledgement', 'AlertSeverity', 'AlertStatus',
    'HealthWatermark', 'ProcessingWatermark',
]
