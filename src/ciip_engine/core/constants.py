"""
Monitored parameters, operating-point constants and seeded threshold defaults
"""

from decimal import Decimal
from enum import Enum


class Parameter(str, Enum):
    VIBRATION = "Vibration"
    CURRENT = "Current"
    RPM_LOW = "RPM_LOW"
    RPM_HIGH = "RPM_HIGH"
    TEMPERATURE = "Temperature"
    LOAD_HIGH = "LOAD_HIGH"
    LOAD_LOW = "LOAD_LOW"
    MACHINE_STATUS = "MachineStatus"


# Parameters resolved through the threshold tables
THRESHOLD_PARAMETERS = [
    Parameter.VIBRATION.value,
    Parameter.CURRENT.value,
    Parameter.RPM_LOW.value,
    Parameter.RPM_HIGH.value,
    Parameter.TEMPERATURE.value,
    Parameter.LOAD_HIGH.value,
    Parameter.LOAD_LOW.value,
]

# These alert when the value falls below the band
LOW_SIDE_PARAMETERS = {Parameter.RPM_LOW.value, Parameter.LOAD_LOW.value}

RUNNING_RPM_THRESHOLD = 200

# Global fallback rows seeded per parameter: (warning, critical)
GLOBAL_DEFAULT_THRESHOLDS = {
    Parameter.VIBRATION.value: (Decimal("5"), Decimal("8")),
    Parameter.CURRENT.value: (Decimal("40"), Decimal("50")),
    Parameter.RPM_LOW.value: (Decimal("300"), Decimal("200")),
    Parameter.RPM_HIGH.value: (Decimal("1400"), Decimal("1500")),
    Parameter.TEMPERATURE.value: (Decimal("70"), Decimal("85")),
    Parameter.LOAD_HIGH.value: (Decimal("90"), Decimal("110")),
    Parameter.LOAD_LOW.value: (Decimal("20"), Decimal("10")),
}

# Health derivation
HEALTH_SCORE_MAX = 100
AVG_LOAD_MAX = 150
VIBRATION_PENALTY = 3.0
LOAD_PENALTY = 0.1

LOAD_WEIGHTS = {
    "current": 0.6,
    "rpm": 0.2,
    "power_factor": 0.2,
}
