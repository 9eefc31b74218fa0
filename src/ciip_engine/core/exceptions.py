"""
Error taxonomy for the telemetry pipeline
"""


class PipelineError(Exception):
    """Base class for telemetry pipeline errors"""


class ThresholdConfigurationError(PipelineError):
    """No global fallback threshold exists for a parameter"""

    def __init__(self, parameter: str, tenant_id=None, machine_type=None):
        self.parameter = parameter
        self.tenant_id = tenant_id
        self.machine_type = machine_type
        super().__init__(f"No global default threshold configured for parameter '{parameter}'")


class MalformedReadingError(PipelineError, ValueError):
    """A telemetry value could not be interpreted as a finite number"""


class AcknowledgementError(PipelineError):
    """An acknowledgement was rejected"""


class AlertNotFoundError(AcknowledgementError):
    """The alert being acknowledged does not exist"""
