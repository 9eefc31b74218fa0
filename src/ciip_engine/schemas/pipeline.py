"""
Pipeline tick report schemas
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class PhaseResult(BaseModel):
    """Outcome of one phase within a tick"""
    phase: str
    succeeded: bool
    processed: int = 0
    error: Optional[str] = None
    duration_ms: float = 0.0


class TickReport(BaseModel):
    """Outcome of one full pipeline tick"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    phases: List[PhaseResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(p.succeeded for p in self.phases)

    def phase(self, name: str) -> Optional[PhaseResult]:
        for result in self.phases:
            if result.phase == name:
                return result
        return None
