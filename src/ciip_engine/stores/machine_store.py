"""
Machine store: tenant/type lookups and status writes
"""

from typing import Dict, Iterable, NamedTuple, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ciip_engine.models.machine import Machine
from ciip_engine.models.plant import Plant


class MachineContext(NamedTuple):
    machine_id: UUID
    tenant_id: UUID
    machine_type: Optional[str]
    status: Optional[str]


class MachineStore:
    def __init__(self, session: Session):
        self.session = session

    def contexts(self, machine_ids: Iterable[UUID]) -> Dict[UUID, MachineContext]:
        """Tenant and machine type for each known machine with a plant"""
        ids = list(set(machine_ids))
        if not ids:
            return {}
        rows = self.session.execute(
            select(Machine.machine_id, Plant.tenant_id, Machine.machine_type, Machine.status)
            .join(Plant, Plant.plant_id == Machine.plant_id)
            .where(Machine.machine_id.in_(ids))
        ).all()
        return {row.machine_id: MachineContext(*row) for row in rows}

    def set_status(self, statuses: Dict[UUID, str]) -> int:
        """Overwrite machine status, one statement per distinct status value"""
        by_status: Dict[str, list] = {}
        for machine_id, status in statuses.items():
            by_status.setdefault(status, []).append(machine_id)

        updated = 0
        for status, machine_ids in by_status.items():
            result = self.session.execute(
                update(Machine)
                .where(Machine.machine_id.in_(machine_ids))
                .values(status=status)
                .execution_options(synchronize_session=False)
            )
            updated += result.rowcount or 0
        return updated
