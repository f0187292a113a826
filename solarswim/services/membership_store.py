"""Cached membership programs and bundled service records of a location"""
from typing import Hashable, List, Optional, Sequence

from solarswim.exceptions import NotFoundError
from solarswim.schemas.membership import MembershipProgram, MembershipService
from solarswim.services.optimistic_store import OptimisticStore


class MembershipProgramStore(OptimisticStore[MembershipProgram]):
    """Programs are saved as a whole, so a program is the unit of rollback"""

    def __init__(self, location_id: str, programs: Optional[Sequence[MembershipProgram]] = None):
        self.location_id = location_id
        super().__init__(programs)

    def identity_of(self, item: MembershipProgram) -> Hashable:
        return item.membership_program_id or ("new", item.name)

    def surrogate_id_of(self, item: MembershipProgram) -> Optional[str]:
        return item.membership_program_id

    @property
    def programs(self) -> List[MembershipProgram]:
        return self.items

    def get(self, program_id: str) -> Optional[MembershipProgram]:
        for program in self._items:
            if program.membership_program_id == program_id:
                return program
        return None

    def require(self, program_id: str) -> MembershipProgram:
        program = self.get(program_id)
        if program is None:
            raise NotFoundError(f"Membership program {program_id} not found")
        return program


class BundledServiceStore(OptimisticStore[MembershipService]):
    """Bundled services of the base plan and of every program of the location"""

    def __init__(self, location_id: str, records: Optional[Sequence[MembershipService]] = None):
        self.location_id = location_id
        super().__init__(records)

    def identity_of(self, item: MembershipService) -> Hashable:
        return item.membership_service_id or (item.service_id, item.membership_program_id)

    def surrogate_id_of(self, item: MembershipService) -> Optional[str]:
        return item.membership_service_id

    @property
    def records(self) -> List[MembershipService]:
        return self.items

    def for_program(self, program_id: Optional[str]) -> List[MembershipService]:
        """Records of a program; None selects the base plan"""
        return [record for record in self._items if record.membership_program_id == program_id]

    def require(self, membership_service_id: str) -> MembershipService:
        for record in self._items:
            if record.membership_service_id == membership_service_id:
                return record
        raise NotFoundError(f"Bundled service {membership_service_id} not found")
