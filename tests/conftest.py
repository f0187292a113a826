"""
Pytest configuration and fixtures
"""
from decimal import Decimal
from typing import List, Optional, Set

import pytest

from solarswim.exceptions import BackendError
from solarswim.schemas.catalog import AgeGroup, CatalogService
from solarswim.schemas.membership import MembershipProgram, MembershipService
from solarswim.schemas.pricing import PriceCell, PricingRole

LOCATION_ID = "loc-1"


class FakeBackend:
    """In-memory stand-in for BackendClient with scriptable failures"""

    def __init__(self):
        self.cells: List[PriceCell] = []
        self.programs: List[MembershipProgram] = []
        self.base_plan: List[MembershipService] = []
        self.catalog: List[CatalogService] = []
        self.age_groups: List[AgeGroup] = []
        self.upserted_cells: List[PriceCell] = []
        self.upserted_programs: List[MembershipProgram] = []
        self.upserted_services: List[MembershipService] = []
        # 1-based call numbers of upsert_price_cell that should fail
        self.fail_cell_calls: Set[int] = set()
        self.fail_programs = False
        self.fail_services = False
        self._next_id = 100

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    async def list_price_cells(self, location_id: str) -> List[PriceCell]:
        return [cell.model_copy(deep=True) for cell in self.cells]

    async def upsert_price_cell(self, cell: PriceCell) -> PriceCell:
        self.upserted_cells.append(cell)
        if len(self.upserted_cells) in self.fail_cell_calls:
            raise BackendError("Failed to save price", status_code=500)
        return cell.model_copy(update={
            "base_price_id": cell.base_price_id or self._new_id("bp")
        })

    async def list_membership_programs(self, location_id: str) -> List[MembershipProgram]:
        return [program.model_copy(deep=True) for program in self.programs]

    async def upsert_membership_program(self, program: MembershipProgram) -> MembershipProgram:
        self.upserted_programs.append(program)
        if self.fail_programs:
            raise BackendError("Failed to save membership", status_code=500)
        return program.model_copy(update={
            "membership_program_id": program.membership_program_id or self._new_id("mp")
        })

    async def list_base_plan_services(self, location_id: str) -> List[MembershipService]:
        return [record.model_copy(deep=True) for record in self.base_plan]

    async def upsert_membership_services(self, records) -> Optional[List[MembershipService]]:
        self.upserted_services.extend(records)
        if self.fail_services:
            raise BackendError("Failed to save services", status_code=500)
        saved = []
        for record in records:
            saved.append(record.model_copy(update={
                "membership_service_id": record.membership_service_id or self._new_id("ms")
            }))
        for record in saved:
            if record.membership_program_id is None:
                self.base_plan = [
                    existing for existing in self.base_plan
                    if existing.membership_service_id != record.membership_service_id
                ] + [record]
        return saved

    async def list_services(self, location_id: str) -> List[CatalogService]:
        return list(self.catalog)

    async def list_age_groups(self) -> List[AgeGroup]:
        return list(self.age_groups)

    async def list_subscription_terms(self, location_id: str):
        return []


def make_cell(
    plan_name: str = "Gold",
    role: PricingRole = PricingRole.PRIMARY,
    age_group_id: str = "ag-adult",
    subscription_term_id: str = "term-monthly",
    price="50",
    base_price_id: Optional[str] = None
) -> PriceCell:
    return PriceCell(
        base_price_id=base_price_id,
        location_id=LOCATION_ID,
        plan_name=plan_name,
        role=role,
        age_group_id=age_group_id,
        subscription_term_id=subscription_term_id,
        price=Decimal(price) if price is not None else None,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Fresh fake backend for each test"""
    return FakeBackend()


@pytest.fixture
def age_groups() -> List[AgeGroup]:
    return [
        AgeGroup(age_group_id="ag-adult", name="Adult", min_age=18),
        AgeGroup(age_group_id="ag-child", name="Child", min_age=3, max_age=12),
        AgeGroup(age_group_id="ag-family", name="Family"),
    ]
