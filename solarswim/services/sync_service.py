"""
Optimistic synchronization between the in-memory stores and the backend.

Every edit follows the same steps: snapshot the store, apply the change so
it shows at once, await the backend, then commit the server's version or
roll back to the snapshot. Nothing is retried automatically.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from solarswim.exceptions import BackendError, PartialBatchError
from solarswim.schemas.membership import (
    FeeType,
    MembershipCategory,
    MembershipProgram,
    MembershipService,
)
from solarswim.schemas.pricing import PriceCell, PricingGrid, PricingRole, RowKey
from solarswim.services.backend_client import BackendClient
from solarswim.services.bundled_service_resolver import new_bundled_service
from solarswim.services.composite_keys import row_key
from solarswim.services.eligibility_service import EligibilityService, new_program
from solarswim.services.membership_store import BundledServiceStore, MembershipProgramStore
from solarswim.services.optimistic_store import ReplaceRecordMutation
from solarswim.services.pricing_store import (
    PricingMatrixStore,
    ReclassifyRoleMutation,
    UpsertCellMutation,
    from_grid,
)

logger = logging.getLogger(__name__)


class PricingSyncService:
    """Saves base plan prices of one location"""

    def __init__(self, store: PricingMatrixStore, backend: BackendClient):
        self.store = store
        self.backend = backend

    async def refresh(self) -> List[PriceCell]:
        """Reload prices and the age group catalog used for ordering"""
        cells = await self.backend.list_price_cells(self.store.location_id)
        self.store.age_groups = await self.backend.list_age_groups()
        self.store.load(cells)
        logger.info(f"Loaded {len(cells)} base prices for location {self.store.location_id}")
        return self.store.cells

    async def save_cell(self, cell: PriceCell) -> PriceCell:
        """
        Upsert one price.

        Validation errors are raised before the store is touched. On a backend
        failure the store returns to its state just before this edit.
        """
        request = self.store.prepare_upsert(cell)
        snapshot = self.store.snapshot()
        self.store.apply(UpsertCellMutation(request))
        try:
            result = await self.backend.upsert_price_cell(request)
        except BackendError:
            self.store.rollback(snapshot)
            logger.warning(f"Rolled back price {request.key} after backend failure")
            raise
        self.store.commit(result)
        logger.info(f"Saved price {result.key} = {result.price}")
        return result

    async def save_grid(self, grid: PricingGrid, plan_name: str, role: PricingRole) -> List[PriceCell]:
        """
        Save every priced entry of an edited grid as its own upsert.

        Blank entries are skipped. Cells are saved one after another so each
        rollback only undoes its own edit; failures are reported together.
        """
        cells = from_grid(grid, plan_name, role, location_id=self.store.location_id)
        # validate everything before the first request
        requests = [self.store.prepare_upsert(cell) for cell in cells]

        saved, failed = [], []
        for request in requests:
            try:
                saved.append(await self.save_cell(request))
            except BackendError:
                failed.append(request)
        if failed:
            raise PartialBatchError(
                f"Failed to save {len(failed)} of {len(requests)} prices",
                succeeded=saved,
                failed=failed
            )
        return saved

    async def reclassify_role(self, row: RowKey, new_role: PricingRole) -> List[PriceCell]:
        """
        Move every cell of a row to another role.

        The cells are upserted concurrently as independent calls. If any call
        fails the whole row is shown with its previous role again, even though
        the calls that went through have already been persisted; the error
        lists both sides so the caller can tell the user and refresh.
        """
        row = row_key(row)
        new_role = PricingRole(new_role)
        retagged = self.store.prepare_reclassification(row, new_role)
        if not retagged:
            return []

        snapshot = self.store.snapshot()
        self.store.apply(ReclassifyRoleMutation(row, new_role))

        results = await asyncio.gather(
            *(self.backend.upsert_price_cell(cell) for cell in retagged),
            return_exceptions=True
        )

        succeeded, failed, unexpected = [], [], None
        for cell, result in zip(retagged, results):
            if isinstance(result, BackendError):
                failed.append(cell)
            elif isinstance(result, BaseException):
                failed.append(cell)
                unexpected = unexpected or result
            else:
                succeeded.append(result)

        if failed:
            self.store.rollback(snapshot)
            logger.error(
                f"Role change of {row.plan_name}/{row.age_group_id} to {new_role.value} failed for "
                f"{len(failed)} of {len(retagged)} prices, reverted"
            )
            if unexpected is not None:
                raise unexpected
            raise PartialBatchError(
                f"Failed to update role for {len(failed)} of {len(retagged)} prices",
                succeeded=succeeded,
                failed=failed
            )

        for result in succeeded:
            self.store.commit(result)
        logger.info(f"Role of {row.plan_name}/{row.age_group_id} updated to {new_role.value}")
        return succeeded


class MembershipSyncService:
    """Saves membership programs and bundled services of one location"""

    def __init__(
        self,
        programs: MembershipProgramStore,
        services: BundledServiceStore,
        backend: BackendClient
    ):
        self.programs = programs
        self.services = services
        self.backend = backend

    @property
    def location_id(self) -> str:
        return self.programs.location_id

    async def refresh(self) -> None:
        programs, base_plan = await asyncio.gather(
            self.backend.list_membership_programs(self.location_id),
            self.backend.list_base_plan_services(self.location_id),
        )
        self.programs.load(programs)
        records = list(base_plan)
        for program in programs:
            records.extend(
                service.model_copy(update={"membership_program_id": program.membership_program_id})
                for service in program.services
            )
        self.services.load(records)
        logger.info(
            f"Loaded {len(programs)} membership programs and {len(records)} bundled services "
            f"for location {self.location_id}"
        )

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    async def create_program(self, name: str) -> MembershipProgram:
        """New program with the default Individual category"""
        result = await self.backend.upsert_membership_program(new_program(self.location_id, name))
        self.programs.commit(result)
        logger.info(f"Created membership program {result.name}")
        return result

    async def save_program(self, updated: MembershipProgram) -> MembershipProgram:
        """Replace a program (categories, fees and rules) as a whole"""
        updated = updated.model_copy(update={
            "services": self.services.for_program(updated.membership_program_id)
        }) if updated.membership_program_id else updated

        snapshot = self.programs.snapshot()
        self.programs.apply(ReplaceRecordMutation(updated, self.programs.identity_of))
        try:
            result = await self.backend.upsert_membership_program(updated)
        except BackendError:
            self.programs.rollback(snapshot)
            logger.warning(f"Rolled back membership program {updated.name} after backend failure")
            raise
        self.programs.commit(result)
        return result

    async def save_category(self, program_id: str, category: MembershipCategory) -> MembershipProgram:
        program = self.programs.require(program_id)
        return await self.save_program(EligibilityService.upsert_category(program, category))

    async def set_rule_bound(
        self,
        program_id: str,
        category_id: str,
        rule_index: int,
        field: str,
        raw_value: Any
    ) -> MembershipProgram:
        program = self.programs.require(program_id)
        updated = EligibilityService.set_rule_bound(program, category_id, rule_index, field, raw_value)
        return await self.save_program(updated)

    async def set_fee_amount(self, program_id: str, category_id: str, fee_type: FeeType, amount) -> MembershipProgram:
        program = self.programs.require(program_id)
        updated = EligibilityService.set_fee_amount(program, category_id, fee_type, amount)
        return await self.save_program(updated)

    # ------------------------------------------------------------------
    # Bundled services
    # ------------------------------------------------------------------

    async def add_bundled_service(self, service_id: str, program_id: Optional[str] = None) -> List[MembershipService]:
        """Bundle a catalog service with a program (or the base plan) and reload the list"""
        record = new_bundled_service(service_id, program_id, location_id=self.location_id)
        await self.backend.upsert_membership_services([record])
        await self.refresh()
        return self.services.for_program(program_id)

    async def update_bundled_service(self, membership_service_id: str, updates: Dict[str, Any]) -> MembershipService:
        """
        Resubmit a bundled service with some fields changed.

        Turning `is_included` on keeps any stored discount; it is ignored
        while the service is included.
        """
        record = self.services.require(membership_service_id)
        updated = record.model_copy(update=updates)

        snapshot = self.services.snapshot()
        self.services.apply(ReplaceRecordMutation(updated, self.services.identity_of))
        try:
            saved = await self.backend.upsert_membership_services([updated])
        except BackendError:
            self.services.rollback(snapshot)
            logger.warning(f"Rolled back bundled service {membership_service_id} after backend failure")
            raise
        if saved:
            return self.services.commit(saved[0])
        return updated

    async def remove_bundled_service(self, membership_service_id: str) -> MembershipService:
        """Bundled services are deactivated, never deleted"""
        return await self.update_bundled_service(membership_service_id, {"is_active": False})

