"""Base plan pricing matrix: cell list, grid projections and row grouping"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence

from solarswim.exceptions import PricingValidationError
from solarswim.schemas.catalog import AgeGroup
from solarswim.schemas.pricing import (
    ROLE_RANK,
    CellKey,
    PriceCell,
    PricingGrid,
    PricingRole,
    PricingRow,
    RowKey,
)
from solarswim.services.composite_keys import cell_key, row_key
from solarswim.services.optimistic_store import OptimisticStore, ReplaceRecordMutation

logger = logging.getLogger(__name__)


# ============================================================================
# GRID PROJECTIONS
# ============================================================================

def parse_grid_price(value: Any) -> Optional[Decimal]:
    """
    Price typed into a grid cell, or None when the cell holds no price.

    Blank, non-numeric, negative and non-finite input all mean "no price";
    nothing is coerced to zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not number.is_finite() or number < 0:
        return None
    return number


def to_grid(cells: Iterable[PriceCell], plan_name: str, role: PricingRole) -> PricingGrid:
    """Project the cells of one plan/role into age group -> term -> price"""
    grid: PricingGrid = {}
    for cell in cells:
        if cell.plan_name != plan_name or cell.role != role:
            continue
        if cell.price is None:
            continue
        grid.setdefault(cell.age_group_id, {})[cell.subscription_term_id] = cell.price
    return grid


def from_grid(
    grid: PricingGrid,
    plan_name: str,
    role: PricingRole,
    location_id: Optional[str] = None
) -> List[PriceCell]:
    """Cells for every grid entry holding a valid price; blank entries are omitted"""
    cells = []
    for age_group_id, terms in grid.items():
        for subscription_term_id, value in (terms or {}).items():
            price = parse_grid_price(value)
            if price is None:
                logger.debug(f"Skipping blank price for {plan_name}/{age_group_id}/{subscription_term_id}: {value!r}")
                continue
            cells.append(PriceCell(
                location_id=location_id,
                plan_name=plan_name,
                role=role,
                age_group_id=age_group_id,
                subscription_term_id=subscription_term_id,
                price=price,
            ))
    return cells


# ============================================================================
# ROW GROUPING
# ============================================================================

def list_rows_grouped_by_plan(
    cells: Iterable[PriceCell],
    age_groups: Optional[Sequence[AgeGroup]] = None
) -> Dict[str, List[PricingRow]]:
    """
    Rows grouped by plan, in display order.

    Plans sort by name, roles PRIMARY before ADD_ON, then age groups by
    minimum age. Age groups without a minimum age (or missing from the
    catalog) follow, ordered by name. Cells without a price are left out,
    so a row whose terms are all blank does not appear.
    """
    groups_by_id = {group.age_group_id: group for group in age_groups or []}

    rows: Dict[RowKey, PricingRow] = {}
    for cell in cells:
        if cell.price is None:
            continue
        key = row_key(cell)
        row = rows.get(key)
        if row is None:
            group = groups_by_id.get(cell.age_group_id)
            row = PricingRow(
                plan_name=cell.plan_name,
                role=cell.role,
                age_group_id=cell.age_group_id,
                age_group_name=group.name if group else cell.age_group_name,
                cells=[],
            )
            rows[key] = row
        row.cells.append(cell)

    def sort_key(row: PricingRow):
        group = groups_by_id.get(row.age_group_id)
        name = row.age_group_name or row.age_group_id
        if group is not None and group.min_age is not None:
            age_order = (0, group.min_age, name)
        else:
            age_order = (1, 0, name)
        return (row.plan_name, ROLE_RANK.get(row.role, len(ROLE_RANK)), age_order)

    grouped: Dict[str, List[PricingRow]] = {}
    for row in sorted(rows.values(), key=sort_key):
        grouped.setdefault(row.plan_name, []).append(row)
    return grouped


# ============================================================================
# MUTATIONS
# ============================================================================

class UpsertCellMutation(ReplaceRecordMutation):
    """Put a cell in place of the one with the same identity"""

    def __init__(self, cell: PriceCell):
        super().__init__(cell, cell_key)
        self.cell = cell


class ReclassifyRoleMutation:
    """Retag every cell of a row with a new role"""

    def __init__(self, row: RowKey, new_role: PricingRole):
        self.row = row
        self.new_role = new_role

    def apply_to(self, cells: List[PriceCell]) -> List[PriceCell]:
        return [
            cell.model_copy(update={"role": self.new_role}) if row_key(cell) == self.row else cell
            for cell in cells
        ]


# ============================================================================
# STORE
# ============================================================================

class PricingMatrixStore(OptimisticStore[PriceCell]):
    """Price cells of one location"""

    def __init__(
        self,
        location_id: str,
        cells: Optional[Sequence[PriceCell]] = None,
        age_groups: Optional[Sequence[AgeGroup]] = None
    ):
        self.location_id = location_id
        self.age_groups: List[AgeGroup] = list(age_groups or [])
        super().__init__(cells)

    def identity_of(self, item: PriceCell) -> Hashable:
        return cell_key(item)

    def surrogate_id_of(self, item: PriceCell) -> Optional[str]:
        return item.base_price_id

    @property
    def cells(self) -> List[PriceCell]:
        return self.items

    def find(self, key: CellKey) -> Optional[PriceCell]:
        for cell in self._items:
            if cell_key(cell) == key:
                return cell
        return None

    def cells_for_row(self, row: RowKey) -> List[PriceCell]:
        row = row_key(row)
        return [cell for cell in self._items if row_key(cell) == row]

    def grid(self, plan_name: str, role: PricingRole) -> PricingGrid:
        return to_grid(self._items, plan_name, role)

    def rows_by_plan(self) -> Dict[str, List[PricingRow]]:
        return list_rows_grouped_by_plan(self._items, self.age_groups)

    def prepare_upsert(self, cell: PriceCell) -> PriceCell:
        """
        Request for saving a cell.

        Carries the id of the cell already stored under the same identity
        (update), and no id otherwise (create). Identical prices are not
        filtered out.
        """
        missing = [
            label for label, value in (
                ("plan name", cell.plan_name),
                ("age group", cell.age_group_id),
                ("subscription term", cell.subscription_term_id),
            )
            if not value
        ]
        if missing:
            raise PricingValidationError(f"Missing required fields: {', '.join(missing)}")

        existing = self.find(cell_key(cell))
        return cell.model_copy(update={
            "base_price_id": existing.base_price_id if existing else None,
            "location_id": cell.location_id or self.location_id,
        })

    def prepare_reclassification(self, row: RowKey, new_role: PricingRole) -> List[PriceCell]:
        """
        Retagged copies of the row's cells, ready to upsert one by one.

        Empty when the role does not change. Refused when a retagged cell
        would land on a cell that already exists in the target row.
        """
        row = row_key(row)
        new_role = PricingRole(new_role)
        if not row.plan_name or not row.age_group_id:
            raise PricingValidationError("Missing required fields: plan name, age group")
        if row.role == new_role:
            return []

        retagged = []
        for cell in self.cells_for_row(row):
            moved = cell.model_copy(update={"role": new_role})
            clash = self.find(cell_key(moved))
            if clash is not None:
                raise PricingValidationError(
                    f"{row.plan_name} already has a {new_role.value} price for "
                    f"age group {row.age_group_id} and term {cell.subscription_term_id}"
                )
            retagged.append(moved)
        return retagged
