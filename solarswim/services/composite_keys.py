"""Identity keys for pricing rows and cells"""
from typing import Union

from solarswim.schemas.pricing import CellKey, PriceCell, PricingRow, RowKey


def row_key(item: Union[PriceCell, PricingRow, RowKey, CellKey]) -> RowKey:
    """
    Row identity (plan name, role, age group) of a cell, row or key.

    Identifiers are compared exactly as given: no trimming, no case folding.
    """
    if isinstance(item, CellKey):
        return item.row
    if isinstance(item, RowKey):
        return item
    return RowKey(item.plan_name, item.role, item.age_group_id)


def cell_key(cell: Union[PriceCell, CellKey]) -> CellKey:
    """Cell identity (row identity plus subscription term)"""
    if isinstance(cell, CellKey):
        return cell
    return CellKey(cell.plan_name, cell.role, cell.age_group_id, cell.subscription_term_id)


def same_row(a, b) -> bool:
    return row_key(a) == row_key(b)


def same_cell(a, b) -> bool:
    return cell_key(a) == cell_key(b)
