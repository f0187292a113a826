"""Base plan pricing endpoints"""
from fastapi import APIRouter, Depends, Query

from solarswim.dependencies.backend import get_pricing_sync
from solarswim.schemas.pricing import (
    PriceCell,
    PriceCellRequest,
    PricingRole,
    PricingRowsResponse,
    ReclassifyRoleRequest,
    RowKey,
    SaveGridRequest,
)
from solarswim.services.sync_service import PricingSyncService

router = APIRouter()


@router.get("/rows", response_model=PricingRowsResponse)
async def list_pricing_rows(sync: PricingSyncService = Depends(get_pricing_sync)):
    """Pricing rows grouped by plan, in display order"""
    return {"plans": sync.store.rows_by_plan()}


@router.get("/grid")
async def get_pricing_grid(
    plan_name: str = Query(..., min_length=1),
    role: PricingRole = PricingRole.PRIMARY,
    sync: PricingSyncService = Depends(get_pricing_sync)
):
    """Grid of one plan/role for the price editor"""
    grid = sync.store.grid(plan_name, role)
    return {
        "plan_name": plan_name,
        "role": role.value,
        "grid": {
            age_group_id: {term_id: float(price) for term_id, price in terms.items()}
            for age_group_id, terms in grid.items()
        }
    }


@router.post("/refresh")
async def refresh_prices(sync: PricingSyncService = Depends(get_pricing_sync)):
    """Reload prices from the backend"""
    cells = await sync.refresh()
    return {"success": True, "count": len(cells)}


@router.post("/cells")
async def save_price_cell(
    payload: PriceCellRequest,
    sync: PricingSyncService = Depends(get_pricing_sync)
):
    """Create or update a single price"""
    cell = PriceCell(
        location_id=sync.store.location_id,
        plan_name=payload.plan_name,
        role=payload.role,
        age_group_id=payload.age_group_id,
        subscription_term_id=payload.subscription_term_id,
        price=payload.price,
        is_active=payload.is_active,
    )
    result = await sync.save_cell(cell)
    return {
        "success": True,
        "message": "Price saved",
        "price": result.model_dump(mode="json", by_alias=True)
    }


@router.put("/grid")
async def save_pricing_grid(
    payload: SaveGridRequest,
    sync: PricingSyncService = Depends(get_pricing_sync)
):
    """Save every priced entry of a grid; blank entries are left out"""
    saved = await sync.save_grid(payload.grid, payload.plan_name, payload.role)
    return {
        "success": True,
        "message": f"Saved {len(saved)} prices",
        "prices": [cell.model_dump(mode="json", by_alias=True) for cell in saved]
    }


@router.post("/rows/reclassify")
async def reclassify_row_role(
    payload: ReclassifyRoleRequest,
    sync: PricingSyncService = Depends(get_pricing_sync)
):
    """Move a whole row to the PRIMARY or ADD_ON role"""
    row = RowKey(payload.plan_name, payload.role, payload.age_group_id)
    updated = await sync.reclassify_role(row, payload.new_role)
    label = "Primary" if payload.new_role == PricingRole.PRIMARY else "AddOn"
    return {
        "success": True,
        "message": f"Role updated to {label}" if updated else "Role unchanged",
        "updated": len(updated)
    }
