"""Membership program endpoints: eligibility, rules, fees and bundled services"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from solarswim.dependencies.backend import get_backend_client, get_location_id, get_membership_sync
from solarswim.schemas.membership import (
    BundledServiceUpdate,
    BundledServiceView,
    CategoryEligibility,
    EligibilityRequest,
    FeeAmountUpdate,
    FeeType,
    MembershipCategory,
    RuleBoundUpdate,
)
from solarswim.exceptions import NotFoundError
from solarswim.services.backend_client import BackendClient
from solarswim.services.bundled_service_resolver import BundledServiceResolver
from solarswim.services.eligibility_service import EligibilityService
from solarswim.services.sync_service import MembershipSyncService

router = APIRouter()


@router.get("/")
async def list_membership_programs(sync: MembershipSyncService = Depends(get_membership_sync)):
    """Membership programs of the location"""
    return {
        "programs": [
            program.model_dump(mode="json", by_alias=True)
            for program in sync.programs.programs
        ]
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_membership_program(
    name: str = Query(..., min_length=1),
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Create a program with the default Individual category"""
    program = await sync.create_program(name)
    return {
        "success": True,
        "message": "Membership Program created.",
        "program": program.model_dump(mode="json", by_alias=True)
    }


@router.post("/eligibility", response_model=List[CategoryEligibility])
async def check_eligibility(
    payload: EligibilityRequest,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Evaluate a household against one category, or every category of a program"""
    program = sync.programs.require(payload.program_id)
    if payload.category_id is not None:
        category = program.category(payload.category_id)
        if category is None:
            raise NotFoundError(f"Category {payload.category_id} not found")
        categories = [category]
    else:
        categories = program.categories

    return [
        CategoryEligibility(
            category_id=category.category_id,
            category_name=category.name,
            decision=EligibilityService.evaluate_category(category, payload.composition)
        )
        for category in categories
    ]


@router.put("/{program_id}/categories")
async def save_category(
    program_id: str,
    category: MembershipCategory,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Create (no id) or replace a category; the whole program is saved"""
    program = await sync.save_category(program_id, category)
    return {
        "success": True,
        "message": "Category updated." if category.category_id else "Category created.",
        "program": program.model_dump(mode="json", by_alias=True)
    }


@router.patch("/{program_id}/categories/{category_id}/rules/{rule_index}")
async def update_rule_bound(
    program_id: str,
    category_id: str,
    rule_index: int,
    payload: RuleBoundUpdate,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Set or clear one bound of an eligibility rule"""
    program = await sync.set_rule_bound(program_id, category_id, rule_index, payload.field, payload.value)
    return {
        "success": True,
        "program": program.model_dump(mode="json", by_alias=True)
    }


@router.patch("/{program_id}/categories/{category_id}/fees/{fee_type}")
async def update_fee_amount(
    program_id: str,
    category_id: str,
    fee_type: FeeType,
    payload: FeeAmountUpdate,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Change the amount of a category fee"""
    program = await sync.set_fee_amount(program_id, category_id, fee_type, payload.amount)
    return {
        "success": True,
        "program": program.model_dump(mode="json", by_alias=True)
    }


# ============================================================================
# BUNDLED SERVICES
# ============================================================================

@router.get("/bundled-services", response_model=List[BundledServiceView])
async def list_bundled_services(
    program_id: Optional[str] = None,
    include_inactive: bool = False,
    location_id: str = Depends(get_location_id),
    backend: BackendClient = Depends(get_backend_client),
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Bundled services of a program, or of the base plan when no program is given"""
    catalog = await backend.list_services(location_id)
    return BundledServiceResolver.resolve(
        catalog,
        sync.services.for_program(program_id),
        include_inactive=include_inactive
    )


@router.post("/bundled-services", status_code=status.HTTP_201_CREATED)
async def add_bundled_service(
    service_id: str = Query(..., min_length=1),
    program_id: Optional[str] = None,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Bundle a catalog service, included and unlimited by default"""
    records = await sync.add_bundled_service(service_id, program_id)
    return {"success": True, "count": len(records)}


@router.patch("/bundled-services/{membership_service_id}")
async def update_bundled_service(
    membership_service_id: str,
    payload: BundledServiceUpdate,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Update inclusion, usage limit, discount or status of a bundled service"""
    record = await sync.update_bundled_service(
        membership_service_id,
        payload.changes()
    )
    return {"success": True, "service": record.model_dump(mode="json")}


@router.delete("/bundled-services/{membership_service_id}")
async def remove_bundled_service(
    membership_service_id: str,
    sync: MembershipSyncService = Depends(get_membership_sync)
):
    """Deactivate a bundled service; records are never deleted"""
    record = await sync.remove_bundled_service(membership_service_id)
    return {"success": True, "service": record.model_dump(mode="json")}
