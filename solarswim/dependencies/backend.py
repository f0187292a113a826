"""
Backend and store dependencies for FastAPI
"""
from fastapi import Depends, Header, HTTPException, status
from typing import Dict, Optional

from solarswim.services.backend_client import BackendClient, backend_client
from solarswim.services.membership_store import BundledServiceStore, MembershipProgramStore
from solarswim.services.pricing_store import PricingMatrixStore
from solarswim.services.sync_service import MembershipSyncService, PricingSyncService


class LocationStores:
    """
    Stores of every location edited since startup.

    A location's stores are filled on first use and afterwards only
    reloaded by an explicit refresh.
    """

    def __init__(self):
        self.pricing: Dict[str, PricingMatrixStore] = {}
        self.programs: Dict[str, MembershipProgramStore] = {}
        self.services: Dict[str, BundledServiceStore] = {}

    def clear(self) -> None:
        self.pricing.clear()
        self.programs.clear()
        self.services.clear()


# Create global instance
location_stores = LocationStores()


async def get_location_id(
    x_location_id: Optional[str] = Header(None, alias="x-location-id")
) -> str:
    """
    Location being edited, taken from the x-location-id header
    """
    if not x_location_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select a location (x-location-id header is missing)"
        )
    return x_location_id


def get_backend_client() -> BackendClient:
    return backend_client


def get_location_stores() -> LocationStores:
    return location_stores


async def get_pricing_sync(
    location_id: str = Depends(get_location_id),
    backend: BackendClient = Depends(get_backend_client),
    stores: LocationStores = Depends(get_location_stores)
) -> PricingSyncService:
    store = stores.pricing.get(location_id)
    if store is None:
        store = PricingMatrixStore(location_id)
        sync = PricingSyncService(store, backend)
        await sync.refresh()
        stores.pricing[location_id] = store
        return sync
    return PricingSyncService(store, backend)


async def get_membership_sync(
    location_id: str = Depends(get_location_id),
    backend: BackendClient = Depends(get_backend_client),
    stores: LocationStores = Depends(get_location_stores)
) -> MembershipSyncService:
    programs = stores.programs.get(location_id)
    services = stores.services.get(location_id)
    if programs is None or services is None:
        programs = MembershipProgramStore(location_id)
        services = BundledServiceStore(location_id)
        sync = MembershipSyncService(programs, services, backend)
        await sync.refresh()
        stores.programs[location_id] = programs
        stores.services[location_id] = services
        return sync
    return MembershipSyncService(programs, services, backend)
