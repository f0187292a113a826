"""Join bundled service records with the service catalog for display"""
from typing import Iterable, List, Optional

from solarswim.schemas.catalog import CatalogService
from solarswim.schemas.membership import (
    BundledServiceView,
    FreeInclusion,
    MembershipService,
)

UNKNOWN_SERVICE = "Unknown Service"
FREE_LABEL = "FREE"


class BundledServiceResolver:
    """Builds the bundled service lists shown for a program or the base plan"""

    @staticmethod
    def resolve(
        catalog: Iterable[CatalogService],
        records: Iterable[MembershipService],
        include_inactive: bool = False
    ) -> List[BundledServiceView]:
        """
        Display rows for bundled services.

        An included service always shows as FREE. A discount stored on it
        from an earlier payable state is left on the record but neither shown
        nor applied.
        """
        names = {service.service_id: service.name for service in catalog}
        views = []
        for record in records:
            if not record.is_active and not include_inactive:
                continue
            inclusion = record.inclusion
            if isinstance(inclusion, FreeInclusion):
                label = FREE_LABEL
            else:
                label = inclusion.discount.raw if inclusion.discount else ""
            views.append(BundledServiceView(
                membership_service_id=record.membership_service_id,
                service_id=record.service_id,
                service_name=record.service_name or names.get(record.service_id) or UNKNOWN_SERVICE,
                is_included=record.is_included,
                usage_limit=record.usage_limit,
                label=label,
                inclusion=inclusion,
                is_active=record.is_active,
            ))
        return views

    @staticmethod
    def base_plan_services(records: Iterable[MembershipService]) -> List[MembershipService]:
        return [record for record in records if record.membership_program_id is None]

    @staticmethod
    def program_services(records: Iterable[MembershipService], program_id: str) -> List[MembershipService]:
        return [record for record in records if record.membership_program_id == program_id]

    @staticmethod
    def available_services(
        catalog: Iterable[CatalogService],
        records: Iterable[MembershipService]
    ) -> List[CatalogService]:
        """Catalog services not yet bundled (active) in the given records"""
        bundled = {record.service_id for record in records if record.is_active}
        return [service for service in catalog if service.service_id not in bundled]


def new_bundled_service(
    service_id: str,
    program_id: Optional[str] = None,
    location_id: Optional[str] = None
) -> MembershipService:
    """New bundled service record; no program id means the base plan"""
    return MembershipService(
        service_id=service_id,
        membership_program_id=program_id,
        location_id=location_id,
        is_included=True,
        usage_limit="Unlimited",
        is_part_of_base_plan=program_id is None,
        is_active=True,
    )


# Create global instance
bundled_service_resolver = BundledServiceResolver()
