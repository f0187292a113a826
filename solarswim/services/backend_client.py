"""REST client for the backend that owns pricing and membership data"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from solarswim.config import settings
from solarswim.exceptions import BackendError
from solarswim.schemas.catalog import AgeGroup, CatalogService, SubscriptionTerm
from solarswim.schemas.membership import MembershipProgram, MembershipService
from solarswim.schemas.pricing import PriceCell

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class BackendClient:
    """
    Persistence boundary of the configuration engine.

    Responses may come bare or wrapped in an envelope (`{"prices": [...]}`,
    `{"data": ...}`); every method returns plain domain objects.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.backend_base_url).rstrip("/")
        self.token = token if token is not None else settings.BACKEND_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT_SECONDS
        self.transport = transport

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def list_price_cells(self, location_id: str) -> List[PriceCell]:
        data = await self._request("GET", "/base-prices", params={"location_id": location_id})
        return self._parse_list(PriceCell, _unwrap_list(data, "prices"))

    async def upsert_price_cell(self, cell: PriceCell) -> PriceCell:
        """Create (no id) or update (with id) one base price"""
        data = await self._request("POST", "/base-prices", json=cell.to_request())
        return self._parse(PriceCell, _unwrap_object(data, "prices", "price"))

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    async def list_membership_programs(self, location_id: str) -> List[MembershipProgram]:
        data = await self._request("GET", "/memberships", location_id=location_id)
        return self._parse_list(MembershipProgram, _unwrap_list(data, "memberships", "programs"))

    async def upsert_membership_program(self, program: MembershipProgram) -> MembershipProgram:
        """Full replace of the program, its categories, fees and rules"""
        data = await self._request(
            "POST", "/memberships",
            json=program.to_request(),
            location_id=program.location_id
        )
        return self._parse(MembershipProgram, _unwrap_object(data, "membership", "program"))

    async def list_base_plan_services(self, location_id: str) -> List[MembershipService]:
        data = await self._request("GET", "/membership-services/base-plan", location_id=location_id)
        return self._parse_list(MembershipService, _unwrap_list(data, "services", "membership_services"))

    async def upsert_membership_services(
        self,
        records: Sequence[MembershipService]
    ) -> Optional[List[MembershipService]]:
        """Batch upsert; the backend may answer with the saved records or nothing"""
        data = await self._request(
            "POST", "/membership-services/upsert",
            json=[record.to_request() for record in records]
        )
        if isinstance(data, dict) and not any(isinstance(value, list) for value in data.values()):
            # e.g. {"success": true}
            return None
        if data is None or not isinstance(data, (list, dict)):
            return None
        return self._parse_list(MembershipService, _unwrap_list(data, "services", "membership_services"))

    # ------------------------------------------------------------------
    # Catalogs (read-only)
    # ------------------------------------------------------------------

    async def list_services(self, location_id: str) -> List[CatalogService]:
        data = await self._request("GET", "/services", location_id=location_id)
        items = [_alias_id(item, "service_id") for item in _unwrap_list(data, "services")]
        return self._parse_list(CatalogService, items)

    async def list_age_groups(self) -> List[AgeGroup]:
        data = await self._request("GET", "/config/age-groups")
        items = [_alias_id(item, "age_group_id") for item in _unwrap_list(data, "age_groups", "ageGroups")]
        return self._parse_list(AgeGroup, items)

    async def list_subscription_terms(self, location_id: str) -> List[SubscriptionTerm]:
        data = await self._request("GET", "/config/subscription-terms", location_id=location_id)
        items = [
            _alias_id(item, "subscription_term_id")
            for item in _unwrap_list(data, "subscription_terms", "subscriptionTerms", "terms")
        ]
        return self._parse_list(SubscriptionTerm, items)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, location_id: Optional[str] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if location_id:
            headers["x-location-id"] = location_id
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        location_id: Optional[str] = None
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers=self._headers(location_id)
                )
        except httpx.HTTPError as e:
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise BackendError(f"Could not reach backend: {e}")

        if response.is_error:
            message = _error_message(response)
            logger.error(f"Backend {method} {path} returned {response.status_code}: {message}")
            raise BackendError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} from backend: {e}")
            raise BackendError(f"Malformed {model.__name__} in backend response")

    @staticmethod
    def _parse_list(model: Type[M], items: List[Any]) -> List[M]:
        return [BackendClient._parse(model, item) for item in items]


def _unwrap_list(data: Any, *keys: str) -> List[Any]:
    if not data:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys + ("data", "results", "items"):
            value = data.get(key)
            if isinstance(value, list):
                return value
            if isinstance(value, dict):
                return _unwrap_list(value, *keys)
    raise BackendError("Unexpected response shape from backend, expected a list")


def _unwrap_object(data: Any, *keys: str) -> Dict[str, Any]:
    if isinstance(data, list):
        if data and isinstance(data[0], dict):
            return data[0]
    elif isinstance(data, dict):
        for key in keys + ("data",):
            value = data.get(key)
            if isinstance(value, dict):
                return value
            if isinstance(value, list) and value and isinstance(value[0], dict):
                return value[0]
        return data
    raise BackendError("Unexpected response shape from backend, expected an object")


def _alias_id(item: Any, id_field: str) -> Any:
    """Catalog endpoints sometimes name the key `id`"""
    if isinstance(item, dict) and item.get(id_field) is None and item.get("id") is not None:
        return {**item, id_field: str(item["id"])}
    return item


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or response.reason_phrase
    return response.reason_phrase


# Create global instance
backend_client = BackendClient()
