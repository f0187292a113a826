"""Base plan pricing schemas"""
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional, List, Dict, Any, NamedTuple
from decimal import Decimal
import enum


class PricingRole(str, enum.Enum):
    """Whether a priced row is the membership price or an add-on price"""
    PRIMARY = "PRIMARY"
    ADD_ON = "ADD_ON"


# Display order of roles inside a plan
ROLE_RANK = {
    PricingRole.PRIMARY: 0,
    PricingRole.ADD_ON: 1,
}


class RowKey(NamedTuple):
    """Identity of a pricing row"""
    plan_name: str
    role: PricingRole
    age_group_id: str


class CellKey(NamedTuple):
    """Identity of a single priced cell"""
    plan_name: str
    role: PricingRole
    age_group_id: str
    subscription_term_id: str

    @property
    def row(self) -> RowKey:
        return RowKey(self.plan_name, self.role, self.age_group_id)


# age_group_id -> subscription_term_id -> price (number, typed text or blank)
PricingGrid = Dict[str, Dict[str, Any]]


class PriceCell(BaseModel):
    """One price of the base plan matrix"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    base_price_id: Optional[str] = Field(None, description="Server assigned id, absent until first save")
    location_id: Optional[str] = Field(None, description="Owning location")
    plan_name: str = Field(..., alias="name", description="Plan name, e.g. Gold")
    role: PricingRole = PricingRole.PRIMARY
    age_group_id: str
    subscription_term_id: str
    price: Optional[Decimal] = Field(None, ge=0, description="Blank until a price is set")
    discount: Optional[str] = Field(None, description="e.g. '10' or '10%'")
    is_active: bool = True

    # Resolved by the backend, never sent back
    age_group_name: Optional[str] = None
    term_name: Optional[str] = None

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Optional[Decimal]) -> Optional[float]:
        return float(price) if price is not None else None

    @property
    def key(self) -> CellKey:
        return CellKey(self.plan_name, self.role, self.age_group_id, self.subscription_term_id)

    def to_request(self) -> Dict[str, Any]:
        """Payload for POST /base-prices"""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"age_group_name", "term_name"},
        )


class PricingRow(BaseModel):
    """All cells sharing plan, role and age group"""
    plan_name: str
    role: PricingRole
    age_group_id: str
    age_group_name: Optional[str] = None
    cells: List[PriceCell] = []

    @property
    def key(self) -> RowKey:
        return RowKey(self.plan_name, self.role, self.age_group_id)

    def price_for(self, subscription_term_id: str) -> Optional[PriceCell]:
        for cell in self.cells:
            if cell.subscription_term_id == subscription_term_id:
                return cell
        return None


# ============ API PAYLOADS ============

class PriceCellRequest(BaseModel):
    """Single cell edit coming from the pricing table"""
    plan_name: str = Field("", description="Plan name")
    role: PricingRole = PricingRole.PRIMARY
    age_group_id: str = Field("", description="Age group id")
    subscription_term_id: str = Field("", description="Subscription term id")
    price: Decimal = Field(..., ge=0)
    is_active: bool = True


class SaveGridRequest(BaseModel):
    """Whole grid of one plan/role saved from the editor"""
    plan_name: str
    role: PricingRole = PricingRole.PRIMARY
    grid: PricingGrid = Field(default_factory=dict)


class ReclassifyRoleRequest(BaseModel):
    """Move every cell of a row to another role"""
    plan_name: str
    role: PricingRole
    age_group_id: str
    new_role: PricingRole


class PricingRowsResponse(BaseModel):
    """Rows grouped by plan name, in display order"""
    plans: Dict[str, List[PricingRow]]
