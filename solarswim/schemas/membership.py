"""Membership program schemas: categories, fees, eligibility rules, bundled services"""
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import Optional, List, Union, Literal, Dict, Any, Annotated
from decimal import Decimal, InvalidOperation
import enum


class FeeType(str, enum.Enum):
    """Fee kinds charged by a membership category"""
    JOINING = "JOINING"
    ANNUAL = "ANNUAL"


class BillingCycle(str, enum.Enum):
    """How often a fee is billed"""
    ONE_TIME = "ONE_TIME"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class RuleResult(str, enum.Enum):
    """Outcome of a matching eligibility rule"""
    ALLOW = "ALLOW"
    DENY = "DENY"


class MemberClass(str, enum.Enum):
    """Household member classes counted by eligibility rules"""
    CHILD = "CHILD"
    ADULT = "ADULT"
    SENIOR = "SENIOR"

    @property
    def min_field(self) -> str:
        return f"min_{self.value.lower()}"

    @property
    def max_field(self) -> str:
        return f"max_{self.value.lower()}"


# ============ ELIGIBILITY ============

class RuleCondition(BaseModel):
    """
    Optional bounds per member class.

    An absent bound means no constraint on that side. Unknown keys are
    rejected so that every stored bound is evaluated.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    min_child: Optional[int] = Field(None, ge=0, alias="minChild")
    max_child: Optional[int] = Field(None, ge=0, alias="maxChild")
    min_adult: Optional[int] = Field(None, ge=0, alias="minAdult")
    max_adult: Optional[int] = Field(None, ge=0, alias="maxAdult")
    min_senior: Optional[int] = Field(None, ge=0, alias="minSenior")
    max_senior: Optional[int] = Field(None, ge=0, alias="maxSenior")

    @classmethod
    def field_for(cls, key: str) -> Optional[str]:
        """Resolve either the attribute name or the wire alias of a bound"""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None


class HouseholdComposition(BaseModel):
    """Counts of household members per class"""
    child_count: int = Field(0, ge=0)
    adult_count: int = Field(0, ge=0)
    senior_count: int = Field(0, ge=0)

    def count_for(self, member_class: MemberClass) -> int:
        return getattr(self, f"{member_class.value.lower()}_count")


class EligibilityRule(BaseModel):
    """Priority ordered allow/deny predicate (lower priority evaluated first)"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    rule_id: Optional[str] = None
    priority: int = 1
    result: RuleResult = RuleResult.ALLOW
    message: Optional[str] = None
    condition: RuleCondition = Field(default_factory=RuleCondition, alias="condition_json")

    @field_validator("condition", mode="before")
    @classmethod
    def empty_condition(cls, value):
        # Rules saved without bounds come back as null
        return {} if value is None else value


class EligibilityDecision(BaseModel):
    """Result of evaluating a rule set"""
    result: RuleResult
    message: Optional[str] = None
    rule: Optional[EligibilityRule] = None

    @property
    def allowed(self) -> bool:
        return self.result == RuleResult.ALLOW

    @property
    def matched(self) -> bool:
        return self.rule is not None


# ============ PROGRAMS ============

class Fee(BaseModel):
    """Fee charged by a membership category"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    membership_fee_id: Optional[str] = None
    fee_type: FeeType
    billing_cycle: BillingCycle
    amount: Decimal = Field(Decimal("0"), ge=0)
    is_active: bool = True

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class MembershipCategory(BaseModel):
    """Category of a membership program (e.g. Individual, Family)"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    category_id: Optional[str] = None
    name: str
    is_active: bool = True
    fees: List[Fee] = []
    rules: List[EligibilityRule] = []

    def fee(self, fee_type: FeeType) -> Optional[Fee]:
        for fee in self.fees:
            if fee.fee_type == fee_type:
                return fee
        return None


# ============ BUNDLED SERVICES ============

class DiscountExpression(BaseModel):
    """
    Discount typed by staff: "10%" is a percentage, "10" a fixed amount.

    Text that is neither keeps `raw` for display and is never applied.
    """
    raw: str
    percent: Optional[Decimal] = None
    amount: Optional[Decimal] = None

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["DiscountExpression"]:
        if text is None or not text.strip():
            return None
        raw = text.strip()
        number = raw[:-1].strip() if raw.endswith("%") else raw
        try:
            value = Decimal(number)
        except InvalidOperation:
            return cls(raw=raw)
        if not value.is_finite() or value < 0:
            return cls(raw=raw)
        if raw.endswith("%"):
            return cls(raw=raw, percent=value)
        return cls(raw=raw, amount=value)

    @property
    def is_valid(self) -> bool:
        return self.percent is not None or self.amount is not None

    def apply_to(self, price: Decimal) -> Decimal:
        if self.percent is not None:
            discounted = price - (price * self.percent / Decimal("100"))
        elif self.amount is not None:
            discounted = price - self.amount
        else:
            return price
        return max(discounted, Decimal("0"))


class FreeInclusion(BaseModel):
    """Service included in the plan at no charge"""
    kind: Literal["FREE"] = "FREE"


class PayableInclusion(BaseModel):
    """Service offered as a paid add-on, optionally discounted"""
    kind: Literal["PAYABLE"] = "PAYABLE"
    discount: Optional[DiscountExpression] = None


Inclusion = Annotated[Union[FreeInclusion, PayableInclusion], Field(discriminator="kind")]


class MembershipService(BaseModel):
    """Bundled service record of a program, or of the base plan when program id is None"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    membership_service_id: Optional[str] = None
    service_id: str
    membership_program_id: Optional[str] = None
    location_id: Optional[str] = None
    is_included: bool = True
    usage_limit: Optional[str] = "Unlimited"
    # Kept as typed even while included; see `inclusion`
    discount: Optional[str] = None
    is_part_of_base_plan: bool = False
    is_active: bool = True
    service_name: Optional[str] = Field(None, description="Joined by the backend")

    @property
    def inclusion(self) -> Union[FreeInclusion, PayableInclusion]:
        if self.is_included:
            return FreeInclusion()
        return PayableInclusion(discount=DiscountExpression.parse(self.discount))

    def to_request(self) -> Dict[str, Any]:
        """Payload item for POST /membership-services/upsert"""
        payload = self.model_dump(mode="json", exclude_none=True, exclude={"service_name"})
        # Base plan records are addressed by an explicit null; cleared text fields are sent as null
        payload["membership_program_id"] = self.membership_program_id
        payload["usage_limit"] = self.usage_limit
        payload["discount"] = self.discount
        return payload


class MembershipProgram(BaseModel):
    """Membership program of a location, saved as a whole"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    membership_program_id: Optional[str] = None
    location_id: str
    name: str
    is_active: bool = True
    categories: List[MembershipCategory] = []
    services: List[MembershipService] = []

    def category(self, category_id: str) -> Optional[MembershipCategory]:
        for category in self.categories:
            if category.category_id == category_id:
                return category
        return None

    def to_request(self) -> Dict[str, Any]:
        """Payload for POST /memberships"""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"services"})
        payload["services"] = [service.to_request() for service in self.services]
        return payload


# ============ API PAYLOADS ============

class EligibilityRequest(BaseModel):
    """Household to check against a program (and optionally a single category)"""
    program_id: str
    category_id: Optional[str] = None
    composition: HouseholdComposition


class CategoryEligibility(BaseModel):
    category_id: Optional[str]
    category_name: str
    decision: EligibilityDecision


class RuleBoundUpdate(BaseModel):
    """New value of one bound; blank clears it"""
    field: str = Field(..., description="e.g. minAdult or min_adult")
    value: Optional[Union[int, str]] = None


class FeeAmountUpdate(BaseModel):
    amount: Decimal = Field(..., ge=0)


class BundledServiceUpdate(BaseModel):
    """Partial update of a bundled service record"""
    is_included: Optional[bool] = None
    usage_limit: Optional[str] = None
    discount: Optional[str] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        """Fields sent by the caller; text fields may be cleared with null"""
        sent = self.model_dump(exclude_unset=True)
        return {
            key: value for key, value in sent.items()
            if value is not None or key in ("usage_limit", "discount")
        }


class BundledServiceView(BaseModel):
    """Display row of a bundled service"""
    membership_service_id: Optional[str]
    service_id: str
    service_name: str
    is_included: bool
    usage_limit: Optional[str]
    label: str = Field(..., description="FREE, or the discount text, or empty")
    inclusion: Inclusion
    is_active: bool
