"""Read-only catalog schemas (age groups, subscription terms, services)"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class AgeGroup(BaseModel):
    """Age group axis of the pricing matrix"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    age_group_id: str
    name: str
    min_age: Optional[int] = None
    max_age: Optional[int] = None


class SubscriptionTerm(BaseModel):
    """Subscription term axis of the pricing matrix"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    subscription_term_id: str
    name: str
    duration_months: Optional[int] = None
    payment_mode: Optional[str] = Field(None, description="RECURRING or PAY_IN_FULL")


class CatalogService(BaseModel):
    """Entry of the location's service catalog"""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    service_id: str
    name: str
    description: Optional[str] = None
    service_type: Optional[str] = None
    is_addon_only: bool = False
