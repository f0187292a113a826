"""Membership eligibility rules and category editing"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Union

from solarswim.exceptions import NotFoundError, PricingValidationError
from solarswim.schemas.membership import (
    BillingCycle,
    EligibilityDecision,
    EligibilityRule,
    Fee,
    FeeType,
    HouseholdComposition,
    MemberClass,
    MembershipCategory,
    MembershipProgram,
    RuleCondition,
    RuleResult,
)

logger = logging.getLogger(__name__)

DEFAULT_RULE_MESSAGE = "Eligibility Rule"


class EligibilityService:
    """Evaluate and edit eligibility rules of membership categories"""

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    @staticmethod
    def condition_matches(condition: RuleCondition, composition: HouseholdComposition) -> bool:
        """Every bound present in the condition must hold; absent bounds always hold"""
        for member_class in MemberClass:
            count = composition.count_for(member_class)
            minimum = getattr(condition, member_class.min_field)
            maximum = getattr(condition, member_class.max_field)
            if minimum is not None and count < minimum:
                return False
            if maximum is not None and count > maximum:
                return False
        return True

    @staticmethod
    def evaluate(rules: Iterable[EligibilityRule], composition: HouseholdComposition) -> EligibilityDecision:
        """
        First matching rule by ascending priority decides.

        The sort is stable, so rules sharing a priority keep their stored
        order. With no match the household is denied.
        """
        for rule in sorted(rules, key=lambda r: r.priority):
            if EligibilityService.condition_matches(rule.condition, composition):
                return EligibilityDecision(result=rule.result, message=rule.message, rule=rule)
        return EligibilityDecision(result=RuleResult.DENY)

    @staticmethod
    def evaluate_category(category: MembershipCategory, composition: HouseholdComposition) -> EligibilityDecision:
        if not category.is_active:
            return EligibilityDecision(result=RuleResult.DENY, message="Category is not active")
        return EligibilityService.evaluate(category.rules, composition)

    @staticmethod
    def eligible_categories(program: MembershipProgram, composition: HouseholdComposition) -> List[MembershipCategory]:
        """Categories of the program the household is admitted to"""
        return [
            category for category in program.categories
            if EligibilityService.evaluate_category(category, composition).allowed
        ]

    # ------------------------------------------------------------------
    # Editing (each returns an updated copy of the program)
    # ------------------------------------------------------------------

    @staticmethod
    def parse_bound(raw_value: Any) -> Optional[int]:
        """Blank input clears a bound; an empty max means unlimited, not zero"""
        if raw_value is None:
            return None
        if isinstance(raw_value, bool):
            raise PricingValidationError(f"Invalid bound: {raw_value!r}")
        if isinstance(raw_value, str):
            text = raw_value.strip()
            if not text:
                return None
            try:
                value = int(text)
            except ValueError:
                raise PricingValidationError(f"Bound must be a whole number, got {raw_value!r}")
        elif isinstance(raw_value, float):
            if not raw_value.is_integer():
                raise PricingValidationError(f"Bound must be a whole number, got {raw_value!r}")
            value = int(raw_value)
        elif isinstance(raw_value, int):
            value = raw_value
        else:
            raise PricingValidationError(f"Invalid bound: {raw_value!r}")

        if value < 0:
            raise PricingValidationError(f"Bound cannot be negative, got {value}")
        return value

    @staticmethod
    def set_rule_bound(
        program: MembershipProgram,
        category_id: str,
        rule_index: int,
        field: str,
        raw_value: Any
    ) -> MembershipProgram:
        """Replace a single bound of one rule, leaving the other bounds untouched"""
        name = RuleCondition.field_for(field)
        if name is None:
            raise PricingValidationError(f"Unknown rule bound: {field}")
        value = EligibilityService.parse_bound(raw_value)

        updated = program.model_copy(deep=True)
        category = _require_category(updated, category_id)
        if rule_index < 0 or rule_index >= len(category.rules):
            raise NotFoundError(f"Rule {rule_index} not found in category {category_id}")

        rule = category.rules[rule_index]
        rule.condition = rule.condition.model_copy(update={name: value})
        return updated

    @staticmethod
    def set_fee_amount(
        program: MembershipProgram,
        category_id: str,
        fee_type: Union[FeeType, str],
        amount: Union[Decimal, int, float, str]
    ) -> MembershipProgram:
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise PricingValidationError(f"Invalid fee amount: {amount!r}")
        if not value.is_finite() or value < 0:
            raise PricingValidationError(f"Invalid fee amount: {amount!r}")

        updated = program.model_copy(deep=True)
        category = _require_category(updated, category_id)
        fee = category.fee(FeeType(fee_type))
        if fee is None:
            raise NotFoundError(f"Category {category_id} has no {FeeType(fee_type).value} fee")
        fee.amount = value
        return updated

    @staticmethod
    def upsert_category(program: MembershipProgram, category: MembershipCategory) -> MembershipProgram:
        """Replace the category with the same id, or append a new one"""
        updated = program.model_copy(deep=True)
        if category.category_id is not None:
            for index, existing in enumerate(updated.categories):
                if existing.category_id == category.category_id:
                    updated.categories[index] = category
                    return updated
        updated.categories.append(category)
        return updated


def new_category(name: str = "New Category") -> MembershipCategory:
    """Category seeded with the default fees and a single-adult rule"""
    return MembershipCategory(
        name=name,
        is_active=True,
        fees=[
            Fee(fee_type=FeeType.JOINING, billing_cycle=BillingCycle.ONE_TIME, amount=Decimal("0")),
            Fee(fee_type=FeeType.ANNUAL, billing_cycle=BillingCycle.YEARLY, amount=Decimal("0")),
        ],
        rules=[
            EligibilityRule(
                priority=1,
                result=RuleResult.ALLOW,
                message=DEFAULT_RULE_MESSAGE,
                condition=RuleCondition(min_adult=1, max_adult=1),
            )
        ],
    )


def new_program(location_id: str, name: str) -> MembershipProgram:
    return MembershipProgram(
        location_id=location_id,
        name=name,
        is_active=True,
        categories=[new_category("Individual")],
        services=[],
    )


def _require_category(program: MembershipProgram, category_id: str) -> MembershipCategory:
    category = program.category(category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id} not found")
    return category


# Create global instance
eligibility_service = EligibilityService()
