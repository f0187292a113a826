"""
Tests for eligibility rule evaluation and rule editing
"""
from decimal import Decimal

import pytest

from solarswim.exceptions import NotFoundError, PricingValidationError
from solarswim.schemas.membership import (
    EligibilityRule,
    FeeType,
    HouseholdComposition,
    MembershipCategory,
    MembershipProgram,
    RuleCondition,
    RuleResult,
)
from solarswim.services.eligibility_service import EligibilityService, new_category, new_program


def household(children=0, adults=0, seniors=0) -> HouseholdComposition:
    return HouseholdComposition(child_count=children, adult_count=adults, senior_count=seniors)


def family_program() -> MembershipProgram:
    program = new_program("loc-1", "Swim Club")
    family = new_category("Family")
    family.category_id = "cat-family"
    family.rules = [
        EligibilityRule(
            priority=1,
            result=RuleResult.ALLOW,
            message="Family of up to four",
            condition=RuleCondition(min_adult=1, max_adult=2, min_child=1, max_child=2),
        )
    ]
    individual = program.categories[0]
    individual.category_id = "cat-individual"
    program.categories.append(family)
    program.membership_program_id = "mp-1"
    return program


def test_priority_order_first_match_wins():
    """Test a priority 1 ALLOW wins over a priority 2 DENY that also matches"""
    rules = [
        EligibilityRule(priority=2, result=RuleResult.DENY, message="Too many adults",
                        condition=RuleCondition(min_adult=1)),
        EligibilityRule(priority=1, result=RuleResult.ALLOW, message="Welcome",
                        condition=RuleCondition(max_adult=2)),
    ]
    decision = EligibilityService.evaluate(rules, household(adults=2))

    assert decision.result == RuleResult.ALLOW
    assert decision.message == "Welcome"
    assert decision.rule.priority == 1


def test_equal_priority_keeps_stored_order():
    """Test rules sharing a priority are tried in their stored order"""
    rules = [
        EligibilityRule(priority=1, result=RuleResult.DENY, message="first"),
        EligibilityRule(priority=1, result=RuleResult.ALLOW, message="second"),
    ]
    assert EligibilityService.evaluate(rules, household(adults=1)).message == "first"


def test_no_match_denies():
    """Test a household matching no rule is denied without message"""
    rules = [EligibilityRule(priority=1, result=RuleResult.ALLOW, condition=RuleCondition(min_senior=1))]
    decision = EligibilityService.evaluate(rules, household(adults=1))

    assert decision.result == RuleResult.DENY
    assert decision.message is None
    assert not decision.matched


def test_empty_condition_matches_everyone():
    """Test absent bounds put no constraint on the household"""
    rule = EligibilityRule(priority=1, result=RuleResult.ALLOW)
    assert EligibilityService.evaluate([rule], household(children=5, adults=3, seniors=2)).allowed


def test_bounds_are_inclusive():
    """Test min and max bounds accept the boundary values"""
    condition = RuleCondition(min_child=1, max_child=2)
    assert EligibilityService.condition_matches(condition, household(children=1))
    assert EligibilityService.condition_matches(condition, household(children=2))
    assert not EligibilityService.condition_matches(condition, household(children=3))
    assert not EligibilityService.condition_matches(condition, household())


def test_condition_wire_aliases():
    """Test conditions parse from the backend's camelCase keys"""
    rule = EligibilityRule.model_validate({
        "priority": 1,
        "result": "ALLOW",
        "condition_json": {"minAdult": 1, "maxAdult": 1},
    })
    assert rule.condition.min_adult == 1
    assert rule.condition.max_adult == 1
    assert rule.condition.max_child is None


def test_condition_rejects_unknown_keys():
    """Test unknown bounds are a parse error"""
    with pytest.raises(ValueError):
        RuleCondition.model_validate({"minPet": 1})


def test_inactive_category_denies():
    """Test an inactive category admits nobody"""
    category = new_category("Individual")
    category.is_active = False
    decision = EligibilityService.evaluate_category(category, household(adults=1))
    assert decision.result == RuleResult.DENY


def test_eligible_categories():
    """Test only the categories admitting the household are returned"""
    program = family_program()

    single = EligibilityService.eligible_categories(program, household(adults=1))
    assert [category.name for category in single] == ["Individual"]

    family = EligibilityService.eligible_categories(program, household(adults=2, children=1))
    assert [category.name for category in family] == ["Family"]


def test_new_category_defaults():
    """Test new categories get zero fees and a single adult rule"""
    category = new_category()
    assert category.name == "New Category"
    assert category.fee(FeeType.JOINING).amount == Decimal("0")
    assert category.fee(FeeType.ANNUAL).amount == Decimal("0")
    rule = category.rules[0]
    assert rule.priority == 1
    assert rule.result == RuleResult.ALLOW
    assert rule.message == "Eligibility Rule"
    assert (rule.condition.min_adult, rule.condition.max_adult) == (1, 1)


def test_set_rule_bound_changes_one_key():
    """Test setting a bound leaves the other bounds and the original program untouched"""
    program = family_program()
    updated = EligibilityService.set_rule_bound(program, "cat-family", 0, "maxChild", "4")

    condition = updated.category("cat-family").rules[0].condition
    assert condition.max_child == 4
    assert condition.min_child == 1
    assert condition.max_adult == 2
    assert program.category("cat-family").rules[0].condition.max_child == 2


def test_set_rule_bound_blank_clears():
    """Test a blank max means unlimited rather than zero"""
    program = family_program()
    updated = EligibilityService.set_rule_bound(program, "cat-family", 0, "max_child", "  ")

    assert updated.category("cat-family").rules[0].condition.max_child is None
    decision = EligibilityService.evaluate_category(updated.category("cat-family"), household(adults=1, children=6))
    assert decision.allowed


@pytest.mark.parametrize("value", ["-1", "1.5", "two", True])
def test_set_rule_bound_rejects_invalid(value):
    """Test negative, fractional and non-numeric bounds are rejected"""
    with pytest.raises(PricingValidationError):
        EligibilityService.set_rule_bound(family_program(), "cat-family", 0, "maxChild", value)


def test_set_rule_bound_unknown_targets():
    """Test unknown field, category and rule index"""
    program = family_program()
    with pytest.raises(PricingValidationError):
        EligibilityService.set_rule_bound(program, "cat-family", 0, "maxPet", 1)
    with pytest.raises(NotFoundError):
        EligibilityService.set_rule_bound(program, "cat-missing", 0, "maxChild", 1)
    with pytest.raises(NotFoundError):
        EligibilityService.set_rule_bound(program, "cat-family", 3, "maxChild", 1)


def test_set_fee_amount():
    """Test fee amounts are replaced and validated"""
    program = family_program()
    updated = EligibilityService.set_fee_amount(program, "cat-family", FeeType.ANNUAL, "120.00")
    assert updated.category("cat-family").fee(FeeType.ANNUAL).amount == Decimal("120.00")

    with pytest.raises(PricingValidationError):
        EligibilityService.set_fee_amount(program, "cat-family", FeeType.ANNUAL, "-3")


def test_upsert_category_replaces_or_appends():
    """Test categories are matched by id"""
    program = family_program()
    renamed = program.category("cat-family").model_copy(update={"name": "Household"})

    updated = EligibilityService.upsert_category(program, renamed)
    assert [c.name for c in updated.categories] == ["Individual", "Household"]

    added = EligibilityService.upsert_category(program, MembershipCategory(name="Senior"))
    assert [c.name for c in added.categories] == ["Individual", "Family", "Senior"]
