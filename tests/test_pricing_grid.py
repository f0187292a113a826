"""
Tests for grid projections of the pricing matrix
"""
from decimal import Decimal

from solarswim.schemas.pricing import PricingRole
from solarswim.services.pricing_store import from_grid, parse_grid_price, to_grid

from conftest import make_cell


def test_grid_round_trip():
    """Test cells -> grid -> cells keeps every priced cell"""
    cells = [
        make_cell(age_group_id="ag-adult", subscription_term_id="term-monthly", price="50"),
        make_cell(age_group_id="ag-adult", subscription_term_id="term-annual", price="500"),
        make_cell(age_group_id="ag-child", subscription_term_id="term-monthly", price="35.50"),
    ]
    grid = to_grid(cells, "Gold", PricingRole.PRIMARY)
    rebuilt = from_grid(grid, "Gold", PricingRole.PRIMARY)

    assert {(c.key, c.price) for c in rebuilt} == {(c.key, c.price) for c in cells}


def test_to_grid_filters_plan_and_role():
    """Test only the requested plan/role is projected"""
    cells = [
        make_cell(price="50"),
        make_cell(role=PricingRole.ADD_ON, price="20"),
        make_cell(plan_name="Bronze", price="30"),
    ]
    grid = to_grid(cells, "Gold", PricingRole.PRIMARY)
    assert grid == {"ag-adult": {"term-monthly": Decimal("50")}}


def test_to_grid_skips_missing_price():
    """Test a cell without a price leaves the grid entry absent"""
    grid = to_grid([make_cell(price=None)], "Gold", PricingRole.PRIMARY)
    assert grid == {}


def test_omission_is_not_zero():
    """Test blank and invalid entries are dropped while an explicit 0 survives"""
    grid = {
        "ag-adult": {
            "term-monthly": "",
            "term-annual": 0,
            "term-weekly": "abc",
            "term-daily": "-5",
            "term-yearly": None,
        }
    }
    cells = from_grid(grid, "Gold", PricingRole.PRIMARY)

    assert len(cells) == 1
    assert cells[0].subscription_term_id == "term-annual"
    assert cells[0].price == Decimal("0")


def test_from_grid_sets_identity_and_location():
    """Test emitted cells carry the plan, role and location"""
    cells = from_grid({"ag-child": {"term-monthly": "42"}}, "Silver", PricingRole.ADD_ON, location_id="loc-9")
    cell = cells[0]
    assert cell.plan_name == "Silver"
    assert cell.role == PricingRole.ADD_ON
    assert cell.location_id == "loc-9"
    assert cell.base_price_id is None
    assert cell.price == Decimal("42")


def test_parse_grid_price():
    """Test parsing of typed grid values"""
    assert parse_grid_price(" 12.5 ") == Decimal("12.5")
    assert parse_grid_price(7) == Decimal("7")
    assert parse_grid_price("0") == Decimal("0")
    assert parse_grid_price("   ") is None
    assert parse_grid_price(True) is None
    assert parse_grid_price(float("nan")) is None
    assert parse_grid_price("Infinity") is None
    assert parse_grid_price(-1) is None
