"""
Tests for row and cell identity keys
"""
from solarswim.schemas.pricing import CellKey, PricingRole, RowKey
from solarswim.services.composite_keys import cell_key, row_key, same_cell, same_row

from conftest import make_cell


def test_row_key_of_cell():
    """Test row key ignores the subscription term"""
    cell = make_cell(subscription_term_id="term-annual")
    assert row_key(cell) == RowKey("Gold", PricingRole.PRIMARY, "ag-adult")


def test_keys_accept_keys():
    """Test keys pass through unchanged"""
    key = CellKey("Gold", PricingRole.ADD_ON, "ag-child", "term-monthly")
    assert cell_key(key) is key
    assert row_key(key) == RowKey("Gold", PricingRole.ADD_ON, "ag-child")


def test_separator_in_identifier_does_not_collide():
    """Test identifiers containing separators stay distinct"""
    a = make_cell(plan_name="Gold|PRIMARY", age_group_id="x")
    b = make_cell(plan_name="Gold", age_group_id="PRIMARY|x")
    assert not same_row(a, b)
    assert not same_cell(a, b)


def test_matching_is_exact():
    """Test no trimming or case folding is applied"""
    assert not same_row(make_cell(plan_name="Gold"), make_cell(plan_name="gold"))
    assert not same_row(make_cell(plan_name="Gold"), make_cell(plan_name="Gold "))
    assert same_cell(make_cell(price="10"), make_cell(price="20"))
