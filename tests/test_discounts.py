"""
Tests for discount resolution.

One applied coupon at most; the discount is always within [0, subtotal].
"""

import pytest
from decimal import Decimal

from domain.schemas import CartItem
from services.discount_service import DiscountService
from services.pricing import line_total
from test_fixtures import (
    fixed_coupon,
    free_item_coupon,
    make_modifier,
    percent_coupon,
)


def _line(name, unit_price, quantity=1, modifiers=None, line_id=None):
    return CartItem(
        id=line_id or f"cart-{name.lower().replace(' ', '-')}",
        menu_item_id=f"menu-{name.lower()}",
        name=name,
        unit_price=Decimal(str(unit_price)),
        quantity=quantity,
        modifiers=modifiers or [],
    )


def _subtotal(items):
    return sum((line_total(i) for i in items), Decimal("0"))


# =============================================================================
# NO COUPON / EMPTY CART
# =============================================================================


def test_no_coupon_means_no_discount():
    items = [_line("Burger", "8.99")]
    assert DiscountService.resolve(items, _subtotal(items), None) == Decimal("0")


def test_zero_subtotal_means_no_discount():
    assert DiscountService.resolve([], Decimal("0"), fixed_coupon(5)) == Decimal("0")


# =============================================================================
# PERCENT AND FIXED
# =============================================================================


def test_percent_discount():
    items = [_line("Hot Fudge Shake", "3.50", quantity=2)]
    assert DiscountService.resolve(items, _subtotal(items), percent_coupon(10)) == Decimal("0.70")


def test_percent_discount_capped_at_subtotal():
    items = [_line("Coffee", "1.89")]
    assert DiscountService.resolve(items, _subtotal(items), percent_coupon(150)) == Decimal("1.89")


def test_fixed_discount():
    items = [_line("Burger", "8.99")]
    assert DiscountService.resolve(items, _subtotal(items), fixed_coupon(2)) == Decimal("2")


def test_fixed_discount_capped_at_subtotal():
    items = [_line("Coffee", "1.89")]
    assert DiscountService.resolve(items, _subtotal(items), fixed_coupon(5)) == Decimal("1.89")


# =============================================================================
# FREE ITEM
# =============================================================================


def test_free_item_matches_case_insensitive_substring():
    items = [_line("Burger", "8.99"), _line("Seasoned Fries", "2.99")]
    coupon = free_item_coupon("FRIES")
    assert DiscountService.resolve(items, _subtotal(items), coupon) == Decimal("2.99")


def test_free_item_uses_first_matching_line():
    items = [
        _line("Cheese Burger", "7.49", line_id="cart-a"),
        _line("Big Boy Burger", "10.99", line_id="cart-b"),
    ]
    coupon = free_item_coupon("burger")

    assert DiscountService.find_free_item(items, "burger").id == "cart-a"
    assert DiscountService.resolve(items, _subtotal(items), coupon) == Decimal("7.49")


def test_free_item_covers_one_unit_only():
    """
    Verifies:
    - quantity 3 of the matched item still yields one unit of benefit
    - the unit's modifiers are part of the benefit
    """
    items = [_line("Fries", "2.99", quantity=3, modifiers=[make_modifier("Add Cheese", "0.50")])]
    coupon = free_item_coupon("fries")
    assert DiscountService.resolve(items, _subtotal(items), coupon) == Decimal("3.49")


def test_free_item_without_match_is_inert():
    items = [_line("Burger", "8.99")]
    coupon = free_item_coupon("salad")

    assert DiscountService.resolve(items, _subtotal(items), coupon) == Decimal("0")
    assert DiscountService.missing_item_hint(items, coupon) == "Add Salad to your order to use this coupon"


def test_missing_item_hint_absent_when_matched_or_not_free_item():
    items = [_line("Side Salad", "3.49")]
    assert DiscountService.missing_item_hint(items, free_item_coupon("salad")) is None
    assert DiscountService.missing_item_hint(items, percent_coupon(10)) is None
    assert DiscountService.missing_item_hint(items, None) is None


# =============================================================================
# INVARIANT: 0 <= discount <= subtotal
# =============================================================================

CARTS = [
    [],
    [_line("Coffee", "1.89")],
    [_line("Fries", "2.99", quantity=4), _line("Burger", "8.99", quantity=2)],
    [_line("Strawberry Pie Slice", "4.29", modifiers=[make_modifier("Add Ice Cream", 199)])],
    [_line("Mystery", "0")],
]

COUPONS = [
    None,
    percent_coupon(0),
    percent_coupon(15),
    percent_coupon(100),
    percent_coupon(250),
    fixed_coupon(0),
    fixed_coupon("0.99"),
    fixed_coupon(50),
    free_item_coupon("fries"),
    free_item_coupon("pie"),
    free_item_coupon("lobster"),
]


@pytest.mark.parametrize("items", CARTS)
@pytest.mark.parametrize("coupon", COUPONS)
def test_discount_is_bounded_by_subtotal(items, coupon):
    subtotal = _subtotal(items)
    discount = DiscountService.resolve(items, subtotal, coupon)
    assert Decimal("0") <= discount <= subtotal
