"""
Tests for the cart store.

Covers:
- line management (add, remove, quantity, instructions, ingredients, add-ons)
- derived totals and their invariants
- coupon-driven recomputation
- persistence scheduling and startup load
"""

import pytest
from decimal import Decimal

from adapters.storage import InMemoryPersistenceGateway
from domain.enums import StorageKey
from domain.schemas import Cart
from services.cart_service import CartStore
from services.pricing import calculate_tax, line_total, normalize_price, round_money
from test_constants import TAX_RATE
from test_fixtures import (
    RecordingScheduler,
    free_item_coupon,
    make_menu_item,
    make_menu_item_with_groups,
    make_modifier,
    make_stores,
    percent_coupon,
    stored,
)


def _assert_cart_invariants(cart: Cart):
    subtotal = sum(
        (
            (normalize_price(i.unit_price) + sum((normalize_price(m.price_adjustment) for m in i.modifiers), Decimal("0")))
            * i.quantity
            for i in cart.items
        ),
        Decimal("0"),
    )
    assert cart.subtotal == subtotal
    assert Decimal("0") <= cart.discount <= cart.subtotal
    assert cart.tax == calculate_tax(cart.subtotal, cart.discount, TAX_RATE)
    assert cart.total == round_money((cart.subtotal - cart.discount) + cart.tax)


# =============================================================================
# SCENARIOS
# =============================================================================


def test_scenario_cents_priced_item_without_coupon():
    """
    One item priced 350 (cents), quantity 2.

    Expected: unit price 3.50, subtotal 7.00, tax 0.42, total 7.42
    """
    store, _, _, _ = make_stores()

    item = store.add_item(make_menu_item("shake"), 2)
    cart = store.cart

    assert item.unit_price == Decimal("3.50")
    assert cart.subtotal == Decimal("7.00")
    assert cart.discount == Decimal("0")
    assert cart.tax == Decimal("0.42")
    assert cart.total == Decimal("7.42")
    _assert_cart_invariants(cart)


def test_scenario_percent_coupon():
    """
    Same cart with a 10% coupon applied.

    Expected: discount 0.70, discounted subtotal 6.30, tax 0.38, total 6.68
    """
    coupon = percent_coupon(10, coupon_id="promo-10")
    store, rewards, _, _ = make_stores(promotions=[coupon])
    store.add_item(make_menu_item("shake"), 2)

    rewards.apply_coupon("promo-10")
    cart = store.cart

    assert cart.discount == Decimal("0.70")
    assert cart.subtotal - cart.discount == Decimal("6.30")
    assert cart.tax == Decimal("0.38")
    assert cart.total == Decimal("6.68")
    _assert_cart_invariants(cart)


def test_scenario_free_fries_coupon():
    """
    Fries 2.99 and Burger 8.99 with a free-fries coupon.

    Expected: discount 2.99, discounted subtotal 8.99, tax 0.54, total 9.53
    """
    coupon = free_item_coupon("fries", coupon_id="promo-fries")
    store, rewards, _, _ = make_stores(promotions=[coupon])
    store.add_item(make_menu_item("fries"), 1)
    store.add_item(make_menu_item("burger"), 1)

    rewards.apply_coupon("promo-fries")
    cart = store.cart

    assert cart.discount == Decimal("2.99")
    assert cart.subtotal - cart.discount == Decimal("8.99")
    assert cart.tax == Decimal("0.54")
    assert cart.total == Decimal("9.53")


# =============================================================================
# LINE MANAGEMENT
# =============================================================================


def test_add_item_creates_unique_lines():
    store, _, _, _ = make_stores()

    first = store.add_item(make_menu_item("burger"), 1)
    second = store.add_item(make_menu_item("burger"), 1)

    assert first.id != second.id
    assert len(store.cart.items) == 2
    assert store.item_count == 2


def test_add_item_copies_extras_and_derives_options():
    store, _, _, _ = make_stores()

    item = store.add_item(
        make_menu_item_with_groups(),
        1,
        modifiers=[make_modifier("Add Bacon", Decimal("1.50"))],
        special_instructions="No pickles please",
        selected_ingredients=["Lettuce", "Tomato"],
        selected_add_ons=["Add Bacon"],
    )

    assert item.unit_price == Decimal("10.99")
    assert item.special_instructions == "No pickles please"
    assert item.selected_ingredients == ["Lettuce", "Tomato"]
    assert item.selected_add_ons == ["Add Bacon"]
    assert [o.name for o in item.add_on_options] == ["Add Bacon", "Extra Cheese", "Jalapeno Relish"]
    assert item.ingredient_options[0] == "Lettuce"
    assert store.cart.subtotal == Decimal("12.49")


def test_remove_item():
    store, _, _, _ = make_stores()
    fries = store.add_item(make_menu_item("fries"), 1)
    store.add_item(make_menu_item("burger"), 1)

    store.remove_item(fries.id)

    assert [i.name for i in store.cart.items] == ["Burger"]
    assert store.cart.subtotal == Decimal("8.99")


def test_remove_unknown_item_is_noop():
    store, _, scheduler, _ = make_stores()
    store.add_item(make_menu_item("fries"), 1)
    writes_before = len(scheduler.writes_for(StorageKey.CART))

    store.remove_item("cart-missing")

    assert len(store.cart.items) == 1
    assert len(scheduler.writes_for(StorageKey.CART)) == writes_before


def test_update_quantity_recomputes_totals():
    store, _, _, _ = make_stores()
    item = store.add_item(make_menu_item("fries"), 1)

    store.update_quantity(item.id, 3)

    assert store.cart.items[0].quantity == 3
    assert store.cart.subtotal == Decimal("8.97")
    assert store.item_count == 3
    _assert_cart_invariants(store.cart)


@pytest.mark.parametrize("quantity", [0, -1, -10])
def test_update_quantity_below_one_is_noop(quantity):
    """Zero or negative never removes a line; callers use remove_item"""
    store, _, _, _ = make_stores()
    item = store.add_item(make_menu_item("fries"), 2)
    before = store.cart

    store.update_quantity(item.id, quantity)

    assert store.cart == before


def test_update_item_fields_do_not_change_price():
    store, _, scheduler, _ = make_stores()
    item = store.add_item(make_menu_item("burger"), 1)
    total_before = store.cart.total
    writes_before = len(scheduler.writes_for(StorageKey.CART))

    store.update_item_instructions(item.id, "Extra crispy")
    store.update_item_ingredients(item.id, ["Lettuce"])
    store.update_item_add_ons(item.id, ["Add Bacon"])

    line = store.cart.items[0]
    assert line.special_instructions == "Extra crispy"
    assert line.selected_ingredients == ["Lettuce"]
    assert line.selected_add_ons == ["Add Bacon"]
    assert store.cart.total == total_before
    assert len(scheduler.writes_for(StorageKey.CART)) == writes_before + 3


def test_clear_cart_resets_totals():
    store, _, _, _ = make_stores()
    store.add_item(make_menu_item("burger"), 2)

    store.clear_cart()

    cart = store.cart
    assert cart.items == []
    assert cart.subtotal == cart.discount == cart.tax == cart.total == Decimal("0")
    assert store.item_count == 0


def test_get_item_total_matches_subtotal_line():
    store, _, _, _ = make_stores()
    store.add_item(make_menu_item("big_boy"), 2, modifiers=[make_modifier("Add Bacon", 150)])

    line = store.cart.items[0]

    assert store.get_item_total(line) == Decimal("24.98")
    assert store.get_item_total(line) == line_total(line)
    assert store.cart.subtotal == Decimal("24.98")


def test_cart_view_is_a_copy():
    store, _, _, _ = make_stores()
    store.add_item(make_menu_item("burger"), 1)

    snapshot = store.cart
    snapshot.items[0].quantity = 50

    assert store.cart.items[0].quantity == 1


# =============================================================================
# COUPON INTERACTION
# =============================================================================


def test_totals_follow_applied_coupon_changes():
    ten = percent_coupon(10, coupon_id="promo-10")
    fries = free_item_coupon("fries", coupon_id="promo-fries")
    store, rewards, _, _ = make_stores(promotions=[ten, fries])
    store.add_item(make_menu_item("fries"), 1)
    store.add_item(make_menu_item("burger"), 1)

    rewards.apply_coupon("promo-10")
    assert store.cart.discount == Decimal("1.198")

    rewards.apply_coupon("promo-fries")
    assert store.cart.discount == Decimal("2.99")

    rewards.apply_coupon(None)
    assert store.cart.discount == Decimal("0")
    assert store.cart.total == Decimal("12.70")


def test_discount_recomputed_when_items_change():
    fries = free_item_coupon("fries", coupon_id="promo-fries")
    store, rewards, _, _ = make_stores(promotions=[fries])
    burger = store.add_item(make_menu_item("burger"), 1)
    rewards.apply_coupon("promo-fries")

    assert store.cart.discount == Decimal("0")
    assert store.discount_hint == "Add Fries to your order to use this coupon"

    store.add_item(make_menu_item("fries"), 2)
    assert store.cart.discount == Decimal("2.99")
    assert store.discount_hint is None

    store.remove_item(burger.id)
    assert store.cart.discount == Decimal("2.99")
    _assert_cart_invariants(store.cart)


def test_unbind_stops_following_coupon():
    coupon = percent_coupon(50, coupon_id="promo-50")
    store, rewards, _, _ = make_stores(promotions=[coupon])
    store.add_item(make_menu_item("burger"), 1)

    store.unbind_rewards()
    rewards.apply_coupon("promo-50")

    assert store.cart.discount == Decimal("0")


# =============================================================================
# PERSISTENCE
# =============================================================================


def test_every_mutation_schedules_full_cart_write():
    store, _, scheduler, _ = make_stores()

    item = store.add_item(make_menu_item("burger"), 1)
    store.update_quantity(item.id, 2)
    store.clear_cart()

    writes = scheduler.writes_for(StorageKey.CART)
    assert writes[-3]["items"][0]["quantity"] == 1
    assert writes[-2]["items"][0]["quantity"] == 2
    assert writes[-2]["total"] == "19.06"
    assert writes[-1]["items"] == []


@pytest.mark.anyio
async def test_load_restores_items_and_rederives_totals():
    gateway = InMemoryPersistenceGateway()
    writer, _, scheduler, _ = make_stores(gateway=gateway)
    writer.add_item(make_menu_item("shake"), 2)
    await scheduler.drain()

    # tamper with the stored totals; they must be derived again on load
    saved = stored(gateway, StorageKey.CART)
    saved["total"] = "999.99"
    await gateway.set(StorageKey.CART, saved)

    reader = await CartStore.open(gateway, RecordingScheduler(), tax_rate=TAX_RATE)

    assert reader.loaded is True
    assert reader.item_count == 2
    assert reader.cart.total == Decimal("7.42")


@pytest.mark.anyio
async def test_load_ignores_unreadable_cart():
    gateway = InMemoryPersistenceGateway({StorageKey.CART: {"items": [{"name": "no id"}]}})

    store = await CartStore.open(gateway, RecordingScheduler(), tax_rate=TAX_RATE)

    assert store.cart == Cart.empty()


@pytest.mark.anyio
async def test_load_with_empty_storage_starts_empty():
    store = await CartStore.open(InMemoryPersistenceGateway(), RecordingScheduler(), tax_rate=TAX_RATE)
    assert store.cart.items == []
    assert store.cart.total == Decimal("0")
