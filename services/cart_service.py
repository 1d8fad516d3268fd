"""Cart state and totals"""

from decimal import Decimal
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING
from uuid import uuid4

from pydantic import ValidationError

from adapters.storage import PersistenceGateway, PersistenceScheduler
from app.config import settings
from core.base import BaseStore
from domain.enums import StorageKey
from domain.schemas import Cart, CartItem, CartItemModifier, Coupon, MenuItem
from services.discount_service import DiscountService
from services.menu_options import get_add_on_options, get_ingredient_options
from services.pricing import (
    ZERO,
    calculate_tax,
    calculate_total,
    line_total,
    normalize_price,
)

if TYPE_CHECKING:
    from services.rewards_service import RewardsStore


class CartStore(BaseStore):
    """
    Owns the cart lines and keeps subtotal, discount, tax and total derived
    from them. Totals are recomputed on every mutation and whenever the
    applied coupon changes; they are never computed lazily on read.

    Each mutation updates memory first and then schedules a detached write
    of the whole cart. A failed write never rolls the cart back.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: PersistenceScheduler,
        tax_rate: Optional[Decimal] = None,
    ):
        super().__init__(gateway, scheduler, "ordering.cart")
        self.tax_rate = settings.tax_rate if tax_rate is None else Decimal(str(tax_rate))
        self._cart = Cart.empty()
        self._applied_coupon: Optional[Coupon] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @classmethod
    async def open(
        cls,
        gateway: PersistenceGateway,
        scheduler: PersistenceScheduler,
        rewards: Optional["RewardsStore"] = None,
        tax_rate: Optional[Decimal] = None,
    ) -> "CartStore":
        """Construct, perform the one-time startup read and follow rewards"""
        store = cls(gateway, scheduler, tax_rate=tax_rate)
        await store.load()
        if rewards is not None:
            store.bind_rewards(rewards)
        return store

    async def _load(self) -> None:
        saved = await self.gateway.get(StorageKey.CART)
        if saved is None:
            return
        try:
            cart = Cart.model_validate(saved)
        except ValidationError as e:
            self.log_error("Discarding unreadable saved cart", errors=e.error_count())
            return
        # stored totals are not trusted; they are re-derived from the lines
        self._cart = self._derive(cart.items)
        self.log_info("Cart loaded", items=len(cart.items), total=self._cart.total)

    # --- coupon subscription ---

    def bind_rewards(self, rewards: "RewardsStore") -> None:
        """Follow the rewards store's applied coupon and recompute on change"""
        self.unbind_rewards()
        self._unsubscribe = rewards.subscribe_applied(self.on_applied_coupon_changed)
        self.on_applied_coupon_changed(rewards.applied_coupon)

    def unbind_rewards(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_applied_coupon_changed(self, coupon: Optional[Coupon]) -> None:
        self._applied_coupon = coupon
        self.log_debug("Applied coupon observed", coupon_id=coupon.id if coupon else None)
        self._commit(self._cart.items)

    # --- read views ---

    @property
    def cart(self) -> Cart:
        return self._cart.model_copy(deep=True)

    @property
    def applied_coupon(self) -> Optional[Coupon]:
        return self._applied_coupon

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._cart.items)

    @property
    def discount_hint(self) -> Optional[str]:
        """Actionable hint when the applied free-item coupon matches no line"""
        return DiscountService.missing_item_hint(self._cart.items, self._applied_coupon)

    def get_item_total(self, item: CartItem) -> Decimal:
        """Line total, computed exactly as in the subtotal"""
        return line_total(item)

    # --- mutations ---

    def add_item(
        self,
        menu_item: MenuItem,
        quantity: int,
        modifiers: Optional[Sequence[CartItemModifier]] = None,
        special_instructions: Optional[str] = None,
        selected_ingredients: Optional[List[str]] = None,
        selected_add_ons: Optional[List[str]] = None,
    ) -> CartItem:
        """
        Append a new line for a menu item. Quantity is trusted to be >= 1 and
        the item is not checked against the catalog.

        Returns:
            A copy of the created line
        """
        item = CartItem(
            id=f"cart-{uuid4().hex}",
            menu_item_id=menu_item.id,
            name=menu_item.name,
            unit_price=normalize_price(menu_item.price),
            quantity=quantity,
            modifiers=[m.model_copy() for m in modifiers or []],
            special_instructions=special_instructions,
            image=menu_item.image_url,
            ingredient_options=get_ingredient_options(menu_item),
            selected_ingredients=list(selected_ingredients) if selected_ingredients is not None else None,
            add_on_options=get_add_on_options(menu_item),
            selected_add_ons=list(selected_add_ons) if selected_add_ons is not None else None,
        )
        self._commit(self._cart.items + [item])
        self.log_info(
            "Item added",
            cart_item_id=item.id,
            menu_item_id=item.menu_item_id,
            quantity=quantity,
            subtotal=self._cart.subtotal,
        )
        return item.model_copy(deep=True)

    def remove_item(self, cart_item_id: str) -> None:
        items = [item for item in self._cart.items if item.id != cart_item_id]
        if len(items) == len(self._cart.items):
            self.log_debug("Remove skipped: unknown line", cart_item_id=cart_item_id)
            return
        self._commit(items)
        self.log_info("Item removed", cart_item_id=cart_item_id, subtotal=self._cart.subtotal)

    def update_quantity(self, cart_item_id: str, quantity: int) -> None:
        """Set a line's quantity. Values below 1 are ignored; use remove_item."""
        if quantity < 1:
            self.log_debug("Quantity update ignored", cart_item_id=cart_item_id, quantity=quantity)
            return
        item = self._find(cart_item_id)
        if item is None:
            return
        item.quantity = quantity
        self._commit(self._cart.items)
        self.log_info("Quantity updated", cart_item_id=cart_item_id, quantity=quantity)

    def update_item_instructions(self, cart_item_id: str, special_instructions: Optional[str]) -> None:
        item = self._find(cart_item_id)
        if item is None:
            return
        item.special_instructions = special_instructions
        self._commit(self._cart.items)

    def update_item_ingredients(self, cart_item_id: str, selected_ingredients: Optional[List[str]]) -> None:
        item = self._find(cart_item_id)
        if item is None:
            return
        item.selected_ingredients = list(selected_ingredients) if selected_ingredients is not None else None
        self._commit(self._cart.items)

    def update_item_add_ons(self, cart_item_id: str, selected_add_ons: Optional[List[str]]) -> None:
        # add-on names only; any price delta is already carried by modifiers
        item = self._find(cart_item_id)
        if item is None:
            return
        item.selected_add_ons = list(selected_add_ons) if selected_add_ons is not None else None
        self._commit(self._cart.items)

    def clear_cart(self) -> None:
        self._commit([])
        self.log_info("Cart cleared")

    # --- internals ---

    def _find(self, cart_item_id: str) -> Optional[CartItem]:
        for item in self._cart.items:
            if item.id == cart_item_id:
                return item
        self.log_debug("Unknown cart line", cart_item_id=cart_item_id)
        return None

    def _derive(self, items: List[CartItem]) -> Cart:
        subtotal = sum((line_total(item) for item in items), ZERO)
        discount = DiscountService.resolve(items, subtotal, self._applied_coupon)
        tax = calculate_tax(subtotal, discount, self.tax_rate)
        return Cart(
            items=list(items),
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total=calculate_total(subtotal, discount, tax),
        )

    def _commit(self, items: List[CartItem]) -> None:
        self._cart = self._derive(items)
        self.persist(StorageKey.CART, self._cart.model_dump(mode="json"))
