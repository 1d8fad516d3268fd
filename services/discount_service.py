"""Discount resolution for the single applied coupon"""

import logging
from decimal import Decimal
from typing import Optional, Sequence

from domain.schemas import CartItem, Coupon, FixedOff, FreeItem, PercentOff
from services.pricing import HUNDRED, ZERO, unit_total

logger = logging.getLogger("ordering.discounts")


class DiscountService:
    """Pure discount calculation. Stacking is not supported: one coupon at most."""

    @staticmethod
    def resolve(
        items: Sequence[CartItem],
        subtotal: Decimal,
        applied_coupon: Optional[Coupon],
    ) -> Decimal:
        """
        Compute the discount an applied coupon grants on a cart.

        The result always satisfies 0 <= discount <= subtotal.

        Args:
            items: Cart lines
            subtotal: Pre-discount subtotal of those lines
            applied_coupon: The applied coupon, or None

        Returns:
            Discount amount in currency units
        """
        if applied_coupon is None or subtotal <= ZERO:
            return ZERO

        discount = applied_coupon.discount

        if isinstance(discount, PercentOff):
            amount = subtotal * discount.value / HUNDRED
        elif isinstance(discount, FixedOff):
            amount = discount.value
        elif isinstance(discount, FreeItem):
            item = DiscountService.find_free_item(items, discount.match_text)
            if item is None:
                logger.debug(
                    f"Free item coupon inert: no line matches '{discount.match_text}' "
                    f"coupon_id={applied_coupon.id}"
                )
                return ZERO
            # benefit is capped at one unit regardless of the line's quantity
            amount = unit_total(item)
        else:
            logger.warning(f"Unknown discount type on coupon {applied_coupon.id}")
            return ZERO

        return max(ZERO, min(subtotal, amount))

    @staticmethod
    def find_free_item(items: Sequence[CartItem], match_text: str) -> Optional[CartItem]:
        """First line whose name contains match_text, case-insensitively"""
        needle = match_text.lower()
        for item in items:
            if needle in item.name.lower():
                return item
        return None

    @staticmethod
    def missing_item_hint(items: Sequence[CartItem], applied_coupon: Optional[Coupon]) -> Optional[str]:
        """Hint for an applied free-item coupon that currently matches nothing"""
        if applied_coupon is None or not isinstance(applied_coupon.discount, FreeItem):
            return None
        match_text = applied_coupon.discount.match_text
        if DiscountService.find_free_item(items, match_text) is not None:
            return None
        return f"Add {match_text.title()} to your order to use this coupon"
