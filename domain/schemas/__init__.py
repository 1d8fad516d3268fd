"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.cart_schemas import (
    AddOnOption,
    Cart,
    CartItem,
    CartItemModifier,
    MenuCategoryRef,
    MenuItem,
    Modifier,
    ModifierGroup,
)
from domain.schemas.reward_schemas import (
    Coupon,
    DiscountType,
    FixedOff,
    FreeItem,
    LoyaltyStatus,
    PercentOff,
    RedeemableReward,
    Redemption,
)

__all__ = [
    # Cart schemas
    "AddOnOption",
    "Cart",
    "CartItem",
    "CartItemModifier",
    "MenuCategoryRef",
    "MenuItem",
    "Modifier",
    "ModifierGroup",
    # Reward schemas
    "Coupon",
    "DiscountType",
    "FixedOff",
    "FreeItem",
    "LoyaltyStatus",
    "PercentOff",
    "RedeemableReward",
    "Redemption",
]
