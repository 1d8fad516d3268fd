"""Services package - Pricing, discount and store logic"""

from services.cart_service import CartStore
from services.discount_service import DiscountService
from services.rewards_service import RewardsStore

# Note: pricing and menu_options contain utility functions, not classes

__all__ = [
    "CartStore",
    "DiscountService",
    "RewardsStore",
]
