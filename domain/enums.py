"""
Domain enums for the ordering engine.
Contains all enumeration types used across the domain schemas and stores.
"""

import enum


class CouponStatus(str, enum.Enum):
    """Coupon lifecycle: available -> applied -> available | used"""

    AVAILABLE = "available"
    APPLIED = "applied"
    USED = "used"


class RedemptionStatus(str, enum.Enum):
    """Redemption ledger entry state"""

    ACTIVE = "active"
    USED = "used"


class LoyaltyTier(str, enum.Enum):
    """Loyalty program tiers"""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class StorageKey(str, enum.Enum):
    """Keys the stores read and write through the persistence gateway.

    Values are the on-device key names; changing a stored format means
    rotating the key name, there is no migration step.
    """

    CART = "@bigboy/cart"
    REWARD_POINTS = "bb_points"
    REWARD_REDEMPTIONS = "bb_redeemed_rewards"
    REWARD_COUPONS = "bb_reward_coupons"
    APPLIED_COUPON_ID = "bb_applied_coupon_id"
