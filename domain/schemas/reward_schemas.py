from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Literal, Optional, Union
from datetime import datetime, timezone
from decimal import Decimal

from domain.enums import CouponStatus, LoyaltyTier, RedemptionStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PercentOff(BaseModel):
    """Percentage off the whole subtotal"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["percent"] = "percent"
    value: Decimal = Field(..., ge=0, description="Percent, e.g. 10 for 10%")


class FixedOff(BaseModel):
    """Fixed amount off the subtotal, in currency units"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fixed"] = "fixed"
    value: Decimal = Field(..., ge=0)


class FreeItem(BaseModel):
    """One unit of the first cart line whose name contains match_text"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["free_item"] = "free_item"
    match_text: str = Field(..., min_length=1)


DiscountType = Annotated[
    Union[PercentOff, FixedOff, FreeItem], Field(discriminator="kind")
]


class Coupon(BaseModel):
    """Redeemable discount token"""

    id: str
    title: str
    discount: DiscountType
    status: CouponStatus = CouponStatus.AVAILABLE
    reward_id: Optional[str] = None
    redemption_id: Optional[str] = None
    code: Optional[str] = Field(None, description="Promo code for externally supplied coupons")
    created_at: datetime = Field(default_factory=_utc_now)


class Redemption(BaseModel):
    """Append-only ledger entry for a points-for-reward exchange"""

    redemption_id: str
    reward_id: str
    title: str
    cost: int = Field(..., ge=0, description="Points spent")
    status: RedemptionStatus = RedemptionStatus.ACTIVE
    created_at: datetime = Field(default_factory=_utc_now)


class RedeemableReward(BaseModel):
    """Reward offered in the loyalty catalog"""

    id: str
    name: str
    points_cost: int = Field(..., ge=0)


class LoyaltyStatus(BaseModel):
    """Loyalty profile snapshot used to seed the points balance"""

    current_points: int = Field(0, ge=0)
    lifetime_points: int = Field(0, ge=0)
    tier: LoyaltyTier = LoyaltyTier.BRONZE
    points_to_next_tier: Optional[int] = None
