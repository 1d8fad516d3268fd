"""Loyalty points, the redemption ledger and the coupon catalog"""

from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from pydantic import ValidationError

from adapters.storage import PersistenceGateway, PersistenceScheduler
from app.config import settings
from core.base import BaseStore
from domain.enums import CouponStatus, RedemptionStatus, StorageKey
from domain.schemas import (
    Coupon,
    DiscountType,
    FixedOff,
    FreeItem,
    LoyaltyStatus,
    RedeemableReward,
    Redemption,
)

AppliedCouponListener = Callable[[Optional[Coupon]], None]

# Placeholder policy: reward name keyword -> text matched against cart line
# names. Only consulted for rewards whose name contains "free".
REWARD_KEYWORD_MATCHES: Tuple[Tuple[str, str], ...] = (
    ("fries", "fries"),
    ("salad", "salad"),
    ("burger", "burger"),
    ("shake", "shake"),
    ("dessert", "pie"),
    ("pie", "pie"),
)


def derive_coupon_discount(reward_name: str, fallback_value: Decimal) -> DiscountType:
    """Map a reward name to the discount its coupon grants"""
    name = reward_name.lower()
    if "free" in name:
        for keyword, match_text in REWARD_KEYWORD_MATCHES:
            if keyword in name:
                return FreeItem(match_text=match_text)
    return FixedOff(value=fallback_value)


def discount_key(coupon: Optional[Coupon]) -> Optional[tuple]:
    """Value identity of the discount-relevant fields of a coupon"""
    if coupon is None:
        return None
    return (coupon.id, coupon.discount)


class RewardsStore(BaseStore):
    """
    Owns the points balance, the redemption ledger, the minted coupons and
    the single applied-coupon selection.

    Coupon lifecycle: available -> applied -> available, and -> used through
    consume_coupon(). At most one coupon is applied at a time.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: PersistenceScheduler,
        seed_points: Optional[int] = None,
        loyalty: Optional[LoyaltyStatus] = None,
        promotions: Optional[Iterable[Coupon]] = None,
        fallback_coupon_value: Optional[Decimal] = None,
    ):
        super().__init__(gateway, scheduler, "ordering.rewards")
        if seed_points is None:
            seed_points = loyalty.current_points if loyalty else 0
        if seed_points < 0:
            self.log_warning("Negative points seed clamped to zero", seed_points=seed_points)
            seed_points = 0
        self.fallback_coupon_value = (
            settings.fallback_coupon_value
            if fallback_coupon_value is None
            else Decimal(str(fallback_coupon_value))
        )
        self._seed_points: int = seed_points
        # net debit against the seed, persisted under REWARD_POINTS
        self._points_delta: int = 0
        self._points: int = seed_points
        self._redemptions: List[Redemption] = []
        self._coupons: List[Coupon] = []
        self._promotions: List[Coupon] = []
        self._applied_id: Optional[str] = None
        self._listeners: List[AppliedCouponListener] = []
        self._last_key: Optional[tuple] = None
        if promotions:
            self._promotions = [c.model_copy() for c in promotions]

    @classmethod
    async def open(
        cls,
        gateway: PersistenceGateway,
        scheduler: PersistenceScheduler,
        **kwargs,
    ) -> "RewardsStore":
        """Construct and perform the one-time startup read"""
        store = cls(gateway, scheduler, **kwargs)
        await store.load()
        return store

    async def _load(self) -> None:
        saved_delta = await self.gateway.get(StorageKey.REWARD_POINTS)
        if isinstance(saved_delta, int) and not isinstance(saved_delta, bool):
            self._points_delta = saved_delta
            self._points = max(0, self._seed_points + saved_delta)
        elif saved_delta is not None:
            self.log_error("Ignoring saved points delta: expected an integer", got=type(saved_delta).__name__)

        self._redemptions = self._parse_list(
            await self.gateway.get(StorageKey.REWARD_REDEMPTIONS), Redemption, "redemptions"
        )
        self._coupons = self._parse_list(
            await self.gateway.get(StorageKey.REWARD_COUPONS), Coupon, "coupons"
        )

        saved_applied = await self.gateway.get(StorageKey.APPLIED_COUPON_ID)
        if isinstance(saved_applied, str) and saved_applied:
            self._applied_id = saved_applied

        self._sync_statuses()
        self._heal()
        self._last_key = discount_key(self._find_active(self._applied_id))
        self.log_info(
            "Rewards loaded",
            points=self._points,
            redemptions=len(self._redemptions),
            coupons=len(self._coupons),
            applied=self._applied_id,
        )

    def _parse_list(self, raw, model, label: str) -> list:
        if raw is None:
            return []
        if not isinstance(raw, list):
            self.log_error(f"Ignoring saved {label}: expected a list", got=type(raw).__name__)
            return []
        try:
            return [model.model_validate(entry) for entry in raw]
        except ValidationError as e:
            self.log_error(f"Ignoring unreadable saved {label}", errors=e.error_count())
            return []

    # --- read views ---

    @property
    def points(self) -> int:
        return self._points

    @property
    def redemptions(self) -> List[Redemption]:
        return [r.model_copy() for r in self._redemptions]

    @property
    def active_redemptions(self) -> List[Redemption]:
        return [r.model_copy() for r in self._redemptions if r.status == RedemptionStatus.ACTIVE]

    @property
    def coupons(self) -> List[Coupon]:
        """Every minted coupon, used ones included"""
        return [c.model_copy() for c in self._coupons]

    @property
    def active_coupons(self) -> List[Coupon]:
        """Non-used minted coupons plus non-used promotional coupons"""
        return [
            c.model_copy()
            for c in self._coupons + self._promotions
            if c.status != CouponStatus.USED
        ]

    @property
    def applied_coupon_id(self) -> Optional[str]:
        self._heal()
        return self._applied_id

    @property
    def applied_coupon(self) -> Optional[Coupon]:
        """The applied coupon; never a used or unknown one"""
        self._heal()
        coupon = self._find_active(self._applied_id)
        return coupon.model_copy() if coupon else None

    def can_afford(self, reward: RedeemableReward) -> bool:
        return self._points >= reward.points_cost

    # --- operations ---

    def redeem_reward(self, reward: RedeemableReward) -> Optional[Coupon]:
        """
        Exchange points for a reward and mint the matching coupon.

        Silently does nothing when the balance is too low; callers check
        can_afford() first and surface their own message.

        Returns:
            The minted coupon, or None if nothing happened
        """
        if self._points < reward.points_cost:
            self.log_debug(
                "Redemption skipped: insufficient points",
                reward_id=reward.id,
                points=self._points,
                cost=reward.points_cost,
            )
            return None

        self._points_delta -= reward.points_cost
        self._points = max(0, self._points - reward.points_cost)
        redemption = Redemption(
            redemption_id=f"red-{uuid4().hex}",
            reward_id=reward.id,
            title=reward.name,
            cost=reward.points_cost,
        )
        coupon = Coupon(
            id=f"cpn-{uuid4().hex}",
            reward_id=reward.id,
            redemption_id=redemption.redemption_id,
            title=reward.name,
            discount=derive_coupon_discount(reward.name, self.fallback_coupon_value),
        )
        self._redemptions.append(redemption)
        self._coupons.append(coupon)

        self._persist_points()
        self._persist_redemptions()
        self._persist_coupons()
        self.log_info(
            "Reward redeemed",
            reward_id=reward.id,
            cost=reward.points_cost,
            points=self._points,
            coupon_id=coupon.id,
            discount=coupon.discount.kind,
        )
        return coupon.model_copy()

    def apply_coupon(self, coupon_id: Optional[str]) -> None:
        """Select the applied coupon, or clear the selection with None"""
        if coupon_id is not None and self._find_active(coupon_id) is None:
            self.log_warning("Cannot apply unknown or used coupon", coupon_id=coupon_id)
            return
        if coupon_id == self._applied_id:
            return

        previous = self._find_active(self._applied_id)
        if previous is not None:
            previous.status = CouponStatus.AVAILABLE
        selected = self._find_active(coupon_id)
        if selected is not None:
            selected.status = CouponStatus.APPLIED
        self._applied_id = coupon_id

        self._persist_coupons()
        self._persist_applied_id()
        self.log_info("Applied coupon changed", previous=previous.id if previous else None, applied=coupon_id)
        self._notify()

    def consume_coupon(self, coupon_id: str) -> None:
        """
        External consumption event (e.g. order placed): the coupon becomes
        used and its redemption entry is closed. Used is terminal.
        """
        coupon = self._find(coupon_id)
        if coupon is None or coupon.status == CouponStatus.USED:
            self.log_debug("Consume skipped", coupon_id=coupon_id)
            return
        coupon.status = CouponStatus.USED
        if coupon.redemption_id:
            for redemption in self._redemptions:
                if redemption.redemption_id == coupon.redemption_id:
                    redemption.status = RedemptionStatus.USED
            self._persist_redemptions()
        self._persist_coupons()
        self.log_info("Coupon consumed", coupon_id=coupon_id)
        self._heal()

    def set_promotions(self, promotions: Sequence[Coupon]) -> None:
        """Replace the externally supplied promotional coupons"""
        self._promotions = [c.model_copy() for c in promotions]
        self._sync_statuses()
        self._heal()
        self._notify()

    def subscribe_applied(self, listener: AppliedCouponListener) -> Callable[[], None]:
        """
        Register a callback fired when the applied coupon's discount-relevant
        value (id and discount) changes. Returns an unsubscribe callable.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- internals ---

    def _find(self, coupon_id: Optional[str]) -> Optional[Coupon]:
        if coupon_id is None:
            return None
        for coupon in self._coupons + self._promotions:
            if coupon.id == coupon_id:
                return coupon
        return None

    def _find_active(self, coupon_id: Optional[str]) -> Optional[Coupon]:
        coupon = self._find(coupon_id)
        if coupon is None or coupon.status == CouponStatus.USED:
            return None
        return coupon

    def _sync_statuses(self) -> None:
        for coupon in self._coupons + self._promotions:
            if coupon.status == CouponStatus.USED:
                continue
            coupon.status = (
                CouponStatus.APPLIED if coupon.id == self._applied_id else CouponStatus.AVAILABLE
            )

    def _heal(self) -> None:
        if self._applied_id is None or self._find_active(self._applied_id) is not None:
            return
        self.log_info("Clearing stale applied coupon", coupon_id=self._applied_id)
        self._applied_id = None
        self._persist_applied_id()
        self._notify()

    def _notify(self) -> None:
        coupon = self._find_active(self._applied_id)
        key = discount_key(coupon)
        if key == self._last_key:
            return
        self._last_key = key
        for listener in list(self._listeners):
            listener(coupon.model_copy() if coupon else None)

    def _persist_points(self) -> None:
        self.persist(StorageKey.REWARD_POINTS, self._points_delta)

    def _persist_redemptions(self) -> None:
        self.persist(
            StorageKey.REWARD_REDEMPTIONS,
            [r.model_dump(mode="json") for r in self._redemptions],
        )

    def _persist_coupons(self) -> None:
        self.persist(
            StorageKey.REWARD_COUPONS,
            [c.model_dump(mode="json") for c in self._coupons],
        )

    def _persist_applied_id(self) -> None:
        if self._applied_id:
            self.persist(StorageKey.APPLIED_COUPON_ID, self._applied_id)
        else:
            self.forget(StorageKey.APPLIED_COUPON_ID)
