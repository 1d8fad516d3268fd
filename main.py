"""
Ordering engine composition root.
Builds the persistence gateway, loads the rewards and cart stores and wires
the applied-coupon subscription between them.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncIterator, Iterable, Optional

import anyio
from sqlalchemy.orm import sessionmaker

from adapters.storage import PersistenceGateway, SqlPersistenceGateway, TaskGroupScheduler
from app.config import settings
from domain.models import init_database, make_engine
from domain.schemas import Coupon, LoyaltyStatus
from services.cart_service import CartStore
from services.rewards_service import RewardsStore

_logger = logging.getLogger("ordering.main")


def configure_logging() -> None:
    """Setup logging with configured level and format; debug mode forces DEBUG"""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper())
    logging.basicConfig(level=level, format=settings.log_format)


@dataclass
class OrderingSession:
    """Explicitly owned store instances for one app session"""

    cart: CartStore
    rewards: RewardsStore
    gateway: PersistenceGateway


async def build_sql_gateway(url: Optional[str] = None) -> SqlPersistenceGateway:
    """Create the SQLite/SQL-backed gateway, making sure its table exists"""
    engine = make_engine(url)
    # Run blocking init in a thread to avoid blocking the event loop
    await anyio.to_thread.run_sync(init_database, engine)
    return SqlPersistenceGateway(sessionmaker(bind=engine, future=True))


@asynccontextmanager
async def open_session(
    gateway: Optional[PersistenceGateway] = None,
    loyalty: Optional[LoyaltyStatus] = None,
    promotions: Optional[Iterable[Coupon]] = None,
    tax_rate: Optional[Decimal] = None,
) -> AsyncIterator[OrderingSession]:
    """
    Open an ordering session.

    Both stores perform their single startup read before the session is
    yielded. Persistence writes scheduled during the session run detached on
    a task group; leaving the context waits for the pending ones to land.

    Args:
        gateway: Persistence collaborator (defaults to the SQL gateway)
        loyalty: Loyalty profile used to seed the points balance
        promotions: Externally supplied promotional coupons
        tax_rate: Override for settings.tax_rate
    """
    if gateway is None:
        gateway = await build_sql_gateway()

    async with anyio.create_task_group() as task_group:
        scheduler = TaskGroupScheduler(task_group)
        rewards = await RewardsStore.open(
            gateway, scheduler, loyalty=loyalty, promotions=promotions
        )
        cart = await CartStore.open(gateway, scheduler, rewards=rewards, tax_rate=tax_rate)
        _logger.info(
            "Ordering session ready items=%d points=%d applied=%s",
            cart.item_count,
            rewards.points,
            rewards.applied_coupon_id,
        )
        try:
            yield OrderingSession(cart=cart, rewards=rewards, gateway=gateway)
        finally:
            cart.unbind_rewards()
    _logger.info("Ordering session closed")


async def main() -> None:
    configure_logging()
    _logger.info(f"Starting {settings.app_name} in {settings.environment.value} mode")
    async with open_session() as session:
        cart = session.cart.cart
        _logger.info(
            "Cart summary items=%d subtotal=%s discount=%s tax=%s total=%s",
            session.cart.item_count,
            cart.subtotal,
            cart.discount,
            cart.tax,
            cart.total,
        )


if __name__ == "__main__":
    anyio.run(main)
