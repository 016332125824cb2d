"""
Order settlement: turns a checked-out cart into an immutable Order row.

The caller (checkout flow) supplies the totals; they are stored as given
and not recomputed from cart prices. Cart clearing is a separate call the
client makes once the order exists.

Token-funded discounts:
  tokens_used = floor(discount * TOKENS_PER_EURO)   (1 token = EUR 0.10)
  The figure is recorded on the order only. The ledger holds the balance;
  tokens were already burned when the discount was redeemed, so settlement
  never touches the ledger and keeps no local balance counter.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.config import get_settings
from greenlake.core.logging import get_logger
from greenlake.core.metrics import orders_created
from greenlake.models.order import Order

logger = get_logger(__name__)
settings = get_settings()


def tokens_for_discount(discount: float) -> int:
    if discount <= 0:
        return 0
    return math.floor(discount * settings.TOKENS_PER_EURO)


async def _find_recent_duplicate(
    db: AsyncSession,
    user_id: int,
    total_amount: float,
    order_type: str,
    item_id: int,
    start_date: Optional[date],
    end_date: Optional[date],
) -> Optional[Order]:
    """Same order submitted twice within the idempotency window (double click, retry)."""
    since = datetime.now(timezone.utc) - timedelta(seconds=settings.ORDER_IDEMPOTENCY_WINDOW_SECONDS)
    query = select(Order).where(
        Order.user_id == user_id,
        Order.order_type == order_type,
        Order.item_id == item_id,
        Order.total_amount == total_amount,
        Order.status == "COMPLETED",
        Order.created_at >= since,
    )
    query = query.where(Order.start_date.is_(None) if start_date is None else Order.start_date == start_date)
    query = query.where(Order.end_date.is_(None) if end_date is None else Order.end_date == end_date)

    result = await db.execute(query.order_by(Order.id.desc()).limit(1))
    return result.scalar_one_or_none()


async def create_order(
    db: AsyncSession,
    user_id: int,
    total_amount: float,
    order_type: str,
    item_id: int,
    quantity: int = 1,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    additional_info: Optional[Dict[str, Any]] = None,
    payment_method: str = "CARD",
    discount: float = 0,
) -> Order:
    existing = await _find_recent_duplicate(
        db, user_id, total_amount, order_type, item_id, start_date, end_date
    )
    if existing:
        logger.info("order_deduplicated", order_id=existing.id, user_id=user_id)
        return existing

    info = dict(additional_info or {})
    if not info.get("items"):
        info.pop("items", None)

    order = Order(
        user_id=user_id,
        total_amount=total_amount,
        discount=discount,
        tokens_used=tokens_for_discount(discount),
        order_type=order_type,
        item_id=item_id,
        quantity=quantity,
        start_date=start_date,
        end_date=end_date,
        additional_info=info,
        payment_method=payment_method,
        status="COMPLETED",
    )
    db.add(order)
    await db.flush()
    await db.refresh(order)

    orders_created.labels(order_type=order_type).inc()
    logger.info(
        "order_created",
        order_id=order.id,
        user_id=user_id,
        order_type=order_type,
        total_amount=total_amount,
        discount=discount,
        tokens_used=order.tokens_used,
    )
    return order


async def list_orders(db: AsyncSession, user_id: int) -> List[Order]:
    """All orders for a user, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())
