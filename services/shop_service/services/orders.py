"""Order lifecycle: pending -> paid -> shipped -> completed, or pending -> cancelled.

Every transition re-checks the current status on a locked row inside the
transaction that performs the write.
"""

import uuid
from datetime import timedelta
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.emails.store import send_order_confirmation_email
from libs.common.logging import get_logger
from services.shop_service.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ShopError,
)
from services.shop_service.models import (
    AuditEntityType,
    Customer,
    InventoryReason,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductVariant,
)
from services.shop_service.schemas import OrderCreateRequest
from services.shop_service.services.audit import log_audit
from services.shop_service.services.coupons import consume_coupon
from services.shop_service.services.inventory import log_inventory_change
from services.shop_service.services.pricing import CartLine, PricingConfig, quote_cart
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

FORWARD_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
)
PAID_OR_LATER = frozenset(FORWARD_FLOW[1:])

ORDER_NUMBER_ATTEMPTS = 5


# ============================================================================
# HELPERS
# ============================================================================


async def get_or_create_customer(
    db: AsyncSession,
    auth_id: str,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    for_update: bool = False,
) -> Customer:
    query = select(Customer).where(Customer.auth_id == auth_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    customer = result.scalar_one_or_none()
    if customer is None:
        customer = Customer(auth_id=auth_id, email=email, name=name, total_spent=0)
        db.add(customer)
        await db.flush()
    return customer


async def _unique_order_number(db: AsyncSession) -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = Order.generate_order_number()
        clash = await db.execute(
            select(Order.id).where(Order.order_number == candidate)
        )
        if clash.scalar_one_or_none() is None:
            return candidate
    raise ShopError("Could not allocate an order number", status_code=500)


async def _lock_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    # populate_existing: the row may already sit in the identity map with a
    # status read before another transaction committed
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


def _stock_key(item: OrderItem) -> tuple:
    return (item.product_id, item.variant_id)


async def _lock_stock_rows(db: AsyncSession, items) -> dict:
    """Lock every product/variant the items touch, before any of them change.

    The session does not autoflush, so re-reading a row with populate_existing
    after modifying it would discard the change; all rows are read first.
    """
    rows = {}
    for item in items:
        key = _stock_key(item)
        if key in rows:
            continue
        if item.variant_id is not None:
            query = select(ProductVariant).where(ProductVariant.id == item.variant_id)
        else:
            query = select(Product).where(Product.id == item.product_id)
        result = await db.execute(
            query.with_for_update().execution_options(populate_existing=True)
        )
        rows[key] = result.scalar_one()
    return rows


async def _release_holds(db: AsyncSession, order: Order) -> None:
    rows = await _lock_stock_rows(db, order.items)
    for item in order.items:
        row = rows[_stock_key(item)]
        row.reserved = max(0, row.reserved - item.quantity)


# ============================================================================
# CHECKOUT
# ============================================================================


async def create_order(
    db: AsyncSession,
    payload: OrderCreateRequest,
    *,
    user: Optional[AuthUser],
    config: PricingConfig,
) -> Order:
    """Re-price the cart, snapshot it into a pending order and hold the stock."""
    lines = [
        CartLine(
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            selected_options=item.selected_options,
        )
        for item in payload.items
    ]

    quote = await quote_cart(
        db,
        lines,
        customer_auth_id=user.user_id if user else None,
        coupon_code=payload.coupon_code,
        config=config,
        for_update=True,
    )

    if user:
        await get_or_create_customer(
            db,
            user.user_id,
            email=payload.customer_email,
            name=payload.customer_name,
        )

    order = Order(
        order_number=await _unique_order_number(db),
        customer_auth_id=user.user_id if user else None,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        customer_address=payload.customer_address,
        billing_name=payload.billing_name,
        billing_address=payload.billing_address,
        tax_number=payload.tax_number,
        subtotal=quote.subtotal,
        coupon_code=quote.coupon_code,
        coupon_discount=quote.coupon_discount,
        loyalty_discount=quote.loyalty_discount,
        shipping_cost=quote.shipping_cost,
        total_price=quote.total,
        status=OrderStatus.PENDING,
        payment_method=payload.payment_method,
    )
    order.items = [
        OrderItem(
            product_id=line.product_id,
            variant_id=line.variant_id,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            line_total=line.line_total,
            selected_options=line.selected_options or None,
        )
        for line in quote.lines
    ]
    db.add(order)

    # Soft hold; rows are already locked and in the identity map
    for line in quote.lines:
        if line.variant_id is not None:
            row = await db.get(ProductVariant, line.variant_id)
        else:
            row = await db.get(Product, line.product_id)
        row.reserved += line.quantity

    await db.commit()

    logger.info(
        "Order %s created (total=%d, items=%d, method=%s)",
        order.order_number,
        order.total_price,
        len(order.items),
        order.payment_method.value,
    )
    return order


# ============================================================================
# TRANSITIONS
# ============================================================================


async def mark_order_paid(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    payment_reference: Optional[str] = None,
    notify: bool = True,
) -> Order:
    """Move a pending order to paid. Already-paid orders are returned unchanged.

    Posts one ORDER_PLACED ledger entry per item, releases the soft holds,
    records the coupon use and the customer's spend, all in one transaction.
    """
    order = await _lock_order(db, order_id)

    if order.status in PAID_OR_LATER:
        logger.info("Order %s already %s, skipping", order.order_number, order.status)
        return order
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransitionError("Cannot pay a cancelled order")

    await _apply_paid(db, order, payment_reference=payment_reference)
    await db.commit()
    logger.info("Order %s marked paid", order.order_number)

    if notify:
        await send_order_confirmation(order)
    return order


async def _apply_paid(
    db: AsyncSession, order: Order, *, payment_reference: Optional[str] = None
) -> None:
    """Paid-transition writes on a locked pending order. Does not commit."""
    rows = await _lock_stock_rows(db, order.items)
    for item in order.items:
        row = rows[_stock_key(item)]
        row.reserved = max(0, row.reserved - item.quantity)
        await log_inventory_change(
            db,
            product_id=item.product_id,
            variant_id=item.variant_id,
            change=-item.quantity,
            reason=InventoryReason.ORDER_PLACED,
            reference_id=str(order.id),
            row=row,
        )
        if row.stock < 0:
            logger.warning(
                "Oversold %s on order %s (stock now %d)",
                item.name,
                order.order_number,
                row.stock,
            )

    if order.coupon_code:
        await consume_coupon(db, order.coupon_code)

    if order.customer_auth_id:
        customer = await get_or_create_customer(
            db,
            order.customer_auth_id,
            email=order.customer_email,
            name=order.customer_name,
            for_update=True,
        )
        customer.total_spent += order.total_price

    order.status = OrderStatus.PAID
    order.paid_at = utc_now()
    if payment_reference:
        order.payment_reference = payment_reference


async def send_order_confirmation(order: Order) -> bool:
    try:
        return await send_order_confirmation_email(
            to_email=order.customer_email,
            customer_name=order.customer_name,
            order_number=order.order_number,
            items=[
                {
                    "name": item.name,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                }
                for item in order.items
            ],
            subtotal=order.subtotal,
            discount=order.discount_total,
            shipping_cost=order.shipping_cost,
            total=order.total_price,
        )
    except Exception:
        logger.exception(
            "Order confirmation email failed for %s", order.order_number
        )
        return False


async def cancel_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    user: Optional[AuthUser],
    reason: str = "customer",
) -> Order:
    """Cancel a pending order and release its holds.

    ``user`` is None for system cancellations (stale-order cleanup).
    """
    order = await _lock_order(db, order_id)

    if user is not None and not user.is_admin:
        if order.customer_auth_id != user.user_id:
            raise AuthorizationError("You cannot cancel this order")
    if order.status != OrderStatus.PENDING:
        raise InvalidTransitionError(
            f"Only pending orders can be cancelled (order is {order.status.value})"
        )

    await _release_holds(db, order)
    order.status = OrderStatus.CANCELLED
    order.cancelled_at = utc_now()
    order.cancel_reason = reason

    if user is not None and user.is_admin:
        log_audit(
            db,
            AuditEntityType.ORDER,
            order.id,
            "cancelled",
            user.user_id,
            old_value={"status": OrderStatus.PENDING.value},
            new_value={"status": OrderStatus.CANCELLED.value},
        )

    await db.commit()
    logger.info("Order %s cancelled (%s)", order.order_number, reason)
    return order


async def advance_order_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    *,
    user: AuthUser,
) -> Order:
    """Admin status change, one step forward at a time (or cancel)."""
    if new_status == OrderStatus.CANCELLED:
        return await cancel_order(db, order_id, user=user, reason="admin")

    order = await _lock_order(db, order_id)
    current = order.status
    if current == OrderStatus.CANCELLED:
        raise InvalidTransitionError("Order is cancelled")

    current_idx = FORWARD_FLOW.index(current)
    new_idx = FORWARD_FLOW.index(new_status)
    if new_idx != current_idx + 1:
        raise InvalidTransitionError(
            f"Cannot move order from {current.value} to {new_status.value}"
        )

    if new_status == OrderStatus.PAID:
        # Cash-on-delivery orders are confirmed by hand
        await _apply_paid(db, order)
    else:
        order.status = new_status
        if new_status == OrderStatus.SHIPPED:
            order.shipped_at = utc_now()
        elif new_status == OrderStatus.COMPLETED:
            order.completed_at = utc_now()

    log_audit(
        db,
        AuditEntityType.ORDER,
        order.id,
        "status_changed",
        user.user_id,
        old_value={"status": current.value},
        new_value={"status": new_status.value},
    )
    await db.commit()

    if new_status == OrderStatus.PAID:
        logger.info("Order %s marked paid by %s", order.order_number, user.user_id)
        await send_order_confirmation(order)
    return order


async def expire_stale_orders(
    db: AsyncSession,
    *,
    older_than: timedelta,
) -> int:
    """Cancel pending orders older than ``older_than``, one transaction each.

    A failing order is logged and left for the next run.
    """
    cutoff = utc_now() - older_than
    result = await db.execute(
        select(Order.id, Order.order_number).where(
            Order.status == OrderStatus.PENDING,
            Order.created_at < cutoff,
        )
    )
    stale = result.all()

    expired = 0
    for order_id, order_number in stale:
        try:
            await cancel_order(db, order_id, user=None, reason="expired")
            expired += 1
        except InvalidTransitionError:
            # Paid (or cancelled) between the scan and the lock
            await db.rollback()
        except (ShopError, SQLAlchemyError):
            await db.rollback()
            logger.exception("Failed to expire order %s", order_number)

    if stale:
        logger.info("Expired %d of %d stale pending orders", expired, len(stale))
    return expired


# ============================================================================
# QUERIES
# ============================================================================


async def list_orders_for_user(
    db: AsyncSession, auth_id: str, *, skip: int = 0, limit: int = 50
) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.customer_auth_id == auth_id)
        .order_by(Order.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


async def get_order_for_user(
    db: AsyncSession, order_id: uuid.UUID, user: AuthUser
) -> Order:
    order = await get_order(db, order_id)
    if not user.is_admin and order.customer_auth_id != user.user_id:
        raise NotFoundError("Order not found")
    return order


async def list_orders(
    db: AsyncSession,
    *,
    status: Optional[OrderStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Order]:
    query = select(Order).order_by(Order.created_at.desc())
    if status:
        query = query.where(Order.status == status)
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all())
