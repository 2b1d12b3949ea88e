"""
Checkout service

checkout() converts a user's cart into an order in a single transaction:

    START -> LOCKING -> (EMPTY -> ABORT | NONEMPTY -> AGGREGATING)
          -> INSERTING -> CLEARING -> COMMITTED

The user's cart lines are locked first; the total is computed over exactly
those lines and exactly those lines are deleted. A second checkout of the
same cart waits on the lock and then finds it empty. A failure in any step
rolls back the whole unit, so an order never exists without its cart having
been cleared and vice versa.

Stock is not decremented here; stock_quantity is only checked when items
are added to the cart.
"""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import Database
from storefront.core.exceptions import EmptyCartError, NotFoundError
from storefront.core.monitoring import metrics
from storefront.core.utils import to_money
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderStatus
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(self, db: Database):
        self.db = db

    async def checkout(self, user_id: int) -> Order:
        try:
            async with self.db.transaction() as session:
                line_ids = await self._lock_cart(session, user_id)
                if not line_ids:
                    raise EmptyCartError()

                total_price = await self._aggregate_total(session, line_ids)
                order = await self._insert_order(session, user_id, total_price)
                cleared = await self._clear_cart(session, line_ids)
        except Exception:
            metrics.increment("checkouts_failed_total")
            raise

        metrics.increment("checkouts_completed_total")
        logger.info(
            f"[checkout] Order {order.id} created for user {user_id}: "
            f"total={order.total_price} lines_cleared={cleared}"
        )
        return order

    async def list_orders(self, user_id: int) -> List[Order]:
        """User's orders, newest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Order)
                .where(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            return list(result.scalars().all())

    async def get_order(self, user_id: int, order_id: int) -> Order:
        async with self.db.session() as session:
            result = await session.execute(
                select(Order).where(Order.id == order_id, Order.user_id == user_id)
            )
            order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        return order

    async def _lock_cart(self, session: AsyncSession, user_id: int) -> List[int]:
        # A concurrent checkout blocks here and then finds the lines gone
        result = await session.execute(
            select(CartItem.id)
            .where(CartItem.user_id == user_id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def _aggregate_total(self, session: AsyncSession, line_ids: List[int]) -> Decimal:
        result = await session.execute(
            select(func.sum(Product.price * CartItem.quantity))
            .select_from(CartItem)
            .join(Product, CartItem.product_id == Product.id)
            .where(CartItem.id.in_(line_ids))
        )
        return to_money(result.scalar())

    async def _insert_order(self, session: AsyncSession, user_id: int, total_price: Decimal) -> Order:
        order = Order(
            user_id=user_id,
            total_price=total_price,
            status=OrderStatus.PENDING.value,
        )
        session.add(order)
        await session.flush()  # assign PK
        return order

    async def _clear_cart(self, session: AsyncSession, line_ids: List[int]) -> int:
        """Delete exactly the lines that were billed."""
        result = await session.execute(
            delete(CartItem).where(CartItem.id.in_(line_ids))
        )
        return result.rowcount or 0
