"""
Cart service

Stock check and quantity upsert run in one transaction while holding a
FOR UPDATE lock on the product row (on SQLite the gateway's BEGIN IMMEDIATE
takes the database write lock instead). Concurrent adds for the same product
are serialised on that lock, so the stock check always sees the committed
cart quantity and a user's line can never grow past available stock.

The quantity itself is accumulated in SQL with INSERT ... ON CONFLICT DO
UPDATE, never read back and rewritten from Python.

The stock gate compares the accumulated quantity (existing line + request)
to stock_quantity. Carts do not reserve stock across users.
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import Database
from storefront.core.exceptions import InsufficientStockError, NotFoundError
from storefront.core.monitoring import metrics
from storefront.core.utils import to_money
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.schemas.cart import CartLineResponse

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, db: Database):
        self.db = db

    async def list(self, user_id: int) -> List[CartLineResponse]:
        """User's cart lines joined with product name and price."""
        async with self.db.session() as session:
            result = await session.execute(
                select(
                    CartItem.id,
                    CartItem.product_id,
                    CartItem.quantity,
                    Product.name,
                    Product.price,
                )
                .join(Product, CartItem.product_id == Product.id)
                .where(CartItem.user_id == user_id)
                .order_by(CartItem.id)
            )
            rows = result.all()

        return [
            CartLineResponse(
                id=row.id,
                product_id=row.product_id,
                quantity=row.quantity,
                name=row.name,
                price=to_money(row.price),
                total=to_money(to_money(row.price) * row.quantity),
            )
            for row in rows
        ]

    async def add(self, user_id: int, product_id: int, quantity: int) -> CartItem:
        """
        Add quantity of a product to the user's cart.

        Raises NotFoundError if the product does not exist and
        InsufficientStockError if the resulting line would exceed stock.
        Either way the transaction is rolled back and the cart is unchanged.
        """
        async with self.db.transaction() as session:
            # Pessimistic lock prevents concurrent overselling
            result = await session.execute(
                select(Product)
                .where(Product.id == product_id)
                .with_for_update()
            )
            product = result.scalar_one_or_none()

            if product is None:
                metrics.increment("cart_add_rejected_total", labels={"reason": "not_found"})
                raise NotFoundError("Product not found", details={"product_id": product_id})

            # Read while holding the product lock
            result = await session.execute(
                select(CartItem.quantity).where(
                    CartItem.user_id == user_id,
                    CartItem.product_id == product_id,
                )
            )
            in_cart = result.scalar_one_or_none() or 0

            total_requested = quantity + in_cart
            if total_requested > product.stock_quantity:
                metrics.increment("cart_add_rejected_total", labels={"reason": "insufficient_stock"})
                logger.info(
                    f"[cart] Rejected add for user {user_id}: product {product_id} "
                    f"requested={total_requested} available={product.stock_quantity}"
                )
                raise InsufficientStockError(
                    product_id=product_id,
                    requested=total_requested,
                    available=product.stock_quantity,
                )

            line_id = await self._upsert_line(session, user_id, product_id, quantity)
            line = await session.get(CartItem, line_id, populate_existing=True)

        metrics.increment("cart_items_added_total")
        logger.info(f"[cart] User {user_id} now has {line.quantity} x product {product_id}")
        return line

    async def _upsert_line(self, session: AsyncSession, user_id: int, product_id: int, quantity: int) -> int:
        """Insert the line or add to its quantity in one statement."""
        insert = pg_insert if self.db.engine.dialect.name == "postgresql" else sqlite_insert
        stmt = insert(CartItem).values(user_id=user_id, product_id=product_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CartItem.user_id, CartItem.product_id],
            set_={"quantity": CartItem.quantity + stmt.excluded.quantity},
        ).returning(CartItem.id)
        result = await session.execute(stmt)
        return result.scalar_one()
