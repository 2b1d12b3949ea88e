"""
Product catalog service

CRUD over products. Price and stock live here; cart and checkout only read
them.
"""
import logging
from typing import List

from sqlalchemy import select

from storefront.core.database import Database
from storefront.core.exceptions import NotFoundError
from storefront.core.utils import to_money
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND = "Product not found"


class CatalogService:
    def __init__(self, db: Database):
        self.db = db

    async def list(self) -> List[Product]:
        """All products in insertion order."""
        async with self.db.session() as session:
            result = await session.execute(select(Product).order_by(Product.id))
            return list(result.scalars().all())

    async def get(self, product_id: int) -> Product:
        async with self.db.session() as session:
            product = await session.get(Product, product_id)
        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND, details={"product_id": product_id})
        return product

    async def create(self, data: ProductCreate) -> Product:
        product = Product(**self._coerce(data))
        async with self.db.transaction() as session:
            session.add(product)
            await session.flush()  # assign PK
        logger.info(f"[catalog] Created product {product.id} ({product.name})")
        return product

    async def update(self, product_id: int, data: ProductUpdate) -> Product:
        """Full replace of every mutable field."""
        async with self.db.transaction() as session:
            product = await session.get(Product, product_id, with_for_update=True)
            if product is None:
                raise NotFoundError(PRODUCT_NOT_FOUND, details={"product_id": product_id})
            for field, value in self._coerce(data).items():
                setattr(product, field, value)
        logger.info(f"[catalog] Replaced product {product_id}")
        return product

    async def delete(self, product_id: int) -> None:
        async with self.db.transaction() as session:
            product = await session.get(Product, product_id)
            if product is None:
                raise NotFoundError(PRODUCT_NOT_FOUND, details={"product_id": product_id})
            await session.delete(product)
        logger.info(f"[catalog] Deleted product {product_id}")

    @staticmethod
    def _coerce(data: ProductCreate) -> dict:
        fields = data.model_dump()
        fields["price"] = to_money(fields["price"])
        fields["stock_quantity"] = int(fields["stock_quantity"])
        return fields
