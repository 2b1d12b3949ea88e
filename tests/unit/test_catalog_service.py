from decimal import Decimal

import pytest

from storefront.core.exceptions import NotFoundError
from storefront.schemas.product import ProductCreate, ProductUpdate
from storefront.services.catalog_service import CatalogService

pytestmark = pytest.mark.anyio


def _product_data(**overrides):
    data = {
        "name": "Lamp",
        "price": Decimal("12.50"),
        "category": "home",
        "description": "Desk lamp",
        "stock_quantity": 4,
    }
    data.update(overrides)
    return data


async def test_create_assigns_id_and_keeps_fields(database):
    catalog = CatalogService(database)
    product = await catalog.create(ProductCreate(**_product_data()))

    assert product.id is not None
    fetched = await catalog.get(product.id)
    assert fetched.name == "Lamp"
    assert fetched.price == Decimal("12.50")
    assert fetched.stock_quantity == 4


async def test_list_returns_insertion_order(database):
    catalog = CatalogService(database)
    for name in ("First", "Second", "Third"):
        await catalog.create(ProductCreate(**_product_data(name=name)))

    assert [p.name for p in await catalog.list()] == ["First", "Second", "Third"]


async def test_update_replaces_every_field(database):
    catalog = CatalogService(database)
    product = await catalog.create(ProductCreate(**_product_data()))

    updated = await catalog.update(
        product.id,
        ProductUpdate(name="Floor lamp", price=Decimal("40"), category="lighting", stock_quantity=1),
    )

    assert updated.name == "Floor lamp"
    assert updated.price == Decimal("40.00")
    assert updated.category == "lighting"
    assert updated.description is None
    assert updated.stock_quantity == 1


async def test_update_unknown_product(database):
    with pytest.raises(NotFoundError) as exc_info:
        await CatalogService(database).update(404, ProductUpdate(**_product_data()))
    assert exc_info.value.message == "Product not found"


async def test_delete_twice_reports_not_found(database):
    catalog = CatalogService(database)
    product = await catalog.create(ProductCreate(**_product_data()))

    await catalog.delete(product.id)

    with pytest.raises(NotFoundError):
        await catalog.delete(product.id)
    with pytest.raises(NotFoundError):
        await catalog.get(product.id)
