import asyncio
from decimal import Decimal

import pytest

from storefront.core.exceptions import EmptyCartError, NotFoundError
from storefront.core.monitoring import metrics
from storefront.models.order import OrderStatus
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.checkout_service import CheckoutService

pytestmark = pytest.mark.anyio


@pytest.fixture
async def filled_cart(database, user, make_product):
    """10.00 x 2 + 5.00 x 3"""
    widget = await make_product(name="Widget", price="10.00", stock_quantity=10)
    gizmo = await make_product(name="Gizmo", price="5.00", stock_quantity=10)
    cart = CartService(database)
    await cart.add(user.id, widget.id, 2)
    await cart.add(user.id, gizmo.id, 3)
    return widget, gizmo


async def test_checkout_totals_cart_and_clears_it(database, user, filled_cart):
    order = await CheckoutService(database).checkout(user.id)

    assert order.id is not None
    assert order.user_id == user.id
    assert order.total_price == Decimal("35.00")
    assert order.status == OrderStatus.PENDING.value
    assert await CartService(database).list(user.id) == []
    assert metrics.get_counter("checkouts_completed_total") == 1


async def test_checkout_empty_cart(database, user):
    checkout = CheckoutService(database)

    with pytest.raises(EmptyCartError) as exc_info:
        await checkout.checkout(user.id)

    assert exc_info.value.message == "Cart is empty"
    assert await checkout.list_orders(user.id) == []
    assert metrics.get_counter("checkouts_failed_total") == 1


async def test_failure_while_clearing_rolls_back_order(database, user, filled_cart, monkeypatch):
    async def failing_clear(self, session, line_ids):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(CheckoutService, "_clear_cart", failing_clear)
    checkout = CheckoutService(database)

    with pytest.raises(RuntimeError):
        await checkout.checkout(user.id)

    assert await checkout.list_orders(user.id) == []
    assert len(await CartService(database).list(user.id)) == 2


async def test_checkout_leaves_stock_untouched(database, user, filled_cart):
    widget, gizmo = filled_cart

    await CheckoutService(database).checkout(user.id)

    catalog = CatalogService(database)
    assert (await catalog.get(widget.id)).stock_quantity == 10
    assert (await catalog.get(gizmo.id)).stock_quantity == 10


async def test_orders_listed_newest_first(database, user, make_product):
    product = await make_product(price="1.00", stock_quantity=10)
    cart = CartService(database)
    checkout = CheckoutService(database)

    await cart.add(user.id, product.id, 1)
    first = await checkout.checkout(user.id)
    await cart.add(user.id, product.id, 4)
    second = await checkout.checkout(user.id)

    orders = await checkout.list_orders(user.id)
    assert [o.id for o in orders] == [second.id, first.id]
    assert [o.total_price for o in orders] == [Decimal("4.00"), Decimal("1.00")]


async def test_get_order_is_scoped_to_owner(database, make_user, make_product):
    owner = await make_user("owner@example.com")
    stranger = await make_user("stranger@example.com")
    product = await make_product()
    await CartService(database).add(owner.id, product.id, 1)
    checkout = CheckoutService(database)
    order = await checkout.checkout(owner.id)

    assert (await checkout.get_order(owner.id, order.id)).id == order.id
    with pytest.raises(NotFoundError) as exc_info:
        await checkout.get_order(stranger.id, order.id)
    assert exc_info.value.message == "Order not found"


async def test_concurrent_checkouts_bill_the_cart_once(database, user, make_product):
    product = await make_product(price="10.00")
    await CartService(database).add(user.id, product.id, 2)
    checkout = CheckoutService(database)

    results = await asyncio.gather(
        checkout.checkout(user.id),
        checkout.checkout(user.id),
        return_exceptions=True,
    )

    orders = [r for r in results if not isinstance(r, Exception)]
    assert len(orders) == 1
    assert orders[0].total_price == Decimal("20.00")
    assert sum(isinstance(r, EmptyCartError) for r in results) == 1
    assert len(await checkout.list_orders(user.id)) == 1
    assert await CartService(database).list(user.id) == []
