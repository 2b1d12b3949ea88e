import pytest

pytestmark = pytest.mark.anyio


async def _fill_cart(client, headers, make_product):
    widget = await make_product(name="Widget", price="10.00", stock_quantity=10)
    gizmo = await make_product(name="Gizmo", price="5.00", stock_quantity=10)
    await client.post("/cart", json={"product_id": widget.id, "quantity": 2}, headers=headers)
    await client.post("/cart", json={"product_id": gizmo.id, "quantity": 3}, headers=headers)
    return widget, gizmo


async def test_checkout_requires_token(client):
    resp = await client.post("/checkout")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}


async def test_checkout_empty_cart(client, headers):
    resp = await client.post("/checkout", headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Cart is empty"}


async def test_checkout_flow(client, user, headers, make_product):
    widget, gizmo = await _fill_cart(client, headers, make_product)

    resp = await client.post("/checkout", headers=headers)

    assert resp.status_code == 201
    order = resp.json()
    assert order["user_id"] == user.id
    assert order["total_price"] == 35.0
    assert order["status"] == "pending"

    assert (await client.get("/cart", headers=headers)).json() == []

    resp = await client.get("/orders", headers=headers)
    assert [o["id"] for o in resp.json()] == [order["id"]]

    resp = await client.get(f"/orders/{order['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["total_price"] == 35.0

    # Checkout does not decrement stock
    resp = await client.get(f"/products/{widget.id}")
    assert resp.json()["stock_quantity"] == 10


async def test_second_checkout_after_clear_is_empty(client, headers, make_product):
    await _fill_cart(client, headers, make_product)
    await client.post("/checkout", headers=headers)

    resp = await client.post("/checkout", headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Cart is empty"}


async def test_orders_newest_first(client, headers, make_product):
    product = await make_product(price="1.00")
    ids = []
    for quantity in (1, 2, 3):
        await client.post("/cart", json={"product_id": product.id, "quantity": quantity}, headers=headers)
        ids.append((await client.post("/checkout", headers=headers)).json()["id"])

    resp = await client.get("/orders", headers=headers)

    assert [o["id"] for o in resp.json()] == list(reversed(ids))


async def test_foreign_order_is_404(client, headers, make_user, make_headers, make_product):
    await _fill_cart(client, headers, make_product)
    order = (await client.post("/checkout", headers=headers)).json()
    stranger = await make_user("stranger@example.com")

    resp = await client.get(f"/orders/{order['id']}", headers=make_headers(stranger))

    assert resp.status_code == 404
    assert resp.json() == {"error": "Order not found"}


async def test_orders_require_token(client):
    assert (await client.get("/orders")).status_code == 401
    assert (await client.get("/orders/1")).status_code == 401
