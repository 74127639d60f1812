from conftest import set_stock, stock_of


def test_cart_requires_token(client):
    resp = client.get("/api/cart")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Authentication token required"


def test_empty_cart_is_not_persisted(client, store, customer_headers):
    resp = client.get("/api/cart", headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert resp.json()["total"] == 0
    assert store.load("carts") == []


def test_add_and_remove(client, store, customer_headers):
    resp = client.post("/api/cart/add", json={"productId": "1", "quantity": 2}, headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 5.98
    # Manual adds only check stock; it is taken at checkout
    assert stock_of(store, "1") == 20

    resp = client.post("/api/cart/remove", json={"productId": "1"}, headers=customer_headers)
    assert resp.json()["items"][0]["quantity"] == 1
    assert resp.json()["total"] == 2.99

    resp = client.post("/api/cart/remove", json={"productId": "1"}, headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert store.load("carts") == []


def test_add_rejects_unknown_product_and_short_stock(client, store, customer_headers):
    resp = client.post("/api/cart/add", json={"productId": "99"}, headers=customer_headers)
    assert resp.status_code == 404

    set_stock(store, "4", 1)
    resp = client.post("/api/cart/add", json={"productId": "4", "quantity": 2}, headers=customer_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Not enough stock available"


def test_clear_cart(client, store, customer_headers):
    client.post("/api/cart/add", json={"productId": "2"}, headers=customer_headers)
    resp = client.delete("/api/cart/clear", headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["userId"] == "2"
    assert store.load("carts") == []


def test_device_clear_by_device_id(client, store, customer_headers):
    client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=customer_headers)
    client.post("/api/cart/add", json={"productId": "2"}, headers=customer_headers)

    resp = client.post("/api/cart/clear", json={"deviceId": "cart-01"})

    assert resp.status_code == 200
    assert resp.json()["userId"] == "2"
    assert store.load("carts") == []


def test_checkout_creates_order_and_takes_stock(client, store, customer_headers):
    client.post("/api/cart/add", json={"productId": "1", "quantity": 2}, headers=customer_headers)

    resp = client.post("/api/cart/checkout", headers=customer_headers)

    assert resp.status_code == 200
    order = resp.json()["order"]
    assert order["orderId"].startswith("order_")
    assert order["total"] == 5.98
    assert stock_of(store, "1") == 18
    assert store.load("carts") == []

    orders = client.get("/api/orders", headers=customer_headers).json()
    assert orders["total"] == 1
    assert orders["items"][0]["userId"] == "2"


def test_checkout_without_cart(client, customer_headers):
    resp = client.post("/api/cart/checkout", headers=customer_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Cart not found"


def test_checkout_of_bound_empty_cart(client, customer_headers):
    client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=customer_headers)
    resp = client.post("/api/cart/checkout", headers=customer_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cart is empty"


def test_orders_are_private_except_for_admin(client, customer_headers, admin_headers):
    client.post("/api/cart/add", json={"productId": "3"}, headers=admin_headers)
    client.post("/api/cart/checkout", headers=admin_headers)

    assert client.get("/api/orders", headers=customer_headers).json()["total"] == 0
    assert client.get("/api/orders", headers=admin_headers).json()["total"] == 1


def test_connect_device_last_connect_wins(client, store, customer_headers, admin_headers):
    resp = client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=customer_headers)
    assert resp.status_code == 200
    assert resp.json()["cart"]["deviceId"] == "cart-01"

    client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=admin_headers)

    status = client.get("/api/cart/device/cart-01").json()
    assert status["connected"] is True
    assert status["user"] == {"id": "1", "username": "admin"}
    assert [c["userId"] for c in store.load("carts")] == ["1"]

    devices = client.get("/api/cart/connected-devices", headers=admin_headers).json()["devices"]
    assert devices == [{"deviceId": "cart-01", "userId": "1", "cartId": store.load("carts")[0]["id"]}]


def test_disconnect_device(client, store, customer_headers):
    resp = client.post("/api/cart/disconnect-device", headers=customer_headers)
    assert resp.status_code == 404

    client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=customer_headers)
    client.post("/api/cart/add", json={"productId": "5"}, headers=customer_headers)

    resp = client.post("/api/cart/disconnect-device", headers=customer_headers)

    assert resp.status_code == 200
    assert resp.json()["cart"]["deviceId"] is None
    assert client.get("/api/cart/device/cart-01").json()["connected"] is False
    assert store.load("carts")[0]["items"][0]["name"] == "Apples"
