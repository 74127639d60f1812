import pytest

from config import settings
from conftest import CUSTOMER, auth_header, set_stock, stock_of

MILK_TAG = "A1B2C3D4"


def scan(client, tag=MILK_TAG, action="add", device_id="cart-01", **extra):
    body = {"rfidTag": tag, "action": action, "deviceId": device_id, **extra}
    return client.post("/api/cart/device/rfid-scan", json=body)


def test_add_add_remove_scenario(client, store):
    set_stock(store, "1", 5)

    first = scan(client)
    assert first.status_code == 200
    assert first.json()["message"] == "Product added to cart"
    assert first.json()["cart"]["total"] == 2.99
    assert stock_of(store, "1") == 4

    second = scan(client)
    assert second.json()["cart"]["total"] == 5.98
    assert second.json()["cart"]["items"][0]["quantity"] == 2
    assert stock_of(store, "1") == 3

    third = scan(client, action="remove")
    assert third.status_code == 200
    assert third.json()["message"] == "Product removed from cart"
    assert third.json()["cart"]["total"] == 2.99
    assert stock_of(store, "1") == 4

    carts = store.load("carts")
    assert len(carts) == 1
    assert carts[0]["userId"] == settings.DEFAULT_SCAN_USER_ID
    assert carts[0]["deviceId"] == "cart-01"


def test_out_of_stock_changes_nothing(client, store):
    set_stock(store, "1", 0)

    resp = scan(client)

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Product out of stock"}
    assert stock_of(store, "1") == 0
    assert store.load("carts") == []


def test_unknown_tag(client, store):
    resp = scan(client, tag="NOPE")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Product not found"


def test_tag_lookup_ignores_case(client, store):
    resp = scan(client, tag=MILK_TAG.lower())
    assert resp.status_code == 200
    assert resp.json()["product"]["name"] == "Milk"


def test_test_tag_is_a_dry_run(client, store):
    before = (store.load("products"), store.load("carts"))

    resp = scan(client, tag=settings.TEST_RFID_TAG)

    assert resp.status_code == 200
    assert resp.json()["test"] is True
    assert (store.load("products"), store.load("carts")) == before


def test_remove_of_missing_item_keeps_stock(client, store):
    resp = scan(client, action="remove")
    assert resp.status_code == 404
    assert stock_of(store, "1") == 20


def test_bound_device_overrides_user_id(client, store, customer_headers):
    client.post("/api/cart/connect-device", json={"deviceId": "cart-01"}, headers=customer_headers)

    resp = scan(client, userId="1")

    assert resp.status_code == 200
    assert resp.json()["cart"]["userId"] == "2"
    assert [c["userId"] for c in store.load("carts")] == ["2"]


def test_user_scan_with_bearer_token(client, store, admin_headers):
    resp = client.post(
        "/api/cart/rfid-scan",
        json={"rfidTag": MILK_TAG, "action": "add"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["cart"]["userId"] == "1"


def test_scan_validation(client):
    resp = client.post("/api/cart/device/rfid-scan", json={"rfidTag": MILK_TAG, "action": "steal"})
    assert resp.status_code == 422


@pytest.fixture
def device_key(monkeypatch):
    monkeypatch.setattr(settings, "DEVICE_API_KEY", "s3cret")
    return "s3cret"


def test_device_token_required_when_configured(client, store, device_key):
    assert scan(client).status_code == 401
    assert scan(client).json()["detail"] == "Invalid or missing device token"

    resp = client.post(
        "/api/cart/device/rfid-scan",
        json={"rfidTag": MILK_TAG, "deviceId": "cart-01"},
        headers={"X-Device-Token": device_key},
    )
    assert resp.status_code == 200


def test_checkout_does_not_take_scanned_units_twice(client, store):
    scan(client)
    scan(client)
    assert stock_of(store, "1") == 18

    resp = client.post("/api/cart/checkout", headers=auth_header(CUSTOMER))

    assert resp.status_code == 200
    assert resp.json()["order"]["total"] == 5.98
    assert stock_of(store, "1") == 18
    assert store.load("carts") == []


def test_manual_remove_keeps_scanned_units_reserved(client, store, customer_headers):
    scan(client)
    assert stock_of(store, "1") == 19

    client.post("/api/cart/add", json={"productId": "1", "quantity": 2}, headers=customer_headers)
    client.post("/api/cart/remove", json={"productId": "1"}, headers=customer_headers)
    resp = client.post("/api/cart/checkout", headers=customer_headers)

    assert resp.status_code == 200
    assert resp.json()["order"]["items"][0]["quantity"] == 2
    # Two units sold in total: one taken by the scan, one at checkout
    assert stock_of(store, "1") == 18


def test_manual_remove_of_scanned_unit_restores_stock(client, store, customer_headers):
    scan(client)
    assert stock_of(store, "1") == 19

    resp = client.post("/api/cart/remove", json={"productId": "1"}, headers=customer_headers)

    assert resp.status_code == 200
    assert store.load("carts") == []
    assert stock_of(store, "1") == 20
