import os
import tempfile

# Settings are read at import time; point them away from the real data files first
_scratch = tempfile.mkdtemp(prefix="smartcart-tests-")
os.environ["DATA_DIR"] = os.path.join(_scratch, "data")
os.environ["UPLOAD_DIR"] = os.path.join(_scratch, "images")
os.environ["DEVICE_API_KEY"] = ""
os.environ["PAYMENT_VERIFY_SIGNATURE"] = "false"

import pytest
from fastapi.testclient import TestClient

from main import app
from storage import JsonStore, get_store, init_store
from utils.tokenJWT import create_access_token

ADMIN = {"id": "1", "username": "admin", "role": "admin"}
CUSTOMER = {"id": "2", "username": "customer", "role": "customer"}


def auth_header(identity: dict) -> dict:
    token = create_access_token({"sub": identity["id"], **identity})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store(tmp_path):
    s = JsonStore(tmp_path / "data", lock_timeout=1.0)
    init_store(s)
    return s


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return auth_header(ADMIN)


@pytest.fixture
def customer_headers():
    return auth_header(CUSTOMER)


def set_stock(store: JsonStore, product_id: str, quantity: int):
    with store.transaction() as tx:
        products = tx.read("products")
        for p in products:
            if p.id == product_id:
                p.quantity = quantity
        tx.write("products", products)


def stock_of(store: JsonStore, product_id: str) -> int:
    return next(p["quantity"] for p in store.load("products") if p["id"] == product_id)
