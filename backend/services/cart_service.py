# services/cart_service.py
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from config import settings
from models.cart import Cart
from models.order import Order
from models.product import Product
from schemas.cart import (
    ScanRequest, ScanResponse, ConnectedDevice, DeviceStatus, DeviceUser,
)
from services import cart_logic
from services.scan_service import apply_scan, is_test_tag
from storage import JsonStore
from utils.errors import NotFoundError, OutOfStockError, ValidationFailed
from utils.realtime import (
    Event, CART_CONNECTED, CART_UPDATED, CHECKOUT_COMPLETE,
    INVENTORY_UPDATED, PRODUCT_SCANNED,
)

logger = logging.getLogger(__name__)


class CartService:
    """
    Use cases for the cart aggregate and the devices that drive it.

    Each command runs inside one store transaction. Events produced by a
    command are collected in ``self.events`` in emission order; the caller
    publishes them once the command has returned.
    """

    def __init__(self, store: JsonStore):
        self.store = store
        self.events: List[Event] = []

    def _emit(self, event: str, **data):
        self.events.append(Event(event=event, data=data))

    def _emit_cart_updated(self, user_id: str, carts: List[Cart]):
        cart = cart_logic.find_cart_by_user(carts, user_id)
        self._emit(
            CART_UPDATED,
            userId=user_id,
            cart=cart.to_json() if cart else None,
            carts=[c.to_json() for c in carts],
        )

    def _emit_inventory_updated(self, products: List[Product]):
        self._emit(INVENTORY_UPDATED, products=[p.to_json() for p in products])

    # =====================================================
    # QUERIES
    # =====================================================
    def get_cart(self, user_id: str) -> Cart:
        # A user without a stored cart sees an empty one; it is not persisted
        with self.store.transaction() as tx:
            cart = cart_logic.find_cart_by_user(tx.read("carts"), user_id)
        return cart or Cart(user_id=user_id)

    def device_status(self, device_id: str) -> DeviceStatus:
        with self.store.transaction() as tx:
            cart = cart_logic.find_cart_by_device(tx.read("carts"), device_id)
            if cart is None:
                return DeviceStatus(message="No active cart for this device", connected=False)
            user = next((u for u in tx.read("users") if u.id == cart.user_id), None)

        return DeviceStatus(
            message="Cart found",
            connected=True,
            cart=cart,
            user=DeviceUser(id=user.id, username=user.username) if user else None,
        )

    def connected_devices(self) -> List[ConnectedDevice]:
        with self.store.transaction() as tx:
            carts = tx.read("carts")
        return [
            ConnectedDevice(device_id=c.device_id, user_id=c.user_id, cart_id=c.id)
            for c in carts if c.device_id
        ]

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> Cart:
        with self.store.transaction() as tx:
            product = next((p for p in tx.read("products") if p.id == product_id), None)
            if product is None:
                raise NotFoundError("Product not found")
            if product.quantity < quantity:
                raise OutOfStockError("Not enough stock available")

            carts = cart_logic.apply_add(tx.read("carts"), user_id, None, product, quantity=quantity)
            tx.write("carts", carts)

        logger.info(f"Added {quantity} x {product.name} to cart of user {user_id}")
        self._emit_cart_updated(user_id, carts)
        return cart_logic.find_cart_by_user(carts, user_id)

    def remove_item(self, user_id: str, product_id: str, quantity: int = 1) -> Cart:
        with self.store.transaction() as tx:
            before = tx.read("carts")
            carts = cart_logic.apply_remove(before, user_id, product_id, quantity=quantity)
            tx.write("carts", carts)

            # Scanned units leaving the cart go back on the shelf
            released = (
                cart_logic.reserved_units(before, user_id, product_id)
                - cart_logic.reserved_units(carts, user_id, product_id)
            )
            products = None
            if released > 0:
                products = tx.read("products")
                product = next((p for p in products if p.id == product_id), None)
                if product is not None:
                    product.quantity += released
                    tx.write("products", products)

        logger.info(f"Removed {quantity} x product {product_id} from cart of user {user_id}")
        self._emit_cart_updated(user_id, carts)
        if products is not None:
            self._emit_inventory_updated(products)
        return cart_logic.find_cart_by_user(carts, user_id) or Cart(user_id=user_id)

    def clear_cart(self, user_id: str) -> None:
        with self.store.transaction() as tx:
            carts = cart_logic.apply_clear(tx.read("carts"), user_id)
            tx.write("carts", carts)
        self._emit_cart_updated(user_id, carts)

    def clear_device_cart(self, cart_id: Optional[str], device_id: Optional[str]) -> Optional[str]:
        """Drop the cart named by id, else the one bound to ``device_id``.

        Returns the owning user id, or the default scan user when nothing matched.
        """
        with self.store.transaction() as tx:
            carts = tx.read("carts")
            cart = None
            if cart_id:
                cart = next((c for c in carts if c.id == cart_id), None)
            if cart is None:
                cart = cart_logic.find_cart_by_device(carts, device_id)
            if cart is None:
                return settings.DEFAULT_SCAN_USER_ID

            carts = cart_logic.apply_clear(carts, cart.user_id)
            tx.write("carts", carts)

        logger.info(f"Device {device_id} cleared cart {cart.id}")
        self._emit_cart_updated(cart.user_id, carts)
        return cart.user_id

    def process_scan(self, scan: ScanRequest, require_binding: bool = False) -> ScanResponse:
        if is_test_tag(scan.rfid_tag):
            logger.info(f"Test tag from device {scan.device_id}, nothing modified")
            return ScanResponse(
                message="Test scan successful. This is just a test and no products were modified.",
                test=True,
                device_id=scan.device_id,
            )

        with self.store.transaction() as tx:
            outcome = apply_scan(tx, scan, require_binding=require_binding)

        self._emit(
            PRODUCT_SCANNED,
            product=outcome.product.to_json(),
            action=scan.action,
            userId=outcome.user_id,
            deviceId=scan.device_id,
        )
        self._emit_cart_updated(outcome.user_id, outcome.carts)
        self._emit_inventory_updated(outcome.products)

        verb = "added to" if scan.action == "add" else "removed from"
        return ScanResponse(
            message=f"Product {verb} cart",
            cart=outcome.cart or Cart(user_id=outcome.user_id),
            product=outcome.product,
            device_id=scan.device_id,
        )

    def connect_device(self, user_id: str, device_id: str) -> Cart:
        with self.store.transaction() as tx:
            carts = cart_logic.apply_bind(tx.read("carts"), user_id, device_id)
            tx.write("carts", carts)

        logger.info(f"Device {device_id} connected to user {user_id}")
        self._emit(
            CART_CONNECTED,
            success=True,
            userId=user_id,
            deviceId=device_id,
            message="Physical cart connected successfully",
        )
        return cart_logic.find_cart_by_user(carts, user_id)

    def disconnect_device(self, user_id: str) -> Cart:
        with self.store.transaction() as tx:
            before = cart_logic.find_cart_by_user(tx.read("carts"), user_id)
            carts = cart_logic.apply_unbind(tx.read("carts"), user_id)
            tx.write("carts", carts)

        logger.info(f"Device {before.device_id} disconnected from user {user_id}")
        cart = cart_logic.find_cart_by_user(carts, user_id)
        if cart is None:
            before.device_id = None
            cart = before
        return cart

    def update_inventory(self, product_id: str, quantity: int) -> Product:
        with self.store.transaction() as tx:
            products = tx.read("products")
            product = next((p for p in products if p.id == product_id), None)
            if product is None:
                raise NotFoundError("Product not found")
            product.quantity = max(0, quantity)
            tx.write("products", products)

        self._emit_inventory_updated(products)
        return product

    def complete_checkout(self, user_id: str, payment_id: Optional[str] = None) -> Order:
        """Turn the user's cart into an order and release it.

        Stock is taken only for units the scan path has not already taken,
        clamped at zero.
        """
        with self.store.transaction() as tx:
            carts = tx.read("carts")
            cart = cart_logic.find_cart_by_user(carts, user_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            if not cart.items:
                raise ValidationFailed("Cart is empty")

            products = tx.read("products")
            by_id = {p.id: p for p in products}
            for item in cart.items:
                product = by_id.get(item.id)
                if product is not None:
                    outstanding = max(0, item.quantity - item.reserved)
                    product.quantity = max(0, product.quantity - outstanding)

            order = Order(
                order_id=f"order_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}",
                user_id=user_id,
                items=cart.items,
                total=cart.recompute_total(),
                date=datetime.now(timezone.utc).isoformat(),
                device_id=cart.device_id,
                payment_id=payment_id,
            )
            orders = tx.read("orders")
            orders.append(order)
            carts = cart_logic.apply_clear(carts, user_id)

            tx.write("products", products)
            tx.write("orders", orders)
            tx.write("carts", carts)

        logger.info(f"Checkout of user {user_id} completed as {order.order_id}, total {order.total}")
        if order.device_id:
            self._emit(
                CHECKOUT_COMPLETE,
                deviceId=order.device_id,
                message="Checkout completed successfully",
            )
        self._emit_cart_updated(user_id, carts)
        self._emit_inventory_updated(products)
        return order
