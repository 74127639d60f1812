# services/scan_service.py
import logging
from dataclasses import dataclass
from typing import List, Optional

from config import settings
from models.cart import Cart
from models.product import Product
from schemas.cart import ScanRequest
from services.cart_logic import apply_add, apply_remove, find_cart_by_device, find_cart_by_user
from storage import StoreTransaction
from utils.errors import OutOfStockError, ProductNotFoundError, NotFoundError, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class ScanOutcome:
    user_id: str
    product: Product
    cart: Optional[Cart]  # None when the scan emptied and deleted the cart
    carts: List[Cart]
    products: List[Product]


def is_test_tag(rfid_tag: str) -> bool:
    return rfid_tag == settings.TEST_RFID_TAG


def resolve_user(carts: List[Cart], scan: ScanRequest, require_binding: bool = False) -> str:
    # A device that already drives a cart decides whose cart it is
    bound = find_cart_by_device(carts, scan.device_id)
    if bound is not None:
        return bound.user_id
    if require_binding:
        raise NotFoundError("No cart found for this device")
    if scan.user_id:
        return scan.user_id
    if settings.DEFAULT_SCAN_USER_ID:
        return settings.DEFAULT_SCAN_USER_ID
    raise ValidationFailed("User ID or a connected device is required")


def find_product_by_tag(products: List[Product], rfid_tag: str) -> Optional[Product]:
    return next((p for p in products if p.matches_tag(rfid_tag)), None)


def apply_scan(tx: StoreTransaction, scan: ScanRequest, require_binding: bool = False) -> ScanOutcome:
    """Resolve a scan to a product and apply it to inventory and the cart.

    Both collections are staged on ``tx`` and written together when the
    caller's transaction closes. Any rejection raises before anything is
    staged.
    """
    carts = tx.read("carts")
    user_id = resolve_user(carts, scan, require_binding)

    products = tx.read("products")
    product = find_product_by_tag(products, scan.rfid_tag)
    if product is None:
        logger.warning(f"Unknown RFID tag {scan.rfid_tag} from device {scan.device_id}")
        raise ProductNotFoundError()

    logger.info(
        f"Cart operation: user {user_id}, device {scan.device_id}, "
        f"action {scan.action}, product {product.name}"
    )

    if scan.action == "add":
        if product.quantity <= 0:
            logger.warning(f"Rejected scan of {product.name}: out of stock")
            raise OutOfStockError()
        product.quantity -= 1
        carts = apply_add(carts, user_id, scan.device_id, product, reserve=True)
    else:
        carts = apply_remove(carts, user_id, product.id, release_reserved=True)
        # No upper bound: a remove always puts one unit back on the shelf
        product.quantity += 1

    tx.write("products", products)
    tx.write("carts", carts)

    return ScanOutcome(
        user_id=user_id,
        product=product,
        cart=find_cart_by_user(carts, user_id),
        carts=carts,
        products=products,
    )
