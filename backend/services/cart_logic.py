# services/cart_logic.py
"""Next-state functions for cart aggregates.

Every function takes the current list of carts and returns a new list; the
input list and the carts in it are left untouched. Totals are recomputed from
the line items after every change rather than adjusted incrementally, so a
cart's total always equals the sum of its lines.
"""
import time
import uuid
from typing import List, Optional

from models.cart import Cart, CartItem
from models.product import Product
from utils.errors import NotFoundError


def new_cart_id() -> str:
    return f"cart_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def find_cart_by_user(carts: List[Cart], user_id: str) -> Optional[Cart]:
    return next((c for c in carts if c.user_id == user_id), None)


def find_cart_by_device(carts: List[Cart], device_id: Optional[str]) -> Optional[Cart]:
    if not device_id:
        return None
    return next((c for c in carts if c.device_id == device_id), None)


def _copy(carts: List[Cart]) -> List[Cart]:
    return [c.model_copy(deep=True) for c in carts]


def _without(carts: List[Cart], cart: Cart) -> List[Cart]:
    return [c for c in carts if c is not cart]


def apply_add(
    carts: List[Cart],
    user_id: str,
    device_id: Optional[str],
    product: Product,
    quantity: int = 1,
    reserve: bool = False,
) -> List[Cart]:
    """Add ``quantity`` units of ``product`` to the user's cart, creating it if needed.

    ``reserve`` marks the units as already taken from inventory (RFID scans
    decrement stock at scan time; checkout must not take them again).
    """
    updated = _copy(carts)
    cart = find_cart_by_user(updated, user_id)
    reserved = quantity if reserve else 0

    if cart is None:
        cart = Cart(id=new_cart_id(), user_id=user_id, device_id=device_id)
        updated.append(cart)
    else:
        if device_id and not cart.device_id:
            cart.device_id = device_id
        if not cart.id:
            cart.id = new_cart_id()

    item = cart.find_item(product.id)
    if item is None:
        cart.items.append(CartItem.from_product(product, quantity=quantity, reserved=reserved))
    else:
        item.quantity += quantity
        item.reserved += reserved

    cart.total = cart.recompute_total()
    return updated


def reserved_units(carts: List[Cart], user_id: str, product_id: str) -> int:
    """Units of a product in the user's cart whose stock was already taken off the shelf."""
    cart = find_cart_by_user(carts, user_id)
    item = cart.find_item(product_id) if cart else None
    return item.reserved if item else 0


def apply_remove(
    carts: List[Cart],
    user_id: str,
    product_id: str,
    quantity: int = 1,
    release_reserved: bool = False,
) -> List[Cart]:
    """Take ``quantity`` units of a product out of the user's cart.

    With ``release_reserved`` (a scan putting units back on the shelf) the
    reserved units go first. Otherwise unreserved units go first and reserved
    ones only once those run out.

    A line that runs out is dropped; a cart that runs out of lines is deleted.
    """
    updated = _copy(carts)
    cart = find_cart_by_user(updated, user_id)
    if cart is None:
        raise NotFoundError("Cart not found")

    item = cart.find_item(product_id)
    if item is None:
        raise NotFoundError("Item not found in cart")

    removed = min(quantity, item.quantity)
    if release_reserved:
        released = min(item.reserved, removed)
    else:
        released = max(0, removed - (item.quantity - item.reserved))

    item.quantity -= removed
    item.reserved -= released
    if item.quantity <= 0:
        cart.items.remove(item)

    if not cart.items:
        return _without(updated, cart)

    cart.total = cart.recompute_total()
    return updated


def apply_clear(carts: List[Cart], user_id: str) -> List[Cart]:
    cart = find_cart_by_user(carts, user_id)
    if cart is None:
        return _copy(carts)
    return _copy(_without(carts, cart))


def apply_bind(carts: List[Cart], user_id: str, device_id: str) -> List[Cart]:
    """Point ``device_id`` at the user's cart.

    If the device drives someone else's cart, that cart changes owner to
    ``user_id`` (last connect wins). Lines from a cart the user already had
    are folded into it so the user still owns a single cart.
    """
    updated = _copy(carts)
    bound = find_cart_by_device(updated, device_id)
    own = find_cart_by_user(updated, user_id)

    if bound is not None and bound.user_id != user_id:
        if own is not None:
            for line in own.items:
                existing = bound.find_item(line.id)
                if existing is None:
                    bound.items.append(line)
                else:
                    existing.quantity += line.quantity
                    existing.reserved += line.reserved
            updated = _without(updated, own)
        bound.user_id = user_id
        bound.total = bound.recompute_total()
        return updated

    if own is None:
        # Bound but still empty; the binding is what keeps it around
        updated.append(Cart(id=new_cart_id(), user_id=user_id, device_id=device_id))
        return updated

    own.device_id = device_id
    if not own.id:
        own.id = new_cart_id()
    return updated


def apply_unbind(carts: List[Cart], user_id: str) -> List[Cart]:
    updated = _copy(carts)
    cart = find_cart_by_user(updated, user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    cart.device_id = None
    if not cart.items:
        return _without(updated, cart)
    return updated
