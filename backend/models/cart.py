# backend/models/cart.py
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from pydantic import Field

from models.base import Record, Money, Identifier, CENTS
from models.product import Product


# A line in the cart: a copy of the product as it was when added, plus a counter.
# Later price changes on the product do not reach lines already in a cart.
class CartItem(Record):
    id: Identifier
    name: str
    price: Money
    rfid_tag: Optional[str] = None
    weight: Optional[float] = None
    image: Optional[str] = None
    quantity: int = 1
    # Units whose stock was already taken off the shelf by an RFID scan
    reserved: int = 0

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1, reserved: int = 0) -> "CartItem":
        snapshot = product.model_dump(exclude={"quantity"})
        return cls(**snapshot, quantity=quantity, reserved=reserved)


# The cart aggregate: one per user, optionally driven by a physical device
class Cart(Record):
    id: Optional[str] = None
    user_id: Identifier
    device_id: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    total: Money = Decimal("0.00")

    def find_item(self, product_id: str) -> Optional[CartItem]:
        return next((it for it in self.items if it.id == product_id), None)

    def recompute_total(self) -> Decimal:
        total = sum((it.price * it.quantity for it in self.items), Decimal("0.00"))
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)
