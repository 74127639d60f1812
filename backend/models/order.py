from typing import List, Optional

from pydantic import Field

from models.base import Record, Money, Identifier
from models.cart import CartItem

# Snapshot of a cart at checkout. Written once, never updated.
class Order(Record):
    order_id: str
    user_id: Identifier
    items: List[CartItem] = Field(default_factory=list)
    total: Money
    date: str
    device_id: Optional[str] = None
    payment_id: Optional[str] = None
