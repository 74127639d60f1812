from typing import List, Optional

from models.base import CamelModel, Money
from models.order import Order


# Response schema for a completed checkout
class CheckoutResponse(CamelModel):
    success: bool = True
    message: str
    order: Order


# Schema for the caller's order history
class OrdersPage(CamelModel):
    items: List[Order]
    total: int


# Input schema for confirming a gateway payment
class PaymentVerify(CamelModel):
    payment_id: str
    order_id: str
    signature: Optional[str] = None


# Response schema for gateway order creation
class PaymentOrderResponse(CamelModel):
    order_id: str
    amount: float
    currency: str
    cart_total: Money


# Response schema for a verified payment
class PaymentVerifyResponse(CamelModel):
    success: bool = True
    message: str
    order_id: str
    payment_id: str
    amount: Money
    order: Order


class PaymentKey(CamelModel):
    key: str
