# backend/routes/payment.py
import httpx
import logging
import time
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from config import settings
from storage import JsonStore, get_store
from schemas.order import PaymentOrderResponse, PaymentVerify, PaymentVerifyResponse, PaymentKey
from schemas.user import TokenData
from services.cart_service import CartService
from utils.errors import UpstreamError, ValidationFailed
from utils.razorpay_client import razorpay_client
from utils.realtime import run_and_publish
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/payment", tags=["Payment"])
logger = logging.getLogger(__name__)


# Create a gateway order for the user's cart; the cart itself is not touched
@router.post("/create-order", response_model=PaymentOrderResponse)
async def create_order(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    cart = await run_in_threadpool(CartService(store).get_cart, current_user.id)
    if not cart.items:
        raise ValidationFailed("Cart is empty")

    # The stored total should always match the lines; fall back to the lines if it does not
    cart_total = cart.total if cart.total > 0 else cart.recompute_total()
    if cart_total <= 0:
        raise ValidationFailed("Invalid cart total")

    amount = int((cart_total * 100).to_integral_value())
    receipt = f"order_{int(time.time() * 1000)}_{current_user.id}"
    logger.info(f"Creating gateway order for user {current_user.id}: {amount} {settings.PAYMENT_CURRENCY}")

    try:
        order = await razorpay_client.create_order(amount, settings.PAYMENT_CURRENCY, receipt)
    except httpx.HTTPError as e:
        logger.exception("Gateway order creation failed: %s", e)
        raise UpstreamError(f"Failed to create payment order: {e}")

    return PaymentOrderResponse(
        order_id=order["id"],
        amount=order.get("amount", amount) / 100,
        currency=order.get("currency", settings.PAYMENT_CURRENCY),
        cart_total=cart_total,
    )


# Confirm a payment and complete the checkout
@router.post("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    payload: PaymentVerify,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    if settings.PAYMENT_VERIFY_SIGNATURE and not razorpay_client.verify_signature(
        payload.order_id, payload.payment_id, payload.signature
    ):
        logger.warning(f"Payment signature verification failed for order {payload.order_id}")
        raise ValidationFailed("Payment signature verification failed")

    svc = CartService(store)
    order = await run_and_publish(svc, svc.complete_checkout, current_user.id, payload.payment_id)

    return PaymentVerifyResponse(
        message="Payment successful and order processed",
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        amount=order.total,
        order=order,
    )


@router.get("/key", response_model=PaymentKey)
def payment_key():
    return PaymentKey(key=settings.RAZORPAY_KEY_ID)
