# backend/routes/cart.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header
from fastapi.security import HTTPAuthorizationCredentials

from storage import JsonStore, get_store
from models.cart import Cart
from schemas.cart import (
    ScanRequest, ScanResponse, CartAddItem, CartRemoveItem, CartClearResponse,
    DeviceCartClear, DeviceConnect, DeviceBindingResponse, DeviceStatus, ConnectedDevices,
)
from schemas.order import CheckoutResponse
from schemas.user import TokenData
from services.cart_service import CartService
from utils.device_auth import require_device_token, check_device_token
from utils.realtime import run_and_publish
from utils.tokenJWT import bearer_scheme, decode_access_token, get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])
logger = logging.getLogger(__name__)


# Get the user's cart (an empty, unsaved one when there is none)
@router.get("", response_model=Cart)
def get_cart(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    return CartService(store).get_cart(current_user.id)


# Add item to cart; stock is checked here and taken at checkout
@router.post("/add", response_model=Cart)
async def add_to_cart(
    payload: CartAddItem,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    return await run_and_publish(svc, svc.add_item, current_user.id, payload.product_id, payload.quantity)


# Remove item from cart
@router.post("/remove", response_model=Cart)
async def remove_from_cart(
    payload: CartRemoveItem,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    return await run_and_publish(svc, svc.remove_item, current_user.id, payload.product_id, payload.quantity)


# Clear the user's cart
@router.delete("/clear", response_model=CartClearResponse)
async def clear_cart(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    await run_and_publish(svc, svc.clear_cart, current_user.id)
    return CartClearResponse(message="Cart cleared successfully", user_id=current_user.id)


# Clear cart for a physical device (no user token)
@router.post("/clear", response_model=CartClearResponse, dependencies=[Depends(require_device_token)])
async def clear_device_cart(payload: DeviceCartClear, store: JsonStore = Depends(get_store)):
    svc = CartService(store)
    user_id = await run_and_publish(svc, svc.clear_device_cart, payload.cart_id, payload.device_id)
    return CartClearResponse(message="Cart cleared successfully", user_id=user_id)


# RFID scan from physical device (no user token)
@router.post("/device/rfid-scan", response_model=ScanResponse, dependencies=[Depends(require_device_token)])
async def device_rfid_scan(payload: ScanRequest, store: JsonStore = Depends(get_store)):
    logger.info(f"RFID scan from device {payload.device_id}: tag {payload.rfid_tag}, action {payload.action}")
    svc = CartService(store)
    return await run_and_publish(svc, svc.process_scan, payload)


# Shared path used by both browsers and devices.
# A bearer token without a device id is a user scanning into their own cart.
@router.post("/rfid-scan", response_model=ScanResponse)
async def rfid_scan(
    payload: ScanRequest,
    store: JsonStore = Depends(get_store),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_device_token: Optional[str] = Header(None),
):
    if credentials is not None and not payload.device_id:
        user = decode_access_token(credentials.credentials)
        payload = payload.model_copy(update={"user_id": user.id})
        logger.info(f"Authenticated RFID scan for user {user.id}")
    else:
        check_device_token(x_device_token)

    svc = CartService(store)
    return await run_and_publish(svc, svc.process_scan, payload)


# Connect physical cart to user
@router.post("/connect-device", response_model=DeviceBindingResponse)
async def connect_device(
    payload: DeviceConnect,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    cart = await run_and_publish(svc, svc.connect_device, current_user.id, payload.device_id)
    return DeviceBindingResponse(message="Cart connection initiated", cart=cart)


# Disconnect physical cart from user
@router.post("/disconnect-device", response_model=DeviceBindingResponse)
async def disconnect_device(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    cart = await run_and_publish(svc, svc.disconnect_device, current_user.id)
    return DeviceBindingResponse(message="Cart disconnected successfully", cart=cart)


# Checkout without the payment gateway
@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    svc = CartService(store)
    order = await run_and_publish(svc, svc.complete_checkout, current_user.id)
    return CheckoutResponse(message="Checkout successful", order=order)


# Cart status by device id, polled by the device itself
@router.get("/device/{device_id}", response_model=DeviceStatus)
def device_status(device_id: str, store: JsonStore = Depends(get_store)):
    return CartService(store).device_status(device_id)


@router.get("/connected-devices", response_model=ConnectedDevices)
def connected_devices(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    return ConnectedDevices(devices=CartService(store).connected_devices())
