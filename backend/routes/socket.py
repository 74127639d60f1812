# backend/routes/socket.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from storage import JsonStore, get_store
from schemas.cart import ScanRequest
from schemas.socket import (
    socket_message_adapter, NodemcuConnect, NodemcuRfidScan, RfidScan,
    InventoryUpdate, PaymentCompleted,
)
from services.cart_service import CartService
from utils.device_auth import check_device_token
from utils.errors import ProductNotFoundError, SmartCartError
from utils.realtime import (
    hub, run_and_publish, CART_CONNECTED, CART_DISCONNECTED, ERROR, PRODUCT_NOT_FOUND,
)

router = APIRouter(tags=["Realtime"])
logger = logging.getLogger(__name__)

NODEMCU_CONNECTION_SUCCESS = "nodemcu_connection_success"


async def _device_connect(websocket: WebSocket, message: NodemcuConnect) -> str:
    device_id = message.data.device_id
    check_device_token(message.data.device_token)
    logger.info(f"Cart device {device_id} connected over socket")

    await hub.publish(CART_CONNECTED, {
        "success": True,
        "deviceId": device_id,
        "message": "Physical cart connected successfully",
    })
    await hub.send(websocket, NODEMCU_CONNECTION_SUCCESS, {
        "deviceId": device_id,
        "message": "Successfully connected to server",
    })
    return device_id


async def _device_scan(websocket: WebSocket, store: JsonStore, message: NodemcuRfidScan, device_id: Optional[str]):
    data = message.data
    # A socket that already introduced itself with nodemcu_connect was checked then
    if device_id is None:
        check_device_token(data.device_token)

    scan = ScanRequest(rfid_tag=data.rfid_tag, action=data.action, device_id=data.device_id)
    svc = CartService(store)
    try:
        await run_and_publish(svc, svc.process_scan, scan, require_binding=True)
    except ProductNotFoundError as e:
        await hub.send(websocket, ERROR, {"message": e.message})
        await hub.publish(PRODUCT_NOT_FOUND, {"deviceId": data.device_id, "rfidTag": data.rfid_tag})


async def _dispatch(websocket: WebSocket, store: JsonStore, message, device_id: Optional[str]) -> Optional[str]:
    """Handle one inbound message; returns the device id bound to this socket."""
    if isinstance(message, NodemcuConnect):
        return await _device_connect(websocket, message)

    if isinstance(message, NodemcuRfidScan):
        await _device_scan(websocket, store, message, device_id)
        return device_id

    svc = CartService(store)
    if isinstance(message, RfidScan):
        data = message.data
        # Same gate as an HTTP scan without a bearer token
        if device_id is None:
            check_device_token(data.device_token)
        scan = ScanRequest(
            rfid_tag=data.rfid_tag, action=data.action,
            user_id=data.user_id, device_id=data.device_id,
        )
        await run_and_publish(svc, svc.process_scan, scan)
    elif isinstance(message, InventoryUpdate):
        await run_and_publish(svc, svc.update_inventory, message.data.product_id, message.data.quantity)
    elif isinstance(message, PaymentCompleted):
        # TODO: require a user token here once clients send one over the socket
        await run_and_publish(svc, svc.complete_checkout, message.data.user_id)
    return device_id


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, store: JsonStore = Depends(get_store)):
    await hub.connect(websocket)
    device_id: Optional[str] = None
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = socket_message_adapter.validate_json(raw)
            except ValidationError as e:
                logger.warning(f"Rejected socket message: {e.error_count()} error(s)")
                await hub.send(websocket, ERROR, {
                    "message": "Invalid message",
                    "errors": [err["msg"] for err in e.errors()],
                })
                continue

            try:
                device_id = await _dispatch(websocket, store, message, device_id)
            except SmartCartError as e:
                logger.info(f"Socket '{message.event}' failed: {e.message}")
                await hub.send(websocket, ERROR, {"message": e.message})
    except WebSocketDisconnect:
        logger.info(f"Socket disconnected{f' (device {device_id})' if device_id else ''}")
    finally:
        hub.disconnect(websocket)
        # The stored binding survives; the device reconnects to the same cart
        if device_id:
            await hub.publish(CART_DISCONNECTED, {
                "deviceId": device_id,
                "message": "Physical cart disconnected",
            })
