from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from models.base import CamelModel, Identifier

# Inbound socket messages: {"event": <name>, "data": {...}}, told apart by "event"

class DeviceHello(CamelModel):
    device_id: str = Field(min_length=1)
    device_token: Optional[str] = None

class NodemcuConnect(CamelModel):
    event: Literal["nodemcu_connect"]
    data: DeviceHello


class DeviceScan(CamelModel):
    rfid_tag: str = Field(min_length=1)
    device_id: str = Field(min_length=1)
    action: Literal["add", "remove"] = "add"
    device_token: Optional[str] = None

class NodemcuRfidScan(CamelModel):
    event: Literal["nodemcu_rfid_scan"]
    data: DeviceScan


class ClientScan(CamelModel):
    rfid_tag: str = Field(min_length=1)
    action: Literal["add", "remove"] = "add"
    user_id: Optional[Identifier] = None
    device_id: Optional[str] = None
    device_token: Optional[str] = None

class RfidScan(CamelModel):
    event: Literal["rfid_scan"]
    data: ClientScan


class StockLevel(CamelModel):
    product_id: Identifier
    quantity: int

class InventoryUpdate(CamelModel):
    event: Literal["inventory_update"]
    data: StockLevel


class PaidUser(CamelModel):
    user_id: Identifier

class PaymentCompleted(CamelModel):
    event: Literal["payment_completed"]
    data: PaidUser


SocketMessage = Annotated[
    Union[NodemcuConnect, NodemcuRfidScan, RfidScan, InventoryUpdate, PaymentCompleted],
    Field(discriminator="event"),
]

socket_message_adapter = TypeAdapter(SocketMessage)
