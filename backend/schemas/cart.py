from typing import List, Literal, Optional

from pydantic import Field

from models.base import CamelModel, Identifier, Money
from models.cart import Cart
from models.product import Product

# Request schema for an RFID scan, whether it arrives over HTTP or the socket
class ScanRequest(CamelModel):
    rfid_tag: str = Field(min_length=1)
    action: Literal["add", "remove"] = "add"
    device_id: Optional[str] = None
    user_id: Optional[Identifier] = None

# Request schema for adding an item to the cart
class CartAddItem(CamelModel):
    product_id: Identifier
    quantity: int = Field(default=1, gt=0)

# Request schema for taking an item out of the cart
class CartRemoveItem(CamelModel):
    product_id: Identifier
    quantity: int = Field(default=1, gt=0)

# Device clearing its cart without a user token
class DeviceCartClear(CamelModel):
    cart_id: Optional[str] = None
    device_id: Optional[str] = None

class DeviceConnect(CamelModel):
    device_id: str = Field(min_length=1)

# Response for a processed scan
class ScanResponse(CamelModel):
    success: bool = True
    message: str
    cart: Optional[Cart] = None
    product: Optional[Product] = None
    test: bool = False
    device_id: Optional[str] = None

# Cart view returned after a cart was cleared or emptied
class CartClearResponse(CamelModel):
    success: bool = True
    message: str
    user_id: Optional[Identifier] = None
    items: List[dict] = Field(default_factory=list)
    total: Money = 0

class DeviceBindingResponse(CamelModel):
    success: bool = True
    message: str
    cart: Optional[Cart] = None

class DeviceUser(CamelModel):
    id: Identifier
    username: str

class DeviceStatus(CamelModel):
    success: bool = True
    message: str
    connected: bool
    cart: Optional[Cart] = None
    user: Optional[DeviceUser] = None

class ConnectedDevice(CamelModel):
    device_id: str
    user_id: Identifier
    cart_id: Optional[str] = None

class ConnectedDevices(CamelModel):
    success: bool = True
    devices: List[ConnectedDevice]
