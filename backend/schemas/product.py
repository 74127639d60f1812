# backend/schemas/product.py
from pydantic import Field
from typing import Optional

from models.base import CamelModel, Money
from models.product import Product


# Schema for creating a new product
class ProductCreate(CamelModel):
    name: str = Field(min_length=1)
    price: Money = Field(gt=0)
    rfid_tag: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    # 'image' is excluded here as it is handled via the separate upload endpoint


# Schema for partial product updates
class ProductUpdate(CamelModel):
    """All fields optional; quantity below zero is clamped to zero."""
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[Money] = Field(None, gt=0)
    rfid_tag: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = None
    weight: Optional[float] = Field(None, ge=0)


class ProductDeleteResponse(CamelModel):
    message: str
    product: Product


class ImageUploadResponse(CamelModel):
    message: str
    image_url: str
    product: Product
