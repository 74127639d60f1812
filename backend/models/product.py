# backend/models/product.py
from typing import Optional

from models.base import Record, Money, Identifier

# Model Product
# A catalogue entry carrying its RFID tag and the quantity on hand.
# Tags are expected to be unique; lookups compare them case-insensitively.
class Product(Record):
    id: Identifier
    name: str
    price: Money
    rfid_tag: str
    quantity: int = 0

    weight: Optional[float] = None
    image: Optional[str] = None

    def matches_tag(self, tag: str) -> bool:
        return self.rfid_tag.lower() == tag.lower()
