from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    # Floats go through str() so 2.99 stays 2.99 instead of its binary expansion
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")


# Monetary amount: Decimal in Python, a plain JSON number on disk and on the wire
Money = Annotated[
    Decimal,
    BeforeValidator(to_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Record identifiers are strings in the JSON files; numeric ids are accepted too
Identifier = Annotated[str, BeforeValidator(str)]


# Base for every stored record and request body.
# Files and clients speak camelCase (rfidTag, userId, deviceId), Python speaks snake_case.
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Stored records keep fields they do not know about so nothing is lost on rewrite
class Record(CamelModel):
    model_config = ConfigDict(extra="allow")
