from decimal import Decimal
from typing import Annotated, Union

from pydantic import BaseModel, PlainSerializer
from pydantic.alias_generators import to_camel


def _money_to_number(value: Decimal) -> Union[int, float]:
    """JSON numbers on the wire; integral amounts stay integers."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(_money_to_number, when_used="json")]


class WireModel(BaseModel):
    """Base for payloads exchanged with the fee backend (camelCase JSON)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
