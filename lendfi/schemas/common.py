from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lendfi.database import to_money

# Keeps minor units well inside a BigInteger column
MAX_AMOUNT = Decimal(10) ** 10


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


def quantize_amount(value: Decimal) -> Decimal:
    """Snap a validated amount onto the 8-place money grid.

    JSON floats such as ``0.1 + 0.2`` arrive with stray trailing digits, so
    amounts are rounded rather than rejected for their precision.
    """
    try:
        return to_money(value)
    except InvalidOperation:
        raise ValueError("Amount is out of range")


def dump(schema: Type[ApiModel], obj: Any) -> dict:
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


def dump_many(schema: Type[ApiModel], objs: Iterable[Any]) -> List[dict]:
    return [dump(schema, obj) for obj in objs]
