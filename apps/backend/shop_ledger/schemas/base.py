"""Base schema classes and shared field types."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# Money leaving the API is rounded half-up to cents and written as a JSON number.
Money = Annotated[
    Decimal,
    AfterValidator(_to_cents),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and serializes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
