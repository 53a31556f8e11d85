"""Typed payload values stored alongside each Qdrant point.

A closed union over null, bool, integer, double, string, struct and list,
discriminated by ``kind``. Every variant renders itself to the JSON form the
Qdrant REST API stores via ``to_json()``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class NullValue(BaseModel):
    kind: Literal["null"] = "null"

    def to_json(self) -> None:
        return None


class BoolValue(BaseModel):
    kind: Literal["bool"] = "bool"
    value: bool

    def to_json(self) -> bool:
        return self.value


class IntegerValue(BaseModel):
    """Signed 64-bit integer slot."""

    kind: Literal["integer"] = "integer"
    value: int

    def to_json(self) -> int:
        return self.value


class DoubleValue(BaseModel):
    """64-bit float slot."""

    kind: Literal["double"] = "double"
    value: float

    def to_json(self) -> float:
        return self.value


class StringValue(BaseModel):
    kind: Literal["string"] = "string"
    value: str

    def to_json(self) -> str:
        return self.value


class StructValue(BaseModel):
    """Mapping of UTF-8 field names to values."""

    kind: Literal["struct"] = "struct"
    fields: dict[str, "Value"] = {}

    def to_json(self) -> dict[str, Any]:
        return {key: value.to_json() for key, value in self.fields.items()}


class ListValue(BaseModel):
    """Ordered sequence of values."""

    kind: Literal["list"] = "list"
    values: list["Value"] = []

    def to_json(self) -> list[Any]:
        return [value.to_json() for value in self.values]


Value = Annotated[
    Union[NullValue, BoolValue, IntegerValue, DoubleValue, StringValue, StructValue, ListValue],
    Field(discriminator="kind"),
]

StructValue.model_rebuild()
ListValue.model_rebuild()
