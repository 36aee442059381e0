"""Tests for SchemaGenerator."""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any, Literal

import pytest
from pydantic import BaseModel, Field

from inferable.kernel.exceptions import (
    InvalidHandlerError,
    SchemaGenerationError,
    SchemaReferenceError,
)
from inferable.kernel.schema import SchemaGenerator

# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class SumInput(BaseModel):
    a: int
    b: int


class Inner(BaseModel):
    d: int
    e: list[int]


class Outer(BaseModel):
    c: Inner


class Priority(Enum):
    LOW = "low"
    HIGH = "high"


class Address(BaseModel):
    """Postal address."""

    street: str
    city: str | None = None


class Rich(BaseModel):
    name: str = Field(description="Display name")
    retries: int = 3
    ratio: float | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    mode: Literal["fast", "slow"] = "fast"
    priority: Priority = Priority.LOW
    when: datetime.datetime | None = None
    extra: Any = None
    address: Address | None = None
    pair: tuple[int, str] | None = None


class Item(BaseModel):
    sku: str


class Basket(BaseModel):
    items: list[Item]


class Catalog(BaseModel):
    entries: dict[str, Item]


class TreeNode(BaseModel):
    value: int
    child: TreeNode | None = None


TreeNode.model_rebuild()


class Aliased(BaseModel):
    user_id: str = Field(alias="userId")


class Unsupported(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    handle: complex


# ---------------------------------------------------------------------------
# from_model
# ---------------------------------------------------------------------------


class TestFromModel:
    """Tests for top-level and nested object schemas."""

    def test_flat_record(self) -> None:
        assert SchemaGenerator.from_model("TestFunc", SumInput) == {
            "type": "object",
            "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
            "required": ["a", "b"],
        }

    def test_nested_record_is_inlined(self) -> None:
        assert SchemaGenerator.from_model("TestFunc2", Outer) == {
            "type": "object",
            "properties": {
                "c": {
                    "type": "object",
                    "properties": {
                        "d": {"type": "integer"},
                        "e": {"type": "array", "items": {"type": "integer"}},
                    },
                    "additionalProperties": False,
                    "required": ["d", "e"],
                }
            },
            "required": ["c"],
        }

    def test_top_level_has_no_additional_properties(self) -> None:
        assert "additionalProperties" not in SchemaGenerator.from_model("sum", SumInput)

    def test_field_types(self) -> None:
        schema = SchemaGenerator.from_model("rich", Rich)
        props = schema["properties"]

        assert schema["required"] == ["name"]
        assert props["name"] == {"type": "string", "description": "Display name"}
        assert props["retries"] == {"type": "integer", "default": 3}
        assert props["ratio"] == {"type": ["number", "null"]}
        assert props["tags"] == {"type": "object", "additionalProperties": {"type": "string"}}
        assert props["mode"] == {"type": "string", "enum": ["fast", "slow"], "default": "fast"}
        assert props["priority"] == {"type": "string", "enum": ["low", "high"]}
        assert props["when"] == {"type": ["string", "null"], "format": "date-time"}
        assert props["extra"] == {}

    def test_optional_nested_record(self) -> None:
        props = SchemaGenerator.from_model("rich", Rich)["properties"]
        address = props["address"]
        assert address["type"] == ["object", "null"]
        assert address["description"] == "Postal address."
        assert address["required"] == ["street"]
        assert address["additionalProperties"] is False

    def test_fixed_tuple(self) -> None:
        pair = SchemaGenerator.from_model("rich", Rich)["properties"]["pair"]
        assert pair["type"] == ["array", "null"]
        assert pair["prefixItems"] == [{"type": "integer"}, {"type": "string"}]
        assert pair["minItems"] == pair["maxItems"] == 2

    def test_alias_is_used_as_property_name(self) -> None:
        schema = SchemaGenerator.from_model("aliased", Aliased)
        assert list(schema["properties"]) == ["userId"]
        assert schema["required"] == ["userId"]


class TestExternalReferences:
    """Models that would need a shared $ref definition are rejected."""

    def test_array_of_records(self) -> None:
        with pytest.raises(SchemaReferenceError) as exc_info:
            SchemaGenerator.from_model("addToBasket", Basket)
        assert (
            "schema for function 'addToBasket' contains a $ref to an external definition"
            in str(exc_info.value)
        )

    def test_dict_of_records(self) -> None:
        with pytest.raises(SchemaReferenceError, match="'lookup'"):
            SchemaGenerator.from_model("lookup", Catalog)

    def test_recursive_record(self) -> None:
        with pytest.raises(SchemaReferenceError) as exc_info:
            SchemaGenerator.from_model("walk", TreeNode)
        assert exc_info.value.model_name == "TreeNode"

    def test_unsupported_type(self) -> None:
        with pytest.raises(SchemaGenerationError, match="complex"):
            SchemaGenerator.from_model("odd", Unsupported)


# ---------------------------------------------------------------------------
# for_handler
# ---------------------------------------------------------------------------


def _sum(data: SumInput) -> int:
    return data.a + data.b


async def _async_sum(data: SumInput) -> int:
    return data.a + data.b


def _two_args(a: SumInput, b: SumInput) -> int:
    return 0


def _no_args() -> int:
    return 0


def _scalar(value: int) -> int:
    return value


def _untyped(value):  # noqa: ANN001, ANN202
    return value


def _mapping(value: dict[str, Any]) -> int:
    return 0


class _CallableHandler:
    def __call__(self, data: SumInput) -> int:
        return data.a


class TestForHandler:
    """Tests for handler validation."""

    def test_sync_handler(self) -> None:
        model, schema = SchemaGenerator.for_handler("sum", _sum)
        assert model is SumInput
        assert schema["required"] == ["a", "b"]

    def test_async_handler(self) -> None:
        model, _ = SchemaGenerator.for_handler("sum", _async_sum)
        assert model is SumInput

    def test_callable_instance(self) -> None:
        model, _ = SchemaGenerator.for_handler("sum", _CallableHandler())
        assert model is SumInput

    @pytest.mark.parametrize("handler", [_two_args, _no_args])
    def test_wrong_arity(self, handler: Any) -> None:
        with pytest.raises(InvalidHandlerError, match="exactly one argument"):
            SchemaGenerator.for_handler("bad", handler)

    @pytest.mark.parametrize("handler", [_scalar, _untyped, _mapping])
    def test_non_record_input(self, handler: Any) -> None:
        with pytest.raises(InvalidHandlerError, match="pydantic model"):
            SchemaGenerator.for_handler("bad", handler)

    def test_not_callable(self) -> None:
        with pytest.raises(InvalidHandlerError, match="must be callable"):
            SchemaGenerator.for_handler("bad", "not a function")  # type: ignore[arg-type]
