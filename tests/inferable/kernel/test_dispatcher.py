"""Tests for Dispatcher: decoding, invocation and outcome classification."""

from __future__ import annotations

import asyncio
import contextvars
import datetime
from typing import Any

import pytest
from pydantic import BaseModel

from inferable.kernel.dispatcher import Dispatcher
from inferable.kernel.domain.call import CallMessage, Rejection, Resolution, ResultType
from inferable.kernel.exceptions import FunctionNotFoundError, InputDecodeError
from inferable.kernel.registry import FunctionRegistry

request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="unset")


class ReverseInput(BaseModel):
    text: str


class SumInput(BaseModel):
    a: int
    b: int


class Report(BaseModel):
    total: int
    at: datetime.date


def reverse(data: ReverseInput) -> str:
    return data.text[::-1]


async def async_sum(data: SumInput) -> int:
    await asyncio.sleep(0)
    return data.a + data.b


def fails(data: SumInput) -> int:
    raise ValueError(f"cannot add {data.a} and {data.b}")


def returns_error(data: SumInput) -> Exception:
    return RuntimeError("returned, not raised")


def go_style_ok(data: SumInput) -> tuple[int, Exception | None]:
    return data.a + data.b, None


def go_style_err(data: SumInput) -> tuple[int, Exception | None]:
    return 0, ValueError("negative input")


def explicit_rejection(data: SumInput) -> Rejection:
    return Rejection("not allowed")


def explicit_resolution(data: SumInput) -> Resolution:
    return Resolution({"sum": data.a + data.b})


def plain_pair(data: SumInput) -> tuple[int, int]:
    return data.a, data.b


def report(data: SumInput) -> Report:
    return Report(total=data.a + data.b, at=datetime.date(2024, 5, 1))


def read_context(data: ReverseInput) -> str:
    return request_id.get()


@pytest.fixture
def dispatcher() -> Dispatcher:
    registry = FunctionRegistry()
    for handler in (
        reverse,
        async_sum,
        fails,
        returns_error,
        go_style_ok,
        go_style_err,
        explicit_rejection,
        explicit_resolution,
        plain_pair,
        report,
        read_context,
    ):
        registry.register("default", handler.__name__, handler)
    return Dispatcher(registry)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolution:
    """Successful outcomes."""

    @pytest.mark.asyncio
    async def test_reverse_scenario(self, dispatcher: Dispatcher) -> None:
        call = CallMessage(id="c1", function="reverse", input={"text": "Hello, Inferable!"})

        envelope = await dispatcher.ahandle("default", call)

        assert envelope.result_type is ResultType.RESOLUTION
        assert envelope.result == "!elbarefnI ,olleH"
        assert envelope.meta.function_execution_time is not None
        assert envelope.meta.function_execution_time >= 0

    @pytest.mark.asyncio
    async def test_async_handler(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "async_sum", {"a": 2, "b": 3})
        assert envelope.result == 5

    @pytest.mark.asyncio
    async def test_go_style_pair_without_error(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "go_style_ok", {"a": 1, "b": 1})
        assert envelope.result_type is ResultType.RESOLUTION
        assert envelope.result == 2

    @pytest.mark.asyncio
    async def test_explicit_resolution(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "explicit_resolution", {"a": 1, "b": 2})
        assert envelope.result == {"sum": 3}

    @pytest.mark.asyncio
    async def test_plain_tuple_is_a_value(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "plain_pair", {"a": 4, "b": 5})
        assert envelope.result_type is ResultType.RESOLUTION
        assert envelope.result == [4, 5]

    @pytest.mark.asyncio
    async def test_model_result_is_json_compatible(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "report", {"a": 1, "b": 2})
        assert envelope.result == {"total": 3, "at": "2024-05-01"}

    @pytest.mark.asyncio
    async def test_sync_handler_sees_context_vars(self, dispatcher: Dispatcher) -> None:
        token = request_id.set("req-42")
        try:
            envelope = await dispatcher.invoke("default", "read_context", {"text": ""})
        finally:
            request_id.reset(token)
        assert envelope.result == "req-42"


# ---------------------------------------------------------------------------
# Rejection
# ---------------------------------------------------------------------------


class TestRejection:
    """Failed outcomes are reported, not raised."""

    @pytest.mark.asyncio
    async def test_raised_exception(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "fails", {"a": 1, "b": 2})
        assert envelope.result_type is ResultType.REJECTION
        assert envelope.result == "cannot add 1 and 2"

    @pytest.mark.asyncio
    async def test_returned_exception(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "returns_error", {"a": 1, "b": 2})
        assert envelope.is_rejection
        assert envelope.result == "returned, not raised"

    @pytest.mark.asyncio
    async def test_go_style_pair_with_error(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "go_style_err", {"a": -1, "b": 0})
        assert envelope.is_rejection
        assert envelope.result == "negative input"

    @pytest.mark.asyncio
    async def test_explicit_rejection(self, dispatcher: Dispatcher) -> None:
        envelope = await dispatcher.invoke("default", "explicit_rejection", {"a": 1, "b": 2})
        assert envelope.is_rejection
        assert envelope.result == "not allowed"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    """Lookup and decode failures raise."""

    @pytest.mark.asyncio
    async def test_unknown_function(self, dispatcher: Dispatcher) -> None:
        call = CallMessage(id="c1", function="missing", input={})
        with pytest.raises(FunctionNotFoundError):
            await dispatcher.ahandle("default", call)

    @pytest.mark.asyncio
    async def test_unknown_service(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(FunctionNotFoundError):
            await dispatcher.invoke("other", "reverse", {"text": "x"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"text": 123}, {}, None, "just a string"])
    async def test_decode_failure(self, dispatcher: Dispatcher, payload: Any) -> None:
        with pytest.raises(InputDecodeError, match="reverse"):
            await dispatcher.invoke("default", "reverse", payload)
