"""Dispatcher - decodes a call message, invokes its handler, classifies the outcome.

Handlers may be sync or async. Async handlers are awaited directly; sync
handlers run in the default executor so they do not block the event loop
(and therefore the other services and the heartbeat).

A handler's outcome is classified structurally:

- raising an exception, or returning one, is a rejection
- returning :class:`Resolution` / :class:`Rejection` is taken as-is
- returning ``(value, err)`` where ``err`` is ``None`` or an exception is
  unpacked into a resolution or a rejection
- anything else is a resolution with the returned value
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
from typing import Any

import pydantic
from pydantic_core import to_jsonable_python

from inferable.kernel.domain.call import (
    CallMessage,
    Rejection,
    Resolution,
    ResultEnvelope,
    ResultMeta,
    ResultType,
)
from inferable.kernel.domain.function import RegisteredFunction
from inferable.kernel.exceptions import InputDecodeError
from inferable.kernel.logging import get_logger
from inferable.kernel.registry import FunctionRegistry
from inferable.kernel.utils.timer import execution_timer

logger = get_logger(__name__)


class Dispatcher:
    """Route call messages to registered handlers.

    Parameters
    ----------
    registry : FunctionRegistry
        Registry the handlers are looked up in.
    """

    def __init__(self, registry: FunctionRegistry) -> None:
        self._registry = registry

    async def ahandle(self, service_name: str, call: CallMessage) -> ResultEnvelope:
        """Handle one call message and return its result envelope.

        Args
        ----
            service_name: Service the call was fetched for
            call: The pending call

        Returns
        -------
            ResultEnvelope: Resolution or rejection with the execution time

        Raises
        ------
        FunctionNotFoundError
            If ``call.function`` is not registered for the service
        InputDecodeError
            If ``call.input`` does not validate against the input model
        """
        function = self._registry.lookup(service_name, call.function)
        logger.debug("Handling call {} ({})", call.id, function.name)
        return await self._aexecute(function, call.input)

    async def invoke(self, service_name: str, name: str, payload: Any) -> ResultEnvelope:
        """Call a registered function locally, without a control plane.

        Same lookup, decoding and classification as :meth:`ahandle`.
        """
        function = self._registry.lookup(service_name, name)
        return await self._aexecute(function, payload)

    async def _aexecute(self, function: RegisteredFunction, payload: Any) -> ResultEnvelope:
        validated_input = self._decode_input(function, payload)

        with execution_timer() as timer:
            try:
                outcome = await self._call_handler(function, validated_input)
            except Exception as e:
                logger.debug("Function '{}' raised {!r}", function.name, e)
                outcome = e

        return self._classify(outcome, timer.elapsed_ms)

    @staticmethod
    def _decode_input(function: RegisteredFunction, payload: Any) -> Any:
        try:
            return function.input_model.model_validate(payload if payload is not None else {})
        except pydantic.ValidationError as e:
            raise InputDecodeError(function.name, str(e)) from e

    @staticmethod
    async def _call_handler(function: RegisteredFunction, validated_input: Any) -> Any:
        handler = function.handler
        if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
            getattr(handler, "__call__", None)
        ):
            return await handler(validated_input)

        # Copy context so ContextVars propagate to the thread pool
        ctx = contextvars.copy_context()

        def _run_sync() -> Any:
            return handler(validated_input)

        result = await asyncio.get_running_loop().run_in_executor(None, ctx.run, _run_sync)
        if inspect.isawaitable(result):
            return await result
        return result

    @staticmethod
    def _classify(outcome: Any, elapsed_ms: int) -> ResultEnvelope:
        meta = ResultMeta(function_execution_time=elapsed_ms)

        if isinstance(outcome, Rejection):
            return _rejection(outcome.message, meta)
        if isinstance(outcome, Resolution):
            return _resolution(outcome.value, meta)
        if isinstance(outcome, BaseException):
            return _rejection(str(outcome), meta)
        if (
            isinstance(outcome, tuple)
            and len(outcome) == 2
            and (outcome[1] is None or isinstance(outcome[1], BaseException))
        ):
            value, err = outcome
            if err is not None:
                return _rejection(str(err), meta)
            return _resolution(value, meta)
        return _resolution(outcome, meta)


def _resolution(value: Any, meta: ResultMeta) -> ResultEnvelope:
    return ResultEnvelope(
        result=to_jsonable_python(value, fallback=str),
        result_type=ResultType.RESOLUTION,
        meta=meta,
    )


def _rejection(message: str, meta: ResultMeta) -> ResultEnvelope:
    return ResultEnvelope(result=message, result_type=ResultType.REJECTION, meta=meta)
