"""Service - registration handshake and the polling execution loop.

A :class:`Service` groups functions under a name. Once started, it registers
its functions with the control plane and runs one background task that
repeatedly:

1. waits the current backoff (interruptible by :meth:`Service.astop`)
2. fetches a bounded batch of pending calls
3. dispatches and persists each call independently, in order

The backoff is server-driven: a numeric ``Retry-After`` header on the
handshake or on a fetch replaces it. A fetch failure counts towards
``max_consecutive_poll_failures``; past that limit the loop stops itself.

Usage::

    service = client.register_service("billing")

    @service.function(description="Refund an order")
    def refund(order: RefundInput) -> dict:
        ...

    await service.astart()
    ...
    await service.astop()
"""

from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Callable
from typing import Any, TypeVar

import pydantic

from inferable.kernel.config.models import InferableConfig
from inferable.kernel.dispatcher import Dispatcher
from inferable.kernel.domain.call import CallMessage, ResultEnvelope
from inferable.kernel.domain.function import FunctionConfig, RegisteredFunction
from inferable.kernel.domain.machine import (
    FunctionDefinition,
    MachineRegistration,
    MachineRegistrationRequest,
    ServiceState,
)
from inferable.kernel.exceptions import (
    HandshakeError,
    InferableError,
    InvalidTransitionError,
    MessageHandlingError,
    PersistResultError,
    PollCycleError,
    PollFetchError,
    ServiceStartError,
)
from inferable.kernel.logging import get_logger
from inferable.kernel.ports.transport import Transport, TransportResponse
from inferable.kernel.registry import FunctionRegistry

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_STARTABLE_STATES = frozenset({ServiceState.UNREGISTERED, ServiceState.STOPPED})


def parse_retry_after(response: TransportResponse) -> float | None:
    """Return the ``Retry-After`` header in seconds, or ``None`` if absent or not numeric."""
    value = response.header("Retry-After")
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After header: {!r}", value)
        return None
    return seconds if seconds >= 0 else None


class Service:
    """A named group of functions polled from the control plane.

    Services are created by :class:`~inferable.client.Inferable` and share
    its registry, dispatcher and transport.

    Parameters
    ----------
    name : str
        Service name, unique within the client.
    registry : FunctionRegistry
        Registry the functions are stored in.
    dispatcher : Dispatcher
        Dispatcher used to execute fetched calls.
    transport : Transport
        Control-plane transport.
    config : InferableConfig
        Poll limit, default backoff and failure limit.
    headers : dict[str, str] | None
        Headers sent with every request (machine identification).
    on_start : Callable[[], Any] | None
        Called after a successful start; the client uses it to start its
        heartbeat.
    """

    def __init__(
        self,
        name: str,
        *,
        registry: FunctionRegistry,
        dispatcher: Dispatcher,
        transport: Transport,
        config: InferableConfig,
        headers: dict[str, str] | None = None,
        on_start: Callable[[], Any] | None = None,
    ) -> None:
        self._name = name
        self._registry = registry
        self._dispatcher = dispatcher
        self._transport = transport
        self._config = config
        self._headers = dict(headers) if headers else {}
        self._on_start = on_start

        self._state = ServiceState.UNREGISTERED
        self._cluster_id: str | None = None
        self._retry_after = config.default_retry_after
        self._consecutive_failures = 0
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"Service(name={self._name!r}, state={self._state.value!r})"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def cluster_id(self) -> str | None:
        """Cluster negotiated by the last successful handshake."""
        return self._cluster_id

    @property
    def retry_after(self) -> float:
        """Current backoff in seconds between two poll cycles."""
        return self._retry_after

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def is_polling(self) -> bool:
        return self._state is ServiceState.POLLING

    @property
    def functions(self) -> list[RegisteredFunction]:
        return self._registry.functions(self._name)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_func(
        self,
        name: str,
        handler: Callable[[Any], Any],
        description: str = "",
        config: FunctionConfig | dict[str, Any] | None = None,
    ) -> RegisteredFunction:
        """Register ``handler`` under ``name`` in this service.

        Registration errors (duplicate name, invalid handler, unsupported
        schema) are raised immediately.
        """
        return self._registry.register(
            self._name, name, handler, description=description, config=config
        )

    def function(
        self,
        name: str | None = None,
        description: str | None = None,
        config: FunctionConfig | dict[str, Any] | None = None,
    ) -> Callable[[F], F]:
        """Decorator form of :meth:`register_func`.

        The function name defaults to ``__name__`` and the description to the
        first line of the docstring. The decorated callable is returned
        unchanged.

        Examples
        --------
        Example usage::

            @client.default.function()
            def reverse(data: ReverseInput) -> str:
                '''Reverse a string.'''
                return data.text[::-1]
        """

        def decorator(func: F) -> F:
            doc = inspect.getdoc(func) or ""
            self.register_func(
                name or func.__name__,
                func,
                description=description if description is not None else doc.split("\n")[0],
                config=config,
            )
            return func

        return decorator

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def astart(self) -> None:
        """Register with the control plane and start the poll loop.

        Raises
        ------
        InvalidTransitionError
            If the service is already starting, polling or stopping
        ServiceStartError
            If no functions are registered
        HandshakeError
            If the registration handshake fails; the service stays unregistered
        """
        if self._state not in _STARTABLE_STATES:
            raise InvalidTransitionError(
                f"cannot start service '{self._name}' in state '{self._state.value}'"
            )

        functions = self._registry.functions(self._name)
        if not functions:
            raise ServiceStartError(f"cannot start service '{self._name}': no functions registered")

        self._state = ServiceState.REGISTERING
        self._stop_event.clear()
        try:
            response = await self._transport.arequest(
                "POST",
                "/machines",
                headers=self._headers,
                json=self._registration_request(functions).to_payload(),
            )
            registration = MachineRegistration.model_validate(response.body)
        except (InferableError, pydantic.ValidationError) as e:
            self._state = ServiceState.UNREGISTERED
            raise HandshakeError(self._name, e) from e

        self._cluster_id = registration.cluster_id
        retry_after = parse_retry_after(response)
        self._retry_after = (
            retry_after if retry_after is not None else self._config.default_retry_after
        )
        self._consecutive_failures = 0
        if self._stop_event.is_set():
            self._state = ServiceState.STOPPED
            logger.info("Service '{}' stopped before polling started", self._name)
            return

        self._state = ServiceState.POLLING
        self._task = asyncio.create_task(self._arun(), name=f"inferable-poll-{self._name}")

        logger.info(
            "Service '{}' started and polling for messages (cluster {})",
            self._name,
            self._cluster_id,
        )

        if self._on_start is not None:
            result = self._on_start()
            if inspect.isawaitable(result):
                await result

    async def astop(self) -> None:
        """Stop polling and wait for the in-flight cycle to finish.

        Idempotent: stopping a service that is not running is a no-op. A stop
        requested during the handshake is recorded and the service ends up
        ``stopped`` without polling.
        """
        if self._state is ServiceState.REGISTERING:
            self._stop_event.set()
            return

        task = self._task
        if task is None or task.done():
            if self._state in (ServiceState.POLLING, ServiceState.STOPPING):
                self._state = ServiceState.STOPPED
            return

        self._state = ServiceState.STOPPING
        self._stop_event.set()
        await task
        self._task = None
        logger.info("Service '{}' stopped", self._name)

    def _registration_request(
        self, functions: list[RegisteredFunction]
    ) -> MachineRegistrationRequest:
        return MachineRegistrationRequest(
            service=self._name,
            functions=[
                FunctionDefinition(
                    name=fn.name,
                    description=fn.description or None,
                    input_schema=json.dumps(fn.schema),
                    config=fn.config.to_payload() if fn.config is not None else None,
                )
                for fn in functions
            ],
        )

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    async def _arun(self) -> None:
        try:
            while not self._stop_event.is_set():
                if await self._await_backoff():
                    break
                try:
                    await self.apoll_once()
                except PollFetchError as e:
                    self._consecutive_failures += 1
                    logger.error("Failed to poll: {}", e)
                    if self._consecutive_failures > self._config.max_consecutive_poll_failures:
                        logger.error(
                            "Too many consecutive poll failures, exiting service: {}",
                            self._name,
                        )
                        self._state = ServiceState.STOPPING
                        break
                except PollCycleError as e:
                    logger.warning("Service '{}': {}", self._name, e)
                except Exception:
                    logger.exception("Unexpected error in poll loop of service '{}'", self._name)
        finally:
            self._state = ServiceState.STOPPED

    async def _await_backoff(self) -> bool:
        """Wait the current backoff; return True if a stop was requested meanwhile."""
        if self._retry_after <= 0:
            # Still yield so a tight loop cannot starve the event loop
            await asyncio.sleep(0)
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._retry_after)
        except TimeoutError:
            return False
        return True

    async def apoll_once(self) -> list[ResultEnvelope]:
        """Run one poll cycle: fetch a batch, dispatch and persist each call.

        Returns
        -------
            list[ResultEnvelope]: Envelopes persisted in this cycle, in batch order

        Raises
        ------
        PollFetchError
            If the batch itself could not be fetched or parsed
        PollCycleError
            If one or more messages failed; the others were still handled
        """
        calls = await self._afetch_calls()

        envelopes: list[ResultEnvelope] = []
        errors: list[MessageHandlingError] = []
        for call in calls:
            try:
                envelope = await self._dispatcher.ahandle(self._name, call)
                await self.apersist_result(call.id, envelope)
            except Exception as e:
                errors.append(MessageHandlingError(call.id, call.function, e))
                continue
            envelopes.append(envelope)

        if errors:
            raise PollCycleError(self._name, errors)
        return envelopes

    async def _afetch_calls(self) -> list[CallMessage]:
        if self._cluster_id is None:
            raise PollFetchError(self._name, ServiceStartError("service is not registered"))

        try:
            response = await self._transport.arequest(
                "GET",
                f"/clusters/{self._cluster_id}/calls",
                headers=self._headers,
                params={
                    "acknowledge": "true",
                    "service": self._name,
                    "status": "pending",
                    "limit": self._config.poll_limit,
                },
            )
        except InferableError as e:
            raise PollFetchError(self._name, e) from e

        if (retry_after := parse_retry_after(response)) is not None:
            self._retry_after = retry_after

        body = response.body if response.body is not None else []
        try:
            calls = [CallMessage.model_validate(item) for item in body]
        except (TypeError, pydantic.ValidationError) as e:
            raise PollFetchError(self._name, e) from e

        self._consecutive_failures = 0
        if calls:
            logger.debug("Service '{}' fetched {} call(s)", self._name, len(calls))
        return calls

    async def apersist_result(self, call_id: str, envelope: ResultEnvelope) -> None:
        """Send a call's result envelope to the control plane.

        Raises
        ------
        PersistResultError
            If the request fails
        """
        try:
            await self._transport.arequest(
                "POST",
                f"/clusters/{self._cluster_id}/calls/{call_id}/result",
                headers=self._headers,
                json=envelope.to_payload(),
            )
        except InferableError as e:
            raise PersistResultError(call_id, e) from e
