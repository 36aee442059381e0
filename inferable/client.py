"""Inferable client - the entry point of the library.

The client owns everything its services share: the function registry, the
dispatcher, one HTTP transport (and its connection pool) and the heartbeat
task that keeps the machine visible to the control plane.

Examples
--------
Register a function on the default service and start polling::

    from pydantic import BaseModel

    from inferable import Inferable


    class ReverseInput(BaseModel):
        text: str


    client = Inferable(api_secret="sk-...")


    @client.default.function(description="Reverse a string")
    def reverse(data: ReverseInput) -> str:
        return data.text[::-1]


    async def main() -> None:
        async with client:
            await client.default.astart()
            await asyncio.Event().wait()
"""

from __future__ import annotations

import asyncio
import json
from types import TracebackType
from typing import Any, Self

from inferable import __version__
from inferable.drivers.http_client import HttpClientDriver
from inferable.kernel.config import InferableConfig, load_config
from inferable.kernel.dispatcher import Dispatcher
from inferable.kernel.domain.call import ResultEnvelope
from inferable.kernel.exceptions import (
    ConfigurationError,
    DuplicateServiceError,
    InferableError,
    ServerUnavailableError,
)
from inferable.kernel.logging import configure_logging, get_logger
from inferable.kernel.ports.transport import Transport
from inferable.kernel.registry import FunctionRegistry
from inferable.kernel.service import Service
from inferable.kernel.utils.machine_id import generate_machine_id

logger = get_logger(__name__)

DEFAULT_SERVICE_NAME = "default"
SDK_LANGUAGE = "python"


class Inferable:
    """Client for the Inferable control plane.

    Parameters
    ----------
    api_secret : str | None
        Bearer credential. Overrides ``config.api_secret``.
    api_endpoint : str | None
        Control-plane URL. Overrides ``config.api_endpoint``.
    machine_id : str | None
        Stable machine identifier. Overrides ``config.machine_id``; derived
        from the host when neither is set.
    config : InferableConfig | None
        Full configuration. Loaded with :func:`load_config` when omitted.
    transport : Transport | None
        Custom transport. An :class:`HttpClientDriver` is created when omitted.

    Raises
    ------
    ConfigurationError
        If the endpoint is not an ``http://`` or ``https://`` URL
    """

    def __init__(
        self,
        api_secret: str | None = None,
        api_endpoint: str | None = None,
        machine_id: str | None = None,
        *,
        config: InferableConfig | None = None,
        transport: Transport | None = None,
    ) -> None:
        config = config if config is not None else load_config()
        self._config = config

        self._api_endpoint = api_endpoint or config.api_endpoint
        if not self._api_endpoint.startswith(("http://", "https://")):
            raise ConfigurationError("api_endpoint", f"invalid URL: {self._api_endpoint}")

        self._api_secret = api_secret or config.api_secret
        self._machine_id = machine_id or config.machine_id or generate_machine_id()

        if transport is None:
            transport = HttpClientDriver(
                base_url=self._api_endpoint,
                timeout=config.request_timeout,
                bearer_token=self._api_secret,
            )
        self._transport = transport

        self._registry = FunctionRegistry()
        self._dispatcher = Dispatcher(self._registry)
        self._services: dict[str, Service] = {}
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._heartbeat_stop = asyncio.Event()

        self.default = self.register_service(DEFAULT_SERVICE_NAME)

        logger.debug(
            "Inferable client created (endpoint={}, machine_id={})",
            self._api_endpoint,
            self._machine_id,
        )

    @classmethod
    def from_config(cls, path: str | None = None, **kwargs: Any) -> Inferable:
        """Create a client from a config file and apply its logging settings."""
        config = load_config(path)
        log = config.logging
        configure_logging(
            level=log.level,
            format=log.format,
            output_file=log.output_file,
            use_color=log.use_color,
            include_timestamp=log.include_timestamp,
            enable_stdlib_bridge=log.enable_stdlib_bridge,
        )
        return cls(config=config, **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def machine_id(self) -> str:
        return self._machine_id

    @property
    def api_endpoint(self) -> str:
        return self._api_endpoint

    @property
    def config(self) -> InferableConfig:
        return self._config

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    @property
    def services(self) -> list[str]:
        """Names of the registered services, in registration order."""
        return list(self._services)

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def _request_headers(self) -> dict[str, str]:
        headers = {
            "X-Machine-ID": self._machine_id,
            "X-Machine-SDK-Version": __version__,
            "X-Machine-SDK-Language": SDK_LANGUAGE,
        }
        if self._api_secret:
            headers["Authorization"] = f"Bearer {self._api_secret}"
        return headers

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def register_service(self, name: str) -> Service:
        """Create a new named service.

        Raises
        ------
        DuplicateServiceError
            If a service with this name already exists
        """
        if name in self._services:
            raise DuplicateServiceError(name)

        service = Service(
            name,
            registry=self._registry,
            dispatcher=self._dispatcher,
            transport=self._transport,
            config=self._config,
            headers=self._request_headers(),
            on_start=self.start_heartbeat,
        )
        self._services[name] = service
        return service

    def get_service(self, name: str) -> Service:
        """Return a registered service.

        Raises
        ------
        KeyError
            If no service has this name
        """
        try:
            return self._services[name]
        except KeyError:
            raise KeyError(f"service with name '{name}' not found") from None

    async def ainvoke(self, service_name: str, function_name: str, payload: Any) -> ResultEnvelope:
        """Invoke a registered function locally, as if a call had been fetched."""
        self.get_service(service_name)
        return await self._dispatcher.invoke(service_name, function_name, payload)

    # ------------------------------------------------------------------
    # Control plane
    # ------------------------------------------------------------------

    async def aserver_ok(self) -> None:
        """Check that the control plane is live.

        Raises
        ------
        ServerUnavailableError
            If ``GET /live`` fails or does not report ``{"status": "ok"}``
        """
        try:
            response = await self._transport.arequest(
                "GET", "/live", headers=self._request_headers()
            )
        except InferableError as e:
            raise ServerUnavailableError(f"error fetching data from /live: {e}") from e

        status = response.body.get("status") if isinstance(response.body, dict) else None
        if status != "ok":
            raise ServerUnavailableError(f"unexpected status from /live: {status}")

    async def aping(self) -> None:
        """Send one heartbeat listing every registered service.

        Raises
        ------
        TransportError
            If the request fails
        """
        await self._transport.arequest(
            "POST",
            "/v2/ping",
            headers=self._request_headers(),
            json={"services": self.services},
        )

    def start_heartbeat(self) -> None:
        """Start the background heartbeat if it is not already running."""
        if self.heartbeat_running:
            return
        self._heartbeat_stop.clear()
        self._heartbeat_task = asyncio.create_task(
            self._aheartbeat(), name="inferable-heartbeat"
        )

    async def astop_heartbeat(self) -> None:
        task = self._heartbeat_task
        if task is None:
            return
        self._heartbeat_stop.set()
        await task
        self._heartbeat_task = None

    async def _aheartbeat(self) -> None:
        interval = self._config.heartbeat_interval
        while not self._heartbeat_stop.is_set():
            try:
                await self.aping()
            except InferableError as e:
                logger.warning("Heartbeat failed: {}", e)
            try:
                await asyncio.wait_for(self._heartbeat_stop.wait(), timeout=interval)
            except TimeoutError:
                continue

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def describe_all(self) -> list[dict[str, Any]]:
        """``[{service, functions: [{name, description, schema}]}]`` for every service."""
        return [
            {"service": name, "functions": self._registry.describe(name)}
            for name in self._services
        ]

    def to_json_definition(self) -> str:
        """:meth:`describe_all` as indented JSON."""
        return json.dumps(self.describe_all(), indent=2)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop every service and the heartbeat, then close the transport."""
        for service in self._services.values():
            await service.astop()
        await self.astop_heartbeat()
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        self.start_heartbeat()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
