"""Function registry: ``(service, function name) → RegisteredFunction``.

One registry is owned by each :class:`~inferable.client.Inferable` client and
shared by its services. Registration happens mostly during set-up, but poll
loops read the registry on every call message, so mutation is guarded by a
lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import pydantic

from inferable.kernel.domain.function import FunctionConfig, RegisteredFunction
from inferable.kernel.exceptions import (
    DuplicateFunctionError,
    FunctionNotFoundError,
    InvalidFunctionConfigError,
    ServiceStartError,
)
from inferable.kernel.logging import get_logger
from inferable.kernel.schema.generator import SchemaGenerator

logger = get_logger(__name__)


class FunctionRegistry:
    """Registered functions grouped by service name.

    Examples
    --------
    Example usage::

        registry = FunctionRegistry()
        registry.register("default", "reverse", reverse, description="Reverse a string")
        fn = registry.lookup("default", "reverse")
    """

    def __init__(self) -> None:
        self._functions: dict[str, dict[str, RegisteredFunction]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        service_name: str,
        name: str,
        handler: Callable[[Any], Any],
        description: str = "",
        config: FunctionConfig | dict[str, Any] | None = None,
    ) -> RegisteredFunction:
        """Register ``handler`` as ``name`` within ``service_name``.

        Re-registering an existing name is always an error, even with the
        same handler.

        Raises
        ------
        DuplicateFunctionError
            If ``(service_name, name)`` is already registered
        InvalidHandlerError
            If the handler does not take exactly one model-typed argument
        InvalidFunctionConfigError
            If ``config`` is a mapping that does not validate as ``FunctionConfig``
        SchemaGenerationError
            If the input model cannot be turned into a standalone schema
        """
        if isinstance(config, dict):
            try:
                config = FunctionConfig.model_validate(config)
            except pydantic.ValidationError as e:
                raise InvalidFunctionConfigError(name, str(e)) from e

        with self._lock:
            if name in self._functions.get(service_name, {}):
                raise DuplicateFunctionError(service_name, name)

            input_model, schema = SchemaGenerator.for_handler(name, handler)
            function = RegisteredFunction(
                service_name=service_name,
                name=name,
                handler=handler,
                input_model=input_model,
                schema=schema,
                description=description,
                config=config,
            )
            self._functions.setdefault(service_name, {})[name] = function

        logger.debug("Registered function '{}' for service '{}'", name, service_name)
        return function

    def lookup(self, service_name: str, name: str) -> RegisteredFunction:
        """Return the registered function or raise :class:`FunctionNotFoundError`."""
        try:
            return self._functions[service_name][name]
        except KeyError:
            raise FunctionNotFoundError(service_name, name) from None

    def functions(self, service_name: str) -> list[RegisteredFunction]:
        """Functions of one service, in registration order."""
        with self._lock:
            return list(self._functions.get(service_name, {}).values())

    def service_names(self) -> list[str]:
        """Names of services with at least one function."""
        with self._lock:
            return [name for name, fns in self._functions.items() if fns]

    def describe(self, service_name: str) -> list[dict[str, Any]]:
        """Serializable ``{name, description, schema}`` snapshot of one service."""
        return [fn.describe() for fn in self.functions(service_name)]

    def describe_all(self) -> list[dict[str, Any]]:
        """Snapshot of every service: ``[{service, functions: [...]}, ...]``."""
        return [
            {"service": service_name, "functions": self.describe(service_name)}
            for service_name in self.service_names()
        ]

    def get_schema(self, service_name: str) -> dict[str, dict[str, Any]]:
        """Input schemas keyed by function name: ``{name: {name, input}}``.

        Raises
        ------
        ServiceStartError
            If the service has no registered functions
        """
        functions = self.functions(service_name)
        if not functions:
            raise ServiceStartError(f"no functions registered for service '{service_name}'")
        return {fn.name: {"name": fn.name, "input": fn.schema} for fn in functions}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(fns) for fns in self._functions.values())
