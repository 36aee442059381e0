"""Domain model for registered functions.

A :class:`RegisteredFunction` is created once by the
:class:`~inferable.kernel.registry.FunctionRegistry` and never mutated
afterwards. Its :class:`FunctionConfig` is opaque to the client: it is
interpreted by the control plane and sent verbatim with the registration
handshake.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CacheConfig(BaseModel):
    """Server-side result caching hint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    key_path: str = Field(description="JSON path into the input used as the cache key")
    ttl_seconds: float = Field(gt=0, description="How long a cached result stays valid")


class FunctionConfig(BaseModel):
    """Per-function settings passed through to the control plane.

    Examples
    --------
    >>> FunctionConfig(timeout_seconds=30).to_payload()
    {'timeoutSeconds': 30.0}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    cache: CacheConfig | None = None
    retry_count_on_stall: int | None = Field(default=None, ge=0)
    timeout_seconds: float | None = Field(default=None, gt=0)
    execution_id_path: str | None = None
    requires_approval: bool | None = None
    private: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        """Wire representation (camelCase keys, unset values omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class RegisteredFunction:
    """A handler registered under ``(service_name, name)``.

    Attributes
    ----------
    service_name : str
        Owning service.
    name : str
        Function name, unique within the service.
    handler : Callable[[Any], Any]
        Sync or async callable taking exactly one ``input_model`` instance.
    input_model : type[BaseModel]
        Model the raw call input is decoded into.
    schema : dict[str, Any]
        JSON schema generated from ``input_model``.
    description : str
        Human-readable description shown to the control plane.
    config : FunctionConfig | None
        Optional server-side settings.
    """

    service_name: str
    name: str
    handler: Callable[[Any], Any]
    input_model: type[BaseModel]
    schema: dict[str, Any] = field(default_factory=dict)
    description: str = ""
    config: FunctionConfig | None = None

    def describe(self) -> dict[str, Any]:
        """Serializable snapshot used for diagnostics."""
        return {"name": self.name, "description": self.description, "schema": self.schema}
