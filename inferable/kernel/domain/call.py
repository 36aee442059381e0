"""Call messages and result envelopes exchanged with the control plane."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResultType(StrEnum):
    """Outcome kind of a handled call."""

    RESOLUTION = "resolution"
    REJECTION = "rejection"


class CallMessage(BaseModel):
    """A pending call fetched from the control plane.

    ``input`` is kept as raw JSON; it is decoded into the target function's
    input model by the dispatcher.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    function: str
    input: Any = None


class ResultMeta(BaseModel):
    """Execution metadata attached to a result."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    function_execution_time: int | None = Field(default=None, ge=0)


class ResultEnvelope(BaseModel):
    """Normalized outcome of one call, sent once to the control plane.

    Examples
    --------
    >>> ResultEnvelope(result="ok", result_type=ResultType.RESOLUTION).to_payload()
    {'result': 'ok', 'resultType': 'resolution', 'meta': {}}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    result: Any = None
    result_type: ResultType
    meta: ResultMeta = Field(default_factory=ResultMeta)

    @property
    def is_rejection(self) -> bool:
        return self.result_type is ResultType.REJECTION

    def to_payload(self) -> dict[str, Any]:
        """Wire representation. ``meta.functionExecutionTime`` is omitted when unset or zero."""
        meta: dict[str, Any] = {}
        if self.meta.function_execution_time:
            meta["functionExecutionTime"] = self.meta.function_execution_time
        return {"result": self.result, "resultType": self.result_type.value, "meta": meta}


# ---------------------------------------------------------------------------
# Explicit outcome types a handler may return
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resolution:
    """Successful handler outcome carrying ``value``."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Rejection:
    """Failed handler outcome; ``error`` is an exception or a message."""

    error: BaseException | str

    @property
    def message(self) -> str:
        return str(self.error)
