"""Registration handshake payloads and service lifecycle states."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ServiceState(StrEnum):
    """Lifecycle of a polled service.

    ``unregistered → registering → polling → stopping → stopped``; a poll
    loop that gives up after too many failed fetches also ends in
    ``stopped``. A stopped service can be started again.
    """

    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    POLLING = "polling"
    STOPPING = "stopping"
    STOPPED = "stopped"


class FunctionDefinition(BaseModel):
    """One function entry of the ``POST /machines`` body.

    ``schema`` travels as a JSON *string*, not a nested object.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str | None = None
    input_schema: str = Field(alias="schema")
    config: dict[str, Any] | None = None


class MachineRegistrationRequest(BaseModel):
    """Body of ``POST /machines``."""

    service: str
    functions: list[FunctionDefinition] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MachineRegistration(BaseModel):
    """Response of ``POST /machines``: the cluster the service polls."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    cluster_id: str = Field(min_length=1)
