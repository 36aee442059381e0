"""Domain models shared by the registry, dispatcher and service loop."""

from inferable.kernel.domain.call import (
    CallMessage,
    Rejection,
    Resolution,
    ResultEnvelope,
    ResultMeta,
    ResultType,
)
from inferable.kernel.domain.function import CacheConfig, FunctionConfig, RegisteredFunction
from inferable.kernel.domain.machine import (
    FunctionDefinition,
    MachineRegistration,
    MachineRegistrationRequest,
    ServiceState,
)

__all__ = [
    "CacheConfig",
    "CallMessage",
    "FunctionConfig",
    "FunctionDefinition",
    "MachineRegistration",
    "MachineRegistrationRequest",
    "RegisteredFunction",
    "Rejection",
    "Resolution",
    "ResultEnvelope",
    "ResultMeta",
    "ResultType",
    "ServiceState",
]
