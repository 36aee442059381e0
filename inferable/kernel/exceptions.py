"""Core exception hierarchy for the Inferable client.

All client-specific exceptions inherit from InferableError so callers can
catch a single base class. Registration and start-up errors are raised
synchronously to the caller; poll-loop errors are raised inside the
background task and surface through logs.
"""

from __future__ import annotations

# ============================================================================
# Base Exception
# ============================================================================


class InferableError(Exception):
    """Base exception for all Inferable client errors.

    Catch this to handle all Inferable errors.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(InferableError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("api_endpoint", "must start with http:// or https://")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(InferableError):
    """Raised when configuration data fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("heartbeat_interval", "must be positive", value=-1)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


# ============================================================================
# Transport Errors
# ============================================================================


class TransportError(InferableError):
    """Raised when a request cannot be completed (DNS, connect, timeout)."""

    def __init__(self, method: str, path: str, reason: str) -> None:
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(f"{method} {path} failed: {reason}")


class HttpStatusError(TransportError):
    """Raised when the control plane answers with a 4xx/5xx status.

    Attributes
    ----------
    status_code : int
        The HTTP status code.
    body : Any
        The response body.
    """

    def __init__(self, method: str, path: str, status_code: int, body: object) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(method, path, f"API error: {body} (status code: {status_code})")


class ServerUnavailableError(InferableError):
    """Raised when the liveness endpoint does not report ``ok``."""


# ============================================================================
# Registration Errors
# ============================================================================


class RegistrationError(InferableError):
    """Base class for errors raised while registering services or functions."""


class DuplicateServiceError(RegistrationError):
    """Raised when a service name is registered twice on the same client."""

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        super().__init__(f"service with name '{service_name}' already registered")


class DuplicateFunctionError(RegistrationError):
    """Raised when a function name is registered twice for the same service."""

    def __init__(self, service_name: str, function_name: str) -> None:
        self.service_name = service_name
        self.function_name = function_name
        super().__init__(
            f"function with name '{function_name}' already registered "
            f"for service '{service_name}'"
        )


class InvalidHandlerError(RegistrationError):
    """Raised when a handler does not take exactly one model-typed argument."""

    def __init__(self, function_name: str, reason: str) -> None:
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"function '{function_name}' {reason}")


class InvalidFunctionConfigError(RegistrationError):
    """Raised when a function's config mapping does not match ``FunctionConfig``."""

    def __init__(self, function_name: str, reason: str) -> None:
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"invalid config for function '{function_name}': {reason}")


class SchemaGenerationError(RegistrationError):
    """Raised when an input model cannot be described as a JSON schema."""

    def __init__(self, function_name: str, reason: str) -> None:
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"failed to get schema for function '{function_name}': {reason}")


class SchemaReferenceError(SchemaGenerationError):
    """Raised when an input model would need an external ``$ref`` definition.

    Schemas are sent to the control plane as standalone JSON strings, so
    there is no way for the consumer to resolve cross-references.
    """

    def __init__(self, function_name: str, model_name: str) -> None:
        self.model_name = model_name
        RegistrationError.__init__(
            self,
            f"schema for function '{function_name}' contains a $ref to an external "
            f"definition. this is currently not supported. ('{model_name}' must be "
            "a direct field of its parent model)",
        )
        self.function_name = function_name
        self.reason = f"external reference to '{model_name}'"


# ============================================================================
# Dispatch Errors
# ============================================================================


class FunctionNotFoundError(InferableError):
    """Raised when a call targets a function that is not registered."""

    def __init__(self, service_name: str, function_name: str) -> None:
        self.service_name = service_name
        self.function_name = function_name
        super().__init__(f"function not found: {function_name} (service '{service_name}')")


class InputDecodeError(InferableError):
    """Raised when a call's input does not match the handler's input model."""

    def __init__(self, function_name: str, reason: str) -> None:
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"failed to decode input for function '{function_name}': {reason}")


# ============================================================================
# Service Lifecycle Errors
# ============================================================================


class ServiceStartError(InferableError):
    """Raised when a service cannot be started (e.g. it has no functions)."""


class HandshakeError(InferableError):
    """Raised when the machine registration handshake fails."""

    def __init__(self, service_name: str, original_error: Exception) -> None:
        self.service_name = service_name
        self.original_error = original_error
        super().__init__(f"failed to register machine for service '{service_name}': {original_error}")


class InvalidTransitionError(InferableError):
    """Raised when a service lifecycle transition is not allowed."""


class PollFetchError(InferableError):
    """Raised when fetching a batch of pending calls fails."""

    def __init__(self, service_name: str, original_error: Exception) -> None:
        self.service_name = service_name
        self.original_error = original_error
        super().__init__(f"failed to poll calls for service '{service_name}': {original_error}")


class PersistResultError(InferableError):
    """Raised when a call result cannot be sent to the control plane."""

    def __init__(self, call_id: str, original_error: Exception) -> None:
        self.call_id = call_id
        self.original_error = original_error
        super().__init__(f"failed to persist job result for call '{call_id}': {original_error}")


class MessageHandlingError(InferableError):
    """Raised when a single call message of a batch could not be handled."""

    def __init__(self, call_id: str, function_name: str, original_error: Exception) -> None:
        self.call_id = call_id
        self.function_name = function_name
        self.original_error = original_error
        super().__init__(f"call '{call_id}' ({function_name}): {original_error}")


class PollCycleError(InferableError):
    """Aggregate of the per-message failures of one poll cycle.

    Attributes
    ----------
    errors : list[MessageHandlingError]
        One entry per failed message, in the order the batch was received.
    """

    def __init__(self, service_name: str, errors: list[MessageHandlingError]) -> None:
        self.service_name = service_name
        self.errors = errors
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"failed to handle {len(errors)} message(s): [{details}]")


__all__ = [
    # Base
    "InferableError",
    # Configuration & Validation
    "ConfigurationError",
    "ValidationError",
    # Transport
    "TransportError",
    "HttpStatusError",
    "ServerUnavailableError",
    # Registration
    "RegistrationError",
    "DuplicateServiceError",
    "DuplicateFunctionError",
    "InvalidHandlerError",
    "InvalidFunctionConfigError",
    "SchemaGenerationError",
    "SchemaReferenceError",
    # Dispatch
    "FunctionNotFoundError",
    "InputDecodeError",
    # Lifecycle
    "ServiceStartError",
    "HandshakeError",
    "InvalidTransitionError",
    "PollFetchError",
    "PersistResultError",
    "MessageHandlingError",
    "PollCycleError",
]
