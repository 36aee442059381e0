"""Tests for the Inferable exception hierarchy."""

from __future__ import annotations

import pytest

from inferable.kernel.exceptions import (
    ConfigurationError,
    DuplicateFunctionError,
    DuplicateServiceError,
    FunctionNotFoundError,
    HandshakeError,
    HttpStatusError,
    InferableError,
    InputDecodeError,
    InvalidFunctionConfigError,
    InvalidHandlerError,
    MessageHandlingError,
    PersistResultError,
    PollCycleError,
    PollFetchError,
    RegistrationError,
    SchemaGenerationError,
    SchemaReferenceError,
    TransportError,
    ValidationError,
)


class TestInferableError:
    """Tests for the base exception."""

    def test_basic_creation(self) -> None:
        error = InferableError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert isinstance(error, Exception)

    def test_can_be_caught_as_base(self) -> None:
        with pytest.raises(InferableError):
            raise DuplicateServiceError("default")


class TestConfigurationErrors:
    """Tests for ConfigurationError and ValidationError."""

    def test_configuration_error_fields(self) -> None:
        error = ConfigurationError("api_endpoint", "invalid URL: ftp://x")
        assert error.component == "api_endpoint"
        assert error.reason == "invalid URL: ftp://x"
        assert "api_endpoint" in str(error)

    def test_validation_error_with_value(self) -> None:
        error = ValidationError("poll_limit", "must be positive", value=0)
        assert error.field == "poll_limit"
        assert error.value == 0
        assert "must be positive" in str(error)


class TestTransportErrors:
    """Tests for transport failures."""

    def test_http_status_error_carries_status_and_body(self) -> None:
        error = HttpStatusError("GET", "/live", 503, {"error": "down"})
        assert isinstance(error, TransportError)
        assert error.status_code == 503
        assert error.body == {"error": "down"}
        assert "status code: 503" in str(error)


class TestRegistrationErrors:
    """Tests for registration-time errors."""

    def test_duplicate_service_message(self) -> None:
        error = DuplicateServiceError("billing")
        assert str(error) == "service with name 'billing' already registered"
        assert isinstance(error, RegistrationError)

    def test_duplicate_function_names_both(self) -> None:
        error = DuplicateFunctionError("default", "reverse")
        assert "reverse" in str(error)
        assert "default" in str(error)

    def test_invalid_handler_message(self) -> None:
        error = InvalidHandlerError("reverse", "must have exactly one argument")
        assert str(error) == "function 'reverse' must have exactly one argument"

    def test_invalid_function_config_is_registration_error(self) -> None:
        error = InvalidFunctionConfigError("reverse", "extra inputs are not permitted")
        assert isinstance(error, RegistrationError)
        assert error.function_name == "reverse"
        assert str(error) == (
            "invalid config for function 'reverse': extra inputs are not permitted"
        )

    def test_schema_reference_error_names_function(self) -> None:
        error = SchemaReferenceError("search", "Item")
        assert isinstance(error, SchemaGenerationError)
        assert error.function_name == "search"
        assert error.model_name == "Item"
        assert (
            "schema for function 'search' contains a $ref to an external definition. "
            "this is currently not supported." in str(error)
        )


class TestRuntimeErrors:
    """Tests for dispatch and poll-loop errors."""

    def test_function_not_found(self) -> None:
        error = FunctionNotFoundError("default", "missing")
        assert str(error).startswith("function not found: missing")

    def test_input_decode_error(self) -> None:
        error = InputDecodeError("reverse", "field required")
        assert "reverse" in str(error)

    def test_wrapped_errors_keep_original(self) -> None:
        cause = TransportError("POST", "/machines", "connection refused")
        assert HandshakeError("default", cause).original_error is cause
        assert PollFetchError("default", cause).original_error is cause
        assert PersistResultError("c1", cause).call_id == "c1"

    def test_poll_cycle_error_aggregates(self) -> None:
        errors = [
            MessageHandlingError("c2", "missing", FunctionNotFoundError("default", "missing")),
            MessageHandlingError("c4", "reverse", InputDecodeError("reverse", "bad")),
        ]
        error = PollCycleError("default", errors)
        assert error.errors == errors
        assert "2 message(s)" in str(error)
        assert "c2" in str(error)
        assert "c4" in str(error)
