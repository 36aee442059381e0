"""Tests for function configuration and registration records."""

from __future__ import annotations

import pydantic
import pytest

from inferable.kernel.domain.function import CacheConfig, FunctionConfig


class TestFunctionConfig:
    def test_payload_uses_camel_case(self) -> None:
        config = FunctionConfig(
            cache=CacheConfig(key_path="$.userId", ttl_seconds=60),
            retry_count_on_stall=2,
            requires_approval=True,
        )
        assert config.to_payload() == {
            "cache": {"keyPath": "$.userId", "ttlSeconds": 60.0},
            "retryCountOnStall": 2,
            "requiresApproval": True,
        }

    def test_accepts_wire_names(self) -> None:
        config = FunctionConfig.model_validate({"timeoutSeconds": 5, "private": True})
        assert config.timeout_seconds == 5
        assert config.private is True

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            FunctionConfig.model_validate({"retries": 3})

    def test_empty_payload(self) -> None:
        assert FunctionConfig().to_payload() == {}
