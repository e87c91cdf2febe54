"""Tests for offlinekit.models -- requests, responses, policies and config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from offlinekit.models import (
    DISABLED_CACHE_POLICY,
    NO_RETRY_POLICY,
    CachePolicy,
    GlobalConfig,
    HTTPMethod,
    NetworkRequest,
    NetworkResponse,
    QueueBackend,
    RetryPolicy,
)


class TestNetworkRequest:
    def test_defaults(self) -> None:
        request = NetworkRequest(method="GET", url="/users")
        assert request.method == HTTPMethod.GET
        assert request.body is None
        assert request.headers is None
        assert request.query_params is None
        assert request.retry_on_failure is False
        assert request.max_retries == 3
        assert request.queue_offline is False
        assert request.priority == 0
        assert request.cache_response is False
        assert request.cache_ttl_seconds is None
        assert request.timeout_seconds is None

    def test_method_is_case_insensitive(self) -> None:
        assert NetworkRequest(method="post", url="/x").method == HTTPMethod.POST

    def test_unknown_method_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NetworkRequest(method="FETCH", url="/x")

    def test_negative_max_retries_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NetworkRequest(method="GET", url="/x", max_retries=-1)

    def test_frozen(self) -> None:
        request = NetworkRequest(method="GET", url="/x")
        with pytest.raises(ValidationError):
            request.url = "/y"  # type: ignore[misc]

    def test_equality_is_by_value(self) -> None:
        a = NetworkRequest(method="POST", url="/x", body={"a": 1})
        b = NetworkRequest(method="POST", url="/x", body={"a": 1})
        assert a == b

    def test_str(self) -> None:
        assert str(NetworkRequest(method="delete", url="/notes/1")) == "DELETE /notes/1"


class TestNetworkResponse:
    @pytest.mark.parametrize("status,expected", [(200, True), (204, True), (301, False), (404, False)])
    def test_is_success(self, status: int, expected: bool) -> None:
        assert NetworkResponse(status_code=status).is_success is expected

    def test_defaults(self) -> None:
        response = NetworkResponse(status_code=200)
        assert response.headers == {}
        assert response.body is None
        assert response.metadata == {}


class TestPolicies:
    def test_cache_policy_defaults(self) -> None:
        policy = CachePolicy()
        assert policy.enabled is True
        assert policy.ttl_seconds == 300

    def test_retry_policy_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.base_delay_seconds == pytest.approx(0.4)
        assert policy.exponential_backoff is True

    def test_shared_constants(self) -> None:
        assert DISABLED_CACHE_POLICY.enabled is False
        assert DISABLED_CACHE_POLICY.ttl_seconds == 0
        assert NO_RETRY_POLICY.max_retries == 0
        assert NO_RETRY_POLICY.base_delay_seconds == 0
        assert NO_RETRY_POLICY.exponential_backoff is False

    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValidationError):
            CachePolicy(ttl_seconds=-5)


class TestGlobalConfig:
    def test_defaults(self) -> None:
        config = GlobalConfig()
        assert config.base_url is None
        assert config.queue.backend == QueueBackend.FILE
        assert config.queue.path is None
        assert config.request.timeout == 30.0
        assert config.output.format == "auto"
        assert config.features == {"offline_networking": True}

    def test_json_round_trip(self) -> None:
        config = GlobalConfig(
            base_url="https://api.example.com",
            retry=RetryPolicy(max_retries=1, base_delay_seconds=0.1),
            features={"offline_networking": False},
        )
        restored = GlobalConfig.model_validate(config.model_dump(mode="json"))
        assert restored == config
