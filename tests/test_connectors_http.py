"""
Tests for retry logic and HTTP error translation.

Tests cover:
- RetryPolicy validation and backoff schedule
- Retryable error classification
- The with_retry decorator
- HttpConnector error mapping
"""

from unittest.mock import patch

import httpx
import pytest

from boardsync.core.config.models import RetryConfig
from boardsync.core.connectors.http import (
    HttpConnector,
    RetryPolicy,
    error_detail,
    is_retryable_error,
    with_retry,
)
from boardsync.core.sync.exceptions import (
    AuthenticationError,
    ConnectorError,
    PermissionDeniedError,
)

# ==============================================================================
# RetryPolicy
# ==============================================================================


class TestRetryPolicy:
    """Test backoff configuration."""

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.base_delay == 1.0
        assert policy.multiplier == 2.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": 0},
            {"multiplier": 0.5},
            {"jitter_ratio": 1.5},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_exponential_delays_without_jitter(self):
        policy = RetryPolicy(base_delay=0.5, multiplier=3.0, jitter_ratio=0.0)
        assert [policy.delay_for(n) for n in range(3)] == [0.5, 1.5, 4.5]

    def test_jitter_bounds(self):
        policy = RetryPolicy(base_delay=1.0, jitter_ratio=0.2)
        for _ in range(50):
            assert 0.8 <= policy.delay_for(0) <= 1.2

    def test_from_config(self):
        policy = RetryPolicy.from_config(RetryConfig(max_retries=5, base_delay=0.1))
        assert policy.max_retries == 5
        assert policy.base_delay == 0.1


# ==============================================================================
# Error classification
# ==============================================================================


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://example.test")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestIsRetryableError:
    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors(self, status):
        assert is_retryable_error(_status_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 429])
    def test_client_errors(self, status):
        assert is_retryable_error(_status_error(status)) is False

    def test_network_errors(self):
        request = httpx.Request("GET", "https://example.test")
        assert is_retryable_error(httpx.ConnectError("refused", request=request)) is True
        assert is_retryable_error(httpx.ReadTimeout("slow", request=request)) is True

    def test_other_exceptions(self):
        assert is_retryable_error(ValueError("nope")) is False


class TestWithRetry:
    """Test the retry decorator (sleep is patched out)."""

    @patch("boardsync.core.connectors.http.time.sleep")
    def test_succeeds_after_transient_failures(self, mock_sleep):
        calls = []

        @with_retry(RetryPolicy(max_retries=3, jitter_ratio=0.0))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise _status_error(503)
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("boardsync.core.connectors.http.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        calls = []

        @with_retry(RetryPolicy(max_retries=2))
        def always_down():
            calls.append(1)
            raise _status_error(500)

        with pytest.raises(httpx.HTTPStatusError):
            always_down()
        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    @patch("boardsync.core.connectors.http.time.sleep")
    def test_non_retryable_raised_immediately(self, mock_sleep):
        calls = []

        @with_retry(RetryPolicy(max_retries=3))
        def bad_request():
            calls.append(1)
            raise _status_error(400)

        with pytest.raises(httpx.HTTPStatusError):
            bad_request()
        assert len(calls) == 1
        mock_sleep.assert_not_called()


# ==============================================================================
# HttpConnector
# ==============================================================================


def _connector(handler, max_retries=0) -> HttpConnector:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    connector = HttpConnector(client, RetryPolicy(max_retries=max_retries))
    connector.system = "test"
    return connector


class TestHttpConnector:
    """Test request sending and error translation."""

    def test_success(self):
        connector = _connector(lambda request: httpx.Response(200, json={"ok": True}))
        assert connector.request("GET", "https://example.test/x").json() == {"ok": True}

    def test_401_is_authentication_error(self):
        connector = _connector(lambda request: httpx.Response(401))
        with pytest.raises(AuthenticationError, match="Token expired or invalid") as exc_info:
            connector.request("GET", "https://example.test/x")
        assert exc_info.value.status_code == 401
        assert exc_info.value.system == "test"

    def test_403_is_permission_denied(self):
        connector = _connector(lambda request: httpx.Response(403, json={"message": "no scope"}))
        with pytest.raises(PermissionDeniedError, match="no scope"):
            connector.request("GET", "https://example.test/x")

    def test_404_is_connector_error(self):
        connector = _connector(lambda request: httpx.Response(404, text="missing"))
        with pytest.raises(ConnectorError, match=r"Request failed \(404\): missing"):
            connector.request("GET", "https://example.test/x")

    @patch("boardsync.core.connectors.http.time.sleep")
    def test_5xx_retried_then_succeeds(self, mock_sleep):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])
        connector = _connector(lambda request: next(responses), max_retries=2)

        assert connector.request("GET", "https://example.test/x").json() == {"ok": True}
        assert mock_sleep.call_count == 1

    def test_5xx_exhausted(self):
        connector = _connector(lambda request: httpx.Response(503, json={"message": "maintenance"}))
        with pytest.raises(ConnectorError, match="Server error 503: maintenance") as exc_info:
            connector.request("GET", "https://example.test/x")
        assert exc_info.value.status_code == 503

    def test_network_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        connector = _connector(refuse)
        with pytest.raises(ConnectorError, match="Request failed: connection refused"):
            connector.request("GET", "https://example.test/x")


class TestErrorDetail:
    def test_json_message(self):
        assert error_detail(httpx.Response(400, json={"message": "bad field"})) == "bad field"

    def test_text_body(self):
        assert error_detail(httpx.Response(400, text="plain failure")) == "plain failure"

    def test_empty_body(self):
        assert error_detail(httpx.Response(400)) == "Bad Request"
