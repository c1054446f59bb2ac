"""
HTTP plumbing shared by the connectors.

Retry with exponential backoff for transient failures (5xx, timeouts,
connection errors), and translation of HTTP error responses into the
ConnectorError hierarchy.

Example:
    >>> @with_retry(RetryPolicy(max_retries=2))
    ... def fetch() -> httpx.Response:
    ...     response = client.get(url)
    ...     response.raise_for_status()
    ...     return response

Configuration:
    - Default retries: 3 attempts
    - Default base delay: 1.0 seconds
    - Default multiplier: 2.0x per retry
    - Jitter: Random variance of ±20% added to delay
"""

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from boardsync.core.config.models import RetryConfig
from boardsync.core.sync.exceptions import (
    AuthenticationError,
    ConnectorError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Backoff schedule for retried requests.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Delay in seconds before the first retry
        multiplier: Exponential backoff multiplier
        jitter_ratio: Random variance ratio applied to each delay (0 disables)
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        jitter_ratio: float = 0.2,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.jitter_ratio = jitter_ratio

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.base_delay,
            multiplier=config.multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """
        Delay before retry number `attempt` (0-indexed).

        delay = base_delay * multiplier ** attempt, plus or minus jitter
        """
        delay = self.base_delay * (self.multiplier**attempt)
        if self.jitter_ratio:
            variance = delay * self.jitter_ratio
            delay += random.uniform(-variance, variance)
        return max(0.0, delay)


def is_retryable_error(exception: Exception) -> bool:
    """
    Determine if an exception represents a transient, retryable error.

    Retryable: 5xx responses, timeouts, connection and other request
    errors. Not retryable: 4xx responses and anything that is not an
    httpx error.
    """
    # HTTPStatusError is also an HTTPError, so check it first
    if isinstance(exception, httpx.HTTPStatusError):
        return 500 <= exception.response.status_code < 600

    if isinstance(exception, (httpx.TimeoutException, httpx.RequestError)):
        return True

    return isinstance(exception, httpx.HTTPError)


def with_retry(policy: RetryPolicy | None = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries a function on transient HTTP errors.

    Non-retryable errors are raised immediately; the last retryable error
    is raised once retries run out.
    """
    policy = policy or RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            func_name = getattr(func, "__name__", repr(func))

            for attempt in range(policy.max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable_error(e):
                        raise

                    if attempt >= policy.max_retries:
                        logger.warning(
                            f"{func_name}: Max retries ({policy.max_retries}) exceeded: {e}"
                        )
                        raise

                    delay = policy.delay_for(attempt)
                    logger.info(
                        f"{func_name}: Retry attempt {attempt + 1}/{policy.max_retries} "
                        f"after {delay:.2f}s due to: {e}"
                    )
                    time.sleep(delay)

            raise RuntimeError("Retry loop completed without success or exception")

        return wrapper

    return decorator


def error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase

    if isinstance(data, dict):
        for key in ("message", "error_description", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


class HttpConnector:
    """
    Base class for connectors speaking HTTP through an httpx.Client.

    Subclasses set `system` and may override `raise_for_response` to
    recognize system-specific failures (rate limits, sign-in redirects).
    """

    system: Any = None

    def __init__(
        self,
        client: httpx.Client,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._retry = retry or RetryPolicy()

    @property
    def system_name(self) -> str:
        return str(getattr(self.system, "value", self.system))

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Returns:
            The successful response

        Raises:
            ConnectorError: Network failure, or an error response (mapped
                through `raise_for_response`)
        """

        @with_retry(self._retry)
        def _send() -> httpx.Response:
            response = self._client.request(method, url, **kwargs)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        logger.debug("%s %s %s", self.system_name, method, url)
        try:
            response = _send()
        except httpx.HTTPStatusError as e:
            raise ConnectorError(
                self.system_name,
                f"Server error {e.response.status_code}: {error_detail(e.response)}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ConnectorError(self.system_name, f"Request failed: {e}") from e

        self.raise_for_response(response)
        return response

    def raise_for_response(self, response: httpx.Response) -> None:
        """Raise the ConnectorError matching an unsuccessful response."""
        status = response.status_code
        if status < 400:
            return

        detail = error_detail(response)
        if status == 401:
            raise AuthenticationError(
                self.system_name, "Token expired or invalid", status_code=status
            )
        if status == 403:
            raise PermissionDeniedError(
                self.system_name, f"Permission denied: {detail}", status_code=status
            )
        raise ConnectorError(
            self.system_name, f"Request failed ({status}): {detail}", status_code=status
        )

    def parse_json(self, response: httpx.Response) -> Any:
        """
        Decode a successful response body.

        Raises:
            ConnectorError: If the body is not JSON (e.g. an HTML error page)
        """
        try:
            return response.json()
        except ValueError as e:
            raise ConnectorError(
                self.system_name,
                f"Invalid JSON response ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            ) from e
