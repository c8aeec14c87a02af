"""Bounded retries around the HTTP calls made to credential backends."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, cast

import httpx

from .errors import BackendRejectedError, BackendUnavailableError

DEFAULT_RETRY_COUNT = 3
DEFAULT_MIN_WAIT_SECONDS = 5.0
DEFAULT_MAX_WAIT_SECONDS = 15.0

logger = logging.getLogger("credentials.retry")


def is_transport_error(exc: Exception) -> bool:
    return isinstance(exc, httpx.TransportError)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff applied on transport errors and HTTP status >= 429.

    A call is attempted at most ``retry_count + 1`` times. Any other response,
    including 4xx answers below 429, is handed back after the first attempt.
    """

    retry_count: int = DEFAULT_RETRY_COUNT
    min_wait: float = DEFAULT_MIN_WAIT_SECONDS
    max_wait: float = DEFAULT_MAX_WAIT_SECONDS

    def should_retry(
        self, response: httpx.Response | None, error: BaseException | None
    ) -> bool:
        if error is not None:
            return True
        return response is not None and response.status_code >= httpx.codes.TOO_MANY_REQUESTS

    def wait_time(self, attempt: int) -> float:
        """Return the pause before retry number ``attempt`` (1-based)."""

        return min(self.max_wait, self.min_wait * 2 ** (attempt - 1))

    def call(
        self,
        send: Callable[[], httpx.Response],
        *,
        description: str = "request",
        sleep: Callable[[float], None] = time.sleep,
        log: logging.Logger | logging.LoggerAdapter | None = None,
        is_transient: Callable[[Exception], bool] = is_transport_error,
    ) -> httpx.Response:
        """Invoke ``send`` until it succeeds or the retry budget is spent.

        Exceptions accepted by ``is_transient`` are retried like a 5xx answer;
        any other exception propagates at once. Once retries are exhausted a
        transient exception is raised as :class:`BackendUnavailableError` and a
        retryable response is returned as is, leaving its interpretation to
        the caller.
        """

        log = log or logger
        response: httpx.Response | None = None
        error: Exception | None = None
        for attempt in range(self.retry_count + 1):
            try:
                response = send()
                error = None
            except Exception as exc:
                if not is_transient(exc):
                    raise
                response = None
                error = exc
            if not self.should_retry(response, error):
                break
            if attempt == self.retry_count:
                break
            wait = self.wait_time(attempt + 1)
            log.warning(
                "%s failed (%s), retrying in %.1fs (%d/%d)",
                description,
                error if error is not None else f"status {response.status_code}",
                wait,
                attempt + 1,
                self.retry_count,
            )
            sleep(wait)

        if error is not None:
            raise BackendUnavailableError(
                f"{description} failed after {self.retry_count + 1} attempts: {error}"
            ) from error
        return cast(httpx.Response, response)


def raise_for_backend_status(
    response: httpx.Response,
    description: str,
    *,
    extract_message: Callable[[httpx.Response], str] | None = None,
) -> None:
    """Translate an unsuccessful backend response into a typed error."""

    if response.is_success:
        return
    message = extract_message(response) if extract_message else response.text
    status = f"{response.status_code} {response.reason_phrase}".strip()
    detail = f"{description} returned an error: Status: {status}. Error: {message}"
    if response.status_code >= httpx.codes.TOO_MANY_REQUESTS:
        raise BackendUnavailableError(detail, status_code=response.status_code)
    raise BackendRejectedError(detail, status_code=response.status_code)


@dataclass
class RetryingSession:
    """:class:`httpx.Client` wrapper applying a :class:`RetryPolicy` per request."""

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    base_url: str = ""
    headers: dict[str, str] | None = None
    auth: httpx.Auth | None = None
    timeout: float = 30.0
    transport: httpx.BaseTransport | None = None
    sleep: Callable[[float], None] = time.sleep
    log: logging.Logger | logging.LoggerAdapter | None = None
    is_transient: Callable[[Exception], bool] = is_transport_error

    def __post_init__(self) -> None:
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self.headers,
            auth=self.auth,
            timeout=self.timeout,
            transport=self.transport,
        )

    def __enter__(self) -> "RetryingSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return self.policy.call(
            lambda: self._client.request(method, url, **kwargs),
            description=f"{method} {url}",
            sleep=self.sleep,
            log=self.log,
            is_transient=self.is_transient,
        )

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)


__all__ = [
    "DEFAULT_MAX_WAIT_SECONDS",
    "DEFAULT_MIN_WAIT_SECONDS",
    "DEFAULT_RETRY_COUNT",
    "RetryPolicy",
    "RetryingSession",
    "is_transport_error",
    "raise_for_backend_status",
]
