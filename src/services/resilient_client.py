"""
Runs one network operation with bounded retries.

Policy:
- cancellation ends the operation immediately (OperationCancelled, no retry);
- 4xx other than 429 is terminal;
- 429 waits for Retry-After (capped) when the backend sends it;
- 5xx and transport errors back off exponentially (0.5s, 1s, ...);
- every wait gets a small random jitter;
- once attempts run out, the last error is raised.
"""
from __future__ import annotations

import threading
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from src.domain.errors import (
    AuthError,
    ClientRequestError,
    NotFoundError,
    OperationCancelled,
    RateLimitedError,
    RemoteAPIError,
    TransientNetworkError,
)
from src.infrastructure.config import settings
from trivia_utils.logger_utils import logger
from trivia_utils.retry_utils import on_retry_callback


class CancellationToken:
    """
    Cooperative cancellation signal, safe to trigger from any thread.

    `sleep` doubles as the retry backoff: it returns early and raises
    OperationCancelled as soon as `cancel()` is called.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation was cancelled.")

    def sleep(self, seconds: float) -> None:
        if self._event.wait(timeout=max(0.0, seconds)):
            raise OperationCancelled("Operation was cancelled during retry backoff.")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header (delta-seconds or HTTP date)."""
    if value is None:
        return None
    value = str(value).strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()
    return seconds if seconds > 0 else None


def _response_payload(response: requests.Response):
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _response_message(response: requests.Response, payload) -> str:
    if isinstance(payload, dict) and payload.get("message"):
        return f"HTTP {response.status_code}: {payload['message']}"
    return f"HTTP {response.status_code} from {response.request.method if response.request else 'request'} {response.url}"


def error_for_response(response: requests.Response) -> Optional[RemoteAPIError]:
    """Map an error response onto the error taxonomy; None for success."""
    status = response.status_code
    if status < 400:
        return None
    payload = _response_payload(response)
    message = _response_message(response, payload)
    if status in (401, 403):
        return AuthError(message, status=status, payload=payload)
    if status == 404:
        return NotFoundError(message, status=status, payload=payload)
    if status == 429:
        return RateLimitedError(
            message,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            payload=payload,
        )
    if status < 500:
        return ClientRequestError(message, status=status, payload=payload)
    return TransientNetworkError(message, status=status, payload=payload)


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, (TransientNetworkError, RateLimitedError))


class wait_retry_after(wait_base):
    """Honour RateLimitedError.retry_after (capped), else defer to `fallback`."""

    def __init__(self, fallback: wait_base, cap: float):
        self.fallback = fallback
        self.cap = cap

    def __call__(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            return min(self.cap, retry_after)
        return self.fallback(retry_state)


class ResilientClient:
    """Executes zero-argument operations that return a `requests.Response`."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        jitter: Optional[float] = None,
        retry_after_cap: Optional[float] = None,
    ):
        self.max_attempts = max_attempts or settings.RETRY_MAX_ATTEMPTS
        self.base_delay = settings.RETRY_BASE_DELAY_SECONDS if base_delay is None else base_delay
        self.jitter = settings.RETRY_JITTER_SECONDS if jitter is None else jitter
        self.retry_after_cap = retry_after_cap or settings.RETRY_AFTER_CAP_SECONDS

    def _wait_strategy(self) -> wait_base:
        backoff = wait_exponential(multiplier=self.base_delay, min=0, max=self.retry_after_cap)
        return wait_retry_after(backoff, cap=self.retry_after_cap) + wait_random(0, self.jitter)

    def execute(
        self,
        operation: Callable[[], requests.Response],
        cancel_token: Optional[CancellationToken] = None,
        max_attempts: Optional[int] = None,
        description: str = "request",
    ) -> requests.Response:
        token = cancel_token or CancellationToken()
        attempts = max_attempts or self.max_attempts

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait_strategy(),
            retry=retry_if_exception(is_retryable),
            sleep=token.sleep,
            before_sleep=on_retry_callback,
            reraise=True,
        )

        response = None
        try:
            for attempt in retrying:
                with attempt:
                    token.raise_if_cancelled()
                    response = self._attempt(operation)
                    # The transport cannot be interrupted; a late result is discarded.
                    token.raise_if_cancelled()
        except OperationCancelled:
            logger.info(
                f"{description} cancelled",
                extra={"operation": description, "component": "resilient_client"},
            )
            raise
        except RemoteAPIError as e:
            e.attempts = retrying.statistics.get("attempt_number", 1)
            log = logger.error if is_retryable(e) else logger.warning
            log(
                f"{description} failed after {e.attempts} attempt(s): {e}",
                extra={
                    "operation": description,
                    "status": e.status,
                    "attempts": e.attempts,
                    "component": "resilient_client",
                },
            )
            raise
        return response

    @staticmethod
    def _attempt(operation: Callable[[], requests.Response]) -> requests.Response:
        try:
            response = operation()
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientNetworkError(f"Network error: {e}") from e
        error = error_for_response(response)
        if error is not None:
            raise error
        return response
