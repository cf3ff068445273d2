"""Service for executing network requests with automatic retries.

Implements exponential backoff for transient failures: transport errors and
any non-success HTTP status. A successful response is decoded as JSON; a body
that cannot be decoded fails the call immediately, without retrying.
"""

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Optional

from auracli.domain.events.api_events import (
    ApiCallFailed, ApiCallInitiated, ApiCallSucceeded, DomainEvent, RetryScheduled,
)
from auracli.domain.interfaces.transport import Transport
from auracli.domain.models.errors import (
    DecodingError, HttpStatusError, MaxRetryError, RetryableError,
)
from auracli.domain.models.request import (
    RequestDescriptor, RequestOptions, TransportResponse, build_descriptor,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF_MS = 1000.0

SleepFunc = Callable[[float], Awaitable[None]]
EventSink = Callable[[DomainEvent], None]


class ResilientRequestExecutor:
    """Issues one logical request, retrying transient failures with backoff.

    The executor keeps no per-call state on the instance, so a single executor
    can serve any number of concurrent calls.
    """

    def __init__(
        self,
        transport: Transport,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_ms: float = DEFAULT_INITIAL_BACKOFF_MS,
        sleep: SleepFunc = asyncio.sleep,
        on_event: Optional[EventSink] = None,
    ):
        """Initializes the executor.

        Args:
            transport: Sends a single attempt.
            max_retries: Default retry budget when a call does not pass one.
            initial_backoff_ms: Default first delay when a call does not pass one.
            sleep: Awaitable used for backoff waits (seconds). Injected for tests.
            on_event: Optional callable receiving every domain event.
        """
        _validate_policy(max_retries, initial_backoff_ms)
        self.transport = transport
        self.max_retries = max_retries
        self.initial_backoff_ms = initial_backoff_ms
        self._sleep = sleep
        self._on_event = on_event
        logger.info(
            f"ResilientRequestExecutor initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_ms}ms, transport={type(transport).__name__}"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._on_event is not None:
            self._on_event(event)

    async def execute(
        self,
        target: str,
        options: Optional[RequestOptions] = None,
        max_retries: Optional[int] = None,
        initial_backoff_ms: Optional[float] = None,
    ) -> Any:
        """Executes one logical request and returns the decoded JSON payload.

        Args:
            target: Absolute http(s) URL.
            options: Method, headers and body. Passed through unchanged on
                every attempt.
            max_retries: Retries allowed after the first attempt (0 = single
                attempt). Defaults to the executor's setting.
            initial_backoff_ms: Delay before the first retry; doubles after
                each failure. Defaults to the executor's setting.

        Returns:
            The response body decoded as JSON, untransformed.

        Raises:
            ValueError: If the retry policy or the target is invalid.
            DecodingError: If a successful response body is not valid JSON.
            MaxRetryError: If every permitted attempt failed with a retryable error.
        """
        retries_left = self.max_retries if max_retries is None else max_retries
        backoff_ms = self.initial_backoff_ms if initial_backoff_ms is None else initial_backoff_ms
        _validate_policy(retries_left, backoff_ms)

        descriptor = build_descriptor(target, options)
        endpoint = _endpoint_label(descriptor)
        # Correlates the events and log lines of one logical call
        request_id = uuid.uuid4().hex[:12]
        attempt = 0
        start_time = time.perf_counter()

        while True:
            attempt += 1
            self._dispatch(ApiCallInitiated(
                endpoint=endpoint, attempt_number=attempt, request_id=request_id,
            ))
            try:
                response = await self._attempt(descriptor)
            except RetryableError as e:
                if retries_left <= 0:
                    logger.error(
                        f"[{request_id}] Giving up on {endpoint} after {attempt} attempt(s). Last error: {e}"
                    )
                    self._dispatch(ApiCallFailed(
                        endpoint=endpoint, attempts=attempt,
                        error_type=type(e).__name__, error_message=str(e), request_id=request_id,
                    ))
                    raise MaxRetryError(e, attempt) from e

                delay_s = backoff_ms / 1000.0
                logger.warning(
                    f"[{request_id}] Retryable error calling {endpoint} on attempt {attempt}: {type(e).__name__}. "
                    f"Waiting {delay_s:.2f}s ({retries_left} retries left)..."
                )
                self._dispatch(RetryScheduled(
                    endpoint=endpoint, attempt_number=attempt,
                    delay_seconds=delay_s, error_type=type(e).__name__, request_id=request_id,
                ))
                await self._sleep(delay_s)
                backoff_ms *= 2
                retries_left -= 1
                continue

            try:
                payload = _decode(response)
            except DecodingError as e:
                logger.error(f"[{request_id}] Undecodable response from {endpoint} on attempt {attempt}: {e}")
                self._dispatch(ApiCallFailed(
                    endpoint=endpoint, attempts=attempt,
                    error_type=type(e).__name__, error_message=str(e), request_id=request_id,
                ))
                raise

            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(f"[{request_id}] {endpoint} succeeded after {attempt} attempt(s) in {latency_ms:.0f}ms")
            self._dispatch(ApiCallSucceeded(
                endpoint=endpoint, attempts=attempt, latency_ms=latency_ms, request_id=request_id,
            ))
            return payload

    async def _attempt(self, descriptor: RequestDescriptor) -> TransportResponse:
        """One attempt; a non-success status is turned into HttpStatusError."""
        response = await self.transport.send(descriptor)
        if not response.ok:
            raise HttpStatusError(response.status_code, response.text_excerpt())
        return response


def _validate_policy(max_retries: Any, initial_backoff_ms: Any) -> None:
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
        raise ValueError(f"max_retries must be a non-negative integer, got {max_retries!r}")
    if isinstance(initial_backoff_ms, bool) or not isinstance(initial_backoff_ms, (int, float)) \
            or initial_backoff_ms < 0:
        raise ValueError(f"initial_backoff_ms must be non-negative, got {initial_backoff_ms!r}")


def _decode(response: TransportResponse) -> Any:
    try:
        return json.loads(response.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodingError(f"Response body is not valid JSON: {e}") from e


def _endpoint_label(descriptor: RequestDescriptor) -> str:
    # Query strings may carry API keys, keep them out of logs
    return f"{descriptor.method} {str(descriptor.target).split('?', 1)[0]}"
