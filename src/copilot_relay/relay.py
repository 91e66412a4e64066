"""Streaming relay.

Forwards a provider's answer to the caller as a sequence of stream events,
retrying transparently when the provider is rate limiting.

Event order for one request:
    start, data*, end

Retry rules:
- Only retryable errors (rate limits) are retried, and only while no data
  has been sent
- Wait initial_delay * backoff_multiplier ** attempt between attempts
- At most max_retries + 1 attempts in total
- Nothing is emitted while waiting
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing

from .commands import CommandRequest
from .config import GenerationParams, RetryPolicy
from .errors import RelayError, TransportError
from .events import DataEvent, EndEvent, StartEvent
from .prompts import Prompt
from .providers.base import LLMProvider

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
DisconnectCheck = Callable[[], Awaitable[bool]]

RelayEvent = StartEvent | DataEvent | EndEvent


class StreamingRelay:
    """Relays one command to one provider.

    Holds no per-request state, so one instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        provider: LLMProvider,
        retry: RetryPolicy | None = None,
        *,
        attempt_timeout: float | None = 60.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the relay.

        Args:
            provider: Provider that answers the prompt
            retry: Backoff policy for rate limits
            attempt_timeout: Wall-clock ceiling per attempt in seconds (None disables)
            sleep: Awaitable used for backoff waits
        """
        self.provider = provider
        self.retry = retry or RetryPolicy()
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep

    async def relay(
        self,
        request: CommandRequest,
        prompt: Prompt,
        *,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncIterator[RelayEvent]:
        """Yield the events for one command.

        Args:
            request: Validated command request
            prompt: Assembled prompt for the request
            is_disconnected: Returns True once the caller has gone away

        Yields:
            StartEvent, then DataEvents, then exactly one EndEvent
            (unless the caller disconnects first)
        """
        command = request.command.value
        params = self.provider.generation_params(request.command)

        yield StartEvent(command=command)

        attempt = 0
        while True:
            if is_disconnected is not None and await is_disconnected():
                logger.info(f"Client disconnected, abandoning '{command}' before attempt {attempt}")
                return

            logger.debug(
                f"Calling {self.provider.id} for '{command}' "
                f"(attempt {attempt + 1}/{self.retry.max_retries + 1})"
            )
            emitted = False
            try:
                async with aclosing(self._fragments(prompt, params)) as fragments:
                    async for fragment in fragments:
                        emitted = True
                        yield DataEvent(content=fragment)

            except RelayError as e:
                if not e.retryable:
                    logger.error(f"'{command}' failed on {self.provider.id}: {e.message}")
                    yield EndEvent(success=False, error=e.message)
                    return

                if emitted:
                    logger.warning(f"{type(e).__name__} mid-stream for '{command}', cannot resume")
                    yield EndEvent(success=False, error=e.message)
                    return

                if attempt >= self.retry.max_retries:
                    logger.warning(
                        f"Retries exhausted for '{command}' after {attempt + 1} attempts"
                    )
                    yield EndEvent(success=False, error=e.message)
                    return

                delay = self.retry.delay_for(attempt)
                logger.warning(
                    f"{self.provider.id} failed '{command}' ({e.message}), retrying in {delay:.1f}s "
                    f"(retry {attempt + 1}/{self.retry.max_retries})"
                )
                await self._sleep(delay)
                attempt += 1
                continue

            except Exception as e:
                logger.exception(f"Unexpected error relaying '{command}': {e}")
                yield EndEvent(success=False, error="Stream interrupted")
                return

            yield EndEvent(success=True)
            return

    async def _fragments(self, prompt: Prompt, params: GenerationParams) -> AsyncIterator[str]:
        """Yield non-empty text fragments for a single attempt.

        Streaming providers are forwarded as-is; complete answers are split
        with the provider's chunking strategy.
        """
        loop = asyncio.get_running_loop()
        deadline = None if self.attempt_timeout is None else loop.time() + self.attempt_timeout

        if self.provider.supports_streaming:
            async with aclosing(self.provider.stream(prompt, params)) as stream:
                while True:
                    scope = asyncio.timeout_at(deadline)
                    try:
                        async with scope:
                            fragment = await anext(stream)
                    except StopAsyncIteration:
                        return
                    except TimeoutError as e:
                        raise self._timeout_error(scope) from e
                    if fragment:
                        yield fragment
        else:
            scope = asyncio.timeout_at(deadline)
            try:
                async with scope:
                    text = await self.provider.complete(prompt, params)
            except TimeoutError as e:
                raise self._timeout_error(scope) from e
            for chunk in self.provider.chunking.split(text):
                if chunk:
                    yield chunk

    def _timeout_error(self, scope: asyncio.Timeout) -> TransportError:
        """Tell the attempt deadline apart from a timeout raised by the provider."""
        if scope.expired():
            return TransportError(
                f"{self.provider.id} did not respond within {self.attempt_timeout:g}s"
            )
        return TransportError(f"{self.provider.id} request timed out")
