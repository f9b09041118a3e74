"""Base completion provider with retry and circuit breaker."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..errors import LLMCircuitOpenError
from ..infra.logging import get_logger
from ..types import CompletionParams, CompletionResult, StreamChunk

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_time: float = 60.0


class BaseLLMProvider:
    """Abstract base with retry + circuit breaker. Subclass and implement _do_complete/_do_stream."""

    name = "base"

    def __init__(
        self,
        retry: RetryConfig | None = None,
        circuit_breaker: CircuitBreakerConfig | None = None,
    ) -> None:
        self._retry = retry or RetryConfig()
        self._cb = circuit_breaker or CircuitBreakerConfig()
        self._failures = 0
        self._last_failure = 0.0

    async def complete(self, params: CompletionParams) -> CompletionResult:
        self._check_circuit()
        return await self._with_retry(lambda: self._do_complete(params))

    async def stream(self, params: CompletionParams) -> AsyncGenerator[StreamChunk, None]:
        self._check_circuit()
        try:
            async for chunk in self._do_stream(params):
                yield chunk
        except Exception:
            self._record_failure()
            raise
        self._failures = 0

    # -- Override these --

    async def _do_complete(self, params: CompletionParams) -> CompletionResult:
        raise NotImplementedError

    async def _do_stream(self, params: CompletionParams) -> AsyncGenerator[StreamChunk, None]:
        raise NotImplementedError
        yield  # pragma: no cover

    # -- Internals --

    def _check_circuit(self) -> None:
        if self._failures >= self._cb.failure_threshold:
            if time.time() - self._last_failure < self._cb.reset_time:
                raise LLMCircuitOpenError(self.name)
            self._failures = 0

    def _record_failure(self) -> None:
        self._failures += 1
        self._last_failure = time.time()

    async def _with_retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        last_err: Exception | None = None
        attempts = max(self._retry.max_retries, 0) + 1
        for i in range(attempts):
            try:
                result = await fn()
                self._failures = 0
                return result
            except Exception as e:
                last_err = e
                self._record_failure()
                logger.warning("llm.call_failed", provider=self.name, attempt=i + 1, error=str(e))
                if i < attempts - 1:
                    delay = min(
                        self._retry.base_delay * (2 ** i) + random.random() * 0.1,
                        self._retry.max_delay,
                    )
                    await asyncio.sleep(delay)
        raise last_err  # type: ignore[misc]
