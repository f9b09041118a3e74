"""Scripted provider — replays canned completions, for tests and offline demos."""

from __future__ import annotations

import re
from collections.abc import AsyncGenerator, Iterable

from ..types import CompletionParams, CompletionResult, StreamChunk

Scripted = str | CompletionResult | Exception


class ScriptedProvider:
    """Returns the scripted responses in order; the last one repeats once exhausted.

    Strings become plain text completions; exceptions are raised at the
    point they are reached. Every request is kept in ``calls``.
    """

    name = "scripted"

    def __init__(self, responses: Iterable[Scripted]) -> None:
        self._responses = list(responses)
        if not self._responses:
            raise ValueError("ScriptedProvider needs at least one response")
        self._index = 0
        self.calls: list[CompletionParams] = []

    def _next(self, params: CompletionParams) -> CompletionResult:
        self.calls.append(params)
        item = self._responses[min(self._index, len(self._responses) - 1)]
        self._index += 1
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return CompletionResult(content=item)
        return item

    async def complete(self, params: CompletionParams) -> CompletionResult:
        return self._next(params)

    async def stream(self, params: CompletionParams) -> AsyncGenerator[StreamChunk, None]:
        result = self._next(params)
        for piece in re.findall(r"\S+\s*|\s+", result.content):
            yield StreamChunk(text=piece)
        for tc in result.tool_calls:
            yield StreamChunk(tool_call=tc)
        yield StreamChunk(finish_reason=result.finish_reason)
