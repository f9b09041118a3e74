"""OpenAI-compatible completion provider."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from openai import APIError, AsyncOpenAI

from ..config import LLMConfig
from ..errors import LLMError
from ..types import (
    AssistantMessage,
    CompletionParams,
    CompletionResult,
    Message,
    StreamChunk,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolMessage,
)
from .base import BaseLLMProvider, RetryConfig


def _msg_to_dict(m: Message) -> dict:
    d: dict = {"role": m.role, "content": m.content}
    if isinstance(m, AssistantMessage) and m.tool_calls:
        d["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.name, "arguments": tc.arguments},
            }
            for tc in m.tool_calls
        ]
    if isinstance(m, ToolMessage):
        d["tool_call_id"] = m.tool_call_id
    return d


def _llm_error(e: APIError) -> LLMError:
    return LLMError(
        "LLM_REQUEST_FAILED", "openai", str(e), status_code=getattr(e, "status_code", None), cause=e
    )


def _tools_to_dicts(tools: list[ToolDefinition]) -> list[dict]:
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters.to_json_schema(),
            },
        }
        for t in tools
    ]


class OpenAIProvider(BaseLLMProvider):
    name = "openai"

    def __init__(self, config: LLMConfig, client: AsyncOpenAI | None = None, **kwargs) -> None:
        kwargs.setdefault("retry", RetryConfig(max_retries=config.max_retries))
        super().__init__(**kwargs)
        self._client = client or AsyncOpenAI(
            api_key=config.api_key, base_url=config.base_url, timeout=config.timeout_seconds
        )
        self._model = config.model

    def _request(self, params: CompletionParams, stream: bool) -> dict:
        kwargs: dict = {
            "model": self._model,
            "messages": [_msg_to_dict(m) for m in params.messages],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
        }
        if stream:
            kwargs["stream"] = True
        if params.tools:
            kwargs["tools"] = _tools_to_dicts(params.tools)
        return kwargs

    async def _do_complete(self, params: CompletionParams) -> CompletionResult:
        try:
            resp = await self._client.chat.completions.create(**self._request(params, stream=False))
        except APIError as e:
            raise _llm_error(e) from e
        choice = resp.choices[0]
        tool_calls = []
        if choice.message.tool_calls:
            tool_calls = [
                ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments)
                for tc in choice.message.tool_calls
            ]
        usage = TokenUsage()
        if resp.usage:
            usage = TokenUsage(
                prompt_tokens=resp.usage.prompt_tokens,
                completion_tokens=resp.usage.completion_tokens,
                total_tokens=resp.usage.total_tokens,
            )
        return CompletionResult(
            content=choice.message.content or "",
            tool_calls=tool_calls,
            usage=usage,
            finish_reason="tool_calls" if tool_calls else "stop",
        )

    async def _do_stream(self, params: CompletionParams) -> AsyncGenerator[StreamChunk, None]:
        try:
            resp = await self._client.chat.completions.create(**self._request(params, stream=True))
        except APIError as e:
            raise _llm_error(e) from e
        tc_buffers: dict[int, dict] = {}
        async for chunk in resp:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            finish = chunk.choices[0].finish_reason
            if delta and delta.content:
                yield StreamChunk(text=delta.content)
            if delta and delta.tool_calls:
                for tc in delta.tool_calls:
                    buf = tc_buffers.setdefault(tc.index, {"id": "", "name": "", "args": ""})
                    if tc.id:
                        buf["id"] = tc.id
                    if tc.function and tc.function.name:
                        buf["name"] = tc.function.name
                    if tc.function and tc.function.arguments:
                        buf["args"] += tc.function.arguments
            if finish:
                for buf in tc_buffers.values():
                    yield StreamChunk(
                        tool_call=ToolCall(id=buf["id"], name=buf["name"], arguments=buf["args"])
                    )
                tc_buffers.clear()
                yield StreamChunk(finish_reason=finish)
