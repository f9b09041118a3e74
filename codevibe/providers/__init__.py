"""Completion-service adapters."""

from ..types import LLMProvider, CompletionParams, CompletionResult, StreamChunk
from .base import BaseLLMProvider, RetryConfig, CircuitBreakerConfig
from .openai import OpenAIProvider
from .scripted import ScriptedProvider

__all__ = [
    "LLMProvider", "CompletionParams", "CompletionResult", "StreamChunk",
    "BaseLLMProvider", "RetryConfig", "CircuitBreakerConfig",
    "OpenAIProvider", "ScriptedProvider",
]
