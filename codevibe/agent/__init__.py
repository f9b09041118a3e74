"""Reasoning loop, self-audit and system prompt."""

from .auditor import AUDIT_PREFIX, PASS, RETRY, Auditor, Verdict, parse_verdict
from .loop import (
    DEGRADED_RESPONSE,
    EMPTY_RESPONSE,
    PROCESSING_LIMIT_RESPONSE,
    LoopState,
    ReasoningLoop,
    last_response,
)
from .prompt import build_system_prompt

__all__ = [
    "AUDIT_PREFIX", "PASS", "RETRY", "Auditor", "Verdict", "parse_verdict",
    "DEGRADED_RESPONSE", "EMPTY_RESPONSE", "PROCESSING_LIMIT_RESPONSE",
    "LoopState", "ReasoningLoop", "last_response", "build_system_prompt",
]
