"""
Intent classification — does a prompt need an execution environment?

The keyword sets are plain data so they can be tuned without touching the
reasoning loop. ``classify`` is a pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass

ACTION_KEYWORDS: frozenset[str] = frozenset({
    "create", "build", "generate code", "component", "app", "project",
    "file", "implement", "develop", "write code", "make", "setup",
    "install", "run", "execute", "test", "deploy", "add feature",
    "modify", "update code", "fix", "refactor",
})

INFORMATIONAL_KEYWORDS: frozenset[str] = frozenset({
    "how to", "how do i", "how do you", "how can i", "what is", "what are",
    "what does", "why", "when", "where", "explain", "describe",
    "help me understand", "guide", "tutorial", "learn",
    "difference between", "best practice", "recommend", "suggest",
    "advice", "tell me about", "overview of",
})

# Interrogative openers: a prompt starting with one asks about an action
# rather than requesting it.
QUESTION_OPENERS: tuple[str, ...] = (
    "how to", "how do i", "how do you", "how can i",
    "what is", "what are", "what does", "difference between",
)


@dataclass(frozen=True)
class IntentDecision:
    needs_environment: bool
    reuse_provided: bool
    environment_ref: str | None = None


def classify(prompt: str, provided_ref: str | None = None) -> IntentDecision:
    """Decide whether ``prompt`` requires an execution environment.

    A provided reference is always reused. Otherwise the prompt is matched
    case-insensitively against both keyword sets: any action match wins over
    informational matches, except when the prompt opens with an interrogative
    phrase ("How do I create ...?"), which makes it a question about the
    action rather than a request to perform it. No match defaults to
    text-only.
    """
    if provided_ref:
        return IntentDecision(needs_environment=True, reuse_provided=True, environment_ref=provided_ref)

    text = prompt.lower().strip()
    if _opens_with_question(text):
        return IntentDecision(needs_environment=False, reuse_provided=False)

    has_action = any(k in text for k in ACTION_KEYWORDS)
    return IntentDecision(needs_environment=has_action, reuse_provided=False)


def _opens_with_question(text: str) -> bool:
    return text.startswith(QUESTION_OPENERS)
