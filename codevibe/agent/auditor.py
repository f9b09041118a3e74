"""Self-audit step: a second completion call that answers PASS or RETRY."""

from __future__ import annotations

from dataclasses import dataclass

from ..infra.logging import get_logger
from ..types import CompletionParams, LLMProvider, SystemMessage, UserMessage

logger = get_logger(__name__)

PASS = "PASS"
RETRY = "RETRY"
AUDIT_PREFIX = "Audit:"

AUDIT_PROMPT = (
    "You are an auditor for a Next.js coding assistant. This is audit attempt "
    "{attempt} of {max_attempts}.\n"
    'Respond with exactly "PASS" if the assistant output is acceptable, or "RETRY" '
    "if there are significant issues that need fixing.\n"
    "Be more lenient on later attempts - minor issues should result in PASS."
)


@dataclass(frozen=True)
class Verdict:
    attempt: int
    verdict: str
    forced: bool = False
    reason: str = ""

    @property
    def passed(self) -> bool:
        return self.verdict == PASS

    def message_text(self) -> str:
        if self.reason:
            return f"{AUDIT_PREFIX} {self.verdict} ({self.reason})"
        return f"{AUDIT_PREFIX} {self.verdict}"


def parse_verdict(text: str) -> str:
    upper = (text or "").upper()
    if PASS in upper and RETRY not in upper:
        return PASS
    return RETRY


class Auditor:
    """Reviews the last assistant output.

    Fail-open: once ``max_attempts`` verdicts have been obtained the next one
    is a forced PASS without consulting the service, and any service error is
    an implicit PASS.
    """

    def __init__(self, provider: LLMProvider, max_attempts: int = 3) -> None:
        self.provider = provider
        self.max_attempts = max_attempts

    async def review(self, output: str, prior_attempts: int) -> Verdict:
        attempt = prior_attempts + 1
        if prior_attempts >= self.max_attempts:
            logger.info("audit.forced_pass", attempt=attempt, max_attempts=self.max_attempts)
            return Verdict(
                attempt=attempt,
                verdict=PASS,
                forced=True,
                reason=f"Maximum audit attempts reached: {self.max_attempts}",
            )

        params = CompletionParams(
            messages=[
                SystemMessage(
                    content=AUDIT_PROMPT.format(attempt=attempt, max_attempts=self.max_attempts)
                ),
                UserMessage(content=f'Assistant output: "{output}"'),
            ],
            tools=[],
            max_tokens=16,
            temperature=0.0,
        )
        try:
            result = await self.provider.complete(params)
        except Exception as e:
            logger.warning("audit.failed", attempt=attempt, error=str(e))
            return Verdict(attempt=attempt, verdict=PASS, reason="Audit error occurred")

        verdict = parse_verdict(result.content)
        logger.info("audit.verdict", attempt=attempt, verdict=verdict)
        return Verdict(attempt=attempt, verdict=verdict)
