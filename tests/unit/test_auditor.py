"""Tests for the self-audit step."""

from codevibe.agent import PASS, RETRY, Auditor, parse_verdict
from codevibe.providers import ScriptedProvider


class TestParseVerdict:
    def test_pass(self):
        assert parse_verdict("PASS") == PASS
        assert parse_verdict("  pass.\n") == PASS

    def test_retry(self):
        assert parse_verdict("RETRY") == RETRY

    def test_ambiguous_is_retry(self):
        assert parse_verdict("PASS or RETRY?") == RETRY
        assert parse_verdict("") == RETRY


class TestAuditor:
    async def test_asks_the_service(self):
        provider = ScriptedProvider(["PASS"])
        verdict = await Auditor(provider, max_attempts=3).review("Created the page.", 0)
        assert verdict.verdict == PASS
        assert verdict.attempt == 1
        assert verdict.forced is False
        system, user = provider.calls[0].messages
        assert "audit attempt 1 of 3" in system.content
        assert "Created the page." in user.content
        assert provider.calls[0].tools == []

    async def test_forced_pass_at_cap_skips_the_service(self):
        provider = ScriptedProvider(["RETRY"])
        verdict = await Auditor(provider, max_attempts=3).review("x", 3)
        assert verdict.verdict == PASS
        assert verdict.forced is True
        assert verdict.attempt == 4
        assert provider.calls == []
        assert verdict.message_text() == "Audit: PASS (Maximum audit attempts reached: 3)"

    async def test_error_is_implicit_pass(self):
        provider = ScriptedProvider([RuntimeError("service down")])
        verdict = await Auditor(provider).review("x", 0)
        assert verdict.passed
        assert verdict.forced is False
        assert verdict.message_text() == "Audit: PASS (Audit error occurred)"
