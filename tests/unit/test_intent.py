"""Tests for intent classification."""

import pytest

from codevibe.intent import ACTION_KEYWORDS, INFORMATIONAL_KEYWORDS, QUESTION_OPENERS, classify


class TestClassify:
    def test_question_about_an_action_is_informational(self):
        decision = classify("How do I create a Next.js page?")
        assert decision.needs_environment is False
        assert decision.reuse_provided is False
        assert decision.environment_ref is None

    def test_action_request_needs_environment(self):
        decision = classify("Create a todo app")
        assert decision.needs_environment is True
        assert decision.reuse_provided is False

    def test_provided_reference_is_always_reused(self):
        decision = classify("What is middleware?", provided_ref="sbx-123")
        assert decision.needs_environment is True
        assert decision.reuse_provided is True
        assert decision.environment_ref == "sbx-123"

    def test_informational_only(self):
        assert classify("Explain the difference between SSR and SSG").needs_environment is False

    @pytest.mark.parametrize(
        "prompt",
        [
            "What is the best way to fix this?",
            "How can I build a sidebar?",
            "Difference between app and pages router",
        ],
    )
    def test_interrogative_opener_is_informational(self, prompt):
        assert classify(prompt).needs_environment is False

    @pytest.mark.parametrize(
        "prompt",
        [
            "Suggest and implement a fix for the navbar",
            "When the button is clicked show a modal, implement it",
            "Why not build me a todo app",
            "Recommend a layout and create it",
            "Explain and refactor the header",
        ],
    )
    def test_imperative_opener_with_action_needs_environment(self, prompt):
        assert classify(prompt).needs_environment is True

    def test_no_match_defaults_to_text_only(self):
        assert classify("Good morning!").needs_environment is False

    def test_action_wins_over_informational_overlap(self):
        assert classify("Please build a dashboard and explain it").needs_environment is True

    def test_case_insensitive(self):
        assert classify("REFACTOR the header").needs_environment is True

    @pytest.mark.parametrize("prompt", ["Fix the login bug", "Install zod", "implement search"])
    def test_action_keywords(self, prompt):
        assert classify(prompt).needs_environment is True

    def test_pure(self):
        prompt = "Build a weather widget"
        assert classify(prompt, None) == classify(prompt, None)
        assert classify(prompt, "sbx-1") == classify(prompt, "sbx-1")


class TestKeywordSets:
    def test_disjoint(self):
        assert not ACTION_KEYWORDS & INFORMATIONAL_KEYWORDS

    def test_question_openers_are_informational_keywords(self):
        assert set(QUESTION_OPENERS) <= INFORMATIONAL_KEYWORDS

    def test_lowercase(self):
        for keyword in ACTION_KEYWORDS | INFORMATIONAL_KEYWORDS:
            assert keyword == keyword.lower()
