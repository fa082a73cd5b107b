"""Tests for the AI helper use-case."""

from unittest.mock import MagicMock

import pytest

from coursereg.advisor import AdvisorClient, AdvisorRequestError
from coursereg.registrar import Registrar
from coursereg.rules import InternalError, ValidationError


@pytest.fixture
def advisor() -> MagicMock:
    return MagicMock(spec=AdvisorClient)


@pytest.fixture
def advised(store, tokens, advisor) -> Registrar:
    return Registrar(store, tokens, advisor=advisor, password_iterations=1000)


@pytest.mark.unit
class TestAskAdvisor:
    def test_returns_answer(self, advised, advisor):
        advisor.ask.return_value = "Plan ahead."

        assert advised.ask_advisor("How do I pick courses?") == "Plan ahead."
        advisor.ask.assert_called_once_with("How do I pick courses?")

    @pytest.mark.parametrize("prompt", [None, "", "   "])
    def test_prompt_required(self, advised, advisor, prompt):
        with pytest.raises(ValidationError, match="Prompt is required."):
            advised.ask_advisor(prompt)
        advisor.ask.assert_not_called()

    def test_advisor_failure_is_internal(self, advised, advisor):
        advisor.ask.side_effect = AdvisorRequestError("Advisor request failed: 500 - key=abc")

        with pytest.raises(InternalError) as exc_info:
            advised.ask_advisor("question")

        assert exc_info.value.message == "AI helper error"

    def test_missing_advisor_is_internal(self, registrar):
        with pytest.raises(InternalError, match="AI helper error"):
            registrar.ask_advisor("question")
