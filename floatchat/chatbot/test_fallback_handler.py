"""
Unit Tests for the Offline Fallback Responder
=============================================
"""

import random
import pytest
from datetime import datetime

from floatchat.chatbot.fallback_handler import (
    ARITHMETIC_USAGE, FAREWELL_REPLY, GENERIC_REPLIES, GREETING_REPLIES, HELP_REPLY,
    THANKS_REPLY, ArithmeticEvaluator, FallbackResponder, FallbackTrigger, format_number
)


@pytest.fixture
def responder():
    return FallbackResponder(
        rng=random.Random(1234),
        clock=lambda: datetime(2024, 7, 4, 15, 30)
    )


class TestArithmeticEvaluator:
    """Test expression evaluation."""

    @pytest.fixture
    def evaluator(self):
        return ArithmeticEvaluator()

    def test_addition(self, evaluator):
        assert evaluator.evaluate_expressions("15 + 25") == ["15 + 25 = 40"]

    def test_divide_by_zero(self, evaluator):
        """Division by zero reports that match only."""
        result = evaluator.calculate("10 / 0")

        assert "10 / 0 = cannot divide by zero" in result
        assert "inf" not in result

    def test_multiple_expressions_in_order(self, evaluator):
        result = evaluator.calculate("8 * 7 and 9 - 2")

        assert result == "Here's your calculation:\n8 * 7 = 56\n9 - 2 = 7"

    def test_zero_division_does_not_abort_other_matches(self, evaluator):
        lines = evaluator.evaluate_expressions("1 / 0 then 6 / 4")
        assert lines == ["1 / 0 = cannot divide by zero", "6 / 4 = 1.5"]

    def test_decimals(self, evaluator):
        assert evaluator.evaluate_expressions("2.5 * 4") == ["2.5 * 4 = 10"]

    def test_square_root(self, evaluator):
        assert evaluator.calculate("square root of 16") == "The square root of 16 is 4.00"

    @pytest.mark.parametrize("text", ["2 ^ 3", "2 ** 3", "2 power 3", "2 to the power of 3"])
    def test_power(self, evaluator, text):
        assert evaluator.calculate(text) == "2 to the power of 3 = 8"

    def test_power_overflow(self, evaluator):
        assert evaluator.calculate("10 ^ 400") == "10 to the power of 400 = too large to compute"

    def test_operator_pairs_take_precedence(self, evaluator):
        """Special phrases are only checked when no operator pair matches."""
        result = evaluator.calculate("square root of 16 and 3 + 4")
        assert result == "Here's your calculation:\n3 + 4 = 7"

    def test_usage_hint(self, evaluator):
        assert evaluator.calculate("calculate something") == ARITHMETIC_USAGE

    def test_format_number(self):
        assert format_number(40.0) == "40"
        assert format_number(2.5) == "2.5"


class TestFallbackResponder:
    """Test reply selection."""

    def test_greeting(self, responder):
        reply = responder.reply("Hello there")

        assert reply.trigger == FallbackTrigger.GREETING
        assert reply.text in GREETING_REPLIES

    def test_arithmetic(self, responder):
        reply = responder.reply("15 + 25")

        assert reply.trigger == FallbackTrigger.ARITHMETIC
        assert "15 + 25 = 40" in reply.text

    def test_arithmetic_keyword_without_expression(self, responder):
        reply = responder.reply("Can you do some math?")

        assert reply.trigger == FallbackTrigger.ARITHMETIC
        assert reply.text == ARITHMETIC_USAGE

    def test_time(self, responder):
        reply = responder.reply("What is the date?")

        assert reply.trigger == FallbackTrigger.TIME
        assert reply.text == "The current date and time is: Thursday, July 04, 2024 at 03:30 PM"

    @pytest.mark.parametrize("message,trigger,text", [
        ("what can you do", FallbackTrigger.HELP, HELP_REPLY),
        ("Thanks a lot", FallbackTrigger.THANKS, THANKS_REPLY),
        ("goodbye", FallbackTrigger.FAREWELL, FAREWELL_REPLY),
    ])
    def test_fixed_replies(self, responder, message, trigger, text):
        reply = responder.reply(message)

        assert reply.trigger == trigger
        assert reply.text == text

    def test_domain_reply(self, responder):
        reply = responder.reply("Tell me about salinity")

        assert reply.trigger == FallbackTrigger.DOMAIN
        assert "ocean topics" in reply.text

    def test_generic(self, responder):
        reply = responder.reply("purple elephants dance")

        assert reply.trigger == FallbackTrigger.GENERIC
        assert reply.text in GENERIC_REPLIES

    def test_priority_greeting_before_arithmetic(self, responder):
        assert responder.classify("hey, 2 + 2") == FallbackTrigger.GREETING

    def test_greeting_matches_inside_words(self, responder):
        """Test that greeting keys are substrings, not whole words."""
        assert responder.classify("which is bigger, 15 + 25?") == FallbackTrigger.GREETING
        assert responder.classify("is this 3 * 3") == FallbackTrigger.GREETING

    def test_priority_arithmetic_before_time(self, responder):
        assert responder.classify("what is 3 * 3 today") == FallbackTrigger.ARITHMETIC

    def test_seeded_replies_are_deterministic(self):
        first = FallbackResponder(rng=random.Random(42))
        second = FallbackResponder(rng=random.Random(42))

        for message in ("purple elephants dance", "hello", "purple elephants dance"):
            assert first.reply(message).text == second.reply(message).text
