"""
Offline Fallback Responder
==========================

Network-free replies used when the answer service is unavailable:
- Keyword-triggered canned replies in a fixed priority order
- A small arithmetic evaluator for "<a> <op> <b>" expressions
- Square root and power phrases as a secondary arithmetic check

Canned-reply selection uses an injected random source so a seeded responder
always gives the same reply.
"""

import logging
import math
import random
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class FallbackTrigger(Enum):
    """Reply categories, listed in match priority order."""
    GREETING = "greeting"
    ARITHMETIC = "arithmetic"
    TIME = "time"
    HELP = "help"
    THANKS = "thanks"
    FAREWELL = "farewell"
    DOMAIN = "domain"
    GENERIC = "generic"


@dataclass(frozen=True)
class FallbackReply:
    """Reply produced by the fallback responder."""
    trigger: FallbackTrigger
    text: str


# Plain substrings: "hi" also fires inside "which" or "this", and greetings
# outrank arithmetic in classify().
GREETING_KEYWORDS = ("hello", "hi", "hey")
ARITHMETIC_KEYWORDS = ("calculate", "math", "square root", "power", "^", "**")
TIME_KEYWORDS = ("time", "date", "today")
HELP_KEYWORDS = ("help", "what can you do")
THANKS_KEYWORDS = ("thank",)
FAREWELL_KEYWORDS = ("bye", "goodbye")

GREETING_REPLIES = (
    "Hello! I'm FloatChat. I'm currently running in offline mode, but I can still help with basic questions!",
    "Hi there! I'm in basic mode right now, but I can still chat with you!",
    "Hey! Good to see you. I'm running with limited capabilities, but let's talk!",
)

GENERIC_REPLIES = (
    "That's interesting! I'm in basic mode right now, so I might not have the perfect answer, but I'm happy to chat about it.",
    "I'm running with limited capabilities at the moment, but I'd love to hear more about what you're thinking!",
    "While I'm in offline mode, I can still have a conversation! Tell me more about that.",
    "I'm currently using basic responses, but I'm here to chat! What would you like to talk about?",
    "My full AI brain isn't available right now, but I can still try to help! Can you tell me more?",
)

HELP_REPLY = (
    "I'm currently in basic mode, but I can still help with:\n"
    "• Basic math calculations (try \"15 + 25\")\n"
    "• Tell you the current time and date\n"
    "• Ocean topics like temperature trends, ARGO floats or deep-sea trenches\n"
    "• Have simple conversations\n\n"
    "My full AI capabilities will return once the API connection is restored!"
)

THANKS_REPLY = "You're welcome! Happy to help however I can, even in basic mode."

FAREWELL_REPLY = "Goodbye! Thanks for chatting with FloatChat. Hope to see you again soon!"

# (keywords, reply) pairs, checked in order
DOMAIN_REPLIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("api", "key", "openai"),
     "I'm currently running without my AI API connection. To enable full AI capabilities, "
     "an OpenAI API key would need to be configured. For now, I'm happy to help with basic responses!"),
    (("programming", "code"),
     "I'd love to help with programming questions! While I'm in basic mode, I can still discuss "
     "general programming concepts. What are you working on?"),
    (("weather",),
     "I can't check the weather right now, but I'd recommend checking your local weather app or "
     "website for current conditions!"),
    (("ocean", "sea", "argo", "salinity", "float"),
     "I'm in basic mode, so I can only answer a few ocean topics right now. Try asking about the "
     "average depth of the oceans, temperature trends near the equator, or ARGO floats in the Arabian Sea."),
)

ARITHMETIC_USAGE = (
    "I can help with basic math operations like:\n"
    "• Addition: 15 + 25\n"
    "• Subtraction: 50 - 12\n"
    "• Multiplication: 8 * 7\n"
    "• Division: 100 / 4\n"
    "• Square root: square root of 16\n"
    "• Powers: 2 ^ 3\n\n"
    "What would you like to calculate?"
)

DIVIDE_BY_ZERO = "cannot divide by zero"

_NUMBER = r"(\d+(?:\.\d+)?)"
EXPRESSION_PATTERN = re.compile(_NUMBER + r"\s*([+\-*/])\s*" + _NUMBER)
SQUARE_ROOT_PATTERN = re.compile(r"square root(?: of)?\s*" + _NUMBER)
POWER_PATTERN = re.compile(
    _NUMBER + r"\s*(?:\^|\*\*|(?:to the )?power(?: of)?)\s*" + _NUMBER
)


def format_number(value: float) -> str:
    """Render a number the way the chat shows it: 40 not 40.0, 2.5 as is."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value)


class ArithmeticEvaluator:
    """Evaluates simple two-operand expressions found in free text."""

    OPERATORS: Dict[str, Callable[[float, float], float]] = {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": lambda a, b: a * b,
        "/": lambda a, b: a / b,
    }

    def evaluate_expressions(self, text: str) -> List[str]:
        """
        Evaluate every non-overlapping "<a> <op> <b>" in the text.

        Returns:
            One rendered line per match, left to right. Division by zero
            renders a message for that match only.
        """
        lines = []
        for match in EXPRESSION_PATTERN.finditer(text):
            left, operator, right = match.groups()
            a, b = float(left), float(right)
            prefix = f"{format_number(a)} {operator} {format_number(b)} = "

            if operator == "/" and b == 0:
                lines.append(prefix + DIVIDE_BY_ZERO)
                continue

            lines.append(prefix + format_number(self.OPERATORS[operator](a, b)))
        return lines

    def evaluate_special(self, text: str) -> Optional[str]:
        """Handle "square root of N" and "N ^ M" style phrases."""
        if "square root" in text:
            match = SQUARE_ROOT_PATTERN.search(text)
            if match:
                number = float(match.group(1))
                return f"The square root of {format_number(number)} is {math.sqrt(number):.2f}"

        if "power" in text or "^" in text or "**" in text:
            match = POWER_PATTERN.search(text)
            if match:
                base, exponent = float(match.group(1)), float(match.group(2))
                try:
                    result = format_number(base ** exponent)
                except OverflowError:
                    result = "too large to compute"
                return f"{format_number(base)} to the power of {format_number(exponent)} = {result}"

        return None

    def calculate(self, text: str) -> str:
        """Answer an arithmetic request, or explain what can be calculated."""
        lines = self.evaluate_expressions(text)
        if lines:
            return "Here's your calculation:\n" + "\n".join(lines)

        special = self.evaluate_special(text)
        if special:
            return special

        return ARITHMETIC_USAGE


class FallbackResponder:
    """Offline reply generator. Makes no network calls."""

    def __init__(self, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 evaluator: Optional[ArithmeticEvaluator] = None):
        """
        Initialize the responder.

        Args:
            rng: Random source for greeting and generic replies
            clock: Returns the current time for date/time replies
            evaluator: Arithmetic evaluator
        """
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now
        self.evaluator = evaluator or ArithmeticEvaluator()

    def reply(self, message: str) -> FallbackReply:
        """Produce an offline reply for a message."""
        text = message.lower().strip()
        trigger = self.classify(text)
        logger.debug("Fallback reply triggered by %s", trigger.value)

        if trigger == FallbackTrigger.GREETING:
            return FallbackReply(trigger, self.rng.choice(GREETING_REPLIES))
        if trigger == FallbackTrigger.ARITHMETIC:
            return FallbackReply(trigger, self.evaluator.calculate(text))
        if trigger == FallbackTrigger.TIME:
            now = self.clock()
            return FallbackReply(
                trigger, f"The current date and time is: {now.strftime('%A, %B %d, %Y at %I:%M %p')}"
            )
        if trigger == FallbackTrigger.HELP:
            return FallbackReply(trigger, HELP_REPLY)
        if trigger == FallbackTrigger.THANKS:
            return FallbackReply(trigger, THANKS_REPLY)
        if trigger == FallbackTrigger.FAREWELL:
            return FallbackReply(trigger, FAREWELL_REPLY)
        if trigger == FallbackTrigger.DOMAIN:
            return FallbackReply(trigger, self._domain_reply(text))

        return FallbackReply(FallbackTrigger.GENERIC, self.rng.choice(GENERIC_REPLIES))

    def classify(self, text: str) -> FallbackTrigger:
        """Pick the reply category for a lower-cased message."""
        if _contains_any(text, GREETING_KEYWORDS):
            return FallbackTrigger.GREETING
        if _contains_any(text, ARITHMETIC_KEYWORDS) or EXPRESSION_PATTERN.search(text):
            return FallbackTrigger.ARITHMETIC
        if _contains_any(text, TIME_KEYWORDS):
            return FallbackTrigger.TIME
        if _contains_any(text, HELP_KEYWORDS):
            return FallbackTrigger.HELP
        if _contains_any(text, THANKS_KEYWORDS):
            return FallbackTrigger.THANKS
        if _contains_any(text, FAREWELL_KEYWORDS):
            return FallbackTrigger.FAREWELL
        if self._domain_reply(text) is not None:
            return FallbackTrigger.DOMAIN
        return FallbackTrigger.GENERIC

    def _domain_reply(self, text: str) -> Optional[str]:
        for keywords, reply in DOMAIN_REPLIES:
            if _contains_any(text, keywords):
                return reply
        return None


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


__all__ = [
    'FallbackResponder', 'FallbackReply', 'FallbackTrigger',
    'ArithmeticEvaluator', 'format_number',
]
