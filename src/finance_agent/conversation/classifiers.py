"""Ordered classifier rules for raw user messages.

Each rule looks at the message and returns a tagged Match or None. Rules
are evaluated in CLASSIFIER_RULES order; the first three (age, retirement
age, retirement income) are facts and may all match the same message, the
last two (short response, long message) are mutually exclusive shapes.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class MatchKind(str, Enum):
    AGE = "age"
    RETIREMENT_AGE = "retirement_age"
    RETIREMENT_INCOME = "retirement_income"
    SHORT_RESPONSE = "short_response"
    LONG_MESSAGE = "long_message"


@dataclass(frozen=True)
class Match:
    """Result of a classifier rule."""

    kind: MatchKind
    value: Any = None
    span: str = ""


# A reply of at most this many tokens is a candidate for contextual rewriting
SHORT_RESPONSE_MAX_TOKENS = 5

# A reply of at most this many tokens is merged with a pending question
PENDING_REPLY_MAX_TOKENS = 3

MIN_AGE = 0
MAX_AGE = 120

AGE_PATTERNS = [
    re.compile(r"\b(\d+)\s*(?:years?\s*old|yrs?\s*old)\b", re.IGNORECASE),
    re.compile(r"\bam\s*(\d+)\b", re.IGNORECASE),
    re.compile(r"\bage\s*(?:is|of|:|=)?\s*(\d+)\b", re.IGNORECASE),
    re.compile(r"\b(\d+)\s*(?:years?|yrs?)\b", re.IGNORECASE),
]

RETIREMENT_AGE_PATTERN = re.compile(r"retire\s+(?:at\s+)?(?:age\s+)?(\d+)", re.IGNORECASE)

RETIREMENT_INCOME_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*k\s*(?:chf|per\s+year)", re.IGNORECASE
)

# Shapes of a bare value reply: 35, 1.5k, 2m, 3.5%, CHF 900'000, 1m chf
VALUE_PATTERNS = [
    re.compile(r"^\d+(\.\d+)?$"),
    re.compile(r"^\d+(\.\d+)?[kK]$"),
    re.compile(r"^\d+(\.\d+)?[mM]$"),
    re.compile(r"^\d+(\.\d+)?%$"),
    re.compile(
        r"^(?:chf\s*)?\d[\d,.']*\s*(?:k|m|mio|million|thousand)?\s*(?:chf|francs?)?$",
        re.IGNORECASE,
    ),
]

CONFIRMATION_PATTERN = re.compile(
    r"^(yes|no|yeah|nope|sure|ok|correct|right|exactly|confirm|agree)$", re.IGNORECASE
)

# Replies that approve a calculation the model offered to run
PROCEED_PATTERN = re.compile(
    r"^(yes|yeah|sure|ok|proceed|continue|go ahead)$", re.IGNORECASE
)

_AMOUNT_PATTERN = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(k|m|b|mio|million|thousand|billion)?\b", re.IGNORECASE
)

_MULTIPLIERS = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "mio": 1_000_000,
    "million": 1_000_000,
    "b": 1_000_000_000,
    "billion": 1_000_000_000,
}


def token_count(text: str) -> int:
    return len(text.split())


def is_short(text: str, max_tokens: int = SHORT_RESPONSE_MAX_TOKENS) -> bool:
    stripped = text.strip()
    return bool(stripped) and token_count(stripped) <= max_tokens


def is_value_shaped(text: str) -> bool:
    """True if the whole message is a number, amount or percentage."""
    stripped = text.strip()
    return any(pattern.match(stripped) for pattern in VALUE_PATTERNS)


def is_confirmation(text: str) -> bool:
    return bool(CONFIRMATION_PATTERN.match(text.strip()))


def parse_amount(text: str) -> float | None:
    """
    Parse the first amount in a piece of text.

    Handles thousands separators and k/m/b suffixes, e.g. "1.5m" ->
    1500000.0, "900'000 CHF" -> 900000.0, "85k" -> 85000.0.

    Returns:
        The amount, or None if the text holds no number
    """
    cleaned = re.sub(r"(?<=\d)[,'](?=\d{3}\b)", "", text.lower())
    match = _AMOUNT_PATTERN.search(cleaned)
    if not match:
        return None

    number = float(match.group(1).replace(",", "."))
    suffix = (match.group(2) or "").lower()
    return number * _MULTIPLIERS.get(suffix, 1)


def extract_age(text: str) -> int | None:
    """
    Find the speaker's current age in a message.

    "Retire at age N" phrases are removed first so a target retirement age
    is never mistaken for the current age.
    """
    cleaned = RETIREMENT_AGE_PATTERN.sub(" ", text)
    for pattern in AGE_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            age = int(match.group(1))
            if MIN_AGE < age < MAX_AGE:
                return age
    return None


def age_rule(text: str) -> Match | None:
    age = extract_age(text)
    if age is None:
        return None
    return Match(MatchKind.AGE, age, str(age))


def retirement_age_rule(text: str) -> Match | None:
    match = RETIREMENT_AGE_PATTERN.search(text)
    if not match:
        return None
    return Match(MatchKind.RETIREMENT_AGE, int(match.group(1)), match.group(0))


def retirement_income_rule(text: str) -> Match | None:
    match = RETIREMENT_INCOME_PATTERN.search(text)
    if not match:
        return None
    return Match(MatchKind.RETIREMENT_INCOME, float(match.group(1)) * 1000, match.group(0))


def short_response_rule(text: str, facts: list[Match]) -> Match | None:
    if facts or not is_short(text):
        return None
    return Match(MatchKind.SHORT_RESPONSE, text.strip(), text.strip())


def long_message_rule(text: str, facts: list[Match]) -> Match | None:
    if is_short(text):
        return None
    return Match(MatchKind.LONG_MESSAGE, text.strip(), text.strip())


FACT_RULES: list[Callable[[str], Match | None]] = [
    age_rule,
    retirement_age_rule,
    retirement_income_rule,
]

SHAPE_RULES: list[Callable[[str, list[Match]], Match | None]] = [
    short_response_rule,
    long_message_rule,
]


def classify(text: str) -> list[Match]:
    """
    Run every rule over a message in priority order.

    Returns:
        Matches in rule order; empty for blank input
    """
    if not text or not text.strip():
        return []

    facts = [m for m in (rule(text) for rule in FACT_RULES) if m is not None]
    shapes = [m for m in (rule(text, facts) for rule in SHAPE_RULES) if m is not None]
    return facts + shapes


def extract_retirement_targets(messages: Iterable[str]) -> dict[str, float | int]:
    """
    Collect retirement targets stated anywhere in a list of messages.

    Later messages override earlier ones.

    Returns:
        Dict with any of current_age, target_retirement_age,
        target_annual_income
    """
    targets: dict[str, float | int] = {}

    for text in messages:
        for match in classify(text):
            if match.kind == MatchKind.AGE:
                targets["current_age"] = match.value
            elif match.kind == MatchKind.RETIREMENT_AGE:
                targets["target_retirement_age"] = match.value
            elif match.kind == MatchKind.RETIREMENT_INCOME:
                targets["target_annual_income"] = match.value

    return targets
