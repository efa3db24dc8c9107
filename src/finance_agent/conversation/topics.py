"""Recent-topic extraction used for pronoun and reference resolution."""

import re
from collections.abc import Iterable

from finance_agent.conversation.classifiers import AGE_PATTERNS, RETIREMENT_AGE_PATTERN

MAX_TOPICS = 10

FINANCIAL_TERMS = [
    "mortgage", "tax", "income", "expense", "saving", "investment", "retirement",
    "property", "debt", "asset", "liability", "deduction", "credit", "rate",
    "pillar", "contribution", "bracket", "return", "portfolio", "budget",
    "apartment", "house", "buy", "rent", "afford", "payment", "loan", "salary",
    "chf", "swiss franc", "million", "thousand", "price", "value", "worth",
    "age", "year old", "years old", "retire at", "pension", "withdraw",
]

# Keyword groups used to decide whether a short reply continues a topic
FINANCIAL_TOPICS = [
    (("property", "house", "apartment", "mortgage"), "real estate or mortgage calculation"),
    (("invest", "stock", "bond", "portfolio"), "investment planning"),
    (("tax", "deduction", "credit"), "tax planning"),
    (("retire", "pension", "pillar"), "retirement planning"),
    (("budget", "spend", "save"), "budget management"),
    (("income", "salary", "earn"), "income analysis"),
    (("debt", "loan", "credit"), "debt management"),
    (("age", "year", "old"), "age information"),
]

MONEY_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(?:chf|k|m|million|thousand|francs?)", re.IGNORECASE
)
_PHRASE_PATTERN = re.compile(r"[a-z]+ [a-z]+")


def extract_topics(text: str) -> list[str]:
    """
    Pull financial topics out of a message.

    Returns vocabulary terms found in the text, ``amount_<n>`` for money
    amounts, ``age_<n>`` and ``retire_age_<n>`` for ages, and two-word
    phrases containing a vocabulary term. Duplicates are dropped, first
    occurrence wins.
    """
    if not text:
        return []

    lower = text.lower()
    topics = [term for term in FINANCIAL_TERMS if term in lower]

    for match in MONEY_PATTERN.finditer(lower):
        topics.append(f"amount_{match.group(1)}")

    age_match = AGE_PATTERNS[0].search(lower) or AGE_PATTERNS[3].search(lower)
    if age_match:
        topics.append(f"age_{age_match.group(1)}")

    retire_match = RETIREMENT_AGE_PATTERN.search(lower)
    if retire_match:
        topics.append(f"retire_age_{retire_match.group(1)}")

    for phrase in _PHRASE_PATTERN.findall(lower):
        if any(term in phrase for term in FINANCIAL_TERMS):
            topics.append(phrase)

    return list(dict.fromkeys(topics))


def push_topics(topics: list[str], new: Iterable[str], limit: int = MAX_TOPICS) -> list[str]:
    """Put new topics at the front (most recent first) and cap the list."""
    fresh = list(dict.fromkeys(new))
    if not fresh:
        return list(topics[:limit])
    rest = [t for t in topics if t not in fresh]
    return (fresh + rest)[:limit]


def append_topics(topics: list[str], new: Iterable[str], limit: int = MAX_TOPICS) -> list[str]:
    """Add unseen topics after the existing ones and cap the list."""
    merged = list(topics)
    for topic in new:
        if topic not in merged:
            merged.append(topic)
    return merged[:limit]


def topic_for(*texts: str) -> str | None:
    """Name of the first topic group mentioned in any of the texts."""
    lowered = [t.lower() for t in texts if t]
    for keywords, context in FINANCIAL_TOPICS:
        if any(keyword in text for keyword in keywords for text in lowered):
            return context
    return None
