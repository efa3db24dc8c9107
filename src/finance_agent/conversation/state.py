"""Pure reducers for per-conversation state.

Every function takes the current state plus one event and returns a new
ConversationState; the input is never mutated.
"""

import logging
import re

from finance_agent.conversation.classifiers import (
    PENDING_REPLY_MAX_TOKENS,
    PROCEED_PATTERN,
    MatchKind,
    classify,
    is_short,
    is_value_shaped,
    parse_amount,
)
from finance_agent.models.conversation import ChatMessage, ConversationState
from finance_agent.models.finance import FinancialSnapshot

logger = logging.getLogger(__name__)

MAX_HISTORY = 30

PROPERTY_TOPIC = "property affordability calculation"

# First matching keyword group names the active calculation
TOPIC_RULES = [
    (("property", "mortgage", "house", "apartment", "buy", "afford"), PROPERTY_TOPIC),
    (("tax",), "tax optimization"),
    (("invest", "portfolio"), "investment portfolio analysis"),
    (("retire", "pension"), "retirement planning"),
    (("budget", "spend", "expense"), "budget analysis"),
]

PRICE_WORDS = ("price", "cost", "value", "worth")

CLOSING_PHRASES = ("in conclusion", "to summarize", "in summary", "based on my analysis")

_NUMBER_PATTERN = re.compile(r"\d+(?:[.,]\d+)?(?:\s*[kmKM]\b)?")
_INCOME_CONTEXT = re.compile(r"income.*?(\d[\d,']*)", re.IGNORECASE)
_AGE_WORD = re.compile(r"\bage\b")

# Bare numbers answering an age question
_AGE_INPUTS = {
    "current_age": "current_age",
    "retirement_age": "target_retirement_age",
}

_RETIREMENT_FIELDS = {
    MatchKind.AGE: "current_age",
    MatchKind.RETIREMENT_AGE: "target_retirement_age",
    MatchKind.RETIREMENT_INCOME: "target_annual_income",
}


def _with_retirement_facts(state: ConversationState, text: str) -> ConversationState:
    updates = {
        _RETIREMENT_FIELDS[m.kind]: m.value
        for m in classify(text)
        if m.kind in _RETIREMENT_FIELDS
    }
    if not updates:
        return state

    retirement = state.retirement.model_copy(update=updates).with_timeframe()
    logger.debug(f"Retirement context updated: {retirement.model_dump(exclude_none=True)}")
    return state.model_copy(update={"retirement": retirement})


def _apply_short_reply(state: ConversationState, text: str) -> ConversationState:
    update: dict = {}
    topic = state.active_calculation or ""
    is_value = is_value_shaped(text)

    if is_value:
        update["last_value_mentioned"] = text
        amount = parse_amount(text)
        if (
            "property" in topic
            or "mortgage" in topic
            or "property_value" in state.pending_inputs
            or state.last_property_value is not None
        ):
            update["last_property_value"] = amount
        if "income" in topic or "salary" in topic or "income" in state.pending_inputs:
            update["last_income_discussed"] = amount

        age_field = _AGE_INPUTS.get(state.pending_inputs[0]) if state.pending_inputs else None
        if age_field and amount is not None and amount.is_integer() and 0 < amount < 120:
            retirement = state.retirement.model_copy(update={age_field: int(amount)})
            update["retirement"] = retirement.with_timeframe()

    # An answer to a pending question returns the conversation to Active
    if state.is_awaiting_input and (is_value or PROCEED_PATTERN.match(text)):
        update["pending_confirmation"] = False
        update["pending_inputs"] = []

    return state.model_copy(update=update) if update else state


def _apply_topic_message(state: ConversationState, text: str) -> ConversationState:
    lower = text.lower()
    update: dict = {}

    topic = next(
        (name for keywords, name in TOPIC_RULES if any(k in lower for k in keywords)),
        None,
    )
    if topic:
        asks = "?" in text
        update.update(active_calculation=topic, last_question=text, pending_confirmation=asks)

        if topic == PROPERTY_TOPIC:
            if asks and any(word in lower for word in PRICE_WORDS):
                update["pending_inputs"] = ["property_value"]

            amount = parse_amount(text)
            if amount is not None:
                update["last_property_value"] = amount

            income_match = _INCOME_CONTEXT.search(text)
            if income_match:
                raw_income = income_match.group(1).rstrip(",'")
                update["calculation_context"] = {
                    **state.calculation_context,
                    "income": raw_income,
                }
                update["last_income_discussed"] = parse_amount(raw_income)

        if topic != state.active_calculation:
            logger.info(f"Active calculation: {topic}")

    numbers = _NUMBER_PATTERN.findall(text)
    if numbers:
        update["last_value_mentioned"] = numbers[-1].strip()

    return state.model_copy(update=update) if update else state


def apply_user_message(state: ConversationState, text: str) -> ConversationState:
    """
    Fold one user message into the conversation state.

    Retirement facts are picked up from any message. Replies of at most
    three tokens record the value given and, when the assistant was waiting
    on an answer, return the conversation to Active. Longer messages set
    the active calculation from topic keywords.

    Args:
        state: Current state
        text: The user's message as typed

    Returns:
        The updated state
    """
    if not text or not text.strip():
        return state

    stripped = text.strip()
    new_state = _with_retirement_facts(state, stripped)

    if is_short(stripped, PENDING_REPLY_MAX_TOKENS):
        return _apply_short_reply(new_state, stripped)
    return _apply_topic_message(new_state, stripped)


def _expected_input(lower_reply: str) -> str | None:
    has_age = bool(_AGE_WORD.search(lower_reply))
    if has_age and "retirement" in lower_reply:
        return "retirement_age"
    if has_age:
        return "current_age"
    if "income" in lower_reply:
        return "income"
    if "property" in lower_reply and any(w in lower_reply for w in ("price", "value", "cost")):
        return "property_value"
    return None


def apply_model_reply(state: ConversationState, reply: str) -> ConversationState:
    """
    Fold the assistant's reply into the conversation state.

    A question mark means the assistant is waiting on the user; the kind of
    input it expects is guessed from keywords. Closing language ends the
    current calculation.
    """
    lower = reply.lower()
    update: dict = {}

    if "?" in reply:
        update["pending_confirmation"] = True
        expected = _expected_input(lower)
        if expected:
            update["pending_inputs"] = [expected]
    else:
        update["pending_confirmation"] = False

    if any(phrase in lower for phrase in CLOSING_PHRASES):
        if state.active_calculation:
            logger.info(f"Calculation concluded: {state.active_calculation}")
        update.update(active_calculation=None, pending_confirmation=False, pending_inputs=[])

    return state.model_copy(update=update)


def apply_financial_parameters(
    state: ConversationState, snapshot: FinancialSnapshot | None
) -> ConversationState:
    """Merge retirement parameters supplied with the snapshot."""
    if snapshot is None or snapshot.retirement_parameters is None:
        return state

    supplied = snapshot.retirement_parameters.model_dump(exclude_none=True)
    if not supplied:
        return state

    retirement = state.retirement.model_copy(update=supplied).with_timeframe()
    return state.model_copy(update={"retirement": retirement})


def trim_history(history: list[ChatMessage], limit: int = MAX_HISTORY) -> list[ChatMessage]:
    """Drop the oldest turns beyond the limit, always keeping the first one."""
    if len(history) <= limit:
        return list(history)
    return [history[0]] + history[len(history) - limit + 1 :]
