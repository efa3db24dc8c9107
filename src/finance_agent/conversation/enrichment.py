"""Rewriting of short user replies into self-contained prompts."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from finance_agent.conversation.classifiers import (
    PENDING_REPLY_MAX_TOKENS,
    PROCEED_PATTERN,
    extract_age,
    is_confirmation,
    is_short,
    is_value_shaped,
    retirement_age_rule,
    retirement_income_rule,
)
from finance_agent.conversation.topics import topic_for
from finance_agent.models.conversation import ChatMessage, ChatRole, ConversationState

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def extract_last_question(text: str | None) -> str | None:
    """Return the last sentence of a message that ends with '?', if any."""
    if not text:
        return None

    for sentence in reversed(_SENTENCE_SPLIT.split(text)):
        sentence = sentence.strip()
        if sentence.endswith("?"):
            return sentence
    return None


def get_last_question(history: list[ChatMessage]) -> str | None:
    """Most recent question asked by the model anywhere in the history."""
    for message in reversed(history):
        if message.role == ChatRole.MODEL.value:
            question = extract_last_question(message.text)
            if question:
                return question
    return None


@dataclass(frozen=True)
class ShortReply:
    """A short user reply and what it may be answering."""

    text: str
    previous_user: str
    previous_model: str

    @property
    def question(self) -> str | None:
        return extract_last_question(self.previous_model)


def _age_statement(reply: ShortReply) -> str | None:
    age = extract_age(reply.text)
    if age is None:
        return None
    return (
        f"My age is {age} years old. Please use this information for any "
        "retirement or financial planning calculations."
    )


def _answer_to_question(reply: ShortReply) -> str | None:
    if is_value_shaped(reply.text) and reply.question:
        return f'Regarding your question "{reply.question}", my answer is: {reply.text}'
    return None


def _confirmation(reply: ShortReply) -> str | None:
    if is_confirmation(reply.text) and reply.question:
        capitalized = reply.text[0].upper() + reply.text[1:]
        return f'{capitalized}, regarding your question "{reply.question}"'
    return None


def _topic_continuity(reply: ShortReply) -> str | None:
    if not is_value_shaped(reply.text):
        return None
    topic = topic_for(reply.previous_user, reply.previous_model)
    if topic:
        return f"For the {topic} we were discussing, my value is {reply.text}"
    return None


def _previous_question(reply: ShortReply) -> str | None:
    if "?" in reply.previous_model:
        return f"In response to your previous question, {reply.text}"
    return None


# Evaluated in order; the first rule returning text wins
SHORT_REPLY_RULES: list[Callable[[ShortReply], str | None]] = [
    _age_statement,
    _answer_to_question,
    _confirmation,
    _topic_continuity,
    _previous_question,
]


def enrich_user_input(
    text: str,
    previous_user_message: str = "",
    previous_model_message: str = "",
) -> str:
    """
    Rewrite a short reply so it makes sense without the conversation.

    Messages longer than five tokens, and short messages stating a
    retirement age or income, are returned unchanged (stripped).

    Args:
        text: Raw user input
        previous_user_message: The user's previous message
        previous_model_message: The assistant's previous message

    Returns:
        The enriched prompt, or the input if no rule applies
    """
    trimmed = text.strip()
    if not is_short(trimmed):
        return trimmed

    if retirement_age_rule(trimmed) or retirement_income_rule(trimmed):
        return trimmed

    reply = ShortReply(
        text=trimmed,
        previous_user=previous_user_message or "",
        previous_model=previous_model_message or "",
    )
    for rule in SHORT_REPLY_RULES:
        rewritten = rule(reply)
        if rewritten is not None:
            logger.debug(f"Short reply {trimmed!r} rewritten by {rule.__name__}")
            return rewritten

    return trimmed


def merge_pending_input(state: ConversationState, original: str, enriched: str) -> str:
    """
    Tie a very short reply to the calculation the assistant is waiting on.

    Only applies while the conversation is awaiting input and the reply has
    at most three tokens.

    Args:
        state: Conversation state before this message
        original: Text exactly as typed
        enriched: Output of enrich_user_input()

    Returns:
        Text to send to the model for this turn
    """
    text = original.strip()
    if not state.is_awaiting_input or not is_short(text, PENDING_REPLY_MAX_TOKENS):
        return enriched

    topic = state.active_calculation
    if state.pending_confirmation and PROCEED_PATTERN.match(text):
        merged = f"Yes, please {topic} as you suggested in your previous message."
    elif is_value_shaped(text):
        merged = f"For the {topic} you asked about, the value is {text}"
    else:
        return enriched

    logger.debug(f"Pending input {text!r} merged into {merged!r}")
    return merged
