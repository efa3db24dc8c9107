"""Conversation context engine: enrichment, state, topics and prompt building."""

from finance_agent.conversation.classifiers import (
    Match,
    MatchKind,
    classify,
    extract_retirement_targets,
    parse_amount,
)
from finance_agent.conversation.engine import ConversationEngine
from finance_agent.conversation.enrichment import (
    enrich_user_input,
    extract_last_question,
    merge_pending_input,
)
from finance_agent.conversation.prompt import build_system_instruction
from finance_agent.conversation.state import (
    apply_financial_parameters,
    apply_model_reply,
    apply_user_message,
)
from finance_agent.conversation.topics import extract_topics

__all__ = [
    "ConversationEngine",
    "Match",
    "MatchKind",
    "apply_financial_parameters",
    "apply_model_reply",
    "apply_user_message",
    "build_system_instruction",
    "classify",
    "enrich_user_input",
    "extract_last_question",
    "extract_retirement_targets",
    "extract_topics",
    "merge_pending_input",
    "parse_amount",
]
