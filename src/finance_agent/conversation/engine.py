"""One conversation turn: state, prompt, model call, commit."""

import logging

from finance_agent.agent import ModelClient
from finance_agent.config import get_config
from finance_agent.conversation.classifiers import (
    PENDING_REPLY_MAX_TOKENS,
    is_short,
    is_value_shaped,
)
from finance_agent.conversation.enrichment import get_last_question, merge_pending_input
from finance_agent.conversation.prompt import build_system_instruction, short_response_context
from finance_agent.conversation.state import (
    apply_financial_parameters,
    apply_model_reply,
    apply_user_message,
    trim_history,
)
from finance_agent.conversation.topics import append_topics, extract_topics, push_topics
from finance_agent.models.conversation import ChatMessage, ChatRequest, ChatResponse, ChatRole
from finance_agent.session import SessionStore

logger = logging.getLogger(__name__)


class ConversationEngine:
    """
    Runs chat turns against a model client.

    Turns for the same conversation id are serialised. All session changes
    for a turn are computed on a copy and stored only after the model has
    replied, so a failed call leaves the conversation as it was.
    """

    def __init__(
        self,
        model_client: ModelClient,
        store: SessionStore | None = None,
        max_history: int | None = None,
        max_topics: int | None = None,
    ):
        config = get_config()
        self.model_client = model_client
        self.store = store if store is not None else SessionStore()
        self.max_history = max_history or config.max_history
        self.max_topics = max_topics or config.max_topics

    def handle(self, request: ChatRequest) -> ChatResponse:
        """
        Process one user turn.

        Args:
            request: Enriched and original user text plus the snapshot

        Returns:
            The model's reply

        Raises:
            ModelError: The model call failed; nothing was committed
        """
        with self.store.lock(request.conversation_id):
            return self._handle(request)

    def _handle(self, request: ChatRequest) -> ChatResponse:
        session = self.store.get(request.conversation_id)
        original = (request.original_user_message or request.user_message).strip()

        history = list(session.history)
        if not history and request.previous_messages:
            # Pick up where the client left off after the session was evicted
            history = list(request.previous_messages)

        state = apply_financial_parameters(session.state, request.financial_parameters)
        topics = list(session.topics)

        short_reply = is_short(original, PENDING_REPLY_MAX_TOKENS)
        if short_reply:
            turn_text = merge_pending_input(state, original, request.user_message)
        else:
            turn_text = request.user_message
            topics = push_topics(topics, extract_topics(turn_text), self.max_topics)

        state = apply_user_message(state, original)
        history.append(ChatMessage(
            role=ChatRole.USER,
            text=turn_text,
            metadata={"original_input": original},
        ))

        if turn_text != original:
            logger.info(f"Enhanced user message: {original!r} -> {turn_text!r}")

        short_context = (
            short_response_context(original, get_last_question(history)) if short_reply else ""
        )
        system = build_system_instruction(
            state,
            topics,
            request.financial_parameters,
            short_context=short_context,
            value_reply=short_reply and is_value_shaped(original),
        )

        logger.debug(
            f"Turn for {request.conversation_id}: {len(history)} message(s), "
            f"topics={topics}, state={state.model_dump(exclude_none=True)}"
        )

        reply = self.model_client.generate(system, history)

        history.append(ChatMessage(role=ChatRole.MODEL, text=reply))
        topics = append_topics(topics, extract_topics(reply), self.max_topics)
        state = apply_model_reply(state, reply)
        history = trim_history(history, self.max_history)

        self.store.put(
            request.conversation_id,
            session.model_copy(update={"state": state, "topics": topics, "history": history}),
        )

        return ChatResponse(
            response=reply,
            enriched_prompt=turn_text if turn_text != original else None,
        )

    def reset(self, conversation_id: str) -> None:
        """Forget a conversation's state, topics and history."""
        self.store.drop(conversation_id)
