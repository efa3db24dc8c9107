"""Interactive chat with the finance assistant."""

import logging
import uuid

from finance_agent.config import get_config
from finance_agent.conversation.classifiers import extract_retirement_targets
from finance_agent.conversation.engine import ConversationEngine
from finance_agent.conversation.enrichment import enrich_user_input
from finance_agent.models.conversation import (
    ChatHistoryEntry,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
)
from finance_agent.models.finance import RetirementParameters
from finance_agent.sample_data import SAMPLE_QUESTIONS, default_snapshot

logger = logging.getLogger(__name__)

# Number of visible messages sent along with each turn
PREVIOUS_MESSAGES_SENT = 6


class FinanceAdvisorChat:
    """
    Chat session as the user sees it.

    Keeps the visible transcript and the conversation id, rewrites short
    replies before sending, attaches the household's financial snapshot to
    every turn and saves each exchange to the history table when a user is
    configured.
    """

    def __init__(
        self,
        engine: ConversationEngine | None = None,
        user_id: str | None = None,
        scenario_mode: str | None = None,
        save_history: bool | None = None,
    ):
        self.config = get_config()
        self._engine = engine  # Lazy initialization
        self.user_id = user_id or self.config.user_id
        self.scenario_mode = scenario_mode or self.config.scenario_mode
        self.save_history = self.config.save_history if save_history is None else save_history
        self.messages: list[ChatMessage] = []
        self.conversation_id = str(uuid.uuid4())

    @property
    def engine(self) -> ConversationEngine:
        """Get the conversation engine (lazy initialization)."""
        if self._engine is None:
            from finance_agent.agent import get_model_client

            self._engine = ConversationEngine(get_model_client())
        return self._engine

    def _last_text(self, role: ChatRole) -> str:
        for message in reversed(self.messages):
            if message.role == role.value:
                return message.text
        return ""

    def build_request(self, user_message: str) -> ChatRequest:
        """
        Prepare the request for one turn.

        Args:
            user_message: Text as typed

        Returns:
            ChatRequest with the enriched prompt and snapshot
        """
        enriched = enrich_user_input(
            user_message,
            self._last_text(ChatRole.USER),
            self._last_text(ChatRole.MODEL),
        )

        user_texts = [m.text for m in self.messages if m.role == ChatRole.USER.value]
        targets = extract_retirement_targets([*user_texts, user_message])
        retirement = RetirementParameters(**targets) if targets else None

        return ChatRequest(
            conversation_id=self.conversation_id,
            user_message=enriched,
            original_user_message=user_message.strip(),
            previous_messages=self.messages[-PREVIOUS_MESSAGES_SENT:],
            financial_parameters=default_snapshot(self.scenario_mode, retirement),
        )

    def send(self, user_message: str) -> str:
        """
        Send a message and get a response.

        Args:
            user_message: The user's question or reply

        Returns:
            Assistant response

        Raises:
            ModelError: The model call failed; the transcript is unchanged
        """
        if not user_message or not user_message.strip():
            raise ValueError("Message is empty")

        request = self.build_request(user_message)
        response = self.engine.handle(request)

        self.messages.append(ChatMessage(role=ChatRole.USER, text=request.original_user_message))
        self.messages.append(ChatMessage(role=ChatRole.MODEL, text=response.response))

        self._save_exchange(request, response)
        return response.response

    def _save_exchange(self, request: ChatRequest, response: ChatResponse) -> None:
        """Write the exchange to chat history. Failures are logged, not raised."""
        if not self.save_history or not self.user_id:
            return

        context_prompt = (
            request.user_message
            if request.user_message != request.original_user_message
            else response.enriched_prompt
        )
        entry = ChatHistoryEntry(
            user_id=self.user_id,
            conversation_id=self.conversation_id,
            message=request.original_user_message,
            response=response.response,
            context_prompt=context_prompt,
        )

        try:
            from finance_agent.storage.database import get_database

            get_database().save_chat(entry)
        except Exception as e:
            logger.warning(f"Could not save chat history: {e}")

    def reset(self) -> str:
        """Start a new conversation. Returns the new conversation id."""
        if self._engine is not None:
            self._engine.reset(self.conversation_id)
        self.messages = []
        self.conversation_id = str(uuid.uuid4())
        return self.conversation_id

    def suggest_topics(self) -> list[str]:
        """Sample questions to get a conversation started."""
        return list(SAMPLE_QUESTIONS)
