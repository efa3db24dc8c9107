"""Conversation state, messages and the chat request/response envelope."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from finance_agent.models.finance import FinancialSnapshot


class ChatRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    """A single turn in a conversation."""

    role: ChatRole
    text: str
    metadata: dict[str, Any] | None = None

    model_config = ConfigDict(use_enum_values=True)


class RetirementContext(BaseModel):
    """Retirement facts gathered from the conversation."""

    current_age: int | None = None
    target_retirement_age: int | None = None
    target_annual_income: float | None = None
    timeframe: int | None = Field(
        default=None,
        description="Years until retirement (target age minus current age)",
    )

    def with_timeframe(self) -> "RetirementContext":
        """Return a copy with the timeframe recomputed from the ages."""
        if self.current_age is not None and self.target_retirement_age is not None:
            return self.model_copy(
                update={"timeframe": self.target_retirement_age - self.current_age}
            )
        return self


class ConversationState(BaseModel):
    """Heuristic per-conversation state.

    Idle means no active calculation. Active means a topic is set. A
    pending confirmation or expected inputs on top of an active topic
    means the model asked something and is awaiting the user's answer.
    """

    active_calculation: str | None = None
    last_question: str | None = None
    pending_confirmation: bool = False
    calculation_context: dict[str, Any] = Field(default_factory=dict)
    last_value_mentioned: str | None = None
    last_property_value: float | None = None
    last_income_discussed: float | None = None
    pending_inputs: list[str] = Field(default_factory=list)
    retirement: RetirementContext = Field(default_factory=RetirementContext)

    @property
    def is_idle(self) -> bool:
        return self.active_calculation is None

    @property
    def is_awaiting_input(self) -> bool:
        return self.active_calculation is not None and (
            self.pending_confirmation or bool(self.pending_inputs)
        )


class ChatRequest(BaseModel):
    """One user turn as sent to the conversation engine."""

    conversation_id: str
    user_message: str = Field(description="Context-enriched message")
    original_user_message: str = Field(description="Text exactly as typed")
    previous_messages: list[ChatMessage] = Field(default_factory=list)
    financial_parameters: FinancialSnapshot | None = None


class ChatResponse(BaseModel):
    """The model's reply for one turn."""

    response: str
    enriched_prompt: str | None = None


class ChatHistoryEntry(BaseModel):
    """A persisted exchange, written best-effort after each turn."""

    id: int | None = None
    user_id: str
    conversation_id: str
    message: str
    response: str
    context_prompt: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
