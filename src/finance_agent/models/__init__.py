"""Data models for household finances, conversations and profiles."""

from finance_agent.models.conversation import (
    ChatHistoryEntry,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ConversationState,
    RetirementContext,
)
from finance_agent.models.finance import (
    Asset,
    BudgetCategory,
    BudgetStatus,
    BudgetVarianceEntry,
    BuyVsRentResult,
    ExpenseItem,
    FinancialSnapshot,
    IncomeSource,
    Liability,
    MortgageParameters,
    RentParameters,
    ScenarioMode,
    TaxBracket,
)
from finance_agent.models.profile import UserProfile

__all__ = [
    "Asset",
    "BudgetCategory",
    "BudgetStatus",
    "BudgetVarianceEntry",
    "BuyVsRentResult",
    "ExpenseItem",
    "FinancialSnapshot",
    "IncomeSource",
    "Liability",
    "MortgageParameters",
    "RentParameters",
    "ScenarioMode",
    "TaxBracket",
    "ChatHistoryEntry",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "ConversationState",
    "RetirementContext",
    "UserProfile",
]
