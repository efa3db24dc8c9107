"""Financial calculation tools."""

from finance_agent.tools.financial_calculations import (
    CalculationError,
    budget_variance,
    buy_vs_rent,
    estimated_tax,
    future_value,
    mortgage_affordability,
    mortgage_payment,
    net_worth,
    total_income,
)

__all__ = [
    "CalculationError",
    "budget_variance",
    "buy_vs_rent",
    "estimated_tax",
    "future_value",
    "mortgage_affordability",
    "mortgage_payment",
    "net_worth",
    "total_income",
]
