"""System instruction for the remote model."""

import json
import math

from finance_agent.models.conversation import ConversationState
from finance_agent.models.finance import FinancialSnapshot
from finance_agent.tools.financial_calculations import estimated_tax
from finance_agent.utils import format_currency

SYSTEM_RULES = """You are a precise financial calculator that:
1. ONLY uses the provided financialParameters - NEVER invent or assume numbers
2. For mortgage questions, ALWAYS use the mortgageParameters values provided
3. For tax questions, ALWAYS use the taxParameters values provided
4. Shows exact mathematical calculations step-by-step using the provided data
5. Clearly states "I need more information about X" if any required data is missing
6. Each response must reference specific numbers from financialParameters
7. Uses bullet points for calculations and multi-step answers
8. Only gives financial advice based on actual numbers in financialParameters
9. For mortgage calculations, always consider:
   - Monthly income and debt-to-income ratio
   - Property taxes and insurance
   - HOA fees
   - New mortgage interest rates
   - Minimum down payment requirements
10. For tax calculations, always consider:
   - Available deductions and credits
   - Tax brackets and progressive rates
   - Retirement contribution benefits
   - Potential tax optimization strategies
11. For retirement calculations, always consider:
   - Current age vs target retirement age
   - Years until retirement
   - Current retirement savings
   - Monthly contributions
   - Target retirement income
   - Withdrawal strategies and expected return rates
12. If asked in Turkish, respond in Turkish. Otherwise respond in English."""

CONVERSATION_RULES = """CRITICAL CONVERSATION INSTRUCTIONS:
1. Maintain perfect conversation continuity - if the user says "yes" or gives a short confirmation, ALWAYS continue with the calculation or analysis you were previously discussing
2. If you previously asked a question, and the user gives a short reply, assume they are answering your question
3. NEVER lose track of the ongoing calculation or analysis
4. If you ask a question like "Would you like me to calculate X?" and the user says "yes", immediately perform that calculation without asking for more information
5. For ALL follow-up questions from the user, maintain the context of previous questions and answers
6. NEVER ask "What would you like to calculate?" when the calculation topic is already established
7. When the user uses pronouns like "it", "this", "that", look at recent topics and previous messages to understand the reference
8. If you're unsure about what the user is asking, reference their recent questions
9. When the user gives a short message like "1m chf", interpret it as a currency value of 1 million Swiss francs in the context of your previous question
10. For ANY numeric value without explicit context, look at your previous questions to understand what the user is referring to
11. If the user gives you a value without context, apply it to the most recently discussed financial topic or question

Remember:
- NEVER make assumptions about missing data
- ONLY use numbers from financialParameters except when the user explicitly provides new values
- ALWAYS show your calculations using provided data
- Keep responses focused on the actual numbers
- MAINTAIN FULL CONVERSATION CONTEXT across multiple messages
- ALWAYS interpret short inputs in the context of your previous questions"""


_chf = format_currency


def _percent(rate: float) -> str:
    return f"{rate * 100:g}%"


def state_summary(state: ConversationState, value_reply: bool = False) -> str:
    """Describe the active calculation and the values gathered for it."""
    if state.is_idle:
        return ""

    parts = [f"The user is currently interested in: {state.active_calculation}."]
    if state.calculation_context:
        parts.append(
            f"Relevant values for this calculation: {json.dumps(state.calculation_context)}."
        )
    if state.last_property_value is not None:
        parts.append(f"The user mentioned a property value of {_chf(state.last_property_value)}.")
    if state.last_income_discussed is not None:
        parts.append(f"The user mentioned an income of {_chf(state.last_income_discussed)}.")
    if value_reply and state.last_value_mentioned:
        parts.append(
            f"The user just provided a value of {state.last_value_mentioned} "
            "in response to your question."
        )
    return " ".join(parts)


def topics_summary(topics: list[str]) -> str:
    if not topics:
        return ""
    return (
        f"Recent topics discussed: {', '.join(topics)}. If the user refers to \"it\" or "
        "uses other pronouns, assume they're referring to one of these topics."
    )


def short_response_context(original_message: str, last_question: str | None) -> str:
    """Tell the model how to read a reply of a few words."""
    if last_question:
        return (
            f'The user\'s message "{original_message}" is responding to your question: '
            f'"{last_question}". Process it in that context.'
        )
    return (
        f'The user has sent a short message: "{original_message}". '
        "It likely refers to the most recent topic discussed."
    )


def mortgage_context(snapshot: FinancialSnapshot) -> str:
    params = snapshot.mortgage_parameters
    if params is None:
        return "No mortgage parameters available for calculations."

    return "\n".join([
        "For mortgage calculations, use these exact parameters:",
        f"- Maximum debt-to-income ratio: {params.max_debt_to_income_ratio}",
        f"- Property tax rate: {params.property_tax_rate}",
        f"- Property insurance rate: {params.property_insurance_rate}",
        f"- Monthly HOA fees: {_chf(params.hoa_fees)}",
        f"- New mortgage interest rate: {params.new_mortgage_interest_rate}",
        f"- Mortgage term: {params.mortgage_term_years} years",
        f"- Other monthly debt obligations: {_chf(params.other_monthly_debt_obligations)}",
        f"- Required minimum down payment: {_percent(params.down_payment_minimum_percentage)}",
        f"- Monthly income: {_chf(snapshot.total_monthly_income)}",
    ])


def tax_context(snapshot: FinancialSnapshot) -> str:
    params = snapshot.tax_parameters
    if params is None:
        return "No detailed tax parameters available for calculations."

    annual_income = snapshot.total_monthly_income * 12
    deductions = ", ".join(f"{d.name}: {_chf(d.amount)}" for d in params.available_deductions)
    credits = ", ".join(f"{c.name}: {_chf(c.amount)}" for c in params.potential_credits)
    brackets = ", ".join(
        f"{b.min:,.0f}+: {_percent(b.rate)}"
        if math.isinf(b.max)
        else f"{b.min:,.0f}-{b.max:,.0f}: {_percent(b.rate)}"
        for b in params.tax_brackets
    )
    pillar2 = (
        snapshot.retirement_contributions.monthly * 12
        if snapshot.retirement_contributions
        else 0
    )

    lines = ["For tax calculations, use these exact parameters:"]
    if snapshot.tax_rate is not None:
        lines.append(f"- Current tax rate: {_percent(snapshot.tax_rate)}")
    lines += [
        f"- Annual income: {_chf(annual_income)}",
        f"- Available tax deductions: {deductions or 'none'}",
        f"- Tax brackets: {brackets or 'none'}",
    ]
    if params.tax_brackets:
        lines.append(
            f"- Estimated tax on annual income: "
            f"{_chf(estimated_tax(annual_income, params.tax_brackets))}"
        )
    if params.previous_tax_paid is not None:
        lines.append(f"- Previous tax paid: {_chf(params.previous_tax_paid)}")
    lines += [
        f"- Potential tax credits: {credits or 'none'}",
        f"- Retirement contributions: Pillar 2: {_chf(pillar2)}, "
        f"Pillar 3a: {_chf(params.pillar3a_contribution)}",
    ]
    return "\n".join(lines)


def retirement_context(state: ConversationState, snapshot: FinancialSnapshot) -> str:
    retirement = state.retirement
    lines = ["RETIREMENT PLANNING CONTEXT:"]

    if retirement.current_age is not None:
        lines.append(f"- Current age: {retirement.current_age} years")
    if retirement.target_retirement_age is not None:
        lines.append(f"- Target retirement age: {retirement.target_retirement_age} years")
    if retirement.timeframe is not None:
        lines.append(f"- Years until retirement: {retirement.timeframe} years")
    if retirement.target_annual_income is not None:
        lines.append(
            f"- Target retirement income: {_chf(retirement.target_annual_income)} per year"
        )

    if snapshot.retirement_contributions:
        contributions = snapshot.retirement_contributions
        lines.append(f"- Current retirement savings: {_chf(contributions.current_balance)}")
        lines.append(f"- Monthly retirement contributions: {_chf(contributions.monthly)}")
    lines.append(f"- Monthly income: {_chf(snapshot.total_monthly_income)}")
    if snapshot.monthly_expenses is not None:
        lines.append(f"- Monthly expenses: {_chf(snapshot.monthly_expenses)}")
    if snapshot.monthly_savings_rate is not None:
        lines.append(f"- Monthly savings rate: {_percent(snapshot.monthly_savings_rate)}")

    return "\n".join(lines)


def financial_context(state: ConversationState, snapshot: FinancialSnapshot | None) -> str:
    """Verbatim snapshot plus the derived mortgage, tax and retirement summaries."""
    if snapshot is None:
        return (
            "No financial data provided. I cannot perform calculations "
            "without specific financial data."
        )

    data = json.dumps(snapshot.model_dump(mode="json", exclude_none=True), indent=2)
    return "\n\n".join([
        f"Use ONLY this verified financial data for your calculations:\n{data}",
        mortgage_context(snapshot),
        tax_context(snapshot),
        retirement_context(state, snapshot),
    ])


def build_system_instruction(
    state: ConversationState,
    topics: list[str],
    snapshot: FinancialSnapshot | None,
    short_context: str = "",
    value_reply: bool = False,
) -> str:
    """
    Assemble the full system instruction for one turn.

    Args:
        state: Conversation state after the user's message
        topics: Recent topics, most recent first
        snapshot: Financial parameters sent with the turn
        short_context: Guidance for interpreting a short reply
        value_reply: Whether the user just answered with a bare value

    Returns:
        Instruction text
    """
    conversation = "\n".join([
        "CONVERSATION CONTEXT:",
        state_summary(state, value_reply),
        topics_summary(topics),
        short_context,
    ])

    return (
        f"{SYSTEM_RULES}\n\n{conversation}\n\n{CONVERSATION_RULES}\n"
        f"{financial_context(state, snapshot)}"
    )
