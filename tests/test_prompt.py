"""Tests for system instruction assembly."""

from finance_agent.conversation.prompt import (
    CONVERSATION_RULES,
    SYSTEM_RULES,
    build_system_instruction,
    financial_context,
    mortgage_context,
    retirement_context,
    short_response_context,
    state_summary,
    tax_context,
    topics_summary,
)
from finance_agent.conversation.state import PROPERTY_TOPIC
from finance_agent.models.conversation import ConversationState, RetirementContext
from finance_agent.models.finance import FinancialSnapshot
from finance_agent.sample_data import default_snapshot


class TestSummaries:
    """Tests for the conversation summaries."""

    def test_idle_state_is_empty(self):
        assert state_summary(ConversationState()) == ""

    def test_active_state(self):
        state = ConversationState(
            active_calculation=PROPERTY_TOPIC,
            last_property_value=900000,
            last_income_discussed=120000,
            calculation_context={"income": "120,000"},
            last_value_mentioned="900k",
        )
        summary = state_summary(state)
        assert "The user is currently interested in: property affordability calculation." in summary
        assert "property value of CHF 900'000" in summary
        assert "income of CHF 120'000" in summary
        assert '"income": "120,000"' in summary
        assert "just provided a value" not in summary

    def test_value_reply_mentions_value(self):
        state = ConversationState(active_calculation=PROPERTY_TOPIC, last_value_mentioned="900k")
        summary = state_summary(state, value_reply=True)
        assert "The user just provided a value of 900k in response to your question." in summary

    def test_topics_summary(self):
        assert topics_summary([]) == ""
        summary = topics_summary(["mortgage", "tax"])
        assert summary.startswith("Recent topics discussed: mortgage, tax.")
        assert "pronouns" in summary

    def test_short_response_context(self):
        with_question = short_response_context("35", "How old are you?")
        assert 'The user\'s message "35" is responding to your question: "How old are you?"' in (
            with_question
        )

        without_question = short_response_context("1m chf", None)
        assert '"1m chf"' in without_question
        assert "most recent topic" in without_question


class TestFinancialContext:
    """Tests for the financial parameter sections."""

    def test_mortgage_context(self):
        text = mortgage_context(default_snapshot())
        assert "- Maximum debt-to-income ratio: 0.33" in text
        assert "- Monthly HOA fees: CHF 200" in text
        assert "- Required minimum down payment: 20%" in text
        assert "- Monthly income: CHF 11'500" in text

    def test_tax_context(self):
        text = tax_context(default_snapshot())
        assert "- Current tax rate: 25%" in text
        assert "- Annual income: CHF 138'000" in text
        assert "- Estimated tax on annual income: CHF 17'990" in text
        assert "Pillar 3a: CHF 6'883" in text
        assert "- Previous tax paid: CHF 31'500" in text
        assert "Pillar 2: CHF 12'000, Pillar 3a: CHF 5'000" in text
        assert "200,000+: 25%" in text
        assert "0-30,000: 8%" in text

    def test_missing_parameters(self):
        snapshot = FinancialSnapshot(total_monthly_income=5000)
        assert mortgage_context(snapshot) == "No mortgage parameters available for calculations."
        assert tax_context(snapshot) == "No detailed tax parameters available for calculations."

    def test_retirement_context(self):
        state = ConversationState(
            retirement=RetirementContext(
                current_age=30, target_retirement_age=60, timeframe=30, target_annual_income=80000
            )
        )
        text = retirement_context(state, default_snapshot())
        assert "- Current age: 30 years" in text
        assert "- Target retirement age: 60 years" in text
        assert "- Years until retirement: 30 years" in text
        assert "- Target retirement income: CHF 80'000 per year" in text
        assert "- Current retirement savings: CHF 200'000" in text

    def test_financial_context_includes_snapshot(self):
        text = financial_context(ConversationState(), default_snapshot())
        assert text.startswith("Use ONLY this verified financial data for your calculations:")
        assert '"total_monthly_income": 11500' in text
        assert '"Primary Salary"' in text

    def test_no_snapshot(self):
        text = financial_context(ConversationState(), None)
        assert text.startswith("No financial data provided.")


class TestBuildSystemInstruction:
    """Tests for build_system_instruction()."""

    def test_sections_in_order(self):
        state = ConversationState(active_calculation="tax optimization")
        text = build_system_instruction(
            state,
            ["tax"],
            default_snapshot(),
            short_context=short_response_context("yes", "Shall I continue?"),
        )

        positions = [
            text.index(SYSTEM_RULES),
            text.index("CONVERSATION CONTEXT:"),
            text.index("currently interested in: tax optimization"),
            text.index("Recent topics discussed: tax."),
            text.index('responding to your question: "Shall I continue?"'),
            text.index(CONVERSATION_RULES),
            text.index("Use ONLY this verified financial data"),
        ]
        assert positions == sorted(positions)

    def test_language_rule(self):
        text = build_system_instruction(ConversationState(), [], None)
        assert "If asked in Turkish, respond in Turkish" in text
        assert "No financial data provided" in text
