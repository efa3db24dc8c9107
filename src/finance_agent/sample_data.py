"""Demo household used by the CLI and the assistant.

A single professional living in Geneva. All amounts are CHF; income and
expense amounts are monthly.
"""

from finance_agent.models.finance import (
    Asset,
    BudgetCategory,
    Deduction,
    ExpenseItem,
    FinancialSnapshot,
    IncomeSource,
    Liability,
    MortgageAssumptions,
    MortgageParameters,
    RentParameters,
    RetirementContributions,
    RetirementParameters,
    ScenarioMode,
    TaxParameters,
)
from finance_agent.tools.financial_calculations import (
    SWISS_TAX_BRACKETS,
    net_worth,
    total_expenses,
    total_income,
)

USER_PROFILE = {
    "name": "Emma Schmidt",
    "age": 35,
    "occupation": "Software Engineer",
    "location": "Geneva, Switzerland",
    "tax_rate": 0.25,
    "marital_status": "Single",
    "has_children": False,
}

INCOME_SOURCES = [
    IncomeSource(id=1, source="Primary Salary", amount=9000),
    IncomeSource(id=2, source="Freelance Work", amount=2000),
    IncomeSource(id=3, source="Dividend Income", amount=500),
]

EXPENSES = [
    ExpenseItem(id=1, category="Housing", amount=2500),
    ExpenseItem(id=2, category="Food", amount=800),
    ExpenseItem(id=3, category="Transportation", amount=400),
    ExpenseItem(id=4, category="Utilities", amount=300),
    ExpenseItem(id=5, category="Entertainment", amount=600),
    ExpenseItem(id=6, category="Insurance", amount=500),
    ExpenseItem(id=7, category="Savings", amount=1500),
    ExpenseItem(id=8, category="Other", amount=900),
]

ASSETS = [
    Asset(id=1, name="Retirement Fund (Pillar 2)", value=150000, type="retirement"),
    Asset(id=2, name="Private Pension (Pillar 3a)", value=50000, type="retirement"),
    Asset(id=3, name="Stocks Portfolio", value=78000, type="investment"),
    Asset(id=4, name="Cash Savings", value=60000, type="savings"),
]

LIABILITIES = [
    Liability(id=1, name="Student Loan", amount=15000, interest_rate=0.025, type="loan"),
    Liability(id=2, name="Car Loan", amount=12000, interest_rate=0.039, type="loan"),
    Liability(id=3, name="Credit Card", amount=2500, interest_rate=0.099, type="credit"),
]

TAX_HISTORY = [
    {"year": 2022, "income": 126000, "tax_paid": 31500, "deductions": 18000},
    {"year": 2021, "income": 120000, "tax_paid": 30000, "deductions": 17000},
    {"year": 2020, "income": 110000, "tax_paid": 27500, "deductions": 16000},
]

RENT_OPTIONS = RentParameters(
    current_monthly_rent=2500,
    annual_rent_increase=0.02,
    rental_insurance=300,
)

BUY_OPTIONS = MortgageParameters(
    property_value=800000,
    down_payment_percentage=0.2,
    annual_rate=0.015,
    term_years=25,
    property_tax_rate=0.01,
    insurance_annual=1200,
    maintenance_rate=0.01,
    appreciation_rate=0.03,
)

BUDGET_RECOMMENDATIONS = {
    "housing": BudgetCategory(recommended=0.30, current=0.35),
    "food": BudgetCategory(recommended=0.15, current=0.11),
    "transportation": BudgetCategory(recommended=0.10, current=0.06),
    "utilities": BudgetCategory(recommended=0.05, current=0.04),
    "entertainment": BudgetCategory(recommended=0.05, current=0.08),
    "insurance": BudgetCategory(recommended=0.10, current=0.07),
    "savings": BudgetCategory(recommended=0.15, current=0.20),
    "other": BudgetCategory(recommended=0.10, current=0.12),
}

TAX_DEDUCTIONS = [
    Deduction(name="Pillar 3a", amount=6883),
    Deduction(name="Professional Expenses", amount=3000),
    Deduction(name="Health Insurance", amount=2500),
    Deduction(name="Charitable Donations", amount=2000),
    Deduction(name="Home Office", amount=1800),
]

TAX_CREDITS = [
    Deduction(name="Energy-saving home improvements", amount=3500),
    Deduction(name="Childcare expenses", amount=0),
    Deduction(name="Education expenses", amount=1200),
]

SAMPLE_QUESTIONS = [
    "How much tax will I pay on my current income?",
    "Can I afford an apartment worth CHF 900,000?",
    "Should I buy or keep renting over the next 10 years?",
    "How much will my Pillar 3a be worth when I retire?",
    "Where am I overspending compared to the recommended budget?",
    "How much should I contribute each month to retire at 60?",
]


def default_snapshot(
    scenario_mode: ScenarioMode | str = ScenarioMode.BASIC,
    retirement: RetirementParameters | None = None,
) -> FinancialSnapshot:
    """
    Build the financial snapshot sent to the assistant with every turn.

    Args:
        scenario_mode: 'basic' or 'advanced' level of detail
        retirement: Retirement targets gathered from the conversation

    Returns:
        FinancialSnapshot for the demo household
    """
    monthly_income = total_income(INCOME_SOURCES)
    monthly_expenses = total_expenses(EXPENSES)

    return FinancialSnapshot(
        income_sources=INCOME_SOURCES,
        total_monthly_income=monthly_income,
        scenario_mode=ScenarioMode(scenario_mode),
        monthly_savings_rate=round((monthly_income - monthly_expenses) / monthly_income, 4)
        if monthly_income
        else 0.0,
        monthly_expenses=monthly_expenses,
        net_worth=net_worth(ASSETS, LIABILITIES),
        assets=ASSETS,
        liabilities=LIABILITIES,
        tax_rate=USER_PROFILE["tax_rate"],
        retirement_contributions=RetirementContributions(
            monthly=1000,
            current_balance=200000,
        ),
        mortgage_parameters=MortgageAssumptions(
            max_debt_to_income_ratio=0.33,
            property_tax_rate=0.01,
            property_insurance_rate=0.005,
            hoa_fees=200,
            new_mortgage_interest_rate=0.03,
            mortgage_term_years=25,
            other_monthly_debt_obligations=500,
            down_payment_minimum_percentage=0.2,
        ),
        tax_parameters=TaxParameters(
            tax_brackets=SWISS_TAX_BRACKETS,
            available_deductions=TAX_DEDUCTIONS,
            previous_tax_paid=TAX_HISTORY[0]["tax_paid"],
            pillar3a_contribution=5000,
            potential_credits=TAX_CREDITS,
        ),
        retirement_parameters=retirement,
    )
