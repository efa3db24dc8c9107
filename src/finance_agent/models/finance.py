"""Household finance records and calculator inputs/outputs."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScenarioMode(str, Enum):
    """Level of detail requested from the assistant."""

    BASIC = "basic"
    ADVANCED = "advanced"


class BudgetStatus(str, Enum):
    """Traffic-light classification of a budget category."""

    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class IncomeSource(BaseModel):
    """A recurring income source (amount is monthly)."""

    id: int | str
    source: str = Field(description="Label, e.g. 'Primary Salary'")
    amount: float = Field(description="Monthly amount")
    frequency: str = "monthly"
    currency: str = "CHF"


class ExpenseItem(BaseModel):
    """A recurring expense (amount is monthly)."""

    id: int | str
    category: str
    amount: float
    frequency: str = "monthly"
    currency: str = "CHF"


class Asset(BaseModel):
    """Something the household owns."""

    id: int | str | None = None
    name: str | None = None
    value: float
    type: str = "savings"
    currency: str = "CHF"


class Liability(BaseModel):
    """Something the household owes."""

    id: int | str | None = None
    name: str | None = None
    amount: float
    interest_rate: float = 0.0
    type: str = "loan"
    currency: str = "CHF"


class TaxBracket(BaseModel):
    """A progressive tax tier: income between min and max taxed at rate."""

    min: float = Field(ge=0.0)
    max: float = Field(description="Upper bound, float('inf') for the top bracket")
    rate: float = Field(ge=0.0, le=1.0, description="Marginal rate as a fraction")

    @model_validator(mode="after")
    def _check_bounds(self) -> "TaxBracket":
        if self.max < self.min:
            raise ValueError(f"Bracket max {self.max} is below min {self.min}")
        return self


class RentParameters(BaseModel):
    """Inputs for the renting side of a buy-vs-rent comparison."""

    current_monthly_rent: float
    annual_rent_increase: float = 0.0
    rental_insurance: float = Field(default=0.0, description="Annual renter's insurance")


class MortgageParameters(BaseModel):
    """Inputs for the buying side of a buy-vs-rent comparison.

    All rates are decimal fractions (0.035 = 3.5%).
    """

    property_value: float
    down_payment_percentage: float = 0.2
    annual_rate: float
    term_years: int = 25
    property_tax_rate: float = 0.0
    insurance_annual: float = 0.0
    maintenance_rate: float = 0.0
    appreciation_rate: float = 0.0


class BuyVsRentResult(BaseModel):
    """Outcome of a buy-vs-rent simulation over a fixed horizon."""

    years: int
    rent_total_cost: float
    buy_total_cost: float
    buy_net_cost: float
    buy_advantage: float = Field(description="Positive favors buying")
    property_value_at_end: float
    equity_built: float
    mortgage_remaining: float

    @property
    def verdict(self) -> str:
        """'buy', 'rent' or 'even'."""
        if self.buy_advantage > 0:
            return "buy"
        if self.buy_advantage < 0:
            return "rent"
        return "even"


class BudgetCategory(BaseModel):
    """Recommended and current share of income for one category."""

    recommended: float = Field(ge=0.0)
    current: float = Field(ge=0.0)


class BudgetVarianceEntry(BudgetCategory):
    """Budget category with derived absolute amounts and status."""

    recommended_amount: float
    current_amount: float
    difference: float
    status: BudgetStatus

    model_config = ConfigDict(use_enum_values=True)


class Deduction(BaseModel):
    """A named deduction or credit amount."""

    name: str
    amount: float


class RetirementContributions(BaseModel):
    monthly: float = 0.0
    current_balance: float = 0.0


class MortgageAssumptions(BaseModel):
    """Lending assumptions the assistant must use for mortgage questions."""

    max_debt_to_income_ratio: float = 0.33
    property_tax_rate: float = 0.01
    property_insurance_rate: float = 0.005
    hoa_fees: float = 0.0
    new_mortgage_interest_rate: float = 0.03
    mortgage_term_years: int = 25
    other_monthly_debt_obligations: float = 0.0
    down_payment_minimum_percentage: float = 0.2


class TaxParameters(BaseModel):
    tax_brackets: list[TaxBracket] = Field(default_factory=list)
    available_deductions: list[Deduction] = Field(default_factory=list)
    previous_tax_paid: float | None = None
    pillar3a_contribution: float = 0.0
    potential_credits: list[Deduction] = Field(default_factory=list)


class RetirementParameters(BaseModel):
    current_age: int | None = None
    target_retirement_age: int | None = None
    target_annual_income: float | None = None


class FinancialSnapshot(BaseModel):
    """Everything the assistant may use for calculations in one turn."""

    income_sources: list[IncomeSource] = Field(default_factory=list)
    total_monthly_income: float = 0.0
    scenario_mode: ScenarioMode = ScenarioMode.BASIC
    monthly_savings_rate: float | None = None
    monthly_expenses: float | None = None
    net_worth: float | None = None
    assets: list[Asset] = Field(default_factory=list)
    liabilities: list[Liability] = Field(default_factory=list)
    tax_rate: float | None = None
    retirement_contributions: RetirementContributions | None = None
    mortgage_parameters: MortgageAssumptions | None = None
    tax_parameters: TaxParameters | None = None
    retirement_parameters: RetirementParameters | None = None

    model_config = ConfigDict(use_enum_values=True)
