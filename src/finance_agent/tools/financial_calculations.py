"""Financial calculation tools for household planning.

Pure functions: every result depends only on the arguments. Amounts are in
CHF and rates are decimal fractions (0.035 = 3.5%).
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any

from finance_agent.models.finance import (
    BudgetCategory,
    BudgetStatus,
    BudgetVarianceEntry,
    BuyVsRentResult,
    MortgageParameters,
    RentParameters,
    TaxBracket,
)


class CalculationError(ValueError):
    """Raised when calculator input fails explicit validation."""


# Geneva income tax brackets (simplified). Published with 1-franc gaps
# (30 001, 50 001, ...); stored contiguously so every franc is taxed once
# and tax on 138 000 is 17 990.
SWISS_TAX_BRACKETS = [
    TaxBracket(min=0, max=30000, rate=0.08),
    TaxBracket(min=30000, max=50000, rate=0.10),
    TaxBracket(min=50000, max=75000, rate=0.12),
    TaxBracket(min=75000, max=100000, rate=0.15),
    TaxBracket(min=100000, max=150000, rate=0.18),
    TaxBracket(min=150000, max=200000, rate=0.22),
    TaxBracket(min=200000, max=float("inf"), rate=0.25),
]

# Absolute CHF shortfall/overspend separating "warning" from "danger"
BUDGET_VARIANCE_THRESHOLD = 500

# Housing cost ceiling used by the affordability check
DEFAULT_MAX_DEBT_TO_INCOME = 0.33


def _field(item: Any, name: str) -> float:
    if isinstance(item, Mapping):
        return item.get(name, 0) or 0
    return getattr(item, name, 0) or 0


def _bracket(item: TaxBracket | Mapping | tuple) -> TaxBracket:
    if isinstance(item, TaxBracket):
        return item
    if isinstance(item, Mapping):
        return TaxBracket(**item)
    low, high, rate = item
    return TaxBracket(min=low, max=high, rate=rate)


def total_income(sources: Iterable[Any]) -> float:
    """Sum of monthly income across all sources."""
    return sum(_field(s, "amount") for s in sources)


def total_expenses(items: Iterable[Any]) -> float:
    """Sum of monthly expenses."""
    return sum(_field(e, "amount") for e in items)


def total_assets(assets: Iterable[Any]) -> float:
    return sum(_field(a, "value") for a in assets)


def total_liabilities(liabilities: Iterable[Any]) -> float:
    return sum(_field(item, "amount") for item in liabilities)


def net_worth(assets: Iterable[Any], liabilities: Iterable[Any]) -> float:
    """Total assets minus total liabilities."""
    return total_assets(assets) - total_liabilities(liabilities)


def monthly_cash_flow(sources: Iterable[Any], expenses: Iterable[Any]) -> float:
    """Monthly income minus monthly expenses."""
    return total_income(sources) - total_expenses(expenses)


def validate_tax_brackets(brackets: Iterable[Any]) -> list[TaxBracket]:
    """
    Check that a bracket table is usable for progressive tax.

    Args:
        brackets: TaxBracket models, mappings or (min, max, rate) tuples

    Returns:
        The brackets as TaxBracket models

    Raises:
        CalculationError: If the table is empty, does not start at 0, has
            gaps or overlaps, or does not end at infinity
    """
    table = [_bracket(b) for b in brackets]
    if not table:
        raise CalculationError("Tax bracket table is empty")
    if table[0].min != 0:
        raise CalculationError(f"First bracket must start at 0, not {table[0].min}")

    for previous, current in zip(table, table[1:]):
        if current.min != previous.max:
            raise CalculationError(
                f"Brackets are not contiguous: {previous.max:,.0f} is followed by {current.min:,.0f}"
            )

    if not math.isinf(table[-1].max):
        raise CalculationError("Last bracket must be open-ended (max = infinity)")

    return table


def estimated_tax(
    annual_income: float,
    brackets: Iterable[Any] = SWISS_TAX_BRACKETS,
) -> float:
    """
    Progressive income tax for an annual income.

    Each bracket taxes the slice of income between its min and max. The
    table is assumed contiguous and ascending; see validate_tax_brackets().

    Args:
        annual_income: Gross annual income
        brackets: Bracket table (defaults to the Geneva table)

    Returns:
        Total tax (0 for non-positive income)
    """
    tax = 0.0

    for bracket in (_bracket(b) for b in brackets):
        if annual_income > bracket.min:
            taxable_in_bracket = min(annual_income, bracket.max) - bracket.min
            tax += taxable_in_bracket * bracket.rate

        if annual_income <= bracket.max:
            break

    return tax


def tax_breakdown(
    annual_income: float,
    brackets: Iterable[Any] = SWISS_TAX_BRACKETS,
) -> dict[str, Any]:
    """
    Bracket-by-bracket tax detail for an annual income.

    Args:
        annual_income: Gross annual income
        brackets: Bracket table

    Returns:
        Dictionary with total tax, effective and marginal rate, and breakdown
    """
    table = [_bracket(b) for b in brackets]
    breakdown = []
    marginal_rate = 0.0

    for bracket in table:
        if annual_income > bracket.min:
            income_in_bracket = min(annual_income, bracket.max) - bracket.min
            upper = "∞" if math.isinf(bracket.max) else f"{bracket.max:,.0f}"
            breakdown.append({
                "bracket": f"{bracket.min:,.0f} - {upper}",
                "rate": f"{bracket.rate:.0%}",
                "income_in_bracket": income_in_bracket,
                "tax": income_in_bracket * bracket.rate,
            })
            marginal_rate = bracket.rate

        if annual_income <= bracket.max:
            break

    total_tax = sum(row["tax"] for row in breakdown)
    effective_rate = (total_tax / annual_income * 100) if annual_income > 0 else 0

    return {
        "annual_income": annual_income,
        "total_tax": total_tax,
        "effective_rate": f"{effective_rate:.2f}%",
        "marginal_rate": f"{marginal_rate:.0%}",
        "breakdown": breakdown,
    }


def mortgage_payment(principal: float, annual_rate: float, term_years: float) -> float:
    """
    Fixed monthly payment that amortizes a loan over its term.

    Uses P·r·(1+r)^n / ((1+r)^n − 1) with r the monthly rate and n the
    number of monthly payments. A zero rate is straight-line repayment.

    Args:
        principal: Loan amount
        annual_rate: Nominal annual interest rate
        term_years: Loan term in years

    Returns:
        Monthly payment (0 for a non-positive term)
    """
    num_payments = term_years * 12
    if num_payments <= 0:
        return 0.0

    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return principal / num_payments

    growth = (1 + monthly_rate) ** num_payments
    return principal * monthly_rate * growth / (growth - 1)


def remaining_balance(
    principal: float,
    annual_rate: float,
    term_years: float,
    payments_made: int,
) -> float:
    """Outstanding loan balance after a number of monthly payments."""
    total_payments = term_years * 12
    if payments_made >= total_payments or total_payments <= 0:
        return 0.0

    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return principal * (total_payments - payments_made) / total_payments

    growth_total = (1 + monthly_rate) ** total_payments
    growth_made = (1 + monthly_rate) ** payments_made
    return principal * (growth_total - growth_made) / (growth_total - 1)


def max_mortgage(monthly_payment: float, annual_rate: float, term_years: float) -> float:
    """Largest loan a given monthly payment can amortize over the term."""
    num_payments = term_years * 12
    if num_payments <= 0 or monthly_payment <= 0:
        return 0.0

    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return monthly_payment * num_payments

    growth = (1 + monthly_rate) ** num_payments
    return monthly_payment * (growth - 1) / (monthly_rate * growth)


def mortgage_affordability(
    monthly_income: float,
    property_value: float,
    down_payment: float,
    annual_rate: float,
    term_years: int,
    property_tax_rate: float = 0.01,
    insurance_rate: float = 0.005,
    monthly_hoa_fees: float = 0.0,
    other_monthly_debt: float = 0.0,
    max_debt_to_income: float = DEFAULT_MAX_DEBT_TO_INCOME,
) -> dict[str, Any]:
    """
    Check whether a property purchase fits a debt-to-income ceiling.

    Args:
        monthly_income: Gross monthly income
        property_value: Purchase price
        down_payment: Cash put down
        annual_rate: Mortgage interest rate
        term_years: Mortgage term
        property_tax_rate: Annual property tax as a fraction of value
        insurance_rate: Annual insurance as a fraction of value
        monthly_hoa_fees: Monthly co-ownership fees
        other_monthly_debt: Other monthly debt payments
        max_debt_to_income: Maximum share of income for all debt payments

    Returns:
        Dictionary with affordability verdict and supporting figures
    """
    max_monthly_payment = monthly_income * max_debt_to_income - other_monthly_debt
    monthly_property_tax = property_value * property_tax_rate / 12
    monthly_insurance = property_value * insurance_rate / 12

    max_mortgage_payment = (
        max_monthly_payment - monthly_property_tax - monthly_insurance - monthly_hoa_fees
    )
    max_loan_amount = max_mortgage(max_mortgage_payment, annual_rate, term_years)

    loan_amount = max(property_value - down_payment, 0.0)
    monthly_payment = mortgage_payment(loan_amount, annual_rate, term_years)
    total_monthly_housing_cost = (
        monthly_payment + monthly_property_tax + monthly_insurance + monthly_hoa_fees
    )
    debt_to_income_ratio = (
        (total_monthly_housing_cost + other_monthly_debt) / monthly_income
        if monthly_income > 0
        else float("inf")
    )

    return {
        "is_affordable": debt_to_income_ratio <= max_debt_to_income,
        "max_loan_amount": max_loan_amount,
        "affordable_property_value": max_loan_amount + down_payment,
        "loan_amount": loan_amount,
        "monthly_payment": monthly_payment,
        "total_monthly_housing_cost": total_monthly_housing_cost,
        "debt_to_income_ratio": debt_to_income_ratio,
        "max_debt_to_income": max_debt_to_income,
    }


def future_value(
    principal: float,
    annual_rate: float,
    years: float,
    monthly_contribution: float = 0,
) -> float:
    """
    Future value with monthly compounding and optional monthly contributions.

    Contributions are made at the start of each month (annuity due).

    Args:
        principal: Starting balance
        annual_rate: Expected annual return
        years: Horizon in years
        monthly_contribution: Amount added every month

    Returns:
        Balance at the end of the horizon
    """
    monthly_rate = annual_rate / 12
    num_months = years * 12

    if monthly_rate == 0:
        value = principal
        if monthly_contribution > 0:
            value += monthly_contribution * num_months
        return value

    growth = (1 + monthly_rate) ** num_months
    value = principal * growth

    if monthly_contribution > 0:
        value += monthly_contribution * ((growth - 1) / monthly_rate) * (1 + monthly_rate)

    return value


def buy_vs_rent(
    years: int,
    rent: RentParameters | Mapping,
    buy: MortgageParameters | Mapping,
) -> BuyVsRentResult:
    """
    Compare the total cost of renting and buying over a horizon.

    Rent rises by the annual increase after the first year. Property tax and
    maintenance are charged on the appreciating property value. The buyer's
    net cost is total outlay minus the equity gained beyond the down payment.

    Args:
        years: Comparison horizon in years
        rent: Renting inputs
        buy: Buying inputs

    Returns:
        BuyVsRentResult; buy_advantage > 0 means buying is cheaper
    """
    if isinstance(rent, Mapping):
        rent = RentParameters(**rent)
    if isinstance(buy, Mapping):
        buy = MortgageParameters(**buy)

    rent_total_cost = 0.0
    current_rent = rent.current_monthly_rent
    for year in range(years):
        if year > 0:
            current_rent *= 1 + rent.annual_rent_increase
        rent_total_cost += current_rent * 12 + rent.rental_insurance

    down_payment = buy.property_value * buy.down_payment_percentage
    loan_amount = buy.property_value - down_payment
    monthly_payment = mortgage_payment(loan_amount, buy.annual_rate, buy.term_years)

    # Payments stop once the mortgage is paid off
    payment_years = min(years, buy.term_years)

    buy_total_cost = down_payment
    for year in range(years):
        value_this_year = buy.property_value * (1 + buy.appreciation_rate) ** year
        yearly_mortgage = monthly_payment * 12 if year < payment_years else 0.0
        buy_total_cost += (
            yearly_mortgage
            + value_this_year * buy.property_tax_rate
            + buy.insurance_annual
            + value_this_year * buy.maintenance_rate
        )

    property_value_at_end = buy.property_value * (1 + buy.appreciation_rate) ** years
    mortgage_remaining = remaining_balance(
        loan_amount, buy.annual_rate, buy.term_years, years * 12
    )
    equity_built = property_value_at_end - mortgage_remaining
    buy_net_cost = buy_total_cost - (equity_built - down_payment)

    if math.isclose(rent_total_cost, buy_net_cost, rel_tol=1e-12, abs_tol=1e-9):
        advantage = 0.0
    else:
        advantage = rent_total_cost - buy_net_cost

    return BuyVsRentResult(
        years=years,
        rent_total_cost=rent_total_cost,
        buy_total_cost=buy_total_cost,
        buy_net_cost=buy_net_cost,
        buy_advantage=advantage,
        property_value_at_end=property_value_at_end,
        equity_built=equity_built,
        mortgage_remaining=mortgage_remaining,
    )


def _variance_status(category: str, difference: float) -> BudgetStatus:
    if category.lower() == "savings":
        # Saving more than recommended is good
        if difference >= 0:
            return BudgetStatus.GOOD
        if difference > -BUDGET_VARIANCE_THRESHOLD:
            return BudgetStatus.WARNING
        return BudgetStatus.DANGER

    if difference <= 0:
        return BudgetStatus.GOOD
    if difference < BUDGET_VARIANCE_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.DANGER


def budget_variance(
    categories: Mapping[str, BudgetCategory | Mapping],
    total_income: float,
) -> dict[str, BudgetVarianceEntry]:
    """
    Compare current spending shares against recommended shares.

    Args:
        categories: Category name -> recommended/current fractions of income
        total_income: Income the fractions apply to

    Returns:
        Category name -> BudgetVarianceEntry with amounts and status
    """
    result = {}

    for category, data in categories.items():
        if isinstance(data, Mapping):
            data = BudgetCategory(**data)

        recommended_amount = total_income * data.recommended
        current_amount = total_income * data.current
        difference = current_amount - recommended_amount

        result[category] = BudgetVarianceEntry(
            recommended=data.recommended,
            current=data.current,
            recommended_amount=recommended_amount,
            current_amount=current_amount,
            difference=difference,
            status=_variance_status(category, difference),
        )

    return result
