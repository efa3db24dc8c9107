"""CLI commands for the finance agent."""

import logging
from typing import Annotated, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from finance_agent.config import AI_PROVIDER_ANTHROPIC, AI_PROVIDER_GEMINI, API_KEY_ENV_VARS, get_config
from finance_agent.env import load_env
from finance_agent.utils import format_currency, format_percent, get_enum_value

# Load .env file early so all env vars are available
load_env()

app = typer.Typer(
    name="finance-agent",
    help="A personal finance assistant for Swiss households.",
    invoke_without_command=True,
)
calc_app = typer.Typer(help="Run financial calculations")
config_app = typer.Typer(help="Manage configuration")
profile_app = typer.Typer(help="Manage your user profile")
app.add_typer(calc_app, name="calc")
app.add_typer(config_app, name="config")
app.add_typer(profile_app, name="profile")

console = Console()

STATUS_STYLES = {"good": "green", "warning": "yellow", "danger": "red"}


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[bool, typer.Option("--version", help="Show version")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    Finance Agent - calculators and an AI assistant for your household budget.

    Run without arguments to start a chat.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if version:
        rprint("finance-agent version 0.1.0")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        chat()


def _new_chat():
    """Create the chat front or exit with a readable error."""
    from finance_agent.chat import FinanceAdvisorChat

    advisor = FinanceAdvisorChat()
    try:
        advisor.engine
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return advisor


@app.command()
def chat() -> None:
    """Start an interactive chat session about your finances."""
    from finance_agent.agent import ModelError

    advisor = _new_chat()

    rprint(Panel.fit(
        "[bold blue]Finance Advisor Chat[/bold blue]\n\n"
        "Ask about taxes, mortgages, retirement or your budget.\n"
        "Short answers like '35' or '1.2m' are understood in context.\n\n"
        "Type 'quit' or 'exit' to end the session.\n"
        "Type 'suggest' for sample questions, 'reset' to start over.",
        title="Interactive Finance Advisor"
    ))

    rprint("\n[dim]Try asking:[/dim]")
    for s in advisor.suggest_topics()[:3]:
        rprint(f"  [cyan]• {s}[/cyan]")

    while True:
        try:
            user_input = Prompt.ask("\n[bold green]You[/bold green]")
        except KeyboardInterrupt:
            rprint("\n[dim]Session ended.[/dim]")
            break

        if not user_input.strip():
            continue

        if user_input.lower() in ("quit", "exit", "bye", "q"):
            rprint("[dim]Session ended.[/dim]")
            break

        if user_input.lower() == "suggest":
            rprint("\n[bold]Sample questions:[/bold]")
            for s in advisor.suggest_topics():
                rprint(f"  [cyan]• {s}[/cyan]")
            continue

        if user_input.lower() == "reset":
            advisor.reset()
            rprint("[dim]Conversation reset.[/dim]")
            continue

        try:
            with console.status("[bold green]Thinking..."):
                response = advisor.send(user_input)
        except ModelError as e:
            rprint(f"[red]Sorry, I couldn't get an answer: {e.message}. Please try again.[/red]")
            continue

        rprint("\n[bold blue]Advisor[/bold blue]:")
        console.print(Markdown(response))


@app.command()
def ask(
    question: Annotated[str, typer.Argument(help="Question for the assistant")],
) -> None:
    """Ask a single question and print the answer."""
    from finance_agent.agent import ModelError

    advisor = _new_chat()
    try:
        with console.status("[bold green]Thinking..."):
            response = advisor.send(question)
    except ModelError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(Markdown(response))


@app.command()
def overview() -> None:
    """Show the household's income, expenses and net worth."""
    from finance_agent import sample_data
    from finance_agent.tools.financial_calculations import (
        estimated_tax,
        monthly_cash_flow,
        net_worth,
        total_assets,
        total_expenses,
        total_income,
        total_liabilities,
    )

    income = total_income(sample_data.INCOME_SOURCES)
    profile = sample_data.USER_PROFILE

    rprint(Panel.fit(
        f"[bold]{profile['name']}[/bold], {profile['age']}\n"
        f"{profile['occupation']} - {profile['location']}",
        title="Household"
    ))

    table = Table(title="Financial Overview")
    table.add_column("Item", style="cyan")
    table.add_column("Amount", justify="right", style="green")

    table.add_row("Monthly income", format_currency(income))
    table.add_row("Monthly expenses", format_currency(total_expenses(sample_data.EXPENSES)))
    table.add_row(
        "Monthly cash flow",
        format_currency(monthly_cash_flow(sample_data.INCOME_SOURCES, sample_data.EXPENSES)),
    )
    table.add_row("Total assets", format_currency(total_assets(sample_data.ASSETS)))
    table.add_row("Total liabilities", format_currency(total_liabilities(sample_data.LIABILITIES)))
    table.add_row(
        "[bold]Net worth[/bold]",
        format_currency(net_worth(sample_data.ASSETS, sample_data.LIABILITIES)),
    )
    table.add_row("Estimated annual tax", format_currency(estimated_tax(income * 12)))

    console.print(table)


# Calculator subcommands

@calc_app.command("tax")
def calc_tax(
    income: Annotated[Optional[float], typer.Option("--income", "-i", help="Annual income (CHF)")] = None,
) -> None:
    """Estimate income tax with the Geneva bracket table."""
    from finance_agent import sample_data
    from finance_agent.tools.financial_calculations import tax_breakdown, total_income

    annual_income = income if income is not None else total_income(sample_data.INCOME_SOURCES) * 12
    result = tax_breakdown(annual_income)

    table = Table(title=f"Tax on {format_currency(annual_income)}")
    table.add_column("Bracket", style="cyan")
    table.add_column("Rate", justify="right")
    table.add_column("Income in bracket", justify="right")
    table.add_column("Tax", justify="right", style="green")

    for row in result["breakdown"]:
        table.add_row(
            row["bracket"],
            row["rate"],
            format_currency(row["income_in_bracket"]),
            format_currency(row["tax"], 2),
        )

    console.print(table)
    rprint(f"\n[bold]Total tax:[/bold] {format_currency(result['total_tax'], 2)}")
    rprint(f"Effective rate: {result['effective_rate']}  Marginal rate: {result['marginal_rate']}")


@calc_app.command("mortgage")
def calc_mortgage(
    principal: Annotated[float, typer.Argument(help="Loan amount (CHF)")],
    rate: Annotated[float, typer.Option("--rate", "-r", help="Annual rate, e.g. 0.015")] = 0.015,
    years: Annotated[int, typer.Option("--years", "-y", help="Term in years")] = 25,
) -> None:
    """Monthly payment for a fixed-rate mortgage."""
    from finance_agent.tools.financial_calculations import mortgage_payment

    payment = mortgage_payment(principal, rate, years)
    total_paid = payment * years * 12

    rprint(Panel.fit(
        f"Loan: {format_currency(principal)} at {format_percent(rate, 2)} over {years} years\n\n"
        f"[bold]Monthly payment:[/bold] {format_currency(payment, 2)}\n"
        f"Total paid: {format_currency(total_paid)}\n"
        f"Total interest: {format_currency(total_paid - principal)}",
        title="Mortgage Payment"
    ))


@calc_app.command("affordability")
def calc_affordability(
    price: Annotated[float, typer.Argument(help="Property price (CHF)")],
    down_payment: Annotated[Optional[float], typer.Option("--down-payment", "-d", help="Cash down (CHF)")] = None,
    income: Annotated[Optional[float], typer.Option("--income", "-i", help="Monthly income (CHF)")] = None,
) -> None:
    """Check whether a property fits the debt-to-income limit."""
    from finance_agent.sample_data import default_snapshot
    from finance_agent.tools.financial_calculations import mortgage_affordability

    snapshot = default_snapshot()
    params = snapshot.mortgage_parameters
    monthly_income = income if income is not None else snapshot.total_monthly_income
    down = down_payment if down_payment is not None else price * params.down_payment_minimum_percentage

    result = mortgage_affordability(
        monthly_income=monthly_income,
        property_value=price,
        down_payment=down,
        annual_rate=params.new_mortgage_interest_rate,
        term_years=params.mortgage_term_years,
        property_tax_rate=params.property_tax_rate,
        insurance_rate=params.property_insurance_rate,
        monthly_hoa_fees=params.hoa_fees,
        other_monthly_debt=params.other_monthly_debt_obligations,
        max_debt_to_income=params.max_debt_to_income_ratio,
    )

    verdict = "[green]Affordable[/green]" if result["is_affordable"] else "[red]Not affordable[/red]"
    rprint(Panel.fit(
        f"Property: {format_currency(price)}  Down payment: {format_currency(down)}\n"
        f"Monthly income: {format_currency(monthly_income)}\n\n"
        f"Monthly mortgage payment: {format_currency(result['monthly_payment'], 2)}\n"
        f"Total monthly housing cost: {format_currency(result['total_monthly_housing_cost'], 2)}\n"
        f"Debt-to-income: {format_percent(result['debt_to_income_ratio'])} "
        f"(limit {format_percent(result['max_debt_to_income'])})\n"
        f"Maximum loan: {format_currency(result['max_loan_amount'])}\n"
        f"Affordable property value: {format_currency(result['affordable_property_value'])}\n\n"
        f"[bold]{verdict}[/bold]",
        title="Mortgage Affordability"
    ))


@calc_app.command("future-value")
def calc_future_value(
    principal: Annotated[float, typer.Argument(help="Starting balance (CHF)")],
    rate: Annotated[float, typer.Option("--rate", "-r", help="Annual return, e.g. 0.05")] = 0.05,
    years: Annotated[float, typer.Option("--years", "-y", help="Years to grow")] = 10,
    monthly: Annotated[float, typer.Option("--monthly", "-m", help="Monthly contribution")] = 0,
) -> None:
    """Project savings growth with monthly compounding."""
    from finance_agent.tools.financial_calculations import future_value

    value = future_value(principal, rate, years, monthly)
    contributed = principal + monthly * years * 12

    rprint(Panel.fit(
        f"Start: {format_currency(principal)}  Monthly: {format_currency(monthly)}\n"
        f"Return: {format_percent(rate, 2)} over {years:g} years\n\n"
        f"[bold]Future value:[/bold] {format_currency(value)}\n"
        f"Contributed: {format_currency(contributed)}\n"
        f"Growth: {format_currency(value - contributed)}",
        title="Future Value"
    ))


@calc_app.command("buy-vs-rent")
def calc_buy_vs_rent(
    years: Annotated[int, typer.Option("--years", "-y", help="Comparison horizon")] = 10,
    price: Annotated[Optional[float], typer.Option("--price", "-p", help="Property price (CHF)")] = None,
    rent: Annotated[Optional[float], typer.Option("--rent", help="Current monthly rent (CHF)")] = None,
) -> None:
    """Compare renting and buying over a number of years."""
    from finance_agent.sample_data import BUY_OPTIONS, RENT_OPTIONS
    from finance_agent.tools.financial_calculations import buy_vs_rent

    buy = BUY_OPTIONS if price is None else BUY_OPTIONS.model_copy(update={"property_value": price})
    rent_options = (
        RENT_OPTIONS if rent is None
        else RENT_OPTIONS.model_copy(update={"current_monthly_rent": rent})
    )
    result = buy_vs_rent(years, rent_options, buy)

    table = Table(title=f"Buy vs Rent over {years} years")
    table.add_column("Item", style="cyan")
    table.add_column("Amount", justify="right", style="green")
    table.add_row("Total rent cost", format_currency(result.rent_total_cost))
    table.add_row("Total buying cost", format_currency(result.buy_total_cost))
    table.add_row("Property value at end", format_currency(result.property_value_at_end))
    table.add_row("Mortgage remaining", format_currency(result.mortgage_remaining))
    table.add_row("Equity built", format_currency(result.equity_built))
    table.add_row("Net cost of buying", format_currency(result.buy_net_cost))
    console.print(table)

    if result.verdict == "buy":
        rprint(f"\n[green]Buying saves {format_currency(result.buy_advantage)}[/green]")
    elif result.verdict == "rent":
        rprint(f"\n[yellow]Renting saves {format_currency(-result.buy_advantage)}[/yellow]")
    else:
        rprint("\n[dim]Both options cost the same.[/dim]")


@calc_app.command("budget")
def calc_budget() -> None:
    """Compare current spending with recommended budget shares."""
    from finance_agent.sample_data import BUDGET_RECOMMENDATIONS, INCOME_SOURCES
    from finance_agent.tools.financial_calculations import budget_variance, total_income

    variance = budget_variance(BUDGET_RECOMMENDATIONS, total_income(INCOME_SOURCES))

    table = Table(title="Budget Variance (monthly)")
    table.add_column("Category", style="cyan")
    table.add_column("Recommended", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Difference", justify="right")
    table.add_column("Status")

    for category, entry in variance.items():
        status = get_enum_value(entry.status)
        style = STATUS_STYLES.get(status, "white")
        table.add_row(
            category.title(),
            format_currency(entry.recommended_amount),
            format_currency(entry.current_amount),
            format_currency(entry.difference),
            f"[{style}]{status}[/{style}]",
        )

    console.print(table)


# Config subcommands

CONFIG_KEYS = {
    "ai_provider": str,
    "model": str,
    "anthropic_model": str,
    "request_timeout": float,
    "temperature": float,
    "max_output_tokens": int,
    "session_ttl_seconds": int,
    "max_sessions": int,
    "scenario_mode": str,
    "save_history": bool,
    "user_id": str,
}


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key")],
    value: Annotated[str, typer.Argument(help="Configuration value")],
) -> None:
    """Set a configuration value."""
    config = get_config()

    key_lower = key.lower()
    if key_lower not in CONFIG_KEYS:
        rprint(f"[red]Unknown configuration key: {key}[/red]")
        rprint(f"Valid keys: {', '.join(CONFIG_KEYS)}")
        raise typer.Exit(1)

    value_type = CONFIG_KEYS[key_lower]
    try:
        if key_lower == "ai_provider":
            config.ai_provider = value
        elif key_lower == "scenario_mode":
            config.scenario_mode = value
        elif value_type is bool:
            config.set(key_lower, value.lower() in ("true", "1", "yes"))
        else:
            config.set(key_lower, value_type(value))
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Set {key_lower} = {config.get(key_lower)}[/green]")


@config_app.command("get")
def config_get(
    key: Annotated[Optional[str], typer.Argument(help="Configuration key")] = None,
) -> None:
    """Get configuration value(s)."""
    config = get_config()

    if key:
        value = config.get(key.lower())
        if value is None:
            rprint(f"[yellow]{key} is not set[/yellow]")
        else:
            rprint(f"{key} = {value}")
    else:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        for k, v in config.to_dict().items():
            table.add_row(k, str(v) if v is not None else "[dim]Not set[/dim]")

        console.print(table)


@config_app.command("api-key")
def config_api_key(
    provider: Annotated[Optional[str], typer.Option("--provider", "-p", help="gemini or anthropic")] = None,
    to_env: Annotated[bool, typer.Option("--env", help="Save to the .env file instead of the keyring")] = False,
) -> None:
    """Store the API key for the model provider."""
    from finance_agent.env import get_env_path, write_env_key

    config = get_config()
    provider = provider or config.ai_provider
    if provider not in (AI_PROVIDER_GEMINI, AI_PROVIDER_ANTHROPIC):
        rprint(f"[red]Invalid AI provider: {provider}[/red]")
        raise typer.Exit(1)

    api_key = Prompt.ask(f"[bold]Enter your {provider.title()} API key[/bold]", password=True)
    if not api_key.strip():
        rprint("[yellow]No key entered. Nothing changed.[/yellow]")
        return

    if to_env:
        env_path = get_env_path()
        write_env_key(env_path, API_KEY_ENV_VARS[provider], api_key.strip())
        rprint(f"[green]API key saved to {env_path}[/green]")
    else:
        config.set_api_key(api_key.strip(), provider)
        rprint("[green]API key updated successfully.[/green]")


# Profile subcommands

@profile_app.command("show")
def profile_show() -> None:
    """Show your profile."""
    from finance_agent.profile import get_profile_summary

    rprint(Panel.fit(get_profile_summary(), title="Profile"))


@profile_app.command("set")
def profile_set(
    first_name: Annotated[Optional[str], typer.Option("--first-name", help="First name")] = None,
    last_name: Annotated[Optional[str], typer.Option("--last-name", help="Last name")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Email address")] = None,
) -> None:
    """Update your name or email."""
    from finance_agent.profile import update_profile

    fields = {
        k: v for k, v in
        {"first_name": first_name, "last_name": last_name, "email": email}.items()
        if v is not None
    }
    if not fields:
        rprint("[yellow]Nothing to update. Pass --first-name, --last-name or --email.[/yellow]")
        raise typer.Exit(1)

    try:
        profile = update_profile(**fields)
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint(f"[green]Profile updated for {profile.display_name}[/green]")


@app.command()
def history(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of entries")] = 10,
    clear: Annotated[bool, typer.Option("--clear", help="Delete saved history")] = False,
) -> None:
    """Show or clear saved chat history."""
    from finance_agent.storage.database import get_database

    config = get_config()
    if not config.user_id:
        rprint("[yellow]No user configured. Run: finance-agent config set user_id <id>[/yellow]")
        raise typer.Exit(1)

    db = get_database()

    if clear:
        if Confirm.ask("[bold red]Delete all saved chat history?[/bold red]", default=False):
            count = db.clear_chats(config.user_id)
            rprint(f"[green]Deleted {count} entr{'y' if count == 1 else 'ies'}.[/green]")
        return

    entries = db.get_chats(config.user_id, limit=limit)
    if not entries:
        rprint("[dim]No saved chat history.[/dim]")
        return

    table = Table(title="Chat History")
    table.add_column("When", style="dim")
    table.add_column("You", style="cyan")
    table.add_column("Advisor")

    for entry in entries:
        response = entry.response if len(entry.response) <= 120 else entry.response[:117] + "..."
        table.add_row(f"{entry.created_at:%Y-%m-%d %H:%M}", entry.message, response)

    console.print(table)


if __name__ == "__main__":
    app()
