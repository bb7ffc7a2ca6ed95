"""Command-line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi-command
interface: purchase, refinance, HELOC and blended-mortgage calculations,
plus a comparison of several fixed-rate loan scenarios. Results are printed
to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .blended import calculate_blended_mortgage
from .data_models import (
    LOAN_TYPE_HELOC,
    LOAN_TYPES,
    AdditionalCosts,
    BlendedParams,
    ComponentInput,
    HelocInput,
    LoanInput,
    PurchaseScenarioInput,
    RefinanceInput,
)
from .engine import build_fixed_loan_schedule
from .errors import ValidationError
from .export import comparison_rows, export_to_json, write_schedule_csv
from .formatter import (
    print_blended_schedule,
    print_blended_summary,
    print_comparison,
    print_fixed_schedule,
    print_heloc_schedule,
    print_heloc_summary,
    print_loan_summary,
    print_refinance_summary,
)
from .heloc import MAX_LTV_THRESHOLD, combined_ltv, compute_heloc_analysis, exceeds_hard_ltv_limit
from .purchase import compute_purchase_scenario
from .refinance import compute_refinance_scenario
from .scoring import EvaluationMode, determine_best_loan
from .utils import parse_amount, parse_year_month

MAX_ROWS = 120


def amount_option(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[float]:
    """click callback accepting amounts such as ``500k`` or ``1.2m``."""
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_start_date(value: Optional[str]):
    if not value:
        return None
    try:
        return parse_year_month(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_component_string(value: str, default_type: str = "fixed") -> ComponentInput:
    """Parse ``AMOUNT:RATE[:TERM[:TYPE[:DRAW:REPAY]]]`` into a component.

    ``DRAW`` and ``REPAY`` are months and only meaningful for HELOCs.
    """
    parts = value.split(":")
    if len(parts) < 2 or len(parts) == 5 or len(parts) > 6:
        raise click.BadParameter(
            f"Component must be in AMOUNT:RATE[:TERM[:TYPE[:DRAW:REPAY]]] format; got {value}"
        )
    try:
        amount = parse_amount(parts[0])
        rate = float(parts[1])
        term = int(parts[2]) if len(parts) > 2 and parts[2] else None
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    loan_type = parts[3].lower() if len(parts) > 3 and parts[3] else default_type
    if loan_type not in LOAN_TYPES:
        raise click.BadParameter(f"Component type must be one of {', '.join(LOAN_TYPES)}; got {loan_type}")
    draw_months = repay_months = None
    if len(parts) == 6:
        try:
            draw_months, repay_months = int(parts[4]), int(parts[5])
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return ComponentInput(
        amount=amount,
        rate=rate,
        term=term,
        type=loan_type,
        draw_months=draw_months,
        repay_months=repay_months,
    )


def write_output(output: str, kind: str, inputs: Any, result: Any) -> None:
    path = Path(output)
    if path.suffix.lower() == ".json":
        export_to_json(path, kind, inputs, result)
    elif path.suffix.lower() == ".csv":
        write_schedule_csv(path, result)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Results exported to {path}")


def echo_truncated(rows: List[Any], printer) -> None:
    # Limit schedule length printed to avoid flooding the terminal
    if len(rows) > MAX_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_ROWS} rows.")
        printer(rows[:MAX_ROWS])
    else:
        printer(rows)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """A command-line mortgage calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--price", "price", required=True, callback=amount_option, help="Property value")
@click.option("--down", "down", default="0", callback=amount_option, help="Down payment amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", default=30, type=int, help="Loan term in years")
@click.option("--pmi-rate", "pmi_rate", default=0.0, type=float, help="Annual PMI rate (percent of loan)")
@click.option("--pmi-end-rule", "pmi_end_rule", default=80.0, type=float, help="LTV percent at which PMI drops")
@click.option("--tax", "tax", default="0", callback=amount_option, help="Monthly property tax")
@click.option("--insurance", "insurance", default="0", callback=amount_option, help="Monthly home insurance")
@click.option("--hoa", "hoa", default="0", callback=amount_option, help="Monthly HOA dues")
@click.option("--extra", "extra", default="0", callback=amount_option, help="Extra principal paid every month")
@click.option("--schedule", "show_schedule", is_flag=True, help="Also print the payment schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def purchase(
    price: float,
    down: float,
    rate: float,
    term: int,
    pmi_rate: float,
    pmi_end_rule: float,
    tax: float,
    insurance: float,
    hoa: float,
    extra: float,
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Calculate a home purchase with PMI and escrow."""
    inputs = PurchaseScenarioInput(
        property_value=price,
        down_payment_amount=down,
        loan_term=term,
        interest_rate=rate,
        pmi_rate=pmi_rate,
        pmi_end_rule=pmi_end_rule,
        property_tax=tax,
        home_insurance=insurance,
        hoa=hoa,
        extra_payment=extra,
    )
    result = compute_purchase_scenario(inputs)
    if output:
        write_output(output, "purchase", inputs, result)
        return
    click.echo(f"Loan amount {result.loan_amount:.2f} at {result.ltv:.2f}% LTV")
    print_loan_summary(result.schedule)
    if show_schedule:
        echo_truncated(result.schedule.schedule, print_fixed_schedule)


@cli.command()
@click.option("--balance", "balance", required=True, callback=amount_option, help="Current loan balance")
@click.option("--appraised", "appraised", required=True, callback=amount_option, help="Appraised home value")
@click.option("--rate", "-r", "rate", required=True, type=float, help="New annual interest rate (percent)")
@click.option("--term", "-t", "term", default=30, type=int, help="New loan term in years")
@click.option("--closing-costs", "closing_costs", default="0", callback=amount_option, help="Closing costs")
@click.option("--finance-costs", "finance_costs", is_flag=True, help="Roll closing costs into the new loan")
@click.option("--current-payment", "current_payment", default="0", callback=amount_option, help="Current monthly P&I")
@click.option("--pmi", "pmi", default=None, callback=amount_option, help="Fixed monthly PMI on the new loan")
@click.option("--pmi-end-rule", "pmi_end_rule", default=80.0, type=float, help="LTV percent at which PMI drops")
@click.option("--tax", "tax", default="0", callback=amount_option, help="Monthly property tax")
@click.option("--insurance", "insurance", default="0", callback=amount_option, help="Monthly home insurance")
@click.option("--hoa", "hoa", default="0", callback=amount_option, help="Monthly HOA dues")
@click.option("--extra", "extra", default="0", callback=amount_option, help="Extra principal paid every month")
@click.option("--schedule", "show_schedule", is_flag=True, help="Also print the payment schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def refinance(
    balance: float,
    appraised: float,
    rate: float,
    term: int,
    closing_costs: float,
    finance_costs: bool,
    current_payment: float,
    pmi: Optional[float],
    pmi_end_rule: float,
    tax: float,
    insurance: float,
    hoa: float,
    extra: float,
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Calculate a refinance of an existing loan."""
    inputs = RefinanceInput(
        current_balance=balance,
        appraised_value=appraised,
        new_rate=rate,
        new_term=term,
        closing_costs=closing_costs,
        finance_closing_costs=finance_costs,
        current_monthly_payment=current_payment,
        fixed_monthly_pmi=pmi,
        pmi_end_rule=pmi_end_rule,
        property_tax=tax,
        home_insurance=insurance,
        hoa=hoa,
        extra_payment=extra,
    )
    result = compute_refinance_scenario(inputs)
    if output:
        write_output(output, "refinance", inputs, result)
        return
    print_refinance_summary(result)
    if show_schedule:
        echo_truncated(result.schedule.schedule, print_fixed_schedule)


@cli.command()
@click.option("--property-value", "property_value", required=True, callback=amount_option, help="Market value")
@click.option("--balance", "balance", default="0", callback=amount_option, help="Existing mortgage balance")
@click.option("--amount", "amount", required=True, callback=amount_option, help="HELOC credit line (fully drawn)")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--draw-years", "draw_years", default=10, type=int, help="Interest-only draw period in years")
@click.option("--total-years", "total_years", default=30, type=int, help="Total HELOC term in years")
@click.option("--start-date", "-s", "start_date", help="First payment date (YYYY-MM)")
@click.option("--schedule", "show_schedule", is_flag=True, help="Also print the payment schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def heloc(
    property_value: float,
    balance: float,
    amount: float,
    rate: float,
    draw_years: int,
    total_years: int,
    start_date: Optional[str],
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Analyse a HELOC with an interest-only draw and an amortizing repayment."""
    inputs = HelocInput(
        property_value=property_value,
        heloc_amount=amount,
        interest_rate=rate,
        draw_period_years=draw_years,
        total_term_years=total_years,
        outstanding_balance=balance,
        start_date=parse_start_date(start_date),
    )
    if exceeds_hard_ltv_limit(inputs):
        raise click.ClickException(
            f"Combined LTV {combined_ltv(inputs):.2f}% exceeds {MAX_LTV_THRESHOLD:.0f}%; reduce the credit line."
        )
    try:
        analysis = compute_heloc_analysis(inputs)
    except ValidationError as exc:
        raise click.ClickException(str(exc))
    if output:
        write_output(output, "heloc", inputs, analysis)
        return
    print_heloc_summary(analysis)
    if show_schedule:
        echo_truncated(analysis.schedule, print_heloc_schedule)


@cli.command()
@click.option("--home-value", "home_value", required=True, callback=amount_option, help="Home value")
@click.option("--down", "down", default="0", callback=amount_option, help="Down payment amount")
@click.option("--first", "first", required=True, help="First mortgage as AMOUNT:RATE:TERM")
@click.option("--second", "second", help="Second mortgage as AMOUNT:RATE[:TERM[:TYPE]] (HELOC by default)")
@click.option("--component", "component", multiple=True, help="Extra loan as AMOUNT:RATE[:TERM[:TYPE[:DRAW:REPAY]]]")
@click.option("--tax", "tax", default="0", callback=amount_option, help="Monthly property tax")
@click.option("--insurance", "insurance", default="0", callback=amount_option, help="Monthly home insurance")
@click.option("--pmi", "pmi", default="0", callback=amount_option, help="Monthly PMI")
@click.option("--other", "other", default="0", callback=amount_option, help="Other monthly costs")
@click.option("--schedule", "show_schedule", is_flag=True, help="Also print the merged schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def blended(
    home_value: float,
    down: float,
    first: str,
    second: Optional[str],
    component: Tuple[str, ...],
    tax: float,
    insurance: float,
    pmi: float,
    other: float,
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Combine a first mortgage with a second mortgage and extra loans."""
    params = BlendedParams(
        home_value=home_value,
        down_payment=down,
        first_mortgage=parse_component_string(first),
        second_mortgage=(
            parse_component_string(second, default_type=LOAN_TYPE_HELOC)
            if second
            else ComponentInput(type=LOAN_TYPE_HELOC)
        ),
        additional_components=[parse_component_string(c) for c in component],
        additional_costs=AdditionalCosts(property_tax=tax, insurance=insurance, pmi=pmi, other=other),
    )
    try:
        result = calculate_blended_mortgage(params)
    except ValidationError as exc:
        raise click.ClickException(str(exc))
    if output:
        write_output(output, "blended", params, result)
        return
    print_blended_summary(result)
    if show_schedule:
        echo_truncated(result.schedule, print_blended_schedule)


def parse_scenario_opts(opts: str, index: int) -> LoanInput:
    """Turn one quoted ``--scenario`` string into a ``LoanInput``."""
    tokens = shlex.split(opts)
    amounts = {
        "-a": "amount",
        "--amount": "amount",
        "--pmi": "pmi",
        "--tax": "property_tax",
        "--insurance": "home_insurance",
        "--hoa": "hoa",
        "--extra": "extra",
        "--appraised": "appraised_value",
    }
    params: Dict[str, Any] = {
        "amount": None,
        "rate": None,
        "term": 30,
        "letter": chr(ord("A") + index) if index < 26 else str(index + 1),
    }
    i = 0
    try:
        while i < len(tokens):
            token = tokens[i]
            i += 1
            if i >= len(tokens):
                raise click.BadParameter(f"Missing value for {token} in scenario")
            value = tokens[i]
            if token in amounts:
                params[amounts[token]] = parse_amount(value)
            elif token in ("-r", "--rate"):
                params["rate"] = float(value)
            elif token in ("-t", "--term"):
                params["term"] = int(value)
            elif token == "--pmi-end-rule":
                params["pmi_end_rule"] = float(value)
            elif token == "--name":
                params["name"] = value
            else:
                raise click.BadParameter(f"Unknown option in scenario: {token}")
            i += 1
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    for required in ("amount", "rate"):
        if params[required] is None:
            raise click.BadParameter(f"Scenario missing required option {required}")
    return LoanInput(**params)


@cli.command()
@click.option("--scenario", "scenarios", multiple=True, required=True, help="Loan scenario options quoted string")
@click.option(
    "--mode",
    "mode",
    type=click.Choice([m.value for m in EvaluationMode]),
    default=EvaluationMode.TOTAL_OUT_OF_POCKET.value,
    help="Criterion used to pick the best loan",
)
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare(scenarios: Tuple[str, ...], mode: str, output: Optional[str]) -> None:
    """Compare fixed-rate loan scenarios and pick the best one.

    Scenarios are provided as quoted option strings, for example:

        mortgage-calc compare --scenario "-a 300k -r 6.5 -t 30" --scenario "-a 300k -r 6 -t 15"
    """
    loans = [build_fixed_loan_schedule(parse_scenario_opts(s, i)) for i, s in enumerate(scenarios)]
    best = determine_best_loan(loans, EvaluationMode(mode))
    rows = comparison_rows(loans, best)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension")
        export_to_json(path, "compare", {"mode": mode, "scenarios": list(scenarios)}, rows)
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(rows, mode)
        click.echo(f"Best loan: {best.name}")


if __name__ == "__main__":
    cli()
