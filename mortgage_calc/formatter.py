"""Output helpers for the mortgage calculator.

This module renders results and schedules in a plain tabular text format
for the terminal. Only built-in printing and string formatting are used.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .data_models import (
    BlendedResult,
    BlendedScheduleRow,
    FixedLoanResult,
    HelocAnalysis,
    PmiStatusKind,
    RefinanceResult,
    ScheduleRow,
)


def _pmi_text(result: FixedLoanResult) -> str:
    status = result.pmi_meta.status
    if status.kind is PmiStatusKind.NEVER_CHARGED:
        return "not charged"
    if status.kind is PmiStatusKind.NEVER_DROPS:
        return "charged for the whole term"
    return f"drops at payment {status.month}"


def print_loan_summary(result: FixedLoanResult) -> None:
    """Print the cost summary of a fixed-rate loan."""
    totals = result.totals
    print("Summary")
    print("-" * 72)
    print(f"Loan amount        : {totals.principal:.2f}")
    print(f"Monthly P&I        : {result.monthly_pi:.2f}")
    print(f"Monthly payment    : {result.total_monthly_payment:.2f}")
    print(f"Total interest     : {totals.interest_paid:.2f}")
    if totals.pmi_paid:
        print(f"Total PMI          : {totals.pmi_paid:.2f}")
    escrow = totals.tax_paid + totals.insurance_paid + totals.hoa_paid
    if escrow:
        print(f"Tax/insurance/HOA  : {escrow:.2f}")
    print(f"Total P&I cost     : {totals.total_cost_pi:.2f}")
    print(f"Total out of pocket: {totals.total_out_of_pocket:.2f}")
    print(f"Payoff             : {result.payoff_time.years} years {result.payoff_time.months} months")
    print(f"PMI                : {_pmi_text(result)}")
    if result.extra_deltas:
        print(f"Interest saved     : {result.extra_deltas.interest_saved:.2f}")
        if result.extra_deltas.months_saved:
            print(f"Term reduction     : {result.extra_deltas.months_saved} months")
    print("-" * 72)


def print_refinance_summary(result: RefinanceResult) -> None:
    print(f"New loan amount    : {result.loan_amount:.2f}")
    print(f"LTV                : {result.ltv:.2f}%")
    print(f"Cash to close      : {result.cash_to_close:.2f}")
    if result.monthly_pi_change:
        print(f"Monthly P&I change : {result.monthly_pi_change:+.2f}")
    if result.break_even_months is not None:
        print(f"Break-even         : {result.break_even_months} months")
    print_loan_summary(result.schedule)


def print_fixed_schedule(schedule: Iterable[ScheduleRow]) -> None:
    """Print a fixed-loan schedule as a simple table."""
    headers = ["Payment", "Date", "Amount", "Principal", "Interest", "PMI", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.payment_number),
                    row.payment_date.strftime("%Y-%m") if row.payment_date else "-",
                    f"{row.payment:.2f}",
                    f"{row.principal_payment:.2f}",
                    f"{row.interest_payment:.2f}",
                    f"{row.pmi:.2f}",
                    f"{row.balance:.2f}",
                ]
            )
        )


def print_heloc_summary(analysis: HelocAnalysis) -> None:
    """Print HELOC payments, totals, LTV and warnings."""
    print("HELOC summary")
    print("-" * 72)
    print(f"Interest-only payment : {analysis.payments.interest_only_payment:.2f}")
    print(f"Repayment P&I payment : {analysis.payments.principal_interest_payment:.2f}")
    print(f"Repayment months      : {analysis.repayment_months}")
    print(f"Draw-phase interest   : {analysis.totals.total_interest_draw_phase:.2f}")
    print(f"Repay-phase interest  : {analysis.totals.total_interest_repay_phase:.2f}")
    print(f"Total interest        : {analysis.totals.total_interest:.2f}")
    print(f"Available equity      : {analysis.ltv.available_equity:.2f}")
    print(f"Combined LTV          : {analysis.ltv.combined_ltv:.2f}%")
    if analysis.payoff_date:
        print(f"Payoff date           : {analysis.payoff_date.strftime('%Y-%m')}")
    for warning in analysis.warnings:
        print(f"Warning: {warning}")
    print("-" * 72)


def print_heloc_schedule(schedule: Iterable[ScheduleRow]) -> None:
    headers = ["Payment", "Date", "Phase", "Amount", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.payment_number),
                    row.payment_date.strftime("%Y-%m") if row.payment_date else "-",
                    row.phase or "",
                    f"{row.payment:.2f}",
                    f"{row.principal_payment:.2f}",
                    f"{row.interest_payment:.2f}",
                    f"{row.balance:.2f}",
                ]
            )
        )


def print_blended_summary(result: BlendedResult) -> None:
    """Print the components and combined metrics of a blended mortgage."""
    combined = result.combined
    print("Blended mortgage")
    print("=" * 72)
    print(f"{'Component':20s} {'Amount':>12s} {'Rate':>7s} {'Monthly':>12s} {'Interest':>14s}")
    components = [("First mortgage", result.first_mortgage), ("Second mortgage", result.second_mortgage)]
    components += [(f"Additional {i + 1}", c) for i, c in enumerate(result.additional_components)]
    for label, component in components:
        if not component.amount:
            continue
        print(
            f"{label:20s} {component.amount:12.2f} {component.rate:6.3f}% "
            f"{component.monthly_payment:12.2f} {component.total_interest:14.2f}"
        )
    print("-" * 72)
    print(f"Combined P&I       : {combined.total_principal_interest:.2f}")
    print(f"Other monthly costs: {result.additional_costs.total:.2f}")
    print(f"Monthly payment    : {combined.total_monthly_payment:.2f}")
    print(f"Blended rate       : {combined.effective_blended_rate:.3f}%")
    print(f"Combined LTV       : {result.ltv.combined_ltv:.2f}%")
    print(f"Traditional 30y P&I: {combined.comparison.traditional_monthly_payment:.2f}")
    print(f"Monthly difference : {combined.comparison.monthly_savings:.2f}")
    print("Assumptions:")
    for assumption in result.assumptions:
        print(f"  {assumption.key}: {assumption.value}")
    print("=" * 72)


def print_blended_schedule(schedule: Iterable[BlendedScheduleRow]) -> None:
    headers = ["Payment", "Principal", "Interest", "Amount", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.payment_number),
                    f"{row.total_principal:.2f}",
                    f"{row.total_interest:.2f}",
                    f"{row.total_payment:.2f}",
                    f"{row.total_remaining_balance:.2f}",
                ]
            )
        )


def print_comparison(rows: List[Dict[str, Any]], mode: str) -> None:
    """Print compared loans side by side, marking the winner for ``mode``."""
    print(f"Comparison ({mode})")
    print("=" * 72)
    print(f"{'Loan':12s} {'Monthly':>11s} {'Interest':>13s} {'Out of pocket':>14s} {'Months':>7s}")
    for row in rows:
        marker = " *" if row["best"] else ""
        print(
            f"{row['name']:12s} {row['monthly_payment']:11.2f} {row['total_interest']:13.2f} "
            f"{row['total_out_of_pocket']:14.2f} {row['payoff_months']:7d}{marker}"
        )
    print("=" * 72)
