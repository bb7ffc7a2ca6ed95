"""Core schedule builders for the mortgage calculator.

Two independent engines live here:

* ``build_fixed_loan_schedule`` amortizes a fixed-rate "house style" loan
  with escrow, PMI that drops once the LTV crosses a threshold, optional
  extra monthly principal and a no-extra baseline run used to report the
  interest and months the extra payments save.
* ``build_heloc_two_phase_schedule`` produces an interest-only draw phase
  followed by an amortizing repayment phase.

Rounding on the fixed path: each month the interest and principal portions
are rounded to cents, then any difference between their sum and the
rounded scheduled payment is pushed into principal so the payment is exact
to the cent. Independently, whatever balance is left when the term runs
out (normally a few cents, always under five dollars for ordinary terms) is
folded into the last row so the schedule ends at exactly zero. The two
mechanisms overlap; the first keeps each row honest, the second covers the
residue the term boundary leaves behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from .data_models import (
    PHASE_INTEREST_ONLY,
    PHASE_PRINCIPAL_INTEREST,
    Baseline,
    Calculations,
    ExtraDeltas,
    FixedLoanResult,
    HelocSchedule,
    LoanInput,
    LoanTotals,
    PayoffTime,
    PmiMeta,
    PmiStatus,
    ScheduleRow,
)
from .utils import add_months, annuity_payment, is_zero_rate, monthly_rate, next_month_start, round_currency

logger = logging.getLogger(__name__)

DEFAULT_PMI_END_RULE = 80.0
PAYOFF_TOLERANCE = 0.01
RESIDUAL_FOLD_LIMIT = 5.0
HALF_CENT = 0.005
# clamps smaller than this are float noise, not a real adjustment
CLAMP_EPSILON = 1e-9


@dataclass
class _LoopOutcome:
    months: int = 0
    total_interest: float = 0.0
    pmi_total_paid: float = 0.0
    tax_total_paid: float = 0.0
    insurance_total_paid: float = 0.0
    hoa_total_paid: float = 0.0
    pmi_ends_month: Optional[int] = None
    normalization_applied: bool = False
    rows: List[ScheduleRow] = field(default_factory=list)


def _amortize_fixed(
    amount: float,
    rate_per_month: float,
    number_of_payments: int,
    monthly_pi: float,
    extra: float,
    pmi: float,
    pmi_applies: bool,
    appraised_value: float,
    threshold_ltv: float,
    property_tax: float = 0.0,
    home_insurance: float = 0.0,
    hoa: float = 0.0,
    start_date: Optional[date] = None,
) -> _LoopOutcome:
    """Run the month-by-month loop shared by the real and the baseline run."""
    outcome = _LoopOutcome()
    zero_rate = is_zero_rate(rate_per_month)
    scheduled_pi = round_currency(monthly_pi)
    balance = amount
    month = 0
    pmi_active = pmi_applies

    while balance > PAYOFF_TOLERANCE and month < number_of_payments:
        month += 1
        interest = 0.0 if zero_rate else balance * rate_per_month
        principal = monthly_pi if zero_rate else monthly_pi - interest
        interest = round_currency(interest)
        principal = round_currency(principal)
        if not zero_rate:
            delta = round_currency(scheduled_pi - round_currency(interest + principal))
            if abs(delta) >= 0.01:
                principal = round_currency(principal + delta)

        pmi_charge = 0.0
        if pmi_active:
            if balance / appraised_value > threshold_ltv:
                pmi_charge = pmi
            else:
                pmi_active = False
                outcome.pmi_ends_month = month

        outcome.pmi_total_paid += pmi_charge
        outcome.tax_total_paid += property_tax
        outcome.insurance_total_paid += home_insurance
        outcome.hoa_total_paid += hoa
        outcome.total_interest += interest

        reduction = principal + extra
        final_month = reduction > balance
        if final_month:
            scheduled_part = min(principal, balance)
            extra_part = balance - scheduled_part
            reduction = balance
        else:
            scheduled_part = principal
            extra_part = extra
        balance = 0.0 if final_month else round_currency(balance - reduction)

        outcome.rows.append(
            ScheduleRow(
                payment_number=month,
                payment_date=add_months(start_date, month - 1) if start_date else None,
                payment=round_currency(interest + reduction),
                principal_payment=round_currency(reduction),
                interest_payment=interest,
                balance=balance,
                pmi=pmi_charge,
                extra_payment=round_currency(extra_part),
            )
        )
        if final_month:
            break

    if outcome.rows and balance > 0:
        if balance >= RESIDUAL_FOLD_LIMIT:
            # cent rounding drift compounds on long high-rate terms
            logger.warning("Folding unusually large residual %.2f into final payment", balance)
        last = outcome.rows[-1]
        last.principal_payment = round_currency(last.principal_payment + balance)
        last.payment = round_currency(last.payment + balance)
        last.balance = 0.0
        outcome.normalization_applied = True

    outcome.months = month
    outcome.total_interest = round_currency(outcome.total_interest)
    outcome.pmi_total_paid = round_currency(outcome.pmi_total_paid)
    return outcome


def build_fixed_loan_schedule(loan: LoanInput) -> FixedLoanResult:
    """Build the full schedule and cost summary for a fixed-rate loan.

    PMI applies only when a positive PMI charge, a positive appraised value
    and a starting LTV above ``pmi_end_rule`` percent are all present. It is
    charged each month until the start-of-month LTV is at or below the
    threshold; that month is reported as the first PMI-free month.

    Invalid amounts or terms never raise: they produce a zeroed result so a
    half-filled form can still render.
    """
    amount = max(0.0, float(loan.amount or 0.0))
    term_years = max(0, int(loan.term or 0))
    rate_per_month = monthly_rate(loan.rate)
    number_of_payments = term_years * 12
    zero_rate = is_zero_rate(rate_per_month)

    monthly_pi = annuity_payment(amount, rate_per_month, number_of_payments)

    pmi = loan.fixed_monthly_pmi if loan.fixed_monthly_pmi is not None else (loan.pmi or 0.0)
    pmi_end_rule = loan.pmi_end_rule or DEFAULT_PMI_END_RULE
    threshold_ltv = pmi_end_rule / 100
    appraised_value = loan.appraised_value or 0.0
    has_appraisal = appraised_value > 0
    starting_ltv = amount / appraised_value if has_appraisal else None
    pmi_applies = pmi > 0 and has_appraisal and amount > 0 and starting_ltv > threshold_ltv

    extra = max(0.0, loan.extra or 0.0)
    property_tax = loan.property_tax or 0.0
    home_insurance = loan.home_insurance or 0.0
    hoa = loan.hoa or 0.0

    outcome = _amortize_fixed(
        amount,
        rate_per_month,
        number_of_payments,
        monthly_pi,
        extra,
        pmi,
        pmi_applies,
        appraised_value,
        threshold_ltv,
        property_tax,
        home_insurance,
        hoa,
        loan.start_date,
    )

    if not pmi_applies:
        status = PmiStatus.never_charged()
        outcome.pmi_total_paid = 0.0
    elif outcome.pmi_ends_month is None:
        status = PmiStatus.never_drops()
    else:
        status = PmiStatus.drops_at(outcome.pmi_ends_month)

    baseline = None
    extra_deltas = None
    if extra > 0:
        shadow = _amortize_fixed(
            amount,
            rate_per_month,
            number_of_payments,
            monthly_pi,
            0.0,
            pmi,
            pmi_applies,
            appraised_value,
            threshold_ltv,
        )
        baseline = Baseline(interest_paid=shadow.total_interest, payoff_months=shadow.months)
        extra_deltas = ExtraDeltas(
            interest_saved=max(0.0, round_currency(shadow.total_interest - outcome.total_interest)),
            months_saved=max(0, shadow.months - outcome.months),
        )

    total_interest = 0.0 if zero_rate else outcome.total_interest
    total_cost_pi = amount + total_interest
    tax_paid = round_currency(outcome.tax_total_paid)
    insurance_paid = round_currency(outcome.insurance_total_paid)
    hoa_paid = round_currency(outcome.hoa_total_paid)
    total_out_of_pocket = total_cost_pi + outcome.pmi_total_paid + tax_paid + insurance_paid + hoa_paid

    base_monthly = monthly_pi + property_tax + home_insurance + hoa
    logger.debug(
        "Fixed loan %.2f at %.3f%% over %d months paid off in %d months (PMI %s)",
        amount,
        loan.rate or 0.0,
        number_of_payments,
        outcome.months,
        status.kind.value,
    )

    return FixedLoanResult(
        loan=loan,
        monthly_pi=monthly_pi,
        monthly_property_tax=property_tax,
        monthly_insurance=home_insurance,
        monthly_hoa=hoa,
        monthly_pmi_input=pmi,
        total_monthly_payment=base_monthly + (pmi if pmi_applies else 0.0),
        base_monthly_payment_no_pmi=base_monthly,
        total_interest=total_interest,
        total_cost=total_cost_pi,
        totals=LoanTotals(
            principal=amount,
            interest_paid=total_interest,
            pmi_paid=outcome.pmi_total_paid,
            tax_paid=tax_paid,
            insurance_paid=insurance_paid,
            hoa_paid=hoa_paid,
            total_out_of_pocket=total_out_of_pocket,
            total_cost_pi=total_cost_pi,
            total_cost_full=total_out_of_pocket,
        ),
        payoff_time=PayoffTime.from_months(outcome.months),
        baseline=baseline,
        extra_deltas=extra_deltas,
        calculations=Calculations(
            monthly_rate=rate_per_month,
            number_of_payments=number_of_payments,
            original_term=number_of_payments,
            pmi_threshold_ltv=threshold_ltv,
            starting_ltv=starting_ltv,
        ),
        pmi_meta=PmiMeta(
            pmi_monthly_input=pmi,
            status=status,
            pmi_total_paid=outcome.pmi_total_paid,
            threshold_ltv=threshold_ltv,
        ),
        schedule=outcome.rows,
        normalization_applied=outcome.normalization_applied,
    )


def build_heloc_two_phase_schedule(
    principal: float,
    annual_rate: float,
    draw_years: float,
    total_years: float,
    *,
    repayment_months_override: Optional[int] = None,
    start_date: Optional[date] = None,
    accumulate: bool = False,
) -> HelocSchedule:
    """Build an interest-only then amortizing schedule for a HELOC.

    The draw phase lasts ``draw_years * 12`` months with the full line
    outstanding. The repayment phase lasts ``repayment_months_override``
    months when given, else ``(total_years - draw_years) * 12``, and ends
    early once the balance reaches zero.

    Whenever a month's principal would overshoot the remaining balance, or
    leaves less than half a cent behind, the principal is clamped to the
    balance. ``balance_clamped`` is set on the returned schedule only when
    a clamp moved more than ``CLAMP_EPSILON``; float dust is folded silently.

    Rows are dated one calendar month apart starting at ``start_date``, or
    at the first day of next month when no anchor is supplied.
    """
    principal = max(0.0, float(principal or 0.0))
    rate_per_month = monthly_rate(annual_rate)
    zero_rate = is_zero_rate(rate_per_month)
    draw_months = max(0, int(round(draw_years * 12)))
    if repayment_months_override is not None:
        repayment_months = max(0, int(repayment_months_override))
    else:
        repayment_months = max(0, int(round((total_years - draw_years) * 12)))
    anchor = start_date or next_month_start()

    rows: List[ScheduleRow] = []
    cumulative_principal = 0.0
    cumulative_interest = 0.0
    balance = principal

    interest_only = 0.0 if zero_rate else principal * rate_per_month
    for month in range(1, draw_months + 1):
        cumulative_interest += interest_only
        rows.append(
            ScheduleRow(
                payment_number=month,
                payment_date=add_months(anchor, month - 1),
                payment=interest_only,
                principal_payment=0.0,
                interest_payment=interest_only,
                balance=balance,
                cumulative_principal=cumulative_principal if accumulate else None,
                cumulative_interest=cumulative_interest if accumulate else None,
                phase=PHASE_INTEREST_ONLY,
            )
        )

    amortizing_payment = annuity_payment(principal, rate_per_month, repayment_months)
    balance_clamped = False
    for step in range(1, repayment_months + 1):
        if balance <= 0:
            break
        interest = 0.0 if zero_rate else balance * rate_per_month
        principal_part = amortizing_payment if zero_rate else amortizing_payment - interest
        if principal_part > balance:
            if principal_part - balance > CLAMP_EPSILON:
                balance_clamped = True
            principal_part = balance
        balance -= principal_part
        if 0 < balance < HALF_CENT:
            if balance >= CLAMP_EPSILON:
                balance_clamped = True
            principal_part += balance
            balance = 0.0
        cumulative_principal += principal_part
        cumulative_interest += interest
        month = draw_months + step
        rows.append(
            ScheduleRow(
                payment_number=month,
                payment_date=add_months(anchor, month - 1),
                payment=interest + principal_part,
                principal_payment=principal_part,
                interest_payment=interest,
                balance=max(0.0, balance),
                cumulative_principal=cumulative_principal if accumulate else None,
                cumulative_interest=cumulative_interest if accumulate else None,
                phase=PHASE_PRINCIPAL_INTEREST,
            )
        )

    return HelocSchedule(rows=rows, repayment_months=repayment_months, balance_clamped=balance_clamped)
