"""Blended mortgage calculator.

Combines a first mortgage, an optional second mortgage (HELOC, fixed or
variable) and any number of additional components into one set of
metrics and one merged amortization schedule.

Everything here is a plain function: ``calculate_blended_mortgage`` takes a
``BlendedParams`` and returns a fresh ``BlendedResult`` every call.

A second-mortgage HELOC is always modeled as a 10 year interest-only draw
followed by a 20 year repayment, whatever its stated term. Additional
HELOC components honor their own ``draw_months``/``repay_months`` and only
fall back to those defaults when they are not given. The asymmetry is
disclosed through the ``helocPhaseDefaults`` assumption.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .amortization import PAYOFF_TOLERANCE, RESIDUAL_FOLD_LIMIT, compute_fixed_amortization
from .data_models import (
    LOAN_TYPE_FIXED,
    LOAN_TYPE_HELOC,
    LOAN_TYPE_VARIABLE,
    AdditionalCosts,
    AmortizationRow,
    Assumption,
    BlendedFlags,
    BlendedLtv,
    BlendedParams,
    BlendedResult,
    BlendedSchedule,
    BlendedScheduleRow,
    CombinedMetrics,
    ComponentInput,
    ComponentResult,
    ComponentSlice,
    PayoffTime,
    TraditionalComparison,
)
from .errors import ValidationError
from .utils import annuity_payment, is_zero_rate, monthly_rate

logger = logging.getLogger(__name__)

DEFAULT_HELOC_DRAW_MONTHS = 120
DEFAULT_HELOC_REPAY_MONTHS = 240
DEFAULT_COMPONENT_TERM_YEARS = 15
TRADITIONAL_RATE = 7.0
TRADITIONAL_TERM_YEARS = 30
ASSUMED_DTI = 0.28
MAX_COMBINED_LTV = 95.0
MAX_REASONABLE_RATE = 50.0
FINANCING_TOLERANCE = 1.05


def validate_blended_inputs(params: BlendedParams) -> List[str]:
    """Return every validation problem found in ``params`` (empty when valid)."""
    errors: List[str] = []
    home_value = params.home_value or 0.0
    down_payment = params.down_payment or 0.0
    first = params.first_mortgage
    second = params.second_mortgage

    if home_value <= 0:
        errors.append("Home value must be greater than 0")
    if down_payment < 0:
        errors.append("Down payment cannot be negative")
    if down_payment >= home_value:
        errors.append("Down payment must be less than home value")

    if not first.amount or first.amount <= 0:
        errors.append("First mortgage amount must be greater than 0")
    if first.rate is None or first.rate < 0:
        errors.append("First mortgage interest rate must be >= 0")
    if first.rate is not None and first.rate > MAX_REASONABLE_RATE:
        errors.append("First mortgage interest rate seems unusually high")
    if not first.term or first.term <= 0:
        errors.append("First mortgage term must be greater than 0")

    if second is not None and second.amount and second.amount > 0:
        if second.rate is None or second.rate < 0:
            errors.append("Second mortgage interest rate must be >= 0")
        if second.rate is not None and second.rate > MAX_REASONABLE_RATE:
            errors.append("Second mortgage interest rate seems unusually high")

        total_loan_amount = (first.amount or 0.0) + second.amount
        if total_loan_amount + down_payment > home_value * FINANCING_TOLERANCE:
            errors.append("Total financing exceeds home value")
        if home_value > 0 and total_loan_amount / home_value * 100 > MAX_COMBINED_LTV:
            errors.append("Combined loan-to-value ratio exceeds 95%")

    return errors


def _empty_component(component: ComponentInput, default_type: str) -> ComponentResult:
    return ComponentResult(
        amount=0.0,
        rate=component.rate or 0.0,
        type=component.type or default_type,
        term=component.term,
        monthly_payment=0.0,
        total_interest=0.0,
        total_paid=0.0,
        payoff_time=PayoffTime.from_months(0),
    )


def _amortizing_component(component: ComponentInput, term_years: int, loan_type: str) -> ComponentResult:
    rate = component.rate or 0.0
    rate_per_month = monthly_rate(rate)
    number_of_payments = term_years * 12
    payment = annuity_payment(component.amount, rate_per_month, number_of_payments)
    if is_zero_rate(rate_per_month):
        total_paid = component.amount
        total_interest = 0.0
    else:
        total_paid = payment * number_of_payments
        total_interest = total_paid - component.amount
    return ComponentResult(
        amount=component.amount,
        rate=rate,
        type=loan_type,
        term=term_years,
        monthly_payment=payment,
        total_interest=total_interest,
        total_paid=total_paid,
        payoff_time=PayoffTime.from_months(number_of_payments),
    )


def _heloc_component(
    component: ComponentInput,
    draw_months: int,
    repay_months: int,
    zero_rate_payment: Optional[float] = None,
) -> ComponentResult:
    """Two-phase HELOC; the reported monthly payment is the draw-phase one."""
    rate = component.rate or 0.0
    rate_per_month = monthly_rate(rate)
    amount = component.amount
    if is_zero_rate(rate_per_month):
        payment = amount / repay_months if zero_rate_payment is None else zero_rate_payment
        total_interest = 0.0
    else:
        payment = amount * rate_per_month
        repay_payment = annuity_payment(amount, rate_per_month, repay_months)
        total_interest = payment * draw_months + (repay_payment * repay_months - amount)
    return ComponentResult(
        amount=amount,
        rate=rate,
        type=LOAN_TYPE_HELOC,
        term=component.term,
        monthly_payment=payment,
        total_interest=total_interest,
        total_paid=amount + total_interest,
        payoff_time=PayoffTime.from_months(draw_months + repay_months),
        draw_months=draw_months,
        repay_months=repay_months,
    )


def calculate_mortgage_component(component: ComponentInput) -> ComponentResult:
    """First mortgage: always a fixed-rate amortizing loan."""
    if not component.amount or component.amount <= 0:
        return _empty_component(component, LOAN_TYPE_FIXED)
    return _amortizing_component(component, int(component.term), LOAN_TYPE_FIXED)


def calculate_second_component(component: ComponentInput) -> ComponentResult:
    """Second mortgage.

    A HELOC ignores any requested phase lengths and uses the 120/240 month
    defaults; a zero-rate HELOC reports no draw-phase payment. Variable
    loans are estimated at their current rate.
    """
    loan_type = component.type or LOAN_TYPE_HELOC
    if not component.amount or component.amount <= 0:
        return _empty_component(component, LOAN_TYPE_HELOC)
    if loan_type == LOAN_TYPE_HELOC:
        return _heloc_component(
            component,
            DEFAULT_HELOC_DRAW_MONTHS,
            DEFAULT_HELOC_REPAY_MONTHS,
            zero_rate_payment=0.0,
        )
    if loan_type in (LOAN_TYPE_FIXED, LOAN_TYPE_VARIABLE):
        return _amortizing_component(component, int(component.term or DEFAULT_COMPONENT_TERM_YEARS), loan_type)
    raise ValidationError(f"Unknown second mortgage type: {loan_type}")


def calculate_additional_component(component: ComponentInput) -> ComponentResult:
    """Third and later components; anything other than a HELOC amortizes as fixed."""
    if not component.amount or component.amount <= 0:
        return _empty_component(component, LOAN_TYPE_FIXED)
    if component.type == LOAN_TYPE_HELOC:
        return _heloc_component(
            component,
            component.draw_months or DEFAULT_HELOC_DRAW_MONTHS,
            component.repay_months or DEFAULT_HELOC_REPAY_MONTHS,
        )
    term = int(component.term or DEFAULT_COMPONENT_TERM_YEARS)
    return _amortizing_component(component, term, component.type or LOAN_TYPE_FIXED)


def build_assumptions(components: Iterable[ComponentResult]) -> List[Assumption]:
    """Disclosure list shown next to blended results."""
    helocs = [c for c in components if c.type == LOAN_TYPE_HELOC]
    if helocs:
        signatures: List[str] = []
        for component in helocs:
            signature = "{}/{}".format(
                component.draw_months or DEFAULT_HELOC_DRAW_MONTHS,
                component.repay_months or DEFAULT_HELOC_REPAY_MONTHS,
            )
            if signature not in signatures:
                signatures.append(signature)
        heloc_value = ",".join(signatures)
    else:
        heloc_value = f"{DEFAULT_HELOC_DRAW_MONTHS}/{DEFAULT_HELOC_REPAY_MONTHS}"

    return [
        Assumption(
            key="helocPhaseDefaults",
            value=heloc_value,
            phase="draw+repay",
            rationale=(
                "HELOC modeled as interest-only draw then amortizing repay "
                f"(defaults {DEFAULT_HELOC_DRAW_MONTHS}/{DEFAULT_HELOC_REPAY_MONTHS} when unspecified)."
            ),
        ),
        Assumption(
            key="effectiveRateMethod",
            value="principalWeightedAverageNominal",
            phase="metrics",
            rationale="Blended rate is the principal-weighted average of nominal rates.",
        ),
        Assumption(
            key="zeroRateHandling",
            value="linearAmortizationWhenRateIsZero",
            phase="amortization",
            rationale="Principal is repaid evenly over the term when the rate is zero.",
        ),
        Assumption(
            key="roundingNormalization",
            value="absorbResidualUnder5IntoFinalPayment",
            phase="schedule",
            rationale="Terminal balance is forced to zero without material payment distortion.",
        ),
    ]


def calculate_combined_metrics(
    first: ComponentResult,
    second: ComponentResult,
    additional: List[ComponentResult],
    costs: AdditionalCosts,
) -> CombinedMetrics:
    components = [first, second] + list(additional)
    total_principal_interest = sum(c.monthly_payment for c in components)
    total_monthly_payment = total_principal_interest + costs.total
    total_principal = sum(c.amount for c in components)
    weighted_rate = (
        sum(c.amount * c.rate for c in components) / total_principal if total_principal > 0 else 0.0
    )

    # income is backed out of the payment at an assumed 28% ratio
    if total_monthly_payment > 0:
        estimated_income = total_monthly_payment / ASSUMED_DTI
        debt_to_income = total_monthly_payment / estimated_income * 100
    else:
        debt_to_income = 0.0

    traditional_payment = annuity_payment(
        total_principal, monthly_rate(TRADITIONAL_RATE), TRADITIONAL_TERM_YEARS * 12
    )
    monthly_savings = traditional_payment - total_principal_interest

    return CombinedMetrics(
        total_monthly_payment=total_monthly_payment,
        total_principal_interest=total_principal_interest,
        total_interest=sum(c.total_interest for c in components),
        total_principal=total_principal,
        total_amount_financed=total_principal,
        total_paid=sum(c.total_paid for c in components),
        effective_blended_rate=weighted_rate,
        debt_to_income_ratio=debt_to_income,
        comparison=TraditionalComparison(
            traditional_monthly_payment=traditional_payment,
            monthly_savings=monthly_savings,
            annual_savings=monthly_savings * 12,
        ),
    )


def calculate_ltv_metrics(
    home_value: float,
    first_amount: float,
    second_amount: float,
    additional_amounts: Iterable[float] = (),
) -> BlendedLtv:
    total_loan_amount = (first_amount or 0.0) + (second_amount or 0.0) + sum(additional_amounts)
    if home_value <= 0:
        return BlendedLtv(
            first_mortgage_ltv=0.0,
            combined_ltv=0.0,
            available_equity=0.0,
            home_value=home_value,
            total_loan_amount=total_loan_amount,
        )
    return BlendedLtv(
        first_mortgage_ltv=(first_amount or 0.0) / home_value * 100,
        combined_ltv=total_loan_amount / home_value * 100,
        available_equity=home_value - total_loan_amount,
        home_value=home_value,
        total_loan_amount=total_loan_amount,
    )


def _heloc_component_schedule(component: ComponentResult) -> tuple:
    """Inline two-phase amortizer used for HELOC components.

    Returns ``(rows, normalized)``.
    """
    amount = component.amount
    draw_months = component.draw_months or DEFAULT_HELOC_DRAW_MONTHS
    repay_months = component.repay_months or DEFAULT_HELOC_REPAY_MONTHS
    rate_per_month = monthly_rate(component.rate)
    zero_rate = is_zero_rate(rate_per_month)
    interest_only = 0.0 if zero_rate else amount * rate_per_month

    rows: List[AmortizationRow] = [
        AmortizationRow(
            payment_number=number,
            principal_payment=0.0,
            interest_payment=interest_only,
            remaining_balance=amount,
        )
        for number in range(1, draw_months + 1)
    ]

    payment = annuity_payment(amount, rate_per_month, repay_months)
    remaining = amount
    for step in range(1, repay_months + 1):
        interest = 0.0 if zero_rate else remaining * rate_per_month
        principal = payment if zero_rate else payment - interest
        if principal > remaining:
            principal = remaining
        remaining -= principal
        rows.append(
            AmortizationRow(
                payment_number=draw_months + step,
                principal_payment=principal,
                interest_payment=interest,
                remaining_balance=max(0.0, remaining),
            )
        )
        if remaining <= PAYOFF_TOLERANCE:
            break

    normalized = False
    if repay_months > 0 and PAYOFF_TOLERANCE < remaining < RESIDUAL_FOLD_LIMIT:
        rows[-1].principal_payment += remaining
        rows[-1].remaining_balance = 0.0
        normalized = True
    elif repay_months > 0 and 0 < remaining <= PAYOFF_TOLERANCE:
        rows[-1].remaining_balance = 0.0
        normalized = True
    return rows, normalized


def _component_schedule(component: ComponentResult) -> tuple:
    if not component.amount or component.amount <= 0:
        return [], False
    if component.type == LOAN_TYPE_HELOC:
        return _heloc_component_schedule(component)
    result = compute_fixed_amortization(
        component.amount,
        component.rate,
        int(component.term or DEFAULT_COMPONENT_TERM_YEARS) * 12,
        payment=component.monthly_payment,
    )
    return result.schedule, result.flags.normalization_applied


def _slice(rows: List[AmortizationRow], i: int, index: Optional[int] = None) -> ComponentSlice:
    if i < len(rows):
        row = rows[i]
        return ComponentSlice(
            principal=row.principal_payment,
            interest=row.interest_payment,
            balance=row.remaining_balance,
            index=index,
        )
    return ComponentSlice(principal=0.0, interest=0.0, balance=0.0, index=index)


def _refresh_totals(row: BlendedScheduleRow) -> None:
    slices = [row.first_mortgage, row.second_mortgage] + row.additional_components
    row.total_principal = sum(s.principal for s in slices)
    row.total_interest = sum(s.interest for s in slices)
    row.total_payment = row.total_principal + row.total_interest
    row.total_remaining_balance = sum(s.balance for s in slices)


def generate_blended_amortization_schedule(
    first: ComponentResult,
    second: ComponentResult,
    additional: Optional[List[ComponentResult]] = None,
) -> BlendedSchedule:
    """Merge the component schedules into one row per month.

    A component whose own schedule has ended contributes zeros. A small
    positive balance left on the final merged row is folded into the first
    component that still carries one (first mortgage, then second, then
    the additional components in order) so the schedule ends at zero.
    """
    additional = additional or []
    first_rows, first_norm = _component_schedule(first)
    second_rows, second_norm = _component_schedule(second)
    additional_schedules = [_component_schedule(c) for c in additional]
    normalization_applied = first_norm or second_norm or any(norm for _, norm in additional_schedules)

    length = max([len(first_rows), len(second_rows)] + [len(rows) for rows, _ in additional_schedules])
    rows: List[BlendedScheduleRow] = []
    for i in range(length):
        row = BlendedScheduleRow(
            payment_number=i + 1,
            first_mortgage=_slice(first_rows, i),
            second_mortgage=_slice(second_rows, i),
            additional_components=[_slice(sched, i, idx) for idx, (sched, _) in enumerate(additional_schedules)],
            total_principal=0.0,
            total_interest=0.0,
            total_payment=0.0,
            total_remaining_balance=0.0,
        )
        _refresh_totals(row)
        rows.append(row)

    if rows:
        last = rows[-1]
        residual = last.total_remaining_balance
        if PAYOFF_TOLERANCE < residual < RESIDUAL_FOLD_LIMIT:
            candidates = [last.first_mortgage, last.second_mortgage] + last.additional_components
            target = next((s for s in candidates if s.balance > 0), None)
            if target is not None:
                target.principal += residual
            for s in candidates:
                s.balance = 0.0
            _refresh_totals(last)
            normalization_applied = True
            logger.info("Folded blended residual %.2f into final payment", residual)
        elif 0 < residual <= PAYOFF_TOLERANCE:
            for s in [last.first_mortgage, last.second_mortgage] + last.additional_components:
                s.balance = 0.0
            last.total_remaining_balance = 0.0
            normalization_applied = True

    return BlendedSchedule(rows=rows, normalization_applied=normalization_applied)


def calculate_blended_mortgage(params: BlendedParams) -> BlendedResult:
    """Calculate a blended mortgage.

    Raises
    ------
    ValidationError
        With every problem found, joined by ``", "``.
    """
    errors = validate_blended_inputs(params)
    if errors:
        logger.warning("Blended mortgage validation failed: %s", errors)
        raise ValidationError(", ".join(errors))

    second_input = params.second_mortgage or ComponentInput(type=LOAN_TYPE_HELOC)
    first = calculate_mortgage_component(params.first_mortgage)
    second = calculate_second_component(second_input)
    additional = [calculate_additional_component(c) for c in params.additional_components]
    components = [first, second] + additional

    combined = calculate_combined_metrics(first, second, additional, params.additional_costs)
    ltv = calculate_ltv_metrics(
        params.home_value,
        params.first_mortgage.amount,
        second_input.amount,
        [c.amount or 0.0 for c in params.additional_components],
    )
    schedule = generate_blended_amortization_schedule(first, second, additional)

    flags = BlendedFlags(
        schedule_includes_additional=any(c.amount > 0 for c in additional),
        normalization_applied=schedule.normalization_applied,
        zero_rate_handled=any(c.amount > 0 and is_zero_rate(monthly_rate(c.rate)) for c in components),
    )

    logger.debug(
        "Blended mortgage: %d components, %.2f financed, %d schedule rows",
        sum(1 for c in components if c.amount > 0),
        combined.total_principal,
        len(schedule.rows),
    )

    return BlendedResult(
        home_value=params.home_value,
        down_payment=params.down_payment,
        first_mortgage=first,
        second_mortgage=second,
        additional_components=additional,
        additional_costs=params.additional_costs,
        combined=combined,
        ltv=ltv,
        assumptions=build_assumptions(components),
        flags=flags,
        schedule=schedule.rows,
        calculated_at=datetime.now(timezone.utc).isoformat(),
    )
