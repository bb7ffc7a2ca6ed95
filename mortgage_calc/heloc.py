"""HELOC analysis.

Pure routines for the two-phase (interest-only, then principal and
interest) home equity line of credit model. ``compute_heloc_analysis``
returns a structured ``HelocAnalysis`` with explicit edge flags and an
ordered list of human readable warnings so the CLI, the web API and the
exporters can all show the same thing.
"""

from __future__ import annotations

import logging
from typing import List

from .data_models import (
    PHASE_INTEREST_ONLY,
    PHASE_PRINCIPAL_INTEREST,
    HelocAnalysis,
    HelocEdgeFlags,
    HelocInput,
    HelocLtv,
    HelocPayments,
    HelocTotals,
    RepaymentPlan,
)
from .engine import build_heloc_two_phase_schedule
from .errors import ValidationError
from .utils import annuity_payment, is_zero_rate, monthly_rate

logger = logging.getLogger(__name__)

HIGH_LTV_THRESHOLD = 90.0
MAX_LTV_THRESHOLD = 100.0
MINIMUM_REPAYMENT_MONTHS = 12

REPAYMENT_EXTENDED_MESSAGE = "Repayment period equaled draw period; auto-extended by 1 year (12 months)."
REPAYMENT_TOO_SHORT_MESSAGE = "Repayment period must be greater than interest-only period."
HIGH_LTV_WARNING = "High combined loan-to-value ratio may affect approval."
MAX_LTV_WARNING = "Combined loan-to-value ratio exceeds permissible limit."
ZERO_INTEREST_WARNING = "Zero interest rate: repayment will be linear principal amortization."
REPAYMENT_ADJUSTED_WARNING = "Repayment period auto-adjusted to ensure amortization occurs."
ROUNDING_WARNING = "Final fractional cent principal folded into prior payment."


def compute_repayment_months(total_years: float, draw_years: float) -> RepaymentPlan:
    """Return the length of the amortizing phase.

    When the total term equals the draw period there would be nothing left
    to amortize over, so one year of repayment is added. A total term
    shorter than the draw period is rejected.

    Raises
    ------
    ValidationError
        If ``total_years`` is less than ``draw_years``.
    """
    repayment_months = int(round((total_years - draw_years) * 12))
    if repayment_months <= 0:
        if total_years == draw_years:
            logger.info("HELOC repayment period auto-extended to %d months", MINIMUM_REPAYMENT_MONTHS)
            return RepaymentPlan(
                repayment_months=MINIMUM_REPAYMENT_MONTHS,
                adjusted=True,
                message=REPAYMENT_EXTENDED_MESSAGE,
            )
        logger.warning("Rejected HELOC term: total %s years, draw %s years", total_years, draw_years)
        raise ValidationError(REPAYMENT_TOO_SHORT_MESSAGE)
    return RepaymentPlan(repayment_months=repayment_months, adjusted=False)


def derive_warnings(edge_flags: HelocEdgeFlags, combined_ltv: float) -> List[str]:
    """Ordered warnings for the given flags and combined LTV (percent).

    The repayment auto-extension message is not included here; the
    analysis puts it in front of this list when it applies.
    """
    warnings: List[str] = []
    if HIGH_LTV_THRESHOLD <= combined_ltv < MAX_LTV_THRESHOLD:
        warnings.append(HIGH_LTV_WARNING)
    if combined_ltv >= MAX_LTV_THRESHOLD:
        warnings.append(MAX_LTV_WARNING)
    if edge_flags.zero_interest:
        warnings.append(ZERO_INTEREST_WARNING)
    if edge_flags.repayment_months_adjusted:
        warnings.append(REPAYMENT_ADJUSTED_WARNING)
    if edge_flags.rounding_adjusted:
        warnings.append(ROUNDING_WARNING)
    return warnings


def combined_ltv(heloc: HelocInput) -> float:
    if heloc.property_value <= 0:
        return 0.0
    return (heloc.outstanding_balance + heloc.heloc_amount) / heloc.property_value * 100


def exceeds_hard_ltv_limit(heloc: HelocInput) -> bool:
    """True when the combined LTV is above 100 %.

    Front ends refuse to run an analysis in that case; the analysis itself
    only reports it as a warning.
    """
    return combined_ltv(heloc) > MAX_LTV_THRESHOLD


def compute_heloc_analysis(heloc: HelocInput) -> HelocAnalysis:
    """Run the full HELOC analysis.

    Raises
    ------
    ValidationError
        If the total term is shorter than the draw period.
    """
    edge_flags = HelocEdgeFlags()
    plan = compute_repayment_months(heloc.total_term_years, heloc.draw_period_years)
    edge_flags.repayment_months_adjusted = plan.adjusted

    rate = monthly_rate(heloc.interest_rate)
    edge_flags.zero_interest = is_zero_rate(rate)

    interest_only_payment = 0.0 if edge_flags.zero_interest else heloc.heloc_amount * rate
    principal_interest_payment = annuity_payment(heloc.heloc_amount, rate, plan.repayment_months)

    built = build_heloc_two_phase_schedule(
        heloc.heloc_amount,
        heloc.interest_rate,
        heloc.draw_period_years,
        heloc.total_term_years,
        repayment_months_override=plan.repayment_months,
        start_date=heloc.start_date,
        accumulate=True,
    )
    schedule = built.rows
    edge_flags.balance_clamped = built.balance_clamped

    if len(schedule) > 2:
        last, penultimate = schedule[-1], schedule[-2]
        if (
            last.phase == PHASE_PRINCIPAL_INTEREST
            and penultimate.phase == PHASE_PRINCIPAL_INTEREST
            and 0 < last.principal_payment < 0.01
        ):
            penultimate.principal_payment += last.principal_payment
            penultimate.payment += last.principal_payment
            penultimate.cumulative_principal += last.principal_payment
            penultimate.balance = 0.0
            schedule.pop()
            edge_flags.rounding_adjusted = True
            logger.info("Folded sub-cent HELOC principal into payment %d", penultimate.payment_number)

    draw_interest = sum(row.interest_payment for row in schedule if row.phase == PHASE_INTEREST_ONLY)
    repay_interest = sum(row.interest_payment for row in schedule if row.phase == PHASE_PRINCIPAL_INTEREST)

    ltv_pct = combined_ltv(heloc)
    warnings = derive_warnings(edge_flags, ltv_pct)
    if plan.message:
        warnings.insert(0, plan.message)

    logger.debug(
        "HELOC %.2f at %.3f%%: %d rows, combined LTV %.2f%%, %d warnings",
        heloc.heloc_amount,
        heloc.interest_rate,
        len(schedule),
        ltv_pct,
        len(warnings),
    )

    return HelocAnalysis(
        inputs=heloc,
        payments=HelocPayments(
            interest_only_payment=interest_only_payment,
            principal_interest_payment=principal_interest_payment,
        ),
        schedule=schedule,
        totals=HelocTotals(
            total_interest=draw_interest + repay_interest,
            total_interest_draw_phase=draw_interest,
            total_interest_repay_phase=repay_interest,
        ),
        ltv=HelocLtv(
            available_equity=heloc.property_value - heloc.outstanding_balance,
            combined_ltv=ltv_pct,
        ),
        edge_flags=edge_flags,
        warnings=warnings,
        payoff_date=schedule[-1].payment_date if schedule else None,
        repayment_months=plan.repayment_months,
    )
