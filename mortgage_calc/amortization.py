"""Plain fixed-rate amortization.

``compute_fixed_amortization`` builds a month-by-month schedule for a single
fixed-rate loan without escrow or PMI. The blended-mortgage calculator uses
it for every non-HELOC component, passing the component's precomputed
payment so the schedule matches the payment shown to the user.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .data_models import (
    AmortizationFlags,
    AmortizationRow,
    AmortizationTotals,
    FixedAmortizationResult,
)
from .utils import ZERO_RATE_EPSILON, annuity_payment, monthly_rate

logger = logging.getLogger(__name__)

PAYOFF_TOLERANCE = 0.01
RESIDUAL_FOLD_LIMIT = 5.0


def compute_fixed_amortization(
    principal: float,
    annual_rate: float,
    term_months: int,
    payment: Optional[float] = None,
    zero_rate_epsilon: float = ZERO_RATE_EPSILON,
) -> FixedAmortizationResult:
    """Compute a fixed-rate amortization schedule.

    Parameters
    ----------
    principal: float
        Starting principal. A non-positive value yields an empty result.
    annual_rate: float
        Nominal annual rate in percent (``6`` for 6 %).
    term_months: int
        Number of monthly payments. A non-positive value yields an empty
        result.
    payment: float, optional
        Externally dictated monthly payment. When positive it is used as
        given, even if it does not amortize the loan to exactly zero.

    After the loop a leftover balance between one cent and five dollars is
    folded into the last principal payment, and a leftover of one cent or
    less is simply zeroed. Either case sets ``flags.normalization_applied``.
    """
    if not principal or principal <= 0 or not term_months or term_months <= 0:
        return FixedAmortizationResult(
            schedule=[],
            totals=AmortizationTotals(),
            monthly_payment=0.0,
            flags=AmortizationFlags(),
        )

    rate = monthly_rate(annual_rate)
    zero_rate = abs(rate) < zero_rate_epsilon

    if payment is not None and payment > 0:
        monthly_payment = payment
    elif zero_rate:
        monthly_payment = principal / term_months
    else:
        monthly_payment = annuity_payment(principal, rate, term_months)

    schedule: List[AmortizationRow] = []
    remaining = principal
    total_interest = 0.0
    total_principal = 0.0
    base_principal = principal / term_months

    for number in range(1, term_months + 1):
        if remaining <= PAYOFF_TOLERANCE:
            break
        if zero_rate:
            interest_payment = 0.0
            principal_payment = base_principal
        else:
            interest_payment = remaining * rate
            principal_payment = monthly_payment - interest_payment
        if principal_payment > remaining:
            principal_payment = remaining
        remaining -= principal_payment
        total_principal += principal_payment
        total_interest += interest_payment
        schedule.append(
            AmortizationRow(
                payment_number=number,
                principal_payment=principal_payment,
                interest_payment=interest_payment,
                remaining_balance=max(0.0, remaining),
            )
        )

    normalization_applied = False
    if schedule and PAYOFF_TOLERANCE < remaining < RESIDUAL_FOLD_LIMIT:
        last = schedule[-1]
        last.principal_payment += remaining
        last.remaining_balance = 0.0
        total_principal += remaining
        remaining = 0.0
        normalization_applied = True
    elif schedule and 0 < remaining <= PAYOFF_TOLERANCE:
        schedule[-1].remaining_balance = 0.0
        remaining = 0.0
        normalization_applied = True

    if normalization_applied:
        logger.debug("Folded amortization residual into payment %d", schedule[-1].payment_number)

    if zero_rate:
        total_interest = 0.0
    return FixedAmortizationResult(
        schedule=schedule,
        totals=AmortizationTotals(
            total_interest=total_interest,
            total_paid=total_principal + total_interest,
            total_principal=total_principal,
        ),
        monthly_payment=monthly_payment,
        flags=AmortizationFlags(zero_rate=zero_rate, normalization_applied=normalization_applied),
    )
