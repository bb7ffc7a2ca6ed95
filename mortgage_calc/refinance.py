"""Refinance scenario.

The new loan is the current balance, plus the closing costs when they are
rolled into the loan. LTV is measured against the appraisal and a fixed
monthly PMI figure may be supplied in place of a computed one.
"""

from __future__ import annotations

import logging
import math

from .data_models import LoanInput, RefinanceInput, RefinanceResult
from .engine import DEFAULT_PMI_END_RULE, build_fixed_loan_schedule

logger = logging.getLogger(__name__)


def compute_refinance_scenario(refi: RefinanceInput) -> RefinanceResult:
    closing_costs = max(0.0, refi.closing_costs or 0.0)
    loan_amount = max(0.0, refi.current_balance or 0.0)
    if refi.finance_closing_costs:
        loan_amount += closing_costs
    appraised_value = refi.appraised_value or 0.0
    ltv = loan_amount / appraised_value * 100 if appraised_value > 0 else 0.0

    schedule = build_fixed_loan_schedule(
        LoanInput(
            amount=loan_amount,
            rate=refi.new_rate or 0.0,
            term=int(refi.new_term or 0),
            fixed_monthly_pmi=refi.fixed_monthly_pmi,
            property_tax=refi.property_tax,
            home_insurance=refi.home_insurance,
            hoa=refi.hoa,
            extra=refi.extra_payment,
            appraised_value=appraised_value,
            pmi_end_rule=refi.pmi_end_rule or DEFAULT_PMI_END_RULE,
        )
    )

    cash_to_close = 0.0 if refi.finance_closing_costs else closing_costs
    current_payment = refi.current_monthly_payment or 0.0
    monthly_pi_change = schedule.monthly_pi - current_payment if current_payment > 0 else 0.0

    # months of P&I savings needed to recover the closing costs
    break_even_months = None
    if closing_costs > 0 and monthly_pi_change < 0:
        break_even_months = math.ceil(closing_costs / -monthly_pi_change)

    logger.debug(
        "Refinance: new loan %.2f, LTV %.2f%%, P&I change %.2f, break-even %s",
        loan_amount,
        ltv,
        monthly_pi_change,
        break_even_months,
    )
    return RefinanceResult(
        loan_amount=loan_amount,
        ltv=ltv,
        cash_to_close=cash_to_close,
        monthly_pi_change=monthly_pi_change,
        break_even_months=break_even_months,
        schedule=schedule,
    )
