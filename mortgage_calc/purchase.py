"""Purchase scenario helpers.

``compute_purchase_scenario`` turns purchase inputs (price, down payment,
annual PMI rate) into a fixed-loan schedule; ``classify_pmi_state``
describes the PMI situation for a price and down payment before any
schedule is built.
"""

from __future__ import annotations

import logging

from .data_models import (
    LoanInput,
    PmiClassification,
    PmiStatus,
    PurchaseScenarioInput,
    PurchaseScenarioResult,
)
from .engine import DEFAULT_PMI_END_RULE, build_fixed_loan_schedule

logger = logging.getLogger(__name__)

BORDERLINE_LTV_MARGIN = 5.0


def compute_purchase_scenario(scenario: PurchaseScenarioInput) -> PurchaseScenarioResult:
    """Compute a purchase scenario.

    The monthly PMI charge is ``pmi_rate`` percent per year of the loan
    amount, and only when the starting LTV is above ``pmi_end_rule``. A zero
    loan amount or a starting LTV at or below the rule always reports PMI
    as never charged.
    """
    property_value = scenario.property_value or 0.0
    loan_amount = max(0.0, property_value - (scenario.down_payment_amount or 0.0))
    ltv = loan_amount / property_value * 100 if property_value > 0 else 0.0
    pmi_end_rule = scenario.pmi_end_rule or DEFAULT_PMI_END_RULE
    pmi_monthly = (scenario.pmi_rate or 0.0) / 100 / 12 * loan_amount if ltv > pmi_end_rule else 0.0

    schedule = build_fixed_loan_schedule(
        LoanInput(
            amount=loan_amount,
            rate=scenario.interest_rate or 0.0,
            term=int(scenario.loan_term or 0),
            pmi=pmi_monthly,
            property_tax=scenario.property_tax,
            home_insurance=scenario.home_insurance,
            hoa=scenario.hoa,
            extra=scenario.extra_payment,
            appraised_value=property_value,
            pmi_end_rule=pmi_end_rule,
        )
    )

    if loan_amount == 0 or ltv <= pmi_end_rule:
        schedule.pmi_meta.status = PmiStatus.never_charged()
        schedule.pmi_meta.pmi_total_paid = 0.0

    logger.debug("Purchase scenario: loan %.2f, LTV %.2f%%, PMI %.2f/month", loan_amount, ltv, pmi_monthly)
    return PurchaseScenarioResult(ltv=ltv, loan_amount=loan_amount, schedule=schedule)


def classify_pmi_state(
    property_value: float,
    down_payment_amount: float,
    pmi_rate: float = 0.0,
    threshold: float = DEFAULT_PMI_END_RULE,
) -> PmiClassification:
    """Classify the PMI situation of a purchase.

    States: ``pending`` (no property value yet), ``none``, ``active``
    (rate given and LTV above threshold), ``ignored`` (rate given but LTV at
    or below threshold) and ``possible`` (LTV above threshold, no rate).
    """
    property_value = property_value or 0.0
    pmi_rate = pmi_rate or 0.0
    threshold = threshold or DEFAULT_PMI_END_RULE
    loan_amount = max(0.0, property_value - (down_payment_amount or 0.0))
    ltv = loan_amount / property_value * 100 if property_value > 0 else 0.0
    meets_threshold = property_value > 0 and loan_amount > 0 and ltv <= threshold

    if property_value <= 0:
        badge_class = "ltv-pending"
    elif loan_amount == 0:
        badge_class = "ltv-cash"
    elif ltv <= threshold:
        badge_class = "ltv-good"
    elif ltv <= threshold + BORDERLINE_LTV_MARGIN:
        badge_class = "ltv-borderline"
    else:
        badge_class = "ltv-high"

    state, status_text = "none", "No PMI"
    if property_value <= 0:
        state, status_text = "pending", "Awaiting Value"
    elif loan_amount == 0:
        state, status_text = "none", "No Loan (Cash Purchase)"
    elif pmi_rate > 0 and ltv > threshold:
        state, status_text = "active", "PMI Active"
    elif pmi_rate > 0:
        state, status_text = "ignored", "PMI Entered (Not Charged)"
    elif ltv > threshold:
        state, status_text = "possible", "PMI Possible (Rate Blank)"
    else:
        status_text = "No PMI Required"

    return PmiClassification(
        state=state,
        status_text=status_text,
        badge_class=badge_class,
        ltv=round(ltv, 4),
        meets_threshold=meets_threshold,
    )
