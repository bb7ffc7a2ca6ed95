from datetime import date

import pytest

from mortgage_calc.data_models import PHASE_INTEREST_ONLY, PHASE_PRINCIPAL_INTEREST, HelocEdgeFlags, HelocInput
from mortgage_calc.errors import ValidationError
from mortgage_calc.heloc import (
    HIGH_LTV_WARNING,
    MAX_LTV_WARNING,
    REPAYMENT_ADJUSTED_WARNING,
    REPAYMENT_EXTENDED_MESSAGE,
    ROUNDING_WARNING,
    ZERO_INTEREST_WARNING,
    compute_heloc_analysis,
    compute_repayment_months,
    derive_warnings,
    exceeds_hard_ltv_limit,
)


def make_input(**overrides):
    values = dict(
        property_value=400000,
        heloc_amount=20000,
        interest_rate=8,
        draw_period_years=1,
        total_term_years=5,
        outstanding_balance=0,
        start_date=date(2030, 1, 1),
    )
    values.update(overrides)
    return HelocInput(**values)


def test_two_phase_analysis():
    analysis = compute_heloc_analysis(make_input())
    assert len(analysis.schedule) == 60
    assert analysis.repayment_months == 48
    assert analysis.totals.total_interest_draw_phase == pytest.approx(1600, abs=0.25)
    assert analysis.totals.total_interest == pytest.approx(
        analysis.totals.total_interest_draw_phase + analysis.totals.total_interest_repay_phase
    )
    assert analysis.schedule[-1].balance == 0
    repaid = sum(r.principal_payment for r in analysis.schedule if r.phase == PHASE_PRINCIPAL_INTEREST)
    assert repaid == pytest.approx(20000, abs=0.05)
    assert analysis.payments.interest_only_payment == pytest.approx(133.33, abs=0.01)
    assert analysis.payoff_date == date(2034, 12, 1)
    assert analysis.warnings == []


def test_repayment_months():
    plan = compute_repayment_months(30, 10)
    assert plan.repayment_months == 240
    assert not plan.adjusted
    assert plan.message is None


def test_repayment_auto_extended_when_equal():
    plan = compute_repayment_months(10, 10)
    assert plan.repayment_months == 12
    assert plan.adjusted
    assert plan.message == REPAYMENT_EXTENDED_MESSAGE


def test_repayment_shorter_than_draw_is_rejected():
    with pytest.raises(ValidationError, match="Repayment period must be greater"):
        compute_repayment_months(5, 10)
    with pytest.raises(ValidationError):
        compute_heloc_analysis(make_input(draw_period_years=10, total_term_years=5))


def test_combined_ltv_boundary():
    at_ninety = compute_heloc_analysis(
        make_input(property_value=500000, outstanding_balance=300000, heloc_amount=150000)
    )
    assert at_ninety.ltv.combined_ltv == pytest.approx(90)
    assert HIGH_LTV_WARNING in at_ninety.warnings
    assert at_ninety.ltv.available_equity == 200000

    below = compute_heloc_analysis(make_input(property_value=500000, outstanding_balance=300000, heloc_amount=149000))
    assert below.ltv.combined_ltv == pytest.approx(89.8)
    assert HIGH_LTV_WARNING not in below.warnings
    assert MAX_LTV_WARNING not in below.warnings


def test_hard_limit_is_a_front_end_gate():
    over = make_input(property_value=500000, outstanding_balance=450000, heloc_amount=80000)
    assert exceeds_hard_ltv_limit(over)
    assert not exceeds_hard_ltv_limit(make_input(property_value=500000, outstanding_balance=300000))
    analysis = compute_heloc_analysis(over)
    assert analysis.warnings == [MAX_LTV_WARNING]


def test_warning_order():
    analysis = compute_heloc_analysis(
        make_input(
            property_value=100000,
            outstanding_balance=75000,
            heloc_amount=20000,
            interest_rate=0,
            draw_period_years=10,
            total_term_years=10,
        )
    )
    assert analysis.warnings == [
        REPAYMENT_EXTENDED_MESSAGE,
        HIGH_LTV_WARNING,
        ZERO_INTEREST_WARNING,
        REPAYMENT_ADJUSTED_WARNING,
    ]
    assert analysis.edge_flags.zero_interest
    assert analysis.edge_flags.repayment_months_adjusted
    assert len(analysis.schedule) == 132


def test_derive_warnings_includes_rounding():
    flags = HelocEdgeFlags(rounding_adjusted=True)
    assert derive_warnings(flags, 50) == [ROUNDING_WARNING]
    assert derive_warnings(HelocEdgeFlags(), 100) == [MAX_LTV_WARNING]


def test_zero_rate_is_linear():
    analysis = compute_heloc_analysis(make_input(interest_rate=0, heloc_amount=12000, draw_period_years=1, total_term_years=3))
    assert analysis.totals.total_interest == 0
    assert analysis.payments.interest_only_payment == 0
    assert analysis.payments.principal_interest_payment == 500
    repay = [r for r in analysis.schedule if r.phase == PHASE_PRINCIPAL_INTEREST]
    assert all(abs(r.principal_payment - 500) <= 0.01 for r in repay[:-1])
    assert all(r.phase == PHASE_INTEREST_ONLY and r.payment == 0 for r in analysis.schedule[:12])
    assert analysis.schedule[-1].balance == 0


def test_sub_cent_final_principal_is_folded():
    analysis = compute_heloc_analysis(
        make_input(property_value=1e6, heloc_amount=0.01, interest_rate=0, draw_period_years=1, total_term_years=2)
    )
    assert analysis.edge_flags.rounding_adjusted
    assert analysis.edge_flags.balance_clamped
    assert len(analysis.schedule) == 17
    assert analysis.schedule[-1].balance == 0
    assert analysis.schedule[-1].phase == PHASE_PRINCIPAL_INTEREST
    assert analysis.warnings == [ZERO_INTEREST_WARNING, ROUNDING_WARNING]
    assert analysis.schedule[-1].cumulative_principal == pytest.approx(0.01)


def test_float_noise_is_not_reported_as_a_clamp():
    assert not compute_heloc_analysis(make_input()).edge_flags.balance_clamped
    zero_rate = compute_heloc_analysis(make_input(interest_rate=0, heloc_amount=12000, total_term_years=3))
    assert not zero_rate.edge_flags.balance_clamped
    assert not zero_rate.edge_flags.rounding_adjusted
