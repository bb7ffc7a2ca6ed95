import pytest

from mortgage_calc.data_models import PmiStatusKind, PurchaseScenarioInput
from mortgage_calc.purchase import classify_pmi_state, compute_purchase_scenario


def test_purchase_with_pmi():
    result = compute_purchase_scenario(
        PurchaseScenarioInput(
            property_value=400000,
            down_payment_amount=40000,
            loan_term=30,
            interest_rate=6,
            pmi_rate=0.5,
        )
    )
    assert result.loan_amount == 360000
    assert result.ltv == pytest.approx(90)
    schedule = result.schedule
    assert schedule.monthly_pmi_input == pytest.approx(150)
    assert schedule.pmi_meta.status.kind is PmiStatusKind.DROPS_AT_MONTH
    ends = schedule.pmi_meta.pmi_ends_month
    assert schedule.schedule[ends - 3].balance > 320000
    assert schedule.schedule[ends - 2].balance <= 320000
    assert schedule.schedule[ends - 2].pmi == pytest.approx(150)
    assert schedule.schedule[ends - 1].pmi == 0


def test_twenty_percent_down_never_charges_pmi():
    result = compute_purchase_scenario(
        PurchaseScenarioInput(
            property_value=400000,
            down_payment_amount=80000,
            loan_term=30,
            interest_rate=6,
            pmi_rate=0.5,
        )
    )
    assert result.ltv == pytest.approx(80)
    assert result.schedule.pmi_meta.status.kind is PmiStatusKind.NEVER_CHARGED
    assert result.schedule.pmi_meta.pmi_total_paid == 0
    assert result.schedule.totals.pmi_paid == 0


def test_cash_purchase():
    result = compute_purchase_scenario(
        PurchaseScenarioInput(property_value=250000, down_payment_amount=250000, loan_term=30, interest_rate=6)
    )
    assert result.loan_amount == 0
    assert result.schedule.schedule == []
    assert result.schedule.pmi_meta.pmi_ends_month == 1


def test_classify_active_pmi():
    state = classify_pmi_state(300000, 10000, pmi_rate=0.5)
    assert state.state == "active"
    assert state.status_text == "PMI Active"
    assert state.badge_class == "ltv-high"
    assert state.ltv == 96.6667
    assert not state.meets_threshold


@pytest.mark.parametrize(
    "value, down, rate, state, badge",
    [
        (0, 0, 0, "pending", "ltv-pending"),
        (300000, 300000, 0, "none", "ltv-cash"),
        (400000, 80000, 0, "none", "ltv-good"),
        (400000, 100000, 0.5, "ignored", "ltv-good"),
        (300000, 50000, 0, "possible", "ltv-borderline"),
    ],
)
def test_classify_states(value, down, rate, state, badge):
    result = classify_pmi_state(value, down, pmi_rate=rate)
    assert result.state == state
    assert result.badge_class == badge


def test_classify_status_text():
    assert classify_pmi_state(0, 0).status_text == "Awaiting Value"
    assert classify_pmi_state(300000, 300000).status_text == "No Loan (Cash Purchase)"
    assert classify_pmi_state(400000, 80000).status_text == "No PMI Required"
    assert classify_pmi_state(400000, 80000).meets_threshold
    assert classify_pmi_state(400000, 100000, pmi_rate=0.5).status_text == "PMI Entered (Not Charged)"
    assert classify_pmi_state(300000, 50000).status_text == "PMI Possible (Rate Blank)"
