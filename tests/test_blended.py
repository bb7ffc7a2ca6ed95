import pytest

from mortgage_calc.blended import (
    DEFAULT_HELOC_DRAW_MONTHS,
    DEFAULT_HELOC_REPAY_MONTHS,
    calculate_blended_mortgage,
    calculate_second_component,
    generate_blended_amortization_schedule,
    validate_blended_inputs,
)
from mortgage_calc.data_models import AdditionalCosts, BlendedParams, ComponentInput
from mortgage_calc.errors import ValidationError


@pytest.fixture
def params():
    return BlendedParams(
        home_value=700000,
        down_payment=50000,
        first_mortgage=ComponentInput(amount=300000, rate=6, term=30),
        second_mortgage=ComponentInput(amount=100000, rate=7.25, type="heloc"),
        additional_components=[
            ComponentInput(amount=50000, rate=8.5, term=10, type="fixed"),
            ComponentInput(amount=30000, rate=7.5, type="heloc", draw_months=60, repay_months=120),
        ],
        additional_costs=AdditionalCosts(property_tax=400, insurance=120, pmi=0, other=30),
    )


def test_blended_schedule_reconciles(params):
    result = calculate_blended_mortgage(params)
    assert result.flags.schedule_includes_additional
    assert len(result.schedule) == 360
    for row in result.schedule:
        component_sum = (
            row.first_mortgage.principal
            + row.second_mortgage.principal
            + sum(c.principal for c in row.additional_components)
        )
        assert abs(row.total_principal - component_sum) < 1e-8
    assert result.schedule[-1].total_remaining_balance == 0


def test_blended_principal_totals(params):
    result = calculate_blended_mortgage(params)
    repaid = sum(row.total_principal for row in result.schedule)
    assert repaid == pytest.approx(480000, abs=0.05)
    assert result.combined.total_principal == 480000
    assert result.ltv.combined_ltv == pytest.approx(480000 / 700000 * 100)
    assert result.ltv.first_mortgage_ltv == pytest.approx(300000 / 700000 * 100)
    assert result.ltv.available_equity == 220000


def test_combined_metrics(params):
    result = calculate_blended_mortgage(params)
    combined = result.combined
    assert combined.total_monthly_payment == pytest.approx(combined.total_principal_interest + 550)
    expected_rate = (300000 * 6 + 100000 * 7.25 + 50000 * 8.5 + 30000 * 7.5) / 480000
    assert combined.effective_blended_rate == pytest.approx(expected_rate)
    assert combined.debt_to_income_ratio == pytest.approx(28)
    assert combined.comparison.annual_savings == pytest.approx(combined.comparison.monthly_savings * 12)
    assert combined.comparison.traditional_monthly_payment == pytest.approx(3193.45, abs=0.01)


def test_assumptions_always_present(params):
    result = calculate_blended_mortgage(params)
    by_key = {a.key: a for a in result.assumptions}
    assert {"helocPhaseDefaults", "effectiveRateMethod", "zeroRateHandling", "roundingNormalization"} <= set(by_key)
    assert by_key["helocPhaseDefaults"].value == "120/240,60/120"
    assert by_key["effectiveRateMethod"].value == "principalWeightedAverageNominal"


def test_second_mortgage_heloc_uses_fixed_defaults():
    result = calculate_second_component(
        ComponentInput(amount=100000, rate=7.25, type="heloc", draw_months=24, repay_months=36)
    )
    assert result.draw_months == DEFAULT_HELOC_DRAW_MONTHS
    assert result.repay_months == DEFAULT_HELOC_REPAY_MONTHS
    assert result.monthly_payment == pytest.approx(100000 * 0.0725 / 12)
    assert result.payoff_time.years == 30


def test_additional_heloc_honors_phase_lengths(params):
    result = calculate_blended_mortgage(params)
    heloc = result.additional_components[1]
    assert (heloc.draw_months, heloc.repay_months) == (60, 120)
    rows = [row.additional_components[1] for row in result.schedule]
    assert all(r.principal == 0 for r in rows[:60])
    assert rows[179].balance == 0
    assert all(r.principal == 0 and r.balance == 0 for r in rows[180:])


def test_validation_collects_every_error():
    bad = BlendedParams(home_value=0, first_mortgage=ComponentInput(amount=0, rate=None, term=None))
    with pytest.raises(ValidationError) as excinfo:
        calculate_blended_mortgage(bad)
    message = str(excinfo.value)
    assert "Home value must be greater than 0" in message
    assert "Down payment must be less than home value" in message
    assert "First mortgage amount must be greater than 0" in message
    assert "First mortgage interest rate must be >= 0" in message
    assert "First mortgage term must be greater than 0" in message
    assert ", " in message


def test_combined_ltv_above_95_is_rejected():
    params = BlendedParams(
        home_value=400000,
        first_mortgage=ComponentInput(amount=300000, rate=6, term=30),
        second_mortgage=ComponentInput(amount=90000, rate=8, type="heloc"),
    )
    assert validate_blended_inputs(params) == ["Combined loan-to-value ratio exceeds 95%"]
    with pytest.raises(ValidationError, match="exceeds 95%"):
        calculate_blended_mortgage(params)


def test_unusual_rates_are_flagged():
    params = BlendedParams(
        home_value=500000,
        first_mortgage=ComponentInput(amount=300000, rate=55, term=30),
        second_mortgage=ComponentInput(amount=10000, rate=-1, type="fixed", term=5),
    )
    errors = validate_blended_inputs(params)
    assert "First mortgage interest rate seems unusually high" in errors
    assert "Second mortgage interest rate must be >= 0" in errors


def test_zero_rate_components():
    params = BlendedParams(
        home_value=500000,
        first_mortgage=ComponentInput(amount=240000, rate=0, term=20),
        second_mortgage=ComponentInput(amount=0),
    )
    result = calculate_blended_mortgage(params)
    assert result.flags.zero_rate_handled
    assert not result.flags.schedule_includes_additional
    assert result.first_mortgage.total_interest == 0
    assert result.first_mortgage.monthly_payment == 1000
    assert len(result.schedule) == 240
    assert result.schedule[-1].total_remaining_balance == 0


def test_schedule_generation_is_independent_of_calls(params):
    first = calculate_blended_mortgage(params)
    second = calculate_blended_mortgage(params)
    assert first.schedule is not second.schedule
    again = generate_blended_amortization_schedule(
        first.first_mortgage, first.second_mortgage, first.additional_components
    )
    assert len(again.rows) == len(first.schedule)
