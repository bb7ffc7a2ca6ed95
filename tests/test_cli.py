import json

import click
import pytest
from click.testing import CliRunner

from mortgage_calc.main import cli, parse_component_string, parse_scenario_opts


@pytest.fixture
def runner():
    return CliRunner()


def test_purchase_summary(runner):
    result = runner.invoke(cli, ["purchase", "--price", "300k", "--down", "10k", "-r", "6", "--pmi-rate", "0.5"])
    assert result.exit_code == 0, result.output
    assert "Loan amount 290000.00 at 96.67% LTV" in result.output
    assert "Monthly P&I" in result.output


def test_purchase_json_export(runner, tmp_path):
    out = tmp_path / "purchase.json"
    result = runner.invoke(cli, ["purchase", "--price", "400000", "--down", "80000", "-r", "6", "--output", str(out)])
    assert result.exit_code == 0, result.output
    assert "Results exported to" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["kind"] == "purchase"
    assert data["result"]["loan_amount"] == 320000


def test_refinance_break_even(runner):
    result = runner.invoke(
        cli,
        ["refinance", "--balance", "250k", "--appraised", "400k", "-r", "6", "--closing-costs", "4000",
         "--current-payment", "2000"],
    )
    assert result.exit_code == 0, result.output
    assert "Break-even" in result.output


def test_heloc_summary(runner):
    result = runner.invoke(
        cli,
        ["heloc", "--property-value", "400k", "--amount", "20k", "-r", "8", "--draw-years", "1",
         "--total-years", "5", "--start-date", "2030-01"],
    )
    assert result.exit_code == 0, result.output
    assert "Repayment months      : 48" in result.output
    assert "Payoff date           : 2034-12" in result.output


def test_heloc_over_limit_is_blocked(runner):
    result = runner.invoke(
        cli, ["heloc", "--property-value", "500k", "--balance", "450k", "--amount", "80k", "-r", "8"]
    )
    assert result.exit_code != 0
    assert "exceeds" in result.output


def test_heloc_csv_export(runner, tmp_path):
    out = tmp_path / "heloc.csv"
    result = runner.invoke(
        cli,
        ["heloc", "--property-value", "400k", "--amount", "20k", "-r", "8", "--draw-years", "1",
         "--total-years", "5", "--output", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert len(out.read_text(encoding="utf-8").splitlines()) == 61


def test_blended_validation_error(runner):
    result = runner.invoke(
        cli, ["blended", "--home-value", "400k", "--first", "300000:6:30", "--second", "90000:8"]
    )
    assert result.exit_code != 0
    assert "exceeds 95%" in result.output


def test_blended_summary(runner):
    result = runner.invoke(
        cli,
        ["blended", "--home-value", "700k", "--down", "50k", "--first", "300000:6:30", "--second", "100000:7.25",
         "--component", "50000:8.5:10", "--component", "30000:7.5::heloc:60:120"],
    )
    assert result.exit_code == 0, result.output
    assert "helocPhaseDefaults: 120/240,60/120" in result.output


def test_compare_picks_best(runner):
    result = runner.invoke(
        cli, ["compare", "--scenario", "-a 300k -r 6.5 -t 30", "--scenario", "-a 300k -r 6 -t 15"]
    )
    assert result.exit_code == 0, result.output
    assert "Best loan: B" in result.output


def test_compare_json_export(runner, tmp_path):
    out = tmp_path / "compare.json"
    result = runner.invoke(
        cli,
        ["compare", "--scenario", "-a 300k -r 6.5 -t 30 --name Long", "--scenario", "-a 300k -r 6 -t 15",
         "--mode", "payoffSpeed", "--output", str(out)],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["inputs"]["mode"] == "payoffSpeed"
    assert [row["name"] for row in data["result"]] == ["Long", "B"]
    assert [row["best"] for row in data["result"]] == [False, True]


def test_parse_component_string():
    component = parse_component_string("30000:7.5::heloc:60:120")
    assert component.amount == 30000
    assert component.term is None
    assert (component.type, component.draw_months, component.repay_months) == ("heloc", 60, 120)
    with pytest.raises(click.BadParameter):
        parse_component_string("30000")
    with pytest.raises(click.BadParameter):
        parse_component_string("30000:7:10:balloon")


def test_parse_scenario_opts():
    loan = parse_scenario_opts("-a 250k -r 6 --pmi 120 --appraised 300k", 2)
    assert loan.letter == "C"
    assert loan.amount == 250000
    assert loan.appraised_value == 300000
    assert loan.term == 30
    with pytest.raises(click.BadParameter):
        parse_scenario_opts("-r 6", 0)
    with pytest.raises(click.BadParameter):
        parse_scenario_opts("-a 250k -r 6 --bogus 1", 0)
