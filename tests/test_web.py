import pytest

from mortgage_calc_web.app import create_app
from mortgage_calc_web.scenario_store import ScenarioStore


@pytest.fixture
def store(tmp_path):
    return ScenarioStore(f"sqlite:///{tmp_path / 'scenarios.sqlite3'}")


@pytest.fixture
def client(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app.test_client()


def test_purchase_endpoint(client):
    response = client.post(
        "/api/purchase",
        json={"property_value": "300k", "down_payment_amount": 10000, "interest_rate": 6, "pmi_rate": 0.5},
    )
    assert response.status_code == 200
    data = response.get_json()
    assert data["kind"] == "purchase"
    assert data["result"]["loan_amount"] == 290000
    assert data["result"]["schedule"]["pmi_meta"]["status"]["kind"] == "drops_at_month"
    assert "scenario_id" not in data


def test_missing_field_is_a_bad_request(client):
    response = client.post("/api/purchase", json={"interest_rate": 6})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Missing required field: property_value"


def test_non_object_body_is_rejected(client):
    response = client.post("/api/refinance", json=[1, 2])
    assert response.status_code == 400


def test_refinance_endpoint(client):
    response = client.post(
        "/api/refinance",
        json={
            "current_balance": 250000,
            "appraised_value": 400000,
            "new_rate": 6,
            "closing_costs": 4000,
            "current_monthly_payment": 2000,
        },
    )
    assert response.status_code == 200
    assert response.get_json()["result"]["break_even_months"] > 0


def test_heloc_endpoint(client):
    response = client.post(
        "/api/heloc",
        json={
            "property_value": 400000,
            "heloc_amount": 20000,
            "interest_rate": 8,
            "draw_period_years": 1,
            "total_term_years": 5,
            "start_date": "2030-01",
        },
    )
    assert response.status_code == 200
    result = response.get_json()["result"]
    assert result["repayment_months"] == 48
    assert result["payoff_date"] == "2034-12-01"
    assert len(result["schedule"]) == 60


def test_heloc_over_limit_is_unprocessable(client):
    response = client.post(
        "/api/heloc",
        json={"property_value": 500000, "outstanding_balance": 450000, "heloc_amount": 80000, "interest_rate": 8},
    )
    assert response.status_code == 422
    assert response.get_json()["combined_ltv"] == pytest.approx(106)


def test_heloc_invalid_term_is_a_bad_request(client):
    response = client.post(
        "/api/heloc",
        json={
            "property_value": 400000,
            "heloc_amount": 20000,
            "interest_rate": 8,
            "draw_period_years": 10,
            "total_term_years": 5,
        },
    )
    assert response.status_code == 400
    assert "Repayment period" in response.get_json()["error"]


def test_blended_endpoint(client):
    response = client.post(
        "/api/blended",
        json={
            "home_value": 700000,
            "down_payment": 50000,
            "first_mortgage": {"amount": 300000, "rate": 6, "term": 30},
            "second_mortgage": {"amount": 100000, "rate": 7.25},
            "additional_components": [{"amount": 30000, "rate": 7.5, "type": "heloc", "draw_months": 60, "repay_months": 120}],
            "additional_costs": {"property_tax": 400, "insurance": 120},
        },
    )
    assert response.status_code == 200
    result = response.get_json()["result"]
    assert result["flags"]["schedule_includes_additional"] is True
    assert result["additional_costs"]["total"] == 520
    assert len(result["schedule"]) == 360


def test_blended_validation_errors(client):
    response = client.post(
        "/api/blended",
        json={"home_value": 400000, "first_mortgage": {"amount": 300000, "rate": 6, "term": 30},
              "second_mortgage": {"amount": 90000, "rate": 8}},
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "Combined loan-to-value ratio exceeds 95%"


def test_compare_endpoint(client):
    response = client.post(
        "/api/compare",
        json={
            "mode": "payoffSpeed",
            "loans": [{"amount": 300000, "rate": 6.5, "term": 30}, {"amount": 300000, "rate": 6, "term": 15}],
        },
    )
    assert response.status_code == 200
    data = response.get_json()
    assert data["mode"] == "payoffSpeed"
    assert data["best_index"] == 1
    assert [row["name"] for row in data["loans"]] == ["A", "B"]
    assert data["results"][1]["evaluation"] == {"score_basis": "payoffSpeed"}


def test_compare_with_bad_mode(client):
    response = client.post("/api/compare", json={"mode": "cheapest", "loans": []})
    assert response.status_code == 400


def test_saved_scenarios_roundtrip(client):
    assert client.get("/api/scenarios").get_json() == []

    response = client.post("/api/scenarios", json={"kind": "purchase", "name": "First home", "inputs": {"a": 1}})
    assert response.status_code == 201
    scenario_id = response.get_json()["id"]

    client.post(
        "/api/purchase",
        json={"property_value": 300000, "interest_rate": 6, "save": True, "scenario_name": "Saved purchase"},
    )
    client.post(
        "/api/heloc",
        json={"property_value": 400000, "heloc_amount": 20000, "interest_rate": 8, "save": True},
    )

    saved = client.get("/api/scenarios").get_json()
    assert sorted(s["name"] for s in saved) == ["First home", "Saved purchase", "Scenario"]
    assert [s["kind"] for s in client.get("/api/scenarios?kind=heloc").get_json()] == ["heloc"]

    assert client.delete(f"/api/scenarios/{scenario_id}").status_code == 204
    assert client.delete(f"/api/scenarios/{scenario_id}").status_code == 404
    assert len(client.get("/api/scenarios").get_json()) == 2

    assert client.post("/api/scenarios/clear").status_code == 204
    assert client.get("/api/scenarios").get_json() == []


def test_save_requires_kind(client):
    response = client.post("/api/scenarios", json={"name": "x"})
    assert response.status_code == 400


def test_scenarios_are_per_session(store):
    app = create_app(store)
    first, second = app.test_client(), app.test_client()
    first.post("/api/scenarios", json={"kind": "purchase"})
    assert len(first.get("/api/scenarios").get_json()) == 1
    assert second.get("/api/scenarios").get_json() == []


def test_store_keeps_newest_per_user(tmp_path):
    store = ScenarioStore(f"sqlite:///{tmp_path / 'trim.sqlite3'}", max_per_user=2)
    for i in range(4):
        store.add_scenario("user", f"id-{i}", "purchase", f"Scenario {i}", {"i": i}, None)
    store.add_scenario("other", "other-1", "heloc", "Other", {}, {"ok": True})
    assert len(store.list_scenarios("user")) == 2
    assert len(store.list_scenarios("other")) == 1
    assert store.list_scenarios("") == []
    assert not store.remove_scenario("user", "other-1")


@pytest.mark.parametrize(
    "path, payload",
    [
        ("/api/heloc", {"property_value": 400000, "heloc_amount": 20000, "interest_rate": 8, "draw_period_years": 7.5}),
        ("/api/purchase", {"property_value": 300000, "interest_rate": 6, "loan_term": 29.5}),
        ("/api/compare", {"loans": [{"amount": 300000, "rate": 6, "term": 15.2}]}),
        (
            "/api/blended",
            {"home_value": 500000, "first_mortgage": {"amount": 300000, "rate": 6, "term": 30},
             "second_mortgage": {"amount": 10000, "rate": 7, "draw_months": 60.5}},
        ),
    ],
)
def test_fractional_terms_are_rejected(client, path, payload):
    response = client.post(path, json=payload)
    assert response.status_code == 400
    assert "must be a whole number" in response.get_json()["error"]


def test_integral_float_terms_are_accepted(client):
    response = client.post(
        "/api/heloc",
        json={"property_value": 400000, "heloc_amount": 20000, "interest_rate": 8,
              "draw_period_years": 1.0, "total_term_years": "5"},
    )
    assert response.status_code == 200
    assert response.get_json()["result"]["repayment_months"] == 48
