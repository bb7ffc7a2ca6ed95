import logging
import os
from typing import Optional
from uuid import uuid4

from flask import Flask, jsonify, request, session

from mortgage_calc.blended import calculate_blended_mortgage
from mortgage_calc.data_models import (
    LOAN_TYPE_HELOC,
    LOAN_TYPES,
    AdditionalCosts,
    BlendedParams,
    ComponentInput,
    HelocInput,
    LoanInput,
    PurchaseScenarioInput,
    RefinanceInput,
)
from mortgage_calc.engine import DEFAULT_PMI_END_RULE, build_fixed_loan_schedule
from mortgage_calc.export import comparison_rows, to_serializable
from mortgage_calc.heloc import combined_ltv, compute_heloc_analysis, exceeds_hard_ltv_limit
from mortgage_calc.purchase import compute_purchase_scenario
from mortgage_calc.refinance import compute_refinance_scenario
from mortgage_calc.scoring import EvaluationMode, determine_best_loan
from mortgage_calc.utils import coerce_float, parse_year_month
from mortgage_calc_web.scenario_store import ScenarioStore, create_store_from_env

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _required(data: dict, key: str) -> float:
    if data.get(key) in (None, ""):
        raise ValueError(f"Missing required field: {key}")
    return coerce_float(data[key])


def _whole(key: str, value: float) -> int:
    if not float(value).is_integer():
        raise ValueError(f"{key} must be a whole number")
    return int(value)


def _int(data: dict, key: str, default: int) -> int:
    return _whole(key, coerce_float(data.get(key), default))


def _optional_int(data: dict, key: str) -> Optional[int]:
    value = _optional(data, key)
    return None if value is None else _whole(key, value)


def _optional(data: dict, key: str) -> Optional[float]:
    value = data.get(key)
    return None if value in (None, "") else coerce_float(value)


def _component(data: Optional[dict], default_type: str = "fixed") -> ComponentInput:
    data = data or {}
    loan_type = (data.get("type") or default_type).lower()
    if loan_type not in LOAN_TYPES:
        raise ValueError(f"Unknown loan type: {loan_type}")
    return ComponentInput(
        amount=coerce_float(data.get("amount")),
        rate=_optional(data, "rate"),
        term=_optional_int(data, "term"),
        type=loan_type,
        draw_months=_optional_int(data, "draw_months"),
        repay_months=_optional_int(data, "repay_months"),
    )


def _loan_input(data: dict, index: int) -> LoanInput:
    return LoanInput(
        amount=_required(data, "amount"),
        rate=_required(data, "rate"),
        term=_int(data, "term", 30),
        pmi=coerce_float(data.get("pmi")),
        fixed_monthly_pmi=_optional(data, "fixed_monthly_pmi"),
        property_tax=coerce_float(data.get("property_tax")),
        home_insurance=coerce_float(data.get("home_insurance")),
        hoa=coerce_float(data.get("hoa")),
        extra=coerce_float(data.get("extra")),
        appraised_value=coerce_float(data.get("appraised_value")),
        pmi_end_rule=coerce_float(data.get("pmi_end_rule"), DEFAULT_PMI_END_RULE),
        name=str(data.get("name") or ""),
        letter=chr(ord("A") + index) if index < 26 else str(index + 1),
    )


def create_app(store: Optional[ScenarioStore] = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    scenario_store = store or create_store_from_env(
        os.environ.get("SCENARIO_DATABASE_URL"),
        os.environ.get("SCENARIO_MAX_PER_USER"),
    )
    app.extensions["scenario_store"] = scenario_store

    def _respond(kind: str, inputs, result):
        envelope = {"kind": kind, "inputs": to_serializable(inputs), "result": to_serializable(result)}
        data = request.get_json(silent=True) or {}
        if data.get("save"):
            scenario_id = uuid4().hex
            name = str(data.get("scenario_name") or "").strip() or "Scenario"
            scenario_store.add_scenario(
                _ensure_user_token(), scenario_id, kind, name, envelope["inputs"], envelope["result"]
            )
            envelope["scenario_id"] = scenario_id
        return jsonify(envelope)

    @app.errorhandler(ValueError)
    def handle_value_error(exc):
        # ValidationError is a ValueError too
        logger.info("Rejected request to %s: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    @app.post("/api/purchase")
    def purchase():
        data = _payload()
        inputs = PurchaseScenarioInput(
            property_value=_required(data, "property_value"),
            down_payment_amount=coerce_float(data.get("down_payment_amount")),
            loan_term=_int(data, "loan_term", 30),
            interest_rate=_required(data, "interest_rate"),
            pmi_rate=coerce_float(data.get("pmi_rate")),
            pmi_end_rule=coerce_float(data.get("pmi_end_rule"), DEFAULT_PMI_END_RULE),
            property_tax=coerce_float(data.get("property_tax")),
            home_insurance=coerce_float(data.get("home_insurance")),
            hoa=coerce_float(data.get("hoa")),
            extra_payment=coerce_float(data.get("extra_payment")),
        )
        return _respond("purchase", inputs, compute_purchase_scenario(inputs))

    @app.post("/api/refinance")
    def refinance():
        data = _payload()
        inputs = RefinanceInput(
            current_balance=_required(data, "current_balance"),
            appraised_value=_required(data, "appraised_value"),
            new_rate=_required(data, "new_rate"),
            new_term=_int(data, "new_term", 30),
            closing_costs=coerce_float(data.get("closing_costs")),
            finance_closing_costs=bool(data.get("finance_closing_costs")),
            current_monthly_payment=coerce_float(data.get("current_monthly_payment")),
            fixed_monthly_pmi=_optional(data, "fixed_monthly_pmi"),
            pmi_end_rule=coerce_float(data.get("pmi_end_rule"), DEFAULT_PMI_END_RULE),
            property_tax=coerce_float(data.get("property_tax")),
            home_insurance=coerce_float(data.get("home_insurance")),
            hoa=coerce_float(data.get("hoa")),
            extra_payment=coerce_float(data.get("extra_payment")),
        )
        return _respond("refinance", inputs, compute_refinance_scenario(inputs))

    @app.post("/api/heloc")
    def heloc():
        data = _payload()
        start_date = data.get("start_date")
        inputs = HelocInput(
            property_value=_required(data, "property_value"),
            heloc_amount=_required(data, "heloc_amount"),
            interest_rate=_required(data, "interest_rate"),
            draw_period_years=_int(data, "draw_period_years", 10),
            total_term_years=_int(data, "total_term_years", 30),
            outstanding_balance=coerce_float(data.get("outstanding_balance")),
            start_date=parse_year_month(start_date) if start_date else None,
        )
        if exceeds_hard_ltv_limit(inputs):
            ltv = combined_ltv(inputs)
            return (
                jsonify({"error": "Combined loan-to-value ratio exceeds 100%", "combined_ltv": ltv}),
                422,
            )
        return _respond("heloc", inputs, compute_heloc_analysis(inputs))

    @app.post("/api/blended")
    def blended():
        data = _payload()
        costs = data.get("additional_costs") or {}
        params = BlendedParams(
            home_value=coerce_float(data.get("home_value")),
            down_payment=coerce_float(data.get("down_payment")),
            first_mortgage=_component(data.get("first_mortgage")),
            second_mortgage=_component(data.get("second_mortgage"), default_type=LOAN_TYPE_HELOC),
            additional_components=[_component(c) for c in data.get("additional_components") or []],
            additional_costs=AdditionalCosts(
                property_tax=coerce_float(costs.get("property_tax")),
                insurance=coerce_float(costs.get("insurance")),
                pmi=coerce_float(costs.get("pmi")),
                other=coerce_float(costs.get("other")),
            ),
        )
        return _respond("blended", params, calculate_blended_mortgage(params))

    @app.post("/api/compare")
    def compare():
        data = _payload()
        mode = EvaluationMode(data.get("mode") or EvaluationMode.TOTAL_OUT_OF_POCKET.value)
        loans = [build_fixed_loan_schedule(_loan_input(item, i)) for i, item in enumerate(data.get("loans") or [])]
        best = determine_best_loan(loans, mode)
        return jsonify(
            {
                "mode": mode.value,
                "best_index": loans.index(best) if best is not None else None,
                "loans": comparison_rows(loans, best),
                "results": to_serializable(loans),
            }
        )

    @app.get("/api/scenarios")
    def list_scenarios():
        user_token = _ensure_user_token()
        return jsonify(scenario_store.list_scenarios(user_token, request.args.get("kind")))

    @app.post("/api/scenarios")
    def save_scenario():
        data = _payload()
        kind = str(data.get("kind") or "").strip()
        if not kind:
            raise ValueError("Missing required field: kind")
        scenario_id = uuid4().hex
        name = str(data.get("name") or "").strip() or "Scenario"
        scenario_store.add_scenario(
            _ensure_user_token(), scenario_id, kind, name, data.get("inputs") or {}, data.get("result")
        )
        return jsonify({"id": scenario_id}), 201

    @app.delete("/api/scenarios/<scenario_id>")
    def remove_scenario(scenario_id: str):
        removed = scenario_store.remove_scenario(session.get("user_token"), scenario_id)
        if not removed:
            return jsonify({"error": "Scenario not found"}), 404
        return "", 204

    @app.post("/api/scenarios/clear")
    def clear_scenarios():
        scenario_store.clear_scenarios(session.get("user_token"))
        return "", 204

    return app


if __name__ == "__main__":
    print("Starting mortgage calculator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
