"""REST adapter for the projection engine."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List

from flask import Flask, jsonify, request

from finplan.data_model import (
    MemberConfig,
    ProjectionConfig,
    mode_for_members,
    record_to_settings,
    records_to_accounts,
    records_to_capital_expenses,
    records_to_expenses,
    records_to_income,
    records_to_members,
    records_to_withdrawal_order,
)
from finplan.data_model.base import as_bool, as_float, extract_value
from finplan.engine import (
    ScenarioOverrides,
    calculate_cgt,
    calculate_income_tax,
    compare_scenarios,
    results_to_frame,
    run_projection,
    tax_constants,
)
from finplan.settings import configure_logging, load_settings

logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = load_settings()

PAYLOAD_ERRORS = (KeyError, TypeError, ValueError)

# Horizon used when a payload has no explicit target year.
MEMBER_HORIZON_YEARS = 100
DEFAULT_HORIZON_YEARS = 30

parse_accounts = records_to_accounts
parse_income = records_to_income
parse_expenses = records_to_expenses
parse_capital_expenses = records_to_capital_expenses
parse_members = records_to_members
parse_withdrawal_order = records_to_withdrawal_order


def parse_settings(row: Dict[str, Any] | None):
    return record_to_settings(row, default_bracket_inflation_pct=settings.bracket_inflation_rate_pct)


def _is_nan(value: Any) -> bool:
    try:
        return not math.isfinite(value)
    except (TypeError, ValueError):
        return False


def _sanitize(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sanitize(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize(item) for item in value]
    if isinstance(value, bool):
        return value
    return None if _is_nan(value) else value


def _sanitize_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [_sanitize(row) for row in records]


def _default_target_year(current_year: int, members: List[MemberConfig]) -> int:
    if members:
        return max(m.birth_year for m in members) + MEMBER_HORIZON_YEARS
    return current_year + DEFAULT_HORIZON_YEARS


def parse_config(payload: Dict[str, Any]) -> ProjectionConfig:
    current_year = int(extract_value(payload, "currentYear", "current_year", default=date.today().year))
    members = parse_members(payload.get("members") or [])
    target_year = extract_value(payload, "targetYear", "target_year")
    target_year = int(target_year) if target_year is not None else _default_target_year(current_year, members)
    mode = mode_for_members(
        members,
        parse_settings(payload.get("settings")),
        parse_withdrawal_order(extract_value(payload, "withdrawalOrder", "withdrawal_order", default=[])),
    )
    return ProjectionConfig(
        current_year=current_year,
        target_year=target_year,
        inflation_rate_pct=as_float(
            extract_value(payload, "inflationRatePct", "inflation_rate_pct"), settings.inflation_rate_pct
        ),
        accounts=parse_accounts(payload.get("accounts") or []),
        income=parse_income(payload.get("income") or payload.get("incomes") or []),
        expenses=parse_expenses(payload.get("expenses") or []),
        capital_expenses=parse_capital_expenses(
            extract_value(payload, "capitalExpenses", "capital_expenses", default=[])
        ),
        mode=mode,
    )


def parse_overrides(payload: Dict[str, Any] | None) -> ScenarioOverrides:
    payload = payload or {}

    def _opt(*keys: str):
        value = extract_value(payload, *keys)
        return None if value is None or value == "" else float(value)

    retirement_age = _opt("retirementAge", "retirement_age")
    return ScenarioOverrides(
        annual_return_pct=_opt("annualReturnPct", "returnPct", "annual_return_pct"),
        monthly_contribution=_opt("monthlyContribution", "monthly_contribution"),
        inflation_rate_pct=_opt("inflationRatePct", "inflation_rate_pct"),
        retirement_age=int(retirement_age) if retirement_age is not None else None,
        expense_adjust_pct=_opt("expenseAdjustPct", "expense_adjust_pct"),
        lump_sum=_opt("lumpSum", "lump_sum"),
    )


def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


@app.after_request
def apply_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.get("/api/health")
def healthcheck():
    return jsonify({"status": "ok"})


@app.get("/api/tax/constants")
def get_tax_constants():
    return jsonify(tax_constants())


@app.post("/api/tax/income")
def income_tax_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        result = calculate_income_tax(
            as_float(extract_value(payload, "taxableIncome", "taxable_income")),
            int(as_float(extract_value(payload, "age"), 40.0)),
            as_float(extract_value(payload, "yearsFromBase", "years_from_base")),
            as_float(
                extract_value(payload, "bracketInflationRatePct", "bracket_inflation_rate_pct"),
                settings.bracket_inflation_rate_pct,
            )
            / 100,
        )
    except PAYLOAD_ERRORS as exc:
        return _error(f"Invalid tax parameters: {exc}")
    return jsonify(vars(result))


@app.post("/api/tax/cgt")
def cgt_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        remaining = extract_value(payload, "remainingAnnualExclusion", "remaining_annual_exclusion")
        result = calculate_cgt(
            as_float(extract_value(payload, "capitalGain", "capital_gain")),
            as_float(extract_value(payload, "marginalRate", "marginal_rate")),
            remaining_annual_exclusion=as_float(remaining) if remaining is not None else None,
            primary_residence_exclusion=as_float(
                extract_value(payload, "primaryResidenceExclusion", "primary_residence_exclusion")
            ),
            is_death_event=as_bool(extract_value(payload, "isDeathEvent", "is_death_event", default=False)),
        )
    except PAYLOAD_ERRORS as exc:
        return _error(f"Invalid CGT parameters: {exc}")
    return jsonify(vars(result))


@app.post("/api/projection")
def projection_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        config = parse_config(payload)
    except PAYLOAD_ERRORS as exc:
        return _error(f"Invalid projection config: {exc}")

    logger.info(
        "projection request: %d accounts, %d members, %d-%d",
        len(config.accounts),
        len(config.members),
        config.current_year,
        config.target_year,
    )
    results = run_projection(config)
    if str(payload.get("format", "")).lower() == "table":
        frame = results_to_frame(results, scenario=str(payload.get("name", "Baseline")))
        return jsonify({"years": _sanitize_records(frame.to_dict(orient="records"))})
    return jsonify({"years": _sanitize_records([row.to_dict() for row in results])})


@app.post("/api/scenarios/compare")
def compare_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        config = parse_config(payload.get("baseline") or payload)
        overrides = parse_overrides(payload.get("overrides"))
    except PAYLOAD_ERRORS as exc:
        return _error(f"Invalid scenario: {exc}")

    comparison = compare_scenarios(config, overrides)
    return jsonify(
        {
            "chart": _sanitize_records(comparison.frame.to_dict(orient="records")),
            "baselineRetirementYear": comparison.baseline_retirement_year,
            "scenarioRetirementYear": comparison.scenario_retirement_year,
            "baselineAtRetirement": comparison.baseline_at_retirement,
            "scenarioAtRetirement": comparison.scenario_at_retirement,
            "difference": comparison.difference,
        }
    )


if __name__ == "__main__":
    configure_logging(settings)
    app.run(debug=False, port=settings.port)
