import pytest

from wealth_planner.api import handle_projection_request
from wealth_planner.components.charts import ChartSpecBuilder, NET_WORTH


def _body(**overrides):
    body = {
        "currentAge": 60,
        "goals": {"retirementAge": 63, "lifeExpectancy": 70},
        "assets": [
            {"name": "Shares", "type": "portfolio", "currentValue": 500000,
             "expectedReturn": 0.06, "volatility": 0.12},
            {"name": "Salary", "type": "income", "currentValue": 90000},
        ],
        "liabilities": [
            {"name": "Mortgage", "type": "mortgage", "currentBalance": 50000,
             "interestRate": 0.06, "monthlyPayment": 1500},
        ],
        "numSimulations": 25,
    }
    body.update(overrides)
    return body


def _run(body, **kwargs):
    kwargs.setdefault("start_year", 2024)
    kwargs.setdefault("seed", 11)
    return handle_projection_request(body, **kwargs)


@pytest.mark.parametrize(
    "body, message",
    [
        ([1, 2], "Request body must be a JSON object"),
        ({"currentAge": 30, "goals": {"retirementAge": 65}},
         "Missing required fields. Required: currentAge, goals, assets"),
        (_body(goals={"lifeExpectancy": 90}), "goals.retirementAge is required"),
        (_body(projectionMethod="historical"),
         "Invalid projectionMethod. Must be one of: deterministic, monteCarlo"),
        (_body(responseFormat="csv"), "Invalid responseFormat. Must be one of: full, dataOnly"),
        (_body(numSimulations=0), "numSimulations must be at least 1"),
    ],
)
def test_bad_requests(body, message):
    status, payload = _run(body)
    assert status == 400
    assert payload == {"error": message}


def test_invalid_field_is_a_bad_request():
    status, payload = _run(_body(assets=[{"name": "A", "type": "crypto"}]))
    assert status == 400
    assert "crypto" in payload["error"]


def test_monte_carlo_is_the_default():
    status, spec = _run(_body())
    assert status == 200
    assert spec["projectionMethod"] == "monteCarlo"
    assert 0.0 <= spec["successRate"] <= 100.0
    assert spec["retirementAge"] == 63
    ages = [r["age"] for r in spec["values"] if r["category"] == NET_WORTH]
    assert ages == list(range(60, 71))
    assert all(r["value"] == 0.0 for r in spec["values"] if r["category"] == "Mortgage")


def test_deterministic_full_response():
    status, spec = _run(_body(projectionMethod="deterministic"))
    assert status == 200
    assert spec["projectionMethod"] == "deterministic"
    assert "successRate" not in spec
    mortgage = [r["value"] for r in spec["values"] if r["category"] == "Mortgage"]
    assert mortgage[0] == 50000
    assert mortgage[-1] == 0.0
    assert set(spec["figure"]) >= {"data", "layout"}


def test_data_only_response():
    status, rows = _run(_body(projectionMethod="deterministic", responseFormat="dataOnly"))
    assert status == 200
    assert isinstance(rows, list)
    assert len(rows) == 11 * 4
    assert rows[0]["category"] == NET_WORTH


def test_desired_income_becomes_fixed_withdrawal():
    goals = {"retirementAge": 63, "lifeExpectancy": 70, "desiredAnnualIncome": 30000, "inflationRate": 0.0}
    status, rows = _run(_body(goals=goals, inflationRate=0.0, projectionMethod="deterministic",
                              responseFormat="dataOnly"))
    assert status == 200
    withdrawals = {r["age"]: r["withdrawalAmount"] for r in rows if r["category"] == NET_WORTH}
    assert withdrawals[62] == 0.0
    assert withdrawals[63] == pytest.approx(30000.0)
    assert withdrawals[70] == pytest.approx(30000.0)


def test_unexpected_failure_is_a_server_error():
    class BrokenBuilder(ChartSpecBuilder):
        def build(self, points, retirement_age):
            raise RuntimeError("figure backend unavailable")

    status, payload = _run(_body(projectionMethod="deterministic"), builder=BrokenBuilder())
    assert status == 500
    assert payload == {"error": "Internal server error", "message": "figure backend unavailable"}


def test_rejections_are_logged(caplog):
    with caplog.at_level("INFO", logger="wealth_planner.api"):
        _run(_body(responseFormat="csv"))
    assert "rejected projection request" in caplog.text


def test_malformed_frequency_is_a_bad_request():
    status, payload = _run(_body(assets=[{"name": "A", "contributionFrequency": ["weekly"]}]))
    assert status == 400
    assert "contribution frequency" in payload["error"]
