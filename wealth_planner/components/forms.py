import pandas as pd
import streamlit as st

from ..config import DEFAULTS, PROJECTION_METHODS
from ..models import ASSET_TYPES, LIABILITY_TYPES

# Stable widget keys so we can programmatically set values on load
WIDGET_KEYS = {
    "current_age": "in_current_age",
    "retirement_age": "in_retirement_age",
    "life_expectancy": "in_life_expectancy",
    "inflation_rate": "in_inflation_rate",
    "tax_year": "in_tax_year",
    "desired_income": "in_desired_income",

    "assets": "in_assets",
    "liabilities": "in_liabilities",

    "strategy_type": "in_strategy_type",
    "swr_rate": "in_swr_rate",
    "swp_amount": "in_swp_amount",
    "inflation_adjusted": "in_inflation_adjusted",

    "projection_method": "in_projection_method",
    "n_simulations": "in_n_simulations",
}

ASSET_COLUMNS = [
    "name", "type", "currentValue", "contributionAmount", "contributionFrequency",
    "expectedReturn", "volatility", "employerContribution", "governmentContribution",
]
LIABILITY_COLUMNS = ["name", "type", "currentBalance", "interestRate", "monthlyPayment"]

DEFAULT_ASSETS = [
    {"name": "KiwiSaver", "type": "kiwisaver", "currentValue": 45000.0, "contributionAmount": 150.0,
     "contributionFrequency": "weekly", "expectedReturn": 0.06, "volatility": 0.12,
     "employerContribution": 2400.0, "governmentContribution": 521.43},
    {"name": "Share Portfolio", "type": "portfolio", "currentValue": 60000.0, "contributionAmount": 500.0,
     "contributionFrequency": "monthly", "expectedReturn": 0.07, "volatility": 0.15},
    {"name": "Salary", "type": "income", "currentValue": 85000.0, "expectedReturn": 0.0, "volatility": 0.0},
]
DEFAULT_LIABILITIES = [
    {"name": "Home Mortgage", "type": "mortgage", "currentBalance": 450000.0,
     "interestRate": 0.065, "monthlyPayment": 2900.0},
]


def _d(key, fallback):
    return st.session_state.get("form_defaults", {}).get(key, fallback)


def frame_to_records(df: pd.DataFrame) -> list:
    """Rows of an edited table as request dicts, skipping blank names and cells."""
    records = []
    for row in df.to_dict("records"):
        clean = {k: v for k, v in row.items() if not (v is None or (isinstance(v, float) and pd.isna(v)) or v == "")}
        if clean.get("name"):
            records.append(clean)
    return records


def plan_form() -> dict:
    """Render the sidebar and tables; return a projection request body."""
    # -------- Profile --------
    st.sidebar.header("Profile")
    current_age = st.sidebar.number_input(
        "Current age", min_value=18, max_value=120,
        value=_d("current_age", 40), key=WIDGET_KEYS["current_age"],
        help="Your age today. Drives the start of the projection window."
    )
    retirement_age = st.sidebar.number_input(
        "Retirement age", min_value=18, max_value=120,
        value=_d("retirement_age", 65), key=WIDGET_KEYS["retirement_age"],
        help="Contributions and income stop here; withdrawals begin."
    )
    life_expectancy = st.sidebar.number_input(
        "Plan through age", min_value=18, max_value=120,
        value=_d("life_expectancy", DEFAULTS["life_expectancy"]), key=WIDGET_KEYS["life_expectancy"],
        help="Projection horizon used for success rate."
    )
    inflation_rate = st.sidebar.number_input(
        "Inflation rate", min_value=0.0, max_value=0.2, step=0.005, format="%.3f",
        value=_d("inflation_rate", DEFAULTS["inflation_rate"]), key=WIDGET_KEYS["inflation_rate"],
    )
    tax_year = st.sidebar.selectbox(
        "Tax year", [2024, 2025], index=0, key=WIDGET_KEYS["tax_year"],
    )
    desired_income = st.sidebar.number_input(
        "Desired retirement income (0 = none)", min_value=0.0, step=1000.0,
        value=_d("desired_income", 0.0), key=WIDGET_KEYS["desired_income"],
    )

    # -------- Withdrawals --------
    st.sidebar.header("Withdrawals")
    strategy_type = st.sidebar.radio(
        "Strategy", ["swr", "swp"], key=WIDGET_KEYS["strategy_type"],
        format_func=lambda s: "Safe withdrawal rate" if s == "swr" else "Fixed amount (SWP)",
    )
    inflation_adjusted = st.sidebar.checkbox(
        "Inflation adjusted", value=True, key=WIDGET_KEYS["inflation_adjusted"],
    )
    strategy = {"type": strategy_type, "inflationAdjusted": inflation_adjusted}
    if strategy_type == "swr":
        strategy["rate"] = st.sidebar.number_input(
            "Withdrawal rate", min_value=0.0, max_value=0.2, step=0.0025, format="%.4f",
            value=_d("swr_rate", DEFAULTS["swr_rate"]), key=WIDGET_KEYS["swr_rate"],
        )
    else:
        strategy["fixedAmount"] = st.sidebar.number_input(
            "Annual withdrawal", min_value=0.0, step=1000.0,
            value=_d("swp_amount", 40000.0), key=WIDGET_KEYS["swp_amount"],
        )

    # -------- Method --------
    st.sidebar.header("Method")
    projection_method = st.sidebar.selectbox(
        "Projection method", list(PROJECTION_METHODS), index=1, key=WIDGET_KEYS["projection_method"],
    )
    n_simulations = st.sidebar.number_input(
        "Simulations", min_value=100, max_value=20000, step=100,
        value=_d("n_simulations", DEFAULTS["simulation_count"]), key=WIDGET_KEYS["n_simulations"],
    )

    # -------- Balance sheet --------
    st.subheader("Assets")
    assets_df = st.data_editor(
        pd.DataFrame(_d("assets", DEFAULT_ASSETS), columns=ASSET_COLUMNS),
        num_rows="dynamic", use_container_width=True, key=WIDGET_KEYS["assets"],
        column_config={
            "type": st.column_config.SelectboxColumn("type", options=list(ASSET_TYPES)),
            "contributionFrequency": st.column_config.SelectboxColumn(
                "contributionFrequency", options=["annual", "monthly", "weekly"]
            ),
        },
    )
    st.subheader("Liabilities")
    liabilities_df = st.data_editor(
        pd.DataFrame(_d("liabilities", DEFAULT_LIABILITIES), columns=LIABILITY_COLUMNS),
        num_rows="dynamic", use_container_width=True, key=WIDGET_KEYS["liabilities"],
        column_config={
            "type": st.column_config.SelectboxColumn("type", options=list(LIABILITY_TYPES)),
        },
    )

    goals = {
        "retirementAge": int(retirement_age),
        "lifeExpectancy": int(life_expectancy),
        "inflationRate": float(inflation_rate),
    }
    if desired_income > 0:
        goals["desiredAnnualIncome"] = float(desired_income)

    return {
        "currentAge": int(current_age),
        "goals": goals,
        "assets": frame_to_records(assets_df),
        "liabilities": frame_to_records(liabilities_df),
        "inflationRate": float(inflation_rate),
        "taxYear": int(tax_year),
        "withdrawalStrategy": strategy,
        "projectionMethod": projection_method,
        "numSimulations": int(n_simulations),
    }
