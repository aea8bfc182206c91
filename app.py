# app.py
import json

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from wealth_planner.calculators import taxes as tax_calc
from wealth_planner.calculators.projections import run_deterministic, run_monte_carlo
from wealth_planner.components.charts import ChartSpecBuilder
from wealth_planner.components.forms import plan_form
from wealth_planner.components.insights import generate_insights
from wealth_planner.config import APP_NAME, configure_logging
from wealth_planner.errors import InvalidInputError
from wealth_planner.models import projection_input_from_dict, withdrawal_strategy_from_dict

configure_logging()

# ---------- Page config ----------
st.set_page_config(page_title=APP_NAME, layout="wide", initial_sidebar_state="auto")

st.markdown(
    """
<style>
.block-container { padding: 1.5rem 2rem; max-width: 1400px; margin: auto; }
div[data-testid="stMetric"] {
    background: #FFFFFF;
    border-radius: 12px;
    padding: 0.75rem 1rem;
    box-shadow: 0 2px 8px rgba(0,0,0,0.05);
}
</style>
""",
    unsafe_allow_html=True,
)

# ---------- Session boot ----------
st.session_state.setdefault("form_defaults", {})
st.session_state.setdefault("auto_run", False)
st.session_state.setdefault("run_now", False)

# The chart builder owns its plotly handle; one per session
if "chart_builder" not in st.session_state:
    st.session_state["chart_builder"] = ChartSpecBuilder(go=go)
builder = st.session_state["chart_builder"]

st.title(APP_NAME)
st.caption("Deterministic and Monte Carlo projections of assets, liabilities and retirement withdrawals.")

body = plan_form()

left, right = st.columns(2)
with left:
    st.session_state["auto_run"] = st.checkbox("Auto run", value=st.session_state["auto_run"])
with right:
    if st.button("Run", type="primary"):
        st.session_state["run_now"] = True

if not (st.session_state["run_now"] or st.session_state["auto_run"]):
    st.info("Adjust the plan and press **Run**.")
    st.stop()
st.session_state["run_now"] = False

try:
    projection_input = projection_input_from_dict(body)
    strategy = withdrawal_strategy_from_dict(body.get("withdrawalStrategy"), projection_input.goals)
except InvalidInputError as exc:
    st.error(str(exc))
    st.stop()

retirement_age = projection_input.goals.retirement_age
success_rate = None
if body["projectionMethod"] == "deterministic":
    points = run_deterministic(projection_input, strategy)
else:
    n_paths = body["numSimulations"]
    with st.spinner(f"Running {n_paths:,} Monte Carlo paths..."):
        result = run_monte_carlo(projection_input, strategy, n_paths)
    points = list(result.median)
    success_rate = result.success_rate

# ---------- Headline ----------
kcol1, kcol2, kcol3 = st.columns(3)
with kcol1:
    if success_rate is not None:
        st.plotly_chart(go.Figure(builder.success_gauge(success_rate)), use_container_width=True)
    else:
        st.metric("Final net worth", f"${points[-1].net_worth:,.0f}" if points else "n/a")
with kcol2:
    income = projection_input.goals.desired_annual_income or sum(
        a.current_value for a in projection_input.assets if a.is_income
    )
    if income:
        tax = tax_calc.compute_income_tax(income, year=projection_input.tax_year)
        st.metric("Income tax on annual income", f"${tax:,.0f}",
                  help=f"Effective rate {tax_calc.effective_tax_rate(income, projection_input.tax_year):.1%}")
with kcol3:
    st.write(generate_insights(points, retirement_age, success_rate))

# ---------- Charts ----------
spec = builder.build(points, retirement_age)
st.plotly_chart(go.Figure(spec["figure"]), use_container_width=True)

c1, c2 = st.columns(2)
with c1:
    if success_rate is not None:
        st.plotly_chart(go.Figure(builder.fan_chart(result)), use_container_width=True)
with c2:
    st.plotly_chart(go.Figure(builder.sustainability_chart(points, retirement_age)), use_container_width=True)

# ---------- Table + downloads ----------
rows = []
for p in points:
    row = {"Age": p.age, "Year": p.year, "Net worth": p.net_worth,
           "Withdrawal": p.withdrawal_amount, "Sustainability": p.sustainability_ratio}
    row.update(p.assets)
    row.update({f"{name} (owed)": bal for name, bal in p.liabilities.items()})
    rows.append(row)
df = pd.DataFrame(rows)
st.dataframe(df, use_container_width=True, height=350)

d1, d2 = st.columns(2)
with d1:
    st.download_button("Download CSV", df.to_csv(index=False), file_name="projection.csv", mime="text/csv")
with d2:
    st.download_button(
        "Download chart data (JSON)", json.dumps(spec["values"], indent=2),
        file_name="projection.json", mime="application/json",
    )
