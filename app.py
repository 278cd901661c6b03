# app.py
# Streamlit Creator Digital Product Revenue Calculator
# Run: streamlit run app.py

import logging
import math
import os
import plotly.graph_objects as go
import plotly.express as px
import streamlit as st

from calculator import Toggles, compute
from config import FIELDS, ConfigError, assumptions_from_mapping, load_config
from util import (
    PLACEHOLDER, WHAT_IF_LABELS, audience_sweep, fmt_count, fmt_currency, fmt_pct, funnel_stages,
    one_at_a_time_sensitivity, result_frame, tier_table, what_if_table,
)

logging.basicConfig(
    level=os.environ.get("FUNNEL_CALC_LOG_LEVEL", "WARNING"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------
# Config & session defaults
# ---------------------------

st.set_page_config(page_title="Creator Digital Product Revenue Calculator", layout="wide")

try:
    CFG = load_config()
except ConfigError as exc:
    logger.error("Config rejected: %s", exc)
    st.error(f"Configuration error: {exc}")
    st.stop()

for key, value in CFG["assumptions"].items():
    if key not in st.session_state:
        st.session_state[key] = value
if "tier" not in st.session_state:
    st.session_state["tier"] = CFG["default_tier"]

def select_tier(name, size):
    # runs before the rerun, so the audience widget picks up the new value
    st.session_state["tier"] = name
    st.session_state["audience_size"] = size

# ---------------------------
# Header & tiers
# ---------------------------

st.title("Creator Digital Product Revenue Calculator")
st.caption("Enter your assumptions to project how much your own digital products can increase your revenue.")
st.caption("Notes: This is a directional model, not a forecast. Real-world performance varies with audience "
           "and list quality, offer-market fit, and promo strategy.")

tier_cols = st.columns(len(CFG["tiers"]))
for col, tier in zip(tier_cols, CFG["tiers"]):
    col.button(
        tier["name"],
        key=f"tier_{tier['name']}",
        type="primary" if st.session_state["tier"] == tier["name"] else "secondary",
        on_click=select_tier, args=(tier["name"], tier["size"]),
        use_container_width=True,
    )

# ---------------------------
# Inputs
# ---------------------------

with st.sidebar:
    st.header("Inputs")
    for key, (label, suffix, step, note) in FIELDS.items():
        whole = isinstance(step, int)
        # widget type follows min_value/step, keep session value consistent
        st.session_state[key] = int(st.session_state[key]) if whole else float(st.session_state[key])
        st.number_input(
            f"{label} ({suffix})" if suffix else label,
            min_value=0 if whole else 0.0,
            step=step,
            key=key,
            help=note,
        )

    st.markdown("### What-if toggles")
    for name, label in WHAT_IF_LABELS.items():
        st.toggle(label, key=name)

inputs = assumptions_from_mapping({key: st.session_state[key] for key in FIELDS})
whatif = Toggles(**{name: st.session_state[name] for name in WHAT_IF_LABELS})
calc = compute(inputs, whatif)
logger.info("Recomputed: %s buyers, annual %s", calc.total_buyers, fmt_currency(calc.annual_gross))

# ---------------------------
# KPI header
# ---------------------------

def reach_note(pct, channel):
    return f"{fmt_pct(pct)} of {channel} reach" if math.isfinite(pct) else PLACEHOLDER

c1, c2, c3 = st.columns(3)
c1.metric("Platform buyers", fmt_count(calc.platform_buyers))
c1.caption(reach_note(calc.platform_buyer_pct_of_reach, "platform"))
c2.metric("Email buyers", fmt_count(calc.email_buyers))
c2.caption(reach_note(calc.email_buyer_pct_of_reach, "email"))
c3.metric("Total buyers", fmt_count(calc.total_buyers))
c3.caption(reach_note(calc.total_buyer_pct_of_reach, "total"))

if whatif.active():
    st.caption("Active what-ifs: " + ", ".join(WHAT_IF_LABELS[n] for n in whatif.active()))

# ---------------------------
# Per launch & annualized
# ---------------------------

st.markdown("---")
col_launch, col_year = st.columns(2)
with col_launch:
    st.subheader("Per launch")
    st.markdown(f"""
| | |
|---|---:|
| Front-end offer sales | {fmt_currency(calc.fe_revenue)} |
| Order bump sales ({fmt_count(calc.bump_buyers)} buyers) | {fmt_currency(calc.bump_revenue)} |
| Upsell offer sales ({fmt_count(calc.upsell_buyers)} buyers) | {fmt_currency(calc.upsell_revenue)} |
| Gross sales subtotal | {fmt_currency(calc.gross_subtotal)} |
| Refunds | -{fmt_currency(calc.refunds)} |
| **Gross sales (after refunds)** | **{fmt_currency(calc.gross_after_refunds)}** |
""".replace("$", "\\$"))
with col_year:
    st.subheader("Annualized")
    st.metric("Launches per year", f"{inputs.launches_per_year:g}")
    st.metric("Estimated annual gross", fmt_currency(calc.annual_gross))

# ---------------------------
# Tabs
# ---------------------------

tab_funnel, tab_tiers, tab_whatif, tab_sens, tab_sweep = st.tabs(
    ["Funnel", "Audience tiers", "What-if", "Sensitivity", "Audience sweep"])

with tab_funnel:
    stages = funnel_stages(calc)
    fig = go.Figure(go.Funnel(
        y = stages["Stage"],
        x = stages["Value"],
        textinfo="value+percent previous"
    ))
    fig.update_layout(height=400, margin=dict(l=20,r=20,t=20,b=20))
    st.plotly_chart(fig, use_container_width=True)

    csv = result_frame(calc).to_csv(index=False).encode("utf-8")
    st.download_button("Download results (CSV)", csv, "funnel_results.csv", "text/csv")

with tab_tiers:
    st.subheader("Same assumptions at each audience tier")
    tiers = tier_table(inputs, whatif, CFG["tiers"])
    for col in ["Per launch", "Annual gross"]:
        tiers[col] = tiers[col].map(fmt_currency)
    st.dataframe(tiers, use_container_width=True, hide_index=True)

with tab_whatif:
    st.subheader("What each what-if adds on its own")
    wi = what_if_table(inputs, whatif)
    for col in ["Per launch", "Annual gross", "Annual lift"]:
        wi[col] = wi[col].map(fmt_currency)
    st.dataframe(wi, use_container_width=True, hide_index=True)

with tab_sens:
    step = CFG["analysis"]["sensitivity_step"]
    st.subheader(f"What moves annual gross most? (±{step*100:.0f}% per driver)")
    sens = one_at_a_time_sensitivity(inputs, whatif, step)
    figt = go.Figure()
    figt.add_trace(go.Bar(y=sens["Driver"], x=sens["Down"], orientation='h', name="Down"))
    figt.add_trace(go.Bar(y=sens["Driver"], x=sens["Up"], orientation='h', name="Up"))
    figt.update_layout(barmode="overlay", height=460, margin=dict(l=20,r=20,t=20,b=20))
    st.plotly_chart(figt, use_container_width=True)
    st.dataframe(sens, use_container_width=True, hide_index=True)

with tab_sweep:
    sizes = [t["size"] for t in CFG["tiers"]]
    sweep = audience_sweep(inputs, whatif, min(sizes), max(sizes), CFG["analysis"]["sweep_points"])
    figs = px.line(sweep, x="Audience", y="Annual gross", markers=True)
    figs.update_layout(height=420, margin=dict(l=20,r=20,t=20,b=20))
    st.plotly_chart(figs, use_container_width=True)
    st.caption("Annual gross across the tier range, every other assumption held fixed.")
