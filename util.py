from __future__ import annotations
import logging
import math
import numpy as np
import pandas as pd
from typing import Dict, Iterable, Mapping, Optional

from calculator import Assumptions, FunnelResult, Toggles, compute

logger = logging.getLogger(__name__)

PLACEHOLDER = "—"

WHAT_IF_LABELS = {
    "email_buyers_up10": "Increase email buyers by 10%",
    "platform_buyers_up10": "Increase platform buyers by 10%",
    "bump_take_rate_up10": "Increase order bump take rate by 10%",
    "upsell_take_rate_up10": "Increase upsell offer take rate by 10%",
}

# ------------------------------
# Formatting & parsing
# ------------------------------

def fmt_currency(x) -> str:
    if not math.isfinite(x):
        return PLACEHOLDER
    if x < 0:
        return f"-${abs(x):,.2f}"
    return f"${x:,.2f}"

def fmt_pct(x) -> str:
    if not math.isfinite(x):
        return PLACEHOLDER
    return f"{x:.1f}%"

def fmt_count(x) -> str:
    if not math.isfinite(x):
        return PLACEHOLDER
    return f"{x:,.0f}"

def parse_number(value) -> float:
    """
    Read a widget value the way a numeric input does: blanks are 0,
    anything that is not a number is NaN. No range checks.
    """
    if isinstance(value, bool):
        raise TypeError("expected a number, got a bool")
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return float(value)

# ------------------------------
# Result views
# ------------------------------

def result_frame(r: FunnelResult) -> pd.DataFrame:
    return pd.DataFrame(list(r.as_dict().items()), columns=["Metric", "Value"])

def funnel_stages(r: FunnelResult) -> pd.DataFrame:
    return pd.DataFrame({
        "Stage": ["Reach", "Buyers", "Order bump", "Upsell"],
        "Value": [r.total_reach, r.total_buyers, r.bump_buyers, r.upsell_buyers],
    })

# ------------------------------
# Scenarios and sensitivity
# ------------------------------

def tier_table(a: Assumptions, toggles: Optional[Toggles], tiers: Iterable[Mapping]) -> pd.DataFrame:
    """
    Same assumptions at each audience tier; only audience size changes.
    """
    rows = []
    for tier in tiers:
        r = compute(a.replace(audience_size=tier["size"]), toggles)
        rows.append({
            "Tier": tier["name"],
            "Audience": tier["size"],
            "Total buyers": r.total_buyers,
            "Per launch": r.gross_after_refunds,
            "Annual gross": r.annual_gross,
        })
    logger.debug("tier table built for %d tiers", len(rows))
    return pd.DataFrame(rows)

def what_if_table(a: Assumptions, toggles: Optional[Toggles] = None) -> pd.DataFrame:
    """
    Baseline (no what-ifs) next to each what-if on its own and the current
    combination. Lift is measured against the baseline annual gross.
    """
    scenarios: Dict[str, Toggles] = {"Baseline": Toggles()}
    for name, label in WHAT_IF_LABELS.items():
        scenarios[label] = Toggles(**{name: True})
    current = toggles or Toggles()
    if len(current.active()) > 1:
        scenarios["Current selection"] = current

    base_annual = compute(a).annual_gross
    rows = []
    for label, t in scenarios.items():
        r = compute(a, t)
        rows.append({
            "Scenario": label,
            "Total buyers": r.total_buyers,
            "Bump buyers": r.bump_buyers,
            "Upsell buyers": r.upsell_buyers,
            "Per launch": r.gross_after_refunds,
            "Annual gross": r.annual_gross,
            "Annual lift": r.annual_gross - base_annual,
        })
    return pd.DataFrame(rows)

SENSITIVITY_DRIVERS = [
    ("Average reach", "reach_rate"),
    ("Platform CTR", "platform_ctr"),
    ("Platform conversion", "platform_cvr"),
    ("Email CTR", "email_ctr"),
    ("Email conversion", "email_cvr"),
    ("Front-end price", "fe_price"),
    ("Bump take rate", "bump_take_rate"),
    ("Upsell take rate", "upsell_take_rate"),
    ("Refund rate", "refund_rate"),
]

def one_at_a_time_sensitivity(a: Assumptions, toggles: Optional[Toggles] = None, step: float = 0.10) -> pd.DataFrame:
    """
    Perturb each driver +/- step and report the change in annual gross.
    """
    baseline = compute(a, toggles).annual_gross
    rows = []
    for label, field in SENSITIVITY_DRIVERS:
        v = getattr(a, field)
        up = compute(a.replace(**{field: v * (1 + step)}), toggles).annual_gross
        dn = compute(a.replace(**{field: v * (1 - step)}), toggles).annual_gross
        rows.append({"Driver": label, "Down": dn - baseline, "Up": up - baseline, "Range": abs(up - dn)})
    df = pd.DataFrame(rows).sort_values("Range", ascending=False, kind="stable").reset_index(drop=True)
    logger.debug("sensitivity step=%.2f top driver=%s", step, df.loc[0, "Driver"])
    return df

def audience_sweep(a: Assumptions, toggles: Optional[Toggles], low: float, high: float, points: int = 25) -> pd.DataFrame:
    sizes = np.linspace(low, high, points)
    rows = []
    for size in sizes:
        r = compute(a.replace(audience_size=float(size)), toggles)
        rows.append({"Audience": float(size), "Total buyers": r.total_buyers, "Annual gross": r.annual_gross})
    return pd.DataFrame(rows)
