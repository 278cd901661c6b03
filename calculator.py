from __future__ import annotations
import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

WHAT_IF_MULTIPLIER = 1.1

_MAX_EXACT_INT = 2 ** 53

# ------------------------------
# Helpers
# ------------------------------

def round_half_up(x: float):
    """
    Round to the nearest whole number, halves going up (2.5 -> 3, -2.5 -> -2).
    NaN and infinities come back unchanged; results of 2**53 or more come
    back as floats.
    """
    if not math.isfinite(x):
        return x
    r = math.floor(x)
    if x - r >= 0.5:
        r += 1
    return r if abs(r) < _MAX_EXACT_INT else float(r)

def _pct_of(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else math.nan

# ------------------------------
# Core data structures
# ------------------------------

@dataclass(frozen=True)
class Assumptions:
    # Platform channel
    audience_size: float      # total followers on the main platform(s)
    reach_rate: float         # % of audience who see the promo
    platform_ctr: float       # % of reached who click to the sales page

    # Email channel
    email_subscribers: float
    email_ctr: float          # % of subscribers who click the email

    # Conversion (% of clickers who buy)
    platform_cvr: float
    email_cvr: float

    # Offer stack
    fe_price: float
    bump_price: float
    bump_take_rate: float     # % of all buyers adding the bump
    upsell_price: float
    upsell_take_rate: float   # % of all buyers taking the upsell

    refund_rate: float        # % of FE + bump + upsell combined
    launches_per_year: float

    def replace(self, **changes) -> "Assumptions":
        return replace(self, **changes)

@dataclass(frozen=True)
class Toggles:
    email_buyers_up10: bool = False
    platform_buyers_up10: bool = False
    bump_take_rate_up10: bool = False
    upsell_take_rate_up10: bool = False

    def active(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

@dataclass(frozen=True)
class FunnelResult:
    platform_reach: float
    email_reach: float
    total_reach: float
    platform_buyers: int
    email_buyers: int
    total_buyers: int
    platform_buyer_pct_of_reach: float
    email_buyer_pct_of_reach: float
    total_buyer_pct_of_reach: float
    fe_revenue: float
    bump_revenue: float
    upsell_revenue: float
    gross_subtotal: float
    refunds: float
    gross_after_refunds: float
    annual_gross: float
    bump_buyers: int
    upsell_buyers: int

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

# ------------------------------
# Calculation engine
# ------------------------------

def compute(a: Assumptions, toggles: Optional[Toggles] = None) -> FunnelResult:
    """
    Project one launch of the funnel and its annualized gross.

    Buyers are whole people: each channel is rounded on its own (after any
    what-if lift) and the rounded counts are summed. Bump and upsell take
    rates apply to all buyers. Percent-of-reach figures are NaN when the
    matching reach is not positive.
    """
    t = toggles or Toggles()

    # Reach (email "reach" is clicks from the list)
    platform_reach = a.audience_size * (a.reach_rate / 100)
    email_reach = a.email_subscribers * (a.email_ctr / 100)

    # Fractional buyers, what-if lifts applied before rounding
    platform_raw = platform_reach * (a.platform_ctr / 100) * (a.platform_cvr / 100)
    email_raw = email_reach * (a.email_cvr / 100)
    if t.platform_buyers_up10:
        platform_raw *= WHAT_IF_MULTIPLIER
    if t.email_buyers_up10:
        email_raw *= WHAT_IF_MULTIPLIER

    platform_buyers = round_half_up(platform_raw)
    email_buyers = round_half_up(email_raw)
    total_buyers = platform_buyers + email_buyers

    adj_bump_take = a.bump_take_rate * WHAT_IF_MULTIPLIER if t.bump_take_rate_up10 else a.bump_take_rate
    adj_upsell_take = a.upsell_take_rate * WHAT_IF_MULTIPLIER if t.upsell_take_rate_up10 else a.upsell_take_rate

    bump_buyers = round_half_up(total_buyers * (adj_bump_take / 100))
    upsell_buyers = round_half_up(total_buyers * (adj_upsell_take / 100))

    # Revenues
    fe_revenue = total_buyers * a.fe_price
    bump_revenue = bump_buyers * a.bump_price
    upsell_revenue = upsell_buyers * a.upsell_price

    gross_subtotal = fe_revenue + bump_revenue + upsell_revenue
    refunds = gross_subtotal * (a.refund_rate / 100)
    gross_after_refunds = gross_subtotal - refunds
    annual_gross = gross_after_refunds * a.launches_per_year

    total_reach = platform_reach + email_reach

    logger.debug(
        "computed funnel: buyers=%s (platform=%s, email=%s) annual_gross=%.2f toggles=%s",
        total_buyers, platform_buyers, email_buyers, annual_gross, t.active(),
    )

    return FunnelResult(
        platform_reach=platform_reach,
        email_reach=email_reach,
        total_reach=total_reach,
        platform_buyers=platform_buyers,
        email_buyers=email_buyers,
        total_buyers=total_buyers,
        platform_buyer_pct_of_reach=_pct_of(platform_buyers, platform_reach),
        email_buyer_pct_of_reach=_pct_of(email_buyers, email_reach),
        total_buyer_pct_of_reach=_pct_of(total_buyers, total_reach),
        fe_revenue=fe_revenue,
        bump_revenue=bump_revenue,
        upsell_revenue=upsell_revenue,
        gross_subtotal=gross_subtotal,
        refunds=refunds,
        gross_after_refunds=gross_after_refunds,
        annual_gross=annual_gross,
        bump_buyers=bump_buyers,
        upsell_buyers=upsell_buyers,
    )
