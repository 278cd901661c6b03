"""
Defaults for the creator funnel revenue calculator.

The assumptions snapshot is the Mid-tier creator; tier buttons only
overwrite audience size. Percentages are 0-100.
"""
from __future__ import annotations
import copy
import json
import logging
import os
from dataclasses import fields
from typing import Dict, Mapping, Optional

from calculator import Assumptions
from util import parse_number

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FUNNEL_CALC_CONFIG"

DEFAULT_CONFIG = {
    "assumptions": {
        "audience_size": 100000,     # Mid-tier default
        "reach_rate": 10.0,
        "platform_ctr": 4.0,
        "email_subscribers": 2500,
        "email_ctr": 5.0,
        "platform_cvr": 2.5,
        "email_cvr": 1.0,
        "fe_price": 37.0,
        "bump_price": 22.0,
        "bump_take_rate": 30.0,
        "upsell_price": 68.0,
        "upsell_take_rate": 20.0,
        "refund_rate": 2.0,
        "launches_per_year": 4,
    },
    "tiers": [
        {"name": "Micro", "size": 10000},
        {"name": "Mid-tier", "size": 100000},
        {"name": "Macro", "size": 500000},
        {"name": "Mega", "size": 1000000},
    ],
    "default_tier": "Mid-tier",
    "analysis": {
        "sensitivity_step": 0.10,
        "sweep_points": 25,
    },
}

# Widget metadata, in form order: (label, suffix, step, note)
FIELDS = {
    "audience_size": ("Audience size", "", 1, "Total followers on your main platform(s)."),
    "reach_rate": ("Average reach per post", "%", 0.1, "% of audience who see the promo."),
    "platform_ctr": ("Platform click-through rate", "%", 0.1, "% of reached who click to sales page."),
    "email_subscribers": ("Existing email subscribers", "", 1, None),
    "email_ctr": ("Email click-through rate", "%", 0.1, "% of subscribers who click the email."),
    "platform_cvr": ("Platform conversion rate (buyers)", "%", 0.1, "% of platform CTR who purchase."),
    "email_cvr": ("Email conversion rate (buyers)", "%", 0.1, "% of email CTR who purchase."),
    "fe_price": ("Front-end offer price", "$", 1.0, None),
    "bump_price": ("Order bump price", "$", 1.0, None),
    "bump_take_rate": ("Order bump take rate", "%", 0.1, "% of buyers who add the bump."),
    "upsell_price": ("Upsell offer price", "$", 1.0, None),
    "upsell_take_rate": ("Upsell offer take rate", "%", 0.1, "% of buyers who take the upsell."),
    "refund_rate": ("Refund rate", "%", 0.1, "Applied to FE + bump + upsell combined."),
    "launches_per_year": ("Launches per year", "", 1, None),
}


class ConfigError(ValueError):
    pass


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_tiers(tiers) -> None:
    if not isinstance(tiers, list) or not tiers:
        raise ConfigError("tiers must be a non-empty list")
    for i, tier in enumerate(tiers):
        if not isinstance(tier, Mapping):
            raise ConfigError(f"tiers[{i}] must be an object")
        if not isinstance(tier.get("name"), str):
            raise ConfigError(f"tiers[{i}] needs a string 'name'")
        if not _is_number(tier.get("size")):
            raise ConfigError(f"tiers[{i}] needs a numeric 'size'")


def _merge(base: Dict, override: Mapping) -> Dict:
    for section, value in override.items():
        if section not in base:
            raise ConfigError(f"Unknown config section: {section!r}")
        if isinstance(base[section], dict):
            if not isinstance(value, Mapping):
                raise ConfigError(f"Config section {section!r} must be an object")
            unknown = set(value) - set(base[section])
            if unknown:
                raise ConfigError(f"Unknown keys in {section!r}: {', '.join(sorted(unknown))}")
            for key, item in value.items():
                if not _is_number(item):
                    raise ConfigError(f"{section}.{key} must be a number, got {item!r}")
            base[section].update(value)
        else:
            if section == "tiers":
                _check_tiers(value)
            elif section == "default_tier" and not isinstance(value, str):
                raise ConfigError(f"default_tier must be a string, got {value!r}")
            base[section] = value
    return base


def load_config(path: Optional[str] = None) -> Dict:
    """Defaults, optionally overridden by a JSON file (argument or env var)."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return cfg

    try:
        with open(path, encoding="utf-8") as fh:
            override = json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    if not isinstance(override, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    logger.info("Loaded config overrides from %s", path)
    cfg = _merge(cfg, override)

    tier_names = [t["name"] for t in cfg["tiers"]]
    if cfg["default_tier"] not in tier_names:
        raise ConfigError(f"default_tier {cfg['default_tier']!r} is not one of {tier_names}")
    return cfg


def assumptions_from_mapping(values: Mapping[str, object]) -> Assumptions:
    return Assumptions(**{f.name: parse_number(values[f.name]) for f in fields(Assumptions)})


def default_assumptions(cfg: Optional[Dict] = None) -> Assumptions:
    cfg = cfg or DEFAULT_CONFIG
    return assumptions_from_mapping(cfg["assumptions"])


def apply_tier(a: Assumptions, tier_name: str, cfg: Optional[Dict] = None) -> Assumptions:
    cfg = cfg or DEFAULT_CONFIG
    for tier in cfg["tiers"]:
        if tier["name"] == tier_name:
            return a.replace(audience_size=tier["size"])
    raise KeyError(tier_name)
