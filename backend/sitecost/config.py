"""
Service configuration — single source of truth for environment settings and
baseline financial rates.

Import from here in routes and services rather than hardcoding values.
Baseline rates are handed out as fresh immutable values; nothing in this
module is meant to be mutated at runtime.
"""
from __future__ import annotations

import os

# Load .env file automatically in dev (no-op if the file is missing)
from dotenv import load_dotenv

load_dotenv()


# ── Baseline financial rates (percent) ─────────────────────────────────────────
# Used when a tenant has not configured its own rates.
BASELINE_PROFIT_MARGIN_PCT: float = 15.0
BASELINE_OVERHEAD_PCT: float = 10.0
BASELINE_LABOR_BURDEN_PCT: float = 25.0
BASELINE_CONTINGENCY_PCT: float = 5.0
BASELINE_SALES_TAX_PCT: float = 0.0
BASELINE_BOND_PCT: float = 0.0
BASELINE_INSURANCE_PCT: float = 2.0


# ── Variance ───────────────────────────────────────────────────────────────────
# Budget variance within ±this percentage counts as on budget.
DEFAULT_VARIANCE_TOLERANCE_PCT: float = float(os.getenv("VARIANCE_TOLERANCE_PCT", "5.0"))


# ── Labor burden ───────────────────────────────────────────────────────────────
# 40 hrs × 52 weeks
DEFAULT_ANNUAL_HOURS: float = 2080.0


# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"


# ── HTTP ───────────────────────────────────────────────────────────────────────
_cors_default = "http://localhost:3000,http://localhost:5173,http://localhost:8000"
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()
]


def default_rate_configuration():
    """Return a new baseline RateConfiguration."""
    from sitecost.services.cost_rollup_engine import RateConfiguration
    return RateConfiguration.baseline()
