"""
Cost rollup API routes.

GET  /api/costs/default-rates    — baseline rate configuration
POST /api/costs/rollup           — full cost breakdown for one project
POST /api/costs/rollup/bulk      — breakdowns for many projects, keyed by id
POST /api/costs/variance         — budget vs actual with tolerance band
POST /api/costs/earned-value     — PV / EV / CPI / SPI / EAC / ETC / VAC
POST /api/costs/break-even       — break-even units and revenue
POST /api/costs/cash-flow        — monthly cash flow with cumulative balance
POST /api/costs/cost-per-sqft    — unit cost
POST /api/costs/pricing/margin   — selling price from target margin
POST /api/costs/pricing/markup   — selling price from markup
POST /api/costs/labor-burden     — burden breakdown for a wage profile

Every endpoint is a pure calculation: nothing is stored. Invalid inputs and
configurations come back as 422 with the engine's message.
"""
import logging

from fastapi import APIRouter, HTTPException

from sitecost import config
from sitecost.models.calculator_schemas import (
    BreakEvenRequest,
    BulkRollupRequest,
    CashFlowRequest,
    CostPerSquareFootRequest,
    EarnedValueRequest,
    LaborBurdenRequest,
    MarginPricingRequest,
    MarkupPricingRequest,
    RollupRequest,
    RollupResponse,
    VarianceRequest,
)
from sitecost.services.cost_rollup_engine import (
    CostRollupEngine,
    CostRollupError,
    ProjectCostInputs,
    RateConfiguration,
)
from sitecost.services.formatting import (
    format_breakdown,
    format_currency,
    format_earned_value,
    format_percentage,
)
from sitecost.services.labor_burden_engine import LaborBurdenEngine, LaborBurdenProfile
from sitecost.services.validation import ensure_finite

router = APIRouter(prefix="/api/costs", tags=["Cost Rollup"])
logger = logging.getLogger("sitecost-api")

engine = CostRollupEngine()
labor_engine = LaborBurdenEngine()


def _unprocessable(exc: CostRollupError, operation: str) -> HTTPException:
    logger.warning(f"{operation} rejected: {exc}", extra={"operation": operation})
    return HTTPException(status_code=422, detail=str(exc))


def _rates(req_rates) -> RateConfiguration:
    partial = req_rates.model_dump(exclude_none=True) if req_rates else {}
    return RateConfiguration.from_mapping(partial, base=config.default_rate_configuration())


# ── Rate configuration ───────────────────────────────────────────────────────

@router.get("/default-rates")
async def get_default_rates():
    """Baseline rates used when a tenant has not configured its own."""
    return config.default_rate_configuration().to_dict()


# ── Project rollup ───────────────────────────────────────────────────────────

@router.post("/rollup", response_model=RollupResponse)
async def calculate_rollup(req: RollupRequest):
    try:
        settings = _rates(req.rates)
        inputs = ProjectCostInputs(**req.inputs.model_dump())
        breakdown = engine.calculate_project_costs(inputs, settings)
    except CostRollupError as e:
        raise _unprocessable(e, "rollup")

    return RollupResponse(
        project_id=req.project_id,
        rates=settings.to_dict(),
        breakdown=breakdown.to_dict(),
        display=format_breakdown(breakdown),
    )


@router.post("/rollup/bulk")
async def calculate_rollup_bulk(req: BulkRollupRequest):
    """Recalculate a portfolio. The first invalid project fails the whole request."""
    try:
        settings = _rates(req.rates)
        projects = {pid: ProjectCostInputs(**p.model_dump()) for pid, p in req.projects.items()}
        results = engine.calculate_many(projects, settings)
        portfolio_total = sum(b.total_price for b in results.values())
        ensure_finite("portfolio total", {"portfolio_total_price": portfolio_total})
    except CostRollupError as e:
        raise _unprocessable(e, "rollup_bulk")

    return {
        "rates": settings.to_dict(),
        "project_count": len(results),
        "portfolio_total_price": portfolio_total,
        "results": {pid: b.to_dict() for pid, b in results.items()},
    }


# ── Project controls ─────────────────────────────────────────────────────────

@router.post("/variance")
async def calculate_variance(req: VarianceRequest):
    tolerance = (
        req.tolerance_percent
        if req.tolerance_percent is not None
        else config.DEFAULT_VARIANCE_TOLERANCE_PCT
    )
    try:
        result = engine.calculate_variance(req.budget, req.actual, tolerance)
    except CostRollupError as e:
        raise _unprocessable(e, "variance")
    return {**result.to_dict(), "tolerance_percent": tolerance}


@router.post("/earned-value")
async def calculate_earned_value(req: EarnedValueRequest):
    try:
        metrics = engine.calculate_earned_value(
            req.budget, req.scheduled_percent, req.actual_percent, req.actual_cost
        )
    except CostRollupError as e:
        raise _unprocessable(e, "earned_value")
    return {"metrics": metrics.to_dict(), "display": format_earned_value(metrics)}


@router.post("/break-even")
async def calculate_break_even(req: BreakEvenRequest):
    try:
        result = engine.calculate_break_even(
            req.fixed_costs, req.variable_cost_per_unit, req.price_per_unit
        )
    except CostRollupError as e:
        raise _unprocessable(e, "break_even")
    return result.to_dict()


@router.post("/cash-flow")
async def project_cash_flow(req: CashFlowRequest):
    try:
        rows = engine.project_cash_flow(req.monthly_revenue, req.monthly_costs)
    except CostRollupError as e:
        raise _unprocessable(e, "cash_flow")
    return {
        "periods": [row.to_dict() for row in rows],
        "ending_balance": rows[-1].cumulative_cash_flow if rows else 0.0,
    }


@router.post("/cost-per-sqft")
async def calculate_cost_per_sqft(req: CostPerSquareFootRequest):
    try:
        value = engine.calculate_cost_per_square_foot(req.total_cost, req.square_footage)
    except CostRollupError as e:
        raise _unprocessable(e, "cost_per_sqft")
    return {"cost_per_square_foot": value, "display": format_currency(value)}


# ── What-if pricing ──────────────────────────────────────────────────────────

@router.post("/pricing/margin")
async def price_from_margin(req: MarginPricingRequest):
    try:
        price = engine.calculate_selling_price_from_margin(req.cost, req.margin_percent)
        markup = engine.calculate_markup(req.cost, price)
    except CostRollupError as e:
        raise _unprocessable(e, "pricing_margin")
    return {"cost": req.cost, "selling_price": price, "markup_percent": markup}


@router.post("/pricing/markup")
async def price_from_markup(req: MarkupPricingRequest):
    try:
        price = engine.calculate_selling_price_from_markup(req.cost, req.markup_percent)
        margin = engine.calculate_profit_margin(price, req.cost)
    except CostRollupError as e:
        raise _unprocessable(e, "pricing_markup")
    return {"cost": req.cost, "selling_price": price, "margin_percent": margin}


# ── Labor burden ─────────────────────────────────────────────────────────────

@router.post("/labor-burden")
async def calculate_labor_burden(req: LaborBurdenRequest):
    """Burden breakdown per hour; ``burden_percentage`` feeds labor_burden_rate_percent."""
    try:
        profile = LaborBurdenProfile.from_mapping(req.model_dump(exclude_none=True))
        breakdown = labor_engine.calculate_breakdown(profile)
    except CostRollupError as e:
        raise _unprocessable(e, "labor_burden")
    return {
        "breakdown": breakdown.to_dict(),
        "display": {
            "total_hourly_cost": format_currency(breakdown.total_hourly_cost),
            "burden_percentage": format_percentage(breakdown.burden_percentage),
        },
    }
