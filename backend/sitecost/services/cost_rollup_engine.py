"""
CostRollupEngine — construction project cost rollup and project-controls math.

Covers:
  - Direct cost rollup with labor burden and overhead
  - Contingency, bond and insurance loads on the subtotal
  - Selling price from a target profit margin (margin on price, not markup)
  - Budget-vs-actual variance with a tolerance band
  - Margin / markup conversions and what-if selling prices
  - Break-even analysis
  - Earned value metrics (PV, EV, CV, SV, CPI, SPI, EAC, ETC, VAC)
  - Monthly cash flow projection with running cumulative balance
  - Cost per square foot
  - Bulk recalculation across a project portfolio

The engine is stateless: every rate is passed in by the caller and every result
is a new frozen value object. All monetary values are raw floats in the
caller's currency; rounding and display formatting belong to
``sitecost.services.formatting``.
"""

import enum
import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sitecost import config
from sitecost.services.perf_monitor import timed
from sitecost.services.validation import (
    CostRollupError,
    InvalidConfiguration,
    InvalidInput,
    as_number,
    camel_case,
    ensure_finite,
    non_negative,
    pick,
)

logger = logging.getLogger("sitecost-rollup")

__all__ = [
    "CostRollupError",
    "InvalidInput",
    "InvalidConfiguration",
    "RateConfiguration",
    "ProjectCostInputs",
    "CalculatedCostBreakdown",
    "VarianceStatus",
    "CostVariance",
    "EarnedValueMetrics",
    "BreakEvenAnalysis",
    "CashFlowProjection",
    "CostRollupEngine",
]


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RateConfiguration:
    """
    Tenant rate configuration. All values are percentages.

    The field defaults are the baseline used when a tenant has no
    configuration of its own.
    """
    profit_margin_percent: float = config.BASELINE_PROFIT_MARGIN_PCT
    overhead_rate_percent: float = config.BASELINE_OVERHEAD_PCT
    labor_burden_rate_percent: float = config.BASELINE_LABOR_BURDEN_PCT
    contingency_rate_percent: float = config.BASELINE_CONTINGENCY_PCT
    sales_tax_rate_percent: float = config.BASELINE_SALES_TAX_PCT
    bond_rate_percent: float = config.BASELINE_BOND_PCT
    insurance_rate_percent: float = config.BASELINE_INSURANCE_PCT

    @classmethod
    def baseline(cls) -> "RateConfiguration":
        return cls()

    @classmethod
    def from_mapping(
        cls,
        mapping: Optional[Mapping[str, Any]],
        base: Optional["RateConfiguration"] = None,
    ) -> "RateConfiguration":
        """
        Build a configuration from a (possibly partial) settings mapping.

        Keys may be snake_case (``profit_margin_percent``) or camelCase
        (``profitMarginPercent``). Missing or null keys fall back to ``base``
        (the baseline when not given); unknown keys are ignored.
        """
        base = base or cls.baseline()
        mapping = mapping or {}
        values: Dict[str, float] = {}
        for f in fields(cls):
            raw = pick(mapping, f.name, camel_case(f.name))
            if raw is None:
                values[f.name] = getattr(base, f.name)
            else:
                values[f.name] = as_number(f.name, raw, InvalidConfiguration)
        return cls(**values)

    def validate(self) -> "RateConfiguration":
        """Raise InvalidConfiguration unless every rate is usable."""
        for f in fields(self):
            non_negative(f.name, getattr(self, f.name), InvalidConfiguration)
        if self.profit_margin_percent >= 100:
            logger.warning(
                f"Rejected profit_margin_percent: {self.profit_margin_percent} >= 100"
            )
            raise InvalidConfiguration(
                "profit_margin_percent must be less than 100; "
                f"received {self.profit_margin_percent}"
            )
        return self

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ProjectCostInputs:
    """Raw direct cost amounts for one project."""
    labor_cost: float = 0.0
    material_cost: float = 0.0
    equipment_cost: float = 0.0
    subcontractor_cost: float = 0.0
    other_direct_costs: float = 0.0

    # Short keys used by estimate forms
    _SHORT_KEYS = {
        "labor_cost": "labor",
        "material_cost": "material",
        "equipment_cost": "equipment",
        "subcontractor_cost": "subcontractor",
        "other_direct_costs": "other",
    }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ProjectCostInputs":
        """Accepts snake_case, camelCase or short (``labor``) keys; missing keys are 0."""
        values = {}
        for f in fields(cls):
            raw = pick(mapping, f.name, camel_case(f.name), cls._SHORT_KEYS[f.name])
            values[f.name] = 0.0 if raw is None else raw
        return cls(**values)

    def validate(self) -> "ProjectCostInputs":
        for f in fields(self):
            non_negative(f.name, getattr(self, f.name))
        return self

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CalculatedCostBreakdown:
    direct_costs: float
    labor_burden: float
    overhead: float
    subtotal: float
    contingency: float
    bond: float
    insurance: float
    total_costs: float
    profit: float
    total_price: float
    profit_margin: float
    markup: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class VarianceStatus(str, enum.Enum):
    ON_BUDGET = "on_budget"
    UNDER_BUDGET = "under_budget"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True)
class CostVariance:
    budget: float
    actual: float
    variance: float
    variance_percentage: float
    status: VarianceStatus

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class EarnedValueMetrics:
    planned_value: float
    earned_value: float
    cost_variance: float
    schedule_variance: float
    cost_performance_index: float
    schedule_performance_index: float
    estimate_at_completion: float
    estimate_to_complete: float
    variance_at_completion: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class BreakEvenAnalysis:
    fixed_costs: float
    variable_cost_per_unit: float
    price_per_unit: float
    contribution_margin: float
    break_even_units: int
    break_even_revenue: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CashFlowProjection:
    period: str
    revenue: float
    costs: float
    cash_flow: float
    cumulative_cash_flow: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# CostRollupEngine
# ---------------------------------------------------------------------------

class CostRollupEngine:
    """
    Stateless cost rollup and project-controls calculator.

    Holds no rates of its own; one instance can be shared freely between
    request handlers and worker threads.
    """

    # ------------------------------------------------------------------
    # 1. Project cost rollup
    # ------------------------------------------------------------------

    @timed
    def calculate_project_costs(
        self,
        inputs: ProjectCostInputs,
        settings: RateConfiguration,
    ) -> CalculatedCostBreakdown:
        """
        Roll raw project costs up to a selling price.

        Order is fixed (later terms depend on earlier ones):
            direct    = labor + material + equipment + subcontractor + other
            burden    = labor × burden%
            overhead  = direct × overhead%
            subtotal  = direct + burden + overhead
            loads     = subtotal × (contingency%, bond%, insurance%)
            total     = subtotal + contingency + bond + insurance
            profit    = total × margin / (100 − margin)
            price     = total + profit

        Sales tax is carried on the configuration but is not part of the rollup.

        Raises:
            InvalidInput:         any cost is negative or not finite, or the
                                  amounts are too large to roll up.
            InvalidConfiguration: any rate is negative, or margin >= 100.
        """
        inputs.validate()
        settings.validate()

        labor = float(inputs.labor_cost)
        direct_costs = (
            labor
            + float(inputs.material_cost)
            + float(inputs.equipment_cost)
            + float(inputs.subcontractor_cost)
            + float(inputs.other_direct_costs)
        )
        labor_burden = labor * settings.labor_burden_rate_percent / 100
        overhead = direct_costs * settings.overhead_rate_percent / 100
        subtotal = direct_costs + labor_burden + overhead

        contingency = subtotal * settings.contingency_rate_percent / 100
        bond = subtotal * settings.bond_rate_percent / 100
        insurance = subtotal * settings.insurance_rate_percent / 100
        total_costs = subtotal + contingency + bond + insurance

        margin = settings.profit_margin_percent
        profit = total_costs * (margin / (100 - margin))
        total_price = total_costs + profit

        profit_margin = profit / total_price * 100 if total_price > 0 else 0.0
        markup = profit / total_costs * 100 if total_costs > 0 else 0.0

        breakdown = CalculatedCostBreakdown(
            direct_costs=direct_costs,
            labor_burden=labor_burden,
            overhead=overhead,
            subtotal=subtotal,
            contingency=contingency,
            bond=bond,
            insurance=insurance,
            total_costs=total_costs,
            profit=profit,
            total_price=total_price,
            profit_margin=profit_margin,
            markup=markup,
        )
        ensure_finite("project costs", breakdown.to_dict())
        return breakdown

    @timed
    def calculate_many(
        self,
        projects: Mapping[str, Union[ProjectCostInputs, Mapping[str, Any]]],
        settings: RateConfiguration,
    ) -> Dict[str, CalculatedCostBreakdown]:
        """
        Recalculate breakdowns for a portfolio, keyed by project id.

        The first invalid project aborts the run; the raised error names it.
        """
        settings.validate()
        results: Dict[str, CalculatedCostBreakdown] = {}
        for project_id, raw in projects.items():
            inputs = raw if isinstance(raw, ProjectCostInputs) else ProjectCostInputs.from_mapping(raw)
            try:
                results[project_id] = self.calculate_project_costs(inputs, settings)
            except CostRollupError as exc:
                raise type(exc)(f"project {project_id}: {exc}") from exc
        logger.info(
            f"Bulk rollup complete: {len(results)} projects",
            extra={"operation": "calculate_many"},
        )
        return results

    # ------------------------------------------------------------------
    # 2. Budget variance
    # ------------------------------------------------------------------

    @timed
    def calculate_variance(
        self,
        budget: float,
        actual: float,
        tolerance_percent: float = config.DEFAULT_VARIANCE_TOLERANCE_PCT,
    ) -> CostVariance:
        """
        Budget minus actual, classified against a ±tolerance band.

        The band is inclusive: a variance exactly at the tolerance is on budget.
        A zero budget has no meaningful percentage and reports 0%.
        """
        budget = non_negative("budget", budget)
        actual = non_negative("actual", actual)
        tolerance = non_negative("tolerance_percent", tolerance_percent)

        variance = budget - actual
        variance_pct = variance / budget * 100 if budget > 0 else 0.0
        ensure_finite("variance", {"variance_percentage": variance_pct})

        if abs(variance_pct) <= tolerance:
            status = VarianceStatus.ON_BUDGET
        elif variance > 0:
            status = VarianceStatus.UNDER_BUDGET
        else:
            status = VarianceStatus.OVER_BUDGET

        return CostVariance(
            budget=budget,
            actual=actual,
            variance=variance,
            variance_percentage=variance_pct,
            status=status,
        )

    # ------------------------------------------------------------------
    # 3. Margin / markup
    # ------------------------------------------------------------------

    @timed
    def calculate_profit_margin(self, revenue: float, total_costs: float) -> float:
        """Profit as a percentage of revenue; 0 when revenue <= 0."""
        revenue = as_number("revenue", revenue)
        total_costs = non_negative("total_costs", total_costs)
        if revenue <= 0:
            return 0.0
        margin = (revenue - total_costs) / revenue * 100
        ensure_finite("profit margin", {"profit_margin": margin})
        return margin

    @timed
    def calculate_markup(self, cost: float, selling_price: float) -> float:
        """Profit as a percentage of cost; 0 when cost <= 0."""
        cost = as_number("cost", cost)
        selling_price = non_negative("selling_price", selling_price)
        if cost <= 0:
            return 0.0
        markup = (selling_price - cost) / cost * 100
        ensure_finite("markup", {"markup": markup})
        return markup

    @timed
    def calculate_selling_price_from_margin(self, cost: float, margin_percent: float) -> float:
        """
        Price that yields ``margin_percent`` of profit on the selling price.

        A margin of 100% or more has no finite price; the cost is returned
        unchanged so that an in-progress what-if entry does not fail.
        """
        cost = non_negative("cost", cost)
        margin = non_negative("margin_percent", margin_percent)
        if margin >= 100:
            return cost
        price = cost / (1 - margin / 100)
        ensure_finite("selling price", {"selling_price": price})
        return price

    @timed
    def calculate_selling_price_from_markup(self, cost: float, markup_percent: float) -> float:
        cost = non_negative("cost", cost)
        markup = non_negative("markup_percent", markup_percent)
        price = cost * (1 + markup / 100)
        ensure_finite("selling price", {"selling_price": price})
        return price

    # ------------------------------------------------------------------
    # 4. Break-even
    # ------------------------------------------------------------------

    @timed
    def calculate_break_even(
        self,
        fixed_costs: float,
        variable_cost_per_unit: float,
        price_per_unit: float,
    ) -> BreakEvenAnalysis:
        """
        Units (rounded up) needed for contribution margin to cover fixed costs.

        When each unit contributes nothing or loses money there is no finite
        break-even point; units and revenue are reported as 0.
        """
        fixed_costs = non_negative("fixed_costs", fixed_costs)
        variable_cost = non_negative("variable_cost_per_unit", variable_cost_per_unit)
        price = non_negative("price_per_unit", price_per_unit)

        contribution_margin = price - variable_cost
        if contribution_margin <= 0:
            units = 0
        else:
            ratio = fixed_costs / contribution_margin
            ensure_finite("break-even", {"break_even_units": ratio})
            units = math.ceil(ratio)

        result = BreakEvenAnalysis(
            fixed_costs=fixed_costs,
            variable_cost_per_unit=variable_cost,
            price_per_unit=price,
            contribution_margin=contribution_margin,
            break_even_units=units,
            break_even_revenue=units * price,
        )
        ensure_finite("break-even", result.to_dict())
        return result

    # ------------------------------------------------------------------
    # 5. Earned value
    # ------------------------------------------------------------------

    @timed
    def calculate_earned_value(
        self,
        budget: float,
        scheduled_percent: float,
        actual_percent: float,
        actual_cost: float,
    ) -> EarnedValueMetrics:
        """
        Standard earned value metrics against a total budget.

        CPI and SPI fall back to a neutral 1.0 while their denominators are
        still zero (no cost booked, nothing scheduled yet).
        """
        budget = non_negative("budget", budget)
        scheduled = non_negative("scheduled_percent", scheduled_percent)
        complete = non_negative("actual_percent", actual_percent)
        actual_cost = non_negative("actual_cost", actual_cost)

        planned_value = budget * scheduled / 100
        earned_value = budget * complete / 100

        cpi = earned_value / actual_cost if actual_cost > 0 else 1.0
        spi = earned_value / planned_value if planned_value > 0 else 1.0
        eac = budget / cpi if cpi > 0 else budget

        metrics = EarnedValueMetrics(
            planned_value=planned_value,
            earned_value=earned_value,
            cost_variance=earned_value - actual_cost,
            schedule_variance=earned_value - planned_value,
            cost_performance_index=cpi,
            schedule_performance_index=spi,
            estimate_at_completion=eac,
            estimate_to_complete=eac - actual_cost,
            variance_at_completion=budget - eac,
        )
        ensure_finite("earned value", metrics.to_dict())
        return metrics

    # ------------------------------------------------------------------
    # 6. Cash flow
    # ------------------------------------------------------------------

    @timed
    def project_cash_flow(
        self,
        monthly_revenue: Sequence[float],
        monthly_costs: Sequence[float],
    ) -> List[CashFlowProjection]:
        """
        Month-by-month net cash flow with a running cumulative balance.

        One row per revenue month, in order. Months with no cost entry are
        treated as zero cost; cost entries beyond the last revenue month are
        ignored.
        """
        revenues = [non_negative(f"monthly_revenue[{i}]", r) for i, r in enumerate(monthly_revenue)]
        costs = [non_negative(f"monthly_costs[{i}]", c) for i, c in enumerate(monthly_costs)]

        projections: List[CashFlowProjection] = []
        cumulative = 0.0
        for index, revenue in enumerate(revenues):
            cost = costs[index] if index < len(costs) else 0.0
            cash_flow = revenue - cost
            cumulative += cash_flow
            ensure_finite("cash flow", {"cumulative_cash_flow": cumulative})
            projections.append(CashFlowProjection(
                period=f"Month {index + 1}",
                revenue=revenue,
                costs=cost,
                cash_flow=cash_flow,
                cumulative_cash_flow=cumulative,
            ))
        return projections

    # ------------------------------------------------------------------
    # 7. Unit cost
    # ------------------------------------------------------------------

    @timed
    def calculate_cost_per_square_foot(self, total_cost: float, square_footage: float) -> float:
        total_cost = non_negative("total_cost", total_cost)
        square_footage = as_number("square_footage", square_footage)
        if square_footage <= 0:
            return 0.0
        cost_per_sqft = total_cost / square_footage
        ensure_finite("cost per square foot", {"cost_per_square_foot": cost_per_sqft})
        return cost_per_sqft
