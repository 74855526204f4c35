"""
labor_burden_engine.py — Employer labor burden calculator.

Covers:
  - Payroll taxes (federal, state, FICA, unemployment) as % of base wages
  - Insurance (workers' comp, general liability) as % of base wages
  - Benefits (health insurance monthly premium, retirement contribution)
  - Equipment, vehicle and other monthly allowances
  - Per-hour burden, burden percentage and fully burdened hourly cost
  - Hours-weighted blended burden rate across a crew

The burden percentage produced here is what feeds
``RateConfiguration.labor_burden_rate_percent`` in the cost rollup.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, Mapping, Tuple

from sitecost import config
from sitecost.services.perf_monitor import timed
from sitecost.services.validation import (
    InvalidInput,
    as_number,
    camel_case,
    ensure_finite,
    non_negative,
    pick,
)

logger = logging.getLogger("sitecost-labor")

MONTHS_PER_YEAR: int = 12


@dataclass(frozen=True)
class LaborBurdenProfile:
    """Wage and burden inputs for one job title or employee. Rates are percent."""
    base_hourly_rate: float
    annual_hours: float = config.DEFAULT_ANNUAL_HOURS
    # Payroll taxes
    federal_tax_rate: float = 0.0
    state_tax_rate: float = 0.0
    fica_rate: float = 0.0
    unemployment_rate: float = 0.0
    # Insurance
    workers_comp_rate: float = 0.0
    general_liability_rate: float = 0.0
    # Benefits
    health_insurance_monthly: float = 0.0
    retirement_contribution_rate: float = 0.0
    # Allowances
    equipment_allowance_monthly: float = 0.0
    vehicle_allowance_monthly: float = 0.0
    other_benefits_monthly: float = 0.0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "LaborBurdenProfile":
        values = {}
        for f in fields(cls):
            raw = pick(mapping, f.name, camel_case(f.name))
            if raw is not None:
                values[f.name] = as_number(f.name, raw)
        if "base_hourly_rate" not in values:
            raise InvalidInput("base_hourly_rate is required")
        return cls(**values)

    def validate(self) -> "LaborBurdenProfile":
        for f in fields(self):
            non_negative(f.name, getattr(self, f.name))
        if self.annual_hours <= 0:
            logger.warning(f"Rejected annual_hours: not positive ({self.annual_hours})")
            raise InvalidInput(f"annual_hours must be positive; received {self.annual_hours}")
        return self


@dataclass(frozen=True)
class LaborBurdenBreakdown:
    """Per-hour burden components plus the overall burden percentage."""
    payroll_taxes: float
    insurance_costs: float
    benefits_costs: float
    equipment_costs: float
    total_burden: float
    burden_percentage: float
    total_hourly_cost: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class LaborBurdenEngine:
    """Derives labor burden from payroll, insurance and benefit inputs."""

    @staticmethod
    def _annual_components(profile: LaborBurdenProfile) -> Tuple[float, float, float, float, float]:
        annual_base = profile.base_hourly_rate * profile.annual_hours

        payroll_taxes = annual_base * (
            profile.federal_tax_rate
            + profile.state_tax_rate
            + profile.fica_rate
            + profile.unemployment_rate
        ) / 100
        insurance = annual_base * (
            profile.workers_comp_rate + profile.general_liability_rate
        ) / 100
        benefits = (
            profile.health_insurance_monthly * MONTHS_PER_YEAR
            + annual_base * profile.retirement_contribution_rate / 100
        )
        equipment = (
            profile.equipment_allowance_monthly
            + profile.vehicle_allowance_monthly
            + profile.other_benefits_monthly
        ) * MONTHS_PER_YEAR
        return annual_base, payroll_taxes, insurance, benefits, equipment

    @timed
    def calculate_breakdown(self, profile: LaborBurdenProfile) -> LaborBurdenBreakdown:
        """
        Annualise every burden component, then express it per working hour.

            annual_base      = base_hourly_rate × annual_hours
            burden %         = total annual burden / annual_base × 100
            total_hourly_cost = base_hourly_rate + total annual burden / annual_hours
        """
        profile.validate()
        annual_base, taxes, insurance, benefits, equipment = self._annual_components(profile)
        total = taxes + insurance + benefits + equipment
        hours = profile.annual_hours

        breakdown = LaborBurdenBreakdown(
            payroll_taxes=taxes / hours,
            insurance_costs=insurance / hours,
            benefits_costs=benefits / hours,
            equipment_costs=equipment / hours,
            total_burden=total / hours,
            burden_percentage=total / annual_base * 100 if annual_base > 0 else 0.0,
            total_hourly_cost=profile.base_hourly_rate + total / hours,
        )
        ensure_finite("labor burden", breakdown.to_dict())
        return breakdown

    def burden_rate_for(self, profile: LaborBurdenProfile) -> float:
        """Burden percentage for ``RateConfiguration.labor_burden_rate_percent``."""
        return self.calculate_breakdown(profile).burden_percentage

    @timed
    def blended_burden_rate(
        self, crew: Iterable[Tuple[LaborBurdenProfile, float]]
    ) -> float:
        """
        Hours-weighted burden percentage across a crew.

        ``crew`` yields ``(profile, hours)`` pairs, where ``hours`` is the time
        that role is expected to book on the project. Returns 0 when the crew
        has no base payroll.
        """
        total_base = 0.0
        total_burden = 0.0
        for profile, hours in crew:
            profile.validate()
            hours = non_negative("hours", hours)
            _, taxes, insurance, benefits, equipment = self._annual_components(profile)
            burden_per_hour = (taxes + insurance + benefits + equipment) / profile.annual_hours
            total_base += profile.base_hourly_rate * hours
            total_burden += burden_per_hour * hours

        if total_base <= 0:
            return 0.0
        blended = total_burden / total_base * 100
        ensure_finite(
            "blended burden rate",
            {"crew_base_pay": total_base, "crew_burden": total_burden, "blended_burden_rate": blended},
        )
        logger.debug(f"Blended burden rate: {blended:.2f}%")
        return blended
