"""
Request / response models for the cost rollup API.

Numeric fields are unconstrained here: range checks
(negative costs, margin >= 100%) belong to the engines, which raise
InvalidInput / InvalidConfiguration and are mapped to HTTP 422 by the routes.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ProjectCostInputsIn(BaseModel):
    labor_cost: float = 0.0
    material_cost: float = 0.0
    equipment_cost: float = 0.0
    subcontractor_cost: float = 0.0
    other_direct_costs: float = 0.0


class RateConfigurationIn(BaseModel):
    """Partial tenant rates (percent). Omitted fields use the baseline."""
    profit_margin_percent: Optional[float] = None
    overhead_rate_percent: Optional[float] = None
    labor_burden_rate_percent: Optional[float] = None
    contingency_rate_percent: Optional[float] = None
    sales_tax_rate_percent: Optional[float] = None
    bond_rate_percent: Optional[float] = None
    insurance_rate_percent: Optional[float] = None


class RollupRequest(BaseModel):
    project_id: Optional[str] = None
    inputs: ProjectCostInputsIn
    rates: Optional[RateConfigurationIn] = None

    model_config = {"json_schema_extra": {
        "example": {
            "project_id": "prj-1042",
            "inputs": {"labor_cost": 10000, "material_cost": 5000, "equipment_cost": 2000},
            "rates": {"profit_margin_percent": 15},
        }
    }}


class RollupResponse(BaseModel):
    project_id: Optional[str] = None
    rates: Dict[str, float]
    breakdown: Dict[str, float]
    display: Dict[str, str]


class BulkRollupRequest(BaseModel):
    projects: Dict[str, ProjectCostInputsIn] = Field(..., description="Inputs keyed by project id")
    rates: Optional[RateConfigurationIn] = None


class VarianceRequest(BaseModel):
    budget: float
    actual: float
    tolerance_percent: Optional[float] = None


class EarnedValueRequest(BaseModel):
    budget: float
    scheduled_percent: float = Field(..., description="Planned % complete at status date")
    actual_percent: float = Field(..., description="Physical % complete at status date")
    actual_cost: float


class BreakEvenRequest(BaseModel):
    fixed_costs: float
    variable_cost_per_unit: float
    price_per_unit: float


class CashFlowRequest(BaseModel):
    monthly_revenue: List[float]
    monthly_costs: List[float] = []


class CostPerSquareFootRequest(BaseModel):
    total_cost: float
    square_footage: float


class MarginPricingRequest(BaseModel):
    cost: float
    margin_percent: float


class MarkupPricingRequest(BaseModel):
    cost: float
    markup_percent: float


class LaborBurdenRequest(BaseModel):
    base_hourly_rate: float
    annual_hours: Optional[float] = None
    federal_tax_rate: float = 0.0
    state_tax_rate: float = 0.0
    fica_rate: float = 0.0
    unemployment_rate: float = 0.0
    workers_comp_rate: float = 0.0
    general_liability_rate: float = 0.0
    health_insurance_monthly: float = 0.0
    retirement_contribution_rate: float = 0.0
    equipment_allowance_monthly: float = 0.0
    vehicle_allowance_monthly: float = 0.0
    other_benefits_monthly: float = 0.0
