"""
conftest.py — Shared pytest fixtures for the SiteCost backend test suite.

No database or external service fixtures are defined here. Engine tests are
pure unit tests; API tests drive the FastAPI app in-process via TestClient.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``sitecost.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any sitecost imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def cost_engine():
    """CostRollupEngine — stateless, safe to share across the session."""
    from sitecost.services.cost_rollup_engine import CostRollupEngine
    return CostRollupEngine()


@pytest.fixture(scope="session")
def labor_burden_engine():
    from sitecost.services.labor_burden_engine import LaborBurdenEngine
    return LaborBurdenEngine()


@pytest.fixture
def baseline_rates():
    """
    Baseline rate configuration:
      margin 15%, overhead 10%, labor burden 25%, contingency 5%,
      sales tax 0%, bond 0%, insurance 2%.
    """
    from sitecost.services.cost_rollup_engine import RateConfiguration
    return RateConfiguration.baseline()


@pytest.fixture
def sample_inputs():
    """labor 10 000, material 5 000, equipment 2 000 — direct costs 17 000."""
    from sitecost.services.cost_rollup_engine import ProjectCostInputs
    return ProjectCostInputs(
        labor_cost=10_000.0,
        material_cost=5_000.0,
        equipment_cost=2_000.0,
        subcontractor_cost=0.0,
        other_direct_costs=0.0,
    )


@pytest.fixture
def foreman_profile():
    """
    Foreman at 25.00/hr, 2 080 hrs/yr:
      payroll taxes 7.65 + 5.00 + 7.65 + 3.00 = 23.30 %
      insurance     2.50 + 1.00               =  3.50 %
      retirement                              =  3.00 %
    Total burden = 29.80 % of base wages.
    """
    from sitecost.services.labor_burden_engine import LaborBurdenProfile
    return LaborBurdenProfile(
        base_hourly_rate=25.0,
        annual_hours=2080.0,
        federal_tax_rate=7.65,
        state_tax_rate=5.0,
        fica_rate=7.65,
        unemployment_rate=3.0,
        workers_comp_rate=2.5,
        general_liability_rate=1.0,
        retirement_contribution_rate=3.0,
    )


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def client():
    """In-process HTTP client for the FastAPI app."""
    from fastapi.testclient import TestClient
    from sitecost.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fresh_tracker():
    """The module-level CalculationTracker, reset before and after the test."""
    from sitecost.services.perf_monitor import tracker
    tracker.reset()
    yield tracker
    tracker.reset()
