"""
test_observability.py — Calculation tracking and structured logging.

Tests cover:
  - @timed records successes and rejections on the shared tracker
  - CalculationTracker snapshot shape and reset
  - JSONFormatter output and extra fields
  - setup_logging handler replacement
  - RequestIdFilter stamping the bound X-Request-ID onto records
"""

import json
import logging

import pytest

from sitecost.services.cost_rollup_engine import InvalidInput, ProjectCostInputs
from sitecost.services.logging_config import (
    JSONFormatter,
    RequestIdFilter,
    request_id_ctx,
    setup_logging,
)
from sitecost.services.perf_monitor import CalculationTracker


class TestCalculationTracker:

    def test_timed_records_success(self, cost_engine, fresh_tracker):
        cost_engine.calculate_markup(800, 1000)
        cost_engine.calculate_markup(800, 1200)
        metrics = fresh_tracker.get_metrics()
        assert metrics["calculations"] == 2
        assert metrics["calls_by_operation"] == {"calculate_markup": 2}
        assert metrics["avg_duration_ms"]["calculate_markup"] >= 0
        assert metrics["rejections"] == 0

    def test_timed_records_rejection(self, cost_engine, baseline_rates, fresh_tracker):
        with pytest.raises(InvalidInput):
            cost_engine.calculate_project_costs(ProjectCostInputs(labor_cost=-1), baseline_rates)
        metrics = fresh_tracker.get_metrics()
        assert metrics["calculations"] == 0
        assert metrics["rejections_by_operation"] == {"calculate_project_costs": 1}

    def test_slowest_operation(self):
        t = CalculationTracker()
        t.record_calculation("fast", 0.5)
        t.record_calculation("slow", 12.0)
        t.record_calculation("fast", 1.5)
        metrics = t.get_metrics()
        assert metrics["slowest_operation"] == "slow"
        assert metrics["slowest_ms"] == 12.0
        assert metrics["avg_duration_ms"]["fast"] == 1.0

    def test_reset(self):
        t = CalculationTracker()
        t.record_calculation("op", 1.0)
        t.record_rejection("op")
        t.reset()
        metrics = t.get_metrics()
        assert metrics["calculations"] == 0
        assert metrics["rejections"] == 0
        assert metrics["slowest_operation"] is None


class TestStructuredLogging:

    def _record(self, **extra):
        record = logging.LogRecord(
            name="sitecost-rollup",
            level=logging.INFO,
            pathname=__file__,
            lineno=42,
            msg="Bulk rollup complete: %d projects",
            args=(3,),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_line(self):
        line = JSONFormatter().format(self._record())
        entry = json.loads(line)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "sitecost-rollup"
        assert entry["message"] == "Bulk rollup complete: 3 projects"
        assert entry["line"] == 42
        assert "operation" not in entry

    def test_extra_fields_copied(self):
        line = JSONFormatter().format(
            self._record(operation="calculate_many", duration_ms=1.25, project_id="prj-7")
        )
        entry = json.loads(line)
        assert entry["operation"] == "calculate_many"
        assert entry["duration_ms"] == 1.25
        assert entry["project_id"] == "prj-7"

    def test_setup_logging_text_mode(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="debug", json_output=False)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert not isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)


class TestRequestIdFilter:

    def _record(self):
        return logging.LogRecord("sitecost-rollup", logging.WARNING, __file__, 1, "rejected", (), None)

    def test_stamps_bound_request_id(self):
        token = request_id_ctx.set("req-42")
        try:
            record = self._record()
            assert RequestIdFilter().filter(record) is True
        finally:
            request_id_ctx.reset(token)
        assert record.request_id == "req-42"
        assert json.loads(JSONFormatter().format(record))["request_id"] == "req-42"

    def test_outside_request_leaves_record_alone(self):
        record = self._record()
        assert RequestIdFilter().filter(record) is True
        assert not hasattr(record, "request_id")

    def test_explicit_extra_wins(self):
        token = request_id_ctx.set("req-42")
        try:
            record = self._record()
            record.request_id = "explicit"
            RequestIdFilter().filter(record)
        finally:
            request_id_ctx.reset(token)
        assert record.request_id == "explicit"

    def test_setup_logging_installs_filter(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="INFO", json_output=True)
            assert any(isinstance(f, RequestIdFilter) for f in root.handlers[0].filters)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
