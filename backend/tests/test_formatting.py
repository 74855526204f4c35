"""
test_formatting.py — Display formatting of calculation results.

Tests cover:
  - format_currency: grouping, cents, negative styles, custom symbol
  - format_percentage
  - format_breakdown / format_earned_value field coverage
"""

from sitecost.services.formatting import (
    format_breakdown,
    format_currency,
    format_earned_value,
    format_percentage,
)


class TestFormatCurrency:

    def test_grouping_and_cents(self):
        assert format_currency(1234.5) == "$1,234.50"

    def test_large_amount(self):
        assert format_currency(26_687.0588) == "$26,687.06"

    def test_negative_in_parentheses(self):
        assert format_currency(-1234.5) == "($1,234.50)"

    def test_negative_with_sign(self):
        assert format_currency(-1234.5, parens_for_negative=False) == "-$1,234.50"

    def test_without_cents(self):
        assert format_currency(1234.56, show_cents=False) == "$1,235"

    def test_tiny_negative_shows_no_sign(self):
        assert format_currency(-0.001) == "$0.00"

    def test_custom_symbol(self):
        assert format_currency(99.0, symbol="€") == "€99.00"


class TestFormatPercentage:

    def test_default_one_decimal(self):
        assert format_percentage(29.8) == "29.8%"

    def test_decimals(self):
        assert format_percentage(15.0 / 85.0 * 100, decimals=2) == "17.65%"


class TestStructuredFormatting:

    def test_breakdown_display(self, cost_engine, sample_inputs, baseline_rates):
        breakdown = cost_engine.calculate_project_costs(sample_inputs, baseline_rates)
        display = format_breakdown(breakdown)
        assert display["direct_costs"] == "$17,000.00"
        assert display["total_costs"] == "$22,684.00"
        assert display["total_price"] == "$26,687.06"
        assert display["profit_margin"] == "15.0%"
        assert display["markup"] == "17.6%"
        assert set(display) == set(breakdown.to_dict())

    def test_earned_value_display(self, cost_engine):
        metrics = cost_engine.calculate_earned_value(100_000, 50, 40, 45_000)
        display = format_earned_value(metrics)
        assert display["cost_variance"] == "($5,000.00)"
        assert display["estimate_at_completion"] == "$112,500.00"
        assert display["cost_performance_index"] == "0.89"
        assert display["schedule_performance_index"] == "0.80"
