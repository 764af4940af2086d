"""
Test Module: test_insight_generator.py
Description: Unit tests for revenue and forecast narrative insights.
"""

import pytest

from analytics.insight_generator import (
    INSUFFICIENT_FORECAST_DATA,
    INSUFFICIENT_REVENUE_DATA,
    RECOMMENDATIONS,
    growth_band,
    trend_insights_from_forecast,
    trend_insights_from_revenue,
    uncertainty_band,
)
from conftest import make_forecast, make_revenue


# =============================================================================
# Band Classification Tests
# =============================================================================

class TestBands:
    """Boundary behaviour of the growth and uncertainty bands."""

    @pytest.mark.parametrize("rate,expected", [
        (10.0, "strong"),
        (5.01, "strong"),
        (5.0, "moderate"),
        (2.01, "moderate"),
        (2.0, "slight"),
        (0.5, "slight"),
        (0.0, "declining"),
        (-3.0, "declining"),
    ])
    def test_growth_band(self, rate, expected):
        assert growth_band(rate) == expected

    @pytest.mark.parametrize("width,expected", [
        (0.5, "high"),
        (0.30, "moderate"),
        (0.2, "moderate"),
        (0.15, "low"),
        (0.05, "low"),
    ])
    def test_uncertainty_band(self, width, expected):
        assert uncertainty_band(width) == expected


# =============================================================================
# Revenue Insight Tests
# =============================================================================

class TestRevenueInsights:
    """Tests for insights over revenue history."""

    def test_too_few_points(self):
        assert trend_insights_from_revenue(make_revenue(1000, 1100)) == [INSUFFICIENT_REVENUE_DATA]
        assert trend_insights_from_revenue([]) == [INSUFFICIENT_REVENUE_DATA]

    def test_month_over_month_increase(self):
        insights = trend_insights_from_revenue(make_revenue(900, 1000, 1100))

        assert insights[0] == "Revenue increased by 10.0% compared to the previous month."

    def test_month_over_month_decrease(self):
        insights = trend_insights_from_revenue(make_revenue(1000, 1000, 800))

        assert insights[0] == "Revenue decreased by 20.0% compared to the previous month."

    def test_overall_change(self):
        insights = trend_insights_from_revenue(make_revenue(1000, 1100, 1200))

        assert insights[1] == "Over the last 3 months, revenue has increased by 20.0% overall."

    def test_flat_revenue(self):
        insights = trend_insights_from_revenue(make_revenue(1000, 1000, 1000))

        assert insights[0] == "Revenue remained unchanged compared to the previous month."
        assert insights[2] == "Revenue has held steady over the last 3 months."

    def test_upward_trend_uses_last_six_months(self):
        revenue = make_revenue(5000, 100, 1000, 1000, 1000, 1000, 1000, 1100)

        insights = trend_insights_from_revenue(revenue)

        assert "over the last 6 months" in insights[2]
        assert "trending upward" in insights[2]

    def test_downward_trend(self):
        insights = trend_insights_from_revenue(make_revenue(1200, 1100, 1000))

        assert "trending downward" in insights[2]

    def test_seasonality_note_needs_a_year(self):
        eleven = trend_insights_from_revenue(make_revenue(*[1000 + i for i in range(11)]))
        twelve = trend_insights_from_revenue(make_revenue(*[1000 + i for i in range(12)]))

        assert len(eleven) == 3
        assert len(twelve) == 4
        assert "seasonal" in twelve[-1]


# =============================================================================
# Forecast Insight Tests
# =============================================================================

class TestForecastInsights:
    """Tests for insights over a forecast."""

    def test_too_few_points(self):
        single = make_forecast(("2024-07", 1000, 900, 1100))

        assert trend_insights_from_forecast(single) == [INSUFFICIENT_FORECAST_DATA]
        assert trend_insights_from_forecast([]) == [INSUFFICIENT_FORECAST_DATA]

    def test_strong_growth(self):
        forecast = make_forecast(
            ("2024-07", 1000, 900, 1100),
            ("2024-08", 1100, 900, 1300),
        )

        insights = trend_insights_from_forecast(forecast)

        assert insights[0].startswith("Strong growth expected")
        assert "10.0%" in insights[0]
        assert insights[-1] == RECOMMENDATIONS["strong"]

    def test_exactly_five_percent_is_moderate(self):
        forecast = make_forecast(
            ("2024-07", 1000, 900, 1100),
            ("2024-08", 1050, 950, 1150),
        )

        insights = trend_insights_from_forecast(forecast)

        assert insights[0].startswith("Moderate growth expected")
        assert insights[-1] == RECOMMENDATIONS["moderate"]

    def test_declining_forecast(self):
        forecast = make_forecast(
            ("2024-07", 1000, 900, 1100),
            ("2024-08", 950, 850, 1050),
        )

        insights = trend_insights_from_forecast(forecast)

        assert insights[0].startswith("Revenue is projected to stagnate or decline")
        assert insights[1] == "Over the next 2 months, revenue is projected to decrease by 5.0% in total."
        assert insights[-1] == RECOMMENDATIONS["declining"]

    def test_uncertainty_from_final_period(self):
        forecast = make_forecast(
            ("2024-07", 1000, 990, 1010),
            ("2024-08", 1030, 700, 1400),
        )

        insights = trend_insights_from_forecast(forecast)

        assert insights[2].startswith("High forecast uncertainty")

    def test_low_uncertainty(self):
        forecast = make_forecast(
            ("2024-07", 1000, 950, 1050),
            ("2024-08", 1030, 1000, 1060),
        )

        assert trend_insights_from_forecast(forecast)[2].startswith("Low forecast uncertainty")

    def test_generated_forecast_yields_four_insights(self, generator):
        forecast = generator.generate_forecast(6, anchor=20000.0)

        insights = trend_insights_from_forecast(forecast)

        assert len(insights) == 4
        # seed 42: individual months may dip but the mean monthly step is positive
        assert not insights[0].startswith("Revenue is projected to stagnate")

    def test_band_follows_mean_step_despite_a_dip(self):
        forecast = make_forecast(
            ("2024-07", 1000, 950, 1050),
            ("2024-08", 1200, 1140, 1260),
            ("2024-09", 1140, 1080, 1200),
        )

        insights = trend_insights_from_forecast(forecast)

        # steps of +20% and -5% average to +7.5%
        assert insights[0] == (
            "Strong growth expected: revenue is projected to grow by an average of 7.5% per month."
        )
        assert insights[1] == "Over the next 3 months, revenue is projected to increase by 14.0% in total."
        assert insights[-1] == RECOMMENDATIONS["strong"]

    def test_single_dip_without_offsetting_growth_is_declining(self):
        forecast = make_forecast(
            ("2024-07", 1000, 950, 1050),
            ("2024-08", 1000, 950, 1050),
            ("2024-09", 950, 900, 1000),
        )

        insights = trend_insights_from_forecast(forecast)

        assert insights[0] == "Revenue is projected to stagnate or decline, averaging -2.5% per month."
        assert insights[-1] == RECOMMENDATIONS["declining"]
