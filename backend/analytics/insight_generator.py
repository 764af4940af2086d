"""Plain-language insights from revenue history and revenue forecasts."""

from typing import List

import numpy as np

from schemas import ForecastData, Revenue
from .aggregation import percent_change


INSUFFICIENT_REVENUE_DATA = (
    "Not enough revenue data to generate insights. At least 3 months of data are required."
)
INSUFFICIENT_FORECAST_DATA = (
    "Not enough forecast data to generate insights. At least 2 forecast periods are required."
)

MIN_REVENUE_POINTS = 3
MIN_FORECAST_POINTS = 2
TREND_WINDOW = 6
SEASONALITY_MIN_POINTS = 12

# Lower bounds (exclusive) of the growth and uncertainty bands
STRONG_GROWTH = 5.0
MODERATE_GROWTH = 2.0
SLIGHT_GROWTH = 0.0
HIGH_UNCERTAINTY = 0.30
MODERATE_UNCERTAINTY = 0.15

GROWTH_HEADLINES = {
    "strong": "Strong growth expected: revenue is projected to grow by an average of {rate:.1f}% per month.",
    "moderate": "Moderate growth expected: revenue is projected to grow by an average of {rate:.1f}% per month.",
    "slight": "Slight growth expected: revenue is projected to grow by an average of {rate:.1f}% per month.",
    "declining": "Revenue is projected to stagnate or decline, averaging {rate:.1f}% per month.",
}

UNCERTAINTY_NOTES = {
    "high": (
        "High forecast uncertainty: the final period's range spans {width:.1f}% of the "
        "predicted value, so treat long-range figures with caution."
    ),
    "moderate": (
        "Moderate forecast uncertainty: the final period's range spans {width:.1f}% of the "
        "predicted value."
    ),
    "low": (
        "Low forecast uncertainty: the final period's range spans {width:.1f}% of the "
        "predicted value."
    ),
}

RECOMMENDATIONS = {
    "strong": "Recommendation: consider investing in growth and scaling operations to capture the strong outlook.",
    "moderate": "Recommendation: maintain the current strategy while exploring targeted growth opportunities.",
    "slight": "Recommendation: focus on cost optimization to protect margins while growth is slow.",
    "declining": "Recommendation: review expenses and build cash reserves to prepare for a possible downturn.",
}


def growth_band(rate: float) -> str:
    """Classify an average monthly growth rate (in percent)."""
    if rate > STRONG_GROWTH:
        return "strong"
    if rate > MODERATE_GROWTH:
        return "moderate"
    if rate > SLIGHT_GROWTH:
        return "slight"
    return "declining"


def uncertainty_band(width: float) -> str:
    """Classify a band width expressed as a fraction of the prediction."""
    if width > HIGH_UNCERTAINTY:
        return "high"
    if width > MODERATE_UNCERTAINTY:
        return "moderate"
    return "low"


def _change_phrase(change: float, past: bool = True) -> str:
    if change > 0:
        verb = "increased" if past else "increase"
    elif change < 0:
        verb = "decreased" if past else "decrease"
    else:
        return "remained unchanged" if past else "remain unchanged"
    return f"{verb} by {abs(change):.1f}%"


def _average_change(values: List[float]) -> float:
    changes = [percent_change(current, previous) for previous, current in zip(values, values[1:])]
    return float(np.mean(changes)) if changes else 0.0


def trend_insights_from_revenue(revenue: List[Revenue]) -> List[str]:
    """
    Describe recent revenue movement.

    Needs at least 3 months (chronological). Adds a seasonality note once a
    full year of history is available.
    """
    if len(revenue) < MIN_REVENUE_POINTS:
        return [INSUFFICIENT_REVENUE_DATA]

    amounts = [r.amount for r in revenue]
    insights = []

    month_over_month = percent_change(amounts[-1], amounts[-2])
    insights.append(
        f"Revenue {_change_phrase(month_over_month)} compared to the previous month."
    )

    long_range = percent_change(amounts[-1], amounts[0])
    insights.append(
        f"Over the last {len(amounts)} months, revenue has {_change_phrase(long_range)} overall."
    )

    window = amounts[-TREND_WINDOW:]
    trend = _average_change(window)
    if trend > 0:
        insights.append(
            f"Revenue is trending upward over the last {len(window)} months, "
            f"averaging {trend:.1f}% growth per month."
        )
    elif trend < 0:
        insights.append(
            f"Revenue is trending downward over the last {len(window)} months, "
            f"averaging {abs(trend):.1f}% decline per month."
        )
    else:
        insights.append(f"Revenue has held steady over the last {len(window)} months.")

    if len(amounts) >= SEASONALITY_MIN_POINTS:
        insights.append(
            "With a full year of history available, consider seasonal patterns "
            "when planning for the coming months."
        )

    return insights


def trend_insights_from_forecast(forecast: List[ForecastData]) -> List[str]:
    """
    Summarize a forecast: growth band, total change, uncertainty and a
    closing recommendation.
    """
    if len(forecast) < MIN_FORECAST_POINTS:
        return [INSUFFICIENT_FORECAST_DATA]

    predicted = [point.predicted for point in forecast]
    average_growth = _average_change(predicted)
    band = growth_band(average_growth)

    insights = [GROWTH_HEADLINES[band].format(rate=average_growth)]

    total_change = percent_change(predicted[-1], predicted[0])
    insights.append(
        f"Over the next {len(forecast)} months, revenue is projected to "
        f"{_change_phrase(total_change, past=False)} in total."
    )

    last = forecast[-1]
    width = (last.upper_bound - last.lower_bound) / last.predicted if last.predicted else 0.0
    insights.append(UNCERTAINTY_NOTES[uncertainty_band(width)].format(width=width * 100))

    insights.append(RECOMMENDATIONS[band])
    return insights
