"""Chart transforms, aggregation, statistics and forecasting."""

from .aggregation import (
    aggregate,
    calculate_stats,
    frequency_distribution,
    geo_heatmap_data,
    group_by_field,
    histogram,
    time_aggregation,
)
from .chart_data import ChartDataTransformer
from .coercion import (
    format_date,
    format_month_year,
    is_date_like,
    parse_date,
    parse_number,
    to_number,
)
from .forecasting import calculate_correlation, simple_forecast
from .types import (
    AggregationType,
    ForecastMethod,
    SortBy,
    SortOrder,
    TimeUnit,
    TransformOptions,
)

__all__ = [
    "ChartDataTransformer",
    "TransformOptions",
    "AggregationType",
    "ForecastMethod",
    "SortBy",
    "SortOrder",
    "TimeUnit",
    "aggregate",
    "calculate_stats",
    "frequency_distribution",
    "geo_heatmap_data",
    "group_by_field",
    "histogram",
    "time_aggregation",
    "calculate_correlation",
    "simple_forecast",
    "format_date",
    "format_month_year",
    "is_date_like",
    "parse_date",
    "parse_number",
    "to_number",
]
