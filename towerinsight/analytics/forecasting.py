"""Correlation and naive forecasting over aggregated series."""

import math
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any, Final

import numpy as np
import pandas as pd
from loguru import logger

from .coercion import format_month_year, parse_date, parse_number, to_number
from .types import ForecastMethod, Record, TimeSeriesPoint, TimeUnit, coerce_enum

AVERAGE_WINDOW: Final[int] = 3

_YEAR_KEY: Final = re.compile(r"^\d{4}$")
_MONTH_KEY: Final = re.compile(r"^(\d{4})-(\d{2})$")
_DAY_KEY: Final = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_WEEK_KEY: Final = re.compile(r"^(\d{4})-W(\d{1,2})$")


def calculate_correlation(
    records: Sequence[Record], field_a: str, field_b: str
) -> float:
    """
    Pearson correlation between two numeric fields.

    Only rows where both values parse are paired.

    Returns:
        Coefficient in [-1, 1]; 0.0 for fewer than two pairs or zero variance

    """
    pairs = []
    for record in records:
        a = parse_number(record.get(field_a))
        b = parse_number(record.get(field_b))
        if a is not None and b is not None:
            pairs.append((a, b))

    if len(pairs) < 2:
        return 0.0

    arr = np.asarray(pairs, dtype=float)
    dx = arr[:, 0] - arr[:, 0].mean()
    dy = arr[:, 1] - arr[:, 1].mean()
    denominator = math.sqrt(float((dx**2).sum()) * float((dy**2).sum()))
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0

    r = float((dx * dy).sum()) / denominator
    return max(-1.0, min(1.0, r))


def _next_year(key: str) -> str:
    return f"{int(key) + 1:04d}"


def _next_month(key: str) -> str:
    year, month = (int(part) for part in _MONTH_KEY.match(key).groups())
    if month >= 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def _day_stepper(days: int) -> Callable[[str], str]:
    def step(key: str) -> str:
        nxt = pd.Timestamp(key) + pd.Timedelta(days=days)
        return f"{nxt.year:04d}-{nxt.month:02d}-{nxt.day:02d}"

    return step


def _next_iso_week(key: str) -> str:
    year, week = (int(part) for part in _ISO_WEEK_KEY.match(key).groups())
    try:
        monday = datetime.fromisocalendar(year, week, 1)
    except ValueError:
        # Week number past the last ISO week of that year
        monday = datetime.fromisocalendar(year + 1, 1, 1) - timedelta(days=7)
    iso = (monday + timedelta(days=7)).isocalendar()
    return f"{iso[0]:04d}-W{iso[1]:02d}"


def _fallback_step(key: str) -> str:
    parsed = parse_date(key)
    if parsed is None:
        return f"{key}+1"
    nxt = parsed + pd.Timedelta(days=1)
    return f"{nxt.year:04d}-{nxt.month:02d}-{nxt.day:02d}"


def next_period_stepper(
    key: str, interval: TimeUnit | str | None = None
) -> Callable[[str], str]:
    """
    Pick the increment function for a period key.

    The granularity is inferred from the key's shape unless ``interval`` is
    given. Sunday-aligned week keys look like day keys, so they need
    ``interval="week"``.
    """
    unit = coerce_enum(TimeUnit, interval, None)

    if _ISO_WEEK_KEY.match(key):
        return _next_iso_week
    if unit == TimeUnit.YEAR and _YEAR_KEY.match(key):
        return _next_year
    if unit == TimeUnit.MONTH and _MONTH_KEY.match(key):
        return _next_month
    if unit == TimeUnit.WEEK and _DAY_KEY.match(key):
        return _day_stepper(7)
    if unit == TimeUnit.DAY and _DAY_KEY.match(key):
        return _day_stepper(1)

    if _YEAR_KEY.match(key):
        return _next_year
    if _MONTH_KEY.match(key):
        return _next_month
    if _DAY_KEY.match(key):
        return _day_stepper(1)

    logger.warning(f"Unrecognized period key {key!r}, stepping by one day")
    return _fallback_step


def _point_key(point: dict[str, Any]) -> str:
    for name in ("period_key", "date", "x"):
        if point.get(name) is not None:
            return str(point[name])
    return ""


def _point_value(point: dict[str, Any]) -> float:
    return to_number(point["value"] if "value" in point else point.get("y"))


def _project(values: list[float], periods: int, method: ForecastMethod) -> list[float]:
    if method == ForecastMethod.LAST:
        return [values[-1]] * periods

    if method == ForecastMethod.AVERAGE:
        window = values[-AVERAGE_WINDOW:]
        return [sum(window) / len(window)] * periods

    n = len(values)
    if n == 1:
        slope, intercept = 0.0, float(values[0])
    else:
        x = np.arange(n, dtype=float)
        slope, intercept = np.polyfit(x, np.asarray(values, dtype=float), 1)
    return [float(intercept + slope * (n + i)) for i in range(periods)]


def simple_forecast(
    series: Sequence[dict[str, Any]],
    periods: int,
    method: ForecastMethod | str = ForecastMethod.LINEAR,
    interval: TimeUnit | str | None = None,
) -> list[TimeSeriesPoint]:
    """
    Project a time series forward by a number of periods.

    Args:
        series: Points in chronological order, keyed by ``period_key``
            (``date`` or ``x`` also accepted) with ``value`` or ``y``
        periods: Number of future points to produce
        method: linear (least squares on value vs. index), average (mean of
            the last three values) or last (repeat the last value)
        interval: Granularity override for keys whose shape is ambiguous

    Returns:
        Forecast points flagged ``forecast=True``

    """
    if not series or periods <= 0:
        return []

    method = coerce_enum(ForecastMethod, method, ForecastMethod.LINEAR)
    values = [_point_value(point) for point in series]
    projected = _project(values, periods, method)

    key = _point_key(series[-1])
    step = next_period_stepper(key, interval)

    forecast = []
    for value in projected:
        key = step(key)
        forecast.append(
            TimeSeriesPoint(
                period_key=key,
                display_label=format_month_year(key),
                value=value,
                count=0,
                forecast=True,
            )
        )
    return forecast
