"""
Data aggregation utilities for chart transforms.

Every grouping and time-bucketing transform funnels its values through
``aggregate`` so that empty groups and unsupported methods behave the same
everywhere. Malformed data never raises: numbers default to zero or the row
is dropped, depending on the transform.
"""

from collections.abc import Iterable, Sequence
from typing import Any, Final

import numpy as np
import pandas as pd
from loguru import logger

from .coercion import (
    MONTH_ABBR,
    format_month_year,
    parse_date,
    parse_number,
    to_number,
)
from .types import (
    AggregationType,
    DistributionBin,
    FrequencyEntry,
    GeoPoint,
    GroupResult,
    Record,
    Stats,
    TimeSeriesPoint,
    TimeUnit,
    coerce_enum,
)

DEFAULT_BINS: Final[int] = 10
DEFAULT_GEO_RADIUS: Final[float] = 25


def aggregate(values: Sequence[float], method: AggregationType | str) -> float:
    """
    Aggregate numeric values with one of sum/avg/min/max/count.

    Args:
        values: Already-coerced numeric values
        method: Aggregation method; unsupported values fall back to sum

    Returns:
        Aggregated value (0 for avg/min/max over an empty sequence)

    """
    method = coerce_enum(AggregationType, method, AggregationType.SUM)

    if method == AggregationType.COUNT:
        return len(values)
    if method == AggregationType.SUM:
        return sum(values)
    if not values:
        return 0
    if method == AggregationType.AVG:
        return sum(values) / len(values)
    if method == AggregationType.MIN:
        return min(values)
    return max(values)


def finite_values(records: Iterable[Record], field: str) -> list[float]:
    """Parse a field across records, dropping values that are not finite numbers."""
    values = []
    for record in records:
        parsed = parse_number(record.get(field))
        if parsed is not None:
            values.append(parsed)
    return values


def _empty_stats() -> Stats:
    return Stats(
        count=0, sum=0, avg=0, min=0, max=0, median=0, std_dev=0, q1=0, q3=0
    )


def calculate_stats(records: Sequence[Record], field: str) -> Stats:
    """
    Calculate summary statistics for a numeric field.

    Quartiles use nearest rank (``sorted[n // 4]`` and ``sorted[3n // 4]``)
    and the standard deviation is the population one.

    Args:
        records: Input records
        field: Numeric field to summarize

    Returns:
        Stats dictionary; all zeros when no value parses

    """
    values = finite_values(records, field)
    if not values:
        return _empty_stats()

    arr = np.sort(np.asarray(values, dtype=float))
    n = arr.size
    mid = n // 2
    median = (arr[mid - 1] + arr[mid]) / 2 if n % 2 == 0 else arr[mid]

    return Stats(
        count=n,
        sum=float(arr.sum()),
        avg=float(arr.mean()),
        min=float(arr[0]),
        max=float(arr[-1]),
        median=float(median),
        std_dev=float(arr.std(ddof=0)),
        q1=float(arr[n // 4]),
        q3=float(arr[(3 * n) // 4]),
    )


def frequency_distribution(
    records: Sequence[Record], field: str
) -> list[FrequencyEntry]:
    """
    Count occurrences of each distinct raw value of a field.

    Missing values are counted under ``None``. Entries keep first-seen order.
    """
    total = len(records)
    if total == 0:
        return []

    counts: dict[Any, int] = {}
    for record in records:
        value = record.get(field)
        try:
            counts[value] = counts.get(value, 0) + 1
        except TypeError:
            # Unhashable values (lists, dicts) are counted by their text form
            key = str(value)
            counts[key] = counts.get(key, 0) + 1

    return [
        FrequencyEntry(value=value, count=count, percentage=100 * count / total)
        for value, count in counts.items()
    ]


def format_edge(value: float) -> str:
    """Render a bin edge without a trailing ``.0`` for whole numbers."""
    as_float = float(value)
    return str(int(as_float)) if as_float.is_integer() else str(as_float)


def histogram(
    records: Sequence[Record], field: str, bins: int = DEFAULT_BINS
) -> list[DistributionBin]:
    """
    Partition a numeric field into equal-width bins.

    Every bin is ``[low, high)`` except the last, which also includes the
    maximum. Each value is claimed by exactly one bin.

    Args:
        records: Input records
        field: Numeric field
        bins: Number of bins (values below 1 fall back to 10)

    Returns:
        Bins in ascending order; one bin when all values are equal

    """
    values = finite_values(records, field)
    if not values:
        return []

    if bins < 1:
        logger.warning(f"Invalid bin count {bins}, using {DEFAULT_BINS}")
        bins = DEFAULT_BINS

    total = len(values)
    low, high = min(values), max(values)

    if low == high:
        return [
            DistributionBin(
                label=format_edge(low),
                count=total,
                low_edge=float(low),
                high_edge=float(high),
                percentage=100.0,
                member_values=list(values),
            )
        ]

    width = (high - low) / bins
    edges = np.linspace(low, high, bins + 1).tolist()
    members: list[list[float]] = [[] for _ in range(bins)]

    for value in values:
        index = min(int((value - low) / width), bins - 1)
        # Float rounding can put a value one bin off its edges
        while index < bins - 1 and value >= edges[index + 1]:
            index += 1
        while index > 0 and value < edges[index]:
            index -= 1
        members[index].append(value)

    return [
        DistributionBin(
            label=f"{edges[i]:.2f}-{edges[i + 1]:.2f}",
            count=len(members[i]),
            low_edge=edges[i],
            high_edge=edges[i + 1],
            percentage=100 * len(members[i]) / total,
            member_values=members[i],
        )
        for i in range(bins)
    ]


def group_key(value: Any) -> str:
    """Stringify a raw group value."""
    return str(value)


def group_by_field(
    records: Sequence[Record],
    group_field: str,
    value_field: str,
    aggregation: AggregationType | str = AggregationType.COUNT,
) -> list[GroupResult]:
    """
    Group records by a field and aggregate another field per group.

    Args:
        records: Input records
        group_field: Field whose stringified value defines the partition
        value_field: Field aggregated with ``to_number``
        aggregation: sum/avg/min/max/count (unsupported values fall back to count)

    Returns:
        One GroupResult per distinct group, in first-seen order

    """
    method = coerce_enum(AggregationType, aggregation, AggregationType.COUNT)

    groups: dict[str, list[Record]] = {}
    for record in records:
        groups.setdefault(group_key(record.get(group_field)), []).append(record)

    results = []
    for group, rows in groups.items():
        values = [to_number(row.get(value_field)) for row in rows]
        results.append(
            GroupResult(
                group=group,
                value=aggregate(values, method),
                count=len(rows),
                raw_rows=rows,
                stats=calculate_stats(rows, value_field),
            )
        )
    return results


def period_key(timestamp: pd.Timestamp, unit: TimeUnit) -> str:
    """
    Build the canonical bucket key for a timestamp.

    Keys are zero-padded so they sort chronologically as plain strings.
    Weeks are keyed by their Sunday start date.
    """
    if unit == TimeUnit.YEAR:
        return f"{timestamp.year:04d}"
    if unit == TimeUnit.MONTH:
        return f"{timestamp.year:04d}-{timestamp.month:02d}"
    if unit == TimeUnit.WEEK:
        # dayofweek: Monday=0 ... Sunday=6
        timestamp = timestamp.normalize() - pd.Timedelta(
            days=(timestamp.dayofweek + 1) % 7
        )
    return f"{timestamp.year:04d}-{timestamp.month:02d}-{timestamp.day:02d}"


def period_label(key: str, unit: TimeUnit) -> str:
    """Human-readable label for a canonical bucket key."""
    if unit == TimeUnit.YEAR:
        return key
    if unit == TimeUnit.MONTH:
        return format_month_year(key)

    year, month, day = key.split("-")
    label = f"{MONTH_ABBR[int(month) - 1]} {day}, {year}"
    return f"Week of {label}" if unit == TimeUnit.WEEK else label


def time_aggregation(
    records: Sequence[Record],
    date_field: str,
    value_field: str,
    interval: TimeUnit | str = TimeUnit.MONTH,
    aggregation: AggregationType | str = AggregationType.SUM,
) -> list[TimeSeriesPoint]:
    """
    Bucket records by day, week, month or year and aggregate a value field.

    Rows whose date does not parse are dropped. Results are sorted by the
    canonical period key, never by display label.

    Args:
        records: Input records
        date_field: Field holding the date
        value_field: Field aggregated with ``to_number``
        interval: day/week/month/year (unsupported values fall back to day)
        aggregation: sum/avg/min/max/count (unsupported values fall back to sum)

    Returns:
        TimeSeriesPoint list in chronological order

    """
    unit = coerce_enum(TimeUnit, interval, TimeUnit.DAY)
    method = coerce_enum(AggregationType, aggregation, AggregationType.SUM)

    buckets: dict[str, list[float]] = {}
    dropped = 0
    for record in records:
        timestamp = parse_date(record.get(date_field))
        if timestamp is None:
            dropped += 1
            continue
        key = period_key(timestamp, unit)
        buckets.setdefault(key, []).append(to_number(record.get(value_field)))

    if dropped:
        logger.debug(f"Dropped {dropped} rows with unparseable '{date_field}'")

    return [
        TimeSeriesPoint(
            period_key=key,
            display_label=period_label(key, unit),
            value=aggregate(values, method),
            count=len(values),
        )
        for key, values in sorted(buckets.items())
    ]


def geo_heatmap_data(
    records: Sequence[Record],
    lat_field: str,
    lng_field: str,
    value_field: str | None = None,
    radius: float = DEFAULT_GEO_RADIUS,
) -> list[GeoPoint]:
    """
    Build weighted heatmap points from coordinate fields.

    Rows with non-numeric coordinates, latitudes outside ±90 or longitudes
    outside ±180 are dropped. Without a value field every point weighs 1.
    """
    points = []
    for record in records:
        latitude = parse_number(record.get(lat_field))
        longitude = parse_number(record.get(lng_field))
        if latitude is None or longitude is None:
            continue
        if abs(latitude) > 90 or abs(longitude) > 180:
            continue

        weight = to_number(record.get(value_field)) if value_field else 1
        points.append(
            GeoPoint(
                latitude=latitude, longitude=longitude, weight=weight, radius=radius
            )
        )
    return points
