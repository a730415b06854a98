"""
Chart-ready series transforms with result caching.

Each public transform fingerprints its input, probes the transform cache and
only computes on a miss. Failures inside a transform are logged and yield an
empty series so one bad chart never breaks a dashboard.
"""

from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger

from ..cache.result_cache import TransformResultCache
from ..utils.error_handler import ErrorHandler
from .aggregation import (
    DEFAULT_BINS,
    group_by_field,
    histogram,
    time_aggregation,
)
from .coercion import format_date, is_date_like, parse_date, to_number
from .types import (
    AggregationType,
    ChartPoint,
    PieSlice,
    Record,
    SortBy,
    SortOrder,
    TimeUnit,
    TransformOptions,
    coerce_enum,
)

OTHERS_LABEL = "Others"
UNNAMED_LABEL = "Unnamed"
COUNT_KEY = "count"
ROW_COUNT_KEY = "row_count"

OptionsInput = TransformOptions | dict[str, Any] | None


def _label_sort_key(value: Any) -> tuple:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, "" if value is None else str(value))


def _date_sort_key(value: Any) -> tuple:
    # Values that are not dates sort after every date
    if value is None:
        return (1, 0)
    return (0, value.value)


def arrange_series(
    items: list[tuple[dict[str, Any], Any]],
    options: TransformOptions,
    label_key: str,
    value_key: str,
) -> list[dict[str, Any]]:
    """
    Sort, limit and fold a series.

    Args:
        items: (point, parsed date or None) pairs in input order
        options: Sort and limit options
        label_key: Point key holding the label ("x" or "label")
        value_key: Point key holding the value ("y" or "value")

    Returns:
        Final list of points

    """
    if options.sort_by is not None:
        if options.sort_by == SortBy.VALUE:
            key_func = lambda item: item[0][value_key]  # noqa: E731
        elif options.sort_by == SortBy.LABEL:
            key_func = lambda item: _label_sort_key(item[0][label_key])  # noqa: E731
        else:
            key_func = lambda item: _date_sort_key(item[1])  # noqa: E731
        items = sorted(
            items,
            key=key_func,
            reverse=options.sort_direction == SortOrder.DESC,
        )

    points = [point for point, _ in items]

    limit = options.limit
    if not limit or limit < 0 or len(points) <= limit:
        return points

    if not options.group_others:
        return points[:limit]

    rest = points[limit:]
    others = {
        label_key: OTHERS_LABEL,
        value_key: sum(point[value_key] for point in rest),
        "is_aggregated": True,
        "count": len(rest),
    }
    return points[:limit] + [others]


class ChartDataTransformer:
    """Build chart series from loosely typed records."""

    def __init__(self, cache: TransformResultCache | None = None):
        """
        Initialize the transformer.

        Args:
            cache: Result cache; a cache built from CACHE_CONFIG when omitted

        """
        self.cache = cache if cache is not None else TransformResultCache.from_config()

    def _cached(
        self,
        scope: str,
        records: Sequence[Record],
        options: TransformOptions | None,
        compute: Callable[[], list[dict[str, Any]]],
    ) -> list[dict[str, Any]]:
        fingerprint = self.cache.fingerprint(records, options, scope)
        cached = self.cache.get(fingerprint)
        if cached is not None:
            return cached

        transform_name = scope.split("|", 1)[0]
        result, error = ErrorHandler.safe_execute_with_default(
            compute, [], error_message_prefix=f"{transform_name} transform failed"
        )
        if error is not None:
            return result

        self.cache.set(fingerprint, result)
        return result

    def transform_to_xy_series(
        self,
        records: Sequence[Record],
        x_field: str,
        y_field: str,
        options: OptionsInput = None,
    ) -> list[ChartPoint]:
        """
        Map records to ``{x, y}`` points, passing the original fields through.

        Args:
            records: Input records
            x_field: Field used for x
            y_field: Field coerced to a number for y
            options: Sort, limit, Others folding and date display pattern

        Returns:
            Chart points

        """
        opts = TransformOptions.coerce(options)
        scope = f"xy|{x_field}|{y_field}|{opts.date_format}"

        def compute():
            reformat = bool(
                opts.date_format and records and is_date_like(records[0].get(x_field))
            )
            items = []
            for record in records:
                raw_x = record.get(x_field)
                parsed = parse_date(raw_x)
                x = raw_x
                if reformat and parsed is not None:
                    x = format_date(parsed, opts.date_format)
                point = {**record, "x": x, "y": to_number(record.get(y_field))}
                items.append((point, parsed))
            return arrange_series(items, opts, "x", "y")

        return self._cached(scope, records, opts, compute)

    def transform_to_pie_series(
        self,
        records: Sequence[Record],
        label_field: str,
        value_field: str,
        options: OptionsInput = None,
    ) -> list[PieSlice]:
        """Map records to ``{label, value}`` slices; blank labels become "Unnamed"."""
        opts = TransformOptions.coerce(options)
        scope = f"pie|{label_field}|{value_field}"

        def compute():
            items = []
            for record in records:
                label = record.get(label_field)
                if label is None or (isinstance(label, str) and not label.strip()):
                    label = UNNAMED_LABEL
                point = {
                    **record,
                    "label": label,
                    "value": to_number(record.get(value_field)),
                }
                items.append((point, parse_date(label)))
            return arrange_series(items, opts, "label", "value")

        return self._cached(scope, records, opts, compute)

    def group_by_and_aggregate(
        self,
        records: Sequence[Record],
        group_field: str,
        value_field: str,
        aggregation: AggregationType | str = AggregationType.SUM,
    ) -> list[dict[str, Any]]:
        """
        Group records and aggregate a value field per group.

        Returns:
            Rows shaped ``{group_field: group, value_field: value, "count": n}``.
            When either field is itself named ``count``, the row count is
            stored under ``row_count`` instead.

        """
        method = coerce_enum(AggregationType, aggregation, AggregationType.SUM)
        scope = f"group|{group_field}|{value_field}|{method.value}"
        count_key = COUNT_KEY
        if COUNT_KEY in (group_field, value_field):
            count_key = ROW_COUNT_KEY
            logger.warning(
                f"Field named '{COUNT_KEY}' collides with the group size; "
                f"storing it as '{ROW_COUNT_KEY}'"
            )

        def compute():
            return [
                {
                    group_field: result["group"],
                    value_field: result["value"],
                    count_key: result["count"],
                }
                for result in group_by_field(records, group_field, value_field, method)
            ]

        return self._cached(scope, records, None, compute)

    def create_time_series(
        self,
        records: Sequence[Record],
        date_field: str,
        value_field: str,
        interval: TimeUnit | str = TimeUnit.MONTH,
        aggregation: AggregationType | str = AggregationType.SUM,
    ) -> list[ChartPoint]:
        """
        Bucket records over time as chart points in chronological order.

        Returns:
            Points shaped ``{x: display label, y: value, period_key, count}``

        """
        unit = coerce_enum(TimeUnit, interval, TimeUnit.DAY)
        method = coerce_enum(AggregationType, aggregation, AggregationType.SUM)
        scope = f"timeseries|{date_field}|{value_field}|{unit.value}|{method.value}"

        def compute():
            return [
                {
                    "x": point["display_label"],
                    "y": point["value"],
                    "period_key": point["period_key"],
                    "count": point["count"],
                }
                for point in time_aggregation(
                    records, date_field, value_field, unit, method
                )
            ]

        return self._cached(scope, records, None, compute)

    def calculate_distribution(
        self,
        records: Sequence[Record],
        field: str,
        bins: int = DEFAULT_BINS,
    ) -> list[ChartPoint]:
        """Histogram of a numeric field as ``{x: bin label, y: count}`` points."""
        scope = f"distribution|{field}|{bins}"

        def compute():
            return [
                {
                    "x": item["label"],
                    "y": item["count"],
                    "low_edge": item["low_edge"],
                    "high_edge": item["high_edge"],
                    "percentage": item["percentage"],
                }
                for item in histogram(records, field, bins)
            ]

        return self._cached(scope, records, None, compute)

    def enable_cache(self) -> None:
        self.cache.enable()
        logger.info("Transform cache enabled")

    def disable_cache(self) -> None:
        self.cache.disable()
        logger.info("Transform cache disabled")

    def clear_cache(self) -> None:
        self.cache.clear()

    def clear_expired_cache(self) -> int:
        return self.cache.clear_expired()
