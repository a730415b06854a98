"""Chart transform enums, options and result shapes."""

from enum import Enum
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing_extensions import NotRequired, TypedDict

Record = dict[str, Any]

E = TypeVar("E", bound=Enum)


class AggregationType(str, Enum):
    """Aggregation methods shared by every grouping transform."""

    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


class SortBy(str, Enum):
    """Sort keys for chart series."""

    VALUE = "value"
    LABEL = "label"
    DATE = "date"


class SortOrder(str, Enum):
    """Sort order options."""

    ASC = "asc"
    DESC = "desc"


class TimeUnit(str, Enum):
    """Time buckets for temporal aggregation."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ForecastMethod(str, Enum):
    """Projection methods for simple forecasts."""

    LINEAR = "linear"
    AVERAGE = "average"
    LAST = "last"


def coerce_enum(enum_cls: type[E], value: Any, default: E | None) -> E | None:
    """
    Resolve a raw option value to an enum member.

    Unsupported values fall back to ``default`` with a warning instead of
    raising, so newer callers keep working against older transforms.

    Args:
        enum_cls: Target enum class
        value: Enum member, its string value, or None
        default: Member returned for None or unsupported values

    Returns:
        Matching enum member or ``default``

    """
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Enum):
        value = value.value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        logger.warning(
            f"Unsupported {enum_cls.__name__} value {value!r}, using {default!r}"
        )
        return default


class TransformOptions(BaseModel):
    """Options accepted by the chart series transforms."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    sort_by: SortBy | None = Field(default=None, description="Sort key")
    sort_direction: SortOrder = Field(
        default=SortOrder.ASC, description="Sort direction"
    )
    limit: int | None = Field(
        default=None, description="Maximum output points; 0 or less means no limit"
    )
    group_others: bool = Field(
        default=False, description="Fold points past limit into 'Others'"
    )
    date_format: str | None = Field(
        default=None, description="Display pattern for date x values"
    )
    aggregation: AggregationType | None = Field(
        default=None, description="Aggregation for grouping transforms"
    )

    @field_validator("sort_by", mode="before")
    @classmethod
    def normalize_sort_by(cls, v):
        return coerce_enum(SortBy, v, None)

    @field_validator("sort_direction", mode="before")
    @classmethod
    def normalize_sort_direction(cls, v):
        return coerce_enum(SortOrder, v, SortOrder.ASC)

    @field_validator("aggregation", mode="before")
    @classmethod
    def normalize_aggregation(cls, v):
        return coerce_enum(AggregationType, v, None)

    @classmethod
    def coerce(cls, options: "TransformOptions | dict[str, Any] | None"):
        """Build options from a model, a plain dict (snake or camel case), or None."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(options)


class ChartPoint(TypedDict, total=False):
    """X/Y point; original record fields are passed through alongside."""

    x: Any
    y: float
    is_aggregated: bool
    count: int


class PieSlice(TypedDict, total=False):
    """Pie chart slice; original record fields are passed through alongside."""

    label: Any
    value: float
    color: str
    is_aggregated: bool
    count: int


class Stats(TypedDict):
    """Single-field summary statistics."""

    count: int
    sum: float
    avg: float
    min: float
    max: float
    median: float
    std_dev: float
    q1: float
    q3: float


class GroupResult(TypedDict):
    """Aggregated partition of records sharing a group value."""

    group: str
    value: float
    count: int
    raw_rows: list[Record]
    stats: Stats


class FrequencyEntry(TypedDict):
    """Occurrence count of one distinct raw value."""

    value: Any
    count: int
    percentage: float


class TimeSeriesPoint(TypedDict):
    """Time bucket keyed by a lexicographically chronological period key."""

    period_key: str
    display_label: str
    value: float
    count: int
    forecast: NotRequired[bool]


class DistributionBin(TypedDict):
    """Equal-width histogram bin."""

    label: str
    count: int
    low_edge: float
    high_edge: float
    percentage: float
    member_values: list[float]


class GeoPoint(TypedDict):
    """Weighted coordinate for heatmap layers."""

    latitude: float
    longitude: float
    weight: float
    radius: float
