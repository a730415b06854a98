"""
Model selection policy for assistant requests.

Cheap tasks go to the fast model, reports to the most capable one, and
free-form queries are routed by a keyword/length complexity score.
"""

from enum import Enum
from typing import Final

from ..config.model_config import HAIKU, OPUS, SONNET

COMPLEXITY_KEYWORDS: Final[tuple[str, ...]] = (
    "compare",
    "analysis",
    "trend",
    "forecast",
    "risk",
    "correlation",
    "calculate",
    "optimize",
    "recommend",
    "strategy",
)
TIME_PHRASES: Final[tuple[str, ...]] = ("year over year", "month over month", "trend")
GEO_PHRASES: Final[tuple[str, ...]] = ("region", "location", "map")

MAX_COMPLEXITY: Final[float] = 10
OPUS_THRESHOLD: Final[float] = 7
SONNET_THRESHOLD: Final[float] = 3


class TaskType(str, Enum):
    """Kinds of assistant requests."""

    VALIDATION = "validation"
    QUERY = "query"
    REPORT = "report"


def assess_query_complexity(query: str) -> float:
    """
    Score a query's complexity on a 0-10 scale.

    Length contributes up to 3 points (one per 100 characters), each
    analytical keyword 0.5, time comparisons 2 and geographic terms 1.
    """
    text = query.lower()
    complexity = min(3.0, len(query) / 100)

    complexity += 0.5 * sum(1 for keyword in COMPLEXITY_KEYWORDS if keyword in text)

    if any(phrase in text for phrase in TIME_PHRASES):
        complexity += 2
    if any(phrase in text for phrase in GEO_PHRASES):
        complexity += 1

    return min(MAX_COMPLEXITY, complexity)


def select_model(query: str, task_type: TaskType | str = TaskType.QUERY) -> str:
    """
    Pick the model alias for a request.

    Args:
        query: User query text
        task_type: validation, query or report

    Returns:
        Model alias (see config.model_config)

    """
    task_type = TaskType(task_type)

    if task_type == TaskType.VALIDATION:
        return HAIKU
    if task_type == TaskType.REPORT:
        return OPUS

    complexity = assess_query_complexity(query)
    if complexity > OPUS_THRESHOLD:
        return OPUS
    if complexity > SONNET_THRESHOLD:
        return SONNET
    return HAIKU
