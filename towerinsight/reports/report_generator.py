"""
Portfolio report builders.

Reports are assembled from in-memory contract and payment records with the
analytics transforms; fetching the records is the caller's job.
"""

import math
from collections.abc import Sequence
from datetime import date, datetime, timezone
from typing import Any, Final

import pandas as pd
from loguru import logger
from typing_extensions import TypedDict

from ..analytics.aggregation import group_by_field, time_aggregation
from ..analytics.chart_data import ChartDataTransformer
from ..analytics.coercion import (
    MONTH_ABBR,
    format_date,
    parse_date,
    parse_number,
    to_number,
)
from ..analytics.types import AggregationType, Record, TimeUnit

CRITICAL_DAYS: Final[int] = 30
WARNING_DAYS: Final[int] = 90
TOP_LANDLORDS: Final[int] = 5
UNKNOWN: Final[str] = "Unknown"

CURRENCY_SYMBOLS: Final[dict[str, str]] = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


class ReportData(TypedDict):
    """Generated report payload."""

    title: str
    description: str
    created_at: str
    updated_at: str
    metadata: dict[str, Any]
    data: dict[str, Any]


def format_currency(value: Any, currency: str = "USD") -> str:
    """Format an amount with two decimals and thousands separators."""
    amount = to_number(value)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    body = f"{abs(amount):,.2f}"
    text = f"{symbol}{body}" if symbol else f"{currency.upper()} {body}"
    return f"-{text}" if amount < 0 else text


def format_date_string(value: Any) -> str:
    """Render a date as ``Mon D, YYYY``; unparseable values pass through."""
    parsed = parse_date(value)
    if parsed is None:
        return "" if value is None else str(value)
    return f"{MONTH_ABBR[parsed.month - 1]} {format_date(parsed, 'D, YYYY')}"


def get_expiry_status(days_remaining: int) -> str:
    """Classify a contract by days until expiry."""
    if days_remaining <= CRITICAL_DAYS:
        return "Critical"
    if days_remaining <= WARNING_DAYS:
        return "Warning"
    return "Upcoming"


def _nested_name(record: Record, relation: str, *fields: str) -> str | None:
    related = record.get(relation)
    if not isinstance(related, dict):
        return None
    for field in fields:
        if related.get(field):
            return related[field]
    return None


def _today(today: date | datetime | str | None) -> pd.Timestamp:
    parsed = parse_date(today) if today is not None else None
    if parsed is None:
        parsed = pd.Timestamp.now()
    return parsed.normalize()


def _timestamps() -> tuple[str, str]:
    now = datetime.now(timezone.utc).isoformat()
    return now, now


def _tower_location(contract: Record) -> dict[str, Any] | None:
    tower = contract.get("towers")
    if not isinstance(tower, dict):
        return None
    latitude = parse_number(tower.get("latitude"))
    longitude = parse_number(tower.get("longitude"))
    if latitude is None or longitude is None:
        return None
    return {
        "latitude": latitude,
        "longitude": longitude,
        "label": tower.get("name") or tower.get("tower_id") or "Tower",
        "expires": format_date_string(contract.get("end_date")),
        "monthly_rate": format_currency(
            contract.get("monthly_rate"), contract.get("currency") or "USD"
        ),
        "landlord": _nested_name(contract, "landlords", "name") or UNKNOWN,
    }


def _average_contract_days(contracts: Sequence[Record]) -> int:
    lengths = []
    for contract in contracts:
        start = parse_date(contract.get("start_date"))
        end = parse_date(contract.get("end_date"))
        if start is None or end is None:
            continue
        days = round((end - start).total_seconds() / 86400)
        if days > 0:
            lengths.append(days)
    return round(sum(lengths) / len(lengths)) if lengths else 0


def build_contract_expiry_report(
    contracts: Sequence[Record],
    title: str | None = None,
    description: str | None = None,
    period_months: int = 12,
    today: date | datetime | str | None = None,
) -> ReportData:
    """
    Build the contract expiry timeline report.

    Args:
        contracts: Contract records; ``towers`` and ``landlords`` may hold
            the related tower and landlord records
        title: Report title
        description: Report description
        period_months: Look-ahead window in months
        today: Reference date (defaults to the current date)

    Returns:
        ReportData with expiration charts, map locations and an expiry table

    """
    start = _today(today)
    end = start + pd.DateOffset(months=period_months)

    expiring = []
    for contract in contracts:
        end_date = parse_date(contract.get("end_date"))
        if end_date is not None and start <= end_date <= end:
            expiring.append(contract)

    chart_data = [
        {"x": point["display_label"], "y": point["count"]}
        for point in time_aggregation(
            expiring, "end_date", "monthly_rate", TimeUnit.MONTH, AggregationType.COUNT
        )
    ]
    revenue_chart_data = [
        {"x": point["display_label"], "y": point["value"]}
        for point in time_aggregation(
            expiring, "end_date", "monthly_rate", TimeUnit.MONTH, AggregationType.SUM
        )
    ]

    top_impact = {"x": "N/A", "y": 0}
    for point in revenue_chart_data:
        if point["y"] > top_impact["y"]:
            top_impact = point

    table = []
    for contract in expiring:
        end_date = parse_date(contract.get("end_date"))
        days_remaining = math.ceil((end_date - start).total_seconds() / 86400)
        table.append(
            {
                "id": contract.get("contract_id"),
                "tower": _nested_name(contract, "towers", "name", "tower_id")
                or UNKNOWN,
                "end_date": contract.get("end_date"),
                "days_remaining": days_remaining,
                "landlord": _nested_name(contract, "landlords", "name") or UNKNOWN,
                "monthly_rate": contract.get("monthly_rate"),
                "status": get_expiry_status(days_remaining),
            }
        )
    table.sort(key=lambda row: row["days_remaining"])

    locations = [
        location
        for location in (_tower_location(contract) for contract in expiring)
        if location is not None
    ]

    total_value = sum(to_number(c.get("monthly_rate")) for c in expiring)
    critical = sum(1 for row in table if row["status"] == "Critical")
    within_90 = sum(1 for row in table if row["status"] in ("Critical", "Warning"))

    created_at, updated_at = _timestamps()
    logger.info(f"Built contract expiry report ({len(expiring)} expiring contracts)")

    return ReportData(
        title=title or "Contract Expiry Timeline",
        description=description
        or f"Contract expiration analysis for the next {period_months} months",
        created_at=created_at,
        updated_at=updated_at,
        metadata={
            "period": f"Next {period_months} months",
            "expiring_contracts": len(table),
            "total_revenue": format_currency(total_value),
            "critical_expirations": critical,
        },
        data={
            "contracts": list(expiring),
            "chart_data": chart_data,
            "revenue_chart_data": revenue_chart_data,
            "locations": locations,
            "expiring_contracts_table": table,
            "average_contract_days": _average_contract_days(expiring),
            "top_impact_month": top_impact["x"],
            "top_impact_amount": top_impact["y"],
            "total_contracts": len(expiring),
            "expiring_next_30_days": critical,
            "expiring_next_90_days": within_90,
        },
    )


def build_monthly_payment_report(
    payments: Sequence[Record],
    title: str | None = None,
    description: str | None = None,
    start_date: date | datetime | str | None = None,
    end_date: date | datetime | str | None = None,
    currency: str = "USD",
    transformer: ChartDataTransformer | None = None,
) -> ReportData:
    """
    Build the monthly payment summary report.

    Args:
        payments: Payment records; ``landlords`` may hold the landlord record
        title: Report title
        description: Report description
        start_date: Optional inclusive lower bound on ``payment_date``
        end_date: Optional inclusive upper bound on ``payment_date``
        currency: Currency code for display values
        transformer: Chart transformer used for the landlord pie series

    Returns:
        ReportData with monthly totals, landlord and status breakdowns

    """
    transformer = transformer or ChartDataTransformer()
    lower = parse_date(start_date) if start_date is not None else None
    upper = parse_date(end_date) if end_date is not None else None

    rows = []
    for payment in payments:
        paid_on = parse_date(payment.get("payment_date"))
        if lower is not None and (paid_on is None or paid_on < lower):
            continue
        if upper is not None and (paid_on is None or paid_on > upper):
            continue
        landlord = (
            payment.get("landlord_name")
            or _nested_name(payment, "landlords", "name")
            or UNKNOWN
        )
        rows.append({**payment, "landlord_name": landlord})

    total = sum(to_number(row.get("amount")) for row in rows)
    contract_count = len({row.get("contract_id") for row in rows})
    average = total / len(rows) if rows else 0

    chart_data = [
        {"x": point["display_label"], "y": point["value"]}
        for point in time_aggregation(
            rows, "payment_date", "amount", TimeUnit.MONTH, AggregationType.SUM
        )
    ]

    landlord_groups = sorted(
        group_by_field(rows, "landlord_name", "amount", AggregationType.SUM),
        key=lambda group: group["value"],
        reverse=True,
    )
    landlord_data = transformer.transform_to_pie_series(
        [{"group": g["group"], "value": g["value"]} for g in landlord_groups],
        "group",
        "value",
        {
            "limit": TOP_LANDLORDS,
            "group_others": True,
            "sort_by": "value",
            "sort_direction": "desc",
        },
    )
    landlord_table = [
        {
            "landlord": group["group"],
            "total": group["value"],
            "count": group["count"],
            "average": group["value"] / group["count"],
        }
        for group in landlord_groups
    ]

    status_data = [
        {"x": group["group"][:1].upper() + group["group"][1:], "y": group["count"]}
        for group in group_by_field(rows, "status", "amount", AggregationType.COUNT)
    ]

    payment_details = [
        {
            "date": row.get("payment_date"),
            "contract": row.get("contract_id"),
            "landlord": row["landlord_name"],
            "amount": row.get("amount"),
            "status": row.get("status"),
            "reference": row.get("reference_id"),
        }
        for row in rows
    ]

    if start_date is not None and end_date is not None:
        period = f"{format_date_string(start_date)} to {format_date_string(end_date)}"
        default_description = f"Payment summary for the period {period}"
    else:
        period = "All time"
        default_description = "Monthly payment summary for all contracts"

    created_at, updated_at = _timestamps()
    logger.info(f"Built monthly payment report ({len(rows)} payments)")

    return ReportData(
        title=title or "Monthly Payment Summary",
        description=description or default_description,
        created_at=created_at,
        updated_at=updated_at,
        metadata={
            "period": period,
            "total_payments": format_currency(total, currency),
            "total_contracts": contract_count,
            "currency": currency,
        },
        data={
            "payments": rows,
            "chart_data": chart_data,
            "landlord_data": landlord_data,
            "landlord_table_data": landlord_table,
            "status_data": status_data,
            "payment_details": payment_details,
            "total_payments": total,
            "contract_count": contract_count,
            "average_payment": average,
        },
    )
