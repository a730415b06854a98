"""Report builders for contract expiry and payment summaries."""

from .report_generator import (
    ReportData,
    build_contract_expiry_report,
    build_monthly_payment_report,
    format_currency,
    format_date_string,
    get_expiry_status,
)

__all__ = [
    "ReportData",
    "build_contract_expiry_report",
    "build_monthly_payment_report",
    "format_currency",
    "format_date_string",
    "get_expiry_status",
]
