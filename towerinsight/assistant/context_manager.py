"""
Conversation and portfolio context for assistant prompts.

Keeps a short rolling message history and a summary of the loaded tower
portfolio, and renders both into the analyst prompt.
"""

import textwrap
from collections.abc import Sequence
from datetime import datetime
from typing import Final, Literal

from loguru import logger
from pydantic import BaseModel, Field

from ..analytics.coercion import format_date, parse_date
from ..analytics.types import Record

MAX_CONTEXT_MESSAGES: Final[int] = 5
NO_PAYMENT_DATA: Final[str] = "No payment data"
DATE_PATTERN: Final[str] = "M/D/YYYY"

SCHEMA_DESCRIPTION: Final[str] = textwrap.dedent(
    """\
    Tower: id, tower_id, name, latitude, longitude, type, height, status
    Contract: id, contract_id, tower_id, landlord_id, start_date, end_date, monthly_rate, currency, status
    Landlord: id, landlord_id, name, contact_name, email, phone, address
    Payment: id, contract_id, payment_date, amount, status, reference_id"""
)

SYSTEM_INSTRUCTIONS: Final[str] = (
    "You are a telecom tower data analyst assistant. Help the user analyze "
    "their tower, contract, and payment data.\n"
    "Provide concise, actionable insights focused on the telecom "
    "infrastructure industry.\n"
    "Use clear business language and avoid technical jargon unless necessary."
)


class ContextMessage(BaseModel):
    """One conversation message."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class DataContext(BaseModel):
    """Summary of the portfolio the assistant is answering about."""

    tower_count: int = 0
    contract_count: int = 0
    landlord_count: int = 0
    payment_timeframe: str | None = None
    schema_description: str = ""


def payment_timeframe(
    payments: Sequence[Record], date_field: str = "payment_date"
) -> str:
    """Describe the span of payment dates as ``M/D/YYYY to M/D/YYYY``."""
    dates = sorted(
        parsed
        for parsed in (parse_date(payment.get(date_field)) for payment in payments)
        if parsed is not None
    )
    if not dates:
        return NO_PAYMENT_DATA
    earliest = format_date(dates[0], DATE_PATTERN)
    latest = format_date(dates[-1], DATE_PATTERN)
    return f"{earliest} to {latest}"


class ContextManager:
    """Rolling conversation history plus portfolio data context."""

    def __init__(self, max_messages: int = MAX_CONTEXT_MESSAGES):
        self.max_messages = max_messages
        self.messages: list[ContextMessage] = []
        self.data_context = DataContext()

    def load_data_context(
        self,
        towers: Sequence[Record],
        contracts: Sequence[Record],
        landlords: Sequence[Record],
        payments: Sequence[Record],
    ) -> DataContext:
        """Summarize in-memory portfolio records into the data context."""
        self.data_context = DataContext(
            tower_count=len(towers),
            contract_count=len(contracts),
            landlord_count=len(landlords),
            payment_timeframe=payment_timeframe(payments),
            schema_description=SCHEMA_DESCRIPTION,
        )
        logger.debug(
            f"Loaded data context: {len(towers)} towers, {len(contracts)} contracts"
        )
        return self.data_context

    def add_message(self, role: Literal["user", "assistant"], content: str) -> None:
        self.messages.append(ContextMessage(role=role, content=content))
        del self.messages[: -self.max_messages]

    def build_prompt(self, query: str) -> str:
        """
        Render the analyst prompt for a question.

        Args:
            query: The user's question

        Returns:
            Prompt with instructions, data summary, recent history and question

        """
        ctx = self.data_context
        sections = [
            SYSTEM_INSTRUCTIONS,
            "Available data:\n"
            f"- Towers: {ctx.tower_count} towers\n"
            f"- Contracts: {ctx.contract_count} contracts\n"
            f"- Landlords: {ctx.landlord_count} landlords\n"
            f"- Payments: {ctx.payment_timeframe or 'No data'}",
            f"Simplified schema:\n{ctx.schema_description}",
        ]

        if self.messages:
            history = "\n\n".join(
                f"{msg.role.upper()}: {msg.content}" for msg in self.messages
            )
            sections.append(f"Previous conversation:\n{history}")

        sections.append(f'User\'s question: "{query}"')
        sections.append(
            "Provide a clear, concise answer focusing on business insights."
        )
        return "\n\n".join(sections)

    def clear(self) -> None:
        """Forget the conversation history; the data context is kept."""
        self.messages = []
