"""Unit tests for the assistant conversation context."""

from towerinsight.assistant.context_manager import (
    NO_PAYMENT_DATA,
    ContextManager,
    payment_timeframe,
)


def _load_portfolio(manager: ContextManager) -> None:
    manager.load_data_context(
        towers=[{"id": 1}, {"id": 2}, {"id": 3}],
        contracts=[{"id": 10}, {"id": 11}],
        landlords=[{"id": 100}],
        payments=[
            {"payment_date": "2024-03-01", "amount": 100},
            {"payment_date": "2023-01-15", "amount": 50},
            {"payment_date": None, "amount": 5},
        ],
    )


class TestPaymentTimeframe:
    """Test payment span descriptions."""

    def test_span_uses_earliest_and_latest(self):
        """Unparseable dates are ignored and the span is unpadded."""
        payments = [
            {"payment_date": "2024-03-01"},
            {"payment_date": "2023-01-15"},
            {"payment_date": "garbage"},
        ]
        assert payment_timeframe(payments) == "1/15/2023 to 3/1/2024"

    def test_no_payments(self):
        """No dates yields the placeholder."""
        assert payment_timeframe([]) == NO_PAYMENT_DATA
        assert payment_timeframe([{"payment_date": None}]) == NO_PAYMENT_DATA


class TestContextManager:
    """Test history and prompt rendering."""

    def test_history_trimmed_to_max(self):
        """Only the five most recent messages are kept."""
        manager = ContextManager()
        for i in range(7):
            manager.add_message("user", f"question {i}")

        assert len(manager.messages) == 5
        assert manager.messages[0].content == "question 2"
        assert manager.messages[-1].content == "question 6"

    def test_load_data_context(self):
        """Counts and payment span come from the records."""
        manager = ContextManager()
        _load_portfolio(manager)

        ctx = manager.data_context
        assert (ctx.tower_count, ctx.contract_count, ctx.landlord_count) == (3, 2, 1)
        assert ctx.payment_timeframe == "1/15/2023 to 3/1/2024"
        assert "Tower:" in ctx.schema_description

    def test_build_prompt_sections(self):
        """The prompt carries data summary, history and the question."""
        manager = ContextManager()
        _load_portfolio(manager)
        manager.add_message("user", "How many towers?")
        manager.add_message("assistant", "You have 3 towers.")

        prompt = manager.build_prompt("Which contracts expire soon?")

        assert "telecom tower data analyst" in prompt
        assert "- Towers: 3 towers" in prompt
        assert "- Payments: 1/15/2023 to 3/1/2024" in prompt
        assert "Simplified schema:\nTower:" in prompt
        assert "USER: How many towers?\n\nASSISTANT: You have 3 towers." in prompt
        assert prompt.index("Previous conversation") < prompt.index(
            'User\'s question: "Which contracts expire soon?"'
        )

    def test_build_prompt_without_history_or_data(self):
        """An empty context omits history and reports no payment data."""
        prompt = ContextManager().build_prompt("Hello")

        assert "Previous conversation" not in prompt
        assert "- Payments: No data" in prompt
        assert prompt.endswith(
            "Provide a clear, concise answer focusing on business insights."
        )

    def test_clear_keeps_data_context(self):
        """Clearing forgets messages but not the portfolio summary."""
        manager = ContextManager()
        _load_portfolio(manager)
        manager.add_message("user", "hi")

        manager.clear()

        assert manager.messages == []
        assert manager.data_context.tower_count == 3
