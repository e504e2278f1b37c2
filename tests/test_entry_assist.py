"""
Tests for the entry assist agent.

The Gemini model is replaced by a fake exposing generate_content_async.
"""

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from conftest import TODAY
from kanakku.agents import (
    EntryAssistAgent,
    parse_expense_rules,
    parse_income_rules,
)
from kanakku.models.finance import (
    ExpenseCategory,
    IncomeCategory,
    PaymentMethod,
    Recurrence,
)


class FakeModel:
    """Returns a canned response text, or raises."""

    def __init__(self, text: str = "", error: Exception = None):
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def make_agent(clock, **kwargs) -> tuple[EntryAssistAgent, FakeModel]:
    model = FakeModel(**kwargs)
    return EntryAssistAgent(model=model, clock=clock), model


class TestRuleParsing:
    """Keyword fallback used when the model is unavailable."""

    def test_expense_sentence(self):
        parsed = parse_expense_rules("Paid 450 for Uber yesterday via card", TODAY)

        assert parsed.amount == Decimal("450")
        assert parsed.category == ExpenseCategory.TRANSPORT
        assert parsed.payment_method == PaymentMethod.CARD
        assert parsed.date == date(2024, 6, 14)
        assert parsed.description == "Paid 450 for Uber yesterday via card"

    def test_income_sentence(self):
        parsed = parse_income_rules("Salary 50k from Tech Corp today monthly", TODAY)

        assert parsed.amount == Decimal("50000")
        assert parsed.category == IncomeCategory.SALARY
        assert parsed.source == "Tech Corp"
        assert parsed.date == TODAY
        assert parsed.recurrence == Recurrence.MONTHLY

    @pytest.mark.parametrize("text,amount", [
        ("₹1,200 groceries", Decimal("1200")),
        ("Rs. 99.50 coffee", Decimal("99.50")),
        ("lunch on 2024-06-01 for 250", Decimal("250")),
    ])
    def test_amount_formats(self, text, amount):
        assert parse_expense_rules(text, TODAY).amount == amount

    def test_iso_date(self):
        parsed = parse_expense_rules("Doctor visit 2024-06-01 800 cash", TODAY)
        assert parsed.date == date(2024, 6, 1)
        assert parsed.category == ExpenseCategory.HEALTHCARE
        assert parsed.payment_method == PaymentMethod.CASH

    def test_nothing_understood(self):
        parsed = parse_income_rules("hello there", TODAY)
        assert parsed.amount is None
        assert parsed.category is None
        assert parsed.source is None
        assert parsed.date is None
        assert parsed.recurrence is None


class TestEntryAssistAgent:

    def test_model_answer_is_coerced(self, clock):
        agent, model = make_agent(clock, text=(
            'Sure! ```json\n{"amount": "450", "category": "transport", '
            '"description": "Uber to office", "paymentMethod": "CARD", '
            '"date": "2024-06-14"}\n```'
        ))

        parsed = asyncio.run(agent.parse_expense_from_text("Paid 450 for Uber yesterday"))

        assert parsed.amount == Decimal("450")
        assert parsed.category == ExpenseCategory.TRANSPORT
        assert parsed.payment_method == PaymentMethod.CARD
        assert parsed.date == date(2024, 6, 14)
        assert "2024-06-15" in model.prompts[0]

    def test_values_outside_enums_are_dropped(self, clock):
        agent, _ = make_agent(clock, text=(
            '{"amount": -5, "category": "Lottery", "source": "  ", '
            '"date": "next week", "recurrence": "Weekly"}'
        ))

        parsed = asyncio.run(agent.parse_income_from_text("won something"))

        assert parsed.amount is None
        assert parsed.category is None
        assert parsed.source is None
        assert parsed.date is None
        assert parsed.recurrence is None

    def test_income_from_model(self, clock):
        agent, _ = make_agent(clock, text=(
            '{"amount": 15000, "category": "Rent", "source": "Tenant John", '
            '"date": "2024-06-05", "recurrence": "monthly"}'
        ))

        parsed = asyncio.run(agent.parse_income_from_text("rent from John"))

        assert parsed.category == IncomeCategory.RENT
        assert parsed.recurrence == Recurrence.MONTHLY
        assert parsed.source == "Tenant John"

    def test_model_failure_falls_back_to_rules(self, clock):
        agent, _ = make_agent(clock, error=RuntimeError("quota exceeded"))

        parsed = asyncio.run(agent.parse_expense_from_text("Paid 450 for Uber yesterday via card"))

        assert parsed.category == ExpenseCategory.TRANSPORT
        assert parsed.date == date(2024, 6, 14)

    def test_answer_without_json_falls_back_to_rules(self, clock):
        agent, _ = make_agent(clock, text="I could not understand that.")

        parsed = asyncio.run(agent.parse_income_from_text("Salary 50k from Tech Corp today monthly"))

        assert parsed.amount == Decimal("50000")
        assert parsed.source == "Tech Corp"
