"""AI Agents package."""

from kanakku.agents.entry_assist import (
    EntryAssistAgent,
    ParsedExpense,
    ParsedIncome,
    parse_expense_rules,
    parse_income_rules,
)

__all__ = [
    "EntryAssistAgent",
    "ParsedExpense",
    "ParsedIncome",
    "parse_expense_rules",
    "parse_income_rules",
]
