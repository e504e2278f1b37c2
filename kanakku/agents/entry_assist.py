"""
Natural-Language Entry Assist

Turns a sentence like "Paid 450 for Uber yesterday via card" into a
suggested expense or income that pre-fills the entry form.

CRITICAL BOUNDARIES:
- CAN: Suggest amount, category, text, payment method, date, recurrence
- CANNOT: Persist anything; the user reviews and submits the form
- CANNOT: Invent categories; values outside the enums are dropped

The LLM is a TRANSLATOR, not an ORACLE. If it is unreachable or answers
without JSON, a deterministic keyword parser fills what it can.
"""

import datetime
import json
import re
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, TypeVar

import google.generativeai as genai
import structlog
from pydantic import BaseModel

from kanakku.config import get_settings
from kanakku.dates import Clock
from kanakku.models.finance import (
    ExpenseCategory,
    IncomeCategory,
    PaymentMethod,
    Recurrence,
)


logger = structlog.get_logger(__name__)

EnumT = TypeVar("EnumT", bound=Enum)


class ParsedExpense(BaseModel):
    """Suggested expense fields. Anything not understood stays None."""

    amount: Optional[Decimal] = None
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    date: Optional[datetime.date] = None


class ParsedIncome(BaseModel):
    """Suggested income fields. Anything not understood stays None."""

    amount: Optional[Decimal] = None
    category: Optional[IncomeCategory] = None
    source: Optional[str] = None
    date: Optional[datetime.date] = None
    recurrence: Optional[Recurrence] = None


# =============================================================================
# Rule-based parsing
# =============================================================================

_AMOUNT = re.compile(
    r"(?:₹|rs\.?|inr)?\s*(\d[\d,]*(?:\.\d+)?)\s*(k\b)?",
    re.IGNORECASE,
)
_ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_SOURCE = re.compile(
    r"\bfrom\s+([A-Za-z][\w&.' -]*?)(?=\s+(?:on|via|today|yesterday|for|every)\b|[,.;]|$)",
    re.IGNORECASE,
)

EXPENSE_KEYWORDS: dict[ExpenseCategory, tuple[str, ...]] = {
    ExpenseCategory.FOOD: (
        "food", "lunch", "dinner", "breakfast", "coffee", "tea", "snack",
        "restaurant", "swiggy", "zomato", "pizza",
    ),
    ExpenseCategory.TRANSPORT: (
        "uber", "ola", "taxi", "cab", "auto", "bus", "train", "metro",
        "petrol", "fuel", "diesel", "parking",
    ),
    ExpenseCategory.ENTERTAINMENT: (
        "movie", "netflix", "concert", "game", "spotify", "hotstar",
    ),
    ExpenseCategory.UTILITIES: (
        "electricity", "water bill", "gas", "internet", "wifi", "broadband",
        "recharge", "mobile bill",
    ),
    ExpenseCategory.HEALTHCARE: (
        "doctor", "medicine", "pharmacy", "hospital", "clinic", "medical",
    ),
    ExpenseCategory.SHOPPING: (
        "groceries", "grocery", "shopping", "amazon", "flipkart", "clothes",
        "shoes",
    ),
    ExpenseCategory.HOUSING: (
        "rent", "maintenance", "society", "plumber", "repair",
    ),
}

INCOME_KEYWORDS: dict[IncomeCategory, tuple[str, ...]] = {
    IncomeCategory.SALARY: ("salary", "payroll", "wages", "paycheck"),
    IncomeCategory.RENT: ("rent", "tenant"),
    IncomeCategory.INTEREST: ("interest", "dividend", "fd", "deposit"),
    IncomeCategory.BUSINESS: ("business", "client", "invoice", "freelance", "consulting"),
    IncomeCategory.GIFT: ("gift", "birthday"),
}

PAYMENT_KEYWORDS: dict[PaymentMethod, tuple[str, ...]] = {
    PaymentMethod.CASH: ("cash",),
    PaymentMethod.CARD: ("card", "credit", "debit"),
    PaymentMethod.UPI: ("upi", "gpay", "google pay", "phonepe", "paytm"),
}


def _contains(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def _match_keywords(text: str, table: dict[EnumT, tuple[str, ...]]) -> Optional[EnumT]:
    lowered = text.lower()
    for value, keywords in table.items():
        if any(_contains(lowered, keyword) for keyword in keywords):
            return value
    return None


def _extract_amount(text: str) -> Optional[Decimal]:
    # ISO dates would otherwise be read as amounts
    text = _ISO_DATE.sub(" ", text)
    for match in _AMOUNT.finditer(text):
        try:
            amount = Decimal(match.group(1).replace(",", ""))
        except InvalidOperation:
            continue
        if match.group(2):
            amount *= 1000
        if amount > 0:
            return amount
    return None


def _extract_date(text: str, today: date) -> Optional[date]:
    lowered = text.lower()
    if _contains(lowered, "yesterday"):
        return today - timedelta(days=1)
    if _contains(lowered, "today"):
        return today
    match = _ISO_DATE.search(text)
    if match:
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            return None
    return None


def _extract_recurrence(text: str) -> Optional[Recurrence]:
    lowered = text.lower()
    if any(_contains(lowered, word) for word in ("monthly", "every month", "per month")):
        return Recurrence.MONTHLY
    if any(_contains(lowered, word) for word in ("yearly", "annual", "annually", "every year")):
        return Recurrence.YEARLY
    return None


def parse_expense_rules(text: str, today: date) -> ParsedExpense:
    """Keyword-based expense parsing. Never fails."""
    description = " ".join(text.split())[:500] or None
    return ParsedExpense(
        amount=_extract_amount(text),
        category=_match_keywords(text, EXPENSE_KEYWORDS),
        description=description,
        payment_method=_match_keywords(text, PAYMENT_KEYWORDS),
        date=_extract_date(text, today),
    )


def parse_income_rules(text: str, today: date) -> ParsedIncome:
    """Keyword-based income parsing. Never fails."""
    source_match = _SOURCE.search(text)
    return ParsedIncome(
        amount=_extract_amount(text),
        category=_match_keywords(text, INCOME_KEYWORDS),
        source=source_match.group(1).strip() if source_match else None,
        date=_extract_date(text, today),
        recurrence=_extract_recurrence(text),
    )


# =============================================================================
# Model output coercion
# =============================================================================

def _enum_or_none(enum_cls: type[EnumT], value: Any) -> Optional[EnumT]:
    if not isinstance(value, str):
        return None
    for member in enum_cls:
        if member.value.lower() == value.strip().lower():
            return member
    return None


def _amount_or_none(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).replace(",", ""))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() and amount > 0 else None


def _date_or_none(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _text_or_none(value: Any, limit: int) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()[:limit]


def _extract_json(text: str) -> Optional[dict]:
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


# =============================================================================
# Agent
# =============================================================================

class EntryAssistAgent:
    """
    Gemini-backed parser for free-text entries.

    RESPONSIBILITIES:
    - Ask the model for a JSON object with the entry fields
    - Keep only values that fit the enums and types
    - Fall back to keyword rules when the model is unavailable

    BOUNDARIES:
    - NEVER persists data
    """

    def __init__(self, model: Any = None, clock: Optional[Clock] = None):
        """
        Args:
            model: Object with an async generate_content_async(prompt).
                   If None, a Gemini model is configured from settings.
            clock: Source of 'today' for relative dates.
        """
        self._clock = clock or Clock()
        self._model = model if model is not None else self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,  # Low temperature for consistency
                "max_output_tokens": settings.max_tokens,
            }
        )

    async def _ask(self, prompt: str) -> Optional[dict]:
        try:
            response = await self._model.generate_content_async(prompt)
            return _extract_json(response.text.strip())
        except Exception as e:
            # Fallback to rule-based parsing
            logger.warning("entry_assist_model_failed", error=str(e))
            return None

    async def parse_expense_from_text(self, text: str) -> ParsedExpense:
        today = self._clock.today()
        categories = ", ".join(c.value for c in ExpenseCategory)
        methods = ", ".join(m.value for m in PaymentMethod)

        prompt = f"""You are helping fill in an expense form for a personal finance app.

Text: "{text}"
Today's date: {today.isoformat()}

Extract these fields:
- amount: number, no currency symbol
- category: one of [{categories}]
- description: short description of what was bought
- paymentMethod: one of [{methods}]
- date: YYYY-MM-DD (resolve words like "yesterday" against today's date)

Respond with ONLY a JSON object. Leave out fields you cannot determine."""

        data = await self._ask(prompt)
        if data is None:
            return parse_expense_rules(text, today)

        return ParsedExpense(
            amount=_amount_or_none(data.get("amount")),
            category=_enum_or_none(ExpenseCategory, data.get("category")),
            description=_text_or_none(data.get("description"), 500),
            payment_method=_enum_or_none(PaymentMethod, data.get("paymentMethod")),
            date=_date_or_none(data.get("date")),
        )

    async def parse_income_from_text(self, text: str) -> ParsedIncome:
        today = self._clock.today()
        categories = ", ".join(c.value for c in IncomeCategory)
        recurrences = ", ".join(r.value for r in Recurrence)

        prompt = f"""You are helping fill in an income form for a personal finance app.

Text: "{text}"
Today's date: {today.isoformat()}

Extract these fields:
- amount: number, no currency symbol
- category: one of [{categories}]
- source: who paid (employer, tenant, bank, client)
- date: YYYY-MM-DD (resolve words like "yesterday" against today's date)
- recurrence: one of [{recurrences}]

Respond with ONLY a JSON object. Leave out fields you cannot determine."""

        data = await self._ask(prompt)
        if data is None:
            return parse_income_rules(text, today)

        return ParsedIncome(
            amount=_amount_or_none(data.get("amount")),
            category=_enum_or_none(IncomeCategory, data.get("category")),
            source=_text_or_none(data.get("source"), 200),
            date=_date_or_none(data.get("date")),
            recurrence=_enum_or_none(Recurrence, data.get("recurrence")),
        )
