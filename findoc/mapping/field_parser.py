"""Parsing helpers for fields in a document analysis result.

Fields are dicts in the shape returned by ``AnalyzeResult.as_dict()`` of the
Azure Document Intelligence SDK, e.g.::

    {"type": "currency", "content": "$1,250.00",
     "valueCurrency": {"amount": 1250.0, "currencySymbol": "$", "currencyCode": "USD"}}

The older ``value`` / ``values`` / ``properties`` layout is accepted too.
"""

import logging
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Field = dict[str, Any] | None

DEFAULT_PAYMENT_TERM_DAYS = 30

_DDMMYY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
_DDMMYYYY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
)

_NET_TERMS = re.compile(r"net\s+(\d{1,4})", re.IGNORECASE)
_DAY_TERMS = re.compile(r"\b(\d{1,4})\s*(?:days?\b|d\b)", re.IGNORECASE)
_NUMERIC_TERMS = re.compile(r"^\s*(\d{1,4})\s*$")


class CurrencyValue(BaseModel):
    amount: Decimal | None = None
    currency_symbol: str | None = None
    currency_code: str | None = None


def _clean(text: str) -> str:
    return text.strip().replace("\n", " ")


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def get_content(field: Field) -> str | None:
    """Text content of a field, newlines flattened."""
    if not field:
        return None

    content = field.get("content")
    if isinstance(content, str):
        return _clean(content)

    for key in ("valueString", "value"):
        value = field.get(key)
        if isinstance(value, str):
            return _clean(value)
        if isinstance(value, dict) and isinstance(value.get("text"), str):
            return _clean(value["text"])

    return None


def _parse_date_string(text: str) -> date | None:
    match = _DDMMYY.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        full_year = 2000 + year if year < 50 else 1900 + year
        return date(full_year, month, day)

    match = _DDMMYYYY.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(field: Field, optional: bool = False, today: date | None = None) -> date | None:
    """Parse a date field.

    A missing or unparseable required date falls back to ``today`` so the
    document can still be saved. Optional dates fall back to None.

    Args:
        field: Date field from the analysis result
        optional: Return None instead of today's date when missing
        today: Override for the fallback date
    """
    fallback = None if optional else (today or date.today())

    if field and isinstance(field.get("valueDate"), str):
        try:
            return date.fromisoformat(field["valueDate"][:10])
        except ValueError:
            pass

    text = get_content(field)
    if not text:
        if not optional:
            logger.warning("Date field missing, using current date as fallback")
        return fallback

    try:
        parsed = _parse_date_string(text)
    except ValueError:
        parsed = None

    if parsed is None:
        if not optional:
            logger.warning(f"Invalid date format: {text}, using current date")
        return fallback
    return parsed


def _parse_rupiah(text: str) -> Decimal | None:
    # Indonesian formatting: "Rp 1.250.000,50"
    numeric = re.sub(r"rp", "", text, flags=re.IGNORECASE).replace(".", "").replace(",", ".").strip()
    numeric = re.sub(r"[^\d.-]", "", numeric)
    return _to_decimal(numeric) if numeric else None


def parse_currency(field: Field) -> CurrencyValue:
    """Parse a currency field into amount, symbol and ISO code."""
    result = CurrencyValue()
    if not field:
        return result

    for key in ("valueNumber", "value"):
        if isinstance(field.get(key), (int, float)) and not isinstance(field.get(key), bool):
            result.amount = _to_decimal(field[key])
            return result

    currency = field.get("valueCurrency")
    if currency is None and isinstance(field.get("value"), dict):
        currency = field["value"]

    if isinstance(currency, dict) and isinstance(currency.get("amount"), (int, float)):
        content = get_content(field)
        if content and "Rp" in content:
            result.amount = _parse_rupiah(content)
            result.currency_symbol = "Rp"
            result.currency_code = "IDR"
        else:
            result.amount = _to_decimal(currency["amount"])
            result.currency_symbol = currency.get("currencySymbol") or None
            result.currency_code = currency.get("currencyCode") or None
        return result

    text = get_content(field)
    if not text:
        return result

    numeric = re.sub(r"[^\d.-]", "", text)
    result.amount = _to_decimal(numeric) if numeric else None

    if result.amount is not None:
        symbol = re.match(r"^([^\d]+)", text)
        if symbol and symbol.group(1).strip():
            result.currency_symbol = symbol.group(1).strip()

    return result


def parse_numeric(field: Field) -> float | None:
    if not field:
        return None

    for key in ("valueNumber", "valueInteger", "value"):
        value = field.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)

    text = get_content(field)
    if not text:
        return None
    cleaned = re.sub(r"[^\d.-]", "", text)
    try:
        return float(cleaned)
    except ValueError:
        return None


def payment_term_days(payment_terms: str | None) -> int:
    """Number of days encoded in payment terms ("Net 45", "14 days", "7")."""
    if not payment_terms:
        return DEFAULT_PAYMENT_TERM_DAYS

    for pattern in (_NET_TERMS, _DAY_TERMS, _NUMERIC_TERMS):
        match = pattern.search(payment_terms)
        if match:
            days = int(match.group(1))
            return days if days > 0 else DEFAULT_PAYMENT_TERM_DAYS
    return DEFAULT_PAYMENT_TERM_DAYS


def calculate_due_date(document_date: date, payment_terms: str | None) -> date:
    return document_date + timedelta(days=payment_term_days(payment_terms))
