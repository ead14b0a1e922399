# normalize.py
"""Deterministic value formatting for chat answers when no oracle is configured."""
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from .models import Placeholder

# "250k", "$1.25m", "USD 10 million", "3,000"
_AMOUNT_RE = re.compile(
    r"^(?:usd|us\$|\$)?\s*([0-9][0-9,]*(?:\.[0-9]+)?)\s*(k|thousand|m|mn|million|b|bn|billion)?$",
    re.I,
)
_SCALE = {"k": 3, "thousand": 3, "m": 6, "mn": 6, "million": 6, "b": 9, "bn": 9, "billion": 9}

_DAY_SUFFIX_RE = re.compile(r"(?<=\d)(st|nd|rd|th)\b", re.I)
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y")

_MONEY_RE = re.compile(r"\b(amount|price|valuation|cap|salary|fee)s?\b")


def format_amount(raw: str) -> str:
    """'1.25m' -> '$1,250,000'; anything unrecognised comes back as typed."""
    m = _AMOUNT_RE.match(raw.strip())
    if not m:
        return raw
    try:
        amount = Decimal(m.group(1).replace(",", ""))
    except InvalidOperation:
        return raw
    amount = amount.scaleb(_SCALE.get((m.group(2) or "").lower(), 0)).quantize(Decimal("0.01"))
    if amount == amount.to_integral():
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def format_date(raw: str) -> str:
    """'15th Sep 2025', '2025-09-15', '9/15/2025' -> 'September 15, 2025'."""
    s = _DAY_SUFFIX_RE.sub("", raw.strip()).replace(",", "")
    s = re.sub(r"\s+", " ", s)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).strftime("%B %d, %Y")
        except ValueError:
            continue
    return raw


def infer_type(placeholder: Placeholder) -> str:
    s = f"{placeholder.original} {placeholder.name}".lower().replace("_", " ")
    if re.search(r"\bdate\b", s):
        return "date"
    if placeholder.original.lstrip().startswith("$") or _MONEY_RE.search(s):
        return "currency"
    return "string"


def normalize_value(placeholder: Placeholder, raw: str) -> str:
    """Format `raw` for the placeholder's inferred type; unparseable input is kept as typed."""
    value = (raw or "").strip()
    kind = infer_type(placeholder)
    if kind == "date":
        return format_date(value)
    if kind == "currency":
        pretty = format_amount(value)
        # "$[_____]" already prints its own dollar sign
        if pretty != value and placeholder.original.lstrip().startswith("$"):
            pretty = pretty.lstrip("$")
        return pretty
    return value
