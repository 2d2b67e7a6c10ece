"""
Amount normalisation and formatting for Indonesian and English notation.

Rules, applied after stripping a leading ``Rp``/``IDR`` prefix and all
whitespace:

* Both ``.`` and ``,`` present: the right-most one is the decimal point,
  the other is a thousands separator.
* One separator repeated: every group after the first must have exactly
  three digits (thousands); a final group of one or two digits is the
  decimal part.
* One separator, once: followed by exactly three digits it is a thousands
  separator (``1.500`` -> 1500), otherwise a decimal point (``1,5``).

Anything else normalises to ``Decimal("0")``.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

_CURRENCY_PREFIX = re.compile(r"^(?:rp\.?|idr)\s*", re.IGNORECASE)
_NUMERIC_BODY = re.compile(r"[\d.,]+")
ZERO = Decimal("0")


def _split_single_separator(text: str, sep: str) -> tuple[str, str] | None:
    groups = text.split(sep)
    if len(groups) == 2:
        head, tail = groups
        if len(tail) == 3 and head not in ("", "0"):
            return head + tail, ""
        return head or "0", tail
    middle, last = groups[1:-1], groups[-1]
    if not all(len(g) == 3 for g in middle):
        return None
    if len(last) == 3:
        return "".join(groups), ""
    if 1 <= len(last) <= 2:
        return "".join(groups[:-1]), last
    return None


def normalize_amount(value: object) -> Decimal:
    """Parse a printed amount into a Decimal; unparseable input gives 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = _CURRENCY_PREFIX.sub("", str(value).strip())
    text = re.sub(r"\s+", "", text)
    if not text or not _NUMERIC_BODY.fullmatch(text) or not any(c.isdigit() for c in text):
        return ZERO

    last_dot, last_comma = text.rfind("."), text.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        decimal_sep = "." if last_dot > last_comma else ","
        head, _, frac = text.rpartition(decimal_sep)
        integer = head.replace(".", "").replace(",", "")
    elif last_dot >= 0 or last_comma >= 0:
        split = _split_single_separator(text, "." if last_dot >= 0 else ",")
        if split is None:
            return ZERO
        integer, frac = split
    else:
        integer, frac = text, ""

    if not integer.isdigit() or (frac and not frac.isdigit()):
        return ZERO
    try:
        return Decimal(f"{integer}.{frac}") if frac else Decimal(integer)
    except InvalidOperation:
        return ZERO


def _is_integral(amount: Decimal) -> bool:
    return amount == amount.to_integral_value()


def format_en(amount: Decimal, decimals: int = 2) -> str:
    """English grouping: ``1,500,000.00``."""
    return f"{Decimal(amount):,.{decimals}f}"


def format_id(amount: Decimal, decimals: int = 2) -> str:
    """Indonesian grouping: ``1.500.000,00``."""
    english = format_en(amount, decimals)
    return english.replace(",", "\0").replace(".", ",").replace("\0", ".")


def format_plain(amount: Decimal) -> str:
    amount = Decimal(amount)
    return str(int(amount)) if _is_integral(amount) else f"{amount:.2f}"


def amount_variants(amount: Decimal) -> tuple[str, ...]:
    """Printed forms of ``amount`` to look for in document text."""
    amount = Decimal(amount)
    variants = [format_plain(amount), format_en(amount), format_id(amount)]
    if _is_integral(amount):
        variants.extend([format_en(amount, 0), format_id(amount, 0)])
    return tuple(dict.fromkeys(variants))


def amount_in_text(text: str, amount: Decimal) -> bool:
    """True when a printed form of ``amount`` appears in ``text``.

    Matches must not be embedded in a longer number, so ``1.500.000`` is
    not found inside ``21.500.000`` or ``1.500.0000``.
    """
    if not text or amount is None or Decimal(amount) <= 0:
        return False
    compact = re.sub(r"\s+", "", text)
    for variant in amount_variants(amount):
        pattern = re.compile(
            r"(?<!\d)(?<!\d[.,])" + re.escape(variant) + r"(?![\d]|[.,]\d{3})"
        )
        if pattern.search(text) or pattern.search(compact):
            return True
    return False
