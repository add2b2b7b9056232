"""
Tolerant decoding of upstream scalar cells.

Upstream listings mix U.S. and Nordic number formatting ("1,234.56",
"1234,56", "1 234,56"), percent-tagged values and "no data" sentinels
("-", "N/A"). Every function here degrades a malformed cell to ``None``
instead of raising, so one bad field never aborts a whole page.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
import re


_SENTINELS = {"-", "n/a"}

_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def _clean(token: str) -> str | None:
    s = token.strip()
    if not s or s.lower() in _SENTINELS:
        return None
    # Nordic thousands grouping uses spaces
    return s.replace(" ", "")


def decode_decimal(token) -> Decimal | None:
    """
    Decode a price-like cell into a Decimal.

    - null / bool / containers -> None
    - JSON numbers are returned exactly (floats via their shortest repr)
    - strings: when both ',' and '.' are present ',' is a thousands separator,
      a lone ',' is the decimal separator, trailing '%' is dropped
    """
    if token is None or isinstance(token, bool):
        return None
    if isinstance(token, Decimal):
        return token if token.is_finite() else None
    if isinstance(token, int):
        return Decimal(token)
    if isinstance(token, float):
        d = Decimal(repr(token))
        return d if d.is_finite() else None
    if not isinstance(token, str):
        return None

    s = _clean(token)
    if s is None:
        return None

    if "," in s and "." in s:
        s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")

    s = s.rstrip("%")

    if not _DECIMAL_RE.match(s):
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def decode_integer(token) -> int | None:
    """Decode a volume-like cell into an int; ',' is always a grouping character."""
    if token is None or isinstance(token, bool):
        return None
    if isinstance(token, int):
        return token
    if isinstance(token, (Decimal, float)):
        d = decode_decimal(token)
        if d is None or d != d.to_integral_value():
            return None
        return int(d)
    if not isinstance(token, str):
        return None

    s = _clean(token)
    if s is None:
        return None

    s = s.replace(",", "")
    if not _INTEGER_RE.match(s):
        return None
    return int(s)


def decode_text(token) -> str:
    """
    Decode a descriptive cell (name, symbol, ISIN...) into a string.

    Missing values become "". Nested objects/arrays are a document shape
    problem, not a cell problem, and raise TypeError for the caller to classify.
    """
    if token is None:
        return ""
    if isinstance(token, str):
        return token
    if isinstance(token, (dict, list)):
        raise TypeError(f"expected a scalar, got {type(token).__name__}")
    if isinstance(token, bool):
        return "true" if token else "false"
    return str(token)
