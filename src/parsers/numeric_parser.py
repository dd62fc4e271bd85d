# src/parsers/numeric_parser.py

"""Pull a decimal value out of captured page text."""

import re
from decimal import Decimal, InvalidOperation

_WHITESPACE_RE = re.compile(r"\s+")

# Optional sign, digits with comma grouping, optional fractional part
_NUMBER_RE = re.compile(r"[-+]?\d[\d,]*(?:\.\d+)?")


def parse_numeric(text: str | None) -> Decimal | None:
    """Return the first number in *text* as a Decimal, or ``None``.

    Currency symbols and units are ignored rather than interpreted, so
    ``"$1,234.56"`` and ``"1,234.56 AED"`` both give ``Decimal("1234.56")``.
    """
    if not text or not isinstance(text, str):
        return None
    collapsed = _WHITESPACE_RE.sub(" ", text)
    match = _NUMBER_RE.search(collapsed)
    if not match:
        return None
    cleaned = match.group(0).replace(",", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None
