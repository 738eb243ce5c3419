from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

NumberLike = Union[str, int, float, Decimal, None]

_CURRENCY_PREFIX_RE = re.compile(r"^(?:rs\.?|pkr|₨)\s*", flags=re.IGNORECASE)
_UNIT_SUFFIX_RE = re.compile(
    r"\s*(?:(?:/|per)\s*)?(?:sq\.?\s*(?:ft|feet|yards?|yd)\.?|sqft|pkr|rs\.?)$",
    flags=re.IGNORECASE,
)
_NUMBER_RE = re.compile(
    r"(?P<grouped>(?:\d{1,3}(?:,\d{3})+|\d{1,2}(?:,\d{2})+,\d{3})(?:\.\d+)?)"
    r"|(?P<plain>(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][+-]?\d{1,3})?)"
)


def parse_amount(value: NumberLike) -> Decimal:
    """
    Parse an area or rate typed by the user.

    A leading currency label ("Rs.", "PKR") and a trailing unit ("sq ft")
    are ignored; the rest must be a complete number literal. Anything
    unparsable or negative becomes ``Decimal(0)``: a zero-valued property
    is a valid, if degenerate, entry.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal(0)
        amount = Decimal(str(value))
    else:
        raw = _CURRENCY_PREFIX_RE.sub("", str(value).strip())
        raw = _UNIT_SUFFIX_RE.sub("", raw).strip()
        match = _NUMBER_RE.fullmatch(raw)
        if match is None:
            return Decimal(0)
        # "1,500,000" and lakh-style "15,00,000" are grouped, "12,5" is a decimal comma.
        if match.group("grouped"):
            cleaned = raw.replace(",", "")
        else:
            cleaned = raw.replace(",", ".")
        try:
            amount = Decimal(cleaned)
        except (InvalidOperation, ValueError):
            return Decimal(0)
    if not amount.is_finite() or amount < 0:
        return Decimal(0)
    return amount


def parse_coordinate(value: NumberLike, *, limit: float) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or abs(number) > limit:
        return None
    return number


def parse_latitude(value: NumberLike) -> Optional[float]:
    return parse_coordinate(value, limit=90.0)


def parse_longitude(value: NumberLike) -> Optional[float]:
    return parse_coordinate(value, limit=180.0)
