"""Reusable coercion helpers for loosely typed request payloads.

Buyer-side clients and spreadsheet exports send numbers as strings, with comma
decimal separators, blanks and nulls mixed in. These helpers normalize such
values to a fallback instead of raising, so callers decide what is fatal.
"""
from __future__ import annotations
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_CENT = Decimal('0.01')


def clean_str(value: Any) -> Optional[str]:
    """Trimmed string, or None when missing/blank."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Truncate any finite numeric value to int; fall back to ``default``."""
    if value is None or value == '' or isinstance(value, bool):
        return default
    try:
        n = float(str(value).strip().replace(',', '.'))
    except ValueError:
        return default
    if not math.isfinite(n):
        return default
    return int(n)


def to_whole_number(value: Any) -> Optional[int]:
    """Like ``to_int`` but rejects fractional values (``"2.5"`` -> None)."""
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        n = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(n) or not n.is_integer():
        return None
    return int(n)


def to_price(value: Any, default: Decimal = Decimal('0')) -> Decimal:
    """Parse a price accepting ``10.90``, ``10,90`` and ``1.234,56``.

    Result is quantized to cents; negatives clamp to zero.
    """
    if value is None or value == '' or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raw = str(value).strip().replace('R$', '').replace(' ', '')
        if ',' in raw:
            # comma is the decimal separator; dots are thousands grouping
            raw = raw.replace('.', '').replace(',', '.')
    try:
        d = Decimal(raw)
    except InvalidOperation:
        return default
    if not d.is_finite():
        return default
    if d < 0:
        d = Decimal('0')
    return d.quantize(_CENT)


__all__ = ['clean_str', 'to_int', 'to_whole_number', 'to_price']
