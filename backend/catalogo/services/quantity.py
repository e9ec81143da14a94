"""Case-pack ("multiple") quantity rule shared by the cart and the order store."""
from __future__ import annotations
import math
from typing import Any


def to_number(value: Any) -> float:
    """Finite float from loose input (``"4,5"`` included), 0.0 otherwise."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def normalize_multiple(multiple: Any) -> int:
    """Integer case-pack size, at least 1."""
    return max(1, int(to_number(multiple)) or 1)


def round_to_multiple(qty: Any, multiple: Any) -> int:
    """Round ``qty`` to the nearest multiple, never below one full multiple.

    Halves round up, so 5 with multiple 2 becomes 6. Invalid or negative inputs
    are treated as 0, which still yields ``multiple``: dropping a line is done by
    removing it, not by setting its quantity to zero.
    """
    m = normalize_multiple(multiple)
    q = max(0.0, to_number(qty))
    steps = math.floor(q / m + 0.5)
    return max(m, int(steps) * m)


__all__ = ['round_to_multiple', 'normalize_multiple', 'to_number']
