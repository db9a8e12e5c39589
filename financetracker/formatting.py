"""
formatting.py — Amount parsing and en-IN number formatting for alert text.
"""

import math

RUPEE = "₹"


def parse_amount(value) -> float:
    """Coerce a numeric column to float; null, garbage, NaN or infinity becomes 0.0."""
    if value is None:
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_number_en_in(amount, min_fraction: int = 0, max_fraction: int = 3) -> str:
    """Indian digit grouping with a trimmed fractional part (e.g. 1,50,000.5)."""
    value = parse_amount(amount)
    sign = "-" if value < 0 else ""
    text = f"{abs(value):.{max_fraction}f}"
    whole, _, frac = text.partition(".")
    frac = frac.rstrip("0")
    if len(frac) < min_fraction:
        frac = frac.ljust(min_fraction, "0")
    grouped = _group_indian(whole)
    return f"{sign}{grouped}.{frac}" if frac else f"{sign}{grouped}"
