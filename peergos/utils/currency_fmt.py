"""Display formatting for AED amounts and percentages.

Internal arithmetic is never rounded; these helpers are the only place
amounts are rounded, and only for text shown to the user.

Usage
-----
    from peergos.utils.currency_fmt import fmt_aed, fmt_percent

    fmt_aed(375_000)                 # "AED 375,000"
    fmt_aed(3_300_000, compact=True) # "AED 3.3M"
    fmt_aed(1234.5, decimals=True)   # "AED 1,234.50"
    fmt_percent(10)                  # "10.0%"
"""

from __future__ import annotations

from decimal import Decimal


def fmt_aed(
    amount: float | int | Decimal | None,
    *,
    compact: bool = False,
    decimals: bool = False,
) -> str:
    """Format *amount* in dirhams.

    Parameters
    ----------
    compact : bool
        If True, shorten large values (AED 1.2M, AED 450K).
    decimals : bool
        If True, always show 2 decimal places.
    """
    amt = float(amount or 0)
    sign = "-" if amt < 0 else ""
    amt = abs(amt)

    if compact and amt >= 1_000_000:
        return f"{sign}AED {amt / 1_000_000:,.1f}M"
    if compact and amt >= 1_000:
        return f"{sign}AED {amt / 1_000:,.0f}K"
    if decimals:
        return f"{sign}AED {amt:,.2f}"
    return f"{sign}AED {amt:,.0f}"


def fmt_percent(value: float | int | None, places: int = 1) -> str:
    return f"{float(value or 0):.{places}f}%"
