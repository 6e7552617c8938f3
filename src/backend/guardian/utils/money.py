"""
Money helpers for subscription prices.

Amounts are captured in whatever unit the source text uses. There is no
locale detection: every character other than a digit or a dot is dropped
before parsing, so commas always act as thousands separators.
"""

import re
from typing import Optional

_NON_NUMERIC = re.compile(r'[^\d.]')

CURRENCY_SYMBOLS = {
    'USD': '$',
    'CAD': '$',
    'AUD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
    'INR': '₹',
}


def parse_amount(amount_str: str) -> Optional[float]:
    """
    Parse a captured price string into a non-negative float.

    Args:
        amount_str: Matched price text (e.g., "$1,299.00", "12")

    Returns:
        Float amount or None if nothing numeric remains

    Examples:
        >>> parse_amount("$9.99")
        9.99
        >>> parse_amount("1,299.00")
        1299.0
        >>> parse_amount("19.9914.99") is None
        True
    """
    if not amount_str or not isinstance(amount_str, str):
        return None

    cleaned = _NON_NUMERIC.sub('', amount_str)
    if not cleaned:
        return None

    try:
        return float(cleaned)
    except ValueError:
        return None


def format_money(amount: Optional[float], currency: str = 'USD') -> str:
    """
    Format an amount for display (e.g., "$1,234.56").

    Unknown currency codes are used as the prefix verbatim.
    """
    if amount is None:
        return 'N/A'

    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency)
    return f"{symbol}{amount:,.2f}"
