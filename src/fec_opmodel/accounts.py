# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Account utilities for FEC OpModel.

This module contains the small, pure helpers shared by every part of the
pipeline that looks at a raw FEC line:

- normalization of account numbers (PCG numbers are hierarchical by prefix,
  so they are right-padded with '0' to a canonical width of 9 characters),
- extraction of the month key ("YYYY-MM") from an EcritureDate (YYYYMMDD),
- tolerant parsing of debit/credit amounts (comma decimal separator),
- closest-ancestor lookup of an account code among a set of known codes,
- the flow (P&L) / stock (balance sheet) distinction for grand categories.
"""

import math
from collections.abc import Iterable
from typing import Optional, Union

ACCOUNT_NUMBER_WIDTH = 9

# Grand categories whose monthly values are balances (cumulative), not flows.
STOCK_CATEGORIES: frozenset[str] = frozenset(
    {
        "Current Assets",
        "Current Liabilities",
        "Equity & Long-term Funding",
        "Non-Current Assets",
    }
)


def normalize_account_number(compte_num: Optional[str]) -> str:
    """Right-pad an account number with '0' up to 9 characters.

    Examples:
        "613520030" → "613520030" (already 9 characters)
        "61352003"  → "613520030"
        "6135203"   → "613520300"
        ""          → ""

    Numbers longer than 9 characters are considered complete and are
    returned unchanged (no truncation).
    """
    cleaned = str(compte_num or "").strip()
    if not cleaned:
        return ""
    return cleaned.ljust(ACCOUNT_NUMBER_WIDTH, "0")


def extract_month_key(ecriture_date: Optional[str]) -> str:
    """Return "YYYY-MM" from a YYYYMMDD or YYYY-MM-DD date ("" if too short)."""
    date_str = str(ecriture_date or "").strip().replace("-", "").replace("/", "")
    if len(date_str) >= 6:
        return f"{date_str[:4]}-{date_str[4:6]}"
    return ""


def parse_amount(value: Union[str, float, int, None]) -> float:
    """Parse a debit/credit amount as written in a FEC file.

    Strings use ',' as decimal separator ("1234,56"). Anything that cannot
    be parsed (empty string, None, NaN, garbage) is treated as 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ".", 1))
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(number):
        return 0.0
    return number


def resolve_to_known_account(code: str, known_codes: Iterable[str]) -> Optional[str]:
    """Return the closest known ancestor of a given account code.

    The matching rule is based on prefix containment:
    - '606300' → '6063' if that prefix exists in the list
    - '6065'   → '606'  if '606' exists
    - '600010' → '60'   if '60' exists
    - '123456' → None   if no prefix matches

    Args:
        code: Raw account code from a ledger entry.
        known_codes: Known account codes (set or mapping keys).

    Returns:
        The most specific known prefix of the code, or None if no prefix exists.
    """
    s = str(code).strip()
    # Check progressively shorter prefixes until we find one
    for i in range(len(s), 0, -1):
        prefix = s[:i]
        if prefix in known_codes:
            return prefix
    return None


def is_stock_category(
    category: str, stock_categories: Optional[Iterable[str]] = None
) -> bool:
    """True if the grand category is a balance-sheet (stock) category."""
    if stock_categories is None:
        return category in STOCK_CATEGORIES
    return category in set(stock_categories)


def is_pnl_account(compte_num: str) -> bool:
    """P&L accounts are PCG classes 6 (expenses) and 7 (revenue)."""
    s = str(compte_num).strip()
    return s.startswith("6") or s.startswith("7")
