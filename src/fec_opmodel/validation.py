# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Double-entry validation for FEC OpModel.

Two independent checks are exposed:

- ``validate_ecritures``: groups lines by journal entry (EcritureNum) and
  reports every entry whose total debit and total credit differ by more
  than the tolerance,
- ``calculate_global_balance``: sums debit and credit over all lines,
  mapped or not, as a cross-check of the whole file.

Both checks degrade gracefully: amounts that cannot be parsed count as 0
and nothing is ever raised. Results are warnings for the caller, they
never block aggregation.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from .accounts import parse_amount
from .io import LedgerEntry

# Rounding tolerance for debit/credit comparisons.
BALANCE_TOLERANCE = 0.01


@dataclass(frozen=True)
class UnbalancedEcriture:
    """A journal entry whose lines do not net to zero."""

    ecriture_num: str
    total_debit: float
    total_credit: float
    difference: float


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    unbalanced_ecritures: list[UnbalancedEcriture] = field(default_factory=list)


@dataclass(frozen=True)
class GlobalBalance:
    total_debit: float
    total_credit: float
    net_balance: float
    is_balanced: bool


def validate_ecritures(
    entries: Iterable[LedgerEntry], tolerance: float = BALANCE_TOLERANCE
) -> ValidationResult:
    """Check that every journal entry is balanced (debit = credit).

    Args:
        entries: Ledger lines, in any order.
        tolerance: Maximum accepted |debit - credit| per journal entry.

    Returns:
        A ValidationResult listing each unbalanced entry with its totals
        and absolute difference. ``is_valid`` is True iff none is found.
    """
    totals: dict[str, list[float]] = {}
    for entry in entries:
        bucket = totals.setdefault(entry.ecriture_num, [0.0, 0.0])
        bucket[0] += parse_amount(entry.debit)
        bucket[1] += parse_amount(entry.credit)

    unbalanced: list[UnbalancedEcriture] = []
    for ecriture_num, (total_debit, total_credit) in totals.items():
        difference = abs(total_debit - total_credit)
        if difference > tolerance:
            unbalanced.append(
                UnbalancedEcriture(
                    ecriture_num=ecriture_num,
                    total_debit=total_debit,
                    total_credit=total_credit,
                    difference=difference,
                )
            )

    return ValidationResult(is_valid=not unbalanced, unbalanced_ecritures=unbalanced)


def calculate_global_balance(
    entries: Iterable[LedgerEntry], tolerance: float = BALANCE_TOLERANCE
) -> GlobalBalance:
    """Sum debit and credit over all entries; balanced when |net| < tolerance."""
    total_debit = 0.0
    total_credit = 0.0
    for entry in entries:
        total_debit += parse_amount(entry.debit)
        total_credit += parse_amount(entry.credit)

    net_balance = total_debit - total_credit
    return GlobalBalance(
        total_debit=total_debit,
        total_credit=total_credit,
        net_balance=net_balance,
        is_balanced=abs(net_balance) < tolerance,
    )
