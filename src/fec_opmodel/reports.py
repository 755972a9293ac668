# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Account inventories for FEC OpModel.

These reports are the operator-facing worksheets used to review the
mapping of a FEC file:

- ``list_unmapped``: accounts that the static mapping table cannot place
  in the taxonomy, grouped by account, largest net amounts first,
- ``list_all_accounts``: every account of the file, mapped or not, sorted
  by account number, with its resolved mapping when there is one,
- ``summarize_mapping_health``: a compact health signal combining both
  inventories with the double-entry checks.

Both inventories resolve accounts against the *static* table only.
Session overrides are layered on top by the caller with
``exclude_session_mapped`` / ``apply_session_overrides``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Optional

from .accounts import normalize_account_number, parse_amount
from .io import LedgerEntry
from .mapping import AccountMapping, AccountResolver
from .validation import GlobalBalance, ValidationResult


@dataclass(frozen=True)
class UnmappedAccount:
    compte_num: str
    compte_lib: str
    total_debit: float
    total_credit: float
    net_amount: float
    count: int


@dataclass(frozen=True)
class AccountSummary:
    compte_num: str
    compte_lib: str
    total_debit: float
    total_credit: float
    net_amount: float
    count: int
    is_mapped: bool
    mapping: Optional[AccountMapping] = None


@dataclass(frozen=True)
class MappingHealth:
    """Share of mapped accounts and balance anomalies of a FEC file."""

    mapped: int
    total: int
    mapped_pct: float
    unbalanced_count: int
    net_delta: float


class _Totals:
    """Running per-account totals while scanning entries."""

    def __init__(self, compte_num: str, compte_lib: str):
        self.compte_num = compte_num
        self.compte_lib = compte_lib
        self.total_debit = 0.0
        self.total_credit = 0.0
        self.count = 0
        self.mapping: Optional[AccountMapping] = None

    def add(self, entry: LedgerEntry) -> None:
        self.total_debit += parse_amount(entry.debit)
        self.total_credit += parse_amount(entry.credit)
        self.count += 1


def _aggregation_key(raw_account: str) -> str:
    # Normalized number when there is one, raw number otherwise.
    return normalize_account_number(raw_account) or raw_account


def list_unmapped(
    entries: Iterable[LedgerEntry], resolver: AccountResolver
) -> list[UnmappedAccount]:
    """Group entries whose account has no static mapping, per account.

    Returns:
        One UnmappedAccount per normalized account number, sorted by
        descending absolute net amount (debit - credit).
    """
    by_account: dict[str, _Totals] = {}
    for entry in entries:
        raw = str(entry.compte_num or "").strip()
        if resolver.resolve_static(raw) is not None:
            continue
        key = _aggregation_key(raw)
        totals = by_account.get(key)
        if totals is None:
            totals = by_account[key] = _Totals(key, entry.compte_lib or "")
        totals.add(entry)

    unmapped = [
        UnmappedAccount(
            compte_num=t.compte_num,
            compte_lib=t.compte_lib,
            total_debit=t.total_debit,
            total_credit=t.total_credit,
            net_amount=t.total_debit - t.total_credit,
            count=t.count,
        )
        for t in by_account.values()
    ]
    return sorted(unmapped, key=lambda a: abs(a.net_amount), reverse=True)


def list_all_accounts(
    entries: Iterable[LedgerEntry], resolver: AccountResolver
) -> list[AccountSummary]:
    """Group all entries per account, flagging which ones are mapped.

    The mapping of an account is resolved from its first line in the file.

    Returns:
        One AccountSummary per normalized account number, sorted by account
        number so that neighbouring accounts of the chart sit together.
    """
    by_account: dict[str, _Totals] = {}
    for entry in entries:
        raw = str(entry.compte_num or "").strip()
        key = _aggregation_key(raw)
        totals = by_account.get(key)
        if totals is None:
            totals = by_account[key] = _Totals(key, entry.compte_lib or "")
            totals.mapping = resolver.resolve_static(raw)
        totals.add(entry)

    accounts = [
        AccountSummary(
            compte_num=t.compte_num,
            compte_lib=t.compte_lib,
            total_debit=t.total_debit,
            total_credit=t.total_credit,
            net_amount=t.total_debit - t.total_credit,
            count=t.count,
            is_mapped=t.mapping is not None,
            mapping=t.mapping,
        )
        for t in by_account.values()
    ]
    return sorted(accounts, key=lambda a: a.compte_num)


def exclude_session_mapped(
    unmapped: Iterable[UnmappedAccount],
    session_overrides: Mapping[str, AccountMapping],
) -> list[UnmappedAccount]:
    """Drop accounts the operator already mapped during the session."""
    return [a for a in unmapped if a.compte_num not in session_overrides]


def apply_session_overrides(
    accounts: Iterable[AccountSummary],
    session_overrides: Mapping[str, AccountMapping],
) -> list[AccountSummary]:
    """Mark session-mapped accounts as mapped, with the session mapping."""
    out: list[AccountSummary] = []
    for account in accounts:
        override = session_overrides.get(account.compte_num)
        if override is not None:
            account = replace(account, is_mapped=True, mapping=override)
        out.append(account)
    return out


def summarize_mapping_health(
    accounts: Iterable[AccountSummary],
    validation: ValidationResult,
    balance: GlobalBalance,
) -> MappingHealth:
    """Summarize mapping coverage and balance anomalies.

    ``accounts`` is normally the output of ``list_all_accounts`` after
    ``apply_session_overrides``.
    """
    accounts = list(accounts)
    total = len(accounts)
    mapped = sum(1 for a in accounts if a.is_mapped)
    mapped_pct = round(100.0 * mapped / total, 1) if total else 0.0
    return MappingHealth(
        mapped=mapped,
        total=total,
        mapped_pct=mapped_pct,
        unbalanced_count=len(validation.unbalanced_ecritures),
        net_delta=balance.net_balance,
    )
