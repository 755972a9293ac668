# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Mapping utilities for FEC OpModel.

This module defines the structures and logic used to decide where an
account number lands in the operating model taxonomy:

    grand category → sub-category → concept

Two sources of mappings exist:

- the static mapping table (``MappingTable``), loaded from a CSV file
  maintained alongside the configuration (one row per declared account),
- session overrides (``SessionOverrides``), created by an operator while
  reviewing unmapped accounts. They are keyed by the *normalized* account
  number and always take precedence over the static table.

Resolution is performed by ``AccountResolver``, an ordered chain of
resolver functions tried in sequence until one returns a mapping:

    1. session overrides, by normalized account number,
    2. static table fallback on the raw number (exact, then closest
       declared ancestor by prefix),
    3. static table exact lookup on the normalized number.

An account that no resolver can map yields ``None``. This is not an
error: the caller reports it as unmapped.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Callable, Optional

import pandas as pd

from .accounts import normalize_account_number, resolve_to_known_account


class MappingFormatError(ValueError):
    """Raised when a mapping CSV does not have the expected structure."""


@dataclass(frozen=True)
class AccountMapping:
    """Position of an account in the operating model taxonomy.

    Attributes:
        concept: Finest level (e.g. 'Software licences G&A').
        grand_category: Top level (e.g. 'Operating Expenses (OPEX)').
        sub_category: Intermediate level (e.g. 'R&D Expenses').
        account: Account number the mapping was declared for ('' if unknown).
    """

    concept: str
    grand_category: str
    sub_category: str
    account: str = ""


# Accepted header aliases, matched case-insensitively after stripping.
_COLUMN_CANDIDATES: dict[str, list[str]] = {
    "account": ["account", "compte", "compte_num", "comptenum", "account_number"],
    "concept": ["concept"],
    "grand_category": [
        "grand_category",
        "grande_categorie",
        "grandecategorie",
        "category",
    ],
    "sub_category": [
        "sub_category",
        "sous_categorie",
        "souscategorie",
        "subcategory",
    ],
}


def _normalize_mapping_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename mapping columns to their canonical names.

    Raises:
        MappingFormatError: if one of the four required columns is missing.
    """
    col_map = {str(c).strip().lower(): c for c in df.columns}
    renamed: dict[str, str] = {}
    missing: list[str] = []
    for canonical, candidates in _COLUMN_CANDIDATES.items():
        found = next((col_map[c] for c in candidates if c in col_map), None)
        if found is None:
            missing.append(canonical)
        else:
            renamed[found] = canonical
    if missing:
        raise MappingFormatError(
            "Mapping file is missing required column(s): "
            f"{', '.join(missing)}. Expected: account, concept, "
            "grand_category, sub_category."
        )
    out = df[list(renamed)].rename(columns=renamed)
    out = out.fillna("")
    for col in _COLUMN_CANDIDATES:
        out[col] = out[col].astype(str).str.strip()
    return out


def read_mappings_csv(path: str) -> list[AccountMapping]:
    """Read a mapping CSV into a list of AccountMapping.

    Account numbers are read as strings so that leading zeros and exact
    widths are preserved. Rows with an empty account are skipped.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df = _normalize_mapping_columns(df)
    mappings: list[AccountMapping] = []
    for r in df.itertuples(index=False):
        if not r.account:
            continue
        mappings.append(
            AccountMapping(
                concept=r.concept,
                grand_category=r.grand_category,
                sub_category=r.sub_category,
                account=r.account,
            )
        )
    return mappings


class MappingTable:
    """In-memory representation of the static mapping table.

    The table is responsible for:
      - storing the declared account → taxonomy rules,
      - exact lookups on normalized account numbers,
      - the fallback lookup (closest declared ancestor by prefix),
      - taxonomy pick-lists used by manual mapping editors.
    """

    def __init__(self, mappings: Iterable[AccountMapping]):
        self.rules: list[AccountMapping] = list(mappings)
        # First declaration wins for duplicated accounts.
        self._by_normalized: dict[str, AccountMapping] = {}
        self._by_root: dict[str, AccountMapping] = {}
        for m in self.rules:
            normalized = normalize_account_number(m.account)
            self._by_normalized.setdefault(normalized, m)
            # Declared numbers are padded with '0'; the root is the
            # significant prefix ('601000000' → '601').
            root = m.account.strip().rstrip("0")
            if root:
                self._by_root.setdefault(root, m)

    @staticmethod
    def from_csv(path: str) -> "MappingTable":
        """Load a MappingTable directly from a CSV file."""
        return MappingTable(read_mappings_csv(path))

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, normalized_account: str) -> Optional[AccountMapping]:
        """Exact lookup on a normalized (9 characters) account number."""
        if not normalized_account:
            return None
        return self._by_normalized.get(normalized_account)

    def get_with_fallback(self, raw_account: str) -> Optional[AccountMapping]:
        """Fallback lookup on a raw account number.

        Tries the exact normalized number first, then the closest declared
        ancestor by prefix ('6011' → rule declared as '601000000').
        """
        cleaned = str(raw_account or "").strip()
        if not cleaned:
            return None
        exact = self.get(normalize_account_number(cleaned))
        if exact is not None:
            return exact
        root = resolve_to_known_account(cleaned, self._by_root)
        if root is None:
            return None
        return self._by_root[root]

    def grand_categories(self) -> list[str]:
        """Sorted unique grand categories declared in the table."""
        return sorted({m.grand_category for m in self.rules})

    def sub_categories(self, grand_category: str) -> list[str]:
        """Sorted unique sub-categories of a grand category."""
        return sorted(
            {m.sub_category for m in self.rules if m.grand_category == grand_category}
        )

    def concepts(self, grand_category: str, sub_category: str) -> list[str]:
        """Sorted unique concepts of a (grand category, sub-category) pair."""
        return sorted(
            {
                m.concept
                for m in self.rules
                if m.grand_category == grand_category
                and m.sub_category == sub_category
            }
        )


class SessionOverrides(Mapping[str, AccountMapping]):
    """Immutable map of operator-defined mappings, keyed by normalized account.

    Every mutation returns a new instance, so a report computed from one
    instance is never affected by later edits.
    """

    def __init__(self, mappings: Optional[Mapping[str, AccountMapping]] = None):
        self._data: dict[str, AccountMapping] = {}
        for account, mapping in (mappings or {}).items():
            key = normalize_account_number(account)
            if key:
                self._data[key] = replace(mapping, account=key)

    def __getitem__(self, account: str) -> AccountMapping:
        return self._data[account]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SessionOverrides({self._data!r})"

    def with_mapping(self, account: str, mapping: AccountMapping) -> "SessionOverrides":
        """Return a copy with one account (re)mapped."""
        return self.with_mappings({account: mapping})

    def with_mappings(
        self, mappings: Mapping[str, AccountMapping]
    ) -> "SessionOverrides":
        """Return a copy with several accounts (re)mapped at once."""
        data = dict(self._data)
        for account, mapping in mappings.items():
            key = normalize_account_number(account)
            if not key:
                continue
            data[key] = replace(mapping, account=key)
        return SessionOverrides(data)

    def without(self, account: str) -> "SessionOverrides":
        """Return a copy without the given account."""
        key = normalize_account_number(account)
        return SessionOverrides({k: v for k, v in self._data.items() if k != key})

    def cleared(self) -> "SessionOverrides":
        return SessionOverrides()

    @staticmethod
    def from_csv(path: str) -> "SessionOverrides":
        """Load overrides from a CSV file in the mapping table format."""
        return SessionOverrides({m.account: m for m in read_mappings_csv(path)})


Resolver = Callable[[str], Optional[AccountMapping]]


class AccountResolver:
    """Resolve raw account numbers to mappings through a fallback chain."""

    def __init__(self, table: MappingTable):
        self.table = table

    def _static_chain(self) -> tuple[Resolver, ...]:
        return (
            self.table.get_with_fallback,
            lambda raw: self.table.get(normalize_account_number(raw)),
        )

    def resolve(
        self,
        raw_account: str,
        session_overrides: Optional[Mapping[str, AccountMapping]] = None,
    ) -> Optional[AccountMapping]:
        """Resolve an account number, session overrides first.

        Args:
            raw_account: Account number as read from the FEC file.
            session_overrides: Operator mappings keyed by normalized number.

        Returns:
            The first mapping found along the chain, or None.
        """
        chain: tuple[Resolver, ...] = self._static_chain()
        if session_overrides:
            chain = (
                lambda raw: session_overrides.get(normalize_account_number(raw)),
            ) + chain
        return _first_hit(chain, raw_account)

    def resolve_static(self, raw_account: str) -> Optional[AccountMapping]:
        """Resolve against the static table only (no session overrides)."""
        return _first_hit(self._static_chain(), raw_account)


def _first_hit(chain: Iterable[Resolver], raw_account: str) -> Optional[AccountMapping]:
    for resolver in chain:
        mapping = resolver(raw_account)
        if mapping is not None:
            return mapping
    return None
