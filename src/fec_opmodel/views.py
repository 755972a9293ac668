# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for FEC OpModel.

This module contains helpers that project the operating model tree built
by ``engine.build_operating_model`` into what the presentation layer
needs. They never change amounts; they only select and reshape rows.

- ``filter_view``: keep the P&L part (accounts of classes 6 and 7) or the
  balance sheet part (every other class) of the tree,
- ``flatten_for_export``: one line per (grand category, sub-category)
  with columns ``Grande Catégorie``, ``Sous-Catégorie``, ``Montant``,
- ``monthly_table``: a wide DataFrame (one column per month) for console
  rendering, at category, sub-category or concept level,
- ``accounts_table`` / ``unmapped_table``: DataFrames of the account
  inventories built in ``reports.py``.
"""

from collections.abc import Iterable
from dataclasses import asdict, replace
from typing import Optional

import pandas as pd

from .accounts import is_pnl_account
from .engine import CategoryRow, ConceptRow, ReportRow, SubCategoryRow, iter_rows
from .reports import AccountSummary, UnmappedAccount

VIEWS = ("all", "pnl", "balance-sheet")
LEVELS = ("category", "subcategory", "concept")

EXPORT_COLUMNS = ["Grande Catégorie", "Sous-Catégorie", "Montant"]


def _account_filter(view: str):
    if view == "pnl":
        return is_pnl_account
    if view == "balance-sheet":
        return lambda account: not is_pnl_account(account)
    raise ValueError(f"Unknown view: {view!r}. Expected one of: {', '.join(VIEWS)}.")


def filter_view(rows: list[CategoryRow], view: str) -> list[CategoryRow]:
    """Return the rows of the tree belonging to a view.

    A concept is kept if at least one of its accounts belongs to the view;
    a parent is kept if at least one of its children is kept. Amounts and
    series are left as computed on the full tree.

    Args:
        rows: Category rows from ``build_operating_model``.
        view: 'all', 'pnl' or 'balance-sheet'.
    """
    if view == "all":
        return list(rows)
    keep = _account_filter(view)

    def _filter(row: ReportRow) -> Optional[ReportRow]:
        if isinstance(row, ConceptRow):
            return row if any(keep(n) for n in row.account_numbers) else None
        children = [c for c in (_filter(child) for child in row.children) if c]
        if not children:
            return None
        return replace(row, children=children)

    return [r for r in (_filter(row) for row in rows) if r is not None]


def flatten_for_export(rows: Iterable[CategoryRow]) -> pd.DataFrame:
    """Flatten the category / sub-category levels for CSV export."""
    records = [
        {
            "Grande Catégorie": category.category,
            "Sous-Catégorie": sub.sub_category,
            "Montant": sub.amount,
        }
        for category in rows
        for sub in category.children
    ]
    return pd.DataFrame(records, columns=EXPORT_COLUMNS)


def export_operating_model(rows: Iterable[CategoryRow], path: str) -> pd.DataFrame:
    """Write the flat export to ``path`` (UTF-8 with BOM for spreadsheets)."""
    df = flatten_for_export(rows)
    df.to_csv(path, index=False, encoding="utf-8-sig")
    return df


def _row_label(row: ReportRow) -> str:
    if isinstance(row, CategoryRow):
        return row.category
    if isinstance(row, SubCategoryRow):
        return f"  {row.sub_category}"
    return f"    {row.concept}"


def monthly_table(
    rows: Iterable[CategoryRow],
    level: str = "concept",
    budgets: bool = False,
    decimals: int = 2,
) -> pd.DataFrame:
    """Build a wide table of the tree down to ``level``.

    Columns are ``type``, ``name``, ``amount`` followed by one column per
    month (actuals, or budgets when ``budgets`` is True). Months without a
    value are left empty.
    """
    if level not in LEVELS:
        raise ValueError(
            f"Unknown level: {level!r}. Expected one of: {', '.join(LEVELS)}."
        )
    depth = LEVELS.index(level)

    records = []
    for row in iter_rows(rows):
        if LEVELS.index(row.type) > depth:
            continue
        series = row.monthly_budgets if budgets else row.monthly_amounts
        record = {"type": row.type, "name": _row_label(row), "amount": row.amount}
        record.update(series)
        records.append(record)

    df = pd.DataFrame(records)
    if df.empty:
        return pd.DataFrame(columns=["type", "name", "amount"])
    months = sorted(c for c in df.columns if c not in ("type", "name", "amount"))
    df = df[["type", "name", "amount"] + months]
    return df.round(decimals)


def unmapped_table(accounts: Iterable[UnmappedAccount]) -> pd.DataFrame:
    columns = [
        "compte_num",
        "compte_lib",
        "total_debit",
        "total_credit",
        "net_amount",
        "count",
    ]
    return pd.DataFrame([asdict(a) for a in accounts], columns=columns)


def accounts_table(accounts: Iterable[AccountSummary]) -> pd.DataFrame:
    """Flatten account summaries, spreading the mapping over three columns."""
    records = []
    for a in accounts:
        records.append(
            {
                "compte_num": a.compte_num,
                "compte_lib": a.compte_lib,
                "net_amount": a.net_amount,
                "count": a.count,
                "is_mapped": a.is_mapped,
                "grand_category": a.mapping.grand_category if a.mapping else "",
                "sub_category": a.mapping.sub_category if a.mapping else "",
                "concept": a.mapping.concept if a.mapping else "",
            }
        )
    columns = [
        "compte_num",
        "compte_lib",
        "net_amount",
        "count",
        "is_mapped",
        "grand_category",
        "sub_category",
        "concept",
    ]
    return pd.DataFrame(records, columns=columns)
