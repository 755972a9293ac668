# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for FEC OpModel.

This module turns a flat list of FEC ledger lines into the operating model
tree:

    CategoryRow             (grand category, e.g. 'Revenue')
      └─ SubCategoryRow     (e.g. 'Product Revenue')
           └─ ConceptRow    (e.g. 'Sales')
                └─ AccountDetail (one per account number)

Every node carries:
- ``amount``: sum of (debit - credit) of the lines below it,
- ``monthly_amounts``: actual amounts per month ("YYYY-MM"),
- ``monthly_budgets``: mock budget amounts per month (see budget.py),
- ``account_numbers``: the accounts feeding the node.

Flow vs stock
-------------
Grand categories of the income statement (expenses, revenue, ...) are
*flows*: the value of a month is the movement of that month. Balance
sheet categories (see ``accounts.STOCK_CATEGORIES``) are *stocks*: the
value of a month is the running balance at the end of that month. The
cumulative transform is applied to every level of a stock category
(account detail, concept, sub-category, category), both for actuals and
budgets.

Pipeline
--------
1. Resolve each line's account to a mapping (session overrides first);
   lines without a mapping are dropped from the tree.
2. Group lines by grand category → sub-category → concept (exact string
   keys, first-seen order).
3. Build each concept from its lines: one AccountDetail per account,
   monthly actuals, then one mock budget per account/month.
4. Fold concepts into sub-categories, applying the cumulative transform
   for stock categories.
5. Fold sub-categories into categories from their already-transformed
   series.
6. Sort categories alphabetically (accent and case insensitive).

The tree is recomputed from scratch on each call; nothing is cached.
"""

import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from .accounts import (
    STOCK_CATEGORIES,
    extract_month_key,
    is_stock_category,
    parse_amount,
)
from .budget import BudgetSynthesizer
from .io import LedgerEntry
from .mapping import AccountMapping, AccountResolver

MonthlySeries = dict[str, float]


@dataclass
class AccountDetail:
    """Per-account aggregate attached to a concept row."""

    compte_num: str
    compte_lib: str
    net_amount: float = 0.0
    monthly_amounts: MonthlySeries = field(default_factory=dict)
    monthly_budgets: MonthlySeries = field(default_factory=dict)


@dataclass
class ConceptRow:
    id: str
    category: str
    sub_category: str
    concept: str
    amount: float
    monthly_amounts: MonthlySeries
    monthly_budgets: MonthlySeries
    account_numbers: list[str]
    account_details: list[AccountDetail]
    is_collapsed: bool = True
    type: Literal["concept"] = field(default="concept", init=False)


@dataclass
class SubCategoryRow:
    id: str
    category: str
    sub_category: str
    amount: float
    monthly_amounts: MonthlySeries
    monthly_budgets: MonthlySeries
    account_numbers: list[str]
    children: list[ConceptRow]
    is_collapsed: bool = True
    type: Literal["subcategory"] = field(default="subcategory", init=False)


@dataclass
class CategoryRow:
    id: str
    category: str
    amount: float
    monthly_amounts: MonthlySeries
    monthly_budgets: MonthlySeries
    account_numbers: list[str]
    children: list[SubCategoryRow]
    is_collapsed: bool = False
    type: Literal["category"] = field(default="category", init=False)


ReportRow = Union[CategoryRow, SubCategoryRow, ConceptRow]


@dataclass(frozen=True)
class _MappedLine:
    compte_num: str
    compte_lib: str
    month: str
    net_amount: float
    mapping: AccountMapping


# ---------------------------------------------------------------------------
# Series helpers
# ---------------------------------------------------------------------------


def cumulative_series(series: Mapping[str, float]) -> MonthlySeries:
    """Running total over sorted month keys.

    Example: {"2025-01": 100, "2025-02": 50} → {"2025-01": 100, "2025-02": 150}
    """
    out: MonthlySeries = {}
    running = 0.0
    for month in sorted(series):
        running += series[month]
        out[month] = running
    return out


def sum_series(
    series_list: Iterable[Mapping[str, float]], carry_forward: bool = False
) -> MonthlySeries:
    """Sum several monthly series over the union of their months.

    With ``carry_forward``, a series missing a month contributes its last
    known value (balances of cumulative series persist between movements).
    """
    series_list = list(series_list)
    months = sorted(set().union(*series_list)) if series_list else []
    out: MonthlySeries = {}
    last = [0.0] * len(series_list)
    for month in months:
        total = 0.0
        for i, series in enumerate(series_list):
            if month in series:
                last[i] = series[month]
                total += series[month]
            elif carry_forward:
                total += last[i]
        out[month] = total
    return out


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _collation_key(name: str) -> tuple[str, str]:
    """Accent and case insensitive sort key ('Équipement' sorts with 'E')."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), name)


# ---------------------------------------------------------------------------
# Tree construction
# ---------------------------------------------------------------------------


def _map_lines(
    entries: Iterable[LedgerEntry],
    resolver: AccountResolver,
    session_overrides: Optional[Mapping[str, AccountMapping]],
) -> list[_MappedLine]:
    lines: list[_MappedLine] = []
    for entry in entries:
        mapping = resolver.resolve(entry.compte_num, session_overrides)
        if mapping is None:
            continue
        lines.append(
            _MappedLine(
                compte_num=str(entry.compte_num or "").strip(),
                compte_lib=entry.compte_lib,
                month=extract_month_key(entry.ecriture_date),
                net_amount=parse_amount(entry.debit) - parse_amount(entry.credit),
                mapping=mapping,
            )
        )
    return lines


def _build_concept(
    category: str,
    sub_category: str,
    concept: str,
    lines: list[_MappedLine],
    budget: BudgetSynthesizer,
) -> ConceptRow:
    details: dict[str, AccountDetail] = {}
    for line in lines:
        detail = details.get(line.compte_num)
        if detail is None:
            detail = AccountDetail(compte_num=line.compte_num, compte_lib=line.compte_lib)
            details[line.compte_num] = detail
        detail.net_amount += line.net_amount
        # Lines without a usable date count in totals only.
        if line.month:
            detail.monthly_amounts[line.month] = (
                detail.monthly_amounts.get(line.month, 0.0) + line.net_amount
            )

    for detail in details.values():
        detail.monthly_amounts = dict(sorted(detail.monthly_amounts.items()))
        detail.monthly_budgets = {
            month: budget.synthesize(amount, detail.compte_num, month)
            for month, amount in detail.monthly_amounts.items()
        }

    account_details = sorted(details.values(), key=lambda d: d.net_amount, reverse=True)
    return ConceptRow(
        id=f"{category}-{sub_category}-{concept}",
        category=category,
        sub_category=sub_category,
        concept=concept,
        amount=sum(line.net_amount for line in lines),
        monthly_amounts=sum_series(d.monthly_amounts for d in account_details),
        monthly_budgets=sum_series(d.monthly_budgets for d in account_details),
        account_numbers=_unique(line.compte_num for line in lines),
        account_details=account_details,
    )


def _to_balances(concept: ConceptRow) -> None:
    """Replace a concept's (and its accounts') flows by running balances."""
    concept.monthly_amounts = cumulative_series(concept.monthly_amounts)
    concept.monthly_budgets = cumulative_series(concept.monthly_budgets)
    for detail in concept.account_details:
        detail.monthly_amounts = cumulative_series(detail.monthly_amounts)
        detail.monthly_budgets = cumulative_series(detail.monthly_budgets)


def _build_sub_category(
    category: str,
    sub_category: str,
    concepts: list[ConceptRow],
    is_stock: bool,
) -> SubCategoryRow:
    monthly_amounts = sum_series(c.monthly_amounts for c in concepts)
    monthly_budgets = sum_series(c.monthly_budgets for c in concepts)
    if is_stock:
        monthly_amounts = cumulative_series(monthly_amounts)
        monthly_budgets = cumulative_series(monthly_budgets)
        for concept in concepts:
            _to_balances(concept)

    return SubCategoryRow(
        id=f"{category}-{sub_category}",
        category=category,
        sub_category=sub_category,
        amount=sum(c.amount for c in concepts),
        monthly_amounts=monthly_amounts,
        monthly_budgets=monthly_budgets,
        account_numbers=_unique(n for c in concepts for n in c.account_numbers),
        children=concepts,
    )


def _build_category(
    category: str, sub_categories: list[SubCategoryRow], is_stock: bool
) -> CategoryRow:
    return CategoryRow(
        id=category,
        category=category,
        amount=sum(s.amount for s in sub_categories),
        monthly_amounts=sum_series(
            (s.monthly_amounts for s in sub_categories), carry_forward=is_stock
        ),
        monthly_budgets=sum_series(
            (s.monthly_budgets for s in sub_categories), carry_forward=is_stock
        ),
        account_numbers=_unique(n for s in sub_categories for n in s.account_numbers),
        children=sub_categories,
    )


def build_operating_model(
    entries: Iterable[LedgerEntry],
    resolver: AccountResolver,
    session_overrides: Optional[Mapping[str, AccountMapping]] = None,
    budget: Optional[BudgetSynthesizer] = None,
    stock_categories: Iterable[str] = STOCK_CATEGORIES,
) -> list[CategoryRow]:
    """Build the operating model tree from ledger entries.

    Args:
        entries: FEC lines (any order).
        resolver: Account resolver backed by the static mapping table.
        session_overrides: Operator mappings keyed by normalized account
            number; they take precedence over the static table.
        budget: Mock budget generator (deterministic by default).
        stock_categories: Grand categories treated as balances.

    Returns:
        Category rows sorted alphabetically. Empty if no line could be
        mapped (or if ``entries`` is empty).
    """
    budget = budget or BudgetSynthesizer()
    stock = frozenset(stock_categories)

    # 1) Map lines; unmapped ones are left out of the tree.
    lines = _map_lines(entries, resolver, session_overrides)
    if not lines:
        return []

    # 2) Group by grand category → sub-category → concept.
    grouped: dict[str, dict[str, dict[str, list[_MappedLine]]]] = {}
    for line in lines:
        m = line.mapping
        grouped.setdefault(m.grand_category, {}).setdefault(
            m.sub_category, {}
        ).setdefault(m.concept, []).append(line)

    # 3-5) Bottom-up fold.
    result: list[CategoryRow] = []
    for category, by_sub in grouped.items():
        is_stock = is_stock_category(category, stock)
        sub_rows = []
        for sub_category, by_concept in by_sub.items():
            concepts = [
                _build_concept(category, sub_category, concept, concept_lines, budget)
                for concept, concept_lines in by_concept.items()
            ]
            sub_rows.append(
                _build_sub_category(category, sub_category, concepts, is_stock)
            )
        result.append(_build_category(category, sub_rows, is_stock))

    # 6) Alphabetical order of categories.
    return sorted(result, key=lambda row: _collation_key(row.category))


def iter_rows(rows: Iterable[ReportRow]) -> Iterable[ReportRow]:
    """Depth-first walk over a tree of rows (parents before children)."""
    for row in rows:
        yield row
        if not isinstance(row, ConceptRow):
            yield from iter_rows(row.children)
